"""
Manifest de execução do Atlas DataLake.

Consolida, para uma run:
    - metadados da execução (run_id, started_at, versão)
    - hash da configuração resolvida
    - estado incremental de cada Action (status, duração, métricas por saída)
    - Event Log ordenado de eventos explícitos

Decisões arquiteturais:
    - UTC é o timezone canônico de todos os timestamps
    - Nenhum evento é emitido implicitamente; só via funções desta API
    - Persistência em JSON determinístico (sort_keys)

Invariantes:
    - `events` preserva a ordem de chamada
    - `actions` é indexado por action_id
    - to_dict/from_dict é um round-trip sem perdas

Limites explícitos:
    - Não executa pipeline
    - Não decide políticas de execução
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _utc(dt: datetime) -> datetime:
    """Timestamps sem timezone são assumidos UTC; os demais são convertidos."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    return max(0, int((_utc(end) - _utc(start)).total_seconds() * 1000))


@dataclass
class AtlasManifest:
    run: Dict[str, Any]
    inputs: Dict[str, Any]
    actions: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "actions": {k: dict(v) for k, v in self.actions.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AtlasManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            actions={k: dict(v) for k, v in (data.get("actions", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    atlas_version: str,
    config_hash: str,
) -> AtlasManifest:
    """
    Cria o manifest inicial de uma run.

    O Event Log inicia vazio: nenhum evento `run_started` é registrado
    implicitamente.
    """
    return AtlasManifest(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "atlas_version": atlas_version,
        },
        inputs={"config_hash": config_hash},
    )


def add_event(
    manifest: AtlasManifest,
    *,
    event_type: str,
    ts: datetime,
    action_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if action_id is not None:
        ev["action_id"] = action_id
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def action_started(manifest: AtlasManifest, *, action_id: str, kind: str, phase: str, ts: datetime) -> None:
    a = manifest.actions.setdefault(action_id, {"action_id": action_id})
    a.update({"kind": kind, "status": "running", "phase": phase, "started_at": _iso(ts)})
    add_event(manifest, event_type="action_started", ts=ts, action_id=action_id, payload={"phase": phase})


def action_finished(manifest: AtlasManifest, *, action_id: str, ts: datetime, result: Dict[str, Any]) -> None:
    """Registra o estado final de uma Action (success ou skipped) com métricas e warnings."""
    a = manifest.actions.setdefault(action_id, {"action_id": action_id})
    started = a.get("started_at")
    started_dt = datetime.fromisoformat(started) if started else ts

    status = result.get("status", "success")
    a.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "metrics": result.get("metrics", {}) or {},
            "warnings": result.get("warnings", []) or [],
        }
    )
    add_event(
        manifest,
        event_type="action_finished",
        ts=ts,
        action_id=action_id,
        payload={"status": status, "duration_ms": a["duration_ms"]},
    )


def action_failed(manifest: AtlasManifest, *, action_id: str, ts: datetime, error: Dict[str, Any]) -> None:
    a = manifest.actions.setdefault(action_id, {"action_id": action_id})
    a.update({"status": "failed", "finished_at": _iso(ts), "error": error})
    add_event(manifest, event_type="action_failed", ts=ts, action_id=action_id, payload={"error": error})


def save_manifest(manifest: AtlasManifest, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> AtlasManifest:
    return AtlasManifest.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
