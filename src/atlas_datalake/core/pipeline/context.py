# src/atlas_datalake/core/pipeline/context.py
"""
Contexto de execução compartilhado de uma run.

Este módulo define o `RunContext`, a estrutura canônica passada a todas
as Actions, DataObjects e Execution Modes durante uma run.

O RunContext concentra:
    - identidade da execução (run_id, created_at)
    - fase corrente (init ou exec)
    - configuração resolvida
    - store de estado persistido entre runs
    - log estruturado de eventos e warnings por Action

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Logs são eventos estruturados, não strings livres
    - Ausência de estado global compartilhado

Invariantes:
    - Logs sempre incluem `run_id`, `action_id` e `phase`
    - Warnings são agrupados por `action_id`
    - Contextos derivados por `for_phase` compartilham eventos e warnings

Limites explícitos:
    - Não executa Actions
    - Não registra eventos no Manifest (responsabilidade do Engine)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .types import ExecutionPhase


ALLOW_OVERWRITE_ALL_KEY = "allow_overwrite_all_partitions_without_partition_values"


@dataclass
class RunContext:
    """
    Contexto de execução de uma run do pipeline.

    Decisões arquiteturais:
        - A fase faz parte do contexto: init e exec usam contextos distintos
          derivados do mesmo run (`for_phase`)
        - O store de estado é opcional; sem ele, execution modes incrementais
          mantêm o estado apenas no data object

    Invariantes:
        - Cada execução possui um run_id único
        - Warnings são associados explicitamente a uma Action
    """
    run_id: str
    created_at: datetime
    config: Dict[str, Any]
    phase: ExecutionPhase = ExecutionPhase.EXEC
    state_store: Optional[Any] = None
    manifest: Optional[Any] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Fase
    # -----------------------------
    @property
    def is_exec(self) -> bool:
        return self.phase == ExecutionPhase.EXEC

    def for_phase(self, phase: ExecutionPhase) -> "RunContext":
        derived = replace(self, phase=phase)
        derived.events = self.events
        derived.warnings = self.warnings
        return derived

    # -----------------------------
    # Configuração global
    # -----------------------------
    def allow_overwrite_all_partitions(self, data_object_id: str) -> bool:
        global_cfg = (self.config or {}).get("global", {}) or {}
        allowed = global_cfg.get(ALLOW_OVERWRITE_ALL_KEY, []) or []
        return data_object_id in allowed

    def runtime_data(self, action_id: str) -> Dict[str, str]:
        """Valores disponíveis para templates de runtime options."""
        return {
            "run_id": self.run_id,
            "action_id": action_id,
            "phase": self.phase.value,
            "run_started_at": self.created_at.isoformat(),
        }

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, action_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "action_id": action_id,
            "phase": self.phase.value,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, action_id: str, message: str) -> None:
        if action_id not in self.warnings:
            self.warnings[action_id] = []
        self.warnings[action_id].append(message)
