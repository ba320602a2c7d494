"""
Engine de execução do DAG de Actions do Atlas DataLake.

Uma run tem duas passadas sobre a ordem topológica:
    1. init: pre_init → init para cada Action (dry-run, sem escrita)
    2. exec: pre_exec → exec → post_exec para cada Action

SubFeeds emitidos por uma Action alimentam as Actions que leem os mesmos
data objects; entradas sem produtor no DAG recebem um SubFeed de início
de DAG (`is_dag_start=True`).

Decisões arquiteturais:
    - Skip e no-data são PhaseResult tipados; a Action fica SKIPPED e suas
      saídas seguem como SubFeeds pulados
    - Exceções viram AtlasErrorPayload em `ActionResult.payload["error"]`
    - Dependentes de uma Action com falha são SKIPPED sem serem chamados
    - `engine.fail_fast` (padrão True) interrompe a run na primeira falha
    - Actions com `actions.<id>.enabled: false` são SKIPPED por configuração

Invariantes:
    - Cada Action executa cada fase no máximo uma vez por run
    - O estado de execution mode é resetado no início de cada run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set

from atlas_datalake.actions.base import Action
from atlas_datalake.core.errors import AtlasErrorPayload, engine_configuration_error, error_from_exception
from atlas_datalake.core.pipeline.context import RunContext
from atlas_datalake.core.pipeline.subfeed import SubFeed
from atlas_datalake.core.pipeline.types import ActionResult, ActionStatus, ExecutionPhase, PhaseResult, PhaseStatus
from atlas_datalake.core.traceability.manifest import action_failed, action_finished, action_started

from .planner import action_dependencies, plan_execution


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de uma run: ActionResult por action e SubFeeds finais por data object."""

    actions: Dict[str, ActionResult] = field(default_factory=dict)
    sub_feeds: Dict[str, SubFeed] = field(default_factory=dict)


class _PhaseFailed(Exception):
    def __init__(self, error: AtlasErrorPayload):
        super().__init__(error.message)
        self.error = error


class Engine:
    """Planner + executor das fases de todas as Actions de uma run."""

    def __init__(self, *, actions: Sequence[Action], ctx: RunContext):
        self.actions: List[Action] = list(actions)
        self.ctx: RunContext = ctx

    def _is_enabled(self, action_id: str) -> bool:
        actions_cfg = (self.ctx.config or {}).get("actions", {}) or {}
        action_cfg = actions_cfg.get(action_id, {}) or {}
        return bool(action_cfg.get("enabled", True))

    def _fail_fast(self) -> bool:
        engine_cfg = (self.ctx.config or {}).get("engine", {}) or {}
        return bool(engine_cfg.get("fail_fast", True))

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def _input_sub_feeds(action: Action, feeds: Dict[str, SubFeed]) -> List[SubFeed]:
        return [feeds.get(i) or SubFeed(i, is_dag_start=True) for i in action.input_ids]

    def _call_phase(self, action: Action, name: str, ctx: RunContext, sub_feeds: List[SubFeed]) -> PhaseResult:
        try:
            result = getattr(action, name)(ctx, sub_feeds)
        except Exception as e:  # noqa: BLE001 - toda falha de fase vira payload estruturado
            ctx.log(action_id=action.id, level="error", message=f"{name} failed", error=str(e))
            raise _PhaseFailed(error_from_exception(e, action_id=action.id)) from e
        if not isinstance(result, PhaseResult):
            raise _PhaseFailed(
                engine_configuration_error(
                    message="Action retornou tipo inválido",
                    details={"action_id": action.id, "phase": name, "received": type(result).__name__},
                    hint="Ajuste a Action para retornar PhaseResult",
                )
            )
        return result

    def _record(self, results: Dict[str, ActionResult], result: ActionResult) -> None:
        results[result.action_id] = result
        manifest = self.ctx.manifest
        if manifest is None:
            return
        if result.status == ActionStatus.FAILED:
            action_failed(manifest, action_id=result.action_id, ts=self._now(), error=result.payload["error"])
        else:
            action_finished(
                manifest,
                action_id=result.action_id,
                ts=self._now(),
                result={
                    "status": result.status.value,
                    "summary": result.summary,
                    "metrics": result.metrics,
                    "warnings": result.warnings,
                },
            )

    def _mk_result(
        self,
        action: Action,
        status: ActionStatus,
        summary: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        metrics = action.get_runtime_metrics() if status == ActionStatus.SUCCESS else {}
        return ActionResult(
            action_id=action.id,
            status=status,
            summary=summary,
            metrics=metrics,
            warnings=list(self.ctx.warnings.get(action.id, [])),
            payload=dict(payload or {}),
        )

    def _failed(self, action: Action, phase: ExecutionPhase, error: AtlasErrorPayload) -> ActionResult:
        return self._mk_result(
            action,
            ActionStatus.FAILED,
            error.message,
            payload={"error": error.to_dict(), "phase": phase.value},
        )

    def _not_proceeding(self, action: Action, result: PhaseResult) -> ActionResult:
        reason = result.reason or result.status.value
        self.ctx.add_warning(action_id=action.id, message=reason)
        return self._mk_result(action, ActionStatus.SKIPPED, reason, payload={"phase_status": result.status.value})

    def _skip_failed_dependency(self, action: Action, results: Dict[str, ActionResult]) -> None:
        self._record(results, self._mk_result(action, ActionStatus.SKIPPED, "skipped due to failed dependency"))

    # ------------------------------------------------------------------
    # Passadas
    # ------------------------------------------------------------------
    def _init_pass(
        self,
        ordered: List[Action],
        deps: Dict[str, List[str]],
        failed: Set[str],
        results: Dict[str, ActionResult],
        feeds: Dict[str, SubFeed],
    ) -> bool:
        ctx = self.ctx.for_phase(ExecutionPhase.INIT)
        for action in ordered:
            if action.id in results:
                continue
            if any(d in failed for d in deps[action.id]):
                failed.add(action.id)
                self._skip_failed_dependency(action, results)
                continue

            inputs = self._input_sub_feeds(action, feeds)
            try:
                result = self._call_phase(action, "pre_init", ctx, inputs)
                if result.is_proceed:
                    result = self._call_phase(action, "init", ctx, inputs)
            except _PhaseFailed as f:
                self._record(results, self._failed(action, ExecutionPhase.INIT, f.error))
                failed.add(action.id)
                if self._fail_fast():
                    return False
                continue
            for sf in result.sub_feeds:
                feeds[sf.data_object_id] = sf
        return True

    def _exec_pass(
        self,
        ordered: List[Action],
        deps: Dict[str, List[str]],
        failed: Set[str],
        results: Dict[str, ActionResult],
        feeds: Dict[str, SubFeed],
    ) -> None:
        ctx = self.ctx.for_phase(ExecutionPhase.EXEC)
        for action in ordered:
            if action.id in results:
                continue
            if any(d in failed for d in deps[action.id]):
                failed.add(action.id)
                self._skip_failed_dependency(action, results)
                continue

            if self.ctx.manifest is not None:
                action_started(
                    self.ctx.manifest,
                    action_id=action.id,
                    kind=getattr(action, "type_name", type(action).__name__),
                    phase=ExecutionPhase.EXEC.value,
                    ts=self._now(),
                )

            inputs = self._input_sub_feeds(action, feeds)
            try:
                result = self._call_phase(action, "pre_exec", ctx, inputs)
                if result.is_proceed:
                    result = self._call_phase(action, "exec", ctx, inputs)
                try:
                    action.post_exec(ctx, inputs, list(result.sub_feeds))
                except Exception as e:  # noqa: BLE001
                    raise _PhaseFailed(error_from_exception(e, action_id=action.id)) from e
            except _PhaseFailed as f:
                self._record(results, self._failed(action, ExecutionPhase.EXEC, f.error))
                failed.add(action.id)
                if self._fail_fast():
                    return
                continue

            for sf in result.sub_feeds:
                feeds[sf.data_object_id] = sf
            if result.status == PhaseStatus.PROCEED:
                self._record(results, self._mk_result(action, ActionStatus.SUCCESS, "executed"))
            else:
                self._record(results, self._not_proceeding(action, result))

    def run(self) -> RunResult:
        ordered = plan_execution(self.actions)
        deps = action_dependencies(ordered)
        for action in ordered:
            action.reset()

        results: Dict[str, ActionResult] = {}
        disabled_feeds: Dict[str, SubFeed] = {}
        for action in ordered:
            if not self._is_enabled(action.id):
                for output_id in action.output_ids:
                    disabled_feeds[output_id] = SubFeed(output_id, is_skipped=True)
                self._record(results, self._mk_result(action, ActionStatus.SKIPPED, "skipped by config"))

        failed: Set[str] = set()
        init_results = dict(results)
        if not self._init_pass(ordered, deps, failed, init_results, dict(disabled_feeds)):
            results.update(init_results)
            return RunResult(actions=results)

        # falhas de init são definitivas; skips de init são reavaliados no exec
        for aid, r in init_results.items():
            if aid in failed:
                results[aid] = r

        feeds = dict(disabled_feeds)
        self._exec_pass(ordered, deps, failed, results, feeds)
        return RunResult(actions=results, sub_feeds=feeds)
