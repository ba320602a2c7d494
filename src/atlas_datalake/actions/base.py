"""
Contrato canônico de Action do Atlas DataLake.

Uma Action é um nó do DAG: lê data objects de entrada, aplica uma cadeia de
transformers e escreve data objects de saída. O Engine conduz cada Action
pelas fases, nesta ordem:

    pre_init → init → pre_exec → exec → post_exec

Princípios fundamentais:
    - Actions não conhecem o Engine nem o planner
    - Comunicação entre Actions acontece apenas por SubFeeds
    - Skip e no-data são resultados tipados (PhaseResult), não exceções
    - Conformidade é garantida por duck typing (@runtime_checkable)

Invariantes:
    - `id` é único no pipeline
    - init e exec compartilham o mesmo caminho lógico
    - post_exec é idempotente e tolera saídas puladas

Limites explícitos:
    - Não decide ordem de execução
    - Não registra eventos no manifest
    - Não define política de fail-fast
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, Sequence, runtime_checkable

from atlas_datalake.core.pipeline.context import RunContext
from atlas_datalake.core.pipeline.subfeed import SubFeed
from atlas_datalake.core.pipeline.types import ActionState, PhaseResult


@runtime_checkable
class Action(Protocol):
    id: str
    state: ActionState

    @property
    def input_ids(self) -> List[str]: ...

    @property
    def output_ids(self) -> List[str]: ...

    @property
    def recursive_input_ids(self) -> List[str]: ...

    def pre_init(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult: ...

    def init(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult: ...

    def pre_exec(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult: ...

    def exec(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult: ...

    def post_exec(self, ctx: RunContext, input_sub_feeds: Sequence[SubFeed], output_sub_feeds: Sequence[SubFeed]) -> None: ...

    def reset(self) -> None: ...

    def get_runtime_metrics(self) -> Dict[str, Dict[str, Any]]: ...
