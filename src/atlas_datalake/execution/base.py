"""
Execution Mode — contrato e tipos de resultado.

Um execution mode calcula o trabalho incremental de uma Action nesta run,
a partir do estado atual da entrada principal e da saída principal.

Contrato:
    apply(...) → ExecutionModeResult | NoDataToProcess | None
    post_exec(...) → efeitos colaterais após escrita bem-sucedida (idempotente)
    reset(...) → descarta estado em cache entre invocações independentes

Semântica dos retornos de `apply`:
    - ExecutionModeResult: partições/arquivos a processar + options para transformers
    - NoDataToProcess: nada a fazer; sinal tipado (não é erro)
    - None: o modo não restringe nada; o SubFeed é processado como recebido

Invariantes:
    - `apply` é seguro na fase init: apenas inspeção de metadados (listagem)
    - O estado mutável vive em um `ExecutionModeState` por Action, nunca no modo
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from atlas_datalake.core.partitions import PartitionValues
from atlas_datalake.core.pipeline.context import RunContext
from atlas_datalake.core.pipeline.subfeed import SubFeed


@dataclass(frozen=True)
class ExecutionModeResult:
    input_partition_values: Tuple[PartitionValues, ...] = ()
    output_partition_values: Optional[Tuple[PartitionValues, ...]] = None
    file_refs: Optional[Tuple[Any, ...]] = None
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NoDataToProcess:
    reason: str


ApplyOutcome = Optional[Union[ExecutionModeResult, NoDataToProcess]]
PartitionValuesTransform = Callable[[Sequence[PartitionValues]], Dict[PartitionValues, PartitionValues]]


class ExecutionModeState:
    """
    Célula de estado de execution mode, privada de uma Action.

    O setup preguiçoso é protegido por um único lock: no máximo um setup
    concorrente por instância. Disciplina de escrita única é garantida pelo
    Engine (uma execução em voo por Action).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, Any] = {}

    def get_or_setup(self, key: str, factory: Callable[[], Any]) -> Any:
        with self._lock:
            if key not in self._values:
                self._values[key] = factory()
            return self._values[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def pop(self, key: str, default: Any = None) -> Any:
        return self._values.pop(key, default)

    def clear(self) -> None:
        self._values.clear()

    def is_empty(self) -> bool:
        return not self._values


class ExecutionMode:
    """Base dos execution modes. Subclasses implementam `apply`."""

    type_name = "abstract"

    def apply(
        self,
        *,
        ctx: RunContext,
        action_id: str,
        main_input: Any,
        main_output: Any,
        sub_feed: SubFeed,
        state: ExecutionModeState,
        partition_values_transform: Optional[PartitionValuesTransform] = None,
    ) -> ApplyOutcome:
        raise NotImplementedError

    def post_exec(
        self,
        *,
        ctx: RunContext,
        action_id: str,
        main_input: Any,
        main_output: Any,
        state: ExecutionModeState,
    ) -> None:
        state.clear()

    def reset(self, *, action_id: str, main_input: Any, state: ExecutionModeState) -> None:
        state.clear()
