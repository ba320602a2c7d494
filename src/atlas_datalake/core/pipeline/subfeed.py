# src/atlas_datalake/core/pipeline/subfeed.py
"""
SubFeed — mensagem trocada entre Actions ao longo de uma aresta do DAG.

Um SubFeed carrega:
    - o id do data object de origem/destino
    - os valores de partição alvo (vazio = dataset inteiro ou ainda desconhecido)
    - a flag de skip propagada pelo upstream
    - um handle opaco para o dataset em trânsito (ex.: DataFrame)

Invariantes:
    - Um SubFeed é imutável depois de emitido
    - Uma Action receptora produz um novo SubFeed em vez de mutar o recebido
    - Valores de partição não possuem duplicados

Limites explícitos:
    - Não lê nem escreve dados
    - Não inspeciona o conteúdo do handle
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Tuple

from atlas_datalake.core.partitions import PartitionValues, distinct


@dataclass(frozen=True)
class SubFeed:
    data_object_id: str
    partition_values: Tuple[PartitionValues, ...] = ()
    is_skipped: bool = False
    data: Any = field(default=None, compare=False, repr=False)
    is_dag_start: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "partition_values", tuple(distinct(self.partition_values)))

    def with_partition_values(self, partition_values: Iterable[PartitionValues]) -> "SubFeed":
        return replace(self, partition_values=tuple(partition_values))

    def with_data(self, data: Any) -> "SubFeed":
        return replace(self, data=data)

    def to_skipped(self) -> "SubFeed":
        return replace(self, is_skipped=True, data=None)

    def clear_skipped(self) -> "SubFeed":
        return replace(self, is_skipped=False)

    def clear_partition_values(self) -> "SubFeed":
        return replace(self, partition_values=())

    def clear_dag_start(self) -> "SubFeed":
        return replace(self, is_dag_start=False)

    def filter_partition_values(self, keys: Iterable[str]) -> "SubFeed":
        """Projeta os valores de partição nas chaves dadas, descartando projeções vazias."""
        wanted = list(keys)
        projected = [pv.filter_keys(wanted) for pv in self.partition_values]
        return replace(self, partition_values=tuple(pv for pv in projected if not pv.is_empty()))
