"""DataObject em memória (pandas), particionado por colunas do próprio DataFrame.

Usado em testes e em pipelines que trocam dados apenas dentro do processo.
Valores de partição são comparados como texto, como em diretórios hive-style.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import pandas as pd

from atlas_datalake.compute import pandas_engine
from atlas_datalake.core.partitions import PartitionValues

from .base import DataObject


class InMemoryDataObject(DataObject):
    type_name = "memory"

    def __init__(self, id: str, *, data: Optional[pd.DataFrame] = None, **kwargs: Any):
        super().__init__(id, **kwargs)
        self._df: Optional[pd.DataFrame] = data.copy() if data is not None else None

    def has_data(self) -> bool:
        return self._df is not None

    @property
    def data(self) -> Optional[pd.DataFrame]:
        return None if self._df is None else self._df.copy()

    def list_partitions(self) -> List[PartitionValues]:
        if self._df is None or not self.is_partitioned:
            return []
        return pandas_engine.partition_values_of(self._df, self.partitions)

    def _read(self, partition_values: Sequence[PartitionValues]) -> pd.DataFrame:
        if self._df is None:
            return self.schema_frame()
        return pandas_engine.filter_partitions(self._df, partition_values).reset_index(drop=True)

    def _append(self, df: pd.DataFrame) -> None:
        if self._df is None:
            self._df = df.reset_index(drop=True).copy()
        else:
            self._df = pd.concat([self._df, df], ignore_index=True)

    def _overwrite_all(self, df: pd.DataFrame) -> None:
        self._df = df.reset_index(drop=True).copy()

    def _delete_partitions(self, partition_values: Sequence[PartitionValues]) -> None:
        if self._df is None or not partition_values:
            return
        matched = pandas_engine.filter_partitions(self._df, partition_values)
        self._df = self._df.drop(index=matched.index).reset_index(drop=True)
