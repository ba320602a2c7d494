"""
DataObject — fonte/destino nomeado de dados do Atlas DataLake.

Um DataObject representa um dataset persistido (tabela em memória,
diretório de arquivos, ...) com:
    - id estável
    - colunas de partição (ordem significativa)
    - schema opcional (coluna → dtype) para dry-run sem dados
    - constraints e expectations avaliadas após cada escrita
    - save mode padrão

Responsabilidades desta classe base:
    - Validar valores de partição solicitados contra as colunas de partição
    - Resolver especificações parciais de partição para partições concretas
    - Aplicar a semântica de save mode (overwrite, append, overwrite_optimized)
    - Proteger contra overwrite de todas as partições sem allow-list

Subclasses implementam apenas as primitivas físicas:
    `_read`, `_append`, `_overwrite_all`, `_delete_partitions`,
    `list_partitions`, `has_data`.

Decisões arquiteturais:
    - Na fase init, `read` nunca materializa dados: retorna um DataFrame vazio
      com o schema (declarado ou inferido dos dados existentes)
    - Chaves de partição inexistentes nos metadados são erro de configuração
    - Na fase exec, uma especificação que é prefixo das colunas de partição
      precisa corresponder a ao menos uma partição existente
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from atlas_datalake.compute import pandas_engine
from atlas_datalake.core.exceptions import (
    ConfigurationException,
    PartitionNotFoundException,
    ProcessingLogicException,
)
from atlas_datalake.core.partitions import (
    PartitionValues,
    check_wrong_partition_values,
    distinct,
)
from atlas_datalake.core.pipeline.context import RunContext


class SaveMode(str, Enum):
    """
    Modos de escrita.

    - OVERWRITE: com valores de partição, substitui essas partições; sem valores
      em objeto particionado, substitui apenas as partições presentes nos dados
    - APPEND: acrescenta sem remover nada
    - OVERWRITE_OPTIMIZED: como OVERWRITE, mas sem valores de partição em objeto
      particionado substitui o objeto inteiro e exige allow-list global
    """
    OVERWRITE = "overwrite"
    APPEND = "append"
    OVERWRITE_OPTIMIZED = "overwrite_optimized"


class DataObject:
    """Base para data objects particionáveis baseados em pandas."""

    type_name = "abstract"

    def __init__(
        self,
        id: str,
        *,
        partitions: Optional[Sequence[str]] = None,
        schema: Optional[Dict[str, str]] = None,
        constraints: Optional[Sequence[Any]] = None,
        expectations: Optional[Sequence[Any]] = None,
        save_mode: SaveMode = SaveMode.OVERWRITE,
    ):
        if not isinstance(id, str) or not id.strip():
            raise ConfigurationException("data object id must be a non-empty string")
        self.id = id
        self.partitions: List[str] = list(partitions or [])
        self.schema: Optional[Dict[str, str]] = dict(schema) if schema else None
        self.constraints = list(constraints or [])
        self.expectations = list(expectations or [])
        self.save_mode = SaveMode(save_mode)

        if self.schema is not None:
            missing = [c for c in self.partitions if c not in self.schema]
            if missing:
                raise ConfigurationException(
                    f"({self.id}) colunas de partição ausentes no schema: {missing}",
                    details={"data_object_id": self.id, "partitions": self.partitions},
                )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, partitions={self.partitions!r})"

    @property
    def is_partitioned(self) -> bool:
        return bool(self.partitions)

    # ------------------------------------------------------------------
    # Primitivas físicas (subclasses)
    # ------------------------------------------------------------------
    def has_data(self) -> bool:
        raise NotImplementedError

    def list_partitions(self) -> List[PartitionValues]:
        raise NotImplementedError

    def _read(self, partition_values: Sequence[PartitionValues]) -> pd.DataFrame:
        raise NotImplementedError

    def _append(self, df: pd.DataFrame) -> None:
        raise NotImplementedError

    def _overwrite_all(self, df: pd.DataFrame) -> None:
        raise NotImplementedError

    def _delete_partitions(self, partition_values: Sequence[PartitionValues]) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Partições
    # ------------------------------------------------------------------
    def validate_partition_values(self, partition_values: Sequence[PartitionValues]) -> None:
        wrong = check_wrong_partition_values(partition_values, self.partitions)
        if wrong:
            raise ConfigurationException(
                f"({self.id}) chaves de partição {wrong} não são colunas de partição {self.partitions}",
                details={"data_object_id": self.id, "wrong_keys": wrong, "partitions": self.partitions},
            )

    def check_partitions_exist(self, partition_values: Sequence[PartitionValues]) -> None:
        existing = self.list_partitions()
        for pv in partition_values:
            if not pv.is_init_of(self.partitions):
                continue
            if not any(pv.is_included_in(e) for e in existing):
                raise PartitionNotFoundException(
                    f"({self.id}) partição {pv} não existe",
                    details={"data_object_id": self.id, "partition_values": pv.to_dict()},
                )

    def resolve_partition_values(self, partition_values: Sequence[PartitionValues]) -> List[PartitionValues]:
        """Resolve especificações (possivelmente parciais) para partições concretas existentes."""
        if not partition_values:
            return []
        existing = self.list_partitions()
        resolved: List[PartitionValues] = []
        for pv in partition_values:
            if set(self.partitions) == pv.keys():
                resolved.append(pv)
            else:
                resolved.extend(e for e in existing if pv.is_included_in(e))
        return distinct(resolved)

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------
    def schema_frame(self) -> pd.DataFrame:
        """DataFrame vazio com o schema do objeto (declarado ou inferido)."""
        if self.schema is not None:
            return pandas_engine.empty_frame(self.schema)
        if self.has_data():
            return self._read([]).head(0)
        raise ConfigurationException(
            f"({self.id}) schema indisponível: data object sem dados e sem schema declarado",
            details={"data_object_id": self.id},
            hint="Declare `schema` no data object para permitir o dry-run (init) sem dados.",
        )

    def read(self, ctx: RunContext, partition_values: Sequence[PartitionValues] = ()) -> pd.DataFrame:
        pvs = list(partition_values)
        self.validate_partition_values(pvs)
        if not ctx.is_exec:
            return self.schema_frame()
        self.check_partitions_exist(pvs)
        if pvs and not self.resolve_partition_values(pvs):
            return self.schema_frame()
        return self._read(self.resolve_partition_values(pvs))

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------
    def write(
        self,
        ctx: RunContext,
        df: pd.DataFrame,
        partition_values: Sequence[PartitionValues] = (),
        save_mode: Optional[SaveMode] = None,
        action_id: Optional[str] = None,
    ) -> None:
        mode = SaveMode(save_mode) if save_mode is not None else self.save_mode
        pvs = list(partition_values)
        self.validate_partition_values(pvs)

        missing = [c for c in self.partitions if c not in df.columns]
        if missing:
            raise ConfigurationException(
                f"({self.id}) colunas de partição ausentes no dataset escrito: {missing}",
                details={"data_object_id": self.id, "columns": [str(c) for c in df.columns]},
            )

        if mode == SaveMode.APPEND:
            self._append(df)
        elif not self.is_partitioned:
            self._overwrite_all(df)
        elif pvs:
            self._delete_partitions(self.resolve_partition_values(pvs))
            self._append(df)
        elif mode == SaveMode.OVERWRITE_OPTIMIZED:
            if not ctx.allow_overwrite_all_partitions(self.id):
                raise ProcessingLogicException(
                    f"({self.id}) overwrite_optimized sem valores de partição apagaria todas as partições",
                    details={"data_object_id": self.id, "save_mode": mode.value},
                    hint=(
                        "Informe valores de partição ou inclua o data object em "
                        "global.allow_overwrite_all_partitions_without_partition_values."
                    ),
                    decision_required=True,
                )
            self._overwrite_all(df)
        else:
            # overwrite dinâmico: apenas as partições presentes nos dados
            self._delete_partitions(pandas_engine.partition_values_of(df, self.partitions))
            self._append(df)

        ctx.log(
            action_id=action_id or self.id,
            level="info",
            message="data object written",
            data_object_id=self.id,
            save_mode=mode.value,
            rows=int(len(df)),
            partition_values=[pv.to_dict() for pv in pvs],
        )
