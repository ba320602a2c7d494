"""
Transformers embutidos do Atlas DataLake.

- FunctionTransformer: lógica customizada muitos:muitos
- FunctionDfTransformer: lógica customizada 1:1
- FilterTransformer: filtra linhas por predicado
- AdditionalColumnsTransformer: adiciona colunas literais (templates) ou derivadas
- SelectColumnsTransformer: whitelist ou blacklist de colunas

Lógica customizada é uma chave registrada em `CUSTOM_LOGIC` ou um callable:
    many:many → logic(tctx, inputs, options) -> {nome: DataFrame}
    1:1       → logic(tctx, df, options) -> DataFrame
    partições → partition_values_logic(tctx, options, partition_values) -> {pv_in: pv_out} | None
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pandas as pd

from atlas_datalake.compute import pandas_engine
from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.pipeline.registry import resolve_logic

from .base import DfTransformer, Transformer, render_template


Logic = Union[str, Callable[..., Any]]


class _PartitionLogicMixin:
    partition_values_logic: Optional[Callable[..., Any]] = None

    def transform_partition_values(self, tctx, options, partition_values):
        if self.partition_values_logic is None:
            return None
        return self.partition_values_logic(tctx, options, list(partition_values))


class FunctionTransformer(_PartitionLogicMixin, Transformer):
    type_name = "function"

    def __init__(
        self,
        *,
        logic: Logic,
        output_ids: Optional[Sequence[str]] = None,
        partition_values_logic: Optional[Logic] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.logic = resolve_logic(logic)
        self.output_ids = list(output_ids or [])
        self.partition_values_logic = resolve_logic(partition_values_logic) if partition_values_logic else None

    def declared_output_ids(self, main_output_id: str) -> List[str]:
        return self.output_ids or [main_output_id]

    def transform(self, tctx, inputs, options):
        return self.logic(tctx, inputs, options)


class FunctionDfTransformer(_PartitionLogicMixin, DfTransformer):
    type_name = "function_df"

    def __init__(self, *, logic: Logic, partition_values_logic: Optional[Logic] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.logic = resolve_logic(logic)
        self.partition_values_logic = resolve_logic(partition_values_logic) if partition_values_logic else None

    def transform_df(self, tctx, df, options):
        return self.logic(tctx, df, options)


class FilterTransformer(DfTransformer):
    type_name = "filter"

    def __init__(self, *, filter_clause: str, **kwargs: Any):
        super().__init__(**kwargs)
        if not isinstance(filter_clause, str) or not filter_clause.strip():
            raise ConfigurationException("filter_clause must be a non-empty string")
        self.filter_clause = filter_clause

    def transform_df(self, tctx, df, options):
        return df[pandas_engine.predicate(df, self.filter_clause)].reset_index(drop=True)


class AdditionalColumnsTransformer(DfTransformer):
    type_name = "additional_columns"

    def __init__(
        self,
        *,
        additional_columns: Optional[Dict[str, str]] = None,
        additional_derived_columns: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.additional_columns = dict(additional_columns or {})
        self.additional_derived_columns = dict(additional_derived_columns or {})

    def transform_df(self, tctx, df, options):
        out = df.copy()
        values = {**(tctx.runtime_data or {}), **{k: str(v) for k, v in options.items()}}
        for column, template in self.additional_columns.items():
            out[column] = render_template(template, values, owner=tctx.action_id)
        for column, expression in self.additional_derived_columns.items():
            out[column] = pandas_engine.series(out, expression)
        return out


class SelectColumnsTransformer(DfTransformer):
    type_name = "select_columns"

    def __init__(
        self,
        *,
        column_whitelist: Optional[Sequence[str]] = None,
        column_blacklist: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        if (column_whitelist is None) == (column_blacklist is None):
            raise ConfigurationException("Informe exatamente um entre column_whitelist e column_blacklist")
        self.column_whitelist = list(column_whitelist) if column_whitelist is not None else None
        self.column_blacklist = list(column_blacklist) if column_blacklist is not None else None

    def transform_df(self, tctx, df, options):
        if self.column_whitelist is not None:
            missing = [c for c in self.column_whitelist if c not in df.columns]
            if missing:
                raise ConfigurationException(
                    f"({tctx.action_id}) colunas inexistentes na whitelist: {missing}",
                    details={"action_id": tctx.action_id, "columns": [str(c) for c in df.columns]},
                )
            return df[self.column_whitelist]
        return df.drop(columns=[c for c in self.column_blacklist if c in df.columns])
