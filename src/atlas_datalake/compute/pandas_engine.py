"""
Compute engine de referência do Atlas DataLake (pandas).

O core consome este módulo apenas através de operações estreitas:
    - evaluate(df, expressions)                      → métricas
    - evaluate_grouped(df, expressions, partitions)  → métricas por partição
    - predicate(df, expression)                      → máscara booleana por linha
    - filter_partitions(df, partition_values)        → projeção de partições
    - partition_values_of(df, partition_columns)     → partições presentes no dataset

Decisões arquiteturais:
    - Predicados e expressões usam `DataFrame.eval` (engine python)
    - Valores retornados são tipos Python nativos (sem escalares numpy)
    - NaN/NA são normalizados para None
    - Agregações de valor sobre dataset vazio retornam None (semântica SQL);
      contagens retornam 0

Limites explícitos:
    - Não otimiza consultas
    - Não distribui processamento
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np
import pandas as pd

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.partitions import PartitionValues, distinct

from .expressions import AggregateExpression, parse_aggregate


def to_python(value: Any) -> Any:
    """Converte escalares numpy/pandas para tipos nativos; NaN/NA → None."""
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _eval(df: pd.DataFrame, expression: str) -> Any:
    try:
        return df.eval(expression, engine="python")
    except Exception as e:  # noqa: BLE001 - pandas levanta vários tipos
        raise ConfigurationException(
            f"Falha ao avaliar expressão {expression!r}: {e}",
            details={"expression": expression, "columns": [str(c) for c in df.columns]},
        ) from e


def series(df: pd.DataFrame, expression: str) -> pd.Series:
    """Avalia uma coluna ou expressão como Series alinhada ao DataFrame."""
    if expression in df.columns:
        return df[expression]
    result = _eval(df, expression)
    if isinstance(result, pd.Series):
        return result
    return pd.Series([result] * len(df), index=df.index)


def predicate(df: pd.DataFrame, expression: str) -> pd.Series:
    """Máscara booleana por linha; valores nulos contam como False."""
    result = series(df, expression)
    if result.dtype != bool:
        result = result.fillna(False).astype(bool)
    return result


def aggregate(df: pd.DataFrame, expression: AggregateExpression) -> Any:
    func, arg = parse_aggregate(expression.expression)

    if func == "count":
        if arg == "*":
            return int(len(df))
        return int(series(df, arg).notna().sum())
    if func == "count_if":
        return int(predicate(df, arg).sum())
    if func == "count_distinct":
        return int(series(df, arg).nunique(dropna=True))

    values = series(df, arg).dropna()
    if values.empty:
        return None
    if func == "sum":
        return to_python(values.sum())
    if func in ("avg", "mean"):
        return to_python(values.mean())
    if func == "min":
        return to_python(values.min())
    return to_python(values.max())


def evaluate(df: pd.DataFrame, expressions: Iterable[AggregateExpression]) -> Dict[str, Any]:
    """Avalia as expressões sobre o dataset inteiro: nome → valor."""
    return {e.name: aggregate(df, e) for e in expressions}


def evaluate_grouped(
    df: pd.DataFrame,
    expressions: Sequence[AggregateExpression],
    partition_columns: Sequence[str],
) -> Dict[PartitionValues, Dict[str, Any]]:
    """Avalia as expressões agrupando pelas colunas de partição."""
    cols = list(partition_columns)
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ConfigurationException(
            f"Colunas de partição ausentes no dataset: {missing}",
            details={"partition_columns": cols, "columns": [str(c) for c in df.columns]},
        )

    out: Dict[PartitionValues, Dict[str, Any]] = {}
    for keys, group in df.groupby(cols, sort=True, dropna=False):
        if not isinstance(keys, tuple):
            keys = (keys,)
        pv = PartitionValues.of(dict(zip(cols, keys)))
        out[pv] = evaluate(group, expressions)
    return out


def filter_partitions(df: pd.DataFrame, partition_values: Sequence[PartitionValues]) -> pd.DataFrame:
    """Mantém apenas linhas pertencentes a algum dos valores de partição (vazio = tudo)."""
    if not partition_values:
        return df
    mask = pd.Series(False, index=df.index)
    for pv in partition_values:
        pv_mask = pd.Series(True, index=df.index)
        for key in pv:
            pv_mask &= df[key].astype(str) == pv[key]
        mask |= pv_mask
    return df[mask]


def partition_values_of(df: pd.DataFrame, partition_columns: Sequence[str]) -> List[PartitionValues]:
    """Partições distintas presentes no dataset, em ordem de primeira ocorrência."""
    cols = list(partition_columns)
    if not cols or df.empty:
        return []
    rows = df[cols].drop_duplicates().astype(str).to_dict(orient="records")
    return distinct(PartitionValues.of(r) for r in rows)


def empty_frame(schema: Dict[str, str]) -> pd.DataFrame:
    """DataFrame vazio com as colunas e dtypes declarados."""
    return pd.DataFrame({col: pd.Series(dtype=dtype) for col, dtype in schema.items()})
