# tests/fixtures/transformers.py
"""
Lógica customizada usada pelos testes de transformers, actions e e2e.

Cada função segue as assinaturas esperadas pelos transformers embutidos:
    many:many → logic(tctx, inputs, options) -> {nome: DataFrame}
    1:1       → logic(tctx, df, options) -> DataFrame
    partições → partition_values_logic(tctx, options, partition_values) -> {pv_in: pv_out}
"""

import pandas as pd

from atlas_datalake.core.partitions import PartitionValues


def union_sources_to_int1(tctx, inputs, options):
    """Concatena src1 e src2 em `int1`, marcando a origem de cada linha."""
    frames = []
    for source in ("src1", "src2"):
        df = inputs[source].copy()
        df["origin"] = source
        frames.append(df)
    return {"int1": pd.concat(frames, ignore_index=True)}


def enrich_int1_to_tgt1(tctx, inputs, options):
    """Lê apenas `int1` e adiciona uma coluna derivada."""
    df = inputs["int1"].copy()
    df["value_x10"] = df["value"] * 10
    return {"tgt1": df}


def double_rating(tctx, df, options):
    out = df.copy()
    out["rating"] = out["rating"] * int(options.get("factor", 2))
    return out


def rename_key(old: str, new: str):
    """Fábrica de mapeamento de partição que troca a chave `old` por `new`."""

    def _logic(tctx, options, partition_values):
        out = {}
        for pv in partition_values:
            if old in pv.keys():
                values = pv.to_dict()
                values[new] = values.pop(old)
                out[pv] = PartitionValues.of(values)
        return out

    return _logic


def day_to_month(tctx, options, partition_values):
    """Mapeia `dt=YYYYMMDD` para `month=YYYYMM`."""
    return {pv: PartitionValues.of(month=pv["dt"][:6]) for pv in partition_values if "dt" in pv.keys()}


def add_month_column(tctx, df, options):
    out = df.copy()
    out["month"] = out["dt"].astype(str).str[:6]
    return out.drop(columns=["dt"])
