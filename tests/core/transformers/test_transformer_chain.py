# tests/core/transformers/test_transformer_chain.py
"""
Testes da TransformerChain.

Os testes asseguram que:
- cada estágio enxerga as entradas originais e as saídas anteriores
- saídas não cobertas pela cadeia falham na validação (construção)
- o mapeamento de valores de partição é a composição dos estágios
- options efetivas respeitam a precedência modo < estáticas < runtime
"""

import pandas as pd
import pytest

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.partitions import PartitionValues
from atlas_datalake.core.pipeline.types import ExecutionPhase
from atlas_datalake.transformers import (
    FilterTransformer,
    FunctionDfTransformer,
    FunctionTransformer,
    TransformContext,
    TransformerChain,
)

from tests.fixtures.transformers import enrich_int1_to_tgt1, rename_key, union_sources_to_int1


def _tctx(**kw):
    base = dict(
        action_id="a1",
        phase=ExecutionPhase.EXEC,
        partition_values=(),
        main_input_id="src1",
        main_output_id="tgt1",
        runtime_data={"run_id": "run-test-001", "action_id": "a1", "phase": "exec", "run_started_at": "x"},
    )
    base.update(kw)
    return TransformContext(**base)


def _validate(chain, outputs=("tgt1",)):
    chain.validate(
        action_id="a1",
        input_ids=["src1", "src2"],
        output_ids=list(outputs),
        main_input_id="src1",
        main_output_id="tgt1",
    )


def test_later_stage_reads_earlier_output():
    chain = TransformerChain(
        [
            FunctionTransformer(logic=union_sources_to_int1, output_ids=["int1"]),
            FunctionTransformer(logic=enrich_int1_to_tgt1, output_ids=["tgt1"]),
        ]
    )
    _validate(chain)
    inputs = {"src1": pd.DataFrame({"value": [1]}), "src2": pd.DataFrame({"value": [2]})}

    out = chain.apply(_tctx(), inputs)

    assert set(out) == {"int1", "tgt1"}
    assert out["tgt1"]["origin"].tolist() == ["src1", "src2"]
    assert out["tgt1"]["value_x10"].tolist() == [10, 20]


def test_output_not_produced_fails_validation():
    chain = TransformerChain([FunctionTransformer(logic=union_sources_to_int1, output_ids=["int1"])])

    with pytest.raises(ConfigurationException) as exc:
        _validate(chain)
    assert exc.value.details["produced"] == ["int1"]
    assert exc.value.hint


def test_df_transformer_source_must_exist():
    chain = TransformerChain([FilterTransformer(filter_clause="value > 0", input_id="nope")])

    with pytest.raises(ConfigurationException):
        _validate(chain)


def test_df_transformers_follow_current_dataset():
    chain = TransformerChain(
        [
            FilterTransformer(filter_clause="value > 1", output_id="filtered"),
            FunctionDfTransformer(logic=lambda tctx, df, o: df.assign(value=df["value"] + 100)),
        ]
    )
    _validate(chain)

    out = chain.apply(_tctx(), {"src1": pd.DataFrame({"value": [1, 2, 3]}), "src2": pd.DataFrame()})

    assert out["filtered"]["value"].tolist() == [2, 3]
    assert out["tgt1"]["value"].tolist() == [102, 103]


def test_copy_current_to_main_output():
    chain = TransformerChain([], copy_current_to_main_output=True)
    _validate(chain)
    src = pd.DataFrame({"value": [1]})

    out = chain.apply(_tctx(), {"src1": src, "src2": pd.DataFrame()})

    assert out["tgt1"] is src


def test_stage_must_return_declared_outputs():
    chain = TransformerChain([FunctionTransformer(logic=lambda tctx, inputs, o: {"other": inputs["src1"]})])

    with pytest.raises(ConfigurationException):
        chain.apply(_tctx(), {"src1": pd.DataFrame()})

    bad_type = TransformerChain([FunctionTransformer(logic=lambda tctx, inputs, o: inputs["src1"])])
    with pytest.raises(ConfigurationException):
        bad_type.apply(_tctx(), {"src1": pd.DataFrame()})


def test_three_stage_partition_mapping_composes():
    identity = FunctionDfTransformer(logic=lambda tctx, df, o: df)
    chain = TransformerChain(
        [
            FunctionDfTransformer(logic=lambda tctx, df, o: df, partition_values_logic=rename_key("a", "b")),
            identity,
            FunctionDfTransformer(logic=lambda tctx, df, o: df, partition_values_logic=rename_key("b", "c")),
        ]
    )
    pvs = [PartitionValues.of(a="1"), PartitionValues.of(a="2"), PartitionValues.of(z="9")]

    mapping = chain.partition_values_mapping(_tctx(), pvs)

    assert mapping == {
        PartitionValues.of(a="1"): PartitionValues.of(c="1"),
        PartitionValues.of(a="2"): PartitionValues.of(c="2"),
        PartitionValues.of(z="9"): PartitionValues.of(z="9"),
    }


def test_options_precedence_and_runtime_templates():
    seen = {}

    def capture(tctx, df, options):
        seen.update(options)
        return df

    t = FunctionDfTransformer(
        logic=capture,
        options={"a": "static", "b": "static"},
        runtime_options={"b": "{run_id}/{action_id}"},
    )
    chain = TransformerChain([t])

    chain.apply(_tctx(), {"src1": pd.DataFrame()}, mode_options={"a": "mode", "m": "mode"})

    assert seen == {"a": "static", "b": "run-test-001/a1", "m": "mode"}


def test_runtime_option_with_unknown_placeholder():
    t = FunctionDfTransformer(logic=lambda tctx, df, o: df, runtime_options={"x": "{nope}"})

    with pytest.raises(ConfigurationException):
        TransformerChain([t]).apply(_tctx(), {"src1": pd.DataFrame()})
