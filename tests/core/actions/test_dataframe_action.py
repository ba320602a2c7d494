# tests/core/actions/test_dataframe_action.py
"""
Testes da DataFrameAction (máquina de estados de fases).

Os testes asseguram que:
- erros de construção (saídas não cobertas, ids inválidos) são de configuração
- uma entrada pulada, fora de input_ids_to_ignore_filter, resulta em skip
  em pre_init e pre_exec, e post_exec aceita a saída pulada
- init não escreve e emite os mesmos valores de partição que exec
- entradas recursivas só são lidas após a primeira escrita
- os estados avançam created → initialized → executed → completed
"""

import pandas as pd
import pytest

from atlas_datalake.actions import Action, CopyAction, DataFrameAction
from atlas_datalake.core.exceptions import ConfigurationException, ExpectationValidationException
from atlas_datalake.core.partitions import PartitionValues
from atlas_datalake.core.pipeline.subfeed import SubFeed
from atlas_datalake.core.pipeline.types import ActionState, PhaseStatus
from atlas_datalake.dataobjects import InMemoryDataObject
from atlas_datalake.execution import PartitionDiffMode
from atlas_datalake.expectations import CountExpectation
from atlas_datalake.transformers import FunctionDfTransformer, FunctionTransformer

from tests.fixtures.transformers import add_month_column, day_to_month, double_rating


def _mem(id, df=None, partitions=None, schema=None, **kw):
    return InMemoryDataObject(id, data=df, partitions=partitions, schema=schema, **kw)


def _feeds(*ids, **kw):
    return [SubFeed(i, **kw) for i in ids]


def test_satisfies_action_protocol(ratings_source, ratings_target):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target)

    assert isinstance(action, Action)
    assert action.state == ActionState.CREATED


def test_uncovered_output_fails_at_construction(ratings_source, ratings_target):
    with pytest.raises(ConfigurationException):
        DataFrameAction(
            "a1",
            inputs=[ratings_source],
            outputs=[ratings_target],
            transformers=[FunctionTransformer(logic=lambda t, i, o: i, output_ids=["other"])],
        )


@pytest.mark.parametrize(
    "kwargs",
    [
        {"main_input_id": "nope"},
        {"main_output_id": "nope"},
        {"recursive_input_ids": ["src_ratings"]},
        {"input_ids_to_ignore_filter": ["nope"]},
        {"execution_condition": "len(x)"},
    ],
)
def test_invalid_construction(ratings_source, ratings_target, kwargs):
    with pytest.raises(ConfigurationException):
        CopyAction("copy1", input=ratings_source, output=ratings_target, **kwargs)


def test_duplicate_inputs_rejected(ratings_source, ratings_target):
    with pytest.raises(ConfigurationException):
        DataFrameAction("a1", inputs=[ratings_source, ratings_source], outputs=[ratings_target])


def test_skip_propagation(init_ctx, exec_ctx, ratings_source, ratings_target):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target)
    skipped = _feeds("src_ratings", is_skipped=True)

    pre_init = action.pre_init(init_ctx, skipped)
    pre_exec = action.pre_exec(exec_ctx, skipped)

    for result in (pre_init, pre_exec):
        assert result.status == PhaseStatus.SKIP
        assert result.sub_feed("tgt_ratings").is_skipped
    action.post_exec(exec_ctx, skipped, list(pre_exec.sub_feeds))
    assert not ratings_target.has_data()
    assert action.state == ActionState.COMPLETED


def test_ignored_input_does_not_cause_skip(exec_ctx, ratings_source, ratings_target):
    action = CopyAction(
        "copy1", input=ratings_source, output=ratings_target, input_ids_to_ignore_filter=["src_ratings"]
    )

    assert action.pre_exec(exec_ctx, _feeds("src_ratings", is_skipped=True)).is_proceed


def test_execution_condition_overrides_default(exec_ctx, ratings_source, ratings_target):
    action = CopyAction(
        "copy1",
        input=ratings_source,
        output=ratings_target,
        execution_condition={"expression": "src_ratings.is_dag_start", "description": "somente início"},
    )

    assert action.pre_exec(exec_ctx, _feeds("src_ratings", is_dag_start=True)).is_proceed
    result = action.pre_exec(exec_ctx, _feeds("src_ratings"))
    assert result.status == PhaseStatus.SKIP
    assert "src_ratings.is_dag_start" in result.reason


def test_missing_sub_feed_is_configuration_error(exec_ctx, ratings_source, ratings_target):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target)

    with pytest.raises(ConfigurationException):
        action.pre_exec(exec_ctx, [])


def test_init_exec_partition_parity_and_no_write_in_init(init_ctx, exec_ctx, ratings_source, ratings_target):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target, execution_mode=PartitionDiffMode())
    feeds = _feeds("src_ratings", is_dag_start=True)

    init_result = action.init(init_ctx, feeds)
    assert not ratings_target.has_data()
    assert action.state == ActionState.INITIALIZED

    exec_result = action.exec(exec_ctx, feeds)
    assert action.state == ActionState.EXECUTED

    init_sf = init_result.sub_feed("tgt_ratings")
    exec_sf = exec_result.sub_feed("tgt_ratings")
    assert init_sf.partition_values == exec_sf.partition_values
    assert set(init_sf.partition_values) == {PartitionValues.of(dt="20260101"), PartitionValues.of(dt="20260102")}
    assert init_sf.data.empty
    assert len(exec_sf.data) == 5
    assert len(ratings_target.data) == 5


def test_partition_diff_no_data_on_second_run(exec_ctx, ratings_source, ratings_target):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target, execution_mode=PartitionDiffMode())
    feeds = _feeds("src_ratings", is_dag_start=True)
    action.exec(exec_ctx, feeds)
    action.post_exec(exec_ctx, feeds, [])
    action.reset()

    result = action.exec(exec_ctx, feeds)

    assert result.status == PhaseStatus.NO_DATA
    assert result.sub_feed("tgt_ratings").is_skipped


def test_runtime_metrics_after_exec(exec_ctx, ratings_source):
    target = _mem(
        "tgt_ratings",
        partitions=["dt"],
        expectations=[CountExpectation(name="cnt", scope="job_partition", expectation="> 0")],
    )
    action = CopyAction("copy1", input=ratings_source, output=target, execution_mode=PartitionDiffMode())

    action.exec(exec_ctx, _feeds("src_ratings", is_dag_start=True))

    assert action.get_runtime_metrics() == {"tgt_ratings": {"count": 5, "cnt#20260101": 2, "cnt#20260102": 3}}
    action.reset()
    assert action.get_runtime_metrics() == {}
    assert action.state == ActionState.CREATED


def test_validation_failure_propagates(exec_ctx, ratings_source):
    target = _mem("tgt_ratings", partitions=["dt"], expectations=[CountExpectation(name="cnt", expectation="> 10")])
    action = CopyAction("copy1", input=ratings_source, output=target)

    with pytest.raises(ExpectationValidationException):
        action.exec(exec_ctx, _feeds("src_ratings", is_dag_start=True))


def test_validation_reports_failures_of_all_outputs(exec_ctx, ratings_source):
    t1 = _mem("t1", expectations=[CountExpectation(name="c1", scope="all", expectation="> 10")])
    t2 = _mem("t2", expectations=[CountExpectation(name="c2", scope="all", expectation="> 10")])

    def split(tctx, inputs, options):
        df = inputs["src_ratings"].head(2)
        return {"t1": df, "t2": df}

    action = DataFrameAction(
        "split",
        inputs=[ratings_source],
        outputs=[t1, t2],
        transformers=[FunctionTransformer(logic=split, output_ids=["t1", "t2"])],
    )

    with pytest.raises(ExpectationValidationException) as exc:
        action.exec(exec_ctx, _feeds("src_ratings", is_dag_start=True))

    assert exc.value.failures == [
        "Expectation 'c1' failed with count:2 expectation:> 10",
        "Expectation 'c2' failed with count:2 expectation:> 10",
    ]
    assert exc.value.details["data_object_ids"] == ["t1", "t2"]
    assert len(t2.data) == 2
    assert action.get_runtime_metrics() == {"t1": {"count": 2, "c1": 2}, "t2": {"count": 2, "c2": 2}}


def test_upstream_data_is_used_and_filtered(exec_ctx, ratings_source, ratings_target, ratings_df):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target)
    upstream = SubFeed("src_ratings", partition_values=(PartitionValues.of(dt="20260101"),), data=ratings_df)

    result = action.exec(exec_ctx, [upstream])

    assert result.sub_feed("tgt_ratings").partition_values == (PartitionValues.of(dt="20260101"),)
    assert ratings_target.data["user"].tolist() == ["a", "b"]


def test_partition_mapping_drives_output_partition_values(exec_ctx, ratings_source):
    target = _mem("monthly", partitions=["month"])
    action = CopyAction(
        "to_month",
        input=ratings_source,
        output=target,
        transformers=[FunctionDfTransformer(logic=add_month_column, partition_values_logic=day_to_month)],
    )
    upstream = SubFeed(
        "src_ratings",
        partition_values=(PartitionValues.of(dt="20260101"), PartitionValues.of(dt="20260102")),
    )

    result = action.exec(exec_ctx, [upstream])

    assert result.sub_feed("monthly").partition_values == (PartitionValues.of(month="202601"),)
    assert len(target.data) == 5


def test_non_main_inputs_follow_main_partitions_when_possible(exec_ctx, ratings_source, ratings_target):
    users = _mem("users", pd.DataFrame({"user": ["a", "b", "c", "d"], "country": ["BR", "PT", "BR", "BR"]}))
    seen = {}

    def join(tctx, inputs, options):
        seen["users"] = len(inputs["users"])
        merged = inputs["src_ratings"].merge(inputs["users"], on="user")
        return {"tgt_ratings": merged.drop(columns=["country"])}

    action = DataFrameAction(
        "join",
        inputs=[ratings_source, users],
        outputs=[ratings_target],
        transformers=[FunctionTransformer(logic=join)],
        execution_mode=PartitionDiffMode(nb_of_partition_values_per_run=1),
    )

    action.exec(exec_ctx, _feeds("src_ratings", "users", is_dag_start=True))

    assert seen["users"] == 4
    assert ratings_target.data["dt"].unique().tolist() == ["20260101"]


def test_recursive_input_read_only_after_first_write(exec_ctx, ratings_source):
    target = _mem("totals", partitions=None)
    sizes = []

    def accumulate(tctx, inputs, options):
        sizes.append(len(inputs["totals"]) if "totals" in inputs else None)
        current = inputs["src_ratings"][["user", "rating"]]
        if "totals" in inputs:
            current = pd.concat([inputs["totals"], current], ignore_index=True)
        return {"totals": current}

    action = DataFrameAction(
        "acc",
        inputs=[ratings_source],
        outputs=[target],
        transformers=[FunctionTransformer(logic=accumulate)],
        recursive_input_ids=["totals"],
    )
    feeds = _feeds("src_ratings", is_dag_start=True)

    action.exec(exec_ctx, feeds)
    action.exec(exec_ctx, feeds)

    assert sizes == [None, 5]
    assert len(target.data) == 10
    assert action.recursive_input_ids == ["totals"]


def test_forced_save_mode(exec_ctx, ratings_source, ratings_target):
    action = CopyAction("copy1", input=ratings_source, output=ratings_target, save_mode="append")
    feeds = _feeds("src_ratings", is_dag_start=True)

    action.exec(exec_ctx, feeds)
    action.exec(exec_ctx, feeds)

    assert len(ratings_target.data) == 10


def test_transformer_options_in_action(exec_ctx, ratings_source, ratings_target):
    action = CopyAction(
        "copy1",
        input=ratings_source,
        output=ratings_target,
        transformers=[FunctionDfTransformer(logic=double_rating, options={"factor": 10})],
    )

    action.exec(exec_ctx, _feeds("src_ratings", is_dag_start=True))

    assert sorted(ratings_target.data["rating"].tolist()) == [10, 20, 30, 40, 50]
