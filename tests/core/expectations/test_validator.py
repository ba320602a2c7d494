# tests/core/expectations/test_validator.py
"""
Testes do ExpectationValidator (constraints + expectations pós-escrita).

Os testes asseguram que:
- métricas JobPartition são reportadas por partição, sem agregado total
- a métrica "count" de Job é sempre calculada
- métricas internas nunca são reportadas
- falhas Warn viram warnings; falhas Error são agregadas em uma exceção
- constraints falhas resultam em ConstraintValidationException
"""

import pandas as pd
import pytest

from atlas_datalake.core.exceptions import ConstraintValidationException, ExpectationValidationException
from atlas_datalake.core.partitions import PartitionValues
from atlas_datalake.dataobjects import InMemoryDataObject
from atlas_datalake.expectations import (
    AggregateExpectation,
    AvgCountPerPartitionExpectation,
    Constraint,
    CountExpectation,
    ExpectationValidator,
    FractionExpectation,
)


def _written(exec_ctx, df, **kw):
    do = InMemoryDataObject("tgt", partitions=["part"], **kw)
    do.write(exec_ctx, df)
    return do


def _validate(exec_ctx, do, df, pvs=()):
    return ExpectationValidator.for_data_object(do).validate(
        exec_ctx, action_id="a1", data_object=do, df=df, partition_values=pvs
    )


@pytest.fixture
def two_partitions():
    return pd.DataFrame({"part": ["A"] * 3 + ["B"] * 5, "rating": [1, 2, 3, 4, 5, 6, 7, 8]})


def test_job_partition_count_per_partition(exec_ctx, two_partitions):
    do = _written(
        exec_ctx,
        two_partitions,
        expectations=[CountExpectation(name="cnt", scope="job_partition", expectation="> 0")],
    )
    pvs = [PartitionValues.of(part="A"), PartitionValues.of(part="B")]

    metrics = _validate(exec_ctx, do, two_partitions, pvs)

    assert metrics["cnt#A"] == 3
    assert metrics["cnt#B"] == 5
    assert "cnt" not in metrics
    assert 8 not in [v for k, v in metrics.items() if k.startswith("cnt")]


def test_job_partition_without_partition_values_uses_written_partitions(exec_ctx, two_partitions):
    do = InMemoryDataObject(
        "tgt",
        partitions=["part"],
        expectations=[CountExpectation(name="cnt", scope="job_partition", expectation="> 0")],
    )
    do.write(exec_ctx, pd.DataFrame({"part": ["C", "C"], "rating": [9, 9]}))
    do.write(exec_ctx, two_partitions)

    metrics = _validate(exec_ctx, do, two_partitions)

    assert metrics == {"count": 8, "cnt#A": 3, "cnt#B": 5}


def test_job_partition_without_written_partitions_reports_nothing(exec_ctx):
    df = pd.DataFrame({"part": pd.Series([], dtype="object"), "rating": pd.Series([], dtype="int64")})
    do = InMemoryDataObject(
        "tgt",
        partitions=["part"],
        expectations=[CountExpectation(name="cnt", scope="job_partition", expectation="> 0")],
    )
    do.write(exec_ctx, pd.DataFrame({"part": ["C"], "rating": [9]}))

    metrics = _validate(exec_ctx, do, df)

    assert metrics == {"count": 0}


def test_job_count_always_present_and_internal_metrics_hidden(exec_ctx, two_partitions):
    do = _written(exec_ctx, two_partitions, expectations=[FractionExpectation(name="pctHigh", count_condition="rating > 5")])

    metrics = _validate(exec_ctx, do, two_partitions)

    assert metrics == {"count": 8, "pctHigh": pytest.approx(3 / 8)}


def test_scoped_count_named_count_replaces_job_count(exec_ctx, two_partitions):
    do = _written(exec_ctx, two_partitions, expectations=[CountExpectation(scope="job_partition")])

    metrics = _validate(exec_ctx, do, two_partitions, [PartitionValues.of(part="A")])

    assert metrics == {"count#A": 3}


def test_all_scope_reads_whole_table(exec_ctx, two_partitions):
    do = _written(exec_ctx, two_partitions, expectations=[CountExpectation(name="total", scope="all")])
    new = pd.DataFrame({"part": ["C"], "rating": [9]})
    do.write(exec_ctx, new)

    metrics = _validate(exec_ctx, do, new, [PartitionValues.of(part="C")])

    assert metrics == {"count": 1, "total": 9}


def test_avg_count_per_partition(exec_ctx, two_partitions):
    do = _written(exec_ctx, two_partitions, expectations=[AvgCountPerPartitionExpectation(name="avgRows")])

    metrics = _validate(exec_ctx, do, two_partitions)

    assert metrics == {"count": 8, "avgRows": 4}


def test_avg_count_without_partitions_warns(exec_ctx):
    df = pd.DataFrame({"part": pd.Series([], dtype="object"), "rating": pd.Series([], dtype="int64")})
    do = InMemoryDataObject("tgt", partitions=["part"], expectations=[AvgCountPerPartitionExpectation(name="avgRows")])

    metrics = _validate(exec_ctx, do, df)

    assert metrics["avgRows"] == 0
    assert exec_ctx.warnings["a1"]


def test_warn_severity_is_not_fatal(exec_ctx, two_partitions):
    exp = AggregateExpectation(
        name="maxRating", aggregate_expression="max(rating)", expectation="<= 5", failed_severity="warn"
    )
    do = _written(exec_ctx, two_partitions, expectations=[exp])

    metrics = _validate(exec_ctx, do, two_partitions)

    assert metrics["maxRating"] == 8
    assert exec_ctx.warnings["a1"] == ["Expectation 'maxRating' failed with value:8 expectation:<= 5"]
    assert any(e["level"] == "warning" for e in exec_ctx.events)


def test_error_failures_are_aggregated(exec_ctx, two_partitions):
    do = _written(
        exec_ctx,
        two_partitions,
        expectations=[
            CountExpectation(name="cnt", scope="job_partition", expectation="> 4"),
            AggregateExpectation(name="minRating", aggregate_expression="min(rating)", expectation="> 1"),
        ],
    )

    with pytest.raises(ExpectationValidationException) as exc:
        _validate(exec_ctx, do, two_partitions, [PartitionValues.of(part="A"), PartitionValues.of(part="B")])

    assert exc.value.failures == [
        "Expectation 'minRating' failed with value:1 expectation:> 1",
        "Expectation 'cnt#A' failed with count:3 expectation:> 4",
    ]
    assert exc.value.details["metrics"]["cnt#B"] == 5


def test_constraint_failures(exec_ctx, two_partitions):
    do = _written(
        exec_ctx,
        two_partitions,
        constraints=[Constraint(name="lowRating", expression="rating < 7", description="ratings abaixo de 7")],
        expectations=[CountExpectation(name="cnt", expectation="> 100")],
    )

    with pytest.raises(ConstraintValidationException) as exc:
        _validate(exec_ctx, do, two_partitions)

    assert exc.value.failures[0] == "Constraint 'lowRating' failed for 2 row(s): rating < 7 (ratings abaixo de 7)"
    assert len(exc.value.failures) == 2


def test_success_is_logged(exec_ctx, two_partitions):
    do = _written(exec_ctx, two_partitions)

    _validate(exec_ctx, do, two_partitions)

    assert exec_ctx.events[-1]["message"] == "validation passed"
    assert exec_ctx.events[-1]["metrics"] == {"count": 8}
