# tests/core/dataobjects/test_memory_data_object.py
"""
Testes do DataObject em memória: leitura por partição, dry-run e save modes.

Os testes asseguram que:
- chaves de partição desconhecidas são erro de configuração
- na fase exec, partições inexistentes levantam PartitionNotFoundException
- especificações parciais são resolvidas para partições concretas
- na fase init, `read` retorna apenas o schema
- overwrite, append e overwrite_optimized seguem suas semânticas
"""

import pandas as pd
import pytest

from atlas_datalake.core.exceptions import (
    ConfigurationException,
    PartitionNotFoundException,
    ProcessingLogicException,
)
from atlas_datalake.core.partitions import PartitionValues
from atlas_datalake.dataobjects import InMemoryDataObject, SaveMode


def _pv(dt):
    return PartitionValues.of(dt=dt)


def test_read_by_partition(exec_ctx, ratings_source):
    df = ratings_source.read(exec_ctx, [_pv("20260102")])

    assert len(df) == 3
    assert set(df["user"]) == {"a", "c", "d"}
    assert len(ratings_source.read(exec_ctx)) == 5


def test_init_read_returns_schema_only(init_ctx, ratings_source):
    df = ratings_source.read(init_ctx, [_pv("29991231")])

    assert df.empty
    assert list(df.columns) == ["dt", "user", "rating"]


def test_unknown_partition_key_is_configuration_error(exec_ctx, ratings_source):
    with pytest.raises(ConfigurationException) as exc:
        ratings_source.read(exec_ctx, [PartitionValues.of(country="BR")])
    assert exc.value.details["wrong_keys"] == ["country"]


def test_missing_partition_raises_not_found(exec_ctx, ratings_source):
    with pytest.raises(PartitionNotFoundException) as exc:
        ratings_source.read(exec_ctx, [_pv("29991231")])
    assert exc.value.details["partition_values"] == {"dt": "29991231"}


def test_partial_spec_is_resolved_against_existing_partitions(exec_ctx):
    do = InMemoryDataObject(
        "events",
        data=pd.DataFrame({"dt": ["1", "1", "2"], "hour": ["0", "1", "0"], "n": [1, 2, 3]}),
        partitions=["dt", "hour"],
    )

    resolved = do.resolve_partition_values([_pv("1")])

    assert set(resolved) == {PartitionValues.of(dt="1", hour="0"), PartitionValues.of(dt="1", hour="1")}
    assert do.read(exec_ctx, [_pv("1")])["n"].tolist() == [1, 2]


def test_schema_unavailable_without_data_or_schema(init_ctx):
    do = InMemoryDataObject("empty", partitions=["dt"])

    with pytest.raises(ConfigurationException):
        do.read(init_ctx)


def test_partition_columns_must_be_in_schema():
    with pytest.raises(ConfigurationException):
        InMemoryDataObject("bad", partitions=["dt"], schema={"n": "int64"})


def test_overwrite_with_partition_values_replaces_only_those(exec_ctx, ratings_source):
    new = pd.DataFrame({"dt": ["20260102"], "user": ["z"], "rating": [1]})

    ratings_source.write(exec_ctx, new, [_pv("20260102")])

    data = ratings_source.data
    assert len(data) == 3
    assert data[data["dt"] == "20260102"]["user"].tolist() == ["z"]


def test_dynamic_overwrite_without_partition_values(exec_ctx, ratings_source):
    new = pd.DataFrame({"dt": ["20260103"], "user": ["n"], "rating": [3]})

    ratings_source.write(exec_ctx, new)

    assert sorted(ratings_source.data["dt"].unique()) == ["20260101", "20260102", "20260103"]


def test_append(exec_ctx, ratings_source):
    new = pd.DataFrame({"dt": ["20260101"], "user": ["x"], "rating": [1]})

    ratings_source.write(exec_ctx, new, save_mode=SaveMode.APPEND)

    assert len(ratings_source.data) == 6


def test_overwrite_optimized_requires_allow_list(exec_ctx, ratings_source):
    new = pd.DataFrame({"dt": ["20260109"], "user": ["x"], "rating": [1]})

    with pytest.raises(ProcessingLogicException) as exc:
        ratings_source.write(exec_ctx, new, save_mode=SaveMode.OVERWRITE_OPTIMIZED)
    assert exc.value.decision_required is True
    assert len(ratings_source.data) == 5

    exec_ctx.config["global"]["allow_overwrite_all_partitions_without_partition_values"] = ["src_ratings"]
    ratings_source.write(exec_ctx, new, save_mode="overwrite_optimized")
    assert ratings_source.data["dt"].tolist() == ["20260109"]


def test_write_requires_partition_columns(exec_ctx, ratings_target):
    with pytest.raises(ConfigurationException):
        ratings_target.write(exec_ctx, pd.DataFrame({"user": ["a"]}))


def test_write_is_logged(exec_ctx, ratings_target, ratings_df):
    ratings_target.write(exec_ctx, ratings_df, action_id="copy1")

    event = exec_ctx.events[-1]
    assert event["message"] == "data object written"
    assert event["action_id"] == "copy1"
    assert event["rows"] == 5
