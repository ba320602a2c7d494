# tests/core/partitions/test_partition_values.py
"""
Testes de PartitionValues e dos helpers de partição.

Os testes asseguram que:
- igualdade e hash independem da ordem das chaves
- valores são normalizados para texto
- projeção, inclusão e detecção de prefixo seguem as colunas de partição
- a renderização de chaves segue a ordem das colunas
"""

from atlas_datalake.core.partitions import (
    PartitionValues,
    check_wrong_partition_values,
    distinct,
    get_partition_values_keys,
    sort_partition_values,
)


def test_equality_is_order_independent_and_values_are_strings():
    a = PartitionValues.of({"dt": 20260101, "country": "BR"})
    b = PartitionValues.of(country="BR", dt="20260101")

    assert a == b
    assert hash(a) == hash(b)
    assert a["dt"] == "20260101"
    assert len({a, b}) == 1


def test_filter_keys_never_creates_keys():
    pv = PartitionValues.of(dt="1", country="BR")

    assert pv.filter_keys(["dt", "missing"]) == PartitionValues.of(dt="1")
    assert pv.filter_keys([]).is_empty()


def test_is_included_in_and_is_init_of():
    full = PartitionValues.of(dt="1", hour="2")
    partial = PartitionValues.of(dt="1")

    assert partial.is_included_in(full)
    assert not full.is_included_in(partial)
    assert partial.is_init_of(["dt", "hour"])
    assert not PartitionValues.of(hour="2").is_init_of(["dt", "hour"])
    assert not PartitionValues().is_init_of(["dt"])


def test_key_string_follows_partition_column_order():
    pv = PartitionValues.of(hour="02", dt="20260101")

    assert pv.key_string(["dt", "hour"]) == "20260101#02"
    assert pv.key_string(["hour", "dt"]) == "02#20260101"
    assert str(pv) == "dt=20260101/hour=02"


def test_wrong_keys_are_reported_sorted():
    pvs = [PartitionValues.of(dt="1", zz="x"), PartitionValues.of(aa="y")]

    assert get_partition_values_keys(pvs) == {"dt", "zz", "aa"}
    assert check_wrong_partition_values(pvs, ["dt"]) == ["aa", "zz"]


def test_distinct_and_sort():
    a = PartitionValues.of(dt="2")
    b = PartitionValues.of(dt="1")

    assert distinct([a, b, a]) == [a, b]
    assert sort_partition_values([a, b]) == [b, a]
