# tests/core/persistence/test_state_store.py
"""
Testes dos stores de estado incremental.

- JsonStateStore sobrevive a uma nova instância (reinício de processo)
- `set(key, None)` remove a chave
- raiz JSON inválida é erro de configuração
"""

import pytest

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.persistence import InMemoryStateStore, JsonStateStore


def test_json_store_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "incremental.json"
    JsonStateStore(path=path).set("ingest", "2026-01-01T00:00:00+00:00")

    store = JsonStateStore(path=path)

    assert store.get("ingest") == "2026-01-01T00:00:00+00:00"
    assert store.get("other") is None
    assert not path.with_suffix(".json.tmp").exists()


@pytest.mark.parametrize("factory", [lambda p: JsonStateStore(path=p / "s.json"), lambda p: InMemoryStateStore()])
def test_set_none_removes_key(tmp_path, factory):
    store = factory(tmp_path)
    store.set("a", "1")
    store.set("b", "2")

    store.set("a", None)

    assert store.get("a") is None
    assert store.get("b") == "2"


def test_json_store_rejects_non_object_root(tmp_path):
    path = tmp_path / "s.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ConfigurationException):
        JsonStateStore(path=path).get("a")
