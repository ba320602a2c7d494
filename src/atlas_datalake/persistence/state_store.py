"""Store de estado de execução persistido entre runs (v1).

Execution modes incrementais guardam aqui o último estado processado
(ex.: timestamp ISO-8601 do arquivo mais recente lido), indexado por chave
textual (id da Action). O estado sobrevive a reinícios de processo.

Decisões (v1):
- Formato: JSON (objeto chave → string)
- Escrita via arquivo temporário + replace, para nunca deixar JSON parcial
- `set(key, None)` remove a chave

Limites explícitos:
- Não coordena escrita entre processos
- Não versiona estados anteriores
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Union

from atlas_datalake.core.exceptions import ConfigurationException


class JsonStateStore:
    """Store canônica (v1) de estado string-keyed em arquivo JSON."""

    def __init__(self, *, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ConfigurationException(
                f"State store root deve ser objeto JSON: {self.path}",
                details={"path": str(self.path), "received": type(data).__name__},
            )
        return data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        data = self._load()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)


class InMemoryStateStore:
    """Store de estado em memória, com a mesma interface (testes e runs efêmeras)."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value


__all__ = ["JsonStateStore", "InMemoryStateStore"]
