"""
Deep-merge determinístico de configuração.

Política:
    - dict + dict → merge recursivo por chave
    - list → substituída por inteiro
    - escalar → substituído pelo override
    - tipos diferentes na mesma chave → ConfigTypeConflictError

Nenhum dos inputs é mutado.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key not in result:
            result[key] = deepcopy(value)
            continue

        current = result[key]
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        elif isinstance(value, list):
            result[key] = deepcopy(value)
        elif current is not None and value is not None and type(current) is not type(value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key}': {type(current).__name__} vs {type(value).__name__}",
                details={"key": key},
            )
        else:
            result[key] = deepcopy(value)
    return result
