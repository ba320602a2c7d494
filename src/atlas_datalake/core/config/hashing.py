"""
Hash canônico da configuração efetiva (SHA-256 sobre JSON canônico).

Configurações estruturalmente equivalentes, independentemente da ordem das
chaves, produzem o mesmo hash hexadecimal de 64 caracteres. O hash é
registrado no manifest da run.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Dict[str, Any]) -> str:
    if not isinstance(config, dict):
        raise TypeError(f"Config para hashing deve ser dict, recebido: {type(config).__name__}")
    canonical = json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
