"""
Loader de configuração do Atlas DataLake.

A configuração efetiva é resolvida a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional; ignorado se não existir)

Formatos: YAML (.yaml, .yml) ou JSON (.json). Arquivo vazio equivale a `{}`.

Invariantes:
    - O resultado é sempre um dict puro
    - Overrides nunca mutam os defaults
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import DefaultsNotFoundError, InvalidConfigRootTypeError, UnsupportedConfigFormatError
from .merge import deep_merge


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}", details={"path": str(path)})

    suffix = path.suffix.lower()
    with path.open("r", encoding="utf-8") as f:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}", details={"path": str(path)})

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}",
            details={"path": str(path)},
        )
    return data


def load_config(
    *,
    defaults_path: Union[str, Path],
    local_path: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    effective = _load_file(Path(defaults_path))
    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))
    return effective
