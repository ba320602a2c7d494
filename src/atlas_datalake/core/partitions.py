"""
Valores de partição do Atlas DataLake.

Este módulo define `PartitionValues`, a representação canônica de um
conjunto chave→valor que identifica (total ou parcialmente) uma partição
de um DataObject.

Princípios fundamentais:
    - Valores de partição são imutáveis e hashable (semântica de conjunto)
    - A igualdade independe da ordem das chaves
    - Valores são normalizados para `str`, como em diretórios hive-style

Invariantes:
    - Duas instâncias com as mesmas chaves e valores são iguais
    - `filter_keys` nunca cria chaves novas
    - Uma especificação vazia representa "dataset inteiro"

Limites explícitos:
    - Não lista partições (responsabilidade do DataObject)
    - Não lê nem escreve dados
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple


PARTITION_DELIMITER = "#"


@dataclass(frozen=True)
class PartitionValues:
    """
    Conjunto imutável de valores de partição (chave → valor).

    Os elementos são armazenados ordenados por chave para garantir
    igualdade e hash independentes da ordem de declaração.
    """

    elements: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, values: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "PartitionValues":
        merged: Dict[str, Any] = dict(values or {})
        merged.update(kwargs)
        return cls(tuple(sorted((str(k), str(v)) for k, v in merged.items())))

    # -----------------------------
    # Mapping-like access
    # -----------------------------
    def __getitem__(self, key: str) -> str:
        for k, v in self.elements:
            if k == key:
                return v
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(k for k, _ in self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        try:
            return self[key]
        except KeyError:
            return default

    def keys(self) -> Set[str]:
        return {k for k, _ in self.elements}

    def is_empty(self) -> bool:
        return not self.elements

    def to_dict(self) -> Dict[str, str]:
        return dict(self.elements)

    # -----------------------------
    # Operações
    # -----------------------------
    def filter_keys(self, keys: Iterable[str]) -> "PartitionValues":
        wanted = set(keys)
        return PartitionValues(tuple((k, v) for k, v in self.elements if k in wanted))

    def is_included_in(self, other: "PartitionValues") -> bool:
        """True se todos os pares chave/valor existem em `other`."""
        return set(self.elements).issubset(set(other.elements))

    def is_init_of(self, partition_columns: Sequence[str]) -> bool:
        """True se as chaves formam um prefixo (init) das colunas de partição."""
        n = len(self.elements)
        if n == 0 or n > len(partition_columns):
            return False
        return set(partition_columns[:n]) == self.keys()

    def key_string(self, partition_columns: Optional[Sequence[str]] = None) -> str:
        """Valores concatenados com `#`, na ordem das colunas de partição."""
        columns = list(partition_columns) if partition_columns else [k for k, _ in self.elements]
        return PARTITION_DELIMITER.join(self[c] for c in columns if c in self.keys())

    def __str__(self) -> str:
        return "/".join(f"{k}={v}" for k, v in self.elements)


def get_partition_values_keys(partition_values: Iterable[PartitionValues]) -> Set[str]:
    keys: Set[str] = set()
    for pv in partition_values:
        keys |= pv.keys()
    return keys


def check_wrong_partition_values(
    partition_values: Iterable[PartitionValues],
    partition_columns: Sequence[str],
) -> List[str]:
    """Retorna as chaves solicitadas que não são colunas de partição."""
    return sorted(get_partition_values_keys(partition_values) - set(partition_columns))


def distinct(partition_values: Iterable[PartitionValues]) -> List[PartitionValues]:
    """Remove duplicados preservando a ordem de primeira ocorrência."""
    seen: Set[PartitionValues] = set()
    out: List[PartitionValues] = []
    for pv in partition_values:
        if pv not in seen:
            seen.add(pv)
            out.append(pv)
    return out


def sort_partition_values(partition_values: Iterable[PartitionValues]) -> List[PartitionValues]:
    return sorted(partition_values, key=lambda pv: pv.elements)
