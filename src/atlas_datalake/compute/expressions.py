"""
Expressões de agregação do Atlas DataLake.

Uma `AggregateExpression` associa um nome de métrica a uma expressão de
agregação textual, avaliada pelo compute engine sobre um dataset.

Funções suportadas (v1):
    - count(*)            → número de linhas
    - count(expr)         → valores não nulos de uma coluna/expressão
    - count_if(predicate) → linhas em que o predicado é verdadeiro
    - count_distinct(expr)
    - sum(expr), avg(expr) / mean(expr), min(expr), max(expr)

Expressões internas (`internal=True`) são calculadas para validação e
removidas do mapa de métricas reportado.

Expressões malformadas são erro de configuração (fatal, sem retry).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from atlas_datalake.core.exceptions import ConfigurationException


SUPPORTED_FUNCTIONS = ("count", "count_if", "count_distinct", "sum", "avg", "mean", "min", "max")

_AGG_RE = re.compile(r"^\s*(?P<func>[A-Za-z_][A-Za-z0-9_]*)\s*\((?P<arg>.*)\)\s*$", re.DOTALL)


def parse_aggregate(expression: str) -> Tuple[str, str]:
    """Retorna (função, argumento) de uma expressão `func(arg)`."""
    if not isinstance(expression, str):
        raise ConfigurationException(
            f"Expressão de agregação deve ser string, recebido: {type(expression).__name__}",
            details={"expression": repr(expression)},
        )
    match = _AGG_RE.match(expression)
    if match is None:
        raise ConfigurationException(
            f"Expressão de agregação malformada: {expression!r}",
            details={"expression": expression},
            hint="Use o formato func(arg), ex.: count(*), count_if(rating > 1), avg(rating).",
        )
    func = match.group("func").lower()
    arg = match.group("arg").strip()
    if func not in SUPPORTED_FUNCTIONS:
        raise ConfigurationException(
            f"Função de agregação não suportada: {func}",
            details={"expression": expression, "supported": list(SUPPORTED_FUNCTIONS)},
        )
    if not arg:
        raise ConfigurationException(
            f"Expressão de agregação sem argumento: {expression!r}",
            details={"expression": expression},
        )
    if arg == "*" and func != "count":
        raise ConfigurationException(
            f"'*' só é suportado em count(*): {expression!r}",
            details={"expression": expression},
        )
    return func, arg


@dataclass(frozen=True)
class AggregateExpression:
    name: str
    expression: str
    internal: bool = False

    def __post_init__(self) -> None:
        parse_aggregate(self.expression)

    @property
    def function(self) -> str:
        return parse_aggregate(self.expression)[0]

    @property
    def argument(self) -> str:
        return parse_aggregate(self.expression)[1]
