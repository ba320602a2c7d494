"""
Condições de validação de expectations.

Formato: `<operador> <literal>`, ex.: "> 0", "<= 0.05", "= 'ok'", "!= 0".

Operadores suportados: =, ==, !=, <>, >, >=, <, <=
O literal é interpretado com `ast.literal_eval` (números, strings, booleanos).

Um valor de métrica `None` (indefinido, ex.: fração sem linhas) não é
comparado e não gera falha.
"""

from __future__ import annotations

import ast
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from atlas_datalake.core.exceptions import ConfigurationException


_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}

_CONDITION_RE = re.compile(r"^\s*(?P<op>==|!=|<>|>=|<=|=|>|<)\s*(?P<value>.+?)\s*$", re.DOTALL)


@dataclass(frozen=True)
class ValidationCondition:
    text: str
    op: str
    value: Any

    @classmethod
    def parse(cls, text: str, *, owner: str) -> "ValidationCondition":
        if not isinstance(text, str):
            raise ConfigurationException(
                f"({owner}) condição de expectation deve ser string",
                details={"expectation": owner, "condition": repr(text)},
            )
        match = _CONDITION_RE.match(text)
        if match is None:
            raise ConfigurationException(
                f"({owner}) condição de expectation malformada: {text!r}",
                details={"expectation": owner, "condition": text},
                hint="Use o formato '<operador> <valor>', ex.: '> 0' ou '<= 0.05'.",
            )
        try:
            value = ast.literal_eval(match.group("value"))
        except (ValueError, SyntaxError) as e:
            raise ConfigurationException(
                f"({owner}) valor inválido na condição {text!r}",
                details={"expectation": owner, "condition": text},
            ) from e
        return cls(text=text.strip(), op=match.group("op"), value=value)

    def holds(self, metric: Any) -> bool:
        if metric is None:
            return True
        try:
            return bool(_OPERATORS[self.op](metric, self.value))
        except TypeError as e:
            raise ConfigurationException(
                f"Condição {self.text!r} incompatível com o valor {metric!r}",
                details={"condition": self.text, "value": repr(metric)},
            ) from e


def parse_condition(text: Optional[str], *, owner: str) -> Optional[ValidationCondition]:
    if text is None:
        return None
    return ValidationCondition.parse(text, owner=owner)
