# src/atlas_datalake/core/pipeline/condition.py
"""
Condição de execução de uma Action.

Uma `Condition` é uma expressão booleana sobre o estado dos SubFeeds de
entrada, avaliada uma vez por fase (preInit / preExec).

Exemplos:
    "not src1.is_skipped or not src2.is_skipped"
    "input_sub_feeds['src-1'].is_skipped == False"

Nomes disponíveis na expressão:
    - `input_sub_feeds`: mapa data_object_id → estado do SubFeed
    - cada data_object_id que seja um identificador Python válido

Atributos disponíveis por SubFeed:
    - is_skipped, is_dag_start, data_object_id, partition_values (lista de dicts)

Decisões arquiteturais:
    - A expressão é validada no momento da construção (erro de configuração)
    - A avaliação interpreta uma AST restrita (sem eval): sem chamadas,
      sem builtins, sem atributos privados
"""

from __future__ import annotations

import ast
import operator
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any, Callable, Dict, Mapping, Optional, Union

from atlas_datalake.core.exceptions import ConfigurationException

from .subfeed import SubFeed


_ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.Not,
    ast.Compare,
    ast.Eq,
    ast.NotEq,
    ast.Is,
    ast.IsNot,
    ast.In,
    ast.NotIn,
    ast.Name,
    ast.Load,
    ast.Attribute,
    ast.Subscript,
    ast.Constant,
    ast.List,
    ast.Tuple,
)


def _check_tree(tree: ast.AST, expression: str) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise ConfigurationException(
                f"Expressão de condição não suportada: {expression!r}",
                details={"expression": expression, "node": type(node).__name__},
            )
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            raise ConfigurationException(
                f"Atributo privado não permitido em condição: {node.attr}",
                details={"expression": expression},
            )


def _sub_feed_view(sub_feed: SubFeed) -> SimpleNamespace:
    return SimpleNamespace(
        data_object_id=sub_feed.data_object_id,
        is_skipped=sub_feed.is_skipped,
        is_dag_start=sub_feed.is_dag_start,
        partition_values=[pv.to_dict() for pv in sub_feed.partition_values],
    )


_COMPARISONS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


def _evaluate(node: ast.AST, names: Mapping[str, Any]) -> Any:
    """Interpreta a AST já validada por `_check_tree`, sem `eval`."""
    if isinstance(node, ast.Expression):
        return _evaluate(node.body, names)
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        if node.id not in names:
            raise KeyError(node.id)
        return names[node.id]
    if isinstance(node, ast.Attribute):
        return getattr(_evaluate(node.value, names), node.attr)
    if isinstance(node, ast.Subscript):
        return _evaluate(node.value, names)[_evaluate(node.slice, names)]
    if isinstance(node, ast.List):
        return [_evaluate(e, names) for e in node.elts]
    if isinstance(node, ast.Tuple):
        return tuple(_evaluate(e, names) for e in node.elts)
    if isinstance(node, ast.UnaryOp):
        return not _evaluate(node.operand, names)
    if isinstance(node, ast.BoolOp):
        # curto-circuito com o mesmo resultado de and/or
        value: Any = None
        for operand in node.values:
            value = _evaluate(operand, names)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value
    if isinstance(node, ast.Compare):
        left = _evaluate(node.left, names)
        for op, comparator in zip(node.ops, node.comparators):
            right = _evaluate(comparator, names)
            if not _COMPARISONS[type(op)](left, right):
                return False
            left = right
        return True
    raise TypeError(f"nó não suportado: {type(node).__name__}")


@dataclass(frozen=True)
class Condition:
    expression: str
    description: Optional[str] = None

    def __post_init__(self) -> None:
        try:
            tree = ast.parse(self.expression, mode="eval")
        except SyntaxError as e:
            raise ConfigurationException(
                f"Expressão de condição inválida: {self.expression!r}",
                details={"expression": self.expression, "error": str(e)},
            ) from e
        _check_tree(tree, self.expression)

    @classmethod
    def from_config(cls, cfg: Union[str, Mapping[str, Any]]) -> "Condition":
        if isinstance(cfg, str):
            return cls(cfg)
        if "expression" not in cfg:
            raise ConfigurationException("execution_condition requer a chave 'expression'", details=dict(cfg))
        return cls(cfg["expression"], cfg.get("description"))

    def evaluate(self, input_sub_feeds: Mapping[str, SubFeed]) -> bool:
        views = {k: _sub_feed_view(v) for k, v in input_sub_feeds.items()}
        names: Dict[str, Any] = {k: v for k, v in views.items() if k.isidentifier()}
        names["input_sub_feeds"] = views

        try:
            result = _evaluate(ast.parse(self.expression, mode="eval"), names)
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            raise ConfigurationException(
                f"Falha ao avaliar condição {self.expression!r}: {e}",
                details={"expression": self.expression},
            ) from e

        if not isinstance(result, bool):
            raise ConfigurationException(
                f"Condição deve avaliar para bool, recebido: {type(result).__name__}",
                details={"expression": self.expression},
            )
        return result
