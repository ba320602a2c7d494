# src/atlas_datalake/core/pipeline/registry.py
"""
Registros estruturais do pipeline.

Este módulo define:
    - `ActionRegistry`: registro de Actions com unicidade de `action.id`
      e ordem de declaração preservada
    - `PluginRegistry`: registro tipado tag → construtor, usado para
      resolver tipos de data objects, actions, transformers, execution
      modes, expectations e lógica customizada

Decisões arquiteturais:
    - Plugins são resolvidos por uma tag estável registrada no início do
      processo, nunca por nome de classe ou reflexão
    - Tags desconhecidas são erro de configuração
    - Registros não executam Actions nem resolvem dependências

Invariantes:
    - Cada Action registrada possui `id` único
    - Cada tag de plugin é registrada no máximo uma vez
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from atlas_datalake.core.exceptions import ConfigurationException


class DuplicateActionIdError(ValueError):
    """Duas Actions com o mesmo `id` no pipeline (erro fatal de configuração)."""


class DuplicatePluginError(ValueError):
    """Tag de plugin registrada mais de uma vez."""


@dataclass
class ActionRegistry:
    """
    Registro canônico de Actions para validação estrutural pré-execução.

    Invariantes:
        - Cada `action.id` é único no registry
        - A lista de Actions reflete exatamente a ordem de registro
    """

    _actions: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, action: Any) -> None:
        action_id = getattr(action, "id", None)
        if not isinstance(action_id, str) or not action_id.strip():
            raise ValueError("action.id must be a non-empty string")

        if action_id in self._actions:
            raise DuplicateActionIdError(f"Duplicate action id: {action_id}")

        self._actions[action_id] = action
        self._order.append(action_id)

    def get(self, action_id: str) -> Any:
        return self._actions[action_id]

    def list(self) -> List[Any]:
        return [self._actions[aid] for aid in self._order]


@dataclass
class PluginRegistry:
    """
    Registro tipado de plugins: tag estável → construtor.

    Uso:
        TRANSFORMERS = PluginRegistry("transformer")

        @TRANSFORMERS.register("filter")
        def _build_filter(cfg): ...

        TRANSFORMERS.get("filter")
    """

    kind: str
    _builders: Dict[str, Callable[..., Any]] = field(default_factory=dict, init=False, repr=False)

    def register(self, tag: str, builder: Optional[Callable[..., Any]] = None) -> Any:
        def _add(fn: Callable[..., Any]) -> Callable[..., Any]:
            if tag in self._builders:
                raise DuplicatePluginError(f"{self.kind} '{tag}' already registered")
            self._builders[tag] = fn
            return fn

        if builder is not None:
            return _add(builder)
        return _add

    def unregister(self, tag: str) -> None:
        self._builders.pop(tag, None)

    def __contains__(self, tag: str) -> bool:
        return tag in self._builders

    def get(self, tag: str) -> Callable[..., Any]:
        if tag not in self._builders:
            raise ConfigurationException(
                f"{self.kind} desconhecido: '{tag}'",
                details={"kind": self.kind, "tag": tag, "available": self.tags()},
                hint=f"Registre '{tag}' no registry de {self.kind} antes de carregar a configuração.",
            )
        return self._builders[tag]

    def tags(self) -> List[str]:
        return sorted(self._builders)


# Lógica customizada (transformers e execution modes) referenciada por chave.
CUSTOM_LOGIC = PluginRegistry("custom_logic")


def resolve_logic(logic: Any) -> Callable[..., Any]:
    """Resolve lógica customizada: chave registrada em CUSTOM_LOGIC ou callable."""
    if isinstance(logic, str):
        return CUSTOM_LOGIC.get(logic)
    if callable(logic):
        return logic
    raise ConfigurationException(
        f"Lógica customizada inválida: {logic!r}",
        details={"type": type(logic).__name__},
    )
