"""
Atlas DataLake — Canonical Exceptions (v1)

Este módulo define as exceções tipadas internas do Atlas DataLake.

Objetivo:
- Permitir que Actions, DataObjects e o Engine levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para AtlasErrorPayload
- Evitar ValueError/RuntimeError genéricos em guardrails críticos

Taxonomia:
- ConfigurationException: configuração inválida (fatal, sem retry)
- ProcessingLogicException: combinação insegura solicitada (fatal)
- PartitionNotFoundException: partição solicitada não existe no storage
- IllegalStateException: uso concorrente proibido de estado de uma instância
- ValidationException: falha de expectations/constraints (fatal após avaliação completa)

Sinais que NÃO são exceções:
- skip-and-stop e no-data são resultados tipados (`PhaseResult`), não erros.

Regras:
- Mensagens carregam o id da action/data object entre parênteses.
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(eq=False)
class AtlasException(Exception):
    """Base class para exceções internas do Atlas.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Configuração / Lógica de processamento
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ConfigurationException(AtlasException):
    """Configuração inválida: expressão malformada, schema ausente, partição inexistente nos metadados."""


@dataclass(eq=False)
class ProcessingLogicException(AtlasException):
    """Combinação insegura solicitada (ex.: overwrite de todas as partições sem allow-list)."""


@dataclass(eq=False)
class PartitionNotFoundException(AtlasException):
    """Valores de partição solicitados não existem no data object."""


@dataclass(eq=False)
class IllegalStateException(AtlasException):
    """Estado compartilhado de uma instância usado por duas operações concorrentes."""


# ---------------------------------------------------------------------------
# Validação (expectations / constraints)
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ValidationException(AtlasException):
    """Uma ou mais validações falharam. `details["failures"]` lista todas as mensagens."""

    @property
    def failures(self) -> List[str]:
        return list(self.details.get("failures", []))


@dataclass(eq=False)
class ExpectationValidationException(ValidationException):
    """Expectation(s) com severidade Error falharam."""


@dataclass(eq=False)
class ConstraintValidationException(ValidationException):
    """Constraint(s) por linha falharam (pode incluir falhas de expectations no relatório)."""
