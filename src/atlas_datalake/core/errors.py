"""
Atlas DataLake — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do Atlas DataLake.
Erros são artefatos de domínio e fazem parte do contrato operacional
do sistema, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

O Engine converte toda exceção levantada por uma fase de Action em um
`AtlasErrorPayload`, armazenado em `ActionResult.payload["error"]`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .exceptions import (
    AtlasException,
    ConfigurationException,
    IllegalStateException,
    PartitionNotFoundException,
    ProcessingLogicException,
    ValidationException,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AtlasErrorPayload:
    """
    Payload canônico de erro do Atlas DataLake.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - decision_required: indica se o pipeline está bloqueado aguardando decisão humana
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
PROCESSING_LOGIC_ERROR = "PROCESSING_LOGIC_ERROR"
PARTITION_NOT_FOUND = "PARTITION_NOT_FOUND"
ILLEGAL_STATE = "ILLEGAL_STATE"
VALIDATION_FAILED = "VALIDATION_FAILED"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_CONFIGURATION_ERROR = "ENGINE_CONFIGURATION_ERROR"


# Ordem importa: subclasses antes das bases.
_EXCEPTION_CODES = (
    (ValidationException, VALIDATION_FAILED),
    (PartitionNotFoundException, PARTITION_NOT_FOUND),
    (ProcessingLogicException, PROCESSING_LOGIC_ERROR),
    (IllegalStateException, ILLEGAL_STATE),
    (ConfigurationException, CONFIGURATION_ERROR),
)


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def engine_execution_error(
    *,
    action_id: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique o log técnico e os data objects envolvidos. Nenhum fallback é aplicado automaticamente.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message=exc_message or "Falha inesperada durante a execução do pipeline",
        details={
            "action_id": action_id,
            "exc_type": exc_type,
        },
        hint=hint,
        decision_required=False,
    )


def engine_configuration_error(
    *,
    message: str = "Configuração inválida para execução do pipeline",
    details: Optional[Dict[str, Any]] = None,
    hint: str = "Revise a configuração do run/actions e declare explicitamente as opções necessárias antes de reexecutar.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=ENGINE_CONFIGURATION_ERROR,
        message=message,
        details=details or {},
        hint=hint,
        decision_required=False,
    )


def error_from_exception(exc: BaseException, *, action_id: Optional[str] = None) -> AtlasErrorPayload:
    """Converte uma exceção em AtlasErrorPayload com código estável.

    Regras:
    - AtlasException: código pelo tipo, preservando details/hint/decision_required.
    - Outras exceções: ENGINE_EXECUTION_ERROR, sem stack trace.
    """
    if isinstance(exc, AtlasException):
        code = ENGINE_EXECUTION_ERROR
        for exc_type, exc_code in _EXCEPTION_CODES:
            if isinstance(exc, exc_type):
                code = exc_code
                break
        details = dict(exc.details or {})
        details.setdefault("action_id", action_id)
        return AtlasErrorPayload(
            type=code,
            message=str(exc) or "Erro de execução",
            details=details,
            hint=exc.hint,
            decision_required=exc.decision_required,
        )

    return engine_execution_error(
        action_id=action_id,
        exc_type=exc.__class__.__name__,
        exc_message=str(exc) or None,
    )
