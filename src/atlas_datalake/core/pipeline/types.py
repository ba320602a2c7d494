# src/atlas_datalake/core/pipeline/types.py
"""
Tipos canônicos do pipeline do Atlas DataLake.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre Actions, Engine e camadas de rastreabilidade.

Componentes principais:
    - ExecutionPhase → fase da run (init = dry-run, exec = execução real)
    - ActionState    → máquina de estados de uma Action
    - PhaseStatus    → resultado tagueado de uma chamada de fase (PROCEED | SKIP | NO_DATA)
    - PhaseResult    → resultado imutável de uma fase, com os SubFeeds de saída
    - ActionStatus   → estado final de uma Action no Engine
    - ActionResult   → resultado imutável consolidado pelo Engine

Princípios fundamentais:
    - Skip e no-data são sinais tipados, não exceções
    - Tipos são estáveis e serializáveis
    - Nenhuma lógica de execução vive neste módulo

Invariantes:
    - Enums possuem valores textuais canônicos
    - Resultados são imutáveis

Limites explícitos:
    - Não executa Actions
    - Não planeja pipelines
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .subfeed import SubFeed


class ExecutionPhase(str, Enum):
    """
    Fase de execução de uma run.

    - INIT: dry-run. Calcula partições e schemas sem escrita física.
    - EXEC: execução real. Escreve saídas e valida expectations.

    Invariantes:
        - init e exec compartilham o mesmo caminho lógico
    """
    INIT = "init"
    EXEC = "exec"


class ActionState(str, Enum):
    """
    Estados de uma Action: created → initialized → executed → completed.

    `reset()` retorna a Action para `created`.
    """
    CREATED = "created"
    INITIALIZED = "initialized"
    EXECUTED = "executed"
    COMPLETED = "completed"


class PhaseStatus(str, Enum):
    """
    Resultado tagueado de uma chamada de fase.

    - PROCEED: a Action deve seguir para a próxima fase
    - SKIP: condição de execução falsa (skip-and-stop), não é erro
    - NO_DATA: o execution mode não encontrou nada a processar, não é erro

    O Engine trata SKIP e NO_DATA como "nenhum processamento ocorreu":
    a run não falha e os SubFeeds de saída são propagados como skipped.
    """
    PROCEED = "proceed"
    SKIP = "skip"
    NO_DATA = "no_data"


@dataclass(frozen=True)
class PhaseResult:
    """Resultado imutável de uma fase de Action."""

    status: PhaseStatus
    sub_feeds: Tuple[SubFeed, ...] = ()
    reason: Optional[str] = None

    @classmethod
    def proceed(cls, sub_feeds: Optional[List[SubFeed]] = None) -> "PhaseResult":
        return cls(PhaseStatus.PROCEED, tuple(sub_feeds or ()))

    @classmethod
    def skip(cls, sub_feeds: List[SubFeed], reason: str) -> "PhaseResult":
        return cls(PhaseStatus.SKIP, tuple(sub_feeds), reason)

    @classmethod
    def no_data(cls, sub_feeds: List[SubFeed], reason: str) -> "PhaseResult":
        return cls(PhaseStatus.NO_DATA, tuple(sub_feeds), reason)

    @property
    def is_proceed(self) -> bool:
        return self.status == PhaseStatus.PROCEED

    def sub_feed(self, data_object_id: str) -> SubFeed:
        for sf in self.sub_feeds:
            if sf.data_object_id == data_object_id:
                return sf
        raise KeyError(data_object_id)


class ActionStatus(str, Enum):
    """
    Estados finais possíveis de uma Action dentro do Engine.

    - SUCCESS: executada com sucesso
    - SKIPPED: skip-and-stop, no-data, desabilitada por config ou dependência falha
    - FAILED: interrompida por erro
    """
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ActionResult:
    """
    Resultado imutável da execução de uma Action consolidado pelo Engine.

    Campos:
        - action_id: identificador da Action
        - status: estado final
        - summary: resumo textual
        - metrics: métricas de runtime por data object de saída
        - warnings: avisos não fatais coletados no RunContext
        - payload: dados adicionais (ex.: `error`, `phase_status`)
    """
    action_id: str
    status: ActionStatus
    summary: str
    metrics: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)
