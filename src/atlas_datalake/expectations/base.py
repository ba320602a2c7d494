"""
Contratos de validação de qualidade de dados.

Dois níveis:
    - Constraint: predicado por linha; qualquer linha que falha é falha fatal
    - Expectation: verificação sobre métricas agregadas, com escopo
      (Job, JobPartition, All) e severidade (Error, Warn)

Uma expectation:
    1. declara as expressões de agregação de que precisa (`aggregate_expressions`)
    2. a partir das métricas avaliadas, calcula seu valor (`get_value`)
    3. compara o valor com a condição declarada (`check`)

Expressões marcadas como `internal` (ex.: total de uma fração) entram no
cálculo mas nunca no mapa de métricas reportado.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from atlas_datalake.compute.expressions import AggregateExpression
from atlas_datalake.core.exceptions import ConfigurationException

from .conditions import parse_condition


class ExpectationScope(str, Enum):
    """
    Granularidade da métrica.

    JOB: dados escritos nesta run (mesmo passo da escrita)
    JOB_PARTITION: dados desta run relidos e agrupados por partição
    ALL: tabela inteira relida após a escrita
    """
    JOB = "job"
    JOB_PARTITION = "job_partition"
    ALL = "all"


class ExpectationSeverity(str, Enum):
    ERROR = "error"
    WARN = "warn"


@dataclass(frozen=True)
class Constraint:
    name: str
    expression: str
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationException("constraint name must be a non-empty string")
        if not isinstance(self.expression, str) or not self.expression.strip():
            raise ConfigurationException(
                f"({self.name}) constraint expression must be a non-empty string",
                details={"constraint": self.name},
            )


class Expectation:
    type_name = "abstract"
    metric_description = "value"
    requires_partition_count = False

    def __init__(
        self,
        *,
        name: str,
        expectation: Optional[str] = None,
        description: Optional[str] = None,
        scope: Union[str, ExpectationScope] = ExpectationScope.JOB,
        failed_severity: Union[str, ExpectationSeverity] = ExpectationSeverity.ERROR,
    ):
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationException("expectation name must be a non-empty string")
        self.name = name
        self.description = description
        self.scope = ExpectationScope(scope)
        self.failed_severity = ExpectationSeverity(failed_severity)
        self.condition = parse_condition(expectation, owner=name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, scope={self.scope.value})"

    def aggregate_expressions(self) -> List[AggregateExpression]:
        raise NotImplementedError

    def get_value(self, metrics: Mapping[str, Any], *, partition_count: Optional[int] = None) -> Any:
        return metrics.get(self.name)

    def check(self, key: str, value: Any) -> Optional[str]:
        """Retorna a mensagem de falha, ou None se a condição é atendida."""
        if self.condition is None or self.condition.holds(value):
            return None
        return (
            f"Expectation '{key}' failed with {self.metric_description}:{value} "
            f"expectation:{self.condition.text}"
        )
