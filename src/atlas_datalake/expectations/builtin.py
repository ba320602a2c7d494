"""
Expectations embutidas.

- AggregateExpectation: expressão de agregação arbitrária
- FractionExpectation: fração de linhas que atendem `count_condition`,
  opcionalmente relativa às linhas que atendem `global_condition`
- CountExpectation: número de linhas
- AvgCountPerPartitionExpectation: média de linhas por partição processada
  (sempre escopo Job)
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from atlas_datalake.compute.expressions import AggregateExpression

from .base import Expectation, ExpectationScope


COUNT_METRIC = "count"


class AggregateExpectation(Expectation):
    type_name = "aggregate"

    def __init__(self, *, name: str, aggregate_expression: str, **kwargs: Any):
        super().__init__(name=name, **kwargs)
        self.aggregate_expression = AggregateExpression(name, aggregate_expression)

    def aggregate_expressions(self) -> List[AggregateExpression]:
        return [self.aggregate_expression]


class FractionExpectation(Expectation):
    type_name = "fraction"
    metric_description = "pct"

    def __init__(self, *, name: str, count_condition: str, global_condition: Optional[str] = None, **kwargs: Any):
        super().__init__(name=name, **kwargs)
        self.count_condition = count_condition
        self.global_condition = global_condition

    @property
    def total_name(self) -> str:
        return self.name + "Total"

    def aggregate_expressions(self) -> List[AggregateExpression]:
        if self.global_condition:
            matching = f"count_if(({self.global_condition}) & ({self.count_condition}))"
            total = f"count_if({self.global_condition})"
        else:
            matching = f"count_if({self.count_condition})"
            total = "count(*)"
        return [
            AggregateExpression(self.name, matching),
            AggregateExpression(self.total_name, total, internal=True),
        ]

    def get_value(self, metrics: Mapping[str, Any], *, partition_count: Optional[int] = None) -> Any:
        total = metrics.get(self.total_name) or 0
        if total == 0:
            return None
        return metrics.get(self.name, 0) / total


class CountExpectation(Expectation):
    type_name = "count"
    metric_description = "count"

    def __init__(self, *, name: str = COUNT_METRIC, **kwargs: Any):
        super().__init__(name=name, **kwargs)

    def aggregate_expressions(self) -> List[AggregateExpression]:
        # a contagem de linhas do Job já é sempre calculada com o nome "count"
        if self.scope == ExpectationScope.JOB and self.name == COUNT_METRIC:
            return []
        return [AggregateExpression(self.name, "count(*)")]


class AvgCountPerPartitionExpectation(Expectation):
    type_name = "avg_count_per_partition"
    metric_description = "avgCount"
    requires_partition_count = True

    def __init__(self, *, name: str, **kwargs: Any):
        kwargs.pop("scope", None)
        super().__init__(name=name, scope=ExpectationScope.JOB, **kwargs)

    @property
    def count_name(self) -> str:
        return self.name + "Count"

    def aggregate_expressions(self) -> List[AggregateExpression]:
        return [AggregateExpression(self.count_name, "count(*)", internal=True)]

    def get_value(self, metrics: Mapping[str, Any], *, partition_count: Optional[int] = None) -> Any:
        count = metrics.get(self.count_name) or 0
        return count // max(partition_count or 0, 1)
