"""
ExpectationValidator — avaliação de constraints e expectations após a escrita.

Ordem de avaliação:
    1. Constraints (predicados por linha) sobre o dataset escrito
    2. Expectations de escopo Job, no mesmo dataset (a métrica "count" é
       sempre calculada)
    3. Expectations de escopo JobPartition: releitura das partições
       processadas, agrupada pelas colunas de partição
    4. Expectations de escopo All: releitura da tabela inteira
    5. Roteamento por severidade

Chaves do mapa de métricas reportado:
    - `<nome>` para escopos Job e All
    - `<nome>#<v1>#<v2>...` para JobPartition (valores na ordem das colunas)

Decisões arquiteturais:
    - Falhar tarde: todas as verificações rodam antes de qualquer exceção
    - Falhas Error são agregadas em uma única exceção com todas as mensagens
    - Falhas Warn são registradas no log e como warnings da Action
    - Métricas internas (`internal=True`) nunca aparecem no mapa reportado

Limites explícitos:
    - Não decide se a escrita é desfeita (responsabilidade do storage)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from atlas_datalake.compute import pandas_engine
from atlas_datalake.compute.expressions import AggregateExpression
from atlas_datalake.core.exceptions import ConstraintValidationException, ExpectationValidationException
from atlas_datalake.core.partitions import PARTITION_DELIMITER, PartitionValues, distinct
from atlas_datalake.core.pipeline.context import RunContext

from .base import Constraint, Expectation, ExpectationScope, ExpectationSeverity
from .builtin import COUNT_METRIC


def _collect(expectations: Sequence[Expectation], base: Sequence[AggregateExpression] = ()) -> List[AggregateExpression]:
    by_name: Dict[str, AggregateExpression] = {e.name: e for e in base}
    for exp in expectations:
        for agg in exp.aggregate_expressions():
            by_name.setdefault(agg.name, agg)
    return list(by_name.values())


def _public(metrics: Dict[str, Any], expressions: Sequence[AggregateExpression]) -> Dict[str, Any]:
    internal = {e.name for e in expressions if e.internal}
    return {k: v for k, v in metrics.items() if k not in internal}


class ExpectationValidator:
    def __init__(self, *, constraints: Sequence[Constraint] = (), expectations: Sequence[Expectation] = ()):
        self.constraints = list(constraints)
        self.expectations = list(expectations)

    @classmethod
    def for_data_object(cls, data_object: Any) -> "ExpectationValidator":
        return cls(constraints=data_object.constraints, expectations=data_object.expectations)

    def _by_scope(self, scope: ExpectationScope) -> List[Expectation]:
        return [e for e in self.expectations if e.scope == scope]

    # ------------------------------------------------------------------
    # Passos
    # ------------------------------------------------------------------
    def _check_constraints(self, df: pd.DataFrame) -> List[str]:
        failures: List[str] = []
        for c in self.constraints:
            failing = int((~pandas_engine.predicate(df, c.expression)).sum())
            if failing:
                description = f" ({c.description})" if c.description else ""
                failures.append(
                    f"Constraint '{c.name}' failed for {failing} row(s): {c.expression}{description}"
                )
        return failures

    def _partition_count(
        self,
        ctx: RunContext,
        action_id: str,
        data_object: Any,
        df: pd.DataFrame,
        partition_values: Sequence[PartitionValues],
    ) -> int:
        if partition_values:
            n = len(distinct(partition_values))
        else:
            n = len(pandas_engine.partition_values_of(df, data_object.partitions))
        if n == 0:
            message = f"({action_id}) nenhuma partição processada em {data_object.id}; média calculada sobre 1"
            ctx.log(action_id=action_id, level="warning", message=message, data_object_id=data_object.id)
            ctx.add_warning(action_id=action_id, message=message)
        return n

    def _check_group(
        self,
        expectations: Sequence[Expectation],
        raw: Dict[str, Any],
        suffix: str,
        reported: Dict[str, Any],
        results: List[Tuple[Expectation, str]],
        partition_count: Optional[int] = None,
    ) -> None:
        for exp in expectations:
            key = exp.name + suffix
            value = exp.get_value(raw, partition_count=partition_count)
            reported[key] = value
            message = exp.check(key, value)
            if message is not None:
                results.append((exp, message))

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------
    def validate(
        self,
        ctx: RunContext,
        *,
        action_id: str,
        data_object: Any,
        df: pd.DataFrame,
        partition_values: Sequence[PartitionValues] = (),
    ) -> Dict[str, Any]:
        constraint_failures = self._check_constraints(df)
        failed: List[Tuple[Expectation, str]] = []

        # Job
        job = self._by_scope(ExpectationScope.JOB)
        job_exprs = _collect(job, base=[AggregateExpression(COUNT_METRIC, "count(*)")])
        raw = pandas_engine.evaluate(df, job_exprs)
        reported = _public(raw, job_exprs)
        partition_count = None
        if any(e.requires_partition_count for e in job):
            partition_count = self._partition_count(ctx, action_id, data_object, df, partition_values)
        self._check_group(job, raw, "", reported, failed, partition_count)

        scoped = [e for e in self.expectations if e.scope != ExpectationScope.JOB]
        if any(e.name == COUNT_METRIC for e in scoped):
            reported.pop(COUNT_METRIC, None)

        # JobPartition
        job_partition = self._by_scope(ExpectationScope.JOB_PARTITION)
        if job_partition:
            exprs = _collect(job_partition)
            if data_object.is_partitioned:
                # sem valores de partição: apenas as partições presentes nos dados escritos
                processed = list(partition_values) or pandas_engine.partition_values_of(df, data_object.partitions)
                grouped = {}
                if processed:
                    written = data_object.read(ctx, processed)
                    grouped = pandas_engine.evaluate_grouped(written, exprs, data_object.partitions)
                for pv, group_raw in grouped.items():
                    suffix = PARTITION_DELIMITER + pv.key_string(data_object.partitions)
                    self._check_group(job_partition, group_raw, suffix, reported, failed)
            else:
                written = data_object.read(ctx, partition_values)
                self._check_group(job_partition, pandas_engine.evaluate(written, exprs), "", reported, failed)

        # All
        whole = self._by_scope(ExpectationScope.ALL)
        if whole:
            exprs = _collect(whole)
            table = data_object.read(ctx)
            self._check_group(whole, pandas_engine.evaluate(table, exprs), "", reported, failed)

        errors = [m for e, m in failed if e.failed_severity == ExpectationSeverity.ERROR]
        for exp, message in failed:
            if exp.failed_severity == ExpectationSeverity.WARN:
                ctx.log(
                    action_id=action_id,
                    level="warning",
                    message=message,
                    data_object_id=data_object.id,
                    expectation=exp.name,
                )
                ctx.add_warning(action_id=action_id, message=message)

        if constraint_failures or errors:
            failures = constraint_failures + errors
            exc_type = ConstraintValidationException if constraint_failures else ExpectationValidationException
            raise exc_type(
                f"({action_id}) validação de {data_object.id} falhou: {len(failures)} falha(s)",
                details={
                    "action_id": action_id,
                    "data_object_id": data_object.id,
                    "failures": failures,
                    "metrics": reported,
                },
            )

        ctx.log(
            action_id=action_id,
            level="info",
            message="validation passed",
            data_object_id=data_object.id,
            metrics=reported,
        )
        return reported
