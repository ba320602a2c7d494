"""
DataFrameAction — Action muitos:muitos baseada em DataFrames.

Fluxo de uma fase (init e exec compartilham o mesmo caminho):
    1. Mapeia os SubFeeds recebidos para as entradas declaradas
    2. Entradas em `input_ids_to_ignore_filter` perdem skip e partições
    3. Aplica o execution mode à entrada principal
       (NoDataToProcess → PhaseResult.no_data)
    4. Lê as entradas restritas às partições calculadas
       (na fase init, apenas o schema)
    5. Aplica a cadeia de transformers
    6. Calcula as partições de saída (execution mode ou mapeamento da cadeia)
    7. Na fase exec: escreve cada saída e valida constraints/expectations
    8. Emite um SubFeed por saída declarada

Decisões arquiteturais:
    - Skip é decidido em pre_init/pre_exec pela condição de execução
    - A célula de estado do execution mode pertence à Action
    - Entradas recursivas só existem para a cadeia após a primeira escrita

Invariantes:
    - Saídas declaradas são sempre produzidas pela cadeia (validado na construção)
    - init nunca escreve
    - Os valores de partição emitidos por init e exec coincidem para as mesmas entradas
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from atlas_datalake.compute import pandas_engine
from atlas_datalake.core.exceptions import (
    ConfigurationException,
    ConstraintValidationException,
    ExpectationValidationException,
    ValidationException,
)
from atlas_datalake.core.partitions import PartitionValues, distinct, get_partition_values_keys
from atlas_datalake.core.pipeline.condition import Condition
from atlas_datalake.core.pipeline.context import RunContext
from atlas_datalake.core.pipeline.subfeed import SubFeed
from atlas_datalake.core.pipeline.types import ActionState, ExecutionPhase, PhaseResult
from atlas_datalake.dataobjects.base import DataObject, SaveMode
from atlas_datalake.execution.base import ExecutionMode, ExecutionModeResult, ExecutionModeState, NoDataToProcess
from atlas_datalake.expectations.validator import ExpectationValidator
from atlas_datalake.transformers.base import TransformContext, Transformer
from atlas_datalake.transformers.chain import TransformerChain


def _unique_ids(action_id: str, kind: str, data_objects: Sequence[DataObject]) -> Dict[str, DataObject]:
    out: Dict[str, DataObject] = {}
    for do in data_objects:
        if do.id in out:
            raise ConfigurationException(
                f"({action_id}) {kind} duplicada: {do.id}",
                details={"action_id": action_id, "data_object_id": do.id},
            )
        out[do.id] = do
    return out


class DataFrameAction:
    type_name = "dataframe"

    def __init__(
        self,
        id: str,
        *,
        inputs: Sequence[DataObject],
        outputs: Sequence[DataObject],
        transformers: Sequence[Transformer] = (),
        execution_mode: Optional[ExecutionMode] = None,
        execution_condition: Optional[Union[Condition, str, Mapping[str, Any]]] = None,
        input_ids_to_ignore_filter: Sequence[str] = (),
        main_input_id: Optional[str] = None,
        main_output_id: Optional[str] = None,
        recursive_input_ids: Sequence[str] = (),
        save_mode: Optional[Union[str, SaveMode]] = None,
        copy_to_main_output: bool = False,
    ):
        if not isinstance(id, str) or not id.strip():
            raise ConfigurationException("action id must be a non-empty string")
        self.id = id

        if not inputs or not outputs:
            raise ConfigurationException(
                f"({id}) action requer ao menos uma entrada e uma saída",
                details={"action_id": id},
            )
        self._inputs = _unique_ids(id, "entrada", inputs)
        self._outputs = _unique_ids(id, "saída", outputs)

        self.main_input_id = main_input_id or next(iter(self._inputs))
        self.main_output_id = main_output_id or next(iter(self._outputs))
        if self.main_input_id not in self._inputs:
            raise ConfigurationException(
                f"({id}) main_input_id '{self.main_input_id}' não é entrada da action",
                details={"action_id": id, "input_ids": self.input_ids},
            )
        if self.main_output_id not in self._outputs:
            raise ConfigurationException(
                f"({id}) main_output_id '{self.main_output_id}' não é saída da action",
                details={"action_id": id, "output_ids": self.output_ids},
            )

        self._recursive_input_ids = list(recursive_input_ids)
        wrong = [r for r in self._recursive_input_ids if r not in self._outputs or r in self._inputs]
        if wrong:
            raise ConfigurationException(
                f"({id}) entradas recursivas devem ser saídas da action: {wrong}",
                details={"action_id": id, "recursive_input_ids": self._recursive_input_ids},
            )

        self.input_ids_to_ignore_filter = list(input_ids_to_ignore_filter)
        unknown = [i for i in self.input_ids_to_ignore_filter if i not in self._inputs]
        if unknown:
            raise ConfigurationException(
                f"({id}) input_ids_to_ignore_filter referencia entradas inexistentes: {unknown}",
                details={"action_id": id, "input_ids": self.input_ids},
            )

        if execution_condition is None or isinstance(execution_condition, Condition):
            self.execution_condition = execution_condition
        else:
            self.execution_condition = Condition.from_config(execution_condition)

        self.execution_mode = execution_mode
        self.save_mode = SaveMode(save_mode) if save_mode is not None else None

        self.chain = TransformerChain(transformers, copy_current_to_main_output=copy_to_main_output)
        self.chain.validate(
            action_id=id,
            input_ids=self.input_ids,
            output_ids=self.output_ids,
            main_input_id=self.main_input_id,
            main_output_id=self.main_output_id,
            recursive_input_ids=self._recursive_input_ids,
        )

        self.state = ActionState.CREATED
        self._mode_state = ExecutionModeState()
        self._runtime_metrics: Dict[str, Dict[str, Any]] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, inputs={self.input_ids!r}, outputs={self.output_ids!r})"

    @property
    def input_ids(self) -> List[str]:
        return list(self._inputs)

    @property
    def output_ids(self) -> List[str]:
        return list(self._outputs)

    @property
    def recursive_input_ids(self) -> List[str]:
        return list(self._recursive_input_ids)

    @property
    def inputs(self) -> List[DataObject]:
        return list(self._inputs.values())

    @property
    def outputs(self) -> List[DataObject]:
        return list(self._outputs.values())

    # ------------------------------------------------------------------
    # Auxiliares
    # ------------------------------------------------------------------
    def _map_sub_feeds(self, sub_feeds: Sequence[SubFeed]) -> Dict[str, SubFeed]:
        by_id = {sf.data_object_id: sf for sf in sub_feeds}
        missing = [i for i in self.input_ids if i not in by_id]
        if missing:
            raise ConfigurationException(
                f"({self.id}) SubFeeds ausentes para as entradas {missing}",
                details={"action_id": self.id, "received": sorted(by_id)},
            )
        return {i: by_id[i] for i in self.input_ids}

    def _skipped_outputs(self) -> List[SubFeed]:
        return [SubFeed(o, is_skipped=True) for o in self.output_ids]

    def _transform_context(self, ctx: RunContext, partition_values: Sequence[PartitionValues]) -> TransformContext:
        return TransformContext(
            action_id=self.id,
            phase=ctx.phase,
            partition_values=tuple(partition_values),
            main_input_id=self.main_input_id,
            main_output_id=self.main_output_id,
            runtime_data=ctx.runtime_data(self.id),
        )

    def _check_condition(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult:
        by_id = self._map_sub_feeds(sub_feeds)
        if self.execution_condition is not None:
            proceed = self.execution_condition.evaluate(by_id)
            reason = f"({self.id}) condição de execução falsa: {self.execution_condition.expression}"
        else:
            relevant = [sf for i, sf in by_id.items() if i not in self.input_ids_to_ignore_filter]
            proceed = not relevant or any(not sf.is_skipped for sf in relevant)
            reason = f"({self.id}) todas as entradas foram puladas"

        if proceed:
            return PhaseResult.proceed()
        ctx.log(action_id=self.id, level="info", message="action skipped", reason=reason)
        return PhaseResult.skip(self._skipped_outputs(), reason)

    def _input_partition_values(
        self,
        input_id: str,
        sub_feed: SubFeed,
        main_partition_values: Sequence[PartitionValues],
    ) -> List[PartitionValues]:
        if input_id == self.main_input_id:
            return list(main_partition_values)
        data_object = self._inputs[input_id]
        if main_partition_values and get_partition_values_keys(main_partition_values) <= set(data_object.partitions):
            return list(main_partition_values)
        if self.execution_mode is not None:
            return []
        return list(sub_feed.partition_values)

    def _read_input(
        self,
        ctx: RunContext,
        input_id: str,
        sub_feed: SubFeed,
        partition_values: List[PartitionValues],
        mode_result: Optional[ExecutionModeResult],
    ) -> pd.DataFrame:
        data_object = self._inputs[input_id]
        data_object.validate_partition_values(partition_values)

        if input_id == self.main_input_id and mode_result is not None and mode_result.file_refs is not None:
            if not ctx.is_exec:
                return data_object.schema_frame()
            return data_object.read_files(mode_result.file_refs)

        if sub_feed.data is not None and not sub_feed.is_dag_start:
            df = sub_feed.data
            if partition_values:
                df = pandas_engine.filter_partitions(df, partition_values).reset_index(drop=True)
            return df

        return data_object.read(ctx, partition_values)

    def _raise_validation_errors(self, errors: Sequence[ValidationException]) -> None:
        """Uma única exceção com as falhas de todas as saídas validadas."""
        if len(errors) == 1:
            raise errors[0]
        failures = [message for exc in errors for message in exc.failures]
        exc_type = (
            ConstraintValidationException
            if any(isinstance(e, ConstraintValidationException) for e in errors)
            else ExpectationValidationException
        )
        raise exc_type(
            f"({self.id}) validação de {len(errors)} saídas falhou: {len(failures)} falha(s)",
            details={
                "action_id": self.id,
                "data_object_ids": [e.details.get("data_object_id") for e in errors],
                "failures": failures,
                "metrics": {e.details.get("data_object_id"): e.details.get("metrics", {}) for e in errors},
            },
        )

    # ------------------------------------------------------------------
    # Fases
    # ------------------------------------------------------------------
    def pre_init(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult:
        return self._check_condition(ctx, sub_feeds)

    def init(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult:
        result = self._run(ctx.for_phase(ExecutionPhase.INIT), sub_feeds)
        self.state = ActionState.INITIALIZED
        return result

    def pre_exec(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult:
        return self._check_condition(ctx, sub_feeds)

    def exec(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult:
        self._runtime_metrics = {}
        result = self._run(ctx.for_phase(ExecutionPhase.EXEC), sub_feeds)
        self.state = ActionState.EXECUTED
        return result

    def post_exec(self, ctx: RunContext, input_sub_feeds: Sequence[SubFeed], output_sub_feeds: Sequence[SubFeed]) -> None:
        if self.execution_mode is not None:
            self.execution_mode.post_exec(
                ctx=ctx,
                action_id=self.id,
                main_input=self._inputs[self.main_input_id],
                main_output=self._outputs[self.main_output_id],
                state=self._mode_state,
            )
        self.state = ActionState.COMPLETED

    def reset(self) -> None:
        if self.execution_mode is not None:
            self.execution_mode.reset(
                action_id=self.id,
                main_input=self._inputs[self.main_input_id],
                state=self._mode_state,
            )
        self._mode_state.clear()
        self._runtime_metrics = {}
        self.state = ActionState.CREATED

    def get_runtime_metrics(self) -> Dict[str, Dict[str, Any]]:
        return {k: dict(v) for k, v in self._runtime_metrics.items()}

    # ------------------------------------------------------------------
    # Caminho comum init/exec
    # ------------------------------------------------------------------
    def _run(self, ctx: RunContext, sub_feeds: Sequence[SubFeed]) -> PhaseResult:
        by_id = self._map_sub_feeds(sub_feeds)
        for input_id in self.input_ids_to_ignore_filter:
            by_id[input_id] = by_id[input_id].clear_skipped().clear_partition_values()

        main_sub_feed = by_id[self.main_input_id]
        main_input = self._inputs[self.main_input_id]
        main_output = self._outputs[self.main_output_id]

        mode_result: Optional[ExecutionModeResult] = None
        if self.execution_mode is not None:
            outcome = self.execution_mode.apply(
                ctx=ctx,
                action_id=self.id,
                main_input=main_input,
                main_output=main_output,
                sub_feed=main_sub_feed,
                state=self._mode_state,
                partition_values_transform=lambda pvs: self.chain.partition_values_mapping(
                    self._transform_context(ctx, pvs), pvs
                ),
            )
            if isinstance(outcome, NoDataToProcess):
                ctx.log(action_id=self.id, level="info", message="no data to process", reason=outcome.reason)
                return PhaseResult.no_data(self._skipped_outputs(), outcome.reason)
            mode_result = outcome

        if mode_result is not None:
            main_pvs = list(mode_result.input_partition_values)
            mode_options = dict(mode_result.options)
        else:
            main_pvs = list(main_sub_feed.partition_values)
            mode_options = {}

        inputs: Dict[str, pd.DataFrame] = {}
        for input_id, sub_feed in by_id.items():
            pvs = self._input_partition_values(input_id, sub_feed, main_pvs)
            inputs[input_id] = self._read_input(ctx, input_id, sub_feed, pvs, mode_result)

        for recursive_id in self._recursive_input_ids:
            recursive = self._outputs[recursive_id]
            if recursive.has_data():
                inputs[recursive_id] = recursive.read(ctx)

        tctx = self._transform_context(ctx, main_pvs)
        produced = self.chain.apply(tctx, inputs, mode_options)

        if mode_result is not None and mode_result.output_partition_values is not None:
            output_pvs = list(mode_result.output_partition_values)
        else:
            mapping = self.chain.partition_values_mapping(tctx, main_pvs, mode_options)
            output_pvs = distinct(mapping[pv] for pv in main_pvs)

        out_sub_feeds: List[SubFeed] = []
        validation_errors: List[ValidationException] = []
        for output_id in self.output_ids:
            data_object = self._outputs[output_id]
            df = produced[output_id]
            sub_feed = SubFeed(output_id, partition_values=tuple(output_pvs)).filter_partition_values(
                data_object.partitions
            )
            if ctx.is_exec:
                data_object.write(ctx, df, sub_feed.partition_values, save_mode=self.save_mode, action_id=self.id)
                validator = ExpectationValidator.for_data_object(data_object)
                try:
                    self._runtime_metrics[output_id] = validator.validate(
                        ctx,
                        action_id=self.id,
                        data_object=data_object,
                        df=df,
                        partition_values=sub_feed.partition_values,
                    )
                except ValidationException as exc:
                    self._runtime_metrics[output_id] = dict(exc.details.get("metrics", {}))
                    validation_errors.append(exc)
            out_sub_feeds.append(sub_feed.with_data(df))

        if validation_errors:
            self._raise_validation_errors(validation_errors)

        ctx.log(
            action_id=self.id,
            level="info",
            message="action processed",
            outputs=self.output_ids,
            partition_values=[str(pv) for pv in output_pvs],
        )
        return PhaseResult.proceed(out_sub_feeds)
