"""
CustomMode — delega o cálculo incremental a lógica plugável.

A lógica é referenciada por chave registrada em `CUSTOM_LOGIC` (ou passada
como callable) e chamada com argumentos nomeados:

    logic(
        action_id=...,
        options=...,                 # options estáticas do modo
        given_partition_values=...,  # valores de partição do SubFeed
        is_dag_start=...,
        input_partitions=...,        # partições existentes da entrada principal
        output_partitions=...,       # partições existentes da saída principal
    ) -> ExecutionModeResult | NoDataToProcess | None

`None` significa que o modo não restringe nada nesta run.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Union

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.pipeline.registry import resolve_logic

from .base import ExecutionMode, ExecutionModeResult, NoDataToProcess


class CustomMode(ExecutionMode):
    type_name = "custom"

    def __init__(self, *, logic: Union[str, Callable[..., Any]], options: Optional[Dict[str, Any]] = None):
        self.logic = resolve_logic(logic)
        self.options = dict(options or {})

    def apply(self, *, ctx, action_id, main_input, main_output, sub_feed, state, partition_values_transform=None):
        result = self.logic(
            action_id=action_id,
            options=dict(self.options),
            given_partition_values=list(sub_feed.partition_values),
            is_dag_start=sub_feed.is_dag_start,
            input_partitions=main_input.list_partitions(),
            output_partitions=main_output.list_partitions(),
        )
        if result is None or isinstance(result, (ExecutionModeResult, NoDataToProcess)):
            return result
        raise ConfigurationException(
            f"({action_id}) lógica de CustomMode retornou tipo inválido: {type(result).__name__}",
            details={"action_id": action_id, "expected": "ExecutionModeResult | NoDataToProcess | None"},
        )
