"""
Construção do pipeline a partir da configuração resolvida.

`build_pipeline(config)` transforma as seções `data_objects` e `actions`
em instâncias, resolvendo cada `type` pelos registries de plugins:

    DATA_OBJECT_TYPES     memory, csv
    EXPECTATION_TYPES     aggregate, fraction, count, avg_count_per_partition
    TRANSFORMER_TYPES     function, function_df, filter, additional_columns, select_columns
    EXECUTION_MODE_TYPES  partition_diff, file_incremental_move, data_object_state_incremental, custom
    ACTION_TYPES          dataframe, copy

Decisões arquiteturais:
    - Nenhuma carga por nome de classe ou reflexão: apenas tags registradas
    - Lógica customizada é referenciada por chave de CUSTOM_LOGIC
    - Parâmetros inválidos (TypeError do construtor) viram erro de configuração

Invariantes:
    - Toda referência a data object precisa existir em `data_objects`
    - Erros de construção de Actions (saídas não cobertas pelos transformers)
      surgem aqui, antes de qualquer execução
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping

from atlas_datalake.actions.action import DataFrameAction
from atlas_datalake.actions.copy import CopyAction
from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.pipeline.registry import ActionRegistry, PluginRegistry
from atlas_datalake.dataobjects.base import DataObject
from atlas_datalake.dataobjects.files import CsvFileDataObject
from atlas_datalake.dataobjects.memory import InMemoryDataObject
from atlas_datalake.execution import (
    CustomMode,
    DataObjectStateIncrementalMode,
    FileIncrementalMoveMode,
    PartitionDiffMode,
)
from atlas_datalake.expectations import (
    AggregateExpectation,
    AvgCountPerPartitionExpectation,
    Constraint,
    CountExpectation,
    FractionExpectation,
)
from atlas_datalake.transformers import (
    AdditionalColumnsTransformer,
    FilterTransformer,
    FunctionDfTransformer,
    FunctionTransformer,
    SelectColumnsTransformer,
)


DATA_OBJECT_TYPES = PluginRegistry("data_object")
EXPECTATION_TYPES = PluginRegistry("expectation")
TRANSFORMER_TYPES = PluginRegistry("transformer")
EXECUTION_MODE_TYPES = PluginRegistry("execution_mode")
ACTION_TYPES = PluginRegistry("action")

DATA_OBJECT_TYPES.register("memory", InMemoryDataObject)
DATA_OBJECT_TYPES.register("csv", CsvFileDataObject)

EXPECTATION_TYPES.register("aggregate", AggregateExpectation)
EXPECTATION_TYPES.register("fraction", FractionExpectation)
EXPECTATION_TYPES.register("count", CountExpectation)
EXPECTATION_TYPES.register("avg_count_per_partition", AvgCountPerPartitionExpectation)

TRANSFORMER_TYPES.register("function", FunctionTransformer)
TRANSFORMER_TYPES.register("function_df", FunctionDfTransformer)
TRANSFORMER_TYPES.register("filter", FilterTransformer)
TRANSFORMER_TYPES.register("additional_columns", AdditionalColumnsTransformer)
TRANSFORMER_TYPES.register("select_columns", SelectColumnsTransformer)

EXECUTION_MODE_TYPES.register("partition_diff", PartitionDiffMode)
EXECUTION_MODE_TYPES.register("file_incremental_move", FileIncrementalMoveMode)
EXECUTION_MODE_TYPES.register("data_object_state_incremental", DataObjectStateIncrementalMode)
EXECUTION_MODE_TYPES.register("custom", CustomMode)


@dataclass
class Pipeline:
    data_objects: Dict[str, DataObject] = field(default_factory=dict)
    actions: List[Any] = field(default_factory=list)


def _split_type(registry: PluginRegistry, owner: str, cfg: Any) -> tuple:
    if not isinstance(cfg, Mapping):
        raise ConfigurationException(
            f"({owner}) configuração de {registry.kind} deve ser um mapa",
            details={"owner": owner, "received": type(cfg).__name__},
        )
    params = dict(cfg)
    tag = params.pop("type", None)
    if tag is None:
        raise ConfigurationException(
            f"({owner}) configuração de {registry.kind} sem 'type'",
            details={"owner": owner, "available": registry.tags()},
        )
    return registry.get(tag), params


def _construct(owner: str, builder: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    try:
        return builder(*args, **kwargs)
    except TypeError as e:
        raise ConfigurationException(
            f"({owner}) parâmetros inválidos: {e}",
            details={"owner": owner, "params": sorted(kwargs)},
        ) from e


def build_data_object(data_object_id: str, cfg: Mapping[str, Any]) -> DataObject:
    builder, params = _split_type(DATA_OBJECT_TYPES, data_object_id, cfg)
    params["constraints"] = [
        _construct(data_object_id, Constraint, **c) for c in params.get("constraints", []) or []
    ]
    expectations = []
    for exp_cfg in params.get("expectations", []) or []:
        exp_builder, exp_params = _split_type(EXPECTATION_TYPES, data_object_id, exp_cfg)
        expectations.append(_construct(data_object_id, exp_builder, **exp_params))
    params["expectations"] = expectations
    return _construct(data_object_id, builder, data_object_id, **params)


def _resolve(action_id: str, data_objects: Mapping[str, DataObject], ids: Any) -> List[DataObject]:
    if isinstance(ids, str):
        ids = [ids]
    unknown = [i for i in ids if i not in data_objects]
    if unknown:
        raise ConfigurationException(
            f"({action_id}) data objects desconhecidos: {unknown}",
            details={"action_id": action_id, "known": sorted(data_objects)},
        )
    return [data_objects[i] for i in ids]


def _action_common(action_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
    params.pop("enabled", None)
    transformers = []
    for t_cfg in params.pop("transformers", []) or []:
        t_builder, t_params = _split_type(TRANSFORMER_TYPES, action_id, t_cfg)
        transformers.append(_construct(action_id, t_builder, **t_params))
    params["transformers"] = transformers

    mode_cfg = params.pop("execution_mode", None)
    if mode_cfg is not None:
        m_builder, m_params = _split_type(EXECUTION_MODE_TYPES, action_id, mode_cfg)
        params["execution_mode"] = _construct(action_id, m_builder, **m_params)
    return params


@ACTION_TYPES.register("dataframe")
def _build_dataframe_action(action_id: str, params: Dict[str, Any], data_objects: Mapping[str, DataObject]) -> Any:
    params = _action_common(action_id, params)
    inputs = _resolve(action_id, data_objects, params.pop("input_ids", []))
    outputs = _resolve(action_id, data_objects, params.pop("output_ids", []))
    return _construct(action_id, DataFrameAction, action_id, inputs=inputs, outputs=outputs, **params)


@ACTION_TYPES.register("copy")
def _build_copy_action(action_id: str, params: Dict[str, Any], data_objects: Mapping[str, DataObject]) -> Any:
    params = _action_common(action_id, params)
    for key in ("input_id", "output_id"):
        if key not in params:
            raise ConfigurationException(f"({action_id}) copy requer '{key}'", details={"action_id": action_id})
    [source] = _resolve(action_id, data_objects, params.pop("input_id"))
    [target] = _resolve(action_id, data_objects, params.pop("output_id"))
    return _construct(action_id, CopyAction, action_id, input=source, output=target, **params)


def build_pipeline(config: Mapping[str, Any]) -> Pipeline:
    pipeline = Pipeline()
    for do_id, do_cfg in (config.get("data_objects", {}) or {}).items():
        pipeline.data_objects[do_id] = build_data_object(do_id, do_cfg)

    registry = ActionRegistry()
    for action_id, action_cfg in (config.get("actions", {}) or {}).items():
        builder, params = _split_type(ACTION_TYPES, action_id, action_cfg)
        registry.add(builder(action_id, params, pipeline.data_objects))
    pipeline.actions = registry.list()
    return pipeline
