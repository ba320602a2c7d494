"""
Contrato de Transformer do Atlas DataLake.

Um transformer mapeia datasets nomeados em datasets nomeados:

    transform(tctx, inputs: {nome → DataFrame}, options) → {nome → DataFrame}

e pode declarar um mapeamento de valores de partição:

    transform_partition_values(tctx, options, partition_values) → {pv_in → pv_out} | None

`None` significa identidade.

Transformers 1:1 (`DfTransformer`) são a especialização com uma entrada e
uma saída. Sem `input_id`, consomem o dataset corrente da cadeia (a entrada
principal ou a saída do último transformer 1:1); sem `output_id`, produzem
a saída principal da Action.

Options efetivas de cada transformer, em ordem crescente de precedência:
    options do execution mode → `options` estáticas → `runtime_options`
`runtime_options` são templates resolvidos com dados da run:
    {run_id}, {action_id}, {phase}, {run_started_at}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.partitions import PartitionValues
from atlas_datalake.core.pipeline.types import ExecutionPhase


@dataclass(frozen=True)
class TransformContext:
    action_id: str
    phase: ExecutionPhase
    partition_values: Tuple[PartitionValues, ...]
    main_input_id: str
    main_output_id: str
    current_id: Optional[str] = None
    runtime_data: Optional[Dict[str, str]] = None


def render_template(template: str, values: Mapping[str, Any], *, owner: str) -> str:
    try:
        return template.format_map(dict(values))
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigurationException(
            f"({owner}) template inválido {template!r}: {e}",
            details={"template": template, "available": sorted(values)},
        ) from e


class Transformer:
    type_name = "abstract"

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
        runtime_options: Optional[Dict[str, str]] = None,
    ):
        self.name = name or self.type_name
        self.options = dict(options or {})
        self.runtime_options = dict(runtime_options or {})

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def resolve_options(self, tctx: TransformContext, mode_options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        resolved: Dict[str, Any] = dict(mode_options or {})
        resolved.update(self.options)
        for key, template in self.runtime_options.items():
            resolved[key] = render_template(template, tctx.runtime_data or {}, owner=tctx.action_id)
        return resolved

    def declared_output_ids(self, main_output_id: str) -> List[str]:
        raise NotImplementedError

    def transform(self, tctx: TransformContext, inputs: Dict[str, pd.DataFrame], options: Dict[str, Any]) -> Dict[str, pd.DataFrame]:
        raise NotImplementedError

    def transform_partition_values(
        self,
        tctx: TransformContext,
        options: Dict[str, Any],
        partition_values: Sequence[PartitionValues],
    ) -> Optional[Dict[PartitionValues, PartitionValues]]:
        return None


class DfTransformer(Transformer):
    """Transformer 1:1 (um DataFrame de entrada, um de saída)."""

    def __init__(self, *, input_id: Optional[str] = None, output_id: Optional[str] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.input_id = input_id
        self.output_id = output_id

    def declared_output_ids(self, main_output_id: str) -> List[str]:
        return [self.output_id or main_output_id]

    def source_id(self, current_id: Optional[str]) -> Optional[str]:
        return self.input_id or current_id

    def transform_df(self, tctx: TransformContext, df: pd.DataFrame, options: Dict[str, Any]) -> pd.DataFrame:
        raise NotImplementedError

    def transform(self, tctx, inputs, options):
        source = self.source_id(tctx.current_id)
        if source not in inputs:
            raise ConfigurationException(
                f"({tctx.action_id}) transformer '{self.name}' requer o dataset '{source}', disponíveis: {sorted(inputs)}",
                details={"action_id": tctx.action_id, "transformer": self.name, "input_id": source},
            )
        return {self.declared_output_ids(tctx.main_output_id)[0]: self.transform_df(tctx, inputs[source], options)}
