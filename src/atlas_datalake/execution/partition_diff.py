"""
PartitionDiffMode — processa apenas partições da entrada ausentes na saída.

Algoritmo:
    1. Partições de entrada I: valores de partição recebidos do upstream,
       ou listados no data object quando o SubFeed é início do DAG
    2. Opcionalmente traduz I para a granularidade da saída com o mapeamento
       de valores de partição da cadeia de transformers
    3. Projeta I e as partições existentes da saída O nas colunas comparadas
    4. missing = I − O; vazio → NoDataToProcess

Opções:
    - partition_col_nb: compara apenas as n primeiras colunas de partição da saída
    - nb_of_partition_values_per_run: limita a n partições de saída (ordem crescente)
    - apply_partition_values_transform: aplica o mapeamento dos transformers antes do diff

Invariantes:
    - Resultado independe da ordem de listagem (semântica de conjunto)
    - Entrada e saída principais precisam ser particionadas
"""

from __future__ import annotations

from typing import Dict, List, Optional

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.partitions import PartitionValues, distinct, sort_partition_values

from .base import ExecutionMode, ExecutionModeResult, NoDataToProcess


class PartitionDiffMode(ExecutionMode):
    type_name = "partition_diff"

    def __init__(
        self,
        *,
        partition_col_nb: Optional[int] = None,
        nb_of_partition_values_per_run: Optional[int] = None,
        apply_partition_values_transform: bool = False,
    ):
        for name, value in (
            ("partition_col_nb", partition_col_nb),
            ("nb_of_partition_values_per_run", nb_of_partition_values_per_run),
        ):
            if value is not None and (not isinstance(value, int) or value < 1):
                raise ConfigurationException(f"{name} must be a positive int", details={name: value})
        self.partition_col_nb = partition_col_nb
        self.nb_of_partition_values_per_run = nb_of_partition_values_per_run
        self.apply_partition_values_transform = apply_partition_values_transform

    def apply(self, *, ctx, action_id, main_input, main_output, sub_feed, state, partition_values_transform=None):
        if not main_input.is_partitioned:
            raise ConfigurationException(
                f"({action_id}) PartitionDiffMode requer entrada principal particionada: {main_input.id}",
                details={"action_id": action_id, "data_object_id": main_input.id},
            )
        if not main_output.is_partitioned:
            raise ConfigurationException(
                f"({action_id}) PartitionDiffMode requer saída principal particionada: {main_output.id}",
                details={"action_id": action_id, "data_object_id": main_output.id},
            )

        if sub_feed.partition_values and not sub_feed.is_dag_start:
            input_pvs = list(sub_feed.partition_values)
        else:
            input_pvs = main_input.list_partitions()

        output_cols = main_output.partitions
        if self.partition_col_nb:
            output_cols = output_cols[: self.partition_col_nb]

        mapping: Dict[PartitionValues, PartitionValues] = {pv: pv for pv in input_pvs}
        if self.apply_partition_values_transform and partition_values_transform is not None:
            transformed = partition_values_transform(input_pvs)
            mapping = {pv: transformed.get(pv, pv) for pv in input_pvs}

        compare_cols = [c for c in output_cols if any(c in mapping[pv].keys() for pv in input_pvs)]
        if input_pvs and not compare_cols:
            raise ConfigurationException(
                f"({action_id}) nenhuma coluna de partição comum entre {main_input.id} e {main_output.id}",
                details={"action_id": action_id, "output_columns": list(output_cols)},
            )

        projected = {pv: mapping[pv].filter_keys(compare_cols) for pv in input_pvs}
        existing = {pv.filter_keys(compare_cols) for pv in main_output.list_partitions()}

        missing: List[PartitionValues] = sort_partition_values(
            distinct(p for p in projected.values() if p not in existing)
        )
        if not missing:
            ctx.log(action_id=action_id, level="info", message="no partitions to process", mode=self.type_name)
            return NoDataToProcess(f"({action_id}) nenhuma partição nova em {main_input.id}")

        if self.nb_of_partition_values_per_run:
            missing = missing[: self.nb_of_partition_values_per_run]
        selected = set(missing)

        inputs = sort_partition_values(pv for pv in input_pvs if projected[pv] in selected)
        ctx.log(
            action_id=action_id,
            level="info",
            message="partitions selected",
            mode=self.type_name,
            partition_values=[str(pv) for pv in missing],
        )
        return ExecutionModeResult(
            input_partition_values=tuple(inputs),
            output_partition_values=tuple(missing),
        )
