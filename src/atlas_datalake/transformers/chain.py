"""
TransformerChain — composição ordenada de transformers.

Regras de composição:
    - O transformer i+1 recebe a união das entradas originais da Action e de
      todas as saídas produzidas pelos transformers 1..i
    - Apenas saídas cujo nome coincide com `output_ids` da Action viram
      SubFeeds; as demais são intermediárias descartáveis
    - O mapeamento efetivo de valores de partição é a composição, da esquerda
      para a direita, dos mapeamentos de cada transformer (ausente = identidade;
      valores não mapeados por um estágio seguem inalterados)

A validação de nomes de saída acontece na construção da Action
(erro de configuração), não em tempo de execução.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

import pandas as pd

from atlas_datalake.core.exceptions import ConfigurationException
from atlas_datalake.core.partitions import PartitionValues, distinct

from .base import DfTransformer, TransformContext, Transformer


class TransformerChain:
    def __init__(self, transformers: Sequence[Transformer] = (), *, copy_current_to_main_output: bool = False):
        self.transformers: List[Transformer] = list(transformers)
        self.copy_current_to_main_output = copy_current_to_main_output

    def __len__(self) -> int:
        return len(self.transformers)

    def validate(
        self,
        *,
        action_id: str,
        input_ids: Sequence[str],
        output_ids: Sequence[str],
        main_input_id: str,
        main_output_id: str,
        recursive_input_ids: Sequence[str] = (),
    ) -> None:
        available: Set[str] = set(input_ids) | set(recursive_input_ids)
        produced: Set[str] = set()
        current = main_input_id

        for t in self.transformers:
            if isinstance(t, DfTransformer):
                source = t.source_id(current)
                if source not in available:
                    raise ConfigurationException(
                        f"({action_id}) transformer '{t.name}' lê '{source}', que não é entrada nem saída anterior",
                        details={"action_id": action_id, "transformer": t.name, "available": sorted(available)},
                    )
            outs = t.declared_output_ids(main_output_id)
            available.update(outs)
            produced.update(outs)
            if isinstance(t, DfTransformer):
                current = outs[0]

        if self.copy_current_to_main_output:
            produced.add(main_output_id)

        missing = [o for o in output_ids if o not in produced]
        if missing:
            raise ConfigurationException(
                f"({action_id}) saídas {missing} não são produzidas pela cadeia de transformers",
                details={"action_id": action_id, "produced": sorted(produced), "output_ids": list(output_ids)},
                hint="Declare output_id/output_ids nos transformers para cobrir todas as saídas da action.",
            )

    def apply(
        self,
        tctx: TransformContext,
        inputs: Mapping[str, pd.DataFrame],
        mode_options: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, pd.DataFrame]:
        available: Dict[str, pd.DataFrame] = dict(inputs)
        produced: Dict[str, pd.DataFrame] = {}
        current = tctx.main_input_id

        for t in self.transformers:
            stage_ctx = replace(tctx, current_id=current)
            options = t.resolve_options(stage_ctx, mode_options)
            out = t.transform(stage_ctx, dict(available), options)
            if not isinstance(out, dict):
                raise ConfigurationException(
                    f"({tctx.action_id}) transformer '{t.name}' deve retornar dict nome → DataFrame",
                    details={"action_id": tctx.action_id, "received": type(out).__name__},
                )
            declared = t.declared_output_ids(tctx.main_output_id)
            missing = [d for d in declared if d not in out]
            if missing:
                raise ConfigurationException(
                    f"({tctx.action_id}) transformer '{t.name}' não produziu {missing}",
                    details={"action_id": tctx.action_id, "transformer": t.name, "produced": sorted(out)},
                )
            available.update(out)
            produced.update(out)
            if isinstance(t, DfTransformer):
                current = declared[0]

        if self.copy_current_to_main_output and tctx.main_output_id not in produced:
            produced[tctx.main_output_id] = available[current]
        return produced

    def partition_values_mapping(
        self,
        tctx: TransformContext,
        partition_values: Sequence[PartitionValues],
        mode_options: Optional[Mapping[str, Any]] = None,
    ) -> Dict[PartitionValues, PartitionValues]:
        mapping: Dict[PartitionValues, PartitionValues] = {pv: pv for pv in partition_values}
        for t in self.transformers:
            options = t.resolve_options(tctx, mode_options)
            stage = t.transform_partition_values(tctx, options, distinct(mapping.values()))
            if stage is None:
                continue
            mapping = {orig: stage.get(cur, cur) for orig, cur in mapping.items()}
        return mapping
