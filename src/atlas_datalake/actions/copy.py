"""CopyAction — especialização 1:1 de DataFrameAction."""

from __future__ import annotations

from typing import Any, Sequence

from atlas_datalake.dataobjects.base import DataObject
from atlas_datalake.transformers.base import Transformer

from .action import DataFrameAction


class CopyAction(DataFrameAction):
    """
    Copia a entrada para a saída, opcionalmente passando por transformers 1:1.

    Sem transformers, o dataset da entrada é escrito como está.
    """

    type_name = "copy"

    def __init__(
        self,
        id: str,
        *,
        input: DataObject,
        output: DataObject,
        transformers: Sequence[Transformer] = (),
        **kwargs: Any,
    ):
        super().__init__(
            id,
            inputs=[input],
            outputs=[output],
            transformers=transformers,
            copy_to_main_output=True,
            **kwargs,
        )
