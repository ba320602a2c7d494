"""Transformers e composição em cadeia (TransformerChain)."""

from .base import DfTransformer, TransformContext, Transformer
from .builtin import (
    AdditionalColumnsTransformer,
    FilterTransformer,
    FunctionDfTransformer,
    FunctionTransformer,
    SelectColumnsTransformer,
)
from .chain import TransformerChain

__all__ = [
    "Transformer",
    "DfTransformer",
    "TransformContext",
    "TransformerChain",
    "FunctionTransformer",
    "FunctionDfTransformer",
    "FilterTransformer",
    "AdditionalColumnsTransformer",
    "SelectColumnsTransformer",
]
