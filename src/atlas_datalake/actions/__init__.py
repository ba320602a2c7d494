"""Actions: nós do DAG conduzidos pelo Engine."""

from .action import DataFrameAction
from .base import Action
from .copy import CopyAction

__all__ = ["Action", "DataFrameAction", "CopyAction"]
