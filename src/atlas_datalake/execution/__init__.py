"""
Execution modes do Atlas DataLake.

Calculam, a cada run, o subconjunto de dados que uma Action precisa processar:
    - PartitionDiffMode: partições da entrada ausentes na saída
    - FileIncrementalMoveMode: arquivos presentes, apagados/arquivados após a escrita
    - DataObjectStateIncrementalMode: arquivos modificados após o último estado
    - CustomMode: lógica plugável registrada por chave
"""

from .base import ExecutionMode, ExecutionModeResult, ExecutionModeState, NoDataToProcess
from .custom import CustomMode
from .file_incremental import DataObjectStateIncrementalMode, FileIncrementalMoveMode
from .partition_diff import PartitionDiffMode

__all__ = [
    "ExecutionMode",
    "ExecutionModeResult",
    "ExecutionModeState",
    "NoDataToProcess",
    "PartitionDiffMode",
    "FileIncrementalMoveMode",
    "DataObjectStateIncrementalMode",
    "CustomMode",
]
