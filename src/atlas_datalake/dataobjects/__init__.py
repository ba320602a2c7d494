"""Data objects particionados: contrato base, tabela em memória e arquivos CSV."""

from .base import DataObject, SaveMode
from .files import CsvFileDataObject, FileRef
from .memory import InMemoryDataObject

__all__ = ["DataObject", "SaveMode", "InMemoryDataObject", "CsvFileDataObject", "FileRef"]
