"""
DataObject de arquivos CSV em diretórios hive-style.

Layout:
    <path>/<col1>=<v1>/<col2>=<v2>/part-00000.csv

Responsabilidades:
    - Listar partições e arquivos (com timestamp de modificação)
    - Ler um conjunto explícito de arquivos (execution modes incrementais)
    - Apagar ou mover (arquivar) arquivos já processados
    - Manter estado incremental (`get_state` / `set_state`) como timestamp ISO-8601
    - Observar arquivos lidos por uma Action (no máximo uma observação em curso)

Decisões arquiteturais:
    - Colunas de partição não são gravadas nos arquivos; são reconstruídas
      a partir dos diretórios como texto
    - O diretório de arquivo morto fica abaixo de <path> e nunca é listado,
      pois não segue o padrão <col>=<valor> na profundidade das partições
    - Sem arquivos e sem schema declarado não há como inferir schema:
      erro de configuração

Limites explícitos:
    - Não suporta outros formatos além de CSV
    - Não faz escrita atômica entre múltiplos arquivos
"""

from __future__ import annotations

import shutil
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from atlas_datalake.core.exceptions import IllegalStateException
from atlas_datalake.core.partitions import PartitionValues, distinct

from .base import DataObject


@dataclass(frozen=True)
class FileRef:
    """Descritor de arquivo com timestamp de modificação (UTC)."""

    path: Path
    modified_at: datetime
    partition_values: PartitionValues = PartitionValues()


class CsvFileDataObject(DataObject):
    type_name = "csv"

    def __init__(
        self,
        id: str,
        *,
        path: Union[str, Path],
        filename_column: Optional[str] = None,
        sep: str = ",",
        **kwargs: Any,
    ):
        super().__init__(id, **kwargs)
        self.root = Path(path)
        self.filename_column = filename_column
        self.sep = sep

        self._state: Optional[str] = None
        self._observer_lock = threading.Lock()
        self._observer_id: Optional[str] = None
        self._observed_files: List[FileRef] = []

    # ------------------------------------------------------------------
    # Listagem
    # ------------------------------------------------------------------
    def _partition_dirs(self) -> List[Tuple[Path, PartitionValues]]:
        if not self.root.is_dir():
            return []
        level: List[Tuple[Path, Dict[str, str]]] = [(self.root, {})]
        for col in self.partitions:
            prefix = f"{col}="
            next_level: List[Tuple[Path, Dict[str, str]]] = []
            for directory, values in level:
                for child in sorted(directory.iterdir()):
                    if child.is_dir() and child.name.startswith(prefix):
                        next_level.append((child, {**values, col: child.name[len(prefix):]}))
            level = next_level
        return [(d, PartitionValues.of(v)) for d, v in level]

    def list_files(self, partition_values: Sequence[PartitionValues] = ()) -> List[FileRef]:
        files: List[FileRef] = []
        for directory, pv in self._partition_dirs():
            if partition_values and not any(p.is_included_in(pv) for p in partition_values):
                continue
            for f in sorted(directory.glob("*.csv")):
                if f.is_file():
                    mtime = datetime.fromtimestamp(f.stat().st_mtime, tz=timezone.utc)
                    files.append(FileRef(path=f, modified_at=mtime, partition_values=pv))
        return files

    def files_modified_between(
        self,
        after: Optional[datetime],
        until: datetime,
        partition_values: Sequence[PartitionValues] = (),
    ) -> List[FileRef]:
        return [
            f
            for f in self.list_files(partition_values)
            if (after is None or f.modified_at > after) and f.modified_at <= until
        ]

    def has_data(self) -> bool:
        return bool(self.list_files())

    def list_partitions(self) -> List[PartitionValues]:
        if not self.is_partitioned:
            return []
        return distinct(f.partition_values for f in self.list_files())

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------
    def _dtypes(self) -> Optional[Dict[str, str]]:
        if self.schema is None:
            return None
        return {c: t for c, t in self.schema.items() if c not in self.partitions and c != self.filename_column}

    def schema_frame(self) -> pd.DataFrame:
        """Sem schema declarado, infere as colunas apenas do cabeçalho do primeiro arquivo."""
        files = self.list_files() if self.schema is None else []
        if not files:
            return super().schema_frame()
        df = pd.read_csv(files[0].path, sep=self.sep, nrows=0)
        for key in self.partitions:
            df[key] = pd.Series(dtype="object")
        if self.filename_column:
            df[self.filename_column] = pd.Series(dtype="object")
        return df

    def read_files(self, files: Sequence[FileRef]) -> pd.DataFrame:
        if not files:
            return self.schema_frame()
        frames = []
        for ref in files:
            df = pd.read_csv(ref.path, sep=self.sep, dtype=self._dtypes())
            for key in self.partitions:
                df[key] = ref.partition_values.get(key)
            if self.filename_column:
                df[self.filename_column] = str(ref.path)
            frames.append(df)
        return pd.concat(frames, ignore_index=True)

    def _read(self, partition_values: Sequence[PartitionValues]) -> pd.DataFrame:
        return self.read_files(self.list_files(partition_values))

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------
    def _write_file(self, directory: Path, df: pd.DataFrame) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        n = len(list(directory.glob("part-*.csv")))
        target = directory / f"part-{n:05d}.csv"
        while target.exists():
            n += 1
            target = directory / f"part-{n:05d}.csv"
        df.to_csv(target, sep=self.sep, index=False)

    def _append(self, df: pd.DataFrame) -> None:
        if self.filename_column and self.filename_column in df.columns:
            df = df.drop(columns=[self.filename_column])
        if not self.is_partitioned:
            self._write_file(self.root, df)
            return
        for keys, group in df.groupby(self.partitions, sort=True):
            if not isinstance(keys, tuple):
                keys = (keys,)
            directory = self.root
            for col, value in zip(self.partitions, keys):
                directory = directory / f"{col}={value}"
            self._write_file(directory, group.drop(columns=self.partitions))

    def _overwrite_all(self, df: pd.DataFrame) -> None:
        if self.is_partitioned:
            self._delete_partitions(self.list_partitions())
        else:
            self.delete_files(self.list_files())
        self._append(df)

    def _delete_partitions(self, partition_values: Sequence[PartitionValues]) -> None:
        if not partition_values:
            return
        for directory, pv in self._partition_dirs():
            if any(p.is_included_in(pv) for p in partition_values):
                shutil.rmtree(directory)

    def delete_files(self, files: Sequence[FileRef]) -> None:
        for ref in files:
            ref.path.unlink(missing_ok=True)

    def move_files(self, files: Sequence[FileRef], archive_path: str) -> None:
        """Move arquivos para <path>/<archive_path>, preservando o caminho relativo."""
        archive_root = self.root / archive_path
        for ref in files:
            target = archive_root / ref.path.relative_to(self.root)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(ref.path), str(target))

    # ------------------------------------------------------------------
    # Estado incremental
    # ------------------------------------------------------------------
    def get_state(self) -> Optional[str]:
        return self._state

    def set_state(self, state: Optional[str]) -> None:
        self._state = state

    # ------------------------------------------------------------------
    # Observação de arquivos
    # ------------------------------------------------------------------
    def setup_files_observer(self, observer_id: str) -> None:
        """Inicia a observação de arquivos lidos por `observer_id`.

        Apenas uma observação pode estar em curso por instância; uma segunda
        observação por outro dono falha imediatamente.
        """
        with self._observer_lock:
            if self._observer_id is not None and self._observer_id != observer_id:
                raise IllegalStateException(
                    f"({self.id}) observação de arquivos já em curso por '{self._observer_id}'",
                    details={"data_object_id": self.id, "observer": self._observer_id, "requested_by": observer_id},
                )
            self._observer_id = observer_id
            self._observed_files = []

    def add_observed_files(self, observer_id: str, files: Sequence[FileRef]) -> None:
        with self._observer_lock:
            if self._observer_id != observer_id:
                raise IllegalStateException(
                    f"({self.id}) nenhuma observação de arquivos em curso para '{observer_id}'",
                    details={"data_object_id": self.id, "observer": self._observer_id},
                )
            self._observed_files.extend(files)

    def release_files_observer(self, observer_id: str) -> List[FileRef]:
        """Encerra a observação e retorna os arquivos observados (vazio se não era o dono)."""
        with self._observer_lock:
            if self._observer_id != observer_id:
                return []
            files = list(self._observed_files)
            self._observer_id = None
            self._observed_files = []
            return files
