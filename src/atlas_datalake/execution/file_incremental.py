"""
Execution modes incrementais baseados em arquivos.

FileIncrementalMoveMode:
    - Processa todos os arquivos atualmente presentes na entrada principal
    - Na fase exec, registra os arquivos lidos como observação do data object
    - Em postExec, apaga os arquivos ou os move para `<path>/<archive_path>`
    - Sem arquivos → NoDataToProcess (uma segunda run não reprocessa nada)

DataObjectStateIncrementalMode:
    - Lê apenas arquivos modificados após o último estado persistido
      (timestamp ISO-8601) e até o instante fixado na primeira chamada da run
    - O novo estado é persistido em postExec no state store, chave = id da Action

Invariantes:
    - O limite superior de tempo é fixado uma vez por run (paridade init/exec)
    - postExec é idempotente: a célula de estado é limpa ao final
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from atlas_datalake.core.exceptions import ConfigurationException

from .base import ExecutionMode, ExecutionModeResult, NoDataToProcess


_OBSERVING = "observing"
_UNTIL = "until"
_PENDING_STATE = "pending_state"


def _require_capability(action_id: str, data_object: Any, *methods: str) -> None:
    missing = [m for m in methods if not callable(getattr(data_object, m, None))]
    if missing:
        raise ConfigurationException(
            f"({action_id}) data object {data_object.id} não suporta {missing}",
            details={"action_id": action_id, "data_object_id": data_object.id, "missing": missing},
            hint="Use um data object baseado em arquivos como entrada principal.",
        )


class FileIncrementalMoveMode(ExecutionMode):
    type_name = "file_incremental_move"

    def __init__(self, *, archive_path: Optional[str] = None):
        self.archive_path = archive_path

    def apply(self, *, ctx, action_id, main_input, main_output, sub_feed, state, partition_values_transform=None):
        _require_capability(action_id, main_input, "list_files", "setup_files_observer", "delete_files", "move_files")

        files = main_input.list_files(sub_feed.partition_values)
        if not files:
            return NoDataToProcess(f"({action_id}) nenhum arquivo novo em {main_input.id}")

        if ctx.is_exec:
            main_input.setup_files_observer(action_id)
            main_input.add_observed_files(action_id, files)
            state.set(_OBSERVING, main_input.id)

        return ExecutionModeResult(
            input_partition_values=tuple(sub_feed.partition_values),
            file_refs=tuple(files),
        )

    def post_exec(self, *, ctx, action_id, main_input, main_output, state):
        if state.get(_OBSERVING) is None:
            state.clear()
            return
        files = main_input.release_files_observer(action_id)
        if self.archive_path:
            main_input.move_files(files, self.archive_path)
            operation = "archived"
        else:
            main_input.delete_files(files)
            operation = "deleted"
        ctx.log(
            action_id=action_id,
            level="info",
            message=f"processed files {operation}",
            data_object_id=main_input.id,
            files=len(files),
        )
        state.clear()

    def reset(self, *, action_id, main_input, state):
        if state.get(_OBSERVING) is not None:
            main_input.release_files_observer(action_id)
        state.clear()


class DataObjectStateIncrementalMode(ExecutionMode):
    type_name = "data_object_state_incremental"

    def apply(self, *, ctx, action_id, main_input, main_output, sub_feed, state, partition_values_transform=None):
        _require_capability(action_id, main_input, "get_state", "set_state", "files_modified_between")

        until = state.get_or_setup(_UNTIL, lambda: datetime.now(timezone.utc))
        previous = ctx.state_store.get(action_id) if ctx.state_store is not None else main_input.get_state()
        after = datetime.fromisoformat(previous) if previous else None

        files = main_input.files_modified_between(after, until, sub_feed.partition_values)
        if not files:
            return NoDataToProcess(f"({action_id}) nenhum arquivo modificado após {previous}")

        if ctx.is_exec:
            state.set(_PENDING_STATE, max(f.modified_at for f in files).isoformat())

        return ExecutionModeResult(
            input_partition_values=tuple(sub_feed.partition_values),
            file_refs=tuple(files),
        )

    def post_exec(self, *, ctx, action_id, main_input, main_output, state):
        pending = state.get(_PENDING_STATE)
        if pending is not None:
            if ctx.state_store is not None:
                ctx.state_store.set(action_id, pending)
            main_input.set_state(pending)
            ctx.log(action_id=action_id, level="info", message="incremental state saved", state=pending)
        state.clear()
