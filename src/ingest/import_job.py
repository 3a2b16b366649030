"""Resumable CSV import job.

The source file is copied into the data root's imports directory when
the job starts; ticks read it by data-line offset, so the cursor is
the number of data lines already handled. The staged copy is removed
when the job completes or is cancelled.
"""

from __future__ import annotations

from datetime import datetime
from itertools import islice
from pathlib import Path
import shutil
from typing import Callable
import uuid

from core.config import LadderboardConfig
from core.constants import IMPORT_COMPLETED_SIGNAL
from core.errors import LadderboardIngestError, LadderboardStoreError
from core.logging_config import get_logger
from core.timestamps import utc_now
from core.types import BatchJobState, BatchResult, ImportStartRequest
from ingest.csv_lines import inspect_csv_file, parse_csv_line
from ingest.event_import import EventImporter, ImportTally
from store.event_store import EventStore
from store.reference_clock import ReferenceClock
from store.settings_store import SettingsStore

_LOGGER = get_logger(__name__)
_CSV_SUFFIX = ".csv"


class CsvImportJob:
    """Batch job that imports a staged CSV file line by line."""

    completion_signal: str | None = IMPORT_COMPLETED_SIGNAL

    def __init__(
        self,
        config: LadderboardConfig,
        events: EventStore,
        settings: SettingsStore,
        reference_clock: ReferenceClock,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._events = events
        self._settings = settings
        self._reference_clock = reference_clock
        self._now = now

    def stage(self, request: ImportStartRequest) -> tuple[int, dict[str, object]]:
        """Copy the source file into the imports directory.

        Args:
            request: Import options with the source path.

        Returns:
            Data line count and the job details to store.

        Raises:
            LadderboardIngestError: If the source is missing, not a CSV
                file, unreadable, or has no data lines.
        """
        source_path = Path(request.source_path).expanduser().resolve()
        if not source_path.is_file():
            raise LadderboardIngestError(
                f"Import source {source_path} does not exist. Provide an existing CSV file."
            )
        if source_path.suffix.lower() != _CSV_SUFFIX:
            raise LadderboardIngestError(
                f"Import source {source_path} is not a CSV file. Provide a .csv export."
            )
        has_header, total_lines = inspect_csv_file(source_path)
        if total_lines == 0:
            raise LadderboardIngestError(
                f"CSV file {source_path} is empty. Provide a file with at least one event line."
            )
        staged_path = self._config.imports_dir / f"import_{uuid.uuid4().hex}{_CSV_SUFFIX}"
        try:
            staged_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source_path, staged_path)
        except OSError as error:
            raise LadderboardIngestError(
                f"Failed to stage {source_path} into {staged_path.parent}: {error}. "
                "Check data root permissions."
            ) from error
        _LOGGER.info(
            "import_file_staged",
            source_path=str(source_path),
            staged_path=str(staged_path),
            has_header=has_header,
            total_lines=total_lines,
        )
        return total_lines, {
            "source_name": source_path.name,
            "file_path": str(staged_path),
            "has_header": has_header,
            "auto_register_event_types": request.auto_register_event_types,
            "imported": 0,
            "duplicates": 0,
            "rejected": 0,
        }

    def run_batch(self, state: BatchJobState) -> BatchResult:
        """Import up to one batch of lines starting at the cursor."""
        staged_path = Path(str(state.details.get("file_path", "")))
        try:
            lines = _read_lines(
                staged_path,
                has_header=bool(state.details.get("has_header")),
                offset=state.cursor,
                limit=self._config.import_batch_size,
            )
        except (OSError, UnicodeDecodeError) as error:
            return BatchResult(
                processed=0,
                cursor=state.cursor,
                exhausted=False,
                failure=f"Staged import file {staged_path} is unreadable: {error}",
            )
        importer = EventImporter(
            self._events,
            self._settings,
            bool(state.details.get("auto_register_event_types", True)),
        )
        tally = ImportTally(
            imported=_detail_count(state, "imported"),
            duplicates=_detail_count(state, "duplicates"),
            rejected=_detail_count(state, "rejected"),
        )
        ingested_at = self._now()
        handled = 0
        failure: str | None = None
        for line in lines:
            try:
                outcome = importer.import_event(parse_csv_line(line, ingested_at))
            except LadderboardStoreError as error:
                failure = str(error)
                break
            except LadderboardIngestError as error:
                _LOGGER.debug(
                    "import_line_rejected",
                    line_number=state.cursor + handled + 1,
                    error=str(error),
                )
                tally = tally.add(None)
            else:
                tally = tally.add(outcome)
            handled += 1
        importer.register_new_event_types()
        cursor = state.cursor + handled
        end_of_file = (
            cursor >= state.total_to_process or len(lines) < self._config.import_batch_size
        )
        return BatchResult(
            processed=handled,
            cursor=cursor,
            exhausted=failure is None and end_of_file,
            details={
                "imported": tally.imported,
                "duplicates": tally.duplicates,
                "rejected": tally.rejected,
            },
            failure=failure,
        )

    def on_complete(self, state: BatchJobState) -> None:
        self._reference_clock.refresh_from_store()
        _remove_staged_file(state)

    def on_cancel(self, state: BatchJobState) -> None:
        _remove_staged_file(state)


def _read_lines(staged_path: Path, has_header: bool, offset: int, limit: int) -> list[str]:
    with staged_path.open("r", encoding="utf-8", newline="") as handle:
        if has_header:
            handle.readline()
        return list(islice(handle, offset, offset + limit))


def _detail_count(state: BatchJobState, key: str) -> int:
    value = state.details.get(key, 0)
    return int(value) if isinstance(value, (int, float, str)) else 0


def _remove_staged_file(state: BatchJobState) -> None:
    file_path = state.details.get("file_path")
    if not file_path:
        return
    staged_path = Path(str(file_path))
    staged_path.unlink(missing_ok=True)
    _LOGGER.info("import_file_removed", staged_path=str(staged_path))
