from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from pdf_indexer.database.repositories.progress_repository import ProgressRepository
from pdf_indexer.indexer.clock import timestamp, utc_now
from pdf_indexer.indexer.models import ErrorEntry, LogEntry, ProgressRecord

_Entry = TypeVar("_Entry", LogEntry, ErrorEntry)


def _push_front(entries: list[_Entry], entry: _Entry, capacity: int) -> None:
    entries.insert(0, entry)
    del entries[capacity:]


class ProgressTracker:
    """Loads, mutates and saves the single Progress Record.

    Control operations write without the processing lock and bump ``run_id``.
    The batch runner saves through ``set_if_current`` so a record loaded before
    such a write never overwrites it.
    """

    def __init__(
        self,
        repo: ProgressRepository,
        capacity: int = 50,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._capacity = capacity
        self._clock = clock

    def get(self) -> ProgressRecord:
        payload = self._repo.load()
        if payload is None:
            return ProgressRecord()
        return ProgressRecord.from_dict(payload)

    def set(self, record: ProgressRecord) -> None:
        record.last_update = self.now()
        self._repo.save(record.to_dict())

    def set_if_current(self, record: ProgressRecord) -> bool:
        """Save record only if the stored run is still the one it was loaded from."""
        if not self.is_current(record):
            return False
        self.set(record)
        return True

    def is_current(self, record: ProgressRecord) -> bool:
        return self.get().run_id == record.run_id

    def initialize(self) -> ProgressRecord:
        """Persist an empty record unless one already exists."""
        payload = self._repo.load()
        if payload is not None:
            return ProgressRecord.from_dict(payload)
        record = ProgressRecord()
        self.set(record)
        return record

    def delete(self) -> None:
        self._repo.delete()

    def now(self) -> str:
        return timestamp(self._clock())

    def add_log(self, record: ProgressRecord, file: str, status: str) -> None:
        _push_front(
            record.log,
            LogEntry(file=file, status=status, timestamp=self.now()),
            self._capacity,
        )

    def add_error(self, record: ProgressRecord, file: str, error: str, message: str) -> None:
        _push_front(
            record.errors,
            ErrorEntry(file=file, error=error, message=message, timestamp=self.now()),
            self._capacity,
        )

    def touch_heartbeat(self, record: ProgressRecord) -> None:
        record.heartbeat = self._clock().timestamp()

    @staticmethod
    def new_run(record: ProgressRecord) -> None:
        """Supersede any batch that loaded the record before this change."""
        record.run_id += 1

    @staticmethod
    def reset_run(record: ProgressRecord) -> None:
        """Clear the run-scoped counters. Log buffers and heartbeat are kept."""
        record.current_file = ""
        record.batch_number = 0
        record.processed_count = 0
        record.total_count = 0
