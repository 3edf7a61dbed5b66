"""In-memory stand-ins for the repositories, shared by the indexer unit tests."""

import copy
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.exceptions import StoreWriteError
from pdf_indexer.database.models import AttachmentRecord, ScheduledTask
from pdf_indexer.database.repositories.index_repository import PDF_MIME_TYPE, SECURED_MARKER
from pdf_indexer.extraction.adapter import ExtractionAdapter
from pdf_indexer.extraction.models import ExtractionKind, TextResult
from pdf_indexer.indexer.batch_runner import BatchRunner
from pdf_indexer.indexer.progress import ProgressTracker


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeIndexRepository:
    def __init__(self, catalog: dict[int, AttachmentRecord]) -> None:
        self.catalog = catalog
        self.rows: dict[int, str] = {}
        self.fail_writes = 0
        self.refreshes = 0

    def upsert(self, attachment_id: int, content: str) -> None:
        if self.fail_writes:
            self.fail_writes -= 1
            raise StoreWriteError(f"Could not store content for attachment {attachment_id}")
        self.rows[attachment_id] = content

    def next_unindexed_id(self) -> int | None:
        pending = [
            attachment_id
            for attachment_id, record in self.catalog.items()
            if record.mime_type == PDF_MIME_TYPE and attachment_id not in self.rows
        ]
        return min(pending) if pending else None

    def has_unindexed(self) -> bool:
        return self.next_unindexed_id() is not None

    def count_total(self) -> int:
        return sum(1 for record in self.catalog.values() if record.mime_type == PDF_MIME_TYPE)

    def count_indexed(self) -> int:
        return len(self.rows)

    def count_secured(self) -> int:
        return sum(1 for content in self.rows.values() if SECURED_MARKER in content)

    def refresh(self) -> None:
        self.refreshes += 1

    def truncate(self) -> None:
        self.rows.clear()


@dataclass
class AttachmentMeta:
    """Status flags the fake keeps per attachment, mirroring attachment_meta rows."""

    attachment_id: int
    status: str = "pending"
    failed_count: int = 0
    indexed_at: datetime | None = None


class FakeAttachmentRepository:
    def __init__(self, catalog: dict[int, AttachmentRecord]) -> None:
        self.catalog = catalog
        self.meta: dict[int, AttachmentMeta] = {}

    def find_by_id(self, attachment_id: int) -> AttachmentRecord | None:
        return self.catalog.get(attachment_id)

    def get_meta(self, attachment_id: int) -> AttachmentMeta:
        return self.meta.get(attachment_id, AttachmentMeta(attachment_id=attachment_id))

    def set_status(self, attachment_id: int, status: str) -> None:
        self.get_meta_entry(attachment_id).status = status

    def mark_indexed(self, attachment_id: int, status: str) -> None:
        meta = self.get_meta_entry(attachment_id)
        meta.status = status
        meta.failed_count = 0
        meta.indexed_at = datetime.now(timezone.utc)

    def increment_failed_count(self, attachment_id: int) -> int:
        meta = self.get_meta_entry(attachment_id)
        meta.failed_count += 1
        return meta.failed_count

    def list_by_status(self, status: str, limit: int | None = None) -> list[AttachmentRecord]:
        records = [
            self.catalog[attachment_id]
            for attachment_id, meta in sorted(self.meta.items())
            if meta.status == status and attachment_id in self.catalog
        ]
        return records if limit is None else records[:limit]

    def reset_processing(self) -> int:
        count = 0
        for meta in self.meta.values():
            if meta.status == "processing":
                meta.status = "pending"
                count += 1
        return count

    def clear_all_meta(self) -> None:
        self.meta.clear()

    def get_meta_entry(self, attachment_id: int) -> AttachmentMeta:
        return self.meta.setdefault(attachment_id, AttachmentMeta(attachment_id=attachment_id))


class FakeProgressRepository:
    def __init__(self) -> None:
        self.payload: dict[str, Any] | None = None
        self.saves = 0

    def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self.payload)

    def save(self, payload: dict[str, Any]) -> None:
        self.payload = copy.deepcopy(payload)
        self.saves += 1

    def delete(self) -> None:
        self.payload = None


class FakeLockRepository:
    def __init__(self) -> None:
        self.held: dict[str, tuple[str, datetime]] = {}
        self.acquired = 0

    def acquire(self, name: str, ttl_seconds: int, now: datetime) -> str | None:
        current = self.held.get(name)
        if current is not None and current[1] > now:
            return None
        token = uuid.uuid4().hex
        self.held[name] = (token, now + timedelta(seconds=ttl_seconds))
        self.acquired += 1
        return token

    def release(self, name: str, token: str) -> None:
        current = self.held.get(name)
        if current is not None and current[0] == token:
            del self.held[name]


class FakeTaskRepository:
    def __init__(self) -> None:
        self.tasks: list[ScheduledTask] = []
        self._next_id = 1

    def schedule_once(self, hook: str, run_at: datetime) -> bool:
        if any(task.hook == hook for task in self.tasks):
            return False
        self._add(hook, run_at, None)
        return True

    def ensure_recurring(self, hook: str, interval_seconds: int, first_run_at: datetime) -> bool:
        if any(task.hook == hook for task in self.tasks):
            return False
        self._add(hook, first_run_at, interval_seconds)
        return True

    def next_scheduled(self, hook: str) -> datetime | None:
        times = [task.run_at for task in self.tasks if task.hook == hook]
        return min(times) if times else None

    def clear(self, hook: str) -> int:
        before = len(self.tasks)
        self.tasks = [task for task in self.tasks if task.hook != hook]
        return before - len(self.tasks)

    def for_hook(self, hook: str) -> list[ScheduledTask]:
        return [task for task in self.tasks if task.hook == hook]

    def _add(self, hook: str, run_at: datetime, interval_seconds: int | None) -> None:
        self.tasks.append(
            ScheduledTask(
                id=self._next_id, hook=hook, run_at=run_at, interval_seconds=interval_seconds
            )
        )
        self._next_id += 1


def full_result(file_path: Path, text: str = "Extracted text") -> TextResult:
    return TextResult(
        kind=ExtractionKind.FULL,
        text=text,
        filename=file_path.name,
        size_bytes=file_path.stat().st_size,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture()
def catalog() -> dict[int, AttachmentRecord]:
    return {}


@pytest.fixture()
def index_repo(catalog: dict[int, AttachmentRecord]) -> FakeIndexRepository:
    return FakeIndexRepository(catalog)


@pytest.fixture()
def attachment_repo(catalog: dict[int, AttachmentRecord]) -> FakeAttachmentRepository:
    return FakeAttachmentRepository(catalog)


@pytest.fixture()
def progress_repo() -> FakeProgressRepository:
    return FakeProgressRepository()


@pytest.fixture()
def progress(progress_repo: FakeProgressRepository, clock: FakeClock) -> ProgressTracker:
    return ProgressTracker(progress_repo, capacity=50, clock=clock)


@pytest.fixture()
def lock_repo() -> FakeLockRepository:
    return FakeLockRepository()


@pytest.fixture()
def task_repo() -> FakeTaskRepository:
    return FakeTaskRepository()


@pytest.fixture()
def extraction_adapter() -> MagicMock:
    adapter = MagicMock(spec=ExtractionAdapter)
    adapter.extract.side_effect = lambda file_path, max_normal_size: full_result(file_path)
    return adapter


@pytest.fixture()
def add_pdf(
    catalog: dict[int, AttachmentRecord], tmp_path: Path
) -> Callable[..., AttachmentRecord]:
    """Register a PDF attachment; the file exists on disk unless on_disk=False."""

    def _add(attachment_id: int, on_disk: bool = True, content: bytes = b"%PDF-1.4\n") -> AttachmentRecord:
        path = tmp_path / f"doc-{attachment_id}.pdf"
        if on_disk:
            path.write_bytes(content)
        record = AttachmentRecord(
            id=attachment_id,
            title=f"Document {attachment_id}",
            mime_type=PDF_MIME_TYPE,
            file_path=str(path),
        )
        catalog[attachment_id] = record
        return record

    return _add


@pytest.fixture()
def make_runner(
    settings: Settings,
    index_repo: FakeIndexRepository,
    attachment_repo: FakeAttachmentRepository,
    progress: ProgressTracker,
    lock_repo: FakeLockRepository,
    task_repo: FakeTaskRepository,
    extraction_adapter: MagicMock,
    clock: FakeClock,
) -> Callable[..., BatchRunner]:
    def _make(healthy: bool = True) -> BatchRunner:
        return BatchRunner(
            settings=settings,
            index_repo=index_repo,  # type: ignore[arg-type]
            attachment_repo=attachment_repo,  # type: ignore[arg-type]
            progress=progress,
            lock_repo=lock_repo,  # type: ignore[arg-type]
            task_repo=task_repo,  # type: ignore[arg-type]
            extraction_adapter=extraction_adapter,
            health_check=lambda: healthy,
            clock=clock,
        )

    return _make
