from dataclasses import dataclass

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.cache import ReadThroughCache
from pdf_indexer.database.repositories.attachment_repository import AttachmentRepository
from pdf_indexer.database.repositories.index_repository import IndexRepository
from pdf_indexer.database.repositories.lock_repository import LockRepository
from pdf_indexer.database.repositories.progress_repository import ProgressRepository
from pdf_indexer.database.repositories.task_repository import TaskRepository
from pdf_indexer.extraction.adapter import build_extraction_adapter
from pdf_indexer.indexer.batch_runner import BatchRunner
from pdf_indexer.indexer.control import IndexerControl
from pdf_indexer.indexer.progress import ProgressTracker
from pdf_indexer.indexer.watchdog import Watchdog
from pdf_indexer.pdf.factory import PdfExtractorFactory


@dataclass
class Indexer:
    batch_runner: BatchRunner
    watchdog: Watchdog
    control: IndexerControl
    task_repo: TaskRepository


def build_indexer(settings: Settings) -> Indexer:
    """Build the batch runner, watchdog and controls over shared repositories."""
    index_repo = IndexRepository(ReadThroughCache(settings.count_cache_ttl_seconds))
    attachment_repo = AttachmentRepository()
    lock_repo = LockRepository()
    task_repo = TaskRepository()
    progress = ProgressTracker(ProgressRepository(), capacity=settings.progress_log_capacity)
    extraction_adapter = build_extraction_adapter(
        settings, PdfExtractorFactory.create(settings)
    )

    batch_runner = BatchRunner(
        settings=settings,
        index_repo=index_repo,
        attachment_repo=attachment_repo,
        progress=progress,
        lock_repo=lock_repo,
        task_repo=task_repo,
        extraction_adapter=extraction_adapter,
    )
    watchdog = Watchdog(
        settings=settings,
        progress=progress,
        index_repo=index_repo,
        task_repo=task_repo,
        lock_repo=lock_repo,
    )
    control = IndexerControl(
        settings=settings,
        progress=progress,
        index_repo=index_repo,
        attachment_repo=attachment_repo,
        task_repo=task_repo,
    )
    return Indexer(
        batch_runner=batch_runner,
        watchdog=watchdog,
        control=control,
        task_repo=task_repo,
    )
