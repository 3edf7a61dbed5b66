"""Command line entry point.

Usage:
    python -m pdf_indexer.main init
    python -m pdf_indexer.main worker
    python -m pdf_indexer.main start | stop | restart | reindex
    python -m pdf_indexer.main run-batch
    python -m pdf_indexer.main watchdog
    python -m pdf_indexer.main status
    python -m pdf_indexer.main attachment-saved <attachment_id>
    python -m pdf_indexer.main uninstall
"""

import argparse
import json
from collections.abc import Callable

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.connection import close_pool, init_pool
from pdf_indexer.database.schema import create_tables
from pdf_indexer.indexer.builder import Indexer, build_indexer
from pdf_indexer.logging.logger import Log
from pdf_indexer.worker.job_runner import JobRunner
from pdf_indexer.worker.worker import Worker


def _init(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    create_tables()
    indexer.control.activate()
    Log.info("Tables created and watchdog registered")
    return 0


def _worker(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    indexer.control.activate()
    job_runner = JobRunner(indexer.batch_runner, indexer.watchdog)
    Worker(indexer.task_repo, job_runner, settings).run()
    return 0


def _start(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    indexer.control.start()
    return 0


def _stop(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    count = indexer.control.stop()
    print(f"PDF indexing has been stopped. {count} PDFs were reset to pending status.")
    return 0


def _restart(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    indexer.control.restart()
    return 0


def _reindex(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    indexer.control.reindex()
    return 0


def _run_batch(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    result = indexer.batch_runner.run_batch()
    print(result.outcome.value)
    return 0


def _watchdog(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    restarted = indexer.watchdog.check()
    print("restarted" if restarted else "ok")
    return 0


def _status(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    print(json.dumps(indexer.control.status().to_dict(), indent=2))
    return 0


def _attachment_saved(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    indexer.control.attachment_saved(args.attachment_id)
    return 0


def _uninstall(indexer: Indexer, settings: Settings, args: argparse.Namespace) -> int:
    indexer.control.uninstall()
    return 0


COMMANDS: dict[str, Callable[[Indexer, Settings, argparse.Namespace], int]] = {
    "init": _init,
    "worker": _worker,
    "start": _start,
    "stop": _stop,
    "restart": _restart,
    "reindex": _reindex,
    "run-batch": _run_batch,
    "watchdog": _watchdog,
    "status": _status,
    "attachment-saved": _attachment_saved,
    "uninstall": _uninstall,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pdf-indexer",
        description="Extract text from PDF attachments into a searchable index.",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="Create tables and register the watchdog")
    sub.add_parser("worker", help="Run the scheduled task loop")
    sub.add_parser("start", help="Start or resume indexing")
    sub.add_parser("stop", help="Stop indexing and reset progress")
    sub.add_parser("restart", help="Restart a stalled indexing run")
    sub.add_parser("reindex", help="Clear the index and re-index every PDF")
    sub.add_parser("run-batch", help="Run one batch now")
    sub.add_parser("watchdog", help="Run one watchdog check now")
    sub.add_parser("status", help="Print the indexing status as JSON")
    saved = sub.add_parser("attachment-saved", help="Queue indexing for a saved attachment")
    saved.add_argument("attachment_id", type=int)
    sub.add_parser("uninstall", help="Remove all indexer data")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args -> initialize pool -> build dependencies -> run command."""
    args = parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        indexer = build_indexer(settings)
        return COMMANDS[args.command](indexer, settings, args)
    finally:
        close_pool()


if __name__ == "__main__":
    raise SystemExit(main())
