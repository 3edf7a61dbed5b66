from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

BATCH_HOOK = "pdf_indexer_batch_process"
WATCHDOG_HOOK = "pdf_indexer_watchdog"
PROCESSING_LOCK = "pdf_indexer_processing"

MISSING_FILE_PLACEHOLDER = "[ERROR] File missing on disk"
WATCHDOG_RESTART_STATUS = "restarted by watchdog"
MANUAL_RESTART_STATUS = "restarted manually"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    SECURED = "secured"
    FAILED = "failed"


@dataclass
class LogEntry:
    file: str
    status: str
    timestamp: str


@dataclass
class ErrorEntry:
    file: str
    error: str
    message: str
    timestamp: str


@dataclass
class ProgressRecord:
    """State of the current or most recent indexing run."""

    current_file: str = ""
    started_at: str = ""
    last_update: str = ""
    heartbeat: float = 0.0
    processed_count: int = 0
    total_count: int = 0
    batch_number: int = 0
    consecutive_errors: int = 0
    run_id: int = 0
    log: list[LogEntry] = field(default_factory=list)
    errors: list[ErrorEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressRecord":
        """Build a record from its stored form. Missing keys fall back to defaults."""
        return cls(
            current_file=str(data.get("current_file") or ""),
            started_at=str(data.get("started_at") or ""),
            last_update=str(data.get("last_update") or ""),
            heartbeat=float(data.get("heartbeat") or 0.0),
            processed_count=int(data.get("processed_count") or 0),
            total_count=int(data.get("total_count") or 0),
            batch_number=int(data.get("batch_number") or 0),
            consecutive_errors=int(data.get("consecutive_errors") or 0),
            run_id=int(data.get("run_id") or 0),
            log=[
                LogEntry(
                    file=str(item.get("file", "")),
                    status=str(item.get("status", "")),
                    timestamp=str(item.get("timestamp", "")),
                )
                for item in data.get("log") or []
            ],
            errors=[
                ErrorEntry(
                    file=str(item.get("file", "")),
                    error=str(item.get("error", "")),
                    message=str(item.get("message", "")),
                    timestamp=str(item.get("timestamp", "")),
                )
                for item in data.get("errors") or []
            ],
        )


class StepOutcome(str, Enum):
    CONTINUE = "continue"
    DRAINED = "drained"
    ABORTED = "aborted"
    LOCKED = "locked"
    STALLED_OUT = "stalled_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StepResult:
    """What one batch invocation did and whether another one should follow."""

    outcome: StepOutcome
    delay_seconds: int = 0
    attachment_id: int | None = None
