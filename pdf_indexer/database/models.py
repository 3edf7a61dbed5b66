from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AttachmentRecord:
    """Represents a row from the attachments catalog."""

    id: int
    title: str
    mime_type: str
    file_path: str


@dataclass(frozen=True)
class ScheduledTask:
    """Represents a row from the scheduled_tasks table."""

    id: int
    hook: str
    run_at: datetime
    interval_seconds: int | None = None
