from dataclasses import dataclass
from enum import Enum


class ExtractionKind(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    OVERSIZED = "oversized"
    SECURED = "secured"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class TextResult:
    """Outcome of one extraction. ``text`` is never empty: failures carry a placeholder."""

    kind: ExtractionKind
    text: str
    filename: str
    size_bytes: int
    message: str = ""

    @property
    def is_secured(self) -> bool:
        return self.kind is ExtractionKind.SECURED

    @property
    def is_failure(self) -> bool:
        return self.kind is ExtractionKind.PARSE_ERROR

    @property
    def size_mb(self) -> float:
        return round(self.size_bytes / (1024 * 1024), 2)
