from dataclasses import dataclass, field


@dataclass
class PdfPreview:
    """Metadata plus the leading pages of a document."""

    metadata: dict[str, str] = field(default_factory=dict)
    pages: list[str] = field(default_factory=list)
    page_error: str = ""
