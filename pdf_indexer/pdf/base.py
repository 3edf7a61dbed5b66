from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pdf_indexer.pdf.models import PdfPreview

METADATA_FIELDS = ("Title", "Subject", "Keywords", "Author")


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, file_path: Path) -> str:
        """Extract plain text from every page of a PDF file.

        Args:
            file_path: Path to an existing PDF file.

        Returns:
            Extracted text as a single normalized string.

        Raises:
            SecuredPdfError: if the document is encrypted.
            PdfExtractionError: if extraction fails for any other reason.
        """

    @abstractmethod
    def preview(self, file_path: Path, max_pages: int) -> PdfPreview:
        """Read document metadata and the text of at most max_pages pages.

        A failure while reading page text is reported through
        ``PdfPreview.page_error`` instead of raising, so the metadata survives.

        Raises:
            SecuredPdfError: if the document is encrypted.
            PdfExtractionError: if the document cannot be opened.
        """

    @staticmethod
    def _normalize_metadata(raw: dict[str, Any] | None) -> dict[str, str]:
        """Keep the searchable info fields, keyed as Title/Subject/Keywords/Author."""
        if not raw:
            return {}
        lowered = {str(key).lower(): value for key, value in raw.items()}
        metadata: dict[str, str] = {}
        for name in METADATA_FIELDS:
            value = lowered.get(name.lower())
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            if value is None:
                continue
            text = str(value).strip()
            if text:
                metadata[name] = text
        return metadata
