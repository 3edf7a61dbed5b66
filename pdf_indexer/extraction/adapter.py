"""Size-aware text extraction with placeholder text for every failure mode.

Three paths, chosen by file size:

* above the hard ceiling: no parse at all, an ``OVERSIZED`` placeholder;
* above ``max_normal_size``: metadata plus the first few pages (``PARTIAL``);
* otherwise: full text (``FULL``).

Encrypted documents are caught by a header check before parsing or by the
engine raising ``SecuredPdfError``. The Document Store always receives some
searchable text, so every result carries a non-empty ``text``.
"""

from pathlib import Path

from pdf_indexer.config.settings import Settings
from pdf_indexer.extraction.limits import raised_memory_limit
from pdf_indexer.extraction.models import ExtractionKind, TextResult
from pdf_indexer.logging.logger import Log
from pdf_indexer.pdf.base import METADATA_FIELDS, BasePdfExtractor
from pdf_indexer.pdf.exceptions import PdfExtractionError, SecuredPdfError

HEADER_PROBE_BYTES = 1024
ENCRYPT_MARKER = b"/Encrypt"
MB = 1024 * 1024


class ExtractionAdapter:
    """Turns a PDF path into a TextResult using the configured engine."""

    def __init__(
        self,
        extractor: BasePdfExtractor,
        hard_limit_bytes: int,
        large_file_page_cap: int,
        normal_memory_limit_bytes: int,
        large_memory_limit_bytes: int,
    ) -> None:
        self._extractor = extractor
        self._hard_limit_bytes = hard_limit_bytes
        self._large_file_page_cap = large_file_page_cap
        self._normal_memory_limit_bytes = normal_memory_limit_bytes
        self._large_memory_limit_bytes = large_memory_limit_bytes

    def extract(self, file_path: Path, max_normal_size: int) -> TextResult:
        """Extract searchable text. The caller guarantees that file_path exists."""
        filename = file_path.name
        size_bytes = file_path.stat().st_size

        if size_bytes > self._hard_limit_bytes:
            Log.warning(
                f"Extremely large file detected ({size_bytes / MB:.2f} MB): {file_path} - Skipping"
            )
            return TextResult(
                kind=ExtractionKind.OVERSIZED,
                text=(
                    f"Very large PDF file: {filename}\n"
                    f"Size: {size_bytes / MB:.2f}MB\n"
                    "This file was not indexed due to its extreme size."
                ),
                filename=filename,
                size_bytes=size_bytes,
                message="File too large",
            )

        if self._looks_encrypted(file_path):
            Log.info(f"Detected secured PDF file: {file_path}")
            return self._secured(filename, size_bytes)

        if size_bytes > max_normal_size:
            Log.info(
                f"Large file detected ({size_bytes / MB:.2f} MB): {file_path} - "
                "Using limited extraction"
            )
            with raised_memory_limit(self._large_memory_limit_bytes):
                return self._extract_limited(file_path, filename, size_bytes)

        with raised_memory_limit(self._normal_memory_limit_bytes):
            return self._extract_full(file_path, filename, size_bytes)

    def _extract_full(self, file_path: Path, filename: str, size_bytes: int) -> TextResult:
        try:
            text = self._extractor.extract(file_path)
        except SecuredPdfError:
            Log.info(f"Skipping secured PDF file: {file_path}")
            return self._secured(filename, size_bytes)
        except PdfExtractionError as exc:
            Log.error(f"Error processing file {file_path}: {exc}")
            return TextResult(
                kind=ExtractionKind.PARSE_ERROR,
                text=f"Error processing PDF {filename}: {exc}",
                filename=filename,
                size_bytes=size_bytes,
                message=str(exc),
            )
        if not text:
            text = f"PDF file: {filename}\n[No extractable text]"
        return TextResult(
            kind=ExtractionKind.FULL,
            text=text,
            filename=filename,
            size_bytes=size_bytes,
        )

    def _extract_limited(self, file_path: Path, filename: str, size_bytes: int) -> TextResult:
        size_mb = size_bytes / MB
        try:
            preview = self._extractor.preview(file_path, self._large_file_page_cap)
        except SecuredPdfError:
            Log.info(f"Skipping secured PDF file: {file_path}")
            return self._secured(filename, size_bytes)
        except PdfExtractionError as exc:
            Log.error(f"Error processing large file {file_path}: {exc}")
            return TextResult(
                kind=ExtractionKind.PARSE_ERROR,
                text=(
                    f"Large PDF file: {filename}\n"
                    f"Size: {size_mb:.2f}MB\n"
                    "This file was partially indexed due to its size."
                ),
                filename=filename,
                size_bytes=size_bytes,
                message=str(exc),
            )

        parts = [
            f"Large PDF file indexed with limited content. Size: {size_mb:.2f}MB\n\n"
        ]
        for name in METADATA_FIELDS:
            if name in preview.metadata:
                parts.append(f"{name}: {preview.metadata[name]}\n")
        for page_text in preview.pages[: self._large_file_page_cap]:
            parts.append(page_text + "\n\n")
        if preview.page_error:
            parts.append(f"\n[Could not extract page content: {preview.page_error}]")
        else:
            parts.append(
                f"\n[Note: Only first {self._large_file_page_cap} pages were indexed "
                "due to file size]"
            )
        return TextResult(
            kind=ExtractionKind.PARTIAL,
            text="".join(parts),
            filename=filename,
            size_bytes=size_bytes,
        )

    @staticmethod
    def _looks_encrypted(file_path: Path) -> bool:
        try:
            with file_path.open("rb") as handle:
                header = handle.read(HEADER_PROBE_BYTES)
        except OSError as exc:
            Log.debug(f"Header probe failed for {file_path}: {exc}")
            return False
        return ENCRYPT_MARKER in header

    @staticmethod
    def _secured(filename: str, size_bytes: int) -> TextResult:
        return TextResult(
            kind=ExtractionKind.SECURED,
            text=(
                "This PDF is password-protected or secured and cannot be indexed. "
                f"Filename: {filename}"
            ),
            filename=filename,
            size_bytes=size_bytes,
            message="Secured PDF",
        )


def build_extraction_adapter(settings: Settings, extractor: BasePdfExtractor) -> ExtractionAdapter:
    return ExtractionAdapter(
        extractor=extractor,
        hard_limit_bytes=settings.hard_limit_bytes,
        large_file_page_cap=settings.large_file_page_cap,
        normal_memory_limit_bytes=settings.normal_memory_limit_mb * MB,
        large_memory_limit_bytes=settings.large_memory_limit_mb * MB,
    )
