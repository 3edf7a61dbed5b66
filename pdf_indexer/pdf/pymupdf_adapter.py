from pathlib import Path

import pymupdf

from pdf_indexer.pdf.base import BasePdfExtractor
from pdf_indexer.pdf.exceptions import PdfExtractionError, SecuredPdfError
from pdf_indexer.pdf.models import PdfPreview


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text from PDF using PyMuPDF."""

    def extract(self, file_path: Path) -> str:
        try:
            with pymupdf.open(file_path) as doc:  # type: ignore[no-untyped-call]
                self._ensure_readable(doc, file_path)
                pages = [page.get_text() for page in doc]
            return "\n".join(pages).strip()
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

    def preview(self, file_path: Path, max_pages: int) -> PdfPreview:
        try:
            with pymupdf.open(file_path) as doc:  # type: ignore[no-untyped-call]
                self._ensure_readable(doc, file_path)
                preview = PdfPreview(metadata=self._normalize_metadata(doc.metadata))
                try:
                    for index in range(min(max_pages, doc.page_count)):
                        preview.pages.append(doc[index].get_text().strip())
                except Exception as exc:
                    preview.page_error = str(exc)
            return preview
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

    @staticmethod
    def _ensure_readable(doc: "pymupdf.Document", file_path: Path) -> None:
        if doc.needs_pass:
            raise SecuredPdfError(f"Secured PDF file: {file_path.name}")
