from pathlib import Path

import pdfplumber
from pdfminer.pdfdocument import PDFEncryptionError

from pdf_indexer.pdf.base import BasePdfExtractor
from pdf_indexer.pdf.exceptions import PdfExtractionError, SecuredPdfError
from pdf_indexer.pdf.models import PdfPreview


def _is_encryption_error(exc: BaseException) -> bool:
    """pdfplumber wraps pdfminer errors, so look through the chain and args."""
    seen: set[int] = set()
    pending: list[BaseException] = [exc]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, PDFEncryptionError):
            return True
        pending.extend(arg for arg in current.args if isinstance(arg, BaseException))
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                pending.append(linked)
    return False


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text from PDF using pdfplumber."""

    def extract(self, file_path: Path) -> str:
        try:
            with pdfplumber.open(file_path) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return "\n".join(pages).strip()
        except PdfExtractionError:
            raise
        except Exception as exc:
            if _is_encryption_error(exc):
                raise SecuredPdfError(f"Secured PDF file: {file_path.name}") from exc
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc

    def preview(self, file_path: Path, max_pages: int) -> PdfPreview:
        try:
            with pdfplumber.open(file_path) as pdf:
                preview = PdfPreview(metadata=self._normalize_metadata(pdf.metadata))
                try:
                    for page in pdf.pages[:max_pages]:
                        preview.pages.append((page.extract_text() or "").strip())
                except Exception as exc:
                    preview.page_error = str(exc)
            return preview
        except PdfExtractionError:
            raise
        except Exception as exc:
            if _is_encryption_error(exc):
                raise SecuredPdfError(f"Secured PDF file: {file_path.name}") from exc
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
