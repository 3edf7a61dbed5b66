from pdf_indexer.config.settings import Settings
from pdf_indexer.logging.logger import Log
from pdf_indexer.pdf.base import BasePdfExtractor
from pdf_indexer.pdf.pdfplumber_adapter import PdfPlumberAdapter
from pdf_indexer.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Maps the ``pdf_engine`` setting to a text extraction engine."""

    ENGINES: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        return cls.from_name(settings.pdf_engine)

    @classmethod
    def from_name(cls, engine: str) -> BasePdfExtractor:
        key = engine.strip().lower()
        engine_cls = cls.ENGINES.get(key)
        if engine_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {sorted(cls.ENGINES)}"
            )
        Log.debug("PDF engine selected", engine=key)
        return engine_cls()
