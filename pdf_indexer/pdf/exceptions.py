class PdfExtractionError(Exception):
    """Raised when a PDF engine cannot extract text."""


class SecuredPdfError(PdfExtractionError):
    """Raised when the document is encrypted or password-protected."""
