import io
from pathlib import Path

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a five-page PDF with document info fields set."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle("Annual Report")
    c.setAuthor("Jane Archivist")
    c.setSubject("Finances")
    c.setKeywords("budget, audit")
    for number in ("one", "two", "three", "four", "five"):
        c.drawString(72, 720, f"Page {number} content")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def encrypted_pdf_bytes() -> bytes:
    """Generate a PDF that needs a user password to open."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, encrypt="s3cret")
    c.drawString(72, 720, "Top secret content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_path(tmp_path: Path, sample_pdf_bytes: bytes) -> Path:
    path = tmp_path / "hello.pdf"
    path.write_bytes(sample_pdf_bytes)
    return path


@pytest.fixture()
def multi_page_pdf_path(tmp_path: Path, multi_page_pdf_bytes: bytes) -> Path:
    path = tmp_path / "report.pdf"
    path.write_bytes(multi_page_pdf_bytes)
    return path


@pytest.fixture()
def empty_pdf_path(tmp_path: Path, empty_pdf_bytes: bytes) -> Path:
    path = tmp_path / "blank.pdf"
    path.write_bytes(empty_pdf_bytes)
    return path


@pytest.fixture()
def encrypted_pdf_path(tmp_path: Path, encrypted_pdf_bytes: bytes) -> Path:
    path = tmp_path / "locked.pdf"
    path.write_bytes(encrypted_pdf_bytes)
    return path
