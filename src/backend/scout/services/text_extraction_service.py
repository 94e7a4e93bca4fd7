"""Resume file handling: type checks, hashing, and text extraction (PyMuPDF, python-docx)."""

import hashlib
import io
import logging
import re
import zipfile

import fitz  # PyMuPDF
from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from scout.core.config import settings

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOC_MIME = "application/msword"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_EXTENSIONS = ("pdf", "doc", "docx")
ALLOWED_MIME_TYPES = (PDF_MIME, DOC_MIME, DOCX_MIME)
_CONTENT_TYPES = {"pdf": PDF_MIME, "doc": DOC_MIME, "docx": DOCX_MIME}

UNSUPPORTED_DOC_LEGACY = "UNSUPPORTED_DOC_LEGACY"
SCANNED_PDF_NO_TEXT_LAYER = "SCANNED_PDF_NO_TEXT_LAYER"
PDF_TEXT_TOO_SHORT = "PDF_TEXT_TOO_SHORT"
INVALID_FILE = "INVALID_FILE"
MIN_TEXT_CHARS = 50
MIN_TEXT_WORDS = 10


class TextExtractionError(ValueError):
    """The file could not be turned into usable text. ``code`` is a stable marker."""

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        super().__init__(message or code)


def file_extension(name: str) -> str:
    _, dot, ext = (name or "").rpartition(".")
    return ext.lower() if dot else ""


def is_supported(name: str, mime: str | None = None) -> bool:
    if file_extension(name) not in ALLOWED_EXTENSIONS:
        return False
    return mime is None or mime in ALLOWED_MIME_TYPES


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def safe_filename(name: str) -> str:
    cleaned = re.sub(r"[^\w\s.-]", "", name)
    cleaned = re.sub(r"\s+", "_", cleaned)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    return cleaned.strip("_").lower()


def infer_content_type(name: str) -> str:
    return _CONTENT_TYPES.get(file_extension(name), "application/octet-stream")


def has_valid_text(text: str, min_length: int = MIN_TEXT_CHARS) -> bool:
    if not text or len(text) < min_length:
        return False
    return len(text.split()) >= MIN_TEXT_WORDS


def extract_text_from_pdf(pdf_bytes: bytes, max_pages: int | None = None) -> str:
    """Extract text from the first ``max_pages`` pages of a PDF."""
    max_pages = max_pages or settings.pdf_max_pages
    pages = []
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            page_count = doc.page_count
            for index in range(min(page_count, max_pages)):
                page_text = doc[index].get_text().replace("\u00ad", "")
                page_text = re.sub(r"[ \t]+", " ", page_text).strip()
                if page_text:
                    pages.append(page_text)
    except RuntimeError as exc:  # fitz.FileDataError and friends
        logger.warning("PDF could not be opened: %s", exc)
        raise TextExtractionError(INVALID_FILE, "The PDF file is damaged or not a PDF") from exc

    text = "\n\n".join(pages).strip()
    if not text and page_count > 0:
        logger.warning("PDF has no text layer (likely scanned)")
        raise TextExtractionError(SCANNED_PDF_NO_TEXT_LAYER)
    if not has_valid_text(text):
        logger.warning("PDF text too short: %d chars", len(text))
        raise TextExtractionError(PDF_TEXT_TOO_SHORT)
    return text


def extract_text_from_docx(docx_bytes: bytes) -> str:
    try:
        document = Document(io.BytesIO(docx_bytes))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as exc:
        logger.warning("DOCX could not be opened: %s", exc)
        raise TextExtractionError(INVALID_FILE, "The DOCX file is damaged or not a DOCX") from exc
    parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts).strip()


def extract_text(data: bytes, filename: str) -> str:
    ext = file_extension(filename)
    if ext == "pdf":
        return extract_text_from_pdf(data)
    if ext == "docx":
        return extract_text_from_docx(data)
    if ext == "doc":
        return UNSUPPORTED_DOC_LEGACY
    raise TextExtractionError("UNSUPPORTED_FILE_TYPE", f"Unsupported file type: {ext or 'unknown'}")
