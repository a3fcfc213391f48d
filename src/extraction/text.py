"""
Plain-text readers for uploaded CV files (PDF, DOCX, TXT).
"""

from pathlib import Path

import docx
from loguru import logger
from pypdf import PdfReader

from shared.exceptions import ExtractionError


def _read_pdf(path: Path) -> str:
    reader = PdfReader(str(path))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(pages)


def _read_docx(path: Path) -> str:
    document = docx.Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def _read_txt(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


_READERS = {
    ".pdf": _read_pdf,
    ".docx": _read_docx,
    ".txt": _read_txt,
}


def read_document_text(file_path: str) -> str:
    """
    Read the text content of a CV file.

    Blocking; workers call it through `asyncio.to_thread`.

    Raises:
        ExtractionError: missing file, unsupported type, or no text found
    """
    path = Path(file_path)
    if not path.exists():
        raise ExtractionError(f"File not found: {file_path}")

    reader = _READERS.get(path.suffix.lower())
    if reader is None:
        raise ExtractionError(f"Unsupported file type: {path.suffix or '(none)'}")

    try:
        text = reader(path)
    except Exception as e:
        raise ExtractionError(f"Could not read {path.name}: {e}") from e

    text = text.strip()
    if not text:
        raise ExtractionError(f"No text content found in {path.name}")

    logger.debug(f"Read {len(text)} characters from {path.name}")
    return text
