"""
Utilities for loading résumé documents and extracting their text.
"""

from __future__ import annotations

import io
import logging
import mimetypes
import zipfile
from pathlib import Path
from typing import Iterable, List

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from data_models import CandidateText
from errors import FileProcessingError
from validation import RESUME_EXTENSIONS, validate_file, validate_file_count

LOGGER = logging.getLogger(__name__)

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_TYPE = "application/msword"

_EXTENSION_TYPES = {
    ".pdf": PDF_TYPE,
    ".docx": DOCX_TYPE,
    ".doc": DOC_TYPE,
    ".txt": "text/plain",
}


def content_type_for(filename: str) -> str:
    """Best-effort MIME type from a file name."""
    extension = Path(filename).suffix.lower()
    if extension in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[extension]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def _pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    parts = []
    for page in reader.pages:
        page_text = (page.extract_text() or "").strip()
        if page_text:
            parts.append(page_text)
    return "\n".join(parts)


def _docx_text(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                paragraphs.append(" | ".join(cells))
    return "\n".join(paragraphs)


def extract_text(data: bytes, content_type: str, filename: str = "") -> str:
    """
    Extract plain text from a résumé document.

    Args:
        data: Raw file bytes.
        content_type: MIME type of the document.
        filename: Original name, used in error messages.

    Returns:
        Non-empty extracted text.

    Raises:
        FileProcessingError: If the type is unsupported, the document cannot
            be read, or it contains no text.
    """
    label = filename or "document"
    if not data:
        raise FileProcessingError(f"{label} is empty")

    try:
        if content_type == PDF_TYPE:
            text = _pdf_text(data)
        elif content_type == DOCX_TYPE:
            text = _docx_text(data)
        elif content_type == DOC_TYPE:
            raise FileProcessingError(
                f"{label}: legacy .doc files are not supported, convert to .docx or PDF",
                user_message="Legacy Word documents are not supported.",
            )
        elif content_type.startswith("text/"):
            text = data.decode("utf-8", errors="replace")
        else:
            raise FileProcessingError(f"{label}: unsupported content type {content_type}")
    except FileProcessingError:
        raise
    except (PdfReadError, PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError, OSError) as exc:
        raise FileProcessingError(f"Failed to read {label}: {exc}") from exc

    text = text.strip()
    if not text:
        raise FileProcessingError(
            f"No extractable text found in {label}",
            user_message=f"Could not extract text from {label}. Scanned documents are not supported.",
        )
    LOGGER.debug("Extracted %d characters from %s", len(text), label)
    return text


def load_candidate(path: Path) -> CandidateText:
    """
    Read and extract one résumé file.

    Args:
        path: Location of the résumé.

    Returns:
        CandidateText named after the file.
    """
    if not path.exists():
        raise FileProcessingError(f"Resume file not found: {path}")
    validate_file(path.name, path.stat().st_size, "resume", RESUME_EXTENSIONS)
    data = path.read_bytes()
    text = extract_text(data, content_type_for(path.name), path.name)
    return CandidateText(name=path.name, text=text, source_path=path)


def load_candidates(paths: Iterable[Path]) -> List[CandidateText]:
    """Load several résumés, preserving input order."""
    paths = list(paths)
    validate_file_count(len(paths), "resumes")
    candidates = [load_candidate(path) for path in paths]
    LOGGER.info("Loaded %d resumes", len(candidates))
    return candidates
