"""
Input validation and sanitization for résumé files and job text.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Sequence

from errors import ValidationError

MAX_FILE_SIZE = 10 * 1024 * 1024
MAX_TEXT_LENGTH = 100_000
MAX_FILES_PER_REQUEST = 20
RESUME_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt")
SHEET_EXTENSIONS = (".xls", ".xlsx", ".csv")
ALLOWED_EXTENSIONS = RESUME_EXTENSIONS + SHEET_EXTENSIONS

_SCRIPT_BLOCK_RE = re.compile(r"<script\b.*?>.*?</script>", re.IGNORECASE | re.DOTALL)
_JS_URL_RE = re.compile(r"javascript:(?=\S)", re.IGNORECASE)
_HANDLER_TAG_RE = re.compile(r"<[^>]*\bon\w+\s*=[^>]*>", re.IGNORECASE)


def validate_file(
    name: str,
    size: int,
    field_name: str = "file",
    allowed_extensions: Sequence[str] = ALLOWED_EXTENSIONS,
) -> None:
    """
    Check a file's name and size before reading it.

    Args:
        name: File name including extension.
        size: Size in bytes.
        field_name: Label used in error messages.
        allowed_extensions: Lower-case extensions accepted for this field.

    Raises:
        ValidationError: If the file is empty, too large or of the wrong type.
    """
    if not name:
        raise ValidationError(f"{field_name} is required")
    if size <= 0:
        raise ValidationError(f"{field_name} is empty: {name}")
    if size > MAX_FILE_SIZE:
        raise ValidationError(f"{name}: file size exceeds maximum allowed limit of 10MB")
    extension = Path(name).suffix.lower()
    if extension not in allowed_extensions:
        raise ValidationError(
            f"{name}: file extension not allowed. Supported: {', '.join(allowed_extensions)}"
        )


def validate_file_count(count: int, field_name: str = "files") -> None:
    if count <= 0:
        raise ValidationError(f"{field_name} is required")
    if count > MAX_FILES_PER_REQUEST:
        raise ValidationError(f"Too many files. Maximum {MAX_FILES_PER_REQUEST} files allowed per request")


def validate_text(
    text: Optional[str],
    field_name: str,
    required: bool = True,
    check_content: bool = True,
) -> None:
    """Reject missing or oversized text, and script-bearing text when ``check_content`` is set."""
    if text is None or not text.strip():
        if required:
            raise ValidationError(f"{field_name} is required")
        return
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"{field_name} exceeds maximum length of {MAX_TEXT_LENGTH} characters")
    if check_content and any(pattern.search(text) for pattern in (_SCRIPT_BLOCK_RE, _JS_URL_RE, _HANDLER_TAG_RE)):
        raise ValidationError(f"Invalid content detected in {field_name}")


def sanitize_text(text: Optional[str]) -> str:
    """Strip script blocks, ``javascript:`` URLs and tags with inline handlers, then collapse whitespace."""
    if not text:
        return ""
    cleaned = _SCRIPT_BLOCK_RE.sub("", text)
    cleaned = _JS_URL_RE.sub("", cleaned)
    cleaned = _HANDLER_TAG_RE.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()
