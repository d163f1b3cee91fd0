"""
Flat-file storage for uploaded and renamed résumés.
"""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Union

from errors import FileProcessingError, ValidationError

LOGGER = logging.getLogger(__name__)

_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._\-]")


class FlatFileStore:
    """Stores blobs as files directly under one root directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, file_id: str) -> Path:
        if not file_id or "/" in file_id or "\\" in file_id or file_id in (".", ".."):
            raise ValidationError(f"Invalid file id: {file_id!r}")
        return self.root / file_id

    def store(self, data: bytes, suffix: str = "") -> str:
        """
        Persist bytes under a fresh random id.

        Args:
            data: File contents.
            suffix: Extension to keep, e.g. ``.pdf``.

        Returns:
            The id to pass to ``read``/``exists``/``delete``.
        """
        file_id = f"{uuid.uuid4().hex}{_SAFE_NAME_RE.sub('', suffix)}"
        self._write(self._path(file_id), data)
        return file_id

    def store_as(self, data: bytes, filename: str) -> str:
        """Persist bytes under a caller-chosen (sanitized) name, replacing any existing file."""
        safe_name = _SAFE_NAME_RE.sub("_", filename).strip("._") or uuid.uuid4().hex
        self._write(self._path(safe_name), data)
        return safe_name

    def exists(self, file_id: str) -> bool:
        return self._path(file_id).is_file()

    def read(self, file_id: str) -> bytes:
        path = self._path(file_id)
        if not path.is_file():
            raise FileProcessingError(f"Stored file not found: {file_id}")
        return path.read_bytes()

    def delete(self, file_id: str) -> bool:
        path = self._path(file_id)
        if not path.is_file():
            return False
        path.unlink()
        LOGGER.debug("Deleted stored file %s", file_id)
        return True

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise FileProcessingError(f"Failed to store file {path.name}: {exc}") from exc
        LOGGER.debug("Stored %d bytes as %s", len(data), path.name)
