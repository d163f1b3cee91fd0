from __future__ import annotations

from pathlib import Path

import pytest

from errors import FileProcessingError, ValidationError
from file_store import FlatFileStore


def test_store_read_delete(tmp_path: Path) -> None:
    store = FlatFileStore(tmp_path / "uploads")
    file_id = store.store(b"%PDF-1.4", ".pdf")

    assert file_id.endswith(".pdf")
    assert len(file_id) == 36
    assert store.exists(file_id)
    assert store.read(file_id) == b"%PDF-1.4"
    assert store.delete(file_id) is True
    assert store.delete(file_id) is False
    assert not store.exists(file_id)


def test_store_as_sanitizes_name(tmp_path: Path) -> None:
    store = FlatFileStore(tmp_path)
    name = store.store_as(b"data", "Jane Doe/Acme_Dev_123456.pdf")

    assert name == "Jane_Doe_Acme_Dev_123456.pdf"
    assert (tmp_path / name).read_bytes() == b"data"


def test_rejects_path_like_ids(tmp_path: Path) -> None:
    store = FlatFileStore(tmp_path)
    for bad in ("../secret", "a/b", "..", ""):
        with pytest.raises(ValidationError):
            store.read(bad)


def test_missing_file_read(tmp_path: Path) -> None:
    with pytest.raises(FileProcessingError):
        FlatFileStore(tmp_path).read("nope.pdf")
