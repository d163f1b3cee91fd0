from __future__ import annotations

from pathlib import Path

import pytest
from docx import Document

from errors import FileProcessingError, ValidationError
from resume_loader import DOCX_TYPE, PDF_TYPE, content_type_for, extract_text, load_candidate, load_candidates


def test_loads_plain_text_resume(tmp_path: Path) -> None:
    path = tmp_path / "jane.txt"
    path.write_text("Jane Doe\nPython developer\n", encoding="utf-8")

    candidate = load_candidate(path)
    assert candidate.name == "jane.txt"
    assert candidate.text == "Jane Doe\nPython developer"
    assert candidate.source_path == path


def test_extracts_docx_paragraphs_and_tables(tmp_path: Path) -> None:
    path = tmp_path / "john.docx"
    document = Document()
    document.add_paragraph("John Smith")
    document.add_paragraph("Data engineer")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Skills"
    table.rows[0].cells[1].text = "Spark, SQL"
    document.save(path)

    text = load_candidate(path).text
    assert text.splitlines() == ["John Smith", "Data engineer", "Skills | Spark, SQL"]


def test_content_type_for() -> None:
    assert content_type_for("cv.PDF") == PDF_TYPE
    assert content_type_for("cv.docx") == DOCX_TYPE
    assert content_type_for("cv.txt") == "text/plain"


def test_empty_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")
    with pytest.raises(ValidationError):
        load_candidate(path)


def test_whitespace_only_text_has_nothing_to_extract() -> None:
    with pytest.raises(FileProcessingError):
        extract_text(b"   \n  ", "text/plain", "blank.txt")


def test_legacy_doc_is_not_supported(tmp_path: Path) -> None:
    path = tmp_path / "old.doc"
    path.write_bytes(b"\xd0\xcf\x11\xe0legacy")
    with pytest.raises(FileProcessingError):
        load_candidate(path)


def test_unsupported_extension_and_missing_file(tmp_path: Path) -> None:
    path = tmp_path / "cv.rtf"
    path.write_text("{\\rtf1 Jane}", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_candidate(path)
    with pytest.raises(FileProcessingError):
        load_candidate(tmp_path / "missing.pdf")


def test_corrupt_pdf_is_wrapped() -> None:
    with pytest.raises(FileProcessingError):
        extract_text(b"this is not a pdf", PDF_TYPE, "broken.pdf")


def test_too_many_resumes(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        load_candidates([tmp_path / f"{index}.txt" for index in range(21)])
