from __future__ import annotations

import csv
from pathlib import Path

import openpyxl
import pytest
import requests

import job_ingest
from errors import FileProcessingError, TabularIngestError, ValidationError
from job_ingest import TabularJobIngester, cell_to_text, read_table_rows


@pytest.fixture
def ingester() -> TabularJobIngester:
    return TabularJobIngester()


def test_detects_columns_from_header_keywords(ingester: TabularJobIngester) -> None:
    rows = [
        ["Employer", "Title", "JD", "Link"],
        ["Acme", "Backend Engineer", "Build APIs in Python", "https://acme.example/jobs/1"],
    ]
    postings = ingester.ingest(rows)

    assert len(postings) == 1
    posting = postings[0]
    assert posting.company_name == "Acme"
    assert posting.role_name == "Backend Engineer"
    assert posting.description == "Build APIs in Python"
    assert posting.apply_link == "https://acme.example/jobs/1"


def test_column_order_does_not_matter(ingester: TabularJobIngester) -> None:
    rows = [
        ["Apply Link", "Job Description", "Company Name", "Position"],
        ["https://initech.example", "Maintain TPS reports", "Initech", "Analyst"],
        ["", "", "Hooli", "Engineer"],
    ]
    postings = ingester.ingest(rows)

    assert [(p.company_name, p.role_name, p.description) for p in postings] == [
        ("Initech", "Analyst", "Maintain TPS reports")
    ]
    assert postings[0].apply_link == "https://initech.example"


def test_longest_column_is_description_fallback(ingester: TabularJobIngester) -> None:
    header = ["Company", "Position", "Text"]
    mapping = ingester.detect_columns(header, [["Acme", "Dev", "A long free text description of the job"]])
    assert (mapping.company, mapping.role, mapping.description) == (0, 1, 2)


def test_numeric_cells_are_coerced(ingester: TabularJobIngester) -> None:
    postings = ingester.ingest([["Company", "Role", "Description"], [42.0, None, 1234]])
    assert postings[0].company_name == "42"
    assert postings[0].role_name == ""
    assert postings[0].description == "1234"


@pytest.mark.parametrize(
    "rows, reason",
    [
        ([], "missing_header"),
        ([["", None]], "missing_header"),
        ([[None, ""], ["x", "y"]], "no_columns"),
        ([["Company", "Role", "Description"]], "no_data_rows"),
        ([["Company", "Role", "Description"], ["Acme", "Dev", ""]], "no_valid_postings"),
    ],
)
def test_failure_reasons(ingester: TabularJobIngester, rows, reason: str) -> None:
    with pytest.raises(TabularIngestError) as excinfo:
        ingester.ingest(rows)
    assert excinfo.value.reason == reason
    assert isinstance(excinfo.value, ValidationError)


def test_header_only_message_mentions_data_rows(ingester: TabularJobIngester) -> None:
    with pytest.raises(TabularIngestError, match="at least one row of data"):
        ingester.ingest([["Company", "Role", "Description"], ["", "", ""]])


def test_cell_to_text() -> None:
    assert cell_to_text(None) == ""
    assert cell_to_text(True) == "true"
    assert cell_to_text(3.0) == "3"
    assert cell_to_text(3.5) == "3.5"
    assert cell_to_text("  Acme ") == "Acme"


def test_reads_csv_with_bom(tmp_path: Path) -> None:
    path = tmp_path / "jobs.csv"
    with path.open("w", encoding="utf-8-sig", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["Company", "Role", "Description"])
        writer.writerow(["Acme", "Dev", "Write code, review code"])

    rows = read_table_rows(path)
    assert rows == [["Company", "Role", "Description"], ["Acme", "Dev", "Write code, review code"]]


def test_reads_first_xlsx_worksheet(tmp_path: Path) -> None:
    path = tmp_path / "jobs.xlsx"
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.append(["Company", "Role", "Description"])
    sheet.append(["Acme", "Dev", "Ship features"])
    workbook.save(path)

    postings = TabularJobIngester().ingest(read_table_rows(path))
    assert [(p.company_name, p.description) for p in postings] == [("Acme", "Ship features")]


def test_rejects_legacy_and_unknown_sheet_types(tmp_path: Path) -> None:
    for name in ("jobs.xls", "jobs.ods"):
        path = tmp_path / name
        path.write_bytes(b"data")
        with pytest.raises(ValidationError):
            read_table_rows(path)
    with pytest.raises(FileProcessingError):
        read_table_rows(tmp_path / "missing.csv")


def test_reads_csv_url(monkeypatch) -> None:
    class FakeResponse:
        text = "Company,Role,Description\nAcme,Dev,Ship it\n"

        def raise_for_status(self) -> None:
            return None

    calls = []

    def fake_get(url, timeout=None):
        calls.append((url, timeout))
        return FakeResponse()

    monkeypatch.setattr(job_ingest.requests, "get", fake_get)
    rows = read_table_rows("https://sheets.example/export?format=csv")

    assert rows[1] == ["Acme", "Dev", "Ship it"]
    assert calls == [("https://sheets.example/export?format=csv", 30)]


def test_url_failure_becomes_file_processing_error(monkeypatch) -> None:
    def fake_get(url, timeout=None):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(job_ingest.requests, "get", fake_get)
    with pytest.raises(FileProcessingError):
        read_table_rows("https://sheets.example/export")
