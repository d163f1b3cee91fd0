"""
Reading job postings from spreadsheets and CSV feeds.
"""

from __future__ import annotations

import csv
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

import openpyxl
import requests
from openpyxl.utils.exceptions import InvalidFileException

from data_models import JobPosting
from errors import FileProcessingError, TabularIngestError, ValidationError

LOGGER = logging.getLogger(__name__)

Cell = Union[str, int, float, bool, None]

COMPANY_KEYWORDS = ("company", "organization", "employer", "firm")
ROLE_KEYWORDS = ("role", "title", "position", "designation")
LINK_KEYWORDS = ("apply", "link", "url", "application", "careers")
DESCRIPTION_KEYWORDS = ("description", "requirements", "responsibilities", "duties", "summary", "details", "jd")
FETCH_TIMEOUT_SECONDS = 30


def cell_to_text(value: Any) -> str:
    """Coerce a sheet cell to text; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _matches(header: str, keywords: Sequence[str]) -> bool:
    return any(keyword in header for keyword in keywords)


def _is_role_header(header: str) -> bool:
    # "job" alone is a weak hint: "Job Description" belongs to the description
    if _matches(header, ROLE_KEYWORDS):
        return True
    return "job" in header and not _matches(header, DESCRIPTION_KEYWORDS)


@dataclass
class ColumnMapping:
    """Column indices chosen for each posting field; None when unavailable."""

    company: Optional[int] = None
    role: Optional[int] = None
    link: Optional[int] = None
    description: Optional[int] = None

    def describe(self) -> str:
        return (
            f"company={self.company}, role={self.role}, "
            f"link={self.link}, description={self.description}"
        )


class TabularJobIngester:
    """Turns rows of a job sheet into JobPosting records."""

    def __init__(self, sample_rows: int = 5) -> None:
        """
        Args:
            sample_rows: Data rows inspected when guessing the description column.
        """
        self.sample_rows = sample_rows

    def detect_columns(self, header: Sequence[str], data_rows: Sequence[Sequence[str]]) -> ColumnMapping:
        """
        Classify header columns by keyword, then fill gaps with fallbacks.

        Each column is claimed by the first unassigned category, in the order
        company, role, link, description, whose keywords it contains.
        """
        mapping = ColumnMapping()
        for index, raw in enumerate(header):
            text = raw.lower().strip()
            if not text:
                continue
            if mapping.company is None and _matches(text, COMPANY_KEYWORDS):
                mapping.company = index
            elif mapping.role is None and _is_role_header(text):
                mapping.role = index
            elif mapping.link is None and _matches(text, LINK_KEYWORDS):
                mapping.link = index
            elif mapping.description is None and _matches(text, DESCRIPTION_KEYWORDS):
                mapping.description = index

        width = len(header)
        if mapping.description is None:
            mapping.description = self._longest_column(data_rows, width, self._used(mapping))
            LOGGER.debug("Using longest column %s as description", mapping.description)
        if mapping.company is None:
            mapping.company = self._next_unused(0, width, self._used(mapping))
        if mapping.role is None:
            mapping.role = self._next_unused(1, width, self._used(mapping))
        return mapping

    @staticmethod
    def _used(mapping: ColumnMapping) -> set:
        return {i for i in (mapping.company, mapping.role, mapping.link, mapping.description) if i is not None}

    @staticmethod
    def _next_unused(start: int, width: int, used: set) -> Optional[int]:
        index = start
        while index < width:
            if index not in used:
                return index
            index += 1
        return None

    def _longest_column(self, data_rows: Sequence[Sequence[str]], width: int, used: set) -> Optional[int]:
        best_index: Optional[int] = None
        best_length = -1
        for row in data_rows[: self.sample_rows]:
            for index in range(min(width, len(row))):
                if index in used:
                    continue
                length = len(row[index])
                if length > best_length:
                    best_index, best_length = index, length
        return best_index

    def ingest(self, rows: Sequence[Sequence[Cell]]) -> List[JobPosting]:
        """
        Extract postings from a sheet whose first row is the header.

        Args:
            rows: Sheet rows of scalar cells.

        Returns:
            Postings in sheet order; rows without a description are skipped.

        Raises:
            TabularIngestError: With ``reason`` one of ``missing_header``,
                ``no_columns``, ``no_data_rows`` or ``no_valid_postings``.
        """
        table = [[cell_to_text(cell) for cell in row] for row in rows]
        while table and not any(table[-1]):
            table.pop()

        if not table:
            raise TabularIngestError("Job sheet is empty: no header row found", "missing_header")
        header = table[0]
        if not any(header):
            raise TabularIngestError("Job sheet header has no named columns", "no_columns")
        if len(table) <= 1:
            raise TabularIngestError(
                "Job sheet must contain at least one row of data (excluding header). "
                "Expected columns such as Company, Role and Job Description.",
                "no_data_rows",
            )

        data_rows = table[1:]
        mapping = self.detect_columns(header, data_rows)
        LOGGER.info("Detected job sheet columns: %s", mapping.describe())

        postings: List[JobPosting] = []
        for row_number, row in enumerate(data_rows, start=2):
            description = self._value(row, mapping.description)
            if not description:
                LOGGER.debug("Skipping row %d: no description", row_number)
                continue
            postings.append(
                JobPosting(
                    description=description,
                    company_name=self._value(row, mapping.company),
                    role_name=self._value(row, mapping.role),
                    apply_link=self._value(row, mapping.link),
                )
            )

        if not postings:
            raise TabularIngestError(
                f"No job descriptions found in {len(data_rows)} data rows "
                f"(detected columns: {mapping.describe()})",
                "no_valid_postings",
            )
        LOGGER.info("Ingested %d job postings", len(postings))
        return postings

    @staticmethod
    def _value(row: Sequence[str], index: Optional[int]) -> str:
        if index is None or index >= len(row):
            return ""
        return row[index].strip()


def _csv_rows(lines) -> List[List[str]]:
    return [list(row) for row in csv.reader(lines)]


def read_table_rows(source: Union[str, Path]) -> List[List[Cell]]:
    """
    Load rows from a CSV/XLSX file or a CSV URL.

    Args:
        source: Local path or http(s) URL.

    Returns:
        Rows of cells, header first.
    """
    text_source = str(source)
    if text_source.lower().startswith(("http://", "https://")):
        try:
            response = requests.get(text_source, timeout=FETCH_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.error("Failed to fetch job sheet: %s", exc)
            raise FileProcessingError(f"Failed to fetch job sheet from {text_source}: {exc}") from exc
        return _csv_rows(response.text.splitlines())

    path = Path(source)
    if not path.exists():
        raise FileProcessingError(f"Job sheet not found: {path}")
    extension = path.suffix.lower()
    if extension == ".csv":
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return _csv_rows(handle)
    if extension == ".xlsx":
        try:
            workbook = openpyxl.load_workbook(path, read_only=True, data_only=False)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise FileProcessingError(f"Failed to read workbook {path.name}: {exc}") from exc
        try:
            sheet = workbook.worksheets[0]
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
    if extension == ".xls":
        raise ValidationError(f"{path.name}: legacy .xls workbooks are not supported, save as .xlsx")
    raise ValidationError(f"{path.name}: unsupported job sheet type {extension}")
