"""
Spreadsheet parser for the survey export.
Turns workbook or CSV rows into records keyed by normalized column headers.
"""
import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException


DEFAULT_SHEET_NAME = "Copy of Survey Responses"
ORGANIZATION_NAME_FIELD = "Organization_Name"
UNKNOWN_COLUMN = "Unknown_Column"

_WHITESPACE_RUN = re.compile(r'\s+')
_NON_WORD = re.compile(r'[^\w]', re.ASCII)


class SpreadsheetParseError(Exception):
    """Raised when the survey export cannot be opened or read."""
    pass


def normalize_header(header: Any) -> str:
    """
    Normalize a column header to a stable identifier.

    Trims, collapses whitespace runs to one underscore, then replaces every
    remaining non-word character with an underscore, so
    "Primary SPA (service planning area)" becomes "Primary_SPA__service_planning_area_".

    Args:
        header: Raw header cell value

    Returns:
        str: Normalized identifier, "Unknown_Column" for blank headers
    """
    if header is None:
        return UNKNOWN_COLUMN
    text = str(header).strip()
    if not text:
        return UNKNOWN_COLUMN
    text = _WHITESPACE_RUN.sub('_', text)
    return _NON_WORD.sub('_', text)


def cell_to_text(value: Any) -> str:
    """Render a cell value as text; blank cells become an empty string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        # zip codes stored as numbers come back as 90001.0
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


@dataclass
class ParseResult:
    """Records parsed from one sheet together with what went wrong along the way."""
    records: List[Dict[str, str]] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    sheet_name: Optional[str] = None
    used_fallback_sheet: bool = False
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def is_successful(self) -> bool:
        """A parse without errors; zero records from a missing name column is an error."""
        return not self.errors

    def __len__(self) -> int:
        return len(self.records)


class SpreadsheetParser:
    """
    Parses the survey export into ordered records.

    Accepts an .xlsx workbook (path or raw bytes), a CSV file or CSV text, or rows
    that are already in memory. The first row is always the header row.
    """

    def __init__(self,
                 sheet_name: str = DEFAULT_SHEET_NAME,
                 required_field: str = ORGANIZATION_NAME_FIELD):
        """
        Initialize the parser.

        Args:
            sheet_name: Worksheet expected to hold the survey responses
            required_field: Normalized column every kept record must have a value for
        """
        self.sheet_name = sheet_name
        self.required_field = required_field
        self.logger = logging.getLogger(__name__)

    def parse_file(self, file_path: Union[str, Path]) -> ParseResult:
        """
        Parse a survey export from disk, choosing the reader by file extension.

        Raises:
            SpreadsheetParseError: If the file is missing, unreadable or of an unsupported type
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise SpreadsheetParseError(f"Survey file not found: {file_path}")

        suffix = file_path.suffix.lower()
        self.logger.info(f"Reading survey export: {file_path.name}")

        if suffix in ('.xlsx', '.xlsm'):
            return self.parse_workbook(file_path)
        if suffix in ('.csv', '.txt'):
            try:
                text = file_path.read_text(encoding='utf-8-sig')
            except (OSError, UnicodeDecodeError) as e:
                raise SpreadsheetParseError(f"Failed to read {file_path}: {e}") from e
            return self.parse_csv_text(text)

        raise SpreadsheetParseError(f"Unsupported survey file type: {suffix or '(none)'}")

    def parse_workbook(self, source: Union[str, Path, bytes]) -> ParseResult:
        """
        Parse an .xlsx workbook given as a path or raw bytes.

        Falls back to the first sheet, with a warning, when the expected sheet is absent.
        """
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)

        try:
            workbook = openpyxl.load_workbook(source, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
            raise SpreadsheetParseError(f"Failed to open workbook: {e}") from e

        try:
            sheet_names = workbook.sheetnames
            if not sheet_names:
                raise SpreadsheetParseError("Workbook contains no sheets")

            used_fallback = False
            warnings = []
            if self.sheet_name in sheet_names:
                chosen = self.sheet_name
            else:
                chosen = sheet_names[0]
                used_fallback = True
                message = (f"Sheet '{self.sheet_name}' not found (available: {', '.join(sheet_names)}); "
                           f"using fallback sheet '{chosen}'")
                self.logger.warning(message)
                warnings.append(message)

            worksheet = workbook[chosen]
            rows = [list(row) for row in worksheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

        result = self.parse_rows(rows)
        result.sheet_name = chosen
        result.used_fallback_sheet = used_fallback
        result.warnings = warnings + result.warnings
        return result

    def parse_csv_text(self, text: str, delimiter: str = ',') -> ParseResult:
        """Parse delimited text; the first line is the header row."""
        reader = csv.reader(io.StringIO(text, newline=''), delimiter=delimiter)
        return self.parse_rows(list(reader))

    def parse_rows(self, rows: Sequence[Sequence[Any]]) -> ParseResult:
        """
        Convert an array of row arrays into records.

        Args:
            rows: Header row followed by data rows

        Returns:
            ParseResult with one record per row that names an organization
        """
        result = ParseResult()
        if not rows:
            result.errors.append("Survey export is empty")
            self.logger.error("Survey export is empty")
            return result

        headers = [normalize_header(header) for header in rows[0]]
        result.headers = headers

        if self.required_field not in headers:
            message = f"Column '{self.required_field}' not found; no records can be read"
            self.logger.error(message)
            result.errors.append(message)
            return result

        skipped_unnamed = 0
        for row in rows[1:]:
            if not row or all(cell_to_text(cell).strip() == "" for cell in row):
                continue

            record = {}
            for index, header in enumerate(headers):
                value = row[index] if index < len(row) else None
                record[header] = cell_to_text(value)

            if record[self.required_field].strip():
                result.records.append(record)
            else:
                skipped_unnamed += 1

        if skipped_unnamed:
            self.logger.debug(f"Dropped {skipped_unnamed} rows without an organization name")

        self.logger.info(f"Processed {len(result.records)} organizations from survey export")
        return result
