"""
Tabular upload normalizer (CSV and Excel workbooks).

Public API
----------
parse_file(content, filename)          → ParsedFile   (rows + row errors)
normalize_file(source_id, content, fn) → NormalizedBatch

Columns are recognised through a fixed alias table; anything unrecognised
is kept verbatim in the metadata bag. A bad row is reported as
``"Row N: ..."`` and skipped, never aborting the batch.

Dedup key is a content hash, so re-uploading an unchanged file is a no-op
and an edited row is imported as a new entry.
"""
from __future__ import annotations

import csv
import hashlib
import io
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Optional

import openpyxl
from dateutil import parser as date_parser
from openpyxl.utils.datetime import from_excel
from openpyxl.utils.exceptions import InvalidFileException

from app.core.errors import FileParseError
from app.services.normalized import CandidateEntry, NormalizedBatch

# ---------------------------------------------------------------------------
# Column aliases (lower-cased)
# ---------------------------------------------------------------------------

DATE_ALIASES = ("date", "workdate", "work date", "work_date", "day")
HOURS_ALIASES = ("hours", "duration", "time", "timespent", "time spent", "time_spent", "h")
USER_ALIASES = ("email", "useremail", "user email", "user_email", "user", "author")
DESCRIPTION_ALIASES = ("description", "comment", "notes", "note", "desc", "summary")
PROJECT_ALIASES = ("projectkey", "project key", "project_key", "project", "proj")
ISSUE_ALIASES = ("issuekey", "issue key", "issue_key", "issue", "ticket", "jira")
ACTIVITY_ALIASES = ("activity", "type", "category", "work type")

KNOWN_ALIASES = frozenset(
    DATE_ALIASES + HOURS_ALIASES + USER_ALIASES + DESCRIPTION_ALIASES
    + PROJECT_ALIASES + ISSUE_ALIASES + ACTIVITY_ALIASES
)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")

DATE_FORMATS = (
    "%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y",
    "%d.%m.%Y", "%d.%m.%y", "%Y/%m/%d",
    "%d-%m-%Y", "%m-%d-%Y",
)

_CLOCK_RE = re.compile(r"^(\d+):([0-5]\d)(?::([0-5]\d))?$")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ParsedRow:
    row_number: int
    work_date: date
    duration_seconds: int
    user_identifier: str
    description: Optional[str] = None
    project_key: Optional[str] = None
    issue_key: Optional[str] = None
    activity: Optional[str] = None
    extra_columns: dict[str, str] = field(default_factory=dict)


@dataclass
class ParsedFile:
    rows: list[ParsedRow] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


# A raw row: (header as written, cell value). Values are stripped strings
# for CSV and native cell values for workbooks.
RawRow = list[tuple[str, Any]]


# ---------------------------------------------------------------------------
# Value parsing
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_text(value: Any) -> str:
    if isinstance(value, datetime) and value.time() == time(0):
        return value.date().isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_work_date(value: Any) -> Optional[date]:
    """Date from a cell: native dates, explicit formats, spreadsheet serials, then generic."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _from_serial(float(value))

    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return _from_serial(float(text))
    except ValueError:
        pass
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def _from_serial(serial: float) -> Optional[date]:
    try:
        converted = from_excel(serial)
    except (ValueError, OverflowError):
        return None
    if isinstance(converted, datetime):
        return converted.date()
    return converted if isinstance(converted, date) else None


def parse_duration_seconds(value: Any) -> Optional[int]:
    """Seconds from ``H:MM[:SS]``, decimal hours, or a native time/timedelta cell."""
    if isinstance(value, timedelta):
        return round(value.total_seconds())
    if isinstance(value, time):
        return value.hour * 3600 + value.minute * 60 + value.second
    if isinstance(value, datetime):
        return value.hour * 3600 + value.minute * 60 + value.second
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _hours_to_seconds(value)

    text = str(value).strip()
    clock = _CLOCK_RE.match(text)
    if clock:
        hours, minutes, seconds = clock.groups()
        return int(hours) * 3600 + int(minutes) * 60 + int(seconds or 0)

    # Decimal comma ("1,5") when there is no decimal point.
    if "," in text and "." not in text and text.count(",") == 1:
        text = text.replace(",", ".")
    return _hours_to_seconds(text)


def _hours_to_seconds(value: Any) -> Optional[int]:
    # inf and nan parse as floats but have no integer value.
    try:
        return round(float(value) * 3600)
    except (ValueError, OverflowError):
        return None


def _find_field(lookup: dict[str, Any], aliases: tuple[str, ...]) -> Any:
    for alias in aliases:
        value = lookup.get(alias)
        if not _is_blank(value):
            return value
    return None


def _optional_text(lookup: dict[str, Any], aliases: tuple[str, ...]) -> Optional[str]:
    value = _find_field(lookup, aliases)
    return None if value is None else _as_text(value)


def parse_row(raw: RawRow, row_number: int, errors: list[str]) -> Optional[ParsedRow]:
    """Parse one raw row; on failure append row-addressed errors and return None."""
    lookup: dict[str, Any] = {}
    for header, value in raw:
        lookup.setdefault(header.strip().lower(), value)

    date_value = _find_field(lookup, DATE_ALIASES)
    hours_value = _find_field(lookup, HOURS_ALIASES)
    user_value = _find_field(lookup, USER_ALIASES)

    missing = []
    if date_value is None:
        missing.append(f"Row {row_number}: missing date column.")
    if hours_value is None:
        missing.append(f"Row {row_number}: missing hours column.")
    if user_value is None:
        missing.append(f"Row {row_number}: missing email column.")
    if missing:
        errors.extend(missing)
        return None

    work_date = parse_work_date(date_value)
    if work_date is None:
        errors.append(f"Row {row_number}: cannot parse date '{_as_text(date_value)}'.")
        return None

    seconds = parse_duration_seconds(hours_value)
    if seconds is None or seconds <= 0:
        errors.append(f"Row {row_number}: cannot parse hours '{_as_text(hours_value)}'.")
        return None

    extra = {
        header.strip(): _as_text(value)
        for header, value in raw
        if not _is_blank(value) and header.strip().lower() not in KNOWN_ALIASES
    }

    return ParsedRow(
        row_number=row_number,
        work_date=work_date,
        duration_seconds=seconds,
        user_identifier=_as_text(user_value),
        description=_optional_text(lookup, DESCRIPTION_ALIASES),
        project_key=_optional_text(lookup, PROJECT_ALIASES),
        issue_key=_optional_text(lookup, ISSUE_ALIASES),
        activity=_optional_text(lookup, ACTIVITY_ALIASES),
        extra_columns=extra,
    )


# ---------------------------------------------------------------------------
# File readers
# ---------------------------------------------------------------------------

def _read_csv(content: bytes) -> list[tuple[int, RawRow]]:
    text = content.decode("utf-8-sig")
    reader = csv.reader(io.StringIO(text, newline=""))
    headers = [h.strip() for h in next(reader, [])]
    rows: list[tuple[int, RawRow]] = []
    for row_number, record in enumerate(reader, start=2):
        if not any(cell.strip() for cell in record):
            continue
        cells = [c.strip() for c in record] + [""] * (len(headers) - len(record))
        rows.append((row_number, [(h, v) for h, v in zip(headers, cells) if h]))
    return rows


def _read_excel(content: bytes, filename: str) -> list[tuple[int, RawRow]]:
    workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        if not workbook.worksheets:
            raise FileParseError(filename, "workbook contains no worksheets.")
        sheet = workbook.worksheets[0]
        values = sheet.iter_rows(values_only=True)
        header_row = next(values, None)
        if header_row is None:
            return []
        headers = {
            index: str(cell).strip()
            for index, cell in enumerate(header_row)
            if not _is_blank(cell)
        }
        rows: list[tuple[int, RawRow]] = []
        for row_number, record in enumerate(values, start=2):
            raw = [
                (header, record[index] if index < len(record) else None)
                for index, header in headers.items()
            ]
            if all(_is_blank(v) for _, v in raw):
                continue
            rows.append((row_number, [
                (h, v.strip() if isinstance(v, str) else v) for h, v in raw
            ]))
        return rows
    finally:
        workbook.close()


def parse_file(content: bytes, filename: str) -> ParsedFile:
    """Parse an upload. Raises FileParseError if the file as a whole is unreadable."""
    extension = Path(filename or "").suffix.lower()
    try:
        if extension in EXCEL_EXTENSIONS:
            raw_rows = _read_excel(content, filename)
        else:
            raw_rows = _read_csv(content)
    except FileParseError:
        raise
    except (UnicodeDecodeError, csv.Error, zipfile.BadZipFile, InvalidFileException,
            KeyError, OSError) as exc:
        raise FileParseError(filename, str(exc) or type(exc).__name__) from exc

    parsed = ParsedFile()
    for row_number, raw in raw_rows:
        row = parse_row(raw, row_number, parsed.errors)
        if row is not None:
            parsed.rows.append(row)
    return parsed


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def compute_external_id(source_id: int, row: ParsedRow) -> str:
    key = "|".join([
        str(source_id),
        row.work_date.isoformat(),
        row.user_identifier,
        str(row.duration_seconds),
        row.description or "",
        row.project_key or "",
        row.issue_key or "",
    ])
    return "file-" + hashlib.sha256(key.encode("utf-8")).hexdigest()[:24]


def to_candidate(source_id: int, row: ParsedRow) -> CandidateEntry:
    return CandidateEntry(
        external_id=compute_external_id(source_id, row),
        user_identifier=row.user_identifier,
        work_date=row.work_date,
        duration_seconds=row.duration_seconds,
        description=row.description,
        project_key=row.project_key,
        issue_key=row.issue_key,
        activity=row.activity,
        metadata=dict(row.extra_columns),
    )


def normalize_file(source_id: int, content: bytes, filename: str) -> NormalizedBatch:
    parsed = parse_file(content, filename)
    return NormalizedBatch(
        candidates=[to_candidate(source_id, row) for row in parsed.rows],
        errors=parsed.errors,
    )
