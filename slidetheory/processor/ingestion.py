"""Input normalizer - uploaded tabular files to a single header+rows shape.

Handles the upload types the classifier accepts:
- CSV (UTF-8 or UTF-16 LE with BOM), every cell kept as a string
- Excel workbooks (.xlsx via openpyxl, .xls via xlrd), first sheet only
- JSON: an array of objects, an object wrapping one such array, or anything
  else as a single raw-text cell

Rows made only of empty cells are dropped.  Ragged rows are kept as-is.
"""

import csv
import io
import json
import logging
import math
from pathlib import Path
from typing import Any

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

from slidetheory.errors import (
    EmptyFileError,
    MalformedFileError,
    UnsupportedFormatError,
)
from slidetheory.schema.models import ParsedTabularData

log = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx", "xls", "json")
MAX_DOWNSTREAM_ROWS = 50
FALLBACK_HEADER = "Data"

_EXCEL_ENGINES = {"xlsx": "openpyxl", "xls": "xlrd"}


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------

def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def _is_blank(value: Any) -> bool:
    return _is_missing(value) or (isinstance(value, str) and not value.strip())


def _keep_row(row: list) -> bool:
    """A row survives when at least one cell has content."""
    return any(not _is_blank(cell) for cell in row)


def _strip_trailing_missing(row: list) -> list:
    """Drop the NaN padding pandas appends to short rows."""
    end = len(row)
    while end and _is_missing(row[end - 1]):
        end -= 1
    return row[:end]


def _to_native(value: Any) -> Any:
    """numpy scalars to Python values; NaN to None; integral floats to int."""
    if hasattr(value, "item"):
        value = value.item()
    if _is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def extension_of(filename: str) -> str:
    return Path(filename).suffix.lstrip(".").lower()


# ---------------------------------------------------------------------------
# Encoding detection
# ---------------------------------------------------------------------------

def decode_text(data: bytes) -> str:
    """Decode upload bytes, honouring a UTF-16 LE or UTF-8 byte-order mark."""
    if data[:2] == b"\xff\xfe":
        return data[2:].decode("utf-16-le")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedFileError(f"File is not valid UTF-8 text: {exc}") from exc


# ---------------------------------------------------------------------------
# Format parsers
# ---------------------------------------------------------------------------

def parse_csv(data: bytes) -> ParsedTabularData:
    """Parse CSV bytes; the first row becomes the headers.

    Rows may be longer or shorter than the header row and are kept at their
    own length.

    Raises
    ------
    EmptyFileError
        If the file has no rows at all.
    MalformedFileError
        If the text cannot be tokenized as CSV.
    """
    text = decode_text(data)
    # pandas fixes the column count from the first line unless told the widest
    try:
        width = max((len(r) for r in csv.reader(io.StringIO(text))), default=0)
    except csv.Error as exc:
        raise MalformedFileError(f"CSV file could not be parsed: {exc}") from exc
    if not width:
        raise EmptyFileError("CSV file is empty")
    try:
        df = pd.read_csv(io.StringIO(text), header=None, names=range(width),
                         dtype=str, keep_default_na=False,
                         skip_blank_lines=True)
    except EmptyDataError as exc:
        raise EmptyFileError("CSV file is empty") from exc
    except ParserError as exc:
        raise MalformedFileError(f"CSV file could not be parsed: {exc}") from exc

    records = [_strip_trailing_missing(list(r)) for r in df.itertuples(index=False)]
    if not records:
        raise EmptyFileError("CSV file is empty")

    headers = [str(h) for h in records[0]]
    rows = [list(r) for r in records[1:] if _keep_row(r)]
    return ParsedTabularData(headers=headers, rows=rows, raw=text)


def parse_excel(data: bytes, extension: str = "xlsx") -> ParsedTabularData:
    """Parse the first worksheet of an Excel workbook.

    Numbers stay numeric; integral floats become ints.

    Raises
    ------
    EmptyFileError
        If the first sheet has no cells.
    MalformedFileError
        If the workbook cannot be opened.
    """
    engine = _EXCEL_ENGINES.get(extension, "openpyxl")
    try:
        df = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None,
                           engine=engine)
    except Exception as exc:
        # openpyxl and xlrd raise their own exception types for corrupt files
        raise MalformedFileError(f"Excel file could not be read: {exc}") from exc

    records = [
        _strip_trailing_missing([_to_native(v) for v in r])
        for r in df.itertuples(index=False)
    ]
    if not records:
        raise EmptyFileError("Excel file is empty")

    headers = ["" if h is None else str(h) for h in records[0]]
    rows = [r for r in records[1:] if _keep_row(r)]
    raw = json.dumps([headers] + rows, default=str)
    return ParsedTabularData(headers=headers, rows=rows, raw=raw)


def _rows_from_objects(objects: list[dict]) -> tuple[list[str], list[list]]:
    headers = [str(k) for k in objects[0].keys()]
    rows = [[obj.get(h) if isinstance(obj, dict) else None for h in headers]
            for obj in objects]
    return headers, [r for r in rows if _keep_row(r)]


def _is_object_array(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and isinstance(value[0], dict)


def parse_json(data: bytes) -> ParsedTabularData:
    """Parse JSON in one of three shapes; never raises on shape.

    1. Array whose first element is an object: headers are that object's keys.
    2. Object with exactly one array-of-objects property: same, on that array.
    3. Anything else, including undecodable text: the raw text as a single
       cell under a ``Data`` header.  Blank text gives that header and no rows.
    """
    text = decode_text(data)
    if not text.strip():
        return ParsedTabularData(headers=[FALLBACK_HEADER], rows=[], raw=text)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        log.warning("JSON upload could not be decoded, using raw text: %s", exc)
        payload = None

    if _is_object_array(payload):
        headers, rows = _rows_from_objects(payload)
        return ParsedTabularData(headers=headers, rows=rows, raw=text)

    if isinstance(payload, dict):
        nested = [v for v in payload.values() if _is_object_array(v)]
        if len(nested) == 1:
            headers, rows = _rows_from_objects(nested[0])
            return ParsedTabularData(headers=headers, rows=rows, raw=text)

    return ParsedTabularData(headers=[FALLBACK_HEADER], rows=[[text]], raw=text)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def parse_upload(filename: str, data: bytes) -> ParsedTabularData:
    """Parse uploaded bytes, dispatching on the filename's extension.

    Raises
    ------
    UnsupportedFormatError
        For any extension outside SUPPORTED_EXTENSIONS.
    """
    extension = extension_of(filename)
    if extension == "csv":
        return parse_csv(data)
    if extension in _EXCEL_ENGINES:
        return parse_excel(data, extension)
    if extension == "json":
        return parse_json(data)
    raise UnsupportedFormatError(extension)


def parse_file(path: str | Path) -> ParsedTabularData:
    """Read and parse a file from disk."""
    path = Path(path)
    if extension_of(path.name) not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(extension_of(path.name))
    return parse_upload(path.name, path.read_bytes())


# ---------------------------------------------------------------------------
# Downstream formatting
# ---------------------------------------------------------------------------

def _cell_text(value: Any) -> str:
    if _is_missing(value):
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def format_for_downstream_use(parsed: ParsedTabularData,
                              max_rows: int = MAX_DOWNSTREAM_ROWS) -> str:
    """Tab-separated text of the headers and the first ``max_rows`` rows.

    When rows were left out, a final line states how many, e.g.
    ``... (12 more rows)``.
    """
    lines = ["\t".join(_cell_text(h) for h in parsed.headers)]
    for row in parsed.rows[:max_rows]:
        lines.append("\t".join(_cell_text(cell) for cell in row))
    omitted = len(parsed.rows) - max_rows
    if omitted > 0:
        noun = "row" if omitted == 1 else "rows"
        lines.append(f"... ({omitted} more {noun})")
    return "\n".join(lines)
