"""
Parser Service
Turns uploaded CSV / JSON bytes into a list of loosely typed row dicts
"""
from typing import Any, Dict, List, Optional
import csv
import io
import json
import logging
import warnings

import pandas as pd

from wellspend.core.errors import ParseError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

JSON_MIMES = {"application/json"}
CSV_MIMES = {"text/csv"}


def base_mime(mime_type: Optional[str]) -> str:
    """'text/csv; charset=utf-8' -> 'text/csv'"""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def detect_format(mime_type: Optional[str], file_name: Optional[str] = None) -> str:
    """
    Pick the parser for an upload.

    Declared MIME wins; text/plain (and anything unrecognised) falls back to
    the file extension, defaulting to CSV.
    """
    mime = base_mime(mime_type)
    if mime in JSON_MIMES:
        return "json"
    if mime in CSV_MIMES:
        return "csv"
    if file_name and file_name.lower().endswith(".json"):
        return "json"
    return "csv"


def decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not valid UTF-8 text: {e}", cause=e)


def parse_csv_text(text: str) -> List[Row]:
    """
    Header based CSV parsing.

    The first non-empty line is the header, blank lines are skipped, short
    rows are padded with "" and long rows are cut to the header width.
    """
    if not text.strip():
        return []

    try:
        header = _header_cells(text)
        with warnings.catch_warnings():
            # index_col=False drops surplus trailing cells with a ParserWarning
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                engine="python",
                on_bad_lines=lambda bad_line: bad_line[:len(header)],
            )
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, csv.Error, ValueError) as e:
        raise ParseError(f"Could not parse CSV content: {e}", cause=e)

    df = df.fillna("")

    # pandas renames blank ("Unnamed: 2") and repeated ("a.1") headers, so rows are
    # keyed by the header cells as written; a repeated header keeps its first column
    rows: List[Row] = []
    for values in df.itertuples(index=False, name=None):
        row: Row = {}
        for key, value in zip(header, values):
            row.setdefault(key, value)
        rows.append(row)
    return rows


def _header_cells(text: str) -> List[str]:
    """Trimmed cells of the first line pandas treats as the header"""
    for line in csv.reader(io.StringIO(text)):
        if len(line) > 1 or (line and line[0].strip()):
            return [cell.strip() for cell in line]
    return []


def parse_json_text(text: str) -> List[Row]:
    """JSON array of objects; a single object (or scalar) becomes a one-row list"""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})", cause=e)

    if not isinstance(data, list):
        data = [data]

    rows: List[Row] = []
    for item in data:
        if isinstance(item, dict):
            rows.append({str(key): value for key, value in item.items()})
        else:
            rows.append({"value": item})
    return rows


def parse_rows(content: bytes, mime_type: Optional[str], file_name: Optional[str] = None) -> List[Row]:
    """Decode and parse an upload into row dicts, raising ParseError on failure"""
    text = decode_text(content)
    fmt = detect_format(mime_type, file_name)

    rows = parse_json_text(text) if fmt == "json" else parse_csv_text(text)
    logger.info(f"Parsed {len(rows)} rows from {file_name or 'upload'} as {fmt}")
    return rows
