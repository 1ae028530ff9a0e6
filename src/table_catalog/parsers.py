#!/usr/bin/env python3
"""
Parsers for catalog input formats in table-catalog.

Contains parsers for:
- Delimited catalog text (CSV with quoted multi-value cells)
- Field-list workbooks (ID / table name / field name rows, one or more sheets)
- Catalog JSON snapshots (validated, legacy keys migrated, stale caches rebuilt)

File access lives in ``read_csv_text`` and ``read_field_workbook``; the parse
functions only ever see already-decoded data.
"""

import csv
import json
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .constants import FIELD_LIST_HEADER
from .fields import build_field, normalize_table_name, sort_fields, strip_field_brackets
from .logging_config import get_logger
from .models import Catalog, ExcelFieldGroup, FieldListParseResult
from .schema import validate_catalog
from .taxonomy import is_taxonomy_consistent, rebuild_catalog

# Initialize logger for this module
logger = get_logger(__name__)

# No cap on cell length (descriptions can be long)
try:
    csv.field_size_limit(sys.maxsize)
except OverflowError:
    csv.field_size_limit(2**31 - 1)

Workbook = Mapping[str, Sequence[Sequence[Any]]]


class ParseError(Exception):
    """Input too malformed to produce any rows or field groups."""

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "details": list(self.details)}


class ParsedRows(list):
    """Rows parsed from CSV text; remembers lines whose field count was off."""

    def __init__(
        self,
        rows: Iterable[Dict[str, str]] = (),
        field_count_mismatches: Optional[List[str]] = None,
    ):
        super().__init__(rows)
        self.field_count_mismatches = field_count_mismatches or []


def _split_csv_line(line: str, line_number: int = 1) -> List[str]:
    """Split one line into trimmed fields; quoted fields may contain commas."""
    try:
        tokens = next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error as e:
        raise ParseError(f"Line {line_number}: {e}") from e
    return [token.strip() for token in tokens]


def parse_csv(raw_text: str) -> ParsedRows:
    """
    Parse delimited catalog text into row dictionaries keyed by header.

    Args:
        raw_text: Full CSV text, header line first

    Returns:
        ParsedRows (a list of dicts) with field-count mismatches recorded

    Raises:
        ParseError: If there is no header plus at least one data line,
            or a line cannot be split into fields
    """
    text = (raw_text or "").lstrip("\ufeff").strip()
    lines = text.splitlines()
    if len(lines) < 2:
        raise ParseError(
            "Invalid CSV: a header line and at least one data line are required"
        )

    headers = [h.strip().strip('"') for h in _split_csv_line(lines[0])]
    rows = []
    mismatches = []

    for line_number, line in enumerate(lines[1:], start=2):
        values = _split_csv_line(line, line_number)
        if not any(values):
            logger.debug(f"Line {line_number} is blank, skipped")
            continue

        if len(values) != len(headers):
            message = (
                f"Line {line_number}: expected {len(headers)} fields, "
                f"found {len(values)}"
            )
            logger.warning(message)
            mismatches.append(message)

        rows.append(
            {
                header: values[index] if index < len(values) else ""
                for index, header in enumerate(headers)
            }
        )

    logger.info(f"Parsed {len(rows)} CSV rows with {len(headers)} columns")
    return ParsedRows(rows, mismatches)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _is_header_row(table_id: str, table_name: str, field_name: str) -> bool:
    id_header, table_header, field_header = FIELD_LIST_HEADER
    return (
        table_id == id_header or table_name == table_header or field_name == field_header
    )


def _parse_sheet(sheet_name: str, rows: Sequence[Sequence[Any]]) -> tuple:
    """Group one sheet's rows by (tableId, tableName); returns (groups, valid_rows)."""
    groups: Dict[tuple, ExcelFieldGroup] = {}
    valid_rows = 0

    for row in rows:
        if row is None or len(row) < 3:
            continue

        table_id = _cell_text(row[0])
        table_name = _cell_text(row[1])
        field_name = _cell_text(row[2])

        if not table_id or not table_name or not field_name:
            continue
        if _is_header_row(table_id, table_name, field_name):
            continue

        field_name = strip_field_brackets(field_name)
        if not field_name:
            continue

        key = (table_id, table_name)
        if key not in groups:
            groups[key] = ExcelFieldGroup(
                sheet_name=sheet_name,
                table_id=table_id,
                table_name=normalize_table_name(table_name),
                original_table_name=table_name,
            )
        groups[key].fields.append(build_field(field_name))
        valid_rows += 1

    for group in groups.values():
        group.fields = sort_fields(group.fields)

    return [g for g in groups.values() if g.fields], valid_rows


def parse_field_workbook(
    workbook: Workbook, file_name: str = "uploaded_file.xlsx"
) -> FieldListParseResult:
    """
    Parse a field-list workbook into per-table field groups.

    Each row is ``(tableId, tableName, fieldName, ...)``. Rows with an empty
    leading cell and embedded header rows are skipped.

    Args:
        workbook: Mapping of sheet name to its rows of cells
        file_name: Name reported in the result

    Returns:
        FieldListParseResult with groups in sheet then first-seen order

    Raises:
        ParseError: If no sheet yields a group with at least one field
    """
    tables: List[ExcelFieldGroup] = []
    total_rows = 0

    for sheet_name, rows in workbook.items():
        sheet_tables, valid_rows = _parse_sheet(sheet_name, rows or [])
        logger.debug(
            f"Sheet '{sheet_name}': {valid_rows} field rows, {len(sheet_tables)} tables"
        )
        tables.extend(sheet_tables)
        total_rows += valid_rows

    if not tables:
        raise ParseError(
            "No valid table data found; expected rows of ID, table name and field name",
            details=[f"sheets: {', '.join(workbook.keys()) or '(none)'}"],
        )

    total_fields = sum(t.field_count for t in tables)
    logger.info(
        f"Parsed {len(tables)} tables with {total_fields} fields from {len(workbook)} sheets"
    )
    return FieldListParseResult(
        tables=tables,
        total_fields=total_fields,
        sheets=len(workbook),
        processing_details={
            "totalRowsProcessed": total_rows,
            "sheetsProcessed": len(workbook),
            "tablesFound": len(tables),
        },
        file_name=file_name,
    )


def read_csv_text(path: Path, encoding: str = "utf-8-sig") -> str:
    """Read a CSV file as text (a UTF-8 BOM is dropped)."""
    return Path(path).read_text(encoding=encoding)


def read_field_workbook(path: Path) -> Dict[str, List[List[str]]]:
    """
    Read every sheet of an Excel workbook as rows of string cells.

    Args:
        path: Path to XLSX/XLS file

    Returns:
        Mapping of sheet name to rows, in workbook order
    """
    sheets = pd.read_excel(path, sheet_name=None, header=None, dtype=str)
    workbook = {}
    for sheet_name, df in sheets.items():
        workbook[str(sheet_name)] = df.fillna("").values.tolist()
    logger.debug(f"Read {len(workbook)} sheets from {path}")
    return workbook


def catalog_from_dict(data: Dict[str, Any]) -> Catalog:
    """
    Validate and load a catalog snapshot from its JSON form.

    Stale ``classOptions``/``sampleOptions`` are rebuilt from the table list.

    Raises:
        ValidationError: If the data does not match the catalog schema
    """
    validate_catalog(data)
    catalog = Catalog.from_dict(data)
    if not is_taxonomy_consistent(catalog):
        logger.warning("Taxonomy options do not match tableList, rebuilding them")
        catalog = rebuild_catalog(catalog, catalog.table_list)
    return catalog


def load_catalog(path: Path) -> Catalog:
    """Read a catalog JSON file written by ``write_catalog_json``."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    catalog = catalog_from_dict(data)
    logger.info(f"Loaded {len(catalog.table_list)} tables from {path}")
    return catalog
