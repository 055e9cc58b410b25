from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook

from .errors import IngestError
from .matrix import normalize_currency_code
from .parser import ParseResult, parse_rows

logger = logging.getLogger(__name__)

XLSX_SUFFIXES = {".xlsx", ".xlsm"}
TEXT_ENCODINGS = ("utf-8-sig", "cp1252")


def _render_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _trim_row(row: list[str]) -> list[str]:
    cells = list(row)
    while cells and cells[-1] == "":
        cells.pop()
    return cells


def _decode(raw: bytes) -> str:
    for enc in TEXT_ENCODINGS:
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    # latin-1 maps every byte, so this always succeeds.
    return raw.decode("latin-1")


def _rows_from_csv(path: Path) -> list[list[str]]:
    text = _decode(path.read_bytes())
    rows: list[list[str]] = []
    for raw in csv.reader(text.splitlines(), delimiter=","):
        cells = _trim_row([c.strip() for c in raw])
        if not cells:
            continue
        rows.append(cells)
    return rows


def _rows_from_xlsx(path: Path) -> list[list[str]]:
    try:
        wb = load_workbook(path, data_only=True, read_only=True)
    except Exception as exc:
        raise IngestError(f"xlsx parsing failed: {exc}") from exc

    try:
        visible = [ws for ws in wb.worksheets if getattr(ws, "sheet_state", "visible") == "visible"]
        if not visible:
            raise IngestError(f"{path.name} has no visible worksheet")
        rows: list[list[str]] = []
        for row in visible[0].iter_rows(values_only=True):
            cells = _trim_row([_render_cell(c) for c in row])
            if not cells:
                continue
            rows.append(cells)
        return rows
    finally:
        wb.close()


def read_rows(path: str | Path) -> list[list[str]]:
    """Read a headerless price matrix file into rows of string cells.

    Columns are threshold, type, value, min, max. Blank lines are skipped and
    empty trailing cells dropped; row order is kept as-is.
    """
    p = Path(path)
    if not p.exists():
        raise IngestError(f"price matrix file not found: {p}")
    if p.suffix.lower() in XLSX_SUFFIXES:
        rows = _rows_from_xlsx(p)
        mode = "xlsx"
    else:
        rows = _rows_from_csv(p)
        mode = "csv"
    logger.info("read %d price matrix rows from %s (%s)", len(rows), p.name, mode)
    return rows


def import_matrix_file(
    path: str | Path,
    currency_code: Optional[str],
    *,
    delete_source: bool = False,
) -> ParseResult:
    """Read and validate an uploaded matrix file.

    With ``delete_source`` the file is removed afterwards, whether or not it
    held a valid matrix. An invalid ``currency_code`` raises
    :class:`ValueError` before the file is touched.
    """
    if currency_code is not None:
        currency_code = normalize_currency_code(currency_code)
    p = Path(path)
    try:
        rows = read_rows(p)
    finally:
        if delete_source:
            p.unlink(missing_ok=True)
    return parse_rows(rows, currency_code)
