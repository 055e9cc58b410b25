from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from .errors import MatrixValidationError
from .matrix import ONE, ZERO, Matrix, Tier, TierKind, normalize_currency_code

logger = logging.getLogger(__name__)

COL_THRESHOLD = 0
COL_KIND = 1
COL_VALUE = 2
COL_MIN = 3
COL_MAX = 4
MAX_COLUMNS = 5

# Plain ASCII decimals with an optional exponent; no "1_000", no non-ASCII digits.
NUMBER_RE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


class RowErrorCode(str, Enum):
    EMPTY_MATRIX = "empty_matrix"
    TOO_FEW_COLUMNS = "too_few_columns"
    INVALID_THRESHOLD = "invalid_threshold"
    FIRST_THRESHOLD_NOT_ZERO = "first_threshold_not_zero"
    INVALID_KIND = "invalid_kind"
    INVALID_VALUE = "invalid_value"
    PERCENTAGE_OUT_OF_RANGE = "percentage_out_of_range"
    UNEXPECTED_EXTRA_COLUMNS = "unexpected_extra_columns"
    INVALID_MIN = "invalid_min"
    INVALID_MAX = "invalid_max"
    THRESHOLDS_NOT_INCREASING = "thresholds_not_increasing"


@dataclass(frozen=True)
class RowError:
    row: int
    column: Optional[int]
    code: RowErrorCode
    message: str

    def __str__(self) -> str:
        where = f"row {self.row + 1}"
        if self.column is not None:
            where += f", column {self.column + 1}"
        return f"{where}: {self.message}"


@dataclass
class ParseResult:
    matrix: Optional[Matrix]
    errors: list[RowError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.matrix is not None and not self.errors

    def unwrap(self) -> Matrix:
        if not self.ok:
            raise MatrixValidationError(self.errors)
        return self.matrix


@dataclass
class _ParsedRow:
    threshold: Optional[Decimal]
    tier: Optional[Tier]
    errors: list[RowError]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_number(text: str) -> Optional[Decimal]:
    if not NUMBER_RE.fullmatch(text):
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def _parse_row(index: int, raw: Sequence[Any]) -> _ParsedRow:
    cells = [_cell(c) for c in raw]
    errors: list[RowError] = []

    def err(column: Optional[int], code: RowErrorCode, message: str) -> None:
        errors.append(RowError(index, column, code, message))

    # Empty min/max cells at the end of a row are padding, not columns.
    extras = cells[COL_MIN:]
    while extras and extras[-1] == "":
        extras.pop()
    cells = cells[:COL_MIN] + extras

    if len(cells) < 3:
        err(None, RowErrorCode.TOO_FEW_COLUMNS, f"expected at least 3 columns, got {len(cells)}")

    threshold = None
    if len(cells) > COL_THRESHOLD:
        threshold = _parse_number(cells[COL_THRESHOLD])
        if threshold is None:
            err(COL_THRESHOLD, RowErrorCode.INVALID_THRESHOLD, f"threshold {cells[COL_THRESHOLD]!r} is not a number")
        elif threshold < ZERO:
            err(COL_THRESHOLD, RowErrorCode.INVALID_THRESHOLD, f"threshold {threshold} is negative")
            threshold = None
        elif index == 0 and threshold != ZERO:
            err(COL_THRESHOLD, RowErrorCode.FIRST_THRESHOLD_NOT_ZERO, f"first threshold must be 0, got {threshold}")

    kind = None
    if len(cells) > COL_KIND:
        try:
            kind = TierKind(cells[COL_KIND])
        except ValueError:
            err(COL_KIND, RowErrorCode.INVALID_KIND, f"type {cells[COL_KIND]!r} must be 'fixed_amount' or 'percentage'")

    value = None
    if len(cells) > COL_VALUE:
        value = _parse_number(cells[COL_VALUE])
        if value is None:
            err(COL_VALUE, RowErrorCode.INVALID_VALUE, f"value {cells[COL_VALUE]!r} is not a number")
        elif kind is TierKind.PERCENTAGE and not (ZERO <= value <= ONE):
            err(COL_VALUE, RowErrorCode.PERCENTAGE_OUT_OF_RANGE, f"percentage {value} must be between 0 and 1")

    min_amount = max_amount = None
    if kind is TierKind.FIXED_AMOUNT and len(cells) > COL_MIN:
        first_extra = next(i for i in range(COL_MIN, len(cells)) if cells[i] != "")
        err(first_extra, RowErrorCode.UNEXPECTED_EXTRA_COLUMNS, "fixed_amount rows take no min/max columns")
    elif kind is not TierKind.FIXED_AMOUNT:
        if len(cells) > COL_MIN and cells[COL_MIN] != "":
            min_amount = _parse_number(cells[COL_MIN])
            if min_amount is None:
                err(COL_MIN, RowErrorCode.INVALID_MIN, f"min {cells[COL_MIN]!r} is not a number")
        if len(cells) > COL_MAX and cells[COL_MAX] != "":
            max_amount = _parse_number(cells[COL_MAX])
            if max_amount is None:
                err(COL_MAX, RowErrorCode.INVALID_MAX, f"max {cells[COL_MAX]!r} is not a number")
        if len(cells) > MAX_COLUMNS:
            err(MAX_COLUMNS, RowErrorCode.UNEXPECTED_EXTRA_COLUMNS, f"expected at most {MAX_COLUMNS} columns, got {len(cells)}")

    tier = None
    if not errors:
        tier = Tier(threshold=threshold, kind=kind, value=value, min_amount=min_amount, max_amount=max_amount)
    return _ParsedRow(threshold=threshold, tier=tier, errors=errors)


def _threshold_order_errors(parsed: list[_ParsedRow]) -> list[RowError]:
    errors: list[RowError] = []
    for idx in range(len(parsed) - 1):
        current = parsed[idx].threshold
        following = parsed[idx + 1].threshold
        if current is None or following is None:
            continue
        if following <= current:
            errors.append(
                RowError(
                    idx + 1,
                    COL_THRESHOLD,
                    RowErrorCode.THRESHOLDS_NOT_INCREASING,
                    f"threshold {following} must be greater than the previous threshold {current}",
                )
            )
    return errors


def parse_rows(rows: Iterable[Sequence[Any]], expected_currency: Optional[str] = None) -> ParseResult:
    """Validate price matrix rows and assemble them into a :class:`Matrix`.

    Rows are ``threshold, type, value[, min[, max]]`` string cells in
    ascending threshold order; they are never re-sorted. Every row is checked
    and every problem is reported, so a caller sees all errors of an upload at
    once. Any error means no matrix is returned.

    ``expected_currency`` is trimmed and upper-cased; a value that is not a
    three-letter code raises :class:`ValueError` before any row is read.
    """
    currency_code = normalize_currency_code(expected_currency) if expected_currency is not None else None
    rows = list(rows)
    if not rows:
        return ParseResult(matrix=None, errors=[RowError(0, None, RowErrorCode.EMPTY_MATRIX, "price matrix has no rows")])

    parsed = [_parse_row(i, row) for i, row in enumerate(rows)]
    errors = [e for p in parsed for e in p.errors]
    errors.extend(_threshold_order_errors(parsed))
    errors.sort(key=lambda e: (e.row, -1 if e.column is None else e.column))

    if errors:
        logger.debug("price matrix rejected: %d rows, %d errors", len(parsed), len(errors))
        return ParseResult(matrix=None, errors=errors)

    matrix = Matrix(currency_code=currency_code, tiers=tuple(p.tier for p in parsed))
    logger.debug("price matrix parsed: %d tiers, currency=%s", len(matrix.tiers), currency_code)
    return ParseResult(matrix=matrix)
