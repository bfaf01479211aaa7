"""
Typed readers for snapshot cells.

Numbers in broker reports arrive either as numeric cells or as text
(``"1 234,56"``), so each reader accepts both storage kinds and rejects
everything else with ``MalformedCellError``.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from dto.cell_data import BlankValue, CellData, NumericValue, OtherValue, TextValue
from errors import MalformedCellError

# Amounts below one cent are float noise of the source format.
_MIN_AMOUNT = Decimal("0.01")

_SPACES = re.compile(r"\s+")

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def _clean_number_text(cell: CellData, text: str, expected: str) -> str:
    cleaned = _SPACES.sub("", text)
    # int() and Decimal() both accept PEP 515 digit separators
    if "_" in cleaned:
        raise MalformedCellError(expected, cell.coordinate, text)
    return cleaned


def _checked_int64(cell: CellData, number: int, raw) -> int:
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise MalformedCellError("integer", cell.coordinate, raw)
    return number


def as_integer(cell: Optional[CellData]) -> int:
    """
    Numeric cells truncate toward zero; text cells are parsed as integers.
    Values outside the signed 64-bit range are malformed.
    """
    if cell is None:
        raise MalformedCellError("integer")
    value = cell.value
    if isinstance(value, NumericValue):
        if not math.isfinite(value.number):
            raise MalformedCellError("integer", cell.coordinate, value.number)
        return _checked_int64(cell, int(value.number), value.number)
    if isinstance(value, TextValue):
        text = _clean_number_text(cell, value.text, "integer")
        try:
            number = int(text)
        except ValueError:
            raise MalformedCellError("integer", cell.coordinate, value.text) from None
        return _checked_int64(cell, number, value.text)
    if isinstance(value, BlankValue):
        raise MalformedCellError("integer", cell.coordinate, None)
    if isinstance(value, OtherValue):
        raise MalformedCellError("integer", cell.coordinate, value.raw)
    raise MalformedCellError("integer", cell.coordinate, value)


def _to_decimal(cell: CellData) -> Decimal:
    value = cell.value
    if isinstance(value, NumericValue):
        if not math.isfinite(value.number):
            raise MalformedCellError("decimal", cell.coordinate, value.number)
        # repr() is the shortest round-tripping form: 1234.56 stays 1234.56
        return Decimal(repr(value.number))
    if isinstance(value, TextValue):
        text = _clean_number_text(cell, value.text, "decimal").replace(",", ".")
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise MalformedCellError("decimal", cell.coordinate, value.text) from None
        if not amount.is_finite():
            raise MalformedCellError("decimal", cell.coordinate, value.text)
        return amount
    if isinstance(value, BlankValue):
        raise MalformedCellError("decimal", cell.coordinate, None)
    if isinstance(value, OtherValue):
        raise MalformedCellError("decimal", cell.coordinate, value.raw)
    raise MalformedCellError("decimal", cell.coordinate, value)


def as_currency(cell: Optional[CellData]) -> Decimal:
    """Decimal amount; anything smaller than a cent in magnitude is zero."""
    if cell is None:
        raise MalformedCellError("decimal")
    amount = _to_decimal(cell)
    if abs(amount) < _MIN_AMOUNT:
        return Decimal(0)
    return amount


def as_text(cell: Optional[CellData]) -> str:
    """Missing and blank cells read as ``""``; other kinds render as text."""
    if cell is None:
        return ""
    value = cell.value
    if isinstance(value, BlankValue):
        return ""
    if isinstance(value, TextValue):
        return value.text
    if isinstance(value, NumericValue):
        number = value.number
        if math.isfinite(number) and number.is_integer():
            return str(int(number))
        return repr(number)
    if isinstance(value, OtherValue):
        return value.raw
    raise MalformedCellError("text", cell.coordinate, value)
