"""
Exceptions raised by the report extraction engine.

Absent tables and unresolved columns are *data* (``EMPTY_RANGE`` and a
``None`` column index); only dereferencing them or reading a cell with an
incompatible type raises.
"""

from __future__ import annotations

from typing import Optional


class ReportParsingError(Exception):
    """Base class for all engine errors."""


class ColumnNotFoundError(ReportParsingError, LookupError):
    """A column description had no matching header and a cell was requested from it."""

    def __init__(self, table_name: str, column: str) -> None:
        self.table_name = table_name
        self.column = column
        super().__init__(
            f"Column {column} was not found in the header of table '{table_name}'"
        )


class MalformedCellError(ReportParsingError, ValueError):
    """The cell's stored kind cannot be converted to the requested type."""

    def __init__(
        self,
        expected: str,
        coordinate: Optional[str] = None,
        value: object = None,
    ) -> None:
        self.expected = expected
        self.coordinate = coordinate
        self.value = value
        where = coordinate or "<missing cell>"
        super().__init__(f"Cell {where} holds {value!r}, expected {expected}")
