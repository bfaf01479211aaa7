"""
Table detection for broker reports.

  - ``locate`` / ``locate_by_header`` find a table's cell range from its
    title (or first header line) and optional footer.
  - ``resolve_columns`` maps a ``TableColumnDescription`` enum onto the
    physical columns of the table header.
"""

from detection.columns import (
    AnyOfColumn,
    MultiLineColumn,
    PositionColumn,
    TableColumn,
    TableColumnDescription,
    TextColumn,
    resolve_columns,
)
from detection.table import find, locate, locate_by_header

__all__ = [
    "AnyOfColumn",
    "MultiLineColumn",
    "PositionColumn",
    "TableColumn",
    "TableColumnDescription",
    "TextColumn",
    "find",
    "locate",
    "locate_by_header",
    "resolve_columns",
]
