"""
Column descriptors and header resolution.

A report format declares its columns as a closed ``Enum`` whose members
wrap a ``TableColumn`` predicate::

    class CashFlowHeader(TableColumnDescription):
        DATE = TextColumn.of("дата")
        VALUE = TextColumn.of("сумма")
        DESCRIPTION = AnyOfColumn.of(TextColumn.of("описание"), TextColumn.of("операция"))

``resolve_columns`` maps every member to a physical column index found in
the header row, or ``None`` when the header does not contain it.  An
unresolved column is not an error until a cell is requested from it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from dto.coordinate import CellRangeAddress
from dto.sheet_data import SheetData

logger = logging.getLogger(__name__)


class TableColumn(BaseModel, ABC):
    """Predicate that finds one column in a table header."""

    model_config = {"frozen": True}

    @abstractmethod
    def column_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int] = None,
        end_col: Optional[int] = None,
    ) -> Optional[int]:
        """
        Return the 1-based column index, or ``None`` if nothing matches.

        Header cells are searched in ``start_col..end_col`` (inclusive), the
        sheet bounds when omitted.
        """
        ...

    def matches_text(self, text: str) -> bool:
        """Whether a single line of header text satisfies this predicate."""
        return False


class TextColumn(TableColumn):
    """Header cell whose lower-cased text contains every word."""

    words: Tuple[str, ...]

    @classmethod
    def of(cls, *words: str) -> "TextColumn":
        return cls(words=tuple(w.lower() for w in words))

    def matches_text(self, text: str) -> bool:
        lowered = text.lower()
        return all(w in lowered for w in self.words)

    def column_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int] = None,
        end_col: Optional[int] = None,
    ) -> Optional[int]:
        first = sheet.min_col if start_col is None else start_col
        last = sheet.max_col if end_col is None else end_col
        for col in range(first, last + 1):
            cd = sheet.cell_at(header_row, col)
            if cd is not None and cd.text is not None and self.matches_text(cd.text):
                return col
        return None


class AnyOfColumn(TableColumn):
    """First alternative that resolves wins; for headers renamed between report versions."""

    alternatives: Tuple[TableColumn, ...]

    @classmethod
    def of(cls, *alternatives: TableColumn) -> "AnyOfColumn":
        return cls(alternatives=tuple(alternatives))

    def matches_text(self, text: str) -> bool:
        return any(a.matches_text(text) for a in self.alternatives)

    def column_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int] = None,
        end_col: Optional[int] = None,
    ) -> Optional[int]:
        for alternative in self.alternatives:
            index = alternative.column_index(sheet, header_row, start_col, end_col)
            if index is not None:
                return index
        return None


class PositionColumn(TableColumn):
    """Column at a fixed index, whatever the header says."""

    index: int

    @classmethod
    def of(cls, index: int) -> "PositionColumn":
        return cls(index=index)

    def column_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int] = None,
        end_col: Optional[int] = None,
    ) -> Optional[int]:
        return self.index


class MultiLineColumn(TableColumn):
    """
    Composite header spanning several lines.

    Line ``k`` is searched in header row ``header_row + k``, starting at the
    column where line ``k - 1`` matched (a merged parent cell sits at the
    left edge of its children).  The column of the last line is the result.
    When the stacked rows do not resolve, a single header cell whose text
    lines match every line predicate in order is accepted instead.
    """

    lines: Tuple[TableColumn, ...]

    @classmethod
    def of(cls, *lines: TableColumn) -> "MultiLineColumn":
        return cls(lines=tuple(lines))

    def column_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int] = None,
        end_col: Optional[int] = None,
    ) -> Optional[int]:
        stacked = self._stacked_index(sheet, header_row, start_col, end_col)
        if stacked is not None:
            return stacked
        return self._single_cell_index(sheet, header_row, start_col, end_col)

    def _stacked_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int],
        end_col: Optional[int],
    ) -> Optional[int]:
        col = start_col
        for offset, line in enumerate(self.lines):
            col = line.column_index(sheet, header_row + offset, col, end_col)
            if col is None:
                return None
        return col

    def _single_cell_index(
        self,
        sheet: SheetData,
        header_row: int,
        start_col: Optional[int],
        end_col: Optional[int],
    ) -> Optional[int]:
        first = sheet.min_col if start_col is None else start_col
        last = sheet.max_col if end_col is None else end_col
        for col in range(first, last + 1):
            cd = sheet.cell_at(header_row, col)
            if cd is None or cd.text is None:
                continue
            if self._matches_lines([ln.strip() for ln in cd.text.splitlines() if ln.strip()]):
                return col
        return None

    def _matches_lines(self, text_lines: List[str]) -> bool:
        count = len(self.lines)
        for start in range(len(text_lines) - count + 1):
            if all(
                line.matches_text(text_lines[start + k])
                for k, line in enumerate(self.lines)
            ):
                return True
        return False


class TableColumnDescription(Enum):
    """Base for per-format column enumerations; member values are ``TableColumn``s."""

    @property
    def column(self) -> TableColumn:
        return self.value


def resolve_columns(
    sheet: SheetData,
    table_range: CellRangeAddress,
    descriptions: Iterable[TableColumnDescription],
) -> Dict[TableColumnDescription, Optional[int]]:
    """
    Map each column description to its header column.

    The header is the row right below the table's title row, searched
    within the range's columns.  Descriptions that do not match keep
    ``None``; an empty range leaves all of them unresolved.
    """
    members = list(descriptions)
    if table_range.is_empty:
        return {member: None for member in members}

    header_row = table_range.first_row + 1
    indices: Dict[TableColumnDescription, Optional[int]] = {}
    for member in members:
        index = member.column.column_index(
            sheet, header_row, table_range.first_col, table_range.last_col
        )
        if index is None:
            logger.debug(
                "Column %s not found in header row %d of sheet '%s'",
                member.name, header_row, sheet.title,
            )
        indices[member] = index
    return indices
