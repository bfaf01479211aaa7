"""
Table view over a located report table.

``ExcelTable`` combines a located ``CellRangeAddress`` with the resolved
column indices of a ``TableColumnDescription`` enum and exposes:

  - iteration over the data rows (fresh iterator on every ``iter()``);
  - cell lookup by row + column description, failing with
    ``ColumnNotFoundError`` only when an unresolved column is used;
  - typed value accessors backed by ``extractors.cell_values``.

The view is read-only: it never modifies the sheet snapshot it was built from.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Iterator, Optional

from detection import constants
from detection.columns import TableColumnDescription, resolve_columns
from detection.table import find, locate, locate_by_header
from dto.cell_data import CellData
from dto.coordinate import NOT_FOUND, CellAddress, CellRangeAddress
from dto.sheet_data import RowData, SheetData
from errors import ColumnNotFoundError
from extractors.cell_values import as_currency, as_integer, as_text


def _ends_with_footer(
    sheet: SheetData,
    table_range: CellRangeAddress,
    footer: Optional[str],
    locate_kwargs: dict,
) -> bool:
    """Whether the located range closes on the footer row (a missing footer does not)."""
    if not footer or table_range.is_empty:
        return False
    address = find(
        sheet,
        footer,
        table_range.last_row,
        table_range.last_row,
        case_sensitive=locate_kwargs.get("case_sensitive"),
        prefix=locate_kwargs.get("prefix", False),
    )
    return address != NOT_FOUND


class ExcelTable:
    """
    A single table of a report sheet.

    Usage::

        table = ExcelTable.of(sheet, "CASH", CashFlowHeader, footer="Итого")
        for row in table:
            amount = table.currency_value(row, CashFlowHeader.VALUE)
    """

    def __init__(
        self,
        sheet: SheetData,
        table_name: str,
        table_range: CellRangeAddress,
        columns: Iterable[TableColumnDescription],
        *,
        data_row_offset: Optional[int] = None,
        includes_totals_row: bool = False,
        source: Optional[str] = None,
    ) -> None:
        """
        Args:
            sheet: Snapshot of the report sheet.
            table_name: Title used to locate the table (for logs).
            table_range: Located range, ``EMPTY_RANGE`` when absent.
            columns: Column descriptions to resolve against the header row.
            data_row_offset: Rows from the title row to the first data row.
            includes_totals_row: The last range row holds totals and is
                not iterated.
            source: Report identifier (usually the file name) for logs.
        """
        self._sheet = sheet
        self._table_name = table_name
        self._table_range = table_range
        self._data_row_offset = (
            constants.data_row_offset() if data_row_offset is None else data_row_offset
        )
        self._includes_totals_row = includes_totals_row
        self._source = source or sheet.title
        self._column_indices: Dict[TableColumnDescription, Optional[int]] = (
            resolve_columns(sheet, table_range, columns)
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def of(
        cls,
        sheet: SheetData,
        table_name: str,
        columns: Iterable[TableColumnDescription],
        footer: Optional[str] = None,
        *,
        footer_is_data: bool = False,
        data_row_offset: Optional[int] = None,
        source: Optional[str] = None,
        **locate_kwargs,
    ) -> "ExcelTable":
        """
        Locate the table titled *table_name* and build its view.

        When the *footer* is present its row closes the range and is treated
        as a totals row, unless *footer_is_data* says it holds a regular record.
        """
        table_range = locate(sheet, table_name, footer, **locate_kwargs)
        return cls(
            sheet,
            table_name,
            table_range,
            columns,
            data_row_offset=data_row_offset,
            includes_totals_row=(
                not footer_is_data
                and _ends_with_footer(sheet, table_range, footer, locate_kwargs)
            ),
            source=source,
        )

    @classmethod
    def of_nameless(
        cls,
        sheet: SheetData,
        table_name: str,
        first_header_line: str,
        columns: Iterable[TableColumnDescription],
        header_rows: int = 1,
        footer: Optional[str] = None,
        *,
        footer_is_data: bool = False,
        source: Optional[str] = None,
        **locate_kwargs,
    ) -> "ExcelTable":
        """Build the view of a table without a title row, found by its header."""
        table_range = locate_by_header(sheet, first_header_line, footer, **locate_kwargs)
        return cls(
            sheet,
            table_name,
            table_range,
            columns,
            data_row_offset=1 + header_rows,
            includes_totals_row=(
                not footer_is_data
                and _ends_with_footer(sheet, table_range, footer, locate_kwargs)
            ),
            source=source,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def sheet(self) -> SheetData:
        return self._sheet

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def table_range(self) -> CellRangeAddress:
        return self._table_range

    @property
    def data_row_offset(self) -> int:
        return self._data_row_offset

    @property
    def includes_totals_row(self) -> bool:
        return self._includes_totals_row

    @property
    def source(self) -> str:
        return self._source

    @property
    def is_empty(self) -> bool:
        return self._table_range.is_empty

    @property
    def data_rows_count(self) -> int:
        """Row budget of the iterator, blank rows included."""
        if self.is_empty:
            return 0
        count = (
            self._table_range.last_row
            - self._table_range.first_row
            - self._data_row_offset
            + (0 if self._includes_totals_row else 1)
        )
        return max(count, 0)

    def __repr__(self) -> str:
        return f"ExcelTable(table_name={self._table_name!r})"

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[RowData]:
        return TableRowIterator(self)

    def rows(self) -> Iterator[RowData]:
        return iter(self)

    def find_row(self, text: str, prefix: bool = True) -> Optional[RowData]:
        """First row of the table holding a cell whose text starts with (or equals) *text*."""
        if self.is_empty:
            return None
        address = find(
            self._sheet,
            text,
            self._table_range.first_row,
            self._table_range.last_row,
            prefix=prefix,
        )
        if address == NOT_FOUND:
            return None
        return self._sheet.row(address.row)

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    def column_index(self, column: TableColumnDescription) -> Optional[int]:
        return self._column_indices.get(column)

    def cell(self, row: RowData, column: TableColumnDescription) -> Optional[CellData]:
        index = self._column_indices.get(column)
        if index is None:
            raise ColumnNotFoundError(self._table_name, column.name)
        return row.cell(index)

    def cell_at(self, address: CellAddress) -> Optional[CellData]:
        return self._sheet.cell_at(address.row, address.column)

    def int_value(self, row: RowData, column: TableColumnDescription) -> int:
        return as_integer(self.cell(row, column))

    def int_value_at(self, address: CellAddress) -> int:
        return as_integer(self.cell_at(address))

    def currency_value(self, row: RowData, column: TableColumnDescription) -> Decimal:
        return as_currency(self.cell(row, column))

    def currency_value_at(self, address: CellAddress) -> Decimal:
        return as_currency(self.cell_at(address))

    def text_value(self, row: RowData, column: TableColumnDescription) -> str:
        return as_text(self.cell(row, column))

    def text_value_at(self, address: CellAddress) -> str:
        return as_text(self.cell_at(address))


class TableRowIterator(Iterator[RowData]):
    """
    Walks the data rows of one ``ExcelTable``.

    Rows without any non-blank cell are skipped but still use up the row
    budget, so skipping past the end terminates the iteration.
    """

    def __init__(self, table: ExcelTable) -> None:
        self._table = table
        self._budget = table.data_rows_count
        self._count = 0

    def __iter__(self) -> "TableRowIterator":
        return self

    def __next__(self) -> RowData:
        first_data_row = self._table.table_range.first_row + self._table.data_row_offset
        while self._count < self._budget:
            row = self._table.sheet.row(first_data_row + self._count)
            self._count += 1
            if row is not None:
                return row
        raise StopIteration
