"""
Locator for named tables inside free-form report sheets.

Broker reports do not declare their tables; a table is recognised by an
anchor string (its title) and, optionally, a footer string:

  - the first cell (row-major) whose text equals the title gives the
    table's first row and first column;
  - the footer, when given and present, gives the last row (the footer row
    belongs to the range - the table view decides whether it is iterated);
  - otherwise the last row is a caller fallback, the first blank row after
    the data, or the bottom of the populated sheet region;
  - the last column is the last occupied cell of the header row.

A missing title is a normal outcome for report variants that omit the
table, so it is returned as ``EMPTY_RANGE`` rather than raised.
"""

from __future__ import annotations

import logging
from typing import Optional

from detection import constants
from dto.cell_data import CellData
from dto.coordinate import EMPTY_RANGE, NOT_FOUND, CellAddress, CellRangeAddress
from dto.sheet_data import SheetData

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Anchor search
# ------------------------------------------------------------------

def _matches(cell: CellData, text: str, case_sensitive: bool, prefix: bool) -> bool:
    value = cell.text
    if value is None:
        return False
    value = value.strip()
    if not case_sensitive:
        value = value.lower()
        text = text.lower()
    return value.startswith(text) if prefix else value == text


def find(
    sheet: SheetData,
    text: str,
    start_row: Optional[int] = None,
    end_row: Optional[int] = None,
    *,
    case_sensitive: Optional[bool] = None,
    prefix: bool = False,
) -> CellAddress:
    """
    Return the address of the first textual cell matching *text*, scanning
    rows ``start_row..end_row`` (inclusive) left to right, or ``NOT_FOUND``.
    """
    if case_sensitive is None:
        case_sensitive = constants.locator_case_sensitive()
    text = text.strip()
    for cell in sheet.iter_cells(start_row, end_row):
        if _matches(cell, text, case_sensitive, prefix):
            return CellAddress(row=cell.row, column=cell.column)
    return NOT_FOUND


# ------------------------------------------------------------------
# Boundaries
# ------------------------------------------------------------------

def _last_column(sheet: SheetData, header_row: int, first_col: int) -> int:
    """Last occupied header cell at or right of *first_col*; merged spans count."""
    last: Optional[int] = None
    for col in range(first_col, sheet.max_col + 1):
        cd = sheet.cell_at(header_row, col)
        if cd is not None and (not cd.is_blank or cd.merged_with is not None):
            last = col
    if last is None:
        return max(sheet.max_col, first_col)
    return last


def _first_column(sheet: SheetData, header: CellAddress) -> int:
    """Left edge of the populated header cells around *header*; merged spans count."""
    col = header.column
    while col > sheet.min_col:
        cd = sheet.cell_at(header.row, col - 1)
        if cd is None or (cd.is_blank and cd.merged_with is None):
            break
        col -= 1
    return col


def _last_row_without_footer(
    sheet: SheetData,
    address: CellAddress,
    stop_at_blank_row: bool,
    fallback_last_row: Optional[int],
) -> int:
    if fallback_last_row is not None:
        return max(fallback_last_row, address.row)
    if stop_at_blank_row:
        # spacer rows between the header and the first record do not close the table
        seen_data = False
        for row in range(address.row + 2, sheet.max_row + 1):
            if not sheet.is_row_blank(row, min_col=address.column):
                seen_data = True
            elif seen_data:
                return row - 1
    return max(sheet.max_row, address.row)


def _table_range(
    sheet: SheetData,
    address: CellAddress,
    label: str,
    footer: Optional[str],
    case_sensitive: bool,
    prefix: bool,
    stop_at_blank_row: Optional[bool],
    fallback_last_row: Optional[int],
) -> CellRangeAddress:
    if stop_at_blank_row is None:
        stop_at_blank_row = constants.stop_at_blank_row()

    last_row: Optional[int] = None
    if footer:
        end = find(
            sheet, footer, address.row + 1,
            case_sensitive=case_sensitive, prefix=prefix,
        )
        if end == NOT_FOUND:
            logger.debug(
                "Footer '%s' of table '%s' not found in sheet '%s'",
                footer, label, sheet.title,
            )
        else:
            last_row = end.row
    if last_row is None:
        last_row = _last_row_without_footer(
            sheet, address, stop_at_blank_row, fallback_last_row
        )

    return CellRangeAddress(
        first_row=address.row,
        last_row=last_row,
        first_col=address.column,
        last_col=_last_column(sheet, address.row + 1, address.column),
    )


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def locate(
    sheet: SheetData,
    table_name: str,
    footer: Optional[str] = None,
    *,
    case_sensitive: Optional[bool] = None,
    prefix: bool = False,
    stop_at_blank_row: Optional[bool] = None,
    fallback_last_row: Optional[int] = None,
) -> CellRangeAddress:
    """Return the cell range of the table titled *table_name*, or ``EMPTY_RANGE``."""
    if case_sensitive is None:
        case_sensitive = constants.locator_case_sensitive()

    address = find(sheet, table_name, case_sensitive=case_sensitive, prefix=prefix)
    if address == NOT_FOUND:
        logger.info("Table '%s' not found in sheet '%s'", table_name, sheet.title)
        return EMPTY_RANGE

    return _table_range(
        sheet, address, table_name, footer,
        case_sensitive, prefix, stop_at_blank_row, fallback_last_row,
    )


def locate_by_header(
    sheet: SheetData,
    first_header_line: str,
    footer: Optional[str] = None,
    *,
    case_sensitive: Optional[bool] = None,
    prefix: bool = False,
    stop_at_blank_row: Optional[bool] = None,
    fallback_last_row: Optional[int] = None,
) -> CellRangeAddress:
    """
    Locate a table that has no title row.

    The anchor is any line of the table header; the returned range starts
    one row above it so that ``first_row + 1`` is still the header, and at
    the left edge of the header cells adjoining the anchor.
    """
    if case_sensitive is None:
        case_sensitive = constants.locator_case_sensitive()

    header = find(sheet, first_header_line, case_sensitive=case_sensitive, prefix=prefix)
    if header == NOT_FOUND:
        logger.info(
            "Table header '%s' not found in sheet '%s'", first_header_line, sheet.title
        )
        return EMPTY_RANGE

    address = CellAddress(row=header.row - 1, column=_first_column(sheet, header))
    return _table_range(
        sheet, address, first_header_line, footer,
        case_sensitive, prefix, stop_at_blank_row, fallback_last_row,
    )
