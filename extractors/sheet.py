"""
Worksheet reader.

Reads an openpyxl ``Worksheet`` once into an immutable ``SheetData``:
  1. Find the actual used range.
  2. Build the merged-cell map.
  3. Resolve formula cells (computed value -> Excel cached value -> formula).
  4. Convert every raw value into a tagged ``CellValue`` variant.
"""

from __future__ import annotations

import datetime
import logging
import math
from typing import Any, Dict, Optional, Tuple

from openpyxl.cell.cell import Cell
from openpyxl.utils import column_index_from_string, get_column_letter
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.worksheet import Worksheet

from dto.cell_data import BlankValue, CellData, CellValue, NumericValue, OtherValue, TextValue
from dto.sheet_data import SheetData

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Coordinate helpers
# ------------------------------------------------------------------

def coord(col: int, row: int) -> str:
    """Return an A1-style coordinate from 1-based col/row indices."""
    return f"{get_column_letter(col)}{row}"


def parse_coord(coordinate: str) -> Tuple[int, int]:
    """Parse 'AB12' -> (row=12, col=28).  Both 1-based."""
    col_str = "".join(c for c in coordinate if c.isalpha())
    row_num = int("".join(c for c in coordinate if c.isdigit()) or "0")
    col_num = column_index_from_string(col_str) if col_str else 0
    return row_num, col_num


# ------------------------------------------------------------------
# Value classification
# ------------------------------------------------------------------

def to_cell_value(value: Any) -> CellValue:
    """Classify a raw Python value into the closed ``CellValue`` variant set."""
    if value is None:
        return BlankValue()
    # bool is an int subclass, keep it out of the numeric bucket
    if isinstance(value, bool):
        return OtherValue(raw=str(value).upper(), type_name="bool")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return OtherValue(raw=str(value), type_name="float")
        return NumericValue(number=float(value))
    if isinstance(value, str):
        return TextValue(text=value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return OtherValue(raw=value.isoformat(), type_name=type(value).__name__)
    return OtherValue(raw=str(value), type_name=type(value).__name__)


# ------------------------------------------------------------------
# Sheet structure
# ------------------------------------------------------------------

def build_merge_map(ws: Worksheet) -> Dict[str, str]:
    """Return ``{coordinate: top_left_of_merge}`` for every merged cell."""
    merge_map: Dict[str, str] = {}
    for mr in ws.merged_cells.ranges:
        tl = coord(mr.min_col, mr.min_row)
        for r in range(mr.min_row, mr.max_row + 1):
            for c in range(mr.min_col, mr.max_col + 1):
                cd = coord(c, r)
                if cd != tl:
                    merge_map[cd] = tl
    return merge_map


def find_actual_used_range(ws: Worksheet) -> Tuple[int, int, int, int]:
    """Return (min_row, min_col, max_row, max_col), all 1-based."""
    dim = ws.calculate_dimension()
    if dim and dim != "A1:A1":
        try:
            parts = dim.replace("$", "").split(":")
            if len(parts) == 2:
                tl, br = parts
                tl_row, tl_col = parse_coord(tl)
                br_row, br_col = parse_coord(br)
                if (br_row - tl_row + 1) * (br_col - tl_col + 1) <= 500_000:
                    return tl_row, tl_col, br_row, br_col
        except ValueError:
            logger.debug("Unusable sheet dimension %r, scanning cells", dim)

    min_r = min_c = float("inf")
    max_r = max_c = 0
    for row in ws.iter_rows():
        for cell in row:
            if cell.value is not None:
                min_r = min(min_r, cell.row)
                max_r = max(max_r, cell.row)
                min_c = min(min_c, cell.column)
                max_c = max(max_c, cell.column)
    if max_r == 0:
        return 1, 1, 1, 1
    return int(min_r), int(min_c), int(max_r), int(max_c)


# ------------------------------------------------------------------
# Cell reading
# ------------------------------------------------------------------

def read_cell(
    cell: Cell,
    merge_map: Dict[str, str],
    computed_values: Optional[Dict[Tuple[str, str], Any]] = None,
    sheet_name_upper: str = "",
    cached_values: Optional[Dict[Tuple[str, str], Any]] = None,
) -> CellData:
    """Read a single openpyxl Cell into a CellData DTO.

    Formula resolution order:
      1. ``computed_values`` - results from the ``formulas`` library.
      2. ``cached_values``   - Excel's own cached values (``data_only=True``).
      3. The raw formula string (last resort).
    """
    cd = coord(cell.column, cell.row)
    value = cell.value

    formula: Optional[str] = None
    if isinstance(value, ArrayFormula):
        formula_text = getattr(value, "text", None) or ""
        formula = f"{{{formula_text}}}"
    elif isinstance(value, str) and value.startswith("="):
        formula = value

    if formula is not None:
        key = (sheet_name_upper, cd.upper())
        cv = (computed_values or {}).get(key)
        if cv is None:
            cv = (cached_values or {}).get(key)
        value = cv if cv is not None else formula

    return CellData(
        coordinate=cd,
        row=cell.row,
        column=cell.column,
        value=to_cell_value(value),
        formula=formula,
        merged_with=merge_map.get(cd),
    )


def read_sheet(
    ws: Worksheet,
    computed_values: Optional[Dict[Tuple[str, str], Any]] = None,
    cached_values: Optional[Dict[Tuple[str, str], Any]] = None,
) -> SheetData:
    """Snapshot every cell in the used range of *ws*."""
    min_row, min_col, max_row, max_col = find_actual_used_range(ws)
    merge_map = build_merge_map(ws)
    sheet_name_upper = (ws.title or "").upper()

    grid: Dict[Tuple[int, int], CellData] = {}
    for row in ws.iter_rows(
        min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col
    ):
        for cell in row:
            grid[(cell.row, cell.column)] = read_cell(
                cell,
                merge_map,
                computed_values=computed_values,
                sheet_name_upper=sheet_name_upper,
                cached_values=cached_values,
            )

    logger.debug(
        "Read sheet '%s': rows %d..%d, columns %d..%d",
        ws.title, min_row, max_row, min_col, max_col,
    )
    return SheetData(
        title=ws.title or "",
        min_row=min_row,
        min_col=min_col,
        max_row=max_row,
        max_col=max_col,
        grid=grid,
    )