"""
SheetData: the read-only snapshot every locator, resolver and table view
works against.

It bundles the cells of a worksheet's used range together with the grid
bounds so the engine never has to touch the openpyxl worksheet again
(``Worksheet.cell()`` creates cells as a side effect).
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel

from dto.cell_data import CellData


class RowData(BaseModel):
    """A single allocated sheet row: ``column -> CellData``."""

    row_number: int
    cells: Dict[int, CellData] = {}

    model_config = {"frozen": True}

    def cell(self, col: int) -> CellData | None:
        return self.cells.get(col)

    def non_blank_cells(self) -> List[CellData]:
        return [self.cells[c] for c in sorted(self.cells) if not self.cells[c].is_blank]


class SheetData(BaseModel):
    """Pre-computed, immutable view of a worksheet."""

    title: str = ""

    # Numeric (1-based) bounds of the used range
    min_row: int = 1
    min_col: int = 1
    max_row: int = 0
    max_col: int = 0

    # Fast (row, col) -> CellData lookup
    grid: Dict[Tuple[int, int], CellData] = {}

    model_config = {"frozen": True}

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------

    def cell_at(self, row: int, col: int) -> CellData | None:
        return self.grid.get((row, col))

    def row(self, row: int) -> RowData | None:
        """
        Return the row, or ``None`` when it holds nothing but blanks.

        A row without a single non-blank cell is treated the same way as an
        unallocated row of the source file.
        """
        cells = {
            col: cd
            for col in range(self.min_col, self.max_col + 1)
            if (cd := self.grid.get((row, col))) is not None
        }
        if not any(not cd.is_blank for cd in cells.values()):
            return None
        return RowData(row_number=row, cells=cells)

    def is_row_blank(self, row: int, min_col: Optional[int] = None) -> bool:
        start = self.min_col if min_col is None else min_col
        for col in range(start, self.max_col + 1):
            cd = self.grid.get((row, col))
            if cd is not None and not cd.is_blank:
                return False
        return True

    def iter_cells(
        self,
        start_row: Optional[int] = None,
        end_row: Optional[int] = None,
    ) -> Iterator[CellData]:
        """Yield stored cells in row-major order within ``start_row..end_row``."""
        first = self.min_row if start_row is None else max(start_row, self.min_row)
        last = self.max_row if end_row is None else min(end_row, self.max_row)
        for row in range(first, last + 1):
            for col in range(self.min_col, self.max_col + 1):
                cd = self.grid.get((row, col))
                if cd is not None:
                    yield cd
