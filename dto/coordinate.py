from __future__ import annotations

from openpyxl.utils import get_column_letter
from pydantic import BaseModel, model_validator


class CellAddress(BaseModel):
    """A single cell position, 1-based like openpyxl."""
    row: int
    column: int

    model_config = {"frozen": True}

    @property
    def coordinate(self) -> str:
        return f"{get_column_letter(self.column)}{self.row}"


NOT_FOUND = CellAddress(row=-1, column=-1)


class CellRangeAddress(BaseModel):
    """Inclusive rectangle over a sheet.  ``EMPTY_RANGE`` means "no table"."""
    first_row: int
    last_row: int
    first_col: int
    last_col: int

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self) -> "CellRangeAddress":
        if self.first_row == -1:
            return self
        if self.first_row > self.last_row or self.first_col > self.last_col:
            raise ValueError(
                f"Invalid cell range: rows {self.first_row}..{self.last_row}, "
                f"columns {self.first_col}..{self.last_col}"
            )
        return self

    @property
    def is_empty(self) -> bool:
        return self.first_row == -1

    @property
    def num_rows(self) -> int:
        return 0 if self.is_empty else self.last_row - self.first_row + 1

    def contains(self, row: int, col: int) -> bool:
        if self.is_empty:
            return False
        return (
            self.first_row <= row <= self.last_row
            and self.first_col <= col <= self.last_col
        )

    @property
    def bounding_box(self) -> str:
        """A1-notation rendering, e.g. ``A11:D17``."""
        if self.is_empty:
            return ""
        top_left = f"{get_column_letter(self.first_col)}{self.first_row}"
        bottom_right = f"{get_column_letter(self.last_col)}{self.last_row}"
        return f"{top_left}:{bottom_right}"


EMPTY_RANGE = CellRangeAddress(first_row=-1, last_row=-1, first_col=-1, last_col=-1)
