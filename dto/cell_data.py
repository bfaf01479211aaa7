"""
Cell DTOs.

Every cell is read exactly once into a ``CellData`` whose ``value`` is one
of a closed set of tagged variants.  Downstream code dispatches on the
variant instead of re-probing the raw openpyxl value.
"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class NumericValue(BaseModel):
    kind: Literal["numeric"] = "numeric"
    number: float

    model_config = {"frozen": True}


class TextValue(BaseModel):
    kind: Literal["text"] = "text"
    text: str

    model_config = {"frozen": True}


class BlankValue(BaseModel):
    kind: Literal["blank"] = "blank"

    model_config = {"frozen": True}


class OtherValue(BaseModel):
    """Booleans, dates, error codes - anything that is neither a number nor text."""
    kind: Literal["other"] = "other"
    raw: str
    type_name: str = ""

    model_config = {"frozen": True}


CellValue = Union[NumericValue, TextValue, BlankValue, OtherValue]


class CellData(BaseModel):
    coordinate: str
    row: int
    column: int
    value: CellValue = Field(default_factory=BlankValue, discriminator="kind")
    formula: Optional[str] = None
    merged_with: Optional[str] = None  # top-left cell of the merge range, if merged

    model_config = {"frozen": True}

    @property
    def is_blank(self) -> bool:
        if isinstance(self.value, BlankValue):
            return True
        return isinstance(self.value, TextValue) and not self.value.text.strip()

    @property
    def text(self) -> Optional[str]:
        """The cell's string content, or None when it is not stored as text."""
        if isinstance(self.value, TextValue):
            return self.value.text
        return None
