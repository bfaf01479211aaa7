"""
Output DTOs for the command-line extractor.

    WorkbookExtraction
      └─ tables: List[TableExtractionResult]
           └─ records: List[TableRowRecord]
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel


class TableRowRecord(BaseModel):
    """Texts of the resolved columns of one data row."""

    row: int
    values: Dict[str, str] = {}


class TableExtractionResult(BaseModel):
    table_name: str
    sheet_name: str
    bounding_box: Optional[str] = None
    columns: Dict[str, Optional[int]] = {}
    records: List[TableRowRecord] = []


class WorkbookExtraction(BaseModel):
    file_name: str
    tables: List[TableExtractionResult] = []
