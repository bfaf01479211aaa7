"""
Shared fixtures: in-memory openpyxl workbooks snapshotted with the
worksheet reader, so every test exercises the same path as a real report.
"""

from typing import Any, Dict, Iterable, List

import pytest
from openpyxl import Workbook

from dto.sheet_data import SheetData
from extractors.sheet import read_sheet


def _build_sheet(
    rows: Dict[int, List[Any]],
    merges: Iterable[str] = (),
    title: str = "Report",
) -> SheetData:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row, values in rows.items():
        for col, value in enumerate(values, start=1):
            if value is not None:
                ws.cell(row=row, column=col, value=value)
    for cell_range in merges:
        ws.merge_cells(cell_range)
    return read_sheet(ws)


@pytest.fixture
def make_sheet():
    """Factory: ``make_sheet({row: [values...]}, merges=["B2:D2"])``."""
    return _build_sheet


@pytest.fixture
def cash_sheet() -> SheetData:
    """
    Cash flow report: title "CASH" in A11, header in row 12, an empty row 13,
    three payments in rows 14..16 and the "Итого" totals row 17.
    """
    return _build_sheet({
        1: ["Брокерский отчет"],
        11: ["CASH"],
        12: ["Дата", "Сумма", "Описание"],
        14: ["2020-01-10", 100, "deposit"],
        15: ["2020-01-11", -50, "withdrawal"],
        16: ["2020-01-12", 25, "coupon"],
        17: ["Итого", 75],
    })
