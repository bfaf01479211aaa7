"""
Unit tests for the table locator.

Tests:
- Title / footer anchors and the resulting cell range
- Absent tables returning EMPTY_RANGE
- Footer-less boundaries (sheet bottom, fallback row, first blank row)
- Last column detection from the header row
- Tables located by their first header line
"""

import pytest

from detection.table import find, locate, locate_by_header
from dto.coordinate import EMPTY_RANGE, NOT_FOUND, CellAddress, CellRangeAddress


class TestFind:
    """Row-major anchor search."""

    def test_finds_first_exact_match(self, cash_sheet):
        assert find(cash_sheet, "CASH") == CellAddress(row=11, column=1)

    def test_missing_text_is_not_found(self, cash_sheet):
        assert find(cash_sheet, "SECURITIES") == NOT_FOUND

    def test_prefix_match(self, cash_sheet):
        assert find(cash_sheet, "Брокер", prefix=True) == CellAddress(row=1, column=1)
        assert find(cash_sheet, "Брокер") == NOT_FOUND

    def test_row_bounds(self, cash_sheet):
        assert find(cash_sheet, "Итого", start_row=1, end_row=16) == NOT_FOUND
        assert find(cash_sheet, "Итого", start_row=12) == CellAddress(row=17, column=1)

    def test_numbers_are_not_matched_as_text(self, cash_sheet):
        assert find(cash_sheet, "100") == NOT_FOUND


class TestLocate:
    """Table range discovery."""

    def test_title_and_footer_bound_the_table(self, cash_sheet):
        table_range = locate(cash_sheet, "CASH", "Итого")

        assert table_range == CellRangeAddress(first_row=11, last_row=17, first_col=1, last_col=3)
        assert table_range.bounding_box == "A11:C17"

    def test_absent_table_is_empty_range(self, cash_sheet):
        table_range = locate(cash_sheet, "SECURITIES", "Итого")

        assert table_range == EMPTY_RANGE
        assert table_range.is_empty
        assert table_range.num_rows == 0

    def test_match_is_case_sensitive_by_default(self, cash_sheet):
        assert locate(cash_sheet, "cash") == EMPTY_RANGE
        assert locate(cash_sheet, "cash", case_sensitive=False).first_row == 11

    def test_without_footer_table_runs_to_sheet_bottom(self, cash_sheet):
        assert locate(cash_sheet, "CASH").last_row == 17

    def test_missing_footer_falls_back_to_sheet_bottom(self, cash_sheet):
        assert locate(cash_sheet, "CASH", "Всего").last_row == 17

    def test_fallback_last_row(self, cash_sheet):
        assert locate(cash_sheet, "CASH", fallback_last_row=15).last_row == 15

    def test_stop_at_blank_row(self, make_sheet):
        sheet = make_sheet({
            1: ["DEALS"],
            2: ["Дата", "Количество"],
            3: ["2020-01-10", 10],
            4: ["2020-01-11", 20],
            6: ["FEES"],
            7: ["Дата", "Сумма"],
        })

        assert locate(sheet, "DEALS", stop_at_blank_row=True).last_row == 4
        assert locate(sheet, "DEALS", stop_at_blank_row=False).last_row == 7

    def test_stop_at_blank_row_skips_spacer_after_header(self, make_sheet):
        sheet = make_sheet({
            1: ["CASH"],
            2: ["Дата", "Сумма"],
            4: ["2020-01-10", 100],
            5: ["2020-01-11", -50],
            7: ["FEES"],
            8: ["Дата", "Сумма"],
        })

        assert locate(sheet, "CASH", stop_at_blank_row=True).last_row == 5

    def test_stop_at_blank_row_keeps_cash_layout(self, cash_sheet):
        assert locate(cash_sheet, "CASH", stop_at_blank_row=True).last_row == 17

    def test_last_column_is_last_header_cell(self, make_sheet):
        sheet = make_sheet({
            1: [None, "TRADES"],
            2: [None, "Дата", "Цена", None, "Количество", None],
            3: [None, "2020-01-10", 101.5, None, 3, None, "note"],
        })

        table_range = locate(sheet, "TRADES")

        assert table_range.first_col == 2
        assert table_range.last_col == 5

    def test_merged_header_cells_extend_last_column(self, make_sheet):
        sheet = make_sheet(
            {
                1: ["ASSETS"],
                2: ["Счет", "На конец периода"],
                3: ["", "USD", "RUR"],
                4: ["1", 10, 600],
            },
            merges=["B2:C2"],
        )

        assert locate(sheet, "ASSETS").last_col == 3

    def test_header_less_table_spans_sheet_width(self, make_sheet):
        sheet = make_sheet({1: ["NOTES"], 3: ["a", "b", "c"]})

        assert locate(sheet, "NOTES").last_col == 3

    def test_range_is_deterministic(self, cash_sheet):
        assert locate(cash_sheet, "CASH", "Итого") == locate(cash_sheet, "CASH", "Итого")


class TestLocateByHeader:
    """Tables without a title row."""

    def test_range_starts_above_the_header(self, cash_sheet):
        table_range = locate_by_header(cash_sheet, "Дата", "Итого")

        assert table_range.first_row == 11
        assert table_range.last_row == 17

    def test_absent_header_is_empty_range(self, cash_sheet):
        assert locate_by_header(cash_sheet, "Тикер") == EMPTY_RANGE

    def test_range_starts_at_left_edge_of_header(self, make_sheet):
        sheet = make_sheet({
            1: ["Брокерский отчет"],
            3: ["Счет", "На конец отчетного периода"],
            4: ["40701", 1500.5],
        })

        table_range = locate_by_header(sheet, "На конец отчетного периода")

        assert table_range.first_row == 2
        assert table_range.first_col == 1
        assert table_range.last_col == 2

    def test_blank_cell_bounds_the_header_on_the_left(self, make_sheet):
        sheet = make_sheet({
            2: ["NOTES", None, "Счет", "Сумма"],
            3: ["x", None, "40701", 10],
        })

        assert locate_by_header(sheet, "Сумма").first_col == 3


class TestCellRangeAddress:
    """Range invariants."""

    def test_inverted_range_is_rejected(self):
        with pytest.raises(ValueError):
            CellRangeAddress(first_row=5, last_row=4, first_col=1, last_col=1)

    def test_contains(self):
        table_range = CellRangeAddress(first_row=2, last_row=4, first_col=1, last_col=3)

        assert table_range.contains(3, 2)
        assert not table_range.contains(5, 2)
        assert not EMPTY_RANGE.contains(-1, -1)
