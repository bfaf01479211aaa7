"""
Unit tests for the ExcelTable view.

Tests:
- Data row iteration (offset, totals row, skipped empty rows)
- Re-iteration and one-shot iterators
- Empty tables
- Cell access by column description and address
- Helpers: find_row, nameless tables, footer rows holding data
"""

from decimal import Decimal

import pytest

from detection.columns import MultiLineColumn, TableColumnDescription, TextColumn
from detection.table import locate
from dto.coordinate import CellAddress
from errors import ColumnNotFoundError, MalformedCellError
from extractors.table import ExcelTable


class CashFlowHeader(TableColumnDescription):
    DATE = TextColumn.of("дата")
    VALUE = TextColumn.of("сумма")
    DESCRIPTION = TextColumn.of("описание")
    CURRENCY = TextColumn.of("валюта")


class DealsHeader(TableColumnDescription):
    DATE = TextColumn.of("дата")
    COUNT = TextColumn.of("количество")


@pytest.fixture
def deals_sheet(make_sheet):
    """Title row 1, header row 2, data rows 3..6, no footer."""
    return make_sheet({
        1: ["DEALS"],
        2: ["Дата", "Количество"],
        3: ["2020-01-10", 10],
        4: ["2020-01-11", 20],
        5: ["2020-01-12", "30"],
        6: ["2020-01-13", 40.7],
    })


class TestRowIteration:
    """Which rows a table yields."""

    def test_cash_flow_rows(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")

        rows = list(table)

        assert table.table_range.first_row == 11
        assert table.table_range.last_row == 17
        assert [row.row_number for row in rows] == [14, 15, 16]
        values = [table.currency_value(row, CashFlowHeader.VALUE) for row in rows]
        assert values == [Decimal(100), Decimal(-50), Decimal(25)]
        assert sum(values) == Decimal(75)

    def test_row_count_without_totals_row(self, deals_sheet):
        table_range = locate(deals_sheet, "DEALS")
        table = ExcelTable(deals_sheet, "DEALS", table_range, DealsHeader)

        expected = table_range.last_row - table_range.first_row - 2 + 1
        assert len(list(table)) == expected == 4

    def test_row_count_with_totals_row(self, deals_sheet):
        table_range = locate(deals_sheet, "DEALS")
        table = ExcelTable(
            deals_sheet, "DEALS", table_range, DealsHeader, includes_totals_row=True
        )

        rows = list(table)

        assert len(rows) == 3
        assert rows[-1].row_number == 5

    def test_custom_data_row_offset(self, deals_sheet):
        table = ExcelTable.of(deals_sheet, "DEALS", DealsHeader, data_row_offset=3)

        assert [row.row_number for row in table] == [4, 5, 6]

    def test_empty_rows_use_up_the_budget(self, make_sheet):
        sheet = make_sheet({
            1: ["DEALS"],
            2: ["Дата", "Количество"],
            3: ["2020-01-10", 10],
        })
        table = ExcelTable.of(sheet, "DEALS", DealsHeader, fallback_last_row=8)

        assert table.data_rows_count == 6
        assert [row.row_number for row in table] == [3]

    def test_reiteration_starts_over(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")

        assert [r.row_number for r in table] == [r.row_number for r in table.rows()]

    def test_iterator_is_not_restartable(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")
        iterator = iter(table)

        assert len(list(iterator)) == 3
        assert list(iterator) == []

    def test_missing_footer_is_not_a_totals_row(self, deals_sheet):
        table = ExcelTable.of(deals_sheet, "DEALS", DealsHeader, footer="Итого")

        assert table.includes_totals_row is False
        assert [row.row_number for row in table] == [3, 4, 5, 6]

    def test_footer_row_holding_data(self, deals_sheet):
        table = ExcelTable.of(
            deals_sheet, "DEALS", DealsHeader, footer="2020-01-13", footer_is_data=True
        )

        assert table.includes_totals_row is False
        assert [row.row_number for row in table] == [3, 4, 5, 6]


class TestEmptyTable:
    """Tables absent from the report."""

    def test_absent_table_is_empty(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "SECURITIES", CashFlowHeader, footer="Итого")

        assert table.is_empty
        assert table.data_rows_count == 0
        assert list(table) == []
        assert table.find_row("Итого") is None

    def test_absent_table_has_no_columns(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "SECURITIES", CashFlowHeader)

        assert table.column_index(CashFlowHeader.VALUE) is None


class TestCellAccess:
    """Typed access to table cells."""

    def test_typed_values(self, deals_sheet):
        table = ExcelTable.of(deals_sheet, "DEALS", DealsHeader)
        rows = list(table)

        assert [table.int_value(row, DealsHeader.COUNT) for row in rows] == [10, 20, 30, 40]
        assert table.text_value(rows[0], DealsHeader.DATE) == "2020-01-10"

    def test_unresolved_column_fails_on_use(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")
        row = next(iter(table))

        with pytest.raises(ColumnNotFoundError) as exc_info:
            table.cell(row, CashFlowHeader.CURRENCY)
        assert isinstance(exc_info.value, LookupError)
        assert exc_info.value.column == "CURRENCY"

    def test_malformed_cell(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")
        row = next(iter(table))

        with pytest.raises(MalformedCellError):
            table.int_value(row, CashFlowHeader.DESCRIPTION)

    def test_values_by_address(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")

        assert table.currency_value_at(CellAddress(row=17, column=2)) == Decimal(75)
        assert table.int_value_at(CellAddress(row=15, column=2)) == -50
        assert table.text_value_at(CellAddress(row=17, column=1)) == "Итого"
        assert table.text_value_at(CellAddress(row=50, column=9)) == ""

    def test_missing_cell_in_resolved_column_reads_as_empty_text(self, make_sheet):
        sheet = make_sheet({
            1: ["DEALS"],
            2: ["Дата", "Количество"],
            3: ["2020-01-10"],
        })
        table = ExcelTable.of(sheet, "DEALS", DealsHeader, fallback_last_row=3)
        row = next(iter(table))

        assert table.text_value(row, DealsHeader.COUNT) == ""


class TestHelpers:
    """find_row and tables without a title."""

    def test_find_row_by_prefix(self, make_sheet):
        sheet = make_sheet(
            {
                1: ["ОЦЕНКА АКТИВОВ"],
                2: ["Счет", "На конец отчетного периода"],
                3: [None, "по цене приобретения", "по цене закрытия"],
                4: [None, "RUR", "USD", "RUR"],
                5: ["Общая стоимость активов: 1", 1000, 20, 1500.5],
            },
            merges=["B2:D2", "C3:D3"],
        )

        class SummaryTableHeader(TableColumnDescription):
            RUB = MultiLineColumn.of(
                TextColumn.of("На конец отчетного периода"),
                TextColumn.of("по цене закрытия"),
                TextColumn.of("RUR"),
            )

        table = ExcelTable.of_nameless(
            sheet,
            "ОЦЕНКА АКТИВОВ",
            "На конец отчетного периода",
            SummaryTableHeader,
            header_rows=3,
        )
        row = table.find_row("Общая стоимость активов:")

        assert table.data_row_offset == 4
        assert row is not None and row.row_number == 5
        assert table.currency_value(row, SummaryTableHeader.RUB) == Decimal("1500.5")
        assert [r.row_number for r in table] == [5]

    def test_nameless_table_resolves_columns_left_of_anchor(self, make_sheet):
        sheet = make_sheet({
            1: ["Брокерский отчет"],
            3: ["Счет", "На конец отчетного периода"],
            4: ["40701", 1500.5],
        })

        class AccountHeader(TableColumnDescription):
            ACCOUNT = TextColumn.of("счет")
            VALUE = TextColumn.of("на конец")

        table = ExcelTable.of_nameless(
            sheet, "ACCOUNTS", "На конец отчетного периода", AccountHeader
        )

        assert table.column_index(AccountHeader.ACCOUNT) == 1
        assert table.column_index(AccountHeader.VALUE) == 2
        assert [table.text_value(r, AccountHeader.ACCOUNT) for r in table] == ["40701"]

    def test_find_row_missing(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader, footer="Итого")

        assert table.find_row("Всего") is None

    def test_repr_names_the_table(self, cash_sheet):
        table = ExcelTable.of(cash_sheet, "CASH", CashFlowHeader)

        assert repr(table) == "ExcelTable(table_name='CASH')"
