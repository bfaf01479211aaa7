"""
Broker report table extractor - CLI entry point.

Usage:
    python parser.py <excel_file> --table <title> [--footer <text>]
                     [--column NAME=word1,word2 ...]
                     [--multiline NAME=line1|line2 ...]
                     [--offset N] [--sheet <sheet_name>] [--output <output.json>]

Loads an Excel workbook, evaluates its formulas, locates the table titled
``--table`` on every sheet (or only on ``--sheet``), resolves the requested
columns against its header and writes one record per data row as JSON.

Without ``--column`` every non-blank cell of a row is exported, keyed by
its column letter.
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import dotenv
import formulas
import numpy as np
import openpyxl
from openpyxl.utils import get_column_letter

from detection.columns import (
    MultiLineColumn,
    TableColumn,
    TableColumnDescription,
    TextColumn,
)
from dto.output import TableExtractionResult, TableRowRecord, WorkbookExtraction
from dto.sheet_data import RowData, SheetData
from extractors.cell_values import as_text
from extractors.pipeline import extract
from extractors.sheet import read_sheet
from extractors.table import ExcelTable

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Workbook loading
# -------------------------------------------------------------------


def _compute_formula_values(file_path: str) -> Dict[Tuple[str, str], Any]:
    """
    Use the ``formulas`` library to evaluate every formula in the workbook
    and return a lookup:  ``(sheet_name_upper, cell_coordinate) -> value``.

    Sheet names are normalised to uppercase for case-insensitive matching.
    """
    computed: Dict[Tuple[str, str], Any] = {}
    try:
        xl_model = formulas.ExcelModel().loads(file_path).finish()
        results = xl_model.calculate()

        # results keys look like  "'[file.xlsx]SHEET NAME'!E2"  or range variants
        file_stem = Path(file_path).name
        pattern = re.compile(
            r"'\[" + re.escape(file_stem) + r"\](.+?)'!([A-Z]+\d+)$",
            re.IGNORECASE,
        )
        for key, val in results.items():
            m = pattern.match(str(key))
            if not m:
                continue
            sheet = m.group(1).upper()
            coord = m.group(2).upper()

            v = val
            if hasattr(v, "value"):
                v = getattr(v, "value", v)
            if isinstance(v, np.ndarray):
                if v.size == 1:
                    v = v.flat[0]
                else:
                    continue  # multi-cell range results
            if isinstance(v, (np.integer, np.floating)):
                v = v.item()

            computed[(sheet, coord)] = v
    except Exception:
        logger.warning(
            "Formula evaluation failed - computed values will be unavailable",
            exc_info=True,
        )

    return computed


def _load_cached_values(file_path: str) -> Dict[Tuple[str, str], Any]:
    """
    Open the workbook with ``data_only=True`` to read Excel's own cached
    formula results.  Returns a lookup ``(SHEET_NAME_UPPER, COORD) -> value``.
    """
    cached: Dict[Tuple[str, str], Any] = {}
    try:
        wb_data = openpyxl.load_workbook(file_path, data_only=True)
        for ws_name in wb_data.sheetnames:
            ws = wb_data[ws_name]
            sheet_upper = ws_name.upper()
            for row in ws.iter_rows():
                for cell in row:
                    v = cell.value
                    if v is None:
                        continue
                    if isinstance(v, str) and v.startswith("="):
                        continue
                    coord_str = f"{get_column_letter(cell.column)}{cell.row}"
                    cached[(sheet_upper, coord_str)] = v
        wb_data.close()
    except Exception:
        logger.warning(
            "Failed to load cached formula values (data_only workbook)",
            exc_info=True,
        )
    return cached


def load_sheets(
    file_path: str,
    sheet_name_filter: Optional[str] = None,
    evaluate_formulas: bool = True,
) -> Dict[str, SheetData]:
    """Load the workbook at *file_path* and snapshot its sheets."""
    logger.info("Loading workbook: %s", file_path)
    workbook = openpyxl.load_workbook(file_path, data_only=False)

    if sheet_name_filter and sheet_name_filter not in workbook.sheetnames:
        logger.error(
            "Worksheet '%s' not found. Available sheets: %s",
            sheet_name_filter,
            workbook.sheetnames,
        )
        raise ValueError(f"Worksheet '{sheet_name_filter}' not found in workbook")

    computed_values: Dict[Tuple[str, str], Any] = {}
    if evaluate_formulas:
        logger.info("Computing formula values...")
        computed_values = _compute_formula_values(file_path)
        logger.info("  -> %d formula value(s) computed", len(computed_values))
    cached_values = _load_cached_values(file_path)

    names = [sheet_name_filter] if sheet_name_filter else workbook.sheetnames
    sheets = {
        name: read_sheet(
            workbook[name],
            computed_values=computed_values,
            cached_values=cached_values,
        )
        for name in names
    }
    workbook.close()
    return sheets


# -------------------------------------------------------------------
# Column specifications
# -------------------------------------------------------------------


def _split_spec(spec: str) -> Tuple[str, str]:
    name, sep, rule = spec.partition("=")
    if not sep or not name.strip() or not rule.strip():
        raise ValueError(f"Column specification must look like NAME=text, got {spec!r}")
    return name.strip().upper(), rule.strip()


def build_columns(
    column_specs: Sequence[str] = (),
    multiline_specs: Sequence[str] = (),
) -> Optional[Type[TableColumnDescription]]:
    """
    Build a column enum from ``NAME=word1,word2`` and ``NAME=line1|line2``
    specifications.  Returns ``None`` when no column was requested.
    """
    members: List[Tuple[str, TableColumn]] = []
    for spec in column_specs:
        name, rule = _split_spec(spec)
        words = [w.strip() for w in rule.split(",") if w.strip()]
        members.append((name, TextColumn.of(*words)))
    for spec in multiline_specs:
        name, rule = _split_spec(spec)
        lines = [TextColumn.of(ln.strip()) for ln in rule.split("|") if ln.strip()]
        members.append((name, MultiLineColumn.of(*lines)))
    if not members:
        return None
    return TableColumnDescription("ReportColumns", members)


# -------------------------------------------------------------------
# Extraction
# -------------------------------------------------------------------


def _all_cells_record(table: ExcelTable, row: RowData) -> Optional[TableRowRecord]:
    rng = table.table_range
    values = {
        get_column_letter(cd.column): as_text(cd)
        for cd in row.non_blank_cells()
        if rng.first_col <= cd.column <= rng.last_col
    }
    if not values:
        return None
    return TableRowRecord(row=row.row_number, values=values)


def extract_table(
    sheet: SheetData,
    table_name: str,
    columns: Optional[Type[TableColumnDescription]] = None,
    footer: Optional[str] = None,
    data_row_offset: Optional[int] = None,
    source: Optional[str] = None,
) -> TableExtractionResult:
    """Locate *table_name* in *sheet* and export its rows."""
    table = ExcelTable.of(
        sheet,
        table_name,
        columns or [],
        footer,
        data_row_offset=data_row_offset,
        source=source,
    )
    result = TableExtractionResult(table_name=table_name, sheet_name=sheet.title)
    if table.is_empty:
        return result

    result.bounding_box = table.table_range.bounding_box
    if columns is None:
        result.records = extract(table, _all_cells_record)
        return result

    result.columns = {member.name: table.column_index(member) for member in columns}
    resolved = [member for member in columns if table.column_index(member) is not None]

    def _row_record(t: ExcelTable, row: RowData) -> Optional[TableRowRecord]:
        values = {member.name: t.text_value(row, member) for member in resolved}
        if not any(values.values()):
            return None
        return TableRowRecord(row=row.row_number, values=values)

    result.records = extract(table, _row_record)
    return result


def parse_workbook(
    file_path: str,
    table_name: str,
    footer: Optional[str] = None,
    columns: Optional[Type[TableColumnDescription]] = None,
    data_row_offset: Optional[int] = None,
    sheet_name_filter: Optional[str] = None,
    evaluate_formulas: bool = True,
) -> WorkbookExtraction:
    """Extract *table_name* from every sheet of the workbook that contains it."""
    file_name = Path(file_path).name
    sheets = load_sheets(file_path, sheet_name_filter, evaluate_formulas)

    tables: List[TableExtractionResult] = []
    for sheet_name, sheet in sheets.items():
        logger.info("Processing sheet: %s", sheet_name)
        try:
            result = extract_table(
                sheet,
                table_name,
                columns,
                footer,
                data_row_offset=data_row_offset,
                source=file_name,
            )
        except Exception:
            logger.exception("Failed to process sheet '%s' - skipping", sheet_name)
            continue
        if result.bounding_box is None:
            continue
        logger.info("  -> %d record(s) in %s", len(result.records), result.bounding_box)
        tables.append(result)

    return WorkbookExtraction(file_name=file_name, tables=tables)


# -------------------------------------------------------------------
# CLI
# -------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> None:
    # engine defaults (detection.constants) come from the environment or a .env
    dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))

    parser = argparse.ArgumentParser(
        description="Extract a named table from a broker report workbook into JSON.",
    )
    parser.add_argument("excel_file", help="Path to the .xlsx report")
    parser.add_argument("-t", "--table", required=True, help="Table title (anchor text)")
    parser.add_argument("-f", "--footer", default=None, help="Footer text closing the table")
    parser.add_argument(
        "-c",
        "--column",
        action="append",
        default=[],
        help="NAME=word1,word2 - header cell containing all words (repeatable)",
    )
    parser.add_argument(
        "-m",
        "--multiline",
        action="append",
        default=[],
        help="NAME=line1|line2 - header spanning stacked rows (repeatable)",
    )
    parser.add_argument(
        "--offset",
        type=int,
        default=None,
        help="Rows from the title row to the first data row (default: REPORT_DATA_ROW_OFFSET or 2)",
    )
    parser.add_argument(
        "-s",
        "--sheet",
        default=None,
        help="Name of a single worksheet to process (default: all sheets)",
    )
    parser.add_argument(
        "--no-formulas",
        action="store_true",
        help="Skip formula evaluation and rely on Excel's cached values",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output JSON file path (default: <input_name>_<table>.json)",
    )
    args = parser.parse_args(argv)

    excel_path = args.excel_file
    if not os.path.isfile(excel_path):
        logger.error("File not found: %s", excel_path)
        sys.exit(1)

    try:
        columns = build_columns(args.column, args.multiline)
    except ValueError as exc:
        parser.error(str(exc))

    if args.output:
        output_path = args.output
    else:
        stem = Path(excel_path).stem
        table_slug = re.sub(r"\W+", "_", args.table).strip("_").lower() or "table"
        output_path = f"{stem}_{table_slug}.json"

    result = parse_workbook(
        excel_path,
        args.table,
        footer=args.footer,
        columns=columns,
        data_row_offset=args.offset,
        sheet_name_filter=args.sheet,
        evaluate_formulas=not args.no_formulas,
    )

    json_str = result.model_dump_json(indent=2, exclude_none=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(json_str)

    logger.info("Output written to %s", output_path)


if __name__ == "__main__":
    main()
