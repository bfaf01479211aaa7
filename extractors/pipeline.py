"""
Row extraction pipeline.

Turns the data rows of an ``ExcelTable`` into caller-defined records:

  1. Every row is handed to a row extractor that returns zero, one or many
     records (``None`` means "nothing in this row").
  2. A record equal to one already collected replaces it with the output of
     the merge policy, appended at the end.
  3. A row whose extraction raises is logged and skipped; the remaining
     rows are still processed.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, TypeVar

from pydantic import BaseModel

from dto.sheet_data import RowData
from extractors.table import ExcelTable

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

RowExtractor = Callable[[ExcelTable, RowData], Optional[T]]
CollectionRowExtractor = Callable[[ExcelTable, RowData], Optional[Iterable[T]]]
MergePolicy = Callable[[T, T], Iterable[T]]


# -------------------------------------------------------------------
# Merge policies
# -------------------------------------------------------------------


def keep_both(existing: T, candidate: T) -> List[T]:
    """Default policy: duplicates stay side by side."""
    return [existing, candidate]


def sum_duplicates(field: str) -> Callable[[M, M], List[M]]:
    """
    Policy that collapses two equal pydantic records into one whose *field*
    holds the sum of both.
    """

    def _merge(existing: M, candidate: M) -> List[M]:
        total = getattr(existing, field) + getattr(candidate, field)
        return [existing.model_copy(update={field: total})]

    return _merge


# -------------------------------------------------------------------
# Extraction
# -------------------------------------------------------------------


def _add(data: List[T], record: T, merge_duplicates: MergePolicy) -> None:
    if record in data:
        index = data.index(record)
        # a failing policy leaves the collected records untouched
        merged = list(merge_duplicates(data[index], record))
        del data[index]
        data.extend(merged)
    else:
        data.append(record)


def extract_collection(
    table: ExcelTable,
    row_extractor: CollectionRowExtractor,
    merge_duplicates: MergePolicy = keep_both,
) -> List[T]:
    """Collect the records of every data row of *table*, in row order."""
    data: List[T] = []
    if table.is_empty:
        return data

    for row in table:
        try:
            result = row_extractor(table, row)
            if result is None:
                continue
            for record in list(result):
                _add(data, record, merge_duplicates)
        except Exception:
            logger.warning(
                "Failed to parse table '%s' in %s, row %d",
                table.table_name,
                table.source,
                row.row_number,
                exc_info=True,
            )
    return data


def extract(
    table: ExcelTable,
    row_extractor: RowExtractor,
    merge_duplicates: MergePolicy = keep_both,
) -> List[T]:
    """Single-record variant of ``extract_collection``."""

    def _as_collection(t: ExcelTable, row: RowData) -> Optional[List[T]]:
        record = row_extractor(t, row)
        return None if record is None else [record]

    return extract_collection(table, _as_collection, merge_duplicates)
