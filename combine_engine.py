import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import pandas as pd

from selection import SelectionMap
from spreadsheet_reader import read_table
from structure_analyzer import is_empty

logger = logging.getLogger(__name__)

ORIGIN_COLUMN = "__origin__"

TableLoader = Callable[[str, str], pd.DataFrame]


class SpreadsheetSource(NamedTuple):
    """
    A source file for combination.

    table may hold an already loaded DataFrame; when it is None the file at
    path is read only if the selection picks columns from it.
    """
    file_name: str
    original_name: str
    path: str = ""
    table: Optional[pd.DataFrame] = None


class CombineOptions(NamedTuple):
    include_origin: bool = False
    trim_strings: bool = False
    empty_replacement: str = ""
    rename: Optional[Dict[str, str]] = None

    def final_name(self, file_name: str, column_name: str) -> str:
        return (self.rename or {}).get(f"{file_name}_{column_name}") or column_name


class PreviewResult(NamedTuple):
    rows: List[Dict[str, Any]]
    total_row_count: int
    column_names: List[str]
    files_processed: int


def process_value(value: Any, options: CombineOptions) -> Any:
    if options.trim_strings and isinstance(value, str):
        value = value.strip()
    if is_empty(value):
        return options.empty_replacement
    return value


def _load_source(source: SpreadsheetSource, loader: TableLoader) -> pd.DataFrame:
    if source.table is not None:
        return source.table
    return loader(source.path, source.original_name)


def combine(
    sources: List[SpreadsheetSource],
    selection: SelectionMap,
    options: Optional[CombineOptions] = None,
    loader: TableLoader = read_table,
) -> List[Dict[str, Any]]:
    """
    Project the selected columns of every source into one list of rows.

    Sources are processed in the order given, rows in file order, so the
    output is source rows concatenated file after file. A source without
    selected columns is skipped entirely and its file is never read.

    Each output row optionally starts with ORIGIN_COLUMN (the source's
    original name), followed by the selected columns in selection order under
    their final names. Cells are looked up by column name; a name the source
    does not have leaves the key out of the row. When two selections share a
    final name, the later one overwrites the earlier value.

    Args:
        sources: Source files, in processing order
        selection: Columns chosen per stored file name
        options: Origin column, trimming, empty replacement and renames
        loader: Reads a full table from (path, original_name)

    Returns:
        Combined rows; rows from different sources may have different keys
    """
    options = options or CombineOptions()
    combined: List[Dict[str, Any]] = []

    for source in sources:
        columns = selection.columns_for(source.file_name)
        if not columns:
            logger.info(f"Skipping spreadsheet without selected columns: {source.original_name}")
            continue

        logger.info(f"Processing: {source.original_name}", extra={"selected_columns": len(columns)})
        table = _load_source(source, loader)
        available = set(table.columns)

        missing = [column.name for column in columns if column.name not in available]
        if missing:
            logger.warning(
                f"Selected columns missing from {source.original_name}",
                extra={"file_name": source.file_name, "missing_columns": missing},
            )

        projection = [
            (column.name, options.final_name(source.file_name, column.name))
            for column in columns
            if column.name in available
        ]

        for record in table.to_dict(orient="records"):
            row: Dict[str, Any] = {}
            if options.include_origin:
                row[ORIGIN_COLUMN] = source.original_name
            for name, final_name in projection:
                row[final_name] = process_value(record.get(name), options)
            combined.append(row)

    logger.info(f"Combination finished: {len(combined)} rows")
    return combined


def output_columns(rows: List[Dict[str, Any]]) -> List[str]:
    """Union of row keys, in the order they are first seen."""
    columns: Dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, None)
    return list(columns)


def preview(
    sources: List[SpreadsheetSource],
    selection: SelectionMap,
    limit: int = 10,
    loader: TableLoader = read_table,
) -> PreviewResult:
    """
    Combine everything (always with the origin column) and keep the first rows.

    The total row count is the untruncated combination size, so callers can
    show "X of Y". The full combination is computed either way.
    """
    rows = combine(sources, selection, CombineOptions(include_origin=True), loader=loader)
    shown = rows[:max(limit, 0)]
    return PreviewResult(
        rows=shown,
        total_row_count=len(rows),
        column_names=output_columns(rows),
        files_processed=len(sources),
    )
