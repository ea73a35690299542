import os
import time
import logging
from typing import Optional

import pandas as pd

from config import settings
from utils.errors import EmptyTable, FileNotFound, UnsupportedFormat

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = (".csv", ".txt")
EXCEL_EXTENSIONS = (".xlsx", ".xls")

# Candidate separators, in tie-break order
SEPARATOR_CANDIDATES = [",", ";", "\t", "|"]


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name)[1].lower()


def is_supported(file_name: str) -> bool:
    return file_extension(file_name) in CSV_EXTENSIONS + EXCEL_EXTENSIONS


def detect_separator(file_path: str, encoding: Optional[str] = None) -> str:
    """
    Guess the field separator of a delimited text file.

    Counts every candidate separator in the first three lines and returns the
    most frequent one. A tie keeps the candidate listed first, and a file with
    none of them (or one that cannot be opened) falls back to a comma.

    Args:
        file_path: Path to the CSV/TXT file
        encoding: Text encoding, defaults to settings.CSV_ENCODING

    Returns:
        The detected separator character
    """
    try:
        with open(file_path, "r", encoding=encoding or settings.CSV_ENCODING, errors="replace") as handle:
            head = "".join(line for _, line in zip(range(3), handle))
    except OSError:
        return ","

    best_separator, best_count = ",", 0
    for candidate in SEPARATOR_CANDIDATES:
        count = head.count(candidate)
        if count > best_count:
            best_separator, best_count = candidate, count
    return best_separator


def _normalize(df: pd.DataFrame) -> pd.DataFrame:
    # String headers, and "" for every missing cell
    df.columns = [str(column) for column in df.columns]
    return df.astype(object).where(pd.notna(df), "")


def _read_csv(file_path: str, max_rows: Optional[int]) -> pd.DataFrame:
    separator = detect_separator(file_path)
    logger.debug("Reading delimited text", extra={"file_path": file_path, "separator": separator})
    try:
        return pd.read_csv(
            file_path,
            sep=separator,
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding=settings.CSV_ENCODING,
            encoding_errors="replace",
            nrows=max_rows,
        )
    except pd.errors.EmptyDataError as e:
        raise EmptyTable("Spreadsheet is empty") from e
    except pd.errors.ParserError as e:
        raise UnsupportedFormat(f"Could not parse delimited file: {str(e)}") from e


def _read_excel(file_path: str, extension: str, max_rows: Optional[int]) -> pd.DataFrame:
    engine = "xlrd" if extension == ".xls" else "openpyxl"
    try:
        # First sheet only, first row is the header; object dtype keeps ints next to blanks
        return pd.read_excel(file_path, sheet_name=0, header=0, nrows=max_rows, engine=engine, dtype=object)
    except FileNotFoundError:
        raise
    except Exception as e:
        raise UnsupportedFormat(f"Could not read Excel workbook: {str(e)}") from e


def _load(file_path: str, original_name: str, max_rows: Optional[int]) -> pd.DataFrame:
    extension = file_extension(original_name)
    if extension not in CSV_EXTENSIONS + EXCEL_EXTENSIONS:
        raise UnsupportedFormat(f"Unsupported file format: {extension or original_name}")

    if not os.path.isfile(file_path):
        logger.error("Spreadsheet not found", extra={"file_path": file_path})
        raise FileNotFound(f"File not found: {os.path.basename(file_path)}")

    start_time = time.time()
    try:
        if extension in CSV_EXTENSIONS:
            df = _read_csv(file_path, max_rows)
        else:
            df = _read_excel(file_path, extension, max_rows)
    except FileNotFoundError as e:
        # Deleted between the existence check and the read
        raise FileNotFound(f"File not found: {os.path.basename(file_path)}") from e

    if len(df.columns) == 0 or df.empty:
        logger.warning("Spreadsheet has no data rows", extra={"file_path": file_path})
        raise EmptyTable(f"Spreadsheet is empty: {original_name}")

    df = _normalize(df)
    logger.info(
        f"Read spreadsheet {original_name}",
        extra={
            "file_path": file_path,
            "row_count": len(df),
            "column_count": len(df.columns),
            "read_time_seconds": f"{time.time() - start_time:.2f}",
        },
    )
    return df


def read_table(file_path: str, original_name: str) -> pd.DataFrame:
    """
    Read a whole spreadsheet into a DataFrame.

    The format is chosen from the extension of the original (user-supplied)
    file name, since stored names are generated.

    Args:
        file_path: Path of the stored file
        original_name: Name the file was uploaded with

    Returns:
        DataFrame with string headers and "" for missing cells

    Raises:
        UnsupportedFormat: Unknown extension or unparseable content
        EmptyTable: No header or no data rows
        FileNotFound: The stored file does not exist
    """
    return _load(file_path, original_name, None)


def read_sample(file_path: str, original_name: str, max_rows: Optional[int] = None) -> pd.DataFrame:
    """
    Read only the header and the first max_rows data rows of a spreadsheet.

    Args:
        file_path: Path of the stored file
        original_name: Name the file was uploaded with
        max_rows: Data rows to keep, defaults to settings.SAMPLE_ROWS

    Returns:
        DataFrame holding at most max_rows rows
    """
    return _load(file_path, original_name, max_rows or settings.SAMPLE_ROWS)
