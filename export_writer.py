import os
import re
import logging
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from config import settings
from file_storage import format_file_size
from structure_analyzer import is_empty
from utils.errors import EmptyInput, SpreadsheetError, UnsupportedFormat

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "Combined Data"
SUPPORTED_FORMATS = ("xlsx", "csv")


class ExportArtifact(BaseModel):
    """
    A combined table written to the export directory.

    Attributes:
        file_name: Timestamped file name
        file_path: Absolute path on disk
        download_url: Path the file is served under
        size: Size in bytes
        size_formatted: Human-readable size
        create_date: ISO timestamp of creation
        format: xlsx or csv
        total_rows: Data rows written
        total_columns: Columns written
    """
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    file_path: str = Field(alias="filePath")
    download_url: str = Field(alias="downloadUrl")
    size: int
    size_formatted: str = Field(alias="sizeFormatted")
    create_date: str = Field(alias="createDate")
    format: str
    total_rows: int = Field(alias="totalRows")
    total_columns: int = Field(alias="totalColumns")


class CsvOptions(NamedTuple):
    separator: str = ","
    line_terminator: str = "\n"
    include_header: bool = True


def sanitize_base_name(base_name: str) -> str:
    """Strip anything that could escape the export directory or upset a file system."""
    name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "_", base_name or "")
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"_+", "_", name).strip("._ ")
    return name or "export"


def export_file_name(base_name: str, extension: str, directory: str) -> str:
    """
    <base>_<timestamp>.<ext>, timestamp to the second.

    An existing file of the same name gets a numeric suffix instead of being
    overwritten.
    """
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    stem = f"{sanitize_base_name(base_name)}_{timestamp}"
    file_name = f"{stem}.{extension}"
    counter = 1
    while os.path.exists(os.path.join(directory, file_name)):
        file_name = f"{stem}_{counter}.{extension}"
        counter += 1
    return file_name


def escape_csv_value(value: Any, separator: str) -> str:
    """
    Render one CSV field.

    A field is quoted (and its quotes doubled) only when it contains the
    separator, a newline, a carriage return or a double quote.
    """
    if is_empty(value):
        return ""
    text = str(value)
    if separator in text or "\n" in text or "\r" in text or '"' in text:
        text = '"' + text.replace('"', '""') + '"'
    return text


def _require_rows(rows: List[Dict[str, Any]]) -> List[str]:
    if not rows:
        raise EmptyInput("No data provided for export")
    return list(rows[0].keys())


def _artifact(file_name: str, file_path: str, export_format: str, rows: List[Dict[str, Any]], columns: List[str]) -> ExportArtifact:
    size = os.path.getsize(file_path)
    return ExportArtifact(
        file_name=file_name,
        file_path=file_path,
        download_url=f"{settings.EXPORT_URL_PREFIX}/{file_name}",
        size=size,
        size_formatted=format_file_size(size),
        create_date=datetime.now().isoformat(),
        format=export_format,
        total_rows=len(rows),
        total_columns=len(columns),
    )


def write_xlsx(rows: List[Dict[str, Any]], base_name: str, sheet_name: Optional[str] = None) -> ExportArtifact:
    """
    Write combined rows to an .xlsx workbook with a single sheet.

    Columns are the keys of the first row; cells missing from later rows
    are left empty.

    Raises:
        EmptyInput: rows is empty
    """
    columns = _require_rows(rows)
    export_dir = settings.export_path
    file_name = export_file_name(base_name, "xlsx", export_dir)
    file_path = os.path.join(export_dir, file_name)

    logger.info(f"Exporting to Excel: {file_name}", extra={"row_count": len(rows), "column_count": len(columns)})
    df = pd.DataFrame.from_records(rows, columns=columns)
    df.to_excel(file_path, sheet_name=(sheet_name or DEFAULT_SHEET_NAME)[:31], index=False, engine="openpyxl")

    artifact = _artifact(file_name, file_path, "xlsx", rows, columns)
    logger.info(f"Excel file created: {file_name} ({artifact.size_formatted})")
    return artifact


def write_csv(rows: List[Dict[str, Any]], base_name: str, options: Optional[CsvOptions] = None) -> ExportArtifact:
    """
    Write combined rows to a CSV file.

    The header is the first row's keys and every row is written aligned to
    it: a missing key becomes an empty field, keys not in the header are not
    written.

    Raises:
        EmptyInput: rows is empty
    """
    options = options or CsvOptions()
    columns = _require_rows(rows)
    export_dir = settings.export_path
    file_name = export_file_name(base_name, "csv", export_dir)
    file_path = os.path.join(export_dir, file_name)

    logger.info(f"Exporting to CSV: {file_name}", extra={"row_count": len(rows), "separator": options.separator})
    with open(file_path, "w", encoding="utf-8", newline="") as handle:
        if options.include_header:
            handle.write(options.separator.join(escape_csv_value(c, options.separator) for c in columns))
            handle.write(options.line_terminator)
        for row in rows:
            handle.write(options.separator.join(escape_csv_value(row.get(c), options.separator) for c in columns))
            handle.write(options.line_terminator)

    artifact = _artifact(file_name, file_path, "csv", rows, columns)
    logger.info(f"CSV file created: {file_name} ({artifact.size_formatted})")
    return artifact


def write(rows: List[Dict[str, Any]], base_name: str, export_format: str = "xlsx",
          csv_options: Optional[CsvOptions] = None, sheet_name: Optional[str] = None) -> ExportArtifact:
    export_format = (export_format or "xlsx").lower()
    if export_format in ("xlsx", "excel"):
        return write_xlsx(rows, base_name, sheet_name=sheet_name)
    if export_format == "csv":
        return write_csv(rows, base_name, csv_options)
    raise UnsupportedFormat(f"Unsupported export format: {export_format}")


def export_many(rows: List[Dict[str, Any]], base_name: str, formats: List[str],
                csv_options: Optional[CsvOptions] = None,
                sheet_name: Optional[str] = None) -> List[Union[ExportArtifact, Dict[str, str]]]:
    """
    Export the same rows once per format.

    A failing format is reported as {"format", "error"} without stopping the
    others; unknown formats are skipped.
    """
    logger.info(f"Exporting in {len(formats)} format(s): {', '.join(formats)}")
    results: List[Union[ExportArtifact, Dict[str, str]]] = []
    for export_format in formats:
        if export_format.lower() not in SUPPORTED_FORMATS + ("excel",):
            logger.warning(f"Unsupported export format skipped: {export_format}")
            continue
        try:
            results.append(write(rows, base_name, export_format, csv_options, sheet_name))
        except SpreadsheetError as e:
            logger.error(f"Export to {export_format} failed: {e.message}")
            results.append({"format": export_format, "error": e.message})
        except (OSError, ValueError) as e:
            logger.exception(f"Export to {export_format} failed")
            results.append({"format": export_format, "error": str(e)})
    return results
