import math
import logging
import warnings
from datetime import date, datetime
from enum import Enum
from numbers import Number
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from config import settings

logger = logging.getLogger(__name__)

# Share of non-empty values that must agree before a column gets a type
TYPE_THRESHOLD = 0.8


class ColumnType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


class ColumnDescriptor(BaseModel):
    """
    Structure of one source column, as inferred from a row sample.

    Attributes:
        index: 0-based position in the source (informational only)
        name: Column header
        original_name: Header as found in the file, same as name
        type: Inferred column type
        examples: Up to three non-empty sample values, in row order
    """
    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(alias="indice")
    name: str = Field(alias="nome")
    original_name: str = Field(alias="nomeOriginal")
    type: ColumnType = Field(alias="tipo")
    examples: List[Any] = Field(default_factory=list, alias="exemplos")


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Number):
        return True
    if not isinstance(value, str) or "_" in value:
        return False
    try:
        parsed = float(value.strip())
    except ValueError:
        return False
    return not math.isnan(parsed)


def is_date(value: Any) -> bool:
    if isinstance(value, (datetime, date, pd.Timestamp)):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(value, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return False
    return not pd.isna(parsed)


def infer_column_type(values: List[Any]) -> ColumnType:
    """
    Infer a column type from its values.

    Empty values do not vote. A column is a number when more than 80% of its
    non-empty values are numeric literals, otherwise a date when more than 80%
    parse as dates, otherwise text. No non-empty values means text.
    """
    present = [value for value in values if not is_empty(value)]
    if not present:
        return ColumnType.TEXT

    numeric = sum(1 for value in present if is_numeric(value))
    if numeric / len(present) > TYPE_THRESHOLD:
        return ColumnType.NUMBER

    dates = sum(1 for value in present if is_date(value))
    if dates / len(present) > TYPE_THRESHOLD:
        return ColumnType.DATE

    return ColumnType.TEXT


def extract_examples(values: List[Any], count: Optional[int] = None) -> List[Any]:
    count = settings.EXAMPLE_COUNT if count is None else count
    return [value for value in values if not is_empty(value)][:count]


def analyze(sample: pd.DataFrame) -> List[ColumnDescriptor]:
    """
    Describe every column of a sampled table.

    Args:
        sample: Header plus a bounded number of rows (see spreadsheet_reader.read_sample)

    Returns:
        One ColumnDescriptor per column, in column order
    """
    descriptors = []
    for index, column in enumerate(sample.columns):
        values = sample[column].tolist()
        descriptors.append(ColumnDescriptor(
            index=index,
            name=column,
            original_name=column,
            type=infer_column_type(values),
            examples=extract_examples(values),
        ))
    logger.debug("Analyzed sample", extra={"column_count": len(descriptors), "row_count": len(sample)})
    return descriptors


def detect_types(table: pd.DataFrame) -> Dict[str, str]:
    return {column: infer_column_type(table[column].tolist()).value for column in table.columns}


def column_statistics(table: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
    """Fill counts per column: total rows, filled, empty and fill percentage."""
    total = len(table)
    statistics = {}
    for column in table.columns:
        filled = sum(1 for value in table[column].tolist() if not is_empty(value))
        statistics[column] = {
            "total": total,
            "preenchidos": filled,
            "vazios": total - filled,
            "percentualPreenchimento": round(filled / total * 100, 1) if total else 0,
        }
    return statistics


def summarize(table: pd.DataFrame) -> Dict[str, Any]:
    """
    Build the profile returned for a freshly uploaded file.

    Tables above the advisory MAX_ROWS / MAX_COLUMNS thresholds are still
    profiled, only a warning is logged.
    """
    row_count, column_count = len(table), len(table.columns)
    if row_count > settings.MAX_ROWS:
        logger.warning(f"Spreadsheet has {row_count} rows (limit: {settings.MAX_ROWS})")
    if column_count > settings.MAX_COLUMNS:
        logger.warning(f"Spreadsheet has {column_count} columns (limit: {settings.MAX_COLUMNS})")

    return {
        "totalLinhas": row_count,
        "totalColunas": column_count,
        "colunas": list(table.columns),
        "amostraDados": table.head(settings.UPLOAD_SAMPLE_ROWS).to_dict(orient="records"),
        "tipos": detect_types(table),
        "estatisticas": column_statistics(table),
    }
