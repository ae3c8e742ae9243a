"""
Column data type detection for CSV previews.

Types are inferred from raw string samples only; nothing here changes what
gets persisted.
"""
import re
from collections import Counter
from enum import Enum
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

from dateutil import parser as date_parser
from pydantic import BaseModel, Field

from csvhub.services.csv_parser import Row


class DataType(str, Enum):
    """Detectable cell and column types."""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    EMAIL = "email"
    URL = "url"
    EMPTY = "empty"
    MIXED = "mixed"


class ColumnTypeInfo(BaseModel):
    """Dominant type of a column and how sure we are about it."""
    column: Optional[str] = None
    type: DataType
    confidence: float = Field(ge=0.0, le=1.0)
    sample_values: List[str] = Field(default_factory=list)


# Share of non-empty values that must agree before a column gets a single type
CONFIDENCE_THRESHOLD = 0.8
SAMPLE_SIZE = 3

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NUMBER_PATTERN = re.compile(r"^-?\d*\.?\d+([eE][+-]?\d+)?$")
DATE_PATTERNS = [
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),  # 2024-12-15
    re.compile(r"^\d{2}/\d{2}/\d{4}$"),  # 12/15/2024
    re.compile(r"^\d{2}-\d{2}-\d{4}$"),  # 12-15-2024
    re.compile(r"^\d{4}/\d{2}/\d{2}$"),  # 2024/12/15
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),  # 1/5/2024
]


def _is_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def _is_date(value: str) -> bool:
    if not any(pattern.match(value) for pattern in DATE_PATTERNS):
        return False
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False
    return True


def detect_data_type(value: Optional[str]) -> DataType:
    """
    Detect the type of a single cell value.

    Checks run in order: empty, boolean, email, url, date, number, string.

    Examples:
        "true" → BOOLEAN
        "jane@example.com" → EMAIL
        "2024-12-15" → DATE
        "-3.5e2" → NUMBER
        "Paella" → STRING
    """
    if not value or not value.strip():
        return DataType.EMPTY

    trimmed = value.strip()

    if trimmed.lower() in ("true", "false"):
        return DataType.BOOLEAN
    if EMAIL_PATTERN.match(trimmed):
        return DataType.EMAIL
    if _is_url(trimmed):
        return DataType.URL
    if _is_date(trimmed):
        return DataType.DATE
    if NUMBER_PATTERN.match(trimmed):
        return DataType.NUMBER

    return DataType.STRING


def detect_column_type(values: Sequence[str], column: Optional[str] = None) -> ColumnTypeInfo:
    """
    Detect the dominant type of a column from its values.

    Empty values are ignored. When fewer than 80% of the remaining values share
    the most common type the column is reported as MIXED.
    """
    non_empty = [value for value in values if value and value.strip()]
    if not non_empty:
        return ColumnTypeInfo(column=column, type=DataType.STRING, confidence=0.0)

    counts = Counter(detect_data_type(value) for value in non_empty)
    most_common_type, count = counts.most_common(1)[0]
    confidence = count / len(non_empty)

    return ColumnTypeInfo(
        column=column,
        type=most_common_type if confidence >= CONFIDENCE_THRESHOLD else DataType.MIXED,
        confidence=confidence,
        sample_values=non_empty[:SAMPLE_SIZE],
    )


def infer_column_types(rows: Sequence[Row], columns: Optional[Sequence[str]] = None) -> List[ColumnTypeInfo]:
    """Detect the type of every column across ``rows`` (columns default to the first row's keys)."""
    if columns is None:
        columns = list(rows[0].keys()) if rows else []

    values_by_column: Dict[str, List[str]] = {column: [] for column in columns}
    for row in rows:
        for column in columns:
            values_by_column[column].append(row.get(column, ""))

    return [detect_column_type(values_by_column[column], column=column) for column in columns]
