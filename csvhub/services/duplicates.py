"""
Duplicate row detection over a configurable set of key columns.
"""
from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from csvhub.services.csv_parser import Row

# Unit separator: cannot be typed into an ordinary CSV cell
KEY_SEPARATOR = "\x1f"


class DuplicateHandling(str, Enum):
    """What the ingestion pipeline does with detected duplicates."""
    SKIP = "skip"
    KEEP = "keep"
    MARK = "mark"


class DuplicateEntry(BaseModel):
    """A row whose key was already seen earlier in the file."""
    row: int = Field(description="Line number of the duplicate, header is line 1")
    duplicate_of: int = Field(description="Line number of the first occurrence")
    data: Row


class DuplicateResult(BaseModel):
    """Duplicates found plus the rows that remain once they are dropped."""
    duplicates: List[DuplicateEntry] = Field(default_factory=list)
    unique_rows: List[Row] = Field(default_factory=list)


class DuplicateDetector:
    """
    Finds rows sharing a composite key.

    The key is the trimmed, lower-cased raw value of each key column joined in
    column order. Values are compared as strings only, so "1" and "1.0" are
    different keys. The first row carrying a key is canonical.
    """

    def resolve_columns(self, rows: Sequence[Row], columns: Optional[Sequence[str]] = None) -> List[str]:
        """Key columns to use: the requested ones, else every column of the first row."""
        if columns:
            return list(columns)
        if rows:
            return list(rows[0].keys())
        return []

    def compute_key(self, row: Row, columns: Sequence[str]) -> str:
        """
        Build the composite key of a row.

        Examples:
            ({"email": " A@X.com "}, ["email"]) → "a@x.com"
            ({"a": "1"}, ["a", "missing"]) → "1\\x1f"
        """
        return KEY_SEPARATOR.join(
            str(row.get(column) or "").strip().lower() for column in columns
        )

    def detect_duplicates(
        self,
        rows: Sequence[Row],
        columns: Optional[Sequence[str]] = None,
        line_numbers: Optional[Sequence[int]] = None,
    ) -> DuplicateResult:
        """
        Identify duplicate rows.

        Args:
            rows: Parsed rows
            columns: Key columns; empty or None uses every column of the first row
            line_numbers: File line of each row; defaults to index + 2 (header is line 1)

        Returns:
            DuplicateResult with duplicates and order-preserving unique rows
        """
        key_columns = self.resolve_columns(rows, columns)
        if line_numbers is None:
            line_numbers = [index + 2 for index in range(len(rows))]

        seen: Dict[str, int] = {}
        result = DuplicateResult()

        for row, line_number in zip(rows, line_numbers):
            key = self.compute_key(row, key_columns)

            if key in seen:
                result.duplicates.append(DuplicateEntry(
                    row=line_number,
                    duplicate_of=seen[key],
                    data=row,
                ))
            else:
                seen[key] = line_number
                result.unique_rows.append(row)

        return result
