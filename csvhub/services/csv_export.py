"""
CSV export: serialize stored rows back into CSV text.
"""
import csv
import io
from typing import Dict, List, Sequence

from csvhub.services.csv_parser import Row


def collect_columns(rows: Sequence[Row]) -> List[str]:
    """Union of row keys in order of first appearance."""
    columns: Dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, None)
    return list(columns)


def export_rows_to_csv(rows: Sequence[Row]) -> str:
    """
    Serialize rows as comma-delimited CSV with a header line.

    Fields are double-quoted only when needed; cells a row does not have are
    written empty. Parsing the output yields the same rows.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=collect_columns(rows),
        restval="",
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def export_file_name(file_name: str) -> str:
    """
    Download name for an exported upload.

    Examples:
        "customers.csv" → "customers_export.csv"
        "report" → "report_export.csv"
    """
    stem = file_name[:-4] if file_name.lower().endswith(".csv") else file_name
    return f"{stem}_export.csv"
