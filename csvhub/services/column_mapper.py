"""
Column mapping: rename row keys from source column names to target names.
"""
from typing import Dict, List, Optional

from csvhub.services.csv_parser import Row


def apply_column_mapping(rows: List[Row], column_mapping: Optional[Dict[str, str]]) -> List[Row]:
    """
    Rename the columns of every row.

    Keys without a (non-empty) target keep their name, values are carried over
    unchanged and no column is added to a row that did not have it. An empty
    or missing mapping returns ``rows`` itself.

    Examples:
        ([{"e-mail": "a@x.com"}], {"e-mail": "email"}) → [{"email": "a@x.com"}]
        ([{"name": "Ann"}], {"missing": "other"}) → [{"name": "Ann"}]
    """
    if not column_mapping:
        return rows

    mapped_rows: List[Row] = []
    for row in rows:
        mapped: Row = {}
        for source_column, value in row.items():
            target_column = column_mapping.get(source_column) or source_column
            mapped[target_column] = value
        mapped_rows.append(mapped)

    return mapped_rows
