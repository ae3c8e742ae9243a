"""
Pydantic schemas for CSV preview functionality.
"""
from typing import Dict, List

from pydantic import BaseModel, Field

from csvhub.schemas.upload import RowWarning
from csvhub.services.type_sniffer import ColumnTypeInfo


class CSVPreviewResponse(BaseModel):
    """Response for CSV preview endpoint."""
    file_name: str
    encoding: str = Field(description="Encoding used to decode the file")
    headers: List[str] = Field(description="Column names from the header line")
    total_rows: int = Field(description="Non-empty data rows in the file")
    preview_rows: List[Dict[str, str]] = Field(description="First rows of the file")
    column_types: List[ColumnTypeInfo] = Field(description="Detected type of each column")
    errors: List[RowWarning] = Field(default_factory=list, description="Row-level problems")
