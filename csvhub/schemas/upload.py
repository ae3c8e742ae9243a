"""
Pydantic schemas for CSV upload, history and row data endpoints.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


class UploadStatus(str, Enum):
    """Status of an upload record."""
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class RowWarning(BaseModel):
    """A non-fatal problem with a specific row."""
    row: int
    message: str


class DuplicateRow(BaseModel):
    """A row detected as a duplicate of an earlier one."""
    row: int
    duplicate_of: int
    data: Dict[str, str]


class CSVImportResponse(BaseModel):
    """Response after importing a CSV file."""
    success: bool
    message: str
    upload_id: UUID
    total_rows: int
    data: List[Dict[str, str]]
    warnings: List[RowWarning] = Field(default_factory=list)
    duplicates: Optional[List[DuplicateRow]] = None
    duplicate_count: int = 0


class UploadRecordResponse(BaseModel):
    """An upload record without its row data."""
    id: UUID
    file_name: str
    file_size: int
    status: UploadStatus
    uploaded_at: datetime
    completed_at: Optional[datetime] = None
    total_rows: Optional[int] = None
    errors: Optional[List[str]] = None
    message: Optional[str] = None

    class Config:
        from_attributes = True


class UploadHistoryFilters(BaseModel):
    """Conjunctive filters for the upload history."""
    status: Optional[UploadStatus] = None
    search: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_size: Optional[int] = Field(None, ge=0)
    max_size: Optional[int] = Field(None, ge=0)

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def check_ranges(self):
        if self.min_size is not None and self.max_size is not None and self.min_size > self.max_size:
            raise ValueError("min_size cannot be greater than max_size")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date cannot be after end_date")
        return self


class UploadHistoryResponse(BaseModel):
    """A page of upload history plus per-status counts."""
    uploads: List[UploadRecordResponse]
    total: int = Field(description="Records matching the filters")
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    success: int = Field(0, description="Successful uploads overall")
    failed: int = Field(0, description="Failed uploads overall")
    processing: int = Field(0, description="Uploads still processing")


class UploadDataResponse(BaseModel):
    """Stored rows of a successful upload."""
    upload_id: UUID
    file_name: str
    total_rows: int
    data: List[Dict[str, str]]


class BulkDeleteRequest(BaseModel):
    """IDs of upload records to delete."""
    ids: List[UUID] = Field(min_length=1)


class BulkDeleteResponse(BaseModel):
    """Result of a bulk delete."""
    deleted: int
    message: str


class UploadStatisticsResponse(BaseModel):
    """Totals across every upload record."""
    total_uploads: int
    success: int
    failed: int
    processing: int
    success_rate: float = Field(description="Percentage of uploads that succeeded")
    total_rows: int
    total_file_size: int
    average_file_size: float
    average_rows_per_file: float
