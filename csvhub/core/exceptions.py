"""
Domain exceptions raised by the ingestion pipeline and the upload store.

Routers translate these into HTTP responses; services never raise
HTTPException themselves.
"""
from uuid import UUID


class CSVParsingError(ValueError):
    """The uploaded file cannot produce a dataset (empty, header only, all rows empty)."""


class UploadNotFoundError(LookupError):
    """No upload record (or no stored payload) exists for the requested id."""

    def __init__(self, upload_id: UUID, detail: str = "Upload not found"):
        self.upload_id = upload_id
        self.detail = detail
        super().__init__(f"{detail}: {upload_id}")
