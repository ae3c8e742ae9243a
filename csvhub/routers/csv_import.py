"""
CSV import router: upload, preview, history, row data, export and deletion.
"""
import json
import logging
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from csvhub.core.config import get_settings
from csvhub.core.exceptions import CSVParsingError, UploadNotFoundError
from csvhub.db.session import get_db
from csvhub.schemas.csv_preview import CSVPreviewResponse
from csvhub.schemas.upload import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    CSVImportResponse,
    DuplicateRow,
    RowWarning,
    UploadDataResponse,
    UploadHistoryFilters,
    UploadHistoryResponse,
    UploadRecordResponse,
    UploadStatisticsResponse,
    UploadStatus,
)
from csvhub.services.audit_log import AuditAction, AuditLogService
from csvhub.services.csv_export import export_file_name, export_rows_to_csv
from csvhub.services.csv_parser import CSVParser
from csvhub.services.duplicates import DuplicateHandling
from csvhub.services.ingestion import CSVIngestionService, IngestionOptions
from csvhub.services.type_sniffer import infer_column_types
from csvhub.services.upload_history import UploadHistoryService

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/csv-import", tags=["csv-import"])

# Rows sampled when detecting column types for a preview
TYPE_SAMPLE_ROWS = 100


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _record_audit(db: Session, request: Request, action: AuditAction, **kwargs) -> None:
    """Write an audit entry without letting audit failures break the request."""
    try:
        AuditLogService(db).log_action(
            action,
            ip_address=_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            **kwargs,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to write audit log entry for {action.value}: {e}")


def _validate_csv_file(file: Optional[UploadFile]) -> UploadFile:
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed"
        )
    return file


async def _read_upload(file: UploadFile) -> bytes:
    content = await file.read()
    if len(content) > settings.upload_max_file_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.UPLOAD_MAX_FILE_SIZE_MB} MB upload limit"
        )
    return content


def parse_ingestion_options(
    detect_duplicates: bool = False,
    duplicate_columns: Optional[str] = None,
    handle_duplicates: DuplicateHandling = DuplicateHandling.KEEP,
    column_mapping: Optional[str] = None,
) -> IngestionOptions:
    """
    Build ingestion options from multipart form values.

    ``duplicate_columns`` is a comma-separated list or a JSON array;
    ``column_mapping`` is a JSON object of source → target column names.

    Raises:
        ValueError: malformed JSON or option values
    """
    columns: List[str] = []
    if duplicate_columns and duplicate_columns.strip():
        text = duplicate_columns.strip()
        if text.startswith("["):
            columns = json.loads(text)
            if not isinstance(columns, list):
                raise ValueError("duplicate_columns must be a JSON array")
        else:
            columns = text.split(",")

    mapping = {}
    if column_mapping and column_mapping.strip():
        mapping = json.loads(column_mapping)
        if not isinstance(mapping, dict):
            raise ValueError("column_mapping must be a JSON object")

    return IngestionOptions(
        detect_duplicates=detect_duplicates,
        duplicate_columns=columns,
        handle_duplicates=handle_duplicates,
        column_mapping=mapping,
    )


@router.post("/upload", response_model=CSVImportResponse)
async def upload_csv(
    request: Request,
    file: Optional[UploadFile] = File(None),
    detect_duplicates: bool = Form(False),
    duplicate_columns: Optional[str] = Form(None),
    handle_duplicates: DuplicateHandling = Form(DuplicateHandling.KEEP),
    column_mapping: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    """
    Upload and import a CSV file.

    The upload record is created in ``processing`` state before parsing so the
    import is visible in history straight away, then moved to ``success`` (with
    the final rows and any row warnings) or ``failed`` (with the error).

    Options:
    - detect_duplicates: look for rows sharing a key
    - duplicate_columns: key columns (default: every column)
    - handle_duplicates: skip | keep | mark
    - column_mapping: JSON object renaming columns, e.g. {"E-mail": "email"}
    """
    file = _validate_csv_file(file)

    try:
        options = parse_ingestion_options(detect_duplicates, duplicate_columns, handle_duplicates, column_mapping)
    except ValueError as e:  # includes JSONDecodeError and pydantic ValidationError
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid upload options: {e}"
        )

    content = await _read_upload(file)
    file_name = file.filename

    history = UploadHistoryService(db)
    upload = history.create_upload_record(file_name, len(content))
    history.store_original_file(upload.id, content)

    try:
        result = CSVIngestionService().ingest(content, options)
    except CSVParsingError as e:
        history.update_upload_status(upload.id, UploadStatus.FAILED, message=f"CSV parsing failed: {e}")
        _record_audit(
            db, request, AuditAction.UPLOAD,
            upload_id=upload.id, file_name=file_name, status="failed", error_message=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to parse CSV: {e}"
        )
    except Exception as e:
        logger.error(f"Unexpected error while importing upload {upload.id}: {e}", exc_info=True)
        history.update_upload_status(upload.id, UploadStatus.FAILED, message=f"Failed to process CSV: {e}")
        _record_audit(
            db, request, AuditAction.UPLOAD,
            upload_id=upload.id, file_name=file_name, status="failed", error_message=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process CSV: {str(e)}"
        )

    message = "CSV file imported successfully"
    if result.errors:
        message += f" with {len(result.errors)} warning(s)"

    history.update_upload_status(
        upload.id,
        UploadStatus.SUCCESS,
        total_rows=result.total_rows,
        errors=result.error_messages(),
        message=message,
        data=result.data,
    )
    _record_audit(
        db, request, AuditAction.UPLOAD,
        upload_id=upload.id,
        file_name=file_name,
        details={
            "file_size": len(content),
            "total_rows": result.total_rows,
            "warnings": len(result.errors),
            "duplicates": result.duplicate_count,
            "options": options.model_dump(mode="json"),
        },
    )

    return CSVImportResponse(
        success=True,
        message=message,
        upload_id=upload.id,
        total_rows=result.total_rows,
        data=result.data,
        warnings=[RowWarning(row=error.row, message=error.message) for error in result.errors],
        duplicates=(
            [DuplicateRow(row=d.row, duplicate_of=d.duplicate_of, data=d.data) for d in result.duplicates]
            if result.duplicates is not None else None
        ),
        duplicate_count=result.duplicate_count,
    )


@router.post("/preview", response_model=CSVPreviewResponse)
async def preview_csv(
    request: Request,
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    """
    Preview a CSV file without importing it.

    Returns the header, the first rows, the detected type of each column and
    any row-level problems. Nothing is persisted except the audit entry.
    """
    file = _validate_csv_file(file)
    content = await _read_upload(file)

    try:
        result = CSVParser().parse_csv(content)
    except CSVParsingError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to parse CSV: {e}"
        )

    _record_audit(
        db, request, AuditAction.PREVIEW,
        file_name=file.filename, details={"total_rows": len(result.rows)},
    )

    return CSVPreviewResponse(
        file_name=file.filename,
        encoding=result.encoding,
        headers=result.headers,
        total_rows=len(result.rows),
        preview_rows=result.rows[:settings.PREVIEW_MAX_ROWS],
        column_types=infer_column_types(result.rows[:TYPE_SAMPLE_ROWS], columns=result.headers),
        errors=[RowWarning(row=error.row, message=error.message) for error in result.errors],
    )


@router.get("/history", response_model=UploadHistoryResponse)
def get_upload_history(
    status_filter: Optional[UploadStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Case-insensitive file name search"),
    start_date: Optional[datetime] = Query(None, description="Uploaded at or after"),
    end_date: Optional[datetime] = Query(None, description="Uploaded at or before"),
    min_size: Optional[int] = Query(None, ge=0, description="Minimum file size in bytes"),
    max_size: Optional[int] = Query(None, ge=0, description="Maximum file size in bytes"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """
    List upload history with filters and pagination.

    Successful uploads come first, then processing, then failed; newest first
    within each status.
    """
    try:
        filters = UploadHistoryFilters(
            status=status_filter,
            search=search,
            start_date=start_date,
            end_date=end_date,
            min_size=min_size,
            max_size=max_size,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid filters: {e.errors()[0]['msg']}"
        )

    limit = min(limit or settings.HISTORY_DEFAULT_PAGE_SIZE, settings.HISTORY_MAX_PAGE_SIZE)

    history = UploadHistoryService(db)
    result = history.get_uploads_with_filters(filters, page=page, limit=limit)
    counts = history.get_status_counts()

    return UploadHistoryResponse(
        uploads=[UploadRecordResponse.model_validate(record) for record in result.records],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
        has_next_page=result.page < result.total_pages,
        has_previous_page=result.page > 1,
        success=counts[UploadStatus.SUCCESS.value],
        failed=counts[UploadStatus.FAILED.value],
        processing=counts[UploadStatus.PROCESSING.value],
    )


@router.get("/statistics", response_model=UploadStatisticsResponse)
def get_upload_statistics(db: Session = Depends(get_db)):
    """Totals across every upload (counts, success rate, rows and file sizes)."""
    uploads = UploadHistoryService(db).get_all_uploads()

    total_uploads = len(uploads)
    success = sum(1 for u in uploads if u.status == UploadStatus.SUCCESS.value)
    failed = sum(1 for u in uploads if u.status == UploadStatus.FAILED.value)
    processing = sum(1 for u in uploads if u.status == UploadStatus.PROCESSING.value)
    total_rows = sum(u.total_rows or 0 for u in uploads)
    total_file_size = sum(u.file_size for u in uploads)

    return UploadStatisticsResponse(
        total_uploads=total_uploads,
        success=success,
        failed=failed,
        processing=processing,
        success_rate=round(success / total_uploads * 100, 2) if total_uploads else 0.0,
        total_rows=total_rows,
        total_file_size=total_file_size,
        average_file_size=total_file_size / total_uploads if total_uploads else 0.0,
        average_rows_per_file=total_rows / success if success else 0.0,
    )


@router.post("/history/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_uploads(
    payload: BulkDeleteRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Delete several uploads; unknown IDs are ignored."""
    deleted = UploadHistoryService(db).delete_uploads(payload.ids)
    _record_audit(
        db, request, AuditAction.BULK_DELETE,
        details={"requested": [str(i) for i in payload.ids], "deleted": deleted},
    )
    return BulkDeleteResponse(
        deleted=deleted,
        message=f"Successfully deleted {deleted} upload(s)",
    )


@router.get("/history/{upload_id}", response_model=UploadRecordResponse)
def get_upload(upload_id: UUID, db: Session = Depends(get_db)):
    """Get a single upload record (without its rows)."""
    try:
        return UploadHistoryService(db).get_upload(upload_id)
    except UploadNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail)


@router.get("/history/{upload_id}/data", response_model=UploadDataResponse)
def get_upload_data(upload_id: UUID, request: Request, db: Session = Depends(get_db)):
    """Get the stored rows of a successful upload."""
    try:
        upload_data = UploadHistoryService(db).get_upload_data(upload_id)
    except UploadNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail)

    _record_audit(
        db, request, AuditAction.VIEW_DATA,
        upload_id=upload_id, file_name=upload_data.file_name,
        details={"total_rows": upload_data.total_rows},
    )
    return UploadDataResponse(**upload_data.model_dump())


@router.get("/history/{upload_id}/original")
def download_original_file(upload_id: UUID, request: Request, db: Session = Depends(get_db)):
    """Download the file exactly as it was uploaded."""
    history = UploadHistoryService(db)
    try:
        upload = history.get_upload(upload_id)
    except UploadNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail)

    content = history.get_original_file(upload_id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Original file not found")

    _record_audit(
        db, request, AuditAction.DOWNLOAD_ORIGINAL,
        upload_id=upload_id, file_name=upload.file_name,
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": _attachment(upload.file_name)},
    )


@router.get("/history/{upload_id}/export")
def export_upload(upload_id: UUID, request: Request, db: Session = Depends(get_db)):
    """Export the stored rows (after duplicate handling and column mapping) as CSV."""
    try:
        upload_data = UploadHistoryService(db).get_upload_data(upload_id)
    except UploadNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail)

    _record_audit(
        db, request, AuditAction.EXPORT,
        upload_id=upload_id, file_name=upload_data.file_name,
        details={"total_rows": upload_data.total_rows},
    )
    return Response(
        content=export_rows_to_csv(upload_data.data),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": _attachment(export_file_name(upload_data.file_name))},
    )


@router.delete("/history/{upload_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_upload(upload_id: UUID, request: Request, db: Session = Depends(get_db)):
    """Delete an upload record and its original file."""
    history = UploadHistoryService(db)
    try:
        file_name = history.get_upload(upload_id).file_name
    except UploadNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.detail)

    history.delete_upload(upload_id)
    _record_audit(db, request, AuditAction.DELETE, upload_id=upload_id, file_name=file_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _attachment(file_name: str) -> str:
    """
    Content-Disposition value with an ASCII fallback name plus the UTF-8 name (RFC 5987).

    Examples:
        "people.csv" → attachment; filename="people.csv"; filename*=UTF-8''people.csv
        "отчет.csv" → attachment; filename="_____.csv"; filename*=UTF-8''%D0%BE%D1%82...
    """
    clean_name = file_name.replace("\r", "").replace("\n", "")
    ascii_name = "".join(
        char if char.isascii() and char not in '"\\' else "_" for char in clean_name
    )
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(clean_name, safe='')}"
