"""
Upload history service: lifecycle and retrieval of upload records.
"""
import logging
import math
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session, undefer

from csvhub.core.exceptions import UploadNotFoundError
from csvhub.core.timeutils import to_naive_utc, utc_now
from csvhub.models.upload_record import UploadOriginalFile, UploadRecord
from csvhub.schemas.upload import UploadHistoryFilters, UploadStatus
from csvhub.services.csv_parser import Row

logger = logging.getLogger(__name__)

# Listing order: working data first, failures last
STATUS_PRIORITY: Dict[str, int] = {
    UploadStatus.SUCCESS.value: 0,
    UploadStatus.PROCESSING.value: 1,
    UploadStatus.FAILED.value: 2,
}
UNKNOWN_STATUS_PRIORITY = 3


class PaginatedUploads(BaseModel):
    """One page of filtered upload records."""
    records: List[UploadRecord]
    total: int
    page: int
    limit: int
    total_pages: int

    class Config:
        arbitrary_types_allowed = True


class UploadData(BaseModel):
    """Row data stored for an upload."""
    upload_id: UUID
    file_name: str
    total_rows: int
    data: List[Row]


class UploadHistoryService:
    """
    Persists upload records and answers history queries.

    Lifecycle:
    - ``create_upload_record`` commits a ``processing`` record before parsing
      starts, so slow or crashed imports still show up in history
    - ``update_upload_status`` moves it once to ``success`` or ``failed``

    Every write commits immediately; there is no cross-call transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_upload_record(self, file_name: str, file_size: int) -> UploadRecord:
        """Insert a new record in ``processing`` state."""
        record = UploadRecord(
            file_name=file_name,
            file_size=file_size,
            status=UploadStatus.PROCESSING.value,
            uploaded_at=utc_now(),
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Created upload record {record.id} for {file_name} ({file_size} bytes)")
        return record

    def update_upload_status(
        self,
        upload_id: UUID,
        status: UploadStatus,
        total_rows: Optional[int] = None,
        errors: Optional[List[str]] = None,
        message: Optional[str] = None,
        data: Optional[List[Row]] = None,
    ) -> Optional[UploadRecord]:
        """
        Move a record to its terminal status.

        Args:
            upload_id: Upload record ID
            status: SUCCESS or FAILED
            total_rows: Final row count (defaults to len(data) when data is given)
            errors: Row-level error messages
            message: Human-readable summary
            data: Final rows, only allowed with SUCCESS

        Returns:
            The updated record, or None if no record has that ID

        Raises:
            ValueError: status is PROCESSING, data given for a non-success status,
                or total_rows disagrees with data
        """
        status = UploadStatus(status)
        if status == UploadStatus.PROCESSING:
            raise ValueError("An upload can only be moved to a terminal status")
        if data is not None and status != UploadStatus.SUCCESS:
            raise ValueError("Row data can only be stored for successful uploads")
        if data is not None:
            if total_rows is None:
                total_rows = len(data)
            elif total_rows != len(data):
                raise ValueError(f"total_rows ({total_rows}) does not match row data ({len(data)})")

        record = self.db.get(UploadRecord, upload_id)
        if record is None:
            logger.warning(f"Cannot update status of unknown upload {upload_id}")
            return None

        record.status = status.value
        record.completed_at = utc_now()
        if total_rows is not None:
            record.total_rows = total_rows
        if errors:
            record.errors = list(errors)
        if message:
            record.message = message
        if data is not None:
            record.data = data

        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Upload {upload_id} finished with status {status.value} ({record.total_rows or 0} rows)")
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _ordered(self, query: Query) -> Query:
        """Status priority, then newest first, then ID for a stable order."""
        priority = case(STATUS_PRIORITY, value=UploadRecord.status, else_=UNKNOWN_STATUS_PRIORITY)
        return query.order_by(priority, UploadRecord.uploaded_at.desc(), UploadRecord.id)

    def get_all_uploads(self) -> List[UploadRecord]:
        """Every upload record, successes first and failures last."""
        return self._ordered(self.db.query(UploadRecord)).all()

    def get_upload(self, upload_id: UUID) -> UploadRecord:
        """Get a record by ID or raise UploadNotFoundError."""
        record = self.db.get(UploadRecord, upload_id)
        if record is None:
            raise UploadNotFoundError(upload_id)
        return record

    def apply_filters(self, query: Query, filters: UploadHistoryFilters) -> Query:
        """AND together every filter that is set."""
        if filters.status is not None:
            query = query.filter(UploadRecord.status == UploadStatus(filters.status).value)
        if filters.search:
            query = query.filter(
                func.lower(UploadRecord.file_name).contains(filters.search.lower(), autoescape=True)
            )
        if filters.start_date is not None:
            query = query.filter(UploadRecord.uploaded_at >= to_naive_utc(filters.start_date))
        if filters.end_date is not None:
            query = query.filter(UploadRecord.uploaded_at <= to_naive_utc(filters.end_date))
        if filters.min_size is not None:
            query = query.filter(UploadRecord.file_size >= filters.min_size)
        if filters.max_size is not None:
            query = query.filter(UploadRecord.file_size <= filters.max_size)
        return query

    def get_uploads_with_filters(
        self,
        filters: Optional[UploadHistoryFilters] = None,
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedUploads:
        """
        Filtered, ordered and paginated upload history.

        Args:
            filters: Status, file name search, upload date range and size range
            page: 1-based page number
            limit: Records per page

        Returns:
            PaginatedUploads where ``total`` counts every matching record
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        query = self.apply_filters(self.db.query(UploadRecord), filters or UploadHistoryFilters())
        total = query.order_by(None).count()
        records = self._ordered(query).offset((page - 1) * limit).limit(limit).all()

        return PaginatedUploads(
            records=records,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def get_status_counts(self) -> Dict[str, int]:
        """Number of records per status, zero for statuses with no records."""
        counts = {status.value: 0 for status in UploadStatus}
        rows = (
            self.db.query(UploadRecord.status, func.count(UploadRecord.id))
            .group_by(UploadRecord.status)
            .all()
        )
        for status, count in rows:
            counts[status] = count
        return counts

    def get_upload_data(self, upload_id: UUID) -> UploadData:
        """Stored rows of an upload; UploadNotFoundError if missing or without data."""
        record = (
            self.db.query(UploadRecord)
            .options(undefer(UploadRecord.data))
            .filter(UploadRecord.id == upload_id)
            .first()
        )
        if record is None:
            raise UploadNotFoundError(upload_id)
        if record.data is None:
            raise UploadNotFoundError(upload_id, detail="No data stored for upload")

        return UploadData(
            upload_id=record.id,
            file_name=record.file_name,
            total_rows=record.total_rows if record.total_rows is not None else len(record.data),
            data=record.data,
        )

    # ------------------------------------------------------------------
    # Original files
    # ------------------------------------------------------------------

    def store_original_file(self, upload_id: UUID, content: bytes) -> None:
        """Save (or replace) the raw bytes of an upload."""
        original = self.db.get(UploadOriginalFile, upload_id)
        if original is None:
            self.get_upload(upload_id)
            original = UploadOriginalFile(upload_id=upload_id, content=content, size=len(content))
            self.db.add(original)
        else:
            original.content = content
            original.size = len(content)
        self.db.commit()

    def get_original_file(self, upload_id: UUID) -> Optional[bytes]:
        """Raw bytes of an upload, or None if none were stored."""
        content = (
            self.db.query(UploadOriginalFile.content)
            .filter(UploadOriginalFile.upload_id == upload_id)
            .scalar()
        )
        return content

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_uploads(self, upload_ids: Sequence[UUID]) -> int:
        """
        Delete records and their original files.

        Returns:
            Number of records actually removed (unknown IDs are ignored)
        """
        ids = list(set(upload_ids))
        if not ids:
            return 0

        self.db.query(UploadOriginalFile).filter(
            UploadOriginalFile.upload_id.in_(ids)
        ).delete(synchronize_session=False)
        deleted = self.db.query(UploadRecord).filter(
            UploadRecord.id.in_(ids)
        ).delete(synchronize_session=False)
        self.db.commit()

        logger.info(f"Deleted {deleted} of {len(ids)} requested uploads")
        return deleted

    def delete_upload(self, upload_id: UUID) -> bool:
        """Delete one record; False if it did not exist."""
        return self.delete_uploads([upload_id]) == 1
