"""
Audit log service for recording and querying user actions.
"""
import logging
import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.orm import Session

from csvhub.core.timeutils import to_naive_utc
from csvhub.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""
    UPLOAD = "upload"
    PREVIEW = "preview"
    VIEW_DATA = "view_data"
    EXPORT = "export"
    DOWNLOAD_ORIGINAL = "download_original"
    DELETE = "delete"
    BULK_DELETE = "bulk_delete"


class AuditLogFilters(BaseModel):
    action: Optional[AuditAction] = None
    upload_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class PaginatedAuditLogs(BaseModel):
    logs: List[AuditLog]
    total: int
    page: int
    limit: int
    total_pages: int

    class Config:
        arbitrary_types_allowed = True


class AuditLogService:
    """Writes audit entries and reads them back newest first. Entries are never updated."""

    def __init__(self, db: Session):
        self.db = db

    def log_action(
        self,
        action: AuditAction,
        upload_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
        file_name: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status: str = "success",
        error_message: Optional[str] = None,
    ) -> AuditLog:
        """Append an audit entry and commit it."""
        entry = AuditLog(
            action=AuditAction(action).value,
            upload_id=upload_id,
            user_id=user_id,
            file_name=file_name,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details,
            status=status,
            error_message=error_message,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)

        logger.debug(f"Audit {entry.action} ({status}) upload={upload_id}")
        return entry

    def get_audit_logs(
        self,
        filters: Optional[AuditLogFilters] = None,
        page: int = 1,
        limit: int = 50,
    ) -> PaginatedAuditLogs:
        """Filtered audit entries, most recent first."""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be >= 1")

        filters = filters or AuditLogFilters()
        query = self.db.query(AuditLog)

        if filters.action is not None:
            query = query.filter(AuditLog.action == AuditAction(filters.action).value)
        if filters.upload_id is not None:
            query = query.filter(AuditLog.upload_id == filters.upload_id)
        if filters.start_date is not None:
            query = query.filter(AuditLog.created_at >= to_naive_utc(filters.start_date))
        if filters.end_date is not None:
            query = query.filter(AuditLog.created_at <= to_naive_utc(filters.end_date))

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return PaginatedAuditLogs(
            logs=logs,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )
