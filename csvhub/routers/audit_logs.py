"""
Audit log router: read-only access to recorded actions.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from csvhub.db.session import get_db
from csvhub.schemas.audit_log import AuditLogEntryResponse, AuditLogListResponse
from csvhub.services.audit_log import AuditAction, AuditLogFilters, AuditLogService

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("", response_model=AuditLogListResponse)
def list_audit_logs(
    action: Optional[AuditAction] = Query(None),
    upload_id: Optional[UUID] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """List audit entries, most recent first."""
    filters = AuditLogFilters(
        action=action,
        upload_id=upload_id,
        start_date=start_date,
        end_date=end_date,
    )
    result = AuditLogService(db).get_audit_logs(filters, page=page, limit=limit)

    return AuditLogListResponse(
        logs=[AuditLogEntryResponse.model_validate(entry) for entry in result.logs],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )
