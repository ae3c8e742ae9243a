"""
Pydantic schemas for audit log endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel


class AuditLogEntryResponse(BaseModel):
    """A single audit log entry."""
    id: UUID
    action: str
    upload_id: Optional[UUID] = None
    user_id: Optional[str] = None
    file_name: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    status: str
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """A page of audit log entries."""
    logs: List[AuditLogEntryResponse]
    total: int
    page: int
    limit: int
    total_pages: int
