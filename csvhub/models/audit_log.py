"""
Audit log model for tracking user actions on uploads.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Text, JSON, Index, Uuid

from csvhub.core.timeutils import utc_now
from csvhub.db.base import Base


class AuditLog(Base):
    """
    Append-only record of an action performed against the upload store.

    ``upload_id`` carries no foreign key; entries outlive the uploads they
    reference, including the ones they record deleting.
    """
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    action = Column(String(50), nullable=False)  # upload, preview, view_data, export, download_original, delete, bulk_delete
    upload_id = Column(Uuid(as_uuid=True), nullable=True)
    user_id = Column(String(255), nullable=True)
    file_name = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False, default="success")
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_audit_logs_action_created", "action", "created_at"),
        Index("idx_audit_logs_upload", "upload_id"),
    )
