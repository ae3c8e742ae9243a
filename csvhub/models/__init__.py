"""
SQLAlchemy models for CSV Hub.
"""
# Uploads
from csvhub.models.upload_record import UploadRecord, UploadOriginalFile

# Audit
from csvhub.models.audit_log import AuditLog


__all__ = [
    # Uploads
    "UploadRecord",
    "UploadOriginalFile",
    # Audit
    "AuditLog",
]
