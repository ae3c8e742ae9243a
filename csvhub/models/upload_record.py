"""
Upload record models: one row per ingestion attempt plus its original file.
"""
import uuid

from sqlalchemy import Column, String, DateTime, Integer, BigInteger, Text, JSON, LargeBinary, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship, deferred

from csvhub.core.timeutils import utc_now
from csvhub.db.base import Base


class UploadRecord(Base):
    """
    A single CSV upload and its outcome.

    Created as ``processing`` before parsing starts and moved exactly once to
    ``success`` or ``failed``. The parsed rows live in ``data`` and are only
    loaded on access, so history listings stay cheap.
    """
    __tablename__ = "upload_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_name = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    status = Column(String(20), nullable=False, default="processing")
    uploaded_at = Column(DateTime, nullable=False, default=utc_now)
    completed_at = Column(DateTime, nullable=True)
    total_rows = Column(Integer, nullable=True)
    errors = Column(JSON, nullable=True)
    message = Column(Text, nullable=True)
    data = deferred(Column(JSON, nullable=True))

    original_file = relationship(
        "UploadOriginalFile",
        back_populates="upload",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_upload_records_status_uploaded", "status", "uploaded_at"),
        Index("idx_upload_records_uploaded_at", "uploaded_at"),
    )


class UploadOriginalFile(Base):
    """Raw bytes of an uploaded file, kept apart from the record for downloads."""
    __tablename__ = "upload_original_files"

    upload_id = Column(Uuid(as_uuid=True), ForeignKey("upload_records.id", ondelete="CASCADE"), primary_key=True)
    content = Column(LargeBinary, nullable=False)
    size = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    upload = relationship("UploadRecord", back_populates="original_file")
