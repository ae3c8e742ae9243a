"""Initial schema - upload_records, upload_original_files, audit_logs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Upload records; row data stays NULL until the upload succeeds
    op.create_table(
        'upload_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='processing'),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('total_rows', sa.Integer(), nullable=True),
        sa.Column('errors', sa.JSON(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
    )
    op.create_index('idx_upload_records_status_uploaded', 'upload_records', ['status', 'uploaded_at'])
    op.create_index('idx_upload_records_uploaded_at', 'upload_records', ['uploaded_at'])

    # Raw uploaded bytes, one row per upload
    op.create_table(
        'upload_original_files',
        sa.Column('upload_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('upload_records.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('content', sa.LargeBinary(), nullable=False),
        sa.Column('size', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    # Audit log; upload_id has no foreign key so entries survive deletes
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('upload_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('user_id', sa.String(255), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='success'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_audit_logs_action_created', 'audit_logs', ['action', 'created_at'])
    op.create_index('idx_audit_logs_upload', 'audit_logs', ['upload_id'])


def downgrade() -> None:
    op.drop_index('idx_audit_logs_upload', table_name='audit_logs')
    op.drop_index('idx_audit_logs_action_created', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_table('upload_original_files')

    op.drop_index('idx_upload_records_uploaded_at', table_name='upload_records')
    op.drop_index('idx_upload_records_status_uploaded', table_name='upload_records')
    op.drop_table('upload_records')
