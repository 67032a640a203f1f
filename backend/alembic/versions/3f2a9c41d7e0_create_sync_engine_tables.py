"""create_sync_engine_tables

Revision ID: 3f2a9c41d7e0
Revises:
Create Date: 2026-10-19 10:12:44.518203

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3f2a9c41d7e0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'datasource',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('connection_config', postgresql.JSONB(), nullable=False),
        sa.Column('query_template', sa.Text(), nullable=False),
        sa.Column('field_mapping', postgresql.JSONB(), nullable=False),
        sa.Column('id_field', sa.String(length=255), nullable=False),
        sa.Column('embedding_fields', postgresql.JSONB(), nullable=False),
        sa.Column('collection', sa.String(length=255), nullable=False),
        sa.Column('vector_store_url', sa.String(length=512), nullable=True),
        sa.Column('batch_size', sa.Integer(), nullable=True),
        sa.Column('batch_delay_ms', sa.Integer(), nullable=True),
        sa.Column('sync_schedule', sa.String(length=100), nullable=True),
        sa.Column('watermark_column', sa.String(length=255), nullable=False),
        sa.Column('webhook_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('webhook_secret', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='active'),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'sync_job',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('datasource_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('total_records', sa.Integer(), nullable=True),
        sa.Column('processed_records', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('successful_records', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('failed_records', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('job_metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['datasource_id'], ['datasource.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sync_job_datasource_id', 'sync_job', ['datasource_id'])
    op.create_index('idx_sync_job_status_modified_at', 'sync_job', ['status', 'modified_at'])
    op.create_index('idx_sync_job_status_started_at', 'sync_job', ['status', 'started_at'])
    op.create_index('idx_sync_job_status_completed_at', 'sync_job', ['status', 'completed_at'])

    op.create_table(
        'sync_error',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('sync_job_id', sa.UUID(), nullable=False),
        sa.Column('record_identifier', sa.String(length=255), nullable=True),
        sa.Column('error_type', sa.String(length=100), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('record_data', postgresql.JSONB(), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['sync_job_id'], ['sync_job.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sync_error_sync_job_id', 'sync_error', ['sync_job_id'])


def downgrade():
    op.drop_index('ix_sync_error_sync_job_id', table_name='sync_error')
    op.drop_table('sync_error')
    op.drop_index('idx_sync_job_status_completed_at', table_name='sync_job')
    op.drop_index('idx_sync_job_status_started_at', table_name='sync_job')
    op.drop_index('idx_sync_job_status_modified_at', table_name='sync_job')
    op.drop_index('ix_sync_job_datasource_id', table_name='sync_job')
    op.drop_table('sync_job')
    op.drop_table('datasource')
