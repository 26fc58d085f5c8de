"""add import audit log table

Revision ID: 002_import_logs
Revises: 001_hierarchy_schema
Create Date: 2025-10-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002_import_logs'
down_revision = '001_hierarchy_schema'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create the import_logs table.

    One row per import attempt, opened as 'processing' and closed once
    with final counts and serialized row errors.
    """
    op.create_table(
        'import_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False, comment='Tenant the import ran for'),
        sa.Column('user_id', sa.Integer(), nullable=True, comment='Uploader profile'),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_type', sa.String(length=10), nullable=False),
        sa.Column('import_type', sa.String(length=50), server_default='hierarchy', nullable=False, comment='Kind of import, always hierarchy for now'),
        sa.Column('status', sa.String(length=20), server_default='processing', nullable=False),
        sa.Column('total_records', sa.Integer(), server_default='0', nullable=False),
        sa.Column('successful_records', sa.Integer(), server_default='0', nullable=False),
        sa.Column('failed_records', sa.Integer(), server_default='0', nullable=False),
        sa.Column('error_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment='Serialized per-row errors'),
        sa.Column('started_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("status IN ('processing', 'completed', 'failed')", name='import_logs_status_check'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        comment='Audit trail of hierarchy imports'
    )

    op.create_index('idx_import_logs_company_created', 'import_logs', ['company_id', 'created_at'])
    op.create_index('idx_import_logs_status', 'import_logs', ['status'])


def downgrade() -> None:
    """
    Remove the import_logs table.
    """
    op.drop_index('idx_import_logs_status', table_name='import_logs')
    op.drop_index('idx_import_logs_company_created', table_name='import_logs')
    op.drop_table('import_logs')
