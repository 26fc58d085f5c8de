"""create tenant, profile and hierarchy tables

Revision ID: 001_hierarchy_schema
Revises:
Create Date: 2025-10-15 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_hierarchy_schema'
down_revision = None
branch_labels = None
depends_on = None

STATUS_CHECK = "status IN ('not_started', 'in_progress', 'completed', 'paused')"
PROGRESS_CHECK = 'progress >= 0 AND progress <= 100'


def _hierarchy_columns():
    """Columns shared by objectives, initiatives and activities."""
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='not_started', nullable=False),
        sa.Column('progress', sa.Integer(), server_default='0', nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def _hierarchy_constraints(table: str):
    return [
        sa.CheckConstraint(STATUS_CHECK, name=f'{table}_status_check'),
        sa.CheckConstraint(PROGRESS_CHECK, name=f'{table}_progress_check'),
        sa.CheckConstraint('start_date < end_date', name=f'{table}_dates_check'),
        sa.ForeignKeyConstraint(['owner_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    ]


def upgrade() -> None:
    """
    Create the tenant and hierarchy tables.

    Tables created:
    - companies: tenants
    - profiles: users inside a tenant
    - objectives, initiatives, activities: the three hierarchy levels
    """
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('settings', postgresql.JSONB(astext_type=sa.Text()), server_default='{}', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
        comment='Tenant organizations'
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Lower-cased login email'),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), server_default='employee', nullable=False),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("role IN ('corporate', 'manager', 'employee')", name='profiles_role_check'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        comment='User profiles scoped to a company'
    )
    op.create_index('idx_profiles_company_email', 'profiles', ['company_id', 'email'])

    op.create_table(
        'objectives',
        *_hierarchy_columns(),
        *_hierarchy_constraints('objectives'),
        comment='Strategic objectives'
    )
    op.create_index('idx_objectives_company_title', 'objectives', ['company_id', 'title'])

    op.create_table(
        'initiatives',
        *_hierarchy_columns(),
        sa.Column('objective_id', sa.Integer(), nullable=False),
        *_hierarchy_constraints('initiatives'),
        sa.ForeignKeyConstraint(['objective_id'], ['objectives.id'], ondelete='CASCADE'),
        comment='Initiatives under an objective'
    )
    op.create_index('idx_initiatives_company_title', 'initiatives', ['company_id', 'title'])
    op.create_index('idx_initiatives_objective', 'initiatives', ['objective_id'])

    op.create_table(
        'activities',
        *_hierarchy_columns(),
        sa.Column('initiative_id', sa.Integer(), nullable=False),
        *_hierarchy_constraints('activities'),
        sa.ForeignKeyConstraint(['initiative_id'], ['initiatives.id'], ondelete='CASCADE'),
        comment='Activities under an initiative'
    )
    op.create_index('idx_activities_company_title', 'activities', ['company_id', 'title'])
    op.create_index('idx_activities_initiative', 'activities', ['initiative_id'])


def downgrade() -> None:
    """
    Drop the hierarchy and tenant tables.
    """
    op.drop_index('idx_activities_initiative', table_name='activities')
    op.drop_index('idx_activities_company_title', table_name='activities')
    op.drop_table('activities')

    op.drop_index('idx_initiatives_objective', table_name='initiatives')
    op.drop_index('idx_initiatives_company_title', table_name='initiatives')
    op.drop_table('initiatives')

    op.drop_index('idx_objectives_company_title', table_name='objectives')
    op.drop_table('objectives')

    op.drop_index('idx_profiles_company_email', table_name='profiles')
    op.drop_table('profiles')
    op.drop_table('companies')
