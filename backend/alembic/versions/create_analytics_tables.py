"""Create users and analytics tables

Revision ID: create_analytics_tables
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_analytics_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.Text(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'analytics',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revenue', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('users', sa.Integer(), nullable=False),
        sa.Column('sessions', sa.Integer(), nullable=False),
        sa.Column('bounce_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('conversion', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('region', sa.String(length=50), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_analytics_timestamp', 'analytics', ['timestamp'])
    op.create_index('ix_analytics_region', 'analytics', ['region'])
    op.create_index('ix_analytics_category', 'analytics', ['category'])
    op.create_index('ix_analytics_source', 'analytics', ['source'])


def downgrade() -> None:
    op.drop_index('ix_analytics_source', table_name='analytics')
    op.drop_index('ix_analytics_category', table_name='analytics')
    op.drop_index('ix_analytics_region', table_name='analytics')
    op.drop_index('ix_analytics_timestamp', table_name='analytics')
    op.drop_table('analytics')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
