"""normalization_events

Revision ID: 2b3c4d5e6f70
Revises: 1a2b3c4d5e6f
Create Date: 2026-02-03

Adds the normalization_events table behind GET /ingredients/stats.
"""
from alembic import op
import sqlalchemy as sa

revision = '2b3c4d5e6f70'
down_revision = '1a2b3c4d5e6f'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'normalization_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pattern', sa.String(100), nullable=False),
        sa.Column('method', sa.String(20), nullable=False),
        sa.Column('match_count', sa.Integer(), nullable=False),
        sa.Column('avg_confidence', sa.Float(), nullable=True),
        sa.Column('processing_time_ms', sa.Integer(), nullable=False),
        sa.Column('error_code', sa.String(50), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_normalization_events_user_id'), 'normalization_events', ['user_id'], unique=False)
    op.create_index(op.f('ix_normalization_events_created_at'), 'normalization_events', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_normalization_events_created_at'), table_name='normalization_events')
    op.drop_index(op.f('ix_normalization_events_user_id'), table_name='normalization_events')
    op.drop_table('normalization_events')
