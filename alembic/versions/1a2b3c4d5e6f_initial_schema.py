"""initial_schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-01-06

Creates:
- users and sessions for local auth
- canonical ingredients (with aliases) and symptoms
- logs with their ingredient and symptom junction tables

Note: After running this migration, load reference data with:
    python -m app.cli seed-reference-data
"""
from alembic import op
import sqlalchemy as sa

revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sessions_token'), 'sessions', ['token'], unique=True)

    op.create_table(
        'ingredients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('normalized_name', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index(op.f('ix_ingredients_normalized_name'), 'ingredients', ['normalized_name'], unique=True)

    op.create_table(
        'ingredient_aliases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('alias', sa.String(100), nullable=False),
        sa.Column('normalized_alias', sa.String(100), nullable=False),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ingredient_aliases_ingredient_id'), 'ingredient_aliases', ['ingredient_id'], unique=False)
    op.create_index(op.f('ix_ingredient_aliases_normalized_alias'), 'ingredient_aliases', ['normalized_alias'], unique=True)

    op.create_table(
        'symptoms',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('log_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_logs_user_id_log_date', 'logs', ['user_id', 'log_date'], unique=False)

    op.create_table(
        'log_ingredients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('log_id', sa.Uuid(), nullable=False),
        sa.Column('ingredient_id', sa.Integer(), nullable=False),
        sa.Column('raw_text', sa.String(100), nullable=True),
        sa.Column('match_confidence', sa.Numeric(3, 2), nullable=True),
        sa.ForeignKeyConstraint(['log_id'], ['logs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ingredient_id'], ['ingredients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('log_id', 'ingredient_id', name='uq_log_ingredients_log_ingredient'),
    )
    op.create_index('idx_log_ingredients_ingredient_id', 'log_ingredients', ['ingredient_id'], unique=False)

    op.create_table(
        'log_symptoms',
        sa.Column('log_id', sa.Uuid(), nullable=False),
        sa.Column('symptom_id', sa.Integer(), nullable=False),
        sa.Column('severity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['log_id'], ['logs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['symptom_id'], ['symptoms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('log_id', 'symptom_id'),
        sa.CheckConstraint('severity >= 1 AND severity <= 5', name='ck_log_symptoms_severity_range'),
    )


def downgrade() -> None:
    op.drop_table('log_symptoms')
    op.drop_index('idx_log_ingredients_ingredient_id', table_name='log_ingredients')
    op.drop_table('log_ingredients')
    op.drop_index('idx_logs_user_id_log_date', table_name='logs')
    op.drop_table('logs')
    op.drop_table('symptoms')
    op.drop_index(op.f('ix_ingredient_aliases_normalized_alias'), table_name='ingredient_aliases')
    op.drop_index(op.f('ix_ingredient_aliases_ingredient_id'), table_name='ingredient_aliases')
    op.drop_table('ingredient_aliases')
    op.drop_index(op.f('ix_ingredients_normalized_name'), table_name='ingredients')
    op.drop_table('ingredients')
    op.drop_index(op.f('ix_sessions_token'), table_name='sessions')
    op.drop_table('sessions')
    op.drop_table('users')
