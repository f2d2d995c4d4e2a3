"""add daily check-in tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'daily_check_in',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('energy_level', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('energy_level >= 1 AND energy_level <= 10', name='ck_daily_check_in_energy'),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_daily_check_in_user_date', 'daily_check_in', ['user_id', 'date'])

    op.create_table(
        'body_part_check',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('check_in_id', sa.Uuid(), nullable=False),
        sa.Column('body_part', sa.Text(), nullable=False),
        sa.Column('soreness_level', sa.Integer(), nullable=False),
        sa.CheckConstraint('soreness_level >= 1 AND soreness_level <= 10', name='ck_body_part_check_soreness'),
        sa.ForeignKeyConstraint(['check_in_id'], ['daily_check_in.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_body_part_check_check_in_id', 'body_part_check', ['check_in_id'])


def downgrade() -> None:
    op.drop_index('ix_body_part_check_check_in_id', table_name='body_part_check')
    op.drop_table('body_part_check')
    op.drop_index('ix_daily_check_in_user_date', table_name='daily_check_in')
    op.drop_table('daily_check_in')
