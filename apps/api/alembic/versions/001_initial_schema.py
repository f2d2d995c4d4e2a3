"""initial schema: users, workout log, recovery feedback, progression

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'app_user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'body_part',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'exercise',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_exercise_name', 'exercise', ['name'])

    op.create_table(
        'exercise_body_part',
        sa.Column('exercise_id', sa.Uuid(), nullable=False),
        sa.Column('body_part_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['body_part_id'], ['body_part.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('exercise_id', 'body_part_id'),
    )

    op.create_table(
        'workout_session',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='in_progress'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_s', sa.Integer(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("status IN ('in_progress', 'completed')", name='ck_workout_session_status'),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workout_session_user_id', 'workout_session', ['user_id'])
    op.create_index('ix_workout_session_user_start', 'workout_session', ['user_id', 'start_time'])

    op.create_table(
        'workout_session_exercise',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('exercise_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('target_sets', sa.Integer(), nullable=True),
        sa.Column('target_reps', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['workout_session.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workout_session_exercise_session_id', 'workout_session_exercise', ['session_id'])

    op.create_table(
        'workout_set',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_exercise_id', sa.Uuid(), nullable=False),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('reps', sa.Integer(), nullable=True),
        sa.Column('weight_kg', sa.Float(), nullable=True),
        sa.Column('duration_s', sa.Integer(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['session_exercise_id'], ['workout_session_exercise.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workout_set_session_exercise_id', 'workout_set', ['session_exercise_id'])

    op.create_table(
        'recovery_feedback',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('body_part', sa.Text(), nullable=False),
        sa.Column('feeling', sa.String(length=16), nullable=False),
        sa.Column('intensity', sa.Integer(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint("feeling IN ('GOOD', 'TIGHT', 'SORE', 'INJURED')", name='ck_recovery_feedback_feeling'),
        sa.CheckConstraint(
            'intensity IS NULL OR (intensity >= 1 AND intensity <= 5)', name='ck_recovery_feedback_intensity'
        ),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recovery_feedback_user_created', 'recovery_feedback', ['user_id', 'created_at'])

    op.create_table(
        'progression_node_progress',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('node_id', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='LOCKED'),
        sa.Column('completion_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('xp_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('completion_count >= 0', name='ck_progression_node_progress_count'),
        sa.CheckConstraint(
            "status IN ('LOCKED', 'AVAILABLE', 'COMPLETED')", name='ck_progression_node_progress_status'
        ),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'node_id', name='uq_progression_node_progress_user_node'),
    )

    op.create_table(
        'progression_session_credit',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('node_id', sa.Text(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('credited_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['session_id'], ['workout_session.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'node_id', 'session_id', name='uq_progression_session_credit'),
    )

    op.create_table(
        'progression_profile',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('alias', sa.Text(), nullable=False),
        sa.Column('total_xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('crowns', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index('ix_progression_profile_total_xp', 'progression_profile', ['total_xp'])


def downgrade() -> None:
    op.drop_index('ix_progression_profile_total_xp', table_name='progression_profile')
    op.drop_table('progression_profile')
    op.drop_table('progression_session_credit')
    op.drop_table('progression_node_progress')
    op.drop_index('ix_recovery_feedback_user_created', table_name='recovery_feedback')
    op.drop_table('recovery_feedback')
    op.drop_index('ix_workout_set_session_exercise_id', table_name='workout_set')
    op.drop_table('workout_set')
    op.drop_index('ix_workout_session_exercise_session_id', table_name='workout_session_exercise')
    op.drop_table('workout_session_exercise')
    op.drop_index('ix_workout_session_user_start', table_name='workout_session')
    op.drop_index('ix_workout_session_user_id', table_name='workout_session')
    op.drop_table('workout_session')
    op.drop_table('exercise_body_part')
    op.drop_index('ix_exercise_name', table_name='exercise')
    op.drop_table('exercise')
    op.drop_table('body_part')
    op.drop_table('app_user')
