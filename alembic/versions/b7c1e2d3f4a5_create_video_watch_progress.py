"""create_users_and_video_watch_progress

Revision ID: b7c1e2d3f4a5
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b7c1e2d3f4a5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users and video_watch_progress tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(150), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('is_admin', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'video_watch_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('video_id', sa.String(255), nullable=False),
        sa.Column('session_id', sa.String(255), nullable=False),
        sa.Column('session_name', sa.String(255), nullable=True),
        sa.Column('percent', sa.Integer(), server_default='0', nullable=False),
        sa.Column('current_duration', sa.String(8), server_default='00:00:00', nullable=False),
        sa.Column('full_duration', sa.String(8), server_default='00:00:00', nullable=False),
        sa.Column('assessment_taken', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('status', sa.SmallInteger(), server_default='0', nullable=False),
        sa.Column('enrolment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_watched', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'video_id', 'session_id', name='uq_watch_user_video_session'),
        sa.CheckConstraint('percent >= 0 AND percent <= 100', name='ck_watch_percent_range'),
    )
    op.create_index('ix_video_watch_progress_id', 'video_watch_progress', ['id'])
    op.create_index('ix_video_watch_progress_user_id', 'video_watch_progress', ['user_id'])
    op.create_index('ix_video_watch_progress_video_id', 'video_watch_progress', ['video_id'])
    op.create_index('ix_video_watch_progress_session_id', 'video_watch_progress', ['session_id'])
    op.create_index('ix_video_watch_progress_status', 'video_watch_progress', ['status'])
    op.create_index('ix_video_watch_progress_last_watched', 'video_watch_progress', ['last_watched'])


def downgrade() -> None:
    """Drop video_watch_progress and users tables."""
    op.drop_index('ix_video_watch_progress_last_watched', table_name='video_watch_progress')
    op.drop_index('ix_video_watch_progress_status', table_name='video_watch_progress')
    op.drop_index('ix_video_watch_progress_session_id', table_name='video_watch_progress')
    op.drop_index('ix_video_watch_progress_video_id', table_name='video_watch_progress')
    op.drop_index('ix_video_watch_progress_user_id', table_name='video_watch_progress')
    op.drop_index('ix_video_watch_progress_id', table_name='video_watch_progress')
    op.drop_table('video_watch_progress')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
