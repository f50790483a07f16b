"""Create users, projects, pull_requests and scoring_buckets.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('github_username', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='contributor'),
        sa.Column('total_prs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('merged_prs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weekly_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weekly_prs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('weekly_stats_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('github_username'),
    )
    op.create_index('idx_users_github_username', 'users', ['github_username'])
    op.create_index('idx_users_total_points', 'users', ['total_points'])

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('github_repo_url', sa.String(512), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('github_repo_url'),
    )

    op.create_table(
        'pull_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('external_id', sa.BigInteger(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(512), nullable=False),
        sa.Column('html_url', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='open'),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_validated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('validated_by_id', sa.Integer(), nullable=True),
        sa.Column('validated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('github_created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('github_merged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('github_closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('additions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deletions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('github_data', postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['validated_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id'),
    )
    op.create_index('idx_pull_requests_user', 'pull_requests', ['user_id'])
    op.create_index('idx_pull_requests_project', 'pull_requests', ['project_id'])
    op.create_index('idx_pull_requests_status', 'pull_requests', ['status'])
    op.create_index('idx_pull_requests_validated', 'pull_requests', ['is_validated', 'validated_at'])
    op.create_index('idx_pull_requests_created', 'pull_requests', ['github_created_at'])

    op.create_table(
        'scoring_buckets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('min_lines', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('min_lines'),
    )


def downgrade() -> None:
    op.drop_table('scoring_buckets')

    op.drop_index('idx_pull_requests_created', table_name='pull_requests')
    op.drop_index('idx_pull_requests_validated', table_name='pull_requests')
    op.drop_index('idx_pull_requests_status', table_name='pull_requests')
    op.drop_index('idx_pull_requests_project', table_name='pull_requests')
    op.drop_index('idx_pull_requests_user', table_name='pull_requests')
    op.drop_table('pull_requests')

    op.drop_table('projects')

    op.drop_index('idx_users_total_points', table_name='users')
    op.drop_index('idx_users_github_username', table_name='users')
    op.drop_table('users')
