"""gamification schema: users, user_stats, set members, xp ledger, earned achievements

Revision ID: 001_gamification_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_gamification_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _counter(name: str, comment: str = None) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default='0', nullable=False, comment=comment)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(128), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('gamer_tag', sa.String(50), nullable=True),
        sa.Column('photo_url', sa.String(500), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'user_stats',
        sa.Column('user_id', sa.String(128), nullable=False),
        _counter('total_xp'),
        sa.Column('level', sa.Integer(), server_default='1', nullable=False),
        _counter('games_played'),
        _counter('total_play_time', '总游玩时长（分钟）'),
        _counter('comments_count'),
        _counter('ratings_count'),
        _counter('favorites_count'),
        _counter('shares_count'),
        _counter('early_plays', '9 点前游玩次数'),
        _counter('night_plays', '22 点后游玩次数'),
        _counter('login_streak'),
        _counter('play_streak'),
        sa.Column('last_login_date', sa.Date(), nullable=True),
        sa.Column('last_play_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_user_stats_total_xp', 'user_stats', ['total_xp'])

    op.create_table(
        'user_stats_set_members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False, comment='game/category/platform'),
        sa.Column('value', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user_stats.user_id'], ondelete='CASCADE'),
    )
    op.create_index(
        'ix_user_stats_set_members_unique',
        'user_stats_set_members',
        ['user_id', 'kind', 'value'],
        unique=True,
    )
    op.create_index('ix_user_stats_set_members_user_kind', 'user_stats_set_members', ['user_id', 'kind'])

    op.create_table(
        'xp_transactions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('xp_amount', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('game_id', sa.String(128), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('total_xp', sa.Integer(), nullable=False, comment='入账后的总经验'),
        sa.Column('level', sa.Integer(), nullable=False, comment='入账后的等级'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_xp_transactions_user_id', 'xp_transactions', ['user_id'])
    op.create_index('ix_xp_transactions_user_created', 'xp_transactions', ['user_id', 'created_at'])

    op.create_table(
        'earned_achievements',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('achievement_id', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('rarity', sa.String(20), nullable=False),
        sa.Column('earned_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_earned_achievements_user', 'earned_achievements', ['user_id'])
    op.create_index(
        'ix_earned_achievements_unique',
        'earned_achievements',
        ['user_id', 'achievement_id'],
        unique=True,
    )
    op.create_index('ix_earned_achievements_earned_at', 'earned_achievements', ['earned_at'])


def downgrade() -> None:
    op.drop_index('ix_earned_achievements_earned_at', table_name='earned_achievements')
    op.drop_index('ix_earned_achievements_unique', table_name='earned_achievements')
    op.drop_index('ix_earned_achievements_user', table_name='earned_achievements')
    op.drop_table('earned_achievements')

    op.drop_index('ix_xp_transactions_user_created', table_name='xp_transactions')
    op.drop_index('ix_xp_transactions_user_id', table_name='xp_transactions')
    op.drop_table('xp_transactions')

    op.drop_index('ix_user_stats_set_members_user_kind', table_name='user_stats_set_members')
    op.drop_index('ix_user_stats_set_members_unique', table_name='user_stats_set_members')
    op.drop_table('user_stats_set_members')

    op.drop_index('ix_user_stats_total_xp', table_name='user_stats')
    op.drop_table('user_stats')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
