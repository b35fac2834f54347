"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000

Creates the marketplace schema:
- users, email_verifications, password_resets
- athletes, games
- offers
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(with_updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())]
    if with_updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()))
    return columns


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email_verified_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    for table in ('email_verifications', 'password_resets'):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('token', sa.String(64), nullable=False, unique=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
            *_timestamps(with_updated=False),
        )
    op.create_index('idx_email_verifications_user', 'email_verifications', ['user_id'])
    op.create_index('idx_password_resets_user', 'password_resets', ['user_id'])

    op.create_table(
        'athletes',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('team', sa.String(), nullable=False),
        sa.Column('league', sa.String(20), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('external_id', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_athletes_name', 'athletes', ['name'])
    op.create_index('idx_athletes_team', 'athletes', ['team'])

    op.create_table(
        'games',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('athlete_id', sa.Integer(), sa.ForeignKey('athletes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('opponent', sa.String(), nullable=False),
        sa.Column('venue', sa.String(), nullable=True),
        sa.Column('source', sa.String(50), nullable=True),
        sa.Column('external_id', sa.String(), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint('athlete_id', 'date', 'opponent', name='uq_games_athlete_date_opponent'),
    )
    op.create_index('idx_games_athlete_date', 'games', ['athlete_id', 'date'])

    op.create_table(
        'offers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('athlete_id', sa.Integer(), sa.ForeignKey('athletes.id'), nullable=False),
        sa.Column('game_id', sa.Integer(), sa.ForeignKey('games.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('customer_email', sa.String(), nullable=False),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('exp_desc', sa.Text(), nullable=True),
        sa.Column('exp_type', sa.String(), nullable=True),
        sa.Column('game_desc', sa.String(), nullable=True),
        sa.Column('offered', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('payment_last4', sa.String(4), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        *_timestamps(),
    )
    op.create_index('idx_offers_user', 'offers', ['user_id'])
    op.create_index('idx_offers_athlete', 'offers', ['athlete_id'])
    op.create_index('idx_offers_status', 'offers', ['status'])


def downgrade() -> None:
    op.drop_table('offers')
    op.drop_table('games')
    op.drop_table('athletes')
    op.drop_table('password_resets')
    op.drop_table('email_verifications')
    op.drop_table('users')
