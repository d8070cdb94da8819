"""Create users, chat messages and code analyses tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('avatar_url', sa.String(2048), nullable=True),
        sa.Column('level', sa.Integer, nullable=False, server_default='1'),
        sa.Column('xp', sa.Integer, nullable=False, server_default='0'),
        sa.Column('completed_exercises', sa.Integer, nullable=False, server_default='0'),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('neighborhood', sa.String(255), nullable=True),
        sa.Column('city', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('level >= 1', name='ck_users_level_positive'),
        sa.CheckConstraint('xp >= 0', name='ck_users_xp_non_negative'),
        sa.CheckConstraint('completed_exercises >= 0', name='ck_users_completed_non_negative'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('is_user', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_chat_messages_user_id', 'chat_messages', ['user_id'])
    op.create_index('idx_chat_user_created', 'chat_messages', ['user_id', 'created_at'])

    op.create_table(
        'code_analyses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.Text, nullable=False),
        sa.Column('language', sa.String(50), nullable=False),
        sa.Column('score', sa.Integer, nullable=False),
        sa.Column('feedback', sa.JSON, nullable=False),
        sa.Column('suggestions', sa.JSON, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('score >= 0 AND score <= 100', name='ck_code_analyses_score_range'),
    )
    op.create_index('ix_code_analyses_user_id', 'code_analyses', ['user_id'])
    op.create_index('ix_code_analyses_language', 'code_analyses', ['language'])
    op.create_index('idx_analysis_user_created', 'code_analyses', ['user_id', 'created_at'])
    op.create_index('idx_analysis_user_language', 'code_analyses', ['user_id', 'language'])


def downgrade() -> None:
    op.drop_table('code_analyses')
    op.drop_table('chat_messages')
    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
