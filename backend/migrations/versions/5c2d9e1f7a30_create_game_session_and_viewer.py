"""create game_session and viewer tables

Revision ID: 5c2d9e1f7a30
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e1f7a30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=6), nullable=False),
            sa.Column('document', sa.JSON(), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.Column('updated_at', sa.Float(), nullable=False),
        )
        op.create_index('ix_game_session_code', 'game_session', ['code'], unique=True)

    if 'viewer' not in existing_tables:
        op.create_table(
            'viewer',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('display_name', sa.String(length=30), nullable=False),
            sa.Column('created_at', sa.Float(), nullable=False),
        )


def downgrade():
    op.drop_table('viewer')
    op.drop_index('ix_game_session_code', table_name='game_session')
    op.drop_table('game_session')
