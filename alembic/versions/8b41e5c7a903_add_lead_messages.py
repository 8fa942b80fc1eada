"""Add lead message threads

Revision ID: 8b41e5c7a903
Revises: 3f9a6c1d8e24
Create Date: 2026-10-18 14:10:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b41e5c7a903'
down_revision: Union[str, Sequence[str], None] = '3f9a6c1d8e24'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('messages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('receiver_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    # Thread reads are per lead in time order; mark-read filters on the receiver
    op.create_index('ix_messages_lead_id_created_at', 'messages', ['lead_id', 'created_at'])
    op.create_index('ix_messages_receiver_unread', 'messages', ['receiver_id', 'read'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_messages_receiver_unread', table_name='messages')
    op.drop_index('ix_messages_lead_id_created_at', table_name='messages')
    op.drop_table('messages')
