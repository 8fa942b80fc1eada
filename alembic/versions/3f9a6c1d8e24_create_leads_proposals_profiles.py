"""Create leads, proposals and provider_profiles

Revision ID: 3f9a6c1d8e24
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a6c1d8e24'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('leads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('subcategory', sa.Text(), nullable=True),
        sa.Column('budget', sa.Float(), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='open'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('open', 'in_progress', 'closed', 'expired')", name='ck_leads_status'),
    )
    op.create_index('ix_leads_owner_id', 'leads', ['owner_id'])
    # The expiry sweep and the open-lead reads both filter on (status, expires_at)
    op.create_index('ix_leads_status_expires_at', 'leads', ['status', 'expires_at'])

    op.create_table('proposals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=False),
        sa.Column('proposal_text', sa.Text(), nullable=False),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('contact_details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lead_id', 'provider_id', name='uq_proposal_lead_provider'),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'rejected')", name='ck_proposals_status'),
    )
    op.create_index('ix_proposals_lead_id', 'proposals', ['lead_id'])
    op.create_index('ix_proposals_provider_id', 'proposals', ['provider_id'])

    op.create_table('provider_profiles',
        sa.Column('provider_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('provider_id'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('provider_profiles')
    op.drop_index('ix_proposals_provider_id', table_name='proposals')
    op.drop_index('ix_proposals_lead_id', table_name='proposals')
    op.drop_table('proposals')
    op.drop_index('ix_leads_status_expires_at', table_name='leads')
    op.drop_index('ix_leads_owner_id', table_name='leads')
    op.drop_table('leads')
