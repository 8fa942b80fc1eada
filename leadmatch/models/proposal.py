"""
Proposal model — one provider's response to one lead.

Unique per (lead_id, provider_id). contact_details stays NULL until the lead
owner accepts; rejected proposals are kept for history.
"""
from sqlalchemy import Column, Integer, Float, Text, DateTime, ForeignKey, UniqueConstraint, CheckConstraint

from leadmatch.config import PROPOSAL_PENDING, PROPOSAL_STATUSES
from leadmatch.database import Base, utcnow


class Proposal(Base):
    __tablename__ = 'proposals'

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey('leads.id'), nullable=False, index=True)
    provider_id = Column(Integer, nullable=False, index=True)
    proposal_text = Column(Text, nullable=False)
    price = Column(Float, nullable=True)
    status = Column(Text, nullable=False, default=PROPOSAL_PENDING)
    contact_details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    decided_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('lead_id', 'provider_id', name='uq_proposal_lead_provider'),
        CheckConstraint(status.in_(PROPOSAL_STATUSES), name='ck_proposals_status'),
    )

    def __repr__(self):
        return f'<Proposal {self.id} lead={self.lead_id} provider={self.provider_id} {self.status}>'
