"""
Lead model — a requester's posted service need.

Status only moves forward (see config.LEAD_TRANSITIONS). Leads are never hard
deleted; deleted_at hides them from every read path while their proposals
stay in place.
"""
from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime, Index, CheckConstraint

from leadmatch.config import LEAD_OPEN, LEAD_STATUSES
from leadmatch.database import Base, utcnow


class Lead(Base):
    __tablename__ = 'leads'

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, nullable=False, index=True)  # requester user id
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    subcategory = Column(Text, nullable=True)
    budget = Column(Float, nullable=True)
    location = Column(Text, nullable=True)
    phone_number = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default=LEAD_OPEN)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    archived = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('ix_leads_status_expires_at', 'status', 'expires_at'),
        CheckConstraint(status.in_(LEAD_STATUSES), name='ck_leads_status'),
    )

    def __repr__(self):
        return f'<Lead {self.id} {self.status} {self.category!r}>'
