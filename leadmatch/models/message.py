"""
Message model — one note in a lead's conversation thread.

Messages belong to a lead and run between its owner and the providers who
responded to it. `read` is flipped by the receiver only.
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index

from leadmatch.database import Base, utcnow


class Message(Base):
    __tablename__ = 'messages'

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey('leads.id'), nullable=False)
    sender_id = Column(Integer, nullable=False)
    receiver_id = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_messages_lead_id_created_at', 'lead_id', 'created_at'),
        Index('ix_messages_receiver_unread', 'receiver_id', 'read'),
    )

    def __repr__(self):
        return f'<Message {self.id} lead={self.lead_id} {self.sender_id}→{self.receiver_id}>'
