"""
ProviderProfile model — a provider's stored matching preferences.

`preferences` is the raw JSON the provider saved; the matching code parses it
into a ProviderPreferences struct on read.
"""
from sqlalchemy import Column, Integer, DateTime, JSON

from leadmatch.database import Base, utcnow


class ProviderProfile(Base):
    __tablename__ = 'provider_profiles'

    provider_id = Column(Integer, primary_key=True, autoincrement=False)
    preferences = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
