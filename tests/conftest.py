"""Shared test fixtures."""
from datetime import timedelta

import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadmatch.database import Base, utcnow


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import leadmatch.models.lead
    import leadmatch.models.message
    import leadmatch.models.proposal
    import leadmatch.models.provider_profile
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite. Rolls back after each test."""
    Session = sessionmaker(bind=db_engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(db_session):
    """Route all get_session() calls to the test session.

    get_session() looks up SessionLocal at call time, so patching the factory
    covers modules that imported get_session by name. close() is disabled so
    route handlers and the sweep closing their session in `finally` don't
    invalidate the shared test session.
    """
    _real_close = db_session.close
    db_session.close = lambda: None
    with patch('leadmatch.database.SessionLocal', return_value=db_session):
        yield db_session
    db_session.close = _real_close


@pytest.fixture
def app():
    """Flask test app. Logging setup is skipped so caplog keeps its handler."""
    from leadmatch import create_app
    with patch('leadmatch.logging_config.configure_logging'):
        app = create_app()
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def login(client):
    """Put an identity into the session cookie, as the account service would."""
    def _login(user_id, role):
        with client.session_transaction() as sess:
            sess['user_id'] = user_id
            sess['role'] = role
    return _login


@pytest.fixture
def make_lead(db_session):
    """Factory fixture — inserts and commits an open Lead."""
    from leadmatch.models.lead import Lead

    def _make(**overrides):
        now = utcnow()
        defaults = dict(
            owner_id=1,
            title='Company website rebuild',
            description='Need a new marketing site with a blog and contact form.',
            category='web_development',
            subcategory=None,
            budget=5000.0,
            location='London',
            phone_number='+44 20 7946 0000',
            status='open',
            created_at=now,
            expires_at=now + timedelta(days=30),
            archived=False,
        )
        defaults.update(overrides)
        lead = Lead(**defaults)
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


@pytest.fixture
def make_proposal(db_session):
    """Factory fixture — inserts and commits a Proposal (pending by default)."""
    from leadmatch.models.proposal import Proposal

    def _make(lead, provider_id=100, **overrides):
        defaults = dict(
            lead_id=lead.id,
            provider_id=provider_id,
            proposal_text='We can deliver this in three weeks.',
            price=4500.0,
            status='pending',
            contact_details=None,
        )
        defaults.update(overrides)
        proposal = Proposal(**defaults)
        db_session.add(proposal)
        db_session.commit()
        return proposal
    return _make


@pytest.fixture
def full_match_preferences():
    """Provider profile that matches the default make_lead() lead on all four components."""
    from leadmatch.matching.scoring import ProviderPreferences
    return ProviderPreferences.from_dict({
        'preferredCategories': ['web_development'],
        'locationPreference': ['London'],
        'budgetRange': {'min': 1000, 'max': 10000},
        'industries': ['technology'],
    })
