"""
Database engine + session factory.

Always initializes — defaults to SQLite for local dev, Postgres in production.
get_session() always returns a real session. Every connection is bounded by
REPOSITORY_TIMEOUT_SECONDS so a stalled database surfaces as an error instead
of a hung request.
"""
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from leadmatch.config import DATABASE_URL, REPOSITORY_TIMEOUT_SECONDS


class Base(DeclarativeBase):
    pass


def utcnow():
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


# Railway injects postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

# SQLite needs different engine kwargs than Postgres
if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={
        'check_same_thread': False,
        'timeout': REPOSITORY_TIMEOUT_SECONDS,
    })
else:
    engine = create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=REPOSITORY_TIMEOUT_SECONDS,
        connect_args={
            'connect_timeout': max(1, int(REPOSITORY_TIMEOUT_SECONDS)),
            'options': f'-c statement_timeout={int(REPOSITORY_TIMEOUT_SECONDS * 1000)}',
        },
    )

# Records are handed back to the route layer after commit
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def get_session():
    """Return a new DB session."""
    return SessionLocal()
