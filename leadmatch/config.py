"""
Centralized configuration — env vars, status vocabularies, role names.
"""
import os


def _env_bool(name, default=False):
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# Upper bound on any single round-trip to the persistence layer
REPOSITORY_TIMEOUT_SECONDS = float(os.getenv('REPOSITORY_TIMEOUT_SECONDS', '5'))

# ── Sessions ──────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')

# ── Lead lifecycle ────────────────────────────────────────────────────────────
LEAD_RETENTION_DAYS = int(os.getenv('LEAD_RETENTION_DAYS', '30'))
EXPIRY_SWEEP_INTERVAL_SECONDS = int(os.getenv('EXPIRY_SWEEP_INTERVAL_SECONDS', '3600'))
ACCEPT_ADVANCES_LEAD = _env_bool('ACCEPT_ADVANCES_LEAD', False)

# ── Matching ──────────────────────────────────────────────────────────────────
SCORING_CONFIG_PATH = os.getenv(
    'SCORING_CONFIG_PATH',
    os.path.join(os.path.dirname(__file__), 'matching', 'scoring_config.yaml'),
)

# ── Notifications ────────────────────────────────────────────────────────────
NOTIFY_WEBHOOK_URL = os.getenv('NOTIFY_WEBHOOK_URL')

# ── Roles ─────────────────────────────────────────────────────────────────────
ROLE_REQUESTER = 'requester'
ROLE_PROVIDER = 'provider'

# Account types used by the marketplace front end
ROLE_ALIASES = {
    'requester': ROLE_REQUESTER,
    'free': ROLE_REQUESTER,
    'provider': ROLE_PROVIDER,
    'business': ROLE_PROVIDER,
    'vendor': ROLE_PROVIDER,
}

# ── Lead status values ────────────────────────────────────────────────────────
LEAD_OPEN = 'open'
LEAD_IN_PROGRESS = 'in_progress'
LEAD_CLOSED = 'closed'
LEAD_EXPIRED = 'expired'

LEAD_STATUSES = [LEAD_OPEN, LEAD_IN_PROGRESS, LEAD_CLOSED, LEAD_EXPIRED]

# Forward-only: closed and expired are terminal
LEAD_TRANSITIONS = {
    LEAD_OPEN: {LEAD_IN_PROGRESS, LEAD_CLOSED, LEAD_EXPIRED},
    LEAD_IN_PROGRESS: {LEAD_CLOSED},
    LEAD_CLOSED: set(),
    LEAD_EXPIRED: set(),
}

# ── Proposal status values ────────────────────────────────────────────────────
PROPOSAL_PENDING = 'pending'
PROPOSAL_ACCEPTED = 'accepted'
PROPOSAL_REJECTED = 'rejected'

PROPOSAL_STATUSES = [PROPOSAL_PENDING, PROPOSAL_ACCEPTED, PROPOSAL_REJECTED]
