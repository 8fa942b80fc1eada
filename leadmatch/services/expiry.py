"""
Expiry sweep — retires open leads whose expires_at has passed.

The sweep is one guarded bulk UPDATE (status = 'open' AND expires_at <= now),
committed atomically or not at all. A lead already moved by another sweep or
by its owner no longer matches the guard, so overlapping sweeps and user
actions need no locking and a second immediate run changes nothing.

run_expiry_sweep() is the RQ job. It never raises: a failure is logged and the
leads wait for the next tick. Ticks come from one periodic rq-scheduler entry
(fixed job id), so the schedule does not depend on any single run finishing.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from leadmatch.config import EXPIRY_SWEEP_INTERVAL_SECONDS
from leadmatch.database import get_session, utcnow
from leadmatch.services.repository import LeadRepository, commit

logger = logging.getLogger('services.expiry')

SWEEP_JOB_ID = 'leadmatch:expiry-sweep'
SWEEP_JOB_DESCRIPTION = 'lead expiry sweep'
SWEEP_JOB_TIMEOUT = 600


@dataclass
class SweepResult:
    ran_at: str
    expired: int


def sweep_expired_leads(now=None) -> SweepResult:
    """Expire and archive every overdue open lead. Raises RepositoryUnavailable on DB failure."""
    now = now or utcnow()
    session = get_session()
    try:
        expired = LeadRepository(session).expire_overdue_leads(now)
        commit(session, 'expire_overdue_leads')
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    logger.info("Archived %d expired leads", expired)
    return SweepResult(ran_at=now.isoformat(), expired=expired)


def schedule_expiry_sweep(delay_seconds=0, interval_seconds=None):
    """Register the periodic sweep with rq-scheduler under SWEEP_JOB_ID.

    The scheduler re-arms the job every interval on its own, so a failed or
    killed run never ends the schedule. Registering again replaces the
    existing entry. Returns the job, or None if Redis is unreachable.
    """
    from leadmatch.extensions import get_scheduler

    interval = EXPIRY_SWEEP_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
    try:
        scheduler = get_scheduler()
        if SWEEP_JOB_ID in scheduler:
            scheduler.cancel(SWEEP_JOB_ID)
        job = scheduler.schedule(
            scheduled_time=utcnow() + timedelta(seconds=delay_seconds),
            func=run_expiry_sweep,
            interval=interval,
            repeat=None,
            id=SWEEP_JOB_ID,
            description=SWEEP_JOB_DESCRIPTION,
            timeout=SWEEP_JOB_TIMEOUT,
        )
        logger.info("Expiry sweep registered every %ds, first run in %ds", interval, delay_seconds)
        return job
    except Exception:
        logger.error("Failed to register the expiry sweep schedule", exc_info=True)
        return None


def run_expiry_sweep():
    """RQ job entry point: sweep once. Failures are logged and left for the next tick."""
    try:
        return sweep_expired_leads()
    except Exception:
        logger.error("Expiry sweep failed, leads left unchanged until the next tick", exc_info=True)
        return None
