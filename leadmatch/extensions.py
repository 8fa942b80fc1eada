"""
Shared client instances — Redis connection, the RQ queue and the scheduler built on it.

redis.from_url() does not connect until first use, so importing this module
is always safe (even when Redis is absent during tests).
"""
import logging
import redis

from leadmatch.config import REDIS_URL

logger = logging.getLogger('leadmatch.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL)

# ── RQ (lazy, avoids import-time queue construction) ─────────────────────────
_queue = None


def get_queue():
    """Return the default RQ queue, creating it on first use."""
    global _queue
    if _queue is None:
        from rq import Queue
        _queue = Queue(connection=redis_client)
        logger.info("RQ queue '%s' initialized", _queue.name)
    return _queue


# ── rq-scheduler (periodic jobs; run `rqscheduler` beside the workers) ─────────
_scheduler = None


def get_scheduler():
    """Return the rq-scheduler Scheduler feeding the default queue, creating it on first use."""
    global _scheduler
    if _scheduler is None:
        from rq_scheduler import Scheduler
        _scheduler = Scheduler(queue=get_queue(), connection=redis_client)
    return _scheduler
