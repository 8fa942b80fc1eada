"""
Notifications — Slack-style webhook for proposal lifecycle events.

notify() is fire-and-forget: it hands the event to an RQ job and returns.
Neither enqueue nor delivery failure ever propagates to the caller, so a
committed state transition is never undone by a notification problem.
"""
import logging
from dataclasses import dataclass, asdict, field
from typing import Optional

import requests

from leadmatch import config
from leadmatch.database import utcnow

logger = logging.getLogger('services.notifications')

PROPOSAL_SUBMITTED = 'proposal_submitted'
PROPOSAL_ACCEPTED = 'proposal_accepted'
PROPOSAL_REJECTED = 'proposal_rejected'

_HEADLINES = {
    PROPOSAL_SUBMITTED: 'New proposal received',
    PROPOSAL_ACCEPTED: 'Proposal accepted',
    PROPOSAL_REJECTED: 'Proposal declined',
}


@dataclass
class ProposalEvent:
    kind: str
    lead_id: int
    proposal_id: int
    provider_id: int
    requester_id: int
    lead_title: str = ''
    occurred_at: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self):
        return asdict(self)


def notify(event: ProposalEvent):
    """Queue an event for webhook delivery. Never raises."""
    if not config.NOTIFY_WEBHOOK_URL:
        logger.debug("NOTIFY_WEBHOOK_URL not set, dropping %s for lead %s", event.kind, event.lead_id)
        return
    try:
        from leadmatch.extensions import get_queue
        get_queue().enqueue(deliver_event, event.to_dict(), job_timeout=60)
    except Exception:
        logger.error("Failed to enqueue %s notification for proposal %s",
                     event.kind, event.proposal_id, exc_info=True)


def build_blocks(payload):
    """Slack block payload for one lifecycle event."""
    headline = _HEADLINES.get(payload.get('kind'), payload.get('kind', 'Lead update'))
    title = payload.get('lead_title') or f"Lead #{payload.get('lead_id')}"
    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"{headline} — {title}"[:150]},
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Lead:* {payload.get('lead_id')}"},
                {"type": "mrkdwn", "text": f"*Proposal:* {payload.get('proposal_id')}"},
                {"type": "mrkdwn", "text": f"*Provider:* {payload.get('provider_id')}"},
                {"type": "mrkdwn", "text": f"*Requester:* {payload.get('requester_id')}"},
            ],
        },
        {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": payload.get('occurred_at', '')}],
        },
    ]


def deliver_event(payload, webhook_url: Optional[str] = None):
    """RQ job: POST one event to the webhook. Returns True on success."""
    url = webhook_url or config.NOTIFY_WEBHOOK_URL
    if not url:
        return False
    try:
        resp = requests.post(url, json={"blocks": build_blocks(payload)}, timeout=10)
        resp.raise_for_status()
        logger.info("%s notification sent for proposal %s", payload.get('kind'), payload.get('proposal_id'))
        return True
    except Exception:
        logger.error("Failed to deliver %s notification for proposal %s",
                     payload.get('kind'), payload.get('proposal_id'), exc_info=True)
        return False
