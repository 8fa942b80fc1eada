"""
Proposal lifecycle — submit, accept, reject.

    pending ──accept──▶ accepted   (contact details stored, exactly once)
       │
       └────reject──▶ rejected     (contact details stay empty forever)

Both terminal states are final. The pending → terminal step is a single
conditional update guarded on status = 'pending', so two concurrent
accept/reject calls cannot both succeed: the loser gets InvalidState and the
winner's contact details are never overwritten.

Notifications go out only after the transition has committed, and a failed
notification never undoes it.
"""
import logging

from leadmatch import config
from leadmatch.config import (
    LEAD_OPEN, LEAD_IN_PROGRESS,
    PROPOSAL_PENDING, PROPOSAL_ACCEPTED, PROPOSAL_REJECTED,
)
from leadmatch.errors import (
    LeadNotAvailable, DuplicateProposal, NotAuthorized, InvalidState, ProposalNotFound,
)
from leadmatch.services import notifications
from leadmatch.services.notifications import ProposalEvent
from leadmatch.services.repository import LeadRepository, ProposalRepository, commit
from leadmatch.services.validation import FieldErrors, clean_text, clean_amount

logger = logging.getLogger('services.proposals')

MAX_PROPOSAL_LENGTH = 5000
MAX_CONTACT_DETAILS_LENGTH = 2000

_ACTIONS = {PROPOSAL_ACCEPTED: 'accept', PROPOSAL_REJECTED: 'reject'}


def require_lead_owner(lead, user_id, action, message):
    """Raise NotAuthorized unless user_id owns lead. Denied attempts are logged."""
    if lead.owner_id != user_id:
        logger.warning("User %s attempted to %s on lead %s owned by %s",
                       user_id, action, lead.id, lead.owner_id,
                       extra={'lead_id': lead.id, 'requester_id': user_id})
        raise NotAuthorized(message)


class ProposalService:
    """Proposal state machine. One instance per request session."""

    def __init__(self, session, notify=None):
        self.session = session
        self.leads = LeadRepository(session)
        self.proposals = ProposalRepository(session)
        self._notify = notify or notifications.notify

    def _commit(self):
        commit(self.session)

    def _emit(self, kind, lead, proposal):
        # Runs after commit; the transition stands whatever the sink does
        try:
            self._notify(ProposalEvent(
                kind=kind,
                lead_id=lead.id,
                proposal_id=proposal.id,
                provider_id=proposal.provider_id,
                requester_id=lead.owner_id,
                lead_title=lead.title or '',
            ))
        except Exception:
            logger.error("Notification sink failed for %s on proposal %s", kind, proposal.id, exc_info=True)

    # ── submit ───────────────────────────────────────────────────────────

    def submit(self, provider_id, lead_id, proposal_text, price=None):
        """Create a pending proposal on an open lead. One per (lead, provider)."""
        errors = FieldErrors()
        text = clean_text({'proposal_text': proposal_text}, 'proposal_text', errors,
                          max_length=MAX_PROPOSAL_LENGTH)
        price = clean_amount({'price': price}, 'price', errors, required=False)
        errors.raise_if_any()

        lead = self.leads.find_open_lead(lead_id)
        if lead is None:
            logger.info("Provider %s tried to respond to unavailable lead %s", provider_id, lead_id,
                        extra={'lead_id': lead_id, 'provider_id': provider_id})
            raise LeadNotAvailable()

        if self.proposals.find_proposal(lead_id, provider_id) is not None:
            raise DuplicateProposal()

        # Loses to a concurrent insert via the unique constraint → DuplicateProposal
        proposal = self.proposals.insert_proposal(lead_id, provider_id, text, price=price)
        self._commit()

        logger.info("Proposal %s submitted on lead %s by provider %s", proposal.id, lead_id, provider_id,
                    extra={'lead_id': lead_id, 'proposal_id': proposal.id, 'provider_id': provider_id,
                           'event': notifications.PROPOSAL_SUBMITTED})
        self._emit(notifications.PROPOSAL_SUBMITTED, lead, proposal)
        return proposal

    # ── accept / reject ──────────────────────────────────────────────────

    def accept(self, requester_id, lead_id, proposal_id, contact_details):
        """Accept a pending proposal and attach the requester's contact details to it."""
        errors = FieldErrors()
        details = clean_text({'contact_details': contact_details}, 'contact_details', errors,
                             max_length=MAX_CONTACT_DETAILS_LENGTH)
        errors.raise_if_any()
        return self._decide(requester_id, lead_id, proposal_id, PROPOSAL_ACCEPTED, details)

    def reject(self, requester_id, lead_id, proposal_id):
        return self._decide(requester_id, lead_id, proposal_id, PROPOSAL_REJECTED, None)

    def _decide(self, requester_id, lead_id, proposal_id, new_status, contact_details):
        lead = self.leads.find_lead(lead_id)
        if lead is None:
            raise LeadNotAvailable('Lead not found')

        require_lead_owner(lead, requester_id, f'{_ACTIONS[new_status]} proposal {proposal_id}',
                           'Only the owner of this lead can decide on its proposals')

        proposal = self.proposals.get_proposal(proposal_id)
        if proposal is None or proposal.lead_id != lead_id:
            raise ProposalNotFound()

        if proposal.status != PROPOSAL_PENDING:
            raise InvalidState(f'Proposal is already {proposal.status}')

        if not self.proposals.update_proposal_status(
                proposal_id, PROPOSAL_PENDING, new_status, contact_details=contact_details):
            # Another request decided it between our read and our write
            self.session.rollback()
            raise InvalidState('Proposal was decided by another request')

        if new_status == PROPOSAL_ACCEPTED and config.ACCEPT_ADVANCES_LEAD:
            if self.leads.update_lead_status(lead_id, LEAD_OPEN, LEAD_IN_PROGRESS):
                logger.info("Lead %s moved to in_progress on acceptance", lead_id, extra={'lead_id': lead_id})

        self._commit()
        proposal = self.proposals.get_proposal(proposal_id, refresh=True)

        event = notifications.PROPOSAL_ACCEPTED if new_status == PROPOSAL_ACCEPTED \
            else notifications.PROPOSAL_REJECTED
        logger.info("Proposal %s on lead %s %s by requester %s", proposal_id, lead_id, new_status, requester_id,
                    extra={'lead_id': lead_id, 'proposal_id': proposal_id,
                           'requester_id': requester_id, 'event': event})
        self._emit(event, lead, proposal)
        return proposal

    # ── Views ────────────────────────────────────────────────────────────

    def list_for_lead(self, requester_id, lead_id):
        lead = self.leads.find_lead(lead_id)
        if lead is None:
            raise LeadNotAvailable('Lead not found')
        require_lead_owner(lead, requester_id, 'list proposals',
                           'Only the owner of this lead can view its proposals')
        return self.proposals.find_proposals_for_lead(lead_id)

    def list_for_provider(self, provider_id):
        return self.proposals.find_proposals_by_provider(provider_id)
