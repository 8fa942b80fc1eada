"""
Lead management — requester-side create, edit, close, soft delete, and views.

All status changes go through LeadRepository.update_lead_status (a conditional
update), so a requester closing a lead and the expiry sweep expiring it at the
same moment cannot both win.
"""
import logging
from datetime import timedelta

from leadmatch.config import LEAD_RETENTION_DAYS, LEAD_OPEN, LEAD_IN_PROGRESS, LEAD_CLOSED
from leadmatch.database import utcnow
from leadmatch.errors import LeadNotAvailable, NotAuthorized, InvalidState
from leadmatch.services.repository import LeadRepository, ProposalRepository, commit
from leadmatch.services.validation import FieldErrors, clean_text, clean_amount

logger = logging.getLogger('services.leads')

EDITABLE_FIELDS = ('title', 'description', 'category', 'subcategory', 'budget', 'location', 'phone_number')


def validate_lead_payload(data, partial=False):
    """
    Validate create/edit input and return the cleaned fields.

    partial=True (edits) only validates fields that are present and requires at
    least one of them.
    """
    errors = FieldErrors()
    if not isinstance(data, dict):
        errors.add('body', 'Request body must be a JSON object')
        errors.raise_if_any()

    # Edits only ever touch whitelisted descriptive fields
    if partial:
        data = {k: v for k, v in data.items() if k in EDITABLE_FIELDS or k == 'phone'}
        if not data:
            errors.add('body', 'No editable fields supplied')
            errors.raise_if_any()

    def wanted(field):
        return not partial or field in data

    cleaned = {}
    if wanted('title'):
        cleaned['title'] = clean_text(data, 'title', errors, required=True, max_length=200)
    if wanted('description'):
        cleaned['description'] = clean_text(data, 'description', errors, required=True, max_length=5000)
    if wanted('category'):
        cleaned['category'] = clean_text(data, 'category', errors, required=True, max_length=100)
    if wanted('subcategory'):
        cleaned['subcategory'] = clean_text(data, 'subcategory', errors, required=False, max_length=100)
    if wanted('budget'):
        cleaned['budget'] = clean_amount(data, 'budget', errors, required=True)
    if wanted('location'):
        cleaned['location'] = clean_text(data, 'location', errors, required=True, max_length=200)

    phone_key = 'phone_number' if 'phone_number' in data else 'phone'
    if wanted(phone_key):
        cleaned['phone_number'] = clean_text(data, phone_key, errors, required=False, max_length=40)

    errors.raise_if_any()
    return cleaned


class LeadService:
    """Requester operations on their own leads. One instance per request session."""

    def __init__(self, session):
        self.session = session
        self.leads = LeadRepository(session)
        self.proposals = ProposalRepository(session)

    def _commit(self):
        commit(self.session)

    def _owned_lead(self, requester_id, lead_id):
        lead = self.leads.find_lead(lead_id)
        if lead is None:
            raise LeadNotAvailable('Lead not found')
        if lead.owner_id != requester_id:
            logger.warning("User %s attempted to manage lead %s owned by %s",
                           requester_id, lead_id, lead.owner_id,
                           extra={'lead_id': lead_id, 'requester_id': requester_id})
            raise NotAuthorized('You do not own this lead')
        return lead

    # ── Commands ─────────────────────────────────────────────────────────

    def create_lead(self, requester_id, data):
        fields = validate_lead_payload(data)
        now = utcnow()
        lead = self.leads.insert_lead(
            owner_id=requester_id,
            status=LEAD_OPEN,
            created_at=now,
            expires_at=now + timedelta(days=LEAD_RETENTION_DAYS),
            archived=False,
            **fields,
        )
        self._commit()
        logger.info("Lead %s created by requester %s (category=%s)", lead.id, requester_id, lead.category,
                    extra={'lead_id': lead.id, 'requester_id': requester_id})
        return lead

    def update_lead(self, requester_id, lead_id, data):
        fields = validate_lead_payload(data, partial=True)
        lead = self._owned_lead(requester_id, lead_id)
        if lead.status != LEAD_OPEN:
            raise InvalidState(f'Lead is {lead.status} and can no longer be edited')
        if not self.leads.update_lead_fields(lead_id, LEAD_OPEN, fields):
            self.session.rollback()
            raise InvalidState('Lead changed state before the edit could be applied')
        self._commit()
        logger.info("Lead %s edited (%s)", lead_id, ', '.join(sorted(fields)), extra={'lead_id': lead_id})
        return self.leads.reload(lead_id)

    def close_lead(self, requester_id, lead_id):
        lead = self._owned_lead(requester_id, lead_id)
        if lead.status not in (LEAD_OPEN, LEAD_IN_PROGRESS):
            raise InvalidState(f'Lead is already {lead.status}')
        if not self.leads.update_lead_status(lead_id, lead.status, LEAD_CLOSED):
            self.session.rollback()
            raise InvalidState('Lead changed state before it could be closed')
        self._commit()
        logger.info("Lead %s closed by requester %s", lead_id, requester_id, extra={'lead_id': lead_id})
        return self.leads.reload(lead_id)

    def delete_lead(self, requester_id, lead_id):
        self._owned_lead(requester_id, lead_id)
        if not self.leads.soft_delete_lead(lead_id):
            self.session.rollback()
            raise LeadNotAvailable('Lead not found')
        self._commit()
        logger.info("Lead %s soft-deleted by requester %s", lead_id, requester_id, extra={'lead_id': lead_id})

    # ── Views ────────────────────────────────────────────────────────────

    def list_own_leads(self, requester_id):
        """[(lead, [proposals...]), ...] newest lead first."""
        return [(lead, self.proposals.find_proposals_for_lead(lead.id))
                for lead in self.leads.find_leads_by_owner(requester_id)]

    def get_owned_lead(self, requester_id, lead_id):
        lead = self._owned_lead(requester_id, lead_id)
        return lead, self.proposals.find_proposals_for_lead(lead_id)

    def get_open_lead_for_provider(self, provider_id, lead_id):
        """An open lead plus the provider's own proposal on it (or None)."""
        lead = self.leads.find_open_lead(lead_id)
        if lead is None:
            # Providers keep access to leads they already responded to
            proposal = self.proposals.find_proposal(lead_id, provider_id)
            lead = self.leads.find_lead(lead_id) if proposal else None
            if lead is None:
                raise LeadNotAvailable()
            return lead, proposal
        return lead, self.proposals.find_proposal(lead_id, provider_id)
