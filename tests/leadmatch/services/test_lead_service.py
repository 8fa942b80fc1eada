"""Tests for leadmatch.services.leads — requester lead management."""
from datetime import timedelta
from unittest.mock import patch

import pytest

from leadmatch.errors import InvalidState, LeadNotAvailable, NotAuthorized, ValidationError
from leadmatch.models.lead import Lead
from leadmatch.models.proposal import Proposal
from leadmatch.services.leads import LeadService, validate_lead_payload

OWNER = 1

VALID = {
    'title': 'Bathroom refit',
    'description': 'Full refit of a small bathroom, tiles supplied.',
    'category': 'plumbing',
    'budget': 3500,
    'location': 'Bristol',
}


@pytest.fixture
def service(db_session):
    return LeadService(db_session)


class TestValidateLeadPayload:

    def test_valid_payload(self):
        cleaned = validate_lead_payload(dict(VALID, subcategory='bathrooms', phone='0117 496 0000'))
        assert cleaned['budget'] == 3500.0
        assert cleaned['subcategory'] == 'bathrooms'
        assert cleaned['phone_number'] == '0117 496 0000'

    def test_missing_required_fields_reported_together(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_lead_payload({'title': 'Only a title'})
        fields = {d['field'] for d in exc_info.value.details}
        assert fields == {'description', 'category', 'budget', 'location'}

    @pytest.mark.parametrize('budget', [-1, 'abc', True, float('inf')])
    def test_bad_budget(self, budget):
        with pytest.raises(ValidationError) as exc_info:
            validate_lead_payload(dict(VALID, budget=budget))
        assert exc_info.value.details[0]['field'] == 'budget'

    def test_numeric_string_budget_accepted(self):
        assert validate_lead_payload(dict(VALID, budget='250.50'))['budget'] == 250.5

    def test_non_dict_body(self):
        with pytest.raises(ValidationError):
            validate_lead_payload(['not', 'a', 'dict'])

    def test_partial_ignores_non_editable_fields(self):
        cleaned = validate_lead_payload({'title': 'New title', 'status': 'closed', 'owner_id': 9}, partial=True)
        assert cleaned == {'title': 'New title'}

    def test_partial_requires_an_editable_field(self):
        with pytest.raises(ValidationError):
            validate_lead_payload({'status': 'closed'}, partial=True)

    def test_partial_cannot_blank_required_field(self):
        with pytest.raises(ValidationError):
            validate_lead_payload({'title': '  '}, partial=True)


class TestCreateLead:

    def test_creates_open_lead_with_expiry(self, service, db_session):
        lead = service.create_lead(OWNER, VALID)
        row = db_session.get(Lead, lead.id)
        assert row.owner_id == OWNER
        assert row.status == 'open'
        assert row.archived is False
        assert row.deleted_at is None
        assert row.expires_at - row.created_at == timedelta(days=30)

    def test_retention_window_configurable(self, service):
        with patch('leadmatch.services.leads.LEAD_RETENTION_DAYS', 7):
            lead = service.create_lead(OWNER, VALID)
        assert (lead.expires_at - lead.created_at) == timedelta(days=7)

    def test_invalid_payload_inserts_nothing(self, service, db_session):
        with pytest.raises(ValidationError):
            service.create_lead(OWNER, dict(VALID, budget=-10))
        assert db_session.query(Lead).count() == 0


class TestUpdateLead:

    def test_edits_open_lead(self, service, make_lead):
        lead = make_lead(owner_id=OWNER)
        updated = service.update_lead(OWNER, lead.id, {'title': 'Updated', 'budget': 6000})
        assert updated.title == 'Updated'
        assert updated.budget == 6000.0
        assert updated.status == 'open'

    def test_cannot_edit_closed_lead(self, service, make_lead):
        lead = make_lead(owner_id=OWNER, status='closed')
        with pytest.raises(InvalidState):
            service.update_lead(OWNER, lead.id, {'title': 'Updated'})

    def test_non_owner_cannot_edit(self, service, make_lead):
        lead = make_lead(owner_id=OWNER)
        with pytest.raises(NotAuthorized):
            service.update_lead(OWNER + 1, lead.id, {'title': 'Hijacked'})

    def test_missing_lead(self, service):
        with pytest.raises(LeadNotAvailable):
            service.update_lead(OWNER, 404, {'title': 'Nope'})


class TestCloseLead:

    def test_closes_open_lead(self, service, make_lead):
        lead = make_lead(owner_id=OWNER)
        assert service.close_lead(OWNER, lead.id).status == 'closed'

    def test_closes_in_progress_lead(self, service, make_lead):
        lead = make_lead(owner_id=OWNER, status='in_progress')
        assert service.close_lead(OWNER, lead.id).status == 'closed'

    @pytest.mark.parametrize('status', ['closed', 'expired'])
    def test_terminal_lead_cannot_close(self, service, make_lead, status):
        lead = make_lead(owner_id=OWNER, status=status)
        with pytest.raises(InvalidState):
            service.close_lead(OWNER, lead.id)

    def test_lost_race_with_sweep(self, service, make_lead):
        lead = make_lead(owner_id=OWNER)
        with patch.object(service.leads, 'update_lead_status', return_value=False):
            with pytest.raises(InvalidState):
                service.close_lead(OWNER, lead.id)


class TestDeleteLead:

    def test_soft_delete_keeps_row_and_proposals(self, service, db_session, make_lead, make_proposal):
        lead = make_lead(owner_id=OWNER)
        make_proposal(lead)
        service.delete_lead(OWNER, lead.id)
        db_session.expire_all()
        assert db_session.get(Lead, lead.id).deleted_at is not None
        assert db_session.query(Proposal).filter_by(lead_id=lead.id).count() == 1

    def test_deleted_lead_is_gone_for_owner(self, service, make_lead):
        lead = make_lead(owner_id=OWNER)
        service.delete_lead(OWNER, lead.id)
        with pytest.raises(LeadNotAvailable):
            service.get_owned_lead(OWNER, lead.id)

    def test_non_owner_cannot_delete(self, service, make_lead):
        lead = make_lead(owner_id=OWNER)
        with pytest.raises(NotAuthorized):
            service.delete_lead(OWNER + 1, lead.id)


class TestViews:

    def test_list_own_leads_with_proposals(self, service, make_lead, make_proposal):
        mine = make_lead(owner_id=OWNER)
        make_lead(owner_id=OWNER + 1)
        make_proposal(mine, provider_id=5)
        rows = service.list_own_leads(OWNER)
        assert len(rows) == 1
        lead, proposals = rows[0]
        assert lead.id == mine.id
        assert [p.provider_id for p in proposals] == [5]

    def test_provider_sees_open_lead(self, service, make_lead):
        lead = make_lead()
        found, proposal = service.get_open_lead_for_provider(100, lead.id)
        assert found.id == lead.id
        assert proposal is None

    def test_provider_cannot_see_closed_lead_without_proposal(self, service, make_lead):
        lead = make_lead(status='closed')
        with pytest.raises(LeadNotAvailable):
            service.get_open_lead_for_provider(100, lead.id)

    def test_provider_keeps_access_to_lead_they_responded_to(self, service, make_lead, make_proposal):
        lead = make_lead(status='closed')
        make_proposal(lead, provider_id=100, status='accepted', contact_details='call me')
        found, proposal = service.get_open_lead_for_provider(100, lead.id)
        assert found.id == lead.id
        assert proposal.contact_details == 'call me'
