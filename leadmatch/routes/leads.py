"""
Lead routes — requester lead management and the lead detail view.
"""
import logging
from flask import Blueprint, jsonify, request, g

from leadmatch.auth import current_caller, require_role
from leadmatch.config import ROLE_REQUESTER, ROLE_PROVIDER, PROPOSAL_ACCEPTED
from leadmatch.database import get_session
from leadmatch.errors import NotAuthenticated
from leadmatch.routes.serializers import serialize_lead, serialize_proposal
from leadmatch.services.leads import LeadService

logger = logging.getLogger('routes.leads')

bp = Blueprint('leads', __name__)


@bp.route('/api/leads')
@require_role(ROLE_REQUESTER)
def list_leads():
    """The caller's own leads, newest first, each with its proposals."""
    session = get_session()
    try:
        rows = LeadService(session).list_own_leads(g.caller.user_id)
        return jsonify([
            {**serialize_lead(lead, include_private=True),
             'proposals': [serialize_proposal(p) for p in proposals]}
            for lead, proposals in rows
        ])
    finally:
        session.close()


@bp.route('/api/leads', methods=['POST'])
@require_role(ROLE_REQUESTER)
def create_lead():
    """Post a new lead. Open for LEAD_RETENTION_DAYS."""
    data = request.get_json(silent=True)
    session = get_session()
    try:
        lead = LeadService(session).create_lead(g.caller.user_id, data)
        return jsonify(serialize_lead(lead, include_private=True)), 201
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>')
def get_lead(lead_id):
    """
    Owner: the lead with every proposal.
    Provider: an open lead (or one they already responded to) with their own proposal.
    """
    caller = current_caller()
    if caller is None:
        raise NotAuthenticated()

    session = get_session()
    try:
        service = LeadService(session)
        if caller.role == ROLE_PROVIDER:
            lead, proposal = service.get_open_lead_for_provider(caller.user_id, lead_id)
            accepted = proposal is not None and proposal.status == PROPOSAL_ACCEPTED
            body = serialize_lead(lead, include_private=accepted)
            body['my_proposal'] = serialize_proposal(proposal) if proposal else None
            return jsonify(body)

        lead, proposals = service.get_owned_lead(caller.user_id, lead_id)
        body = serialize_lead(lead, include_private=True)
        body['proposals'] = [serialize_proposal(p) for p in proposals]
        return jsonify(body)
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>', methods=['PATCH'])
@require_role(ROLE_REQUESTER)
def update_lead(lead_id):
    """Edit descriptive fields of an open lead."""
    data = request.get_json(silent=True)
    session = get_session()
    try:
        lead = LeadService(session).update_lead(g.caller.user_id, lead_id, data)
        return jsonify(serialize_lead(lead, include_private=True))
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>/close', methods=['POST'])
@require_role(ROLE_REQUESTER)
def close_lead(lead_id):
    session = get_session()
    try:
        lead = LeadService(session).close_lead(g.caller.user_id, lead_id)
        return jsonify(serialize_lead(lead, include_private=True))
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>', methods=['DELETE'])
@require_role(ROLE_REQUESTER)
def delete_lead(lead_id):
    """Soft delete. Proposals on the lead are kept."""
    session = get_session()
    try:
        LeadService(session).delete_lead(g.caller.user_id, lead_id)
        return jsonify({'status': 'deleted', 'id': lead_id})
    finally:
        session.close()
