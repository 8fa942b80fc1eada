"""
Proposal routes — submit (provider), review/accept/reject (lead owner),
and a provider's own proposal history.
"""
import logging
from flask import Blueprint, jsonify, request, g

from leadmatch.auth import require_role
from leadmatch.config import ROLE_REQUESTER, ROLE_PROVIDER
from leadmatch.database import get_session
from leadmatch.routes.serializers import serialize_proposal
from leadmatch.services.proposals import ProposalService

logger = logging.getLogger('routes.proposals')

bp = Blueprint('proposals', __name__)


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@bp.route('/api/leads/<int:lead_id>/proposals', methods=['POST'])
@require_role(ROLE_PROVIDER)
def submit_proposal(lead_id):
    data = _body()
    session = get_session()
    try:
        proposal = ProposalService(session).submit(
            provider_id=g.caller.user_id,
            lead_id=lead_id,
            proposal_text=data.get('proposal_text', data.get('proposal')),
            price=data.get('price'),
        )
        return jsonify(serialize_proposal(proposal)), 201
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>/proposals')
@require_role(ROLE_REQUESTER)
def list_lead_proposals(lead_id):
    session = get_session()
    try:
        proposals = ProposalService(session).list_for_lead(g.caller.user_id, lead_id)
        return jsonify([serialize_proposal(p) for p in proposals])
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>/proposals/<int:proposal_id>/accept', methods=['POST'])
@require_role(ROLE_REQUESTER)
def accept_proposal(lead_id, proposal_id):
    """Accept and share contact details with this proposal's provider."""
    data = _body()
    session = get_session()
    try:
        proposal = ProposalService(session).accept(
            requester_id=g.caller.user_id,
            lead_id=lead_id,
            proposal_id=proposal_id,
            contact_details=data.get('contact_details', data.get('contactDetails')),
        )
        return jsonify(serialize_proposal(proposal))
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>/proposals/<int:proposal_id>/reject', methods=['POST'])
@require_role(ROLE_REQUESTER)
def reject_proposal(lead_id, proposal_id):
    session = get_session()
    try:
        proposal = ProposalService(session).reject(
            requester_id=g.caller.user_id,
            lead_id=lead_id,
            proposal_id=proposal_id,
        )
        return jsonify(serialize_proposal(proposal))
    finally:
        session.close()


@bp.route('/api/proposals')
@require_role(ROLE_PROVIDER)
def my_proposals():
    """The caller's proposals, newest first. Contact details only on accepted ones."""
    session = get_session()
    try:
        proposals = ProposalService(session).list_for_provider(g.caller.user_id)
        return jsonify([serialize_proposal(p) for p in proposals])
    finally:
        session.close()
