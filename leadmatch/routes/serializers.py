"""
JSON shapes for leads, proposals and messages.

A lead's phone number is requester contact data: it is only rendered for the
lead owner or for a provider whose proposal on that lead was accepted.
"""
from leadmatch.config import PROPOSAL_ACCEPTED


def _iso(dt):
    return dt.isoformat() if dt else None


def serialize_lead(lead, include_private=False):
    data = {
        'id': lead.id,
        'owner_id': lead.owner_id,
        'title': lead.title,
        'description': lead.description,
        'category': lead.category,
        'subcategory': lead.subcategory,
        'budget': lead.budget,
        'location': lead.location,
        'status': lead.status,
        'archived': bool(lead.archived),
        'created_at': _iso(lead.created_at),
        'expires_at': _iso(lead.expires_at),
    }
    if include_private:
        data['phone_number'] = lead.phone_number
    return data


def serialize_proposal(proposal):
    return {
        'id': proposal.id,
        'lead_id': proposal.lead_id,
        'provider_id': proposal.provider_id,
        'proposal_text': proposal.proposal_text,
        'price': proposal.price,
        'status': proposal.status,
        'contact_details': proposal.contact_details if proposal.status == PROPOSAL_ACCEPTED else None,
        'created_at': _iso(proposal.created_at),
        'decided_at': _iso(proposal.decided_at),
    }


def serialize_message(message):
    return {
        'id': message.id,
        'lead_id': message.lead_id,
        'sender_id': message.sender_id,
        'receiver_id': message.receiver_id,
        'content': message.content,
        'read': bool(message.read),
        'created_at': _iso(message.created_at),
    }
