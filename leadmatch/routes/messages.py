"""
Message routes — a lead's conversation thread between its owner and providers.
"""
import logging
from flask import Blueprint, jsonify, request, g

from leadmatch.auth import require_login
from leadmatch.database import get_session
from leadmatch.routes.serializers import serialize_message
from leadmatch.services.messages import MessageService

logger = logging.getLogger('routes.messages')

bp = Blueprint('messages', __name__)


@bp.route('/api/leads/<int:lead_id>/messages', methods=['POST'])
@require_login
def send_message(lead_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    session = get_session()
    try:
        message = MessageService(session).send(
            sender_id=g.caller.user_id,
            lead_id=lead_id,
            receiver_id=data.get('receiver_id', data.get('receiverId')),
            content=data.get('content'),
        )
        return jsonify(serialize_message(message)), 201
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>/messages')
@require_login
def list_messages(lead_id):
    session = get_session()
    try:
        messages = MessageService(session).thread(g.caller.user_id, lead_id)
        return jsonify([serialize_message(m) for m in messages])
    finally:
        session.close()


@bp.route('/api/leads/<int:lead_id>/messages/read', methods=['POST'])
@require_login
def mark_messages_read(lead_id):
    session = get_session()
    try:
        updated = MessageService(session).mark_read(g.caller.user_id, lead_id)
        return jsonify({'updated': updated})
    finally:
        session.close()
