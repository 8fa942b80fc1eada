"""
Preference routes — a provider's matching preferences (feeds the ranking).
"""
import logging
from flask import Blueprint, jsonify, request, g

from leadmatch.auth import require_role
from leadmatch.config import ROLE_PROVIDER
from leadmatch.database import get_session
from leadmatch.errors import ValidationError
from leadmatch.matching.scoring import ProviderPreferences
from leadmatch.services.repository import ProfileRepository, commit

logger = logging.getLogger('routes.preferences')

bp = Blueprint('preferences', __name__)


@bp.route('/api/preferences')
@require_role(ROLE_PROVIDER)
def get_preferences():
    """Current preferences in normalized form (empty profile if none saved)."""
    session = get_session()
    try:
        prefs = ProfileRepository(session).find_preferences(g.caller.user_id) or ProviderPreferences()
        return jsonify(prefs.to_dict())
    finally:
        session.close()


@bp.route('/api/preferences', methods=['PUT', 'PATCH'])
@require_role(ROLE_PROVIDER)
def save_preferences():
    """Replace the caller's preferences. Accepts front-end or snake_case keys."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError(details=[{'field': 'body', 'message': 'Request body must be a JSON object'}])

    prefs = ProviderPreferences.from_dict(data)
    if prefs.budget_range:
        low, high = prefs.budget_range
        if low is not None and high is not None and low > high:
            raise ValidationError(details=[{'field': 'budget_range', 'message': 'min must not exceed max'}])

    session = get_session()
    try:
        ProfileRepository(session).save_preferences(g.caller.user_id, prefs.to_dict())
        commit(session, 'save_preferences')
        logger.info("Provider %s updated matching preferences", g.caller.user_id,
                    extra={'provider_id': g.caller.user_id})
        return jsonify(prefs.to_dict())
    finally:
        session.close()
