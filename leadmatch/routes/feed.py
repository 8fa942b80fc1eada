"""
Feed routes — a provider's ranked lead feed.
"""
import logging
from flask import Blueprint, jsonify, g

from leadmatch.auth import require_role
from leadmatch.config import ROLE_PROVIDER
from leadmatch.database import get_session
from leadmatch.matching.ranking import RankingService
from leadmatch.routes.serializers import serialize_lead
from leadmatch.services.repository import LeadRepository, ProfileRepository

logger = logging.getLogger('routes.feed')

bp = Blueprint('feed', __name__)


@bp.route('/api/feed')
@require_role(ROLE_PROVIDER)
def get_feed():
    """Open leads ranked against the caller's matching preferences."""
    session = get_session()
    try:
        service = RankingService(LeadRepository(session), ProfileRepository(session))
        ranked = service.rank(g.caller.user_id)
        return jsonify([
            {'lead': serialize_lead(item.lead), 'score': item.score.to_dict()}
            for item in ranked
        ])
    finally:
        session.close()
