"""
Ranking — a provider's lead feed.

Scores every open lead against the provider's preferences, drops zero scores,
and orders the rest by total score descending. Ties go to the newer lead
(created_at descending, then id descending), so the order is total and does
not depend on the order the repository returned rows in.

Read-only and stateless: nothing is cached between calls.
"""
import logging
from dataclasses import dataclass
from datetime import timezone
from typing import List, Optional

from leadmatch.errors import RepositoryUnavailable
from leadmatch.matching.scoring import MatchScore, ProviderPreferences, score

logger = logging.getLogger('matching.ranking')


@dataclass(frozen=True)
class RankedLead:
    lead: object
    score: MatchScore


def _timestamp(dt):
    """Sortable epoch seconds; naive values (SQLite) are treated as UTC."""
    if dt is None:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def rank_leads(leads, preferences: Optional[ProviderPreferences]) -> List[RankedLead]:
    """Pure ranking over an already-fetched lead snapshot."""
    ranked = []
    for lead in leads:
        match = score(lead, preferences)
        if match.total > 0:
            ranked.append(RankedLead(lead=lead, score=match))
    ranked.sort(
        key=lambda r: (r.score.total, _timestamp(r.lead.created_at), r.lead.id or 0),
        reverse=True,
    )
    return ranked


class RankingService:
    """Builds a provider's feed from the lead and profile repositories."""

    def __init__(self, lead_repo, profile_repo):
        self.lead_repo = lead_repo
        self.profile_repo = profile_repo

    def rank(self, provider_id, preferences: Optional[ProviderPreferences] = None) -> List[RankedLead]:
        try:
            if preferences is None:
                preferences = self.profile_repo.find_preferences(provider_id)
            if preferences is None or preferences.is_empty:
                logger.info("Provider %s has no matching preferences, feed is empty", provider_id)
                return []
            leads = self.lead_repo.find_open_leads()
        except RepositoryUnavailable as e:
            logger.error("Feed for provider %s failed during %s", provider_id, e.operation)
            raise

        ranked = rank_leads(leads, preferences)
        logger.info("Ranked %d of %d open leads for provider %s", len(ranked), len(leads), provider_id)
        return ranked
