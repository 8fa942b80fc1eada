"""
Lead scoring — weighted match between one lead and one provider's preferences.

Four binary components, each 0 or 1:
  category  — lead category is one of the provider's preferred categories
  location  — lead location contains / is contained by a preferred location
  budget    — lead budget falls inside the provider's budget range
  industry  — lead's industry tags intersect the provider's industries

total = 100 × Σ(weight × component). score() is pure and total: missing
preference fields contribute zero, it never raises.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

import yaml

from leadmatch.config import SCORING_CONFIG_PATH

logger = logging.getLogger('matching.scoring')

COMPONENTS = ('category', 'location', 'budget', 'industry')


# ── Scoring config (YAML with hardcoded fallback) ────────────────────────────

_scoring_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing or invalid."""
    return {
        'version': 'default',
        'weights': {
            'category': 0.30,
            'location': 0.25,
            'budget': 0.25,
            'industry': 0.20,
        },
        'category_industries': {
            'web_development': 'technology',
            'software_development': 'technology',
            'graphic_design': 'creative',
            'marketing': 'marketing',
            'accounting': 'finance',
        },
    }


def _weights_valid(weights):
    if not isinstance(weights, dict) or set(weights) != set(COMPONENTS):
        return False
    try:
        values = [float(weights[c]) for c in COMPONENTS]
    except (TypeError, ValueError):
        return False
    return all(v >= 0 for v in values) and math.isclose(sum(values), 1.0, abs_tol=1e-9)


def load_scoring_config(path=None):
    """Load scoring config from YAML, with in-memory cache and hardcoded fallback."""
    global _scoring_config
    if _scoring_config is not None:
        return _scoring_config

    config_path = path or SCORING_CONFIG_PATH
    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Scoring config not loaded (%s), using defaults", e)
        _scoring_config = _default_config()
        return _scoring_config

    if not isinstance(loaded, dict):
        logger.warning("Scoring config in %s is not a mapping, using defaults", config_path)
        _scoring_config = _default_config()
        return _scoring_config

    if not _weights_valid(loaded.get('weights')):
        logger.warning("Scoring weights in %s invalid or do not sum to 1.0, using defaults", config_path)
        _scoring_config = _default_config()
        return _scoring_config

    # Keys absent from the file keep their built-in values
    _scoring_config = _default_config()
    _scoring_config.update(loaded)
    if not isinstance(_scoring_config.get('category_industries'), dict):
        _scoring_config['category_industries'] = _default_config()['category_industries']
    logger.info("Config loaded from YAML (version=%s)", _scoring_config.get('version', '?'))
    return _scoring_config


def get_weights() -> Dict[str, float]:
    weights = load_scoring_config()['weights']
    return {c: float(weights[c]) for c in COMPONENTS}


# ── Types ────────────────────────────────────────────────────────────────────

def _normalize_set(values) -> FrozenSet[str]:
    """Lower-cased, stripped, non-empty strings. Accepts a list or a comma-separated string."""
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = values.split(',')
    out = set()
    for v in values:
        if v is None:
            continue
        s = str(v).strip().lower()
        if s:
            out.add(s)
    return frozenset(out)


def _to_number(value) -> Optional[float]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


@dataclass(frozen=True)
class ProviderPreferences:
    """
    Fixed-shape preference profile. Every field may be empty; an empty field
    is a "no preference" state that contributes zero to the score.

    budget_range is (min, max); either bound may be None for an open-ended range.
    """
    categories: FrozenSet[str] = field(default_factory=frozenset)
    locations: FrozenSet[str] = field(default_factory=frozenset)
    budget_range: Optional[Tuple[Optional[float], Optional[float]]] = None
    industries: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data) -> 'ProviderPreferences':
        """
        Parse a stored preference blob. Accepts the marketplace front-end keys
        (preferredCategories, locationPreference, budgetRange, industries) and
        snake_case equivalents. Unknown or malformed values are dropped.
        """
        if not isinstance(data, dict):
            return cls()

        categories = data.get('categories', data.get('preferredCategories'))
        locations = data.get('locations', data.get('locationPreference'))
        industries = data.get('industries')
        raw_range = data.get('budget_range', data.get('budgetRange'))

        budget_range = None
        if isinstance(raw_range, dict):
            low, high = _to_number(raw_range.get('min')), _to_number(raw_range.get('max'))
            if low is not None or high is not None:
                budget_range = (low, high)
        elif isinstance(raw_range, (list, tuple)) and len(raw_range) == 2:
            low, high = _to_number(raw_range[0]), _to_number(raw_range[1])
            if low is not None or high is not None:
                budget_range = (low, high)

        return cls(
            categories=_normalize_set(categories),
            locations=_normalize_set(locations),
            budget_range=budget_range,
            industries=_normalize_set(industries),
        )

    def to_dict(self):
        low, high = self.budget_range or (None, None)
        return {
            'categories': sorted(self.categories),
            'locations': sorted(self.locations),
            'budget_range': {'min': low, 'max': high} if self.budget_range else None,
            'industries': sorted(self.industries),
        }

    @property
    def is_empty(self):
        return not (self.categories or self.locations or self.budget_range or self.industries)


@dataclass(frozen=True)
class MatchScore:
    """Derived, never persisted."""
    category: int = 0
    location: int = 0
    budget: int = 0
    industry: int = 0
    total: float = 0.0

    def to_dict(self):
        return {
            'category': self.category,
            'location': self.location,
            'budget': self.budget,
            'industry': self.industry,
            'total': self.total,
        }


# ── Components ───────────────────────────────────────────────────────────────

def category_match(lead, prefs: ProviderPreferences) -> int:
    category = (getattr(lead, 'category', None) or '').strip().lower()
    return int(bool(category) and category in prefs.categories)


def location_match(lead, prefs: ProviderPreferences) -> int:
    """Substring containment either way, so 'London' matches 'Central London'."""
    location = (getattr(lead, 'location', None) or '').strip().lower()
    if not location:
        return 0
    for preferred in prefs.locations:
        if preferred in location or location in preferred:
            return 1
    return 0


def budget_match(lead, prefs: ProviderPreferences) -> int:
    budget = _to_number(getattr(lead, 'budget', None))
    if budget is None or prefs.budget_range is None:
        return 0
    low, high = prefs.budget_range
    if low is None and high is None:
        return 0
    if low is not None and budget < low:
        return 0
    if high is not None and budget > high:
        return 0
    return 1


def lead_industry_tags(lead) -> FrozenSet[str]:
    """Category, subcategory and the industry mapped from the category."""
    mapping = {str(k).lower(): str(v).lower()
               for k, v in (load_scoring_config().get('category_industries') or {}).items()}
    tags = _normalize_set([getattr(lead, 'category', None), getattr(lead, 'subcategory', None)])
    mapped = {mapping[t] for t in tags if t in mapping}
    return tags | frozenset(mapped)


def industry_match(lead, prefs: ProviderPreferences) -> int:
    if not prefs.industries:
        return 0
    return int(bool(lead_industry_tags(lead) & prefs.industries))


# ── Public API ───────────────────────────────────────────────────────────────

def score(lead, preferences: Optional[ProviderPreferences]) -> MatchScore:
    """Score one lead against one provider's preferences."""
    if preferences is None or preferences.is_empty:
        return MatchScore()

    components = {
        'category': category_match(lead, preferences),
        'location': location_match(lead, preferences),
        'budget': budget_match(lead, preferences),
        'industry': industry_match(lead, preferences),
    }
    weights = get_weights()
    total = 100 * sum(weights[c] * components[c] for c in COMPONENTS)
    return MatchScore(total=round(total, 2), **components)
