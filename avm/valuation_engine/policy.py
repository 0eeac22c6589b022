"""
Valuation policy tables

Hand-authored lookup tables for community desirability, community
adjacency, typical rental yields, and the amenity and view vocabularies.
These are market heuristics, not geographic or transactional ground truth;
swap in a different ValuationPolicy to change them without touching the
scoring code.

All rules are case-insensitive substring matches. Order matters: the first
matching rule wins, so more specific or premium keys are listed first.
"""

from dataclasses import dataclass
from typing import Final, Iterable, Optional


# =============================================================================
# Rule Tables
# =============================================================================

# (keywords, desirability score)
COMMUNITY_SCORES: Final[tuple[tuple[tuple[str, ...], float], ...]] = (
    # Premium communities
    (("palm jumeirah",), 1.0),
    (("downtown dubai", "downtown"), 0.95),
    (("dubai marina", "marina"), 0.90),
    (("business bay",), 0.85),
    (("emirates hills",), 0.95),
    (("arabian ranches",), 0.80),
    (("jumeirah beach residence", "jbr"), 0.88),
    # Mid-tier communities
    (("jumeirah village circle", "jvc"), 0.70),
    (("jumeirah village triangle", "jvt"), 0.68),
    (("dubai hills",), 0.82),
    (("motor city",), 0.65),
    (("sports city",), 0.63),
    (("international city",), 0.50),
    (("discovery gardens",), 0.60),
)
DEFAULT_COMMUNITY_SCORE: Final[float] = 0.50

# Keywords naming a wider area; two communities sharing one are "same area"
AREA_KEYWORDS: Final[tuple[str, ...]] = ("marina", "downtown", "palm")

# Symmetric pairs of communities treated as neighbours
ADJACENT_COMMUNITIES: Final[tuple[tuple[str, str], ...]] = (
    ("marina", "jbr"),
    ("marina", "business bay"),
    ("downtown", "business bay"),
    ("downtown", "bur dubai"),
    ("jvc", "jvt"),
    ("jvc", "arjan"),
)

# (keyword, typical gross yield percent)
TYPICAL_YIELDS: Final[tuple[tuple[str, float], ...]] = (
    # Premium communities (lower yields)
    ("palm jumeirah", 5.5),
    ("downtown", 6.5),
    ("emirates hills", 5.0),
    # Mid-tier communities
    ("marina", 7.0),
    ("business bay", 7.5),
    ("jbr", 6.8),
    # Value communities (higher yields)
    ("jvc", 7.5),
    ("jvt", 7.8),
    ("international city", 8.5),
)
DEFAULT_TYPICAL_YIELD: Final[float] = 7.0

# (canonical amenity, synonyms, weight); each canonical amenity counts once
AMENITY_WEIGHTS: Final[tuple[tuple[str, tuple[str, ...], float], ...]] = (
    ("pool", ("pool", "swimming"), 0.15),
    ("gym", ("gym", "fitness"), 0.10),
    ("parking", ("parking", "garage"), 0.10),
    ("security", ("security", "guard"), 0.05),
    ("maid's room", ("maid",), 0.10),
    ("balcony", ("balcony", "terrace"), 0.08),
    ("smart home", ("smart",), 0.07),
    ("concierge", ("concierge",), 0.06),
    ("spa", ("spa", "sauna"), 0.08),
    ("garden", ("garden", "landscaped"), 0.06),
    ("beach access", ("beach access", "private beach"), 0.12),
)

# (keywords, view score)
VIEW_SCORES: Final[tuple[tuple[tuple[str, ...], float], ...]] = (
    (("sea", "ocean", "beach"), 1.0),
    (("golf",), 0.9),
    (("marina", "canal"), 0.85),
    (("skyline", "city"), 0.75),
    (("park", "garden"), 0.65),
    (("pool",), 0.6),
)
DEFAULT_VIEW_SCORE: Final[float] = 0.5


def _normalise(text: Optional[str]) -> str:
    return (text or "").lower().strip()


def first_match(text: Optional[str], rules: Iterable, default: float) -> float:
    """
    Return the score of the first rule whose keywords occur in text.

    Args:
        text: Free-text value (community, view, ...)
        rules: Ordered (keywords, score) rules; keywords may be a str or tuple
        default: Score when no rule matches

    Returns:
        Matched score or default
    """
    normalised = _normalise(text)
    for keywords, score in rules:
        if isinstance(keywords, str):
            keywords = (keywords,)
        if any(keyword in normalised for keyword in keywords):
            return score
    return default


@dataclass(frozen=True)
class ValuationPolicy:
    """
    Replaceable set of policy tables used by the engine.

    The default instance holds the tables above; tests and deployments may
    construct their own.
    """
    community_scores: tuple = COMMUNITY_SCORES
    default_community_score: float = DEFAULT_COMMUNITY_SCORE
    area_keywords: tuple[str, ...] = AREA_KEYWORDS
    adjacent_communities: tuple[tuple[str, str], ...] = ADJACENT_COMMUNITIES
    typical_yields: tuple[tuple[str, float], ...] = TYPICAL_YIELDS
    default_typical_yield: float = DEFAULT_TYPICAL_YIELD
    amenity_weights: tuple = AMENITY_WEIGHTS
    view_scores: tuple = VIEW_SCORES
    default_view_score: float = DEFAULT_VIEW_SCORE

    def community_score(self, community: Optional[str]) -> float:
        """Desirability of a community in [0, 1]."""
        return first_match(community, self.community_scores, self.default_community_score)

    def typical_yield(self, community: Optional[str]) -> float:
        """Typical gross rental yield (percent) for a community."""
        return first_match(community, self.typical_yields, self.default_typical_yield)

    def view_score(self, view: Optional[str]) -> float:
        """Score of a view description; unmatched views get the default."""
        return first_match(view, self.view_scores, self.default_view_score)

    def shares_area(self, community_a: Optional[str], community_b: Optional[str]) -> bool:
        """True when both communities mention the same area keyword."""
        a, b = _normalise(community_a), _normalise(community_b)
        return any(k in a and k in b for k in self.area_keywords)

    def are_adjacent(self, community_a: Optional[str], community_b: Optional[str]) -> bool:
        """True when the two communities form an adjacency pair (either order)."""
        a, b = _normalise(community_a), _normalise(community_b)
        for first, second in self.adjacent_communities:
            if (first in a and second in b) or (second in a and first in b):
                return True
        return False

    def neighbour_keywords(self, community: Optional[str]) -> tuple[str, ...]:
        """
        Substrings that qualify a candidate community as nearby.

        Includes the area keywords the community mentions and the
        adjacency partners of any keyword it contains.
        """
        normalised = _normalise(community)
        keywords: list[str] = []
        for keyword in self.area_keywords:
            if keyword in normalised and keyword not in keywords:
                keywords.append(keyword)
        for first, second in self.adjacent_communities:
            if first in normalised and second not in keywords:
                keywords.append(second)
            if second in normalised and first not in keywords:
                keywords.append(first)
        return tuple(keywords)

    def matched_amenities(self, amenities: Iterable[str]) -> list[str]:
        """Canonical amenities present in a free-text amenity list."""
        normalised = [_normalise(a) for a in amenities or ()]
        matched = []
        for canonical, synonyms, _weight in self.amenity_weights:
            if any(s in a for a in normalised for s in synonyms):
                matched.append(canonical)
        return matched

    def amenity_weight(self, canonical: str) -> float:
        for name, _synonyms, weight in self.amenity_weights:
            if name == canonical:
                return weight
        return 0.0


DEFAULT_POLICY: Final[ValuationPolicy] = ValuationPolicy()
