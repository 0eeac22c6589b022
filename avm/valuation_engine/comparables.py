"""
Comparable Selection for the Valuation Engine

Implements:
- Candidate retrieval (delegated to a PropertyStore)
- Similarity scoring (location, size, rooms, age, amenities)
- Price adjustment for structural differences
- Summary statistics over raw and adjusted prices
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import DEFAULT_MODEL_CONFIG, ValuationModelConfig, bucket_score
from .features import FeatureEngineer, clamp
from .models import (
    Comparable,
    ComparableStats,
    PropertyRecord,
    ValuationAttributes,
)
from .policy import DEFAULT_POLICY, ValuationPolicy
from .stores import CandidateQuery, PropertyStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimilarityBreakdown:
    """Unweighted similarity sub-scores, each in [0, 1]."""
    location: float
    size: float
    bedrooms: float
    bathrooms: float
    age: float
    amenities: float


def calculate_median(values: Sequence[float]) -> float:
    """
    Median of a sequence.

    Odd count: middle element. Even count: mean of the two middle elements.
    Empty input returns 0.
    """
    if not values:
        return 0.0

    ordered = sorted(values)
    n = len(ordered)
    mid = n // 2

    if n % 2 == 1:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2


class ComparablesSelector:
    """
    Finds, scores and price-adjusts comparables for a target property.

    Pipeline order:
    1. FETCH - Ask the store for candidates (over-fetched)
    2. SCORE - Weighted similarity to the target
    3. ADJUST - Correct each candidate's price towards the target
    4. RANK - Similarity-descending, capped at the limit
    """

    def __init__(
        self,
        store: PropertyStore,
        feature_engineer: FeatureEngineer = None,
        config: ValuationModelConfig = DEFAULT_MODEL_CONFIG,
        policy: ValuationPolicy = DEFAULT_POLICY,
    ):
        """
        Initialize selector.

        Args:
            store: Source of candidate properties
            feature_engineer: Supplies community scores and property age
            config: Model constants (weights, thresholds, adjustments)
            policy: Adjacency and area tables
        """
        self._store = store
        self._config = config
        self._policy = policy
        self._features = feature_engineer or FeatureEngineer(config=config, policy=policy)

    # =========================================================================
    # Retrieval
    # =========================================================================

    def build_candidate_query(
        self,
        target: ValuationAttributes,
        limit: int,
    ) -> CandidateQuery:
        """
        Build candidate criteria for a target.

        Same type, area within +-20%, sold or available, same or
        neighbouring community, bedrooms within +-1 when known, target
        itself excluded, limit x 3 records.
        """
        cfg = self._config
        tolerance = cfg.candidate_area_tolerance

        min_beds = max_beds = None
        if target.bedrooms is not None:
            min_beds = max(0, target.bedrooms - cfg.candidate_bedroom_tolerance)
            max_beds = target.bedrooms + cfg.candidate_bedroom_tolerance

        return CandidateQuery(
            property_type=target.property_type,
            community=target.community,
            neighbour_keywords=self._policy.neighbour_keywords(target.community),
            min_area_sqft=target.area_sqft * (1 - tolerance),
            max_area_sqft=target.area_sqft * (1 + tolerance),
            min_bedrooms=min_beds,
            max_bedrooms=max_beds,
            exclude_id=target.property_id,
            limit=limit * cfg.candidate_overfetch_factor,
        )

    async def fetch_candidates(
        self,
        target: ValuationAttributes,
        limit: int = 10,
    ) -> List[PropertyRecord]:
        """Fetch raw candidates for a target from the store."""
        query = self.build_candidate_query(target, limit)
        candidates = await self._store.find_candidates(query)
        logger.debug(
            "Fetched %d candidates for %s (%s)",
            len(candidates),
            target.community,
            target.property_type.value,
        )
        return candidates

    async def find_comparables(
        self,
        target: ValuationAttributes,
        limit: int = 10,
    ) -> List[Comparable]:
        """
        Find comparables for a target property.

        Args:
            target: Stored property or manual feature bundle
            limit: Maximum number of comparables returned

        Returns:
            Comparables sorted by similarity (descending), at most `limit`
        """
        candidates = await self.fetch_candidates(target, limit)
        return self.rank_candidates(target, candidates, limit)

    def rank_candidates(
        self,
        target: ValuationAttributes,
        candidates: Sequence[PropertyRecord],
        limit: int = 10,
    ) -> List[Comparable]:
        """
        Score, adjust and rank already-fetched candidates.

        Candidates without a price are priced at the fallback AED/sqft.
        """
        comparables = []

        for candidate in candidates:
            if candidate.area_sqft <= 0:
                continue

            similarity = self.calculate_similarity(target, candidate)
            raw_price = self._candidate_price(candidate)
            adjusted_price = self.adjust_for_differences(raw_price, target, candidate)

            logger.debug(
                "Candidate %s: similarity=%.3f raw=%.0f adjusted=%.0f",
                candidate.property_id,
                similarity,
                raw_price,
                adjusted_price,
            )

            comparables.append(
                Comparable(
                    property_id=candidate.property_id,
                    similarity_score=similarity,
                    raw_price=raw_price,
                    adjusted_price=adjusted_price,
                )
            )

        # Stable sort keeps store order for equal scores
        comparables.sort(key=lambda c: c.similarity_score, reverse=True)
        return comparables[:limit]

    def _candidate_price(self, candidate: PropertyRecord) -> float:
        if candidate.price and candidate.price > 0:
            return float(candidate.price)

        logger.warning(
            "Candidate %s has no price; using %.0f AED/sqft fallback",
            candidate.property_id,
            self._config.fallback_price_per_sqft,
        )
        return candidate.area_sqft * self._config.fallback_price_per_sqft

    # =========================================================================
    # Similarity
    # =========================================================================

    def calculate_similarity(
        self,
        target: ValuationAttributes,
        comparable: ValuationAttributes,
    ) -> float:
        """
        Weighted similarity between two properties, clamped to [0, 1].

        Weights: location 30%, size 25%, bedrooms 15%, bathrooms 5%,
        age 15%, amenities 10%.
        """
        breakdown = self.similarity_breakdown(target, comparable)
        w = self._config.weights

        total = (
            breakdown.location * w.location
            + breakdown.size * w.size
            + breakdown.bedrooms * w.bedrooms
            + breakdown.bathrooms * w.bathrooms
            + breakdown.age * w.age
            + breakdown.amenities * w.amenities
        )
        return clamp(total)

    def similarity_breakdown(
        self,
        target: ValuationAttributes,
        comparable: ValuationAttributes,
    ) -> SimilarityBreakdown:
        """Compute each similarity sub-score independently."""
        return SimilarityBreakdown(
            location=self.location_similarity(target.community, comparable.community),
            size=self.size_similarity(target.area_sqft, comparable.area_sqft),
            bedrooms=self.bedroom_similarity(target.bedrooms, comparable.bedrooms),
            bathrooms=self.bathroom_similarity(target.bathrooms, comparable.bathrooms),
            age=self.age_similarity(target, comparable),
            amenities=self.amenity_similarity(target.amenities, comparable.amenities),
        )

    def location_similarity(self, community_a: str, community_b: str) -> float:
        """
        Exact community 1.0; shared area keyword 0.9; adjacent 0.7; else 0.3.
        """
        cfg = self._config
        a = (community_a or "").lower().strip()
        b = (community_b or "").lower().strip()

        if a == b:
            return cfg.location_exact
        if self._policy.shares_area(a, b):
            return cfg.location_same_area
        if self._policy.are_adjacent(a, b):
            return cfg.location_adjacent
        return cfg.location_other

    def size_similarity(self, size_a: float, size_b: float) -> float:
        """
        Based on the difference relative to the mean size.

        < 10%: 1.0, < 20%: 0.9, < 30%: 0.7, otherwise max(0, 1 - diff).
        """
        if not size_a or not size_b:
            return 0.0

        percent_diff = abs(size_a - size_b) / ((size_a + size_b) / 2)

        for upper_bound, score in self._config.size_similarity_buckets:
            if percent_diff < upper_bound:
                return score
        return max(0.0, 1 - percent_diff)

    def bedroom_similarity(self, beds_a: Optional[int], beds_b: Optional[int]) -> float:
        """Exact 1.0, off by one 0.7, by two 0.4, else 0.2."""
        cfg = self._config
        return self._room_similarity(
            beds_a, beds_b, cfg.bedroom_similarity, cfg.bedroom_similarity_fallback
        )

    def bathroom_similarity(self, baths_a: Optional[float], baths_b: Optional[float]) -> float:
        """Exact 1.0, off by one 0.8, else 0.5."""
        cfg = self._config
        return self._room_similarity(
            baths_a, baths_b, cfg.bathroom_similarity, cfg.bathroom_similarity_fallback
        )

    def _room_similarity(self, a, b, by_difference, fallback: float) -> float:
        if a is None and b is None:
            return 1.0
        if a is None or b is None:
            return self._config.rooms_one_missing

        diff = abs(a - b)
        for steps, score in enumerate(by_difference):
            if diff <= steps:
                return score
        return fallback

    def age_similarity(
        self,
        target: ValuationAttributes,
        comparable: ValuationAttributes,
    ) -> float:
        """
        Same completion status: by completion-year gap (<=1 1.0, <=3 0.8,
        <=5 0.6, else 0.4), 0.8 if a year is unknown. Different status 0.5.
        """
        cfg = self._config

        if target.completion_status != comparable.completion_status:
            return cfg.age_different_status_similarity

        if target.completion_year is None or comparable.completion_year is None:
            return cfg.age_unknown_year_similarity

        year_diff = abs(target.completion_year - comparable.completion_year)
        return bucket_score(year_diff, cfg.age_similarity_buckets, cfg.age_similarity_fallback)

    def amenity_similarity(
        self,
        amenities_a: Sequence[str],
        amenities_b: Sequence[str],
    ) -> float:
        """Jaccard similarity of lower-cased amenity sets."""
        set_a = {a.lower().strip() for a in amenities_a or ()}
        set_b = {a.lower().strip() for a in amenities_b or ()}

        if not set_a and not set_b:
            return 1.0
        if not set_a or not set_b:
            return self._config.amenity_one_empty_similarity

        return len(set_a & set_b) / len(set_a | set_b)

    # =========================================================================
    # Price Adjustment
    # =========================================================================

    def adjust_for_differences(
        self,
        comparable_price: float,
        target: ValuationAttributes,
        comparable: ValuationAttributes,
    ) -> float:
        """
        Adjust a comparable's price towards the target's structure.

        Linear heuristic, not a fitted regression:
        1. Size: area difference x comparable's price per sqft
        2. Bedrooms: 200,000 AED per bedroom
        3. Bathrooms: 50,000 AED per bathroom
        4. Location: x (1 + diff x 0.15) when community scores differ by > 0.1
        5. Age: x (1 + (comp_age - target_age) x 0.02)

        Args:
            comparable_price: Comparable's raw price (AED)
            target: Property being valued
            comparable: Comparable property

        Returns:
            Adjusted price, never negative (0 for a non-positive input price)
        """
        if not comparable_price or comparable_price <= 0:
            return 0.0

        cfg = self._config
        adjusted = float(comparable_price)

        if comparable.area_sqft and comparable.area_sqft > 0:
            price_per_sqft = comparable_price / comparable.area_sqft
            adjusted += (target.area_sqft - comparable.area_sqft) * price_per_sqft

        bedroom_diff = (target.bedrooms or 0) - (comparable.bedrooms or 0)
        adjusted += bedroom_diff * cfg.bedroom_adjustment_aed

        bathroom_diff = (target.bathrooms or 0) - (comparable.bathrooms or 0)
        adjusted += bathroom_diff * cfg.bathroom_adjustment_aed

        location_diff = (
            self._features.get_community_score(target.community)
            - self._features.get_community_score(comparable.community)
        )
        if abs(location_diff) > cfg.location_adjustment_threshold:
            adjusted *= 1 + location_diff * cfg.location_adjustment_factor

        age_diff = self._features.property_age(comparable) - self._features.property_age(target)
        adjusted *= 1 + age_diff * cfg.age_adjustment_per_year

        return max(0.0, adjusted)

    # =========================================================================
    # Statistics
    # =========================================================================

    @staticmethod
    def get_comparable_stats(comparables: Sequence[Comparable]) -> ComparableStats:
        """
        Median, average, min and max of raw and adjusted prices.

        Returns all zeros for an empty list.
        """
        if not comparables:
            return ComparableStats(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

        prices = [c.raw_price for c in comparables]
        adjusted = [c.adjusted_price for c in comparables]

        return ComparableStats(
            median_price=calculate_median(prices),
            avg_price=sum(prices) / len(prices),
            min_price=min(prices),
            max_price=max(prices),
            median_adjusted_price=calculate_median(adjusted),
            avg_adjusted_price=sum(adjusted) / len(adjusted),
            min_adjusted_price=min(adjusted),
            max_adjusted_price=max(adjusted),
        )
