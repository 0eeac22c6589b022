"""
Model configuration for the Valuation Engine

Every weight, bucket threshold and adjustment constant used by the feature,
comparable and estimate steps lives here, so the heuristic model can be
audited in one place and swapped with dataclasses.replace().
"""

from dataclasses import dataclass
from typing import Final


# =============================================================================
# Configuration Constants
# =============================================================================

# Size normalisation domain (sqft)
SIZE_SCORE_MIN_SQFT: Final[int] = 300
SIZE_SCORE_MAX_SQFT: Final[int] = 10_000

# Defaults applied by normalize_features() for missing mandatory scores
DEFAULT_LOCATION_SCORE: Final[float] = 0.5
DEFAULT_SIZE_SCORE: Final[float] = 0.5
DEFAULT_AMENITY_SCORE: Final[float] = 0.3
DEFAULT_AGE_SCORE: Final[float] = 0.5

# Candidate retrieval
CANDIDATE_AREA_TOLERANCE: Final[float] = 0.20
CANDIDATE_BEDROOM_TOLERANCE: Final[int] = 1
CANDIDATE_OVERFETCH_FACTOR: Final[int] = 3
DEFAULT_COMPARABLES_LIMIT: Final[int] = 10

# Used when a candidate carries no price (AED per sqft)
FALLBACK_PRICE_PER_SQFT: Final[float] = 1500.0

# Price adjustments (AED)
BEDROOM_ADJUSTMENT_AED: Final[float] = 200_000
BATHROOM_ADJUSTMENT_AED: Final[float] = 50_000
LOCATION_ADJUSTMENT_THRESHOLD: Final[float] = 0.1
LOCATION_ADJUSTMENT_FACTOR: Final[float] = 0.15
AGE_ADJUSTMENT_PER_YEAR: Final[float] = 0.02

# Confidence interval
Z_SCORE_95: Final[float] = 1.96
MIN_INTERVAL_RATIO: Final[float] = 0.10
MAX_INTERVAL_RATIO: Final[float] = 0.25

# Confidence level gates
HIGH_CONFIDENCE_MIN_COMPS: Final[int] = 8
HIGH_CONFIDENCE_MIN_SIMILARITY: Final[float] = 0.8
MEDIUM_CONFIDENCE_MIN_COMPS: Final[int] = 5
MEDIUM_CONFIDENCE_MIN_SIMILARITY: Final[float] = 0.6

# Accuracy proxy (percent)
MAE_NO_COMPARABLES: Final[float] = 15.0
MAE_NO_VALID_RATIOS: Final[float] = 12.0
MAE_CAP: Final[float] = 25.0


@dataclass(frozen=True)
class SimilarityWeights:
    """Weights of the similarity sub-scores. They sum to 1.0."""
    location: float = 0.30
    size: float = 0.25
    bedrooms: float = 0.15
    bathrooms: float = 0.05
    age: float = 0.15
    amenities: float = 0.10

    @property
    def total(self) -> float:
        return (
            self.location + self.size + self.bedrooms
            + self.bathrooms + self.age + self.amenities
        )


@dataclass(frozen=True)
class ValuationModelConfig:
    """
    Named, overridable constants of the comparative valuation model.

    Bucket tables are (upper_bound, score) pairs checked in order; the
    first bound the value does not exceed wins, otherwise the trailing
    fallback score applies.
    """
    # Feature engineering
    size_min_sqft: int = SIZE_SCORE_MIN_SQFT
    size_max_sqft: int = SIZE_SCORE_MAX_SQFT
    ready_age_buckets: tuple[tuple[int, float], ...] = (
        (2, 1.0), (5, 0.9), (10, 0.75), (20, 0.6),
    )
    ready_age_fallback: float = 0.4
    ready_unknown_year_score: float = 0.75
    off_plan_buckets: tuple[tuple[int, float], ...] = ((1, 0.85), (3, 0.75))
    off_plan_fallback: float = 0.65
    off_plan_unknown_year_score: float = 0.7
    unknown_status_age_score: float = 0.5
    floor_buckets: tuple[tuple[int, float], ...] = (
        (0, 0.3), (5, 0.5), (15, 0.7), (30, 0.85),
    )
    floor_fallback: float = 1.0
    default_location_score: float = DEFAULT_LOCATION_SCORE
    default_size_score: float = DEFAULT_SIZE_SCORE
    default_amenity_score: float = DEFAULT_AMENITY_SCORE
    default_age_score: float = DEFAULT_AGE_SCORE

    # Similarity
    weights: SimilarityWeights = SimilarityWeights()
    location_exact: float = 1.0
    location_same_area: float = 0.9
    location_adjacent: float = 0.7
    location_other: float = 0.3
    size_similarity_buckets: tuple[tuple[float, float], ...] = (
        (0.1, 1.0), (0.2, 0.9), (0.3, 0.7),
    )
    bedroom_similarity: tuple[float, ...] = (1.0, 0.7, 0.4)  # by difference
    bedroom_similarity_fallback: float = 0.2
    bathroom_similarity: tuple[float, ...] = (1.0, 0.8)
    bathroom_similarity_fallback: float = 0.5
    rooms_one_missing: float = 0.5
    age_similarity_buckets: tuple[tuple[int, float], ...] = ((1, 1.0), (3, 0.8), (5, 0.6))
    age_similarity_fallback: float = 0.4
    age_unknown_year_similarity: float = 0.8
    age_different_status_similarity: float = 0.5
    amenity_one_empty_similarity: float = 0.3

    # Candidate retrieval
    candidate_area_tolerance: float = CANDIDATE_AREA_TOLERANCE
    candidate_bedroom_tolerance: int = CANDIDATE_BEDROOM_TOLERANCE
    candidate_overfetch_factor: int = CANDIDATE_OVERFETCH_FACTOR
    fallback_price_per_sqft: float = FALLBACK_PRICE_PER_SQFT

    # Price adjustment
    bedroom_adjustment_aed: float = BEDROOM_ADJUSTMENT_AED
    bathroom_adjustment_aed: float = BATHROOM_ADJUSTMENT_AED
    location_adjustment_threshold: float = LOCATION_ADJUSTMENT_THRESHOLD
    location_adjustment_factor: float = LOCATION_ADJUSTMENT_FACTOR
    age_adjustment_per_year: float = AGE_ADJUSTMENT_PER_YEAR

    # Estimate
    z_score: float = Z_SCORE_95
    min_interval_ratio: float = MIN_INTERVAL_RATIO
    max_interval_ratio: float = MAX_INTERVAL_RATIO
    high_confidence_min_comps: int = HIGH_CONFIDENCE_MIN_COMPS
    high_confidence_min_similarity: float = HIGH_CONFIDENCE_MIN_SIMILARITY
    medium_confidence_min_comps: int = MEDIUM_CONFIDENCE_MIN_COMPS
    medium_confidence_min_similarity: float = MEDIUM_CONFIDENCE_MIN_SIMILARITY
    mae_no_comparables: float = MAE_NO_COMPARABLES
    mae_no_valid_ratios: float = MAE_NO_VALID_RATIOS
    mae_cap: float = MAE_CAP

    def __post_init__(self) -> None:
        """Validate configuration constraints."""
        if self.size_max_sqft <= self.size_min_sqft:
            raise ValueError("size_max_sqft must be greater than size_min_sqft")
        if abs(self.weights.total - 1.0) > 1e-9:
            raise ValueError(f"similarity weights must sum to 1.0, got {self.weights.total}")
        if not 0 <= self.min_interval_ratio <= self.max_interval_ratio:
            raise ValueError("interval ratios must satisfy 0 <= min <= max")
        if self.candidate_overfetch_factor < 1:
            raise ValueError("candidate_overfetch_factor must be at least 1")


DEFAULT_MODEL_CONFIG: Final[ValuationModelConfig] = ValuationModelConfig()


def bucket_score(value: float, buckets, fallback: float) -> float:
    """
    Look up a score from ordered (upper_bound, score) buckets.

    Args:
        value: Value to classify
        buckets: (upper_bound, score) pairs, ascending bounds
        fallback: Score when value exceeds every bound

    Returns:
        Score of the first bucket whose bound is >= value
    """
    for upper_bound, score in buckets:
        if value <= upper_bound:
            return score
    return fallback
