"""
Feature Engineering for the Valuation Engine

Converts a property's raw attributes into normalised [0, 1] sub-scores:
- Location (community desirability table)
- Size (linear over a fixed sqft domain)
- Amenities (weighted vocabulary, capped at 1.0)
- Age (completion status and year)
- Floor and view (only when present)

Pure and deterministic: no I/O, and the current year comes from an
injectable reference date.
"""

from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union

from .config import DEFAULT_MODEL_CONFIG, ValuationModelConfig, bucket_score
from .models import CompletionStatus, PropertyFeatures, ValuationAttributes
from .policy import DEFAULT_POLICY, ValuationPolicy


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


class FeatureEngineer:
    """
    Extracts normalised feature scores from a property.

    The same instance is shared with the ComparablesSelector, which uses
    get_community_score() for its location price adjustment.
    """

    def __init__(
        self,
        config: ValuationModelConfig = DEFAULT_MODEL_CONFIG,
        policy: ValuationPolicy = DEFAULT_POLICY,
        reference_date: date = None,
    ):
        """
        Initialize feature engineer.

        Args:
            config: Model constants (buckets, size domain, defaults)
            policy: Community, amenity and view tables
            reference_date: Date the current year is taken from (default: today)
        """
        self._config = config
        self._policy = policy
        self._reference_date = reference_date or date.today()

    @property
    def current_year(self) -> int:
        return self._reference_date.year

    def extract_features(self, prop: ValuationAttributes) -> PropertyFeatures:
        """
        Extract feature scores from a property.

        Args:
            prop: Stored property or manual feature bundle

        Returns:
            PropertyFeatures; floor_score/view_score only when the
            property has a floor or a view
        """
        return PropertyFeatures(
            location_score=self.get_community_score(prop.community),
            size_score=self.calculate_size_score(prop.area_sqft),
            amenity_score=self.calculate_amenity_score(prop.amenities),
            age_score=self.calculate_age_score(prop.completion_status, prop.completion_year),
            floor_score=self.calculate_floor_score(prop.floor) if prop.floor is not None else None,
            view_score=self.calculate_view_score(prop.view) if prop.view else None,
        )

    def get_community_score(self, community: Optional[str]) -> float:
        """
        Desirability score of a community.

        Case-insensitive substring lookup against the ordered community
        table; unknown communities score 0.5.
        """
        return clamp(self._policy.community_score(community))

    def calculate_size_score(self, area_sqft: Optional[float]) -> float:
        """Linear normalisation of area over the configured sqft domain."""
        if not area_sqft or area_sqft <= 0:
            return 0.0

        low, high = self._config.size_min_sqft, self._config.size_max_sqft
        return clamp((area_sqft - low) / (high - low))

    def calculate_amenity_score(self, amenities: Sequence[str]) -> float:
        """Sum of weights of the recognised amenities, capped at 1.0."""
        if not amenities:
            return 0.0

        matched = self._policy.matched_amenities(amenities)
        score = sum(self._policy.amenity_weight(name) for name in matched)
        return clamp(score)

    def calculate_age_score(
        self,
        completion_status: Optional[CompletionStatus],
        completion_year: Optional[int],
    ) -> float:
        """
        Score newer and nearly-complete properties higher.

        Ready units are bucketed by age, off-plan units by years until
        handover. Unknown status scores 0.5.
        """
        cfg = self._config

        if completion_status == CompletionStatus.READY:
            if completion_year is None:
                return cfg.ready_unknown_year_score
            age = self.current_year - completion_year
            return bucket_score(age, cfg.ready_age_buckets, cfg.ready_age_fallback)

        if completion_status == CompletionStatus.OFF_PLAN:
            if completion_year is None:
                return cfg.off_plan_unknown_year_score
            years_to_completion = completion_year - self.current_year
            return bucket_score(years_to_completion, cfg.off_plan_buckets, cfg.off_plan_fallback)

        return cfg.unknown_status_age_score

    def calculate_floor_score(self, floor: int) -> float:
        """Higher floors score higher; ground floor and below score 0.3."""
        return bucket_score(floor, self._config.floor_buckets, self._config.floor_fallback)

    def calculate_view_score(self, view: Optional[str]) -> float:
        """Score a view description; no view scores 0."""
        if not view or not view.strip():
            return 0.0
        return clamp(self._policy.view_score(view))

    def normalize_features(
        self,
        features: Union[PropertyFeatures, Mapping[str, Any]],
    ) -> PropertyFeatures:
        """
        Fill missing mandatory scores with defaults and clamp the rest.

        Accepts extracted features or a mapping from a serialized source.

        Defaults: location 0.5, size 0.5, amenity 0.3, age 0.5.
        """
        if not isinstance(features, PropertyFeatures):
            features = PropertyFeatures.from_dict(features)

        cfg = self._config

        def _fill(value: Optional[float], default: float) -> float:
            if value is None:
                return default
            return clamp(float(value))

        def _optional(value: Optional[float]) -> Optional[float]:
            return None if value is None else clamp(float(value))

        return PropertyFeatures(
            location_score=_fill(features.location_score, cfg.default_location_score),
            size_score=_fill(features.size_score, cfg.default_size_score),
            amenity_score=_fill(features.amenity_score, cfg.default_amenity_score),
            age_score=_fill(features.age_score, cfg.default_age_score),
            floor_score=_optional(features.floor_score),
            view_score=_optional(features.view_score),
        )

    def property_age(self, prop: ValuationAttributes) -> int:
        """
        Years since completion; negative for off-plan units still to be
        handed over, 0 when the completion year is unknown.
        """
        if prop.completion_year is None:
            return 0
        return self.current_year - prop.completion_year
