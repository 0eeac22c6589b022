"""
Valuation Estimator for the Valuation Engine

Implements:
- Similarity-weighted price estimate from adjusted comparables
- 95% confidence interval clamped to 10-25% of the estimate
- Confidence level (High / Medium / Low)
- Rental estimate and gross yield
- MAE accuracy proxy
"""

import asyncio
import logging
import math
import uuid
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import List, Optional, Sequence, Tuple

from avm.exceptions import (
    DataSourceUnavailableError,
    InsufficientDataError,
    InvalidInputError,
)

from .comparables import ComparablesSelector
from .config import (
    DEFAULT_COMPARABLES_LIMIT,
    DEFAULT_MODEL_CONFIG,
    ValuationModelConfig,
)
from .features import FeatureEngineer
from .models import (
    Comparable,
    ConfidenceLevel,
    MarketFactors,
    MarketSnapshot,
    MarketTrend,
    Valuation,
    ValuationAttributes,
    ValuationMethod,
)
from .policy import DEFAULT_POLICY, ValuationPolicy
from .stores import MarketDataProvider, PropertyStore


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Seconds to wait on each external read; None waits indefinitely
DEFAULT_CANDIDATE_TIMEOUT = 10.0
DEFAULT_MARKET_DATA_TIMEOUT = 5.0


def market_factors_from_snapshot(snapshot: Optional[MarketSnapshot]) -> MarketFactors:
    """
    Summarise a market snapshot for a valuation.

    Without a snapshot the factors are degraded: trend "unknown",
    volume 0, average price 0.
    """
    if snapshot is None:
        return MarketFactors(
            avg_price_sqft=0.0,
            trend=MarketTrend.UNKNOWN,
            transaction_volume=0,
        )

    if snapshot.price_change_yoy > 0:
        trend = MarketTrend.UP
    elif snapshot.price_change_yoy < 0:
        trend = MarketTrend.DOWN
    else:
        trend = MarketTrend.STABLE

    return MarketFactors(
        avg_price_sqft=snapshot.avg_price_sqft,
        trend=trend,
        transaction_volume=snapshot.transaction_count,
    )


class ValuationEstimator:
    """
    Complete comparative valuation pipeline.

    Pipeline order:
    1. FEATURES - Extract and normalise target features
    2. COMPARABLES + MARKET - Fetched concurrently; market data is optional
    3. ESTIMATE - Similarity-weighted mean of adjusted prices
    4. CONFIDENCE - Interval and level
    5. RENTAL - Rent, gross yield
    6. ACCURACY - MAE proxy
    """

    def __init__(
        self,
        property_store: PropertyStore,
        market_data: Optional[MarketDataProvider] = None,
        config: ValuationModelConfig = DEFAULT_MODEL_CONFIG,
        policy: ValuationPolicy = DEFAULT_POLICY,
        reference_date: date = None,
        candidate_timeout: Optional[float] = DEFAULT_CANDIDATE_TIMEOUT,
        market_data_timeout: Optional[float] = DEFAULT_MARKET_DATA_TIMEOUT,
        comparables_limit: int = DEFAULT_COMPARABLES_LIMIT,
    ):
        """
        Initialize estimator.

        Args:
            property_store: Source of comparable candidates
            market_data: Optional market snapshot source
            config: Model constants
            policy: Community, adjacency and yield tables
            reference_date: Date ages are computed from (default: today)
            candidate_timeout: Seconds allowed for the candidate fetch
            market_data_timeout: Seconds allowed for the snapshot lookup
            comparables_limit: Number of comparables used per estimate
        """
        self._config = config
        self._policy = policy
        self._market_data = market_data
        self._candidate_timeout = candidate_timeout
        self._market_data_timeout = market_data_timeout
        self._comparables_limit = comparables_limit
        self._features = FeatureEngineer(
            config=config, policy=policy, reference_date=reference_date
        )
        self._comparables = ComparablesSelector(
            store=property_store,
            feature_engineer=self._features,
            config=config,
            policy=policy,
        )

    @property
    def feature_engineer(self) -> FeatureEngineer:
        return self._features

    @property
    def comparables_selector(self) -> ComparablesSelector:
        return self._comparables

    async def estimate_value(
        self,
        target: ValuationAttributes,
        requested_by: str,
    ) -> Valuation:
        """
        Estimate the market value of a target property.

        Args:
            target: Stored property or manual feature bundle
            requested_by: Identifier of the requesting user

        Returns:
            A new, immutable Valuation

        Raises:
            InvalidInputError: Target area is not positive
            InsufficientDataError: No comparables, or zero total similarity
            DataSourceUnavailableError: Candidate fetch failed or timed out
        """
        if not target.area_sqft or target.area_sqft <= 0:
            raise InvalidInputError(["area_sqft must be positive"])

        features = self._features.normalize_features(
            self._features.extract_features(target)
        )

        comparables, snapshot = await self._fetch_inputs(target)

        if not comparables:
            raise InsufficientDataError(
                f"No comparable properties found for valuation of "
                f"{target.property_type.value} in {target.community}"
            )

        estimated_value = self.calculate_weighted_estimate(comparables)
        if estimated_value <= 0:
            raise InsufficientDataError(
                "Adjusted comparable prices collapse to zero; cannot estimate value"
            )

        low, high = self.calculate_confidence_interval(estimated_value, comparables)

        avg_similarity = sum(c.similarity_score for c in comparables) / len(comparables)
        confidence_level = self.determine_confidence_level(len(comparables), avg_similarity)

        price_per_sqft = estimated_value / target.area_sqft
        market_factors = market_factors_from_snapshot(snapshot)

        estimated_rent = self.estimate_rental_value(target, estimated_value, snapshot)
        gross_yield = self.calculate_gross_yield(estimated_value, estimated_rent)
        mae = self.calculate_mae(comparables)

        valuation = Valuation(
            id=uuid.uuid4().hex,
            property_id=target.property_id,
            estimated_value_aed=estimated_value,
            confidence_low_aed=low,
            confidence_high_aed=high,
            confidence_level=confidence_level,
            method=ValuationMethod.COMPARATIVE,
            comparable_properties=tuple(comparables),
            features=MappingProxyType(features.to_dict()),
            market_factors=market_factors,
            price_per_sqft=price_per_sqft,
            estimated_rent_aed=estimated_rent,
            gross_yield_pct=gross_yield,
            mae=mae,
            requested_by=requested_by,
            created_at=datetime.now(timezone.utc),
        )

        logger.info(
            "Valuation %s: %.0f AED (%s, %d comparables, trend=%s)",
            valuation.id,
            estimated_value,
            confidence_level.value,
            len(comparables),
            market_factors.trend.value,
        )
        return valuation

    # =========================================================================
    # External Reads
    # =========================================================================

    async def _fetch_inputs(
        self,
        target: ValuationAttributes,
    ) -> Tuple[List[Comparable], Optional[MarketSnapshot]]:
        """
        Comparables and market snapshot, fetched concurrently.

        A failed candidate fetch cancels the pending snapshot lookup.
        """
        snapshot_task = asyncio.ensure_future(self.fetch_market_snapshot(target))
        try:
            comparables = await self._fetch_comparables(target)
        except BaseException:
            snapshot_task.cancel()
            raise
        return comparables, await snapshot_task

    async def _fetch_comparables(self, target: ValuationAttributes) -> List[Comparable]:
        """Mandatory read: failures abort the request."""
        try:
            return await asyncio.wait_for(
                self._comparables.find_comparables(target, self._comparables_limit),
                timeout=self._candidate_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise DataSourceUnavailableError(
                "property store",
                f"candidate fetch timed out after {self._candidate_timeout}s",
            ) from exc
        except OSError as exc:
            raise DataSourceUnavailableError("property store", str(exc)) from exc

    async def fetch_market_snapshot(
        self,
        target: ValuationAttributes,
    ) -> Optional[MarketSnapshot]:
        """
        Optional read: a missing provider, a timeout or a provider error
        degrades to None instead of failing the estimate.
        """
        if self._market_data is None:
            return None

        try:
            snapshot = await asyncio.wait_for(
                self._market_data.get_latest_snapshot(target.community, target.property_type),
                timeout=self._market_data_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Market data timed out after %ss for %s; continuing degraded",
                self._market_data_timeout,
                target.community,
            )
            return None
        except Exception:
            logger.warning(
                "Market data unavailable for %s; continuing degraded",
                target.community,
                exc_info=True,
            )
            return None

        if snapshot is None:
            logger.warning(
                "No market snapshot for %s / %s; continuing degraded",
                target.community,
                target.property_type.value,
            )
        return snapshot

    # =========================================================================
    # Estimate
    # =========================================================================

    def calculate_weighted_estimate(self, comparables: Sequence[Comparable]) -> float:
        """
        Similarity-weighted mean of adjusted prices.

        estimate = sum(adjusted_i x similarity_i) / sum(similarity_i)

        Raises:
            InsufficientDataError: Empty input or zero total similarity
        """
        total_weight = sum(c.similarity_score for c in comparables)
        if not comparables or total_weight <= 0:
            raise InsufficientDataError(
                "Comparables carry no similarity weight; cannot estimate value"
            )

        weighted_sum = sum(c.adjusted_price * c.similarity_score for c in comparables)
        return weighted_sum / total_weight

    def calculate_confidence_interval(
        self,
        estimated_value: float,
        comparables: Sequence[Comparable],
    ) -> Tuple[float, float]:
        """
        95% confidence interval around the estimate.

        margin = 1.96 x sample std dev / sqrt(n), with the half-width kept
        between 10% and 25% of the estimate. Low is floored at 0 and high
        at the estimate itself.

        Args:
            estimated_value: Point estimate (AED)
            comparables: Comparables the estimate was drawn from

        Returns:
            (low, high) in AED
        """
        cfg = self._config
        min_half_width = estimated_value * cfg.min_interval_ratio
        max_half_width = estimated_value * cfg.max_interval_ratio

        n = len(comparables)
        if n == 0:
            half_width = max_half_width
        else:
            prices = [c.adjusted_price for c in comparables]
            mean = sum(prices) / n
            if n > 1:
                variance = sum((p - mean) ** 2 for p in prices) / (n - 1)
            else:
                variance = 0.0
            margin = cfg.z_score * math.sqrt(variance) / math.sqrt(n)
            half_width = min(max(margin, min_half_width), max_half_width)

        low = max(0.0, estimated_value - half_width)
        high = max(estimated_value, estimated_value + half_width)
        return low, high

    def determine_confidence_level(
        self,
        comparables_count: int,
        avg_similarity: float,
    ) -> ConfidenceLevel:
        """
        High: >= 8 comparables, average similarity > 0.8
        Medium: >= 5 comparables, average similarity > 0.6
        Low: otherwise
        """
        cfg = self._config

        if (
            comparables_count >= cfg.high_confidence_min_comps
            and avg_similarity > cfg.high_confidence_min_similarity
        ):
            return ConfidenceLevel.HIGH

        if (
            comparables_count >= cfg.medium_confidence_min_comps
            and avg_similarity > cfg.medium_confidence_min_similarity
        ):
            return ConfidenceLevel.MEDIUM

        return ConfidenceLevel.LOW

    # =========================================================================
    # Rental
    # =========================================================================

    def estimate_rental_value(
        self,
        target: ValuationAttributes,
        purchase_price: Optional[float] = None,
        snapshot: Optional[MarketSnapshot] = None,
    ) -> float:
        """
        Annual rent estimate (AED).

        Uses the snapshot's rent per sqft when available, otherwise the
        community's typical yield applied to the purchase price (or the
        listed price). Returns 0 when no usable price exists.
        """
        if snapshot is not None and snapshot.avg_rent_sqft > 0 and target.area_sqft:
            return snapshot.avg_rent_sqft * target.area_sqft

        sale_price = purchase_price or target.listed_price or 0
        if sale_price <= 0:
            return 0.0

        yield_pct = self._policy.typical_yield(target.community)
        return sale_price * (yield_pct / 100)

    @staticmethod
    def calculate_gross_yield(price: float, annual_rent: float) -> float:
        """Annual rent over price, as a percentage; 0 for non-positive inputs."""
        if not price or price <= 0:
            return 0.0
        if not annual_rent or annual_rent <= 0:
            return 0.0
        return (annual_rent / price) * 100

    # =========================================================================
    # Accuracy
    # =========================================================================

    def calculate_mae(self, comparables: Sequence[Comparable]) -> float:
        """
        Mean absolute percentage gap between raw and adjusted prices.

        15 for no comparables, 12 when no comparable has a positive raw
        price, capped at 25.
        """
        cfg = self._config

        if not comparables:
            return cfg.mae_no_comparables

        errors = [
            abs(c.raw_price - c.adjusted_price) / c.raw_price * 100
            for c in comparables
            if c.raw_price > 0
        ]

        if not errors:
            return cfg.mae_no_valid_ratios

        return min(cfg.mae_cap, sum(errors) / len(errors))

    async def estimate_rental_for(
        self,
        target: ValuationAttributes,
        purchase_price: Optional[float] = None,
    ) -> float:
        """Rental estimate for a target, consulting market data first."""
        snapshot = await self.fetch_market_snapshot(target)
        return self.estimate_rental_value(target, purchase_price, snapshot)
