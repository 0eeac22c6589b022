"""
Tests for the valuation estimator.

Verifies:
- Ten identical comparables reproduce their price exactly
- No comparables raises InsufficientDataError (never a zero estimate)
- Confidence interval bounds and clamping
- Confidence level gates (7 comparables never reach High)
- Rental estimate, gross yield guards and MAE proxy
- Optional market data degrades; mandatory candidate fetch fails loudly
"""

import asyncio
import dataclasses
import logging

import pytest
from datetime import date
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from avm.exceptions import (
    DataSourceUnavailableError,
    InsufficientDataError,
    InvalidInputError,
)
from avm.market_data import InMemoryMarketDataProvider
from avm.property_store import InMemoryPropertyStore
from avm.valuation_engine import (
    Comparable,
    CompletionStatus,
    ConfidenceLevel,
    ManualPropertyInput,
    MarketDataProvider,
    MarketSnapshot,
    MarketTrend,
    PropertyRecord,
    PropertyStatus,
    PropertyType,
    ValuationEstimator,
    ValuationMethod,
)


# =============================================================================
# Test Doubles
# =============================================================================

class SlowPropertyStore(InMemoryPropertyStore):
    """Store whose candidate fetch never finishes in time."""

    async def find_candidates(self, query):
        await asyncio.sleep(1)
        return await super().find_candidates(query)


class BrokenPropertyStore(InMemoryPropertyStore):
    async def find_candidates(self, query):
        raise ConnectionError("database connection refused")


class LateBrokenPropertyStore(InMemoryPropertyStore):
    """Store that fails after other reads have had a chance to start."""

    async def find_candidates(self, query):
        await asyncio.sleep(0.01)
        raise ConnectionError("database connection reset")


class SlowMarketData(MarketDataProvider):
    async def get_latest_snapshot(self, community, property_type):
        await asyncio.sleep(1)
        return None


class BrokenMarketData(MarketDataProvider):
    async def get_latest_snapshot(self, community, property_type):
        raise ConnectionError("market feed unreachable")


class MalformedMarketData(MarketDataProvider):
    async def get_latest_snapshot(self, community, property_type):
        raise RuntimeError("market feed returned malformed payload")


class RecordingMarketData(MarketDataProvider):
    """Slow provider that records whether its lookup was cancelled."""

    def __init__(self):
        self.cancelled = False

    async def get_latest_snapshot(self, community, property_type):
        try:
            await asyncio.sleep(1)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return None


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def reference_date():
    """Fixed reference date for deterministic tests."""
    return date(2024, 6, 1)


@pytest.fixture
def target():
    """Manual 2-bed, 1,200 sqft Dubai Marina apartment."""
    return ManualPropertyInput(
        community="Dubai Marina",
        property_type=PropertyType.APARTMENT,
        bedrooms=2,
        area_sqft=1200,
        bathrooms=2,
        completion_status=CompletionStatus.READY,
        completion_year=2018,
        amenities=("Pool", "Gym"),
    )


@pytest.fixture
def make_record():
    """Factory fixture for comparable records matching the target."""
    def _create(property_id: str, price: float = 2_400_000, **overrides) -> PropertyRecord:
        fields = dict(
            property_id=property_id,
            community="Dubai Marina",
            property_type=PropertyType.APARTMENT,
            area_sqft=1200,
            bedrooms=2,
            bathrooms=2,
            completion_status=CompletionStatus.READY,
            completion_year=2018,
            amenities=["Pool", "Gym"],
            status=PropertyStatus.SOLD,
            price=price,
        )
        fields.update(overrides)
        return PropertyRecord(**fields)
    return _create


@pytest.fixture
def identical_store(make_record):
    """Ten comparables identical to the target at 2,400,000 AED."""
    return InMemoryPropertyStore(make_record(f"C-{i}") for i in range(10))


@pytest.fixture
def snapshot(reference_date):
    return MarketSnapshot(
        community="Dubai Marina",
        property_type=PropertyType.APARTMENT,
        avg_price_sqft=1950.0,
        avg_rent_sqft=120.0,
        transaction_count=468,
        price_change_yoy=9.6,
        as_of_date=reference_date,
        source="test",
    )


@pytest.fixture
def make_estimator(reference_date):
    """Factory fixture for estimators with a fixed reference date."""
    def _create(store, market_data=None, **kwargs) -> ValuationEstimator:
        return ValuationEstimator(
            property_store=store,
            market_data=market_data,
            reference_date=reference_date,
            **kwargs,
        )
    return _create


@pytest.fixture
def estimator(make_estimator):
    return make_estimator(InMemoryPropertyStore())


def comp(raw, adjusted=None, similarity=1.0, property_id="C"):
    return Comparable(
        property_id=property_id,
        similarity_score=similarity,
        raw_price=raw,
        adjusted_price=raw if adjusted is None else adjusted,
    )


# =============================================================================
# Test: Estimate Value
# =============================================================================

class TestEstimateValue:
    """Tests for the full estimate pipeline."""

    def test_identical_comparables_reproduce_price(self, make_estimator, identical_store, target):
        valuation = asyncio.run(
            make_estimator(identical_store).estimate_value(target, "user-1")
        )

        assert valuation.estimated_value_aed == 2_400_000
        assert valuation.comparables_count == 10
        assert all(c.similarity_score == 1.0 for c in valuation.comparable_properties)
        assert valuation.confidence_level == ConfidenceLevel.HIGH
        assert valuation.price_per_sqft == pytest.approx(2000)
        assert valuation.mae == 0.0

    def test_zero_spread_uses_minimum_interval(self, make_estimator, identical_store, target):
        valuation = asyncio.run(
            make_estimator(identical_store).estimate_value(target, "user-1")
        )

        assert valuation.confidence_low_aed == pytest.approx(2_160_000)
        assert valuation.confidence_high_aed == pytest.approx(2_640_000)

    def test_valuation_metadata(self, make_estimator, identical_store, target):
        valuation = asyncio.run(
            make_estimator(identical_store).estimate_value(target, "analyst@example.com")
        )

        assert valuation.property_id is None
        assert valuation.method == ValuationMethod.COMPARATIVE
        assert valuation.requested_by == "analyst@example.com"
        assert valuation.created_at.tzinfo is not None
        assert set(valuation.features) >= {
            "location_score", "size_score", "amenity_score", "age_score",
        }

    def test_each_request_is_a_new_valuation(self, make_estimator, identical_store, target):
        estimator = make_estimator(identical_store)

        first = asyncio.run(estimator.estimate_value(target, "user-1"))
        second = asyncio.run(estimator.estimate_value(target, "user-1"))

        assert first.id != second.id
        assert first.estimated_value_aed == second.estimated_value_aed

    def test_valuation_is_immutable(self, make_estimator, identical_store, target):
        valuation = asyncio.run(
            make_estimator(identical_store).estimate_value(target, "user-1")
        )

        with pytest.raises(dataclasses.FrozenInstanceError):
            valuation.estimated_value_aed = 1
        with pytest.raises(TypeError):
            valuation.features["location_score"] = 0.0

    def test_no_comparables_raises(self, estimator, target):
        with pytest.raises(InsufficientDataError):
            asyncio.run(estimator.estimate_value(target, "user-1"))

    def test_non_positive_area_raises(self, estimator, target):
        with pytest.raises(InvalidInputError):
            asyncio.run(estimator.estimate_value(dataclasses.replace(target, area_sqft=0), "u"))

    @pytest.mark.parametrize("prices", [
        [2_400_000] * 3,
        [1_800_000, 2_400_000, 3_100_000],
        [900_000, 4_000_000],
        [2_000_000, 2_050_000, 2_100_000, 2_150_000, 2_200_000, 2_250_000],
    ])
    def test_estimate_within_interval(self, make_estimator, make_record, target, prices):
        store = InMemoryPropertyStore(
            make_record(f"C-{i}", price=price) for i, price in enumerate(prices)
        )
        valuation = asyncio.run(make_estimator(store).estimate_value(target, "u"))

        assert valuation.confidence_low_aed <= valuation.estimated_value_aed
        assert valuation.estimated_value_aed <= valuation.confidence_high_aed
        assert 0 <= valuation.mae <= 25

    def test_comparables_limit(self, make_estimator, make_record, target):
        store = InMemoryPropertyStore(make_record(f"C-{i}") for i in range(20))
        valuation = asyncio.run(
            make_estimator(store, comparables_limit=5).estimate_value(target, "u")
        )

        assert valuation.comparables_count == 5


# =============================================================================
# Test: Market Data
# =============================================================================

class TestMarketData:
    """Tests for optional market data and the mandatory candidate fetch."""

    def test_snapshot_drives_rent_and_trend(self, make_estimator, identical_store, target, snapshot):
        market = InMemoryMarketDataProvider([snapshot])
        valuation = asyncio.run(
            make_estimator(identical_store, market).estimate_value(target, "u")
        )

        assert valuation.market_factors.trend == MarketTrend.UP
        assert valuation.market_factors.avg_price_sqft == 1950.0
        assert valuation.market_factors.transaction_volume == 468
        assert valuation.estimated_rent_aed == pytest.approx(144_000)
        assert valuation.gross_yield_pct == pytest.approx(6.0)

    @pytest.mark.parametrize("change,trend", [
        (-2.5, MarketTrend.DOWN),
        (0.0, MarketTrend.STABLE),
    ])
    def test_trend_direction(self, make_estimator, identical_store, target, snapshot, change, trend):
        market = InMemoryMarketDataProvider([dataclasses.replace(snapshot, price_change_yoy=change)])
        valuation = asyncio.run(
            make_estimator(identical_store, market).estimate_value(target, "u")
        )

        assert valuation.market_factors.trend == trend

    def test_no_provider_is_degraded(self, make_estimator, identical_store, target):
        valuation = asyncio.run(make_estimator(identical_store).estimate_value(target, "u"))

        assert valuation.market_factors.trend == MarketTrend.UNKNOWN
        assert valuation.market_factors.is_degraded
        # Typical Dubai Marina yield (7%) on the estimate
        assert valuation.estimated_rent_aed == pytest.approx(168_000)
        assert valuation.gross_yield_pct == pytest.approx(7.0)

    def test_missing_snapshot_logs_warning(self, make_estimator, identical_store, target, caplog):
        market = InMemoryMarketDataProvider()

        with caplog.at_level(logging.WARNING):
            valuation = asyncio.run(
                make_estimator(identical_store, market).estimate_value(target, "u")
            )

        assert valuation.market_factors.trend == MarketTrend.UNKNOWN
        assert "continuing degraded" in caplog.text

    def test_market_data_timeout_degrades(self, make_estimator, identical_store, target, caplog):
        estimator = make_estimator(identical_store, SlowMarketData(), market_data_timeout=0.01)

        with caplog.at_level(logging.WARNING):
            valuation = asyncio.run(estimator.estimate_value(target, "u"))

        assert valuation.estimated_value_aed == 2_400_000
        assert valuation.market_factors.trend == MarketTrend.UNKNOWN
        assert "timed out" in caplog.text

    def test_market_data_error_degrades(self, make_estimator, identical_store, target):
        estimator = make_estimator(identical_store, BrokenMarketData())

        valuation = asyncio.run(estimator.estimate_value(target, "u"))

        assert valuation.market_factors.trend == MarketTrend.UNKNOWN

    def test_unexpected_market_data_error_degrades(self, make_estimator, identical_store, target, caplog):
        estimator = make_estimator(identical_store, MalformedMarketData())

        with caplog.at_level(logging.WARNING):
            valuation = asyncio.run(estimator.estimate_value(target, "u"))

        assert valuation.estimated_value_aed == 2_400_000
        assert valuation.market_factors.trend == MarketTrend.UNKNOWN
        assert "continuing degraded" in caplog.text
        assert "malformed payload" in caplog.text

    def test_candidate_timeout_raises(self, make_estimator, make_record, target):
        store = SlowPropertyStore([make_record("C-1")])
        estimator = make_estimator(store, candidate_timeout=0.01)

        with pytest.raises(DataSourceUnavailableError):
            asyncio.run(estimator.estimate_value(target, "u"))

    def test_candidate_error_raises(self, make_estimator, target):
        with pytest.raises(DataSourceUnavailableError) as excinfo:
            asyncio.run(make_estimator(BrokenPropertyStore()).estimate_value(target, "u"))

        assert excinfo.value.source == "property store"

    def test_candidate_error_cancels_market_lookup(self, make_estimator, target):
        market = RecordingMarketData()
        estimator = make_estimator(LateBrokenPropertyStore(), market)

        async def run():
            with pytest.raises(DataSourceUnavailableError):
                await estimator.estimate_value(target, "u")
            # Give the cancelled lookup a turn to unwind
            await asyncio.sleep(0.05)
            return market.cancelled

        assert asyncio.run(run()) is True


# =============================================================================
# Test: Weighted Estimate and Confidence
# =============================================================================

class TestWeightedEstimate:
    """Tests for the similarity-weighted mean."""

    def test_weights_by_similarity(self, estimator):
        comparables = [comp(1_000_000, similarity=0.5), comp(2_000_000, similarity=1.0)]

        assert estimator.calculate_weighted_estimate(comparables) == pytest.approx(5_000_000 / 3)

    def test_empty_raises(self, estimator):
        with pytest.raises(InsufficientDataError):
            estimator.calculate_weighted_estimate([])

    def test_zero_total_similarity_raises(self, estimator):
        with pytest.raises(InsufficientDataError):
            estimator.calculate_weighted_estimate([comp(1_000_000, similarity=0.0)])


class TestConfidenceInterval:
    """Tests for the clamped 95% interval."""

    def test_no_comparables_uses_maximum_width(self, estimator):
        assert estimator.calculate_confidence_interval(1_000_000, []) == pytest.approx(
            (750_000, 1_250_000)
        )

    def test_single_comparable_uses_minimum_width(self, estimator):
        low, high = estimator.calculate_confidence_interval(1_000_000, [comp(1_000_000)])

        assert (low, high) == pytest.approx((900_000, 1_100_000))

    def test_wide_spread_clamped_to_maximum(self, estimator):
        comparables = [comp(1_000_000), comp(3_000_000)]

        low, high = estimator.calculate_confidence_interval(2_000_000, comparables)

        assert (low, high) == pytest.approx((1_500_000, 2_500_000))

    def test_moderate_spread_between_bounds(self, estimator):
        prices = [900_000, 1_000_000, 1_100_000, 1_000_000]
        comparables = [comp(p) for p in prices]

        low, high = estimator.calculate_confidence_interval(1_000_000, comparables)

        # sample sd = 81,650; margin = 1.96 x 81,650 / 2 = 80,017 -> 10% floor
        assert (low, high) == pytest.approx((900_000, 1_100_000))

    def test_low_never_negative(self, estimator):
        low, _ = estimator.calculate_confidence_interval(0.0, [comp(1_000_000)])
        assert low >= 0


class TestConfidenceLevel:
    """Tests for the High / Medium / Low gates."""

    @pytest.mark.parametrize("count,similarity,expected", [
        (10, 0.95, ConfidenceLevel.HIGH),
        (8, 0.81, ConfidenceLevel.HIGH),
        (8, 0.80, ConfidenceLevel.MEDIUM),
        (7, 0.99, ConfidenceLevel.MEDIUM),
        (5, 0.61, ConfidenceLevel.MEDIUM),
        (5, 0.60, ConfidenceLevel.LOW),
        (4, 0.99, ConfidenceLevel.LOW),
        (0, 0.0, ConfidenceLevel.LOW),
    ])
    def test_levels(self, estimator, count, similarity, expected):
        assert estimator.determine_confidence_level(count, similarity) == expected

    def test_seven_comparables_never_high(self, make_estimator, make_record, target):
        store = InMemoryPropertyStore(make_record(f"C-{i}") for i in range(7))
        valuation = asyncio.run(make_estimator(store).estimate_value(target, "u"))

        assert valuation.confidence_level != ConfidenceLevel.HIGH


# =============================================================================
# Test: Rental and Accuracy
# =============================================================================

class TestRentalAndYield:
    """Tests for rent estimates and gross yield."""

    @pytest.mark.parametrize("price,rent,expected", [
        (1_000_000, 70_000, 7.0),
        (0, 70_000, 0.0),
        (-1_000_000, 70_000, 0.0),
        (1_000_000, 0, 0.0),
        (1_000_000, -5, 0.0),
        (None, 70_000, 0.0),
    ])
    def test_gross_yield(self, price, rent, expected):
        assert ValuationEstimator.calculate_gross_yield(price, rent) == pytest.approx(expected)

    def test_rent_from_snapshot(self, estimator, target, snapshot):
        assert estimator.estimate_rental_value(target, 2_000_000, snapshot) == pytest.approx(144_000)

    def test_rent_from_typical_yield(self, estimator, target):
        palm = dataclasses.replace(target, community="Palm Jumeirah")

        assert estimator.estimate_rental_value(palm, 4_000_000) == pytest.approx(220_000)

    def test_rent_falls_back_to_listed_price(self, estimator, target):
        listed = dataclasses.replace(target, listed_price=2_000_000)

        assert estimator.estimate_rental_value(listed) == pytest.approx(140_000)

    def test_no_price_gives_zero_rent(self, estimator, target):
        assert estimator.estimate_rental_value(target) == 0.0

    def test_snapshot_without_rent_uses_yield(self, estimator, target, snapshot):
        no_rent = dataclasses.replace(snapshot, avg_rent_sqft=0.0)

        assert estimator.estimate_rental_value(target, 1_000_000, no_rent) == pytest.approx(70_000)


class TestMeanAbsoluteError:
    """Tests for the MAE accuracy proxy."""

    def test_no_comparables(self, estimator):
        assert estimator.calculate_mae([]) == 15

    def test_unadjusted_comparables(self, estimator):
        assert estimator.calculate_mae([comp(1_000_000), comp(2_000_000)]) == 0.0

    def test_mean_of_percentage_gaps(self, estimator):
        comparables = [comp(1_000_000, 1_100_000), comp(1_000_000, 900_000)]

        assert estimator.calculate_mae(comparables) == pytest.approx(10.0)

    def test_capped_at_25(self, estimator):
        assert estimator.calculate_mae([comp(1_000_000, 2_000_000)]) == 25

    def test_no_positive_raw_prices(self, estimator):
        assert estimator.calculate_mae([comp(0, 100_000)]) == 12

    def test_non_positive_raw_prices_skipped(self, estimator):
        comparables = [comp(0, 100_000), comp(1_000_000, 1_050_000)]

        assert estimator.calculate_mae(comparables) == pytest.approx(5.0)
