"""
In-memory Market Data Provider

Serves MarketSnapshot records for the valuation core and the read-only
market analytics the valuation screens show alongside an estimate:
trends over time, year-over-year change, cross-community statistics, top
performers and most active markets.

Snapshot ingestion is owned by the surrounding application; this provider
is seeded from a list or a JSON dataset.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Union

from avm.valuation_engine import MarketDataProvider, MarketSnapshot, PropertyType


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Window of "current" data for cross-community statistics
RECENT_WINDOW_DAYS = 90

DEFAULT_TRENDS_MONTHS = 12
DEFAULT_RANKING_LIMIT = 10


@dataclass(frozen=True)
class MarketStatistics:
    """Aggregate price figures across communities."""
    avg_price_sqft: float
    min_price_sqft: float
    max_price_sqft: float
    total_transactions: int
    communities_count: int


@dataclass(frozen=True)
class ActiveMarket:
    """A community ranked by recent transaction volume."""
    community: str
    total_transactions: int
    avg_price_sqft: float


def _same_market(snapshot: MarketSnapshot, community: str, property_type: PropertyType) -> bool:
    return (
        snapshot.community.lower().strip() == community.lower().strip()
        and snapshot.property_type == property_type
    )


def _months_before(reference: date, months: int) -> date:
    """Same day `months` calendar months earlier, clamped to month end."""
    year = reference.year + (reference.month - 1 - months) // 12
    month = (reference.month - 1 - months) % 12 + 1
    day = reference.day
    while day > 28:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1
    return date(year, month, day)


class InMemoryMarketDataProvider(MarketDataProvider):
    """MarketDataProvider over an in-memory list of snapshots."""

    def __init__(
        self,
        snapshots: Iterable[MarketSnapshot] = (),
        reference_date: date = None,
    ):
        """
        Initialize the provider.

        Args:
            snapshots: Initial market snapshots
            reference_date: "Today" for windowed queries (default: today)
        """
        self._snapshots: list[MarketSnapshot] = list(snapshots)
        self._reference_date = reference_date or date.today()

    def add(self, snapshot: MarketSnapshot) -> None:
        """Add a snapshot."""
        self._snapshots.append(snapshot)

    def __len__(self) -> int:
        return len(self._snapshots)

    async def get_latest_snapshot(
        self,
        community: str,
        property_type: PropertyType,
    ) -> Optional[MarketSnapshot]:
        """Most recent snapshot for the community and type, or None."""
        return self.latest(community, property_type)

    def latest(
        self,
        community: str,
        property_type: PropertyType,
    ) -> Optional[MarketSnapshot]:
        matching = [s for s in self._snapshots if _same_market(s, community, property_type)]
        if not matching:
            return None
        return max(matching, key=lambda s: s.as_of_date)

    # =========================================================================
    # Analytics
    # =========================================================================

    def get_market_trends(
        self,
        community: str,
        property_type: PropertyType,
        months_back: int = DEFAULT_TRENDS_MONTHS,
    ) -> List[MarketSnapshot]:
        """Snapshots of the last `months_back` months, oldest first."""
        start = _months_before(self._reference_date, months_back)
        trend = [
            s for s in self._snapshots
            if _same_market(s, community, property_type) and s.as_of_date >= start
        ]
        return sorted(trend, key=lambda s: s.as_of_date)

    def calculate_yoy_change(
        self,
        community: str,
        property_type: PropertyType,
    ) -> Optional[float]:
        """
        Year-over-year change of average price per sqft (percent, 2 dp).

        Compares the latest snapshot with the latest one dated at least a
        year earlier. None when either is missing.
        """
        current = self.latest(community, property_type)
        if current is None:
            return None

        one_year_ago = _months_before(current.as_of_date, 12)
        historical = [
            s for s in self._snapshots
            if _same_market(s, community, property_type) and s.as_of_date <= one_year_ago
        ]
        if not historical:
            return None

        previous = max(historical, key=lambda s: s.as_of_date)
        if previous.avg_price_sqft <= 0:
            return None

        change = (current.avg_price_sqft - previous.avg_price_sqft) / previous.avg_price_sqft * 100
        return round(change, 2)

    def _recent(self, property_type: Optional[PropertyType]) -> List[MarketSnapshot]:
        cutoff = self._reference_date - timedelta(days=RECENT_WINDOW_DAYS)
        return [
            s for s in self._snapshots
            if s.as_of_date >= cutoff
            and (property_type is None or s.property_type == property_type)
        ]

    def get_market_statistics(
        self,
        property_type: Optional[PropertyType] = None,
    ) -> MarketStatistics:
        """Aggregate price per sqft and volume over the last 90 days."""
        recent = self._recent(property_type)
        if not recent:
            return MarketStatistics(0.0, 0.0, 0.0, 0, 0)

        prices = [s.avg_price_sqft for s in recent]
        return MarketStatistics(
            avg_price_sqft=sum(prices) / len(prices),
            min_price_sqft=min(prices),
            max_price_sqft=max(prices),
            total_transactions=sum(s.transaction_count for s in recent),
            communities_count=len({s.community.lower().strip() for s in recent}),
        )

    def get_top_performing_communities(
        self,
        property_type: PropertyType,
        limit: int = DEFAULT_RANKING_LIMIT,
    ) -> List[MarketSnapshot]:
        """Snapshots ordered by YoY price change, then recency (both descending)."""
        snapshots = [s for s in self._snapshots if s.property_type == property_type]
        snapshots.sort(key=lambda s: (s.price_change_yoy, s.as_of_date), reverse=True)
        return snapshots[:limit]

    def get_most_active_markets(
        self,
        property_type: Optional[PropertyType] = None,
        limit: int = DEFAULT_RANKING_LIMIT,
    ) -> List[ActiveMarket]:
        """Communities ranked by transactions over the last 90 days."""
        grouped: dict[str, list[MarketSnapshot]] = {}
        for snapshot in self._recent(property_type):
            grouped.setdefault(snapshot.community, []).append(snapshot)

        markets = [
            ActiveMarket(
                community=community,
                total_transactions=sum(s.transaction_count for s in rows),
                avg_price_sqft=sum(s.avg_price_sqft for s in rows) / len(rows),
            )
            for community, rows in grouped.items()
        ]
        markets.sort(key=lambda m: m.total_transactions, reverse=True)
        return markets[:limit]

    @classmethod
    def from_json(
        cls,
        path: Union[str, Path],
        reference_date: date = None,
    ) -> "InMemoryMarketDataProvider":
        """
        Load snapshots from a JSON file.

        Accepts either a list of snapshot objects or an object with a
        "market_data" list (the CLI dataset format).
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        rows = data.get("market_data", []) if isinstance(data, dict) else data
        provider = cls(
            (MarketSnapshot.from_dict(row) for row in rows),
            reference_date=reference_date,
        )
        logger.info("Loaded %d market snapshots from %s", len(provider), path)
        return provider
