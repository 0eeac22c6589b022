"""
Read ports for the valuation core.

The engine depends only on these two interfaces; the surrounding
application plugs in its own storage. In-memory implementations live in
avm.property_store and avm.market_data.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Final, Optional

from .models import (
    MarketSnapshot,
    PropertyRecord,
    PropertyStatus,
    PropertyType,
)


# Statuses whose prices are usable as comparable evidence
COMPARABLE_STATUSES: Final[frozenset[PropertyStatus]] = frozenset(
    {PropertyStatus.SOLD, PropertyStatus.AVAILABLE}
)


@dataclass(frozen=True)
class CandidateQuery:
    """
    Filter criteria for comparable candidates.

    A candidate qualifies when it has the same type, an area in
    [min_area_sqft, max_area_sqft], an allowed status, and a community
    equal to `community` or containing one of `neighbour_keywords`.
    Bedroom bounds apply only when set.
    """
    property_type: PropertyType
    community: str
    min_area_sqft: float
    max_area_sqft: float
    limit: int
    neighbour_keywords: tuple[str, ...] = ()
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    statuses: frozenset[PropertyStatus] = field(default=COMPARABLE_STATUSES)
    exclude_id: Optional[str] = None

    def matches_community(self, community: str) -> bool:
        """Same community (case-insensitive) or a neighbouring one."""
        candidate = (community or "").lower().strip()
        if candidate == self.community.lower().strip():
            return True
        return any(keyword in candidate for keyword in self.neighbour_keywords)

    def matches(self, record: PropertyRecord) -> bool:
        """True when the record satisfies every criterion."""
        if record.property_type != self.property_type:
            return False
        if self.exclude_id is not None and record.property_id == self.exclude_id:
            return False
        if record.status not in self.statuses:
            return False
        if not self.min_area_sqft <= record.area_sqft <= self.max_area_sqft:
            return False
        if self.min_bedrooms is not None or self.max_bedrooms is not None:
            if record.bedrooms is None:
                return False
            if self.min_bedrooms is not None and record.bedrooms < self.min_bedrooms:
                return False
            if self.max_bedrooms is not None and record.bedrooms > self.max_bedrooms:
                return False
        return self.matches_community(record.community)


class PropertyStore(ABC):
    """Read-only source of stored property records."""

    @abstractmethod
    async def find_candidates(self, query: CandidateQuery) -> list[PropertyRecord]:
        """
        Fetch comparable candidates.

        Args:
            query: Candidate filter criteria

        Returns:
            At most query.limit matching records (empty if none)
        """
        ...

    @abstractmethod
    async def get_by_id(self, property_id: str) -> Optional[PropertyRecord]:
        """
        Fetch a single property.

        Returns:
            PropertyRecord if found, None otherwise
        """
        ...


class MarketDataProvider(ABC):
    """Read-only source of market snapshots."""

    @abstractmethod
    async def get_latest_snapshot(
        self,
        community: str,
        property_type: PropertyType,
    ) -> Optional[MarketSnapshot]:
        """
        Latest snapshot for a community and property type.

        Returns:
            MarketSnapshot if one exists, None otherwise
        """
        ...
