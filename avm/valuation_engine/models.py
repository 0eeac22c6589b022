"""
Data models for the Valuation Engine

Defines the target-property capability shared by stored properties and
manual feature bundles, the comparable and market records consumed by the
engine, and the immutable Valuation it produces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable


class PropertyType(Enum):
    """
    Property type classification.

    Exact match only - comparables are never drawn across types.
    """
    APARTMENT = "apartment"
    VILLA = "villa"
    TOWNHOUSE = "townhouse"
    PENTHOUSE = "penthouse"
    LAND = "land"
    COMMERCIAL = "commercial"

    @classmethod
    def from_string(cls, value: str) -> Optional["PropertyType"]:
        """Convert string to PropertyType, case-insensitive."""
        normalised = value.lower().strip().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == normalised:
                return member
        return None


class CompletionStatus(Enum):
    """Construction status of a unit."""
    READY = "ready"
    OFF_PLAN = "off_plan"

    @classmethod
    def from_string(cls, value: str) -> Optional["CompletionStatus"]:
        """Convert string to CompletionStatus, case-insensitive."""
        normalised = value.lower().strip().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == normalised:
                return member
        return None


def parse_property_type(value: str) -> PropertyType:
    """Lenient PropertyType parse; raises ValueError for unknown types."""
    property_type = PropertyType.from_string(str(value))
    if property_type is None:
        raise ValueError(f"Unknown property type: {value!r}")
    return property_type


def parse_completion_status(value: str) -> CompletionStatus:
    """Lenient CompletionStatus parse ("Off-Plan", "off plan")."""
    status = CompletionStatus.from_string(str(value))
    if status is None:
        raise ValueError(f"Unknown completion status: {value!r}")
    return status


class PropertyStatus(Enum):
    """Market status of a stored property record."""
    AVAILABLE = "available"
    SOLD = "sold"
    RESERVED = "reserved"
    OFF_MARKET = "off_market"


class ConfidenceLevel(Enum):
    """
    Coarse confidence label for a valuation.

    High: >= 8 comparables with average similarity > 0.8
    Medium: >= 5 comparables with average similarity > 0.6
    Low: everything else
    """
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ValuationMethod(Enum):
    """Valuation methodology. Only comparative is produced by this engine."""
    COMPARATIVE = "comparative"
    HEDONIC = "hedonic"
    HYBRID = "hybrid"


class MarketTrend(Enum):
    """Direction of the year-over-year price change."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
    UNKNOWN = "unknown"


@runtime_checkable
class ValuationAttributes(Protocol):
    """
    Attributes the engine needs from a property being valued.

    Implemented by both PropertyRecord (stored) and ManualPropertyInput
    (ad hoc), so both travel through the same scoring code.
    """
    property_id: Optional[str]
    community: str
    property_type: PropertyType
    bedrooms: Optional[int]
    bathrooms: Optional[float]
    area_sqft: int
    completion_status: Optional[CompletionStatus]
    completion_year: Optional[int]
    amenities: Sequence[str]
    floor: Optional[int]
    view: Optional[str]
    listed_price: Optional[float]


@dataclass
class PropertyRecord:
    """
    A property as held by the surrounding application's property store.

    `price` is the transaction or asking price used when this record serves
    as a comparable; `listed_price` is exposed for the rental fallback when
    the record is itself the valuation target.
    """
    # Required fields
    property_id: str
    community: str
    property_type: PropertyType
    area_sqft: int

    # Rooms
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None

    # Construction
    completion_status: Optional[CompletionStatus] = None
    completion_year: Optional[int] = None

    # Features
    amenities: Sequence[str] = field(default_factory=list)
    floor: Optional[int] = None
    view: Optional[str] = None

    # Market
    status: PropertyStatus = PropertyStatus.AVAILABLE
    price: Optional[float] = None

    @property
    def listed_price(self) -> Optional[float]:
        """Price the record is listed or was sold at."""
        return self.price

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PropertyRecord":
        """Create from a dictionary (e.g. a JSON fixture row)."""
        status = data.get("completion_status")
        return cls(
            property_id=str(data["property_id"]),
            community=data["community"],
            property_type=parse_property_type(data["property_type"]),
            area_sqft=int(data["area_sqft"]),
            bedrooms=data.get("bedrooms"),
            bathrooms=data.get("bathrooms"),
            completion_status=parse_completion_status(status) if status else None,
            completion_year=data.get("completion_year"),
            amenities=list(data.get("amenities") or []),
            floor=data.get("floor"),
            view=data.get("view"),
            status=PropertyStatus(data.get("status", PropertyStatus.AVAILABLE.value)),
            price=data.get("price"),
        )


@dataclass(frozen=True)
class ManualPropertyInput:
    """
    Ad hoc feature bundle for a property that is not in the store.

    Validated upstream by the request schema; carries no property id.
    """
    community: str
    property_type: PropertyType
    bedrooms: Optional[int]
    area_sqft: int
    bathrooms: Optional[float] = None
    completion_status: Optional[CompletionStatus] = None
    completion_year: Optional[int] = None
    amenities: Sequence[str] = ()
    floor: Optional[int] = None
    view: Optional[str] = None
    listed_price: Optional[float] = None

    @property
    def property_id(self) -> Optional[str]:
        """Manual bundles are never backed by a stored record."""
        return None


@dataclass
class PropertyFeatures:
    """
    Normalised [0, 1] sub-scores describing a property.

    floor_score and view_score are only present when the property carries
    a floor number or a view description.
    """
    location_score: Optional[float] = None
    size_score: Optional[float] = None
    amenity_score: Optional[float] = None
    age_score: Optional[float] = None
    floor_score: Optional[float] = None
    view_score: Optional[float] = None

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary, dropping absent optional scores."""
        data = {
            "location_score": self.location_score,
            "size_score": self.size_score,
            "amenity_score": self.amenity_score,
            "age_score": self.age_score,
            "floor_score": self.floor_score,
            "view_score": self.view_score,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PropertyFeatures":
        """Create from a dictionary; unknown keys are ignored."""
        return cls(
            location_score=data.get("location_score"),
            size_score=data.get("size_score"),
            amenity_score=data.get("amenity_score"),
            age_score=data.get("age_score"),
            floor_score=data.get("floor_score"),
            view_score=data.get("view_score"),
        )


@dataclass(frozen=True)
class Comparable:
    """
    A scored and price-adjusted comparable property.

    Computed fresh per valuation request and only ever embedded in a
    Valuation; never persisted on its own.
    """
    property_id: str
    similarity_score: float  # [0, 1]
    raw_price: float  # AED, > 0
    adjusted_price: float  # AED, >= 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "property_id": self.property_id,
            "similarity_score": self.similarity_score,
            "raw_price": self.raw_price,
            "adjusted_price": self.adjusted_price,
        }


@dataclass(frozen=True)
class ComparableStats:
    """Summary statistics over raw and adjusted comparable prices."""
    median_price: float
    avg_price: float
    min_price: float
    max_price: float
    median_adjusted_price: float
    avg_adjusted_price: float
    min_adjusted_price: float
    max_adjusted_price: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization."""
        return {
            "median_price": self.median_price,
            "avg_price": self.avg_price,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "median_adjusted_price": self.median_adjusted_price,
            "avg_adjusted_price": self.avg_adjusted_price,
            "min_adjusted_price": self.min_adjusted_price,
            "max_adjusted_price": self.max_adjusted_price,
        }


@dataclass(frozen=True)
class MarketSnapshot:
    """Community and property-type level market figures at a point in time."""
    community: str
    property_type: PropertyType
    avg_price_sqft: float
    avg_rent_sqft: float
    transaction_count: int
    price_change_yoy: float  # percent
    as_of_date: date
    source: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketSnapshot":
        """Create from a dictionary (e.g. a JSON fixture row)."""
        return cls(
            community=data["community"],
            property_type=parse_property_type(data["property_type"]),
            avg_price_sqft=float(data["avg_price_sqft"]),
            avg_rent_sqft=float(data.get("avg_rent_sqft") or 0),
            transaction_count=int(data.get("transaction_count", 0)),
            price_change_yoy=float(data.get("price_change_yoy") or 0),
            as_of_date=date.fromisoformat(data["as_of_date"]),
            source=data.get("source", "internal"),
        )


@dataclass(frozen=True)
class MarketFactors:
    """Best-effort market context attached to a valuation."""
    avg_price_sqft: float
    trend: MarketTrend
    transaction_volume: int

    @property
    def is_degraded(self) -> bool:
        """True when no market snapshot backed these figures."""
        return self.trend == MarketTrend.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "avg_price_sqft": self.avg_price_sqft,
            "trend": self.trend.value,
            "transaction_volume": self.transaction_volume,
        }


@dataclass(frozen=True)
class Valuation:
    """
    Complete valuation result for a target property.

    Immutable once created. A new request produces a new Valuation; the
    caller is responsible for storing it.
    """
    id: str
    property_id: Optional[str]

    # Core valuation
    estimated_value_aed: float
    confidence_low_aed: float
    confidence_high_aed: float
    confidence_level: ConfidenceLevel
    method: ValuationMethod

    # Supporting evidence
    comparable_properties: tuple[Comparable, ...]
    features: Mapping[str, float]
    market_factors: MarketFactors

    # Derived figures
    price_per_sqft: float
    estimated_rent_aed: float
    gross_yield_pct: float
    mae: float  # percent, [0, 25]

    # Audit
    requested_by: str
    created_at: datetime

    @property
    def comparables_count(self) -> int:
        """Number of comparables used."""
        return len(self.comparable_properties)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "property_id": self.property_id,
            "estimated_value_aed": self.estimated_value_aed,
            "confidence_low_aed": self.confidence_low_aed,
            "confidence_high_aed": self.confidence_high_aed,
            "confidence_level": self.confidence_level.value,
            "method": self.method.value,
            "comparable_properties": [c.to_dict() for c in self.comparable_properties],
            "features": dict(self.features),
            "market_factors": self.market_factors.to_dict(),
            "price_per_sqft": self.price_per_sqft,
            "estimated_rent_aed": self.estimated_rent_aed,
            "gross_yield_pct": self.gross_yield_pct,
            "mae": self.mae,
            "requested_by": self.requested_by,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class RentalEstimate:
    """Rental figures derived for a property."""
    property_id: Optional[str]
    annual_rent_aed: float
    monthly_rent_aed: float
    gross_yield_pct: float
    based_on_price_aed: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "property_id": self.property_id,
            "annual_rent_aed": self.annual_rent_aed,
            "monthly_rent_aed": self.monthly_rent_aed,
            "gross_yield_pct": self.gross_yield_pct,
            "based_on_price_aed": self.based_on_price_aed,
        }
