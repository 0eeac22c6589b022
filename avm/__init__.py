"""
Property AVM - Automated Valuation Core

This package provides the comparative valuation pipeline for Dubai
properties (AED):
1. Target Resolution (stored property id or manual feature bundle)
2. Feature Engineering (normalised 0-1 scores)
3. Comparable Selection (candidate query, similarity, adjustment)
4. Estimation (similarity-weighted estimate, confidence band)
5. Rental Yield and Accuracy (gross yield, MAE proxy)

Persistence, HTTP and authentication belong to the surrounding application,
which plugs in through the PropertyStore and MarketDataProvider ports.
"""

from .exceptions import (
    ValuationError,
    NotFoundError,
    InsufficientDataError,
    InvalidInputError,
    DataSourceUnavailableError,
)

# Valuation Engine v1.0
from .valuation_engine import (
    PropertyType,
    CompletionStatus,
    PropertyStatus,
    ConfidenceLevel,
    MarketTrend,
    PropertyRecord,
    ManualPropertyInput,
    PropertyFeatures,
    Comparable,
    ComparableStats,
    MarketSnapshot,
    MarketFactors,
    Valuation,
    RentalEstimate,
    FeatureEngineer,
    ComparablesSelector,
    ValuationEstimator,
    CandidateQuery,
    PropertyStore,
    MarketDataProvider,
)

# In-memory adapters
from .property_store import InMemoryPropertyStore
from .market_data import InMemoryMarketDataProvider, MarketStatistics, ActiveMarket

# Request schemas and service contract
from .schemas import EstimateValueRequest, RentalEstimateRequest
from .service import ValuationService

__all__ = [
    # Errors
    "ValuationError",
    "NotFoundError",
    "InsufficientDataError",
    "InvalidInputError",
    "DataSourceUnavailableError",
    # Valuation Engine v1.0
    "PropertyType",
    "CompletionStatus",
    "PropertyStatus",
    "ConfidenceLevel",
    "MarketTrend",
    "PropertyRecord",
    "ManualPropertyInput",
    "PropertyFeatures",
    "Comparable",
    "ComparableStats",
    "MarketSnapshot",
    "MarketFactors",
    "Valuation",
    "RentalEstimate",
    "FeatureEngineer",
    "ComparablesSelector",
    "ValuationEstimator",
    "CandidateQuery",
    "PropertyStore",
    "MarketDataProvider",
    # Adapters
    "InMemoryPropertyStore",
    "InMemoryMarketDataProvider",
    "MarketStatistics",
    "ActiveMarket",
    # Service
    "EstimateValueRequest",
    "RentalEstimateRequest",
    "ValuationService",
]

__version__ = "1.0"
