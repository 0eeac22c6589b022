"""
Valuation Engine v1.0

Comparative market valuation for Dubai residential and commercial units:
comparable selection, similarity scoring, price adjustment, a
similarity-weighted estimate with a 95% confidence band, rental yield and
an MAE accuracy proxy.
"""

from .models import (
    PropertyType,
    CompletionStatus,
    PropertyStatus,
    ConfidenceLevel,
    ValuationMethod,
    MarketTrend,
    ValuationAttributes,
    PropertyRecord,
    ManualPropertyInput,
    PropertyFeatures,
    Comparable,
    ComparableStats,
    MarketSnapshot,
    MarketFactors,
    Valuation,
    RentalEstimate,
)
from .config import ValuationModelConfig, SimilarityWeights, DEFAULT_MODEL_CONFIG
from .policy import ValuationPolicy, DEFAULT_POLICY
from .features import FeatureEngineer
from .comparables import ComparablesSelector, SimilarityBreakdown
from .estimator import ValuationEstimator
from .stores import CandidateQuery, PropertyStore, MarketDataProvider, COMPARABLE_STATUSES

__all__ = [
    # Models
    "PropertyType",
    "CompletionStatus",
    "PropertyStatus",
    "ConfidenceLevel",
    "ValuationMethod",
    "MarketTrend",
    "ValuationAttributes",
    "PropertyRecord",
    "ManualPropertyInput",
    "PropertyFeatures",
    "Comparable",
    "ComparableStats",
    "MarketSnapshot",
    "MarketFactors",
    "Valuation",
    "RentalEstimate",
    # Configuration and policy
    "ValuationModelConfig",
    "SimilarityWeights",
    "DEFAULT_MODEL_CONFIG",
    "ValuationPolicy",
    "DEFAULT_POLICY",
    # Engine
    "FeatureEngineer",
    "ComparablesSelector",
    "SimilarityBreakdown",
    "ValuationEstimator",
    # Ports
    "CandidateQuery",
    "PropertyStore",
    "MarketDataProvider",
    "COMPARABLE_STATUSES",
]

__version__ = "1.0"
