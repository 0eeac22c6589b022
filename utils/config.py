"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _optional_float(name: str, default: str) -> Optional[float]:
    """Read a float setting; "none" or an empty value disables it."""
    raw = os.getenv(name, default).strip().lower()
    if raw in ("", "none"):
        return None
    return float(raw)


@dataclass
class Config:
    """
    Runtime configuration of the valuation service.

    Loads from environment variables with sensible defaults. Model
    constants (weights, tolerances, score tables) live in
    ValuationModelConfig, not here.
    """

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("AVM_LOG_LEVEL", "INFO").upper())

    # Comparables
    comparables_limit: int = field(
        default_factory=lambda: int(os.getenv("AVM_COMPARABLES_LIMIT", "10"))
    )
    fallback_price_per_sqft: float = field(
        default_factory=lambda: float(os.getenv("AVM_FALLBACK_PRICE_SQFT", "1500"))
    )

    # External reads (seconds)
    candidate_timeout: Optional[float] = field(
        default_factory=lambda: _optional_float("AVM_CANDIDATE_TIMEOUT", "10")
    )
    market_data_timeout: Optional[float] = field(
        default_factory=lambda: _optional_float("AVM_MARKET_DATA_TIMEOUT", "5")
    )

    # Data
    data_file: Optional[str] = field(default_factory=lambda: os.getenv("AVM_DATA_FILE"))

    def __post_init__(self):
        if self.comparables_limit < 1:
            raise ValueError("comparables_limit must be at least 1")
        if self.fallback_price_per_sqft <= 0:
            raise ValueError("fallback_price_per_sqft must be positive")

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "log_level": self.log_level,
            "comparables_limit": self.comparables_limit,
            "fallback_price_per_sqft": self.fallback_price_per_sqft,
            "candidate_timeout": self.candidate_timeout,
            "market_data_timeout": self.market_data_timeout,
            "data_file": self.data_file,
        }
