"""
Utility modules for the valuation service.
"""

from .formatting import format_currency, format_percent, format_price_per_sqft
from .config import Config

__all__ = ["format_currency", "format_percent", "format_price_per_sqft", "Config"]
