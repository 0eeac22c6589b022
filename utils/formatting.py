"""
Formatting utilities.
"""

from typing import Union


def format_currency(amount: Union[int, float], currency: str = "AED") -> str:
    """
    Format an amount as currency, rounded to whole units.

    Args:
        amount: The amount in whole units (e.g., dirhams, not fils).
        currency: Currency code (default AED).

    Returns:
        Formatted currency string, e.g. "AED 2,400,000".
    """
    symbols = {
        "GBP": "£",
        "USD": "$",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    return f"{symbol}{round(amount):,}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"


def format_price_per_sqft(value: float, currency: str = "AED") -> str:
    """Format a price per square foot, e.g. "AED 1,850/sqft"."""
    return f"{format_currency(value, currency)}/sqft"
