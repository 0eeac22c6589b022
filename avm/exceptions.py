"""
Valuation errors.

NotFound, InsufficientData and InvalidInput are distinct caller-visible
failures; none of them is ever converted into a zero estimate. A missing
optional source (market data) is not an error: the estimate proceeds and
reports trend "unknown".
"""


# =============================================================================
# Exceptions
# =============================================================================


class ValuationError(Exception):
    """Base class for failures of a valuation request."""

    pass


class NotFoundError(ValuationError):
    """Raised when a supplied property id does not resolve."""

    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property not found: {property_id}")


class InsufficientDataError(ValuationError):
    """Raised when no comparable (or no similarity weight) supports an estimate."""

    pass


class InvalidInputError(ValuationError, ValueError):
    """Raised when a manual feature bundle fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid valuation input: {'; '.join(errors)}")


class DataSourceUnavailableError(ValuationError):
    """Raised when a mandatory read (property lookup, candidates) fails or times out."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")
