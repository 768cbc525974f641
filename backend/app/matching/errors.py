"""
Errors raised by the hospital matching engine.

Routes translate these into HTTP responses:
    ValidationError    -> 400
    CatalogUnavailable -> 503
    MatchTimeout       -> 504
"""


class MatchingError(Exception):
    """Base class for matching engine errors."""


class ValidationError(MatchingError):
    """The patient request cannot be turned into an Intent (missing condition)."""


class CatalogUnavailable(MatchingError):
    """The read-only hospital/condition catalog could not be read."""


class MatchTimeout(MatchingError):
    """Scoring did not finish within the request timeout."""
