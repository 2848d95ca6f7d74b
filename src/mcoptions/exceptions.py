"""
Exception hierarchy for :mod:`mcoptions`.

All errors derive from :class:`PricingError`, itself a :class:`ValueError`, so
callers that already guard pricing calls with ``except ValueError`` keep working.
"""

from __future__ import annotations

__all__ = [
    "PricingError",
    "ConfigurationError",
    "NumericDomainError",
    "InputParseError",
]


class PricingError(ValueError):
    """Base class for pricing errors."""


class ConfigurationError(PricingError):
    """Raised when a run is configured inconsistently (counts, scheme/payoff combination)."""


class NumericDomainError(PricingError):
    """Raised when a value falls outside its numeric domain or a result is non-finite."""


class InputParseError(PricingError):
    """Raw input could not be turned into a value.

    Parameters
    ----------
    field : str
        Name of the offending input field.
    raw : str
        The raw text that failed to parse.
    reason : str
        Human-readable explanation.
    """

    def __init__(self, field: str, raw: object, reason: str):
        self.field = field
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid value {raw!r} for '{field}': {reason}")

    def __reduce__(self):
        return (type(self), (self.field, self.raw, self.reason))
