r"""
Option contract value object.

:class:`OptionContract` is the input boundary of the pricing core. It is built
by a caller (possibly through :mod:`mcoptions.inputs`) and stays read-only for
the lifetime of a run. Out-of-domain values are rejected at construction; the
core never substitutes defaults.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from numbers import Integral, Real
from typing import Optional

from .exceptions import ConfigurationError, NumericDomainError

__all__ = ["OptionContract"]


@dataclass(frozen=True)
class OptionContract:
    r"""
    Market and simulation parameters of a single-asset option.

    Attributes
    ----------
    volatility : float
        Annualised volatility :math:`\sigma \ge 0` as a decimal.
    rate : float
        Continuously compounded risk-free rate :math:`r \ge 0` as a decimal.
    expiry : float
        Time to expiry :math:`T \ge 0` in years.
    spot : float
        Spot price :math:`S \ge 0`.
    strike : float
        Strike price :math:`K \ge 0`.
    n_simulations : int
        Number of simulated paths ``NSIM >= 1``.
    n_steps : int or None, default None
        Time steps per path. Required by discretising schemes, ignored by GBM.

    Raises
    ------
    NumericDomainError
        If a price, rate, volatility or time is negative or non-finite.
    ConfigurationError
        If ``n_simulations`` or ``n_steps`` is not a positive integer.

    Examples
    --------
    >>> c = OptionContract(0.3, 0.08, 0.25, 60.0, 65.0, n_simulations=100_000, n_steps=50)
    >>> c.dt
    0.005
    """

    volatility: float
    rate: float
    expiry: float
    spot: float
    strike: float
    n_simulations: int
    n_steps: Optional[int] = None

    def __post_init__(self) -> None:
        for field_name in ("volatility", "rate", "expiry", "spot", "strike"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, Real):
                raise NumericDomainError(f"{field_name} must be a real number, got {value!r}")
            if not math.isfinite(value):
                raise NumericDomainError(f"{field_name} must be finite, got {value}")
            if value < 0:
                raise NumericDomainError(f"{field_name} must be non-negative, got {value}")
            object.__setattr__(self, field_name, float(value))

        if isinstance(self.n_simulations, bool) or not isinstance(self.n_simulations, Integral):
            raise ConfigurationError(f"n_simulations must be an integer, got {self.n_simulations!r}")
        if self.n_simulations < 1:
            raise ConfigurationError(f"n_simulations must be >= 1, got {self.n_simulations}")
        object.__setattr__(self, "n_simulations", int(self.n_simulations))

        if self.n_steps is not None:
            if isinstance(self.n_steps, bool) or not isinstance(self.n_steps, Integral):
                raise ConfigurationError(f"n_steps must be an integer, got {self.n_steps!r}")
            if self.n_steps < 1:
                raise ConfigurationError(f"n_steps must be >= 1, got {self.n_steps}")
            object.__setattr__(self, "n_steps", int(self.n_steps))

    @property
    def discount_factor(self) -> float:
        r""":math:`e^{-rT}`."""
        return math.exp(-self.rate * self.expiry)

    @property
    def dt(self) -> Optional[float]:
        r"""Step length :math:`T / N_\text{steps}`, or ``None`` without a step count."""
        if self.n_steps is None:
            return None
        return self.expiry / self.n_steps

    def with_overrides(self, **changes) -> "OptionContract":
        """Return a validated copy with selected fields replaced."""
        return replace(self, **changes)

    def as_tuple(self) -> tuple[float, float, float, float, float, int]:
        """``(volatility, rate, expiry, spot, strike, n_simulations)``."""
        return (self.volatility, self.rate, self.expiry, self.spot, self.strike, self.n_simulations)
