r"""
Option payoffs.

A :class:`Payoff` maps a strike :math:`K` and an asset value :math:`x` to the
undiscounted payoff

.. math::
   \Phi_{\text{call}}(x) = \max(x - K, 0), \qquad
   \Phi_{\text{put}}(x) = \max(K - x, 0).

For European contracts :math:`x = S_T`, the terminal value. For Asian
contracts :math:`x = \bar S`, the arithmetic mean of the values recorded along
the path, which only exists for time-discretised schemes.

Barrier caps are carried as metadata for reporting; they never alter the
payoff formula.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

from .exceptions import ConfigurationError, NumericDomainError

__all__ = ["OptionType", "PayoffStyle", "Payoff"]


class OptionType(str, Enum):
    """Call or put."""

    CALL = "call"
    PUT = "put"


class PayoffStyle(str, Enum):
    """Which path statistic feeds the payoff."""

    EUROPEAN = "european"
    ASIAN = "asian"


@dataclass(frozen=True)
class Payoff:
    r"""
    Vanilla payoff selection.

    Parameters
    ----------
    option_type : OptionType or str
        ``"call"`` or ``"put"``.
    style : PayoffStyle or str, default ``"european"``
        ``"european"`` (terminal value) or ``"asian"`` (path average).
    upper_cap, lower_cap : float, default ``0.0``
        Barrier levels for reporting. ``0.0`` means unused.

    Examples
    --------
    >>> put = Payoff.european_put()
    >>> put.name
    'European Put'
    >>> put(65.0, 60.0)
    5.0
    """

    option_type: OptionType
    style: PayoffStyle = PayoffStyle.EUROPEAN
    upper_cap: float = 0.0
    lower_cap: float = 0.0

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "option_type", OptionType(self.option_type))
        except ValueError:
            raise ConfigurationError(
                f"option_type must be 'call' or 'put', got '{self.option_type}'"
            ) from None
        try:
            object.__setattr__(self, "style", PayoffStyle(self.style))
        except ValueError:
            raise ConfigurationError(
                f"style must be 'european' or 'asian', got '{self.style}'"
            ) from None
        for cap in ("upper_cap", "lower_cap"):
            value = float(getattr(self, cap))
            if not math.isfinite(value):
                raise NumericDomainError(f"{cap} must be finite, got {value}")
            object.__setattr__(self, cap, value)

    @classmethod
    def european_call(cls, **caps: float) -> "Payoff":
        return cls(OptionType.CALL, PayoffStyle.EUROPEAN, **caps)

    @classmethod
    def european_put(cls, **caps: float) -> "Payoff":
        return cls(OptionType.PUT, PayoffStyle.EUROPEAN, **caps)

    @classmethod
    def asian_call(cls, **caps: float) -> "Payoff":
        return cls(OptionType.CALL, PayoffStyle.ASIAN, **caps)

    @classmethod
    def asian_put(cls, **caps: float) -> "Payoff":
        return cls(OptionType.PUT, PayoffStyle.ASIAN, **caps)

    @classmethod
    def from_name(cls, name: str, **caps: float) -> "Payoff":
        """
        Parse a display name such as ``"Asian Put"`` (case-insensitive).

        Raises
        ------
        ConfigurationError
            If the name does not match ``"<European|Asian> <Call|Put>"``.
        """
        parts = name.strip().lower().split()
        if len(parts) != 2:
            raise ConfigurationError(f"Unknown payoff '{name}'")
        style, option_type = parts
        return cls(option_type, style, **caps)

    @property
    def name(self) -> str:
        return f"{self.style.value.capitalize()} {self.option_type.value.capitalize()}"

    @property
    def is_asian(self) -> bool:
        return self.style is PayoffStyle.ASIAN

    @property
    def has_barrier(self) -> bool:
        return self.upper_cap != 0.0 or self.lower_cap != 0.0

    def __call__(self, strike: float, value: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        r"""
        Evaluate :math:`\Phi(x)` for a scalar or an array of asset values.

        Returns
        -------
        float or numpy.ndarray
            A float for scalar ``value``; an array of the same shape otherwise.
        """
        if self.option_type is OptionType.CALL:
            out = np.maximum(np.subtract(value, strike), 0.0)
        else:
            out = np.maximum(np.subtract(strike, value), 0.0)
        if np.ndim(out) == 0:
            return float(out)
        return out
