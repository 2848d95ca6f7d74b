r"""
Closed-form Black–Scholes benchmark.

For spot :math:`S`, strike :math:`K`, rate :math:`r`, volatility
:math:`\sigma` and expiry :math:`T`,

.. math::

   d_1 = \frac{\ln(S/K) + (r + \sigma^2/2)T}{\sigma\sqrt{T}}, \qquad
   d_2 = d_1 - \sigma\sqrt{T},

.. math::

   C = S\,N(d_1) - K e^{-rT} N(d_2), \qquad
   P = K e^{-rT} N(-d_2) - S\,N(-d_1),

where :math:`N` is the standard normal CDF (:data:`scipy.stats.norm`). The two
prices satisfy put–call parity :math:`C - P = S - K e^{-rT}`.

Degenerate inputs follow IEEE arithmetic: :math:`K = 0` or :math:`S = 0` give
the finite limits, while :math:`\sigma\sqrt{T} = 0` yields ``nan`` when
:math:`\ln(S/K) + rT = 0`. A non-finite price raises
:class:`~mcoptions.exceptions.NumericDomainError`.
"""

from __future__ import annotations

import math
from typing import Union

import numpy as np
from scipy.stats import norm

from .exceptions import NumericDomainError
from .payoffs import OptionType

__all__ = ["d1_d2", "black_scholes_call", "black_scholes_put", "black_scholes_price"]


def d1_d2(spot: float, strike: float, rate: float, volatility: float, expiry: float) -> tuple[float, float]:
    r"""
    Return :math:`(d_1, d_2)`.

    Examples
    --------
    >>> d1, d2 = d1_d2(100.0, 100.0, 0.05, 0.2, 1.0)
    >>> round(d1, 4), round(d2, 4)
    (0.35, 0.15)
    """
    vol_sqrt_t = volatility * math.sqrt(expiry)
    with np.errstate(divide="ignore", invalid="ignore"):
        log_moneyness = np.log(np.float64(spot) / np.float64(strike))
        d1 = (log_moneyness + (rate + 0.5 * volatility * volatility) * expiry) / np.float64(vol_sqrt_t)
    d2 = d1 - vol_sqrt_t
    return float(d1), float(d2)


def _checked(price: float, label: str) -> float:
    if not math.isfinite(price):
        raise NumericDomainError(f"Black-Scholes {label} price is not finite ({price})")
    return price


def black_scholes_call(spot: float, strike: float, rate: float, volatility: float, expiry: float) -> float:
    r"""
    European call price :math:`C`.

    Examples
    --------
    >>> round(black_scholes_call(100.0, 100.0, 0.05, 0.2, 1.0), 4)
    10.4506
    """
    d1, d2 = d1_d2(spot, strike, rate, volatility, expiry)
    discounted_strike = strike * math.exp(-rate * expiry)
    with np.errstate(invalid="ignore"):
        price = spot * norm.cdf(d1) - discounted_strike * norm.cdf(d2)
    return _checked(float(price), "call")


def black_scholes_put(spot: float, strike: float, rate: float, volatility: float, expiry: float) -> float:
    r"""
    European put price :math:`P`.

    Examples
    --------
    >>> round(black_scholes_put(100.0, 100.0, 0.05, 0.2, 1.0), 4)
    5.5735
    """
    d1, d2 = d1_d2(spot, strike, rate, volatility, expiry)
    discounted_strike = strike * math.exp(-rate * expiry)
    with np.errstate(invalid="ignore"):
        price = discounted_strike * norm.cdf(-d2) - spot * norm.cdf(-d1)
    return _checked(float(price), "put")


def black_scholes_price(
    spot: float,
    strike: float,
    rate: float,
    volatility: float,
    expiry: float,
    option_type: Union[OptionType, str],
) -> float:
    """
    Dispatch to :func:`black_scholes_call` or :func:`black_scholes_put`.

    Raises
    ------
    NumericDomainError
        If the price is not finite.
    """
    if OptionType(option_type) is OptionType.CALL:
        return black_scholes_call(spot, strike, rate, volatility, expiry)
    return black_scholes_put(spot, strike, rate, volatility, expiry)
