r"""
Stochastic process models for the underlying asset.

The asset follows the risk-neutral constant-elasticity dynamics

.. math::

   dV_t = \mu(r, V_t)\,dt + \sigma(\sigma, V_t)\,dW_t,
   \qquad \mu(r, V) = rV,\quad \sigma(\sigma, V) = \sigma V^\beta,

with the elasticity :math:`\beta` fixed at 1 (geometric Brownian motion).

Three schemes advance the state given a standard-normal draw :math:`Z`:

* :class:`GBMScheme` — exact lognormal solution over the whole horizon,

  .. math::
     V_T = S \exp\!\big((r - \tfrac12\sigma^2)T + \sigma\sqrt{T}\,Z\big).

* :class:`EulerScheme` — Euler–Maruyama,

  .. math::
     V_{k+1} = V_k + \Delta t\,\mu(r, V_k) + \sqrt{\Delta t}\,\sigma(\sigma, V_k)\,Z_k.

* :class:`MilsteinScheme` — Euler–Maruyama plus the Milstein correction,

  .. math::
     V_{k+1} = V_k^{\text{Euler}}
     + \tfrac12\,\sigma(\sigma, V_k)\,\sigma'(\sigma, V_k)\big((\sqrt{\Delta t}\,Z_k)^2 - \Delta t\big),

  where :math:`\sigma'(\sigma, V) = \tfrac12\,\sigma\beta V^{\beta-1}` (a constant
  :math:`\tfrac12\sigma` for :math:`\beta = 1`).

Every ``advance`` is vectorised: ``value`` and ``z`` may be scalars or numpy
arrays holding one entry per path.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Protocol, Union

import numpy as np

from .config import CEV_EXPONENT
from .contract import OptionContract
from .exceptions import ConfigurationError

__all__ = [
    "SchemeKind",
    "StepScheme",
    "GBMScheme",
    "EulerScheme",
    "MilsteinScheme",
    "drift",
    "diffusion",
    "diffusion_derivative",
    "get_scheme",
]

ArrayLike = Union[float, np.ndarray]


class SchemeKind(str, Enum):
    r"""
    Discretisation schemes.

    Attributes
    ----------
    GBM : str
        Closed-form lognormal step over :math:`[0, T]`.
    EXPLICIT_EULER : str
        Euler–Maruyama time stepping.
    MILSTEIN : str
        Milstein time stepping.
    """

    GBM = "gbm"
    EXPLICIT_EULER = "explicit_euler"
    MILSTEIN = "milstein"

    @property
    def display_name(self) -> str:
        return _SCHEME_NAMES[self]

    @property
    def discretizes(self) -> bool:
        """Whether the scheme needs a step count."""
        return self is not SchemeKind.GBM


_SCHEME_NAMES = {
    SchemeKind.GBM: "GBM",
    SchemeKind.EXPLICIT_EULER: "Explicit Euler",
    SchemeKind.MILSTEIN: "Milstein Method",
}


def drift(r: float, value: ArrayLike) -> ArrayLike:
    r"""Drift :math:`\mu(r, V) = rV`."""
    return r * value


def diffusion(vol: float, value: ArrayLike, beta: float = CEV_EXPONENT) -> ArrayLike:
    r"""Diffusion :math:`\sigma(\sigma, V) = \sigma V^\beta`."""
    if beta == 1.0:
        return vol * value
    return vol * np.power(value, beta)


def diffusion_derivative(vol: float, value: ArrayLike, beta: float = CEV_EXPONENT) -> ArrayLike:
    r"""Diffusion slope term :math:`\tfrac12\,\sigma\beta V^{\beta-1}` used by Milstein."""
    return 0.5 * vol * beta * np.power(value, beta - 1.0)


class StepScheme(Protocol):
    r"""
    Interface for advancing the asset state by one step.

    Attributes
    ----------
    kind : SchemeKind
        Tag used for reporting and validation.
    """

    kind: SchemeKind

    def advance(self, value: ArrayLike, z: ArrayLike, dt: float, contract: OptionContract) -> ArrayLike:
        """Advance ``value`` over a step of length ``dt`` driven by the draws ``z``."""
        ...


class GBMScheme:
    r"""
    Exact geometric Brownian motion over the full horizon.

    The driver calls ``advance`` once per path with ``dt = T``, mapping the
    spot straight to the terminal value.

    Examples
    --------
    >>> c = OptionContract(0.2, 0.05, 1.0, 100.0, 100.0, n_simulations=1)
    >>> round(float(GBMScheme().advance(100.0, 0.0, 1.0, c)), 6)
    103.045453
    """

    kind = SchemeKind.GBM

    def advance(self, value: ArrayLike, z: ArrayLike, dt: float, contract: OptionContract) -> ArrayLike:
        sigma, r = contract.volatility, contract.rate
        return value * np.exp((r - 0.5 * sigma * sigma) * dt + sigma * math.sqrt(dt) * z)


class EulerScheme:
    r"""Euler–Maruyama step for the constant-elasticity SDE."""

    kind = SchemeKind.EXPLICIT_EULER

    def __init__(self, beta: float = CEV_EXPONENT):
        self.beta = beta

    def advance(self, value: ArrayLike, z: ArrayLike, dt: float, contract: OptionContract) -> ArrayLike:
        sqrt_dt = math.sqrt(dt)
        return (
            value
            + dt * drift(contract.rate, value)
            + sqrt_dt * diffusion(contract.volatility, value, self.beta) * z
        )


class MilsteinScheme(EulerScheme):
    r"""
    Milstein step: Euler–Maruyama plus the second-order Itô correction.

    Notes
    -----
    The correction term has zero mean, since
    :math:`\mathbb{E}[(\sqrt{\Delta t}Z)^2] = \Delta t`.
    """

    kind = SchemeKind.MILSTEIN

    def advance(self, value: ArrayLike, z: ArrayLike, dt: float, contract: OptionContract) -> ArrayLike:
        sqrt_dt = math.sqrt(dt)
        vol = contract.volatility
        b = diffusion(vol, value, self.beta)
        correction = 0.5 * b * diffusion_derivative(vol, value, self.beta) * ((sqrt_dt * z) ** 2 - dt)
        return super().advance(value, z, dt, contract) + correction


_SCHEMES = {
    SchemeKind.GBM: GBMScheme,
    SchemeKind.EXPLICIT_EULER: EulerScheme,
    SchemeKind.MILSTEIN: MilsteinScheme,
}


def get_scheme(kind: Union[SchemeKind, str], beta: float = CEV_EXPONENT) -> StepScheme:
    """
    Return a scheme instance for ``kind``.

    Raises
    ------
    ConfigurationError
        If ``kind`` does not name a known scheme.
    """
    try:
        kind = SchemeKind(kind)
    except ValueError:
        raise ConfigurationError(f"Unknown scheme '{kind}'") from None
    if kind is SchemeKind.GBM:
        return GBMScheme()
    return _SCHEMES[kind](beta=beta)
