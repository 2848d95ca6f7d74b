r"""
Monte Carlo pricing driver.

This module provides:

Classes
    :class:`MonteCarloPricer` — runs ``NSIM`` independent paths and discounts
    the average payoff
    :class:`PathSample` — one path's terminal value and payoff

Functions
    :func:`run_simulation` — one-shot wrapper around :meth:`MonteCarloPricer.run`
    :func:`simulate_path` — price a single path with scalar draws

The estimate is

.. math::

   \hat V = e^{-rT}\,\frac{1}{N}\sum_{i=1}^{N} \Phi\big(x^{(i)}\big),

where :math:`x^{(i)}` is the terminal value (European) or the path average
(Asian) of path :math:`i`.

Paths are simulated in blocks of :attr:`PricerSettings.block_size` rows. Each
row holds one path's state, so no path observes another. Discretising schemes
apply ``n_steps + 1`` steps of length ``T / n_steps`` per path; the Asian
average runs over those ``n_steps + 1`` post-step values.

Example
-------
>>> from mcoptions import OptionContract, Payoff, NormalVariateSource, SchemeKind
>>> c = OptionContract(0.3, 0.08, 0.25, 60.0, 65.0, n_simulations=10_000, n_steps=50)
>>> res = MonteCarloPricer().run(c, SchemeKind.EXPLICIT_EULER, Payoff.european_put(),
...                              NormalVariateSource(seed=1))  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Union

import numpy as np

from .backends.base import make_blocks
from .config import DEFAULT_SETTINGS, PricerSettings
from .contract import OptionContract
from .exceptions import ConfigurationError, NumericDomainError
from .payoffs import Payoff
from .rng import VariateSource, as_source
from .sde import SchemeKind, StepScheme, get_scheme

if TYPE_CHECKING:
    from .core import SimulationResult

logger = logging.getLogger(__name__)

__all__ = ["PathSample", "MonteCarloPricer", "run_simulation", "simulate_path"]

SchemeLike = Union[StepScheme, SchemeKind, str]


@dataclass(frozen=True)
class PathSample:
    """Terminal asset value and undiscounted payoff of one path."""

    asset_value: float
    payoff: float


def _resolve_scheme(scheme: SchemeLike, beta: float) -> StepScheme:
    if isinstance(scheme, (SchemeKind, str)):
        return get_scheme(scheme, beta)
    return scheme


def _validate(contract: OptionContract, scheme: StepScheme, payoff: Payoff) -> None:
    r"""
    Reject inconsistent run configurations before any path is drawn.

    Raises
    ------
    ConfigurationError
        If a discretising scheme has no step count, or an Asian payoff is
        paired with the single-step GBM scheme.
    """
    kind = SchemeKind(scheme.kind)
    if kind.discretizes and contract.n_steps is None:
        raise ConfigurationError(f"{kind.display_name} requires n_steps >= 1")
    if payoff.is_asian and not kind.discretizes:
        raise ConfigurationError(
            f"{payoff.name} needs a time-discretised path; {kind.display_name} has a single step"
        )


class MonteCarloPricer:
    r"""
    Plain Monte Carlo pricer.

    Parameters
    ----------
    settings : PricerSettings, optional
        Block size and CEV exponent. Defaults to :data:`DEFAULT_SETTINGS`.
    """

    def __init__(self, settings: Optional[PricerSettings] = None):
        self.settings = settings or DEFAULT_SETTINGS

    def run(
        self,
        contract: OptionContract,
        scheme: SchemeLike,
        payoff: Payoff,
        source: Optional[VariateSource] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> "SimulationResult":
        r"""
        Simulate ``contract.n_simulations`` paths and return the discounted estimate.

        Parameters
        ----------
        contract : OptionContract
            Market and simulation parameters.
        scheme : StepScheme, SchemeKind or str
            Step scheme object, or a kind resolved with :func:`~mcoptions.sde.get_scheme`.
        payoff : Payoff
            Payoff selection.
        source : VariateSource, optional
            Normal variate stream. A clock-seeded default-engine source when omitted.
        progress_callback : callable, optional
            ``f(completed, total)`` called after each block.

        Returns
        -------
        SimulationResult
            Price, per-path terminal values and payoffs, and run metadata.

        Raises
        ------
        ConfigurationError
            On an inconsistent scheme/payoff/step configuration.
        NumericDomainError
            If the estimate is not finite.
        """
        # Import here to avoid circular dependency
        from .core import SimulationResult  # pylint: disable=import-outside-toplevel

        scheme = _resolve_scheme(scheme, self.settings.cev_exponent)
        _validate(contract, scheme, payoff)
        source = as_source(source)

        n = contract.n_simulations
        kind = SchemeKind(scheme.kind)
        asset_values = np.empty(n, dtype=float)
        payoffs = np.empty(n, dtype=float)
        blocks = make_blocks(n, self.settings.block_size)

        logger.info(
            "Pricing %s with %s: %d paths in %d blocks...",
            payoff.name, kind.display_name, n, len(blocks),
        )
        t0 = time.perf_counter()
        for i, j in blocks:
            terminal, observed = self._simulate_block(contract, scheme, payoff, source, j - i)
            asset_values[i:j] = terminal
            payoffs[i:j] = payoff(contract.strike, observed)
            logger.debug("Block [%d, %d) done", i, j)
            if progress_callback:
                progress_callback(j, n)
        elapsed = time.perf_counter() - t0

        price = float(np.mean(payoffs)) * contract.discount_factor
        if not math.isfinite(price):
            raise NumericDomainError(f"Simulated price is not finite ({price})")
        logger.info("Price %.6f computed in %.3f seconds", price, elapsed)

        return SimulationResult(
            price=price,
            asset_values=asset_values,
            payoffs=payoffs,
            contract=contract,
            scheme_name=kind.display_name,
            payoff_name=payoff.name,
            engine_name=source.name,
            n_steps=contract.n_steps if kind.discretizes else 0,
            upper_cap=payoff.upper_cap,
            lower_cap=payoff.lower_cap,
            option_type=payoff.option_type,
            execution_time=elapsed,
            metadata={
                "seed_entropy": getattr(source, "entropy", None),
                "timestamp": time.time(),
                "n_blocks": len(blocks),
                "block_size": self.settings.block_size,
            },
        )

    @staticmethod
    def _simulate_block(
        contract: OptionContract,
        scheme: StepScheme,
        payoff: Payoff,
        source: VariateSource,
        size: int,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(terminal values, payoff inputs)`` for ``size`` fresh paths."""
        start = np.full(size, contract.spot, dtype=float)
        if not SchemeKind(scheme.kind).discretizes:
            terminal = scheme.advance(start, source.standard_normal(size), contract.expiry, contract)
            return terminal, terminal

        dt = contract.dt
        n_points = contract.n_steps + 1
        value = start
        running = np.zeros(size, dtype=float) if payoff.is_asian else None
        for _ in range(n_points):
            value = scheme.advance(value, source.standard_normal(size), dt, contract)
            if running is not None:
                running += value
        if running is None:
            return value, value
        return value, running / n_points


def run_simulation(
    contract: OptionContract,
    scheme: SchemeLike,
    payoff: Payoff,
    source: Optional[VariateSource] = None,
    settings: Optional[PricerSettings] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> "SimulationResult":
    """Run :meth:`MonteCarloPricer.run` with a one-off pricer."""
    return MonteCarloPricer(settings).run(contract, scheme, payoff, source, progress_callback)


def simulate_path(
    contract: OptionContract,
    scheme: SchemeLike,
    payoff: Payoff,
    source: Optional[VariateSource] = None,
    settings: Optional[PricerSettings] = None,
) -> PathSample:
    r"""
    Simulate one path with scalar draws, one :meth:`~VariateSource.next_standard_normal` per step.

    Examples
    --------
    >>> from mcoptions.rng import NormalVariateSource
    >>> c = OptionContract(0.2, 0.05, 1.0, 100.0, 100.0, n_simulations=1)
    >>> s = simulate_path(c, "gbm", Payoff.european_call(), NormalVariateSource(seed=3))
    >>> s.payoff == max(s.asset_value - 100.0, 0.0)
    True
    """
    settings = settings or DEFAULT_SETTINGS
    scheme = _resolve_scheme(scheme, settings.cev_exponent)
    _validate(contract, scheme, payoff)
    source = as_source(source)

    if not SchemeKind(scheme.kind).discretizes:
        terminal = float(scheme.advance(contract.spot, source.next_standard_normal(), contract.expiry, contract))
        return PathSample(terminal, payoff(contract.strike, terminal))

    dt = contract.dt
    n_points = contract.n_steps + 1
    value = contract.spot
    running = 0.0
    for _ in range(n_points):
        value = float(scheme.advance(value, source.next_standard_normal(), dt, contract))
        running += value
    observed = running / n_points if payoff.is_asian else value
    return PathSample(value, payoff(contract.strike, observed))
