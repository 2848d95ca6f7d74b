r"""
Statistics aggregator.

Turns a :class:`~mcoptions.core.SimulationResult` into a
:class:`~mcoptions.core.StatisticsRecord`:

* mean, max and min of the terminal asset values,
* the dispersion of the payoff sample, scaled by the discount factor,

  .. math::
     SD = \sqrt{\frac{\sum_i p_i^2 - \big(\sum_i p_i\big)^2 / N}{N - 1}}\; e^{-rT},

  reported under the label "Standard Deviation",
* the standard error :math:`SE = SD / \sqrt N`,
* the Black–Scholes benchmark and the decision
  :math:`|V_{\text{BS}} - \hat V| <` :data:`~mcoptions.config.DECISION_TOLERANCE`,
* deterministic extras from :mod:`mcoptions.stats_engine`.

Aggregating the same result twice gives identical records.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any, Optional

import numpy as np

from .black_scholes import black_scholes_price
from .config import DECISION_TOLERANCE, DEFAULT_SETTINGS, PricerSettings
from .exceptions import NumericDomainError
from .stats_engine import DEFAULT_ENGINE, StatsContext, StatsEngine

if TYPE_CHECKING:
    from .core import SimulationResult, StatisticsRecord

logger = logging.getLogger(__name__)

__all__ = [
    "StatisticsAggregator",
    "compute_statistics",
    "standard_deviation",
    "standard_error",
    "decide",
]


def standard_deviation(payoffs: np.ndarray, rate: float, expiry: float) -> float:
    r"""
    Discounted dispersion of the payoff sample (sum-of-squares form).

    Raises
    ------
    NumericDomainError
        If fewer than two payoffs are given.

    Examples
    --------
    >>> standard_deviation(np.array([1.0, 2.0, 3.0]), 0.0, 1.0)
    1.0
    """
    p = np.asarray(payoffs, dtype=float)
    n = p.size
    if n < 2:
        raise NumericDomainError(f"Standard deviation needs at least 2 paths, got {n}")
    total = float(np.sum(p))
    total_sq = float(np.sum(p * p))
    numerator = max(total_sq - total * total / n, 0.0)
    return math.sqrt(numerator / (n - 1)) * math.exp(-rate * expiry)


def standard_error(sd: float, n: int) -> float:
    r""":math:`SD / \sqrt{N}`."""
    return sd / math.sqrt(n)


def decide(benchmark: float, estimate: float, tolerance: float = DECISION_TOLERANCE) -> bool:
    """
    Accept ``estimate`` when it lies strictly within ``tolerance`` of ``benchmark``.

    Examples
    --------
    >>> decide(1.0, 1.005)
    True
    >>> decide(0.01, 0.0)
    False
    """
    return abs(benchmark - estimate) < tolerance


class StatisticsAggregator:
    r"""
    Summarises a simulation result.

    Parameters
    ----------
    settings : PricerSettings, optional
        Decision tolerance, percentiles and interval settings.
    engine : StatsEngine, optional
        Engine for the extras. Defaults to :data:`~mcoptions.stats_engine.DEFAULT_ENGINE`.
    """

    def __init__(self, settings: Optional[PricerSettings] = None, engine: Optional[StatsEngine] = None):
        self.settings = settings or DEFAULT_SETTINGS
        self.engine = engine or DEFAULT_ENGINE

    def compute(self, result: "SimulationResult") -> "StatisticsRecord":
        """
        Build the :class:`~mcoptions.core.StatisticsRecord` for ``result``.

        Raises
        ------
        NumericDomainError
            If the result holds a single path, or the benchmark is not finite.
        """
        # Import here to avoid circular dependency
        from .core import StatisticsRecord  # pylint: disable=import-outside-toplevel

        c = result.contract
        assets = np.asarray(result.asset_values, dtype=float)
        payoffs = np.asarray(result.payoffs, dtype=float)

        sd = standard_deviation(payoffs, c.rate, c.expiry)
        se = standard_error(sd, payoffs.size)
        exact = black_scholes_price(c.spot, c.strike, c.rate, c.volatility, c.expiry, result.option_type)
        decision = decide(exact, result.price, self.settings.decision_tolerance)
        logger.debug("Exact %.6f vs estimate %.6f -> %s", exact, result.price, decision)

        return StatisticsRecord(
            mean_asset=float(np.mean(assets)),
            max_asset=float(np.max(assets)),
            min_asset=float(np.min(assets)),
            std=sd,
            standard_error=se,
            exact_price=exact,
            decision=decision,
            elapsed_time=result.execution_time,
            extras=self._extras(assets, payoffs, c.discount_factor, exact),
        )

    def _extras(self, assets: np.ndarray, payoffs: np.ndarray, discount: float, exact: float) -> dict[str, Any]:
        s = self.settings
        ctx = StatsContext(
            n=payoffs.size,
            confidence=s.confidence,
            ci_method=s.ci_method,
            percentiles=tuple(s.percentiles),
            target=exact,
            scale=discount,
        )
        asset_stats = self.engine.compute(assets, ctx, select=("percentiles",))
        payoff_stats = self.engine.compute(
            payoffs,
            ctx,
            select=("skew", "kurtosis", "ci_mean", "ci_mean_chebyshev", "bias_to_target", "mse_to_target"),
        )
        extras: dict[str, Any] = {}
        if "percentiles" in asset_stats:
            extras["asset_percentiles"] = asset_stats["percentiles"]
        renames = {
            "skew": "payoff_skew",
            "kurtosis": "payoff_kurtosis",
            "ci_mean": "price_ci",
            "ci_mean_chebyshev": "price_ci_chebyshev",
            "bias_to_target": "bias_to_exact",
            "mse_to_target": "mse_to_exact",
        }
        for key, label in renames.items():
            if key in payoff_stats:
                extras[label] = payoff_stats[key]
        return extras


def compute_statistics(
    result: "SimulationResult",
    settings: Optional[PricerSettings] = None,
) -> "StatisticsRecord":
    """Run :meth:`StatisticsAggregator.compute` with default collaborators."""
    return StatisticsAggregator(settings).compute(result)
