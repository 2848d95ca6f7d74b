r"""
Run-wide configuration for :mod:`mcoptions`.

This module provides:

Constants
    :data:`DECISION_TOLERANCE` — absolute price tolerance of the accept/reject rule

Classes
    :class:`PricerSettings` — frozen bundle of tunables shared by the driver and
    the statistics aggregator

The decision tolerance is a fixed policy constant, not a derived statistic: a
simulated price is accepted when

.. math::

   |V_{\text{BS}} - \hat V| < 0.01

in currency units, regardless of the price level or the standard error.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Final

__all__ = [
    "DECISION_TOLERANCE",
    "DEFAULT_BLOCK_SIZE",
    "CEV_EXPONENT",
    "PricerSettings",
    "DEFAULT_SETTINGS",
]

#: Absolute tolerance (currency units) of the accept/reject decision.
DECISION_TOLERANCE: Final[float] = 0.01

#: Paths simulated per vectorised block.
DEFAULT_BLOCK_SIZE: Final[int] = 10_000

#: Constant-elasticity exponent of the diffusion term (GBM when 1).
CEV_EXPONENT: Final[float] = 1.0


@dataclass(frozen=True)
class PricerSettings:
    r"""
    Tunables for one pricing run.

    Attributes
    ----------
    decision_tolerance : float, default :data:`DECISION_TOLERANCE`
        Absolute tolerance of the decision rule.
    block_size : int, default :data:`DEFAULT_BLOCK_SIZE`
        Number of paths advanced together. Bounds the memory of the per-step
        normal vectors to ``block_size`` doubles.
    cev_exponent : float, default :data:`CEV_EXPONENT`
        Exponent :math:`\beta` in :math:`\sigma(V) = \sigma V^\beta`.
    percentiles : tuple of int, default ``(5, 25, 50, 75, 95)``
        Percentiles of the terminal asset values reported in the extras.
    confidence : float, default ``0.95``
        Confidence level of the price interval reported in the extras.
    ci_method : {"auto", "z", "t"}, default ``"auto"``
        Critical-value rule for that interval.

    Examples
    --------
    >>> s = PricerSettings().with_overrides(block_size=2_000)
    >>> s.block_size
    2000
    """

    decision_tolerance: float = DECISION_TOLERANCE
    block_size: int = DEFAULT_BLOCK_SIZE
    cev_exponent: float = CEV_EXPONENT
    percentiles: tuple[int, ...] = (5, 25, 50, 75, 95)
    confidence: float = 0.95
    ci_method: str = "auto"

    def __post_init__(self) -> None:
        if not self.decision_tolerance > 0.0:
            raise ValueError("decision_tolerance must be positive")
        if int(self.block_size) != self.block_size or self.block_size <= 0:
            raise ValueError("block_size must be a positive integer")
        if any(p < 0 or p > 100 for p in self.percentiles):
            raise ValueError("percentiles must be in [0,100]")
        if not 0.0 < self.confidence < 1.0:
            raise ValueError("confidence must be in (0,1)")
        if self.ci_method not in ("auto", "z", "t"):
            raise ValueError(f"ci_method must be one of 'auto', 'z', 't', got '{self.ci_method}'")

    def with_overrides(self, **changes) -> "PricerSettings":
        """Return a copy with selected fields replaced."""
        return replace(self, **changes)


DEFAULT_SETTINGS = PricerSettings()
