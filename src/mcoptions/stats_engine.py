r"""
mcoptions.stats_engine
======================
Generic sample metrics evaluated over simulation output.

This module defines:

- :class:`StatsContext`: explicit configuration shared by all metrics.
- :class:`FnMetric`: a frozen adapter that names a metric function.
- :class:`StatsEngine`: evaluates a set of metrics over one sample.

Every metric here is deterministic: evaluating the same sample twice gives
bit-identical output. The statistics aggregator relies on that when it attaches
engine output to a :class:`~mcoptions.core.StatisticsRecord`.

See Also
--------
mcoptions.utils.autocrit
    Selects a z/t critical value for a confidence level and sample size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, Protocol, Sequence, TypeVar

import numpy as np
from scipy.stats import kurtosis as sp_kurtosis
from scipy.stats import skew as sp_skew

from .utils import autocrit

logger = logging.getLogger(__name__)


class NanPolicy(str, Enum):
    r"""
    Handling of non-finite observations.

    Attributes
    ----------
    propagate : str
        Keep them; metrics may return ``nan``.
    omit : str
        Drop them before computing a metric.
    """

    propagate = "propagate"
    omit = "omit"


class CIMethod(str, Enum):
    r"""
    Critical-value rule for :func:`ci_mean`.

    Attributes
    ----------
    auto : str
        Student-t when :math:`n_\text{eff} < 30`, otherwise z.
    z : str
        Normal critical value.
    t : str
        Student-t critical value.
    """

    auto = "auto"
    z = "z"
    t = "t"


@dataclass(slots=True)
class StatsContext:
    r"""
    Shared configuration for metric computations.

    Attributes
    ----------
    n : int
        Declared sample size.
    confidence : float, default 0.95
        Confidence level in :math:`(0, 1)`.
    ci_method : {"auto", "z", "t"}, default "auto"
        Critical-value rule for :func:`ci_mean`.
    percentiles : tuple of int, default ``(5, 25, 50, 75, 95)``
        Percentiles computed by :func:`percentiles`.
    nan_policy : {"propagate", "omit"}, default "propagate"
        Non-finite handling.
    target : float, optional
        Reference value for :func:`bias_to_target` and :func:`mse_to_target`,
        typically the Black–Scholes price.
    ddof : int, default 1
        Degrees of freedom for :func:`std`.
    scale : float, default 1.0
        Multiplier applied to the sample before the mean-type metrics. The
        aggregator passes the discount factor :math:`e^{-rT}` so intervals are
        expressed in price units.

    Examples
    --------
    >>> ctx = StatsContext(n=5000, confidence=0.9)
    >>> round(ctx.alpha, 2)
    0.1
    """

    n: int
    confidence: float = 0.95
    ci_method: CIMethod = "auto"
    percentiles: tuple[int, ...] = (5, 25, 50, 75, 95)
    nan_policy: NanPolicy = "propagate"
    target: Optional[float] = None
    ddof: int = 1
    scale: float = 1.0

    def with_overrides(self, **changes) -> "StatsContext":
        """Return a copy with selected fields replaced."""
        return replace(self, **changes)

    @property
    def alpha(self) -> float:
        r""":math:`\alpha = 1 - \text{confidence}`."""
        return 1.0 - self.confidence

    def eff_n(self, observed_len: int, finite_count: Optional[int] = None) -> int:
        r"""
        Effective sample size :math:`n_\text{eff}`.

        The finite count when ``nan_policy="omit"``, else the declared
        :attr:`n`, else ``observed_len``.
        """
        if self.nan_policy == "omit" and finite_count is not None:
            return int(finite_count)
        return int(self.n or observed_len)

    def __post_init__(self) -> None:
        if not (0.0 < self.confidence < 1.0):
            raise ValueError("confidence must be in (0,1)")
        if any(p < 0 or p > 100 for p in self.percentiles):
            raise ValueError("percentiles must be in [0,100]")
        if self.ddof < 0:
            raise ValueError("ddof must be >= 0")


class Metric(Protocol):
    r"""
    Metric callable used by :class:`StatsEngine`.

    ``metric(x: numpy.ndarray, ctx: StatsContext) -> Any``, with a ``name``
    under which the value is returned.
    """

    name: str

    def __call__(self, x: np.ndarray, ctx: StatsContext, /) -> Any: ...


T = TypeVar("T")


@dataclass(frozen=True)
class FnMetric(Generic[T]):
    r"""
    Binds a ``name`` to a metric function.

    Examples
    --------
    >>> m = FnMetric("mean", lambda a, ctx: float(np.mean(a)))
    >>> m(np.array([1, 2, 3]), StatsContext(n=3))
    2.0
    """

    name: str
    fn: Callable[[np.ndarray, StatsContext], T]
    doc: str = ""

    def __call__(self, x: np.ndarray, ctx: StatsContext) -> T:
        return self.fn(x, ctx)


class StatsEngine:
    r"""
    Evaluates a set of metrics over an input array.

    Parameters
    ----------
    metrics : iterable of Metric
        Callables with a ``name`` and signature ``metric(x, ctx)``.

    Notes
    -----
    Metrics that need :attr:`StatsContext.target` are skipped when it is not
    set; any other ``ValueError`` propagates.

    Examples
    --------
    >>> eng = StatsEngine([FnMetric("mean", mean), FnMetric("std", std)])
    >>> x = np.array([1., 2., 3.])
    >>> eng.compute(x, StatsContext(n=len(x)))
    {'mean': 2.0, 'std': 1.0}
    """

    def __init__(self, metrics: Iterable[Metric]):
        self._metrics = list(metrics)

    def available(self) -> tuple[str, ...]:
        return tuple(m.name for m in self._metrics)

    def compute(
        self,
        x: np.ndarray,
        ctx: Optional[StatsContext] = None,
        select: Sequence[str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        r"""
        Evaluate the registered metrics on ``x``.

        Parameters
        ----------
        x : ndarray
            Sample values.
        ctx : StatsContext, optional
            Context; built from ``**kwargs`` (``n`` defaulting to ``x.size``)
            when omitted.
        select : sequence of str, optional
            Compute only these metric names.

        Returns
        -------
        dict
            ``{metric name: value}``.
        """
        if ctx is not None:
            ctx = _ensure_ctx(ctx, x)
        else:
            base = dict(kwargs)
            base.setdefault("n", int(np.asarray(x).size))
            ctx = StatsContext(**base)

        wanted = None if select is None else set(select)
        out: dict[str, Any] = {}
        for m in self._metrics:
            if wanted is not None and m.name not in wanted:
                continue
            try:
                result = m(x, ctx)
            except ValueError as e:
                if "requires ctx.target" in str(e):
                    logger.debug(f"Skipping metric {m.name}: {e}")
                    continue
                raise
            if isinstance(result, dict) and len(result) == 0:
                logger.debug(f"Metric '{m.name}' returned empty dict, skipping")
                continue
            out[m.name] = result
        return out


def _ensure_ctx(ctx: Any, x: np.ndarray) -> StatsContext:
    """Coerce ``None``, a mapping or a :class:`StatsContext` into a context."""
    if isinstance(ctx, StatsContext):
        return ctx
    arr_len = int(np.asarray(x).size)
    if ctx is None:
        return StatsContext(n=arr_len)
    if isinstance(ctx, dict):
        data = dict(ctx)
        data.setdefault("n", arr_len)
        return StatsContext(**data)
    raise TypeError("ctx must be a StatsContext, dict or None")


def _clean(x: np.ndarray, ctx: StatsContext) -> tuple[np.ndarray, int]:
    """Return the (possibly filtered) sample and its finite count."""
    arr = np.asarray(x, dtype=float)
    finite = np.isfinite(arr)
    if ctx.nan_policy == "omit":
        arr = arr[finite]
    elif ctx.nan_policy != "propagate":
        raise ValueError(f"Unknown nan_policy: {ctx.nan_policy}")
    return arr, int(finite.sum())


def mean(x: np.ndarray, ctx: StatsContext = None):
    r"""
    Sample mean :math:`\bar X = \frac1n\sum_i x_i`.

    Examples
    --------
    >>> mean(np.array([1, 2, 3]))
    2.0
    """
    ctx = _ensure_ctx(ctx, x)
    arr, _ = _clean(x, ctx)
    return float(np.mean(arr)) if arr.size else float("nan")


def std(x: np.ndarray, ctx: StatsContext = None):
    r"""
    Sample standard deviation with ``ddof`` correction; ``0.0`` when
    :math:`n_\text{eff} \le 1`.

    Examples
    --------
    >>> std(np.array([1, 2, 3]), {})
    1.0
    """
    ctx = _ensure_ctx(ctx, x)
    arr, finite_count = _clean(x, ctx)
    if ctx.eff_n(arr.size, finite_count) <= 1:
        return 0.0
    return float(np.std(arr, ddof=ctx.ddof))


def percentiles(x: np.ndarray, ctx: StatsContext = None) -> dict[int, float]:
    r"""
    Empirical percentiles :math:`p \mapsto Q_p(x)`.

    Examples
    --------
    >>> percentiles(np.array([0., 1., 2., 3.]), {"percentiles": (50, 75)})
    {50: 1.5, 75: 2.25}
    """
    ctx = _ensure_ctx(ctx, x)
    arr, _ = _clean(x, ctx)
    if arr.size == 0:
        return {p: float("nan") for p in ctx.percentiles}
    values = np.percentile(arr, ctx.percentiles)
    return dict(zip(ctx.percentiles, map(float, values)))


def skew(x: np.ndarray, ctx: StatsContext = None) -> float:
    r"""
    Unbiased Fisher–Pearson skewness; ``0.0`` for three or fewer points or a
    constant sample.
    """
    ctx = _ensure_ctx(ctx, x)
    arr, _ = _clean(x, ctx)
    if arr.size <= 2 or np.ptp(arr) == 0.0:
        return 0.0
    return float(sp_skew(arr, bias=False))  # type: ignore[arg-type]


def kurtosis(x: np.ndarray, ctx: StatsContext = None) -> float:
    r"""
    Unbiased excess kurtosis (Fisher); ``0.0`` for four or fewer points or a
    constant sample.

    Examples
    --------
    >>> round(kurtosis(np.array([1, 2, 3, 4.0]), {}), 6)
    -1.2
    """
    ctx = _ensure_ctx(ctx, x)
    arr, _ = _clean(x, ctx)
    if arr.size <= 3 or np.ptp(arr) == 0.0:
        return 0.0
    return float(sp_kurtosis(arr, fisher=True, bias=False))  # type: ignore[arg-type]


def ci_mean(x: np.ndarray, ctx: StatsContext = None) -> dict[str, float | str]:
    r"""
    Parametric interval for the scaled mean.

    With :math:`c` = :attr:`StatsContext.scale`,

    .. math::
       c\bar X \pm z\,\frac{c\,s}{\sqrt{n_\text{eff}}},

    where :math:`z` comes from :func:`mcoptions.utils.autocrit`.

    Returns
    -------
    dict[str, float | str]
        ``confidence``, ``method``, ``se``, ``crit``, ``low``, ``high``.
        Empty when :math:`n_\text{eff} < 2`.
    """
    ctx = _ensure_ctx(ctx, x)
    arr, finite_count = _clean(x, ctx)
    n_eff = ctx.eff_n(arr.size, finite_count)
    if arr.size == 0 or n_eff < 2:
        return {}

    mu = ctx.scale * float(np.mean(arr))
    s = ctx.scale * float(np.std(arr, ddof=ctx.ddof))
    se = s / np.sqrt(n_eff) if s > 0.0 else 0.0
    crit, method = autocrit(ctx.confidence, n_eff, ctx.ci_method)
    return {
        "confidence": ctx.confidence,
        "method": method,
        "se": float(se),
        "crit": float(crit),
        "low": float(mu - crit * se),
        "high": float(mu + crit * se),
    }


def ci_mean_chebyshev(x: np.ndarray, ctx: StatsContext = None) -> dict[str, float | str]:
    r"""
    Distribution-free interval for the scaled mean via Chebyshev's inequality.

    With :math:`\delta = 1 - \text{confidence}` and :math:`k = 1/\sqrt\delta`,

    .. math::
       \Pr\big(|\bar X - \mu| \ge k\,SE\big) \le \delta.
    """
    ctx = _ensure_ctx(ctx, x)
    arr, finite_count = _clean(x, ctx)
    n_eff = ctx.eff_n(arr.size, finite_count)
    if arr.size == 0 or n_eff < 2:
        return {}
    mu = ctx.scale * float(np.mean(arr))
    s = ctx.scale * std(arr, ctx)
    k = 1.0 / np.sqrt(ctx.alpha)
    half = k * s / np.sqrt(n_eff)
    return {
        "confidence": ctx.confidence,
        "method": "chebyshev",
        "low": float(mu - half),
        "high": float(mu + half),
    }


def bias_to_target(x: np.ndarray, ctx: StatsContext = None) -> float:
    r"""Bias :math:`c\bar X - \theta` of the scaled mean against :attr:`StatsContext.target`."""
    ctx = _ensure_ctx(ctx, x)
    if ctx.target is None:
        raise ValueError("bias_to_target requires ctx.target")
    return float(ctx.scale * mean(x, ctx) - ctx.target)


def mse_to_target(x: np.ndarray, ctx: StatsContext = None) -> float:
    r"""
    Mean squared error of the scaled mean against :attr:`StatsContext.target`,

    .. math::
       \mathrm{MSE} \approx \frac{(cs)^2}{n} + (c\bar X - \theta)^2.
    """
    ctx = _ensure_ctx(ctx, x)
    if ctx.target is None:
        raise ValueError("mse_to_target requires ctx.target")
    arr, finite_count = _clean(x, ctx)
    n_eff = max(1, ctx.eff_n(arr.size, finite_count))
    s = ctx.scale * std(arr, ctx)
    bias = bias_to_target(arr, ctx)
    return float(s * s / n_eff + bias * bias)


def build_default_engine(include_target_bounds: bool = True) -> StatsEngine:
    r"""
    Construct the engine used by :class:`~mcoptions.statistics.StatisticsAggregator`.

    Parameters
    ----------
    include_target_bounds : bool, default True
        Include :func:`bias_to_target` and :func:`mse_to_target`.
    """
    metrics: list[Metric] = [
        FnMetric[float]("mean", mean, "Sample mean"),
        FnMetric[float]("std", std, "Sample standard deviation"),
        FnMetric[dict[int, float]]("percentiles", percentiles, "Percentiles over the sample"),
        FnMetric[float]("skew", skew, "Fisher skewness (unbiased)"),
        FnMetric[float]("kurtosis", kurtosis, "Excess kurtosis (unbiased)"),
        FnMetric[dict[str, float | str]]("ci_mean", ci_mean, "z/t CI for the scaled mean"),
        FnMetric[dict[str, float | str]](
            "ci_mean_chebyshev", ci_mean_chebyshev, "Chebyshev bound CI for the scaled mean"
        ),
    ]
    if include_target_bounds:
        metrics.extend(
            [
                FnMetric[float]("bias_to_target", bias_to_target, "Bias relative to target"),
                FnMetric[float]("mse_to_target", mse_to_target, "Mean squared error to target"),
            ]
        )
    return StatsEngine(metrics)


DEFAULT_ENGINE = build_default_engine()

__all__ = [
    "NanPolicy",
    "CIMethod",
    "StatsContext",
    "Metric",
    "FnMetric",
    "StatsEngine",
    "mean",
    "std",
    "percentiles",
    "skew",
    "kurtosis",
    "ci_mean",
    "ci_mean_chebyshev",
    "bias_to_target",
    "mse_to_target",
    "build_default_engine",
    "DEFAULT_ENGINE",
]
