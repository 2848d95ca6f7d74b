r"""

mcoptions.core
==============

Result containers and the pricing orchestrator.

This module provides:

* :class:`~mcoptions.core.SimulationResult` – output of one pricing run.
* :class:`~mcoptions.core.StatisticsRecord` – summary statistics of a run.
* :class:`~mcoptions.core.PricingJob` – a named, fully specified pricing request.
* :class:`~mcoptions.core.JobOutcome` – what a job produced, or why it failed.
* :class:`~mcoptions.core.PricingFramework` – registry + batch runner.

Parallel backends
-----------------

``PricingFramework.run_many(..., backend="thread")`` prices independent jobs
concurrently; ``backend="process"`` uses a spawn-context process pool. A single
run is always single-threaded: parallelism exists only *between* jobs, and
outcomes are merged once after every job has finished.

Seeding
-------

Jobs registered without a seed receive independent child seeds spawned from
the framework :class:`numpy.random.SeedSequence` (see :meth:`PricingFramework.set_seed`),
in registration order, so a seeded batch is reproducible regardless of the
backend.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterator, Optional, Sequence, Union

import numpy as np

from .backends import ProcessBackend, SequentialBackend, ThreadBackend
from .config import DEFAULT_SETTINGS, PricerSettings
from .contract import OptionContract
from .exceptions import ConfigurationError, PricingError
from .payoffs import OptionType, Payoff
from .rng import RandomEngine
from .sde import SchemeKind
from .simulation import PathSample

logger = logging.getLogger(__name__)  # pragma: no cover
_package_logger = logging.getLogger(__package__)
if not _package_logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    _package_logger.addHandler(handler)
    _package_logger.setLevel(logging.INFO)

_VALID_BACKENDS = ("sequential", "thread", "process")


@dataclass
class SimulationResult:
    r"""
    Container for the outcome of one pricing run.

    Attributes
    ----------
    price : float
        Discounted Monte Carlo estimate :math:`\hat V`.
    asset_values : ndarray of float
        Terminal asset value of each path, in path order.
    payoffs : ndarray of float
        Undiscounted payoff of each path, in path order.
    contract : OptionContract
        Inputs of the run.
    scheme_name, payoff_name, engine_name : str
        Display names, e.g. ``"Explicit Euler"``, ``"European Put"``,
        ``"Mersenne Twister"``.
    n_steps : int
        Step count; ``0`` for the single-step GBM scheme.
    upper_cap, lower_cap : float
        Barrier metadata of the payoff.
    option_type : OptionType
        Call or put; selects the benchmark formula.
    execution_time : float
        Wall-clock seconds spent in the path loop.
    metadata : dict
        Freeform metadata. Includes ``"seed_entropy"``, ``"timestamp"``,
        ``"n_blocks"`` and ``"block_size"``.
    """

    price: float
    asset_values: np.ndarray
    payoffs: np.ndarray
    contract: OptionContract
    scheme_name: str
    payoff_name: str
    engine_name: str
    n_steps: int
    upper_cap: float
    lower_cap: float
    option_type: OptionType
    execution_time: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def n_simulations(self) -> int:
        return int(self.payoffs.size)

    @property
    def discounted_payoffs(self) -> np.ndarray:
        r""":math:`e^{-rT}\Phi(x^{(i)})` per path."""
        return self.payoffs * self.contract.discount_factor

    def samples(self) -> Iterator[PathSample]:
        """Yield one :class:`~mcoptions.simulation.PathSample` per path, in order."""
        for a, p in zip(self.asset_values, self.payoffs):
            yield PathSample(float(a), float(p))


@dataclass(frozen=True)
class StatisticsRecord:
    r"""
    Summary statistics of a :class:`SimulationResult`.

    Attributes
    ----------
    mean_asset, max_asset, min_asset : float
        Mean, maximum and minimum terminal asset value.
    std : float
        Discounted payoff dispersion, reported as "Standard Deviation".
    standard_error : float
        ``std / sqrt(NSIM)``.
    exact_price : float
        Black–Scholes benchmark.
    decision : bool
        ``abs(exact_price - price) < DECISION_TOLERANCE``.
    elapsed_time : float
        Seconds, copied from :attr:`SimulationResult.execution_time`.
    extras : dict
        Stats-engine output: ``"asset_percentiles"``, ``"payoff_skew"``,
        ``"payoff_kurtosis"``, ``"price_ci"``, ``"price_ci_chebyshev"``,
        ``"bias_to_exact"``, ``"mse_to_exact"``.
    """

    mean_asset: float
    max_asset: float
    min_asset: float
    std: float
    standard_error: float
    exact_price: float
    decision: bool
    elapsed_time: float
    extras: dict[str, Any] = field(default_factory=dict)

    def as_tuple(self) -> tuple[float, float, float, float, float, float, bool, float]:
        """The eight core fields, in declaration order."""
        return (
            self.mean_asset,
            self.max_asset,
            self.min_asset,
            self.std,
            self.standard_error,
            self.exact_price,
            self.decision,
            self.elapsed_time,
        )


@dataclass(frozen=True)
class PricingJob:
    r"""
    A named pricing request.

    Attributes
    ----------
    name : str
        Registry key.
    contract : OptionContract
        Market and simulation parameters.
    scheme_kind : SchemeKind
        Step scheme.
    payoff : Payoff
        Payoff selection.
    engine : RandomEngine, default ``RandomEngine.DEFAULT``
        Bit-generator back-end.
    seed : int or SeedSequence, optional
        Job seed. ``None`` takes a child of the framework seed at run time.
    """

    name: str
    contract: OptionContract
    scheme_kind: SchemeKind
    payoff: Payoff
    engine: RandomEngine = RandomEngine.DEFAULT
    seed: Union[int, np.random.SeedSequence, None] = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "scheme_kind", SchemeKind(self.scheme_kind))
        except ValueError:
            raise ConfigurationError(f"Unknown scheme '{self.scheme_kind}'") from None
        try:
            object.__setattr__(self, "engine", RandomEngine(self.engine))
        except ValueError:
            raise ConfigurationError(f"Unknown random engine '{self.engine}'") from None


@dataclass
class JobOutcome:
    """Result and statistics of a job, or the error that stopped it."""

    name: str
    result: Optional[SimulationResult] = None
    statistics: Optional[StatisticsRecord] = None
    error: Optional[PricingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PricingFramework:
    r"""
    Registry for named pricing jobs that runs and compares them.

    Parameters
    ----------
    settings : PricerSettings, optional
        Shared by every job.

    Examples
    --------
    >>> from mcoptions import OptionContract, Payoff
    >>> fw = PricingFramework()
    >>> fw.set_seed(42)
    >>> c = OptionContract(0.2, 0.05, 1.0, 100.0, 100.0, n_simulations=50_000)
    >>> fw.register_job(PricingJob("call", c, SchemeKind.GBM, Payoff.european_call()))
    >>> fw.register_job(PricingJob("put", c, SchemeKind.GBM, Payoff.european_put()))
    >>> outcomes = fw.run_many(backend="thread", n_workers=2)  # doctest: +SKIP
    >>> fw.compare_results(["call", "put"], metric="error")  # doctest: +SKIP
    {'call': 0.0213, 'put': 0.0088}
    """

    def __init__(self, settings: Optional[PricerSettings] = None):
        self.settings = settings or DEFAULT_SETTINGS
        self.jobs: dict[str, PricingJob] = {}
        self.outcomes: dict[str, JobOutcome] = {}
        self.seed_seq: Optional[np.random.SeedSequence] = None

    def set_seed(self, seed: int | None) -> None:
        r"""
        Seed the framework :class:`~numpy.random.SeedSequence`.

        ``None`` clears it; unseeded jobs then draw from the clock.
        """
        self.seed_seq = np.random.SeedSequence(seed) if seed is not None else None

    def register_job(self, job: PricingJob, name: Optional[str] = None) -> None:
        r"""
        Register ``job`` under ``name`` (default :attr:`PricingJob.name`).

        Re-registering a name replaces the job and drops its previous outcome.
        """
        job_name = name or job.name
        if job_name != job.name:
            job = replace(job, name=job_name)
        self.jobs[job_name] = job
        self.outcomes.pop(job_name, None)

    def run_job(self, name: str) -> JobOutcome:
        r"""
        Run one registered job on the calling thread.

        Raises
        ------
        ConfigurationError
            If ``name`` is not registered.
        """
        return self.run_many([name])[name]

    def run_many(
        self,
        names: Optional[Sequence[str]] = None,
        backend: str = "sequential",
        n_workers: Optional[int] = None,
        timeout: Optional[float] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> dict[str, JobOutcome]:
        r"""
        Run several registered jobs and merge their outcomes.

        Parameters
        ----------
        names : sequence of str, optional
            Jobs to run, in order. All registered jobs when omitted.
        backend : {"sequential", "thread", "process"}, default ``"sequential"``
            Execution backend. Unknown names fall back to ``"sequential"``.
        n_workers : int, optional
            Worker count for parallel backends. Defaults to CPU count.
        timeout : float, optional
            Upper bound in seconds for parallel backends.
        progress_callback : callable, optional
            ``f(completed_jobs, total_jobs)``.

        Returns
        -------
        dict
            ``{name: JobOutcome}`` in the requested order. A job that raised a
            :class:`~mcoptions.exceptions.PricingError` carries it in
            :attr:`JobOutcome.error`; the other jobs are unaffected.

        Raises
        ------
        ConfigurationError
            If a name is not registered or requested more than once.
        TimeoutError
            If a parallel backend exceeds ``timeout``.
        """
        names = list(self.jobs) if names is None else list(names)
        for name in names:
            if name not in self.jobs:
                raise ConfigurationError(f"Job '{name}' not found")
        if len(set(names)) != len(names):
            duplicates = sorted({n for n in names if names.count(n) > 1})
            raise ConfigurationError(f"Duplicate job names: {duplicates}")

        jobs = self._resolve_seeds([self.jobs[n] for n in names])
        runner = self._create_backend(backend, n_workers, len(jobs))
        outcomes = runner.run(jobs, self.settings, progress_callback=progress_callback, timeout=timeout)

        merged = {o.name: o for o in outcomes}
        self.outcomes.update(merged)
        n_failed = sum(not o.ok for o in outcomes)
        if n_failed:
            logger.error("%d of %d pricing jobs failed", n_failed, len(outcomes))
        return merged

    def _resolve_seeds(self, jobs: list[PricingJob]) -> list[PricingJob]:
        """Give every unseeded job a child of the framework seed, in order."""
        if self.seed_seq is None:
            return jobs
        unseeded = [k for k, job in enumerate(jobs) if job.seed is None]
        children = self.seed_seq.spawn(len(unseeded))
        resolved = list(jobs)
        for k, child in zip(unseeded, children):
            resolved[k] = replace(jobs[k], seed=child)
        return resolved

    @staticmethod
    def _create_backend(
        backend: str, n_workers: Optional[int], n_jobs: int
    ) -> SequentialBackend | ThreadBackend | ProcessBackend:
        if backend not in _VALID_BACKENDS:
            logger.warning(
                "backend must be one of %s, got '%s'. Defaulting to 'sequential'.",
                _VALID_BACKENDS,
                backend,
            )
            backend = "sequential"
        if backend == "sequential" or n_jobs <= 1:
            return SequentialBackend()
        if n_workers is None:
            n_workers = mp.cpu_count()  # pragma: no cover
        if backend == "thread":
            return ThreadBackend(n_workers=n_workers)
        return ProcessBackend(n_workers=n_workers)

    def compare_results(self, names: list[str], metric: str = "price") -> dict[str, float]:
        r"""
        Compare a metric across previously run jobs.

        Parameters
        ----------
        names : list of str
            Job names with an outcome in :attr:`outcomes`.
        metric : {"price", "exact", "std", "se", "error", "time"}, default ``"price"``
            ``"error"`` is :math:`|V_{\text{BS}} - \hat V|`; ``"time"`` is the
            path-loop wall-clock time.

        Returns
        -------
        dict
            ``{name: value}`` pairs.

        Raises
        ------
        ValueError
            If a job has no outcome, failed, or ``metric`` is unknown.
        """
        out: dict[str, float] = {}
        for name in names:
            outcome = self.outcomes.get(name)
            if outcome is None:
                raise ValueError(f"No results found for job '{name}'")
            if not outcome.ok:
                raise ValueError(f"Job '{name}' failed: {outcome.error}")
            r, s = outcome.result, outcome.statistics
            if metric == "price":
                out[name] = r.price
            elif metric == "exact":
                out[name] = s.exact_price
            elif metric == "std":
                out[name] = s.std
            elif metric == "se":
                out[name] = s.standard_error
            elif metric == "error":
                out[name] = abs(s.exact_price - r.price)
            elif metric == "time":
                out[name] = r.execution_time
            else:
                raise ValueError(f"Unknown metric: {metric}")
        return out


__all__ = [
    "SimulationResult",
    "StatisticsRecord",
    "PricingJob",
    "JobOutcome",
    "PricingFramework",
]
