r"""
Base classes and utilities for execution backends.

This module provides:

Protocol
    :class:`ExecutionBackend` — Interface for running a batch of pricing jobs

Functions
    :func:`make_blocks` — Chunking helper for path blocks
    :func:`run_pricing_job` — Top-level job worker, importable by process pools
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional, Protocol, Sequence

from ..config import DEFAULT_SETTINGS, PricerSettings
from ..exceptions import PricingError

if TYPE_CHECKING:
    from ..core import JobOutcome, PricingJob

logger = logging.getLogger(__name__)

__all__ = [
    "ExecutionBackend",
    "make_blocks",
    "run_pricing_job",
]


def make_blocks(n: int, block_size: int = 10_000) -> list[tuple[int, int]]:
    r"""
    Partition an integer range :math:`[0, n)` into half-open blocks :math:`(i, j)`.

    Examples
    --------
    >>> make_blocks(5, block_size=2)
    [(0, 2), (2, 4), (4, 5)]
    """
    if block_size < 1:
        raise ValueError("block_size must be >= 1")
    blocks = []
    i = 0
    while i < n:
        j = min(i + block_size, n)
        blocks.append((i, j))
        i = j
    return blocks


def run_pricing_job(job: "PricingJob", settings: Optional[PricerSettings] = None) -> "JobOutcome":
    r"""
    Price one job end to end in the **current** worker.

    Builds the job's own variate source from ``job.engine`` and ``job.seed``,
    runs the driver and the statistics aggregator, and wraps the result.

    Parameters
    ----------
    job : PricingJob
        Must be pickleable when used with a process backend.
    settings : PricerSettings, optional
        Shared run settings.

    Returns
    -------
    JobOutcome
        Carries either the result and statistics or the :class:`PricingError`
        that stopped the job.
    """
    # Import here to avoid circular dependency
    from ..core import JobOutcome  # pylint: disable=import-outside-toplevel
    from ..rng import NormalVariateSource  # pylint: disable=import-outside-toplevel
    from ..simulation import MonteCarloPricer  # pylint: disable=import-outside-toplevel
    from ..statistics import StatisticsAggregator  # pylint: disable=import-outside-toplevel

    settings = settings or DEFAULT_SETTINGS
    try:
        source = NormalVariateSource(job.engine, job.seed)
        result = MonteCarloPricer(settings).run(job.contract, job.scheme_kind, job.payoff, source)
        stats = StatisticsAggregator(settings).compute(result)
    except PricingError as e:
        logger.error("Job '%s' failed: %s", job.name, e)
        return JobOutcome(name=job.name, error=e)
    return JobOutcome(name=job.name, result=result, statistics=stats)


class ExecutionBackend(Protocol):
    r"""
    Protocol for backends that run a batch of independent pricing jobs.

    Backends own the scheduling only; each job builds its own variate source,
    so outcomes do not depend on the order in which workers finish.
    """

    def run(
        self,
        jobs: Sequence["PricingJob"],
        settings: PricerSettings,
        progress_callback: Callable[[int, int], None] | None = None,
        timeout: float | None = None,
    ) -> list["JobOutcome"]:
        r"""
        Run ``jobs`` and return their outcomes in input order.

        Parameters
        ----------
        jobs : sequence of PricingJob
            Jobs with resolved seeds.
        settings : PricerSettings
            Shared run settings.
        progress_callback : callable or None
            Optional callback ``f(completed_jobs, total_jobs)``.
        timeout : float or None
            Upper bound in seconds on the wait for all jobs.

        Returns
        -------
        list of JobOutcome
        """
