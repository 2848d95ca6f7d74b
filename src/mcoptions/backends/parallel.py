r"""
Parallel execution backends.

This module provides:

Classes
    :class:`ThreadBackend` — Job-level parallelism using ThreadPoolExecutor
    :class:`ProcessBackend` — Job-level parallelism using ProcessPoolExecutor

Both backends parallelise across independent jobs only. A single job runs on
one worker from start to finish; its outcome is merged into the batch once,
after every job has completed.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import queue
from concurrent.futures import FIRST_EXCEPTION, Future, ProcessPoolExecutor, ThreadPoolExecutor, as_completed, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import TYPE_CHECKING, Callable, Sequence

from ..config import PricerSettings
from .base import run_pricing_job

if TYPE_CHECKING:
    from ..core import JobOutcome, PricingJob

logger = logging.getLogger(__name__)

__all__ = [
    "ThreadBackend",
    "ProcessBackend",
]


def _wait_all(futs: list[Future], timeout: float | None, n_jobs: int) -> None:
    """Block until every future is done or raise :class:`TimeoutError`."""
    done, not_done = wait(futs, timeout=timeout, return_when=FIRST_EXCEPTION)
    if not_done and not any(f.exception() for f in done):
        for f in not_done:
            f.cancel()
        raise TimeoutError(f"{len(not_done)} of {n_jobs} pricing jobs did not finish within {timeout} seconds")
    for f in done:
        f.result()  # re-raise worker crashes


def _report_as_completed(
    futs: list[Future],
    timeout: float | None,
    n_jobs: int,
    progress_callback: Callable[[int, int], None] | None,
) -> None:
    """Report progress on the calling thread as futures finish; raise :class:`TimeoutError` on expiry."""
    try:
        for completed, f in enumerate(as_completed(futs, timeout=timeout), start=1):
            f.result()  # re-raise worker crashes
            if progress_callback:
                progress_callback(completed, n_jobs)
    except FuturesTimeoutError:
        n_pending = sum(not f.done() for f in futs)
        for f in futs:
            f.cancel()
        raise TimeoutError(
            f"{n_pending} of {n_jobs} pricing jobs did not finish within {timeout} seconds"
        ) from None


class ThreadBackend:
    r"""
    Thread-based parallel execution backend.

    Each worker thread prices whole jobs and pushes ``(index, outcome)`` onto a
    :class:`queue.Queue`; the queue is drained and ordered once all futures
    have completed. Progress is reported on the calling thread, once per
    finished job, with a strictly increasing count. NumPy releases the GIL
    inside the vectorised block loop.

    Parameters
    ----------
    n_workers : int
        Number of worker threads.

    Examples
    --------
    >>> outcomes = ThreadBackend(n_workers=4).run(jobs, settings)  # doctest: +SKIP
    """

    def __init__(self, n_workers: int):
        if n_workers < 1:
            raise ValueError("n_workers must be >= 1")
        self.n_workers = n_workers

    def run(
        self,
        jobs: Sequence["PricingJob"],
        settings: PricerSettings,
        progress_callback: Callable[[int, int], None] | None = None,
        timeout: float | None = None,
    ) -> list["JobOutcome"]:
        total = len(jobs)
        if total == 0:
            return []
        logger.info("Running %d pricing jobs on %d threads...", total, min(self.n_workers, total))
        merged: queue.Queue = queue.Queue()

        def _work(index: int, job: "PricingJob") -> None:
            merged.put((index, run_pricing_job(job, settings)))

        ex = ThreadPoolExecutor(max_workers=min(self.n_workers, total))
        try:
            futs = [ex.submit(_work, k, job) for k, job in enumerate(jobs)]
            _report_as_completed(futs, timeout, total, progress_callback)
        finally:
            ex.shutdown(wait=False, cancel_futures=True)

        collected = []
        while not merged.empty():
            collected.append(merged.get_nowait())
        collected.sort(key=lambda item: item[0])
        return [outcome for _, outcome in collected]


class ProcessBackend:
    r"""
    Process-based parallel execution backend.

    Uses :class:`concurrent.futures.ProcessPoolExecutor` with the ``spawn``
    context and the top-level :func:`~mcoptions.backends.base.run_pricing_job`
    worker, so jobs and settings must be pickleable.

    Parameters
    ----------
    n_workers : int
        Number of worker processes.

    Examples
    --------
    >>> outcomes = ProcessBackend(n_workers=2).run(jobs, settings)  # doctest: +SKIP
    """

    def __init__(self, n_workers: int):
        if n_workers < 1:
            raise ValueError("n_workers must be >= 1")
        self.n_workers = n_workers

    def run(
        self,
        jobs: Sequence["PricingJob"],
        settings: PricerSettings,
        progress_callback: Callable[[int, int], None] | None = None,
        timeout: float | None = None,
    ) -> list["JobOutcome"]:
        total = len(jobs)
        if total == 0:
            return []
        outcomes: list = [None] * total
        logger.info("Running %d pricing jobs in %d processes...", total, min(self.n_workers, total))

        ex = ProcessPoolExecutor(
            max_workers=min(self.n_workers, total),
            mp_context=mp.get_context("spawn"),
        )
        futs: list[Future] = []
        try:
            for k, job in enumerate(jobs):
                f = ex.submit(run_pricing_job, job, settings)
                f.idx = k  # type: ignore[attr-defined]
                futs.append(f)
            _wait_all(futs, timeout, total)
        except KeyboardInterrupt:  # pragma: no cover
            for f in futs:
                f.cancel()
            raise
        finally:
            ex.shutdown(wait=False, cancel_futures=True)

        for completed, f in enumerate(futs, start=1):
            outcomes[f.idx] = f.result()  # type: ignore[attr-defined]
            if progress_callback:
                progress_callback(completed, total)
        return outcomes
