r"""
Sequential execution backend.

Runs pricing jobs one after another on the calling thread.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Sequence

from ..config import PricerSettings
from .base import run_pricing_job

if TYPE_CHECKING:
    from ..core import JobOutcome, PricingJob

__all__ = ["SequentialBackend"]


class SequentialBackend:
    r"""
    Sequential (single-threaded) execution backend.

    Suitable for a handful of jobs or for debugging. ``timeout`` is accepted
    for interface compatibility and ignored.

    Examples
    --------
    >>> outcomes = SequentialBackend().run(jobs, settings)  # doctest: +SKIP
    """

    def run(
        self,
        jobs: Sequence["PricingJob"],
        settings: PricerSettings,
        progress_callback: Callable[[int, int], None] | None = None,
        timeout: float | None = None,
    ) -> list["JobOutcome"]:
        total = len(jobs)
        outcomes = []
        for k, job in enumerate(jobs, start=1):
            outcomes.append(run_pricing_job(job, settings))
            if progress_callback:
                progress_callback(k, total)
        return outcomes
