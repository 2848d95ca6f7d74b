"""
Execution backends for batches of pricing jobs.

Backends
    :class:`SequentialBackend` — Jobs one after another on the calling thread
    :class:`ThreadBackend` — Thread-based parallelism across jobs
    :class:`ProcessBackend` — Process-based parallelism across jobs

Utilities
    :func:`make_blocks` — Chunking helper for path blocks
    :func:`run_pricing_job` — Top-level worker for process pools

Protocol
    :class:`ExecutionBackend` — Interface for custom backends
"""

from .base import ExecutionBackend, make_blocks, run_pricing_job
from .parallel import ProcessBackend, ThreadBackend
from .sequential import SequentialBackend

__all__ = [
    "ExecutionBackend",
    "SequentialBackend",
    "ThreadBackend",
    "ProcessBackend",
    "make_blocks",
    "run_pricing_job",
]
