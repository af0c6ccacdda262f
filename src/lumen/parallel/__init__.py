"""Parallel rendering across worker processes.

Components:
    messages: Picklable job, result and progress envelopes
    workers: WorkerPool, a fixed set of spawn-started processes
    regions: Row partitioning, the render worker loop and render_parallel()
"""

from .messages import Region, RegionJob, RegionProgress, RegionResult, WorkerFailure
from .regions import RenderError, partition_rows, render_parallel, render_worker
from .workers import WorkerError, WorkerPool, default_worker_count

__all__ = [
    "Region",
    "RegionJob",
    "RegionResult",
    "RegionProgress",
    "WorkerFailure",
    "WorkerPool",
    "WorkerError",
    "default_worker_count",
    "RenderError",
    "partition_rows",
    "render_parallel",
    "render_worker",
]
