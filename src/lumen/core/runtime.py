"""Taichi runtime initialisation.

Every process that renders owns exactly one Taichi runtime. The runtime's
random seed is the only source of randomness for kernels, so each worker
process initialises it with an independent seed.

Example:
    >>> from src.lumen.core.runtime import init_taichi
    >>> init_taichi()  # seeded from the clock and pid
    >>> from src.lumen.core.render import render  # field modules after init
"""

from __future__ import annotations

import logging
import os
import time

import taichi as ti

logger = logging.getLogger(__name__)

_initialized = False


def make_seed() -> int:
    """Derive a 31-bit seed from the wall clock and the process id.

    Two workers started in the same nanosecond still differ by pid.
    """
    return (time.time_ns() ^ (os.getpid() << 16)) & 0x7FFFFFFF


def init_taichi(
    seed: int | None = None,
    *,
    num_threads: int | None = None,
    log_level: str = ti.WARN,
) -> int:
    """Initialise the Taichi runtime on the CPU backend.

    Calling this more than once in a process is a no-op; the first seed wins.

    Args:
        seed: Random seed for ti.random. None derives one with make_seed().
        num_threads: Cap on Taichi's CPU thread pool. Worker processes pass 1
            so that the pool is the only source of parallelism.
        log_level: Taichi's own log level.

    Returns:
        The seed the runtime was initialised with, or -1 if it was already
        initialised.
    """
    global _initialized
    if _initialized:
        return -1

    if seed is None:
        seed = make_seed()

    kwargs = {"arch": ti.cpu, "random_seed": seed, "log_level": log_level}
    if num_threads is not None:
        kwargs["cpu_max_num_threads"] = num_threads
    ti.init(**kwargs)
    _initialized = True
    logger.debug("Taichi initialised (seed=%d, threads=%s)", seed, num_threads)
    return seed

