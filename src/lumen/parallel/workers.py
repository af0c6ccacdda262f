"""Process-based worker pool.

A fixed number of worker processes (spawn start method), each with a private
inbox queue, all writing to one shared outbox. Jobs are dealt round-robin.
The coordinator calls done() once per finished unit of work; when the
outstanding count reaches zero the pool stops itself.

Worker processes run ``work_function(inbox, outbox)``, which must be a
picklable module-level callable that reads jobs from ``inbox`` until it
receives ``None``.

Example:
    >>> pool = WorkerPool(4, render_worker)
    >>> pool.start()
    >>> pool.add_all(jobs)
    >>> for message in pool.results():
    ...     handle(message)
    ...     pool.done()
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import queue
import time
import traceback
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from src.lumen.parallel.messages import WorkerFailure

logger = logging.getLogger(__name__)

# Seconds to wait for every worker to register after start()
HANDSHAKE_TIMEOUT = 60.0

# Seconds to wait for a worker to exit before terminating it
SHUTDOWN_TIMEOUT = 5.0

# Seconds between liveness checks while waiting on a queue
POLL_INTERVAL = 0.5

# Sentinel telling a worker to exit
SHUTDOWN = None

WorkFunction = Callable[[Any, Any], None]


class WorkerError(RuntimeError):
    """A worker failed to start, died, or reported an exception."""


def _run_worker(work_function: WorkFunction, index: int, inbox, outbox, registry) -> None:
    """Process entry point: register, then run the work function.

    Module-level so that it can be pickled for the spawn start method.
    """
    registry.put(index)
    try:
        work_function(inbox, outbox)
    except Exception:
        outbox.put(WorkerFailure(worker=index, error=traceback.format_exc()))


def default_worker_count() -> int:
    """One worker per core, leaving one core for the coordinator."""
    return max(1, (mp.cpu_count() or 1) - 1)


class WorkerPool:
    """Fixed-size set of worker processes with a shared result channel.

    Args:
        num_workers: Number of worker processes.
        work_function: Picklable callable run in every worker.
        stop_when_jobs_empty: Stop automatically when done() brings the
            outstanding job count to zero.
        handshake_timeout: Seconds start() waits for all workers.
        poll_interval: Seconds between liveness checks in results().
    """

    def __init__(
        self,
        num_workers: int,
        work_function: WorkFunction,
        *,
        stop_when_jobs_empty: bool = True,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        self.num_workers = num_workers
        self.stop_when_jobs_empty = stop_when_jobs_empty
        self._work_function = work_function
        self._handshake_timeout = handshake_timeout
        self._poll_interval = poll_interval

        self._ctx = mp.get_context("spawn")
        self._inboxes: list = []
        self._processes: list = []
        self._outbox = None

        self._submitted = 0
        self._jobs = 0
        self._started = False
        self._stopped = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Spawn every worker and wait until each has registered.

        Raises:
            RuntimeError: If the pool was already started.
            WorkerError: If a worker dies or the handshake times out.
        """
        if self._started or self._stopped:
            raise RuntimeError("WorkerPool can only be started once")

        self._outbox = self._ctx.Queue()
        registry = self._ctx.Queue()
        for i in range(self.num_workers):
            inbox = self._ctx.Queue()
            process = self._ctx.Process(
                target=_run_worker,
                args=(self._work_function, i, inbox, self._outbox, registry),
                name=f"lumen-worker-{i}",
                daemon=True,
            )
            process.start()
            self._inboxes.append(inbox)
            self._processes.append(process)

        registered: set[int] = set()
        deadline = time.monotonic() + self._handshake_timeout
        while len(registered) < self.num_workers:
            remaining = deadline - time.monotonic()
            if remaining <= 0.0:
                self._terminate()
                raise WorkerError(
                    f"Only {len(registered)}/{self.num_workers} workers registered "
                    f"within {self._handshake_timeout}s"
                )
            try:
                registered.add(registry.get(timeout=min(remaining, self._poll_interval)))
            except queue.Empty:
                dead = self._dead_workers()
                if dead:
                    self._terminate()
                    raise WorkerError(f"Workers died during start: {', '.join(dead)}") from None

        registry.close()
        self._started = True
        logger.info("Started %d workers", self.num_workers)

    def stop(self) -> None:
        """Close the result channel and shut every worker down.

        Workers get a shutdown sentinel and SHUTDOWN_TIMEOUT seconds to exit
        before they are terminated. Calling stop() again does nothing.
        """
        if self._stopped:
            return
        self._stopped = True

        for inbox in self._inboxes:
            try:
                inbox.put(SHUTDOWN)
            except (ValueError, OSError):
                pass
        self._terminate()
        if self._outbox is not None:
            self._outbox.close()
        logger.info("Stopped worker pool (%d jobs submitted)", self._submitted)

    def _terminate(self) -> None:
        for process in self._processes:
            process.join(timeout=SHUTDOWN_TIMEOUT)
            if process.is_alive():
                logger.warning("Terminating unresponsive worker %s", process.name)
                process.terminate()
                process.join()

    def _dead_workers(self) -> list[str]:
        return [f"{p.name} (exit code {p.exitcode})" for p in self._processes if not p.is_alive()]

    @property
    def started(self) -> bool:
        return self._started

    @property
    def stopped(self) -> bool:
        return self._stopped

    def __enter__(self) -> WorkerPool:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def add(self, job: Any) -> None:
        """Queue a job on worker ``submitted % num_workers``.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._stopped:
            raise RuntimeError("Jobs can only be added to a running WorkerPool")
        self._inboxes[self._submitted % self.num_workers].put(job)
        self._submitted += 1
        self._jobs += 1

    def add_all(self, jobs: Iterable[Any]) -> None:
        for job in jobs:
            self.add(job)

    @property
    def jobs(self) -> int:
        """Jobs submitted but not yet marked done."""
        return self._jobs

    def done(self) -> None:
        """Mark one job finished; may stop the pool.

        Raises:
            RuntimeError: If no job is outstanding.
        """
        if self._jobs <= 0:
            raise RuntimeError("done() called with no outstanding jobs")
        self._jobs -= 1
        if self._jobs == 0 and self.stop_when_jobs_empty:
            self.stop()

    def results(self) -> Iterator[Any]:
        """Yield messages from the shared outbox until the pool stops.

        Messages from different workers arrive in no particular order.

        Raises:
            WorkerError: If a worker reports an exception or exits while the
                pool is running.
        """
        while self._started and not self._stopped:
            try:
                message = self._outbox.get(timeout=self._poll_interval)
            except queue.Empty:
                dead = self._dead_workers()
                if dead and not self._stopped:
                    raise WorkerError(f"Workers exited unexpectedly: {', '.join(dead)}") from None
                continue
            if isinstance(message, WorkerFailure):
                raise WorkerError(f"Worker {message.worker} failed:\n{message.error}")
            yield message
