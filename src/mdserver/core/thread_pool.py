"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Connections from both listeners are queued here and served by a bounded
set of worker threads: one worker per connection at a time, in parallel.

    HTTP accept loop ──┐
                       ├──► Queue ──► Worker-0 ─┐
    HTTPS accept loop ─┘   (bounded)  Worker-1 ─┼─► handle_connection(conn)
                                      ...      ─┘

=============================================================================
SIZING
=============================================================================

    min_workers   started up front, live until shutdown
    max_workers   ceiling; one more worker is added whenever a task is
                  queued while every existing worker is busy
    queue_size    backlog of accepted connections; submit() blocks (or,
                  with block=False, returns False) when it is full

Work here is mostly filesystem I/O and socket writes, which release the
GIL, so threads give real parallelism. Markdown rendering is CPU-bound
but only happens on cache misses.

=============================================================================
SHUTDOWN
=============================================================================

One stop marker per worker is queued after the pending jobs;
each worker exits when it takes one.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


# Queued once per worker at shutdown
_STOP = object()


@dataclass
class Job:
    """fn(*args, **kwargs), stamped with when it was queued."""

    fn: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    queued_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):

    def __init__(self, jobs: queue.Queue, index: int):
        super().__init__(name=f"mdserver-worker-{index}", daemon=True)
        self.jobs = jobs
        self.busy = False
        self.completed = 0
        self.failed = 0

    def run(self):
        while True:
            job = self.jobs.get()
            try:
                if job is _STOP:
                    return
                self._run(job)
            finally:
                self.jobs.task_done()

    def _run(self, job: Job):
        self.busy = True
        waited = time.monotonic() - job.queued_at
        try:
            job.fn(*job.args, **job.kwargs)
        except Exception as e:
            # one broken connection must not cost us the worker
            self.failed += 1
            logger.exception(f"{self.name}: job failed after {waited:.3f}s in queue: {e}")
        else:
            self.completed += 1
        finally:
            self.busy = False


class ThreadPool:
    """
    Workers shared by every listener.

        pool = ThreadPool(min_workers=4, max_workers=8)
        pool.start()
        pool.submit(process_connection, args=(conn,), block=False)
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self._jobs: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._spawned = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        with self._lock:
            if self._running:
                return
            for _ in range(self.min_workers):
                self._spawn()
            self._running = True
        logger.info(f"Thread pool started with {self.min_workers} workers (max {self.max_workers})")

    def _spawn(self):
        # caller holds self._lock
        worker = Worker(self._jobs, self._spawned)
        self._spawned += 1
        self._workers.append(worker)
        worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Returns False when the queue is full (immediately with block=False,
        after queue_timeout otherwise).

        Raises:
            RuntimeError: The pool isn't running.
        """
        if not self._running:
            raise RuntimeError("Thread pool is not running")

        try:
            self._jobs.put(Job(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        with self._lock:
            saturated = all(w.busy for w in self._workers) and not self._jobs.empty()
            if saturated and len(self._workers) < self.max_workers:
                logger.debug(f"All {len(self._workers)} workers busy, adding one")
                self._spawn()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        With wait=True, queued jobs are finished first (for at most
        `timeout` seconds); then each worker is handed a stop marker.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            workers, self._workers = self._workers, []

        logger.info("Stopping thread pool...")

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._jobs.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(f"{self._jobs.unfinished_tasks} jobs still running, not waiting")
                    break
                time.sleep(0.05)

        for _ in workers:
            try:
                self._jobs.put(_STOP, timeout=1.0)
            except queue.Full:
                break

        for worker in workers:
            worker.join(timeout=2.0)

        logger.info("Thread pool stopped")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.busy)

    @property
    def idle_workers(self) -> int:
        return len(self._workers) - self.busy_workers

    @property
    def stats(self) -> dict:
        workers = list(self._workers)
        return {
            "workers": len(workers),
            "busy": sum(1 for w in workers if w.busy),
            "queued": self._jobs.qsize(),
            "completed": sum(w.completed for w in workers),
            "failed": sum(w.failed for w in workers),
        }
