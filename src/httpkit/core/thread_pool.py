"""
=============================================================================
WORKER POLICIES
=============================================================================

The accept loop never handles a request itself: it hands every accepted
connection to a worker policy and goes straight back to accept(). Two
policies are provided; ServerConfig.max_workers picks one.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPerConnection  (max_workers=None, the default)               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  accept() ──► Thread(target=handle, args=(conn,)).start()           │
    │                                                                      │
    │  • One fresh thread per connection, no upper bound                  │
    │  • Live threads are tracked so shutdown() can join them             │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool  (max_workers=N)                                        │
    │  ─────────────────────────────────────────────────────────────────  │
    │  accept() ──► queue.put(task) ──► [Worker 1] [Worker 2] ... [N]     │
    │                                                                      │
    │  • At most N requests in flight; the rest wait in a bounded queue   │
    │  • submit() returns False when the queue is full → 503              │
    │  • Poison pills (None) stop the workers on shutdown                 │
    └─────────────────────────────────────────────────────────────────────┘

Both expose the same surface: start(), submit(func, *args) -> bool,
shutdown(wait, timeout), active and stats.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A unit of work: func(*args), plus when it was queued."""

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.monotonic)


def _run_task(task: Task, worker_name: str) -> bool:
    """Run a task, logging (not raising) failures. Returns success."""
    start = time.monotonic()
    try:
        task.func(*task.args)
        logger.debug(f"{worker_name} completed task in {time.monotonic() - start:.3f}s")
        return True
    except Exception as e:
        # One bad task must not take the worker down with it.
        logger.exception(f"{worker_name} task failed after {time.monotonic() - start:.3f}s: {e}")
        return False


class ThreadPerConnection:
    """
    Spawn one thread per submitted task.

    Matches the classic "Thread.new per accepted socket" model, but keeps
    a registry of live threads so they can be counted and joined.
    """

    def __init__(self, name_prefix: str = "conn"):
        self.name_prefix = name_prefix
        self._threads: set = set()
        self._lock = threading.Lock()
        self._counter = 0
        self._started = False
        self._shutdown = False
        self.tasks_completed = 0
        self.tasks_failed = 0

    def start(self):
        self._started = True
        self._shutdown = False

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        if not self._started:
            raise RuntimeError("Worker policy not started")
        if self._shutdown:
            raise RuntimeError("Worker policy is shutting down")

        with self._lock:
            self._counter += 1
            thread = threading.Thread(
                target=self._run,
                args=(Task(func, args),),
                name=f"{self.name_prefix}-{self._counter}",
                daemon=True,
            )
            self._threads.add(thread)
        thread.start()
        return True

    def _run(self, task: Task):
        current = threading.current_thread()
        try:
            ok = _run_task(task, current.name)
            with self._lock:
                if ok:
                    self.tasks_completed += 1
                else:
                    self.tasks_failed += 1
        finally:
            with self._lock:
                self._threads.discard(current)

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """Stop accepting tasks; optionally join in-flight threads."""
        self._shutdown = True
        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            for thread in self.threads():
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
        self._started = False

    def threads(self) -> list:
        with self._lock:
            return list(self._threads)

    @property
    def active(self) -> int:
        with self._lock:
            return len(self._threads)

    @property
    def stats(self) -> dict:
        return {
            "policy": "thread-per-connection",
            "active": self.active,
            "completed": self.tasks_completed,
            "failed": self.tasks_failed,
        }


class Worker(threading.Thread):
    """
    Pool thread: pull a task, run it, repeat until a poison pill (None).
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self.state = WorkerState.BUSY
                if _run_task(task, self.name):
                    self.tasks_completed += 1
                else:
                    self.tasks_failed += 1
            finally:
                self.state = WorkerState.IDLE
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")


class ThreadPool:
    """
    Fixed-size pool of worker threads fed by a bounded queue.

    Args:
        max_workers: Number of worker threads (requests in flight)
        queue_size: Connections allowed to wait for a free worker
    """

    def __init__(self, max_workers: int = 16, queue_size: int = 128):
        self.max_workers = max_workers
        self.queue_size = queue_size
        self._task_queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: list = []
        self._started = False
        self._shutdown = False

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.max_workers} workers")
        self._shutdown = False
        for worker_id in range(self.max_workers):
            worker = Worker(self._task_queue, worker_id)
            self._workers.append(worker)
            worker.start()
        self._started = True

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue a task without blocking the caller.

        Returns:
            True if queued, False if the queue is full

        Raises:
            RuntimeError: If the pool is not started or is shutting down
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        try:
            self._task_queue.put(Task(func, args), block=False)
            return True
        except queue.Full:
            return False

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the workers.

        With wait=True, queued tasks are drained first (bounded by
        timeout). Tasks still queued after that are discarded and their
        connections closed. Each worker then receives one poison pill.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        self._discard_queued()
        for _ in self._workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break
        for worker in self._workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    def _discard_queued(self):
        """Drop tasks still waiting and close the connections they carry."""
        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()
            if task is None:
                continue
            logger.warning(f"Discarding queued task {getattr(task.func, '__name__', task.func)}")
            for arg in task.args:
                close = getattr(arg, "close", None)
                if callable(close):
                    close()

    @property
    def active(self) -> int:
        """Workers currently running a task."""
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def stats(self) -> dict:
        return {
            "policy": "thread-pool",
            "workers": len(self._workers),
            "active": self.active,
            "queued": self._task_queue.qsize(),
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }


def create_worker_policy(max_workers: Optional[int] = None, queue_size: int = 128):
    """ThreadPerConnection when max_workers is None, else a ThreadPool."""
    if max_workers is None:
        return ThreadPerConnection()
    return ThreadPool(max_workers=max_workers, queue_size=queue_size)
