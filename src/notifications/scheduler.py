"""Dispatch scheduler: two worker lanes plus delayed jobs.

The immediate lane serves single notifications and webhook deliveries; the
bulk lane serves batch chunks so a large campaign cannot starve
transactional traffic. Every submission returns a Future. Delayed jobs
sit in a heap until due and are then handed to their lane.

``inline`` mode runs jobs synchronously in the caller's thread and ignores
delays; it is used by tests and one-shot CLI runs.
"""

import heapq
import itertools
import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor

import structlog
from notifications.notification.notification import DispatchLane

logger = structlog.get_logger(__name__)


class SchedulerClosed(RuntimeError):
    """Raised when work is submitted after ``shutdown``."""


class DispatchScheduler:
    def __init__(
        self,
        immediate_concurrency: int = 10,
        bulk_concurrency: int = 2,
        mode: str = "threaded",
        domain=None,
        clock=time.monotonic,
    ):
        self.mode = mode
        self.domain = domain
        self._clock = clock
        self._closed = False
        self._lock = threading.Condition()
        self._delayed: list = []
        self._sequence = itertools.count()
        self._timer: threading.Thread | None = None
        self._executors: dict[str, ThreadPoolExecutor] = {}

        if mode == "threaded":
            self._executors = {
                DispatchLane.IMMEDIATE.value: ThreadPoolExecutor(
                    max_workers=immediate_concurrency, thread_name_prefix="dispatch-immediate"
                ),
                DispatchLane.BULK.value: ThreadPoolExecutor(
                    max_workers=bulk_concurrency, thread_name_prefix="dispatch-bulk"
                ),
            }
        elif mode != "inline":
            raise ValueError(f"Unknown scheduler mode: {mode}")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def submit(self, fn, *args, lane: str = DispatchLane.IMMEDIATE.value, delay: float = 0.0, **kwargs) -> Future:
        """Run ``fn(*args, **kwargs)`` on ``lane`` after ``delay`` seconds."""
        if self._closed:
            raise SchedulerClosed("Dispatch scheduler is shut down")

        if self.mode == "inline":
            future = Future()
            future.set_running_or_notify_cancel()
            self._run(future, fn, args, kwargs)
            return future

        if lane not in self._executors:
            raise ValueError(f"Unknown dispatch lane: {lane}")

        if delay <= 0:
            return self._executors[lane].submit(self._job, fn, args, kwargs)

        future = Future()
        with self._lock:
            heapq.heappush(self._delayed, (self._clock() + delay, next(self._sequence), lane, fn, args, kwargs, future))
            self._ensure_timer()
            self._lock.notify()
        return future

    def _job(self, fn, args, kwargs):
        try:
            if self.domain is None:
                return fn(*args, **kwargs)
            with self.domain.domain_context():
                return fn(*args, **kwargs)
        except Exception:
            logger.exception("Dispatch job failed", job=getattr(fn, "__name__", repr(fn)))
            raise

    def _run(self, future, fn, args, kwargs):
        try:
            result = self._job(fn, args, kwargs)
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)

    # ------------------------------------------------------------------
    # Delayed jobs
    # ------------------------------------------------------------------
    def _ensure_timer(self):
        if self._timer is None or not self._timer.is_alive():
            self._timer = threading.Thread(target=self._timer_loop, name="dispatch-timer", daemon=True)
            self._timer.start()

    def _timer_loop(self):
        while True:
            with self._lock:
                while not self._closed and (not self._delayed or self._delayed[0][0] > self._clock()):
                    timeout = self._delayed[0][0] - self._clock() if self._delayed else None
                    self._lock.wait(timeout)
                if self._closed:
                    return
                _, _, lane, fn, args, kwargs, future = heapq.heappop(self._delayed)

            if not future.set_running_or_notify_cancel():
                continue
            inner = self._executors[lane].submit(self._job, fn, args, kwargs)
            inner.add_done_callback(lambda done, outer=future: _chain(done, outer))

    def pending_delayed(self) -> int:
        with self._lock:
            return len(self._delayed)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------
    def shutdown(self, wait: bool = True):
        """Stop accepting work, drop delayed jobs and drain in-flight ones."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            dropped = [entry[-1] for entry in self._delayed]
            self._delayed.clear()
            self._lock.notify_all()

        for future in dropped:
            future.cancel()

        for executor in self._executors.values():
            executor.shutdown(wait=wait)

        logger.info("Dispatch scheduler stopped", dropped_delayed=len(dropped), drained=wait)


def _chain(done: Future, outer: Future):
    if done.cancelled():
        outer.set_exception(CancelledError())
    elif done.exception() is not None:
        outer.set_exception(done.exception())
    else:
        outer.set_result(done.result())
