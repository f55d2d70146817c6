"""
Bounded worker pool for batch status checks.

Tasks run on a ThreadPoolExecutor (at most ``max_workers`` at a time) and
report back through a queue drained by a single aggregator. All tasks share
one CancelScope:

- a task that *returns* has produced a per-item result (including domain
  failures such as "ingestion failed"); siblings keep running
- a task that *raises* is a hard error; the scope is cancelled and the
  remaining tasks stop at their next checkpoint
- the scope also expires at a wall-clock deadline
"""

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from kusari_cli.upload.exceptions import BatchCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 5
DEFAULT_DEADLINE = 15 * 60


class CancelScope:
    """Shared cancellation flag with an optional deadline."""

    def __init__(self, deadline_seconds: Optional[float] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None
        self.deadline = time.monotonic() + deadline_seconds if deadline_seconds else None
        self.deadline_seconds = deadline_seconds

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: BaseException) -> None:
        """Cancel the scope; the first reason wins."""
        with self._lock:
            if self._error is None:
                self._error = reason
        self._event.set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise BatchCancelledError if cancelled or past the deadline."""
        if self.deadline is not None and not self.cancelled and time.monotonic() >= self.deadline:
            self.cancel(BatchCancelledError(f"deadline of {self.deadline_seconds:g}s exceeded"))
        if self.cancelled:
            raise BatchCancelledError(f"batch cancelled: {self._error}")

    def sleep(self, seconds: float) -> None:
        """Wait ``seconds`` unless cancelled first; then check the scope."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(seconds)
        self.check()


@dataclass
class BatchOutcome(Generic[R]):
    """Per-item results in input order and the error that cancelled the batch, if any.

    ``results[i]`` is None when item ``i`` never finished.
    """
    results: List[Optional[R]] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def completed(self) -> List[R]:
        return [r for r in self.results if r is not None]


class BoundedTaskPool:
    """Run ``task(item, scope)`` for every item with bounded concurrency."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS, deadline_seconds: Optional[float] = DEFAULT_DEADLINE):
        self.max_workers = max(1, max_workers)
        self.deadline_seconds = deadline_seconds

    def run(
        self,
        items: Iterable[T],
        task: Callable[[T, CancelScope], R],
        on_result: Optional[Callable[[int, R], None]] = None,
    ) -> BatchOutcome[R]:
        items = list(items)
        scope = CancelScope(self.deadline_seconds)
        messages: "queue.Queue[tuple]" = queue.Queue()

        def worker(index: int, item: T) -> None:
            try:
                scope.check()
                messages.put((index, task(item, scope)))
            except BatchCancelledError:
                messages.put((index, None))
            except Exception as e:
                logger.debug("Batch task %d failed, cancelling batch: %s", index, e)
                scope.cancel(e)
                messages.put((index, None))

        outcome: BatchOutcome[R] = BatchOutcome(results=[None] * len(items))
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="kusari-batch") as executor:
            for index, item in enumerate(items):
                executor.submit(worker, index, item)

            for _ in range(len(items)):
                index, result = messages.get()
                if result is None:
                    continue
                outcome.results[index] = result
                if on_result is not None:
                    on_result(index, result)

        outcome.error = scope.error
        return outcome
