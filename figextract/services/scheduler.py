# services/scheduler.py
"""
Bounded concurrent runner for work units.

Units are dispatched in input order through a fixed-size thread pool whose
submit blocks while ``max_concurrency`` units are in flight, so the pool is
refilled as soon as any unit finishes. Every unit bumps the run's progress
counter exactly once, whether it succeeded or not.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from loguru import logger


@dataclass
class WorkUnit:
    """One independently completable task (render a page, classify an image)"""
    name: str
    run: Callable[[], Any]


class ProgressCounter:
    """Monotonic counter of completed units, safe to bump from worker threads"""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        return self._value

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0


class RunContext:
    """
    Progress state for one run, shared by every scheduler invocation in it.

    ``estimated_total`` is only a hint for percentages; completion is judged
    against the number of units actually dispatched.
    """

    def __init__(self, estimated_total: int = 0,
                 progress_callback: Optional[Callable[["RunContext"], None]] = None):
        self.progress = ProgressCounter()
        self.estimated_total = estimated_total
        self.progress_callback = progress_callback
        self.completed = threading.Event()
        self.started_at = time.monotonic()
        self._dispatched = 0
        self._lock = threading.Lock()

    @property
    def dispatched(self) -> int:
        return self._dispatched

    def mark_dispatched(self) -> None:
        with self._lock:
            self._dispatched += 1

    def percent(self) -> float:
        if self.is_complete():
            return 100.0
        total = max(self.estimated_total, self._dispatched)
        if total <= 0:
            return 0.0
        return min(100.0, self.progress.value * 100.0 / total)

    def is_complete(self) -> bool:
        return self.completed.is_set() and self.progress.value >= self._dispatched

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def finish(self) -> None:
        self.completed.set()

    def notify(self) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(self)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")


class BoundedTaskScheduler:
    """
    Runs work units with at most ``max_concurrency`` active at any instant,
    or one after another when multithreading is disabled.

    There is no retry: a unit that raises is logged, counted as completed and
    yields ``None`` in the results.
    """

    def __init__(self, max_concurrency: int = 2, use_multithreading: bool = True):
        self.max_concurrency = max(1, max_concurrency)
        self.use_multithreading = use_multithreading
        self._active = 0
        self._peak_active = 0
        self._active_lock = threading.Lock()

    @property
    def peak_active(self) -> int:
        """Highest number of simultaneously running units observed so far"""
        return self._peak_active

    def run(self, units: Iterable[WorkUnit], context: RunContext) -> List[Any]:
        """Run every unit; results are returned in input order"""
        if not self.use_multithreading:
            return self._run_serial(units, context)
        return self._run_parallel(units, context)

    def _run_serial(self, units: Iterable[WorkUnit], context: RunContext) -> List[Any]:
        results = []
        for unit in units:
            context.mark_dispatched()
            results.append(self._execute(unit, context))
        return results

    def _run_parallel(self, units: Iterable[WorkUnit], context: RunContext) -> List[Any]:
        slots = threading.BoundedSemaphore(self.max_concurrency)
        futures = []

        with ThreadPoolExecutor(max_workers=self.max_concurrency,
                                thread_name_prefix="figextract") as executor:
            for unit in units:
                slots.acquire()  # blocks until a running unit finishes
                context.mark_dispatched()
                try:
                    futures.append(executor.submit(self._execute, unit, context, slots))
                except RuntimeError:
                    slots.release()
                    raise
            wait(futures)

        return [future.result() for future in futures]

    def _execute(self, unit: WorkUnit, context: RunContext,
                 slots: Optional[threading.BoundedSemaphore] = None) -> Any:
        with self._active_lock:
            self._active += 1
            self._peak_active = max(self._peak_active, self._active)

        result = None
        try:
            result = unit.run()
        except Exception as e:
            logger.error(f"Work unit {unit.name} failed: {e}")
        finally:
            with self._active_lock:
                self._active -= 1
            context.progress.increment()
            if slots is not None:
                slots.release()
            context.notify()
        return result
