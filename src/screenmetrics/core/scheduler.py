"""Periodic task schedulers.

A scheduler runs a callback every ``interval_s`` seconds until the returned
task is cancelled. ``ThreadingScheduler`` uses wall-clock time on daemon
threads; ``SimPyScheduler`` runs the same contract on simulated time.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

import simpy

logger = logging.getLogger(__name__)


class ScheduledTask(ABC):
    """Handle for a periodic callback."""

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class PeriodicScheduler(ABC):
    @abstractmethod
    def schedule(self, interval_s: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` every ``interval_s`` seconds, first after one interval."""
        pass


def _run_callback(callback: Callable[[], None]) -> None:
    # A failing tick must not stop the timer.
    try:
        callback()
    except Exception:
        logger.exception(f"Periodic callback {getattr(callback, '__qualname__', callback)} failed")


class _ThreadTask(ScheduledTask):
    def __init__(self, interval_s: float, callback: Callable[[], None]):
        self._interval_s = interval_s
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name="screenmetrics-timer", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self._interval_s):
            _run_callback(self._callback)

    def cancel(self) -> None:
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=1.0)

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()


class ThreadingScheduler(PeriodicScheduler):
    """Runs each periodic task on its own daemon thread."""

    def schedule(self, interval_s: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        task = _ThreadTask(interval_s, callback)
        task.start()
        logger.debug(f"Scheduled periodic task every {interval_s}s")
        return task


class _SimPyTask(ScheduledTask):
    def __init__(self, env: simpy.Environment, interval_s: float, callback: Callable[[], None]):
        self._env = env
        self._interval_s = interval_s
        self._callback = callback
        self._cancelled = False
        self.ticks = 0
        self.process = env.process(self._loop())

    def _loop(self):
        while not self._cancelled:
            yield self._env.timeout(self._interval_s)
            if self._cancelled:
                break
            self.ticks += 1
            _run_callback(self._callback)

    def cancel(self) -> None:
        # The process sees the flag on its next wake-up and exits without firing.
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class SimPyScheduler(PeriodicScheduler):
    """Schedules periodic tasks as SimPy processes."""

    def __init__(self, simpy_env: simpy.Environment):
        self.simpy_env = simpy_env

    def schedule(self, interval_s: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        task = _SimPyTask(self.simpy_env, interval_s, callback)
        logger.debug(f"Scheduled simulated periodic task every {interval_s}s at t={self.simpy_env.now}")
        return task
