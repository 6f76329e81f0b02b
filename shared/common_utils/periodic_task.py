"""
Cooperative background worker.

PeriodicTask runs an action on a dedicated daemon thread, sleeping a fixed
interval between runs. Failures of the action, of the sleep, or of the error
handler, BaseException included, are logged and never leave the worker thread.

Usage:
    def heartbeat():
        ...

    task = PeriodicTask(90, heartbeat, name="cloud-heartbeat")
    task.start()

    # Later:
    task.suspend()
    task.resume()
    task.stop()
"""

import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .logger import logger


class TaskState(str, Enum):
    """Lifecycle states of a periodic task."""
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    SUSPENDED = "SUSPENDED"


class PeriodicTask:
    """
    Runs `action` every `interval_seconds` on one daemon thread.

    stop() is cooperative: an action already in flight, and the sleep that
    follows it, complete before the worker exits. While suspended the worker
    blocks until resume() or stop() instead of ticking.
    """

    def __init__(
        self,
        interval_seconds: float,
        action: Callable[[], Any],
        name: str = "periodic-task",
        error_handler: Optional[Callable[[BaseException], None]] = None,
    ):
        self.interval = interval_seconds
        self.action = action
        self.name = name
        self._error_handler = error_handler or self._log_error

        self._alive = False
        self._started = False
        self._thread: Optional[threading.Thread] = None
        # Set while not suspended
        self._resumed = threading.Event()
        self._resumed.set()

        self._execution_count = 0
        self._error_count = 0
        self._last_execution_time: float = 0

    def start(self) -> None:
        """Spawn the worker thread. A task can be started only once."""
        if self._started:
            raise RuntimeError(f"Periodic task '{self.name}' has already been started")

        self._started = True
        self._alive = True
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Periodic task '{self.name}' started with interval {self.interval}s")

    def stop(self) -> None:
        """Prevent the next iteration from starting."""
        self._alive = False
        # Release a suspended worker so it can observe the stop
        self._resumed.set()
        logger.info(f"Periodic task '{self.name}' stop requested")

    def suspend(self) -> None:
        """Pause the action. The worker blocks on an Event and keeps its thread."""
        self._resumed.clear()
        logger.info(f"Periodic task '{self.name}' suspended")

    def resume(self) -> None:
        """Wake the suspended worker; ticks continue on the same thread."""
        self._resumed.set()
        logger.info(f"Periodic task '{self.name}' resumed")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread to exit. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        while self._alive:
            try:
                if not self._resumed.is_set():
                    self._resumed.wait()
                    continue

                try:
                    start = time.monotonic()
                    self.action()
                    self._last_execution_time = time.monotonic() - start
                    self._execution_count += 1
                except BaseException as e:
                    self._error_count += 1
                    self._report(e)

                # Sleep separately so a failed action still waits before the next tick
                try:
                    self._sleep()
                except BaseException as e:
                    self._report(e)
            except BaseException as e:
                logger.error(f"Periodic task '{self.name}' failed: {e}", exc_info=True)

        logger.info(f"Periodic task '{self.name}' exited")

    def _report(self, error: BaseException) -> None:
        try:
            self._error_handler(error)
        except BaseException as e:
            logger.error(f"Error handler of periodic task '{self.name}' failed: {e}", exc_info=True)

    def _sleep(self) -> None:
        time.sleep(self.interval)

    def _log_error(self, error: BaseException) -> None:
        logger.warning(f"Periodic task '{self.name}' action failed: {error}")

    @property
    def state(self) -> TaskState:
        if not self._alive:
            return TaskState.STOPPED
        if not self._resumed.is_set():
            return TaskState.SUSPENDED
        return TaskState.RUNNING

    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def execution_count(self) -> int:
        """Number of actions that completed without raising."""
        return self._execution_count

    @property
    def error_count(self) -> int:
        return self._error_count

    def get_stats(self) -> Dict[str, Any]:
        """Get task statistics for observability."""
        return {
            "name": self.name,
            "state": self.state.value,
            "interval_s": self.interval,
            "execution_count": self._execution_count,
            "error_count": self._error_count,
            "last_execution_s": round(self._last_execution_time, 3),
        }
