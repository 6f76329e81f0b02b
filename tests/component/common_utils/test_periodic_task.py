import threading
import time

import pytest

from shared.common_utils.periodic_task import PeriodicTask, TaskState


class Counter:
    def __init__(self):
        self.calls = 0
        self.lock = threading.Lock()

    def __call__(self):
        with self.lock:
            self.calls += 1


def test_action_runs_repeatedly(wait_until):
    """The action runs once per interval until stopped."""
    counter = Counter()
    task = PeriodicTask(0.01, counter, name="test-repeat")
    task.start()
    try:
        assert wait_until(lambda: counter.calls >= 3)
        assert task.state == TaskState.RUNNING
    finally:
        task.stop()
        assert task.join(timeout=2)


def test_initial_state_is_stopped():
    task = PeriodicTask(0.01, lambda: None, name="test-initial")
    assert task.state == TaskState.STOPPED
    assert task.is_alive is False


def test_action_failure_is_isolated(wait_until):
    """A failing action is reported to the error handler and the loop keeps going."""
    errors = []
    attempts = Counter()

    def failing_action():
        attempts()
        raise RuntimeError("boom")

    task = PeriodicTask(0.01, failing_action, name="test-fail", error_handler=errors.append)
    task.start()
    try:
        assert wait_until(lambda: attempts.calls >= 3)
        assert all(isinstance(e, RuntimeError) for e in errors)
        assert task.error_count >= 3
        assert task.execution_count == 0
    finally:
        task.stop()
        assert task.join(timeout=2)


def test_failing_error_handler_does_not_kill_worker(wait_until):
    """Errors raised by the error handler itself are contained."""
    attempts = Counter()

    def failing_action():
        attempts()
        raise ValueError("action failed")

    def failing_handler(error):
        raise RuntimeError("handler failed too")

    task = PeriodicTask(0.01, failing_action, name="test-handler", error_handler=failing_handler)
    task.start()
    try:
        assert wait_until(lambda: attempts.calls >= 3)
        assert task._thread.is_alive()
    finally:
        task.stop()
        assert task.join(timeout=2)


def test_stop_prevents_further_executions():
    """After stop() and the in-flight iteration, the action never runs again."""
    counter = Counter()
    task = PeriodicTask(0.01, counter, name="test-stop")
    task.start()
    time.sleep(0.05)
    task.stop()
    assert task.join(timeout=2)

    calls_after_stop = counter.calls
    time.sleep(0.05)
    assert counter.calls == calls_after_stop
    assert task.state == TaskState.STOPPED


def test_stop_lets_in_flight_action_finish():
    """stop() does not interrupt an action that is already running."""
    started = threading.Event()
    release = threading.Event()
    finished = []

    def slow_action():
        started.set()
        release.wait(timeout=2)
        finished.append(True)

    task = PeriodicTask(0.01, slow_action, name="test-inflight")
    task.start()
    assert started.wait(timeout=2)
    task.stop()
    release.set()
    assert task.join(timeout=2)
    assert finished == [True]


def test_suspend_and_resume_reuse_worker_thread(wait_until):
    """Suspension pauses the action; resume continues it on the same thread."""
    counter = Counter()
    task = PeriodicTask(0.01, counter, name="test-suspend")
    task.start()
    try:
        assert wait_until(lambda: counter.calls >= 1)
        worker = task._thread

        task.suspend()
        assert task.state == TaskState.SUSPENDED
        # Let an iteration that was already in flight finish
        time.sleep(0.05)
        paused_calls = counter.calls
        time.sleep(0.05)
        assert counter.calls == paused_calls

        task.resume()
        assert wait_until(lambda: counter.calls > paused_calls)
        assert task._thread is worker
        assert worker.is_alive()
        named = [t for t in threading.enumerate() if t.name == "test-suspend"]
        assert len(named) == 1
    finally:
        task.stop()
        assert task.join(timeout=2)


def test_stop_while_suspended_exits():
    task = PeriodicTask(0.01, lambda: None, name="test-suspended-stop")
    task.start()
    task.suspend()
    time.sleep(0.03)
    task.stop()
    assert task.join(timeout=2)
    assert task.state == TaskState.STOPPED


def test_task_cannot_be_restarted():
    task = PeriodicTask(0.01, lambda: None, name="test-restart")
    task.start()
    task.stop()
    assert task.join(timeout=2)
    with pytest.raises(RuntimeError):
        task.start()


def test_worker_is_daemon():
    task = PeriodicTask(0.01, lambda: None, name="test-daemon")
    task.start()
    try:
        assert task._thread.daemon is True
    finally:
        task.stop()
        task.join(timeout=2)


def test_get_stats(wait_until):
    counter = Counter()
    task = PeriodicTask(0.01, counter, name="test-stats")
    task.start()
    try:
        assert wait_until(lambda: task.execution_count >= 1)
        stats = task.get_stats()
        assert stats["name"] == "test-stats"
        assert stats["state"] == "RUNNING"
        assert stats["execution_count"] >= 1
        assert stats["error_count"] == 0
    finally:
        task.stop()
        task.join(timeout=2)


def test_base_exception_from_action_does_not_kill_worker(wait_until):
    """SystemExit raised by the action is reported and the worker keeps ticking."""
    attempts = Counter()
    errors = []

    def exiting_action():
        attempts()
        raise SystemExit(1)

    task = PeriodicTask(0.01, exiting_action, name="test-system-exit", error_handler=errors.append)
    task.start()
    try:
        assert wait_until(lambda: attempts.calls >= 3)
        assert task._thread.is_alive()
        assert task.error_count >= 3
        assert all(isinstance(e, SystemExit) for e in errors)
    finally:
        task.stop()
        assert task.join(timeout=2)


def test_base_exception_from_error_handler_does_not_kill_worker(wait_until):
    attempts = Counter()

    def failing_action():
        attempts()
        raise RuntimeError("action failed")

    def exiting_handler(error):
        raise SystemExit(1)

    task = PeriodicTask(0.01, failing_action, name="test-handler-exit", error_handler=exiting_handler)
    task.start()
    try:
        assert wait_until(lambda: attempts.calls >= 3)
        assert task._thread.is_alive()
    finally:
        task.stop()
        assert task.join(timeout=2)
