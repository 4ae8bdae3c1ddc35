"""Tests for the owner-thread executor."""

import threading

from readsync.readalong.executor import OwnerExecutor


def test_posted_calls_run_in_order(executor):
    calls = []
    executor.post(calls.append, 1)
    executor.post(calls.append, 2)

    assert executor.pending() == 2
    assert executor.run_pending() == 2
    assert calls == [1, 2]
    assert executor.pending() == 0


def test_call_later_waits_for_clock(executor, clock):
    calls = []
    executor.call_later(0.5, calls.append, "late")

    executor.run_pending()
    assert calls == []

    clock.advance(0.5)
    executor.run_pending()
    assert calls == ["late"]


def test_timers_run_in_due_order(executor, clock):
    calls = []
    executor.call_later(2.0, calls.append, "second")
    executor.call_later(1.0, calls.append, "first")

    clock.advance(2.0)
    executor.run_pending()

    assert calls == ["first", "second"]


def test_cancelled_call_never_runs(executor, clock):
    calls = []
    handle = executor.call_later(0.1, calls.append, "x")
    handle.cancel()

    assert executor.pending() == 0
    clock.advance(1.0)
    assert executor.run_pending() == 0
    assert calls == []


def test_work_posted_while_running_is_drained(executor):
    calls = []

    def first():
        calls.append("first")
        executor.post(calls.append, "second")

    executor.post(first)
    executor.run_pending()

    assert calls == ["first", "second"]


def test_post_from_other_thread(executor):
    calls = []
    thread = threading.Thread(target=executor.post, args=(calls.append, "worker"))
    thread.start()
    thread.join()

    executor.run_pending()
    assert calls == ["worker"]


def test_run_forever_stops_on_shutdown():
    executor = OwnerExecutor()
    calls = []

    def work():
        calls.append("ran")
        executor.shutdown()

    executor.call_later(0.01, work)
    executor.run_forever()

    assert calls == ["ran"]


def test_failing_task_does_not_stop_the_loop(executor, clock):
    calls = []

    def broken():
        raise ValueError("boom")

    executor.post(broken)
    executor.post(calls.append, "after")
    executor.call_later(0.1, broken)
    executor.call_later(0.2, calls.append, "timer")

    assert executor.run_pending() == 2
    clock.advance(0.2)
    assert executor.run_pending() == 2
    assert calls == ["after", "timer"]


def test_run_forever_survives_failing_task():
    executor = OwnerExecutor()
    calls = []

    def broken():
        raise RuntimeError("boom")

    executor.post(broken)
    executor.call_later(0.01, calls.append, "ran")
    executor.call_later(0.02, executor.shutdown)
    executor.run_forever()

    assert calls == ["ran"]
