#!/usr/bin/env python
"""Collection of tests for :mod:`hyperion.executor.base` and the pool backends."""
import concurrent.futures
import logging
import threading
import time

import pytest

from hyperion.executor.base import (
    NEGATIVE_INFINITY,
    ExecutorClosed,
    Future,
    create_executor,
    objective_of,
    wrap_future,
)
from hyperion.executor.pool_backend import PoolExecutor
from hyperion.executor.single_backend import SingleExecutor
from hyperion.testing import Quadratic


def multiprocess(function):
    return PoolExecutor(function, 2, "multiprocess")


def thread(function):
    return PoolExecutor(function, 2, "threading")


backends = [thread, multiprocess, SingleExecutor]


class BadException(Exception):
    pass


def bad_function(args):
    raise BadException()


@pytest.mark.parametrize("backend", backends)
def test_execute_entry_point(backend):
    """Test that trials are evaluated by the entry point"""
    with backend(Quadratic()) as executor:
        future = executor(("--x=1.0", "--optimum=3.0"))
        future.wait()
        assert objective_of(future) == -4.0

    # Executor was closed at exit
    with pytest.raises(ExecutorClosed):
        executor.execute(("--x=1.0",))


@pytest.mark.parametrize("backend", backends)
def test_failing_trial(backend):
    """Test that failing trials score negative infinity"""
    with backend(bad_function) as executor:
        future = executor.execute(("--x=1.0",))
        future.wait()
        assert future.successful() is False
        assert objective_of(future) == NEGATIVE_INFINITY


def test_unknown_pool_backend():
    """Test that pool backends are validated"""
    with pytest.raises(ValueError) as exc:
        PoolExecutor(Quadratic(), 1, "greenlet")
    assert "Unknown pool backend greenlet" in str(exc.value)


def test_pool_default_workers():
    """Test that non positive number of workers means one per CPU"""
    with PoolExecutor(Quadratic(), 0) as executor:
        assert executor.n_workers >= 1


@pytest.mark.parametrize(
    "of_type,cls",
    [("poolexecutor", PoolExecutor), ("SingleExecutor", SingleExecutor)],
)
def test_create_executor(of_type, cls):
    """Test that executors are created by name"""
    with create_executor(of_type, function=Quadratic()) as executor:
        assert type(executor) is cls


def test_create_configured_executor(monkeypatch):
    """Test that the configured executor is created by default"""
    monkeypatch.setenv("HYPERION_EXECUTOR", "singleexecutor")
    with create_executor(function=Quadratic()) as executor:
        assert isinstance(executor, SingleExecutor)


def test_create_unknown_executor():
    """Test that unknown executors list the available ones"""
    with pytest.raises(NotImplementedError) as exc:
        create_executor("greenlet")
    assert "sshexecutor" in str(exc.value)
    assert "qsubexecutor" in str(exc.value)


def test_wrap_future():
    """Test that concurrent futures are adapted to the Future interface"""
    future = concurrent.futures.Future()
    wrapped = wrap_future(future)

    assert isinstance(wrapped, Future)
    assert wrap_future(wrapped) is wrapped
    assert wrapped.ready() is False
    with pytest.raises(TimeoutError):
        wrapped.get(0.01)

    future.set_result(2)
    assert objective_of(wrapped) == 2.0

    with pytest.raises(TypeError):
        wrap_future(2.0)


@pytest.mark.parametrize("result", [None, "abc", [1.0]])
def test_non_numeric_objective(result, caplog):
    """Test that results which are not numbers score negative infinity"""
    future = concurrent.futures.Future()
    future.set_result(result)

    with caplog.at_level(logging.WARNING):
        assert objective_of(wrap_future(future)) == NEGATIVE_INFINITY

    assert f"Objective {result!r} is not a number" in caplog.text


def test_close_thread_pool_without_waiting():
    """Test that closing the thread pool does not wait for running trials"""
    started = threading.Event()
    release = threading.Event()

    def blocking(args):
        started.set()
        release.wait(10)
        return 1.0

    executor = PoolExecutor(blocking, 1, "threading")
    running = executor.execute(("--x=1.0",))
    queued = executor.execute(("--x=2.0",))
    assert started.wait(10)

    start = time.monotonic()
    executor.close()
    assert time.monotonic() - start < 5
    assert running.ready() is False

    release.set()
    assert running.get(10) == 1.0
    assert queued.future.cancelled()


def test_close_process_pool_terminates():
    """Test that closing the process pool terminates running trials"""

    def sleeping(args):
        time.sleep(60)
        return 1.0

    executor = PoolExecutor(sleeping, 2, "multiprocess")
    future = executor.execute(("--x=1.0",))

    start = time.monotonic()
    executor.close()
    assert time.monotonic() - start < 30
    assert future.ready() is False
