"""
Executor evaluating trials in a pool
====================================

Minimal future-returning backend. The evaluation function runs in a pool of threads or
processes of the master, with the configuration of the trial as its argument list.

"""
import logging
import multiprocessing
import pickle
from concurrent.futures import ThreadPoolExecutor
from multiprocessing.pool import Pool as PyPool

import cloudpickle

from hyperion.executor.base import (
    BaseExecutor,
    ExecutorClosed,
    Future,
    _ThreadFuture,
)

log = logging.getLogger(__name__)


def _couldpickle_exec(payload):
    function, args, kwargs = pickle.loads(payload)
    result = function(*args, **kwargs)
    return cloudpickle.dumps(result)


class _Future(Future):
    """Wraps a python AsyncResult and pickle the payload using cloudpickle
    to enable the use of more python objects as functions and arguments,
    such as lambdas or entry points defined in ``__main__``.

    """

    def __init__(self, future):
        self.future = future

    def get(self, timeout=None):
        try:
            return pickle.loads(self.future.get(timeout))
        except multiprocessing.context.TimeoutError as e:
            raise TimeoutError() from e

    def wait(self, timeout=None):
        return self.future.wait(timeout)

    def ready(self):
        return self.future.ready()

    def successful(self):
        if not self.ready():
            raise ValueError()

        return self.future.successful()


class Pool(PyPool):
    """Process pool submitting cloudpickled payloads"""

    def shutdown(self, wait=True):
        if wait:
            self.close()
            self.join()
        else:
            self.terminate()

    def submit(self, function, *args, **kwargs):
        payload = cloudpickle.dumps((function, args, kwargs))
        return _Future(self.apply_async(_couldpickle_exec, args=(payload,)))


class ThreadPool:
    """Custom pool that creates multiple threads instead of processes"""

    def __init__(self, n_workers):
        self.pool = ThreadPoolExecutor(n_workers)

    def shutdown(self, wait=True):
        # Running trials cannot be interrupted, only the queued ones are cancelled
        self.pool.shutdown(wait=wait, cancel_futures=not wait)

    def submit(self, function, *args, **kwargs):
        return _ThreadFuture(self.pool.submit(function, *args, **kwargs))


class PoolExecutor(BaseExecutor):
    """Evaluate trials with a function running in a pool of the master process.

    Closing the executor does not wait for the trials still running. The process backend
    terminates them.

    Parameters
    ----------
    function: callable
        Evaluation function receiving the configuration as a list of flags and returning
        the objective, for instance a `hyperion.core.worker.entry_point.HyperparameterMain`.
        A function raising an exception leaves the future unsuccessful.
    n_workers: int
        Number of workers to spawn. If not strictly positive, uses the number of CPUs.
    backend: str
        Pool backend to use; thread or multiprocess, defaults to thread

    """

    BACKENDS = dict(
        thread=ThreadPool,
        threading=ThreadPool,
        multiprocess=Pool,
    )

    def __init__(self, function, n_workers=-1, backend="thread", **kwargs):
        if n_workers <= 0:
            n_workers = multiprocessing.cpu_count()

        super().__init__(n_workers, **kwargs)

        if backend not in self.BACKENDS:
            raise ValueError(
                f"Unknown pool backend {backend}, use one of {sorted(self.BACKENDS)}"
            )

        self.function = function
        self.pool = self.BACKENDS[backend](n_workers)

    def __del__(self):
        self.close()

    def close(self):
        # This is necessary because if the constructor fails
        # __del__ is executed right away but pool might not be set
        if hasattr(self, "pool") and not getattr(self, "closed", True):
            self.pool.shutdown(wait=False)
            super().close()

    def execute(self, configuration):
        self._check_open()
        try:
            return self.pool.submit(self.function, list(configuration))
        except ValueError as e:
            if str(e).startswith("Pool not running"):
                raise ExecutorClosed() from e

            raise
        except RuntimeError as e:
            if str(e).startswith("cannot schedule new futures after shutdown"):
                raise ExecutorClosed() from e

            raise
