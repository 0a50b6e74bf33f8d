"""
Executor without parallelism for debugging
==========================================

"""
import functools
import logging
import time

from hyperion.executor.base import BaseExecutor, Future

log = logging.getLogger(__name__)

# A function can return None so we have to create a difference between
# the None result and the absence of result
NOT_SET = object()


class _Future(Future):
    """Wraps a partial function to act as a Future"""

    def __init__(self, future):
        self.future = future
        self.result = NOT_SET
        self.exception = NOT_SET

    def get(self, timeout=None):
        start = time.time()
        self.wait(timeout)

        if timeout and time.time() - start > timeout:
            raise TimeoutError()

        if self.result is not NOT_SET:
            return self.result

        raise self.exception

    def wait(self, timeout=None):
        if self.result is not NOT_SET or self.exception is not NOT_SET:
            return

        try:
            self.result = self.future()
        except Exception as e:  # pylint: disable=broad-except
            log.warning("Trial evaluation failed: %s", e)
            self.exception = e

    def ready(self):
        self.wait()
        return True

    def successful(self):
        if not self.ready():
            raise ValueError()

        return self.exception is NOT_SET


class SingleExecutor(BaseExecutor):
    """Single thread executor

    Simple executor for debugging, evaluating ``function`` in the thread of the searcher.

    The submitted trials are wrapped with ``functools.partial`` and evaluated the first time
    their future is waited on or polled, one at a time.

    Parameters
    ----------
    function: callable
        Evaluation function receiving the configuration as a list of flags and returning
        the objective.

    """

    def __init__(self, function, n_workers=1, **config):
        super().__init__(n_workers=1)
        self.function = function

    def execute(self, configuration):
        self._check_open()
        return _Future(functools.partial(self.function, list(configuration)))
