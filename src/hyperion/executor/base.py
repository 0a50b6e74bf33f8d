"""
Base Executor
=============

Base executor class running trials asynchronously.

An executor receives the configuration of a trial, a tuple of ``--name=value`` flags, and
returns a `Future` on the objective of the trial. Ordinary trial failures never raise
from `BaseExecutor.execute`; they resolve the future to `NEGATIVE_INFINITY` or leave it
unsuccessful, which the searcher scores as `NEGATIVE_INFINITY`.

"""
import concurrent.futures
import logging
from concurrent.futures import wait

import hyperion.core
from hyperion.core.utils import GenericFactory

log = logging.getLogger(__name__)

NEGATIVE_INFINITY = float("-inf")


class ExecutorClosed(Exception):
    """Raised when submitting to a closed executor"""


class Future:
    """Generic Future interface that is used to harmonized different future interface"""

    def get(self, timeout=None):
        """Return the result when it arrives.
        If the remote call raised an exception then that exception will be reraised by get().

        Parameters
        ----------
        timeout: int
            time in second to wait, if none will wait forever

        Raises
        ------
        TimeoutError
            when the timeout expires

        Exception
            if the remote called raised an exception

        """
        raise NotImplementedError

    def wait(self, timeout=None):
        """Wait until the result is available or until timeout seconds pass."""
        raise NotImplementedError

    def ready(self):
        """Return whether the call has completed."""
        raise NotImplementedError

    def successful(self):
        """Return whether the call completed without raising an exception.
        Will raise ValueError if the result is not ready.

        Raises
        ------
        ValueError
            if the result is not yet ready

        """
        raise NotImplementedError


class _ThreadFuture(Future):
    """Wraps a concurrent Future to behave like AsyncResult"""

    def __init__(self, future):
        self.future = future

    def get(self, timeout=None):
        try:
            return self.future.result(timeout)
        except concurrent.futures.TimeoutError as e:
            raise TimeoutError() from e

    def wait(self, timeout=None):
        wait([self.future], timeout)

    def ready(self):
        return self.future.done()

    def successful(self):
        if not self.future.done():
            raise ValueError()

        return self.future.exception() is None


def wrap_future(future):
    """Return ``future`` as a `Future`, adapting ``concurrent.futures.Future``"""
    if isinstance(future, Future):
        return future

    if isinstance(future, concurrent.futures.Future):
        return _ThreadFuture(future)

    raise TypeError(f"Cannot use {type(future)} as a Future")


def objective_of(future):
    """Return the objective of a completed future, `NEGATIVE_INFINITY` if it failed

    Results which are not numbers count as failures as well.

    """
    if not future.successful():
        return NEGATIVE_INFINITY

    result = future.get()
    try:
        return float(result)
    except (TypeError, ValueError):
        log.warning("Objective %r is not a number, using %s", result, NEGATIVE_INFINITY)
        return NEGATIVE_INFINITY


class BaseExecutor:
    """Base executor class

    Parameters
    ----------
    n_workers: int
        The number of trials the executor may run at the same time. Depending on the backend
        it may spawn this many workers or only bound the number of concurrent submissions.

    """

    def __init__(self, n_workers=1, **kwargs):
        self.n_workers = n_workers
        self.closed = False

    def execute(self, configuration):
        """Run the trial described by ``configuration`` asynchronously

        Parameters
        ----------
        configuration: tuple of str
            ``--name=value`` flags describing the trial.

        Returns
        -------
        `Future` on the objective of the trial.

        """
        raise NotImplementedError

    def __call__(self, configuration):
        return self.execute(configuration)

    def _check_open(self):
        if self.closed:
            raise ExecutorClosed()

    def close(self):
        """Prevent user from submitting work after closing."""
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


executor_factory = GenericFactory(BaseExecutor)


def create_executor(of_type=None, **kwargs):
    """Create the executor defined in ``hyperion.core.config.executor``

    Parameters
    ----------
    of_type: str, optional
        Name of the executor class. Defaults to ``config.executor.type``.
    kwargs: **
        Arguments of the executor constructor.

    """
    # pylint: disable=import-outside-toplevel
    # Imported for their registration with the factory
    import hyperion.executor.job_queue_backend  # noqa: F401
    import hyperion.executor.pool_backend  # noqa: F401
    import hyperion.executor.single_backend  # noqa: F401
    import hyperion.executor.ssh_backend  # noqa: F401

    if of_type is None:
        of_type = hyperion.core.config.executor.type

    return executor_factory.create(of_type, **kwargs)
