"""
Executor dispatching trials to remote machines
==============================================

Runs trials on a pool of machines through ``ssh``. It assumes that private keys are properly
set up.

There is one worker agent per machine. An agent processes the messages of its mailbox one at
a time: for each job it ssh-es into its machine, cds into the configured directory and
launches a slave process, then replies with the objective printed on the last line of the
slave output.

The agent receiving a new job is chosen by a `DispatchPolicy`.

"""
import logging
import os
import subprocess
import threading
import time
from concurrent import futures
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy

import hyperion.core
from hyperion.core.utils import GenericFactory
from hyperion.core.worker.protocol import (
    build_slave_command,
    read_last_line,
    serialize_args,
)
from hyperion.executor.base import NEGATIVE_INFINITY, BaseExecutor, Future

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecuteJob:
    """Message asking a worker to run a job"""

    entry_args: str
    job_id: int


class SSHWorker:
    """Worker agent bound to one remote machine.

    Parameters
    ----------
    index: int
        Identity of the worker in the pool.
    machine: str
        Host name of the machine.
    user: str
        User name on the machine.
    directory: str
        The directory to ``cd`` in on the machine.
    log_prefix: str
        Path prefix of the local log files.
    entry_point: str
        Identifier of the evaluation entry point run by the slaves.
    memory: int
        Memory limit of the slaves in gigabytes.
    python: str
        Python interpreter on the machine.

    """

    def __init__(
        self, index, machine, user, directory, log_prefix, entry_point, memory, python
    ):
        self.index = index
        self.machine = machine
        self.user = user
        self.directory = directory
        self.log_prefix = log_prefix
        self.entry_point = entry_point
        self.memory = memory
        self.python = python

        self.pending = 0
        self._pending_lock = threading.Lock()
        self._mailbox = ThreadPoolExecutor(1, thread_name_prefix=f"ssh-worker-{index}")

    @property
    def identity(self):
        """Name of the worker, unique in its pool"""
        return f"worker-{self.index}@{self.machine}"

    def ask(self, message):
        """Send ``message`` to the worker and return a future on its reply"""
        with self._pending_lock:
            self.pending += 1

        return self._mailbox.submit(self._process, message)

    def _process(self, message):
        try:
            return self.receive(message)
        finally:
            with self._pending_lock:
                self.pending -= 1

    def command(self, message):
        """Return the ssh command running the job of ``message``"""
        slave = build_slave_command(
            self.entry_point,
            message.entry_args,
            python=self.python,
            memory=self.memory,
        )
        return [
            "ssh",
            f"{self.user}@{self.machine}" if self.user else self.machine,
            f"cd {self.directory}; {slave}",
        ]

    def receive(self, message):
        """Run the job of ``message`` and return its objective"""
        log_file = f"{self.log_prefix}-job-{message.job_id}.log"
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)

        command = self.command(message)
        log.debug("%s running job %d: %s", self.identity, message.job_id, command)

        with open(log_file, "w", encoding="utf8") as stdout, open(
            log_file + ".stderr", "w", encoding="utf8"
        ) as stderr:
            subprocess.run(command, stdout=stdout, stderr=stderr, check=False)

        return read_last_line(log_file)

    def shutdown(self):
        """Stop accepting messages. Jobs already running are not interrupted."""
        self._mailbox.shutdown(wait=False)

    def __repr__(self):
        return f"SSHWorker({self.identity}, pending={self.pending})"


class DispatchPolicy:
    """Policy selecting the worker of the next job"""

    def select(self, workers):
        """Return the worker among ``workers`` receiving the next job"""
        raise NotImplementedError


class FirstWorker(DispatchPolicy):
    """Always send jobs to the first worker of the pool"""

    def select(self, workers):
        return workers[0]


class RoundRobin(DispatchPolicy):
    """Send jobs to each worker in turn"""

    def __init__(self):
        self.next_index = 0

    def select(self, workers):
        worker = workers[self.next_index % len(workers)]
        self.next_index += 1
        return worker


class RandomWorker(DispatchPolicy):
    """Send jobs to a worker drawn uniformly"""

    def __init__(self, seed=None):
        self.rng = numpy.random.RandomState(seed)

    def select(self, workers):
        return workers[self.rng.randint(len(workers))]


class LeastLoaded(DispatchPolicy):
    """Send jobs to the worker with the fewest pending jobs, the first one on ties"""

    def select(self, workers):
        return min(workers, key=lambda worker: worker.pending)


dispatch_factory = GenericFactory(DispatchPolicy)


class _FallbackFuture(Future):
    """Wraps the future of a worker reply, resolving to a fallback value on timeout or failure"""

    def __init__(self, future, timeout, job_id, fallback=NEGATIVE_INFINITY):
        self.future = future
        self.job_id = job_id
        self.fallback = fallback
        self.deadline = time.monotonic() + timeout
        self._reported = False

    def _expired(self):
        return time.monotonic() >= self.deadline

    def _fall_back(self, reason):
        if not self._reported:
            log.warning("Job %d %s, using %s", self.job_id, reason, self.fallback)
            self._reported = True

        return self.fallback

    def get(self, timeout=None):
        self.wait(timeout)

        if not self.future.done():
            if self._expired():
                return self._fall_back("timed out")

            raise TimeoutError()

        exception = self.future.exception()
        if exception is not None:
            return self._fall_back(f"failed with {exception!r}")

        return self.future.result()

    def wait(self, timeout=None):
        remaining = max(self.deadline - time.monotonic(), 0)
        if timeout is not None:
            remaining = min(remaining, timeout)

        try:
            self.future.exception(timeout=remaining)
        except futures.TimeoutError:
            pass

    def ready(self):
        return self.future.done() or self._expired()

    def successful(self):
        if not self.ready():
            raise ValueError()

        return True


class SSHExecutor(BaseExecutor):
    """An executor running jobs on a pool of machines via ssh.

    Each machine will cd into the specified directory and start a slave process which will run
    the evaluation entry point.

    Parameters
    ----------
    machines: list of str, optional
        The machines on which to ssh, one worker each.
        Defaults to ``hyperion.core.config.executor.ssh.machines``.
    entry_point: str, optional
        Identifier of the evaluation entry point run by the slaves.
        Defaults to ``hyperion.core.config.executor.entry_point``.
    user: str, optional
        The user name. Defaults to ``hyperion.core.config.executor.ssh.user``.
    directory: str, optional
        The directory to cd in on each machine.
        Defaults to ``hyperion.core.config.executor.ssh.directory``.
    log_prefix: str, optional
        The prefix of the place on which to store logs.
        Defaults to ``hyperion.core.config.executor.ssh.log_prefix``.
    memory: int, optional
        Memory limit of the slaves in gigabytes.
        Defaults to ``hyperion.core.config.executor.memory``.
    timeout_minutes: float, optional
        Minutes after which a job resolves to negative infinity.
        Defaults to ``hyperion.core.config.executor.ssh.timeout_minutes``.
    dispatch: str or `DispatchPolicy`, optional
        Policy selecting the worker of each job.
        Defaults to ``hyperion.core.config.executor.ssh.dispatch``.
    python: str, optional
        Python interpreter on the machines.
        Defaults to ``hyperion.core.config.executor.python``.

    """

    def __init__(
        self,
        machines=None,
        entry_point=None,
        user=None,
        directory=None,
        log_prefix=None,
        memory=None,
        timeout_minutes=None,
        dispatch=None,
        python=None,
        **kwargs,
    ):
        config = hyperion.core.config.executor
        ssh_config = config.ssh

        machines = list(machines if machines is not None else ssh_config.machines)
        if not machines:
            raise ValueError("SSHExecutor requires at least one machine")

        super().__init__(n_workers=len(machines), **kwargs)

        entry_point = entry_point if entry_point is not None else config.entry_point
        if not entry_point:
            raise ValueError("An evaluation entry point is required to launch jobs")

        self.timeout_minutes = (
            timeout_minutes if timeout_minutes is not None else ssh_config.timeout_minutes
        )
        if dispatch is None:
            dispatch = ssh_config.dispatch
        if isinstance(dispatch, str):
            dispatch = dispatch_factory.create(dispatch)
        self.dispatch = dispatch

        self.workers = [
            SSHWorker(
                index,
                machine,
                user=user if user is not None else ssh_config.user,
                directory=directory if directory is not None else ssh_config.directory,
                log_prefix=log_prefix if log_prefix is not None else ssh_config.log_prefix,
                entry_point=entry_point,
                memory=memory if memory is not None else config.memory,
                python=python if python is not None else config.python,
            )
            for index, machine in enumerate(machines)
        ]

        self.job_id = 0

    def execute(self, configuration):
        self._check_open()
        self.job_id += 1
        message = ExecuteJob(serialize_args(configuration), self.job_id)

        worker = self.dispatch.select(self.workers)
        log.debug("Dispatching job %d to %s", message.job_id, worker.identity)

        return _FallbackFuture(
            worker.ask(message), self.timeout_minutes * 60, message.job_id
        )

    def close(self):
        if not self.closed:
            for worker in self.workers:
                worker.shutdown()
        super().close()
