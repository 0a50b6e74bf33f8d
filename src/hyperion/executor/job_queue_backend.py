"""
Executors for job queues
========================

Each trial is a shell script launching a slave process, submitted to a job queue. The slave
writes the objective in a result file which the master polls once the submission returns.

"""
import concurrent.futures
import logging
import os
import subprocess
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import hyperion.core
from hyperion.core.worker.protocol import (
    build_slave_command,
    read_result,
    result_ready,
    serialize_args,
)
from hyperion.executor.base import NEGATIVE_INFINITY, BaseExecutor, _ThreadFuture

log = logging.getLogger(__name__)


class JobQueueExecutor(BaseExecutor):
    """A general executor for job queues.

    Subclasses implement `run_job` to submit a script to their queue. The submission runs in
    a dispatching thread of the master, so it may block until the job completes.

    Files of job ``i`` are ``<prefix>-job-<i>-cmd.sh`` (the script), ``<prefix>-job-<i>-log.txt``
    (output of the job) and ``<prefix>-job-<i>-out`` (the result).

    Parameters
    ----------
    entry_point: str, optional
        Identifier of the evaluation entry point run by the slaves.
        Defaults to ``hyperion.core.config.executor.entry_point``.
    memory: int, optional
        How many gigabytes of RAM the slaves can use.
        Defaults to ``hyperion.core.config.executor.memory``.
    prefix: str, optional
        A path prefix on which to store the files of the jobs.
        Defaults to ``hyperion.core.config.executor.job_queue.prefix``.
    n_workers: int, optional
        Maximum number of submissions in flight at the same time. By default every job is
        submitted from its own thread as soon as it is dispatched.
    python: str, optional
        Python interpreter of the slaves.
        Defaults to ``hyperion.core.config.executor.python``.
    poll_attempts: int, optional
        Number of checks for the result file once the submission returned.
        Defaults to ``hyperion.core.config.executor.job_queue.poll_attempts``.
    poll_interval: float, optional
        Seconds between two checks for the result file.
        Defaults to ``hyperion.core.config.executor.job_queue.poll_interval``.

    """

    def __init__(
        self,
        entry_point=None,
        memory=None,
        prefix=None,
        n_workers=None,
        python=None,
        poll_attempts=None,
        poll_interval=None,
        **kwargs,
    ):
        config = hyperion.core.config.executor
        super().__init__(n_workers, **kwargs)

        self.entry_point = entry_point if entry_point is not None else config.entry_point
        if not self.entry_point:
            raise ValueError("An evaluation entry point is required to launch jobs")

        self.memory = memory if memory is not None else config.memory
        self.prefix = prefix if prefix is not None else config.job_queue.prefix
        self.python = python if python is not None else config.python
        self.poll_attempts = (
            poll_attempts if poll_attempts is not None else config.job_queue.poll_attempts
        )
        self.poll_interval = (
            poll_interval if poll_interval is not None else config.job_queue.poll_interval
        )

        self.job_id = 0
        self._id_lock = threading.Lock()
        self.pool = None
        if self.n_workers is not None:
            self.pool = ThreadPoolExecutor(self.n_workers, thread_name_prefix="job-queue")

    def run_job(self, script, log_file):
        """Run a job in the queue

        Parameters
        ----------
        script: str
            The file name of the shell script to be run
        log_file: str
            The file on which to write the output of the job

        """
        raise NotImplementedError

    def _next_id(self):
        with self._id_lock:
            self.job_id += 1
            return self.job_id

    def execute(self, configuration):
        self._check_open()
        job_id = self._next_id()
        entry_args = serialize_args(configuration)
        if self.pool is not None:
            return _ThreadFuture(self.pool.submit(self._run, job_id, entry_args))

        future = concurrent.futures.Future()
        threading.Thread(
            target=self._submit,
            args=(future, job_id, entry_args),
            name=f"job-queue-{job_id}",
            daemon=True,
        ).start()
        return _ThreadFuture(future)

    def _submit(self, future, job_id, entry_args):
        if not future.set_running_or_notify_cancel():
            return

        try:
            result = self._run(job_id, entry_args)
        except Exception as e:  # pylint:disable=broad-except
            future.set_exception(e)
        else:
            future.set_result(result)

    def write_script(self, job_prefix, entry_args):
        """Write the script of a job and return its path"""
        out_file = job_prefix + "-out"
        command = build_slave_command(
            self.entry_point,
            entry_args,
            python=self.python,
            memory=self.memory,
            out_file=os.path.abspath(out_file),
        )

        script = job_prefix + "-cmd.sh"
        with open(script, "w", encoding="utf8") as script_file:
            script_file.write("#!/bin/sh\n")
            script_file.write(command + "\n")
        os.chmod(script, 0o755)

        log.debug("Job script %s: %s", script, command)
        return script

    def _run(self, job_id, entry_args):
        job_prefix = f"{self.prefix}-job-{job_id}"
        out_file = job_prefix + "-out"
        log_file = job_prefix + "-log.txt"
        os.makedirs(os.path.dirname(os.path.abspath(job_prefix)), exist_ok=True)
        # Result of a previous search using the same prefix
        if os.path.exists(out_file):
            os.remove(out_file)

        script = self.write_script(job_prefix, entry_args)

        try:
            self.run_job(script, log_file)
        except (OSError, subprocess.SubprocessError) as e:
            # The queue may report an error while the job still runs; the result file decides.
            log.warning("Submission of job %d returned an error: %s", job_id, e)

        for _ in range(self.poll_attempts):
            if result_ready(out_file):
                break
            time.sleep(self.poll_interval)

        if result_ready(out_file):
            return read_result(out_file)

        log.error(
            "Job %d failed. See log file %s for more information.", job_id, log_file
        )
        return NEGATIVE_INFINITY

    def close(self):
        if not self.closed and self.pool is not None:
            self.pool.shutdown(wait=False)
        super().close()


class QSubExecutor(JobQueueExecutor):
    """An executor submitting jobs with ``qsub``, waiting for each job to complete.

    .. seealso:: `JobQueueExecutor` for the parameters.

    """

    def run_job(self, script, log_file):
        command = [
            "qsub",
            "-sync",
            "y",
            "-l",
            f"mem_token={self.memory}G",
            "-cwd",
            "-j",
            "y",
            "-o",
            log_file,
            "-S",
            "/bin/sh",
            script,
        ]
        log.debug("Submitting %s", " ".join(command))
        subprocess.run(command, check=True, capture_output=True)


class SubprocessJobExecutor(JobQueueExecutor):
    """An executor running the job scripts as local subprocesses.

    Useful to run a search on a single machine with the same isolation as with a queue.

    .. seealso:: `JobQueueExecutor` for the parameters.

    """

    def run_job(self, script, log_file):
        with open(log_file, "w", encoding="utf8") as output:
            subprocess.run(
                ["/bin/sh", script], stdout=output, stderr=subprocess.STDOUT, check=True
            )
