"""
Hyperion is a distributed hyperparameter search orchestrator.

It samples configurations of tunable settings, dispatches every configuration to an
independent worker (a local pool, a batch queue or remote machines reached with ssh),
waits for enough of them to report an objective and commits the best configuration
back into the settings of the running process.
"""
import getpass
import logging
import os
import sys

from appdirs import AppDirs

from hyperion.core.io.config import Configuration

logger = logging.getLogger(__name__)

__descr__ = "Distributed hyperparameter search"
__version__ = "0.1.0"
__license__ = "BSD-3-Clause"
__author__ = "Epistímio"
__author_short__ = "Epistímio"

DIRS = AppDirs("hyperion", __author_short__)
del AppDirs

DEF_CONFIG_FILES_PATHS = [
    os.path.join(DIRS.site_config_dir, "hyperion_config.yaml"),
    os.path.join(DIRS.user_config_dir, "hyperion_config.yaml"),
]


def _current_user():
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def define_config():
    """Create and define the fields of the configuration object."""
    config = Configuration()
    define_searcher_config(config)
    define_executor_config(config)

    return config


def define_searcher_config(config):
    """Create and define the fields of the searcher configuration."""
    searcher_config = Configuration()

    searcher_config.add_option(
        "num_trials",
        option_type=int,
        default=10,
        env_var="HYPERION_NUM_TRIALS",
        help="Number of configurations sampled and dispatched by a search.",
    )

    searcher_config.add_option(
        "num_to_finish",
        option_type=int,
        default=0,
        env_var="HYPERION_NUM_TO_FINISH",
        help=(
            "Number of trials to wait for before selecting the best configuration. "
            "The remaining trials are considered stragglers and ignored. "
            "If 0, waits for all trials."
        ),
    )

    searcher_config.add_option(
        "seconds_to_sleep",
        option_type=float,
        default=60,
        env_var="HYPERION_SECONDS_TO_SLEEP",
        help="Number of seconds to sleep between two polls of the dispatched trials.",
    )

    searcher_config.add_option(
        "max_wait",
        option_type=float,
        default=0,
        env_var="HYPERION_MAX_WAIT",
        help=(
            "Number of seconds after which a search waiting for its trials gives up. "
            "If 0, waits forever."
        ),
    )

    searcher_config.add_option(
        "seed",
        option_type=int,
        default=0,
        env_var="HYPERION_SEED",
        help="Seed of the random number generator used to sample configurations.",
    )

    config.searcher = searcher_config


def define_executor_config(config):
    """Create and define the fields of the executor configuration."""
    executor_config = Configuration()

    executor_config.add_option(
        "type",
        option_type=str,
        default="PoolExecutor",
        env_var="HYPERION_EXECUTOR",
        help="The executor backend used to run trials.",
    )

    executor_config.add_option(
        "n_workers",
        option_type=int,
        default=16,
        env_var="HYPERION_N_WORKERS",
        help=(
            "Number of trials handled concurrently by the pool backend. The job queue "
            "backend submits every trial from its own thread unless given n_workers."
        ),
    )

    executor_config.add_option(
        "python",
        option_type=str,
        default=sys.executable,
        env_var="HYPERION_PYTHON",
        help="Python interpreter used to launch slave processes.",
    )

    executor_config.add_option(
        "memory",
        option_type=int,
        default=4,
        env_var="HYPERION_MEMORY",
        help="Memory limit of slave processes in gigabytes. If 0, no limit is set.",
    )

    executor_config.add_option(
        "entry_point",
        option_type=str,
        default="",
        env_var="HYPERION_ENTRY_POINT",
        help=(
            "Identifier of the evaluation entry point run by slave processes, "
            "either a class name or ``package.module:ClassName``."
        ),
    )

    define_job_queue_config(executor_config)
    define_ssh_config(executor_config)

    config.executor = executor_config


def define_job_queue_config(config):
    """Create and define the fields of the job queue backend configuration."""
    job_queue_config = Configuration()

    job_queue_config.add_option(
        "prefix",
        option_type=str,
        default=os.path.join("hyperion", "jobs"),
        env_var="HYPERION_JOB_PREFIX",
        help="Path prefix of the scripts, logs and result files of queued jobs.",
    )

    job_queue_config.add_option(
        "poll_attempts",
        option_type=int,
        default=10,
        env_var="HYPERION_JOB_POLL_ATTEMPTS",
        help="Number of checks for the result file once the queue returned.",
    )

    job_queue_config.add_option(
        "poll_interval",
        option_type=float,
        default=1.0,
        env_var="HYPERION_JOB_POLL_INTERVAL",
        help="Seconds between two checks for the result file.",
    )

    config.job_queue = job_queue_config


def define_ssh_config(config):
    """Create and define the fields of the ssh backend configuration."""
    ssh_config = Configuration()

    ssh_config.add_option(
        "user",
        option_type=str,
        default=_current_user(),
        env_var="HYPERION_SSH_USER",
        help="User name on the remote machines.",
    )

    ssh_config.add_option(
        "machines",
        option_type=list,
        default=[],
        env_var="HYPERION_SSH_MACHINES",
        help="Remote machines, one worker each. Separated by ``:`` in the environment.",
    )

    ssh_config.add_option(
        "directory",
        option_type=str,
        default=".",
        env_var="HYPERION_SSH_DIRECTORY",
        help="Directory to cd into on the remote machines before launching a slave.",
    )

    ssh_config.add_option(
        "log_prefix",
        option_type=str,
        default=os.path.join("hyperion", "ssh"),
        env_var="HYPERION_SSH_LOG_PREFIX",
        help="Path prefix of the local log files of remote jobs.",
    )

    ssh_config.add_option(
        "timeout_minutes",
        option_type=float,
        default=60,
        env_var="HYPERION_SSH_TIMEOUT",
        help="Minutes after which a remote job is considered failed.",
    )

    ssh_config.add_option(
        "dispatch",
        option_type=str,
        default="LeastLoaded",
        env_var="HYPERION_SSH_DISPATCH",
        help=(
            "Policy selecting the worker of a new job. One of ``FirstWorker``, "
            "``RoundRobin``, ``RandomWorker`` or ``LeastLoaded``."
        ),
    )

    config.ssh = ssh_config


def build_config():
    """Define the config and fill it based on global configuration files."""
    config = define_config()
    for file_path in DEF_CONFIG_FILES_PATHS:
        if not os.path.exists(file_path):
            logger.debug("Config file not found: %s", file_path)
            continue

        config.load_yaml(file_path)

    return config


config = build_config()
