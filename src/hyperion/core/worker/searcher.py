# pylint:disable=too-many-arguments
"""
Hyperparameter searcher
=======================

Random search over the hyperparameters of a settings registry.

All trials are sampled and dispatched up front, then the searcher waits for enough of them to
complete, accumulates their objectives in the samplers of the hyperparameters and commits the
best configuration to the registry.

"""
import enum
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Optional

import numpy

import hyperion.core
from hyperion.core.utils.exceptions import SearchConfigurationError, SearchTimeout
from hyperion.executor.base import Future, objective_of, wrap_future

log = logging.getLogger(__name__)


class SearchState(enum.Enum):
    """Steps of `HyperParameterSearcher.optimize`"""

    CREATED = "created"
    SAMPLING = "sampling"
    DISPATCHING = "dispatching"
    POLLING = "polling"
    AGGREGATING = "aggregating"
    SELECTING = "selecting"
    COMMITTED = "committed"


@dataclass
class Trial:
    """A configuration and the future on its objective"""

    configuration: tuple
    future: Future

    def ready(self):
        """Return whether the trial completed"""
        return self.future.ready()

    def successful(self):
        """Return whether the trial completed without raising"""
        return self.future.successful()

    @property
    def objective(self):
        """Objective of a completed trial, negative infinity if it raised"""
        return objective_of(self.future)


@dataclass
class SearchProgress:
    """Summary of the trials completed so far"""

    finished: int = 0
    failed: int = 0
    best: Optional[float] = None
    mean: float = math.nan
    objectives: list = field(default_factory=list, repr=False)

    @classmethod
    def of(cls, trials):
        """Compute the progress of ``trials``"""
        objectives = [trial.objective for trial in trials if trial.ready()]
        finite = [objective for objective in objectives if math.isfinite(objective)]
        return cls(
            finished=len(objectives),
            failed=sum(1 for objective in objectives if objective == -math.inf),
            best=max(objectives) if objectives else None,
            mean=float(numpy.mean(finite)) if finite else math.nan,
            objectives=objectives,
        )

    def __str__(self):
        if not self.finished:
            return "Finished jobs: 0"

        return (
            f"Finished jobs: {self.finished} failed jobs: {self.failed} "
            f"best value: {self.best} mean value: {self.mean}"
        )


class HyperParameterSearcher:
    """Random search over hyperparameters bound to the options of a registry.

    Parameters
    ----------
    cmds: `hyperion.core.io.cmd_options.CmdOptions`
        The settings registry. Sampling mutates it, and the best configuration found is left
        in it once `optimize` returns.
    parameters: list of `hyperion.algo.hyperparameter.HyperParameter`
        The hyperparameters to optimize, bound to options of ``cmds``.
    executor: `hyperion.executor.base.BaseExecutor` or callable
        Receives the configuration of a trial and returns a future on its objective.
        ``concurrent.futures.Future`` are accepted as well.
    num_trials: int, optional
        Number of configurations to try.
        Defaults to ``hyperion.core.config.searcher.num_trials``.
    num_to_finish: int, optional
        Number of trials which must complete before the search ends. The other trials are
        abandoned. Defaults to ``hyperion.core.config.searcher.num_to_finish``, or
        ``num_trials`` if it is 0.
    seconds_to_sleep: float, optional
        Time between two polls of the trials.
        Defaults to ``hyperion.core.config.searcher.seconds_to_sleep``.
    max_wait: float, optional
        Seconds after which the search gives up waiting for trials. No limit if None or 0.
        Defaults to ``hyperion.core.config.searcher.max_wait``.

    Raises
    ------
    SearchConfigurationError
        If the arguments are inconsistent.

    """

    def __init__(
        self,
        cmds,
        parameters,
        executor,
        num_trials=None,
        num_to_finish=None,
        seconds_to_sleep=None,
        max_wait=None,
    ):
        config = hyperion.core.config.searcher

        self.cmds = cmds
        self.parameters = list(parameters)
        self.executor = executor
        self.num_trials = num_trials if num_trials is not None else config.num_trials
        if num_to_finish is None:
            num_to_finish = config.num_to_finish or self.num_trials
        self.num_to_finish = num_to_finish
        self.seconds_to_sleep = (
            seconds_to_sleep if seconds_to_sleep is not None else config.seconds_to_sleep
        )
        self.max_wait = max_wait if max_wait is not None else config.max_wait

        self.state = SearchState.CREATED
        self.trials = []
        self.progress = SearchProgress()

        self._validate()

    def _validate(self):
        if self.num_trials < 1:
            raise SearchConfigurationError(
                f"num_trials must be at least 1, got {self.num_trials}"
            )
        if not 1 <= self.num_to_finish <= self.num_trials:
            raise SearchConfigurationError(
                f"num_to_finish must be between 1 and num_trials ({self.num_trials}), "
                f"got {self.num_to_finish}"
            )
        if self.seconds_to_sleep < 0:
            raise SearchConfigurationError(
                f"seconds_to_sleep cannot be negative, got {self.seconds_to_sleep}"
            )
        if self.max_wait is not None and self.max_wait < 0:
            raise SearchConfigurationError(
                f"max_wait cannot be negative, got {self.max_wait}"
            )
        if not self.parameters:
            raise SearchConfigurationError("No hyperparameter to optimize")
        if not callable(self.executor):
            raise SearchConfigurationError(
                f"Executor {self.executor!r} cannot execute trials"
            )

        for parameter in self.parameters:
            if parameter.option not in self.cmds:
                raise SearchConfigurationError(
                    f"Hyperparameter {parameter.name} is not an option of the registry"
                )

    def sampled_parameters(self, rng):
        """Sample every hyperparameter and return the configuration of the registry"""
        for parameter in self.parameters:
            parameter.set(rng)

        return self.cmds.unparse()

    def dispatch(self, configuration):
        """Execute ``configuration`` and return its `Trial`"""
        return Trial(configuration, wrap_future(self.executor(configuration)))

    def poll(self):
        """Wait until ``num_to_finish`` trials completed and return the last progress

        Raises
        ------
        SearchTimeout
            If ``max_wait`` expires first.

        """
        start = time.monotonic()
        while True:
            time.sleep(self.seconds_to_sleep)

            self.progress = SearchProgress.of(self.trials)
            log.info("%s", self.progress)

            if self.progress.finished >= self.num_to_finish:
                return self.progress

            if self.max_wait and time.monotonic() - start >= self.max_wait:
                raise SearchTimeout(self.progress)

    def aggregate(self):
        """Accumulate the objectives of the successful trials and report the statistics"""
        for trial in self.trials:
            if not (trial.ready() and trial.successful()):
                continue

            self.cmds.parse(trial.configuration)
            objective = trial.objective
            for parameter in self.parameters:
                parameter.accumulate(objective)

        for parameter in self.parameters:
            parameter.report()

    def select(self):
        """Return the completed trial with the highest objective"""
        completed = [trial for trial in self.trials if trial.ready()]
        return max(completed, key=lambda trial: trial.objective)

    def optimize(self, rng=None):
        """Run the search and return the flags of the best values of the hyperparameters.

        The registry holds the configuration of the best trial afterwards.

        Parameters
        ----------
        rng: None or int or ``numpy.random.RandomState``
            Source of randomness of the samplers. Defaults to a ``RandomState`` seeded with
            ``hyperion.core.config.searcher.seed``, 0 unless configured.

        """
        if rng is None:
            rng = hyperion.core.config.searcher.seed
        if not isinstance(rng, numpy.random.RandomState):
            rng = numpy.random.RandomState(rng)

        self.state = SearchState.SAMPLING
        configurations = [self.sampled_parameters(rng) for _ in range(self.num_trials)]

        self.state = SearchState.DISPATCHING
        self.trials = [self.dispatch(configuration) for configuration in configurations]
        log.info("Dispatched %d trials", len(self.trials))

        self.state = SearchState.POLLING
        self.poll()

        self.state = SearchState.AGGREGATING
        self.aggregate()

        self.state = SearchState.SELECTING
        best = self.select()
        log.info("Best value %s for configuration %s", best.objective, best.configuration)
        self.cmds.parse(best.configuration)

        self.state = SearchState.COMMITTED
        return [parameter.option.unparse() for parameter in self.parameters]
