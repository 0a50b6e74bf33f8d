"""
Hyperparameters to optimize
===========================

Binding between a setting of the registry and the sampler producing its values.

"""
import logging
import numbers

from tabulate import tabulate

log = logging.getLogger(__name__)


class HyperParameter:
    """A container for a hyperparameter which will be optimized.

    Parameters
    ----------
    option: `hyperion.core.io.cmd_options.CmdOption`
        The setting holding the value of the hyperparameter.
    sampler: `hyperion.algo.sampler.ParameterSampler`
        A sampler which can return values for the parameter.

    """

    def __init__(self, option, sampler):
        self.option = option
        self.sampler = sampler

    @property
    def name(self):
        """Name of the underlying setting"""
        return self.option.name

    def set(self, rng):
        """Sample a value and write it in the setting"""
        self.option.set_value(self.sampler.sample(rng))

    def accumulate(self, objective):
        """Accumulate ``objective`` for the value currently held by the setting.

        The setting must hold the value of the trial which produced ``objective``.

        """
        self.sampler.accumulate(self.option.value, objective)

    def report(self):
        """Log and return a table with the mean, standard deviation and count of the
        objectives of each bucket which received some.
        """
        rows = []
        for value, mean, std_dev, count in self.sampler.statistics():
            if isinstance(value, numbers.Real) and not isinstance(
                value, (bool, numbers.Integral)
            ):
                value = f"{value:.15f}"
            rows.append([str(value), mean, std_dev, count])

        table = tabulate(
            rows,
            headers=["value", "mean", "stddev", "count"],
            floatfmt=".4f",
            disable_numparse=[0],
        )
        report = f"Parameter {self.name}\n{table}"
        log.info(report)
        return report

    def __repr__(self):
        return f"HyperParameter(option={self.name}, sampler={self.sampler!r})"
