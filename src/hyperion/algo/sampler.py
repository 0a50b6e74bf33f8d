"""
Samplers of hyperparameter values
=================================

Each sampler draws values of one hyperparameter from a declared distribution and keeps
discretized statistics of the objectives obtained with the values it produced.

There are 4 samplers, all subclassing `ParameterSampler`:

    * `SampleFromSeq`: uniform choice among a fixed sequence of values
    * `SampleFromProportions`: weighted choice among a fixed sequence of values
    * `UniformDoubleSampler`: real values uniformly distributed in an interval
    * `LogUniformDoubleSampler`: real values whose logarithm is uniformly distributed

Objectives are accumulated in buckets. A bucket holds the last value mapped to it, the sum
and the sum of squares of the objectives, and the number of objectives accumulated.

"""
import logging
import math
from collections import namedtuple

import numpy
from scipy.stats import distributions

log = logging.getLogger(__name__)


Bucket = namedtuple("Bucket", ["value", "sum", "sum_sq", "count"])


def check_random_state(seed):
    """Return numpy global rng or RandomState if seed is specified"""
    if seed is None:
        return numpy.random.mtrand._rand  # pylint:disable=protected-access,c-extension-no-member

    if isinstance(seed, numpy.random.RandomState):
        return seed

    return numpy.random.RandomState(seed)


class ParameterSampler:
    """Base class of samplers.

    Subclasses must implement `sample` and `value_to_bucket`. The number of buckets is
    fixed at construction.

    Parameters
    ----------
    buckets: list of `Bucket`
        Initial buckets.

    """

    def __init__(self, buckets):
        self.buckets = list(buckets)

    def sample(self, rng):
        """Draw a value.

        Parameters
        ----------
        rng: None, int or ``numpy.random.RandomState``
            Random number generator to draw from.

        """
        raise NotImplementedError

    def value_to_bucket(self, value):
        """Return the index of the bucket of ``value``"""
        raise NotImplementedError

    def _clamp(self, index):
        return max(0, min(index, len(self.buckets) - 1))

    def accumulate(self, value, objective):
        """Add ``objective`` to the statistics of the bucket of ``value``.

        The bucket keeps ``value`` as its representative value, replacing the previous one.

        """
        index = self._clamp(self.value_to_bucket(value))
        _, total, total_sq, count = self.buckets[index]
        self.buckets[index] = Bucket(
            value, total + objective, total_sq + objective * objective, count + 1
        )

    def statistics(self):
        """Yield ``(value, mean, std_dev, count)`` for every bucket that received objectives"""
        for value, total, total_sq, count in self.buckets:
            if count <= 0:
                continue

            mean = total / count
            # Rounding errors can make the variance slightly negative
            variance = max(total_sq / count - mean * mean, 0.0)
            yield value, mean, math.sqrt(variance), count

    def __len__(self):
        return len(self.buckets)


class SampleFromSeq(ParameterSampler):
    """Sample uniformly one of the values in the sequence.

    There is one bucket per value. Values which are not part of the sequence are
    accumulated in the first bucket.

    """

    def __init__(self, values):
        self.values = list(values)
        if not self.values:
            raise ValueError("Cannot sample from an empty sequence")

        super().__init__(Bucket(value, 0.0, 0.0, 0) for value in self.values)

    def value_to_bucket(self, value):
        for index, candidate in enumerate(self.values):
            if candidate == value:
                return index

        return 0

    def sample(self, rng):
        rng = check_random_state(rng)
        return self.values[rng.randint(len(self.values))]

    def __repr__(self):
        return f"SampleFromSeq(values={self.values})"


class SampleFromProportions(SampleFromSeq):
    """Sample non-uniformly one of the values in the sequence.

    Parameters
    ----------
    values: iterable
        Values to sample from.
    proportions: iterable of float
        Non-negative weight of each value. They are normalized to sum to one.

    """

    def __init__(self, values, proportions):
        super().__init__(values)

        proportions = numpy.asarray(list(proportions), dtype=float)
        if proportions.shape != (len(self.values),):
            raise ValueError(
                f"Expected {len(self.values)} proportions, got {proportions.size}"
            )
        if numpy.any(proportions < 0) or proportions.sum() <= 0:
            raise ValueError(
                f"Proportions must be non-negative and sum to a positive value: {proportions}"
            )

        self.proportions = tuple(proportions / proportions.sum())
        self.prior = distributions.rv_discrete(
            values=(list(range(len(self.values))), self.proportions)
        )

    def sample(self, rng):
        rng = check_random_state(rng)
        return self.values[int(self.prior.rvs(random_state=rng))]

    def __repr__(self):
        prior = ", ".join(
            f"{value}: {proportion:.2f}"
            for value, proportion in zip(self.values, self.proportions)
        )
        return f"SampleFromProportions({{{prior}}})"


class UniformDoubleSampler(ParameterSampler):
    """Sample uniformly a real value in ``[lower, upper)``.

    The interval is split in ``num_buckets`` buckets of equal width, plus one last bucket
    for the upper bound.

    """

    def __init__(self, lower, upper, num_buckets=10):
        if not lower < upper:
            raise ValueError(f"Lower bound {lower} must be below upper bound {upper}")
        if num_buckets < 1:
            raise ValueError(f"Need at least one bucket, got {num_buckets}")

        self.lower = float(lower)
        self.upper = float(upper)
        self.num_buckets = int(num_buckets)
        self.prior = distributions.uniform(loc=self.lower, scale=self.upper - self.lower)

        super().__init__(Bucket(0.0, 0.0, 0.0, 0) for _ in range(self.num_buckets + 1))

    def value_to_bucket(self, value):
        position = self.num_buckets * (value - self.lower) / (self.upper - self.lower)
        if math.isnan(position):
            return 0

        # Clamp before flooring so infinite values map to the border buckets
        position = min(max(position, 0.0), float(self.num_buckets))
        return self._clamp(int(math.floor(position)))

    def sample(self, rng):
        rng = check_random_state(rng)
        return float(self.prior.rvs(random_state=rng))

    def __repr__(self):
        return (
            f"UniformDoubleSampler(lower={self.lower}, upper={self.upper}, "
            f"num_buckets={self.num_buckets})"
        )


class LogUniformDoubleSampler(ParameterSampler):
    """Sample real values in ``[lower, upper)`` such that their logarithm is uniform.

    Useful for learning rates, variances, and other values which vary in order of
    magnitude.

    """

    def __init__(self, lower, upper, num_buckets=10):
        if not 0 < lower < upper:
            raise ValueError(
                f"Log-uniform bounds must satisfy 0 < lower < upper, got {lower}, {upper}"
            )

        self.lower = float(lower)
        self.upper = float(upper)
        self.inner = UniformDoubleSampler(
            math.log(self.lower), math.log(self.upper), num_buckets
        )
        self.num_buckets = self.inner.num_buckets

        super().__init__(Bucket(0.0, 0.0, 0.0, 0) for _ in range(self.num_buckets + 1))

    def value_to_bucket(self, value):
        if math.isnan(value) or value <= 0:
            return 0

        return self.inner.value_to_bucket(math.log(value))

    def sample(self, rng):
        return math.exp(self.inner.sample(rng))

    def __repr__(self):
        return (
            f"LogUniformDoubleSampler(lower={self.lower}, upper={self.upper}, "
            f"num_buckets={self.num_buckets})"
        )
