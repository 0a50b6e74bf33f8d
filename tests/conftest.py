#!/usr/bin/env python
"""Common fixtures and utils for unittests and functional tests."""
import numpy
import pytest

import hyperion.core
from hyperion.algo.hyperparameter import HyperParameter
from hyperion.algo.sampler import SampleFromSeq, UniformDoubleSampler
from hyperion.testing import quadratic_options

# So that assert messages show up in tests defined outside testing suite.
pytest.register_assert_rewrite("hyperion.testing")


@pytest.fixture(scope="session", autouse=True)
def shield_from_user_config(request):
    """Do not read user's yaml global config."""
    _pop_out_yaml_from_config(hyperion.core.config)


def _pop_out_yaml_from_config(config):
    """Remove any configuration fetch from yaml file"""
    for key in config._config.keys():
        config._config[key].pop("yaml", None)

    for key in config._subconfigs.keys():
        _pop_out_yaml_from_config(config._subconfigs[key])


@pytest.fixture()
def rng():
    """Return a seeded random number generator"""
    return numpy.random.RandomState(1)


@pytest.fixture()
def cmds():
    """Return the registry of the quadratic entry point"""
    return quadratic_options()


@pytest.fixture()
def parameters(cmds):
    """Return hyperparameters bound to the options of ``cmds``"""
    return [
        HyperParameter(cmds.x, UniformDoubleSampler(0.0, 10.0)),
        HyperParameter(cmds.optimum, SampleFromSeq([3.0])),
    ]


@pytest.fixture()
def job_prefix(tmp_path):
    """Return a prefix for the files of queued or remote jobs"""
    return str(tmp_path / "jobs" / "search")
