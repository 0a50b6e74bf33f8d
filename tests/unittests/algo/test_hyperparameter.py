#!/usr/bin/env python
"""Collection of tests for :mod:`hyperion.algo.hyperparameter`."""
import logging

from hyperion.algo.hyperparameter import HyperParameter
from hyperion.algo.sampler import SampleFromSeq, UniformDoubleSampler
from hyperion.core.io.cmd_options import CmdOptions


def test_set_writes_the_option(rng):
    """Test that sampling changes the value of the option"""
    cmds = CmdOptions()
    option = cmds.add_option("layers", 2)
    parameter = HyperParameter(option, SampleFromSeq([4, 8]))

    parameter.set(rng)
    assert option.value in (4, 8)
    assert cmds.unparse() == (f"--layers={option.value}",)
    assert parameter.name == "layers"


def test_accumulate_uses_current_value():
    """Test that objectives go to the bucket of the current value of the option"""
    cmds = CmdOptions()
    option = cmds.add_option("layers", 2)
    parameter = HyperParameter(option, SampleFromSeq([2, 4]))

    cmds.parse(["--layers=4"])
    parameter.accumulate(2.0)
    parameter.accumulate(4.0)

    assert list(parameter.sampler.statistics()) == [(4, 3.0, 1.0, 2)]


def test_report(caplog):
    """Test the table of statistics of the buckets"""
    cmds = CmdOptions()
    option = cmds.add_option("x", 0.0)
    parameter = HyperParameter(option, UniformDoubleSampler(0.0, 10.0))

    for value, objective in [(2.5, 2.0), (2.5, 4.0), (7.5, 1.0)]:
        option.set_value(value)
        parameter.accumulate(objective)

    with caplog.at_level(logging.INFO, logger="hyperion.algo.hyperparameter"):
        report = parameter.report()

    lines = report.splitlines()
    assert lines[0] == "Parameter x"
    assert lines[1].split() == ["value", "mean", "stddev", "count"]
    assert lines[3].split() == ["2.500000000000000", "3.0000", "1.0000", "2"]
    assert lines[4].split() == ["7.500000000000000", "1.0000", "0.0000", "1"]
    assert report in caplog.text


def test_report_empty():
    """Test that buckets without objectives are not reported"""
    cmds = CmdOptions()
    parameter = HyperParameter(cmds.add_option("x", 0.0), UniformDoubleSampler(0, 1))

    assert parameter.report().splitlines()[0] == "Parameter x"
    assert len(parameter.report().splitlines()) <= 3
