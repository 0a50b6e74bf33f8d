#!/usr/bin/env python
"""Collection of tests for :mod:`hyperion.core.worker.slave`."""
import os
import subprocess
import sys

import pytest

from hyperion.core.worker import slave
from hyperion.core.worker.protocol import read_result


def test_print_result(capsys):
    """Test that the objective is the last line of the standard output"""
    returncode = slave.main(
        ["--entry-point=Quadratic", "--entry-args=x=1.0::optimum=3.0"]
    )

    assert returncode == 0
    out, err = capsys.readouterr()
    assert out.splitlines()[-1] == "-4.0"


def test_write_result(tmp_path, capsys):
    """Test that the objective is written in the result file"""
    out_file = str(tmp_path / "job-1-out")
    returncode = slave.main(
        [
            "--entry-point=hyperion.testing:Quadratic",
            "--entry-args=x=2.5",
            f"--out-file={out_file}",
        ]
    )

    assert returncode == 0
    assert read_result(out_file) == -0.25
    out, _ = capsys.readouterr()
    assert out == ""


def test_unknown_entry_point(tmp_path, capsys):
    """Test that the slave fails without writing any result"""
    out_file = tmp_path / "job-1-out"
    returncode = slave.main(
        ["--entry-point=DoesNotExist", "--entry-args=x=1", f"--out-file={out_file}"]
    )

    assert returncode == 1
    assert not out_file.exists()
    out, _ = capsys.readouterr()
    assert out == ""


def test_failing_entry_point():
    """Test that errors of the entry point propagate"""
    with pytest.raises(RuntimeError):
        slave.main(["--entry-point=Quadratic", "--entry-args=fail"])


def test_entry_point_required(capsys):
    """Test that the entry point is mandatory"""
    with pytest.raises(SystemExit):
        slave.main(["--entry-args=x=1"])


def test_limit_memory(monkeypatch):
    """Test that the address space is limited in bytes"""
    resource = pytest.importorskip("resource")
    calls = []
    monkeypatch.setattr(resource, "setrlimit", lambda *args: calls.append(args))

    slave.limit_memory(0)
    assert calls == []

    slave.limit_memory(2)
    assert calls == [(resource.RLIMIT_AS, (2 * 1024**3, 2 * 1024**3))]


def test_subprocess():
    """Test the slave as a separate process, with logs on the standard error"""
    process = subprocess.run(
        [
            sys.executable,
            "-m",
            "hyperion.core.worker.slave",
            "--entry-point=hyperion.testing:Quadratic",
            "--entry-args=x=4.0",
        ],
        capture_output=True,
        text=True,
        env=dict(os.environ, PYTHONPATH=os.pathsep.join(sys.path)),
        check=True,
    )

    assert process.stdout.strip() == "-1.0"
    assert slave.END_OF_JOB in process.stderr
