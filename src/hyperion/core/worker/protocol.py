"""
Master/slave protocol
=====================

Transport of trial configurations to slave processes and of their objective back to the
master.

The configuration crosses the process boundary as a single argument: flags are stripped of
their ``--`` prefix and joined with ``::``. The slave splits on ``::`` and prefixes ``--``
again, so values cannot contain ``::``.

The slave reports the objective with exactly one line, either written to a result file
(job queue backend) or printed last on its standard output (ssh backend).

"""
import logging
import os
import shlex
import sys

from filelock import FileLock

from hyperion.core.utils.exceptions import InvalidResult, MissingResultFile

log = logging.getLogger(__name__)

DELIMITER = "::"
FLAG_PREFIX = "--"
SLAVE_MODULE = "hyperion.core.worker.slave"


def serialize_args(args):
    """Join ``--name=value`` flags in a single ``name=value::name=value`` string

    Raises
    ------
    ValueError
        If a flag does not start with ``--`` or contains ``::``.

    """
    stripped = []
    for arg in args:
        if not arg.startswith(FLAG_PREFIX):
            raise ValueError(f"Only flags starting with {FLAG_PREFIX} are supported: {arg}")
        if DELIMITER in arg:
            raise ValueError(f"Flags cannot contain {DELIMITER}: {arg}")
        stripped.append(arg[len(FLAG_PREFIX) :])

    return DELIMITER.join(stripped)


def deserialize_args(text):
    """Split a string built by `serialize_args` back into a list of flags"""
    if not text:
        return []

    return [FLAG_PREFIX + arg for arg in text.split(DELIMITER)]


def current_pythonpath():
    """Return the import path of the master, to be used as ``PYTHONPATH`` of slaves"""
    return os.pathsep.join(
        os.path.abspath(path) for path in sys.path if path and os.path.isdir(path)
    )


def build_slave_command(
    entry_point, entry_args, python=None, memory=0, out_file=None, pythonpath=None
):
    """Build the shell command launching a slave process

    Parameters
    ----------
    entry_point: str
        Identifier of the evaluation entry point.
    entry_args: str
        Arguments of the trial, serialized with `serialize_args`.
    python: str, optional
        Python interpreter of the slave. Defaults to the interpreter of the master.
    memory: int, optional
        Memory limit of the slave in gigabytes. No limit if 0.
    out_file: str, optional
        File in which the slave writes its result. If None, the result is printed.
    pythonpath: str, optional
        ``PYTHONPATH`` of the slave. Defaults to the import path of the master.

    """
    if python is None:
        python = sys.executable
    if pythonpath is None:
        pythonpath = current_pythonpath()

    command = [
        f"PYTHONPATH={shlex.quote(pythonpath)}",
        shlex.quote(python),
        "-m",
        SLAVE_MODULE,
        f"--memory={int(memory)}",
        f"--entry-point={shlex.quote(entry_point)}",
        f"--entry-args={shlex.quote(entry_args)}",
    ]
    if out_file is not None:
        command.append(f"--out-file={shlex.quote(out_file)}")

    return " ".join(command)


def _lock(path):
    return FileLock(path + ".lock")


def write_result(path, value):
    """Write ``value`` as the single line of the result file"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    with _lock(path):
        with open(path, "w", encoding="utf8") as result_file:
            result_file.write(f"{float(value)!r}\n")


def result_ready(path):
    """Return True if the result file exists and is not empty"""
    try:
        return os.path.getsize(path) > 0
    except OSError:
        return False


def _parse(line, path):
    try:
        return float(line)
    except ValueError as e:
        raise InvalidResult(f"Invalid result in {path}: {line!r}") from e


def read_result(path):
    """Read the objective on the first line of the result file

    Raises
    ------
    MissingResultFile
        If the file does not exist or is empty.
    InvalidResult
        If the first line is not a number.

    """
    if not result_ready(path):
        raise MissingResultFile()

    with _lock(path):
        with open(path, encoding="utf8") as result_file:
            line = result_file.readline().strip()

    return _parse(line, path)


def read_last_line(path):
    """Read the objective on the last non-empty line of a log file

    Raises
    ------
    MissingResultFile
        If the file does not exist or has no content.
    InvalidResult
        If the last line is not a number.

    """
    if not result_ready(path):
        raise MissingResultFile()

    with open(path, encoding="utf8") as log_file:
        lines = [line.strip() for line in log_file if line.strip()]

    if not lines:
        raise MissingResultFile()

    return _parse(lines[-1], path)
