#!/usr/bin/env python
"""
Slave process evaluating one trial
==================================

Launched by the job queue and ssh backends. Resolves the evaluation entry point, runs it
with the arguments of the trial and reports the objective.

The objective is written to ``--out-file`` when given, otherwise printed as the last line of
the standard output. Logs go to the standard error.

"""
import argparse
import logging
import sys

import hyperion.core
from hyperion.core.utils.exceptions import UnknownEntryPoint
from hyperion.core.worker.entry_point import resolve_entry_point
from hyperion.core.worker.protocol import deserialize_args, write_result

log = logging.getLogger(__name__)

END_OF_JOB = "----- END OF JOB -----"


def get_parser():
    """Return the parser of the slave command line"""
    parser = argparse.ArgumentParser(
        prog="hyperion-slave",
        description="Evaluate one trial of a hyperparameter search.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version="hyperion " + hyperion.core.__version__,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=1,
        help="logging levels of information about the process (-v: INFO. -vv: DEBUG)",
    )
    parser.add_argument(
        "--entry-point",
        required=True,
        help="Identifier of the evaluation entry point to run.",
    )
    parser.add_argument(
        "--entry-args",
        default="",
        help="Arguments of the trial, flags without prefix joined with '::'.",
    )
    parser.add_argument(
        "--out-file",
        default=None,
        help="File on which to write the objective. If absent, it is printed.",
    )
    parser.add_argument(
        "--memory",
        type=int,
        default=0,
        help="Memory limit in gigabytes. If 0, no limit is set.",
    )
    return parser


def limit_memory(memory):
    """Limit the address space of this process to ``memory`` gigabytes"""
    if memory <= 0:
        return

    # pylint: disable=import-outside-toplevel
    import resource

    limit = memory * 1024**3
    resource.setrlimit(resource.RLIMIT_AS, (limit, limit))
    log.debug("Address space limited to %d GB", memory)


def main(argv=None):
    """Entry point of the slave process, returns the exit code"""
    args = get_parser().parse_args(argv)

    levels = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}
    logging.basicConfig(
        format="%(asctime)-15s::%(levelname)s::%(name)s::%(message)s",
        level=levels.get(args.verbose, logging.DEBUG),
        stream=sys.stderr,
    )

    limit_memory(args.memory)

    try:
        entry_point = resolve_entry_point(args.entry_point)
    except UnknownEntryPoint as e:
        log.error("Cannot resolve entry point %s: %s", args.entry_point, e)
        return 1

    trial_args = deserialize_args(args.entry_args)
    log.info("Using args\n%s", "\n".join(trial_args))

    result = entry_point(trial_args)

    log.info(END_OF_JOB)
    log.info("Result was: %s", result)

    if args.out_file:
        write_result(args.out_file, result)
        log.info("Done, file %s written", args.out_file)
    else:
        print(result, flush=True)

    return 0


if __name__ == "__main__":
    returncode = main()
    if returncode > 0:
        raise SystemExit(returncode)
