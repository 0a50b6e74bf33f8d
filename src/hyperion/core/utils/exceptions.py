"""
Custom exceptions for Hyperion
==============================

"""


class SearchConfigurationError(ValueError):
    """Raise when the searcher is set up with inconsistent arguments."""


SEARCH_TIMEOUT = """\
Search did not collect enough results before the deadline.
{}
"""


class SearchTimeout(Exception):
    """Raised when the overall deadline of a search expires before
    ``num_to_finish`` trials completed.

    """

    def __init__(self, progress, message=SEARCH_TIMEOUT):
        self.progress = progress
        super().__init__(message.format(progress))


class UnknownEntryPoint(Exception):
    """Raised by a slave when the evaluation entry point cannot be resolved."""


MISSING_RESULT_FILE = """
Cannot read result file.

The slave process must write exactly one line holding the objective
in the file given by `--out-file`.
"""


class MissingResultFile(Exception):
    """Raise when no result file (or empty) at end of trial execution."""

    def __init__(self, message=MISSING_RESULT_FILE):
        super().__init__(message)


class InvalidResult(ValueError):
    """The format of trial result is invalid."""
