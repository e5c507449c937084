"""
Errors raised while building a dataset.

Resolution misses are not errors: the resolver returns ``NotFound`` and the
caller logs and skips. Everything here aborts the current project.
"""


class DatasetError(Exception):
    """Base class; ``reason`` is human readable, the cause is chained"""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class IssueSourceError(DatasetError):
    """Issue tracker unreachable or returned malformed data"""


class HistorySourceError(DatasetError):
    """Git repository unreachable or a git command failed"""


class CorruptObjectError(HistorySourceError):
    """A referenced tree or blob could not be read"""


class ProportionError(DatasetError):
    """No cold-start proportion could be computed"""
