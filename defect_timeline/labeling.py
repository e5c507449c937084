"""
Buggy labels from the IV/FV windows of fixed issues.
"""

import logging

from .features import MetricsTable
from .models import VersionTable

logger = logging.getLogger(__name__)


def buggy_ranges(versions: VersionTable, fixed_files: dict[str, list[str]], evaluation_point: int):
    """(files, release indices) for every issue fixed before ``evaluation_point``"""
    for index in range(evaluation_point):
        for key in versions.fixed_in(index):
            if key not in fixed_files:
                continue
            window = versions.window(key)
            if window.iv is None:
                logger.debug("%s has no injected version, not labeled", key)
                continue
            yield fixed_files[key], range(window.iv, window.fv)


def assign_labels(table: MetricsTable, versions: VersionTable, fixed_files: dict[str, list[str]],
                  evaluation_point: int) -> int:
    """
    Label the table as known at ``evaluation_point`` (number of releases visible).

    All labels are cleared first, so each call depends only on its own
    evaluation point. Returns the number of cells marked buggy.
    """
    table.reset_labels()
    marked = set()
    for files, releases in buggy_ranges(versions, fixed_files, evaluation_point):
        for path in files:
            if path not in table:
                continue
            for index in releases:
                table.mark_buggy(path, index)
                marked.add((path, index))
    return len(marked)
