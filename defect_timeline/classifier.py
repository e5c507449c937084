"""
Injected, opening and fixed release of every issue.
"""

import logging

from .models import Issue, Release, VersionTable, VersionWindow

logger = logging.getLogger(__name__)


def find_versions(releases: list[Release], issue: Issue) -> tuple[int | None, int | None, int | None]:
    """
    Candidate (IV, OV, FV) indices from release dates.

    IV: release dated exactly on the earliest affected version.
    OV: first release strictly after the issue was created.
    FV: first release not before the issue was resolved.
    """
    earliest = issue.affected[0] if issue.affected else None
    iv = ov = fv = None
    for i, release in enumerate(releases):
        if iv is None and earliest is not None and release.date == earliest:
            iv = i
        if ov is None and release.date > issue.created:
            ov = i
        if fv is None and release.date >= issue.resolved:
            fv = i
        if iv is not None and ov is not None and fv is not None:
            break
    return iv, ov, fv


def classify_issue(releases: list[Release], issue: Issue) -> VersionWindow | None:
    """Version window of one issue, None when it cannot be anchored to the releases"""
    first = releases[0].date
    if issue.created < first and issue.resolved < first:
        return None

    iv, ov, fv = find_versions(releases, issue)
    if ov is None or fv is None:
        logger.debug("%s: no opening/fixed release (created %s, resolved %s)",
                     issue.key, issue.created, issue.resolved)
        return None

    # Created and resolved on a release day
    if ov > fv:
        ov = fv

    affected = issue.affected
    # Affected versions dated after the fix, or after the opening, are unreliable
    if affected and (affected[0] > releases[fv].date or (iv is not None and iv > ov)):
        affected = ()
        iv = None

    # Found in the first release: it cannot have been injected earlier
    if iv is None and ov == 0:
        iv = ov

    return VersionWindow(ov=ov, fv=fv, iv=iv, affected=affected)


def classify_issues(releases: list[Release], issues: list[Issue]) -> VersionTable:
    """Classify every issue against the date-sorted releases"""
    table = VersionTable(releases)
    if not releases:
        return table

    skipped = 0
    for issue in issues:
        window = classify_issue(releases, issue)
        if window is None:
            skipped += 1
            continue
        table.register(issue, window)

    if skipped:
        logger.info("%d issues could not be anchored to a release", skipped)
    return table
