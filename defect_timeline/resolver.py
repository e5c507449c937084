"""
Match releases and fixed issues to commits.

Each lookup returns ``Found`` or ``NotFound``; callers decide whether a miss
is skipped or fatal.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, time

from .config import RELEASE_TAG_PATTERNS, SOURCE_SUFFIX
from .models import Commit, Issue, Release, Revision, VersionTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    commit: Commit


@dataclass(frozen=True)
class NotFound:
    reason: str


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def date_match(day: date, commits: list[Commit]) -> Found | NotFound:
    """First commit not before the end of ``day``"""
    limit = end_of_day(day)
    for commit in commits:
        if commit.date >= limit:
            return Found(commit)
    return NotFound(f"no commit after {day.isoformat()}")


def release_patterns(name: str, project: str = None, patterns: list[str] = None) -> list[re.Pattern]:
    patterns = RELEASE_TAG_PATTERNS if patterns is None else patterns
    compiled = []
    for pattern in patterns:
        if '{project}' in pattern and not project:
            continue
        compiled.append(re.compile(
            pattern.format(name=re.escape(name), project=re.escape(project or '')),
            re.IGNORECASE,
        ))
    return compiled


def resolve_release(release: Release, commits: list[Commit], project: str = None,
                    patterns: list[str] = None) -> Found | NotFound:
    """
    Find the commit of a release.

    The most recent commit whose message names the release in a tag or
    release message wins; otherwise the first commit after the release day.
    """
    compiled = release_patterns(release.name, project, patterns)
    matches = [c for c in commits if any(p.search(c.message) for p in compiled)]
    if matches:
        return Found(matches[-1])

    found = date_match(release.date, commits)
    if isinstance(found, NotFound):
        return NotFound(f"release {release.name}: {found.reason}")
    return found


def resolve_issue(issue: Issue, commits: list[Commit]) -> Found | NotFound:
    """First commit whose message starts with the issue key, else the first one after its resolution"""
    key = re.compile(rf'{re.escape(issue.key)}(?!\d)')
    for commit in commits:
        if key.match(commit.message):
            return Found(commit)

    found = date_match(issue.resolved, commits)
    if isinstance(found, NotFound):
        return NotFound(f"issue {issue.key}: {found.reason}")
    return found


def resolve_revisions(releases: list[Release], history, project: str = None,
                      suffix: str = SOURCE_SUFFIX) -> list[Revision]:
    """
    Pair every release with its commit and the source files present there.

    Releases without a commit are logged and dropped; the survivors are
    renumbered 0..N-1 so every later index refers to a measured release.
    """
    commits = history.list_commits()
    revisions = []
    for release in releases:
        result = resolve_release(release, commits, project)
        if isinstance(result, NotFound):
            logger.warning("Skipping release: %s", result.reason)
            continue
        renumbered = replace(release, index=len(revisions))
        files = tuple(history.list_files(result.commit, suffix))
        revisions.append(Revision(renumbered, result.commit, files))

    if len(revisions) < len(releases):
        logger.warning("%d of %d releases could not be matched to a commit",
                       len(releases) - len(revisions), len(releases))
    return revisions


def resolve_fixes(versions: VersionTable, commits: list[Commit]) -> dict[str, Commit]:
    """Fix commit of every classified issue; unmatched issues are logged and left out"""
    fixes = {}
    for key, issue in versions.issues.items():
        result = resolve_issue(issue, commits)
        if isinstance(result, NotFound):
            logger.warning("Skipping issue: %s", result.reason)
            continue
        fixes[key] = result.commit
    return fixes
