"""
Releases, issues, commits and the per-issue version windows.

Releases, issues and commits are immutable. Everything the classifier and
the proportion estimator decide lives in a ``VersionTable``.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class Release:
    """A released version, ``index`` is 0-based in date order"""
    name: str
    date: date
    index: int = 0


@dataclass(frozen=True)
class Issue:
    """A fixed bug issue; ``affected`` holds the affected-version release dates, sorted"""
    key: str
    created: date
    resolved: date
    affected: tuple = ()


@dataclass(frozen=True)
class Commit:
    hash: str
    message: str
    author: str
    date: datetime
    tree: str
    parent_trees: tuple = ()


@dataclass(frozen=True)
class DiffStat:
    """Lines added and deleted for one file between two trees"""
    added: int = 0
    deleted: int = 0

    @property
    def touched(self) -> int:
        return self.added + self.deleted

    @property
    def churn(self) -> int:
        return self.added - self.deleted


@dataclass(frozen=True)
class Revision:
    """A release with its resolved commit and the source files present there"""
    release: Release
    commit: Commit
    files: tuple = ()

    @property
    def index(self) -> int:
        return self.release.index


@dataclass
class VersionWindow:
    """Release indices bounding an issue: injected (IV), opening (OV), fixed (FV)"""
    ov: int
    fv: int
    iv: int | None = None
    affected: tuple = ()
    estimated: bool = False


class VersionTable:
    """
    Classification state of every issue.

    Keeps the issues themselves untouched and records, per issue key, its
    ``VersionWindow`` and, per release index, the keys of the issues
    injected, opened and fixed in that release.
    """

    def __init__(self, releases: list[Release]):
        self.releases = list(releases)
        self.issues: dict[str, Issue] = {}
        self.windows: dict[str, VersionWindow] = {}
        self.injected: dict[int, list[str]] = defaultdict(list)
        self.opened: dict[int, list[str]] = defaultdict(list)
        self.fixed: dict[int, list[str]] = defaultdict(list)

    def __len__(self) -> int:
        return len(self.windows)

    def __contains__(self, key: str) -> bool:
        return key in self.windows

    def register(self, issue: Issue, window: VersionWindow):
        """Record a freshly classified issue in its opening, fixed and (if known) injected releases"""
        self.issues[issue.key] = issue
        self.windows[issue.key] = window
        self.opened[window.ov].append(issue.key)
        self.fixed[window.fv].append(issue.key)
        if window.iv is not None:
            self.injected[window.iv].append(issue.key)

    def set_injected(self, key: str, iv: int, estimated: bool = True):
        window = self.windows[key]
        window.iv = iv
        window.estimated = estimated
        self.injected[iv].append(key)

    def window(self, key: str) -> VersionWindow:
        return self.windows[key]

    def fixed_in(self, index: int) -> list[str]:
        return list(self.fixed.get(index, []))

    def opened_in(self, index: int) -> list[str]:
        return list(self.opened.get(index, []))

    def injected_in(self, index: int) -> list[str]:
        return list(self.injected.get(index, []))

    def uninjected(self) -> list[str]:
        return [key for key, w in self.windows.items() if w.iv is None]

    def summary(self) -> dict:
        return {
            'issues': len(self.windows),
            'with_iv': sum(1 for w in self.windows.values() if w.iv is not None),
            'estimated': sum(1 for w in self.windows.values() if w.estimated),
            'discarded_affected': sum(
                1 for key, w in self.windows.items()
                if self.issues[key].affected and not w.affected
            ),
        }
