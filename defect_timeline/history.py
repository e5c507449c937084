"""
Git history access: commits, file contents, diffs and per-file commit chains.
"""

import logging
from pathlib import Path

from git import Repo
from git.exc import BadName, BadObject, GitCommandError, GitError, InvalidGitRepositoryError, NoSuchPathError
from pydriller import Git, Repository

from .errors import CorruptObjectError, HistorySourceError
from .models import Commit, DiffStat

logger = logging.getLogger(__name__)


def parse_numstat(output: str) -> dict[str, DiffStat]:
    """
    Parse ``git diff --numstat`` output; binary files count as 0/0.

    Records are NUL separated when the diff ran with ``-z``, which keeps
    paths unquoted.
    """
    records = output.split('\0') if '\0' in output else output.splitlines()
    stats = {}
    for line in records:
        parts = line.split('\t')
        if len(parts) != 3:
            continue
        added, deleted, path = parts
        stats[path] = DiffStat(
            added=int(added) if added.isdigit() else 0,
            deleted=int(deleted) if deleted.isdigit() else 0,
        )
    return stats


class GitHistory:
    """Read-only view of a local git repository"""

    def __init__(self, folder):
        self.folder = Path(folder)
        try:
            self._git = Git(str(self.folder))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise HistorySourceError(f"Could not load repository at {self.folder}") from e
        self._commits = None

    @classmethod
    def clone(cls, url: str, folder, branch: str = None) -> 'GitHistory':
        """Clone ``url`` into ``folder`` unless a repository is already there"""
        folder = Path(folder)
        if (folder / '.git').exists():
            return cls(folder)
        if folder.exists() and any(folder.iterdir()):
            raise HistorySourceError(f"Local folder {folder} exists and is not a git repository")
        print(f"  Cloning {url} ...", flush=True)
        try:
            Repo.clone_from(url, str(folder), branch=branch)
        except GitError as e:
            raise HistorySourceError(f"Could not clone {url}") from e
        return cls(folder)

    @property
    def repo(self) -> Repo:
        return self._git.repo

    def _to_commit(self, commit) -> Commit:
        """Convert a pydriller commit, reading tree ids from the underlying git object"""
        try:
            raw = self.repo.commit(commit.hash)
            tree = raw.tree.hexsha
            parent_trees = tuple(p.tree.hexsha for p in raw.parents)
        except (BadName, BadObject, ValueError) as e:
            raise CorruptObjectError(f"Could not read commit {commit.hash}") from e
        message = commit.msg.splitlines()[0] if commit.msg else ''
        return Commit(
            hash=commit.hash,
            message=message,
            author=commit.author.name,
            date=commit.committer_date.replace(tzinfo=None),
            tree=tree,
            parent_trees=parent_trees,
        )

    def list_commits(self) -> list[Commit]:
        """Every commit reachable from any ref, once, oldest first"""
        if self._commits is None:
            try:
                commits = [
                    self._to_commit(c)
                    for c in Repository(str(self.folder), include_refs=True).traverse_commits()
                ]
            except GitCommandError as e:
                raise HistorySourceError("Unable to get the log") from e
            seen = set()
            unique = []
            for commit in commits:
                if commit.hash not in seen:
                    seen.add(commit.hash)
                    unique.append(commit)
            unique.sort(key=lambda c: c.date)
            self._commits = unique
            logger.info("%s: %d commits", self.folder.name, len(unique))
        return self._commits

    def first_commit(self) -> Commit:
        """The oldest root commit reachable from HEAD"""
        try:
            roots = list(self._git.get_list_commits('HEAD', max_parents=0))
        except (GitCommandError, ValueError) as e:
            raise HistorySourceError("Could not find HEAD") from e
        if not roots:
            raise HistorySourceError("Repository has no commits")
        return self._to_commit(min(roots, key=lambda c: c.committer_date))

    def _tree(self, commit: Commit):
        """Root tree of the commit, read through the commit so its path is set"""
        return self.repo.commit(commit.hash).tree

    def list_files(self, commit: Commit, suffix: str = '') -> list[str]:
        """Paths of the blobs in the commit's tree ending with ``suffix``"""
        try:
            tree = self._tree(commit)
            return sorted(
                item.path for item in tree.traverse()
                if item.type == 'blob' and item.path.endswith(suffix)
            )
        except (AttributeError, BadName, BadObject, ValueError) as e:
            raise CorruptObjectError(f"Could not walk tree of {commit.hash}") from e

    def file_content(self, commit: Commit, path: str) -> bytes:
        try:
            blob = self._tree(commit) / path
            return blob.data_stream.read()
        except (AttributeError, KeyError, BadName, BadObject, ValueError) as e:
            raise CorruptObjectError(f"Could not read {path} at {commit.hash}") from e

    def diff(self, tree_a: str, tree_b: str, suffix: str = None, path: str = None) -> dict[str, DiffStat]:
        """
        Lines added/deleted per file between two trees.

        ``suffix`` keeps paths ending with it, ``path`` restricts the diff to
        exactly one file.
        """
        args = ['--numstat', '-z', '--no-renames', tree_a, tree_b]
        if path:
            args += ['--', path]
        try:
            output = self.repo.git.diff(*args)
        except GitCommandError as e:
            raise CorruptObjectError(f"Could not diff {tree_a[:8]}..{tree_b[:8]}") from e
        stats = parse_numstat(output)
        if suffix:
            stats = {p: s for p, s in stats.items() if p.endswith(suffix)}
        return stats

    def commits_in_range(self, first: Commit, second: Commit, path: str) -> list[Commit]:
        """Commits touching ``path`` reachable from ``second`` but not ``first``, oldest first"""
        try:
            return [
                self._to_commit(c)
                for c in self._git.get_list_commits(f'{first.hash}..{second.hash}', paths=path, reverse=True)
            ]
        except GitCommandError as e:
            raise HistorySourceError(f"Could not walk {path} between {first.hash[:8]} and {second.hash[:8]}") from e

    def files_changed_by(self, commit: Commit) -> list[str]:
        """Files touched by the commit against each of its parents"""
        changed = []
        for parent_tree in commit.parent_trees:
            try:
                output = self.repo.git.diff('--name-only', '-z', '--no-renames', parent_tree, commit.tree)
            except GitCommandError as e:
                raise CorruptObjectError(f"Tree of {commit.hash} is invalid") from e
            for path in output.split('\0'):
                if path and path not in changed:
                    changed.append(path)
        return changed

    def close(self):
        self._git.clear()
