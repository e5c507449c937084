"""
Per-file process metrics between consecutive releases.

The window of release R runs from the commit of release R-1 (the first
commit of the repository for R = 0) to the commit of release R.
"""

import logging

from .config import SOURCE_SUFFIX
from .features import Metric, MetricsTable
from .models import Commit, DiffStat, Revision, VersionTable

logger = logging.getLogger(__name__)


def count_lines(content: bytes) -> int:
    """Newline-delimited lines; an unterminated last line counts too"""
    lines = content.count(b'\n')
    if content and not content.endswith(b'\n'):
        lines += 1
    return lines


def size_metrics(content: bytes, stat: DiffStat | None) -> dict:
    """LOC at the release plus touched lines and churn over the whole window"""
    stat = stat or DiffStat()
    return {
        Metric.LOC: count_lines(content),
        Metric.LOC_TOUCHED: stat.touched,
        Metric.CHURN: stat.churn,
    }


def chain_diffs(history, chain: list[Commit], path: str) -> list[DiffStat]:
    """Diffs of ``path`` between each consecutive pair of the chain"""
    diffs = []
    for previous, current in zip(chain, chain[1:]):
        diffs.extend(history.diff(previous.tree, current.tree, path=path).values())
    return diffs


def chain_metrics(chain: list[Commit], diffs: list[DiffStat]) -> dict:
    """Max/average added lines and churn along the chain, revisions and authors"""
    # An empty chain still averages over one
    size = max(len(diffs), 1)
    added = [d.added for d in diffs]
    churns = [d.churn for d in diffs]
    return {
        Metric.MAX_LOC_ADDED: max(added, default=0),
        Metric.AVERAGE_LOC_ADDED: round(sum(added) / size, 2),
        Metric.MAX_CHURN: max(churns, default=0),
        Metric.AVERAGE_CHURN: round(sum(churns) / size, 2),
        Metric.NR: len(chain),
        Metric.N_AUTH: len({c.author for c in chain}),
    }


def fix_count(fixed_hashes: list[str], chain: list[Commit], previous: Commit, current: Commit) -> int:
    """Fixed issues whose commit lies in the chain or on one of its boundaries"""
    window = {c.hash for c in chain} | {previous.hash, current.hash}
    return sum(1 for h in fixed_hashes if h in window)


def apply_metrics(history, revisions: list[Revision], fixes: dict[str, Commit], versions: VersionTable,
                  table: MetricsTable, suffix: str = SOURCE_SUFFIX):
    """Fill every (file, release) cell of ``table`` in release order"""
    previous = history.first_commit()
    for revision in revisions:
        current = revision.commit
        diffs = history.diff(previous.tree, current.tree, suffix=suffix)
        fixed_hashes = [fixes[key].hash for key in versions.fixed_in(revision.index) if key in fixes]

        for path in revision.files:
            content = history.file_content(current, path)
            chain = history.commits_in_range(previous, current, path)
            values = size_metrics(content, diffs.get(path))
            values.update(chain_metrics(chain, chain_diffs(history, chain, path)))
            values[Metric.N_FIX] = fix_count(fixed_hashes, chain, previous, current)
            table.set_metrics(path, revision.index, values)

        print(f"  Release {revision.release.name}: {len(revision.files)} files measured", flush=True)
        previous = current
