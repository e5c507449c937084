"""
Dataset pipeline: Jira + git history -> labeled file × release tables.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from .classifier import classify_issues
from .config import (
    BUGGY_COL,
    COLD_START_PROJECTS,
    DATASET_DIR,
    FEED_ESTIMATED_PROPORTIONS,
    RELEASE_FRACTION,
    REPOS_DIR,
    SOURCE_SUFFIX,
    VERSION_COL,
    ProjectConfig,
)
from .errors import DatasetError
from .features import MetricsTable
from .history import GitHistory
from .jira import JiraClient
from .labeling import assign_labels
from .metrics import apply_metrics
from .models import Revision, VersionTable
from .proportion import apply_proportion, donor_cold_start
from .resolver import resolve_fixes, resolve_revisions

logger = logging.getLogger(__name__)


@dataclass
class DatasetResult:
    project: str
    revisions: list[Revision]
    versions: VersionTable
    table: MetricsTable
    cold_start: float
    fixed_files: dict = field(default_factory=dict)
    snapshots: dict = field(default_factory=dict)
    oracle: pd.DataFrame | None = None


def build_snapshots(table: MetricsTable, versions: VersionTable, fixed_files: dict,
                    n_releases: int) -> tuple[dict[int, pd.DataFrame], pd.DataFrame]:
    """
    One frame per evaluation point E in 2..N (releases 0..E-1, labeled with
    the issues fixed before E) and the oracle frame labeled with every issue.
    """
    snapshots = {}
    for evaluation_point in range(2, n_releases + 1):
        assign_labels(table, versions, fixed_files, evaluation_point)
        snapshots[evaluation_point] = table.to_frame(evaluation_point)

    assign_labels(table, versions, fixed_files, n_releases)
    oracle = table.to_frame(n_releases)
    return snapshots, oracle


def walk_forward_splits(snapshots: dict[int, pd.DataFrame], oracle: pd.DataFrame):
    """
    Training/testing pairs for walk-forward evaluation.

    For release i (1-based, 2..N-1) the training set is releases 1..i-1 as
    labeled in snapshot i, the testing set is release i as labeled by the
    oracle.
    """
    n_releases = int(oracle[VERSION_COL].max()) if len(oracle) else 0
    splits = []
    for i in range(2, n_releases):
        snapshot = snapshots[i]
        training = snapshot[snapshot[VERSION_COL] < i].reset_index(drop=True)
        testing = oracle[oracle[VERSION_COL] == i].reset_index(drop=True)
        splits.append((i, training, testing))
    return splits


def build_dataset(project: ProjectConfig, client, history, cold_start_value: float,
                  feed_estimated: bool = FEED_ESTIMATED_PROPORTIONS,
                  fraction: float = RELEASE_FRACTION, suffix: str = SOURCE_SUFFIX) -> DatasetResult:
    """Run every step for one project with already opened sources"""
    print(f"\nProcessing: {project.name}", flush=True)

    releases = client.list_releases(project.jira_key, fraction)
    revisions = resolve_revisions(releases, history, project.name, suffix)
    if not revisions:
        raise DatasetError(f"No release of {project.name} could be matched to a commit")
    print(f"  {len(revisions)}/{len(releases)} releases matched to commits", flush=True)

    dated = [r.release for r in revisions]
    issues = client.list_issues(project.jira_key, dated[0].date, dated[-1].date, project.extra_jql)
    versions = classify_issues(dated, issues)
    apply_proportion(versions, cold_start_value, feed_estimated)
    print(f"  Issues: {versions.summary()}", flush=True)

    commits = history.list_commits()
    fixes = resolve_fixes(versions, commits)
    fixed_files = {key: history.files_changed_by(commit) for key, commit in fixes.items()}
    print(f"  {len(fixes)}/{len(versions)} fixed issues matched to commits", flush=True)

    table = MetricsTable(revisions)
    print(f"  Extracting metrics...", flush=True)
    apply_metrics(history, revisions, fixes, versions, table, suffix)

    snapshots, oracle = build_snapshots(table, versions, fixed_files, len(revisions))
    print(f"  Extracted: {len(oracle)} rows, {int(oracle[BUGGY_COL].sum())} buggy", flush=True)

    return DatasetResult(
        project=project.name,
        revisions=revisions,
        versions=versions,
        table=table,
        cold_start=cold_start_value,
        fixed_files=fixed_files,
        snapshots=snapshots,
        oracle=oracle,
    )


def donors_for(project: ProjectConfig, batch: list[ProjectConfig] = ()) -> list[str]:
    """Cold-start donors: the fixed donor list plus the other projects of the batch"""
    return COLD_START_PROJECTS + [p.name for p in batch if p.name != project.name]


def extract_dataset(project: ProjectConfig, batch: list[ProjectConfig] = (), client: JiraClient = None,
                    repos_dir: Path = REPOS_DIR, feed_estimated: bool = FEED_ESTIMATED_PROPORTIONS) -> DatasetResult:
    """Open Jira and the git repository for ``project`` and build its dataset"""
    client = client or JiraClient()
    cold = donor_cold_start(client, donors_for(project, batch))
    print(f"  Cold start proportion: {cold:.3f}", flush=True)

    history = GitHistory.clone(project.repo_url, Path(repos_dir) / project.name, project.branch)
    try:
        return build_dataset(project, client, history, cold, feed_estimated)
    finally:
        history.close()


def save_frame(frame: pd.DataFrame, path: Path):
    """Write a table as CSV with the label as lowercase true/false"""
    frame = frame.assign(**{BUGGY_COL: frame[BUGGY_COL].map({True: 'true', False: 'false'})})
    frame.to_csv(path, index=False)


def write_dataset(result: DatasetResult, output_dir: Path = DATASET_DIR) -> Path:
    """
    Write every snapshot as ``<E>.csv``, the oracle as ``oracle.csv`` and the
    walk-forward pairs as ``training-<i>.csv`` and ``testing-<i>.csv``.
    """
    folder = Path(output_dir) / result.project / 'datasets'
    folder.mkdir(parents=True, exist_ok=True)
    for evaluation_point, frame in result.snapshots.items():
        save_frame(frame, folder / f'{evaluation_point}.csv')
    if result.oracle is not None:
        save_frame(result.oracle, folder / 'oracle.csv')
        for i, training, testing in walk_forward_splits(result.snapshots, result.oracle):
            save_frame(training, folder / f'training-{i}.csv')
            save_frame(testing, folder / f'testing-{i}.csv')
    return folder
