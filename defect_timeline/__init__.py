"""
Defect Timeline - Release-Level Defect Datasets from Jira and Git
==================================================================

Builds, for every source file and every release of a project, process
metrics (size, churn, revisions, authors, fixes) plus a buggy label.

Key idea: a bug is present from the release that injected it (IV) up to the
release that fixed it (FV). When Jira has no affected-version data, IV is
estimated with Proportion: the ratio (FV - IV) / (FV - OV) observed on
earlier bugs of the same (or, at first, other) projects.
"""

from .config import (
    PROJECTS,
    COLD_START_PROJECTS,
    METRIC_COLS,
    ProjectConfig,
)

from .errors import (
    DatasetError,
    IssueSourceError,
    HistorySourceError,
    CorruptObjectError,
    ProportionError,
)

from .models import (
    Release,
    Issue,
    Commit,
    DiffStat,
    Revision,
    VersionWindow,
    VersionTable,
)

from .features import (
    Metric,
    MetricRecord,
    MetricsTable,
)

from .jira import JiraClient
from .history import GitHistory

from .resolver import (
    Found,
    NotFound,
    resolve_release,
    resolve_issue,
)

from .classifier import classify_issues

from .proportion import (
    ProportionState,
    proportion,
    cold_start,
    estimate_release,
    apply_proportion,
)

from .metrics import apply_metrics
from .labeling import assign_labels

from .extraction import (
    build_dataset,
    extract_dataset,
    write_dataset,
    walk_forward_splits,
)

from .diagnostics import diagnose_dataset

__version__ = "0.1.0"

__all__ = [
    # Config
    "PROJECTS",
    "COLD_START_PROJECTS",
    "METRIC_COLS",
    "ProjectConfig",
    # Errors
    "DatasetError",
    "IssueSourceError",
    "HistorySourceError",
    "CorruptObjectError",
    "ProportionError",
    # Model
    "Release",
    "Issue",
    "Commit",
    "DiffStat",
    "Revision",
    "VersionWindow",
    "VersionTable",
    # Features
    "Metric",
    "MetricRecord",
    "MetricsTable",
    # Sources
    "JiraClient",
    "GitHistory",
    # Resolution
    "Found",
    "NotFound",
    "resolve_release",
    "resolve_issue",
    # Classification
    "classify_issues",
    "ProportionState",
    "proportion",
    "cold_start",
    "estimate_release",
    "apply_proportion",
    # Metrics and labels
    "apply_metrics",
    "assign_labels",
    # Pipeline
    "build_dataset",
    "extract_dataset",
    "write_dataset",
    "walk_forward_splits",
    # Diagnostics
    "diagnose_dataset",
]
