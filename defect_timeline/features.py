"""
Metric definitions and the file × release metrics table.
"""

from dataclasses import dataclass, field
from enum import Enum

import pandas as pd

from .config import BUGGY_COL, FILE_COL, METRIC_COLS, VERSION_COL


class Metric(str, Enum):
    """Per-file process metrics, in output column order"""
    LOC = 'LOC'
    LOC_TOUCHED = 'LOC_TOUCHED'
    CHURN = 'CHURN'
    AVERAGE_LOC_ADDED = 'AVERAGE_LOC_ADDED'
    MAX_LOC_ADDED = 'MAX_LOC_ADDED'
    AVERAGE_CHURN = 'AVERAGE_CHURN'
    MAX_CHURN = 'MAX_CHURN'
    NR = 'NR'
    N_AUTH = 'N_AUTH'
    N_FIX = 'N_FIX'


@dataclass
class MetricRecord:
    """Metrics of one file at one release"""
    values: dict = field(default_factory=dict)
    buggy: bool = False

    def to_dict(self) -> dict:
        """Metric columns in order, then the label"""
        row = {m.value: self.values.get(m, 0) for m in Metric}
        row[BUGGY_COL] = self.buggy
        return row


class MetricsTable:
    """
    Dense grid of MetricRecords.

    Every file seen in any revision gets one record per release, created
    here and only mutated afterwards. Rows are emitted only for the
    releases where the file exists.
    """

    def __init__(self, revisions):
        self.n_releases = len(revisions)
        self.files_at = [tuple(r.files) for r in revisions]
        self.records: dict[str, list[MetricRecord]] = {}
        for files in self.files_at:
            for path in files:
                if path not in self.records:
                    self.records[path] = [MetricRecord() for _ in range(self.n_releases)]

    def __contains__(self, path: str) -> bool:
        return path in self.records

    def __len__(self) -> int:
        return sum(len(files) for files in self.files_at)

    def record(self, path: str, index: int) -> MetricRecord:
        return self.records[path][index]

    def set_metrics(self, path: str, index: int, values: dict):
        self.records[path][index].values.update(values)

    def mark_buggy(self, path: str, index: int):
        self.records[path][index].buggy = True

    def reset_labels(self):
        for records in self.records.values():
            for record in records:
                record.buggy = False

    def rows(self, n_releases: int = None):
        """(version, path, record) for releases 0..n_releases-1, version is 1-based"""
        n_releases = self.n_releases if n_releases is None else n_releases
        for index in range(min(n_releases, self.n_releases)):
            for path in self.files_at[index]:
                yield index + 1, path, self.records[path][index]

    def to_frame(self, n_releases: int = None) -> pd.DataFrame:
        """Version, File_Name, metrics in fixed order, Buggy"""
        data = [
            {VERSION_COL: version, FILE_COL: path, **record.to_dict()}
            for version, path, record in self.rows(n_releases)
        ]
        return pd.DataFrame(data, columns=[VERSION_COL, FILE_COL, *METRIC_COLS, BUGGY_COL])
