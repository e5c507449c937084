"""
Dataset diagnostics for assessing label quality.
"""

import numpy as np
import pandas as pd

from .config import BUGGY_COL, FILE_COL, VERSION_COL
from .models import VersionTable


def diagnose_dataset(frame: pd.DataFrame, versions: VersionTable = None, name: str = 'dataset') -> dict:
    """Report per-release size and buggy ratio of a produced table"""
    print(f"\n{'='*60}")
    print(f"DATASET DIAGNOSTIC: {name}")
    print(f"{'='*60}")

    per_release = frame.groupby(VERSION_COL).agg(
        files=(FILE_COL, 'count'),
        buggy=(BUGGY_COL, 'sum'),
    )
    ratios = (per_release['buggy'] / per_release['files'].clip(lower=1)).to_numpy()
    bug_ratio = float(frame[BUGGY_COL].mean()) if len(frame) else 0.0

    issues = []
    if len(per_release) < 3:
        issues.append(f"Only {len(per_release)} releases - too few for walk-forward evaluation")
    if bug_ratio < 0.02:
        issues.append(f"Buggy ratio {bug_ratio:.1%} - labels may be too sparse")

    # Later releases have fewer known bugs (still dormant) so their ratio drops
    if len(ratios) >= 2 and ratios[-1] < 0.5 * np.mean(ratios[:-1]):
        issues.append("Last release much less buggy than the others - expected snoring effect")

    estimated_share = 0.0
    if versions is not None and len(versions):
        summary = versions.summary()
        estimated_share = summary['estimated'] / summary['issues']
        if estimated_share > 0.5:
            issues.append(f"{estimated_share:.0%} of injected versions estimated by proportion")

    print(f"\nRows: {len(frame)}  Releases: {len(per_release)}  Buggy: {bug_ratio:.1%}")
    print(f"\n  {'Release':>7} {'Files':>7} {'Buggy':>7} {'Ratio':>7}")
    for version, row in per_release.iterrows():
        ratio = row['buggy'] / max(row['files'], 1)
        print(f"  {version:>7} {row['files']:>7} {int(row['buggy']):>7} {ratio:>7.1%}")

    if versions is not None:
        print(f"\nClassification: {versions.summary()}")

    if issues:
        print(f"\nIssues:")
        for issue in issues:
            print(f"  - {issue}")

    return {
        'releases': len(per_release),
        'rows': len(frame),
        'bug_ratio': bug_ratio,
        'release_bug_ratios': [float(r) for r in ratios],
        'estimated_share': estimated_share,
        'issues': issues,
    }
