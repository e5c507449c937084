#!/usr/bin/env python3
"""
Tests for the Proportion estimator.

Usage:
    python -m pytest tests/test_proportion.py -v
"""

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from defect_timeline.errors import ProportionError
from defect_timeline.models import Issue, Release, VersionTable, VersionWindow
from defect_timeline.proportion import (
    ProportionState,
    apply_proportion,
    cold_start,
    donor_cold_start,
    estimate_iv,
    estimate_release,
    mean_proportion,
    proportion,
    round_half_up,
)


def make_table(n_releases, windows):
    """VersionTable with ``n_releases`` releases ten days apart and the given (key, window) pairs"""
    releases = [Release(f'1.{i}', date(2020, 1, 1) + timedelta(days=10 * i), i) for i in range(n_releases)]
    table = VersionTable(releases)
    for key, window in windows:
        table.register(Issue(key, date(2020, 1, 1), date(2020, 1, 1)), window)
    return table


# =============================================================================
# PROPORTION VALUES
# =============================================================================

def test_proportion_of_known_window():
    """P = (FV - IV) / (FV - OV)"""
    assert proportion(VersionWindow(ov=1, fv=3, iv=0)) == 1.5
    assert proportion(VersionWindow(ov=2, fv=4, iv=2)) == 1.0


def test_proportion_sentinels():
    """Zero-width windows and unknown IVs have no proportion"""
    assert proportion(VersionWindow(ov=2, fv=2, iv=1)) is None
    assert proportion(VersionWindow(ov=1, fv=3)) is None


def test_round_half_up():
    """Halves round up"""
    assert round_half_up(0.5) == 1
    assert round_half_up(1.5) == 2
    assert round_half_up(2.4999) == 2


def test_estimate_iv_is_clamped():
    """Estimated IV never goes below 0 nor above OV"""
    assert estimate_iv(VersionWindow(ov=1, fv=3), 1.5) == 0
    assert estimate_iv(VersionWindow(ov=1, fv=5), 10.0) == 0
    assert estimate_iv(VersionWindow(ov=3, fv=3), 2.0) == 3


# =============================================================================
# COLD START
# =============================================================================

def test_cold_start_is_median_of_donors():
    """Median across donor means, missing donors skipped"""
    assert cold_start([1.0, 3.0, 2.0]) == 2.0
    assert cold_start([1.0, None, 5.0, 2.0, 9.0]) == 5.0


def test_cold_start_even_donor_count_takes_upper_middle():
    """With an even number of donors the upper middle value is used, not their average"""
    assert cold_start([6.0, 1.0, 4.0, 2.0, 5.0, 3.0]) == 4.0
    assert cold_start([1.0, 2.0]) == 2.0


def test_cold_start_without_donors():
    """No donor value at all cannot be recovered from"""
    with pytest.raises(ProportionError):
        cold_start([None, None])


def test_mean_proportion_excludes_sentinels():
    """Issues with FV == OV or no IV do not enter the mean"""
    table = make_table(4, [
        ('A', VersionWindow(ov=1, fv=3, iv=0)),
        ('B', VersionWindow(ov=2, fv=3, iv=2)),
        ('C', VersionWindow(ov=2, fv=2, iv=0)),
        ('D', VersionWindow(ov=1, fv=2)),
    ])
    assert mean_proportion(table) == pytest.approx(1.25)
    assert mean_proportion(make_table(2, [])) is None


def test_donor_cold_start_skips_failed_donors():
    """A donor whose tracker fails is left out of the median"""
    from defect_timeline.errors import IssueSourceError

    releases = [Release('1.0', date(2020, 1, 1), 0), Release('1.1', date(2020, 1, 10), 1),
                Release('1.2', date(2020, 1, 20), 2)]

    class FakeClient:
        def load_project(self, project, extra_jql='', fraction=0.5):
            if project == 'broken':
                raise IssueSourceError("down")
            if project == 'empty':
                return releases, []
            # IV 0, OV 1, FV 2 -> P = 2
            return releases, [Issue(f'{project}-1', date(2020, 1, 2), date(2020, 1, 15), (date(2020, 1, 1),))]

    assert donor_cold_start(FakeClient(), ['broken', 'empty', 'good']) == 2.0


# =============================================================================
# INCREMENTAL ESTIMATE
# =============================================================================

def test_few_valid_issues_use_cold_start():
    """With fewer than 5 valid issues per release every IV comes from the cold start"""
    p0 = 1.5
    windows = [
        ('V1', VersionWindow(ov=1, fv=2, iv=0)),
        ('A', VersionWindow(ov=1, fv=3)),
        ('B', VersionWindow(ov=2, fv=4)),
        ('C', VersionWindow(ov=3, fv=4)),
    ]
    table = make_table(5, windows)
    apply_proportion(table, p0)

    for key, expected in [('A', 0), ('B', 1), ('C', 3)]:
        window = table.window(key)
        assert window.iv == round_half_up(window.fv - (window.fv - window.ov) * p0)
        assert window.iv == expected
        assert window.estimated
    assert table.window('V1').estimated is False
    assert table.uninjected() == []


def test_five_valid_issues_use_incremental_mean():
    """Five valid issues: cumulative sum over cumulative count, not p0 or the release mean"""
    windows = [(f'V{i}', VersionWindow(ov=1, fv=3, iv=0)) for i in range(5)]
    windows.append(('X', VersionWindow(ov=2, fv=3)))
    table = make_table(4, windows)

    state, p = estimate_release(table, 3, ProportionState(total=1.0, count=3), cold_start_value=3.0)

    # (1.0 + 5 * 1.5) / (3 + 5)
    assert p == pytest.approx(1.0625)
    assert table.window('X').iv == 2
    # X's own proportion (3 - 2) / (3 - 2) is fed back
    assert state == ProportionState(total=9.5, count=4)


def test_four_valid_issues_fall_back_to_cold_start():
    """Below the threshold the accumulators are not fed by valid issues"""
    windows = [(f'V{i}', VersionWindow(ov=1, fv=3, iv=0)) for i in range(4)]
    windows.append(('X', VersionWindow(ov=1, fv=3)))
    table = make_table(4, windows)

    state, p = estimate_release(table, 3, ProportionState(), cold_start_value=2.0)

    assert p == 2.0
    assert table.window('X').iv == 0
    assert state == ProportionState(total=1.5, count=1)


def test_feedback_of_estimated_issues_can_be_disabled():
    """Without feedback only valid issues enter the running sum"""
    windows = [(f'V{i}', VersionWindow(ov=1, fv=3, iv=0)) for i in range(5)]
    windows.append(('X', VersionWindow(ov=2, fv=3)))
    table = make_table(4, windows)

    state, _ = estimate_release(table, 3, ProportionState(total=1.0, count=3), 3.0, feed_estimated=False)

    assert state == ProportionState(total=8.5, count=3)


def test_opened_issues_grow_the_count():
    """Issues opened in a release are added to the running count"""
    table = make_table(3, [
        ('A', VersionWindow(ov=1, fv=2, iv=1)),
        ('B', VersionWindow(ov=1, fv=1, iv=0)),
    ])
    state, _ = estimate_release(table, 1, ProportionState(), 2.0)
    assert state == ProportionState(total=0.0, count=2)


def test_zero_width_estimate_is_not_fed_back():
    """An estimated issue with FV == OV has no proportion of its own"""
    table = make_table(3, [('A', VersionWindow(ov=2, fv=2))])
    state, _ = estimate_release(table, 2, ProportionState(), 1.5)
    assert table.window('A').iv == 2
    # only the opened count
    assert state == ProportionState(total=0.0, count=1)


def test_state_carries_across_releases():
    """The fold threads the accumulator from release to release"""
    windows = [(f'V{i}', VersionWindow(ov=1, fv=2, iv=0)) for i in range(5)]
    windows += [(f'W{i}', VersionWindow(ov=2, fv=3, iv=0)) for i in range(5)]
    windows.append(('X', VersionWindow(ov=2, fv=4)))
    table = make_table(5, windows)

    state = apply_proportion(table, cold_start_value=9.0)

    # R1 opens V; R2 fixes V (P=2) and opens W and X; R3 fixes W (P=3)
    # R4 has no valid issue, so X falls back to the cold start
    assert table.window('X').iv == 0
    # X's own proportion (4 - 0) / (4 - 2) is fed back
    assert state.total == pytest.approx(10.0 + 15.0 + 2.0)
    assert state.count == 5 + 6 + 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
