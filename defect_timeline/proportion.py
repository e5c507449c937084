"""
Proportion: estimate the injected version of issues without affected-version data.

For an issue with a known IV, ``P = (FV - IV) / (FV - OV)``. Releases are
folded in ascending order; the running totals are carried in an explicit
``ProportionState`` so every step can be inspected on its own.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from .classifier import classify_issues
from .config import FEED_ESTIMATED_PROPORTIONS, PROPORTION_MIN_VALID, RELEASE_FRACTION
from .errors import DatasetError, ProportionError
from .models import VersionTable, VersionWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProportionState:
    """Running proportion sum and issue count across the releases seen so far"""
    total: float = 0.0
    count: int = 0

    def add(self, proportion_sum: float = 0.0, issues: int = 0) -> 'ProportionState':
        return ProportionState(self.total + proportion_sum, self.count + issues)


def proportion(window: VersionWindow) -> float | None:
    """P of an issue with known IV; None when FV == OV (zero-width window)"""
    if window.iv is None or window.fv == window.ov:
        return None
    return (window.fv - window.iv) / (window.fv - window.ov)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_iv(window: VersionWindow, p: float) -> int:
    """``round(FV - (FV - OV) * P)`` kept within [0, OV]"""
    iv = round_half_up(window.fv - (window.fv - window.ov) * p)
    return max(0, min(iv, window.ov))


def mean_proportion(table: VersionTable) -> float | None:
    """Mean P over the issues of a project with a known IV, sentinels excluded"""
    values = [p for p in (proportion(w) for w in table.windows.values()) if p is not None]
    if not values:
        return None
    return float(np.mean(values))


def cold_start(donor_means: list) -> float:
    """Median of the donors' mean proportions, the upper one of the middle pair for an even count"""
    values = [m for m in donor_means if m is not None]
    if not values:
        raise ProportionError("No donor project has issues with a known injected version")
    return float(sorted(values)[len(values) // 2])


def estimate_release(table: VersionTable, index: int, state: ProportionState, cold_start_value: float,
                     feed_estimated: bool = FEED_ESTIMATED_PROPORTIONS,
                     min_valid: int = PROPORTION_MIN_VALID) -> tuple[ProportionState, float]:
    """
    One fold step: assign an IV to the issues fixed in release ``index`` lacking one.

    Returns the state to carry into the next release and the proportion used.
    """
    fixed = table.fixed_in(index)
    valid = [p for p in (proportion(table.window(k)) for k in fixed if table.window(k).iv is not None)
             if p is not None]
    invalid = [k for k in fixed if table.window(k).iv is None]

    if len(valid) >= min_valid:
        current = sum(valid)
        p = (state.total + current) / (state.count + len(valid))
        state = state.add(proportion_sum=current)
    else:
        p = cold_start_value

    for key in invalid:
        window = table.window(key)
        table.set_injected(key, estimate_iv(window, p), estimated=True)
        if feed_estimated:
            own = proportion(window)
            if own is not None:
                state = state.add(proportion_sum=own, issues=1)

    state = state.add(issues=len(table.opened_in(index)))
    return state, p


def apply_proportion(table: VersionTable, cold_start_value: float,
                     feed_estimated: bool = FEED_ESTIMATED_PROPORTIONS,
                     min_valid: int = PROPORTION_MIN_VALID) -> ProportionState:
    """Fold ``estimate_release`` over every release in ascending order"""
    state = ProportionState()
    estimated = 0
    for index in range(len(table.releases)):
        before = len(table.uninjected())
        state, p = estimate_release(table, index, state, cold_start_value, feed_estimated, min_valid)
        assigned = before - len(table.uninjected())
        estimated += assigned
        if assigned:
            logger.debug("release %d: %d IVs estimated with P=%.3f", index, assigned, p)

    logger.info("Proportion estimated %d injected versions (cold start %.3f)", estimated, cold_start_value)
    return state


def donor_cold_start(client, donors: list[str], fraction: float = RELEASE_FRACTION) -> float:
    """
    Cold-start proportion from donor projects.

    Each donor is classified on its own releases; its mean P over issues with
    a known IV is one sample, the median across donors is returned. A donor
    that cannot be loaded is logged and left out.
    """
    means = []
    for donor in donors:
        try:
            releases, issues = client.load_project(donor, fraction=fraction)
        except DatasetError as e:
            logger.warning("Cold start donor %s unavailable: %s", donor, e.reason)
            continue
        mean = mean_proportion(classify_issues(releases, issues))
        if mean is None:
            logger.info("Cold start donor %s has no issues with a known IV", donor)
            continue
        logger.info("Cold start donor %s: P=%.3f", donor, mean)
        means.append(mean)
    return cold_start(means)
