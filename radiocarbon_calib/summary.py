"""
Summary statistics for calibrated dates: HPD intervals, median dates and a tabular summary.
Sparse and dense storage give the same answers.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .caldates import CalDates
from .core.errors import InvalidParameterError
from .grids import CalGrid
from .timeutils import bp_to_bcad

DEFAULT_PROBS = (0.683, 0.954)
DEFAULT_PROB_NAMES = ("OneSigma", "TwoSigma")


def _require_caldates(x: object) -> CalDates:
    if not isinstance(x, CalDates):
        raise InvalidParameterError("x must be a CalDates object")
    return x


def hpd_ranges(grid: CalGrid, cred_mass: float = 0.95) -> np.ndarray:
    """
    Highest posterior density ranges of one grid, shape (n_ranges, 2): (startCalBP, endCalBP).
    Years at or above the density threshold are split wherever consecutive years differ by more than 1.
    """
    nz = grid.pr_dens > 0
    years, dens = grid.cal_bp[nz], grid.pr_dens[nz]
    if dens.size == 0:
        return np.empty((0, 2), dtype=np.int64)
    ordered = np.sort(dens)[::-1]
    reached = np.flatnonzero(np.cumsum(ordered) >= dens.sum() * cred_mass)
    height = ordered[reached[0]] if reached.size else ordered[-1]
    selected = np.sort(years[dens >= height])[::-1]
    gaps = np.flatnonzero(-np.diff(selected) > 1)
    starts = selected[np.r_[0, gaps + 1]]
    ends = selected[np.r_[gaps, selected.size - 1]]
    return np.column_stack([starts, ends]).astype(np.int64)


def hpdi(x: CalDates, cred_mass: float = 0.95) -> List[np.ndarray]:
    """HPD ranges for every date, in metadata order."""
    x = _require_caldates(x)
    if not 0 < cred_mass <= 1:
        raise InvalidParameterError(f"cred_mass must be in (0, 1], got {cred_mass}")
    return [hpd_ranges(g, cred_mass) for g in x.iter_grids(compact=True)]


def median_dates(x: CalDates) -> np.ndarray:
    """
    Median calendar year BP of every date.
    Each year is credited with the cumulative mass up to its midpoint, so a
    symmetric grid returns its central year rather than a neighbour. Only years
    with non-zero density are scored, so sparse and dense storage agree.
    """
    x = _require_caldates(x)
    out = np.empty(len(x), dtype=np.int64)
    for i, g in enumerate(x.iter_grids(compact=True)):
        cum = np.cumsum(g.pr_dens)
        centred = cum - g.pr_dens / 2.0
        out[i] = g.cal_bp[int(np.argmin(np.abs(centred - cum[-1] / 2.0)))]
    return out


def summarise(
    x: CalDates,
    prob: Optional[Sequence[float]] = None,
    calendar: str = "BP",
) -> pd.DataFrame:
    """
    One row per date: DateID, median and the HPD ranges for each probability as
    "start to end" strings (one column per range, NaN when a date has fewer ranges).
    calendar: "BP" or "BCAD" (negative = BC).
    """
    x = _require_caldates(x)
    if calendar not in ("BP", "BCAD"):
        raise InvalidParameterError(f"calendar must be 'BP' or 'BCAD', got {calendar!r}")
    if prob is None:
        probs, names = list(DEFAULT_PROBS), list(DEFAULT_PROB_NAMES)
    else:
        probs = [float(p) for p in np.atleast_1d(prob)]
        names = [f"p_{p:g}" for p in probs]

    med = median_dates(x)
    if calendar == "BP":
        res = pd.DataFrame({"DateID": x.date_ids, "MedianBP": med})
    else:
        res = pd.DataFrame({"DateID": x.date_ids, "MedianBC/AD": bp_to_bcad(med)})

    for p, name in zip(probs, names):
        ranges = hpdi(x, p)
        cols = max(r.shape[0] for r in ranges)
        for j in range(cols):
            cells = []
            for r in ranges:
                if r.shape[0] <= j:
                    cells.append(np.nan)
                    continue
                a, b = r[j]
                if calendar == "BCAD":
                    a, b = bp_to_bcad(a), bp_to_bcad(b)
                cells.append(f"{int(a)} to {int(b)}")
            res[f"{name}_{calendar}_{j + 1}"] = cells
    return res


__all__ = ["hpd_ranges", "hpdi", "median_dates", "summarise"]
