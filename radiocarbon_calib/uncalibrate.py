"""
Uncalibration (back-calibration): calendar age -> radiocarbon age.

Point form looks up the curve age and error at each calendar age and draws a
randomised radiocarbon age from an injected numpy Generator.
Grid form inverts a whole calendar density: every candidate radiocarbon age k
receives sum_y h(y) N(k; mu(y), s(y)) divided by the unweighted reference
sum_y N(k; mu(y), s(y)).
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

import numpy as np
import pandas as pd
from scipy.stats import norm

from . import config
from .core.errors import DateOutOfCalibrationRange, InputLengthMismatch, UnsupportedInversionMode
from .core.types import ArrayLike
from .curves import load_curve
from .grids import CalGrid, UncalGrid, as_cal_grid
from .rng import SALT_UNCALIBRATE, rng_for, rng_from_seed

logger = logging.getLogger(__name__)

# Radiocarbon ages evaluated per block in grid uncalibration (bounds memory at block x years).
_BLOCK = 512


class UncalibratedAge(NamedTuple):
    cal_bp: float
    cc_cra: float
    cc_error: float
    r_cra: float
    r_error: float


def uncalibrate(
    cal_ages: ArrayLike,
    cra_errors: ArrayLike = 0.0,
    round_year: bool = True,
    cal_curves: Any = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    run_key: Optional[str] = None,
) -> pd.DataFrame:
    """
    Uncalibrate calendar ages.

    Returns calBP, the curve radiocarbon age (ccCRA) and curve error (ccError)
    at each age, a randomised radiocarbon age rCRA ~ N(ccCRA, sqrt(ccError^2 + rError^2))
    and the supplied measurement error rError. For reproducible draws pass an rng,
    a run_key (seeds rng_for(run_key, SALT_UNCALIBRATE)) or a seed, in that precedence.
    """
    curve = load_curve(cal_curves if cal_curves is not None else config.default_curve())
    x = np.atleast_1d(np.asarray(cal_ages, dtype=float))
    errs = np.atleast_1d(np.asarray(cra_errors, dtype=float))
    if errs.size == 1:
        errs = np.repeat(errs, x.size)
    if errs.size != x.size:
        raise InputLengthMismatch(
            f"cra_errors must be a single value or one per calendar age ({errs.size} given for {x.size} ages)."
        )
    cc_cra = curve.c14_at(x)
    cc_err = curve.error_at(x)
    if rng is None:
        rng = rng_for(run_key, SALT_UNCALIBRATE) if run_key is not None else rng_from_seed(seed)
    r_cra = rng.normal(loc=cc_cra, scale=np.sqrt(cc_err**2 + errs**2))
    if round_year:
        r_cra = np.round(r_cra)
    return pd.DataFrame({"calBP": x, "ccCRA": cc_cra, "ccError": cc_err, "rCRA": r_cra, "rError": errs})


def uncalibrate_point(
    cal_age: float,
    cra_error: float = 0.0,
    cal_curves: Any = None,
    round_year: bool = True,
    rng: Optional[np.random.Generator] = None,
) -> UncalibratedAge:
    """Single calendar age form of uncalibrate()."""
    row = uncalibrate([cal_age], cra_error, round_year=round_year, cal_curves=cal_curves, rng=rng).iloc[0]
    return UncalibratedAge(*(float(v) for v in row))


def uncalibrate_grid(
    cal_grid: Any,
    cal_curves: Any = None,
    eps: Optional[float] = None,
    compact: bool = True,
) -> UncalGrid:
    """
    Invert a calendar density (CalGrid or two-column table) into a density over
    integer radiocarbon ages spanning the curve's radiocarbon range.
    Curve points with zero error act as point masses at their rounded radiocarbon age.
    """
    grid = as_cal_grid(cal_grid)
    curve = load_curve(cal_curves if cal_curves is not None else config.default_curve())
    eps = config.default_eps() if eps is None else float(eps)
    logger.debug("uncalibrating grid of %d years against %s", len(grid), curve.name)

    mu = curve.c14_at(grid.cal_bp)
    s = curve.error_at(grid.cal_bp)
    total = grid.pr_dens.sum()
    if not total > 0:
        raise DateOutOfCalibrationRange("Cannot uncalibrate a grid with zero total density.")
    h = grid.pr_dens / total

    lo, hi = curve.c14_range
    k = np.arange(np.floor(hi), np.ceil(lo) - 1, -1).astype(np.int64)
    raw = np.zeros(k.size)
    base = np.zeros(k.size)

    spread = s > 0
    mu_s, s_s, h_s = mu[spread], s[spread], h[spread]
    for i in range(0, k.size, _BLOCK):
        kk = k[i : i + _BLOCK, None].astype(float)
        pdf = norm.pdf(kk, loc=mu_s[None, :], scale=s_s[None, :])
        raw[i : i + _BLOCK] = pdf @ h_s
        base[i : i + _BLOCK] = pdf.sum(axis=1)
    if (~spread).any():
        rows = k[0] - np.round(mu[~spread]).astype(np.int64)
        ok = (rows >= 0) & (rows < k.size)
        np.add.at(raw, rows[ok], h[~spread][ok])
        np.add.at(base, rows[ok], 1.0)

    raw = raw / raw.sum()
    raw[raw < eps] = 0.0
    pr_dens = np.zeros(k.size)
    has_base = base > 0
    pr_dens[has_base] = raw[has_base] / base[has_base]
    if compact:
        keep = pr_dens > 0
        k, pr_dens, raw, base = k[keep], pr_dens[keep], raw[keep], base[keep]
    pr_dens = pr_dens / pr_dens.sum()
    return UncalGrid(cra=k, pr_dens=pr_dens, raw=raw, base=base)


def uncalibrate_input(x: Any, **kwargs: Any):
    """Dispatch: CalGrid / two-column DataFrame -> uncalibrate_grid, numbers -> uncalibrate."""
    if isinstance(x, (CalGrid, pd.DataFrame)):
        return uncalibrate_grid(x, **kwargs)
    arr = np.asarray(x)
    if arr.dtype.kind in ("i", "u", "f") and arr.ndim <= 1:
        return uncalibrate(arr, **kwargs)
    raise UnsupportedInversionMode(f"Cannot uncalibrate input of type {type(x).__name__}.")


__all__ = ["UncalibratedAge", "uncalibrate", "uncalibrate_grid", "uncalibrate_input", "uncalibrate_point"]
