"""
Forward calibration: radiocarbon age (+ error) -> probability density over calendar years BP.

Method of Bronk Ramsey (2008): for every integer calendar year of the curve the
measured age is compared with the interpolated curve age under a normal
likelihood whose variance is measurement variance plus curve variance. F14C
mode evaluates the same comparison in fraction-modern space.

The batch driver validates every input before computing anything, then runs one
pure calibration per date (serially or on a thread pool) and assembles a CalDates.
"""

from __future__ import annotations

import logging
import os
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.stats import norm

from . import config
from .caldates import METADATA_COLUMNS, CalDates
from .core.errors import (
    DateOutOfCalibrationRange,
    DegradedExecution,
    DuplicateIdentifier,
    InputLengthMismatch,
    InvalidCurveFormat,
    InvalidParameterCombination,
    InvalidParameterError,
    MissingValue,
    UnsupportedInversionMode,
)
from .core.types import ArrayLike, ProgressReporter
from .curves import CUSTOM_CURVE_NAME, CalibrationCurve, is_curve_table, load_curve
from .grids import CalGrid, UncalGrid

logger = logging.getLogger(__name__)

# Mean life of radiocarbon on the Libby half-life, used for F14C conversion.
F14C_SCALE = 8033.0

Strategy = Literal["fast", "full"]


@dataclass(frozen=True)
class RawDate:
    """A single measured radiocarbon age and its one-sigma error."""

    age: float
    error: float
    res_offset: float = 0.0
    res_error: float = 0.0


CalibrationInput = Union[RawDate, UncalGrid]


def _resolve_time_range(time_range: Optional[Sequence[float]]) -> Tuple[int, int]:
    if time_range is None:
        return config.default_time_range()
    if len(time_range) != 2:
        raise InvalidParameterError("time_range must be (StartBP, EndBP).")
    start, end = int(time_range[0]), int(time_range[1])
    if start < end:
        raise InvalidParameterError(f"time_range StartBP ({start}) must not be younger than EndBP ({end}).")
    return start, end


def _floor(dens: np.ndarray, eps: float) -> np.ndarray:
    out = dens.copy()
    out[out < eps] = 0.0
    return out


def _force_f14c_normalised(f14c: bool, normalised: bool) -> bool:
    """F14C densities are only meaningful normalised; warn and switch on normalisation."""
    if f14c and not normalised:
        warnings.warn(
            "normalised cannot be False when F14C is set to True, calibrating with normalised=True",
            InvalidParameterCombination,
            stacklevel=3,
        )
        return True
    return normalised


def _density_c14(age: float, error: float, curve: CalibrationCurve, cal_bp: np.ndarray) -> np.ndarray:
    mu = curve.c14_at(cal_bp)
    tau = error**2 + curve.error_at(cal_bp) ** 2
    return norm.pdf(age, loc=mu, scale=np.sqrt(tau))


def _density_f14c(age: float, error: float, curve: CalibrationCurve, cal_bp: np.ndarray) -> np.ndarray:
    f14 = np.exp(curve.c14_bp / -F14C_SCALE)
    f14_err = f14 * curve.error / F14C_SCALE
    xp = curve.cal_bp[::-1]
    cal_f14 = np.interp(cal_bp, xp, f14[::-1])
    cal_f14_err = np.interp(cal_bp, xp, f14_err[::-1])
    f14_age = np.exp(age / -F14C_SCALE)
    f14_age_err = f14_age * error / F14C_SCALE
    var = f14_age_err**2 + cal_f14_err**2
    return np.exp(-((f14_age - cal_f14) ** 2) / (2 * var)) / np.sqrt(var)


def calibrate_date(
    age: float,
    error: float,
    curve: Any = None,
    res_offset: float = 0.0,
    res_error: float = 0.0,
    time_range: Optional[Sequence[float]] = None,
    normalised: bool = True,
    f14c: bool = False,
    eps: Optional[float] = None,
    compact: bool = True,
) -> CalGrid:
    """
    Calibrate one radiocarbon age against a curve.

    The reservoir offset is subtracted from the age and its error is added
    linearly to the measurement error. Densities below eps are zeroed; when
    normalised the grid is rescaled to sum to 1, floored again and rescaled
    again. The result covers time_range (StartBP, EndBP), which must lie
    inside the curve's calendar range, else DateOutOfCalibrationRange.
    f14c=True always normalises (InvalidParameterCombination warning if asked not to).
    """
    normalised = _force_f14c_normalised(f14c, normalised)
    curve = load_curve(curve if curve is not None else config.default_curve())
    start, end = _resolve_time_range(time_range)
    eps = config.default_eps() if eps is None else float(eps)
    eff_age = float(age) - float(res_offset)
    eff_error = float(error) + float(res_error)
    curve.check_covers_c14(eff_age)

    cal_bp = curve.cal_grid()
    if f14c:
        dens = _density_f14c(eff_age, eff_error, curve, cal_bp)
    else:
        dens = _density_c14(eff_age, eff_error, curve, cal_bp)
    dens = _floor(dens, eps)
    if normalised:
        total = dens.sum()
        if not total > 0:
            raise DateOutOfCalibrationRange(
                f"Age {age}±{error} has no density above eps={eps:g} on the {curve.name} curve."
            )
        dens = _floor(dens / total, eps)
        dens = dens / dens.sum()

    years = np.arange(start, end - 1, -1, dtype=np.int64)
    rows = cal_bp[0] - years
    inside = (rows >= 0) & (rows < cal_bp.size)
    window = np.full(years.size, np.nan)
    window[inside] = dens[rows[inside]]
    if np.isnan(window).any():
        raise DateOutOfCalibrationRange(
            f"One or more dates are outside the calibration range: {curve.name} curve covers "
            f"{int(cal_bp[0])}-{int(cal_bp[-1])} cal BP, requested {start}-{end}."
        )
    grid = CalGrid(years, window)
    return grid.compact() if compact else grid


def _as_column(values: Any, n: int, name: str) -> np.ndarray:
    arr = np.atleast_1d(np.asarray(values, dtype=float))
    if arr.size == 1 and n != 1:
        arr = np.repeat(arr, n)
    if arr.size != n:
        raise InputLengthMismatch(
            f"Ages and errors (and ids/date details/offsets if provided) must be the same length ({name})."
        )
    return arr


def _resolve_curves(cal_curves: Any, n: int) -> Tuple[List[str], Dict[str, CalibrationCurve]]:
    """Per-date curve labels plus the loaded curve for each label."""
    if cal_curves is None:
        cal_curves = config.default_curve()
    if is_curve_table(cal_curves):
        curve = load_curve(cal_curves)
        label = curve.name if isinstance(cal_curves, CalibrationCurve) else CUSTOM_CURVE_NAME
        return [label] * n, {label: curve}
    if isinstance(cal_curves, str):
        names = [cal_curves] * n
    else:
        names = list(cal_curves)
        if any(not isinstance(c, str) for c in names):
            raise InvalidCurveFormat(
                "Only one custom calibration curve can be provided for all dates; "
                "per-date curves must be curve names."
            )
        if len(names) == 1:
            names = names * n
        if len(names) != n:
            raise InputLengthMismatch("calCurves must be a single curve or one curve name per date.")
    curves = {name: load_curve(name) for name in dict.fromkeys(names)}
    return names, curves


def _resolve_ids(ids: Optional[Sequence[Any]], n: int) -> List[str]:
    if ids is None:
        return [str(i) for i in range(1, n + 1)]
    out = [str(x) for x in np.atleast_1d(np.asarray(ids, dtype=object))]
    if len(out) != n:
        raise InputLengthMismatch("Ages and errors (and ids/details/offsets if provided) must be the same length.")
    if len(set(out)) != n:
        raise DuplicateIdentifier("The values in the ids argument must be unique or left as defaults.")
    return out


def _resolve_details(date_details: Any, n: int) -> List[Any]:
    if date_details is None or isinstance(date_details, str) or np.ndim(date_details) == 0:
        return [date_details] * n
    out = list(date_details)
    if len(out) != n:
        raise InputLengthMismatch("Date details must be a single value or one per date.")
    return out


def _resolve_ncores(ncores: int) -> int:
    if ncores < 1:
        warnings.warn(f"ncores={ncores} is not valid; running on 1 worker", DegradedExecution, stacklevel=3)
        return 1
    available = os.cpu_count() or 1
    if ncores > available:
        warnings.warn(
            f"ncores={ncores} exceeds the {available} available CPUs; ncores has been set to {available}",
            DegradedExecution,
            stacklevel=3,
        )
        return available
    return int(ncores)


def calibrate(
    ages: ArrayLike,
    errors: ArrayLike,
    ids: Optional[Sequence[Any]] = None,
    date_details: Any = None,
    cal_curves: Any = None,
    res_offsets: ArrayLike = 0.0,
    res_errors: ArrayLike = 0.0,
    time_range: Optional[Sequence[float]] = None,
    normalised: bool = True,
    f14c: bool = False,
    cal_matrix: bool = False,
    eps: Optional[float] = None,
    ncores: int = 1,
    progress: Optional[ProgressReporter] = None,
) -> CalDates:
    """
    Calibrate one or more radiocarbon dates.

    cal_curves: a curve name, one name per date, or a single custom three-column
    table / CalibrationCurve shared by every date. res_offsets/res_errors are
    scalars or per-date. cal_matrix=True stores a dense year x date matrix over
    time_range instead of per-date grids. Dates are independent; ncores > 1
    spreads them over a thread pool. progress(done, total) is called after each date.
    All validation happens before any date is calibrated; a failure on any date
    aborts the batch.
    """
    ages_arr = np.atleast_1d(np.asarray(ages, dtype=float))
    errors_arr = np.atleast_1d(np.asarray(errors, dtype=float))
    n = ages_arr.size
    if errors_arr.size != n:
        raise InputLengthMismatch("Ages and errors (and ids/date details/offsets if provided) must be the same length.")
    if n == 0:
        raise InputLengthMismatch("At least one age is required.")
    if np.isnan(ages_arr).any() or np.isnan(errors_arr).any():
        raise MissingValue("Ages or errors contain NAs")
    id_list = _resolve_ids(ids, n)
    details = _resolve_details(date_details, n)
    offsets = _as_column(res_offsets, n, "resOffsets")
    off_errors = _as_column(res_errors, n, "resErrors")
    if np.isnan(offsets).any() or np.isnan(off_errors).any():
        raise MissingValue("Reservoir offsets or offset errors contain NAs")
    normalised = _force_f14c_normalised(f14c, normalised)
    start, end = _resolve_time_range(time_range)
    eps = config.default_eps() if eps is None else float(eps)
    ncores = _resolve_ncores(ncores)
    curve_names, curves = _resolve_curves(cal_curves, n)
    names_arr = np.asarray(curve_names, dtype=object)
    for label, curve in curves.items():
        curve.check_covers_c14((ages_arr - offsets)[names_arr == label])

    def _one(b: int) -> CalGrid:
        return calibrate_date(
            ages_arr[b],
            errors_arr[b],
            curves[curve_names[b]],
            res_offset=offsets[b],
            res_error=off_errors[b],
            time_range=(start, end),
            normalised=normalised,
            f14c=f14c,
            eps=eps,
            compact=True,
        )

    logger.info("calibrating %d radiocarbon age(s) on %d worker(s)", n, ncores)
    results: List[Optional[CalGrid]] = [None] * n
    done = 0
    if ncores == 1:
        for b in range(n):
            results[b] = _one(b)
            done += 1
            if progress is not None:
                progress(done, n)
    else:
        with ThreadPoolExecutor(max_workers=ncores) as pool:
            futures = {pool.submit(_one, b): b for b in range(n)}
            try:
                for fut in as_completed(futures):
                    results[futures[fut]] = fut.result()
                    done += 1
                    if progress is not None:
                        progress(done, n)
            except BaseException:
                for f in futures:
                    f.cancel()
                raise

    metadata = pd.DataFrame(
        {
            "DateID": id_list,
            "CRA": ages_arr,
            "Error": errors_arr,
            "Details": details,
            "CalCurve": curve_names,
            "ResOffsets": offsets,
            "ResErrors": off_errors,
            "StartBP": start,
            "EndBP": end,
            "Normalised": normalised,
            "F14C": f14c,
            "CalEPS": eps,
        },
        columns=METADATA_COLUMNS,
    )
    if cal_matrix:
        years = np.arange(start, end - 1, -1, dtype=np.int64)
        mat = np.zeros((years.size, n))
        for col, grid in enumerate(results):
            mat[start - grid.cal_bp, col] = grid.pr_dens
        out = CalDates(
            metadata=metadata,
            cal_matrix=pd.DataFrame(mat, index=pd.Index(years, name="calBP"), columns=id_list),
        )
    else:
        out = CalDates(metadata=metadata, grids=dict(zip(id_list, results)))
    logger.info("calibration done (%s storage)", out.storage)
    return out


def calibrate_uncal_grid(
    uncal: UncalGrid,
    cal_curves: Any = None,
    errors: ArrayLike = 0.0,
    strategy: Strategy = "fast",
    time_range: Optional[Sequence[float]] = None,
    compact: bool = True,
    eps: Optional[float] = None,
    date_normalised: bool = False,
    spd_normalised: bool = False,
) -> CalGrid:
    """
    Map a density over radiocarbon ages back onto calendar years.

    "fast": each calendar year takes the density of its rounded curve age.
    "full": every radiocarbon age with non-zero density is calibrated (with
    `errors`) and the calendar grids are summed, weighted by that density.
    """
    curve = load_curve(cal_curves if cal_curves is not None else config.default_curve())
    start, end = _resolve_time_range(time_range)
    eps = config.default_eps() if eps is None else float(eps)
    cal_bp = curve.cal_grid()
    if strategy == "fast":
        if date_normalised:
            warnings.warn(
                "Cannot normalise dates using fast method, so leaving unnormalised.",
                InvalidParameterCombination,
                stacklevel=2,
            )
        cra = np.round(curve.c14_at(cal_bp)).astype(np.int64)
        lookup = pd.Series(uncal.pr_dens, index=uncal.cra)
        dens = lookup.reindex(cra).fillna(0.0).to_numpy()
    elif strategy == "full":
        errs = _as_column(errors, len(uncal), "errors")
        full_range = (int(cal_bp[0]), int(cal_bp[-1]))
        dens = np.zeros(cal_bp.size)
        for k, w, e in zip(uncal.cra, uncal.pr_dens, errs):
            if w <= 0:
                continue
            grid = calibrate_date(
                k, e, curve, time_range=full_range, normalised=date_normalised, eps=eps, compact=False
            )
            dens += w * grid.pr_dens
    else:
        raise UnsupportedInversionMode(f"Type must be 'full' or 'fast', got {strategy!r}.")

    keep = (cal_bp <= start) & (cal_bp >= end)
    years, dens = cal_bp[keep], _floor(dens[keep], eps)
    if spd_normalised and dens.sum() > 0:
        dens = dens / dens.sum()
    grid = CalGrid(years, dens)
    return grid.compact() if compact else grid


def calibrate_input(
    x: CalibrationInput,
    cal_curves: Any = None,
    strategy: Strategy = "fast",
    **kwargs: Any,
) -> CalGrid:
    """Calibrate either a single RawDate or an UncalGrid (with the given strategy)."""
    if isinstance(x, RawDate):
        return calibrate_date(
            x.age, x.error, cal_curves, res_offset=x.res_offset, res_error=x.res_error, **kwargs
        )
    if isinstance(x, UncalGrid):
        return calibrate_uncal_grid(x, cal_curves, strategy=strategy, **kwargs)
    raise UnsupportedInversionMode(f"Cannot calibrate input of type {type(x).__name__}.")


__all__ = [
    "F14C_SCALE",
    "CalibrationInput",
    "RawDate",
    "Strategy",
    "calibrate",
    "calibrate_date",
    "calibrate_input",
    "calibrate_uncal_grid",
]
