"""
Calibration curves: immutable (CALBP, C14BP, Error) tables with piecewise-linear lookup.

Built-in curves are identified by name and read from `<curve_dir>/<name>.14c`
(comma separated, `#` comments, first three columns used). The "normal" curve
is synthesized: an identity mapping with zero error, i.e. no calibration.
Custom curves are any three-column numeric table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional, Union

import numpy as np
import pandas as pd

from . import config
from .core.errors import (
    CurveDataUnavailable,
    CurveRangeExceeded,
    InvalidCurveFormat,
    UnknownCurveName,
)

logger = logging.getLogger(__name__)

KNOWN_CURVES = ("intcal13", "shcal13", "marine13", "intcal13nhpine16", "shcal13shkauri16", "normal")
CURVE_COLUMNS = ("CALBP", "C14BP", "Error")
CUSTOM_CURVE_NAME = "custom"

CurveColumn = Literal["c14", "error", "cal"]
CurveAxis = Literal["cal", "c14"]


def _readonly(values: Any) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class CalibrationCurve:
    """
    One calibration curve, sorted by calendar age descending.
    Arrays are read-only so a curve can be shared across worker threads.
    """

    cal_bp: np.ndarray
    c14_bp: np.ndarray
    error: np.ndarray
    name: str = CUSTOM_CURVE_NAME

    def __post_init__(self) -> None:
        object.__setattr__(self, "cal_bp", _readonly(self.cal_bp))
        object.__setattr__(self, "c14_bp", _readonly(self.c14_bp))
        object.__setattr__(self, "error", _readonly(self.error))

    def __len__(self) -> int:
        return int(self.cal_bp.size)

    @classmethod
    def from_table(cls, table: Any, name: str = CUSTOM_CURVE_NAME) -> "CalibrationCurve":
        """Validate a three-column numeric table and build a curve sorted by CALBP descending."""
        values = _table_to_array(table)
        if values.shape[0] < 2:
            raise InvalidCurveFormat("A calibration curve needs at least two rows.")
        if not np.all(np.isfinite(values)):
            raise InvalidCurveFormat("The calibration curve contains missing or non-finite values.")
        if np.any(values[:, 2] < 0):
            raise InvalidCurveFormat("Calibration curve errors must be non-negative.")
        order = np.argsort(-values[:, 0], kind="stable")
        values = values[order]
        if np.any(np.diff(values[:, 0]) == 0):
            raise InvalidCurveFormat("The calibration curve has duplicate calendar ages.")
        return cls(cal_bp=values[:, 0], c14_bp=values[:, 1], error=values[:, 2], name=name)

    @property
    def cal_range(self) -> tuple[float, float]:
        """(oldest, youngest) calendar age BP covered."""
        return float(self.cal_bp[0]), float(self.cal_bp[-1])

    @property
    def c14_range(self) -> tuple[float, float]:
        """(min, max) radiocarbon age BP covered."""
        return float(self.c14_bp.min()), float(self.c14_bp.max())

    def cal_grid(self) -> np.ndarray:
        """Integer calendar years inside the curve, oldest first, step -1."""
        return np.arange(np.floor(np.max(self.cal_bp)), np.ceil(np.min(self.cal_bp)) - 1, -1).astype(np.int64)

    def interpolate(self, x: Any, column: CurveColumn = "c14", against: CurveAxis = "cal") -> np.ndarray:
        """
        Piecewise-linear lookup of `column` at positions `x` on the `against` axis.
        No extrapolation: any finite x outside the axis domain raises CurveRangeExceeded.
        Against "c14" the curve is ordered by radiocarbon age first, which is only
        meaningful where the curve is monotonic.
        """
        xs = np.asarray(x, dtype=float)
        if against == "cal":
            axis = self.cal_bp
        elif against == "c14":
            axis = self.c14_bp
        else:
            raise ValueError(f"against must be 'cal' or 'c14', got {against!r}")
        if column == "c14":
            values = self.c14_bp
        elif column == "error":
            values = self.error
        elif column == "cal":
            values = self.cal_bp
        else:
            raise ValueError(f"column must be 'c14', 'error' or 'cal', got {column!r}")
        lo, hi = float(axis.min()), float(axis.max())
        finite = xs[np.isfinite(xs)]
        if finite.size and (finite.min() < lo or finite.max() > hi):
            raise CurveRangeExceeded(
                f"Requested age(s) outside the {self.name} curve domain [{lo:g}, {hi:g}] ({against} axis)."
            )
        order = np.argsort(axis, kind="stable")
        return np.interp(xs, axis[order], values[order])

    def c14_at(self, cal_bp: Any) -> np.ndarray:
        return self.interpolate(cal_bp, column="c14", against="cal")

    def error_at(self, cal_bp: Any) -> np.ndarray:
        return self.interpolate(cal_bp, column="error", against="cal")

    def check_covers_c14(self, ages: Any) -> None:
        """Raise CurveRangeExceeded unless every radiocarbon age lies within the curve's C14 range."""
        a = np.asarray(ages, dtype=float)
        lo, hi = self.c14_range
        if a.size and (np.nanmax(a) > hi or np.nanmin(a) < lo):
            raise CurveRangeExceeded(
                f"The {self.name} calibration curve ({lo:g}-{hi:g} 14C BP) does not cover the input age range."
            )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(dict(zip(CURVE_COLUMNS, (self.cal_bp, self.c14_bp, self.error))))


def _table_to_array(table: Any) -> np.ndarray:
    if isinstance(table, pd.DataFrame):
        if table.shape[1] != 3 or not all(pd.api.types.is_numeric_dtype(t) for t in table.dtypes):
            raise InvalidCurveFormat("The custom calibration curve must have just three numeric columns.")
        return table.to_numpy(dtype=float)
    try:
        arr = np.asarray(table)
    except ValueError as exc:
        raise InvalidCurveFormat(f"Cannot read calibration curve table: {exc}") from exc
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidCurveFormat("The custom calibration curve must have just three numeric columns.")
    if arr.dtype == bool or not np.issubdtype(arr.dtype, np.number):
        raise InvalidCurveFormat("The custom calibration curve must have just three numeric columns.")
    return arr.astype(float)


def is_curve_table(obj: Any) -> bool:
    """True when obj is a table-like custom curve rather than a curve name."""
    if isinstance(obj, (CalibrationCurve, pd.DataFrame, np.ndarray)):
        return isinstance(obj, CalibrationCurve) or np.ndim(obj) == 2
    if isinstance(obj, (list, tuple)) and obj and isinstance(obj[0], (list, tuple, np.ndarray)):
        return True
    return False


def read_14c_file(path: Union[str, Path], name: Optional[str] = None) -> CalibrationCurve:
    """Read a .14c curve file: comma separated, '#' comments, first three columns used."""
    p = Path(path)
    if not p.exists():
        raise CurveDataUnavailable(f"Calibration curve file not found: {p}")
    df = pd.read_csv(
        p,
        comment="#",
        header=None,
        skipinitialspace=True,
        encoding="utf-8",
        skip_blank_lines=True,
    )
    if df.shape[1] < 3:
        raise InvalidCurveFormat(f"{p.name}: expected at least three columns, found {df.shape[1]}")
    df = df.iloc[:, :3].apply(pd.to_numeric, errors="coerce").dropna()
    logger.debug("read %d curve rows from %s", len(df), p)
    return CalibrationCurve.from_table(df, name=name or p.stem)


def normal_curve(start_bp: Optional[int] = None, end_bp: Optional[int] = None) -> CalibrationCurve:
    """Identity curve (C14BP == CALBP, zero error): calibration with no curve."""
    if start_bp is None or end_bp is None:
        start_bp, end_bp = config.normal_curve_range()
    cal = np.arange(max(start_bp, end_bp), min(start_bp, end_bp) - 1, -1, dtype=float)
    return CalibrationCurve(cal_bp=cal, c14_bp=cal.copy(), error=np.zeros_like(cal), name="normal")


@lru_cache(maxsize=16)
def _load_builtin(name: str, curve_dir: str) -> CalibrationCurve:
    if name == "normal":
        return normal_curve()
    return read_14c_file(Path(curve_dir) / f"{name}.14c", name=name)


def load_curve(
    name_or_table: Any,
    curve_dir: Optional[Union[str, Path]] = None,
) -> CalibrationCurve:
    """
    Resolve a curve name, a custom three-column table or an existing curve into a CalibrationCurve.
    Unknown names raise UnknownCurveName; malformed tables raise InvalidCurveFormat.
    """
    if isinstance(name_or_table, CalibrationCurve):
        return name_or_table
    if isinstance(name_or_table, str):
        if name_or_table not in KNOWN_CURVES:
            raise UnknownCurveName(
                f"Unknown calibration curve {name_or_table!r}; expected one of {', '.join(KNOWN_CURVES)} "
                "or a custom three-column table."
            )
        d = Path(curve_dir) if curve_dir is not None else config.curve_dir()
        return _load_builtin(name_or_table, str(d))
    if is_curve_table(name_or_table):
        return CalibrationCurve.from_table(name_or_table)
    raise InvalidCurveFormat(
        f"Calibration curve must be a curve name or a three-column table, got {type(name_or_table).__name__}."
    )


def clear_curve_cache() -> None:
    """Drop cached built-in curves (e.g. after changing RCARBON_CURVE_DIR)."""
    _load_builtin.cache_clear()


__all__ = [
    "CURVE_COLUMNS",
    "CUSTOM_CURVE_NAME",
    "KNOWN_CURVES",
    "CalibrationCurve",
    "clear_curve_cache",
    "is_curve_table",
    "load_curve",
    "normal_curve",
    "read_14c_file",
]
