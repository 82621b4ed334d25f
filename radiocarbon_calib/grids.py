"""
Per-date probability grids.

CalGrid: density per integer calendar year BP (descending).
UncalGrid: density per integer radiocarbon age BP (descending).
Both are frozen; arrays are read-only once built.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from .core.errors import InvalidParameterError


def _frozen(values: Any, dtype: Any) -> np.ndarray:
    arr = np.array(values, dtype=dtype).reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class CalGrid:
    """Probability density over calendar years BP for one date (or an aggregate)."""

    cal_bp: np.ndarray
    pr_dens: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "cal_bp", _frozen(self.cal_bp, np.int64))
        object.__setattr__(self, "pr_dens", _frozen(self.pr_dens, float))
        if self.cal_bp.size != self.pr_dens.size:
            raise InvalidParameterError("calBP and PrDens must be the same length.")

    def __len__(self) -> int:
        return int(self.cal_bp.size)

    @property
    def total(self) -> float:
        return float(self.pr_dens.sum())

    def compact(self) -> "CalGrid":
        """Drop years with zero density."""
        keep = self.pr_dens > 0
        return CalGrid(self.cal_bp[keep], self.pr_dens[keep])

    def to_series(self) -> pd.Series:
        return pd.Series(self.pr_dens, index=pd.Index(self.cal_bp, name="calBP"), name="PrDens")

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"calBP": self.cal_bp, "PrDens": self.pr_dens})


@dataclass(frozen=True, eq=False)
class UncalGrid:
    """
    Probability density over radiocarbon ages BP.
    raw/base keep the weighted and reference sums from grid uncalibration when available.
    """

    cra: np.ndarray
    pr_dens: np.ndarray
    raw: Optional[np.ndarray] = None
    base: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "cra", _frozen(self.cra, np.int64))
        object.__setattr__(self, "pr_dens", _frozen(self.pr_dens, float))
        for extra in ("raw", "base"):
            v = getattr(self, extra)
            if v is not None:
                object.__setattr__(self, extra, _frozen(v, float))
                if getattr(self, extra).size != self.cra.size:
                    raise InvalidParameterError(f"{extra} must match CRA length.")
        if self.cra.size != self.pr_dens.size:
            raise InvalidParameterError("CRA and PrDens must be the same length.")

    def __len__(self) -> int:
        return int(self.cra.size)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame({"CRA": self.cra, "PrDens": self.pr_dens})
        if self.raw is not None:
            df["Raw"] = self.raw
        if self.base is not None:
            df["Base"] = self.base
        return df


def as_cal_grid(x: Any) -> CalGrid:
    """
    Coerce a two-column table (calBP, PrDens) into a CalGrid.
    Accepts a CalGrid, a pandas DataFrame/Series (index = calBP) or an (n, 2) array.
    """
    if isinstance(x, CalGrid):
        return x
    if isinstance(x, pd.Series):
        return CalGrid(x.index.to_numpy(), x.to_numpy())
    if isinstance(x, pd.DataFrame):
        if x.shape[1] != 2:
            raise InvalidParameterError("Input must be 2 columns.")
        return CalGrid(x.iloc[:, 0].to_numpy(), x.iloc[:, 1].to_numpy())
    arr = np.asarray(x)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidParameterError("Input must be 2 columns.")
    return CalGrid(arr[:, 0], arr[:, 1])


__all__ = ["CalGrid", "UncalGrid", "as_cal_grid"]
