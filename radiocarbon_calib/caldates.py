"""
CalDates: container for a batch of calibrated dates.

One metadata row per date (input order) plus exactly one storage mode:
- grids: DateID -> CalGrid, compacted to non-zero years (memory efficient)
- cal_matrix: dense DataFrame, one row per calendar year of the requested window
  (StartBP..EndBP, descending) and one column per DateID (fast aggregation)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Literal, Optional

import numpy as np
import pandas as pd

from .core.errors import DuplicateIdentifier, InputLengthMismatch, InvalidParameterError
from .grids import CalGrid

METADATA_COLUMNS = [
    "DateID",
    "CRA",
    "Error",
    "Details",
    "CalCurve",
    "ResOffsets",
    "ResErrors",
    "StartBP",
    "EndBP",
    "Normalised",
    "F14C",
    "CalEPS",
]

StorageMode = Literal["grids", "matrix"]


@dataclass(frozen=True, eq=False)
class CalDates:
    """Calibrated dates: metadata plus either sparse grids or a dense calendar-year matrix."""

    metadata: pd.DataFrame
    grids: Optional[Dict[str, CalGrid]] = None
    cal_matrix: Optional[pd.DataFrame] = None

    def __post_init__(self) -> None:
        if (self.grids is None) == (self.cal_matrix is None):
            raise InvalidParameterError("CalDates needs exactly one of grids or cal_matrix.")
        n = len(self.metadata)
        stored = len(self.grids) if self.grids is not None else self.cal_matrix.shape[1]
        if stored != n:
            raise InputLengthMismatch(f"CalDates has {n} metadata rows but {stored} stored dates.")

    def __len__(self) -> int:
        return len(self.metadata)

    @property
    def storage(self) -> StorageMode:
        return "grids" if self.grids is not None else "matrix"

    @property
    def date_ids(self) -> List[str]:
        return [str(x) for x in self.metadata["DateID"]]

    def grid(self, key: Any, compact: bool = False) -> CalGrid:
        """
        CalGrid for one date by position or DateID.
        Matrix storage yields the full window column unless compact=True.
        """
        pos = int(self._positions(key)[0])
        date_id = self.date_ids[pos]
        if self.grids is not None:
            g = self.grids[date_id]
        else:
            col = self.cal_matrix.iloc[:, pos]
            g = CalGrid(col.index.to_numpy(), col.to_numpy())
        return g.compact() if compact else g

    def iter_grids(self, compact: bool = False) -> Iterator[CalGrid]:
        for i in range(len(self)):
            yield self.grid(i, compact=compact)

    def to_matrix(self) -> pd.DataFrame:
        """Dense year x date matrix over the stored time window (zeros where a grid has no entry)."""
        if self.cal_matrix is not None:
            return self.cal_matrix
        start = int(self.metadata["StartBP"].max())
        end = int(self.metadata["EndBP"].min())
        years = np.arange(start, end - 1, -1, dtype=np.int64)
        mat = np.zeros((years.size, len(self)))
        for col, g in enumerate(self.iter_grids()):
            rows = start - g.cal_bp
            ok = (rows >= 0) & (rows < years.size)
            mat[rows[ok], col] = g.pr_dens[ok]
        return pd.DataFrame(mat, index=pd.Index(years, name="calBP"), columns=self.date_ids)

    def _positions(self, key: Any) -> np.ndarray:
        n = len(self)
        if isinstance(key, slice):
            return np.arange(n)[key]
        if isinstance(key, (str, int, np.integer)):
            key = [key]
        arr = np.asarray(key)
        if arr.size == 0:
            return np.array([], dtype=int)
        if arr.dtype == bool:
            if arr.size != n:
                raise InputLengthMismatch(f"Boolean selector has length {arr.size}, expected {n}.")
            return np.flatnonzero(arr)
        if np.issubdtype(arr.dtype, np.integer):
            if arr.min() < -n or arr.max() >= n:
                raise IndexError(f"Date position out of range for {n} dates.")
            return np.where(arr < 0, arr + n, arr)
        if arr.dtype.kind in ("U", "S", "O"):
            lookup = {d: i for i, d in enumerate(self.date_ids)}
            missing = [str(k) for k in arr if str(k) not in lookup]
            if missing:
                raise KeyError(f"Unknown DateID(s): {', '.join(missing)}")
            return np.array([lookup[str(k)] for k in arr], dtype=int)
        raise TypeError("Selector must be integer positions, DateIDs or a boolean mask.")

    def subset(self, key: Any) -> "CalDates":
        """New CalDates with the selected dates (positions, DateIDs, boolean mask or slice), each at most once."""
        if len(self) == 0:
            raise InvalidParameterError("No data to extract")
        pos = self._positions(key)
        if np.unique(pos).size != pos.size:
            raise DuplicateIdentifier("Selector repeats a date; each date can be selected once.")
        meta = self.metadata.iloc[pos].reset_index(drop=True)
        if self.grids is not None:
            ids = self.date_ids
            return CalDates(metadata=meta, grids={ids[i]: self.grids[ids[i]] for i in pos})
        return CalDates(metadata=meta, cal_matrix=self.cal_matrix.iloc[:, pos].copy())

    def __getitem__(self, key: Any) -> "CalDates":
        return self.subset(key)


__all__ = ["CalDates", "METADATA_COLUMNS", "StorageMode"]
