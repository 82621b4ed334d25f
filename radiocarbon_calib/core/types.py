"""
Shared typing aliases and Protocols for radiocarbon_calib.
Stable surface; no runtime behavior. Extend with new Protocols/TypeAlias only.
"""

from __future__ import annotations

from typing import Protocol, Sequence, Union

import numpy as np

# Scalar or per-date numeric input accepted by the batch driver.
ArrayLike = Union[float, int, Sequence[float], np.ndarray]


class ProgressReporter(Protocol):
    """Callback receiving (completed, total) after each date of a batch finishes."""

    def __call__(self, done: int, total: int) -> None: ...


__all__ = ["ArrayLike", "ProgressReporter"]
