"""Synthetic calibration curves for tests (no bundled .14c data needed)."""

from .curves import (
    identity_curve,
    offset_curve,
    v_shaped_curve,
    write_14c_file,
)

__all__ = [
    "identity_curve",
    "offset_curve",
    "v_shaped_curve",
    "write_14c_file",
]
