"""BP <-> BC/AD conversion (no year zero)."""

from __future__ import annotations

import numpy as np
import pytest

from radiocarbon_calib.timeutils import bcad_to_bp, bp_to_bcad


def test_bp_to_bcad_scalars():
    assert bp_to_bcad(0) == 1950
    assert bp_to_bcad(1949) == 1
    assert bp_to_bcad(1950) == -1
    assert bp_to_bcad(4000) == -2051


def test_round_trip_arrays():
    bp = np.array([0, 500, 1949, 1950, 4000])
    np.testing.assert_array_equal(bcad_to_bp(bp_to_bcad(bp)), bp)


def test_year_zero_rejected():
    with pytest.raises(ValueError):
        bcad_to_bp(0)
