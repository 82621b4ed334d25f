"""Single-date forward calibration: likelihood models, eps floor, normalisation, windows."""

from __future__ import annotations

import numpy as np
import pytest

from radiocarbon_calib.calibrate import RawDate, calibrate_date, calibrate_input
from radiocarbon_calib.core.errors import (
    CurveRangeExceeded,
    DateOutOfCalibrationRange,
    InvalidParameterCombination,
)
from radiocarbon_calib.curves import load_curve
from tests.fakes.curves import identity_curve

WINDOW = (5000, 3000)


def _density_at(grid, year):
    hit = grid.cal_bp == year
    return float(grid.pr_dens[hit][0]) if hit.any() else 0.0


def test_normalised_grid_sums_to_one_and_is_non_negative():
    grid = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW)
    assert grid.pr_dens.sum() == pytest.approx(1.0, abs=1e-9)
    assert np.all(grid.pr_dens >= 0)


def test_identity_curve_peaks_at_measured_age_and_is_symmetric():
    grid = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW)
    peak = grid.cal_bp[np.argmax(grid.pr_dens)]
    assert peak == 4000
    for d in (10, 25, 50, 80):
        assert _density_at(grid, 4000 - d) == pytest.approx(_density_at(grid, 4000 + d), rel=1e-9)
        assert _density_at(grid, 4000 + d) < _density_at(grid, 4000)


def test_eps_floor_is_idempotent():
    eps = 1e-5
    grid = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, eps=eps, compact=False)
    dens = grid.pr_dens.copy()
    refloored = dens.copy()
    refloored[refloored < eps] = 0
    np.testing.assert_array_equal(dens, refloored)


def test_compact_drops_zero_years_only():
    full = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, compact=False)
    compact = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW)
    assert len(full) == 2001
    assert full.cal_bp[0] == 5000 and full.cal_bp[-1] == 3000
    assert len(compact) < len(full)
    assert np.all(compact.pr_dens > 0)
    np.testing.assert_allclose(full.compact().pr_dens, compact.pr_dens)


def test_unnormalised_density_is_normal_pdf():
    grid = calibrate_date(4000, 30, identity_curve(error=40), time_range=WINDOW, normalised=False)
    expected = 1.0 / np.sqrt(2 * np.pi * (30**2 + 40**2))
    assert _density_at(grid, 4000) == pytest.approx(expected, rel=1e-12)


def test_reservoir_offset_shifts_age():
    plain = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW)
    shifted = calibrate_date(4300, 30, identity_curve(), res_offset=300, time_range=WINDOW)
    np.testing.assert_array_equal(plain.cal_bp, shifted.cal_bp)
    np.testing.assert_allclose(plain.pr_dens, shifted.pr_dens)


def test_reservoir_error_adds_linearly():
    combined = calibrate_date(4000, 20, identity_curve(), res_error=10, time_range=WINDOW)
    direct = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW)
    np.testing.assert_allclose(combined.pr_dens, direct.pr_dens)


def test_f14c_mode_normalised_and_peaked():
    grid = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, f14c=True)
    assert grid.pr_dens.sum() == pytest.approx(1.0, abs=1e-9)
    assert grid.cal_bp[np.argmax(grid.pr_dens)] == 4000


def test_f14c_close_to_radiocarbon_space():
    c14 = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, compact=False)
    f14 = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, f14c=True, compact=False)
    assert np.abs(c14.pr_dens - f14.pr_dens).max() < 1e-3


def test_age_outside_curve_radiocarbon_range():
    with pytest.raises(CurveRangeExceeded):
        calibrate_date(6000, 30, identity_curve(), time_range=WINDOW)


def test_window_beyond_curve_fails():
    with pytest.raises(DateOutOfCalibrationRange):
        calibrate_date(4000, 30, identity_curve(), time_range=(6000, 3000))


def test_sub_window_is_restricted():
    grid = calibrate_date(4000, 30, identity_curve(), time_range=(4020, 3990), compact=False)
    np.testing.assert_array_equal(grid.cal_bp, np.arange(4020, 3989, -1))


def test_all_density_below_eps_fails():
    with pytest.raises(DateOutOfCalibrationRange):
        calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, eps=1.0)


def test_calibrate_input_raw_date():
    via_input = calibrate_input(RawDate(4100, 30, res_offset=100), identity_curve(), time_range=WINDOW)
    direct = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW)
    np.testing.assert_allclose(via_input.pr_dens, direct.pr_dens)


def test_normal_curve_default_window():
    grid = calibrate_date(4000, 30, "normal")
    assert grid.cal_bp[np.argmax(grid.pr_dens)] == 4000
    assert grid.pr_dens.sum() == pytest.approx(1.0)


def test_fractional_calendar_ages_use_integer_years_inside_curve():
    curve = identity_curve()
    curve["CALBP"] = curve["CALBP"] + 0.5
    curve["C14BP"] = curve["CALBP"]
    loaded = load_curve(curve)
    years = loaded.cal_grid()
    assert years[0] == 5000 and years[-1] == 3001
    grid = calibrate_date(4000, 30, curve, time_range=(4500, 3500))
    assert grid.pr_dens.sum() == pytest.approx(1.0)
    assert abs(int(grid.cal_bp[np.argmax(grid.pr_dens)]) - 4000) <= 1


def test_f14c_single_date_forces_normalisation_with_warning():
    with pytest.warns(InvalidParameterCombination):
        grid = calibrate_date(4000, 30, identity_curve(), time_range=WINDOW, f14c=True, normalised=False)
    assert grid.pr_dens.sum() == pytest.approx(1.0)
