"""Calibration curve loading, validation and interpolation."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from radiocarbon_calib.core.errors import (
    CurveDataUnavailable,
    CurveRangeExceeded,
    InvalidCurveFormat,
    UnknownCurveName,
)
from radiocarbon_calib.curves import (
    CalibrationCurve,
    clear_curve_cache,
    load_curve,
    normal_curve,
    read_14c_file,
)
from tests.fakes.curves import identity_curve, offset_curve, write_14c_file


def test_custom_table_sorted_descending():
    table = identity_curve(center=100, half_width=5).iloc[::-1]
    curve = load_curve(table)
    assert curve.name == "custom"
    assert curve.cal_bp[0] == 105 and curve.cal_bp[-1] == 95
    assert np.all(np.diff(curve.cal_bp) < 0)
    assert list(curve.to_frame().columns) == ["CALBP", "C14BP", "Error"]


def test_custom_table_accepts_array_and_rows():
    rows = [[10, 110, 5], [20, 120, 5], [30, 130, 6]]
    from_list = load_curve(rows)
    from_array = load_curve(np.array(rows, dtype=float))
    np.testing.assert_array_equal(from_list.cal_bp, [30, 20, 10])
    np.testing.assert_array_equal(from_list.error, from_array.error)


def test_custom_table_wrong_column_count():
    with pytest.raises(InvalidCurveFormat):
        load_curve(pd.DataFrame({"a": [1.0, 2.0], "b": [1.0, 2.0]}))
    with pytest.raises(InvalidCurveFormat):
        load_curve(np.ones((4, 4)))


def test_custom_table_non_numeric():
    df = pd.DataFrame({"CALBP": [1, 2], "C14BP": ["x", "y"], "Error": [1, 1]})
    with pytest.raises(InvalidCurveFormat):
        load_curve(df)


def test_custom_table_duplicate_calendar_ages():
    with pytest.raises(InvalidCurveFormat):
        load_curve([[10, 110, 5], [10, 111, 5], [20, 120, 5]])


def test_custom_table_negative_error():
    with pytest.raises(InvalidCurveFormat):
        load_curve([[10, 110, -5], [20, 120, 5]])


def test_unknown_curve_name():
    with pytest.raises(UnknownCurveName) as info:
        load_curve("intcal99")
    assert isinstance(info.value, KeyError)
    assert "intcal99" in str(info.value)


def test_normal_curve_is_identity():
    curve = load_curve("normal")
    assert curve.name == "normal"
    assert len(curve) == 50001
    np.testing.assert_array_equal(curve.c14_bp, curve.cal_bp)
    assert np.all(curve.error == 0)


def test_normal_curve_custom_range():
    curve = normal_curve(200, 100)
    assert curve.cal_range == (200.0, 100.0)


def test_builtin_curve_read_from_curve_dir(tmp_path):
    write_14c_file(tmp_path / "intcal13.14c", offset_curve(shift=50, error=12, lo=100, hi=200))
    try:
        curve = load_curve("intcal13", curve_dir=tmp_path)
        assert curve.name == "intcal13"
        assert len(curve) == 101
        assert curve.c14_range == (150.0, 250.0)
        np.testing.assert_allclose(curve.error, 12.0)
        # Cached: same object for the same name and directory.
        assert load_curve("intcal13", curve_dir=tmp_path) is curve
    finally:
        clear_curve_cache()


def test_builtin_curve_missing_file(tmp_path):
    try:
        with pytest.raises(CurveDataUnavailable):
            load_curve("shcal13", curve_dir=tmp_path)
    finally:
        clear_curve_cache()


def test_read_14c_file_uses_stem_as_name(tmp_path):
    path = write_14c_file(tmp_path / "mycurve.14c", identity_curve(center=50, half_width=10))
    assert read_14c_file(path).name == "mycurve"


def test_interpolation_is_piecewise_linear():
    curve = load_curve([[0, 100, 10], [10, 200, 20], [20, 150, 30]])
    np.testing.assert_allclose(curve.c14_at([5, 15]), [150.0, 175.0])
    np.testing.assert_allclose(curve.error_at(2.5), 12.5)


def test_interpolation_against_radiocarbon_axis():
    curve = load_curve(offset_curve(shift=-200, lo=3000, hi=3100))
    np.testing.assert_allclose(curve.interpolate(2850.5, column="cal", against="c14"), 3050.5)


def test_interpolation_out_of_range():
    curve = load_curve(identity_curve(center=100, half_width=5))
    with pytest.raises(CurveRangeExceeded):
        curve.c14_at(200)
    with pytest.raises(CurveRangeExceeded):
        curve.check_covers_c14([96, 120])


def test_curve_arrays_are_read_only():
    curve = load_curve(identity_curve(center=100, half_width=5))
    with pytest.raises(ValueError):
        curve.c14_bp[0] = 1.0


def test_curve_passthrough():
    curve = CalibrationCurve.from_table(identity_curve(center=100, half_width=5), name="site")
    assert load_curve(curve) is curve
