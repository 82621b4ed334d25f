"""CalDates container: storage invariants, subsetting by position, id and mask."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from radiocarbon_calib import CalDates, calibrate
from radiocarbon_calib.caldates import METADATA_COLUMNS
from radiocarbon_calib.core.errors import DuplicateIdentifier, InputLengthMismatch, InvalidParameterError
from radiocarbon_calib.grids import CalGrid, as_cal_grid
from tests.fakes.curves import identity_curve

WINDOW = (5000, 3000)


def _batch(cal_matrix: bool) -> CalDates:
    return calibrate(
        [3600, 3800, 4000, 4200],
        [30, 30, 30, 30],
        ids=["w", "x", "y", "z"],
        cal_curves=identity_curve(),
        time_range=WINDOW,
        cal_matrix=cal_matrix,
    )


@pytest.mark.parametrize("cal_matrix", [False, True])
def test_subset_by_positions_ids_and_mask(cal_matrix):
    x = _batch(cal_matrix)
    by_pos = x[[1, 3]]
    by_id = x[["x", "z"]]
    by_mask = x[np.array([False, True, False, True])]
    for sub in (by_pos, by_id, by_mask):
        assert len(sub) == 2
        assert sub.date_ids == ["x", "z"]
        assert list(sub.metadata.index) == [0, 1]
        assert sub.storage == x.storage
    pd.testing.assert_frame_equal(by_pos.to_matrix(), by_id.to_matrix())


def test_subset_single_and_slice():
    x = _batch(False)
    assert x["y"].date_ids == ["y"]
    assert x[0].date_ids == ["w"]
    assert x[1:3].date_ids == ["x", "y"]
    assert x[-1].date_ids == ["z"]


def test_dense_subset_slices_columns():
    x = _batch(True)
    sub = x.subset(["z", "w"])
    assert list(sub.cal_matrix.columns) == ["z", "w"]
    np.testing.assert_array_equal(sub.cal_matrix["z"].to_numpy(), x.cal_matrix["z"].to_numpy())


def test_subset_errors():
    x = _batch(False)
    with pytest.raises(KeyError):
        x["missing"]
    with pytest.raises(IndexError):
        x[[10]]
    with pytest.raises(InputLengthMismatch):
        x[np.array([True, False])]


def test_grid_access_from_either_storage():
    sparse, dense = _batch(False), _batch(True)
    g_sparse = sparse.grid("y")
    g_dense = dense.grid("y")
    assert len(g_dense) == 2001
    np.testing.assert_allclose(dense.grid("y", compact=True).pr_dens, g_sparse.pr_dens)


def test_exactly_one_storage_mode():
    meta = pd.DataFrame(columns=METADATA_COLUMNS)
    with pytest.raises(InvalidParameterError):
        CalDates(metadata=meta)
    with pytest.raises(InvalidParameterError):
        CalDates(metadata=meta, grids={}, cal_matrix=pd.DataFrame())


def test_metadata_and_grid_counts_must_match():
    meta = pd.DataFrame({"DateID": ["a", "b"]})
    with pytest.raises(InputLengthMismatch):
        CalDates(metadata=meta, grids={"a": CalGrid([1], [1.0])})


def test_empty_store_cannot_be_subset():
    empty = CalDates(metadata=pd.DataFrame(columns=METADATA_COLUMNS), grids={})
    assert len(empty) == 0
    with pytest.raises(InvalidParameterError):
        empty.subset([])


def test_as_cal_grid_coercion():
    df = pd.DataFrame({"year": [3, 2, 1], "p": [0.2, 0.5, 0.3]})
    g = as_cal_grid(df)
    np.testing.assert_array_equal(g.cal_bp, [3, 2, 1])
    assert as_cal_grid(g) is g
    np.testing.assert_allclose(as_cal_grid(np.array([[3, 0.2], [2, 0.8]])).pr_dens, [0.2, 0.8])
    with pytest.raises(InvalidParameterError):
        as_cal_grid(pd.DataFrame({"a": [1], "b": [1], "c": [1]}))
    assert list(g.to_frame().columns) == ["calBP", "PrDens"]


@pytest.mark.parametrize("cal_matrix", [False, True])
def test_subset_rejects_repeated_dates(cal_matrix):
    x = _batch(cal_matrix)
    with pytest.raises(DuplicateIdentifier):
        x[[0, 0]]
    with pytest.raises(DuplicateIdentifier):
        x[["y", "w", "y"]]
    with pytest.raises(DuplicateIdentifier):
        x[[1, -3]]
