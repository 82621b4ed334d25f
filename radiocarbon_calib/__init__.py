"""
Top-level public API surface. Stable facades only.
Canonical entrypoint: import radiocarbon_calib; calibrate(), uncalibrate(), hpdi(), median_dates().
"""

from __future__ import annotations

from . import core, rng
from ._version import __version__
from .caldates import CalDates
from .calibrate import RawDate, calibrate, calibrate_date, calibrate_input, calibrate_uncal_grid
from .curves import KNOWN_CURVES, CalibrationCurve, load_curve
from .grids import CalGrid, UncalGrid, as_cal_grid
from .mixing import mix_curves
from .summary import hpdi, median_dates, summarise
from .uncalibrate import uncalibrate, uncalibrate_grid, uncalibrate_input, uncalibrate_point

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "KNOWN_CURVES",
    "CalDates",
    "CalGrid",
    "CalibrationCurve",
    "RawDate",
    "UncalGrid",
    "as_cal_grid",
    "calibrate",
    "calibrate_date",
    "calibrate_input",
    "calibrate_uncal_grid",
    "core",
    "hpdi",
    "load_curve",
    "median_dates",
    "mix_curves",
    "rng",
    "summarise",
    "uncalibrate",
    "uncalibrate_grid",
    "uncalibrate_input",
    "uncalibrate_point",
]
