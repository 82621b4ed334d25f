"""
Mixed terrestrial/marine calibration curves (after clam's mix.calibrationcurves).

The marine curve is resampled onto the terrestrial calendar ages (clamped at
its ends), shifted by the reservoir offset, and its error combined with the
offset error in quadrature. Means and errors are then blended linearly by the
terrestrial proportion p.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

from .core.errors import InvalidParameterError
from .curves import CalibrationCurve, load_curve

logger = logging.getLogger(__name__)


def mix_curves(
    cal_curve: Any = "intcal13",
    p: float = 1.0,
    res_offsets: float = 0.0,
    res_errors: float = 0.0,
    marine_curve: Any = "marine13",
    curve_dir: Optional[Union[str, Path]] = None,
) -> CalibrationCurve:
    """Blend a terrestrial curve with a reservoir-corrected marine curve; p is the terrestrial share."""
    if not 0.0 <= p <= 1.0:
        raise InvalidParameterError(f"p must be a proportion in [0, 1], got {p}")
    terrestrial = load_curve(cal_curve, curve_dir)
    marine = load_curve(marine_curve, curve_dir)

    xp = marine.cal_bp[::-1]
    marine_mu = np.interp(terrestrial.cal_bp, xp, marine.c14_bp[::-1]) + res_offsets
    marine_err = np.interp(terrestrial.cal_bp, xp, marine.error[::-1])
    marine_err = np.sqrt(marine_err**2 + res_errors**2)

    mu = p * terrestrial.c14_bp + (1 - p) * marine_mu
    error = p * terrestrial.error + (1 - p) * marine_err
    logger.debug("mixed %s with %s at p=%g", terrestrial.name, marine.name, p)
    return CalibrationCurve(cal_bp=terrestrial.cal_bp, c14_bp=mu, error=error, name="mixed")


__all__ = ["mix_curves"]
