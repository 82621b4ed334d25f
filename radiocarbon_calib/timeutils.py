"""
Calendar conversions between cal BP (Before Present, present = 1950 CE) and BC/AD.
BC years are negative; there is no year zero on the BC/AD scale.
"""

from __future__ import annotations

import numpy as np

REFERENCE_YEAR = 1950


def bp_to_bcad(age_bp):
    """Convert cal BP to BC/AD (negative = BC). Accepts scalars or arrays; NaN passes through."""
    bp = np.asarray(age_bp, dtype=float)
    out = REFERENCE_YEAR - bp
    # 1950 BP is 1 BC, not year 0.
    out = np.where(out <= 0, out - 1, out)
    return out if out.ndim else float(out)


def bcad_to_bp(age_bcad):
    """Convert BC/AD (negative = BC) to cal BP."""
    ad = np.asarray(age_bcad, dtype=float)
    if np.any(ad == 0):
        raise ValueError("0 BC/AD is not a valid year")
    out = np.where(ad < 0, REFERENCE_YEAR - ad - 1, REFERENCE_YEAR - ad)
    return out if out.ndim else float(out)
