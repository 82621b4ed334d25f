"""
Stable facade: core errors, typing protocols and seeding. No numerics here.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import RadiocarbonCalibError
from .types import ProgressReporter

# Do not add exports without updating __all__.
__all__ = ["ProgressReporter", "RadiocarbonCalibError"]
