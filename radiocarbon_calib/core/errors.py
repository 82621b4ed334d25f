"""
Shared exception and warning types for radiocarbon_calib.
Stable surface; extend only. Every error also subclasses the closest builtin so
callers catching ValueError / KeyError keep working.
"""

from __future__ import annotations


class RadiocarbonCalibError(Exception):
    """Base exception for radiocarbon_calib; catch this for any package-raised error."""

    pass


class InputLengthMismatch(RadiocarbonCalibError, ValueError):
    """Ages, errors, ids, details or offsets disagree in length."""


class DuplicateIdentifier(RadiocarbonCalibError, ValueError):
    """Date ids supplied to a batch are not unique."""


class MissingValue(RadiocarbonCalibError, ValueError):
    """A required numeric input (age or error) is NaN."""


class InvalidCurveFormat(RadiocarbonCalibError, ValueError):
    """A custom calibration curve is not a valid three-column numeric table."""


class UnknownCurveName(RadiocarbonCalibError, KeyError):
    """Curve name is not one of the built-in curves."""

    def __str__(self) -> str:
        # KeyError repr-quotes its message; keep it readable.
        return str(self.args[0]) if self.args else ""


class CurveDataUnavailable(RadiocarbonCalibError, FileNotFoundError):
    """A built-in curve name is known but its .14c data file cannot be found."""


class CurveRangeExceeded(RadiocarbonCalibError, ValueError):
    """Requested age lies outside the calibration curve's domain."""


class DateOutOfCalibrationRange(RadiocarbonCalibError, ValueError):
    """Requested time window cannot be fully covered for a given date."""


class UnsupportedInversionMode(RadiocarbonCalibError, ValueError):
    """Strategy tag or input type not supported for (un)calibration."""


class InvalidParameterError(RadiocarbonCalibError, ValueError):
    """Parameter value or combination that cannot be auto-corrected."""


class InvalidParameterCombination(UserWarning):
    """Parameter combination auto-corrected to a safe substitute (warning, not error)."""


class DegradedExecution(UserWarning):
    """Execution settings were adjusted (e.g. worker count clamped)."""


__all__ = [
    "CurveDataUnavailable",
    "CurveRangeExceeded",
    "DateOutOfCalibrationRange",
    "DegradedExecution",
    "DuplicateIdentifier",
    "InputLengthMismatch",
    "InvalidCurveFormat",
    "InvalidParameterCombination",
    "InvalidParameterError",
    "MissingValue",
    "RadiocarbonCalibError",
    "UnknownCurveName",
    "UnsupportedInversionMode",
]
