# Project MaskAR - maskar/errors.py
# (C) 2025 MUSE Corp. All rights reserved.

"""
Exception hierarchy for the overlay pipeline.

Only CameraError and ConfigError are fatal to a session. CalibrationError
disables the overlay but keeps video running; PlacementError subclasses are
skipped frame by frame.
"""


class MaskARError(Exception):
    """Base class for every MaskAR error."""


class ConfigError(MaskARError):
    """A configuration option has an invalid value."""


class CameraError(MaskARError):
    """The capture device could not be opened."""


class CalibrationError(MaskARError):
    """The overlay asset lacks the anchor nodes needed for calibration."""


class PlacementError(MaskARError):
    """A single frame could not be turned into a placement."""


class DegenerateCalibrationError(PlacementError):
    """The calibration distance is zero or unset, so no scale can be derived."""


class LandmarkError(PlacementError):
    """A required landmark is missing or collapses to a zero-size measurement."""

