# Project MaskAR - geometry/__init__.py
# Placement Estimator Module
# (C) 2025 MUSE Corp. All rights reserved.

from .placement import (
    BoundingBox,
    CalibrationReference,
    FaceTexturePatch,
    LandmarkFrame,
    PlacementEstimator,
    RigidPlacement,
    estimate_box_scale,
    estimate_placement,
    estimate_texture_patch,
    initialize_calibration,
)

__all__ = [
    'BoundingBox', 'CalibrationReference', 'FaceTexturePatch', 'LandmarkFrame',
    'PlacementEstimator', 'RigidPlacement', 'estimate_box_scale', 'estimate_placement',
    'estimate_texture_patch', 'initialize_calibration',
]
