# Project MaskAR - maskar/geometry/placement.py
# (C) 2025 MUSE Corp. All rights reserved.

"""
Placement Estimator: tracked landmarks -> rigid placement of the overlay.

Every call is a pure function of the current frame plus the one-time
calibration. Nothing is smoothed or remembered between frames; when no face
is found the caller simply does not call in and keeps the last placement.

Coordinate spaces:
- Landmark/video space: pixels, Y grows downwards.
- Scene space: pixels, Y grows upwards (sceneY = screen_height - landmarkY).
"""

import math
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from maskar.errors import (
    CalibrationError,
    DegenerateCalibrationError,
    LandmarkError,
)

DESIGN_CONSTANT = 0.75
BOX_SCALE_DIVISOR = 9.0


# ================================================================
# Data Model
# ================================================================

@dataclass(frozen=True)
class BoundingBox:
    """Detected face region; corners in landmark (video pixel) space."""
    top_left: Tuple[float, float]
    bottom_right: Tuple[float, float]

    @classmethod
    def from_wire(cls, data):
        """
        Accepts the landmark source shape {'topLeft': [[x, y]], 'bottomRight': [[x, y]]}.
        A bare [x, y] pair per corner is accepted as well.
        """
        def corner(value):
            arr = np.asarray(value, dtype=np.float64).reshape(-1)
            if arr.size < 2:
                raise LandmarkError(f"Bounding box corner has too few values: {value!r}")
            return float(arr[0]), float(arr[1])

        try:
            return cls(top_left=corner(data["topLeft"]), bottom_right=corner(data["bottomRight"]))
        except KeyError as e:
            raise LandmarkError(f"Bounding box missing corner {e}") from e

    @property
    def width(self):
        return self.bottom_right[0] - self.top_left[0]

    @property
    def height(self):
        return self.bottom_right[1] - self.top_left[1]


@dataclass(frozen=True)
class LandmarkFrame:
    """
    One face worth of keypoints for the current frame.

    scaled_mesh: (N, 3) array in video pixel space.
    annotations: region name -> (K, 3) array, e.g. 'leftEyeUpper0', 'noseTip'.
    """
    scaled_mesh: np.ndarray
    annotations: Dict[str, np.ndarray]

    def point(self, name, index=0):
        region = self.annotations.get(name)
        if region is None or len(region) <= index:
            raise LandmarkError(f"Landmark '{name}[{index}]' not available")
        p = np.asarray(region[index], dtype=np.float64).reshape(-1)
        if p.size == 2:
            p = np.append(p, 0.0)
        return p[:3]


@dataclass(frozen=True)
class CalibrationReference:
    """Reference inter-eye distance of the overlay asset at 1:1 scale."""
    eye_distance: float


@dataclass(frozen=True)
class RigidPlacement:
    """How to pose the overlay this frame (scene space)."""
    scale: float
    translation: Tuple[float, float, float]
    look_at: Tuple[float, float, float]


@dataclass(frozen=True)
class FaceTexturePatch:
    """
    Face crop of the current video frame plus where its quad goes.

    pixels: (height, width, C) copy of the clamped crop.
    center: quad center in scene space (Y-up).
    source_rect: (x0, y0, x1, y1) actually cropped, in video pixels.
    """
    pixels: np.ndarray
    center: Tuple[float, float]
    width: int
    height: int
    source_rect: Tuple[int, int, int, int]

    @property
    def is_empty(self):
        return self.width <= 0 or self.height <= 0


# ================================================================
# Operations
# ================================================================

def initialize_calibration(reference_left_eye, reference_right_eye):
    """
    Measures the asset's rest-pose eye distance.

    :raises CalibrationError: an anchor point is missing or malformed.
    """
    if reference_left_eye is None or reference_right_eye is None:
        raise CalibrationError("Overlay asset is missing an eye anchor point")

    left = np.asarray(reference_left_eye, dtype=np.float64).reshape(-1)
    right = np.asarray(reference_right_eye, dtype=np.float64).reshape(-1)
    if left.size != 3 or right.size != 3:
        raise CalibrationError(f"Eye anchors must be 3D points (got {left.size}D / {right.size}D)")
    if not (np.all(np.isfinite(left)) and np.all(np.isfinite(right))):
        raise CalibrationError("Eye anchors contain non-finite coordinates")

    return CalibrationReference(eye_distance=float(np.linalg.norm(left - right)))


def _calibration_distance(calibration):
    if isinstance(calibration, CalibrationReference):
        calibration = calibration.eye_distance
    if calibration is None:
        raise DegenerateCalibrationError("Calibration was never captured")

    value = float(calibration)
    if not math.isfinite(value) or value <= 0.0:
        raise DegenerateCalibrationError(f"Calibration distance must be positive (got {value})")
    return value


def eye_distance(frame):
    left = frame.point("leftEyeUpper0")
    right = frame.point("rightEyeUpper0")
    return float(np.linalg.norm(left - right))


def estimate_eye_scale(frame, calibration, design_constant=DESIGN_CONSTANT):
    """scale = (current eye distance / calibration) * design_constant"""
    reference = _calibration_distance(calibration)
    scale = eye_distance(frame) / reference * design_constant

    if not math.isfinite(scale) or scale <= 0.0:
        raise LandmarkError(f"Tracked eyes collapse to a non-positive scale ({scale})")
    return scale


def estimate_box_scale(box, head_width, divisor=BOX_SCALE_DIVISOR):
    """
    Helmet variant: scale from the face box width relative to the head mesh width.
    scale = box.width / head_width / divisor
    """
    head_width = _calibration_distance(head_width)
    scale = box.width / head_width / divisor

    if not math.isfinite(scale) or scale <= 0.0:
        raise LandmarkError(f"Face box width {box.width} gives a non-positive scale")
    return scale


def to_scene(point, screen_height):
    """Video pixel space -> scene space (vertical flip only)."""
    return np.array([point[0], screen_height - point[1], point[2]], dtype=np.float64)


def estimate_placement(frame, box, calibration, screen_height,
                       rest_pose_offset=(0.0, 0.0, 0.0),
                       design_constant=DESIGN_CONSTANT,
                       anchor_landmark="leftEyeUpper0",
                       look_at_landmark="noseTip",
                       gaze_depth_factor=1.0,
                       scale=None):
    """
    Converts one LandmarkFrame + BoundingBox into a RigidPlacement.

    :param rest_pose_offset: anchor point of the asset relative to its origin,
        in asset units. Multiplied by this frame's scale so the anchor lands on
        the tracked landmark.
    :param scale: precomputed scale (box scale mode); eye scale when None.
    :raises DegenerateCalibrationError: calibration is zero or unset.
    :raises LandmarkError: a required landmark is missing.
    """
    if scale is None:
        scale = estimate_eye_scale(frame, calibration, design_constant)

    # 1. Translation: anchor landmark minus the scaled rest-pose offset
    anchor = to_scene(frame.point(anchor_landmark), screen_height)
    offset = np.asarray(rest_pose_offset, dtype=np.float64).reshape(3) * scale
    translation = anchor - offset

    # 2. Look-at: world space as-is, pushed towards the camera by the box height.
    # Not made relative to the overlay position.
    target = to_scene(frame.point(look_at_landmark), screen_height)
    target[2] += box.height * gaze_depth_factor

    return RigidPlacement(
        scale=float(scale),
        translation=tuple(float(v) for v in translation),
        look_at=tuple(float(v) for v in target),
    )


def estimate_texture_patch(box, source_frame, screen_height=None):
    """
    Crops the face box out of the current frame.

    The rectangle is clamped to the frame and snapped inwards to whole pixels,
    so the patch is never larger than the requested box. A box completely
    outside the frame gives an empty patch.

    :param screen_height: height used for the vertical flip (frame height by default).
    """
    frame_h, frame_w = source_frame.shape[:2]
    if screen_height is None:
        screen_height = frame_h

    xs = (box.top_left[0], box.bottom_right[0])
    ys = (box.top_left[1], box.bottom_right[1])

    if not all(math.isfinite(v) for v in xs + ys):
        return _empty_patch(source_frame, screen_height)

    rx0, rx1 = min(xs), max(xs)
    ry0, ry1 = min(ys), max(ys)

    x0 = min(max(math.ceil(rx0), 0), frame_w)
    y0 = min(max(math.ceil(ry0), 0), frame_h)
    x1 = max(min(math.floor(rx1), frame_w), x0)
    y1 = max(min(math.floor(ry1), frame_h), y0)

    pixels = source_frame[y0:y1, x0:x1].copy()

    return FaceTexturePatch(
        pixels=pixels,
        center=((x0 + x1) / 2.0, screen_height - (y0 + y1) / 2.0),
        width=x1 - x0,
        height=y1 - y0,
        source_rect=(x0, y0, x1, y1),
    )


def _empty_patch(source_frame, screen_height):
    channels = source_frame.shape[2:] if source_frame.ndim == 3 else ()
    return FaceTexturePatch(
        pixels=np.zeros((0, 0) + tuple(channels), dtype=source_frame.dtype),
        center=(0.0, float(screen_height)),
        width=0,
        height=0,
        source_rect=(0, 0, 0, 0),
    )


# ================================================================
# Parameterized Estimator
# ================================================================

class PlacementEstimator:
    """
    Binds one overlay's calibration and settings to the placement operations.

    Helmet and mask overlays differ only in the OverlaySettings they pass in.
    """

    def __init__(self, calibration, rest_pose_offset, screen_height,
                 design_constant=DESIGN_CONSTANT,
                 anchor_landmark="leftEyeUpper0",
                 look_at_landmark="noseTip",
                 gaze_depth_factor=1.0,
                 scale_mode="eyes",
                 head_width=None,
                 box_scale_divisor=BOX_SCALE_DIVISOR):
        self.calibration = calibration
        self.rest_pose_offset = tuple(float(v) for v in rest_pose_offset)
        self.screen_height = screen_height
        self.design_constant = design_constant
        self.anchor_landmark = anchor_landmark
        self.look_at_landmark = look_at_landmark
        self.gaze_depth_factor = gaze_depth_factor
        self.scale_mode = scale_mode
        self.head_width = head_width
        self.box_scale_divisor = box_scale_divisor

    @classmethod
    def from_settings(cls, settings, calibration, rest_pose_offset, screen_height, head_width=None):
        return cls(
            calibration=calibration,
            rest_pose_offset=rest_pose_offset,
            screen_height=screen_height,
            design_constant=settings.design_constant,
            anchor_landmark=settings.anchor_landmark,
            look_at_landmark=settings.look_at_landmark,
            gaze_depth_factor=settings.gaze_depth_factor,
            scale_mode=settings.scale_mode,
            head_width=head_width,
            box_scale_divisor=settings.box_scale_divisor,
        )

    def estimate_placement(self, frame, box) -> RigidPlacement:
        scale = None
        if self.scale_mode == "box":
            scale = estimate_box_scale(box, self.head_width, self.box_scale_divisor)

        return estimate_placement(
            frame, box, self.calibration, self.screen_height,
            rest_pose_offset=self.rest_pose_offset,
            design_constant=self.design_constant,
            anchor_landmark=self.anchor_landmark,
            look_at_landmark=self.look_at_landmark,
            gaze_depth_factor=self.gaze_depth_factor,
            scale=scale,
        )
