# Project MaskAR - maskar/ai/tracking/prediction.py
# (C) 2025 MUSE Corp. All rights reserved.

"""
Face-mesh detections in landmark-source form.

FacePrediction carries the same three fields the browser face-mesh model
emits (scaledMesh, boundingBox, annotations) so the placement layer does not
care which backend produced them.
"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np

from maskar.errors import LandmarkError
from maskar.geometry.placement import BoundingBox, LandmarkFrame

# [Mesh Annotations] semantic region -> face-mesh vertex indices (468-point topology)
MESH_ANNOTATIONS = {
    "silhouette": [
        10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288,
        397, 365, 379, 378, 400, 377, 152, 148, 176, 149, 150, 136,
        172, 58, 132, 93, 234, 127, 162, 21, 54, 103, 67, 109
    ],

    "lipsUpperOuter": [61, 185, 40, 39, 37, 0, 267, 269, 270, 409, 291],
    "lipsLowerOuter": [146, 91, 181, 84, 17, 314, 405, 321, 375, 291],
    "lipsUpperInner": [78, 191, 80, 81, 82, 13, 312, 311, 310, 415, 308],
    "lipsLowerInner": [78, 95, 88, 178, 87, 14, 317, 402, 318, 324, 308],

    "rightEyeUpper0": [246, 161, 160, 159, 158, 157, 173],
    "rightEyeLower0": [33, 7, 163, 144, 145, 153, 154, 155, 133],
    "rightEyeUpper1": [247, 30, 29, 27, 28, 56, 190],
    "rightEyeLower1": [130, 25, 110, 24, 23, 22, 26, 112, 243],
    "rightEyeUpper2": [113, 225, 224, 223, 222, 221, 189],
    "rightEyeLower2": [226, 31, 228, 229, 230, 231, 232, 233, 244],
    "rightEyeLower3": [143, 111, 117, 118, 119, 120, 121, 128, 245],

    "rightEyebrowUpper": [156, 70, 63, 105, 66, 107, 55, 193],
    "rightEyebrowLower": [35, 124, 46, 53, 52, 65],

    "leftEyeUpper0": [466, 388, 387, 386, 385, 384, 398],
    "leftEyeLower0": [263, 249, 390, 373, 374, 380, 381, 382, 362],
    "leftEyeUpper1": [467, 260, 259, 257, 258, 286, 414],
    "leftEyeLower1": [359, 255, 339, 254, 253, 252, 256, 341, 463],
    "leftEyeUpper2": [342, 445, 444, 443, 442, 441, 413],
    "leftEyeLower2": [446, 261, 448, 449, 450, 451, 452, 453, 464],
    "leftEyeLower3": [372, 340, 346, 347, 348, 349, 350, 357, 465],

    "leftEyebrowUpper": [383, 300, 293, 334, 296, 336, 285, 417],
    "leftEyebrowLower": [265, 353, 276, 283, 282, 295],

    "midwayBetweenEyes": [168],

    "noseTip": [1],
    "noseBottom": [2],
    "noseRightCorner": [98],
    "noseLeftCorner": [327],

    "rightCheek": [205],
    "leftCheek": [425],
}

REQUIRED_ANNOTATIONS = ("leftEyeUpper0", "rightEyeUpper0", "noseTip")


def landmarks_to_pixels(landmarks, width, height):
    """
    Normalized (0~1) landmarks -> (N, 3) pixel array.
    z shares the x scale, as in the face-mesh model's scaledMesh.
    """
    return np.array(
        [[lm.x * width, lm.y * height, lm.z * width] for lm in landmarks],
        dtype=np.float32,
    )


def build_annotations(scaled_mesh):
    """Slices the mesh into named regions; regions past the mesh length are skipped."""
    n = len(scaled_mesh)
    annotations = {}
    for name, indices in MESH_ANNOTATIONS.items():
        if max(indices) < n:
            annotations[name] = scaled_mesh[indices]
    return annotations


def bounding_box_from_mesh(scaled_mesh):
    """Axis-aligned extent of the mesh in x/y."""
    x_min, y_min = np.min(scaled_mesh[:, :2], axis=0)
    x_max, y_max = np.max(scaled_mesh[:, :2], axis=0)
    return BoundingBox(
        top_left=(float(x_min), float(y_min)),
        bottom_right=(float(x_max), float(y_max)),
    )


@dataclass
class FacePrediction:
    scaled_mesh: np.ndarray
    bounding_box: BoundingBox
    annotations: Dict[str, np.ndarray] = field(default_factory=dict)

    @classmethod
    def from_mesh(cls, scaled_mesh):
        scaled_mesh = np.asarray(scaled_mesh, dtype=np.float32)
        if scaled_mesh.ndim != 2 or scaled_mesh.shape[1] != 3 or len(scaled_mesh) == 0:
            raise LandmarkError(f"scaled mesh must be (N, 3), got {scaled_mesh.shape}")

        return cls(
            scaled_mesh=scaled_mesh,
            bounding_box=bounding_box_from_mesh(scaled_mesh),
            annotations=build_annotations(scaled_mesh),
        )

    @classmethod
    def from_wire(cls, data):
        """
        Builds a prediction from the landmark-source dict:
        {'scaledMesh': [[x,y,z],...], 'boundingBox': {...}, 'annotations': {...}}
        """
        try:
            scaled_mesh = np.asarray(data["scaledMesh"], dtype=np.float32)
            box = BoundingBox.from_wire(data["boundingBox"])
        except KeyError as e:
            raise LandmarkError(f"Prediction missing field {e}") from e

        raw = data.get("annotations")
        if raw is None:
            annotations = build_annotations(scaled_mesh)
        else:
            annotations = {k: np.asarray(v, dtype=np.float32) for k, v in raw.items()}

        return cls(scaled_mesh=scaled_mesh, bounding_box=box, annotations=annotations)

    def has_required_annotations(self):
        return all(name in self.annotations for name in REQUIRED_ANNOTATIONS)

    def to_frame(self):
        return LandmarkFrame(scaled_mesh=self.scaled_mesh, annotations=self.annotations)

    def scene_points(self, screen_height):
        """Mesh in scene space (Y-up) for the point cloud layer."""
        pts = self.scaled_mesh.copy()
        pts[:, 1] = screen_height - pts[:, 1]
        return pts
