# Project MaskAR - maskar/graphics/asset.py
# (C) 2025 MUSE Corp. All rights reserved.

"""
Overlay asset loading and typed node lookup.

Node names are resolved once at load time into AssetHandles; a missing name
is a CalibrationError right away instead of a null handle that fails later.
All rest-pose measurements are expressed in the head node's local frame.
"""

import os
from collections import deque
from dataclasses import dataclass

import numpy as np
import trimesh

from maskar.errors import CalibrationError
from maskar.geometry.placement import initialize_calibration
from maskar.utils.logger import get_logger

DEFAULT_COLOR = (0.8, 0.8, 0.8, 1.0)


@dataclass(frozen=True)
class AssetHandles:
    head: str
    left_eye: str
    right_eye: str
    gaze: str


@dataclass
class MeshPart:
    """One renderable geometry node of the head subtree."""
    name: str
    vertices: np.ndarray      # (N, 3) float32, geometry-local
    faces: np.ndarray         # (M, 3) int32
    colors: np.ndarray        # (N, 4) float32, 0~1
    local_matrix: np.ndarray  # geometry -> head-local
    follows_gaze: bool


class OverlayAsset:
    def __init__(self, scene, head_node, left_eye_node, right_eye_node, gaze_node=None):
        self.logger = get_logger("OverlayAsset")
        self.scene = scene
        self.calibration = None

        # 1. Resolve handles (fail fast)
        names = set(scene.graph.nodes)
        wanted = {
            "head": head_node,
            "left_eye": left_eye_node,
            "right_eye": right_eye_node,
            "gaze": gaze_node or head_node,
        }
        missing = [f"{role}='{name}'" for role, name in wanted.items() if name not in names]
        if missing:
            raise CalibrationError(f"Overlay asset lacks expected nodes: {', '.join(missing)}")

        self.handles = AssetHandles(**wanted)

        # 2. Scene tree (parent -> children)
        self._children = {}
        for parent, child, _ in scene.graph.to_edgelist():
            self._children.setdefault(parent, []).append(child)

        self._head_inv = np.linalg.inv(self._world(self.handles.head))
        self.head_subtree = self._descendants(self.handles.head)
        self.gaze_subtree = self._descendants(self.handles.gaze)

        if self.handles.gaze not in self.head_subtree:
            raise CalibrationError(f"Gaze node '{self.handles.gaze}' is not under head node '{self.handles.head}'")

        self.logger.info(
            f"[ASSET] Handles resolved: head={self.handles.head}, eyes=({self.handles.left_eye}, "
            f"{self.handles.right_eye}), gaze={self.handles.gaze}"
        )

    @classmethod
    def load(cls, path, head_node, left_eye_node, right_eye_node, gaze_node=None):
        if not os.path.exists(path):
            raise CalibrationError(f"Overlay asset not found: {path}")

        try:
            scene = trimesh.load(path, force="scene")
        except Exception as e:
            # Any loader failure only costs the overlay
            raise CalibrationError(f"Overlay asset failed to load ({path}): {e}") from e

        return cls(scene, head_node, left_eye_node, right_eye_node, gaze_node)

    @classmethod
    def from_settings(cls, settings):
        return cls.load(
            settings.asset_path,
            settings.head_node,
            settings.left_eye_node,
            settings.right_eye_node,
            settings.gaze_node,
        )

    # ================================================================
    # Scene graph helpers
    # ================================================================

    def _world(self, node):
        matrix, _ = self.scene.graph[node]
        return np.asarray(matrix, dtype=np.float64)

    def _head_local(self, node):
        return self._head_inv @ self._world(node)

    def _descendants(self, root):
        seen = {root}
        queue = deque([root])
        while queue:
            for child in self._children.get(queue.popleft(), []):
                if child not in seen:
                    seen.add(child)
                    queue.append(child)
        return seen

    def _geometry(self, node):
        _, geom_name = self.scene.graph[node]
        if geom_name is None:
            return None
        geom = self.scene.geometry.get(geom_name)
        return geom if isinstance(geom, trimesh.Trimesh) else None

    def node_point(self, node):
        """Rest-pose point of a node in head-local space (geometry center, else node origin)."""
        local = self._head_local(node)
        geom = self._geometry(node)
        center = np.zeros(3) if geom is None else geom.bounds.mean(axis=0)
        return (local @ np.append(center, 1.0))[:3]

    # ================================================================
    # Rest-pose measurements
    # ================================================================

    @property
    def left_eye_point(self):
        return self.node_point(self.handles.left_eye)

    @property
    def right_eye_point(self):
        return self.node_point(self.handles.right_eye)

    @property
    def gaze_pivot(self):
        return self._head_local(self.handles.gaze)[:3, 3]

    def rest_pose_offset(self, anchor_landmark="leftEyeUpper0"):
        """Anchor eye relative to the head origin; 'right*' landmarks pick the right eye."""
        if anchor_landmark.startswith("right"):
            return self.right_eye_point
        return self.left_eye_point

    def head_width(self):
        """
        X extent of the head subtree in head-local units.

        :raises CalibrationError: the subtree has no mesh geometry or no width.
        """
        corners = []
        for node in self.head_subtree:
            geom = self._geometry(node)
            if geom is None:
                continue
            local = self._head_local(node)
            bounds = trimesh.bounds.corners(geom.bounds)
            corners.append((np.hstack([bounds, np.ones((len(bounds), 1))]) @ local.T)[:, :3])

        if not corners:
            raise CalibrationError(f"Head node '{self.handles.head}' has no mesh geometry to measure")

        pts = np.vstack(corners)
        width = float(pts[:, 0].max() - pts[:, 0].min())
        if not width > 0.0:
            raise CalibrationError(f"Head node '{self.handles.head}' has zero width")
        return width

    def calibrate(self):
        """One-time reference eye distance for this asset instance."""
        if self.calibration is not None:
            raise CalibrationError("Overlay asset was already calibrated")

        self.calibration = initialize_calibration(self.left_eye_point, self.right_eye_point)
        self.logger.info(f"[ASSET] Reference eye distance: {self.calibration.eye_distance:.4f}")
        return self.calibration

    # ================================================================
    # Render data
    # ================================================================

    def parts(self):
        parts = []
        for node in sorted(self.head_subtree):
            geom = self._geometry(node)
            if geom is None or len(geom.faces) == 0:
                continue

            parts.append(MeshPart(
                name=node,
                vertices=np.asarray(geom.vertices, dtype=np.float32),
                faces=np.asarray(geom.faces, dtype=np.int32),
                colors=_vertex_colors(geom),
                local_matrix=self._head_local(node),
                follows_gaze=node in self.gaze_subtree,
            ))
        return parts


def _vertex_colors(geom):
    visual = geom.visual
    try:
        if hasattr(visual, "to_color"):
            visual = visual.to_color()
        colors = np.asarray(visual.vertex_colors, dtype=np.float32) / 255.0
    except (AttributeError, ValueError):
        colors = None

    if colors is None or colors.shape != (len(geom.vertices), 4):
        colors = np.tile(np.array(DEFAULT_COLOR, dtype=np.float32), (len(geom.vertices), 1))
    return colors
