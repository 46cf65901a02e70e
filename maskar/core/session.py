# Project MaskAR - maskar/core/session.py
# (C) 2025 MUSE Corp. All rights reserved.

"""
OverlaySession: the one object that owns every per-run resource.

Camera, landmark model, overlay asset, calibration and renderer are created
in open() and released in close(). The frame loop only ever talks to the
session, never to module-level state.
"""

from maskar.core.camera import Camera
from maskar.errors import CalibrationError, CameraError
from maskar.geometry.placement import PlacementEstimator
from maskar.graphics.asset import OverlayAsset
from maskar.utils.logger import get_logger


class OverlaySession:
    def __init__(self, config, camera=None, face_mesh=None, renderer=None, asset=None):
        self.logger = get_logger("Session")
        self.config = config

        self.camera = camera or Camera(
            index=config.camera_index,
            width=config.width,
            height=config.height,
            fps=config.fps,
            mirror=config.mirror,
        )
        self.face_mesh = face_mesh
        self.renderer = renderer
        self.asset = asset

        self.calibration = None
        self.estimator = None
        self.is_open = False

    @property
    def overlay_enabled(self):
        return self.estimator is not None

    @property
    def screen_height(self):
        """Height used for every landmark -> scene flip (estimator, patch, points)."""
        return self.camera.height

    def open(self):
        if self.is_open:
            return self

        self.logger.info("[SESSION] Opening...")

        # 1. Camera
        if not self.camera.start():
            raise CameraError(f"Camera {self.config.camera_index} could not be opened")

        try:
            # 2. Landmark model (heavy backends load on open)
            if self.face_mesh is None:
                from maskar.ai.tracking.facemesh import FaceMesh
                self.face_mesh = FaceMesh(max_faces=self.config.max_faces, backend=self.config.backend)

            # 3. Overlay asset + one-time calibration, before the loop starts
            self._load_overlay()

            # 4. Renderer at the resolution the camera really delivers
            if self.renderer is None:
                from maskar.graphics.renderer import Renderer
                self.renderer = Renderer(self.camera.width, self.camera.height)
            if self.asset is not None and self.overlay_enabled:
                self.renderer.set_overlay(self.asset.parts(), self.asset.gaze_pivot)
        except Exception:
            self.close()
            raise

        self.is_open = True
        self.logger.info(f"[SESSION] Ready (overlay={'ON' if self.overlay_enabled else 'OFF'})")
        return self

    def _load_overlay(self):
        settings = self.config.overlay
        try:
            if self.asset is None:
                self.asset = OverlayAsset.from_settings(settings)

            self.calibration = self.asset.calibrate()
            head_width = self.asset.head_width() if settings.scale_mode == "box" else None

            self.estimator = PlacementEstimator.from_settings(
                settings,
                calibration=self.calibration,
                rest_pose_offset=self.asset.rest_pose_offset(settings.anchor_landmark),
                screen_height=self.screen_height,
                head_width=head_width,
            )
        except CalibrationError as e:
            # Overlay feature off; capture and rendering keep going
            self.logger.error(f"[SESSION] Overlay disabled: {e}")
            self.estimator = None

    def close(self):
        self.logger.info("[SESSION] Closing...")
        self.camera.stop()

        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None
        if self.renderer is not None:
            self.renderer.release()
            self.renderer = None

        self.is_open = False

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
