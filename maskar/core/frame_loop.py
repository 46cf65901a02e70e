# Project MaskAR - maskar/core/frame_loop.py
# (C) 2025 MUSE Corp. All rights reserved.

import time

from maskar.errors import PlacementError
from maskar.geometry.placement import estimate_texture_patch
from maskar.utils.logger import get_logger


class FrameLoop:
    """
    One iteration per display refresh: read -> detect -> place -> render -> emit.

    step() is re-entrant-free; the host (QTimer or run()) only schedules the
    next step once the previous one has returned, so detection calls never
    overlap. When no face is found the last placement stays on screen.
    """

    def __init__(self, session, on_frame=None, max_missed_frames=30):
        self.logger = get_logger("FrameLoop")
        self.session = session
        self.on_frame = on_frame
        self.max_missed_frames = max_missed_frames

        # Runtime toggles, seeded from the profile
        self.show_mesh = session.config.show_mesh
        self.render_pointcloud = session.config.render_pointcloud

        self.running = False
        self.missed_frames = 0
        self.frame_count = 0
        self._prev_time = time.time()
        self._fps_frames = 0
        self._last_error = None

    def start(self):
        self.running = True
        self.missed_frames = 0
        self._prev_time = time.time()
        self.logger.info("[LOOP] Started")

    def stop(self):
        if self.running:
            self.logger.info(f"[LOOP] Stopped after {self.frame_count} frames")
        self.running = False

    def step(self):
        """Runs one iteration. Returns False once the loop should not be rescheduled."""
        if not self.running:
            return False

        session = self.session
        config = session.config

        # 1. Capture
        frame = session.camera.read()
        if frame is None:
            self.missed_frames += 1
            if not session.camera.is_running or self.missed_frames >= self.max_missed_frames:
                self.logger.warning(f"[LOOP] Capture ended ({self.missed_frames} missed frames)")
                self.stop()
                return False
            return True
        self.missed_frames = 0

        # 2. Landmarks (a tracker failure counts as "no face" for this frame)
        try:
            predictions = session.face_mesh.estimate_faces(frame)
        except Exception as e:
            self._log_skip("Tracking", e)
            predictions = []
        face = predictions[0] if predictions else None

        canvas = frame
        if self.show_mesh and predictions:
            try:
                canvas = session.face_mesh.draw_debug(frame.copy(), predictions, config.triangulate_mesh)
            except Exception as e:
                self._log_skip("Mesh drawing", e)
                canvas = frame

        # 3. Placement (no face: previous state is kept)
        if face is not None:
            self._update_scene(face, frame)

        # 4. Composite
        try:
            output = session.renderer.render(canvas)
        except Exception as e:
            self._log_skip("Render", e)
            output = None

        if self.on_frame is not None and output is not None:
            self.on_frame(output)

        self.frame_count += 1
        self._tick_stats()
        return True

    def _update_scene(self, face, frame):
        session = self.session
        config = session.config
        renderer = session.renderer
        screen_height = session.screen_height

        if session.estimator is not None:
            try:
                placement = session.estimator.estimate_placement(face.to_frame(), face.bounding_box)
            except PlacementError as e:
                self._log_skip("Placement", e)
            else:
                renderer.apply_placement(placement)
                self._last_error = None

        if config.face_patch:
            patch = estimate_texture_patch(face.bounding_box, frame, screen_height=screen_height)
            renderer.update_face_patch(patch)

        if self.render_pointcloud:
            renderer.update_points(face.scene_points(screen_height))

    def _log_skip(self, stage, error):
        # Log each distinct failure once
        message = f"{stage} skipped: {error}"
        if message != self._last_error:
            self.logger.warning(f"[LOOP] {message}")
            self._last_error = message

    def _tick_stats(self):
        self._fps_frames += 1
        curr_time = time.time()
        if curr_time - self._prev_time >= 1.0:
            fps = self._fps_frames / (curr_time - self._prev_time)
            self.logger.debug(f"[FPS: {fps:.1f}] frames={self.frame_count}")
            self._fps_frames = 0
            self._prev_time = curr_time

    def run(self, max_frames=None):
        """Headless driver: steps until capture ends, stop() or max_frames."""
        self.start()
        try:
            while self.step():
                if max_frames is not None and self.frame_count >= max_frames:
                    break
        finally:
            self.stop()
        return self.frame_count
