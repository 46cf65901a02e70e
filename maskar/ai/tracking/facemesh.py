# Project MaskAR - maskar/ai/tracking/facemesh.py
# Target: MediaPipe Face Mesh as the landmark source
# (C) 2025 MUSE Corp. All rights reserved.

import cv2
import numpy as np
import mediapipe as mp

from maskar.ai.tracking.prediction import FacePrediction, landmarks_to_pixels
from maskar.utils.logger import get_logger


class FaceMesh:
    """
    [Landmark Source] MediaPipe Face Mesh -> FacePrediction list
    - One prediction per detected face (up to max_faces)
    - Landmarks in pixel space of the frame that was passed in
    """

    def __init__(self, max_faces=1, backend="wasm"):
        self.logger = get_logger("FaceMesh")
        self.max_faces = max_faces
        self.backend = backend

        # The solution API picks its own delegate; backend is informational only
        self.logger.info(f"[FaceMesh] Loading model (max_faces={max_faces}, backend={backend})")

        self.mp_face_mesh = mp.solutions.face_mesh
        self.face_mesh = self.mp_face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=max_faces,
            refine_landmarks=True,  # Iris points included (478)
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5
        )
        self.tesselation = sorted(self.mp_face_mesh.FACEMESH_TESSELATION)
        self.logger.info("[OK] [FaceMesh] Model ready")

    def estimate_faces(self, frame_bgr):
        """
        :param frame_bgr: input frame (BGR)
        :return: [FacePrediction] list, empty when no face was found
        """
        if frame_bgr is None:
            return []

        h, w = frame_bgr.shape[:2]

        # 1. BGR -> RGB (MediaPipe expects RGB)
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        frame_rgb.flags.writeable = False

        # 2. Inference
        results = self.face_mesh.process(frame_rgb)

        predictions = []
        if results.multi_face_landmarks:
            for face_landmarks in results.multi_face_landmarks:
                # 3. Normalized(0~1) -> Pixel(x,y,z)
                mesh = landmarks_to_pixels(face_landmarks.landmark, w, h)
                prediction = FacePrediction.from_mesh(mesh)

                # 4. Partial meshes cannot be placed
                if not prediction.has_required_annotations():
                    self.logger.debug(f"[FaceMesh] Dropped face with {len(mesh)} points")
                    continue
                predictions.append(prediction)

        return predictions

    def close(self):
        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None

    # ================================================================
    # Debug drawing (2D canvas layer)
    # ================================================================

    def draw_debug(self, frame, predictions, triangulate=True):
        """
        Draws the mesh over the video frame.
        triangulate=True -> wireframe of the tesselation, False -> one dot per keypoint.
        """
        if not predictions:
            return frame

        color = (219, 238, 50)  # #32EEDB in BGR

        for prediction in predictions:
            pts = prediction.scaled_mesh[:, :2].astype(int).tolist()

            if triangulate:
                for i, j in self.tesselation:
                    if i < len(pts) and j < len(pts):
                        cv2.line(frame, tuple(pts[i]), tuple(pts[j]), color, 1, cv2.LINE_AA)
            else:
                for pt in pts:
                    cv2.circle(frame, tuple(pt), 1, color, -1)

        return frame
