# Project MaskAR - maskar/core/camera.py
# (C) 2025 MUSE Corp. All rights reserved.

import cv2

from maskar.utils.logger import get_logger


class Camera:
    def __init__(self, index=0, width=1280, height=720, fps=30, mirror=True):
        self.logger = get_logger("Camera")
        self.index = index
        self.width = width
        self.height = height
        self.fps = fps
        self.mirror = mirror
        self.cap = None
        self.is_running = False

    def start(self):
        """Opens the webcam. Returns False when the device is unavailable."""
        self.logger.info(f"Opening webcam (Index: {self.index})...")

        self.cap = cv2.VideoCapture(self.index)
        if not self.cap.isOpened():
            self.logger.error("Could not open webcam!")
            self.cap.release()
            self.cap = None
            return False

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        # Drivers may report a size they do not deliver; trust the first frame
        ret, frame = self.cap.read()
        if ret:
            self.height, self.width = frame.shape[:2]
        else:
            self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.width
            self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.height

        self.is_running = True
        self.logger.info(f"Webcam ready: {self.width}x{self.height} @ {self.fps}fps")
        return True

    def read(self):
        """Reads one frame (mirrored for the selfie view when enabled)."""
        if not self.is_running or self.cap is None:
            return None

        ret, frame = self.cap.read()
        if not ret:
            self.logger.warning("Failed to read frame.")
            return None

        if self.mirror:
            frame = cv2.flip(frame, 1)
        return frame

    def stop(self):
        """Releases the webcam."""
        if self.cap:
            self.cap.release()
            self.cap = None
        self.is_running = False
        self.logger.info("Webcam released.")
