# Project MaskAR - maskar/ui/viewport.py
# (C) 2025 MUSE Corp. All rights reserved.

import cv2
import numpy as np
from PySide6.QtCore import Qt
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import QLabel, QSizePolicy


class Viewport(QLabel):
    """
    Shows composited BGR frames, scaled to fit with aspect ratio kept.
    """
    def __init__(self):
        super().__init__()
        self.setAlignment(Qt.AlignCenter)

        # Ignored: the pixmap must not grow the widget (resize feedback loop)
        self.setSizePolicy(QSizePolicy.Ignored, QSizePolicy.Ignored)

        self.setStyleSheet("background-color: #121212; border: 1px solid #333;")
        self.setText("Waiting for camera...")
        self.setMinimumSize(640, 360)

    def update_image(self, cv_img):
        if cv_img is None or not isinstance(cv_img, np.ndarray) or cv_img.ndim != 3:
            return

        # 1. BGR -> RGB
        rgb_img = np.ascontiguousarray(cv2.cvtColor(cv_img, cv2.COLOR_BGR2RGB))

        # 2. QImage (copy: the numpy buffer is reused by the next frame)
        h, w, ch = rgb_img.shape
        qt_img = QImage(rgb_img.data, w, h, ch * w, QImage.Format_RGB888).copy()

        # 3. Fit to the viewport
        if self.width() > 0 and self.height() > 0:
            scaled_pixmap = QPixmap.fromImage(qt_img).scaled(
                self.size(),
                Qt.KeepAspectRatio,
                Qt.SmoothTransformation
            )
            self.setPixmap(scaled_pixmap)
