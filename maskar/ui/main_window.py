# Project MaskAR - maskar/ui/main_window.py
# (C) 2025 MUSE Corp. All rights reserved.

from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import QLabel, QMainWindow

from maskar.core.frame_loop import FrameLoop
from maskar.ui.viewport import Viewport
from maskar.utils.logger import get_logger


class MainWindow(QMainWindow):
    """
    [Main Application Window]
    - Center: Viewport (composited preview)
    - Drives the FrameLoop from the Qt event loop with a single-shot timer,
      so the next step is only scheduled after the current one finished.
    """

    def __init__(self, session, profile_name="default"):
        super().__init__()
        self.logger = get_logger("MainWindow")
        self.session = session

        self.setWindowTitle(f"MaskAR - {profile_name}")
        self.resize(session.config.width, session.config.height)
        self.setStyleSheet("background-color: #121212; color: #F0F0F0;")

        self._init_ui()

        self.loop = FrameLoop(session, on_frame=self.viewport.update_image)
        self.timer = QTimer(self)
        self.timer.setSingleShot(True)
        self.timer.timeout.connect(self._on_tick)

    def _init_ui(self):
        self.viewport = Viewport()
        self.setCentralWidget(self.viewport)

        overlay = "ON" if self.session.overlay_enabled else "OFF (see log)"
        self.status_label = QLabel(f"Overlay: {overlay}  |  M: mesh  P: points  Esc: quit")
        self.status_label.setStyleSheet("padding: 5px; color: #888;")
        self.statusBar().addWidget(self.status_label)

    def start(self):
        self.loop.start()
        self.timer.start(0)

    def _on_tick(self):
        if self.loop.step():
            self.timer.start(0)
        else:
            self.status_label.setText("Capture ended.")

    def keyPressEvent(self, event):
        """
        - M: toggle landmark mesh drawing
        - P: toggle scene point cloud
        - Esc: close
        """
        loop = self.loop
        key = event.key()
        if key == Qt.Key_M:
            loop.show_mesh = not loop.show_mesh
            self.logger.info(f"[KEY] show_mesh={loop.show_mesh}")
        elif key == Qt.Key_P:
            loop.render_pointcloud = not loop.render_pointcloud
            if not loop.render_pointcloud and self.session.renderer is not None:
                self.session.renderer.update_points(None)
            self.logger.info(f"[KEY] render_pointcloud={loop.render_pointcloud}")
        elif key == Qt.Key_Escape:
            self.close()
        else:
            super().keyPressEvent(event)

    def closeEvent(self, event):
        self.logger.info("[EXIT] Window closed, stopping loop.")
        self.timer.stop()
        self.loop.stop()
        event.accept()
