# Project MaskAR - maskar/main.py
# Entry point: profile -> session -> window
# (C) 2025 MUSE Corp. All rights reserved.

import argparse
import signal
import sys

from maskar.core.session import OverlaySession
from maskar.errors import CameraError, ConfigError
from maskar.utils.config import ProfileManager
from maskar.utils.logger import get_logger, set_level

logger = get_logger("Main")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="MaskAR: 3D overlay on a tracked face")
    parser.add_argument("--profile", default="default", help="Profile name (config/<profile>.json)")
    parser.add_argument("--config-dir", default=None, help="Folder holding profile JSON files")
    parser.add_argument("--list-profiles", action="store_true", help="Print available profiles and exit")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console log verbosity")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    profile_mgr = ProfileManager(args.config_dir)
    if args.list_profiles:
        for name in profile_mgr.get_profile_list():
            print(name)
        return 0

    try:
        config = profile_mgr.get_config(args.profile)
    except ConfigError as e:
        logger.error(f"[CONFIG] {e}")
        return 2

    # Qt only past this point
    from PySide6.QtWidgets import QApplication
    import qdarktheme

    from maskar.ui.main_window import MainWindow

    signal.signal(signal.SIGINT, signal.SIG_DFL)

    app = QApplication(sys.argv)
    qdarktheme.setup_theme("dark")

    session = OverlaySession(config)
    try:
        session.open()
    except CameraError as e:
        logger.error(f"[CAM] {e}")
        return 1

    logger.info(f"[START] Profile '{args.profile}' (backend={config.backend})")
    try:
        window = MainWindow(session, profile_name=args.profile)
        window.show()
        window.start()
        return app.exec()
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
