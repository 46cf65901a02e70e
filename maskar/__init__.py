# Project MaskAR - 3D face overlay on a live camera feed
# (C) 2025 MUSE Corp. All rights reserved.

__version__ = "0.1.0"
