# Project MaskAR - ai/tracking/__init__.py
# Landmark Source Module
# (C) 2025 MUSE Corp. All rights reserved.

"""
Landmark source for the overlay pipeline.

This module provides:
- FacePrediction: one face-mesh detection (scaled mesh, bounding box, annotations)
- FaceMesh: MediaPipe wrapper producing FacePrediction lists (maskar.ai.tracking.facemesh)
"""

from .prediction import MESH_ANNOTATIONS, REQUIRED_ANNOTATIONS, FacePrediction

__all__ = ['MESH_ANNOTATIONS', 'REQUIRED_ANNOTATIONS', 'FacePrediction']
