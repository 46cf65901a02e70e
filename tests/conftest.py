import numpy as np
import pytest
import trimesh

from maskar.ai.tracking.prediction import FacePrediction
from maskar.geometry.placement import BoundingBox, LandmarkFrame
from maskar.utils.config import OverlayConfig, merge_defaults

LEFT_EYE = (-0.5, 0.2, 0.8)
RIGHT_EYE = (0.5, 0.2, 0.8)


def _translation(xyz):
    return trimesh.transformations.translation_matrix(xyz)


@pytest.fixture
def eye_points():
    """Head-local eye positions used by overlay_scene (1 unit apart)."""
    return np.array(LEFT_EYE), np.array(RIGHT_EYE)


@pytest.fixture
def overlay_scene() -> trimesh.Scene:
    """Head box (2 units wide) with two eye spheres, exactly 1 unit apart."""
    scene = trimesh.Scene()
    scene.add_geometry(
        trimesh.creation.box(extents=(2.0, 2.0, 2.0)),
        node_name="entity_2",
        geom_name="head_geom",
        transform=_translation((10.0, -3.0, 0.0)),
    )
    scene.add_geometry(
        trimesh.creation.icosphere(subdivisions=1, radius=0.1),
        node_name="eye_L",
        geom_name="eye_L_geom",
        parent_node_name="entity_2",
        transform=_translation(LEFT_EYE),
    )
    scene.add_geometry(
        trimesh.creation.icosphere(subdivisions=1, radius=0.1),
        node_name="eye_R",
        geom_name="eye_R_geom",
        parent_node_name="entity_2",
        transform=_translation(RIGHT_EYE),
    )
    scene.add_geometry(
        trimesh.creation.box(extents=(0.5, 0.5, 0.5)),
        node_name="stand",
        geom_name="stand_geom",
        transform=_translation((0.0, -5.0, 0.0)),
    )
    return scene


@pytest.fixture
def empty_node_scene() -> trimesh.Scene:
    """Same node names as overlay_scene, but no mesh geometry anywhere."""
    scene = trimesh.Scene()
    scene.graph.update(frame_to="entity_2", frame_from=scene.graph.base_frame,
                       matrix=_translation((10.0, -3.0, 0.0)))
    scene.graph.update(frame_to="eye_L", frame_from="entity_2", matrix=_translation(LEFT_EYE))
    scene.graph.update(frame_to="eye_R", frame_from="entity_2", matrix=_translation(RIGHT_EYE))
    return scene


@pytest.fixture
def make_frame():
    """Builds a LandmarkFrame from the three landmarks the estimator reads."""
    def build(left=(100.0, 100.0, 0.0), right=(140.0, 100.0, 0.0), nose=(120.0, 130.0, -5.0)):
        return LandmarkFrame(
            scaled_mesh=np.array([left, right, nose], dtype=np.float64),
            annotations={
                "leftEyeUpper0": np.array([left], dtype=np.float64),
                "rightEyeUpper0": np.array([right], dtype=np.float64),
                "noseTip": np.array([nose], dtype=np.float64),
            },
        )
    return build


@pytest.fixture
def make_prediction(make_frame):
    """Builds a FacePrediction with a face box around the default landmarks."""
    def build(left=(100.0, 100.0, 0.0), right=(140.0, 100.0, 0.0), nose=(120.0, 130.0, -5.0),
              box=((90.0, 80.0), (150.0, 140.0))):
        frame = make_frame(left, right, nose)
        return FacePrediction(
            scaled_mesh=frame.scaled_mesh.astype(np.float32),
            bounding_box=BoundingBox(top_left=box[0], bottom_right=box[1]),
            annotations=frame.annotations,
        )
    return build


@pytest.fixture
def make_config():
    """Builds a validated OverlayConfig from top-level and overlay overrides."""
    def build(**overrides) -> OverlayConfig:
        overlay = overrides.pop("overlay", {})
        return OverlayConfig.from_dict(merge_defaults(dict(overrides, overlay=overlay)))
    return build


@pytest.fixture
def gradient_frame() -> np.ndarray:
    """100x200 BGR frame whose pixel values encode their own coordinates."""
    h, w = 100, 200
    ys, xs = np.mgrid[0:h, 0:w]
    frame = np.zeros((h, w, 3), dtype=np.uint8)
    frame[..., 0] = xs % 256
    frame[..., 1] = ys % 256
    frame[..., 2] = 7
    return frame
