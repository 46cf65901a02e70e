import numpy as np
import pytest
import trimesh

from maskar.errors import CalibrationError
from maskar.graphics.asset import OverlayAsset


def _asset(scene, **kwargs):
    names = dict(head_node="entity_2", left_eye_node="eye_L", right_eye_node="eye_R")
    names.update(kwargs)
    return OverlayAsset(scene, **names)


def test_handles_resolve_and_gaze_defaults_to_head(overlay_scene):
    asset = _asset(overlay_scene)
    assert asset.handles.head == "entity_2"
    assert asset.handles.gaze == "entity_2"


def test_missing_node_is_reported_at_load(overlay_scene):
    with pytest.raises(CalibrationError, match="eye_X"):
        _asset(overlay_scene, left_eye_node="eye_X")


def test_gaze_node_outside_head_is_rejected(overlay_scene):
    with pytest.raises(CalibrationError, match="stand"):
        _asset(overlay_scene, gaze_node="stand")


def test_eye_points_are_head_local(overlay_scene, eye_points):
    asset = _asset(overlay_scene)
    left, right = eye_points
    np.testing.assert_allclose(asset.left_eye_point, left, atol=1e-9)
    np.testing.assert_allclose(asset.right_eye_point, right, atol=1e-9)


def test_rest_pose_offset_follows_anchor_side(overlay_scene, eye_points):
    asset = _asset(overlay_scene)
    left, right = eye_points
    np.testing.assert_allclose(asset.rest_pose_offset("leftEyeUpper0"), left, atol=1e-9)
    np.testing.assert_allclose(asset.rest_pose_offset("rightEyeUpper0"), right, atol=1e-9)


def test_calibrate_measures_eye_distance_once(overlay_scene):
    asset = _asset(overlay_scene)
    assert asset.calibrate().eye_distance == pytest.approx(1.0)

    with pytest.raises(CalibrationError):
        asset.calibrate()


def test_head_width_spans_subtree(overlay_scene):
    assert _asset(overlay_scene).head_width() == pytest.approx(2.0)


def test_head_width_without_geometry_fails_at_load(empty_node_scene):
    asset = _asset(empty_node_scene)
    with pytest.raises(CalibrationError, match="no mesh geometry"):
        asset.head_width()


def test_flat_head_has_no_width(eye_points):
    scene = trimesh.Scene()
    # Vertical quad in the y/z plane: zero extent along x
    flat = trimesh.Trimesh(
        vertices=[[0.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 1.0, 1.0], [0.0, 0.0, 1.0]],
        faces=[[0, 1, 2], [0, 2, 3]],
        process=False,
    )
    scene.add_geometry(flat, node_name="entity_2", geom_name="flat")
    left, right = eye_points
    for name, point in (("eye_L", left), ("eye_R", right)):
        scene.graph.update(frame_to=name, frame_from="entity_2",
                           matrix=trimesh.transformations.translation_matrix(point))

    with pytest.raises(CalibrationError, match="zero width"):
        _asset(scene).head_width()


def test_parts_cover_head_subtree_only(overlay_scene):
    parts = _asset(overlay_scene).parts()
    assert sorted(p.name for p in parts) == ["entity_2", "eye_L", "eye_R"]
    assert all(p.follows_gaze for p in parts)
    assert all(p.colors.shape == (len(p.vertices), 4) for p in parts)


def test_gaze_subtree_flags_parts(overlay_scene):
    parts = {p.name: p for p in _asset(overlay_scene, gaze_node="eye_L").parts()}
    assert parts["eye_L"].follows_gaze
    assert not parts["eye_R"].follows_gaze
    assert not parts["entity_2"].follows_gaze


def test_gaze_pivot_is_gaze_node_origin(overlay_scene, eye_points):
    asset = _asset(overlay_scene, gaze_node="eye_R")
    np.testing.assert_allclose(asset.gaze_pivot, eye_points[1], atol=1e-9)


def test_load_missing_file(tmp_path):
    with pytest.raises(CalibrationError, match="not found"):
        OverlayAsset.load(str(tmp_path / "nope.glb"), "entity_2", "eye_L", "eye_R")


@pytest.mark.parametrize("name, payload", [
    ("broken.glb", b"glTF\x02\x00\x00\x00garbage"),
    ("broken.obj", b"\x00\xff\x00not a mesh"),
    ("model.unknownext", b"whatever"),
])
def test_unreadable_file_is_a_calibration_error(tmp_path, name, payload):
    path = tmp_path / name
    path.write_bytes(payload)
    with pytest.raises(CalibrationError):
        OverlayAsset.load(str(path), "entity_2", "eye_L", "eye_R")
