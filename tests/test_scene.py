import math

import numpy as np
import pytest

from maskar.graphics.scene import (
    SceneCamera,
    look_at_rotation,
    model_matrix,
    pivot_rotation,
    visible_height_at_depth,
    visible_width_at_depth,
)


def _apply(matrix, point):
    return (matrix @ np.append(np.asarray(point, dtype=np.float64), 1.0))[:3]


def _to_pixels(cam, point):
    clip = cam.view_projection() @ np.append(np.asarray(point, dtype=np.float64), 1.0)
    ndc = clip[:3] / clip[3]
    return (ndc[0] + 1.0) / 2.0 * cam.width, (ndc[1] + 1.0) / 2.0 * cam.height


def test_visible_height_at_unit_depth():
    assert visible_height_at_depth(1.0) == pytest.approx(2.0 * math.tan(math.radians(22.5)))


def test_camera_distance_frames_video_height():
    cam = SceneCamera(640, 480)
    assert cam.position[:2] == pytest.approx((320.0, 240.0))
    assert visible_height_at_depth(cam.position[2]) == pytest.approx(480.0)


def test_visible_size_equals_video_size():
    assert SceneCamera(640, 480).visible_size() == pytest.approx((640.0, 480.0))


@pytest.mark.parametrize("point", [(320.0, 240.0), (0.0, 0.0), (640.0, 480.0), (100.0, 400.0)])
def test_z0_plane_projects_one_to_one(point):
    cam = SceneCamera(640, 480)
    assert _to_pixels(cam, (point[0], point[1], 0.0)) == pytest.approx(point, abs=1e-6)


def test_look_at_straight_ahead_is_identity():
    rot = look_at_rotation((0.0, 0.0, 0.0), (0.0, 0.0, 10.0))
    np.testing.assert_allclose(rot, np.eye(3), atol=1e-12)


def test_look_at_own_position_is_identity():
    rot = look_at_rotation((5.0, 5.0, 5.0), (5.0, 5.0, 5.0))
    np.testing.assert_array_equal(rot, np.eye(3))


def test_look_at_turns_forward_axis_to_target():
    rot = look_at_rotation((0.0, 0.0, 0.0), (10.0, 0.0, 0.0))
    np.testing.assert_allclose(rot @ [0.0, 0.0, 1.0], [1.0, 0.0, 0.0], atol=1e-12)
    assert np.linalg.det(rot) == pytest.approx(1.0)


def test_look_at_along_up_axis_stays_orthonormal():
    rot = look_at_rotation((0.0, 0.0, 0.0), (0.0, 10.0, 0.0))
    np.testing.assert_allclose(rot.T @ rot, np.eye(3), atol=1e-9)


def test_pivot_rotation_keeps_pivot_fixed():
    rot = look_at_rotation((0.0, 0.0, 0.0), (3.0, 4.0, 5.0))
    pivot = (1.0, 2.0, 3.0)
    np.testing.assert_allclose(_apply(pivot_rotation(rot, pivot), pivot), pivot, atol=1e-12)


def test_model_matrix_scales_then_translates():
    m = model_matrix((10.0, 20.0, 30.0), 2.0)
    np.testing.assert_allclose(_apply(m, (1.0, 1.0, 1.0)), (12.0, 22.0, 32.0))


def test_visible_width_scales_with_aspect():
    assert visible_width_at_depth(10.0, 16 / 9) == pytest.approx(visible_height_at_depth(10.0) * 16 / 9)


def test_camera_offset_is_compensated():
    assert visible_height_at_depth(5.0, camera_z=5.0) == pytest.approx(visible_height_at_depth(10.0))
