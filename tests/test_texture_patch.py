import numpy as np
import pytest

from maskar.geometry.placement import BoundingBox, estimate_texture_patch


def test_patch_is_pixel_copy_of_box(gradient_frame):
    box = BoundingBox(top_left=(20.0, 10.0), bottom_right=(60.0, 40.0))
    patch = estimate_texture_patch(box, gradient_frame)

    assert (patch.width, patch.height) == (40, 30)
    assert patch.pixels.shape == (30, 40, 3)
    np.testing.assert_array_equal(patch.pixels, gradient_frame[10:40, 20:60])

    patch.pixels[:] = 0
    assert gradient_frame[10, 20, 2] == 7


def test_center_is_flipped_to_scene_space(gradient_frame):
    box = BoundingBox(top_left=(20.0, 10.0), bottom_right=(60.0, 40.0))
    patch = estimate_texture_patch(box, gradient_frame)
    assert patch.center == pytest.approx((40.0, 100.0 - 25.0))


def test_fractional_box_snaps_inwards(gradient_frame):
    box = BoundingBox(top_left=(10.4, 20.6), bottom_right=(50.5, 70.2))
    patch = estimate_texture_patch(box, gradient_frame)

    assert patch.source_rect == (11, 21, 50, 70)
    assert patch.width <= box.width
    assert patch.height <= box.height


def test_partially_outside_box_is_clamped(gradient_frame):
    box = BoundingBox(top_left=(-10.0, -10.0), bottom_right=(30.0, 40.0))
    patch = estimate_texture_patch(box, gradient_frame)

    assert patch.source_rect == (0, 0, 30, 40)
    assert patch.pixels.shape == (40, 30, 3)


def test_box_past_right_edge_is_clamped(gradient_frame):
    box = BoundingBox(top_left=(180.0, 50.0), bottom_right=(260.0, 130.0))
    patch = estimate_texture_patch(box, gradient_frame)
    assert patch.source_rect == (180, 50, 200, 100)


@pytest.mark.parametrize("box", [
    BoundingBox(top_left=(300.0, 10.0), bottom_right=(400.0, 50.0)),
    BoundingBox(top_left=(-80.0, -80.0), bottom_right=(-10.0, -10.0)),
    BoundingBox(top_left=(float("nan"), 10.0), bottom_right=(40.0, 50.0)),
])
def test_unusable_box_gives_empty_patch(gradient_frame, box):
    patch = estimate_texture_patch(box, gradient_frame)
    assert patch.is_empty
    assert patch.pixels.size == 0


def test_explicit_screen_height_drives_the_flip(gradient_frame):
    box = BoundingBox(top_left=(20.0, 10.0), bottom_right=(60.0, 40.0))
    patch = estimate_texture_patch(box, gradient_frame, screen_height=720)
    assert patch.center[1] == pytest.approx(720.0 - 25.0)
