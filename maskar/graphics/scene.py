# Project MaskAR - maskar/graphics/scene.py
# (C) 2025 MUSE Corp. All rights reserved.

"""
Scene math for the pixel-aligned overlay scene.

The camera sits at (W/2, H/2, d) looking down -Z, with d chosen so the z=0
plane covers exactly W x H scene units. One scene unit is one video pixel, so
placements computed in scene space need no further projection work.

All matrices are row-major numpy arrays; transpose before uploading to GLSL.
"""

import math

import numpy as np

FOV = 45.0
NEAR = 0.1
FAR = 10000.0


def visible_height_at_depth(depth, camera_z=0.0, fov=FOV):
    """Height of the view frustum at a depth, compensating for camera_z != 0."""
    if depth < camera_z:
        depth -= camera_z
    else:
        depth += camera_z

    v_fov = fov * math.pi / 180.0
    return 2.0 * math.tan(v_fov / 2.0) * abs(depth)


def visible_width_at_depth(depth, aspect, camera_z=0.0, fov=FOV):
    return visible_height_at_depth(depth, camera_z, fov) * aspect


def perspective(fov, aspect, near, far):
    f = 1.0 / math.tan(math.radians(fov) / 2.0)
    return np.array([
        [f / aspect, 0.0, 0.0, 0.0],
        [0.0, f, 0.0, 0.0],
        [0.0, 0.0, (far + near) / (near - far), 2.0 * far * near / (near - far)],
        [0.0, 0.0, -1.0, 0.0],
    ], dtype=np.float64)


def look_at_view(eye, target, up=(0.0, 1.0, 0.0)):
    """Camera view matrix (world -> eye)."""
    eye = np.asarray(eye, dtype=np.float64)
    rot = _basis(eye, np.asarray(target, dtype=np.float64), np.asarray(up, dtype=np.float64), camera=True)

    view = np.eye(4)
    view[:3, :3] = rot.T
    view[:3, 3] = -rot.T @ eye
    return view


def look_at_rotation(position, target, up=(0.0, 1.0, 0.0)):
    """
    Rotation turning an object's local +Z axis towards target.
    Returns identity when target coincides with position.
    """
    return _basis(
        np.asarray(position, dtype=np.float64),
        np.asarray(target, dtype=np.float64),
        np.asarray(up, dtype=np.float64),
        camera=False,
    )


def _basis(position, target, up, camera):
    # Cameras look down their -Z, objects face along +Z
    z = position - target if camera else target - position
    if np.linalg.norm(z) == 0.0:
        return np.eye(3)
    z = z / np.linalg.norm(z)

    x = np.cross(up, z)
    if np.linalg.norm(x) == 0.0:
        # up and z parallel: nudge z off the axis
        z = z.copy()
        if abs(up[2]) == 1.0:
            z[0] += 0.0001
        else:
            z[2] += 0.0001
        z = z / np.linalg.norm(z)
        x = np.cross(up, z)

    x = x / np.linalg.norm(x)
    y = np.cross(z, x)
    return np.column_stack([x, y, z])


def model_matrix(translation, scale, rotation=None):
    """T * R * S with uniform scale."""
    m = np.eye(4)
    r = np.eye(3) if rotation is None else np.asarray(rotation, dtype=np.float64)
    m[:3, :3] = r * float(scale)
    m[:3, 3] = np.asarray(translation, dtype=np.float64)
    return m


def pivot_rotation(rotation, pivot):
    """4x4 rotating about a pivot point: P * R * P^-1."""
    m = np.eye(4)
    m[:3, :3] = rotation
    p = np.asarray(pivot, dtype=np.float64)
    m[:3, 3] = p - rotation @ p
    return m



class SceneCamera:
    """Perspective camera framing a width x height pixel plane at z=0."""

    def __init__(self, width, height, fov=FOV, near=NEAR, far=FAR):
        self.width = width
        self.height = height
        self.fov = fov
        self.near = near
        self.far = far
        self.aspect = width / height

        self.position = np.array([width / 2.0, height / 2.0, 0.0])
        self.position[2] = height / visible_height_at_depth(1.0, self.position[2], fov)
        self.target = np.array([width / 2.0, height / 2.0, 0.0])

    def projection_matrix(self):
        return perspective(self.fov, self.aspect, self.near, self.far)

    def view_matrix(self):
        return look_at_view(self.position, self.target)

    def view_projection(self):
        return self.projection_matrix() @ self.view_matrix()

    def visible_size(self):
        """Width x height the camera sees on the z=0 plane (equals the video size)."""
        depth = self.position[2]
        return (
            visible_width_at_depth(depth, self.aspect, fov=self.fov),
            visible_height_at_depth(depth, fov=self.fov),
        )
