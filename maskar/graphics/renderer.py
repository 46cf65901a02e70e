# Project MaskAR - maskar/graphics/renderer.py
# (C) 2025 MUSE Corp. All rights reserved.

import cv2
import numpy as np
import moderngl

from maskar.graphics.scene import (
    SceneCamera,
    look_at_rotation,
    model_matrix,
    pivot_rotation,
)
from maskar.utils.logger import get_logger

QUAD_VS = """
    #version 330
    in vec2 in_vert;
    in vec2 in_tex;
    out vec2 v_tex;
    void main() {
        gl_Position = vec4(in_vert, 0.0, 1.0);
        v_tex = in_tex;
    }
"""

SCENE_QUAD_VS = """
    #version 330
    uniform mat4 mvp;
    in vec3 in_vert;
    in vec2 in_tex;
    out vec2 v_tex;
    void main() {
        gl_Position = mvp * vec4(in_vert, 1.0);
        v_tex = in_tex;
    }
"""

TEX_FS = """
    #version 330
    uniform sampler2D tex;
    in vec2 v_tex;
    out vec4 f_color;
    void main() {
        f_color = texture(tex, v_tex);
    }
"""

MESH_VS = """
    #version 330
    uniform mat4 mvp;
    in vec3 in_vert;
    in vec4 in_color;
    out vec4 v_color;
    void main() {
        gl_Position = mvp * vec4(in_vert, 1.0);
        v_color = in_color;
    }
"""

POINTS_VS = """
    #version 330
    uniform mat4 mvp;
    in vec3 in_vert;
    void main() {
        gl_Position = mvp * vec4(in_vert, 1.0);
    }
"""

COLOR_FS = """
    #version 330
    in vec4 v_color;
    out vec4 f_color;
    void main() {
        f_color = v_color;
    }
"""

POINTS_FS = """
    #version 330
    out vec4 f_color;
    void main() {
        f_color = vec4(1.0, 0.0, 0.0, 1.0);
    }
"""


def _mat(m):
    # numpy row-major -> GLSL column-major
    return np.ascontiguousarray(m.T, dtype='f4').tobytes()


class Renderer:
    """
    Offscreen compositor.
    Layers (back to front): video frame, face patch quad, overlay mesh, face points.
    The last placement/patch stay in effect until replaced.
    """

    def __init__(self, width, height, ctx=None):
        self.logger = get_logger("Renderer")

        # 1. ModernGL context (standalone)
        try:
            self._owns_ctx = ctx is None
            self.ctx = ctx or moderngl.create_context(standalone=True)
            self.logger.info("[GL] ModernGL context ready")
        except Exception as e:
            self.logger.error(f"ModernGL init failed: {e}")
            raise

        self.width = width
        self.height = height
        self.camera = SceneCamera(width, height)

        self.fbo = self.ctx.framebuffer(
            color_attachments=[self.ctx.renderbuffer((width, height), components=3)],
            depth_attachment=self.ctx.depth_renderbuffer((width, height)),
        )
        self.ctx.point_size = 3.0

        # 2. Shader programs
        self.quad_prog = self.ctx.program(vertex_shader=QUAD_VS, fragment_shader=TEX_FS)
        self.patch_prog = self.ctx.program(vertex_shader=SCENE_QUAD_VS, fragment_shader=TEX_FS)
        self.mesh_prog = self.ctx.program(vertex_shader=MESH_VS, fragment_shader=COLOR_FS)
        self.points_prog = self.ctx.program(vertex_shader=POINTS_VS, fragment_shader=POINTS_FS)

        # 3. Background quad (video frame)
        # Top vertices sample v=0 so the first image row ends up at the top
        quad_verts = np.array([
            # x, y, u, v
            -1.0,  1.0, 0.0, 0.0,  # Top Left
            -1.0, -1.0, 0.0, 1.0,  # Bottom Left
             1.0,  1.0, 1.0, 0.0,  # Top Right
             1.0, -1.0, 1.0, 1.0,  # Bottom Right
        ], dtype='f4')
        self.quad_vbo = self.ctx.buffer(quad_verts.tobytes())
        self.quad_vao = self.ctx.vertex_array(
            self.quad_prog, [(self.quad_vbo, '2f 2f', 'in_vert', 'in_tex')]
        )
        self.bg_texture = self.ctx.texture((width, height), 3)

        # 4. Face patch quad (rebuilt when the patch changes)
        self.patch_vbo = self.ctx.buffer(reserve=4 * 5 * 4, dynamic=True)
        self.patch_vao = self.ctx.vertex_array(
            self.patch_prog, [(self.patch_vbo, '3f 2f', 'in_vert', 'in_tex')]
        )
        self.patch_texture = None

        self.parts = []
        self.gaze_pivot = np.zeros(3)
        self.placement = None
        self.patch = None
        self.points = None

        view_w, view_h = self.camera.visible_size()
        self.logger.info(
            f"[GL] Renderer ready ({width}x{height}, camera z={self.camera.position[2]:.1f}, "
            f"z=0 plane {view_w:.0f}x{view_h:.0f})"
        )

    # ================================================================
    # Scene updates
    # ================================================================

    def set_overlay(self, parts, gaze_pivot=(0.0, 0.0, 0.0)):
        """Uploads the overlay mesh parts (head-local geometry)."""
        self._release_parts()
        self.gaze_pivot = np.asarray(gaze_pivot, dtype=np.float64)

        for part in parts:
            vbo = self.ctx.buffer(np.ascontiguousarray(part.vertices, dtype='f4').tobytes())
            cbo = self.ctx.buffer(np.ascontiguousarray(part.colors, dtype='f4').tobytes())
            ibo = self.ctx.buffer(np.ascontiguousarray(part.faces, dtype='i4').tobytes())
            vao = self.ctx.vertex_array(
                self.mesh_prog,
                [(vbo, '3f', 'in_vert'), (cbo, '4f', 'in_color')],
                ibo,
            )
            self.parts.append((part, vao, (vbo, cbo, ibo)))

        self.logger.info(f"[GL] Overlay uploaded ({len(self.parts)} parts)")

    def apply_placement(self, placement):
        self.placement = placement

    def update_face_patch(self, patch):
        if patch is None or patch.is_empty:
            self.patch = None
            return

        rgb = cv2.cvtColor(np.ascontiguousarray(patch.pixels), cv2.COLOR_BGR2RGB)
        size = (patch.width, patch.height)
        if self.patch_texture is None or self.patch_texture.size != size:
            if self.patch_texture is not None:
                self.patch_texture.release()
            self.patch_texture = self.ctx.texture(size, 3)
        self.patch_texture.write(rgb.tobytes())

        cx, cy = patch.center
        hw, hh = patch.width / 2.0, patch.height / 2.0
        verts = np.array([
            # x, y, z, u, v
            cx - hw, cy + hh, 0.0, 0.0, 0.0,
            cx - hw, cy - hh, 0.0, 0.0, 1.0,
            cx + hw, cy + hh, 0.0, 1.0, 0.0,
            cx + hw, cy - hh, 0.0, 1.0, 1.0,
        ], dtype='f4')
        self.patch_vbo.write(verts.tobytes())
        self.patch = patch

    def update_points(self, points):
        """Face points in scene space, or None to hide them."""
        self.points = None if points is None else np.ascontiguousarray(points, dtype='f4')

    def overlay_matrices(self):
        """Model matrix per part for the current placement."""
        p = self.placement
        if p is None:
            return []

        rotation = look_at_rotation(p.translation, p.look_at)
        head = model_matrix(p.translation, p.scale)
        gaze = pivot_rotation(rotation, self.gaze_pivot)

        matrices = []
        for part, vao, _ in self.parts:
            m = head @ gaze @ part.local_matrix if part.follows_gaze else head @ part.local_matrix
            matrices.append((vao, m))
        return matrices

    # ================================================================
    # Frame
    # ================================================================

    def render(self, frame):
        if frame is None:
            return None

        if frame.shape[1] != self.width or frame.shape[0] != self.height:
            frame = cv2.resize(frame, (self.width, self.height))

        # 1. Background
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        self.bg_texture.write(rgb.tobytes())

        self.fbo.use()
        self.ctx.clear()
        self.ctx.disable(moderngl.DEPTH_TEST)
        self.bg_texture.use(0)
        self.quad_vao.render(moderngl.TRIANGLE_STRIP)

        vp = self.camera.view_projection()

        # 2. Face patch (2D layer, no depth)
        if self.patch is not None:
            self.patch_texture.use(0)
            self.patch_prog['mvp'].write(_mat(vp))
            self.patch_vao.render(moderngl.TRIANGLE_STRIP)

        # 3. Overlay
        self.ctx.enable(moderngl.DEPTH_TEST | moderngl.BLEND)
        for vao, m in self.overlay_matrices():
            self.mesh_prog['mvp'].write(_mat(vp @ m))
            vao.render(moderngl.TRIANGLES)

        # 4. Face points
        if self.points is not None and len(self.points):
            vbo = self.ctx.buffer(self.points.tobytes())
            vao = self.ctx.vertex_array(self.points_prog, [(vbo, '3f', 'in_vert')])
            self.points_prog['mvp'].write(_mat(vp))
            vao.render(moderngl.POINTS)
            vao.release()
            vbo.release()

        self.ctx.disable(moderngl.DEPTH_TEST | moderngl.BLEND)

        # 5. Read back (GL rows are bottom-up)
        data = self.fbo.read(components=3)
        image = np.frombuffer(data, dtype=np.uint8).reshape((self.height, self.width, 3))
        return cv2.cvtColor(np.ascontiguousarray(np.flipud(image)), cv2.COLOR_RGB2BGR)

    def _release_parts(self):
        for _, vao, buffers in self.parts:
            vao.release()
            for b in buffers:
                b.release()
        self.parts = []

    def release(self):
        self._release_parts()
        if self.patch_texture is not None:
            self.patch_texture.release()
        if self._owns_ctx:
            self.ctx.release()
        self.logger.info("[GL] Renderer released")
