# Project MaskAR - maskar/utils/config.py
# (C) 2025 MUSE Corp. All rights reserved.
# Role: Overlay Profile Manager (JSON profiles merged over defaults)

import copy
import json
import os
from dataclasses import dataclass, field

from maskar.errors import ConfigError
from maskar.utils.logger import get_logger

BACKENDS = ("wasm", "webgl", "cpu")
SCALE_MODES = ("eyes", "box")

DEFAULT_CONFIG = {
    "camera_index": 0,
    "width": 1280,
    "height": 720,
    "fps": 30,
    "mirror": True,

    # Landmark source / debug options
    "backend": "wasm",
    "max_faces": 1,
    "triangulate_mesh": True,
    "render_pointcloud": False,
    "show_mesh": False,
    "face_patch": False,

    "overlay": {
        "asset_path": "assets/Mask.glb",
        "head_node": "entity_2",
        "left_eye_node": "eye_L",
        "right_eye_node": "eye_R",
        "gaze_node": None,          # None -> the head node turns as a whole
        "design_constant": 0.75,
        "anchor_landmark": "leftEyeUpper0",
        "look_at_landmark": "noseTip",
        "gaze_depth_factor": 1.0,
        "scale_mode": "eyes",
        "box_scale_divisor": 9.0,
    },
}


@dataclass(frozen=True)
class OverlaySettings:
    asset_path: str
    head_node: str
    left_eye_node: str
    right_eye_node: str
    gaze_node: str
    design_constant: float
    anchor_landmark: str
    look_at_landmark: str
    gaze_depth_factor: float
    scale_mode: str
    box_scale_divisor: float


@dataclass(frozen=True)
class OverlayConfig:
    camera_index: int
    width: int
    height: int
    fps: int
    mirror: bool
    backend: str
    max_faces: int
    triangulate_mesh: bool
    render_pointcloud: bool
    show_mesh: bool
    face_patch: bool
    overlay: OverlaySettings = field(repr=False)

    @classmethod
    def from_dict(cls, data, base_dir=None):
        """
        Validates a merged profile dict and returns a typed config.
        Relative asset paths resolve against base_dir.
        """
        try:
            ov = data["overlay"]
            head_node = str(ov["head_node"])
            asset_path = str(ov["asset_path"])
            if base_dir and not os.path.isabs(asset_path):
                asset_path = os.path.normpath(os.path.join(base_dir, asset_path))

            overlay = OverlaySettings(
                asset_path=asset_path,
                head_node=head_node,
                left_eye_node=str(ov["left_eye_node"]),
                right_eye_node=str(ov["right_eye_node"]),
                gaze_node=str(ov["gaze_node"] or head_node),
                design_constant=float(ov["design_constant"]),
                anchor_landmark=str(ov["anchor_landmark"]),
                look_at_landmark=str(ov["look_at_landmark"]),
                gaze_depth_factor=float(ov["gaze_depth_factor"]),
                scale_mode=str(ov["scale_mode"]),
                box_scale_divisor=float(ov["box_scale_divisor"]),
            )
            config = cls(
                camera_index=int(data["camera_index"]),
                width=int(data["width"]),
                height=int(data["height"]),
                fps=int(data["fps"]),
                mirror=bool(data["mirror"]),
                backend=str(data["backend"]),
                max_faces=int(data["max_faces"]),
                triangulate_mesh=bool(data["triangulate_mesh"]),
                render_pointcloud=bool(data["render_pointcloud"]),
                show_mesh=bool(data["show_mesh"]),
                face_patch=bool(data["face_patch"]),
                overlay=overlay,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Malformed config: {e}") from e

        config.validate()
        return config

    def validate(self):
        if self.max_faces < 1:
            raise ConfigError(f"max_faces must be >= 1 (got {self.max_faces})")
        if self.backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {BACKENDS} (got '{self.backend}')")
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(f"Invalid resolution {self.width}x{self.height}")
        if self.fps <= 0:
            raise ConfigError(f"fps must be positive (got {self.fps})")
        if self.overlay.scale_mode not in SCALE_MODES:
            raise ConfigError(f"scale_mode must be one of {SCALE_MODES} (got '{self.overlay.scale_mode}')")
        if self.overlay.design_constant <= 0:
            raise ConfigError("design_constant must be positive")
        if self.overlay.box_scale_divisor <= 0:
            raise ConfigError("box_scale_divisor must be positive")


def merge_defaults(loaded):
    """Merges a loaded profile over DEFAULT_CONFIG ('overlay' is merged key by key)."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for k, v in loaded.items():
        if k == "overlay" and isinstance(v, dict):
            merged["overlay"].update(v)
        else:
            merged[k] = v
    return merged


class ProfileManager:
    def __init__(self, config_dir=None):
        self.logger = get_logger("Config")
        self.root_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
        self.config_dir = config_dir or os.path.join(self.root_dir, "config")
        self.profiles = {}

        self.scan_profiles()

    def scan_profiles(self):
        """Scans the config folder for <profile>.json files."""
        if not os.path.exists(self.config_dir):
            os.makedirs(self.config_dir, exist_ok=True)

        names = sorted(
            os.path.splitext(f)[0] for f in os.listdir(self.config_dir) if f.endswith(".json")
        )

        if not names:
            self.create_profile("default")
            names = ["default"]

        for profile_name in names:
            self._load_single_profile(profile_name)

    def _load_single_profile(self, profile_name):
        path = self.get_profile_path(profile_name)
        loaded = {}

        if os.path.exists(path):
            try:
                with open(path, "r") as f:
                    loaded = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                self.logger.warning(f"[{profile_name}] Config load failed, using defaults: {e}")

        self.profiles[profile_name] = merge_defaults(loaded)

    def create_profile(self, profile_name, overrides=None):
        if profile_name in self.profiles or os.path.exists(self.get_profile_path(profile_name)):
            self.logger.warning(f"Profile {profile_name} already exists.")
            return False

        self.profiles[profile_name] = merge_defaults(overrides or {})
        self.save_profile(profile_name, self.profiles[profile_name])
        return True

    def get_profile_list(self):
        return sorted(self.profiles.keys())

    def get_profile_path(self, profile_name):
        return os.path.join(self.config_dir, f"{profile_name}.json")

    def get_config(self, profile_name):
        """Returns the validated OverlayConfig for a profile."""
        if profile_name not in self.profiles:
            raise ConfigError(f"Unknown profile '{profile_name}' (available: {self.get_profile_list()})")
        return OverlayConfig.from_dict(self.profiles[profile_name], base_dir=self.root_dir)

    def save_profile(self, profile_name, config_data):
        path = self.get_profile_path(profile_name)
        try:
            with open(path, "w") as f:
                json.dump(config_data, f, indent=4)
        except OSError as e:
            self.logger.error(f"Config save failed ({profile_name}): {e}")
