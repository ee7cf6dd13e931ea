#!/usr/bin/env python3

from __future__ import annotations

import argparse
from dataclasses import dataclass
import os
from typing import Optional, Sequence

from dotenv import load_dotenv

Vec3 = tuple[float, float, float]


@dataclass(frozen=True)
class DeviceProfile:
    """Frame placement and asset transform for one class of device."""

    name: str
    bottom_left: Vec3
    bottom_right: Vec3
    top_left: Vec3
    asset_scale: Vec3
    asset_position: Vec3
    asset_rotation_deg: Vec3


# touch devices: shallower frame, smaller asset
TOUCH_PROFILE = DeviceProfile(
    name="touchscreen",
    bottom_left=(-50.0, 0.0, -20.0),
    bottom_right=(50.0, 0.0, -20.0),
    top_left=(-50.0, 100.0, -20.0),
    asset_scale=(0.4, 0.4, 0.35),
    asset_position=(-140.0, -300.0, -800.0),
    asset_rotation_deg=(-15.0, 0.0, 0.0),
)

DESKTOP_PROFILE = DeviceProfile(
    name="desktop",
    bottom_left=(-50.0, 0.0, -30.0),
    bottom_right=(50.0, 0.0, -30.0),
    top_left=(-50.0, 100.0, -30.0),
    asset_scale=(150 * 0.22, 150 * 0.35, 150 * 0.22),
    asset_position=(-140.0, -300.0, -800.0),
    asset_rotation_deg=(-15.0, 0.0, 0.0),
)


def profile_for(touchscreen: bool) -> DeviceProfile:
    return TOUCH_PROFILE if touchscreen else DESKTOP_PROFILE


@dataclass(frozen=True)
class FrameConfig:
    camera: int = 0
    camera_url: str = ""
    pose_landmarker_task: str = ""
    face_tracking: bool = True
    confidence_threshold: float = 0.7
    video_width: int = 640
    video_height: int = 480
    touchscreen: bool = False
    asset: str = ""
    asset_host: str = ""
    width: int = 1280
    height: int = 720
    fps: float = 60.0
    near: float = 1.0
    far: float = 5000.0
    face_azimuth_span_deg: float = 60.0
    face_polar_span_deg: float = 30.0
    rotate_speed: float = 1.0
    min_distance: float = 10.0
    max_distance: float = 400.0
    draw_frame: bool = True
    show_hud: bool = False
    window_name: str = "Interactive Frame"

    @property
    def profile(self) -> DeviceProfile:
        return profile_for(self.touchscreen)

    def validate(self) -> "FrameConfig":
        if self.video_width <= 0 or self.video_height <= 0:
            raise ValueError("video size must be positive")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("window size must be positive")
        if self.fps <= 0:
            raise ValueError("fps must be positive")
        if self.near <= 0 or self.far <= self.near:
            raise ValueError(f"invalid clip planes near={self.near}, far={self.far}")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence threshold must be in [0, 1]")
        if self.min_distance <= 0 or self.max_distance < self.min_distance:
            raise ValueError("invalid orbit distance bounds")
        return self


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, default)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[Config] ignoring {name}={raw!r}: not an integer")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[Config] ignoring {name}={raw!r}: not a number")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    d = FrameConfig()
    parser = argparse.ArgumentParser(description="Head-tracked virtual window")
    parser.add_argument("--camera", type=int, default=_env_int("FRAME_CAMERA", d.camera), help="camera index")
    parser.add_argument(
        "--camera-url",
        type=str,
        default=_env_str("FRAME_CAMERA_URL", d.camera_url),
        help="Read frames from a stream URL (e.g. a camera broker) instead of a device.",
    )
    parser.add_argument(
        "--pose-landmarker-task",
        type=str,
        default=_env_str("FRAME_POSE_LANDMARKER_TASK", d.pose_landmarker_task),
        help="Path to mediapipe pose_landmarker.task when using task-based mediapipe builds.",
    )
    parser.add_argument(
        "--face-tracking",
        action=argparse.BooleanOptionalAction,
        default=_env_bool("FRAME_FACE_TRACKING", d.face_tracking),
        help="Drive the camera from the tracked eye; off means pointer only.",
    )
    parser.add_argument(
        "--confidence-threshold",
        type=float,
        default=_env_float("FRAME_CONFIDENCE_THRESHOLD", d.confidence_threshold),
        help="Eye keypoints at or below this score are ignored.",
    )
    parser.add_argument("--video-width", type=int, default=_env_int("FRAME_VIDEO_WIDTH", d.video_width),
                        help="Capture width assumed until the camera reports its own.")
    parser.add_argument("--video-height", type=int, default=_env_int("FRAME_VIDEO_HEIGHT", d.video_height))
    parser.add_argument(
        "--touchscreen",
        action=argparse.BooleanOptionalAction,
        default=_env_bool("FRAME_TOUCHSCREEN", d.touchscreen),
        help="Use the touch-device profile (shallower frame, smaller asset).",
    )
    parser.add_argument("--asset", type=str, default=_env_str("FRAME_ASSET", d.asset),
                        help=".npz wireframe path or URL; empty uses the built-in street.")
    parser.add_argument("--asset-host", type=str, default=_env_str("FRAME_ASSET_HOST", d.asset_host),
                        help="Base URL that relative asset names are resolved against.")
    parser.add_argument("--width", type=int, default=_env_int("FRAME_WIDTH", d.width))
    parser.add_argument("--height", type=int, default=_env_int("FRAME_HEIGHT", d.height))
    parser.add_argument("--fps", type=float, default=_env_float("FRAME_FPS", d.fps))
    parser.add_argument("--near", type=float, default=_env_float("FRAME_NEAR", d.near))
    parser.add_argument("--far", type=float, default=_env_float("FRAME_FAR", d.far))
    parser.add_argument("--face-azimuth-span-deg", type=float,
                        default=_env_float("FRAME_FACE_AZIMUTH_SPAN_DEG", d.face_azimuth_span_deg))
    parser.add_argument("--face-polar-span-deg", type=float,
                        default=_env_float("FRAME_FACE_POLAR_SPAN_DEG", d.face_polar_span_deg))
    parser.add_argument("--rotate-speed", type=float, default=_env_float("FRAME_ROTATE_SPEED", d.rotate_speed))
    parser.add_argument("--min-distance", type=float, default=_env_float("FRAME_MIN_DISTANCE", d.min_distance))
    parser.add_argument("--max-distance", type=float, default=_env_float("FRAME_MAX_DISTANCE", d.max_distance))
    parser.add_argument("--draw-frame", action=argparse.BooleanOptionalAction,
                        default=_env_bool("FRAME_DRAW_FRAME", d.draw_frame))
    parser.add_argument("--hud", dest="show_hud", action=argparse.BooleanOptionalAction,
                        default=_env_bool("FRAME_HUD", d.show_hud), help="Overlay tracking status text.")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None, *, dotenv_path: Optional[str] = None) -> FrameConfig:
    load_dotenv(dotenv_path=dotenv_path)
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return FrameConfig(**vars(args)).validate()
    except ValueError as exc:
        parser.error(str(exc))
        raise
