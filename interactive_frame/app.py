#!/usr/bin/env python3

from __future__ import annotations

import math
from typing import Optional, Sequence

from .camera_rig import CameraRigController
from .config import FrameConfig, parse_args
from .context import AppContext
from .face_signal import FaceSignalExtractor
from .frustum import FrustumProjector, WindowFrame
from .pose_backend import open_camera_pose_source
from .render_loop import RenderLoop
from .renderer import WireframeRenderer
from .scene import build_scene

RIG_POSITION = (0.0, 50.0, 100.0)
RIG_TARGET = (0.0, 40.0, 0.0)


def build_context(config: FrameConfig, *, with_window: bool = True) -> AppContext:
    profile = config.profile
    frame = WindowFrame.from_points(profile.bottom_left, profile.bottom_right, profile.top_left)
    projector = FrustumProjector(frame, near=config.near, far=config.far)

    rig = CameraRigController(
        RIG_POSITION,
        RIG_TARGET,
        min_distance=config.min_distance,
        max_distance=config.max_distance,
        rotate_speed=config.rotate_speed,
        face_azimuth_span=math.radians(config.face_azimuth_span_deg),
        face_polar_span=math.radians(config.face_polar_span_deg),
        face_y_range=config.video_height,
        viewport=(config.width, config.height),
    )

    scene = build_scene(
        config.asset,
        asset_host=config.asset_host,
        scale=profile.asset_scale,
        position=profile.asset_position,
        rotation_deg=profile.asset_rotation_deg,
    )
    renderer = WireframeRenderer(config.width, config.height)

    window = None
    if with_window:
        from .window import FrameWindow

        window = FrameWindow(config.window_name, (config.width, config.height))

    pose_source = None
    if config.face_tracking:
        pose_source = open_camera_pose_source(config)
        if not pose_source.setup():
            pose_source = None

    print(f"[Frame] profile={profile.name}, face_tracking={'on' if pose_source is not None else 'off'}")
    return AppContext(
        config=config,
        rig=rig,
        projector=projector,
        extractor=FaceSignalExtractor(config.confidence_threshold),
        scene=scene,
        renderer=renderer,
        pose_source=pose_source,
        window=window,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    config = parse_args(argv)
    RenderLoop(build_context(config)).run()


if __name__ == "__main__":
    main()
