#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
import typing as _t

from .camera_rig import CameraRigController
from .face_signal import FaceSignalExtractor
from .frustum import FrustumProjector
from .scene import Scene

if _t.TYPE_CHECKING:
    from .config import FrameConfig
    from .pose_source import PoseSource
    from .renderer import WireframeRenderer
    from .window import FrameWindow


@dataclass
class AppContext:
    """Everything one running frame owns, built once at startup."""

    config: "FrameConfig"
    rig: CameraRigController
    projector: FrustumProjector
    extractor: FaceSignalExtractor
    scene: Scene
    renderer: "WireframeRenderer"
    pose_source: _t.Optional["PoseSource"] = None
    window: _t.Optional["FrameWindow"] = None
