"""Shared fixtures: fake capture, fake pose model and a headless app context."""

import threading

import numpy as np
import pytest

from interactive_frame.camera_rig import CameraRigController
from interactive_frame.config import FrameConfig, profile_for
from interactive_frame.context import AppContext
from interactive_frame.face_signal import FaceSignalExtractor
from interactive_frame.frustum import FrustumProjector, WindowFrame
from interactive_frame.pose_types import Keypoint, PoseEstimate
from interactive_frame.scene import Scene


def make_estimate(left=(320.0, 240.0, 0.9), right=(300.0, 240.0, 0.9)):
    """Pose estimate with only the eye keypoints set; pass None to omit one."""
    keypoints = []
    if left is not None:
        keypoints.append(Keypoint("left_eye", left[0], left[1], left[2]))
    if right is not None:
        keypoints.append(Keypoint("right_eye", right[0], right[1], right[2]))
    return PoseEstimate(keypoints=tuple(keypoints))


class FakeReader:
    def __init__(self, size=(640, 480)):
        self.frame_size = size
        self.reads = 0
        self.released = False

    def read(self):
        self.reads += 1
        return np.zeros((self.frame_size[1], self.frame_size[0], 3), dtype=np.uint8)

    def release(self):
        self.released = True


class FakeModel:
    """Returns a fixed result; optionally blocks until ``gate`` is set."""

    def __init__(self, result=(), gate=None, error=None):
        self.result = tuple(result)
        self.gate = gate
        self.error = error
        self.calls = 0
        self.started = threading.Event()
        self.closed = False
        self.closed_during_estimate = False

    def estimate(self, frame):
        self.calls += 1
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.closed:
            self.closed_during_estimate = True
        if self.error is not None:
            raise self.error
        return self.result

    def close(self):
        self.closed = True


class FakeRenderer:
    def __init__(self, width=1280, height=720):
        self.width = width
        self.height = height
        self.frames = []

    @property
    def aspect(self):
        return self.width / float(self.height)

    def set_size(self, width, height):
        self.width, self.height = max(1, int(width)), max(1, int(height))

    def render(self, scene, frustum, *, window_frame=None, hud_lines=()):
        self.frames.append((frustum, list(hud_lines)))
        return np.zeros((self.height, self.width, 3), dtype=np.uint8)


class FakePoseSource:
    """Synchronous stand-in for PoseSource."""

    def __init__(self, estimates=(), frame_size=(640, 480)):
        self.estimates = tuple(estimates)
        self.frame_size = frame_size
        self.closed = False

    def latest_estimate(self):
        return self.estimates

    def close(self):
        self.closed = True


@pytest.fixture
def frame():
    p = profile_for(False)
    return WindowFrame.from_points(p.bottom_left, p.bottom_right, p.top_left)


@pytest.fixture
def make_context(frame):
    def _make(pose_source=None, **overrides):
        config = FrameConfig(**overrides)
        renderer = FakeRenderer(config.width, config.height)
        rig = CameraRigController(viewport=(config.width, config.height), face_y_range=config.video_height)
        return AppContext(
            config=config,
            rig=rig,
            projector=FrustumProjector(frame, near=config.near, far=config.far),
            extractor=FaceSignalExtractor(config.confidence_threshold),
            scene=Scene(),
            renderer=renderer,
            pose_source=pose_source,
        )

    return _make
