#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

# BlazePose landmark order, as emitted by MediaPipe Pose.
BLAZEPOSE_KEYPOINT_NAMES = (
    "nose",
    "left_eye_inner",
    "left_eye",
    "left_eye_outer",
    "right_eye_inner",
    "right_eye",
    "right_eye_outer",
    "left_ear",
    "right_ear",
    "mouth_left",
    "mouth_right",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_pinky",
    "right_pinky",
    "left_index",
    "right_index",
    "left_thumb",
    "right_thumb",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
    "left_heel",
    "right_heel",
    "left_foot_index",
    "right_foot_index",
)


@dataclass(frozen=True)
class Keypoint:
    """Named body landmark in source-frame pixel space."""

    name: str
    x: float
    y: float
    score: float


@dataclass(frozen=True)
class PoseEstimate:
    keypoints: tuple[Keypoint, ...] = ()

    def keypoint(self, name: str) -> Optional[Keypoint]:
        for kp in self.keypoints:
            if kp.name == name:
                return kp
        return None

    @classmethod
    def from_landmarks(
        cls,
        landmarks: Sequence[object],
        width: int,
        height: int,
        names: Sequence[str] = BLAZEPOSE_KEYPOINT_NAMES,
    ) -> "PoseEstimate":
        """Build an estimate from normalized MediaPipe landmarks.

        Landmarks carry ``x``/``y`` in [0, 1]; they are scaled to pixels so the
        estimate matches the capture frame. ``visibility`` becomes the score.
        """
        keypoints = []
        for name, lm in zip(names, landmarks):
            score = float(getattr(lm, "visibility", 0.0) or 0.0)
            keypoints.append(
                Keypoint(
                    name=name,
                    x=float(lm.x) * width,
                    y=float(lm.y) * height,
                    score=max(0.0, min(1.0, score)),
                )
            )
        return cls(keypoints=tuple(keypoints))
