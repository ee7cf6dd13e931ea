#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import Optional, Sequence

from .coordinate_mapper import scale_value
from .pose_types import PoseEstimate

EYE_CONFIDENCE_THRESHOLD = 0.7


class SignalStatus(enum.Enum):
    UPDATED = "updated"
    NO_SUBJECT = "no_subject"
    NO_KEYPOINT = "no_keypoint"
    LOW_CONFIDENCE = "low_confidence"


@dataclass(frozen=True)
class VirtualEyePosition:
    x: int
    raw_y: float


@dataclass(frozen=True)
class FaceSignal:
    """Outcome of one extraction; ``position`` is set only when UPDATED."""

    status: SignalStatus
    position: Optional[VirtualEyePosition] = None
    right_x: Optional[int] = None

    @property
    def present(self) -> bool:
        return self.status is SignalStatus.UPDATED


def _mirrored_x(x: float, video_source_width: float, display_width: float) -> int:
    scaled = scale_value(x, (0, video_source_width), (0, display_width))
    # front-facing capture: horizontal sense is inverted relative to the display
    return int(display_width - scaled)


class FaceSignalExtractor:
    """Turns the latest pose estimates into a screen-space eye position.

    Only the first subject is considered. The x coordinate is rescaled from the
    capture width to the display width and mirrored; y is passed through in
    capture pixels, exactly as the tracker reports it.
    """

    def __init__(self, confidence_threshold: float = EYE_CONFIDENCE_THRESHOLD) -> None:
        self.confidence_threshold = float(confidence_threshold)

    def extract(
        self,
        estimates: Sequence[PoseEstimate],
        video_source_width: float,
        display_width: float,
    ) -> FaceSignal:
        if len(estimates) == 0:
            return FaceSignal(SignalStatus.NO_SUBJECT)

        subject = estimates[0]
        left_eye = subject.keypoint("left_eye")
        if left_eye is None:
            return FaceSignal(SignalStatus.NO_KEYPOINT)
        if left_eye.score <= self.confidence_threshold:
            return FaceSignal(SignalStatus.LOW_CONFIDENCE)

        right_x = None
        right_eye = subject.keypoint("right_eye")
        if right_eye is not None:
            right_x = _mirrored_x(right_eye.x, video_source_width, display_width)

        position = VirtualEyePosition(
            x=_mirrored_x(left_eye.x, video_source_width, display_width),
            raw_y=float(left_eye.y),
        )
        return FaceSignal(SignalStatus.UPDATED, position=position, right_x=right_x)
