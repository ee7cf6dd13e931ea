"""Tests for pose estimate types."""

from types import SimpleNamespace

import pytest

from interactive_frame.pose_types import BLAZEPOSE_KEYPOINT_NAMES, PoseEstimate


def _landmark(x, y, visibility):
    return SimpleNamespace(x=x, y=y, visibility=visibility)


class TestPoseEstimate:
    def test_blazepose_eye_indices(self):
        assert len(BLAZEPOSE_KEYPOINT_NAMES) == 33
        assert BLAZEPOSE_KEYPOINT_NAMES[2] == "left_eye"
        assert BLAZEPOSE_KEYPOINT_NAMES[5] == "right_eye"

    def test_from_landmarks_scales_to_pixels(self):
        landmarks = [_landmark(0.25, 0.5, 0.9) for _ in BLAZEPOSE_KEYPOINT_NAMES]
        estimate = PoseEstimate.from_landmarks(landmarks, 640, 480)
        eye = estimate.keypoint("left_eye")
        assert eye.x == pytest.approx(160.0)
        assert eye.y == pytest.approx(240.0)
        assert eye.score == pytest.approx(0.9)

    def test_visibility_clamped(self):
        estimate = PoseEstimate.from_landmarks([_landmark(0.1, 0.1, 1.4)], 100, 100)
        assert estimate.keypoint("nose").score == 1.0

    def test_missing_visibility_scores_zero(self):
        estimate = PoseEstimate.from_landmarks([SimpleNamespace(x=0.1, y=0.1)], 100, 100)
        assert estimate.keypoint("nose").score == 0.0

    def test_unknown_keypoint(self):
        assert PoseEstimate().keypoint("left_eye") is None
