"""Tests for the off-axis projection through the window frame."""

import math

import numpy as np
import pytest

from interactive_frame.frustum import (
    DegenerateFrustumError,
    FrustumProjector,
    WindowFrame,
    compute_frustum,
)


def _ndc(matrix, point):
    clip = matrix @ np.append(np.asarray(point, dtype=float), 1.0)
    return clip[:3] / clip[3]


class TestComputeFrustum:
    def test_centered_eye_gives_symmetric_bounds(self, frame):
        f = compute_frustum((0.0, 50.0, 70.0), frame, near=1.0, far=5000.0)
        assert f.left == pytest.approx(-f.right)
        assert f.bottom == pytest.approx(-f.top)
        assert f.distance == pytest.approx(100.0)
        assert f.right == pytest.approx(0.5)

    def test_lateral_move_shifts_both_bounds(self, frame):
        centered = compute_frustum((0.0, 50.0, 70.0), frame, 1.0, 5000.0)
        moved = compute_frustum((10.0, 50.0, 70.0), frame, 1.0, 5000.0)
        assert moved.left == pytest.approx(centered.left - 0.1)
        assert moved.right == pytest.approx(centered.right - 0.1)
        assert moved.right - moved.left == pytest.approx(centered.right - centered.left)
        assert abs(moved.left) > abs(moved.right)

    @pytest.mark.parametrize("eye", [(0.0, 50.0, 70.0), (25.0, 80.0, 40.0), (-60.0, 10.0, 200.0)])
    def test_frame_corners_map_to_viewport_corners(self, frame, eye):
        f = compute_frustum(eye, frame, 1.0, 5000.0)
        vp = f.view_projection
        np.testing.assert_allclose(_ndc(vp, frame.bottom_left)[:2], [-1.0, -1.0], atol=1e-9)
        np.testing.assert_allclose(_ndc(vp, frame.bottom_right)[:2], [1.0, -1.0], atol=1e-9)
        np.testing.assert_allclose(_ndc(vp, frame.top_left)[:2], [-1.0, 1.0], atol=1e-9)
        np.testing.assert_allclose(_ndc(vp, frame.top_right)[:2], [1.0, 1.0], atol=1e-9)

    def test_view_moves_eye_to_origin(self, frame):
        eye = (12.0, 30.0, 55.0)
        f = compute_frustum(eye, frame, 1.0, 5000.0)
        np.testing.assert_allclose(f.view @ np.append(eye, 1.0), [0.0, 0.0, 0.0, 1.0], atol=1e-9)

    def test_fov_estimate(self, frame):
        f = compute_frustum((0.0, 50.0, 70.0), frame, 1.0, 5000.0, aspect=1.0)
        expected = math.degrees(math.atan(200.0 / math.sqrt(15000.0)))
        assert f.fov_deg == pytest.approx(expected)
        tall = compute_frustum((0.0, 50.0, 70.0), frame, 1.0, 5000.0, aspect=0.5)
        assert tall.fov_deg == pytest.approx(expected * 2.0)

    def test_eye_behind_frame_rejected(self, frame):
        with pytest.raises(DegenerateFrustumError):
            compute_frustum((0.0, 50.0, -40.0), frame, 1.0, 5000.0)

    def test_eye_in_frame_plane_rejected(self, frame):
        with pytest.raises(DegenerateFrustumError):
            compute_frustum((0.0, 50.0, -30.0), frame, 1.0, 5000.0)

    def test_collinear_corners_rejected(self):
        bad = WindowFrame.from_points((0, 0, 0), (1, 0, 0), (2, 0, 0))
        with pytest.raises(DegenerateFrustumError):
            compute_frustum((0.0, 0.0, 10.0), bad, 1.0, 100.0)

    @pytest.mark.parametrize("near,far", [(0.0, 10.0), (-1.0, 10.0), (5.0, 5.0)])
    def test_invalid_clip_planes_rejected(self, frame, near, far):
        with pytest.raises(DegenerateFrustumError):
            compute_frustum((0.0, 50.0, 70.0), frame, near, far)


class TestFrustumProjector:
    def test_keeps_last_valid_matrix(self, frame, capsys):
        projector = FrustumProjector(frame)
        good = projector.project((0.0, 50.0, 70.0))
        assert good is not None
        for _ in range(3):
            assert projector.project((0.0, 50.0, -100.0)) is good
        assert projector.rejected == 3
        assert capsys.readouterr().out.count("projection rejected") == 1

    def test_recovers_after_rejection(self, frame, capsys):
        projector = FrustumProjector(frame)
        projector.project((0.0, 50.0, -100.0))
        recovered = projector.project((5.0, 50.0, 70.0))
        assert recovered is projector.last_valid
        assert "projection recovered" in capsys.readouterr().out

    def test_no_previous_matrix_yields_none(self, frame):
        assert FrustumProjector(frame).project((0.0, 50.0, -100.0)) is None

    def test_skewed_frame_warns(self, capsys):
        skewed = WindowFrame.from_points((0, 0, 0), (10, 0, 0), (3, 10, 0))
        FrustumProjector(skewed)
        assert "not rectangular" in capsys.readouterr().out


class TestWindowFrame:
    def test_geometry(self, frame):
        assert frame.width == pytest.approx(100.0)
        assert frame.height == pytest.approx(100.0)
        np.testing.assert_allclose(frame.top_right, [50.0, 100.0, -30.0])
        assert frame.skew() == pytest.approx(0.0)
        assert len(frame.outline()) == 4
