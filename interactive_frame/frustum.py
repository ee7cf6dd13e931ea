#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional, Sequence

import numpy as np


class DegenerateFrustumError(ValueError):
    """Raised when the eye/frame geometry cannot produce a finite frustum."""


def _normalize(v: np.ndarray) -> np.ndarray:
    v = np.asarray(v, dtype=float)
    n = np.linalg.norm(v)
    return v / n if n > 1e-9 else v


@dataclass(frozen=True, eq=False)
class WindowFrame:
    """Planar portal given by three of its corners."""

    bottom_left: np.ndarray
    bottom_right: np.ndarray
    top_left: np.ndarray

    @classmethod
    def from_points(
        cls,
        bottom_left: Sequence[float],
        bottom_right: Sequence[float],
        top_left: Sequence[float],
    ) -> "WindowFrame":
        return cls(
            bottom_left=np.asarray(bottom_left, dtype=float),
            bottom_right=np.asarray(bottom_right, dtype=float),
            top_left=np.asarray(top_left, dtype=float),
        )

    @property
    def top_right(self) -> np.ndarray:
        return self.top_left + (self.bottom_right - self.bottom_left)

    @property
    def width(self) -> float:
        return float(np.linalg.norm(self.bottom_right - self.bottom_left))

    @property
    def height(self) -> float:
        return float(np.linalg.norm(self.top_left - self.bottom_left))

    def outline(self) -> list[np.ndarray]:
        return [self.bottom_left, self.bottom_right, self.top_right, self.top_left]

    def skew(self) -> float:
        """|cos| of the angle between the bottom and left edges (0 for a rectangle)."""
        a = self.bottom_right - self.bottom_left
        b = self.top_left - self.bottom_left
        na, nb = np.linalg.norm(a), np.linalg.norm(b)
        if na <= 1e-9 or nb <= 1e-9:
            return 1.0
        return float(abs(np.dot(a, b)) / (na * nb))


@dataclass(frozen=True, eq=False)
class FrustumMatrix:
    projection: np.ndarray
    view: np.ndarray
    left: float
    right: float
    bottom: float
    top: float
    near: float
    far: float
    eye: np.ndarray
    distance: float
    aspect: float
    fov_deg: float

    @property
    def view_projection(self) -> np.ndarray:
        return self.projection @ self.view


def off_axis_projection(left: float, right: float, bottom: float, top: float, near: float, far: float) -> np.ndarray:
    return np.array(
        [
            [2.0 * near / (right - left), 0.0, (right + left) / (right - left), 0.0],
            [0.0, 2.0 * near / (top - bottom), (top + bottom) / (top - bottom), 0.0],
            [0.0, 0.0, (far + near) / (near - far), 2.0 * far * near / (near - far)],
            [0.0, 0.0, -1.0, 0.0],
        ],
        dtype=float,
    )


def view_matrix(eye: np.ndarray, right: np.ndarray, up: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """World-to-camera transform for a camera at ``eye`` looking along ``-normal``."""
    R = np.stack([right, up, normal], axis=0)
    V = np.eye(4, dtype=float)
    V[:3, :3] = R
    V[:3, 3] = -R @ eye
    return V


def compute_frustum(
    eye: Sequence[float],
    frame: WindowFrame,
    near: float,
    far: float,
    aspect: float = 1.0,
) -> FrustumMatrix:
    """Generalized perspective projection through ``frame`` as seen from ``eye``.

    The bounds are measured at the near plane, so the frame's corners map
    exactly onto the corners of the viewport whatever the eye position.
    """
    if near <= 0.0 or far <= near:
        raise DegenerateFrustumError(f"invalid clip planes near={near}, far={far}")

    pe = np.asarray(eye, dtype=float)
    pa, pb, pc = frame.bottom_left, frame.bottom_right, frame.top_left

    vr = _normalize(pb - pa)
    vu = _normalize(pc - pa)
    cross = np.cross(vr, vu)
    if np.linalg.norm(cross) <= 1e-9:
        raise DegenerateFrustumError("frame corners are collinear")
    vn = _normalize(cross)

    va = pa - pe
    vb = pb - pe
    vc = pc - pe

    d = float(-np.dot(va, vn))
    if not math.isfinite(d) or d <= 1e-9:
        raise DegenerateFrustumError(f"eye is not in front of the frame plane (d={d:.4f})")

    scale = near / d
    left = float(np.dot(vr, va) * scale)
    right = float(np.dot(vr, vb) * scale)
    bottom = float(np.dot(vu, va) * scale)
    top = float(np.dot(vu, vc) * scale)
    if right - left <= 1e-12 or top - bottom <= 1e-12:
        raise DegenerateFrustumError("frame has no extent as seen from the eye")

    projection = off_axis_projection(left, right, bottom, top, near, far)
    # orthonormal camera basis even when the frame is slightly skewed
    view = view_matrix(pe, vr, _normalize(np.cross(vn, vr)), vn)
    if not (np.all(np.isfinite(projection)) and np.all(np.isfinite(view))):
        raise DegenerateFrustumError("non-finite projection")

    # aspect only feeds the FOV estimate; the frame always fills the viewport,
    # stretched to its shape, so the matrix does not depend on it
    aspect = float(aspect) if aspect > 0 else 1.0
    span = float(np.linalg.norm(pb - pa) + np.linalg.norm(pc - pa))
    fov_deg = math.degrees(1.0 / min(1.0, aspect) * math.atan(span / float(np.linalg.norm(va))))

    return FrustumMatrix(
        projection=projection,
        view=view,
        left=left,
        right=right,
        bottom=bottom,
        top=top,
        near=float(near),
        far=float(far),
        eye=pe,
        distance=d,
        aspect=aspect,
        fov_deg=fov_deg,
    )


class FrustumProjector:
    """Per-frame projector that keeps the last valid matrix on bad geometry."""

    SKEW_TOLERANCE = 0.02

    def __init__(self, frame: WindowFrame, near: float = 1.0, far: float = 5000.0) -> None:
        self.frame = frame
        self.near = float(near)
        self.far = float(far)
        self.last_valid: Optional[FrustumMatrix] = None
        self.rejected = 0
        self._reject_reported = False

        skew = frame.skew()
        if skew > self.SKEW_TOLERANCE:
            print(f"[Frame] window frame is not rectangular (|cos|={skew:.3f}); projection will be approximate")

    def project(self, eye: Sequence[float], aspect: float = 1.0) -> Optional[FrustumMatrix]:
        try:
            result = compute_frustum(eye, self.frame, self.near, self.far, aspect)
        except DegenerateFrustumError as exc:
            self.rejected += 1
            if not self._reject_reported:
                print(f"[Frame] projection rejected, keeping previous matrix: {exc}")
                self._reject_reported = True
            return self.last_valid

        if self._reject_reported:
            print("[Frame] projection recovered")
            self._reject_reported = False
        self.last_valid = result
        return result
