#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Sequence

import numpy as np

# keeps the camera off the poles, where the orbit basis flips
POLE_EPS = 1e-6


@dataclass(frozen=True)
class CameraRigState:
    target: tuple[float, float, float]
    radius: float
    phi: float
    theta: float
    min_distance: float
    max_distance: float
    min_polar: float
    max_polar: float
    min_azimuth: float
    max_azimuth: float


def spherical_offset(radius: float, phi: float, theta: float) -> np.ndarray:
    """Offset from the target; phi is measured from +Y, theta around +Y from +Z."""
    sin_phi = math.sin(phi)
    return np.array(
        [
            radius * sin_phi * math.sin(theta),
            radius * math.cos(phi),
            radius * sin_phi * math.cos(theta),
        ],
        dtype=float,
    )


class CameraRigController:
    """Orbit camera around a fixed target, driven by the pointer or by the face.

    Pointer input is relative (rotation proportional to the pixel delta, one
    full turn per viewport height). Face input is absolute: the rest
    orientation plus an offset proportional to where the eye sits on screen.
    """

    def __init__(
        self,
        position: Sequence[float] = (0.0, 50.0, 100.0),
        target: Sequence[float] = (0.0, 40.0, 0.0),
        *,
        min_distance: float = 10.0,
        max_distance: float = 400.0,
        min_polar: float = 0.0,
        max_polar: float = math.pi,
        min_azimuth: float = -math.inf,
        max_azimuth: float = math.inf,
        rotate_speed: float = 1.0,
        face_azimuth_span: float = math.radians(60.0),
        face_polar_span: float = math.radians(30.0),
        face_y_range: float = 480.0,
        viewport: tuple[int, int] = (1280, 720),
    ) -> None:
        if min_distance <= 0 or max_distance < min_distance:
            raise ValueError(f"invalid distance bounds [{min_distance}, {max_distance}]")
        if face_y_range <= 0:
            raise ValueError("face_y_range must be positive")

        self.target = np.asarray(target, dtype=float)
        self.min_distance = float(min_distance)
        self.max_distance = float(max_distance)
        self.min_polar = float(min_polar)
        self.max_polar = float(max_polar)
        self.min_azimuth = float(min_azimuth)
        self.max_azimuth = float(max_azimuth)
        self.rotate_speed = float(rotate_speed)
        self.face_azimuth_span = float(face_azimuth_span)
        self.face_polar_span = float(face_polar_span)
        self.face_y_range = float(face_y_range)
        self.viewport_width, self.viewport_height = 1, 1
        self.set_viewport(*viewport)

        offset = np.asarray(position, dtype=float) - self.target
        radius = float(np.linalg.norm(offset))
        if radius <= 1e-9:
            raise ValueError("camera position must differ from the target")
        self.radius = radius
        self.theta = math.atan2(offset[0], offset[2])
        self.phi = math.acos(max(-1.0, min(1.0, offset[1] / radius)))
        self._clamp()

        self._rest_theta = self.theta
        self._rest_phi = self.phi
        self._rest_radius = self.radius

    @property
    def state(self) -> CameraRigState:
        return CameraRigState(
            target=tuple(float(v) for v in self.target),
            radius=self.radius,
            phi=self.phi,
            theta=self.theta,
            min_distance=self.min_distance,
            max_distance=self.max_distance,
            min_polar=self.min_polar,
            max_polar=self.max_polar,
            min_azimuth=self.min_azimuth,
            max_azimuth=self.max_azimuth,
        )

    def set_viewport(self, width: int, height: int) -> None:
        self.viewport_width = max(1, int(width))
        self.viewport_height = max(1, int(height))

    def apply_pointer_delta(self, delta_x: float, delta_y: float) -> None:
        per_px = 2.0 * math.pi / self.viewport_height * self.rotate_speed
        self.theta -= float(delta_x) * per_px
        self.phi -= float(delta_y) * per_px
        self._clamp()

    def apply_face_delta(self, screen_x: float, raw_y: float) -> None:
        nx = float(screen_x) / self.viewport_width - 0.5
        ny = float(raw_y) / self.face_y_range - 0.5
        self.theta = self._rest_theta + nx * self.face_azimuth_span
        self.phi = self._rest_phi + ny * self.face_polar_span
        self._clamp()

    def reset(self) -> None:
        self.theta = self._rest_theta
        self.phi = self._rest_phi
        self.radius = self._rest_radius
        self._clamp()

    def eye_position(self) -> np.ndarray:
        return self.target + spherical_offset(self.radius, self.phi, self.theta)

    def _clamp(self) -> None:
        if math.isfinite(self.min_azimuth) and math.isfinite(self.max_azimuth):
            self.theta = max(self.min_azimuth, min(self.max_azimuth, self.theta))
        self.phi = max(self.min_polar, min(self.max_polar, self.phi))
        self.phi = max(POLE_EPS, min(math.pi - POLE_EPS, self.phi))
        self.radius = max(self.min_distance, min(self.max_distance, self.radius))
