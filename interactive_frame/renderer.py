#!/usr/bin/env python3

from __future__ import annotations

from typing import Optional, Sequence

import cv2
import numpy as np

from .frustum import FrustumMatrix, WindowFrame
from .scene import Scene

_COORD_LIMIT = 1_000_000


class WireframeRenderer:
    """Rasterizes scene edges through the frame's off-axis projection."""

    def __init__(
        self,
        width: int,
        height: int,
        *,
        background: tuple[int, int, int] = (18, 18, 18),
        frame_color: tuple[int, int, int] = (0, 200, 255),
        thickness: int = 1,
    ) -> None:
        self.width, self.height = 1, 1
        self.set_size(width, height)
        self.background = background
        self.frame_color = frame_color
        self.thickness = int(thickness)

    @property
    def aspect(self) -> float:
        return self.width / float(self.height)

    def set_size(self, width: int, height: int) -> None:
        self.width = max(1, int(width))
        self.height = max(1, int(height))

    def _to_screen(self, clip: np.ndarray) -> tuple[int, int]:
        ndc = clip[:3] / clip[3]
        x = (ndc[0] + 1.0) * 0.5 * self.width
        y = (1.0 - ndc[1]) * 0.5 * self.height
        x = int(max(-_COORD_LIMIT, min(_COORD_LIMIT, x)))
        y = int(max(-_COORD_LIMIT, min(_COORD_LIMIT, y)))
        return x, y

    def _draw_segment(self, image: np.ndarray, a: np.ndarray, b: np.ndarray, color: tuple[int, int, int]) -> bool:
        # clip against the near plane (z + w >= 0) before the perspective divide
        da = a[2] + a[3]
        db = b[2] + b[3]
        if da < 0.0 and db < 0.0:
            return False
        if da < 0.0:
            a = a + (b - a) * (da / (da - db))
        elif db < 0.0:
            b = b + (a - b) * (db / (db - da))
        if a[3] <= 1e-9 or b[3] <= 1e-9:
            return False

        ok, p0, p1 = cv2.clipLine((0, 0, self.width, self.height), self._to_screen(a), self._to_screen(b))
        if not ok:
            return False
        cv2.line(image, p0, p1, color, self.thickness, cv2.LINE_AA)
        return True

    def draw_polyline(
        self,
        image: np.ndarray,
        points: Sequence[np.ndarray],
        view_projection: np.ndarray,
        color: tuple[int, int, int],
        closed: bool = True,
    ) -> int:
        pts = np.asarray(points, dtype=float)
        clip = (view_projection @ np.hstack([pts, np.ones((len(pts), 1))]).T).T
        pairs = list(zip(range(len(pts) - 1), range(1, len(pts))))
        if closed and len(pts) > 2:
            pairs.append((len(pts) - 1, 0))
        return sum(self._draw_segment(image, clip[i], clip[j], color) for i, j in pairs)

    def render(
        self,
        scene: Scene,
        frustum: Optional[FrustumMatrix],
        *,
        window_frame: Optional[WindowFrame] = None,
        hud_lines: Sequence[str] = (),
    ) -> np.ndarray:
        image = np.empty((self.height, self.width, 3), dtype=np.uint8)
        image[:] = self.background

        if frustum is None:
            cv2.putText(image, "waiting for a valid projection", (12, 28),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 1, cv2.LINE_AA)
            return image

        vp = frustum.view_projection
        for obj in scene.objects:
            world = obj.world_vertices()
            clip = (vp @ np.hstack([world, np.ones((len(world), 1))]).T).T
            for i, j in obj.edges:
                self._draw_segment(image, clip[i], clip[j], obj.color)

        if window_frame is not None:
            self.draw_polyline(image, window_frame.outline(), vp, self.frame_color, closed=True)

        for n, line in enumerate(hud_lines):
            cv2.putText(image, line, (12, 24 + 22 * n),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.55, (0, 255, 0), 1, cv2.LINE_AA)
        return image
