#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass
import threading
import time
from typing import Callable, Optional

import numpy as np

from .context import AppContext
from .face_signal import FaceSignal, SignalStatus


class FrameScheduler:
    """Re-arms a callback once per display refresh until stopped."""

    def __init__(self, fps: float = 60.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.interval = 1.0 / float(fps)
        self._clock = clock
        self._stop = threading.Event()
        self._running = False
        self.ticks = 0
        self.late_ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    def run(self, callback: Callable[[], None]) -> None:
        """Tick until ``stop()``; a stop issued before ``run`` is honoured."""
        self._running = True
        deadline = self._clock()
        try:
            while not self._stop.is_set():
                callback()
                self.ticks += 1
                deadline += self.interval
                remaining = deadline - self._clock()
                if remaining > 0:
                    self._stop.wait(remaining)
                else:
                    self.late_ticks += 1
                    deadline = self._clock()
        finally:
            self._running = False

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def reset(self) -> None:
        """Re-arm a stopped scheduler so ``run`` can be called again."""
        self._stop.clear()


@dataclass(frozen=True)
class TickReport:
    frame_index: int
    signal_status: Optional[SignalStatus]
    projection_rejected: bool
    eye: np.ndarray
    viewport: tuple[int, int]


class RenderLoop:
    """Per-frame driver: pose → eye signal → rig → frustum → draw."""

    def __init__(self, ctx: AppContext, scheduler: Optional[FrameScheduler] = None) -> None:
        self.ctx = ctx
        self.scheduler = scheduler or FrameScheduler(ctx.config.fps)
        self.face_tracking_enabled = bool(ctx.config.face_tracking and ctx.pose_source is not None)
        self.frame_index = 0
        self.last_report: Optional[TickReport] = None
        self._pending_resize: Optional[tuple[int, int]] = None
        self._reported_errors: set[str] = set()
        self._shut_down = False

        self.ctx.rig.set_viewport(ctx.renderer.width, ctx.renderer.height)
        window = ctx.window
        if window is not None:
            window.on_pointer_delta = self.handle_pointer_delta
            window.on_key = self.handle_key
            window.on_quit = self.stop

    # ------------------------------------------------------------------
    # Event handlers (run between ticks)
    # ------------------------------------------------------------------

    def handle_pointer_delta(self, delta_x: float, delta_y: float) -> None:
        self.ctx.rig.apply_pointer_delta(delta_x, delta_y)

    def handle_key(self, key: str) -> None:
        if key == "r":
            self.ctx.rig.reset()
        elif key == "f" and self.ctx.pose_source is not None:
            self.face_tracking_enabled = not self.face_tracking_enabled
            print(f"[Frame] face tracking {'on' if self.face_tracking_enabled else 'off'}")

    def request_resize(self, width: int, height: int) -> None:
        self._pending_resize = (max(1, int(width)), max(1, int(height)))

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _apply_pending_resize(self) -> None:
        if self.ctx.window is not None:
            size = self.ctx.window.poll_size()
            if size is not None:
                self.request_resize(*size)
        if self._pending_resize is None:
            return
        width, height = self._pending_resize
        self._pending_resize = None
        self.ctx.renderer.set_size(width, height)
        self.ctx.rig.set_viewport(width, height)

    def _sync_capture_size(self) -> float:
        source = self.ctx.pose_source
        size = source.frame_size if source is not None else None
        if size is None:
            return float(self.ctx.config.video_width)
        self.ctx.rig.face_y_range = float(size[1])
        return float(size[0])

    def _update_from_face(self) -> Optional[FaceSignal]:
        source = self.ctx.pose_source
        if not self.face_tracking_enabled or source is None:
            return None
        estimates = source.latest_estimate()
        signal = self.ctx.extractor.extract(estimates, self._sync_capture_size(), self.ctx.renderer.width)
        if signal.present:
            self.ctx.rig.apply_face_delta(signal.position.x, signal.position.raw_y)
        return signal

    def _hud_lines(self, signal: Optional[FaceSignal], eye: np.ndarray, rejected: bool) -> list[str]:
        if not self.ctx.config.show_hud:
            return []
        mode = "face" if self.face_tracking_enabled else "pointer"
        status = signal.status.value if signal is not None else "-"
        lines = [
            f"mode={mode} signal={status}",
            f"eye=({eye[0]:.1f}, {eye[1]:.1f}, {eye[2]:.1f})",
        ]
        if rejected:
            lines.append("projection held (eye behind frame)")
        return lines

    def tick(self) -> TickReport:
        ctx = self.ctx
        self._apply_pending_resize()

        signal = self._update_from_face()
        eye = ctx.rig.eye_position()
        rejected_before = ctx.projector.rejected
        frustum = ctx.projector.project(eye, ctx.renderer.aspect)
        rejected = ctx.projector.rejected != rejected_before

        image = ctx.renderer.render(
            ctx.scene,
            frustum,
            window_frame=ctx.projector.frame if ctx.config.draw_frame else None,
            hud_lines=self._hud_lines(signal, eye, rejected),
        )
        if ctx.window is not None:
            ctx.window.show(image)
            ctx.window.pump_events()

        self.frame_index += 1
        self.last_report = TickReport(
            frame_index=self.frame_index,
            signal_status=signal.status if signal is not None else None,
            projection_rejected=rejected,
            eye=eye,
            viewport=(ctx.renderer.width, ctx.renderer.height),
        )
        return self.last_report

    def _safe_tick(self) -> None:
        try:
            self.tick()
        except Exception as exc:
            msg = f"{type(exc).__name__}: {exc}"
            if msg not in self._reported_errors:
                self._reported_errors.add(msg)
                print(f"[Frame] tick failed, continuing: {msg}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> None:
        if self.ctx.window is not None:
            self.ctx.window.open()
        print(
            "[Frame] render loop running | "
            f"tracking={'on' if self.face_tracking_enabled else 'off'}, "
            f"fps={self.ctx.config.fps:g}"
        )
        try:
            self.scheduler.run(self._safe_tick)
        except KeyboardInterrupt:
            print("[Frame] interrupted")
        finally:
            self.shutdown()

    def stop(self) -> None:
        self.scheduler.stop()

    def shutdown(self) -> None:
        if self._shut_down:
            return
        self._shut_down = True
        self.scheduler.stop()
        if self.ctx.pose_source is not None:
            self.ctx.pose_source.close()
        if self.ctx.window is not None:
            self.ctx.window.close()
        print(f"[Frame] stopped after {self.frame_index} frames")
