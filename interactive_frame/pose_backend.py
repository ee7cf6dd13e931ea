#!/usr/bin/env python3

from __future__ import annotations

import concurrent.futures
from concurrent.futures import ThreadPoolExecutor
import os
import sys
import time
import typing as _t

import cv2
import mediapipe as mp

from .pose_source import PoseSource
from .pose_types import PoseEstimate

if _t.TYPE_CHECKING:
    from .config import FrameConfig


class CameraCapture:
    """Front-facing camera (or MJPEG stream URL) read one frame at a time."""

    def __init__(self, source: _t.Union[int, str], *, fps: int = 30) -> None:
        self.source = source
        self.cap = cv2.VideoCapture(source)
        if not self.cap.isOpened():
            raise RuntimeError(f"Unable to open camera {source}")
        for prop, val in (
            (cv2.CAP_PROP_BUFFERSIZE, 1),
            (cv2.CAP_PROP_FPS, fps),
        ):
            try:
                self.cap.set(prop, val)
            except Exception:
                pass
        self._frame_size: _t.Optional[tuple[int, int]] = None
        w = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        h = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        if w > 0 and h > 0:
            self._frame_size = (w, h)

    @property
    def frame_size(self) -> _t.Optional[tuple[int, int]]:
        return self._frame_size

    def read(self) -> _t.Optional[_t.Any]:
        ret, frame = self.cap.read()
        if not ret or frame is None:
            return None
        h, w = frame.shape[:2]
        self._frame_size = (int(w), int(h))
        return frame

    def release(self) -> None:
        self.cap.release()


class MediaPipePoseBackend:
    """Single-person pose model over the two supported mediapipe runtimes."""

    def __init__(
        self,
        *,
        task_model_path: str = "",
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        self.task_model_path = task_model_path
        self.min_detection_confidence = float(min_detection_confidence)
        self.min_tracking_confidence = float(min_tracking_confidence)
        self._backend = "unknown"
        self.pose = None
        self._pose_landmarker = None
        self._tasks_image = None
        self._tasks_image_format = None
        self._last_timestamp_ms = 0

        self._init_pose_backend()
        print(f"[Pose] mediapipe {self._backend} backend ready")

    def _init_pose_backend(self) -> None:
        if hasattr(mp, "solutions"):
            self._backend = "solutions"
            self.pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=1,
                min_detection_confidence=self.min_detection_confidence,
                min_tracking_confidence=self.min_tracking_confidence,
            )
            return

        if hasattr(mp, "tasks"):
            if sys.version_info >= (3, 14) and sys.platform == "darwin":
                raise RuntimeError(
                    "Mediapipe vision tasks on macOS are currently unstable on Python 3.14. "
                    "Please use Python 3.11 for this build."
                )

            try:
                from mediapipe.tasks.python.core.base_options import BaseOptions
                from mediapipe.tasks.python.vision import pose_landmarker
                from mediapipe.tasks.python.vision.core.image import Image, ImageFormat
                from mediapipe.tasks.python.vision.core.vision_task_running_mode import (
                    VisionTaskRunningMode,
                )
            except Exception as exc:
                raise RuntimeError(
                    "Mediapipe tasks backend is present but required symbols are missing: "
                    f"{exc}"
                ) from exc

            model_path = self.task_model_path
            if not model_path:
                raise RuntimeError(
                    "Mediapipe 'tasks' package is installed, but no task model file is configured. "
                    "Pass --pose-landmarker-task /path/to/pose_landmarker.task"
                )
            if not os.path.exists(model_path):
                raise FileNotFoundError(
                    f"Pose landmarker task model not found: {model_path}. "
                    "Download a Mediapipe PoseLandmarker task model and pass its path."
                )

            def _create_with_timeout(options: _t.Any) -> _t.Any:
                with ThreadPoolExecutor(max_workers=1) as ex:
                    future = ex.submit(pose_landmarker.PoseLandmarker.create_from_options, options)
                    try:
                        return future.result(timeout=5.5)
                    except concurrent.futures.TimeoutError as exc:
                        raise RuntimeError("PoseLandmarker initialization timed out on this runtime.") from exc

            def _options(base_options: _t.Any) -> _t.Any:
                return pose_landmarker.PoseLandmarkerOptions(
                    base_options=base_options,
                    running_mode=VisionTaskRunningMode.VIDEO,
                    num_poses=1,
                    min_pose_detection_confidence=self.min_detection_confidence,
                    min_pose_presence_confidence=self.min_detection_confidence,
                    min_tracking_confidence=self.min_tracking_confidence,
                )

            self._backend = "tasks"
            self._tasks_image = Image
            self._tasks_image_format = ImageFormat
            try:
                self._pose_landmarker = _create_with_timeout(
                    _options(BaseOptions(model_asset_path=model_path, delegate=BaseOptions.Delegate.CPU))
                )
            except Exception:
                # Some runtimes reject the CPU delegate enum; retry with the default delegate.
                try:
                    self._pose_landmarker = _create_with_timeout(_options(BaseOptions(model_asset_path=model_path)))
                except Exception as default_error:
                    raise RuntimeError(
                        f"Failed to initialize PoseLandmarker: {default_error}"
                    ) from default_error
            return

        raise AttributeError("Mediapipe SDK has neither 'solutions' nor 'tasks'.")

    def _next_timestamp_ms(self) -> int:
        ts = int(time.monotonic() * 1000)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts
        return ts

    def estimate(self, frame_bgr: _t.Any) -> tuple[PoseEstimate, ...]:
        h, w = frame_bgr.shape[:2]
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._backend == "solutions":
            results = self.pose.process(frame_rgb)
            landmarks = getattr(results, "pose_landmarks", None)
            if landmarks is None:
                return ()
            return (PoseEstimate.from_landmarks(landmarks.landmark, w, h),)

        if self._pose_landmarker is None:
            raise RuntimeError("Tasks backend not initialized")
        mp_image = self._tasks_image(image_format=self._tasks_image_format.SRGB, data=frame_rgb)
        result = self._pose_landmarker.detect_for_video(mp_image, self._next_timestamp_ms())
        poses = getattr(result, "pose_landmarks", None) or []
        return tuple(PoseEstimate.from_landmarks(lms, w, h) for lms in poses)

    def close(self) -> None:
        if self._backend == "solutions" and self.pose is not None:
            self.pose.close()
            self.pose = None
        elif self._pose_landmarker is not None and hasattr(self._pose_landmarker, "close"):
            self._pose_landmarker.close()
            self._pose_landmarker = None


def open_camera_pose_source(config: "FrameConfig") -> PoseSource:
    source: _t.Union[int, str] = config.camera_url if config.camera_url else config.camera

    def _open_reader() -> CameraCapture:
        return CameraCapture(source)

    def _open_model() -> MediaPipePoseBackend:
        return MediaPipePoseBackend(task_model_path=config.pose_landmarker_task)

    return PoseSource(_open_reader, _open_model)
