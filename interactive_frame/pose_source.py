#!/usr/bin/env python3

from __future__ import annotations

import concurrent.futures
from concurrent.futures import Future, ThreadPoolExecutor
import typing as _t

from .pose_types import PoseEstimate

Estimates = _t.Tuple[PoseEstimate, ...]


class PoseModel(_t.Protocol):
    def estimate(self, frame: _t.Any) -> _t.Sequence[PoseEstimate]: ...

    def close(self) -> None: ...


class FrameReader(_t.Protocol):
    def read(self) -> _t.Optional[_t.Any]: ...

    @property
    def frame_size(self) -> _t.Optional[tuple[int, int]]: ...

    def release(self) -> None: ...


class PoseSource:
    """Latest-result view over a slow pose model.

    Inference runs on a single worker thread. ``latest_estimate`` never waits:
    it harvests a finished request, submits the next one if none is pending,
    and returns whatever the last completed request produced.
    """

    def __init__(
        self,
        open_reader: _t.Callable[[], FrameReader],
        open_model: _t.Callable[[], PoseModel],
        *,
        shutdown_timeout_s: float = 5.0,
    ) -> None:
        self.shutdown_timeout_s = float(shutdown_timeout_s)
        self._open_reader = open_reader
        self._open_model = open_model
        self._reader: _t.Optional[FrameReader] = None
        self._model: _t.Optional[PoseModel] = None
        self._executor: _t.Optional[ThreadPoolExecutor] = None
        self._pending: _t.Optional[Future] = None
        self._latest: Estimates = ()
        self._reported_errors: set[str] = set()
        self.available = False
        self.closed = False
        self.requests_submitted = 0

    @property
    def frame_size(self) -> _t.Optional[tuple[int, int]]:
        if self._reader is None:
            return None
        return self._reader.frame_size

    @property
    def in_flight(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def setup(self) -> bool:
        if self.closed:
            return False
        try:
            self._reader = self._open_reader()
            self._model = self._open_model()
        except Exception as exc:
            print(f"[Pose] tracking unavailable, falling back to pointer control: {exc}")
            self._release_resources()
            self.available = False
            return False

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pose-inference")
        self.available = True
        size = self.frame_size
        if size is not None:
            print(f"[Pose] capture opened: {size[0]}x{size[1]}")
        return True

    def latest_estimate(self) -> Estimates:
        if not self.available or self._executor is None:
            return ()

        if self._pending is not None:
            if not self._pending.done():
                return self._latest
            self._latest = self._harvest(self._pending)
            self._pending = None

        try:
            self._pending = self._executor.submit(self._infer_once)
            self.requests_submitted += 1
        except RuntimeError:
            # executor already shut down
            self._pending = None
        return self._latest

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.available = False
        pending = self._pending
        if pending is not None:
            pending.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        if pending is not None and not pending.done():
            # bounded wait for a stalled model
            concurrent.futures.wait([pending], timeout=self.shutdown_timeout_s)
        self._pending = None
        if pending is not None and not pending.done():
            # the model is still in use on the worker; release once it returns
            print("[Pose] inference still running at shutdown; releasing capture when it finishes")
            pending.add_done_callback(lambda _f: self._release_resources())
            return
        self._release_resources()

    def _infer_once(self) -> Estimates:
        reader = self._reader
        model = self._model
        if reader is None or model is None:
            return ()
        frame = reader.read()
        if frame is None:
            return ()
        return tuple(model.estimate(frame))

    def _harvest(self, future: Future) -> Estimates:
        try:
            return future.result(timeout=0)
        except concurrent.futures.CancelledError:
            return ()
        except Exception as exc:
            msg = f"{type(exc).__name__}: {exc}"
            if msg not in self._reported_errors:
                self._reported_errors.add(msg)
                print(f"[Pose] inference failed: {msg}")
            return ()

    def _release_resources(self) -> None:
        if self._model is not None:
            try:
                self._model.close()
            except Exception as exc:
                print(f"[Pose] error closing model: {exc}")
            self._model = None
        if self._reader is not None:
            try:
                self._reader.release()
            except Exception as exc:
                print(f"[Pose] error releasing capture: {exc}")
            self._reader = None
