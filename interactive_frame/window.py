#!/usr/bin/env python3

from __future__ import annotations

from typing import Any, Callable, Optional

import cv2
import numpy as np

PointerHandler = Callable[[float, float], None]
KeyHandler = Callable[[str], None]


class FrameWindow:
    """OpenCV HighGUI window that reports pointer moves, resizes and keys.

    HighGUI delivers mouse callbacks from inside ``waitKey``, so handlers run
    on the render thread between ticks, never in the middle of one.
    """

    QUIT_KEYS = (ord("q"), 27)

    def __init__(self, name: str = "Interactive Frame", size: tuple[int, int] = (1280, 720)) -> None:
        self.name = name
        self.size = (max(1, int(size[0])), max(1, int(size[1])))
        self.on_pointer_delta: Optional[PointerHandler] = None
        self.on_key: Optional[KeyHandler] = None
        self.on_quit: Optional[Callable[[], None]] = None
        self._last_pointer: Optional[tuple[int, int]] = None
        self._opened = False

    def open(self) -> None:
        cv2.namedWindow(self.name, cv2.WINDOW_NORMAL)
        try:
            cv2.resizeWindow(self.name, self.size[0], self.size[1])
        except cv2.error:
            pass
        cv2.setMouseCallback(self.name, self._on_mouse)
        self._opened = True
        print(f"[Window] '{self.name}' opened at {self.size[0]}x{self.size[1]}. Press Q to quit, R to recenter.")

    def _on_mouse(self, event: int, x: int, y: int, flags: int, param: Any) -> None:
        if event != cv2.EVENT_MOUSEMOVE:
            return
        if self._last_pointer is not None and self.on_pointer_delta is not None:
            dx = x - self._last_pointer[0]
            dy = y - self._last_pointer[1]
            if dx or dy:
                self.on_pointer_delta(float(dx), float(dy))
        self._last_pointer = (x, y)

    def poll_size(self) -> Optional[tuple[int, int]]:
        """New drawable size if the window was resized since the last poll."""
        if not self._opened:
            return None
        try:
            _, _, w, h = cv2.getWindowImageRect(self.name)
        except cv2.error:
            return None
        if w <= 0 or h <= 0 or (w, h) == self.size:
            return None
        self.size = (int(w), int(h))
        return self.size

    def show(self, image: np.ndarray) -> None:
        if self._opened:
            cv2.imshow(self.name, image)

    def pump_events(self, delay_ms: int = 1) -> None:
        if not self._opened:
            return
        key = cv2.waitKey(max(1, int(delay_ms))) & 0xFF
        closed = False
        try:
            closed = cv2.getWindowProperty(self.name, cv2.WND_PROP_VISIBLE) < 1
        except cv2.error:
            closed = True
        if key in self.QUIT_KEYS or closed:
            if self.on_quit is not None:
                self.on_quit()
            return
        if key != 255 and self.on_key is not None:
            self.on_key(chr(key).lower())

    def close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        try:
            cv2.destroyWindow(self.name)
        except cv2.error:
            pass
