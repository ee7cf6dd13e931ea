#!/usr/bin/env python3

from __future__ import annotations

from typing import Sequence


def _clamp(v: float, lo: float, hi: float) -> float:
    return float(max(lo, min(hi, v)))


def scale_value(value: float, from_range: Sequence[float], to_range: Sequence[float]) -> int:
    """Linearly rescale ``value`` from ``from_range`` into ``to_range``.

    The input is clamped into ``from_range`` first and the result is truncated
    toward zero, so ``-3.7`` becomes ``-3`` rather than ``-4``.
    """
    f0, f1 = float(from_range[0]), float(from_range[1])
    t0, t1 = float(to_range[0]), float(to_range[1])
    if f1 == f0:
        raise ValueError(f"from_range must not be empty, got [{f0}, {f1}]")

    capped = _clamp(float(value), min(f0, f1), max(f0, f1)) - f0
    factor = (t1 - t0) / (f1 - f0)
    return int(capped * factor + t0)
