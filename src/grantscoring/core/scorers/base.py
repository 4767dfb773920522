"""Shared helpers for deterministic criterion scorers."""

from __future__ import annotations

import math


def scale(fraction: float, max_points: int) -> int:
    """Map ``fraction`` in [0, 1] onto ``[0, max_points]``, rounding half up."""
    bounded = min(max(fraction, 0.0), 1.0)
    return min(max_points, int(math.floor(bounded * max_points + 0.5)))
