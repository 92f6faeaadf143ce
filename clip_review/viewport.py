# clip_review/viewport.py
from __future__ import annotations

import math
from typing import Optional

from .domain import (
    BASE_MIN_ZOOM,
    FIXED_MAX_FLOOR,
    FIXED_RANGE,
    ZOOM_STEP,
    RootConfig,
    ViewportState,
)


# -----------------------------
# Zoom bounds (pixels per clip)
# -----------------------------

def min_zoom(viewport_width_px: int, clip_count: int, base_min: int = BASE_MIN_ZOOM) -> int:
    """Smallest zoom at which count clips still fill the viewport (never below base_min)."""
    if clip_count > 0 and viewport_width_px > 0:
        fill = int(math.ceil(float(viewport_width_px) / float(clip_count)))
        return max(int(base_min), fill)
    return int(base_min)


def max_zoom(min_z: int, floor: int = FIXED_MAX_FLOOR, span: int = FIXED_RANGE) -> int:
    return max(int(floor), int(min_z) + int(span))


def clamp_zoom(viewport_width_px: int, clip_count: int, zoom: int,
               base_min: int = BASE_MIN_ZOOM) -> int:
    """Raise zoom to the minimum if it fell below it. Never lowers a larger zoom."""
    lo = min_zoom(viewport_width_px, clip_count, base_min)
    return lo if int(zoom) < lo else int(zoom)


class ViewportController:
    """
    Keeps ViewportState consistent as the timeline container resizes or the clip
    count changes. Every change goes back through clamp_zoom().
    """

    def __init__(self, cfg: Optional[RootConfig] = None):
        self._base_min = cfg.base_min_zoom if cfg else BASE_MIN_ZOOM
        self._floor = cfg.fixed_max_floor if cfg else FIXED_MAX_FLOOR
        self._span = cfg.fixed_range if cfg else FIXED_RANGE
        self._step = cfg.zoom_step if cfg else ZOOM_STEP
        default = cfg.default_zoom if cfg else 50
        self.state = ViewportState(zoom_px_per_clip=max(int(default), self._base_min))

    # ---------------- Bounds ----------------

    @property
    def zoom(self) -> int:
        return self.state.zoom_px_per_clip

    @property
    def min_zoom(self) -> int:
        return min_zoom(self.state.viewport_width_px, self.state.clip_count, self._base_min)

    @property
    def max_zoom(self) -> int:
        return max_zoom(self.min_zoom, self._floor, self._span)

    def content_width(self) -> int:
        return self.state.clip_count * self.state.zoom_px_per_clip

    # ---------------- Inputs ----------------

    def _reclamp(self) -> int:
        s = self.state
        s.zoom_px_per_clip = clamp_zoom(s.viewport_width_px, s.clip_count, s.zoom_px_per_clip, self._base_min)
        return s.zoom_px_per_clip

    def set_viewport_width(self, width_px: int) -> int:
        self.state.viewport_width_px = max(0, int(width_px))
        return self._reclamp()

    def set_clip_count(self, count: int) -> int:
        self.state.clip_count = max(0, int(count))
        return self._reclamp()

    def set_zoom(self, zoom: int) -> int:
        z = max(self.min_zoom, min(int(zoom), self.max_zoom))
        self.state.zoom_px_per_clip = z
        return z

    def zoom_in(self) -> int:
        return self.set_zoom(self.zoom + self._step)

    def zoom_out(self) -> int:
        return self.set_zoom(self.zoom - self._step)

    def can_zoom_in(self) -> bool:
        return self.zoom < self.max_zoom

    def can_zoom_out(self) -> bool:
        return self.zoom > self.min_zoom
