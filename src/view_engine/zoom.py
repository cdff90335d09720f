"""Wheel and pinch zoom with clamping."""

import math
from typing import Callable, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


def touch_distance(first: Sequence[float], second: Sequence[float]) -> float:
    """Distance between two touch points (x, y)."""
    return math.hypot(first[0] - second[0], first[1] - second[1])


class ZoomController:
    """Keeps a zoom factor inside [min_zoom, max_zoom]."""

    def __init__(self, initial_zoom: float = 1.0, min_zoom: float = 0.8,
                 max_zoom: float = 3.0, zoom_step: float = 0.1,
                 on_zoom_change: Optional[Callable[[float], None]] = None):
        """Initialize the zoom controller.

        Args:
            initial_zoom: Zoom restored by ``reset``
            min_zoom: Lower bound
            max_zoom: Upper bound
            zoom_step: Increment for wheel notches and zoom buttons
            on_zoom_change: Called with the new zoom whenever it changes
        """
        if min_zoom > max_zoom:
            raise ValueError(f"min_zoom ({min_zoom}) must not exceed max_zoom ({max_zoom})")

        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.zoom_step = zoom_step
        self.on_zoom_change = on_zoom_change
        self.initial_zoom = self.clamp(initial_zoom)

        self._zoom = self.initial_zoom
        self._pinch_start_distance = 0.0
        self._pinch_base_zoom = self._zoom
        self.is_pinching = False

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def percentage(self) -> int:
        """Zoom as a rounded percentage for display."""
        return int(round(self._zoom * 100))

    def clamp(self, value: float) -> float:
        if math.isnan(value):
            return self.min_zoom
        return min(max(value, self.min_zoom), self.max_zoom)

    def set(self, value: float) -> float:
        """Clamp and store a zoom value.

        Returns:
            The stored zoom
        """
        self._write(self.clamp(value))
        return self._zoom

    def wheel(self, delta_y: float) -> float:
        """Step the zoom for a wheel event.

        Scrolling down (positive delta) zooms out, scrolling up zooms in.
        A zero delta leaves the zoom unchanged.
        """
        if delta_y > 0:
            return self.set(self._zoom - self.zoom_step)
        if delta_y < 0:
            return self.set(self._zoom + self.zoom_step)
        return self._zoom

    def zoom_in(self) -> float:
        return self.set(self._zoom + self.zoom_step)

    def zoom_out(self) -> float:
        return self.set(self._zoom - self.zoom_step)

    def reset(self) -> float:
        return self.set(self.initial_zoom)

    def begin_pinch(self) -> None:
        """Capture the current zoom as the base for ``pinch`` ratios."""
        self.is_pinching = True
        self._pinch_base_zoom = self._zoom

    def pinch(self, distance_ratio: float) -> float:
        """Scale the captured base zoom by the current/initial finger distance ratio."""
        if not self.is_pinching:
            self.begin_pinch()
        return self.set(self._pinch_base_zoom * distance_ratio)

    def pinch_start(self, distance: float) -> None:
        """Start a pinch with the initial two-finger distance."""
        if distance <= 0:
            logger.debug("Ignoring pinch start with zero finger distance")
            return
        self._pinch_start_distance = distance
        self.begin_pinch()

    def pinch_move(self, distance: float) -> float:
        if not self.is_pinching or self._pinch_start_distance <= 0:
            return self._zoom
        return self.pinch(distance / self._pinch_start_distance)

    def pinch_end(self) -> None:
        self.is_pinching = False
        self._pinch_start_distance = 0.0
        self._pinch_base_zoom = self._zoom

    def _write(self, value: float) -> None:
        if value == self._zoom:
            return
        self._zoom = value
        logger.debug(f"Zoom -> {value:.2f}")
        if self.on_zoom_change is not None:
            self.on_zoom_change(value)
