"""Pointer and scroll mapping for product rotation.

Two mappings live here:

* Drag rotation maps horizontal pointer travel to a discrete frame index in a
  cyclic range. It is incremental: each drag starts from the frame committed
  by the previous one.
* Scroll tilt maps an element's vertical offset from the viewport center to a
  continuous tilt angle. It is absolute: every update recomputes the angle
  from scratch and nothing wraps.

The two use opposite sign conventions (dragging right lowers the frame index,
an element below center tilts to a negative angle) and both are kept as-is.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


def js_round(value: float) -> int:
    """Round half towards positive infinity."""
    return int(math.floor(value + 0.5))


def wrap_frame(frame: int, total_frames: int) -> int:
    """Normalize a frame index into [0, total_frames)."""
    return ((frame % total_frames) + total_frames) % total_frames


def frame_for_delta(base_frame: int, delta_x: float, total_frames: int,
                    pixels_per_frame: float, sensitivity: float = 1.0) -> int:
    """Frame reached after dragging ``delta_x`` pixels from ``base_frame``.

    Args:
        base_frame: Frame committed when the drag started
        delta_x: Pointer travel since the drag started (pixels)
        total_frames: Size of the cyclic frame range
        pixels_per_frame: Drag distance for a single frame step
        sensitivity: Multiplier on the frame step count

    Returns:
        Frame index in [0, total_frames)
    """
    frame_delta = js_round(delta_x / pixels_per_frame * sensitivity)
    return wrap_frame(base_frame - frame_delta, total_frames)


def tilt_angle(element_center: float, viewport_center: float, viewport_height: float,
               gain: float = 40.0, max_angle: float = 40.0) -> float:
    """Tilt angle for an element given its position in the viewport.

    Args:
        element_center: Vertical center of the element (pixels, viewport coordinates)
        viewport_center: Vertical center of the viewport
        viewport_height: Height of the viewport
        gain: Degrees of tilt per viewport height of offset
        max_angle: Absolute limit on the returned angle

    Returns:
        Angle in degrees, clamped to [-max_angle, max_angle]
    """
    if viewport_height <= 0:
        return 0.0
    distance_from_center = (element_center - viewport_center) / viewport_height
    angle = distance_from_center * -gain
    return max(-max_angle, min(max_angle, angle))


@dataclass
class DragState:
    """Per-drag bookkeeping owned by a PointerRotationMapper."""
    frame: int
    base_frame: int
    origin_x: float = 0.0
    dragging: bool = False


class PointerRotationMapper:
    """Maps drag gestures to a frame index with wrap-around."""

    def __init__(self, total_frames: int, pixels_per_frame: float = 30.0,
                 sensitivity: float = 1.0, initial_frame: int = 0,
                 on_frame_change: Optional[Callable[[int], None]] = None):
        """Initialize the mapper.

        Args:
            total_frames: Number of frames in a full revolution
            pixels_per_frame: Drag distance for one frame step
            sensitivity: Multiplier applied to the drag distance
            initial_frame: Frame restored by ``reset``
            on_frame_change: Called with the new frame whenever it changes
        """
        if total_frames <= 0:
            raise ValueError(f"total_frames must be positive, got {total_frames}")
        if pixels_per_frame <= 0:
            raise ValueError(f"pixels_per_frame must be positive, got {pixels_per_frame}")

        self.total_frames = total_frames
        self.pixels_per_frame = pixels_per_frame
        self.sensitivity = sensitivity
        self.initial_frame = wrap_frame(initial_frame, total_frames)
        self.on_frame_change = on_frame_change
        self.state = DragState(frame=self.initial_frame, base_frame=self.initial_frame)

    @property
    def frame(self) -> int:
        return self.state.frame

    @property
    def is_dragging(self) -> bool:
        return self.state.dragging

    @property
    def angle_deg(self) -> float:
        """Rotation of the current frame in degrees."""
        return self.state.frame * 360.0 / self.total_frames

    def begin(self, x: float) -> None:
        """Start a drag at pointer position ``x``."""
        self.state.dragging = True
        self.state.origin_x = x
        self.state.base_frame = self.state.frame

    def move(self, x: float) -> int:
        """Update the frame for pointer position ``x``.

        Ignored when no drag is active.

        Returns:
            The current frame
        """
        if not self.state.dragging:
            return self.state.frame

        new_frame = frame_for_delta(
            self.state.base_frame,
            x - self.state.origin_x,
            self.total_frames,
            self.pixels_per_frame,
            self.sensitivity,
        )
        self._update(new_frame)
        return new_frame

    def end(self) -> None:
        """Finish the drag and commit the current frame as the new base."""
        self.state.dragging = False
        self.state.base_frame = self.state.frame

    def touch_start(self, touches: Sequence[Sequence[float]]) -> None:
        """Single-finger touch starts a drag; multi-touch is left to zoom."""
        if len(touches) != 1:
            return
        self.begin(touches[0][0])

    def touch_move(self, touches: Sequence[Sequence[float]]) -> int:
        if len(touches) != 1:
            return self.state.frame
        return self.move(touches[0][0])

    def set_frame(self, frame: int) -> None:
        """Jump to a frame, normalizing it into range and committing it."""
        normalized = wrap_frame(frame, self.total_frames)
        self.state.base_frame = normalized
        self._update(normalized, force=True)

    def rotate_left(self) -> None:
        self.set_frame(self.state.frame - 1)

    def rotate_right(self) -> None:
        self.set_frame(self.state.frame + 1)

    def reset(self) -> None:
        self.state.dragging = False
        self.set_frame(self.initial_frame)

    def _update(self, frame: int, force: bool = False) -> None:
        if frame == self.state.frame and not force:
            return
        self.state.frame = frame
        logger.debug(f"Rotation frame -> {frame}/{self.total_frames}")
        if self.on_frame_change is not None:
            self.on_frame_change(frame)


class ScrollTiltMapper:
    """Computes tilt angles for a vertical stack of images from scroll position."""

    def __init__(self, gain: float = 40.0, max_angle: float = 40.0):
        self.gain = gain
        self.max_angle = max_angle
        self.angles: List[float] = []

    def update(self, element_centers: Sequence[float], viewport_top: float,
               viewport_height: float) -> List[float]:
        """Recompute the angle of every element.

        Args:
            element_centers: Vertical center of each element in page coordinates
            viewport_top: Top of the scroll viewport in the same coordinates
            viewport_height: Visible height of the scroll viewport

        Returns:
            One angle per element
        """
        viewport_center = viewport_height / 2
        self.angles = [
            tilt_angle(center - viewport_top, viewport_center, viewport_height,
                       self.gain, self.max_angle)
            for center in element_centers
        ]
        return self.angles
