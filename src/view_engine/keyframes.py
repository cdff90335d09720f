"""Keyframe-driven camera animation.

The animator walks an ordered keyframe sequence. Each segment interpolates
from a start snapshot (the pose the camera had when the segment began) to
the keyframe's pose over the keyframe's duration. Elapsed time is always
derived from a stored start timestamp, never from a frame count, so a
driving loop that stalls picks up where it left off.
"""

import json
from pathlib import Path
from typing import List, Optional, Sequence, Union
import logging

from .camera_pose import CameraPose, Keyframe
from .easing import EasingFunction, ease_in_out_cubic, ease_out_cubic

logger = logging.getLogger(__name__)


class KeyframeAnimator:
    """Advances a camera pose through a keyframe sequence."""

    def __init__(self, keyframes: Sequence[Keyframe],
                 easing: EasingFunction = ease_in_out_cubic,
                 loop: bool = True):
        """Initialize the animator.

        Args:
            keyframes: Ordered, non-empty keyframe sequence
            easing: Easing applied to each segment's progress
            loop: Wrap to the first keyframe after the last one. A
                non-looping animator holds the final pose and reports
                ``finished``.
        """
        if not keyframes:
            raise ValueError("KeyframeAnimator needs at least one keyframe")

        self.keyframes = tuple(keyframes)
        self.easing = easing
        self.loop = loop

        self.index = 0
        self.start_ms = 0.0
        self.start_pose: Optional[CameraPose] = None
        self.current_pose: Optional[CameraPose] = None
        self.finished = False
        self.cycles = 0
        self._paused_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self.start_pose is not None and not self.finished

    @property
    def paused(self) -> bool:
        return self._paused_at is not None

    @property
    def current_keyframe(self) -> Keyframe:
        return self.keyframes[self.index]

    def start(self, now_ms: float, from_pose: CameraPose) -> None:
        """Begin the sequence from ``from_pose`` at the first keyframe.

        A start time in the future holds ``from_pose`` until it is reached.
        """
        self.index = 0
        self.start_ms = now_ms
        self.start_pose = from_pose
        self.current_pose = from_pose
        self.finished = False
        self.cycles = 0
        self._paused_at = None
        logger.debug(f"Animator started towards '{self.current_keyframe.name}' "
                     f"({len(self.keyframes)} keyframes, loop={self.loop})")

    def stop(self) -> Optional[CameraPose]:
        """Stop consuming keyframes.

        Returns:
            The last computed pose, left untouched
        """
        pose = self.current_pose
        self.start_pose = None
        self._paused_at = None
        return pose

    def pause(self, now_ms: float) -> None:
        if self.running and self._paused_at is None:
            self._paused_at = now_ms

    def resume(self, now_ms: float) -> None:
        """Resume after ``pause``, shifting the segment start by the paused interval."""
        if self._paused_at is None:
            return
        self.start_ms += max(0.0, now_ms - self._paused_at)
        self._paused_at = None

    def progress(self, now_ms: float) -> float:
        """Linear progress through the current segment, clamped to [0, 1]."""
        elapsed = now_ms - self.start_ms
        return max(0.0, min(1.0, elapsed / self.current_keyframe.duration_ms))

    def advance(self, now_ms: float) -> CameraPose:
        """Compute the pose at ``now_ms``.

        When the current segment completes, its keyframe pose is returned
        exactly, committed as the next segment's start snapshot, and the
        index moves on. At most one keyframe is committed per call.

        Args:
            now_ms: Current timestamp in milliseconds

        Returns:
            Interpolated camera pose

        Raises:
            RuntimeError: If called before ``start``
        """
        if self.start_pose is None:
            if self.current_pose is not None:
                return self.current_pose
            raise RuntimeError("Animator not started. Call start() first.")

        if self.finished or self._paused_at is not None:
            return self.current_pose

        keyframe = self.current_keyframe
        progress = self.progress(now_ms)
        eased = self.easing(progress)
        pose = self.start_pose.lerp(keyframe.pose, eased)

        if pose.is_finite():
            self.current_pose = pose
        else:
            logger.warning(f"Non-finite interpolation towards '{keyframe.name}', holding last pose")

        if progress >= 1.0:
            self._commit(keyframe, now_ms)

        return self.current_pose

    def _commit(self, keyframe: Keyframe, now_ms: float) -> None:
        if keyframe.pose.is_finite():
            self.current_pose = keyframe.pose
        self.start_pose = self.current_pose
        self.start_ms = now_ms

        next_index = self.index + 1
        if next_index < len(self.keyframes):
            self.index = next_index
        elif self.loop:
            self.index = 0
            self.cycles += 1
        else:
            self.finished = True
            logger.debug(f"Animator finished at '{keyframe.name}'")
            return
        logger.debug(f"Reached '{keyframe.name}', next '{self.current_keyframe.name}'")


# Camera targets look slightly above the floor, at the body center line
DEFAULT_TARGET = (0.0, 0.5, 0.0)
DEFAULT_POSE = CameraPose(position=(0.0, 2.0, 10.0), target=DEFAULT_TARGET)
INTRO_START_POSE = CameraPose(position=(12.0, 0.5, 12.0), target=DEFAULT_TARGET)


def intro_animator(duration_ms: float = 2500.0,
                   end_pose: CameraPose = DEFAULT_POSE) -> KeyframeAnimator:
    """One-shot sweep from the wide establishing shot to the default view."""
    sweep = Keyframe(end_pose.position, end_pose.target, duration_ms, 'intro-sweep')
    return KeyframeAnimator([sweep], easing=ease_out_cubic, loop=False)


DEMO_KEYFRAMES: List[Keyframe] = [
    # Opening shot, low angle front
    Keyframe((3, 0.3, 4), (0, 0.5, 2), 2500, 'front-low'),
    Keyframe((1.5, 0.4, 3.5), (1.2, 0.2, 3), 2000, 'front-wing-detail'),
    Keyframe((-1.5, 0.4, 3.5), (-1.2, 0.2, 3), 2500, 'front-wing-sweep'),
    Keyframe((0, 1.8, 1.5), (0, 1.0, 0), 2000, 'halo-top'),
    Keyframe((2, 1.2, 0.5), (0, 0.9, 0), 2500, 'cockpit-side'),
    Keyframe((2.5, 0.8, -0.5), (1.5, 0.5, -0.5), 2000, 'sidepod-detail'),
    Keyframe((2.2, 0.5, -1.5), (1.8, 0.4, -2), 2500, 'rear-wheel'),
    Keyframe((0, 0.4, -3.5), (0, 0.5, -2.5), 2000, 'rear-diffuser'),
    Keyframe((0, 0.8, -4), (0, 1.2, -2.5), 2500, 'rear-wing-low'),
    Keyframe((-3, 1.5, -3), (0, 0.6, 0), 2000, 'rear-quarter-rise'),
    Keyframe((-1.5, 1.5, -1), (0, 1.0, -1), 2000, 'engine-cover'),
    Keyframe((-2.2, 0.5, 1), (-1.8, 0.4, 1.5), 2500, 'front-wheel-left'),
    # Pull back to reveal the whole car, then settle on the hero shot
    Keyframe((5, 2.5, 5), (0, 0.5, 0), 3000, 'reveal-pullback'),
    Keyframe((4, 1.5, 3), (0, 0.5, 0), 2500, 'hero-shot'),
]


def save_keyframes(keyframes: Sequence[Keyframe], filepath: Union[str, Path]) -> None:
    """Save a keyframe sequence to JSON.

    Args:
        keyframes: Keyframes to save
        filepath: Output file path
    """
    filepath = Path(filepath)

    data = {
        'version': '1.0',
        'keyframes': [keyframe.to_dict() for keyframe in keyframes],
    }

    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2)

    logger.info(f"Saved {len(keyframes)} keyframes to {filepath}")


def load_keyframes(filepath: Union[str, Path]) -> List[Keyframe]:
    """Load a keyframe sequence from JSON.

    Args:
        filepath: Input file path

    Returns:
        List of keyframes
    """
    filepath = Path(filepath)

    with open(filepath, 'r') as f:
        data = json.load(f)

    keyframes = [Keyframe.from_dict(entry) for entry in data['keyframes']]
    if not keyframes:
        raise ValueError(f"No keyframes found in {filepath}")

    logger.info(f"Loaded {len(keyframes)} keyframes from {filepath}")
    return keyframes
