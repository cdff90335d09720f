"""Easing functions for camera interpolation.

Every function maps a progress value in [0, 1] to an eased value in [0, 1],
with ease(0) == 0, ease(1) == 1 and monotonic non-decreasing output.
"""

from typing import Callable, Dict

EasingFunction = Callable[[float], float]


def _clamp_progress(progress: float) -> float:
    return max(0.0, min(1.0, progress))


def linear(progress: float) -> float:
    """Identity easing."""
    return _clamp_progress(progress)


def ease_out_cubic(progress: float) -> float:
    """Fast start, smooth deceleration: 1 - (1 - p)^3."""
    p = _clamp_progress(progress)
    return 1.0 - (1.0 - p) ** 3


def ease_in_out_cubic(progress: float) -> float:
    """Smooth acceleration then deceleration, symmetric around p = 0.5."""
    p = _clamp_progress(progress)
    if p < 0.5:
        return 4.0 * p * p * p
    return 1.0 - ((-2.0 * p + 2.0) ** 3) / 2.0


EASINGS: Dict[str, EasingFunction] = {
    'linear': linear,
    'ease_out_cubic': ease_out_cubic,
    'ease_in_out_cubic': ease_in_out_cubic,
}


def get_easing(name: str) -> EasingFunction:
    """Look up an easing function by name.

    Args:
        name: One of the keys of ``EASINGS``

    Returns:
        The easing function

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return EASINGS[name]
    except KeyError:
        raise ValueError(f"Unknown easing '{name}', expected one of {sorted(EASINGS)}") from None
