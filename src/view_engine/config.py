"""Viewer settings.

Defaults mirror the product's shipped configuration. Settings can be
round-tripped through JSON so a deployment can tune timings without code
changes.
"""

import json
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, Union
import logging

logger = logging.getLogger(__name__)


@dataclass
class RotationSettings:
    """Drag-to-frame and scroll-to-tilt mapping."""
    total_frames: int = 72
    pixels_per_frame: float = 30.0
    sensitivity: float = 1.0
    initial_frame: int = 0
    tilt_gain: float = 40.0
    max_tilt: float = 40.0


@dataclass
class ZoomSettings:
    """Zoom bounds and step sizes."""
    initial_zoom: float = 1.0
    min_zoom: float = 0.8
    max_zoom: float = 3.0
    zoom_step: float = 0.1


@dataclass
class TimingSettings:
    """Durations in milliseconds unless noted otherwise."""
    auto_rotate_enabled: bool = True
    auto_rotate_delay_ms: float = 5000.0
    # Degrees per tick
    auto_rotate_step_deg: float = 0.15
    intro_enabled: bool = True
    intro_duration_ms: float = 2500.0
    intro_hold_ms: float = 500.0
    dark_phase_ms: float = 1200.0
    reveal_complete_ms: float = 4500.0
    transition_end_ms: float = 5500.0
    demo_max_duration_ms: float = 30000.0
    click_window_ms: float = 800.0
    click_threshold: int = 3


@dataclass
class ViewerSettings:
    """Top-level settings for the view engine."""
    rotation: RotationSettings = field(default_factory=RotationSettings)
    zoom: ZoomSettings = field(default_factory=ZoomSettings)
    timing: TimingSettings = field(default_factory=TimingSettings)
    auto_start_demo: bool = True
    demo_easing: str = 'ease_in_out_cubic'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ViewerSettings':
        """Create settings from a (possibly partial) dictionary.

        Missing keys keep their defaults; unknown keys are logged and ignored.

        Args:
            data: Nested dictionary as produced by ``to_dict``

        Returns:
            ViewerSettings instance
        """
        sections = {
            'rotation': RotationSettings,
            'zoom': ZoomSettings,
            'timing': TimingSettings,
        }
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in sections:
                kwargs[key] = _build_section(sections[key], value, key)
            elif key == 'auto_start_demo':
                kwargs[key] = bool(value)
            elif key == 'demo_easing':
                kwargs[key] = str(value)
            else:
                logger.warning(f"Ignoring unknown settings key: {key}")
        return cls(**kwargs)


def _build_section(section_cls, values: Dict[str, Any], section_name: str):
    known = {f.name for f in fields(section_cls)}
    kwargs = {}
    for key, value in values.items():
        if key in known:
            kwargs[key] = value
        else:
            logger.warning(f"Ignoring unknown settings key: {section_name}.{key}")
    return section_cls(**kwargs)


def load_settings(filepath: Union[str, Path]) -> ViewerSettings:
    """Load viewer settings from a JSON file.

    Args:
        filepath: Input file path

    Returns:
        ViewerSettings instance

    Raises:
        FileNotFoundError: If the settings file doesn't exist
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Settings file not found: {filepath}")

    with open(filepath, 'r') as f:
        data = json.load(f)

    settings = ViewerSettings.from_dict(data)
    logger.info(f"Loaded viewer settings from {filepath}")
    return settings


def save_settings(settings: ViewerSettings, filepath: Union[str, Path]) -> None:
    """Save viewer settings to a JSON file."""
    filepath = Path(filepath)
    with open(filepath, 'w') as f:
        json.dump(settings.to_dict(), f, indent=2)
    logger.info(f"Saved viewer settings to {filepath}")
