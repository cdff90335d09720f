"""World-anchored annotations with single selection."""

import math
import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from .camera_pose import CameraPose, Vector3, as_vector3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hotspot:
    """A point of interest on the model with its display metadata."""
    id: str
    world_position: Vector3
    title: str
    description: str
    icon: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'world_position', as_vector3(self.world_position))

    def to_dict(self) -> Dict[str, object]:
        return {
            'id': self.id,
            'world_position': list(self.world_position),
            'title': self.title,
            'description': self.description,
            'icon': self.icon,
        }


class HotspotRegistry:
    """Static hotspot catalog plus the currently selected entry."""

    def __init__(self, hotspots: Iterable[Hotspot]):
        self._hotspots: Dict[str, Hotspot] = {}
        for hotspot in hotspots:
            if hotspot.id in self._hotspots:
                raise ValueError(f"Duplicate hotspot id: {hotspot.id}")
            self._hotspots[hotspot.id] = hotspot
        self._active_id: Optional[str] = None
        self.visible = True

    def __len__(self) -> int:
        return len(self._hotspots)

    def __iter__(self):
        return iter(self._hotspots.values())

    def __contains__(self, hotspot_id: str) -> bool:
        return hotspot_id in self._hotspots

    def get(self, hotspot_id: str) -> Optional[Hotspot]:
        return self._hotspots.get(hotspot_id)

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[Hotspot]:
        if self._active_id is None:
            return None
        return self._hotspots[self._active_id]

    def select(self, hotspot_id: str) -> Optional[Hotspot]:
        """Toggle selection of a hotspot.

        Selecting the active hotspot clears the selection; selecting another
        one replaces it. Unknown ids leave the selection unchanged.

        Args:
            hotspot_id: Id of the hotspot that was clicked

        Returns:
            The active hotspot after the toggle, or None
        """
        if hotspot_id not in self._hotspots:
            logger.warning(f"Ignoring selection of unknown hotspot: {hotspot_id}")
            return self.active

        if self._active_id == hotspot_id:
            self._active_id = None
        else:
            self._active_id = hotspot_id
        logger.debug(f"Active hotspot: {self._active_id}")
        return self.active

    def clear(self) -> None:
        self._active_id = None

    def toggle_visibility(self) -> bool:
        self.visible = not self.visible
        return self.visible


def project_to_screen(world_position: Vector3, pose: CameraPose, fov_deg: float,
                      width: int, height: int) -> Optional[Tuple[float, float]]:
    """Project a world point to pixel coordinates for a perspective camera.

    Args:
        world_position: Point to project
        pose: Camera pose (y-up)
        fov_deg: Vertical field of view in degrees
        width, height: Viewport size in pixels

    Returns:
        (x, y) in pixels with the origin at the top-left corner, or None
        when the point is at or behind the camera
    """
    position = np.asarray(pose.position, dtype=np.float64)
    forward = np.asarray(pose.target, dtype=np.float64) - position
    norm = np.linalg.norm(forward)
    if norm == 0:
        return None
    forward = forward / norm

    world_up = np.array([0.0, 1.0, 0.0])
    if abs(float(np.dot(world_up, forward))) > 0.999999:
        world_up = np.array([0.0, 0.0, -1.0])
    right = np.cross(forward, world_up)
    right = right / np.linalg.norm(right)
    up = np.cross(right, forward)

    relative = np.asarray(world_position, dtype=np.float64) - position
    depth = float(np.dot(relative, forward))
    if depth <= 0:
        return None

    focal = (height / 2) / math.tan(math.radians(fov_deg) / 2)
    x = width / 2 + focal * float(np.dot(relative, right)) / depth
    y = height / 2 - focal * float(np.dot(relative, up)) / depth
    return (x, y)


DEFAULT_HOTSPOTS: List[Hotspot] = [
    Hotspot(
        id='front-wing',
        world_position=(0, 0.3, 2.8),
        title='Front Wing Assembly',
        description='Multi-element carbon fiber aerodynamic package generating up to 25% of '
                    'total downforce, with adjustable flap angles, cascade elements and endplates.',
        icon='▲',
    ),
    Hotspot(
        id='halo',
        world_position=(0, 1.2, 0.3),
        title='Halo Protection System',
        description='Grade 5 titanium safety structure rated for 116kN of static load. '
                    'Weighs 9kg; its mounting points are stressed members of the chassis.',
        icon='◆',
    ),
    Hotspot(
        id='engine-cover',
        world_position=(0, 0.8, -1.2),
        title='Power Unit Bay',
        description='1.6L V6 turbo hybrid power unit with kinetic and heat energy recovery '
                    'systems and thermal efficiency above 50%.',
        icon='●',
    ),
    Hotspot(
        id='rear-wing',
        world_position=(0, 1.0, -2.5),
        title='Rear Wing & DRS',
        description='The drag reduction system opens the rear flap inside designated zones, '
                    'cutting drag by up to 20%.',
        icon='▼',
    ),
    Hotspot(
        id='sidepod',
        world_position=(1.2, 0.6, -0.3),
        title='Sidepod & Cooling',
        description='Houses radiators rejecting 140kW of heat while shaping airflow for '
                    'floor-generated downforce.',
        icon='◀',
    ),
]
