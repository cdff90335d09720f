"""Camera pose value types and orbit geometry.

A pose is a camera position plus the point it looks at. Orbit parameters
(yaw, pitch, radius) describe a position on a sphere around a target and
are what the manual controls manipulate.
"""

import math
import numpy as np
from typing import Dict, List, Sequence, Tuple
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]


def as_vector3(values: Sequence[float]) -> Vector3:
    """Coerce a 3-element sequence (list, tuple, ndarray) to a float tuple."""
    if len(values) != 3:
        raise ValueError(f"Expected 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _lerp_vector(start: Vector3, end: Vector3, t: float) -> Vector3:
    a = np.asarray(start, dtype=np.float64)
    b = np.asarray(end, dtype=np.float64)
    return as_vector3(a + (b - a) * t)


@dataclass(frozen=True)
class CameraPose:
    """Camera position and look-at target in world space (y-up)."""
    position: Vector3
    target: Vector3

    def __post_init__(self):
        # Accept lists and arrays but always store plain float tuples
        object.__setattr__(self, 'position', as_vector3(self.position))
        object.__setattr__(self, 'target', as_vector3(self.target))

    def is_finite(self) -> bool:
        """True when every component is a finite number."""
        return all(math.isfinite(v) for v in self.position + self.target)

    def lerp(self, other: 'CameraPose', t: float) -> 'CameraPose':
        """Linearly interpolate towards another pose.

        The endpoints are returned exactly (t <= 0 gives self, t >= 1 gives
        other) so that keyframe boundaries never accumulate rounding error.

        Args:
            other: Pose reached at t = 1
            t: Interpolation factor

        Returns:
            Interpolated pose
        """
        if t <= 0.0:
            return self
        if t >= 1.0:
            return other
        return CameraPose(
            position=_lerp_vector(self.position, other.position, t),
            target=_lerp_vector(self.target, other.target, t),
        )

    def distance(self) -> float:
        """Distance from the camera to its target."""
        return float(np.linalg.norm(np.subtract(self.position, self.target)))

    def to_dict(self) -> Dict[str, List[float]]:
        """Convert to dictionary format."""
        return {
            'position': list(self.position),
            'target': list(self.target),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Sequence[float]]) -> 'CameraPose':
        """Create from dictionary format."""
        return cls(position=data['position'], target=data['target'])

    def transform_matrix(self) -> np.ndarray:
        """Camera-to-world 4x4 matrix looking from position at target.

        Columns are (right, up, forward, position) with y as world up.
        When the view direction is parallel to world up, z is used as
        the reference up vector instead.

        Returns:
            4x4 transformation matrix
        """
        position = np.asarray(self.position, dtype=np.float64)
        forward = np.asarray(self.target, dtype=np.float64) - position
        norm = np.linalg.norm(forward)
        if norm == 0:
            forward = np.array([0.0, 0.0, -1.0])
        else:
            forward = forward / norm

        up = np.array([0.0, 1.0, 0.0])
        if abs(float(np.dot(up, forward))) > 0.999999:
            up = np.array([0.0, 0.0, 1.0])

        right = np.cross(up, forward)
        right = right / np.linalg.norm(right)

        # Recalculate up vector
        up = np.cross(forward, right)

        transform = np.eye(4)
        transform[0:3, 0] = right
        transform[0:3, 1] = up
        transform[0:3, 2] = forward
        transform[0:3, 3] = position
        return transform


@dataclass(frozen=True)
class Keyframe:
    """A named pose reached after ``duration_ms`` of interpolation."""
    position: Vector3
    target: Vector3
    duration_ms: float
    name: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'position', as_vector3(self.position))
        object.__setattr__(self, 'target', as_vector3(self.target))
        if not self.duration_ms > 0:
            raise ValueError(f"Keyframe '{self.name}' needs a positive duration, got {self.duration_ms}")

    @property
    def pose(self) -> CameraPose:
        return CameraPose(self.position, self.target)

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': self.name,
            'position': list(self.position),
            'target': list(self.target),
            'duration_ms': self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> 'Keyframe':
        return cls(
            position=data['position'],
            target=data['target'],
            duration_ms=float(data['duration_ms']),
            name=str(data.get('name', '')),
        )


@dataclass
class OrbitParams:
    """Spherical camera placement around a target.

    Yaw is measured in degrees around the vertical axis starting at +z,
    pitch in degrees above the horizontal plane.
    """
    yaw: float
    pitch: float
    radius: float

    def to_cartesian(self) -> Vector3:
        """Offset from the target in cartesian coordinates.

        Returns:
            (x, y, z) offset in 3D space
        """
        yaw_rad = math.radians(self.yaw)
        pitch_rad = math.radians(self.pitch)

        x = self.radius * math.cos(pitch_rad) * math.sin(yaw_rad)
        y = self.radius * math.sin(pitch_rad)
        z = self.radius * math.cos(pitch_rad) * math.cos(yaw_rad)

        return (x, y, z)

    @classmethod
    def from_cartesian(cls, x: float, y: float, z: float) -> 'OrbitParams':
        """Create orbit parameters from an offset relative to the target.

        Args:
            x, y, z: Offset from the target

        Returns:
            OrbitParams object
        """
        radius = math.sqrt(x*x + y*y + z*z)

        if radius == 0:
            return cls(0.0, 0.0, 0.0)

        pitch = math.degrees(math.asin(max(-1.0, min(1.0, y / radius))))
        yaw = math.degrees(math.atan2(x, z))

        # Normalize yaw to 0-360
        if yaw < 0:
            yaw += 360

        return cls(yaw, pitch, radius)

    @classmethod
    def from_pose(cls, pose: CameraPose) -> 'OrbitParams':
        offset = np.subtract(pose.position, pose.target)
        return cls.from_cartesian(*offset)

    def to_pose(self, target: Vector3) -> CameraPose:
        offset = np.asarray(self.to_cartesian())
        return CameraPose(position=np.asarray(target) + offset, target=target)


def rotate_about_vertical(pose: CameraPose, angle_deg: float) -> CameraPose:
    """Rotate the camera position around the vertical axis through its target.

    Args:
        pose: Current pose
        angle_deg: Rotation angle in degrees (positive is counter-clockwise seen from above)

    Returns:
        Rotated pose with the same target
    """
    angle = math.radians(angle_deg)
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    rotation = np.array([
        [cos_a, 0.0, sin_a],
        [0.0, 1.0, 0.0],
        [-sin_a, 0.0, cos_a],
    ])
    target = np.asarray(pose.target, dtype=np.float64)
    offset = np.asarray(pose.position, dtype=np.float64) - target
    return CameraPose(position=target + rotation @ offset, target=pose.target)
