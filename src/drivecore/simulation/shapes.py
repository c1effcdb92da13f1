"""
Collision shapes.

A Shape is a tagged dataclass; the narrow phase dispatches on the pair of
tags. Capsules and cylinders are aligned with their local z axis.
"""

from dataclasses import dataclass
from enum import Enum
import math

import numpy as np

from drivecore.errors import ConfigurationError


class ShapeType(Enum):
    """Supported collision primitives."""
    SPHERE = "sphere"
    BOX = "box"
    CAPSULE = "capsule"
    CYLINDER = "cylinder"


@dataclass(frozen=True)
class Shape:
    """Collision primitive.

    Sphere uses radius; box uses half extents; capsule and cylinder use
    radius and height (capsule height excludes the end caps).
    """
    shape_type: ShapeType
    radius: float = 0.0
    half_extents: tuple[float, float, float] = (0.0, 0.0, 0.0)
    height: float = 0.0

    def __post_init__(self):
        if self.shape_type is ShapeType.BOX:
            if min(self.half_extents) <= 0:
                raise ConfigurationError("Box half extents must be positive")
        elif self.radius <= 0:
            raise ConfigurationError("Shape radius must be positive")
        if self.shape_type in (ShapeType.CAPSULE, ShapeType.CYLINDER) and self.height < 0:
            raise ConfigurationError("Shape height must not be negative")

    @classmethod
    def sphere(cls, radius: float) -> "Shape":
        """Create a sphere."""
        return cls(ShapeType.SPHERE, radius=radius)

    @classmethod
    def box(cls, hx: float, hy: float, hz: float) -> "Shape":
        """Create a box from half extents."""
        return cls(ShapeType.BOX, half_extents=(hx, hy, hz))

    @classmethod
    def capsule(cls, radius: float, height: float) -> "Shape":
        """Create a capsule; height is the length of the core segment."""
        return cls(ShapeType.CAPSULE, radius=radius, height=height)

    @classmethod
    def cylinder(cls, radius: float, height: float) -> "Shape":
        """Create a cylinder."""
        return cls(ShapeType.CYLINDER, radius=radius, height=height)

    @property
    def bounding_radius(self) -> float:
        """Radius of a sphere enclosing the shape."""
        if self.shape_type is ShapeType.SPHERE:
            return self.radius
        if self.shape_type is ShapeType.BOX:
            return float(np.linalg.norm(self.half_extents))
        if self.shape_type is ShapeType.CAPSULE:
            return self.height / 2 + self.radius
        return math.hypot(self.radius, self.height / 2)

    @property
    def half_segment(self) -> float:
        """Half length of the core segment used for capsule-style tests."""
        if self.shape_type is ShapeType.CAPSULE:
            return self.height / 2
        if self.shape_type is ShapeType.CYLINDER:
            return max(self.height / 2 - self.radius, 0.0)
        return 0.0

    def inertia(self, mass: float) -> np.ndarray:
        """Diagonal body-frame inertia tensor for the given mass.

        Returns:
            Array (Ixx, Iyy, Izz) in kg*m^2
        """
        if self.shape_type is ShapeType.SPHERE:
            i = 0.4 * mass * self.radius ** 2
            return np.array([i, i, i])
        if self.shape_type is ShapeType.BOX:
            w, d, h = (2 * e for e in self.half_extents)
            return np.array([
                mass * (d * d + h * h) / 12.0,
                mass * (w * w + h * h) / 12.0,
                mass * (w * w + d * d) / 12.0,
            ])
        # Capsules use the cylinder formula over their full length
        r = self.radius
        length = self.height + (2 * r if self.shape_type is ShapeType.CAPSULE else 0.0)
        side = mass * (3 * r * r + length * length) / 12.0
        return np.array([side, side, 0.5 * mass * r * r])
