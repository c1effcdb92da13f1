"""
Chassis component - Vehicle mass properties and geometry.

Defines:
- Total vehicle mass
- Center of gravity position
- Wheel contact positions in body frame
- Box inertia of the body
"""

from dataclasses import dataclass

import numpy as np

from drivecore.errors import ConfigurationError

GRAVITY = 9.81


@dataclass
class ChassisConfig:
    """Chassis geometry and mass.

    Default values describe a mid-size rear-driven sports coupe.
    """
    # Mass properties
    mass_kg: float = 1400.0

    # Wheel layout
    wheelbase_m: float = 2.7
    track_width_m: float = 1.6

    # Center of gravity (height above ground, distance behind front axle)
    cg_height_m: float = 0.5
    cg_to_front_m: float = 1.35

    # Body dimensions
    length_m: float = 4.4
    width_m: float = 1.8
    height_m: float = 1.4

    # Share of lateral load transfer taken by the front axle
    roll_stiffness_front: float = 0.55

    def __post_init__(self):
        if self.mass_kg <= 0:
            raise ConfigurationError("Vehicle mass must be positive")
        for name in ("wheelbase_m", "track_width_m", "cg_height_m", "length_m", "width_m", "height_m"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"Chassis dimension {name} must be positive")
        if not 0.0 < self.cg_to_front_m < self.wheelbase_m:
            raise ConfigurationError("Center of gravity must lie between the axles")
        if not 0.0 <= self.roll_stiffness_front <= 1.0:
            raise ConfigurationError("Front roll stiffness share must be within 0-1")

    @property
    def cg_to_rear_m(self) -> float:
        """Distance from the center of gravity to the rear axle."""
        return self.wheelbase_m - self.cg_to_front_m


class Chassis:
    """Vehicle chassis.

    Provides mass, inertia and the wheel contact points relative to the
    center of gravity (body frame: x forward, y left, z up).
    """

    def __init__(self, config: ChassisConfig | None = None):
        """Initialize chassis with optional custom configuration.

        Args:
            config: Chassis configuration. Uses defaults if None.
        """
        self.config = config or ChassisConfig()

    @property
    def mass(self) -> float:
        """Total vehicle mass in kg."""
        return self.config.mass_kg

    @property
    def front_weight_fraction(self) -> float:
        """Fraction of weight on front axle (static)."""
        return self.config.cg_to_rear_m / self.config.wheelbase_m

    @property
    def rear_weight_fraction(self) -> float:
        """Fraction of weight on rear axle (static)."""
        return self.config.cg_to_front_m / self.config.wheelbase_m

    @property
    def half_extents(self) -> tuple[float, float, float]:
        """Half extents of the body box (x, y, z)."""
        return (self.config.length_m / 2, self.config.width_m / 2, self.config.height_m / 2)

    def wheel_offsets(self) -> list[np.ndarray]:
        """Wheel contact points relative to the CG, ordered FL, FR, RL, RR."""
        a = self.config.cg_to_front_m
        b = self.config.cg_to_rear_m
        half_track = self.config.track_width_m / 2
        h = -self.config.cg_height_m
        return [
            np.array([a, half_track, h]),
            np.array([a, -half_track, h]),
            np.array([-b, half_track, h]),
            np.array([-b, -half_track, h]),
        ]

    def static_wheel_loads(self) -> np.ndarray:
        """Static vertical load on each wheel in N (FL, FR, RL, RR)."""
        weight = self.mass * GRAVITY
        front = weight * self.front_weight_fraction / 2
        rear = weight * self.rear_weight_fraction / 2
        return np.array([front, front, rear, rear])

    def get_state(self) -> dict:
        """Get chassis properties for telemetry."""
        return {
            "mass_kg": self.mass,
            "front_weight_fraction": self.front_weight_fraction,
            "cg_height_m": self.config.cg_height_m,
        }
