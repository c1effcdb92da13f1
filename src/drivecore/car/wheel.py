"""
Wheel - Per-wheel tire state and force solution.

Each wheel tracks its load, slip, temperature, damage and spin, and turns
a contact velocity plus drive/brake demands into a tire force in the
wheel's own frame.
"""

from dataclasses import dataclass
import math

import numpy as np

from drivecore.car.tires import (
    TireConfig,
    friction_circle,
    lateral_force,
    load_factor,
    longitudinal_force,
    slip_for_force,
    temperature_grip,
    temperature_rate,
)
from drivecore.core.mathutils import wrap_positive

# Wheel order used everywhere in the car
FRONT_LEFT = 0
FRONT_RIGHT = 1
REAR_LEFT = 2
REAR_RIGHT = 3
WHEEL_NAMES = ("FL", "FR", "RL", "RR")

# Keeps the slip angle finite near standstill
SLIP_EPSILON = 0.5


@dataclass
class WheelInputs:
    """Per-substep demands on a wheel, all in the wheel frame."""
    v_long: float = 0.0            # Contact velocity along the wheel heading (m/s)
    v_lat: float = 0.0             # Contact velocity toward the wheel's left (m/s)
    drive_force: float = 0.0       # Drive torque / radius (N)
    brake_force: float = 0.0       # Service brake magnitude (N)
    surface_grip: float = 1.0
    mass_share: float = 350.0      # Vehicle mass carried by this wheel (kg)
    handbrake: bool = False        # Lock this wheel with the handbrake
    handbrake_lateral_factor: float = 0.3


class Wheel:
    """Single wheel with tire state.

    Lifted wheels (load 0) produce no force.
    """

    def __init__(
        self,
        index: int,
        offset: np.ndarray,
        config: TireConfig | None = None,
    ):
        """Initialize wheel.

        Args:
            index: Position in the car's wheel list (0=FL, 1=FR, 2=RL, 3=RR)
            offset: Contact point in body frame (m)
            config: Tire configuration. Uses defaults if None.
        """
        self.config = config or TireConfig()
        self.index = index
        self.offset = np.asarray(offset, dtype=float)
        self.is_front = index in (FRONT_LEFT, FRONT_RIGHT)
        self.is_left = index in (FRONT_LEFT, REAR_LEFT)

        self.steer_angle: float = 0.0
        self.reset()

    def reset(self) -> None:
        """Reset wheel to a fresh, undamaged state."""
        self._angular_velocity: float = 0.0
        self._rotation: float = 0.0
        self._slip_angle: float = 0.0
        self._slip_ratio: float = 0.0
        self._load: float = 0.0
        self._grip: float = 1.0
        self._mu: float = self.config.d
        self._temperature: float = self.config.initial_temp_c
        self._damage: float = 0.0
        self._force_x: float = 0.0
        self._force_y: float = 0.0
        self.steer_angle = 0.0

    @property
    def name(self) -> str:
        """Short position name (FL, FR, RL, RR)."""
        return WHEEL_NAMES[self.index]

    @property
    def radius(self) -> float:
        """Rolling radius in meters."""
        return self.config.radius_m

    @property
    def load(self) -> float:
        """Vertical load in N."""
        return self._load

    @load.setter
    def load(self, value: float) -> None:
        """Set vertical load, never negative."""
        self._load = max(0.0, float(value))

    @property
    def is_lifted(self) -> bool:
        """Check if the wheel carries no load."""
        return self._load <= 0.0

    @property
    def angular_velocity(self) -> float:
        """Spin rate in rad/s."""
        return self._angular_velocity

    @angular_velocity.setter
    def angular_velocity(self, value: float) -> None:
        """Set spin rate in rad/s."""
        self._angular_velocity = float(value)

    @property
    def rotation(self) -> float:
        """Accumulated rotation in [0, 2*pi)."""
        return self._rotation

    @property
    def slip_angle(self) -> float:
        """Slip angle in radians."""
        return self._slip_angle

    @property
    def slip_ratio(self) -> float:
        """Longitudinal slip ratio."""
        return self._slip_ratio

    @property
    def grip(self) -> float:
        """Combined grip multiplier from the last force solution."""
        return self._grip

    @property
    def mu(self) -> float:
        """Effective friction coefficient (force limit per Newton of load)."""
        return self._mu

    @property
    def temperature(self) -> float:
        """Tire temperature in Celsius."""
        return self._temperature

    @temperature.setter
    def temperature(self, value: float) -> None:
        """Set tire temperature, clamped to the valid range."""
        self._temperature = float(np.clip(value, self.config.min_temp_c, self.config.max_temp_c))

    @property
    def damage(self) -> float:
        """Wheel damage (0 = intact, 1 = destroyed)."""
        return self._damage

    @damage.setter
    def damage(self, value: float) -> None:
        """Set wheel damage, clamped to 0-1."""
        self._damage = float(np.clip(value, 0.0, 1.0))

    @property
    def force_x(self) -> float:
        """Last longitudinal force in N (wheel frame)."""
        return self._force_x

    @property
    def force_y(self) -> float:
        """Last lateral force in N (wheel frame)."""
        return self._force_y

    def effective_grip(self, surface_grip: float) -> float:
        """Grip multiplier combining surface, temperature, damage and load."""
        damage_factor = 1.0 - self._damage * self.config.damage_grip_loss
        return (
            surface_grip
            * temperature_grip(self._temperature, self.config)
            * damage_factor
            * load_factor(self._load, self.config)
        )

    def solve_forces(self, inputs: WheelInputs, dt: float) -> tuple[float, float]:
        """Compute the tire force for this substep.

        Resistive forces (brakes, handbrake slide) never reverse the
        contact velocity within one substep, and the lateral force is
        limited to what cancels the lateral slip in one substep.

        Args:
            inputs: Contact velocity and force demands
            dt: Substep length in seconds

        Returns:
            Tuple (force_x, force_y) in N, wheel frame
        """
        v_long = inputs.v_long
        v_lat = inputs.v_lat
        self._slip_angle = math.atan2(v_lat, abs(v_long) + SLIP_EPSILON)

        if self.is_lifted:
            self._grip = 0.0
            self._mu = 0.0
            self._force_x = 0.0
            self._force_y = 0.0
            self._slip_ratio = 0.0
            return 0.0, 0.0

        grip = self.effective_grip(inputs.surface_grip)
        self._grip = grip
        self._mu = self.config.d * grip
        limit = self._mu * self._load

        fy = lateral_force(self._slip_angle, self._load, grip, self.config)
        if inputs.handbrake:
            fy *= inputs.handbrake_lateral_factor
        lateral_cap = inputs.mass_share * abs(v_lat) / dt
        fy = float(np.clip(fy, -lateral_cap, lateral_cap))

        stop_cap = inputs.mass_share * abs(v_long) / dt
        direction = float(np.sign(v_long))
        if inputs.handbrake:
            slide = abs(longitudinal_force(1.0, self._load, grip, self.config))
            fx = -direction * min(slide, stop_cap)
            self._slip_ratio = -direction if direction != 0.0 else 0.0
        else:
            fx = inputs.drive_force - direction * min(inputs.brake_force, stop_cap)
            self._slip_ratio = slip_for_force(fx, limit, self.config)

        fx, fy = friction_circle(fx, fy, limit)
        self._force_x = fx
        self._force_y = fy
        return fx, fy

    def update_spin(self, v_long: float, dt: float, locked: bool = False) -> None:
        """Update wheel spin from ground speed and slip ratio."""
        if locked:
            self._angular_velocity = 0.0
        else:
            self._angular_velocity = v_long * (1.0 + self._slip_ratio) / self.radius
        self._rotation = wrap_positive(self._rotation + self._angular_velocity * dt)

    def update_temperature(self, dt: float, ambient_c: float) -> None:
        """Integrate tire temperature from the current slip."""
        slip = math.hypot(self._slip_angle, self._slip_ratio)
        rate = temperature_rate(self._temperature, slip, ambient_c, self.config)
        self.temperature = self._temperature + rate * dt

    def get_state(self) -> dict:
        """Get current wheel state for telemetry."""
        return {
            "name": self.name,
            "load_n": self._load,
            "grip": self._grip,
            "mu": self._mu,
            "slip_angle_rad": self._slip_angle,
            "slip_ratio": self._slip_ratio,
            "temperature_c": self._temperature,
            "damage": self._damage,
            "angular_velocity": self._angular_velocity,
            "rotation": self._rotation,
            "steer_angle": self.steer_angle,
        }
