"""
Weight transfer - Dynamic wheel loads.

Calculates:
- Static axle loads from the CG position
- Longitudinal transfer under acceleration and braking
- Lateral transfer while cornering, split by roll stiffness
- Aerodynamic downforce per axle
- Rollover, braking and traction limits
"""

import numpy as np

from drivecore.car.chassis import GRAVITY, ChassisConfig


class WeightTransfer:
    """Wheel load calculation from body acceleration.

    Accelerations are in the body frame: positive longitudinal is forward
    (accelerating), positive lateral is toward the car's left, which
    loads the right-hand wheels.
    """

    def __init__(self, config: ChassisConfig | None = None):
        """Initialize with chassis geometry.

        Args:
            config: Chassis configuration. Uses defaults if None.
        """
        self.config = config or ChassisConfig()
        self._loads = self.calculate(0.0, 0.0)

    @property
    def wheel_loads(self) -> np.ndarray:
        """Last computed wheel loads in N (FL, FR, RL, RR)."""
        return self._loads.copy()

    def calculate(
        self,
        longitudinal_accel: float,
        lateral_accel: float,
        front_downforce: float = 0.0,
        rear_downforce: float = 0.0,
    ) -> np.ndarray:
        """Calculate the vertical load on each wheel.

        Args:
            longitudinal_accel: Body-frame forward acceleration (m/s^2)
            lateral_accel: Body-frame leftward acceleration (m/s^2)
            front_downforce: Aero load on the front axle (N)
            rear_downforce: Aero load on the rear axle (N)

        Returns:
            Wheel loads in N (FL, FR, RL, RR), each >= 0
        """
        cfg = self.config
        m = cfg.mass_kg
        h = cfg.cg_height_m
        wheelbase = cfg.wheelbase_m

        front_axle = m * GRAVITY * cfg.cg_to_rear_m / wheelbase
        rear_axle = m * GRAVITY * cfg.cg_to_front_m / wheelbase

        # Acceleration moves load rearward, braking moves it forward
        long_transfer = m * longitudinal_accel * h / wheelbase
        front_axle = front_axle - long_transfer + front_downforce
        rear_axle = rear_axle + long_transfer + rear_downforce

        lat_transfer = m * lateral_accel * h / cfg.track_width_m
        front_lat = lat_transfer * cfg.roll_stiffness_front
        rear_lat = lat_transfer - front_lat

        loads = np.array([
            front_axle / 2 - front_lat / 2,
            front_axle / 2 + front_lat / 2,
            rear_axle / 2 - rear_lat / 2,
            rear_axle / 2 + rear_lat / 2,
        ])
        self._loads = np.maximum(loads, 0.0)
        return self._loads.copy()

    @property
    def rollover_threshold(self) -> float:
        """Lateral acceleration (m/s^2) at which the inside wheels lift."""
        return GRAVITY * self.config.track_width_m / (2 * self.config.cg_height_m)

    @property
    def max_braking_deceleration(self) -> float:
        """Deceleration (m/s^2) at which the rear wheels unload."""
        return GRAVITY * self.config.cg_to_rear_m / self.config.cg_height_m

    @property
    def max_acceleration(self) -> float:
        """Acceleration (m/s^2) at which the front wheels unload."""
        return GRAVITY * self.config.cg_to_front_m / self.config.cg_height_m

    def get_state(self) -> dict:
        """Get current load distribution for telemetry."""
        total = float(self._loads.sum())
        front = float(self._loads[0] + self._loads[1])
        return {
            "wheel_loads_n": self._loads.tolist(),
            "front_fraction": front / total if total > 0 else 0.0,
        }
