"""
Differential and drivetrain layout.

Splits gearbox output torque between axles (RWD, FWD or AWD) and between
the left and right wheel of each driven axle (open, limited-slip or
locked differential).
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from drivecore.errors import ConfigurationError


class DifferentialType(Enum):
    """Differential behaviour between the wheels of an axle."""
    OPEN = "open"
    LSD = "lsd"
    LOCKED = "locked"


class DrivetrainLayout(Enum):
    """Which axles receive drive torque."""
    RWD = "rwd"
    FWD = "fwd"
    AWD = "awd"


@dataclass
class DifferentialConfig:
    """Differential and drivetrain configuration."""
    diff_type: DifferentialType = DifferentialType.LSD
    layout: DrivetrainLayout = DrivetrainLayout.RWD

    # Limited slip
    preload_nm: float = 50.0
    accel_lock: float = 0.6
    decel_lock: float = 0.4
    max_lock_fraction: float = 0.4   # Locking torque cap as a share of input torque

    # AWD split
    awd_front_bias: float = 0.3

    def __post_init__(self):
        if self.preload_nm < 0:
            raise ConfigurationError("Differential preload must not be negative")
        if not (0.0 <= self.accel_lock <= 1.0 and 0.0 <= self.decel_lock <= 1.0):
            raise ConfigurationError("Lock factors must be within 0-1")
        if not 0.0 <= self.awd_front_bias <= 1.0:
            raise ConfigurationError("AWD front bias must be within 0-1")


class Differential:
    """Left/right torque split for one axle."""

    def __init__(self, config: DifferentialConfig | None = None):
        """Initialize differential.

        Args:
            config: Differential configuration. Uses defaults if None.
        """
        self.config = config or DifferentialConfig()

    def split(self, torque: float, left_speed: float, right_speed: float) -> tuple[float, float]:
        """Split axle torque between the left and right wheel.

        The limited-slip lock moves torque from the faster wheel to the
        slower one, bounded by a share of the input torque.

        Args:
            torque: Axle input torque in Nm
            left_speed: Left wheel angular speed (rad/s)
            right_speed: Right wheel angular speed (rad/s)

        Returns:
            Tuple (left_torque, right_torque)
        """
        half = torque / 2.0
        if self.config.diff_type is not DifferentialType.LSD:
            return half, half

        cfg = self.config
        lock_factor = cfg.accel_lock if torque >= 0 else cfg.decel_lock
        speed_diff = abs(left_speed - right_speed)
        lock = min(cfg.preload_nm + speed_diff * lock_factor * 100.0, cfg.max_lock_fraction * abs(torque))

        if left_speed < right_speed:
            return half + lock / 2, half - lock / 2
        if right_speed < left_speed:
            return half - lock / 2, half + lock / 2
        return half, half


class Drivetrain:
    """Routes gearbox output to the four wheels (FL, FR, RL, RR)."""

    def __init__(self, config: DifferentialConfig | None = None):
        """Initialize drivetrain.

        Args:
            config: Differential configuration. Uses defaults if None.
        """
        self.config = config or DifferentialConfig()
        self.differential = Differential(self.config)

    @property
    def front_share(self) -> float:
        """Share of torque sent to the front axle."""
        if self.config.layout is DrivetrainLayout.FWD:
            return 1.0
        if self.config.layout is DrivetrainLayout.AWD:
            return self.config.awd_front_bias
        return 0.0

    @property
    def driven_wheels(self) -> list[int]:
        """Indices of wheels that receive torque."""
        share = self.front_share
        wheels = []
        if share > 0.0:
            wheels += [0, 1]
        if share < 1.0:
            wheels += [2, 3]
        return wheels

    @property
    def is_locked(self) -> bool:
        """Check if the axles are locked (equal wheel speeds)."""
        return self.config.diff_type is DifferentialType.LOCKED

    def split(self, torque: float, wheel_speeds: np.ndarray) -> np.ndarray:
        """Distribute drive torque to the wheels.

        Args:
            torque: Gearbox output torque in Nm
            wheel_speeds: Wheel angular speeds (rad/s), FL, FR, RL, RR

        Returns:
            Per-wheel torque in Nm, FL, FR, RL, RR
        """
        front = torque * self.front_share
        rear = torque - front
        out = np.zeros(4)
        if front != 0.0:
            out[0], out[1] = self.differential.split(front, wheel_speeds[0], wheel_speeds[1])
        if rear != 0.0:
            out[2], out[3] = self.differential.split(rear, wheel_speeds[2], wheel_speeds[3])
        return out

    def driven_wheel_speed(self, wheel_speeds: np.ndarray) -> float:
        """Mean angular speed of the driven wheels."""
        return float(np.mean([wheel_speeds[i] for i in self.driven_wheels]))
