"""
Engine component - Torque delivery.

Simulates:
- RPM-based torque curve
- Power limit
- Rev limiter
- Engine braking off throttle
- Power loss from engine damage
"""

from dataclasses import dataclass
import math

import numpy as np

from drivecore.errors import ConfigurationError

RPM_TO_RAD_S = 2.0 * math.pi / 60.0


@dataclass
class EngineConfig:
    """Engine configuration.

    Default values describe a naturally aspirated 3.0L six producing
    around 300 HP.
    """
    # RPM limits
    idle_rpm: float = 800.0
    peak_torque_rpm: float = 4200.0
    redline_rpm: float = 7000.0

    # Power characteristics
    max_torque_nm: float = 400.0
    max_power_kw: float = 220.0

    # Torque lost per unit of engine damage
    damage_factor: float = 0.5

    # Free revving in neutral: idle + throttle * range
    neutral_rev_range: float = 2000.0
    free_rev_rate: float = 8.0         # 1/s response when declutched

    # Engine braking torque at redline, as a fraction of max torque
    engine_brake_fraction: float = 0.1

    def __post_init__(self):
        if self.idle_rpm <= 0:
            raise ConfigurationError("Idle RPM must be positive")
        if not self.idle_rpm < self.peak_torque_rpm < self.redline_rpm:
            raise ConfigurationError("RPM points must satisfy idle < peak torque < redline")
        if self.max_torque_nm <= 0 or self.max_power_kw <= 0:
            raise ConfigurationError("Engine torque and power must be positive")

    def torque_curve(self) -> list[tuple[float, float]]:
        """Torque curve as (rpm, fraction of max torque) points."""
        top = self.redline_rpm
        return [
            (0.0, 0.0),
            (0.2 * top, 0.6),
            (self.peak_torque_rpm, 1.0),
            (0.9 * top, 0.85),
            (top, 0.0),
        ]


class Engine:
    """Engine simulation.

    RPM follows the driven wheels while the clutch is engaged and revs
    freely otherwise.
    """

    def __init__(self, config: EngineConfig | None = None):
        """Initialize engine with optional custom configuration.

        Args:
            config: Engine configuration. Uses defaults if None.
        """
        self.config = config or EngineConfig()

        curve = self.config.torque_curve()
        self._curve_rpms = np.array([p[0] for p in curve])
        self._curve_fractions = np.array([p[1] for p in curve])

        self.reset()

    @property
    def rpm(self) -> float:
        """Current engine RPM."""
        return self._rpm

    @rpm.setter
    def rpm(self, value: float) -> None:
        """Set engine RPM, clamped to the idle-redline range."""
        self._rpm = float(np.clip(value, self.config.idle_rpm, self.config.redline_rpm))

    @property
    def throttle(self) -> float:
        """Current throttle position (0.0 to 1.0)."""
        return self._throttle

    @throttle.setter
    def throttle(self, value: float) -> None:
        """Set throttle position, clamped to 0-1."""
        self._throttle = float(np.clip(value, 0.0, 1.0))

    @property
    def damage(self) -> float:
        """Engine damage (0 = intact, 1 = destroyed)."""
        return self._damage

    @damage.setter
    def damage(self, value: float) -> None:
        """Set engine damage, clamped to 0-1."""
        self._damage = float(np.clip(value, 0.0, 1.0))

    @property
    def rev_limiter_active(self) -> bool:
        """Check if the rev limiter is cutting fuel."""
        return self._rpm >= self.config.redline_rpm

    def get_torque_fraction(self, rpm: float) -> float:
        """Get torque fraction (0-1) at given RPM from torque curve.

        Args:
            rpm: Engine RPM to query

        Returns:
            Fraction of max torque available at this RPM
        """
        return float(np.interp(rpm, self._curve_rpms, self._curve_fractions))

    def get_torque(self, driven_by_wheels: bool = False) -> float:
        """Get current output torque in Nm.

        Off throttle while the wheels turn the engine in the direction of
        the selected gear, the engine drags, returning a negative torque
        proportional to RPM.

        Args:
            driven_by_wheels: Whether the car rolls the way the gear drives it

        Returns:
            Engine torque in Nm
        """
        cfg = self.config
        if self._throttle < 0.1 and driven_by_wheels:
            return -cfg.engine_brake_fraction * cfg.max_torque_nm * self._rpm / cfg.redline_rpm

        if self.rev_limiter_active:
            return 0.0

        torque = cfg.max_torque_nm * self.get_torque_fraction(self._rpm) * self._throttle
        torque *= 1.0 - cfg.damage_factor * self._damage

        omega = self._rpm * RPM_TO_RAD_S
        if omega > 0:
            torque = min(torque, cfg.max_power_kw * 1000.0 / omega)
        return max(torque, 0.0)

    def get_power(self) -> float:
        """Get current power output in kW."""
        return self.get_torque() * self._rpm * RPM_TO_RAD_S / 1000.0

    def update(self, dt: float, wheel_speed: float, total_ratio: float, engaged: bool) -> None:
        """Update engine RPM for one time step.

        Args:
            dt: Time step in seconds
            wheel_speed: Mean driven-wheel angular speed (rad/s)
            total_ratio: Gear ratio times final drive
            engaged: Whether the drivetrain is coupled to the wheels
        """
        if engaged and total_ratio != 0.0:
            self.rpm = abs(wheel_speed * total_ratio) / RPM_TO_RAD_S
            return
        target = self.config.idle_rpm + self._throttle * self.config.neutral_rev_range
        self.rpm = self._rpm + (target - self._rpm) * min(self.config.free_rev_rate * dt, 1.0)

    def reset(self) -> None:
        """Reset engine to idle, undamaged."""
        self._rpm = self.config.idle_rpm
        self._throttle = 0.0
        self._damage = 0.0

    def get_state(self) -> dict:
        """Get current engine state for telemetry.

        Returns:
            Dictionary containing engine state values
        """
        return {
            "rpm": self._rpm,
            "throttle": self._throttle,
            "torque_nm": self.get_torque(),
            "power_kw": self.get_power(),
            "damage": self._damage,
            "rev_limiter_active": self.rev_limiter_active,
        }
