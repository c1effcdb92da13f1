"""
Transmission component - Gearbox, clutch and automatic shifting.

Simulates:
- Reverse, neutral and forward gears with a final drive
- Timed shifts with clutch disengagement
- Automatic up/down shifting with a cooldown
- Efficiency and damage losses
"""

from dataclasses import dataclass, field
from enum import IntEnum
import logging
from typing import List

import numpy as np

from drivecore.errors import ConfigurationError

logger = logging.getLogger(__name__)


class GearState(IntEnum):
    """Named gear positions. Forward gears beyond SIXTH are plain ints."""
    REVERSE = -1
    NEUTRAL = 0
    FIRST = 1
    SECOND = 2
    THIRD = 3
    FOURTH = 4
    FIFTH = 5
    SIXTH = 6


@dataclass
class TransmissionConfig:
    """Gearbox configuration.

    Forward ratios must be positive and strictly decreasing.
    """
    gear_ratios: List[float] = field(default_factory=lambda: [3.5, 2.3, 1.7, 1.3, 1.0, 0.8])
    reverse_ratio: float = 3.2
    final_drive: float = 3.7
    efficiency: float = 0.92

    # Timing
    clutch_engagement_time_s: float = 0.3
    shift_time_s: float = 0.15

    # Automatic shifting
    auto_shift: bool = True
    upshift_rpm: float = 6500.0
    downshift_rpm: float = 3500.0
    auto_shift_cooldown_s: float = 0.5

    # Torque lost per unit of gearbox damage
    damage_factor: float = 0.3

    def __post_init__(self):
        if self.final_drive <= 0:
            raise ConfigurationError("Final drive ratio must be positive")
        if not self.gear_ratios:
            raise ConfigurationError("At least one forward gear is required")
        if any(r <= 0 for r in self.gear_ratios):
            raise ConfigurationError("Gear ratios must be positive")
        if any(a <= b for a, b in zip(self.gear_ratios, self.gear_ratios[1:])):
            raise ConfigurationError("Gear ratios must be strictly decreasing")
        if self.reverse_ratio <= 0:
            raise ConfigurationError("Reverse ratio must be positive")
        if not 0.0 < self.efficiency <= 1.0:
            raise ConfigurationError("Efficiency must be within (0, 1]")
        if self.shift_time_s <= 0 or self.clutch_engagement_time_s <= 0:
            raise ConfigurationError("Shift and clutch times must be positive")
        if self.downshift_rpm >= self.upshift_rpm:
            raise ConfigurationError("Downshift RPM must be below upshift RPM")


class Transmission:
    """Gearbox with a timed shift state machine.

    A shift disengages the clutch, waits shift_time_s and then changes
    gear atomically; torque fades out by (1 - progress) meanwhile. Shift
    requests while shifting or past the ends of the gate are refused.

    Usage:
        trans = Transmission()
        if trans.shift_up():
            trans.update(dt, engine_rpm)
    """

    def __init__(self, config: TransmissionConfig | None = None):
        """Initialize transmission with optional custom configuration.

        Args:
            config: Transmission configuration. Uses defaults if None.
        """
        self.config = config or TransmissionConfig()
        self.reset()

    @property
    def current_gear(self) -> int:
        """Current gear (-1 = reverse, 0 = neutral)."""
        return self._current_gear

    @property
    def target_gear(self) -> int:
        """Gear being shifted into (equals current gear when not shifting)."""
        return self._target_gear

    @property
    def max_gear(self) -> int:
        """Highest forward gear."""
        return len(self.config.gear_ratios)

    @property
    def is_shifting(self) -> bool:
        """Check if a shift is in progress."""
        return self._shifting

    @property
    def shift_progress(self) -> float:
        """Shift progress from 0 to 1 (0 when not shifting)."""
        return self._shift_progress

    @property
    def clutch(self) -> float:
        """Clutch engagement (0 = open, 1 = fully engaged)."""
        return self._clutch

    @property
    def damage(self) -> float:
        """Gearbox damage (0-1)."""
        return self._damage

    @damage.setter
    def damage(self, value: float) -> None:
        """Set gearbox damage, clamped to 0-1."""
        self._damage = float(np.clip(value, 0.0, 1.0))

    @property
    def gear_name(self) -> str:
        """Display name of the current gear (R, N, 1, 2, ...)."""
        if self._current_gear == int(GearState.REVERSE):
            return "R"
        if self._current_gear == int(GearState.NEUTRAL):
            return "N"
        return str(self._current_gear)

    def get_gear_ratio(self, gear: int | None = None) -> float:
        """Get the signed gear ratio.

        Args:
            gear: Gear number (uses current if None)

        Returns:
            Gear ratio; negative in reverse, 0 in neutral
        """
        gear = self._current_gear if gear is None else gear
        if gear == int(GearState.REVERSE):
            return -self.config.reverse_ratio
        if 1 <= gear <= self.max_gear:
            return self.config.gear_ratios[gear - 1]
        return 0.0

    def get_total_ratio(self, gear: int | None = None) -> float:
        """Get total drive ratio (gear ratio * final drive)."""
        return self.get_gear_ratio(gear) * self.config.final_drive

    def _begin_shift(self, target: int) -> bool:
        self._target_gear = target
        self._shifting = True
        self._shift_progress = 0.0
        self._clutch_target = 0.0
        self._time_since_shift = 0.0
        logger.debug("Shift %d -> %d started", self._current_gear, target)
        return True

    def shift_up(self) -> bool:
        """Request upshift (R -> N -> 1 -> ... -> top).

        Returns:
            True if shift request accepted
        """
        if self._shifting or self._current_gear >= self.max_gear:
            return False
        return self._begin_shift(self._current_gear + 1)

    def shift_down(self) -> bool:
        """Request downshift (top -> ... -> 1 -> N -> R).

        Returns:
            True if shift request accepted
        """
        if self._shifting or self._current_gear <= int(GearState.REVERSE):
            return False
        return self._begin_shift(self._current_gear - 1)

    def set_gear(self, gear: int) -> bool:
        """Directly engage a gear, skipping the shift.

        Args:
            gear: Target gear number

        Returns:
            True if gear set successfully
        """
        if gear < int(GearState.REVERSE) or gear > self.max_gear:
            return False
        self._current_gear = gear
        self._target_gear = gear
        self._shifting = False
        self._shift_progress = 0.0
        self._clutch = 1.0
        self._clutch_target = 1.0
        return True

    def update(self, dt: float, engine_rpm: float) -> dict:
        """Advance shift progress, clutch and automatic shifting.

        Args:
            dt: Time step in seconds
            engine_rpm: Current engine RPM

        Returns:
            Dictionary with shift state info
        """
        shift_info = {
            "shifting": self._shifting,
            "gear_changed": False,
            "auto_shift": 0,
        }
        self._time_since_shift += dt

        if self._shifting:
            self._shift_progress += dt / self.config.shift_time_s
            if self._shift_progress >= 1.0:
                previous = self._current_gear
                self._current_gear = self._target_gear
                self._shifting = False
                self._shift_progress = 0.0
                self._clutch_target = 1.0
                shift_info["gear_changed"] = True
                logger.debug("Shift %d -> %d complete", previous, self._current_gear)

        rate = dt / self.config.clutch_engagement_time_s
        if self._clutch < self._clutch_target:
            self._clutch = min(self._clutch + rate, self._clutch_target)
        else:
            self._clutch = max(self._clutch - rate, self._clutch_target)

        if self.config.auto_shift:
            shift_info["auto_shift"] = self._auto_shift(engine_rpm)
        return shift_info

    def _auto_shift(self, engine_rpm: float) -> int:
        """Shift automatically in forward gears. Returns +1, -1 or 0."""
        cfg = self.config
        if self._shifting or self._current_gear < int(GearState.FIRST):
            return 0
        if self._time_since_shift < cfg.auto_shift_cooldown_s:
            return 0

        if engine_rpm >= cfg.upshift_rpm and self._current_gear < self.max_gear:
            self.shift_up()
            return 1

        if engine_rpm <= cfg.downshift_rpm and self._current_gear > int(GearState.FIRST):
            lower = self.get_gear_ratio(self._current_gear - 1)
            predicted = engine_rpm * lower / self.get_gear_ratio()
            if predicted <= cfg.upshift_rpm * 0.95:
                self.shift_down()
                return -1
        return 0

    def get_output_torque(self, engine_torque: float) -> float:
        """Calculate torque delivered to the differential.

        Args:
            engine_torque: Torque from engine in Nm

        Returns:
            Output torque in Nm; negative in reverse
        """
        cfg = self.config
        torque = (
            engine_torque
            * self.get_total_ratio()
            * self._clutch
            * cfg.efficiency
            * (1.0 - cfg.damage_factor * self._damage)
        )
        if self._shifting:
            torque *= 1.0 - self._shift_progress
        return torque

    def reset(self) -> None:
        """Reset transmission to first gear, clutch engaged."""
        self._current_gear = int(GearState.FIRST)
        self._target_gear = int(GearState.FIRST)
        self._shifting = False
        self._shift_progress = 0.0
        self._clutch = 1.0
        self._clutch_target = 1.0
        self._time_since_shift = 0.0
        self._damage = 0.0

    def get_state(self) -> dict:
        """Get current transmission state for telemetry.

        Returns:
            Dictionary containing transmission state values
        """
        return {
            "gear": self._current_gear,
            "gear_name": self.gear_name,
            "target_gear": self._target_gear,
            "is_shifting": self._shifting,
            "shift_progress": self._shift_progress,
            "clutch": self._clutch,
            "gear_ratio": self.get_gear_ratio(),
            "total_ratio": self.get_total_ratio(),
            "damage": self._damage,
        }
