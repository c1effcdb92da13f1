"""
Brakes - Service brake distribution, heat, fade, damage and ABS.

Provides:
- Pedal force split front/rear by the brake bias
- Disc temperature from braking power and airflow cooling
- Fade once a disc runs past its fade temperature
- Force loss from brake damage
- Optional ABS that pulses a wheel's brake while its slip is too high
"""

from dataclasses import dataclass
import logging
from typing import Sequence

import numpy as np

from drivecore.core.mathutils import clamp
from drivecore.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class BrakeConfig:
    """Service brake and handbrake."""
    max_force_n: float = 25000.0
    front_bias: float = 0.6
    handbrake_lateral_factor: float = 0.3   # Rear lateral grip kept with the handbrake on

    # Heat
    initial_temp_c: float = 25.0
    heat_per_kj: float = 0.4                # C per kJ dissipated in one brake
    cooling_rate: float = 0.1               # 1/s toward ambient
    airflow_cooling: float = 0.05           # Extra cooling per m/s of speed
    max_temp_c: float = 800.0

    # Fade
    fade_start_c: float = 400.0
    fade_full_c: float = 600.0
    min_fade_factor: float = 0.3

    # Damage
    damage_factor: float = 0.5              # Force lost per unit of damage

    # ABS
    abs_enabled: bool = False
    abs_slip_threshold: float = 0.15
    abs_release_slip: float = 0.10
    abs_frequency_hz: float = 15.0
    abs_release_factor: float = 0.3         # Force kept while the valve releases
    abs_apply_factor: float = 0.8           # Force kept while the valve reapplies
    abs_min_pedal: float = 0.1

    def __post_init__(self):
        if self.max_force_n < 0:
            raise ConfigurationError("Brake force must not be negative")
        if not 0.0 <= self.front_bias <= 1.0:
            raise ConfigurationError("Brake bias must be within 0-1")
        if self.fade_full_c <= self.fade_start_c:
            raise ConfigurationError("Fade must start below the full fade temperature")
        if not 0.0 < self.min_fade_factor <= 1.0:
            raise ConfigurationError("Minimum fade factor must be within (0, 1]")
        if self.abs_release_slip >= self.abs_slip_threshold:
            raise ConfigurationError("ABS release slip must be below the ABS threshold")
        if self.abs_frequency_hz <= 0:
            raise ConfigurationError("ABS frequency must be positive")


class Brakes:
    """Four-corner service brakes.

    Wheel order matches the car: FL, FR, RL, RR. The handbrake is handled
    by the wheels themselves and bypasses this model.
    """

    def __init__(self, config: BrakeConfig | None = None):
        """Initialize brakes.

        Args:
            config: Brake configuration. Uses defaults if None.
        """
        self.config = config or BrakeConfig()
        self.abs_enabled = self.config.abs_enabled
        self.reset()

    @property
    def temperatures(self) -> np.ndarray:
        """Disc temperatures in Celsius."""
        return self._temperatures.copy()

    @property
    def fade(self) -> np.ndarray:
        """Fade multipliers (1 = no fade)."""
        return self._fade.copy()

    @property
    def forces(self) -> np.ndarray:
        """Brake forces from the last update in N."""
        return self._forces.copy()

    @property
    def wheel_damage(self) -> np.ndarray:
        """Per-brake damage (0-1)."""
        return self._wheel_damage.copy()

    @property
    def system_damage(self) -> float:
        """Damage shared by all four brakes (0-1)."""
        return self._system_damage

    @system_damage.setter
    def system_damage(self, value: float) -> None:
        """Set system damage, clamped to 0-1."""
        self._system_damage = clamp(value, 0.0, 1.0)

    @property
    def abs_active(self) -> bool:
        """Check if ABS is working on any wheel."""
        return bool(np.any(self._abs_wheels))

    @property
    def is_overheating(self) -> bool:
        """Check if any disc is past its fade temperature."""
        return bool(np.any(self._temperatures > self.config.fade_start_c))

    def set_wheel_damage(self, index: int, value: float) -> None:
        """Set one brake's damage, clamped to 0-1."""
        self._wheel_damage[index] = clamp(value, 0.0, 1.0)

    def apply_damage(self, amount: float, index: int | None = None) -> None:
        """Add damage to one brake, or to the whole system when index is None."""
        if index is None:
            self.system_damage = self._system_damage + amount
        else:
            self.set_wheel_damage(index, self._wheel_damage[index] + amount)

    def base_forces(self, pedal: float) -> np.ndarray:
        """Pedal force split by bias, before fade, damage and ABS."""
        cfg = self.config
        total = clamp(pedal, 0.0, 1.0) * cfg.max_force_n
        front = total * cfg.front_bias / 2
        rear = total * (1.0 - cfg.front_bias) / 2
        return np.array([front, front, rear, rear])

    def fade_factor(self, temperature: float) -> float:
        """Force multiplier for a disc at the given temperature."""
        cfg = self.config
        return float(np.interp(temperature, [cfg.fade_start_c, cfg.fade_full_c], [1.0, cfg.min_fade_factor]))

    def update(
        self,
        dt: float,
        pedal: float,
        slip_ratios: Sequence[float],
        speed: float,
        ambient_c: float = 25.0,
    ) -> np.ndarray:
        """Compute this step's brake force at each wheel.

        Heat builds from the pedal force times road speed; fade, damage
        and ABS then scale the force.

        Args:
            dt: Time step in seconds
            pedal: Brake pedal (0-1)
            slip_ratios: Last slip ratio of each wheel
            speed: Vehicle speed in m/s
            ambient_c: Ambient temperature in Celsius

        Returns:
            Brake force per wheel in N
        """
        cfg = self.config
        forces = self.base_forces(pedal)

        heat = forces * speed * cfg.heat_per_kj / 1000.0 * dt
        cooling = (self._temperatures - ambient_c) * cfg.cooling_rate * (1.0 + speed * cfg.airflow_cooling) * dt
        self._temperatures = np.clip(self._temperatures + heat - cooling, ambient_c, cfg.max_temp_c)

        self._fade = np.array([self.fade_factor(t) for t in self._temperatures])
        forces *= self._fade

        self._abs_timer += dt
        if self.abs_enabled and pedal > cfg.abs_min_pedal:
            forces *= self._abs_modulation(slip_ratios)
        else:
            self._abs_wheels[:] = False

        forces *= np.maximum(1.0 - (self._wheel_damage + self._system_damage) * cfg.damage_factor, 0.0)
        self._forces = forces
        return forces.copy()

    def _abs_modulation(self, slip_ratios: Sequence[float]) -> np.ndarray:
        cfg = self.config
        slips = np.abs(np.asarray(slip_ratios, dtype=float))
        was_active = self._abs_wheels.copy()
        self._abs_wheels = np.where(
            slips > cfg.abs_slip_threshold,
            True,
            np.where(slips < cfg.abs_release_slip, False, was_active),
        )
        if np.any(self._abs_wheels & ~was_active):
            logger.debug("ABS engaged at slip %s", np.round(slips, 3))

        cycle = 1.0 / cfg.abs_frequency_hz
        phase = (self._abs_timer % cycle) / cycle
        pulse = cfg.abs_release_factor if phase < 0.5 else cfg.abs_apply_factor
        return np.where(self._abs_wheels, pulse, 1.0)

    def reset(self) -> None:
        """Reset temperatures, ABS state and damage."""
        self._temperatures = np.full(4, self.config.initial_temp_c)
        self._fade = np.ones(4)
        self._forces = np.zeros(4)
        self._abs_wheels = np.zeros(4, dtype=bool)
        self._abs_timer = 0.0
        self._wheel_damage = np.zeros(4)
        self._system_damage = 0.0

    def get_state(self) -> dict:
        """Get brake state for telemetry."""
        return {
            "abs_enabled": self.abs_enabled,
            "abs_active": self.abs_active,
            "abs_wheels": [bool(a) for a in self._abs_wheels],
            "temperatures_c": [float(t) for t in self._temperatures],
            "fade": [float(f) for f in self._fade],
            "forces_n": [float(f) for f in self._forces],
            "wheel_damage": [float(d) for d in self._wheel_damage],
            "system_damage": self._system_damage,
            "overheating": self.is_overheating,
        }
