"""
Drift controller - Slip-angle state machine and drift assists.

Provides:
- Smoothed body slip angle
- Drift start/end detection with spinout handling
- Counter-steer detection and a stability factor
- Yaw torques that sustain or correct a drift
"""

from collections import deque
from dataclasses import dataclass
import logging
import math
from typing import Callable, List

import numpy as np

from drivecore.core.mathutils import clamp, sign, wrap_angle
from drivecore.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Slip angle is forced to 0 below this speed (m/s)
MIN_SLIP_SPEED = 1.0


@dataclass
class DriftConfig:
    """Drift controller configuration. Angles in radians."""
    angle_threshold: float = 0.15          # Slip angle that starts a drift
    speed_threshold: float = 5.0           # Minimum speed to drift (m/s)
    max_drift_angle: float = 1.2           # Beyond this the car spins out
    counter_steer_factor: float = 1.5
    initiation_force: float = 2.0
    sustainability: float = 0.95
    history_size: int = 5
    yaw_torque_scale: float = 1000.0       # N*m per unit of assist
    spinout_warning_ratio: float = 0.8
    exit_band_ratio: float = 0.3           # Drift ends when |angle| drops below ratio * threshold
    min_stability: float = 0.3
    max_stability: float = 1.2
    stability_decay: float = 0.3           # Per second without counter-steer

    def __post_init__(self):
        if self.angle_threshold <= 0 or self.speed_threshold <= 0:
            raise ConfigurationError("Drift thresholds must be positive")
        if self.max_drift_angle <= self.angle_threshold:
            raise ConfigurationError("Max drift angle must exceed the angle threshold")
        if self.history_size < 1:
            raise ConfigurationError("Drift history needs at least one sample")
        if self.min_stability > self.max_stability:
            raise ConfigurationError("Stability range is inverted")


@dataclass
class DriftModifiers:
    """Yaw torques requested by the controller for this step (N*m, +Z)."""
    corrective_torque: float = 0.0
    initiation_torque: float = 0.0

    @property
    def yaw_torque(self) -> float:
        """Total yaw torque."""
        return self.corrective_torque + self.initiation_torque


class DriftController:
    """Detects drifts and assists the driver while sliding.

    Slip angle is atan2(v_lat, v_long) in the body frame (y left), so a
    car sliding with its nose pointing left of its path has a negative
    angle. Drift direction is the sign of the angle; counter-steering
    means steering against it.

    Usage:
        drift = DriftController()
        drift.add_drift_start_callback(lambda direction: ...)
        modifiers = drift.update(dt, v_long, v_lat, steering, throttle, handbrake)
    """

    def __init__(self, config: DriftConfig | None = None):
        """Initialize drift controller.

        Args:
            config: Drift configuration. Uses defaults if None.
        """
        self.config = config or DriftConfig()

        self._start_callbacks: List[Callable[[float], None]] = []
        self._end_callbacks: List[Callable[[float], None]] = []
        self._spinout_callbacks: List[Callable[[], None]] = []
        self._warning_callbacks: List[Callable[[], None]] = []

        self._drift_count: int = 0
        self.reset()

    @property
    def is_drifting(self) -> bool:
        """Check if the car is drifting."""
        return self._drifting

    @property
    def drift_angle(self) -> float:
        """Smoothed slip angle in radians."""
        return self._angle

    @property
    def direction(self) -> float:
        """Drift direction (-1, 0 or 1)."""
        return self._direction

    @property
    def duration(self) -> float:
        """Time spent in the current drift in seconds."""
        return self._duration

    @property
    def stability(self) -> float:
        """Drift stability factor."""
        return self._stability

    @property
    def counter_steering(self) -> bool:
        """Check if the driver steers against the drift."""
        return self._counter_steering

    @property
    def counter_steer_amount(self) -> float:
        """Magnitude of the counter-steer input (0-1)."""
        return self._counter_steer_amount

    @property
    def drift_count(self) -> int:
        """Number of drifts started since construction."""
        return self._drift_count

    def add_drift_start_callback(self, callback: Callable[[float], None]) -> None:
        """Add callback(direction) fired when a drift starts."""
        self._start_callbacks.append(callback)

    def add_drift_end_callback(self, callback: Callable[[float], None]) -> None:
        """Add callback(duration) fired when a drift ends."""
        self._end_callbacks.append(callback)

    def add_spinout_callback(self, callback: Callable[[], None]) -> None:
        """Add callback() fired when the slip angle exceeds the maximum."""
        self._spinout_callbacks.append(callback)

    def add_spinout_warning_callback(self, callback: Callable[[], None]) -> None:
        """Add callback() fired when a drift nears the maximum angle."""
        self._warning_callbacks.append(callback)

    def _fire(self, callbacks: List[Callable], *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Drift callback %r failed", callback)

    def measure_angle(self, v_long: float, v_lat: float) -> float:
        """Raw slip angle for a body-frame velocity (0 below 1 m/s)."""
        if math.hypot(v_long, v_lat) < MIN_SLIP_SPEED:
            return 0.0
        return wrap_angle(math.atan2(v_lat, v_long))

    def update(
        self,
        dt: float,
        v_long: float,
        v_lat: float,
        steering: float,
        throttle: float,
        handbrake: bool,
    ) -> DriftModifiers:
        """Update drift state from the current kinematics and inputs.

        Args:
            dt: Time step in seconds
            v_long: Body-frame forward velocity (m/s)
            v_lat: Body-frame leftward velocity (m/s)
            steering: Steering input (-1 left to 1 right)
            throttle: Throttle input (0-1)
            handbrake: Handbrake engaged

        Returns:
            Yaw torques for the next step
        """
        cfg = self.config
        speed = math.hypot(v_long, v_lat)
        self._history.append(self.measure_angle(v_long, v_lat))
        self._angle = float(np.mean(self._history))
        magnitude = abs(self._angle)

        if not self._drifting:
            initiating = magnitude > cfg.angle_threshold or (handbrake and throttle > 0.5)
            if speed > cfg.speed_threshold and initiating and magnitude <= cfg.max_drift_angle:
                self._start(steering)
        else:
            self._duration += dt
            if magnitude > cfg.max_drift_angle:
                logger.warning("Spinout at %.2f rad", self._angle)
                self._end()
                self._fire(self._spinout_callbacks)
            elif speed < cfg.speed_threshold / 2:
                self._end()
            elif magnitude < cfg.exit_band_ratio * cfg.angle_threshold:
                self._end()

        self._update_counter_steer(dt, steering)

        if self._drifting:
            warn = magnitude > cfg.spinout_warning_ratio * cfg.max_drift_angle
            if warn and not self._warned:
                self._fire(self._warning_callbacks)
            self._warned = warn

        return self._modifiers(throttle, handbrake)

    def _start(self, steering: float) -> None:
        self._drifting = True
        self._duration = 0.0
        self._stability = 1.0
        self._warned = False
        self._direction = sign(self._angle) if self._angle != 0.0 else sign(steering)
        self._drift_count += 1
        logger.debug("Drift started, direction %+.0f", self._direction)
        self._fire(self._start_callbacks, self._direction)

    def _end(self) -> None:
        duration = self._duration
        self._drifting = False
        self._counter_steering = False
        self._counter_steer_amount = 0.0
        self._warned = False
        logger.debug("Drift ended after %.2fs", duration)
        self._fire(self._end_callbacks, duration)

    def _update_counter_steer(self, dt: float, steering: float) -> None:
        cfg = self.config
        if not self._drifting:
            self._counter_steering = False
            self._counter_steer_amount = 0.0
            return
        self._counter_steering = steering != 0.0 and sign(steering) != self._direction
        self._counter_steer_amount = abs(steering) if self._counter_steering else 0.0
        if self._counter_steering:
            self._stability += self._counter_steer_amount * cfg.counter_steer_factor * dt * 0.5
        else:
            self._stability -= cfg.stability_decay * dt
        self._stability = clamp(self._stability, cfg.min_stability, cfg.max_stability)

    def _modifiers(self, throttle: float, handbrake: bool) -> DriftModifiers:
        cfg = self.config
        modifiers = DriftModifiers()
        if not self._drifting:
            return modifiers
        if self._counter_steering:
            modifiers.corrective_torque = (
                self._direction * self._counter_steer_amount * cfg.counter_steer_factor
                * self._stability * cfg.yaw_torque_scale
            )
        if throttle > 0.5:
            sustain = 1.0 if handbrake else cfg.sustainability
            modifiers.initiation_torque = (
                -self._direction * (throttle - 0.5) * 2.0 * cfg.initiation_force
                * sustain * cfg.yaw_torque_scale
            )
        return modifiers

    def reset(self) -> None:
        """Reset drift state. The drift counter is kept."""
        self._history: deque = deque(maxlen=self.config.history_size)
        self._angle = 0.0
        self._drifting = False
        self._direction = 0.0
        self._duration = 0.0
        self._stability = 1.0
        self._counter_steering = False
        self._counter_steer_amount = 0.0
        self._warned = False

    def get_state(self) -> dict:
        """Get drift state for telemetry."""
        return {
            "is_drifting": self._drifting,
            "angle_rad": self._angle,
            "direction": self._direction,
            "duration_s": self._duration,
            "stability": self._stability,
            "counter_steering": self._counter_steering,
            "drift_count": self._drift_count,
        }
