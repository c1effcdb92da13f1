"""
Telemetry recorder - Samples car snapshots into channels.

Provides:
- Standard driving channels (motion, powertrain, drift, damage, tires)
- Fixed-rate sampling
- Segment marks for slicing a session (one run, one drift attempt)
"""

from dataclasses import dataclass, replace
import math
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import numpy as np

from drivecore.car.snapshot import CarSnapshot
from drivecore.car.wheel import WHEEL_NAMES
from drivecore.telemetry.channel import ChannelConfig, TelemetryChannel

if TYPE_CHECKING:
    from drivecore.car.car import Car


def _standard_channels() -> Dict[str, ChannelConfig]:
    channels = [
        # Motion
        ChannelConfig("speed_kph", "km/h", 0, 500, 1),
        ChannelConfig("longitudinal_g", "g", -5, 5, 2),
        ChannelConfig("lateral_g", "g", -5, 5, 2),
        ChannelConfig("yaw_rate", "rad/s", -10, 10, 3),

        # Driver
        ChannelConfig("throttle", "%", 0, 100, 1),
        ChannelConfig("brake", "%", 0, 100, 1),
        ChannelConfig("steering", "%", -100, 100, 1),

        # Powertrain
        ChannelConfig("rpm", "rpm", 0, 12000, 0),
        ChannelConfig("gear", "", -1, 6, 0),

        # Drift
        ChannelConfig("drift_angle", "deg", -180, 180, 1),
        ChannelConfig("drift_score", "pts", 0, float('inf'), 0),
        ChannelConfig("banked_score", "pts", 0, float('inf'), 0),
        ChannelConfig("combo", "x", 1, 10, 1),

        # Damage
        ChannelConfig("damage", "", 0, 1, 3),
        ChannelConfig("engine_damage", "", 0, 1, 3),
    ]
    for name in WHEEL_NAMES:
        key = name.lower()
        channels.append(ChannelConfig(f"tire_temp_{key}", "°C", 0, 200, 1))
        channels.append(ChannelConfig(f"tire_load_{key}", "N", 0, 50000, 0))
        channels.append(ChannelConfig(f"brake_temp_{key}", "°C", 0, 800, 0))
    return {c.name: c for c in channels}


STANDARD_CHANNELS = _standard_channels()


@dataclass
class RecorderConfig:
    """Recorder configuration."""
    sample_rate_hz: float = 60.0           # Recording frequency
    channels: List[str] | None = None      # Channels to record (None = all)
    buffer_size: int = 100000              # Per-channel buffer size


def snapshot_values(snapshot: CarSnapshot) -> Dict[str, float]:
    """Standard channel values for a car snapshot."""
    values = {
        "speed_kph": snapshot.speed_kph,
        "longitudinal_g": snapshot.g_force[0],
        "lateral_g": snapshot.g_force[1],
        "yaw_rate": snapshot.angular_velocity[2],
        "throttle": snapshot.throttle * 100,
        "brake": snapshot.brake * 100,
        "steering": snapshot.steering * 100,
        "rpm": snapshot.rpm,
        "gear": snapshot.gear,
        "drift_angle": snapshot.drift.angle_deg,
        "drift_score": snapshot.drift.current_score,
        "banked_score": snapshot.drift.banked_score,
        "combo": snapshot.drift.combo,
        "damage": snapshot.damage.total,
        "engine_damage": snapshot.damage.engine,
    }
    for name, wheel in zip(WHEEL_NAMES, snapshot.wheels):
        key = name.lower()
        values[f"tire_temp_{key}"] = wheel.temperature
        values[f"tire_load_{key}"] = wheel.load
        values[f"brake_temp_{key}"] = wheel.brake_temperature
    return values


class TelemetryRecorder:
    """Records car telemetry over time.

    Usage:
        recorder = TelemetryRecorder(car=car)
        recorder.record(world.time)          # once per frame
        speed = recorder.get_channel("speed_kph").get_values()
    """

    def __init__(
        self,
        config: RecorderConfig | None = None,
        car: Optional["Car"] = None,
    ):
        """Initialize recorder.

        Args:
            config: Recorder configuration
            car: Car to record (can be set later)
        """
        self.config = config or RecorderConfig()
        self._car = car

        self._channels: Dict[str, TelemetryChannel] = {}
        for name in self.config.channels or list(STANDARD_CHANNELS):
            base = STANDARD_CHANNELS.get(name) or ChannelConfig(name=name)
            self._channels[name] = TelemetryChannel(replace(base, buffer_size=self.config.buffer_size))

        self._sample_interval: float = 1.0 / self.config.sample_rate_hz
        self._last_sample_time: float = -math.inf
        self._segment_starts: List[float] = [0.0]

    @property
    def car(self) -> Optional["Car"]:
        """Car being recorded."""
        return self._car

    def set_car(self, car: "Car") -> None:
        """Set the car to record."""
        self._car = car

    @property
    def channels(self) -> Dict[str, TelemetryChannel]:
        """Get all channels."""
        return self._channels

    @property
    def current_segment(self) -> int:
        """Index of the segment being recorded."""
        return len(self._segment_starts) - 1

    @property
    def sample_count(self) -> int:
        """Number of samples taken."""
        return max((ch.count for ch in self._channels.values()), default=0)

    def get_channel(self, name: str) -> Optional[TelemetryChannel]:
        """Get channel by name."""
        return self._channels.get(name)

    def record(self, time: float, snapshot: CarSnapshot | None = None) -> bool:
        """Record a sample if the sample interval has elapsed.

        Args:
            time: Current simulation time
            snapshot: Car snapshot (taken from the car if None)

        Returns:
            True if a sample was recorded
        """
        # Tolerate float drift in frame times
        if time - self._last_sample_time < self._sample_interval - 1e-9:
            return False
        if snapshot is None:
            if self._car is None:
                return False
            snapshot = self._car.snapshot()

        self._last_sample_time = time
        for name, value in snapshot_values(snapshot).items():
            channel = self._channels.get(name)
            if channel is not None:
                channel.record(time, value)
        return True

    def new_segment(self, time: float) -> int:
        """Start a new segment at time.

        Returns:
            Index of the new segment
        """
        self._segment_starts.append(time)
        return self.current_segment

    def get_segment_data(self, segment: int, channel: str) -> tuple[np.ndarray, np.ndarray]:
        """Get (times, values) of a channel within one segment."""
        if channel not in self._channels or not 0 <= segment < len(self._segment_starts):
            return np.array([]), np.array([])
        start = self._segment_starts[segment]
        end = self._segment_starts[segment + 1] if segment + 1 < len(self._segment_starts) else math.inf
        return self._channels[channel].get_range(start, end)

    def get_current_values(self) -> Dict[str, float]:
        """Most recent value of each channel."""
        return {name: ch.last_value for name, ch in self._channels.items()}

    def get_summary(self) -> Dict[str, Dict[str, Any]]:
        """Statistics for every channel."""
        return {name: ch.get_state() for name, ch in self._channels.items()}

    def clear(self) -> None:
        """Clear all recorded data."""
        for channel in self._channels.values():
            channel.clear()
        self._last_sample_time = -math.inf
        self._segment_starts = [0.0]

    def get_state(self) -> dict:
        """Get recorder state."""
        return {
            "sample_rate_hz": self.config.sample_rate_hz,
            "current_segment": self.current_segment,
            "samples": self.sample_count,
            "channels": self.get_summary(),
        }
