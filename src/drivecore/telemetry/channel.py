"""
Telemetry channel - One recorded quantity over time.

Provides:
- Bounded time-series storage
- Running statistics over everything recorded
- Time-range slices
"""

from collections import deque
from dataclasses import dataclass
import math
from typing import Deque

import numpy as np


@dataclass
class ChannelConfig:
    """Configuration for a telemetry channel."""
    name: str = "unnamed"
    unit: str = ""
    min_value: float = float('-inf')
    max_value: float = float('inf')
    precision: int = 3
    buffer_size: int = 10000       # Oldest samples are dropped beyond this


class TelemetryChannel:
    """Single telemetry data channel.

    Values are clamped to the channel range. Statistics cover every
    sample ever recorded, including ones the buffer has since dropped.
    """

    def __init__(self, config: ChannelConfig | None = None, name: str = "channel"):
        """Initialize channel.

        Args:
            config: Channel configuration
            name: Channel name (used if config not provided)
        """
        self.config = config or ChannelConfig(name=name)
        self._times: Deque[float] = deque(maxlen=self.config.buffer_size)
        self._values: Deque[float] = deque(maxlen=self.config.buffer_size)
        self.clear()

    @property
    def name(self) -> str:
        """Channel name."""
        return self.config.name

    @property
    def unit(self) -> str:
        """Unit label."""
        return self.config.unit

    @property
    def count(self) -> int:
        """Number of samples recorded since the last clear."""
        return self._count

    @property
    def min_value(self) -> float:
        """Minimum recorded value."""
        return self._min if self._count else 0.0

    @property
    def max_value(self) -> float:
        """Maximum recorded value."""
        return self._max if self._count else 0.0

    @property
    def mean(self) -> float:
        """Mean of recorded values."""
        return self._sum / self._count if self._count else 0.0

    @property
    def last_value(self) -> float:
        """Most recent value."""
        return self._values[-1] if self._values else 0.0

    def record(self, time: float, value: float) -> None:
        """Record a new value.

        Non-finite values are ignored.

        Args:
            time: Timestamp
            value: Value to record
        """
        value = float(value)
        if not math.isfinite(value):
            return
        value = float(np.clip(value, self.config.min_value, self.config.max_value))

        self._times.append(float(time))
        self._values.append(value)

        self._min = min(self._min, value)
        self._max = max(self._max, value)
        self._sum += value
        self._count += 1

    def get_values(self) -> np.ndarray:
        """Buffered values as an array."""
        return np.array(self._values)

    def get_times(self) -> np.ndarray:
        """Buffered timestamps as an array."""
        return np.array(self._times)

    def get_last_n(self, n: int) -> np.ndarray:
        """Get the last n buffered values."""
        if n <= 0:
            return np.array([])
        return np.array(self._values)[-n:]

    def get_range(self, start_time: float, end_time: float) -> tuple[np.ndarray, np.ndarray]:
        """Get values in a time range.

        Args:
            start_time: Start of range (inclusive)
            end_time: End of range (exclusive)

        Returns:
            Tuple of (times, values) arrays
        """
        times = self.get_times()
        values = self.get_values()
        mask = (times >= start_time) & (times < end_time)
        return times[mask], values[mask]

    def clear(self) -> None:
        """Clear all recorded data."""
        self._times.clear()
        self._values.clear()
        self._min = float('inf')
        self._max = float('-inf')
        self._sum = 0.0
        self._count = 0

    def get_state(self) -> dict:
        """Channel statistics rounded to the channel precision."""
        if not self._count:
            return {"name": self.name, "unit": self.unit, "count": 0,
                    "min": None, "max": None, "mean": None, "last": None}
        digits = self.config.precision
        return {
            "name": self.name,
            "unit": self.unit,
            "count": self._count,
            "min": round(self._min, digits),
            "max": round(self._max, digits),
            "mean": round(self.mean, digits),
            "last": round(self.last_value, digits),
        }
