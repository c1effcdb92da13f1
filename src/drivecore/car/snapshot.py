"""
Read-only per-frame car state for renderers, audio and HUD.
"""

from dataclasses import dataclass
from typing import Tuple

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class WheelSnapshot:
    """State of one wheel."""
    grip: float
    temperature: float
    slip_angle: float
    slip_ratio: float
    rotation: float
    steer_angle: float
    load: float
    damage: float
    brake_temperature: float


@dataclass(frozen=True)
class DriftSnapshot:
    """Drift and score state."""
    is_drifting: bool
    angle_deg: float
    current_score: float
    banked_score: int
    combo: float
    best: int
    counter_steering: bool
    drift_count: int
    total_drifts: int


@dataclass(frozen=True)
class DamageSnapshot:
    """Damage per zone (0-1)."""
    front: float
    rear: float
    left: float
    right: float
    engine: float
    total: float


@dataclass(frozen=True)
class CarSnapshot:
    """Complete car state after a simulation frame."""
    car_id: int
    time: float
    position: Vec3
    orientation: Tuple[float, float, float, float]
    heading: float
    velocity: Vec3
    angular_velocity: Vec3
    speed: float
    speed_kph: float
    rpm: float
    gear: int
    gear_name: str
    is_shifting: bool
    throttle: float
    brake: float
    steering: float
    handbrake: bool
    abs_active: bool
    wheels: Tuple[WheelSnapshot, ...]
    damage: DamageSnapshot
    drift: DriftSnapshot
    g_force: Vec3
    max_g: float
    surface: str
