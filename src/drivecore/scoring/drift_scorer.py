"""
Drift scorer - Points for sustained, stylish drifts.

Provides:
- Per-frame drift points from slip angle, speed and drift time
- Bonuses for wall proximity, counter-steering, ideal angle and speed
- Combo multiplier growing with drift time
- Delayed banking of finished drifts and collision penalties
- Session statistics (best drift, longest drift, total score)
"""

from dataclasses import dataclass
import logging
import math
from typing import Callable, List, Optional, Set

from drivecore.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ScoringConfig:
    """Drift scoring configuration."""
    # Base points
    angle_points: float = 100.0          # Per radian of slip angle, per second
    speed_points: float = 2.0            # Per m/s, per second
    duration_rate: float = 0.5           # Duration multiplier growth per second
    max_duration_bonus: float = 2.0

    # Bonuses
    wall_distance_m: float = 2.0
    wall_bonus: float = 1.5              # Multiplier when touching the wall
    counter_steer_bonus: float = 1.2
    perfect_angle: float = 0.5           # rad
    perfect_angle_tolerance: float = 0.1
    perfect_angle_bonus: float = 1.3
    high_speed: float = 16.67            # m/s (60 km/h)
    high_speed_bonus: float = 1.15

    # Combo
    combo_interval_s: float = 2.0
    combo_step: float = 0.5
    max_combo: float = 10.0

    # Banking
    bank_delay_s: float = 1.0
    collision_penalty: float = 0.5       # Share of the current score lost

    def __post_init__(self):
        if self.combo_interval_s <= 0 or self.max_combo < 1:
            raise ConfigurationError("Combo interval must be positive and max combo >= 1")
        if not 0.0 <= self.collision_penalty <= 1.0:
            raise ConfigurationError("Collision penalty must be within 0-1")
        if self.bank_delay_s < 0:
            raise ConfigurationError("Bank delay must not be negative")


class DriftScorer:
    """Scores drifts reported by a DriftController.

    A finished drift is banked after a short delay; starting a new drift
    within that delay continues the pending score instead.

    Usage:
        scorer = DriftScorer()
        controller.add_drift_start_callback(lambda _: scorer.start_drift())
        controller.add_drift_end_callback(lambda _: scorer.end_drift())
        scorer.update(dt, controller.is_drifting, angle, speed)
    """

    def __init__(self, config: ScoringConfig | None = None):
        """Initialize drift scorer.

        Args:
            config: Scoring configuration. Uses defaults if None.
        """
        self.config = config or ScoringConfig()

        self._banked_callbacks: List[Callable[[int], None]] = []
        self._combo_callbacks: List[Callable[[float], None]] = []
        self._bonus_callbacks: List[Callable[[str], None]] = []

        self.reset()

    @property
    def current_score(self) -> float:
        """Unbanked points of the current (or pending) drift."""
        return self._current

    @property
    def banked_score(self) -> int:
        """Total banked points."""
        return self._banked

    @property
    def combo(self) -> float:
        """Current combo multiplier."""
        return self._combo

    @property
    def drift_time(self) -> float:
        """Scored drift time, continued across a pending restart."""
        return self._drift_time

    @property
    def is_pending(self) -> bool:
        """Check if a finished drift is waiting to be banked."""
        return self._pending

    @property
    def active_bonuses(self) -> Set[str]:
        """Bonuses applied in the last scored frame."""
        return set(self._active_bonuses)

    @property
    def best_drift(self) -> int:
        """Highest single banked drift."""
        return self._best

    @property
    def longest_drift(self) -> float:
        """Longest banked drift in seconds."""
        return self._longest

    @property
    def highest_combo(self) -> float:
        """Highest combo reached."""
        return self._highest_combo

    @property
    def total_drifts(self) -> int:
        """Number of banked drifts."""
        return self._total_drifts

    @property
    def drift_distance(self) -> float:
        """Distance covered while drifting in meters."""
        return self._distance

    def add_score_banked_callback(self, callback: Callable[[int], None]) -> None:
        """Add callback(points) fired when a drift is banked."""
        self._banked_callbacks.append(callback)

    def add_combo_change_callback(self, callback: Callable[[float], None]) -> None:
        """Add callback(combo) fired when the combo changes."""
        self._combo_callbacks.append(callback)

    def add_bonus_activated_callback(self, callback: Callable[[str], None]) -> None:
        """Add callback(name) fired when a bonus becomes active."""
        self._bonus_callbacks.append(callback)

    def _fire(self, callbacks: List[Callable], *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Scoring callback %r failed", callback)

    def _set_combo(self, combo: float) -> None:
        if combo != self._combo:
            self._combo = combo
            self._highest_combo = max(self._highest_combo, combo)
            self._fire(self._combo_callbacks, combo)

    def start_drift(self) -> None:
        """Begin scoring a drift.

        A pending drift is continued: its score, drift time and combo
        carry over.
        """
        self._drifting = True
        if self._pending:
            self._pending = False
            self._bank_timer = 0.0
            return
        self._current = 0.0
        self._drift_time = 0.0
        self._combo = 1.0

    def end_drift(self) -> None:
        """Stop scoring; a positive score becomes pending."""
        self._drifting = False
        self._active_bonuses = set()
        if self._current > 0.0:
            self._pending = True
            self._bank_timer = 0.0
        else:
            self._current = 0.0
            self._drift_time = 0.0
            self._set_combo(1.0)

    def on_collision(self) -> None:
        """Apply the collision penalty to a drift in progress or pending.

        The combo and the drift time both restart, so the combo has to be
        earned again.
        """
        if not (self._drifting or self._pending):
            return
        self._current *= 1.0 - self.config.collision_penalty
        self._drift_time = 0.0
        self._set_combo(1.0)
        logger.debug("Collision during drift, score now %.0f", self._current)

    def bonus_multiplier(
        self,
        angle: float,
        speed: float,
        counter_steering: bool,
        wall_distance: Optional[float],
    ) -> float:
        """Product of the bonuses that apply; records the active ones."""
        cfg = self.config
        bonus = 1.0
        active = set()
        if wall_distance is not None and wall_distance < cfg.wall_distance_m:
            closeness = 1.0 - wall_distance / cfg.wall_distance_m
            bonus *= 1.0 + closeness * (cfg.wall_bonus - 1.0)
            active.add("wall")
        if counter_steering:
            bonus *= cfg.counter_steer_bonus
            active.add("counter_steer")
        if abs(abs(angle) - cfg.perfect_angle) < cfg.perfect_angle_tolerance:
            bonus *= cfg.perfect_angle_bonus
            active.add("perfect_angle")
        if speed > cfg.high_speed:
            bonus *= cfg.high_speed_bonus
            active.add("high_speed")

        for name in sorted(active - self._active_bonuses):
            self._fire(self._bonus_callbacks, name)
        self._active_bonuses = active
        return bonus

    def update(
        self,
        dt: float,
        is_drifting: bool,
        angle: float,
        speed: float,
        counter_steering: bool = False,
        wall_distance: Optional[float] = None,
    ) -> float:
        """Score one frame.

        Drift time advances before the frame is scored, so the duration
        multiplier already includes dt. The combo only ever rises here.

        Args:
            dt: Time step in seconds
            is_drifting: Whether the car is drifting
            angle: Slip angle in radians
            speed: Speed in m/s
            counter_steering: Whether the driver is counter-steering
            wall_distance: Distance to the nearest obstacle, if any is close

        Returns:
            Points scored this frame
        """
        cfg = self.config
        if self._pending and not is_drifting:
            self._bank_timer += dt
            if self._bank_timer >= cfg.bank_delay_s:
                self._bank()
            return 0.0
        if not is_drifting:
            return 0.0

        self._drift_time += dt
        duration_mult = 1.0 + min(self._drift_time * cfg.duration_rate, cfg.max_duration_bonus)
        bonus = self.bonus_multiplier(angle, speed, counter_steering, wall_distance)
        points = (abs(angle) * cfg.angle_points + speed * cfg.speed_points) * duration_mult * bonus * dt
        self._current += points
        self._distance += speed * dt

        combo = min(1.0 + math.floor(self._drift_time / cfg.combo_interval_s) * cfg.combo_step, cfg.max_combo)
        if combo > self._combo:
            self._set_combo(combo)
        return points

    def _bank(self) -> None:
        points = int(round(self._current * self._combo))
        self._banked += points
        self._best = max(self._best, points)
        self._longest = max(self._longest, self._drift_time)
        self._total_drifts += 1
        logger.debug("Banked %d points (combo x%.1f)", points, self._combo)

        self._pending = False
        self._bank_timer = 0.0
        self._current = 0.0
        self._drift_time = 0.0
        self._set_combo(1.0)
        self._fire(self._banked_callbacks, points)

    def reset(self) -> None:
        """Reset scores and statistics."""
        self._current = 0.0
        self._banked = 0
        self._combo = 1.0
        self._pending = False
        self._drifting = False
        self._bank_timer = 0.0
        self._drift_time = 0.0
        self._active_bonuses: Set[str] = set()
        self._best = 0
        self._longest = 0.0
        self._highest_combo = 1.0
        self._total_drifts = 0
        self._distance = 0.0

    def get_state(self) -> dict:
        """Get scoring state for telemetry."""
        return {
            "current_score": self._current,
            "banked_score": self._banked,
            "combo": self._combo,
            "pending": self._pending,
            "best_drift": self._best,
            "longest_drift_s": self._longest,
            "highest_combo": self._highest_combo,
            "total_drifts": self._total_drifts,
            "drift_distance_m": self._distance,
        }
