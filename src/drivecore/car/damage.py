"""
Damage model - Collision damage by body zone.

Tracks:
- Front, rear, left and right body damage
- Engine damage from frontal hits
- Wheel damage near the impact
- Deformation points for the renderer
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, List

import numpy as np

from drivecore.errors import ConfigurationError

logger = logging.getLogger(__name__)


class DamageZone(Enum):
    """Body zone hit by an impact."""
    FRONT = "front"
    REAR = "rear"
    LEFT = "left"
    RIGHT = "right"


# Wheels next to each zone (FL, FR, RL, RR indices)
ZONE_WHEELS = {
    DamageZone.FRONT: (0, 1),
    DamageZone.REAR: (2, 3),
    DamageZone.LEFT: (0, 2),
    DamageZone.RIGHT: (1, 3),
}


@dataclass
class DamageConfig:
    """Damage model configuration. Impact magnitudes are energies in J."""
    threshold: float = 5000.0         # Impacts below this cause no damage
    scale: float = 500000.0           # Impact energy above threshold for full damage
    engine_share: float = 0.5         # Share of a frontal hit taken by the engine
    wheel_share: float = 0.25         # Share of a hit taken by the nearby wheels
    max_deformation_m: float = 0.3    # Dent depth at full damage

    def __post_init__(self):
        if self.threshold < 0 or self.scale <= 0:
            raise ConfigurationError("Damage threshold must be >= 0 and scale positive")


@dataclass
class CollisionEvent:
    """Damage-relevant collision reported to external consumers."""
    zone: DamageZone
    damage_increment: float
    impact_magnitude: float
    point: np.ndarray
    normal: np.ndarray
    other_body_id: int = -1


@dataclass
class DeformationPoint:
    """Body-frame dent for mesh deformation."""
    position: np.ndarray
    direction: np.ndarray
    displacement: float


class DamageModel:
    """Accumulates collision damage for one car."""

    def __init__(self, config: DamageConfig | None = None, body_length: float = 4.4):
        """Initialize damage model.

        Args:
            config: Damage configuration. Uses defaults if None.
            body_length: Vehicle length, used to tell end hits from side hits
        """
        self.config = config or DamageConfig()
        self.body_length = body_length
        self.reset()

    @property
    def zones(self) -> Dict[DamageZone, float]:
        """Damage per body zone (0-1)."""
        return dict(self._zones)

    @property
    def engine(self) -> float:
        """Engine damage (0-1)."""
        return self._engine

    @property
    def total(self) -> float:
        """Mean damage of the four body zones."""
        return float(np.mean(list(self._zones.values())))

    @property
    def deformation_points(self) -> List[DeformationPoint]:
        """Dents recorded so far."""
        return list(self._deformation)

    def classify(self, local_point: np.ndarray) -> DamageZone:
        """Pick the zone for a body-frame contact point."""
        if abs(local_point[0]) > self.body_length / 4:
            return DamageZone.FRONT if local_point[0] > 0 else DamageZone.REAR
        return DamageZone.LEFT if local_point[1] > 0 else DamageZone.RIGHT

    def increment_for(self, impact: float) -> float:
        """Damage added by an impact of the given magnitude."""
        if impact <= self.config.threshold:
            return 0.0
        return min(1.0, (impact - self.config.threshold) / self.config.scale)

    def apply_impact(
        self,
        impact: float,
        local_point: np.ndarray,
        local_normal: np.ndarray,
    ) -> tuple[DamageZone, float]:
        """Apply an impact.

        Args:
            impact: Impact magnitude (kinetic energy lost, J)
            local_point: Contact point in body frame
            local_normal: Contact normal in body frame, pointing into the car

        Returns:
            Tuple (zone hit, damage increment); increment is 0 below threshold
        """
        zone = self.classify(local_point)
        increment = self.increment_for(impact)
        if increment <= 0.0:
            return zone, 0.0

        self._zones[zone] = min(1.0, self._zones[zone] + increment)
        if zone is DamageZone.FRONT:
            self._engine = min(1.0, self._engine + increment * self.config.engine_share)
        for wheel in ZONE_WHEELS[zone]:
            self._wheels[wheel] = min(1.0, self._wheels[wheel] + increment * self.config.wheel_share)

        self._deformation.append(DeformationPoint(
            position=np.asarray(local_point, dtype=float).copy(),
            direction=np.asarray(local_normal, dtype=float).copy(),
            displacement=increment * self.config.max_deformation_m,
        ))
        logger.debug("Impact %.0f J on %s: +%.3f damage", impact, zone.value, increment)
        return zone, increment

    def wheel_damage(self, index: int) -> float:
        """Damage of wheel index (0-1)."""
        return self._wheels[index]

    def reset(self) -> None:
        """Repair everything."""
        self._zones = {zone: 0.0 for zone in DamageZone}
        self._engine = 0.0
        self._wheels = [0.0, 0.0, 0.0, 0.0]
        self._deformation: List[DeformationPoint] = []

    def get_state(self) -> dict:
        """Get damage state for telemetry."""
        state = {zone.value: value for zone, value in self._zones.items()}
        state["engine"] = self._engine
        state["total"] = self.total
        state["wheels"] = list(self._wheels)
        return state
