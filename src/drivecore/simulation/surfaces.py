"""
Ground surfaces.

Defines the built-in surface types and a map from ground-plane regions to
surfaces. Later zones take precedence over earlier ones; points outside
every zone use the default surface.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

import numpy as np

from drivecore.errors import ConfigurationError


@dataclass(frozen=True)
class Surface:
    """Ground surface descriptor."""
    name: str
    grip: float = 1.0                  # Friction multiplier, 0-2
    rolling_resistance: float = 1.0    # Multiplier on the rolling coefficient
    particle: Optional[str] = None     # Effect hint for the renderer

    def __post_init__(self):
        if not 0.0 <= self.grip <= 2.0:
            raise ConfigurationError(f"Surface grip {self.grip} outside 0-2")
        if self.rolling_resistance < 0:
            raise ConfigurationError("Rolling resistance multiplier must not be negative")


SURFACES: Dict[str, Surface] = {
    "asphalt": Surface("asphalt", grip=1.0, rolling_resistance=1.0, particle="smoke"),
    "wet": Surface("wet", grip=0.6, rolling_resistance=1.1, particle="spray"),
    "gravel": Surface("gravel", grip=0.7, rolling_resistance=3.0, particle="dust"),
    "grass": Surface("grass", grip=0.5, rolling_resistance=4.0, particle="grass"),
    "curb": Surface("curb", grip=0.8, rolling_resistance=1.2, particle="sparks"),
    "oil": Surface("oil", grip=0.3, rolling_resistance=1.0),
    "ice": Surface("ice", grip=0.15, rolling_resistance=0.8, particle="snow"),
}


def get_surface(name: str) -> Surface:
    """Look up a built-in surface by name."""
    try:
        return SURFACES[name]
    except KeyError:
        raise ConfigurationError(f"Unknown surface '{name}'") from None


@dataclass(frozen=True)
class SurfaceZone:
    """Axis-aligned rectangle of ground covered by one surface."""
    x_min: float
    y_min: float
    x_max: float
    y_max: float
    surface: Surface

    def contains(self, x: float, y: float) -> bool:
        """Check if (x, y) lies inside the zone."""
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max


class SurfaceMap:
    """Lookup of the surface under a ground-plane point."""

    def __init__(self, default: Surface | None = None):
        self.default = default or SURFACES["asphalt"]
        self._zones: List[SurfaceZone] = []

    @property
    def zones(self) -> List[SurfaceZone]:
        """Zones in insertion order."""
        return list(self._zones)

    def add_zone(
        self,
        x_min: float,
        y_min: float,
        x_max: float,
        y_max: float,
        surface: Surface | str,
    ) -> SurfaceZone:
        """Cover a rectangle with a surface.

        Args:
            x_min, y_min, x_max, y_max: Rectangle bounds (m)
            surface: Surface or built-in surface name

        Returns:
            The new zone
        """
        if isinstance(surface, str):
            surface = get_surface(surface)
        if x_min > x_max or y_min > y_max:
            raise ConfigurationError("Surface zone bounds are inverted")
        zone = SurfaceZone(x_min, y_min, x_max, y_max, surface)
        self._zones.append(zone)
        return zone

    def clear(self) -> None:
        """Remove all zones."""
        self._zones.clear()

    def surface_at(self, x: float, y: float, grip_multiplier: float = 1.0) -> Surface:
        """Surface under (x, y), with grip scaled and clamped to 0-2."""
        surface = self.default
        for zone in reversed(self._zones):
            if zone.contains(x, y):
                surface = zone.surface
                break
        if grip_multiplier == 1.0:
            return surface
        return replace(surface, grip=float(np.clip(surface.grip * grip_multiplier, 0.0, 2.0)))
