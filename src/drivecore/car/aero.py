"""
Aerodynamics component - Drag and downforce.

Simulates:
- Quadratic drag opposing horizontal motion
- Speed-dependent downforce split between the axles
"""

from dataclasses import dataclass

import numpy as np

from drivecore.core.vector import horizontal
from drivecore.errors import ConfigurationError


@dataclass
class AeroConfig:
    """Aerodynamic coefficients."""
    air_density_kg_m3: float = 1.225
    frontal_area_m2: float = 2.2
    drag_coefficient: float = 0.32       # Cd
    downforce_coefficient: float = 0.15  # Cl (positive pushes the car down)

    def __post_init__(self):
        if self.air_density_kg_m3 < 0 or self.frontal_area_m2 < 0:
            raise ConfigurationError("Air density and frontal area must not be negative")
        if self.drag_coefficient < 0 or self.downforce_coefficient < 0:
            raise ConfigurationError("Aero coefficients must not be negative")


class Aero:
    """Drag and downforce calculations.

    Air density can be overridden per world (see EnvironmentConditions).
    """

    def __init__(self, config: AeroConfig | None = None):
        """Initialize aerodynamics with optional custom configuration.

        Args:
            config: Aero configuration. Uses defaults if None.
        """
        self.config = config or AeroConfig()
        self.air_density: float = self.config.air_density_kg_m3

        self._drag: float = 0.0
        self._downforce: float = 0.0

    @property
    def current_drag(self) -> float:
        """Magnitude of the last drag force in N."""
        return self._drag

    @property
    def current_downforce(self) -> float:
        """Last total downforce in N."""
        return self._downforce

    def drag_force(self, velocity: np.ndarray) -> np.ndarray:
        """Drag force -0.5*rho*Cd*A*|v|*v on the horizontal velocity.

        Args:
            velocity: World-frame velocity (m/s)

        Returns:
            World-frame drag force (N)
        """
        v = horizontal(velocity)
        speed = float(np.linalg.norm(v))
        k = 0.5 * self.air_density * self.config.drag_coefficient * self.config.frontal_area_m2
        self._drag = k * speed * speed
        return -k * speed * v

    def downforce(self, speed: float, front_fraction: float) -> tuple[float, float]:
        """Downforce at the given speed, split between the axles.

        Args:
            speed: Vehicle speed (m/s)
            front_fraction: Share of the downforce on the front axle

        Returns:
            Tuple (front_n, rear_n)
        """
        total = (
            0.5 * self.air_density * self.config.downforce_coefficient
            * self.config.frontal_area_m2 * speed * speed
        )
        self._downforce = total
        return total * front_fraction, total * (1.0 - front_fraction)

    def reset(self) -> None:
        """Reset aero state."""
        self._drag = 0.0
        self._downforce = 0.0

    def get_state(self) -> dict:
        """Get current aero state for telemetry."""
        return {
            "drag_n": self._drag,
            "downforce_n": self._downforce,
        }
