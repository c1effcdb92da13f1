"""
DriveCore - Vehicle dynamics core for arcade-leaning driving games.

This package provides a real-time car physics simulation with:
- Pacejka-style tires with load sensitivity, temperature and damage
- Weight transfer, aerodynamics and a full engine/gearbox/differential chain
- Drift detection with counter-steer assists and drift scoring
- A fixed-step rigid-body world with collisions, damage and raycasts
- Per-frame car snapshots and telemetry recording
"""

__version__ = "0.1.0"

from drivecore.errors import ConfigurationError
from drivecore.simulation.simulator import Simulator, SimulatorConfig
from drivecore.simulation.physics import PhysicsWorld, PhysicsConfig
from drivecore.simulation.world import World
from drivecore.car.car import Car, CarConfig, CarInputs

__all__ = [
    "Simulator",
    "SimulatorConfig",
    "PhysicsWorld",
    "PhysicsConfig",
    "World",
    "Car",
    "CarConfig",
    "CarInputs",
    "ConfigurationError",
    "__version__",
]
