"""
Simulation module - Rigid-body world and main loop.

This module contains:
- PhysicsWorld: Fixed-step rigid-body integration, collisions, raycasts
- World: Cars, static obstacles, surfaces and environment
- Simulator: Frame loop driving the cars
"""

from drivecore.simulation.shapes import Shape, ShapeType
from drivecore.simulation.rigid_body import RigidBody, BodyConfig
from drivecore.simulation.physics import PhysicsWorld, PhysicsConfig, RaycastHit
from drivecore.simulation.surfaces import Surface, SurfaceMap, get_surface
from drivecore.simulation.world import World, EnvironmentConditions
from drivecore.simulation.simulator import Simulator, SimulatorConfig

__all__ = [
    "Shape",
    "ShapeType",
    "RigidBody",
    "BodyConfig",
    "PhysicsWorld",
    "PhysicsConfig",
    "RaycastHit",
    "Surface",
    "SurfaceMap",
    "get_surface",
    "World",
    "EnvironmentConditions",
    "Simulator",
    "SimulatorConfig",
]
