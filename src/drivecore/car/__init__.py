"""
Car module - Four-wheeled vehicle simulation.

This module contains all car-related components:
- Tires: Magic Formula grip, load sensitivity, temperature
- Wheel: Per-wheel slip, spin and force solution
- Chassis, Aero, WeightTransfer: Mass, drag, downforce and load transfer
- Engine, Transmission, Drivetrain: Torque from the crank to the wheels
- DriftController: Drift detection and assists
- DamageModel: Zone damage from impacts
- Brakes: Brake heat, fade, damage and ABS
"""

from drivecore.car.car import Car, CarConfig, CarInputs
from drivecore.car.tires import TireConfig
from drivecore.car.wheel import Wheel
from drivecore.car.chassis import Chassis
from drivecore.car.aero import Aero
from drivecore.car.weight_transfer import WeightTransfer
from drivecore.car.engine import Engine
from drivecore.car.transmission import Transmission, GearState
from drivecore.car.differential import Differential, Drivetrain, DifferentialType, DrivetrainLayout
from drivecore.car.drift import DriftController
from drivecore.car.damage import DamageModel, DamageZone, CollisionEvent
from drivecore.car.brakes import Brakes, BrakeConfig
from drivecore.car.snapshot import CarSnapshot

__all__ = [
    "Car",
    "CarConfig",
    "CarInputs",
    "TireConfig",
    "Wheel",
    "Chassis",
    "Aero",
    "WeightTransfer",
    "Engine",
    "Brakes",
    "BrakeConfig",
    "Transmission",
    "GearState",
    "Differential",
    "Drivetrain",
    "DifferentialType",
    "DrivetrainLayout",
    "DriftController",
    "DamageModel",
    "DamageZone",
    "CollisionEvent",
    "CarSnapshot",
]
