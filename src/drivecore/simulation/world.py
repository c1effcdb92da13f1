"""
World - Everything the cars drive in.

Manages:
- Cars in the simulation
- Static obstacles and world bounds
- Ground surfaces
- Environment conditions
- Frame counting
"""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

from drivecore.core import quaternion as quat
from drivecore.core.vector import closest_point_on_segment
from drivecore.simulation.physics import PhysicsWorld
from drivecore.simulation.rigid_body import GROUP_STATIC, BodyConfig, RigidBody
from drivecore.simulation.shapes import Shape, ShapeType
from drivecore.simulation.surfaces import Surface, SurfaceMap

if TYPE_CHECKING:
    from drivecore.car.car import Car

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentConditions:
    """Environmental conditions affecting the simulation."""
    ambient_temp_c: float = 25.0
    air_density: float = 1.225
    track_grip_multiplier: float = 1.0   # Scales every surface's grip


@dataclass
class Obstacle:
    """Static obstacle near a query point."""
    body_id: int
    centre: np.ndarray
    shape: Shape
    orientation: np.ndarray

    def distance_to(self, point: np.ndarray) -> float:
        """Distance from point to the obstacle surface (0 when inside)."""
        point = np.asarray(point, dtype=float)
        local = quat.inverse_rotate(self.orientation, point - self.centre)
        shape = self.shape
        if shape.shape_type is ShapeType.BOX:
            half = np.array(shape.half_extents)
            return float(np.linalg.norm(local - np.clip(local, -half, half)))
        if shape.shape_type is ShapeType.SPHERE:
            return max(0.0, float(np.linalg.norm(local)) - shape.radius)
        axis = np.array([0.0, 0.0, shape.half_segment])
        near = closest_point_on_segment(local, -axis, axis)
        return max(0.0, float(np.linalg.norm(local - near)) - shape.radius)


class World:
    """World state container.

    Owns the physics world, the surface map and the static geometry, and
    keeps track of the cars driving in it.

    Usage:
        world = World()
        world.set_bounds(-100, -100, 100, 100)
        world.surfaces.add_zone(20, -5, 40, 5, "gravel")
        car_id = world.add_car(Car())
    """

    def __init__(
        self,
        physics: PhysicsWorld | None = None,
        environment: EnvironmentConditions | None = None,
        surfaces: SurfaceMap | None = None,
    ):
        """Initialize world.

        Args:
            physics: Physics world. A default one is created if None.
            environment: Environment conditions
            surfaces: Surface map. All asphalt if None.
        """
        self.physics = physics or PhysicsWorld()
        self.environment = environment or EnvironmentConditions()
        self.surfaces = surfaces or SurfaceMap()

        self._cars: Dict[int, "Car"] = {}
        self._next_car_id: int = 0
        self._obstacles: Dict[int, RigidBody] = {}
        self._bounds: Optional[tuple[float, float, float, float]] = None
        self._frame: int = 0

    @property
    def time(self) -> float:
        """Current simulation time in seconds."""
        return self.physics.time

    @property
    def frame(self) -> int:
        """Current frame number."""
        return self._frame

    @property
    def cars(self) -> List["Car"]:
        """List of all cars."""
        return list(self._cars.values())

    @property
    def car_count(self) -> int:
        """Number of cars in the world."""
        return len(self._cars)

    @property
    def bounds(self) -> Optional[tuple[float, float, float, float]]:
        """World bounds (x_min, y_min, x_max, y_max), if set."""
        return self._bounds

    def add_car(
        self,
        car: "Car",
        x: float = 0.0,
        y: float = 0.0,
        heading: float = 0.0,
    ) -> int:
        """Add a car to the world and place it.

        Args:
            car: Car to add
            x: Starting X position
            y: Starting Y position
            heading: Starting heading in radians

        Returns:
            Car ID
        """
        car_id = self._next_car_id
        self._next_car_id += 1
        car.car_id = car_id
        car.attach(self)
        car.reset(x, y, heading)
        self._cars[car_id] = car
        logger.info("Car %d added at (%.1f, %.1f)", car_id, x, y)
        return car_id

    def remove_car(self, car_id: int) -> bool:
        """Remove a car from the world.

        Returns:
            True if the car was removed
        """
        car = self._cars.pop(car_id, None)
        if car is None:
            return False
        car.detach()
        logger.info("Car %d removed", car_id)
        return True

    def get_car(self, car_id: int) -> Optional["Car"]:
        """Get car by ID."""
        return self._cars.get(car_id)

    def add_obstacle(
        self,
        shape: Shape,
        position: tuple[float, float, float],
        heading: float = 0.0,
        friction: float = 0.8,
        restitution: float = 0.3,
    ) -> int:
        """Add a static obstacle.

        Args:
            shape: Collision shape
            position: Centre in world coordinates
            heading: Rotation about +Z in radians
            friction: Friction coefficient
            restitution: Coefficient of restitution

        Returns:
            Body id of the obstacle
        """
        body = RigidBody(
            shape,
            BodyConfig(is_static=True, friction=friction, restitution=restitution, group=GROUP_STATIC),
            position=np.array(position, dtype=float),
            orientation=quat.from_yaw(heading),
        )
        body_id = self.physics.add_body(body)
        self._obstacles[body_id] = body
        return body_id

    def remove_obstacle(self, body_id: int) -> bool:
        """Remove a static obstacle."""
        if self._obstacles.pop(body_id, None) is None:
            return False
        return self.physics.remove_body(body_id)

    def set_bounds(
        self,
        x_min: float,
        y_min: float,
        x_max: float,
        y_max: float,
        wall_thickness: float = 2.0,
        wall_height: float = 3.0,
    ) -> List[int]:
        """Enclose the world with four static walls.

        Returns:
            Body ids of the walls
        """
        half_t = wall_thickness / 2
        half_h = wall_height / 2
        cx = (x_min + x_max) / 2
        cy = (y_min + y_max) / 2
        half_w = (x_max - x_min) / 2 + wall_thickness
        half_d = (y_max - y_min) / 2 + wall_thickness
        walls = [
            (Shape.box(half_w, half_t, half_h), (cx, y_min - half_t, half_h)),
            (Shape.box(half_w, half_t, half_h), (cx, y_max + half_t, half_h)),
            (Shape.box(half_t, half_d, half_h), (x_min - half_t, cy, half_h)),
            (Shape.box(half_t, half_d, half_h), (x_max + half_t, cy, half_h)),
        ]
        self._bounds = (x_min, y_min, x_max, y_max)
        return [self.add_obstacle(shape, position) for shape, position in walls]

    def surface_at(self, x: float, y: float) -> Surface:
        """Surface under a ground-plane point, scaled by track condition."""
        return self.surfaces.surface_at(x, y, self.environment.track_grip_multiplier)

    def obstacles_near(self, x: float, y: float, radius: float) -> List[Obstacle]:
        """Static obstacles whose bounds come within radius of (x, y)."""
        found = []
        for body_id in self.physics.query_radius(np.array([x, y, 0.0]), radius):
            body = self._obstacles.get(body_id)
            if body is None:
                continue
            found.append(Obstacle(body_id, body.position.copy(), body.shape, body.orientation.copy()))
        return found

    def nearest_obstacle_distance(self, point: np.ndarray, radius: float) -> Optional[float]:
        """Distance from point to the closest obstacle within radius, if any."""
        point = np.asarray(point, dtype=float)
        distances = [o.distance_to(point) for o in self.obstacles_near(point[0], point[1], radius)]
        distances = [d for d in distances if d <= radius]
        return min(distances) if distances else None

    def advance_frame(self) -> None:
        """Count a rendered frame."""
        self._frame += 1

    def reset(self) -> None:
        """Reset every car to its spawn state and the frame counter."""
        for car in self._cars.values():
            car.reset()
        self._frame = 0

    def get_state(self) -> dict:
        """Get world state.

        Returns:
            Dictionary containing world state
        """
        return {
            "time": self.time,
            "frame": self._frame,
            "car_count": self.car_count,
            "obstacle_count": len(self._obstacles),
            "bounds": self._bounds,
            "environment": {
                "ambient_temp": self.environment.ambient_temp_c,
                "air_density": self.environment.air_density,
                "track_grip": self.environment.track_grip_multiplier,
            },
        }
