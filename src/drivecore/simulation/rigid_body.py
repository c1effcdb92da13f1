"""
Rigid body state and integration.

Bodies are owned by the PhysicsWorld and referenced by id. Forces and
torques accumulate during a substep and are cleared after integration.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from drivecore.core import quaternion as quat
from drivecore.errors import ConfigurationError
from drivecore.simulation.shapes import Shape, ShapeType

# Collision groups
GROUP_DEFAULT = 0x0001
GROUP_STATIC = 0x0002
GROUP_VEHICLE = 0x0004
MASK_ALL = 0xFFFF

# Degree-of-freedom masks for a ground vehicle: slides in x/y, yaws about z
PLANAR_LINEAR = (1.0, 1.0, 0.0)
PLANAR_ANGULAR = (0.0, 0.0, 1.0)


@dataclass
class BodyConfig:
    """Rigid body parameters."""
    mass: float = 1.0
    is_static: bool = False
    friction: float = 0.5
    restitution: float = 0.3
    linear_damping: float = 0.01
    angular_damping: float = 0.05
    group: int = GROUP_DEFAULT
    mask: int = MASK_ALL
    linear_factor: tuple[float, float, float] = (1.0, 1.0, 1.0)
    angular_factor: tuple[float, float, float] = (1.0, 1.0, 1.0)
    inertia: Optional[tuple[float, float, float]] = None   # Overrides the shape inertia
    can_sleep: bool = True

    def __post_init__(self):
        if not self.is_static and self.mass <= 0:
            raise ConfigurationError("Dynamic bodies need a positive mass")
        if self.friction < 0 or not 0.0 <= self.restitution <= 1.0:
            raise ConfigurationError("Friction must be >= 0 and restitution within 0-1")


class RigidBody:
    """Rigid body with position, orientation and velocities.

    Static bodies have zero inverse mass and never move. The linear and
    angular factors mask degrees of freedom: a zero component is never
    accelerated, integrated or pushed by an impulse.
    """

    def __init__(
        self,
        shape: Shape,
        config: BodyConfig | None = None,
        position: np.ndarray | None = None,
        orientation: np.ndarray | None = None,
    ):
        """Initialize rigid body.

        Args:
            shape: Collision shape
            config: Body parameters. Uses defaults if None.
            position: Initial world position of the center of mass
            orientation: Initial orientation quaternion [w, x, y, z]
        """
        self.config = config or BodyConfig()
        self.shape = shape
        self.body_id: int = -1
        self.user_data: object = None

        self.position = np.zeros(3) if position is None else np.asarray(position, dtype=float).copy()
        self.orientation = quat.identity() if orientation is None else quat.normalize(np.asarray(orientation, dtype=float))
        self.linear_velocity = np.zeros(3)
        self.angular_velocity = np.zeros(3)
        self.force = np.zeros(3)
        self.torque = np.zeros(3)

        self.linear_factor = np.array(self.config.linear_factor, dtype=float)
        self.angular_factor = np.array(self.config.angular_factor, dtype=float)

        if self.config.is_static:
            self.mass = 0.0
            self.inverse_mass = 0.0
            self.inertia = np.zeros(3)
            self.inverse_inertia = np.zeros(3)
        else:
            self.mass = self.config.mass
            self.inverse_mass = 1.0 / self.mass
            if self.config.inertia is not None:
                self.inertia = np.array(self.config.inertia, dtype=float)
            else:
                self.inertia = shape.inertia(self.mass)
            self.inverse_inertia = np.where(self.inertia > 0, 1.0 / np.maximum(self.inertia, 1e-12), 0.0)

        self.is_sleeping: bool = False
        self.sleep_timer: float = 0.0

    @property
    def is_static(self) -> bool:
        """Check if the body is immovable."""
        return self.config.is_static

    @property
    def friction(self) -> float:
        """Friction coefficient."""
        return self.config.friction

    @property
    def restitution(self) -> float:
        """Coefficient of restitution."""
        return self.config.restitution

    @property
    def rotation_matrix(self) -> np.ndarray:
        """Body-to-world rotation matrix."""
        return quat.to_matrix(self.orientation)

    @property
    def planar_half_extents(self) -> np.ndarray:
        """Half size (x, y) of the world-aligned box around the shape on the ground plane."""
        shape = self.shape
        if shape.shape_type is ShapeType.BOX:
            half = np.abs(self.rotation_matrix) @ np.asarray(shape.half_extents, dtype=float)
            return half[:2]
        r = shape.bounding_radius
        return np.array([r, r])

    @property
    def heading(self) -> float:
        """Yaw angle about +Z in radians."""
        return quat.yaw(self.orientation)

    def to_world(self, local_point: np.ndarray) -> np.ndarray:
        """Transform a body-frame point to world coordinates."""
        return self.position + quat.rotate(self.orientation, local_point)

    def to_local(self, world_point: np.ndarray) -> np.ndarray:
        """Transform a world point to body-frame coordinates."""
        return quat.inverse_rotate(self.orientation, world_point - self.position)

    def world_inverse_inertia(self) -> np.ndarray:
        """Inverse inertia tensor in world frame, with angular DOF mask."""
        r = self.rotation_matrix
        inv = r @ np.diag(self.inverse_inertia) @ r.T
        mask = np.diag(self.angular_factor)
        return mask @ inv @ mask

    def point_velocity(self, world_point: np.ndarray) -> np.ndarray:
        """Velocity of a world point attached to the body."""
        return self.linear_velocity + np.cross(self.angular_velocity, world_point - self.position)

    def wake(self) -> None:
        """Wake the body if it is sleeping."""
        self.is_sleeping = False
        self.sleep_timer = 0.0

    def apply_force(self, force: np.ndarray, world_point: np.ndarray | None = None) -> None:
        """Accumulate a force, optionally at a world point (adds torque)."""
        if self.is_static:
            return
        force = np.asarray(force, dtype=float)
        if np.any(force):
            self.wake()
        self.force += force
        if world_point is not None:
            self.torque += np.cross(world_point - self.position, force)

    def apply_torque(self, torque: np.ndarray) -> None:
        """Accumulate a torque."""
        if self.is_static:
            return
        torque = np.asarray(torque, dtype=float)
        if np.any(torque):
            self.wake()
        self.torque += torque

    def apply_impulse(self, impulse: np.ndarray, world_point: np.ndarray | None = None) -> None:
        """Apply an instantaneous impulse, optionally at a world point."""
        if self.is_static:
            return
        impulse = np.asarray(impulse, dtype=float)
        if np.any(impulse):
            self.wake()
        self.linear_velocity += impulse * self.inverse_mass * self.linear_factor
        if world_point is not None:
            angular = np.cross(world_point - self.position, impulse)
            self.angular_velocity += self.world_inverse_inertia() @ angular

    def integrate_forces(self, dt: float, gravity: np.ndarray) -> None:
        """Update velocities from accumulated forces, gravity and damping."""
        if self.is_static or self.is_sleeping:
            return
        accel = (self.force * self.inverse_mass + gravity) * self.linear_factor
        self.linear_velocity += accel * dt
        self.angular_velocity += (self.world_inverse_inertia() @ self.torque) * dt

        self.linear_velocity *= max(0.0, 1.0 - self.config.linear_damping * dt)
        self.angular_velocity *= max(0.0, 1.0 - self.config.angular_damping * dt)
        self.linear_velocity *= self.linear_factor
        self.angular_velocity *= self.angular_factor

    def integrate_position(self, dt: float) -> None:
        """Advance position and orientation; renormalises the quaternion."""
        if self.is_static or self.is_sleeping:
            return
        self.position += self.linear_velocity * dt
        self.orientation = quat.integrate(self.orientation, self.angular_velocity, dt)

    def clear_forces(self) -> None:
        """Reset the force and torque accumulators."""
        self.force[:] = 0.0
        self.torque[:] = 0.0

    def kinetic_energy(self) -> float:
        """Translational plus rotational kinetic energy in J."""
        if self.is_static:
            return 0.0
        local_omega = self.rotation_matrix.T @ self.angular_velocity
        rotational = 0.5 * float(np.dot(self.inertia * local_omega, local_omega))
        return 0.5 * self.mass * float(np.dot(self.linear_velocity, self.linear_velocity)) + rotational
