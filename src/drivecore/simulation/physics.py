"""
Physics world - Fixed-step rigid-body simulation.

Provides:
- Body ownership by integer id
- Fixed substeps driven by a frame-time accumulator
- Broad phase (spatial hash), narrow phase and impulse solver
- Pre/post step and collision callbacks
- Sleeping of resting bodies
- Ray casts and radius queries
"""

from dataclasses import dataclass, field
import logging
import math
from typing import Callable, Dict, List, Optional

import numpy as np

from drivecore.errors import ConfigurationError
from drivecore.simulation.collision import ContactManifold, collide
from drivecore.simulation.rigid_body import RigidBody
from drivecore.simulation.shapes import ShapeType
from drivecore.simulation.solver import ImpulseSolver, SolverConfig
from drivecore.simulation.spatial_hash import SpatialHash

logger = logging.getLogger(__name__)

StepCallback = Callable[[float], None]
CollisionCallback = Callable[[ContactManifold], None]


@dataclass
class PhysicsConfig:
    """Physics simulation configuration."""
    # Time stepping
    fixed_dt: float = 1.0 / 120.0
    max_substeps: int = 10
    max_frame_dt: float = 0.1       # Longer frames are dropped

    gravity: tuple[float, float, float] = (0.0, 0.0, -9.81)

    # Broad phase
    cell_size: float = 10.0
    broadphase_margin: float = 1.2  # Bounding sphere inflation

    # Contact solver
    solver_iterations: int = 10
    slop: float = 0.01
    correction_percent: float = 0.8

    # Sleeping
    sleep_linear_threshold: float = 0.1
    sleep_angular_threshold: float = 0.1
    sleep_time: float = 1.0

    def __post_init__(self):
        if self.fixed_dt <= 0:
            raise ConfigurationError("Fixed time step must be positive")
        if self.max_substeps < 1:
            raise ConfigurationError("At least one substep per frame is required")
        if self.cell_size <= 0:
            raise ConfigurationError("Spatial hash cell size must be positive")
        if self.solver_iterations < 1:
            raise ConfigurationError("Solver needs at least one iteration")


@dataclass
class RaycastHit:
    """Nearest intersection of a ray with a body."""
    body_id: int
    point: np.ndarray
    normal: np.ndarray
    distance: float


class PhysicsWorld:
    """Rigid-body world stepped with a fixed time step.

    Each fixed step runs, in order: pre-step callbacks, force integration,
    broad phase, narrow phase, contact solve, collision callbacks,
    position integration, re-hashing, sleeping, accumulator clearing and
    post-step callbacks. Bodies added or removed while stepping are
    applied once the step finishes.

    Usage:
        world = PhysicsWorld()
        body_id = world.add_body(RigidBody(Shape.sphere(0.5)))
        world.step(1 / 60)
    """

    def __init__(self, config: PhysicsConfig | None = None):
        """Initialize physics world.

        Args:
            config: Physics configuration. Uses defaults if None.
        """
        self.config = config or PhysicsConfig()
        self.gravity = np.array(self.config.gravity, dtype=float)
        self.solver = ImpulseSolver(SolverConfig(
            iterations=self.config.solver_iterations,
            slop=self.config.slop,
            percent=self.config.correction_percent,
        ))
        self.paused: bool = False
        self.time_scale: float = 1.0

        self._bodies: Dict[int, RigidBody] = {}
        self._hash = SpatialHash(self.config.cell_size)
        self._next_body_id: int = 0
        self._accumulator: float = 0.0
        self._time: float = 0.0
        self._step_count: int = 0
        self._stepping: bool = False
        self._pending_add: List[RigidBody] = []
        self._pending_remove: List[int] = []
        self._last_contacts: List[ContactManifold] = []

        self._pre_step_callbacks: List[StepCallback] = []
        self._post_step_callbacks: List[StepCallback] = []
        self._collision_callbacks: List[CollisionCallback] = []

    @property
    def time(self) -> float:
        """Simulated time in seconds."""
        return self._time

    @property
    def step_count(self) -> int:
        """Number of fixed steps run."""
        return self._step_count

    @property
    def body_count(self) -> int:
        """Number of bodies in the world."""
        return len(self._bodies)

    @property
    def contacts(self) -> List[ContactManifold]:
        """Contacts resolved in the last fixed step."""
        return list(self._last_contacts)

    def add_body(self, body: RigidBody) -> int:
        """Add a body and return its id.

        During a step the body joins the world after the step finishes.
        """
        body.body_id = self._next_body_id
        self._next_body_id += 1
        if self._stepping:
            self._pending_add.append(body)
        else:
            self._insert(body)
        return body.body_id

    def _insert(self, body: RigidBody) -> None:
        self._bodies[body.body_id] = body
        self._hash.insert(body.body_id, body.position, body.planar_half_extents)

    def remove_body(self, body_id: int) -> bool:
        """Remove a body.

        Returns:
            True if the body exists (or is queued for addition)
        """
        known = body_id in self._bodies or any(b.body_id == body_id for b in self._pending_add)
        if not known:
            return False
        if self._stepping:
            self._pending_remove.append(body_id)
        else:
            self._delete(body_id)
        return True

    def _delete(self, body_id: int) -> None:
        self._pending_add = [b for b in self._pending_add if b.body_id != body_id]
        if self._bodies.pop(body_id, None) is not None:
            self._hash.remove(body_id)

    def get_body(self, body_id: int) -> Optional[RigidBody]:
        """Get body by id."""
        return self._bodies.get(body_id)

    def bodies(self) -> List[RigidBody]:
        """All bodies in id order."""
        return [self._bodies[k] for k in sorted(self._bodies)]

    def add_pre_step_callback(self, callback: StepCallback) -> None:
        """Add callback(dt) run at the start of every fixed step."""
        self._pre_step_callbacks.append(callback)

    def add_post_step_callback(self, callback: StepCallback) -> None:
        """Add callback(dt) run at the end of every fixed step."""
        self._post_step_callbacks.append(callback)

    def add_collision_callback(self, callback: CollisionCallback) -> None:
        """Add callback(manifold) run for each resolved contact."""
        self._collision_callbacks.append(callback)

    def remove_callback(self, callback: Callable) -> None:
        """Remove a callback from every list it was added to."""
        for callbacks in (self._pre_step_callbacks, self._post_step_callbacks, self._collision_callbacks):
            while callback in callbacks:
                callbacks.remove(callback)

    def _run_callbacks(self, callbacks: List[Callable], *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Physics callback %r failed", callback)

    def step(self, delta_time: float) -> int:
        """Advance the world by a frame.

        Args:
            delta_time: Frame time in seconds

        Returns:
            Number of fixed steps run
        """
        if self.paused:
            return 0
        if delta_time <= 0.0 or delta_time > self.config.max_frame_dt:
            logger.debug("Dropping frame with dt=%.4f", delta_time)
            return 0

        self._accumulator += delta_time * self.time_scale
        dt = self.config.fixed_dt
        substeps = 0
        while self._accumulator >= dt and substeps < self.config.max_substeps:
            self.fixed_step(dt)
            self._accumulator -= dt
            substeps += 1
        return substeps

    def fixed_step(self, dt: float) -> None:
        """Run one fixed step of length dt."""
        self._stepping = True
        try:
            self._run_callbacks(self._pre_step_callbacks, dt)

            for body in self._bodies.values():
                body.integrate_forces(dt, self.gravity)

            contacts = self._detect_contacts()
            self.solver.solve(contacts, self._bodies)
            self._last_contacts = contacts
            for manifold in contacts:
                self._run_callbacks(self._collision_callbacks, manifold)

            for body in self._bodies.values():
                body.integrate_position(dt)
                if not body.is_static:
                    self._hash.insert(body.body_id, body.position, body.planar_half_extents)

            self._update_sleeping(dt)

            for body in self._bodies.values():
                body.clear_forces()

            self._time += dt
            self._step_count += 1
            self._run_callbacks(self._post_step_callbacks, dt)
        finally:
            self._stepping = False
            self._flush_pending()

    def _flush_pending(self) -> None:
        added, self._pending_add = self._pending_add, []
        for body in added:
            self._insert(body)
        removed, self._pending_remove = self._pending_remove, []
        for body_id in removed:
            self._delete(body_id)

    def _should_test(self, a: RigidBody, b: RigidBody) -> bool:
        if a.is_static and b.is_static:
            return False
        if (a.is_static or a.is_sleeping) and (b.is_static or b.is_sleeping):
            return False
        if not (a.config.group & b.config.mask and b.config.group & a.config.mask):
            return False
        reach = (a.shape.bounding_radius + b.shape.bounding_radius) * self.config.broadphase_margin
        return float(np.linalg.norm(b.position - a.position)) <= reach

    def _detect_contacts(self) -> List[ContactManifold]:
        contacts = []
        for id_a, id_b in self._hash.candidate_pairs():
            a = self._bodies[id_a]
            b = self._bodies[id_b]
            if not self._should_test(a, b):
                continue
            manifold = collide(a, b)
            if manifold is not None:
                contacts.append(manifold)
        return contacts

    def _update_sleeping(self, dt: float) -> None:
        cfg = self.config
        for body in self._bodies.values():
            if body.is_static or body.is_sleeping or not body.config.can_sleep:
                continue
            resting = (
                np.linalg.norm(body.linear_velocity) < cfg.sleep_linear_threshold
                and np.linalg.norm(body.angular_velocity) < cfg.sleep_angular_threshold
            )
            if not resting:
                body.sleep_timer = 0.0
                continue
            body.sleep_timer += dt
            if body.sleep_timer >= cfg.sleep_time:
                body.is_sleeping = True
                body.linear_velocity[:] = 0.0
                body.angular_velocity[:] = 0.0
                logger.debug("Body %d fell asleep", body.body_id)

    def query_radius(self, position: np.ndarray, radius: float) -> List[int]:
        """Ids of bodies whose bounding sphere overlaps the circle, sorted."""
        position = np.asarray(position, dtype=float)
        found = []
        for body_id in self._hash.query(position, radius):
            body = self._bodies[body_id]
            reach = radius + body.shape.bounding_radius
            if math.hypot(body.position[0] - position[0], body.position[1] - position[1]) <= reach:
                found.append(body_id)
        return sorted(found)

    def raycast(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        max_distance: float,
        filter: Optional[Callable[[RigidBody], bool]] = None,
    ) -> Optional[RaycastHit]:
        """Cast a ray and return the nearest hit.

        Args:
            origin: Ray start (world)
            direction: Ray direction; need not be normalised
            max_distance: Maximum hit distance
            filter: Optional predicate; bodies it rejects are ignored

        Returns:
            Nearest RaycastHit, or None
        """
        origin = np.asarray(origin, dtype=float)
        direction = np.asarray(direction, dtype=float)
        norm = float(np.linalg.norm(direction))
        if norm < 1e-12 or max_distance <= 0.0:
            return None
        direction = direction / norm

        best: Optional[RaycastHit] = None
        for body in self.bodies():
            if filter is not None and not filter(body):
                continue
            if body.shape.shape_type is ShapeType.BOX:
                hit = _ray_box(origin, direction, body)
            else:
                hit = _ray_sphere(origin, direction, body.position, body.shape.bounding_radius)
            if hit is None:
                continue
            distance, normal = hit
            if distance > max_distance or (best is not None and distance >= best.distance):
                continue
            best = RaycastHit(body.body_id, origin + direction * distance, normal, distance)
        return best

    def get_state(self) -> dict:
        """Get world summary."""
        return {
            "time": self._time,
            "step_count": self._step_count,
            "body_count": len(self._bodies),
            "contacts": len(self._last_contacts),
            "paused": self.paused,
            "time_scale": self.time_scale,
        }


def _ray_sphere(origin, direction, center, radius):
    oc = origin - center
    b = float(np.dot(oc, direction))
    c = float(np.dot(oc, oc)) - radius * radius
    disc = b * b - c
    if disc < 0.0:
        return None
    root = math.sqrt(disc)
    t = -b - root
    if t < 0.0:
        t = -b + root
        if t < 0.0:
            return None
    normal = origin + direction * t - center
    n = np.linalg.norm(normal)
    return t, normal / n if n > 0 else -direction


def _ray_box(origin, direction, body: RigidBody):
    rot = body.rotation_matrix
    local_origin = rot.T @ (origin - body.position)
    local_dir = rot.T @ direction
    half = np.array(body.shape.half_extents)

    t_near = -np.inf
    t_far = np.inf
    near_axis = 0
    near_sign = -1.0
    for i in range(3):
        if abs(local_dir[i]) < 1e-12:
            if abs(local_origin[i]) > half[i]:
                return None
            continue
        t1 = (-half[i] - local_origin[i]) / local_dir[i]
        t2 = (half[i] - local_origin[i]) / local_dir[i]
        sign = -1.0
        if t1 > t2:
            t1, t2 = t2, t1
            sign = 1.0
        if t1 > t_near:
            t_near = t1
            near_axis = i
            near_sign = sign
        t_far = min(t_far, t2)
        if t_near > t_far:
            return None
    if t_far < 0.0:
        return None
    if t_near < 0.0:
        # Origin inside the box
        return 0.0, -direction
    local_normal = np.zeros(3)
    local_normal[near_axis] = near_sign
    return float(t_near), rot @ local_normal
