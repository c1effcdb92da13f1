"""
Sequential impulse contact solver.

Resolves contact velocities with restitution and Coulomb friction, then
removes penetration beyond the allowed slop by moving the bodies apart.
"""

from dataclasses import dataclass
from typing import Dict, List

import numpy as np

from drivecore.simulation.collision import ContactManifold
from drivecore.simulation.rigid_body import RigidBody

EPSILON = 1e-9


@dataclass
class SolverConfig:
    """Contact solver parameters."""
    iterations: int = 10
    slop: float = 0.01        # Penetration left uncorrected (m)
    percent: float = 0.8      # Share of the excess removed per iteration


def _effective_mass_term(body: RigidBody, r: np.ndarray, direction: np.ndarray) -> float:
    if body.is_static:
        return 0.0
    linear = body.inverse_mass * float(np.dot(direction, body.linear_factor * direction))
    rn = np.cross(r, direction)
    angular = float(np.dot(np.cross(body.world_inverse_inertia() @ rn, r), direction))
    return linear + angular


class ImpulseSolver:
    """Iterative velocity and position solver for contact manifolds."""

    def __init__(self, config: SolverConfig | None = None):
        self.config = config or SolverConfig()

    def solve(self, manifolds: List[ContactManifold], bodies: Dict[int, RigidBody]) -> None:
        """Resolve all manifolds in place.

        Accumulates the normal impulse and the kinetic energy lost on each
        manifold and reduces its stored depth by the correction applied.

        Args:
            manifolds: Contacts found this substep
            bodies: Body lookup by id
        """
        if not manifolds:
            return
        for manifold in manifolds:
            for body_id in (manifold.body_a, manifold.body_b):
                if not bodies[body_id].is_static:
                    bodies[body_id].wake()

        for _ in range(self.config.iterations):
            for manifold in manifolds:
                self._solve_velocity(manifold, bodies[manifold.body_a], bodies[manifold.body_b])

        for _ in range(self.config.iterations):
            for manifold in manifolds:
                self._correct_position(manifold, bodies[manifold.body_a], bodies[manifold.body_b])

    def _solve_velocity(self, manifold: ContactManifold, a: RigidBody, b: RigidBody) -> None:
        n = manifold.normal
        point = manifold.point
        ra = point - a.position
        rb = point - b.position

        relative = b.point_velocity(point) - a.point_velocity(point)
        vn = float(np.dot(relative, n))
        if vn >= 0.0:
            return

        k = _effective_mass_term(a, ra, n) + _effective_mass_term(b, rb, n)
        if k < EPSILON:
            return

        e = manifold.restitution
        j = -(1.0 + e) * vn / k
        a.apply_impulse(-j * n, point)
        b.apply_impulse(j * n, point)
        manifold.normal_impulse += j
        manifold.kinetic_loss += 0.5 * j * abs(vn) * (1.0 - e)

        # Coulomb friction on the tangential slip
        relative = b.point_velocity(point) - a.point_velocity(point)
        tangent = relative - np.dot(relative, n) * n
        speed = float(np.linalg.norm(tangent))
        if speed < EPSILON:
            return
        tangent /= speed
        kt = _effective_mass_term(a, ra, tangent) + _effective_mass_term(b, rb, tangent)
        if kt < EPSILON:
            return
        jt = float(np.clip(-speed / kt, -manifold.friction * j, manifold.friction * j))
        a.apply_impulse(-jt * tangent, point)
        b.apply_impulse(jt * tangent, point)

    def _correct_position(self, manifold: ContactManifold, a: RigidBody, b: RigidBody) -> None:
        excess = manifold.depth - self.config.slop
        if excess <= 0.0:
            return
        total_inverse = a.inverse_mass + b.inverse_mass
        if total_inverse < EPSILON:
            return
        move = excess * self.config.percent
        correction = manifold.normal * (move / total_inverse)
        if not a.is_static:
            a.position -= correction * a.inverse_mass * a.linear_factor
        if not b.is_static:
            b.position += correction * b.inverse_mass * b.linear_factor
        manifold.depth -= move
