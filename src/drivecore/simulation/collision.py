"""
Narrow-phase collision detection.

Produces a ContactManifold per touching pair. The normal always points
from body A to body B and depth is the penetration along it.

Supported pairs:
- sphere/sphere, sphere/box, box/box (separating axis test)
- capsule against sphere and capsule (closest points of segments)
- cylinders are treated as capsules, capsules against boxes as the
  nearest segment point swept by the capsule radius
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from drivecore.core.vector import (
    closest_point_on_segment,
    closest_points_between_segments,
    normalize,
)
from drivecore.simulation.rigid_body import RigidBody
from drivecore.simulation.shapes import ShapeType

AXIS_EPSILON = 1e-6


@dataclass
class ContactManifold:
    """Single-point contact between two bodies."""
    body_a: int
    body_b: int
    point: np.ndarray
    normal: np.ndarray           # Unit vector from A to B
    depth: float
    restitution: float
    friction: float
    relative_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    normal_impulse: float = 0.0
    kinetic_loss: float = 0.0    # Energy removed by the normal impulse (J)

    @property
    def impact_speed(self) -> float:
        """Approach speed along the normal when the contact was found."""
        return max(0.0, -float(np.dot(self.relative_velocity, self.normal)))


def _sphere_sphere(pa, ra, pb, rb):
    delta = pb - pa
    dist = float(np.linalg.norm(delta))
    if dist >= ra + rb:
        return None
    normal = delta / dist if dist > AXIS_EPSILON else np.array([1.0, 0.0, 0.0])
    depth = ra + rb - dist
    point = pa + normal * (ra - depth / 2)
    return normal, depth, point


def _sphere_box(center, radius, box: RigidBody):
    """Contact of a sphere against a box; normal points from sphere to box."""
    half = np.array(box.shape.half_extents)
    local = box.to_local(center)
    closest = np.clip(local, -half, half)
    diff = local - closest
    dist = float(np.linalg.norm(diff))

    if dist > AXIS_EPSILON:
        if dist >= radius:
            return None
        outward = box.rotation_matrix @ (diff / dist)
        return -outward, radius - dist, box.to_world(closest)

    # Center inside the box: push out through the nearest face
    gaps = half - np.abs(local)
    axis = int(np.argmin(gaps))
    direction = 1.0 if local[axis] >= 0 else -1.0
    local_normal = np.zeros(3)
    local_normal[axis] = direction
    surface = local.copy()
    surface[axis] = direction * half[axis]
    outward = box.rotation_matrix @ local_normal
    return -outward, radius + float(gaps[axis]), box.to_world(surface)


def _segment(body: RigidBody):
    axis = body.rotation_matrix[:, 2] * body.shape.half_segment
    return body.position - axis, body.position + axis


def _clamp_into_box(point, box: RigidBody):
    half = np.array(box.shape.half_extents)
    return box.to_world(np.clip(box.to_local(point), -half, half))


def _box_box(a: RigidBody, b: RigidBody):
    ra = a.rotation_matrix
    rb = b.rotation_matrix
    ha = np.array(a.shape.half_extents)
    hb = np.array(b.shape.half_extents)
    delta = b.position - a.position

    axes = [ra[:, i] for i in range(3)] + [rb[:, i] for i in range(3)]
    for i in range(3):
        for j in range(3):
            cross = np.cross(ra[:, i], rb[:, j])
            if np.linalg.norm(cross) > AXIS_EPSILON:
                axes.append(normalize(cross))

    best_overlap = np.inf
    best_score = np.inf
    best_axis = None
    for index, axis in enumerate(axes):
        proj_a = float(np.sum(ha * np.abs(ra.T @ axis)))
        proj_b = float(np.sum(hb * np.abs(rb.T @ axis)))
        overlap = proj_a + proj_b - abs(float(np.dot(delta, axis)))
        if overlap < 0:
            return None
        # Face axes win near-ties against edge axes
        score = overlap + (1e-4 if index >= 6 else 0.0)
        if score < best_score:
            best_score = score
            best_overlap = overlap
            best_axis = axis

    normal = best_axis if np.dot(delta, best_axis) >= 0 else -best_axis
    point = 0.5 * (_clamp_into_box(a.position, b) + _clamp_into_box(b.position, a))
    return normal, best_overlap, point


def _capsule_like(body: RigidBody) -> bool:
    return body.shape.shape_type in (ShapeType.CAPSULE, ShapeType.CYLINDER)


def _handles(a: RigidBody, b: RigidBody) -> bool:
    """Whether _contact supports the pair in this order."""
    ta = a.shape.shape_type
    tb = b.shape.shape_type
    if ta is ShapeType.SPHERE:
        return tb in (ShapeType.SPHERE, ShapeType.BOX)
    if ta is ShapeType.BOX:
        return tb is ShapeType.BOX
    return _capsule_like(a)


def _contact(a: RigidBody, b: RigidBody):
    ta = a.shape.shape_type
    tb = b.shape.shape_type

    if ta is ShapeType.SPHERE and tb is ShapeType.SPHERE:
        return _sphere_sphere(a.position, a.shape.radius, b.position, b.shape.radius)
    if ta is ShapeType.SPHERE and tb is ShapeType.BOX:
        return _sphere_box(a.position, a.shape.radius, b)
    if ta is ShapeType.BOX and tb is ShapeType.BOX:
        return _box_box(a, b)

    if _capsule_like(a) and tb is ShapeType.SPHERE:
        p, q = _segment(a)
        near = closest_point_on_segment(b.position, p, q)
        return _sphere_sphere(near, a.shape.radius, b.position, b.shape.radius)
    if _capsule_like(a) and _capsule_like(b):
        p1, q1 = _segment(a)
        p2, q2 = _segment(b)
        near_a, near_b = closest_points_between_segments(p1, q1, p2, q2)
        return _sphere_sphere(near_a, a.shape.radius, near_b, b.shape.radius)
    if _capsule_like(a) and tb is ShapeType.BOX:
        p, q = _segment(a)
        near = closest_point_on_segment(b.position, p, q)
        return _sphere_box(near, a.shape.radius, b)
    return None


def _swapped(result):
    if result is None:
        return None
    normal, depth, point = result
    return -normal, depth, point


def collide(a: RigidBody, b: RigidBody) -> Optional[ContactManifold]:
    """Test two bodies for contact.

    Args:
        a: First body
        b: Second body

    Returns:
        ContactManifold with the normal pointing from a to b, or None
    """
    if _handles(a, b):
        result = _contact(a, b)
    elif _handles(b, a):
        result = _swapped(_contact(b, a))
    else:
        result = None
    if result is None:
        return None

    normal, depth, point = result
    relative = b.point_velocity(point) - a.point_velocity(point)
    return ContactManifold(
        body_a=a.body_id,
        body_b=b.body_id,
        point=np.asarray(point, dtype=float),
        normal=np.asarray(normal, dtype=float),
        depth=float(depth),
        restitution=min(a.restitution, b.restitution),
        friction=(a.friction + b.friction) / 2,
        relative_velocity=relative,
    )
