"""
Unit quaternion helpers.

Quaternions are numpy arrays laid out as [w, x, y, z]. Rotations follow the
right-hand rule; yaw is a rotation about +Z.
"""

import math

import numpy as np


def identity() -> np.ndarray:
    """Identity rotation."""
    return np.array([1.0, 0.0, 0.0, 0.0])


def from_yaw(yaw: float) -> np.ndarray:
    """Quaternion for a heading of yaw radians about +Z."""
    half = 0.5 * yaw
    return np.array([math.cos(half), 0.0, 0.0, math.sin(half)])


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Hamilton product a * b."""
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return np.array([
        aw * bw - ax * bx - ay * by - az * bz,
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
    ])


def normalize(q: np.ndarray) -> np.ndarray:
    """Renormalise q. A degenerate quaternion becomes the identity."""
    n = np.linalg.norm(q)
    if n < 1e-12:
        return identity()
    return q / n


def to_matrix(q: np.ndarray) -> np.ndarray:
    """3x3 rotation matrix (body to world) for unit quaternion q."""
    w, x, y, z = q
    return np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
        [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
        [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
    ])


def rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate vector v from body frame to world frame."""
    return to_matrix(q) @ v


def inverse_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate vector v from world frame to body frame."""
    return to_matrix(q).T @ v


def integrate(q: np.ndarray, angular_velocity: np.ndarray, dt: float) -> np.ndarray:
    """Advance orientation by a world-frame angular velocity over dt.

    Uses q' = q + 0.5 * (0, w) * q * dt followed by renormalisation.
    """
    omega = np.array([0.0, angular_velocity[0], angular_velocity[1], angular_velocity[2]])
    dq = multiply(omega, q) * (0.5 * dt)
    return normalize(q + dq)


def yaw(q: np.ndarray) -> float:
    """Heading angle about +Z in radians, in [-pi, pi]."""
    w, x, y, z = q
    return math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
