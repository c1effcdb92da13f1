"""
3D vector helpers.

Vectors are numpy float arrays of shape (3,). The world is Z-up with the
ground in the X/Y plane.
"""

import numpy as np

from drivecore.core.mathutils import EPSILON


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector along v. A zero-length vector normalises to zero."""
    n = np.linalg.norm(v)
    if n < EPSILON:
        return np.zeros_like(v, dtype=float)
    return v / n


def horizontal(v: np.ndarray) -> np.ndarray:
    """Copy of v with the vertical component removed."""
    return np.array([v[0], v[1], 0.0])


def closest_point_on_segment(
    point: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
) -> np.ndarray:
    """Closest point to point on the segment a-b."""
    ab = b - a
    denom = float(np.dot(ab, ab))
    if denom < EPSILON:
        return a.copy()
    t = float(np.clip(np.dot(point - a, ab) / denom, 0.0, 1.0))
    return a + ab * t


def closest_points_between_segments(
    p1: np.ndarray,
    q1: np.ndarray,
    p2: np.ndarray,
    q2: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Closest points between segments p1-q1 and p2-q2.

    Returns:
        Tuple (point on first segment, point on second segment)
    """
    d1 = q1 - p1
    d2 = q2 - p2
    r = p1 - p2
    a = float(np.dot(d1, d1))
    e = float(np.dot(d2, d2))
    f = float(np.dot(d2, r))

    if a < EPSILON and e < EPSILON:
        return p1.copy(), p2.copy()
    if a < EPSILON:
        s = 0.0
        t = float(np.clip(f / e, 0.0, 1.0))
    else:
        c = float(np.dot(d1, r))
        if e < EPSILON:
            t = 0.0
            s = float(np.clip(-c / a, 0.0, 1.0))
        else:
            b = float(np.dot(d1, d2))
            denom = a * e - b * b
            s = float(np.clip((b * f - c * e) / denom, 0.0, 1.0)) if denom > EPSILON else 0.0
            t = (b * s + f) / e
            if t < 0.0:
                t = 0.0
                s = float(np.clip(-c / a, 0.0, 1.0))
            elif t > 1.0:
                t = 1.0
                s = float(np.clip((b - c) / a, 0.0, 1.0))
    return p1 + d1 * s, p2 + d2 * t
