"""
Scalar math helpers used throughout the vehicle model.

All functions are pure and operate on plain floats.
"""

import math

import numpy as np

EPSILON = 1e-9
TWO_PI = 2.0 * math.pi


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return float(np.clip(value, low, high))


def sign(value: float) -> float:
    """Sign of value as -1.0, 0.0 or 1.0."""
    if value > 0.0:
        return 1.0
    if value < 0.0:
        return -1.0
    return 0.0


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians to [-pi, pi]."""
    wrapped = math.fmod(angle + math.pi, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    return wrapped - math.pi


def wrap_positive(angle: float) -> float:
    """Wrap an angle in radians to [0, 2*pi)."""
    wrapped = math.fmod(angle, TWO_PI)
    if wrapped < 0.0:
        wrapped += TWO_PI
    return wrapped


def smooth_towards(current: float, target: float, rate: float, dt: float) -> float:
    """First-order smoothing of current toward target.

    Args:
        current: Current value
        target: Value being approached
        rate: Response rate in 1/s
        dt: Time step in seconds

    Returns:
        The smoothed value. Never overshoots the target.
    """
    return current + (target - current) * min(rate * dt, 1.0)
