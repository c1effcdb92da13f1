"""
Core module - Math kernel shared by every DriveCore component.

Contains:
- mathutils: scalar helpers (clamp, angle wrapping, smoothing)
- vector: 3D vector helpers on numpy arrays
- quaternion: unit quaternion helpers for body orientation
"""

from drivecore.core import mathutils, quaternion, vector

__all__ = ["mathutils", "quaternion", "vector"]
