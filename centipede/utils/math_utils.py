"""Mathematical utilities for angles, plane projections and interpolation.

Provides the vector helpers the controller uses to derive body heading and
target angles, and the interpolation used to smooth actions between decisions.
"""

import math
from typing import TypeVar

import numpy as np
import numpy.typing as npt

ArrayType = npt.NDArray[np.float64]
T = TypeVar("T", float, np.ndarray)

EPSILON = 1e-5


def delta_angle(angle: T) -> T:
    """Wraps an angle difference in radians to the signed shortest path in [-pi, pi).

    Args:
        angle: Angle or array of angles in radians.

    Returns:
        The equivalent angle(s) with the smallest magnitude.
    """
    return (angle + np.pi) % (2 * np.pi) - np.pi


def normalize(vec: ArrayType) -> ArrayType:
    """Returns `vec` scaled to unit length, or a zero vector if it is too short."""
    norm = np.linalg.norm(vec)
    if norm < EPSILON:
        return np.zeros_like(vec, dtype=np.float64)

    return vec / norm


def project_on_plane(vec: ArrayType, normal: ArrayType) -> ArrayType:
    """Removes the component of `vec` along the plane normal.

    Args:
        vec: Vector to project.
        normal: Plane normal, not required to be unit length.

    Returns:
        The projection of `vec` onto the plane through the origin.
    """
    sqr_mag = float(np.dot(normal, normal))
    if sqr_mag < EPSILON * EPSILON:
        return np.asarray(vec, dtype=np.float64).copy()

    return vec - normal * (np.dot(vec, normal) / sqr_mag)


def signed_angle(from_vec: ArrayType, to_vec: ArrayType, axis: ArrayType) -> float:
    """Signed angle in degrees between two vectors, measured around `axis`.

    The sign is positive when the rotation from `from_vec` to `to_vec` is
    counter-clockwise looking down `axis` (right-hand rule). Degenerate inputs
    (a zero length vector) give 0.

    Args:
        from_vec: Start vector.
        to_vec: End vector.
        axis: Reference axis deciding the sign.

    Returns:
        Angle in degrees in [-180, 180].
    """
    denom = math.sqrt(float(np.dot(from_vec, from_vec)) * float(np.dot(to_vec, to_vec)))
    if denom < EPSILON * EPSILON:
        return 0.0

    cos = np.clip(np.dot(from_vec, to_vec) / denom, -1.0, 1.0)
    angle = math.degrees(math.acos(cos))
    sign = 1.0 if np.dot(axis, np.cross(from_vec, to_vec)) >= 0 else -1.0
    return sign * angle


def interpolate(
    p_start: ArrayType | float,
    p_end: ArrayType | float,
    duration: ArrayType | float,
    t: ArrayType | float,
    interp_type: str = "linear",
) -> ArrayType | float:
    """
    Interpolate position at time t using specified interpolation type.

    Args:
        p_start: Initial position.
        p_end: Desired end position.
        duration: Total duration from start to end.
        t: Current time (within 0 to duration).
        interp_type: Type of interpolation ('linear', 'quadratic', 'cubic').

    Returns:
        Position at time t.
    """
    if t <= 0:
        return p_start

    if t >= duration:
        return p_end

    if interp_type == "linear":
        return p_start + (p_end - p_start) * (t / duration)
    elif interp_type == "quadratic":
        a = (-p_end + p_start) / duration**2
        b = (2 * p_end - 2 * p_start) / duration
        return a * t**2 + b * t + p_start
    elif interp_type == "cubic":
        a = (2 * p_start - 2 * p_end) / duration**3
        b = (3 * p_end - 3 * p_start) / duration**2
        return a * t**3 + b * t**2 + p_start
    else:
        raise ValueError("Unsupported interpolation type: {}".format(interp_type))


def yaw_quat(direction: ArrayType) -> ArrayType:
    """Quaternion (w, x, y, z) rotating world +x onto the ground projection of `direction`."""
    yaw = math.atan2(float(direction[1]), float(direction[0]))
    return np.array([math.cos(yaw / 2), 0.0, 0.0, math.sin(yaw / 2)])
