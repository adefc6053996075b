"""Conversions between pose matrices, vectors and quaternions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def _as_array(value, shape_hint: str) -> np.ndarray:
    try:
        return np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"cannot interpret value as {shape_hint}") from exc


def to_descriptor_vector(descriptors) -> list[np.ndarray]:
    """Split a descriptor matrix into a list of its rows."""
    matrix = np.asarray(descriptors)
    if matrix.ndim != 2:
        raise ValueError("descriptors must be a two-dimensional matrix")
    return [row.copy() for row in matrix]


def to_se3(rotation, translation) -> np.ndarray:
    """Build a 4x4 homogeneous float32 transform from a rotation and translation."""
    r = _as_array(rotation, "rotation")
    t = _as_array(translation, "translation").reshape(-1)
    if r.shape != (3, 3):
        raise ValueError("rotation must be a 3x3 matrix")
    if t.shape != (3,):
        raise ValueError("translation must have three components")
    matrix = np.eye(4, dtype=np.float32)
    matrix[:3, :3] = r
    matrix[:3, 3] = t
    return matrix


def sim3_to_matrix(rotation, translation, scale: float) -> np.ndarray:
    """Build a 4x4 similarity transform whose rotation block is scaled."""
    return to_se3(float(scale) * _as_array(rotation, "rotation"), translation)


def split_pose(matrix) -> tuple[np.ndarray, np.ndarray]:
    """Return the rotation block and translation of a 4x4 (or 3x4) transform."""
    m = _as_array(matrix, "pose")
    if m.ndim != 2 or m.shape[0] < 3 or m.shape[1] < 4:
        raise ValueError("pose must be at least 3x4")
    return m[:3, :3].copy(), m[:3, 3].copy()


def to_vector3(value) -> np.ndarray:
    """Return the first three components of a vector or column matrix."""
    v = _as_array(value, "vector").reshape(-1)
    if v.size < 3:
        raise ValueError("vector must have at least three components")
    return v[:3].copy()


def to_matrix3(matrix) -> np.ndarray:
    """Return the upper-left 3x3 block of a matrix as float64."""
    m = _as_array(matrix, "matrix")
    if m.ndim != 2 or m.shape[0] < 3 or m.shape[1] < 3:
        raise ValueError("matrix must be at least 3x3")
    return m[:3, :3].copy()


def to_quaternion(matrix) -> list[float]:
    """Convert the rotation block of a matrix to a quaternion [x, y, z, w]."""
    m = to_matrix3(matrix)
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    q = [0.0, 0.0, 0.0]
    if trace > 0.0:
        t = math.sqrt(trace + 1.0)
        w = 0.5 * t
        t = 0.5 / t
        q = [(m[2, 1] - m[1, 2]) * t, (m[0, 2] - m[2, 0]) * t, (m[1, 0] - m[0, 1]) * t]
    else:
        i = 1 if m[1, 1] > m[0, 0] else 0
        if m[2, 2] > m[i, i]:
            i = 2
        j = (i + 1) % 3
        k = (j + 1) % 3
        t = math.sqrt(m[i, i] - m[j, j] - m[k, k] + 1.0)
        q[i] = 0.5 * t
        t = 0.5 / t
        w = (m[k, j] - m[j, k]) * t
        q[j] = (m[j, i] + m[i, j]) * t
        q[k] = (m[k, i] + m[i, k]) * t
    return [float(q[0]), float(q[1]), float(q[2]), float(w)]


def quaternion_to_matrix(quaternion: Sequence[float]) -> np.ndarray:
    """Convert a quaternion [x, y, z, w] to a 3x3 rotation matrix."""
    x, y, z, w = (float(c) for c in quaternion)
    norm = math.sqrt(x * x + y * y + z * z + w * w)
    if norm == 0.0:
        raise ValueError("quaternion must not be zero")
    x, y, z, w = x / norm, y / norm, z / norm, w / norm
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ],
        dtype=np.float64,
    )