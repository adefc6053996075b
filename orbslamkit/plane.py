"""Plane detection from map points and plane pose computation."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Sequence

import numpy as np

_EPS = 1e-4
_UP = np.array([0.0, 1.0, 0.0])


@dataclass
class PlanePoint:
    """A map point as seen by the plane detector."""

    position: np.ndarray
    observations: int = 0
    bad: bool = False

    def __post_init__(self) -> None:
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)


def exp_so3(x: float, y: float, z: float) -> np.ndarray:
    """Exponential map from a rotation vector to a rotation matrix."""
    identity = np.eye(3)
    d2 = x * x + y * y + z * z
    d = math.sqrt(d2)
    w = np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])
    if d < _EPS:
        return identity + w + 0.5 * (w @ w)
    return identity + w * math.sin(d) / d + (w @ w) * (1.0 - math.cos(d)) / d2


def exp_so3_vector(v) -> np.ndarray:
    """Exponential map of a three-component rotation vector."""
    x, y, z = np.asarray(v, dtype=np.float64).reshape(-1)[:3]
    return exp_so3(float(x), float(y), float(z))


def _random_rang(rng: random.Random) -> float:
    return -3.14 / 2 + rng.random() * 3.14


def _plane_transform(normal: np.ndarray, origin: np.ndarray, rang: float) -> np.ndarray:
    v = np.cross(_UP, normal)
    sa = float(np.linalg.norm(v))
    ca = float(_UP @ normal)
    ang = math.atan2(sa, ca)
    if sa > 0.0:
        align = exp_so3_vector(v * ang / sa)
    elif ca >= 0.0:
        align = np.eye(3)
    else:
        align = exp_so3(math.pi, 0.0, 0.0)
    tpw = np.eye(4)
    tpw[:3, :3] = align @ exp_so3_vector(_UP * rang)
    tpw[:3, 3] = origin
    return tpw


class Plane:
    """A plane fitted to map points, with its pose relative to the world."""

    def __init__(self, points: Sequence[PlanePoint], tcw, rang: float | None = None):
        self.points = list(points)
        self.tcw = np.array(tcw, dtype=np.float64)
        self.rang = _random_rang(random.Random()) if rang is None else float(rang)
        self.xc: np.ndarray | None = None
        self.normal = np.zeros(3)
        self.origin = np.zeros(3)
        self.tpw = np.eye(4)
        self.recompute()

    def recompute(self) -> None:
        """Refit the plane to all of its points that are not bad."""
        good = [p.position for p in self.points if not p.bad]
        if not good:
            raise ValueError("plane has no valid points")
        positions = np.array(good)
        a_matrix = np.hstack([positions, np.ones((len(good), 1))])
        _, _, vt = np.linalg.svd(a_matrix, full_matrices=True)
        abc = vt[3, :3].copy()

        self.origin = positions.mean(axis=0)
        f = 1.0 / math.sqrt(float(abc @ abc))

        if self.xc is None:
            rotation = self.tcw[:3, :3]
            camera_center = -rotation.T @ self.tcw[:3, 3]
            self.xc = camera_center - self.origin

        if float(self.xc @ abc) > 0:
            abc = -abc

        self.normal = abc * f
        self.tpw = _plane_transform(self.normal, self.origin, self.rang)

    @classmethod
    def from_normal(cls, normal, origin, rang: float | None = None) -> "Plane":
        """Build a plane directly from a normal and an origin."""
        plane = cls.__new__(cls)
        plane.points = []
        plane.tcw = np.eye(4)
        plane.xc = None
        plane.normal = np.asarray(normal, dtype=np.float64).reshape(3)
        plane.origin = np.asarray(origin, dtype=np.float64).reshape(3)
        plane.rang = _random_rang(random.Random()) if rang is None else float(rang)
        plane.tpw = _plane_transform(plane.normal, plane.origin, plane.rang)
        return plane

    def gl_matrix(self) -> list[float]:
        """The plane transform as a column-major 16-element list."""
        m = self.tpw.T.reshape(-1).tolist()
        m[3] = m[7] = m[11] = 0.0
        m[15] = 1.0
        return m


def detect_plane(
    tcw,
    points: Sequence[PlanePoint],
    iterations: int = 50,
    rng: random.Random | None = None,
) -> Plane | None:
    """Fit a plane to well-observed points by RANSAC; None if too few points."""
    if iterations < 1:
        raise ValueError("iterations must be positive")
    rng = rng or random.Random()

    selected = [p for p in points if p is not None and p.observations > 5]
    n = len(selected)
    if n < 50:
        return None

    positions = np.array([p.position for p in selected])
    homogeneous = np.hstack([positions, np.ones((n, 1))])
    nth = max(int(0.2 * n), 20)

    best_dist = 1e10
    best_distances: np.ndarray | None = None
    for _ in range(iterations):
        sample = rng.sample(range(n), 3)
        a_matrix = homogeneous[sample]
        _, _, vt = np.linalg.svd(a_matrix, full_matrices=True)
        coeffs = vt[3]
        f = 1.0 / math.sqrt(float(coeffs @ coeffs))
        distances = np.abs(homogeneous @ coeffs) * f
        median = float(np.sort(distances)[nth])
        if median < best_dist:
            best_dist = median
            best_distances = distances

    if best_distances is None:
        return None

    threshold = 1.4 * best_dist
    inliers = [p for p, d in zip(selected, best_distances) if d < threshold]
    return Plane(inliers, tcw, _random_rang(rng))