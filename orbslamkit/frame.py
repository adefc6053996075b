"""Image frames: keypoint geometry, grid lookup, projection and stereo depth."""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field, replace
from typing import ClassVar, Sequence

import numpy as np

GRID_COLS = 64
GRID_ROWS = 48

TH_HIGH = 100
TH_LOW = 50

_UNDISTORT_ITERATIONS = 5
_WINDOW = 5
_SEARCH = 5


def _c_round(value: float) -> int:
    """Round half away from zero."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


@dataclass(frozen=True)
class KeyPoint:
    """A detected feature: image position and pyramid level."""

    x: float
    y: float
    octave: int = 0
    angle: float = -1.0
    response: float = 0.0

    def moved_to(self, x: float, y: float) -> "KeyPoint":
        return replace(self, x=float(x), y=float(y))


@dataclass(frozen=True)
class ScaleInfo:
    """Image pyramid scale levels used by the feature extractor."""

    levels: int = 8
    scale_factor: float = 1.2
    scale_factors: tuple[float, ...] = field(init=False)
    level_sigma2: tuple[float, ...] = field(init=False)

    def __post_init__(self) -> None:
        if self.levels < 1:
            raise ValueError("a pyramid needs at least one level")
        if self.scale_factor <= 0:
            raise ValueError("scale factor must be positive")
        factors = tuple(self.scale_factor**i for i in range(self.levels))
        object.__setattr__(self, "scale_factors", factors)
        object.__setattr__(self, "level_sigma2", tuple(f * f for f in factors))

    @property
    def log_scale_factor(self) -> float:
        return math.log(self.scale_factor)

    @property
    def inverse_scale_factors(self) -> tuple[float, ...]:
        return tuple(1.0 / f for f in self.scale_factors)

    @property
    def inverse_level_sigma2(self) -> tuple[float, ...]:
        return tuple(1.0 / s for s in self.level_sigma2)


def _distortion(dist_coef) -> tuple[float, float, float, float, float]:
    d = [float(c) for c in np.asarray(dist_coef, dtype=np.float64).reshape(-1)]
    if len(d) < 4:
        raise ValueError("distortion needs at least four coefficients")
    k3 = d[4] if len(d) > 4 else 0.0
    return d[0], d[1], d[2], d[3], k3


def _intrinsics(k) -> tuple[float, float, float, float]:
    m = np.asarray(k, dtype=np.float64)
    if m.shape != (3, 3):
        raise ValueError("camera matrix must be 3x3")
    return float(m[0, 0]), float(m[1, 1]), float(m[0, 2]), float(m[1, 2])


def undistort_points(points, k, dist_coef) -> np.ndarray:
    """Remove radial-tangential distortion from pixel points, keeping the same camera matrix."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    fx, fy, cx, cy = _intrinsics(k)
    k1, k2, p1, p2, k3 = _distortion(dist_coef)
    result = np.empty_like(pts)
    for row, (u, v) in enumerate(pts):
        x0 = (u - cx) / fx
        y0 = (v - cy) / fy
        x, y = x0, y0
        for _ in range(_UNDISTORT_ITERATIONS):
            r2 = x * x + y * y
            icdist = 1.0 / (1.0 + ((k3 * r2 + k2) * r2 + k1) * r2)
            delta_x = 2 * p1 * x * y + p2 * (r2 + 2 * x * x)
            delta_y = p1 * (r2 + 2 * y * y) + 2 * p2 * x * y
            x = (x0 - delta_x) * icdist
            y = (y0 - delta_y) * icdist
        result[row] = (x * fx + cx, y * fy + cy)
    return result


def compute_image_bounds(width: float, height: float, k, dist_coef) -> tuple[float, float, float, float]:
    """Return (min_x, max_x, min_y, max_y) of the undistorted image."""
    if _distortion(dist_coef)[0] != 0.0:
        corners = np.array([[0.0, 0.0], [width, 0.0], [0.0, height], [width, height]])
        c = undistort_points(corners, k, dist_coef)
        return (
            float(min(c[0, 0], c[2, 0])),
            float(max(c[1, 0], c[3, 0])),
            float(min(c[0, 1], c[1, 1])),
            float(max(c[2, 1], c[3, 1])),
        )
    return 0.0, float(width), 0.0, float(height)


def descriptor_distance(a, b) -> int:
    """Hamming distance between two binary descriptors."""
    da = np.asarray(a, dtype=np.uint8).reshape(-1)
    db = np.asarray(b, dtype=np.uint8).reshape(-1)
    if da.shape != db.shape:
        raise ValueError("descriptors must have the same length")
    return int(np.unpackbits(np.bitwise_xor(da, db)).sum())


@dataclass(frozen=True)
class FrameGeometry:
    """Calibration-derived values shared by all frames of a camera."""

    min_x: float
    max_x: float
    min_y: float
    max_y: float
    fx: float
    fy: float
    cx: float
    cy: float

    @classmethod
    def from_calibration(cls, width, height, k, dist_coef) -> "FrameGeometry":
        min_x, max_x, min_y, max_y = compute_image_bounds(width, height, k, dist_coef)
        fx, fy, cx, cy = _intrinsics(k)
        if max_x <= min_x or max_y <= min_y:
            raise ValueError("image bounds are empty")
        return cls(min_x, max_x, min_y, max_y, fx, fy, cx, cy)

    @property
    def grid_element_width_inv(self) -> float:
        return GRID_COLS / (self.max_x - self.min_x)

    @property
    def grid_element_height_inv(self) -> float:
        return GRID_ROWS / (self.max_y - self.min_y)

    @property
    def invfx(self) -> float:
        return 1.0 / self.fx

    @property
    def invfy(self) -> float:
        return 1.0 / self.fy


@dataclass(frozen=True)
class Projection:
    """Where a map point falls in a frame and how it is seen."""

    u: float
    v: float
    u_right: float
    view_cos: float
    distance: float


class Frame:
    """A set of keypoints from one image, with camera pose and depth data."""

    _ids: ClassVar = itertools.count()

    def __init__(
        self,
        keypoints: Sequence[KeyPoint],
        descriptors,
        timestamp: float,
        k,
        dist_coef,
        bf: float,
        th_depth: float,
        scale: ScaleInfo,
        geometry: FrameGeometry,
    ):
        self.id = next(Frame._ids)
        self.keys = list(keypoints)
        if descriptors is None:
            descriptors = np.zeros((0, 32), dtype=np.uint8)
        self.descriptors = np.asarray(descriptors)
        if len(self.descriptors) != len(self.keys):
            raise ValueError("one descriptor is needed per keypoint")
        self.timestamp = float(timestamp)
        self.k = np.array(k, dtype=np.float64)
        self.dist_coef = np.array(dist_coef, dtype=np.float64).reshape(-1)
        self.bf = float(bf)
        self.th_depth = float(th_depth)
        self.scale = scale
        self.geometry = geometry
        self.baseline = self.bf / geometry.fx

        self.keys_un = self._undistorted_keys()
        self.keys_right: list[KeyPoint] = []
        self.descriptors_right = np.zeros((0, self.descriptors.shape[1] if self.descriptors.ndim == 2 else 32),
                                          dtype=np.uint8)
        self.u_right = [-1.0] * self.n
        self.depth = [-1.0] * self.n
        self.map_points: list[object | None] = [None] * self.n
        self.outliers = [False] * self.n

        self.tcw: np.ndarray | None = None
        self.rcw: np.ndarray | None = None
        self.rwc: np.ndarray | None = None
        self.t_cw: np.ndarray | None = None
        self.ow: np.ndarray | None = None

        self.grid: list[list[list[int]]] = [[[] for _ in range(GRID_ROWS)] for _ in range(GRID_COLS)]
        for index, kp in enumerate(self.keys_un):
            cell = self.pos_in_grid(kp)
            if cell is not None:
                self.grid[cell[0]][cell[1]].append(index)

    @property
    def n(self) -> int:
        return len(self.keys)

    def _undistorted_keys(self) -> list[KeyPoint]:
        if not self.keys or self.dist_coef[0] == 0.0:
            return list(self.keys)
        pts = undistort_points([(kp.x, kp.y) for kp in self.keys], self.k, self.dist_coef)
        return [kp.moved_to(x, y) for kp, (x, y) in zip(self.keys, pts)]

    def set_pose(self, tcw) -> None:
        """Set the world-to-camera transform and derive rotation and centre."""
        m = np.array(tcw, dtype=np.float64)
        if m.shape != (4, 4):
            raise ValueError("pose must be a 4x4 matrix")
        self.tcw = m
        self.rcw = m[:3, :3].copy()
        self.rwc = self.rcw.T
        self.t_cw = m[:3, 3].copy()
        self.ow = -self.rcw.T @ self.t_cw

    def _require_pose(self) -> None:
        if self.tcw is None:
            raise RuntimeError("frame has no pose")

    def camera_center(self) -> np.ndarray:
        """Camera centre in world coordinates."""
        self._require_pose()
        return self.ow.copy()

    def is_in_frustum(self, position, normal, min_distance, max_distance, viewing_cos_limit=0.5):
        """Project a world point; return a Projection if it is visible, else None."""
        self._require_pose()
        p = np.asarray(position, dtype=np.float64).reshape(3)
        pc = self.rcw @ p + self.t_cw
        pcx, pcy, pcz = (float(c) for c in pc)
        if pcz <= 0.0:
            return None
        g = self.geometry
        invz = 1.0 / pcz
        u = g.fx * pcx * invz + g.cx
        v = g.fy * pcy * invz + g.cy
        if u < g.min_x or u > g.max_x:
            return None
        if v < g.min_y or v > g.max_y:
            return None
        po = p - self.ow
        dist = float(np.linalg.norm(po))
        if dist < min_distance or dist > max_distance:
            return None
        view_cos = float(po @ np.asarray(normal, dtype=np.float64).reshape(3)) / dist
        if view_cos < viewing_cos_limit:
            return None
        return Projection(u, v, u - self.bf * invz, view_cos, dist)

    def features_in_area(self, x, y, r, min_level=-1, max_level=-1) -> list[int]:
        """Indices of undistorted keypoints within a square of half-side r."""
        g = self.geometry
        min_cx = max(0, math.floor((x - g.min_x - r) * g.grid_element_width_inv))
        if min_cx >= GRID_COLS:
            return []
        max_cx = min(GRID_COLS - 1, math.ceil((x - g.min_x + r) * g.grid_element_width_inv))
        if max_cx < 0:
            return []
        min_cy = max(0, math.floor((y - g.min_y - r) * g.grid_element_height_inv))
        if min_cy >= GRID_ROWS:
            return []
        max_cy = min(GRID_ROWS - 1, math.ceil((y - g.min_y + r) * g.grid_element_height_inv))
        if max_cy < 0:
            return []

        check_levels = min_level > 0 or max_level >= 0
        found = []
        for ix in range(min_cx, max_cx + 1):
            for iy in range(min_cy, max_cy + 1):
                for index in self.grid[ix][iy]:
                    kp = self.keys_un[index]
                    if check_levels:
                        if kp.octave < min_level:
                            continue
                        if max_level >= 0 and kp.octave > max_level:
                            continue
                    if abs(kp.x - x) < r and abs(kp.y - y) < r:
                        found.append(index)
        return found

    def pos_in_grid(self, keypoint: KeyPoint) -> tuple[int, int] | None:
        """Grid cell of a keypoint, or None if it falls outside the grid."""
        g = self.geometry
        pos_x = _c_round((keypoint.x - g.min_x) * g.grid_element_width_inv)
        pos_y = _c_round((keypoint.y - g.min_y) * g.grid_element_height_inv)
        if pos_x < 0 or pos_x >= GRID_COLS or pos_y < 0 or pos_y >= GRID_ROWS:
            return None
        return pos_x, pos_y

    def compute_stereo_from_depth(self, depth) -> None:
        """Fill depth and virtual right coordinates from a registered depth map."""
        image = np.asarray(depth, dtype=np.float64)
        self.u_right = [-1.0] * self.n
        self.depth = [-1.0] * self.n
        for i, (kp, kp_un) in enumerate(zip(self.keys, self.keys_un)):
            d = float(image[int(kp.y), int(kp.x)])
            if d > 0:
                self.depth[i] = d
                self.u_right[i] = kp_un.x - self.bf / d

    def unproject_stereo(self, index: int) -> np.ndarray | None:
        """World position of a keypoint with known depth, else None."""
        self._require_pose()
        z = self.depth[index]
        if z <= 0:
            return None
        g = self.geometry
        kp = self.keys_un[index]
        x = (kp.x - g.cx) * z * g.invfx
        y = (kp.y - g.cy) * z * g.invfy
        return self.rwc @ np.array([x, y, z]) + self.ow


def _patch(image: np.ndarray, row: int, col: int) -> np.ndarray | None:
    w = _WINDOW
    if row - w < 0 or col - w < 0:
        return None
    p = image[row - w:row + w + 1, col - w:col + w + 1]
    if p.shape != (2 * w + 1, 2 * w + 1):
        return None
    p = p.astype(np.float32)
    return p - p[w, w]


def compute_stereo_matches(
    frame: Frame,
    right_keypoints: Sequence[KeyPoint],
    right_descriptors,
    left_pyramid,
    right_pyramid,
    th_high: int = TH_HIGH,
    th_low: int = TH_LOW,
) -> int:
    """Match left keypoints to a rectified right image; set depths. Returns matches kept."""
    if frame.bf <= 0:
        raise ValueError("stereo matching needs a positive bf")
    n = frame.n
    frame.u_right = [-1.0] * n
    frame.depth = [-1.0] * n
    frame.keys_right = list(right_keypoints)
    frame.descriptors_right = np.asarray(right_descriptors)
    if len(frame.descriptors_right) != len(frame.keys_right):
        raise ValueError("one descriptor is needed per right keypoint")

    th_orb = (th_high + th_low) // 2
    left_levels = [np.asarray(level) for level in left_pyramid]
    right_levels = [np.asarray(level) for level in right_pyramid]
    n_rows = left_levels[0].shape[0]
    scale_factors = frame.scale.scale_factors
    inv_scale = frame.scale.inverse_scale_factors

    rows: list[list[int]] = [[] for _ in range(n_rows)]
    for i_r, kp in enumerate(frame.keys_right):
        r = 2.0 * scale_factors[kp.octave]
        max_r = math.ceil(kp.y + r)
        min_r = math.floor(kp.y - r)
        for yi in range(max(min_r, 0), min(max_r, n_rows - 1) + 1):
            rows[yi].append(i_r)

    min_d = 0.0
    max_d = frame.bf / frame.baseline
    matches: list[tuple[int, int]] = []

    for i_l, kp_l in enumerate(frame.keys):
        row = int(kp_l.y)
        if row < 0 or row >= n_rows:
            continue
        candidates = rows[row]
        if not candidates:
            continue
        u_l = kp_l.x
        min_u = u_l - max_d
        max_u = u_l - min_d
        if max_u < 0:
            continue

        best_dist = th_high
        best_idx = 0
        d_l = frame.descriptors[i_l]
        for i_r in candidates:
            kp_r = frame.keys_right[i_r]
            if kp_r.octave < kp_l.octave - 1 or kp_r.octave > kp_l.octave + 1:
                continue
            if min_u <= kp_r.x <= max_u:
                dist = descriptor_distance(d_l, frame.descriptors_right[i_r])
                if dist < best_dist:
                    best_dist = dist
                    best_idx = i_r

        if best_dist >= th_orb:
            continue

        octave = kp_l.octave
        factor = inv_scale[octave]
        su_l = _c_round(kp_l.x * factor)
        sv_l = _c_round(kp_l.y * factor)
        su_r0 = _c_round(frame.keys_right[best_idx].x * factor)

        left_patch = _patch(left_levels[octave], sv_l, su_l)
        if left_patch is None:
            continue
        right_image = right_levels[octave]
        if su_r0 + _SEARCH - _WINDOW < 0 or su_r0 + _SEARCH + _WINDOW + 1 >= right_image.shape[1]:
            continue

        sad_best = math.inf
        best_inc = 0
        dists: dict[int, float] = {}
        complete = True
        for inc in range(-_SEARCH, _SEARCH + 1):
            right_patch = _patch(right_image, sv_l, su_r0 + inc)
            if right_patch is None:
                complete = False
                break
            dist = float(np.abs(left_patch - right_patch).sum())
            if dist < sad_best:
                sad_best = dist
                best_inc = inc
            dists[inc] = dist
        if not complete or best_inc in (-_SEARCH, _SEARCH):
            continue

        dist1, dist2, dist3 = dists[best_inc - 1], dists[best_inc], dists[best_inc + 1]
        denominator = 2.0 * (dist1 + dist3 - 2.0 * dist2)
        if denominator == 0.0:
            continue
        delta = (dist1 - dist3) / denominator
        if delta < -1 or delta > 1:
            continue

        best_u_r = scale_factors[octave] * (su_r0 + best_inc + delta)
        disparity = u_l - best_u_r
        if min_d <= disparity < max_d:
            if disparity <= 0:
                disparity = 0.01
                best_u_r = u_l - 0.01
            frame.depth[i_l] = frame.bf / disparity
            frame.u_right[i_l] = best_u_r
            matches.append((int(sad_best), i_l))

    if not matches:
        return 0
    matches.sort()
    median = matches[len(matches) // 2][0]
    threshold = 1.5 * 1.4 * median
    kept = len(matches)
    for dist, i_l in reversed(matches):
        if dist < threshold:
            break
        frame.u_right[i_l] = -1.0
        frame.depth[i_l] = -1.0
        kept -= 1
    return kept