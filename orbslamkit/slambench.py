"""Camera calibration helpers and frame gating for the benchmark interface."""

from __future__ import annotations

import numpy as np

from orbslamkit.sensors import (
    RADIAL_TANGENTIAL,
    CameraSensor,
    InputMode,
    SensorSetup,
)


def camera_matrix(sensor: CameraSensor) -> np.ndarray:
    """The 3x3 pinhole matrix of a sensor, scaling its normalised intrinsics to pixels."""
    fx, fy, cx, cy = sensor.intrinsics
    k = np.eye(3, dtype=np.float64)
    k[0, 0] = fx * sensor.width
    k[1, 1] = fy * sensor.height
    k[0, 2] = cx * sensor.width
    k[1, 2] = cy * sensor.height
    return k


def distortion_coefficients(sensor: CameraSensor) -> np.ndarray:
    """Five radial-tangential coefficients, or zeros for a sensor without that model."""
    coefficients = np.zeros(5, dtype=np.float64)
    if sensor.distortion_type == RADIAL_TANGENTIAL:
        values = list(sensor.distortion)[:5]
        coefficients[: len(values)] = values
    return coefficients


def stereo_relative_transform(left: CameraSensor, right: CameraSensor) -> np.ndarray:
    """Transform from the left camera frame to the right one: inv(T_BS_right) @ T_BS_left."""
    return np.linalg.inv(right.pose) @ left.pose


def _buffer_spec(sensor: CameraSensor, channels: int, dtype) -> tuple[tuple[int, ...], np.dtype]:
    shape: tuple[int, ...] = (sensor.height, sensor.width)
    if channels > 1:
        shape = shape + (channels,)
    return shape, np.dtype(dtype)


class FrameGate:
    """Collects incoming sensor frames until a complete input for the tracker is ready."""

    def __init__(self, setup: SensorSetup):
        self.setup = setup
        self.frame_time = 0.0
        self._specs: dict[int, tuple[str, CameraSensor, tuple[int, ...], np.dtype]] = {}
        self._buffers: dict[str, np.ndarray] = {}
        self._ready: dict[str, bool] = {"depth": False, "rgb": False, "grey_one": False, "grey_two": False}

        candidates = [
            ("depth", setup.depth, 1, np.uint16),
            ("rgb", setup.rgb, 3, np.uint8),
            ("grey_one", setup.grey_one, 1, np.uint8),
            ("grey_two", setup.grey_two, 1, np.uint8),
        ]
        for role, sensor, channels, dtype in candidates:
            if sensor is None or id(sensor) in self._specs:
                continue
            shape, dt = _buffer_spec(sensor, channels, dtype)
            self._specs[id(sensor)] = (role, sensor, shape, dt)
            self._buffers[role] = np.zeros(shape, dtype=dt)

    def _is_ready(self) -> bool:
        mode = self.setup.mode
        r = self._ready
        if mode == InputMode.RGBD:
            return r["depth"] and r["rgb"]
        if mode == InputMode.MONO:
            return r["rgb"] or r["grey_one"]
        if mode == InputMode.STEREO:
            return r["grey_one"] and r["grey_two"]
        return False

    @property
    def ready(self) -> bool:
        return self._is_ready()

    @property
    def input_frame(self) -> np.ndarray | None:
        """The colour buffer if there is one, else the first grey buffer."""
        if "rgb" in self._buffers:
            return self._buffers["rgb"].copy()
        if "grey_one" in self._buffers:
            return self._buffers["grey_one"].copy()
        return None

    def update(self, sensor: CameraSensor, data) -> bool:
        """Store a frame from a sensor; return whether a complete input is now ready.

        Frames from sensors the setup does not use are ignored.
        """
        spec = self._specs.get(id(sensor))
        if spec is not None and spec[1] is sensor:
            role, _, shape, dtype = spec
            raw = data.tobytes() if isinstance(data, np.ndarray) else bytes(data)
            expected = int(np.prod(shape)) * dtype.itemsize
            if len(raw) != expected:
                raise ValueError(
                    f"frame for {role} sensor has {len(raw)} bytes, expected {expected}"
                )
            self._buffers[role] = np.frombuffer(raw, dtype=dtype).reshape(shape).copy()
            self._ready[role] = True
        return self._is_ready()

    def consume(self) -> tuple[np.ndarray, ...] | None:
        """Take the images for one tracking step and clear the ready flags.

        Returns (rgb, depth) for RGB-D, (image,) for monocular and (left, right)
        for stereo; None when no complete input is waiting.
        """
        if not self._is_ready():
            return None
        mode = self.setup.mode
        if mode == InputMode.RGBD:
            self._ready["depth"] = False
            self._ready["rgb"] = False
            images = (self._buffers["rgb"].copy(), self._buffers["depth"].copy())
        elif mode == InputMode.MONO:
            if self._ready["rgb"]:
                images = (self._buffers["rgb"].copy(),)
            else:
                images = (self._buffers["grey_one"].copy(),)
            self._ready["rgb"] = False
            self._ready["grey_one"] = False
        else:
            self._ready["grey_one"] = False
            self._ready["grey_two"] = False
            images = (self._buffers["grey_one"].copy(), self._buffers["grey_two"].copy())
        self.frame_time += 1
        return images