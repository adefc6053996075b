"""Run configuration and selection of camera sensors for the tracker."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

RASTER = "raster"

RGB_III_888 = "RGB_III_888"
D_I_16 = "D_I_16"
G_I_8 = "G_I_8"

NO_DISTORTION = "none"
RADIAL_TANGENTIAL = "radial_tangential"

DEFAULT_VOCABULARY_FILE = "./benchmarks/orbslam2/src/original/Vocabulary/ORBvoc.bin"


class ConfigurationError(ValueError):
    """Raised when the options or the available sensors cannot be used."""


class InputMode(Enum):
    """How the tracker consumes images."""

    MONO = "mono"
    STEREO = "stereo"
    RGBD = "rgbd"
    AUTOMATIC = "auto"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "InputMode":
        """Parse a mode name: 'auto', 'mono', 'stereo' or 'rgbd'."""
        for mode in cls:
            if mode.value == text:
                return mode
        raise ConfigurationError(
            "The argument you gave for ORBSLAM Mode is incorrect, "
            "only 'auto', 'mono', 'stereo' or 'rgbd' are valid."
        )


class _RaisingParser(argparse.ArgumentParser):
    def error(self, message):  # type: ignore[override]
        raise ConfigurationError(message)


@dataclass
class OrbSlamSettings:
    """Parameters of a run, with the defaults used when none are given."""

    mode: InputMode = InputMode.AUTOMATIC
    settings_file: str = ""
    vocabulary_file: str = DEFAULT_VOCABULARY_FILE
    max_features: int = 1000
    pyramid_levels: int = 8
    scale_factor: float = 1.2
    initial_fast_threshold: int = 20
    second_fast_threshold: int = 7
    camera_fps: int = 40
    depth_threshold: float = 40.0

    @classmethod
    def from_args(cls, argv: Sequence[str] | None = None) -> "OrbSlamSettings":
        """Read settings from command-line options; unknown options are ignored."""
        if argv is None:
            argv = sys.argv[1:]
        defaults = cls()
        parser = _RaisingParser(add_help=False, allow_abbrev=False)
        parser.add_argument("-m", "--mode", default=str(defaults.mode),
                            help="select input mode (auto,mono,stereo,rgbd)")
        parser.add_argument("-s", "--settings", dest="settings_file",
                            default=defaults.settings_file, help="Path to the setting file")
        parser.add_argument("-voc", "--vocabulary", dest="vocabulary_file",
                            default=defaults.vocabulary_file, help="Path to the vocabulary file")
        parser.add_argument("-mf", "--max-features", dest="max_features", type=int,
                            default=defaults.max_features, help="Maximum number of features")
        parser.add_argument("-sl", "--scale-levels", dest="pyramid_levels", type=int,
                            default=defaults.pyramid_levels,
                            help="Number of levels in image pyramid")
        parser.add_argument("-sf", "--scale-factor", dest="scale_factor", type=float,
                            default=defaults.scale_factor,
                            help="Scale between levels in image pyramid")
        parser.add_argument("-ift", "--initial-fast-threshold", dest="initial_fast_threshold",
                            type=int, default=defaults.initial_fast_threshold,
                            help="Initial threshold of FAST algorithm (high)")
        parser.add_argument("-sft", "--second-fast-threshold", dest="second_fast_threshold",
                            type=int, default=defaults.second_fast_threshold,
                            help="Second threshold of FAST algorithm (low)")
        parser.add_argument("-fps", "--camera-fps", dest="camera_fps", type=int,
                            default=defaults.camera_fps, help="Camera frame rate")
        parser.add_argument("-dt", "--depth-threshold", dest="depth_threshold", type=float,
                            default=defaults.depth_threshold,
                            help="Depth threshold (close/far points)")
        namespace, _ = parser.parse_known_args(list(argv))
        values = vars(namespace)
        values["mode"] = InputMode.parse(values["mode"])
        return cls(**values)


@dataclass(eq=False)
class CameraSensor:
    """A camera stream: its kind, image size, calibration and formats.

    Intrinsics are (fx, fy, cx, cy) normalised by the image width and height.
    """

    camera_type: str
    width: int
    height: int
    intrinsics: tuple[float, float, float, float] = (1.0, 1.0, 0.5, 0.5)
    distortion_type: str = NO_DISTORTION
    distortion: tuple[float, ...] = (0.0, 0.0, 0.0, 0.0, 0.0)
    pose: np.ndarray = field(default_factory=lambda: np.eye(4))
    frame_format: str = RASTER
    pixel_format: str = RGB_III_888
    disparity_params: tuple[float, ...] = (1.0, 0.0)
    name: str = ""

    def __post_init__(self) -> None:
        self.intrinsics = tuple(float(v) for v in self.intrinsics)
        if len(self.intrinsics) != 4:
            raise ConfigurationError("intrinsics must have four values")
        self.distortion = tuple(float(v) for v in self.distortion)
        self.pose = np.asarray(self.pose, dtype=np.float64)
        if self.pose.shape != (4, 4):
            raise ConfigurationError("sensor pose must be a 4x4 matrix")

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


def find_sensors(sensors: Iterable[CameraSensor], camera_type: str) -> list[CameraSensor]:
    """All sensors of the given camera type, in their original order."""
    return [s for s in sensors if s.camera_type == camera_type]


def _first(sensors: Iterable[CameraSensor], camera_type: str) -> CameraSensor | None:
    found = find_sensors(sensors, camera_type)
    return found[0] if found else None


@dataclass
class SensorSetup:
    """The resolved input mode and the sensors it reads from."""

    mode: InputMode
    rgb: CameraSensor | None = None
    depth: CameraSensor | None = None
    grey_one: CameraSensor | None = None
    grey_two: CameraSensor | None = None

    @property
    def input_size(self) -> tuple[int, int]:
        """Width and height of the primary input image."""
        if self.mode in (InputMode.RGBD, InputMode.MONO) and self.rgb is not None:
            return self.rgb.size
        if self.grey_one is not None:
            return self.grey_one.size
        raise ConfigurationError("no primary sensor selected")

    @classmethod
    def select(cls, sensors: Iterable[CameraSensor], mode=InputMode.AUTOMATIC) -> "SensorSetup":
        """Pick sensors for a mode, resolving 'auto'; raise if they are unusable."""
        if isinstance(mode, str) and not isinstance(mode, InputMode):
            mode = InputMode.parse(mode)
        sensors = list(sensors)
        rgb = _first(sensors, "rgb")
        depth = _first(sensors, "depth")
        greys = find_sensors(sensors, "grey")
        grey_one = grey_two = None
        if len(greys) == 2:
            grey_one, grey_two = greys

        if mode == InputMode.AUTOMATIC:
            if rgb is not None or grey_one is not None:
                mode = InputMode.MONO
            if rgb is not None and depth is not None:
                mode = InputMode.RGBD
            if grey_one is not None and grey_two is not None:
                mode = InputMode.STEREO

        if mode == InputMode.RGBD:
            if rgb is None or depth is None:
                raise ConfigurationError("Invalid sensors found, RGB or Depth not found.")
            if rgb.frame_format != RASTER:
                raise ConfigurationError("RGB data is in wrong format")
            if depth.frame_format != RASTER:
                raise ConfigurationError("Depth data is in wrong format")
            if rgb.pixel_format != RGB_III_888:
                raise ConfigurationError("RGB data is in wrong format pixel")
            if depth.pixel_format != D_I_16:
                raise ConfigurationError("Depth data is in wrong pixel format")
            if rgb.size != depth.size:
                raise ConfigurationError("Sensor size mismatch")
            return cls(mode, rgb=rgb, depth=depth)

        if mode == InputMode.MONO:
            if rgb is None and grey_one is None:
                raise ConfigurationError("Invalid sensors found, RGB or Grey sensor not found.")
            if rgb is not None:
                if rgb.frame_format != RASTER:
                    raise ConfigurationError("RGB data is in wrong format")
                if rgb.pixel_format != RGB_III_888:
                    raise ConfigurationError("RGB data is in wrong format pixel")
                return cls(mode, rgb=rgb)
            return cls(mode, grey_one=grey_one)

        if mode == InputMode.STEREO:
            if grey_one is None or grey_two is None:
                raise ConfigurationError("Invalid sensors found, Grey Stereo not found.")
            if 0 in (grey_one.width, grey_one.height, grey_two.width, grey_two.height):
                raise ConfigurationError("Calibration parameters to rectify stereo are missing!")
            return cls(mode, grey_one=grey_one, grey_two=grey_two)

        raise ConfigurationError("No valid sensor found.")