"""Stereo and RGB-D dataset listings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterator

from orbslamkit.datasets import _first_number, _lines


@dataclass
class StereoSequence:
    """Left and right image file names with their timestamps in seconds."""

    left: list[str] = field(default_factory=list)
    right: list[str] = field(default_factory=list)
    timestamps: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.left)

    def __iter__(self) -> Iterator[tuple[str, str, float]]:
        return iter(zip(self.left, self.right, self.timestamps))


@dataclass
class RGBDSequence:
    """Colour and depth image file names with the colour timestamps."""

    rgb: list[str] = field(default_factory=list)
    depth: list[str] = field(default_factory=list)
    timestamps: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rgb)

    def __iter__(self) -> Iterator[tuple[str, str, float]]:
        return iter(zip(self.rgb, self.depth, self.timestamps))


def load_tum_rgbd(association_path) -> RGBDSequence:
    """Read a TUM association file: colour time, colour file, depth time, depth file.

    File names are returned as written, relative to the sequence folder.
    """
    sequence = RGBDSequence()
    for line in _lines(association_path):
        tokens = line.split()
        sequence.timestamps.append(_first_number(line))
        sequence.rgb.append(tokens[1] if len(tokens) > 1 else "")
        sequence.depth.append(tokens[3] if len(tokens) > 3 else "")
    return sequence


def load_euroc_stereo(left_path, right_path, times_path) -> StereoSequence:
    """List EuRoC left and right camera folders from a file of nanosecond timestamps."""
    left_prefix = os.fspath(left_path)
    right_prefix = os.fspath(right_path)
    sequence = StereoSequence()
    for line in _lines(times_path):
        sequence.left.append(f"{left_prefix}/{line}.png")
        sequence.right.append(f"{right_prefix}/{line}.png")
        sequence.timestamps.append(_first_number(line) / 1e9)
    return sequence


def load_kitti_stereo(sequence_path) -> StereoSequence:
    """List the left and right images of a KITTI sequence from its times.txt."""
    root = os.fspath(sequence_path)
    timestamps = [_first_number(line) for line in _lines(f"{root}/times.txt")]
    names = [f"{i:06d}.png" for i in range(len(timestamps))]
    return StereoSequence(
        [f"{root}/image_0/{name}" for name in names],
        [f"{root}/image_1/{name}" for name in names],
        timestamps,
    )