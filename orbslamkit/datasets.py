"""Monocular dataset listings and tracking-time statistics."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterator, Sequence


@dataclass
class ImageSequence:
    """Image file names with their timestamps in seconds."""

    filenames: list[str] = field(default_factory=list)
    timestamps: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.filenames)

    def __iter__(self) -> Iterator[tuple[str, float]]:
        return iter(zip(self.filenames, self.timestamps))


@dataclass(frozen=True)
class TrackingStatistics:
    """Summary of per-frame tracking times."""

    median: float
    mean: float
    total: float


def _lines(path) -> Iterator[str]:
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            line = line.rstrip("\n")
            if line:
                yield line


def _first_number(line: str) -> float:
    tokens = line.split()
    if not tokens:
        raise ValueError(f"no timestamp in line {line!r}")
    try:
        return float(tokens[0])
    except ValueError as exc:
        raise ValueError(f"invalid timestamp in line {line!r}") from exc


def load_euroc_mono(image_path, times_path) -> ImageSequence:
    """List a EuRoC camera folder from its file of nanosecond timestamps."""
    prefix = os.fspath(image_path)
    sequence = ImageSequence()
    for line in _lines(times_path):
        sequence.filenames.append(f"{prefix}/{line}.png")
        sequence.timestamps.append(_first_number(line) / 1e9)
    return sequence


def load_kitti_mono(sequence_path) -> ImageSequence:
    """List the left images of a KITTI sequence from its times.txt."""
    root = os.fspath(sequence_path)
    timestamps = [_first_number(line) for line in _lines(f"{root}/times.txt")]
    filenames = [f"{root}/image_0/{i:06d}.png" for i in range(len(timestamps))]
    return ImageSequence(filenames, timestamps)


def load_tum_mono(sequence_path) -> ImageSequence:
    """List a TUM RGB-D sequence's colour images from rgb.txt."""
    root = os.fspath(sequence_path)
    sequence = ImageSequence()
    with open(f"{root}/rgb.txt", encoding="utf-8") as handle:
        for _ in range(3):
            handle.readline()
        for line in handle:
            line = line.rstrip("\n")
            if not line:
                continue
            tokens = line.split()
            sequence.timestamps.append(_first_number(line))
            name = tokens[1] if len(tokens) > 1 else ""
            sequence.filenames.append(f"{root}/{name}")
    return sequence


def tracking_statistics(times: Sequence[float]) -> TrackingStatistics:
    """Median, mean and total of tracking times."""
    ordered = sorted(float(t) for t in times)
    if not ordered:
        raise ValueError("no tracking times given")
    total = sum(ordered)
    return TrackingStatistics(ordered[len(ordered) // 2], total / len(ordered), total)


def frame_delay(timestamps: Sequence[float], index: int, elapsed: float) -> float:
    """Seconds to wait after processing frame ``index`` to keep the recorded rate."""
    n = len(timestamps)
    if not 0 <= index < n:
        raise IndexError("frame index out of range")
    period = 0.0
    if index < n - 1:
        period = timestamps[index + 1] - timestamps[index]
    elif index > 0:
        period = timestamps[index] - timestamps[index - 1]
    return period - elapsed if elapsed < period else 0.0