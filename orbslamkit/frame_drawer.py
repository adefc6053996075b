"""Rendering of the tracked frame with keypoints and a status line."""

from __future__ import annotations

import threading
from enum import IntEnum
from typing import Callable, Sequence

import numpy as np
from PIL import Image, ImageDraw, ImageFont

_GREEN = (0, 255, 0)
_BLUE = (255, 0, 0)
_WHITE = (255, 255, 255)
_MARK_HALF_SIZE = 5
_DOT_RADIUS = 2


class TrackingState(IntEnum):
    """State of the tracker for the most recently processed frame."""

    SYSTEM_NOT_READY = -1
    NO_IMAGES_YET = 0
    NOT_INITIALIZED = 1
    OK = 2
    LOST = 3


def _to_colour(image) -> np.ndarray:
    im = np.asarray(image)
    if im.dtype != np.uint8:
        im = np.clip(im, 0, 255).astype(np.uint8)
    if im.ndim == 2:
        im = np.stack([im, im, im], axis=-1)
    elif im.ndim == 3 and im.shape[2] == 1:
        im = np.concatenate([im, im, im], axis=-1)
    elif im.ndim != 3 or im.shape[2] != 3:
        raise ValueError("image must be greyscale or three-channel")
    return np.ascontiguousarray(im)


class FrameDrawer:
    """Keeps the latest tracked frame and draws it with an information band."""

    def __init__(self, map_counts: Callable[[], tuple[int, int]] | None = None):
        self._map_counts = map_counts or (lambda: (0, 0))
        self._lock = threading.Lock()
        self._state = TrackingState.SYSTEM_NOT_READY
        self._image = np.zeros((480, 640, 3), dtype=np.uint8)
        self._current_keys: list = []
        self._initial_keys: list = []
        self._initial_matches: list[int] = []
        self._vo: list[bool] = []
        self._map: list[bool] = []
        self.only_tracking = False
        self.tracked = 0
        self.tracked_vo = 0

    @property
    def state(self) -> TrackingState:
        return self._state

    def update(
        self,
        image,
        state,
        keys: Sequence = (),
        initial_keys: Sequence = (),
        initial_matches: Sequence[int] = (),
        in_map: Sequence[bool | None] = (),
        only_tracking: bool = False,
    ) -> None:
        """Record a processed frame.

        ``in_map`` holds, per keypoint, True for a match to a map point, False
        for a visual-odometry match and None for no match (or an outlier).
        """
        state = TrackingState(state)
        current = list(keys)
        n = len(current)
        flags = list(in_map)
        if state == TrackingState.OK and flags and len(flags) != n:
            raise ValueError("in_map must have one entry per keypoint")
        with self._lock:
            self._image = np.array(image, copy=True)
            self._current_keys = current
            self._vo = [False] * n
            self._map = [False] * n
            self.only_tracking = bool(only_tracking)
            if state == TrackingState.NOT_INITIALIZED:
                self._initial_keys = list(initial_keys)
                self._initial_matches = [int(m) for m in initial_matches]
            elif state == TrackingState.OK:
                for i, flag in enumerate(flags):
                    if flag is True:
                        self._map[i] = True
                    elif flag is False:
                        self._vo[i] = True
            self._state = state

    def status_text(self, state) -> str:
        """The information line shown below the frame for a given state."""
        state = TrackingState(state)
        if state == TrackingState.NO_IMAGES_YET:
            return " WAITING FOR IMAGES"
        if state == TrackingState.NOT_INITIALIZED:
            return " TRYING TO INITIALIZE "
        if state == TrackingState.OK:
            prefix = "LOCALIZATION | " if self.only_tracking else "SLAM MODE |  "
            n_kfs, n_mps = self._map_counts()
            text = f"{prefix}KFs: {n_kfs}, MPs: {n_mps}, Matches: {self.tracked}"
            if self.tracked_vo > 0:
                text += f", + VO matches: {self.tracked_vo}"
            return text
        if state == TrackingState.LOST:
            return " TRACK LOST. TRYING TO RELOCALIZE "
        return " LOADING ORB VOCABULARY. PLEASE WAIT..."

    def draw_frame(self) -> np.ndarray:
        """Draw the stored frame with its matches and the status band."""
        current: list = []
        initial: list = []
        matches: list[int] = []
        vo: list[bool] = []
        in_map: list[bool] = []
        with self._lock:
            state = self._state
            if self._state == TrackingState.SYSTEM_NOT_READY:
                self._state = TrackingState.NO_IMAGES_YET
            image = self._image.copy()
            if self._state == TrackingState.NOT_INITIALIZED:
                current = list(self._current_keys)
                initial = list(self._initial_keys)
                matches = list(self._initial_matches)
            elif self._state == TrackingState.OK:
                current = list(self._current_keys)
                vo = list(self._vo)
                in_map = list(self._map)
            elif self._state == TrackingState.LOST:
                current = list(self._current_keys)

        canvas = Image.fromarray(_to_colour(image))
        draw = ImageDraw.Draw(canvas)

        if state == TrackingState.NOT_INITIALIZED:
            for i, m in enumerate(matches):
                if m >= 0:
                    draw.line([(initial[i].x, initial[i].y), (current[m].x, current[m].y)], fill=_GREEN)
        elif state == TrackingState.OK:
            self.tracked = 0
            self.tracked_vo = 0
            r = _MARK_HALF_SIZE
            for kp, is_vo, is_map in zip(current, vo, in_map):
                if not (is_vo or is_map):
                    continue
                colour = _GREEN if is_map else _BLUE
                draw.rectangle([kp.x - r, kp.y - r, kp.x + r, kp.y + r], outline=colour)
                d = _DOT_RADIUS
                draw.ellipse([kp.x - d, kp.y - d, kp.x + d, kp.y + d], fill=colour)
                if is_map:
                    self.tracked += 1
                else:
                    self.tracked_vo += 1

        return self._with_text(np.asarray(canvas), state)

    def _with_text(self, image: np.ndarray, state) -> np.ndarray:
        text = self.status_text(state)
        font = ImageFont.load_default()
        probe = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        _, top, _, bottom = probe.textbbox((0, 0), text, font=font)
        height = max(bottom - top, 0)
        rows, cols = image.shape[:2]
        out = np.zeros((rows + height + 10, cols, 3), dtype=np.uint8)
        out[:rows] = image
        banded = Image.fromarray(out)
        ImageDraw.Draw(banded).text((5, rows + 5 - top), text, fill=_WHITE, font=font)
        return np.array(banded)