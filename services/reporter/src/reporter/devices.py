"""Device ports for position and camera access.

The reporter never talks to hardware directly. Location and capture logic
depend on the small protocols below; `OpenCVCamera` is the bundled camera
adapter, and tests supply fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class GeolocationErrorCode(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


class GeolocationError(Exception):
    """Position request failed with one of the `GeolocationErrorCode` codes."""

    def __init__(self, code: GeolocationErrorCode, message: str = "") -> None:
        super().__init__(message or code.value)
        self.code = code


class CameraError(Exception):
    """Camera could not be opened or read.

    Attributes:
        reason: ``permission_denied`` or ``unavailable``.
    """

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy_m: float | None = None


class PositionProvider(Protocol):
    async def get_position(
        self, *, high_accuracy: bool, timeout_s: float, maximum_age_s: float
    ) -> Position:
        """Resolve the current position or raise GeolocationError."""
        ...


class VideoStream(Protocol):
    def read_frame(self) -> np.ndarray:
        """Return the current frame as an (H, W, 4) RGBA uint8 array."""
        ...

    def stop(self) -> None: ...


class Camera(Protocol):
    async def open(self, *, facing: str, width: int, height: int) -> VideoStream:
        """Start a stream or raise CameraError."""
        ...


class OpenCVStream:
    """VideoStream over a `cv2.VideoCapture` handle."""

    def __init__(self, capture: "cv2.VideoCapture") -> None:
        self._capture = capture

    @property
    def active(self) -> bool:
        return self._capture is not None

    def read_frame(self) -> np.ndarray:
        if self._capture is None:
            raise CameraError("unavailable", "stream already stopped")
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraError("unavailable", "camera returned no frame")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)

    def stop(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.debug("Camera stream released")


class OpenCVCamera:
    """Camera port backed by an OpenCV device index.

    OpenCV has no notion of facing; the configured `index` is expected to be
    the rear camera. Requested dimensions are hints, the device may pick the
    nearest mode it supports.
    """

    def __init__(self, index: int = 0) -> None:
        self.index = index

    async def open(self, *, facing: str, width: int, height: int) -> OpenCVStream:
        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            raise CameraError("unavailable", f"camera {self.index} could not be opened")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logger.info("Opened camera %d (%s, %dx%d requested)", self.index, facing, width, height)
        return OpenCVStream(capture)
