"""Photo capture with on-device redaction before the image is stored."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Optional

from geocoder import Coordinate
from privacy_filter import PixelRegionDetector, PrivacyRedactor, RedactionSummary, Surface

from reporter.devices import Camera, CameraError, VideoStream
from reporter.draft import ImageAsset
from reporter.image_ops import ImageTooLargeError, encode_bounded_jpeg, read_and_validate, read_exif_gps

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic")


class CaptureState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    CAPTURED = "captured"


def capture_filename(now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"road-alert-{millis}.jpg"


class CaptureSession:
    """Owns the camera stream while streaming and the redacted asset after.

    Every transition out of ``streaming`` releases the stream, including a
    failed capture. `teardown()` can be called any number of times.
    """

    def __init__(
        self,
        camera: Camera,
        *,
        max_bytes: int,
        jpeg_quality: int = 80,
        width: int = 1280,
        height: int = 720,
        detector: Optional[PixelRegionDetector] = None,
        redactor: Optional[PrivacyRedactor] = None,
    ) -> None:
        self.camera = camera
        self.max_bytes = max_bytes
        self.jpeg_quality = jpeg_quality
        self.width = width
        self.height = height
        self.detector = detector or PixelRegionDetector()
        self.redactor = redactor or PrivacyRedactor()
        self.state = CaptureState.IDLE
        self.asset: Optional[ImageAsset] = None
        self.exif_location: Optional[Coordinate] = None
        self._stream: Optional[VideoStream] = None

    @property
    def streaming(self) -> bool:
        return self._stream is not None

    async def start(self) -> None:
        if self._stream is not None:
            return
        try:
            self._stream = await self.camera.open(
                facing="environment", width=self.width, height=self.height
            )
        except CameraError:
            self.state = CaptureState.IDLE
            raise
        self.state = CaptureState.STREAMING
        logger.info("Capture session streaming")

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()

    def capture(self) -> ImageAsset:
        """Grab one frame, release the camera, redact and encode it.

        Raises:
            RuntimeError: If no stream is active.
            CameraError: If the frame could not be read.
            ImageTooLargeError: If the encoded frame exceeds `max_bytes`.
        """

        if self._stream is None:
            raise RuntimeError("capture() requires an active stream")
        try:
            frame = self._stream.read_frame()
        finally:
            self._release()
            self.state = CaptureState.IDLE

        surface = Surface.from_array(frame)
        return self._finish(surface, exif_location=None)

    def attach_file(self, raw_bytes: bytes, content_type: Optional[str]) -> ImageAsset:
        """Use a picked file instead of the camera.

        The file is decoded with its EXIF orientation applied and re-encoded
        after redaction, so none of its original metadata is kept. A GPS
        position found in the EXIF block is exposed as `exif_location`.

        Raises:
            ValueError: ``invalid_size`` or ``invalid_image`` as in
                `read_and_validate`, or ``unsupported_type`` for non-image
                content types.
            ImageTooLargeError: If the re-encoded image exceeds `max_bytes`.
        """

        if content_type and not content_type.lower().startswith("image/"):
            raise ValueError("unsupported_type")
        self._release()

        pil, _ct, _size = read_and_validate(
            raw_bytes=raw_bytes,
            max_bytes=self.max_bytes,
            allowed_content_types=ALLOWED_CONTENT_TYPES,
            content_type=content_type,
        )
        location = read_exif_gps(raw_bytes)
        if location is not None:
            logger.info("Photo carries EXIF position %s", location)

        return self._finish(Surface.from_image(pil), exif_location=location)

    def _finish(self, surface: Surface, *, exif_location: Optional[Coordinate]) -> ImageAsset:
        summary: RedactionSummary = self.redactor.redact(surface, self.detector.detect(surface))

        try:
            data, quality = encode_bounded_jpeg(
                surface.to_image(), quality=self.jpeg_quality, max_bytes=self.max_bytes
            )
        except ImageTooLargeError:
            self.asset = None
            self.exif_location = None
            self.state = CaptureState.IDLE
            raise

        self.asset = ImageAsset(
            data=data,
            content_type="image/jpeg",
            filename=capture_filename(),
            width=surface.width,
            height=surface.height,
            faces_redacted=summary.faces,
            plates_redacted=summary.plates,
        )
        self.exif_location = exif_location
        self.state = CaptureState.CAPTURED
        logger.info(
            "Captured %dx%d image, %d bytes at quality %d",
            surface.width,
            surface.height,
            len(data),
            quality,
        )
        return self.asset

    async def retake(self) -> None:
        self.asset = None
        self.exif_location = None
        self._release()
        self.state = CaptureState.IDLE
        await self.start()

    def teardown(self) -> None:
        self._release()
        if self.state is CaptureState.STREAMING:
            self.state = CaptureState.IDLE

