from dataclasses import replace
from io import BytesIO
from types import SimpleNamespace

import numpy as np
import pytest
from PIL import Image

from geocoder import Coordinate, RawAddressBundle
from reporter.devices import CameraError, GeolocationError, GeolocationErrorCode, Position
from reporter.settings import Settings

BASE_SETTINGS = Settings(
    api_base_url="http://reports.test/api",
    api_token="secret-token",
    upload_timeout_s=15.0,
    upload_retries=0,
    geocoder_user_agent="test-agent/1.0",
    geocoder_domain="nominatim.test",
    geocoder_timeout_s=5.0,
    geocoder_language="en",
    gps_precise_timeout_s=30.0,
    gps_fast_timeout_s=10.0,
    max_upload_mb=5,
    jpeg_quality=80,
    capture_width=1280,
    capture_height=720,
    camera_index=0,
    description_min_chars=3,
    description_max_chars=500,
    face_blur_radius=20.0,
    log_level="DEBUG",
)


class FakePositionProvider:
    """Replays scripted outcomes, one per get_position call."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def get_position(self, *, high_accuracy, timeout_s, maximum_age_s):
        self.calls.append({"high_accuracy": high_accuracy, "timeout_s": timeout_s, "maximum_age_s": maximum_age_s})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeGeocoder:
    def __init__(self, bundle: RawAddressBundle):
        self.bundle = bundle
        self.calls = []

    def reverse_geocode(self, coordinate: Coordinate) -> RawAddressBundle:
        self.calls.append(coordinate)
        if self.bundle.error is not None:
            return RawAddressBundle(full_address=str(coordinate), error=self.bundle.error)
        return self.bundle


class FakeStream:
    def __init__(self, frame: np.ndarray):
        self.frame = frame
        self.stopped = False
        self.reads = 0

    def read_frame(self) -> np.ndarray:
        if self.stopped:
            raise CameraError("unavailable", "stream stopped")
        self.reads += 1
        return self.frame

    def stop(self) -> None:
        self.stopped = True


class FakeCamera:
    def __init__(self, frame: np.ndarray | None = None, error: CameraError | None = None):
        self.frame = frame if frame is not None else np.full((120, 160, 4), 100, dtype=np.uint8)
        self.error = error
        self.streams: list[FakeStream] = []
        self.requests = []

    async def open(self, *, facing, width, height):
        self.requests.append((facing, width, height))
        if self.error is not None:
            raise self.error
        stream = FakeStream(self.frame)
        self.streams.append(stream)
        return stream


KABANKALAN_BUNDLE = RawAddressBundle(
    province_candidates=("Negros Occidental",),
    city_candidates=("Kabankalan City",),
    barangay_candidates=("Tagoc",),
    full_address="Tagoc, Kabankalan, Negros Occidental, Philippines",
)

KABANKALAN_POSITION = Position(latitude=9.9906, longitude=122.8114, accuracy_m=12.0)


def jpeg_bytes(width: int = 64, height: int = 48, color=(100, 100, 100), exif=None) -> bytes:
    buf = BytesIO()
    img = Image.new("RGB", (width, height), color)
    if exif is not None:
        img.save(buf, format="JPEG", exif=exif)
    else:
        img.save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def settings() -> Settings:
    return BASE_SETTINGS


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        return replace(BASE_SETTINGS, **overrides)

    return _make


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Device, geocoder and payload fakes shared by the reporter tests."""

    return SimpleNamespace(
        PositionProvider=FakePositionProvider,
        Geocoder=FakeGeocoder,
        Camera=FakeCamera,
        GeolocationError=GeolocationError,
        codes=GeolocationErrorCode,
        kabankalan_bundle=KABANKALAN_BUNDLE,
        kabankalan_position=KABANKALAN_POSITION,
        jpeg_bytes=jpeg_bytes,
    )
