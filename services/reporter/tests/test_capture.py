import asyncio
import re
from io import BytesIO

import numpy as np
import pytest
from PIL import ExifTags, Image
from PIL.TiffImagePlugin import IFDRational

from reporter.capture import CaptureSession, CaptureState
from reporter.devices import CameraError
from reporter.image_ops import ImageTooLargeError

MAX_BYTES = 5 * 1024 * 1024


def _session(camera, max_bytes: int = MAX_BYTES) -> CaptureSession:
    return CaptureSession(camera, max_bytes=max_bytes)


def test_start_requests_rear_camera(fakes) -> None:
    camera = fakes.Camera()
    session = _session(camera)

    asyncio.run(session.start())

    assert session.state is CaptureState.STREAMING
    assert camera.requests == [("environment", 1280, 720)]


def test_capture_releases_stream_before_returning(fakes) -> None:
    camera = fakes.Camera()
    session = _session(camera)
    asyncio.run(session.start())

    asset = session.capture()

    assert camera.streams[0].stopped
    assert not session.streaming
    assert session.state is CaptureState.CAPTURED
    assert asset.content_type == "image/jpeg"
    assert asset.data[:2] == b"\xff\xd8"
    assert (asset.width, asset.height) == (160, 120)
    assert re.fullmatch(r"road-alert-\d+\.jpg", asset.filename)
    assert asset.faces_redacted == 0 and asset.plates_redacted == 0


def test_capture_without_stream_is_an_error(fakes) -> None:
    with pytest.raises(RuntimeError):
        _session(fakes.Camera()).capture()


def test_teardown_releases_stream_and_is_idempotent(fakes) -> None:
    camera = fakes.Camera()
    session = _session(camera)
    asyncio.run(session.start())

    session.teardown()
    session.teardown()

    assert camera.streams[0].stopped
    assert session.state is CaptureState.IDLE


def test_camera_error_leaves_session_idle(fakes) -> None:
    session = _session(fakes.Camera(error=CameraError("permission_denied")))

    with pytest.raises(CameraError) as excinfo:
        asyncio.run(session.start())

    assert excinfo.value.reason == "permission_denied"
    assert session.state is CaptureState.IDLE
    assert not session.streaming


def test_oversized_capture_is_rejected_and_discarded(fakes) -> None:
    noise = np.random.default_rng(7).integers(0, 256, size=(120, 160, 4), dtype=np.uint8)
    camera = fakes.Camera(frame=noise)
    session = _session(camera, max_bytes=500)
    asyncio.run(session.start())

    with pytest.raises(ImageTooLargeError) as excinfo:
        session.capture()

    assert excinfo.value.size_bytes > 500
    assert session.asset is None
    assert session.state is CaptureState.IDLE
    assert camera.streams[0].stopped


def test_retake_discards_asset_and_reopens(fakes) -> None:
    camera = fakes.Camera()
    session = _session(camera)
    asyncio.run(session.start())
    session.capture()

    asyncio.run(session.retake())

    assert session.asset is None
    assert session.state is CaptureState.STREAMING
    assert len(camera.streams) == 2
    assert not camera.streams[1].stopped
    session.teardown()
    assert camera.streams[1].stopped


def test_attach_file_reads_exif_gps_and_strips_metadata(fakes) -> None:
    exif = Image.Exif()
    exif[ExifTags.IFD.GPSInfo] = {
        ExifTags.GPS.GPSLatitudeRef: "N",
        ExifTags.GPS.GPSLatitude: (IFDRational(9), IFDRational(59), IFDRational(2616, 100)),
        ExifTags.GPS.GPSLongitudeRef: "E",
        ExifTags.GPS.GPSLongitude: (IFDRational(122), IFDRational(48), IFDRational(4104, 100)),
    }
    raw = fakes.jpeg_bytes(exif=exif)
    session = _session(fakes.Camera())

    asset = session.attach_file(raw, "image/jpeg")

    location = session.exif_location
    assert location is not None
    assert location.source == "image_exif"
    assert location.latitude == pytest.approx(9.9906, abs=1e-4)
    assert location.longitude == pytest.approx(122.8114, abs=1e-4)
    assert session.state is CaptureState.CAPTURED
    with Image.open(BytesIO(asset.data)) as reloaded:
        assert not reloaded.getexif().get_ifd(ExifTags.IFD.GPSInfo)


def test_attach_file_without_exif(fakes) -> None:
    session = _session(fakes.Camera())
    session.attach_file(fakes.jpeg_bytes(), "image/jpeg")
    assert session.exif_location is None
    assert session.asset is not None


def test_attach_file_rejects_non_images(fakes) -> None:
    session = _session(fakes.Camera())
    with pytest.raises(ValueError, match="unsupported_type"):
        session.attach_file(b"%PDF-1.4", "application/pdf")
    with pytest.raises(ValueError, match="invalid_image"):
        session.attach_file(b"not really a jpeg", "image/jpeg")
    with pytest.raises(ValueError, match="invalid_size"):
        session.attach_file(b"", "image/jpeg")
