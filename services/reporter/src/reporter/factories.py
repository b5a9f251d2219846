"""Build the reporter's components from Settings."""

from __future__ import annotations

from typing import Optional

import httpx

from geocoder import GeocodingClient
from privacy_filter import PrivacyRedactor

from reporter.capture import CaptureSession
from reporter.devices import Camera, OpenCVCamera, PositionProvider
from reporter.location import LocationAcquirer
from reporter.settings import Settings
from reporter.submission import ReportSubmission


def build_geocoder(settings: Settings) -> GeocodingClient:
    return GeocodingClient(
        settings.geocoder_user_agent,
        domain=settings.geocoder_domain,
        timeout_s=settings.geocoder_timeout_s,
        language=settings.geocoder_language,
    )


def build_acquirer(
    settings: Settings,
    provider: Optional[PositionProvider],
    *,
    geocoder: Optional[GeocodingClient] = None,
) -> LocationAcquirer:
    """LocationAcquirer using the configured GPS timeouts.

    `provider` may be None on devices without geolocation; acquisition then
    fails with ``unsupported``.
    """
    return LocationAcquirer(
        provider,
        geocoder or build_geocoder(settings),
        precise_timeout_s=settings.gps_precise_timeout_s,
        fast_timeout_s=settings.gps_fast_timeout_s,
    )


def build_camera(settings: Settings) -> OpenCVCamera:
    return OpenCVCamera(index=settings.camera_index)


def build_capture_session(settings: Settings, camera: Optional[Camera] = None) -> CaptureSession:
    """CaptureSession over `camera`, or over the configured OpenCV device."""
    return CaptureSession(
        camera or build_camera(settings),
        max_bytes=settings.max_upload_bytes,
        jpeg_quality=settings.jpeg_quality,
        width=settings.capture_width,
        height=settings.capture_height,
        redactor=PrivacyRedactor(face_blur_radius=settings.face_blur_radius),
    )


def build_submission(settings: Settings, client: Optional[httpx.AsyncClient] = None) -> ReportSubmission:
    return ReportSubmission(settings, client=client)
