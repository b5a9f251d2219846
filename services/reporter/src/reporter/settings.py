"""Reporter settings loaded from environment variables.

Provides a cached accessor for configuration relevant to location lookup,
photo capture and report upload.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Immutable application settings.

    Attributes:
        api_base_url: Base URL of the report API (e.g., http://localhost:5000/api).
        api_token: Bearer token for the report API (optional).
        upload_timeout_s: Timeout in seconds for the report upload.
        upload_retries: Extra attempts after a timeout or connection failure.
        geocoder_user_agent: Identifying User-Agent sent to the geocoder.
        geocoder_domain: Nominatim host name.
        geocoder_timeout_s: Timeout in seconds for one reverse geocoding call.
        geocoder_language: Preferred language for address labels.
        gps_precise_timeout_s: Timeout for the high-accuracy position request.
        gps_fast_timeout_s: Timeout for the low-accuracy retry.
        max_upload_mb: Maximum encoded image size in megabytes.
        jpeg_quality: Initial JPEG quality for captured images (1-100).
        capture_width: Ideal camera frame width.
        capture_height: Ideal camera frame height.
        camera_index: OpenCV device index of the rear camera.
        description_min_chars: Minimum length of a non-empty description.
        description_max_chars: Maximum length of a description.
        face_blur_radius: Gaussian blur radius for face regions.
        log_level: Root logging level name.
    """

    api_base_url: str
    api_token: str | None
    upload_timeout_s: float
    upload_retries: int
    geocoder_user_agent: str
    geocoder_domain: str
    geocoder_timeout_s: float
    geocoder_language: str
    gps_precise_timeout_s: float
    gps_fast_timeout_s: float
    max_upload_mb: int
    jpeg_quality: int
    capture_width: int
    capture_height: int
    camera_index: int
    description_min_chars: int
    description_max_chars: int
    face_blur_radius: float
    log_level: str

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


def _get_env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer for {name}: {value}") from exc


def _get_env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid number for {name}: {value}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment, validate, and cache the result.

    Raises:
        RuntimeError: If variables are invalid.

    Returns:
        Settings: Frozen settings instance.
    """

    user_agent = os.environ.get("GEOCODER_USER_AGENT", "BantayDalan/1.0 (Road Alert App)")
    if not user_agent.strip():
        raise RuntimeError("GEOCODER_USER_AGENT must not be empty")

    jpeg_quality = _get_env_int("JPEG_QUALITY", 80)
    if not 1 <= jpeg_quality <= 100:
        raise RuntimeError(f"JPEG_QUALITY must be within 1..100, got {jpeg_quality}")

    return Settings(
        api_base_url=os.environ.get("REPORT_API_URL", "http://localhost:5000/api"),
        api_token=os.environ.get("REPORT_API_TOKEN"),
        upload_timeout_s=_get_env_float("UPLOAD_TIMEOUT_S", 15.0),
        upload_retries=_get_env_int("UPLOAD_RETRIES", 0),
        geocoder_user_agent=user_agent,
        geocoder_domain=os.environ.get("GEOCODER_DOMAIN", "nominatim.openstreetmap.org"),
        geocoder_timeout_s=_get_env_float("GEOCODER_TIMEOUT_S", 5.0),
        geocoder_language=os.environ.get("GEOCODER_LANGUAGE", "en"),
        gps_precise_timeout_s=_get_env_float("GPS_PRECISE_TIMEOUT_S", 30.0),
        gps_fast_timeout_s=_get_env_float("GPS_FAST_TIMEOUT_S", 10.0),
        max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 5),
        jpeg_quality=jpeg_quality,
        capture_width=_get_env_int("CAPTURE_WIDTH", 1280),
        capture_height=_get_env_int("CAPTURE_HEIGHT", 720),
        camera_index=_get_env_int("CAMERA_INDEX", 0),
        description_min_chars=_get_env_int("DESCRIPTION_MIN_CHARS", 3),
        description_max_chars=_get_env_int("DESCRIPTION_MAX_CHARS", 500),
        face_blur_radius=_get_env_float("FACE_BLUR_RADIUS", 20.0),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
