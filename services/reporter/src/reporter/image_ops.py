"""Image validation, encoding and EXIF utilities."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Iterable

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from geocoder import Coordinate

logger = logging.getLogger(__name__)

QUALITY_STEP = 15
QUALITY_FLOOR = 40


class ImageTooLargeError(Exception):
    """Encoded image exceeds the upload ceiling even at the lowest quality."""

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        super().__init__(
            f"File is too large. Please select a smaller image (max {max_bytes // (1024 * 1024)}MB)."
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


def read_and_validate(
    *,
    raw_bytes: bytes,
    max_bytes: int,
    allowed_content_types: Iterable[str],
    content_type: str | None,
) -> tuple[Image.Image, str, int]:
    """Validate an image file and return the decoded PIL image.

    The content type header is advisory: anything outside
    `allowed_content_types` is still decoded, so a mislabelled image is
    accepted while a non-image fails with ``invalid_image``.

    Args:
        raw_bytes: Raw file bytes as provided by the client.
        max_bytes: Maximum allowed size in bytes.
        allowed_content_types: Allowed MIME types.
        content_type: Reported MIME type (may be None).

    Raises:
        ValueError: ``invalid_size`` for empty or oversized payloads,
            ``invalid_image`` when the bytes are not a decodable image.

    Returns:
        (pil_image, detected_content_type, size_bytes)
    """

    size = len(raw_bytes)
    if size == 0 or size > max_bytes:
        raise ValueError("invalid_size")

    ct = (content_type or "").lower()
    if ct not in {c.lower() for c in allowed_content_types}:
        logger.debug("Unlisted content type %r, decoding anyway", ct)

    try:
        with Image.open(BytesIO(raw_bytes)) as img:
            img.load()
            fmt = img.format
            # Apply EXIF orientation and convert to RGB for consistency
            pil = ImageOps.exif_transpose(img).convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("invalid_image") from exc

    # Prefer actual decoded type over header when possible
    detected_ct = Image.MIME.get(fmt or "", ct or "application/octet-stream")
    return pil, detected_ct, size


def to_jpeg_bytes(img: Image.Image, *, quality: int = 80) -> BytesIO:
    """Encode PIL image into JPEG bytes with given quality.

    No EXIF block is written, so location and device metadata of the source
    never reach the output.

    Args:
        img: PIL image (converted to RGB when needed).
        quality: JPEG quality (1-100).

    Returns:
        BytesIO with JPEG payload positioned at 0.
    """

    if img.mode != "RGB":
        img = img.convert("RGB")
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=int(quality), optimize=True)
    buf.seek(0)
    return buf


def encode_bounded_jpeg(img: Image.Image, *, quality: int, max_bytes: int) -> tuple[bytes, int]:
    """Encode as JPEG, lowering quality until the payload fits `max_bytes`.

    Quality steps down by `QUALITY_STEP` and never goes below `QUALITY_FLOOR`.

    Raises:
        ImageTooLargeError: If even the floor quality is too large.

    Returns:
        (jpeg_bytes, quality_used)
    """

    q = int(quality)
    while True:
        data = to_jpeg_bytes(img, quality=q).getvalue()
        if len(data) <= max_bytes:
            return data, q
        if q <= QUALITY_FLOOR:
            logger.warning("JPEG still %d bytes at quality %d (limit %d)", len(data), q, max_bytes)
            raise ImageTooLargeError(len(data), max_bytes)
        q = max(QUALITY_FLOOR, q - QUALITY_STEP)


def _rational(value: object) -> float:
    if isinstance(value, tuple) and len(value) == 2:
        num, den = value
        return float(num) / float(den)
    return float(value)  # IFDRational and plain numbers


def _to_degrees(value: object) -> float | None:
    try:
        if isinstance(value, (list, tuple)) and len(value) == 3:
            d, m, s = (_rational(v) for v in value)
            return d + m / 60.0 + s / 3600.0
        return _rational(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _ref(value: object) -> str:
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    return str(value or "").strip().upper()


def extract_gps(img: Image.Image) -> Coordinate | None:
    """Read the EXIF GPS position of `img` as a Coordinate.

    Must be called on the image as opened, before any transpose or
    conversion strips its metadata.

    Returns:
        Coordinate with source ``image_exif``, or None when the image has no
        usable GPS block.
    """

    gps = img.getexif().get_ifd(ExifTags.IFD.GPSInfo)
    if not gps:
        return None

    lat = _to_degrees(gps.get(ExifTags.GPS.GPSLatitude))
    lon = _to_degrees(gps.get(ExifTags.GPS.GPSLongitude))
    if lat is None or lon is None:
        return None
    if _ref(gps.get(ExifTags.GPS.GPSLatitudeRef)) == "S":
        lat = -lat
    if _ref(gps.get(ExifTags.GPS.GPSLongitudeRef)) == "W":
        lon = -lon

    try:
        return Coordinate(latitude=lat, longitude=lon, source="image_exif")
    except ValueError:
        logger.warning("Ignoring out-of-range EXIF position %.6f, %.6f", lat, lon)
        return None


def read_exif_gps(raw_bytes: bytes) -> Coordinate | None:
    """Like `extract_gps` but straight from file bytes; None if undecodable."""

    try:
        with Image.open(BytesIO(raw_bytes)) as img:
            return extract_gps(img)
    except (UnidentifiedImageError, OSError):
        return None
