"""FastAPI application setup and endpoints.

Exposes health, `/redact`, `/address` and `/hazard-types` endpoints used by
the report form.
"""

import logging
import time
from functools import lru_cache

from fastapi import Depends, FastAPI, File, HTTPException, Query, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
)

from address_matcher import NEGROS_HINT, AddressMatcher
from geocoder import Coordinate, GeocodingClient
from privacy_filter import PixelRegionDetector, PrivacyRedactor, Surface, protect

from reporter import __version__
from reporter.capture import ALLOWED_CONTENT_TYPES
from reporter.draft import HAZARD_LABELS, HazardType
from reporter.factories import build_geocoder
from reporter.image_ops import read_and_validate, to_jpeg_bytes
from reporter.schemas import (
    AddressCodes,
    AddressLabels,
    AddressResponse,
    HazardTypeOut,
    RedactionHeaders,
)
from reporter.settings import get_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Road Hazard Reporter", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

process_start_time = time.monotonic()


@lru_cache(maxsize=1)
def get_geocoder() -> GeocodingClient:
    return build_geocoder(get_settings())


@lru_cache(maxsize=1)
def get_matcher() -> AddressMatcher:
    return AddressMatcher(fallback_hints=(NEGROS_HINT,))


@app.get("/health", include_in_schema=False)
def health(response: Response) -> dict[str, str | float]:
    """Return service liveness with version and uptime in seconds."""
    response.headers["Cache-Control"] = "no-store"
    return {
        "status": "ok",
        "version": __version__,
        "uptime": time.monotonic() - process_start_time,
    }


@app.get("/hazard-types", tags=["reports"], response_model=list[HazardTypeOut])
def hazard_types() -> list[HazardTypeOut]:
    return [HazardTypeOut(value=t.value, label=HAZARD_LABELS[t]) for t in HazardType]


@app.get("/address", tags=["location"], summary="Reverse geocode and match", response_model=AddressResponse)
async def address(
    lat: float = Query(..., ge=-90.0, le=90.0, description="Latitude in decimal degrees"),
    lon: float = Query(..., ge=-180.0, le=180.0, description="Longitude in decimal degrees"),
    geocoder: GeocodingClient = Depends(get_geocoder),
    matcher: AddressMatcher = Depends(get_matcher),
) -> AddressResponse:
    """Resolve a coordinate to taxonomy codes for the report form.

    A geocoder failure is not an HTTP error: the response comes back with
    status ``degraded``, empty codes and the coordinate as `full_address`.
    """

    coordinate = Coordinate(latitude=lat, longitude=lon, source="manual")
    bundle = await run_in_threadpool(geocoder.reverse_geocode, coordinate)
    matched = matcher.match(bundle)

    if not bundle.ok or matched.is_empty:
        codes = AddressCodes()
        status = "degraded"
    else:
        codes = AddressCodes(province=matched.province, city=matched.city, barangay=matched.barangay)
        status = "matched"

    return AddressResponse(
        codes=codes,
        labels=AddressLabels(
            province=bundle.province_label,
            city=bundle.city_label,
            barangay=bundle.barangay_label,
        ),
        full_address=bundle.full_address,
        barangay_candidates=list(bundle.barangay_candidates),
        status=status,
        error=bundle.error,
    )


@app.post("/redact", tags=["privacy"], summary="Blur faces and cover plates in an image")
async def redact(
    file: UploadFile = File(..., description="Photo to redact (JPEG/PNG)"),
) -> Response:
    """Return the redacted photo as JPEG with redaction counts in headers.

    Args:
        file: Uploaded image file.

    Returns:
        JPEG response; `X-Faces-Redacted` and `X-Plates-Redacted` carry counts.
    """

    settings = get_settings()

    try:
        raw = await file.read()
    except Exception as exc:  # pragma: no cover
        raise HTTPException(HTTP_400_BAD_REQUEST, detail="failed_to_read_file") from exc

    max_bytes = settings.max_upload_bytes
    if len(raw) > max_bytes:
        raise HTTPException(HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="file_too_large")

    try:
        pil_img, _detected_ct, _size = read_and_validate(
            raw_bytes=raw,
            max_bytes=max_bytes,
            allowed_content_types=ALLOWED_CONTENT_TYPES,
            content_type=file.content_type,
        )
    except ValueError as e:
        if str(e) == "invalid_size":
            raise HTTPException(HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="file_too_large") from e
        raise HTTPException(HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail="invalid_image") from e

    surface = Surface.from_image(pil_img)
    redactor = PrivacyRedactor(face_blur_radius=settings.face_blur_radius)
    summary = await run_in_threadpool(protect, surface, PixelRegionDetector(), redactor)
    logger.info("Redacted upload %s: %d face(s), %d plate(s)", file.filename, summary.faces, summary.plates)

    jpeg_buf = to_jpeg_bytes(surface.to_image(), quality=settings.jpeg_quality)
    headers = RedactionHeaders(faces=summary.faces, plates=summary.plates).as_headers()
    headers["Cache-Control"] = "no-store"
    return Response(content=jpeg_buf.getvalue(), media_type="image/jpeg", headers=headers)
