"""Pydantic schemas for the reporter HTTP surface.

This module contains request/response models used by public API endpoints.
"""

from typing import Literal

from pydantic import BaseModel, Field


class AddressCodes(BaseModel):
    """Taxonomy codes for the report form dropdowns; empty when unmatched."""

    province: str = ""
    city: str = ""
    barangay: str = ""


class AddressLabels(BaseModel):
    """Raw geocoder labels kept for display even when codes are empty."""

    province: str = ""
    city: str = ""
    barangay: str = ""


class AddressResponse(BaseModel):
    """Response body for `/address`.

    Args:
        codes: Matched taxonomy codes.
        labels: Raw labels from the geocoder.
        full_address: Provider display name (or "lat, lon" on failure).
        barangay_candidates: Barangay-level names in the order they were tried.
        status: "matched" when at least one level matched, else "degraded".
        error: Geocoder failure cause, if any.
    """

    codes: AddressCodes
    labels: AddressLabels
    full_address: str
    barangay_candidates: list[str] = Field(default_factory=list)
    status: Literal["matched", "degraded"]
    error: str | None = None


class HazardTypeOut(BaseModel):
    value: str
    label: str


class RedactionHeaders(BaseModel):
    """Counts returned in `/redact` response headers.

    Args:
        faces: Number of face regions blurred.
        plates: Number of plate regions covered.
    """

    faces: int = Field(ge=0)
    plates: int = Field(ge=0)

    def as_headers(self) -> dict[str, str]:
        return {"X-Faces-Redacted": str(self.faces), "X-Plates-Redacted": str(self.plates)}
