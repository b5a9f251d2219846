"""Value types shared by the geocoder and its consumers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CoordinateSource = Literal["gps", "image_exif", "manual"]


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point tagged with where it came from.

    Attributes:
        latitude: Latitude in decimal degrees, [-90, 90].
        longitude: Longitude in decimal degrees, [-180, 180].
        accuracy_m: Reported horizontal accuracy in meters, if known.
        source: Producer of the fix: device GPS, photo EXIF or manual entry.
    """

    latitude: float
    longitude: float
    accuracy_m: float | None = None
    source: CoordinateSource = "gps"

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if self.accuracy_m is not None and self.accuracy_m < 0:
            raise ValueError(f"accuracy must be >= 0: {self.accuracy_m}")
        if self.source not in ("gps", "image_exif", "manual"):
            raise ValueError(f"unknown coordinate source: {self.source}")

    def as_query(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def __str__(self) -> str:
        return f"{self.latitude}, {self.longitude}"


@dataclass(frozen=True)
class RawAddressBundle:
    """Unvalidated address fields extracted from a reverse geocoder response.

    Candidate order is significant: the first entry of each list is the
    primary guess and is used as the display label when nothing matches.
    """

    province_candidates: tuple[str, ...] = ()
    city_candidates: tuple[str, ...] = ()
    barangay_candidates: tuple[str, ...] = ()
    full_address: str = ""
    error: str | None = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def province_label(self) -> str:
        return self.province_candidates[0] if self.province_candidates else ""

    @property
    def city_label(self) -> str:
        return self.city_candidates[0] if self.city_candidates else ""

    @property
    def barangay_label(self) -> str:
        return self.barangay_candidates[0] if self.barangay_candidates else ""

    @property
    def ok(self) -> bool:
        return self.error is None
