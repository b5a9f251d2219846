"""Mutable report draft owned by one form composition session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from geocoder import Coordinate


class HazardType(str, Enum):
    EMERGENCY = "emergency"
    CAUTION = "caution"
    CONSTRUCTION = "construction"
    INFO = "info"
    SAFE = "safe"
    POTHOLE = "pothole"
    DEBRIS = "debris"
    FLOODING = "flooding"
    ACCIDENT = "accident"
    OTHER = "other"


HAZARD_LABELS: dict[HazardType, str] = {
    HazardType.EMERGENCY: "Emergency Alert",
    HazardType.CAUTION: "Caution Alert",
    HazardType.CONSTRUCTION: "Construction",
    HazardType.INFO: "Information",
    HazardType.SAFE: "Safe Message",
    HazardType.POTHOLE: "Pothole",
    HazardType.DEBRIS: "Road Debris",
    HazardType.FLOODING: "Flooding",
    HazardType.ACCIDENT: "Accident",
    HazardType.OTHER: "Other",
}


@dataclass(frozen=True)
class ImageAsset:
    """Encoded, redacted photo ready for upload."""

    data: bytes = field(repr=False)
    content_type: str
    filename: str
    width: int
    height: int
    faces_redacted: int = 0
    plates_redacted: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class ReportDraft:
    type: str = ""
    province: str = ""
    city: str = ""
    barangay: str = ""
    description: str = ""
    image: Optional[ImageAsset] = None
    location: Optional[Coordinate] = None
    location_address: str = ""

    def select_province(self, province: str) -> None:
        self.province = province
        self.city = ""
        self.barangay = ""

    def select_city(self, city: str) -> None:
        self.city = city
        self.barangay = ""

    def reset(self) -> None:
        self.type = ""
        self.province = self.city = self.barangay = ""
        self.description = ""
        self.image = None
        self.location = None
        self.location_address = ""
