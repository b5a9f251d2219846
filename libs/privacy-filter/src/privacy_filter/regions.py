"""Detected privacy regions and overlap handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional

RegionKind = Literal["face", "plate"]


@dataclass(frozen=True)
class PixelRegion:
    """Axis-aligned rectangle flagged as a face or a license plate.

    Attributes:
        x: Left edge in pixels.
        y: Top edge in pixels.
        width: Width in pixels (> 0).
        height: Height in pixels (> 0).
        confidence: Detector confidence in [0.0, 1.0].
        kind: "face" or "plate".
    """

    x: int
    y: int
    width: int
    height: int
    confidence: float
    kind: RegionKind

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"region must have positive size, got {self.width}x{self.height}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def intersection_area(self, other: "PixelRegion") -> int:
        w = min(self.right, other.right) - max(self.x, other.x)
        h = min(self.bottom, other.bottom) - max(self.y, other.y)
        if w <= 0 or h <= 0:
            return 0
        return w * h

    def overlap_ratio(self, other: "PixelRegion") -> float:
        """Intersection as a fraction of the smaller region's area."""
        return self.intersection_area(other) / float(min(self.area, other.area))

    def clamp(self, width: int, height: int) -> Optional["PixelRegion"]:
        """Return the part of the region inside a width x height image, or None."""
        x1 = max(0, self.x)
        y1 = max(0, self.y)
        x2 = min(int(width), self.right)
        y2 = min(int(height), self.bottom)
        if x2 <= x1 or y2 <= y1:
            return None
        return PixelRegion(x1, y1, x2 - x1, y2 - y1, self.confidence, self.kind)


def region_from_box(
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    *,
    confidence: float,
    kind: RegionKind,
    image_width: int,
    image_height: int,
) -> Optional[PixelRegion]:
    """Build a region from float corners, clamped to the image."""

    left = max(0, int(round(x1)))
    top = max(0, int(round(y1)))
    right = min(int(image_width), int(round(x2)))
    bottom = min(int(image_height), int(round(y2)))
    if right <= left or bottom <= top:
        return None
    return PixelRegion(left, top, right - left, bottom - top, min(1.0, max(0.0, confidence)), kind)


def deduplicate_regions(regions: Iterable[PixelRegion], max_overlap: float = 0.4) -> list[PixelRegion]:
    """Greedy suppression of overlapping regions.

    Candidates are visited by confidence, then area, descending. A candidate
    overlapping a kept region by more than `max_overlap` of the smaller area
    replaces it only if its confidence is strictly higher; otherwise it is
    dropped.
    """

    ordered = sorted(regions, key=lambda r: (r.confidence, r.area), reverse=True)
    kept: list[PixelRegion] = []
    for region in ordered:
        clash = next((i for i, other in enumerate(kept) if region.overlap_ratio(other) > max_overlap), None)
        if clash is None:
            kept.append(region)
        elif region.confidence > kept[clash].confidence:
            kept[clash] = region
    return kept
