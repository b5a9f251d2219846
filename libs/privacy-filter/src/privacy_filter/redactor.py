"""In-place redaction of detected regions on a Surface."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from .detector import PixelRegionDetector
from .regions import PixelRegion
from .surface import Surface

logger = logging.getLogger(__name__)

Color = tuple[int, int, int, int]


@dataclass(frozen=True)
class RedactionSummary:
    faces: int = 0
    plates: int = 0
    regions: tuple[PixelRegion, ...] = field(default=(), repr=False)

    @property
    def total(self) -> int:
        return self.faces + self.plates


class PrivacyRedactor:
    """Blurs faces and covers plates.

    Plates are covered with an opaque rounded box, not blurred. Pixels
    outside the supplied regions are never modified.
    """

    def __init__(
        self,
        face_blur_radius: float = 20,
        plate_fill: Color = (24, 24, 24, 255),
        plate_border: Color = (255, 255, 255, 255),
        border_width: int = 2,
        corner_radius: int = 6,
        label: str = "Hidden",
        min_label_size: tuple[int, int] = (60, 20),
    ) -> None:
        self.face_blur_radius = face_blur_radius
        self.plate_fill = plate_fill
        self.plate_border = plate_border
        self.border_width = border_width
        self.corner_radius = corner_radius
        self.label = label
        self.min_label_size = min_label_size

    def redact(self, surface: Surface, regions: Iterable[PixelRegion]) -> RedactionSummary:
        faces = plates = 0
        applied: list[PixelRegion] = []
        for region in regions:
            clamped = region.clamp(surface.width, surface.height)
            if clamped is None:
                continue
            if clamped.kind == "face":
                self.blur_region(surface, clamped)
                faces += 1
            else:
                self.cover_region(surface, clamped)
                plates += 1
            applied.append(clamped)
        if applied:
            logger.info("Redacted %d face(s) and %d plate(s)", faces, plates)
        return RedactionSummary(faces=faces, plates=plates, regions=tuple(applied))

    @staticmethod
    def _patch(surface: Surface, region: PixelRegion) -> Image.Image:
        view = surface.pixels[region.y : region.bottom, region.x : region.right]
        return Image.fromarray(np.ascontiguousarray(view))

    @staticmethod
    def _paste(surface: Surface, region: PixelRegion, patch: Image.Image) -> None:
        surface.pixels[region.y : region.bottom, region.x : region.right] = np.asarray(
            patch.convert("RGBA"), dtype=np.uint8
        )

    def blur_region(self, surface: Surface, region: PixelRegion) -> None:
        patch = self._patch(surface, region)
        blurred = patch.filter(ImageFilter.GaussianBlur(radius=self.face_blur_radius))
        self._paste(surface, region, blurred)

    def cover_region(self, surface: Surface, region: PixelRegion) -> None:
        patch = self._patch(surface, region)
        draw = ImageDraw.Draw(patch)
        w, h = region.width, region.height
        radius = max(0, min(self.corner_radius, min(w, h) // 2))
        draw.rounded_rectangle(
            (0, 0, w - 1, h - 1),
            radius=radius,
            fill=self.plate_fill,
            outline=self.plate_border,
            width=self.border_width,
        )

        min_w, min_h = self.min_label_size
        if self.label and w >= min_w and h >= min_h:
            font = ImageFont.load_default()
            left, top, right, bottom = draw.textbbox((0, 0), self.label, font=font)
            tw, th = right - left, bottom - top
            if tw < w - 2 * self.border_width and th < h - 2 * self.border_width:
                draw.text(
                    ((w - tw) / 2 - left, (h - th) / 2 - top),
                    self.label,
                    fill=self.plate_border,
                    font=font,
                )
        self._paste(surface, region, patch)


def protect(
    surface: Surface,
    detector: Optional[PixelRegionDetector] = None,
    redactor: Optional[PrivacyRedactor] = None,
) -> RedactionSummary:
    """Detect and redact faces and plates on `surface` in place."""

    regions = (detector or PixelRegionDetector()).detect(surface)
    return (redactor or PrivacyRedactor()).redact(surface, regions)
