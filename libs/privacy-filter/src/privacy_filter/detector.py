"""Heuristic face and license-plate detection over RGBA pixel buffers.

Both passes classify pixels with colour and brightness rules, aggregate the
classes over fixed, non-overlapping blocks and expand qualifying blocks into
candidate regions. This is best-effort redaction support, not a trained
detector: misses and false alarms are expected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from .regions import PixelRegion, deduplicate_regions, region_from_box
from .surface import Surface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorConfig:
    """Tunable thresholds for both detection passes.

    The numeric values are empirical; callers may override any of them.
    """

    # face pass
    face_block: int = 12
    face_zone: float = 0.7
    eye_ratio: float = 0.15
    hair_ratio: float = 0.20
    skin_ratio: float = 0.25
    mouth_ratio: float = 0.08
    nose_ratio: float = 0.10
    min_face_features: int = 2
    flat_block_std: float = 4.0
    nose_contrast: float = 30.0
    face_expansion_min: float = 2.5
    face_expansion_max: float = 4.3
    face_aspect: float = 1.3
    hair_extension: float = 0.25
    min_face_size: int = 30

    # plate pass
    plate_block: int = 24
    plate_dark_brightness: float = 80.0
    plate_edge_delta: float = 60.0
    plate_weights: tuple[float, float, float] = (0.4, 0.3, 0.3)
    plate_score: float = 0.3
    plate_min_background: float = 0.3
    plate_min_dark: float = 0.05
    plate_min_width: int = 40
    plate_min_height: int = 12
    plate_min_aspect: float = 2.0

    # shared
    max_overlap: float = 0.4


def _channels(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    px = rgb.astype(np.int16)
    r, g, b = px[..., 0], px[..., 1], px[..., 2]
    brightness = (r + g + b) / 3.0
    return r, g, b, brightness


def _spread(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.maximum(np.maximum(r, g), b) - np.minimum(np.minimum(r, g), b)


def skin_mask(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    warm = (r > 95) & (g > 40) & (b > 20) & (r > g) & (r > b) & (np.abs(r - g) > 15) & (r - b > 15)
    fair = (r > 220) & (g > 210) & (b > 170) & (np.abs(r - g) <= 15) & (r > b) & (g > b)
    return warm | fair


def eye_mask(r: np.ndarray, g: np.ndarray, b: np.ndarray, brightness: np.ndarray) -> np.ndarray:
    very_dark = brightness < 50
    brow = (brightness >= 50) & (brightness < 90) & (r >= g) & (g >= b)
    sclera = (brightness > 200) & (brightness < 250) & (_spread(r, g, b) < 20)
    return very_dark | brow | sclera


def hair_mask(r: np.ndarray, g: np.ndarray, b: np.ndarray, brightness: np.ndarray) -> np.ndarray:
    black = brightness < 40
    brown = (brightness >= 40) & (brightness < 110) & (r > g) & (g > b) & (r - b > 15)
    blonde = (r > 180) & (g > 150) & (b < 140) & (r >= g) & (g > b) & (r - b > 50)
    red = (r > 120) & (r * 10 > g * 14) & (r * 10 > b * 15) & (brightness < 150)
    gray = (_spread(r, g, b) < 12) & (brightness >= 110) & (brightness < 190)
    return black | brown | blonde | red | gray


def mouth_mask(r: np.ndarray, g: np.ndarray, b: np.ndarray, brightness: np.ndarray) -> np.ndarray:
    lip = (r > 120) & (r - g > 30) & (r - b > 20) & (g < 130)
    dark_lip = (r > 60) & (r < 120) & (r - g > 15) & (r - b > 10) & (brightness < 90)
    return lip | dark_lip


def plate_background_mask(r: np.ndarray, g: np.ndarray, b: np.ndarray, brightness: np.ndarray) -> np.ndarray:
    white = (brightness > 200) & (np.abs(r - g) < 30) & (np.abs(g - b) < 30)
    yellow = (r > 180) & (g > 150) & (b < 100)
    blue = (b > 150) & (r < 120) & (g < 150)
    return white | yellow | blue


def edge_mask(rgb: np.ndarray, delta: float) -> np.ndarray:
    gray = rgb[..., 0] * 0.299 + rgb[..., 1] * 0.587 + rgb[..., 2] * 0.114
    edges = np.zeros(gray.shape, dtype=bool)
    edges[:, :-1] |= np.abs(np.diff(gray, axis=1)) > delta
    edges[:-1, :] |= np.abs(np.diff(gray, axis=0)) > delta
    return edges


def _blocks(values: np.ndarray, block: int) -> np.ndarray:
    """Reshape an (H, W) array cropped to whole blocks into (by, block, bx, block)."""
    rows = values.shape[0] // block
    cols = values.shape[1] // block
    cropped = values[: rows * block, : cols * block]
    return cropped.reshape(rows, block, cols, block)


def _block_ratio(mask: np.ndarray, block: int) -> np.ndarray:
    return _blocks(mask.astype(np.float32), block).mean(axis=(1, 3))


class PixelRegionDetector:
    """Finds likely faces and license plates in a Surface."""

    def __init__(self, config: DetectorConfig | None = None) -> None:
        self.config = config or DetectorConfig()

    def detect(self, surface: Surface) -> list[PixelRegion]:
        faces = self.detect_faces(surface)
        plates = self.detect_plates(surface)
        logger.debug("Detected %d face and %d plate region(s)", len(faces), len(plates))
        return faces + plates

    def detect_faces(self, surface: Surface) -> list[PixelRegion]:
        cfg = self.config
        block = cfg.face_block
        zone_height = int(surface.height * cfg.face_zone)
        if zone_height < block or surface.width < block:
            return []

        rgb = surface.rgb[:zone_height]
        r, g, b, brightness = _channels(rgb)
        skin = skin_mask(r, g, b)

        bright_blocks = _blocks(brightness, block)
        block_mean = bright_blocks.mean(axis=(1, 3))
        block_std = bright_blocks.std(axis=(1, 3))
        contrast = np.abs(bright_blocks - block_mean[:, None, :, None]) > cfg.nose_contrast
        nose = (_blocks(skin, block) & contrast).mean(axis=(1, 3))

        present = np.stack(
            [
                _block_ratio(eye_mask(r, g, b, brightness), block) > cfg.eye_ratio,
                _block_ratio(hair_mask(r, g, b, brightness), block) > cfg.hair_ratio,
                _block_ratio(skin, block) > cfg.skin_ratio,
                _block_ratio(mouth_mask(r, g, b, brightness), block) > cfg.mouth_ratio,
                nose > cfg.nose_ratio,
            ]
        )
        counts = present.sum(axis=0)
        seeds = (counts >= cfg.min_face_features) & (block_std >= cfg.flat_block_std)

        candidates: list[PixelRegion] = []
        for by, bx in zip(*np.nonzero(seeds)):
            confidence = float(counts[by, bx]) / present.shape[0]
            has_hair = bool(present[1, by, bx])
            region = self._expand_face(surface, int(bx), int(by), confidence, has_hair)
            if region is not None:
                candidates.append(region)
        return deduplicate_regions(candidates, cfg.max_overlap)

    def _expand_face(
        self, surface: Surface, bx: int, by: int, confidence: float, has_hair: bool
    ) -> PixelRegion | None:
        cfg = self.config
        block = cfg.face_block
        factor = cfg.face_expansion_min + (cfg.face_expansion_max - cfg.face_expansion_min) * confidence
        width = block * factor
        height = width * cfg.face_aspect
        cx = bx * block + block / 2.0
        cy = by * block + block / 2.0
        top = cy - height / 2.0
        if has_hair:
            # cover the scalp above the seed
            top -= height * cfg.hair_extension
        region = region_from_box(
            cx - width / 2.0,
            top,
            cx + width / 2.0,
            cy + height / 2.0,
            confidence=confidence,
            kind="face",
            image_width=surface.width,
            image_height=surface.height,
        )
        if region is None or region.width < cfg.min_face_size or region.height < cfg.min_face_size:
            return None
        return region

    def detect_plates(self, surface: Surface) -> list[PixelRegion]:
        cfg = self.config
        block = cfg.plate_block
        if surface.height < block or surface.width < block:
            return []

        rgb = surface.rgb
        r, g, b, brightness = _channels(rgb)
        background = plate_background_mask(r, g, b, brightness)
        dark = (brightness < cfg.plate_dark_brightness) & ~background
        edges = edge_mask(rgb.astype(np.float32), cfg.plate_edge_delta)

        bg_ratio = _block_ratio(background, block)
        dark_ratio = _block_ratio(dark, block)
        edge_ratio = _block_ratio(edges, block)
        w_bg, w_dark, w_edge = cfg.plate_weights
        score = w_bg * bg_ratio + w_dark * dark_ratio + w_edge * edge_ratio
        qualifying = (
            (score > cfg.plate_score)
            & (bg_ratio >= cfg.plate_min_background)
            & (dark_ratio >= cfg.plate_min_dark)
        )

        candidates: list[PixelRegion] = []
        for by, bx in zip(*np.nonzero(qualifying)):
            region = self._expand_plate(surface, int(bx), int(by), float(score[by, bx]))
            if region is not None:
                candidates.append(region)
        return deduplicate_regions(candidates, cfg.max_overlap)

    def _expand_plate(self, surface: Surface, bx: int, by: int, score: float) -> PixelRegion | None:
        cfg = self.config
        block = cfg.plate_block
        width = block * (2.5 + 2.0 * score)
        cx = bx * block + block / 2.0
        top = by * block
        region = region_from_box(
            cx - width / 2.0,
            top,
            cx + width / 2.0,
            top + block,
            confidence=score,
            kind="plate",
            image_width=surface.width,
            image_height=surface.height,
        )
        if region is None:
            return None
        if region.width < cfg.plate_min_width or region.height < cfg.plate_min_height:
            return None
        if region.width <= region.height * cfg.plate_min_aspect:
            return None
        return region
