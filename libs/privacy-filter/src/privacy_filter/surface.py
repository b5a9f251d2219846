"""Explicit pixel surface passed through every detector and redactor call."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PIL import Image


@dataclass
class Surface:
    """Owned RGBA buffer with its dimensions.

    Attributes:
        pixels: Array of shape (height, width, 4), dtype=uint8. Redaction
            mutates it in place.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"expected (H, W, 4) RGBA array, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"expected uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def rgb(self) -> np.ndarray:
        """View of the colour channels, shape (H, W, 3)."""
        return self.pixels[..., :3]

    @classmethod
    def blank(cls, width: int, height: int, color: tuple[int, int, int] = (0, 0, 0)) -> "Surface":
        pixels = np.empty((int(height), int(width), 4), dtype=np.uint8)
        pixels[..., :3] = color
        pixels[..., 3] = 255
        return cls(pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Surface":
        """Copy an (H, W), (H, W, 3) or (H, W, 4) uint8 array into a new surface."""

        arr = np.asarray(array, dtype=np.uint8)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"unsupported pixel array shape {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=-1)
        return cls(np.ascontiguousarray(arr).copy())

    @classmethod
    def from_image(cls, img: Image.Image) -> "Surface":
        return cls(np.array(img.convert("RGBA"), dtype=np.uint8))

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def copy(self) -> "Surface":
        return Surface(self.pixels.copy())
