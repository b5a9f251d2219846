import numpy as np
import pytest

from privacy_filter import (
    PixelRegion,
    PixelRegionDetector,
    PrivacyRedactor,
    Surface,
    deduplicate_regions,
    protect,
)


def gray_surface(width: int = 320, height: int = 240, level: int = 100) -> Surface:
    return Surface.blank(width, height, (level, level, level))


def plate_surface() -> Surface:
    """White plate with dark glyph bars, placed below the face search zone."""

    surface = gray_surface()
    surface.pixels[192:240, 96:216, :3] = 255
    cols = np.arange(96, 216)
    glyph_cols = cols[(cols // 6) % 2 == 0]
    surface.pixels[200:232, glyph_cols, :3] = 0
    return surface


def face_surface() -> Surface:
    """Skin-toned patch with dark horizontal stripes (eyes/brows/hair cues)."""

    surface = gray_surface(240, 240)
    surface.pixels[48:120, 84:156, :3] = (210, 150, 120)
    surface.pixels[48:120:3, 84:156, :3] = (20, 20, 20)
    return surface


def _outside_mask(surface: Surface, regions) -> np.ndarray:
    mask = np.ones((surface.height, surface.width), dtype=bool)
    for r in regions:
        mask[r.y : r.bottom, r.x : r.right] = False
    return mask


@pytest.mark.parametrize("level", [0, 100, 128, 200, 255])
def test_uniform_gray_has_no_regions(level: int) -> None:
    assert PixelRegionDetector().detect(gray_surface(level=level)) == []


def test_synthetic_plate_detected() -> None:
    surface = plate_surface()
    detector = PixelRegionDetector()

    plates = detector.detect_plates(surface)

    assert plates
    assert detector.detect_faces(surface) == []
    plate_box = PixelRegion(96, 192, 120, 48, 1.0, "plate")
    for region in plates:
        assert region.kind == "plate"
        assert region.width > 2 * region.height
        assert region.intersection_area(plate_box) > 0


def test_synthetic_face_detected() -> None:
    faces = PixelRegionDetector().detect_faces(face_surface())

    assert faces
    patch = PixelRegion(84, 48, 72, 72, 1.0, "face")
    assert all(f.kind == "face" for f in faces)
    assert any(f.intersection_area(patch) > 0 for f in faces)


def test_redaction_leaves_outside_pixels_unchanged() -> None:
    for surface in (plate_surface(), face_surface()):
        original = surface.copy()
        summary = protect(surface)

        assert summary.total > 0
        outside = _outside_mask(surface, summary.regions)
        assert np.array_equal(surface.pixels[outside], original.pixels[outside])
        assert not np.array_equal(surface.pixels, original.pixels)


def test_plate_cover_is_opaque_fill() -> None:
    surface = gray_surface()
    region = PixelRegion(20, 20, 100, 30, 0.9, "plate")
    PrivacyRedactor(label="").redact(surface, [region])

    inner = surface.pixels[30:40, 40:100, :3]
    assert (inner == 24).all()


def test_regions_are_clamped_to_surface() -> None:
    surface = gray_surface(100, 100)
    summary = PrivacyRedactor().redact(
        surface,
        [PixelRegion(80, 80, 50, 50, 0.5, "face"), PixelRegion(200, 200, 10, 10, 0.5, "plate")],
    )

    assert summary.faces == 1
    assert summary.plates == 0
    (region,) = summary.regions
    assert (region.right, region.bottom) == (100, 100)


def test_dedup_keeps_higher_confidence() -> None:
    low = PixelRegion(10, 10, 100, 40, 0.4, "plate")
    high = PixelRegion(20, 15, 100, 40, 0.9, "plate")
    apart = PixelRegion(200, 200, 50, 20, 0.3, "plate")

    kept = deduplicate_regions([low, apart, high])

    assert high in kept
    assert low not in kept
    assert apart in kept


def test_dedup_keeps_small_overlap() -> None:
    a = PixelRegion(0, 0, 100, 100, 0.5, "face")
    b = PixelRegion(90, 90, 100, 100, 0.6, "face")
    assert len(deduplicate_regions([a, b])) == 2


def test_surface_validation() -> None:
    with pytest.raises(ValueError):
        Surface(np.zeros((10, 10, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        Surface(np.zeros((10, 10, 4), dtype=np.float32))
    rgb = np.full((4, 6, 3), 7, dtype=np.uint8)
    surface = Surface.from_array(rgb)
    assert (surface.width, surface.height) == (6, 4)
    assert (surface.pixels[..., 3] == 255).all()
