"""
On-device privacy filter.

Detects faces and license plates in a captured frame with pixel heuristics and
redacts them before the image leaves the device.
"""

from .detector import DetectorConfig, PixelRegionDetector
from .redactor import PrivacyRedactor, RedactionSummary, protect
from .regions import PixelRegion, RegionKind, deduplicate_regions
from .surface import Surface

__all__ = [
    "DetectorConfig",
    "PixelRegion",
    "PixelRegionDetector",
    "PrivacyRedactor",
    "RedactionSummary",
    "RegionKind",
    "Surface",
    "deduplicate_regions",
    "protect",
]
