"""Match reverse-geocoded addresses against the report form's address taxonomy."""

from .matcher import (
    NEGROS_HINT,
    PROVINCE_ALIASES,
    AddressMatcher,
    NormalizedAddress,
    RegionHint,
    partial_match,
)
from .normalize import normalize_barangay, normalize_city, slugify
from .taxonomy import AddressTaxonomy, default_taxonomy

__all__ = [
    "NEGROS_HINT",
    "PROVINCE_ALIASES",
    "AddressMatcher",
    "AddressTaxonomy",
    "NormalizedAddress",
    "RegionHint",
    "default_taxonomy",
    "normalize_barangay",
    "normalize_city",
    "partial_match",
    "slugify",
]
