"""Reverse geocoding helpers built on geopy's Nominatim client."""

from .geocoder import (
    BARANGAY_FIELDS,
    CITY_FIELDS,
    PROVINCE_FIELDS,
    GeocodingClient,
    bundle_from_raw,
    format_address,
)
from .types import Coordinate, CoordinateSource, RawAddressBundle

__all__ = [
    "BARANGAY_FIELDS",
    "CITY_FIELDS",
    "PROVINCE_FIELDS",
    "Coordinate",
    "CoordinateSource",
    "GeocodingClient",
    "RawAddressBundle",
    "bundle_from_raw",
    "format_address",
]
