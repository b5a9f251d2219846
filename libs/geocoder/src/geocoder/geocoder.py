import logging
from typing import Any, Iterable, Mapping, Optional, Tuple

from geopy import Nominatim
from geopy.exc import GeocoderTimedOut, GeopyError
from geopy.location import Location

from .types import Coordinate, RawAddressBundle

logger = logging.getLogger(__name__)

# Nominatim places province, city and barangay-level names in different
# fields depending on region; each tuple is ordered by preference.
PROVINCE_FIELDS: Tuple[str, ...] = ("state", "province", "county")
CITY_FIELDS: Tuple[str, ...] = ("city", "municipality", "town", "village")
BARANGAY_FIELDS: Tuple[str, ...] = (
    "suburb",
    "neighbourhood",
    "hamlet",
    "quarter",
    "village",
    "city_district",
)


def collect_candidates(address: Mapping[str, Any], fields: Iterable[str]) -> Tuple[str, ...]:
    """Pick the non-empty values of `fields` from a geocoder address object
    Returns them in field order without duplicates
    """

    out: list[str] = []
    for name in fields:
        value = address.get(name)
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value and value not in out:
            out.append(value)
    return tuple(out)


def bundle_from_raw(raw: Optional[Mapping[str, Any]], coordinate: Coordinate) -> RawAddressBundle:
    """Map a Nominatim `/reverse` JSON body onto a RawAddressBundle
    Returns an error bundle when the body carries no address object
    """

    address = raw.get("address") if raw else None
    if not isinstance(address, Mapping) or not address:
        return error_bundle(coordinate, "No address data returned")

    return RawAddressBundle(
        province_candidates=collect_candidates(address, PROVINCE_FIELDS),
        city_candidates=collect_candidates(address, CITY_FIELDS),
        barangay_candidates=collect_candidates(address, BARANGAY_FIELDS),
        full_address=str(raw.get("display_name") or coordinate),
        raw=dict(raw),
    )


def error_bundle(coordinate: Coordinate, cause: str) -> RawAddressBundle:
    return RawAddressBundle(full_address=str(coordinate), error=cause)


def format_address(province: str = "", city: str = "", barangay: str = "") -> str:
    """Join address labels from the most to the least specific level"""

    return ", ".join(part for part in (barangay, city, province) if part)


class GeocodingClient:
    """Reverse geocoder over OpenStreetMap Nominatim.

    Issues exactly one lookup per call and never raises: transport errors,
    timeouts and empty responses come back as a bundle whose `error` is set.
    Retrying is left to the caller.
    """

    def __init__(
        self,
        user_agent: str,
        *,
        domain: str = "nominatim.openstreetmap.org",
        timeout_s: float = 5.0,
        language: str = "en",
        zoom: int = 18,
        nominatim: Optional[Nominatim] = None,
    ):
        if not user_agent or not user_agent.strip():
            raise ValueError("a descriptive user agent is required by the geocoding provider")
        self.timeout_s = timeout_s
        self.language = language
        self.zoom = zoom
        self.g = nominatim or Nominatim(user_agent=user_agent, domain=domain, timeout=timeout_s)

    def reverse_geocode(self, coordinate: Coordinate) -> RawAddressBundle:
        """Look up the address at `coordinate`
        Returns the extracted candidates, or an empty bundle with `error` set
        """

        logger.info("Reverse geocoding %s", coordinate)
        try:
            location: Optional[Location] = self.g.reverse(
                coordinate.as_query(),
                exactly_one=True,
                timeout=self.timeout_s,
                language=self.language,
                addressdetails=True,
                zoom=self.zoom,
            )
        except GeocoderTimedOut:
            logger.warning("Geocoding timed out for %s", coordinate)
            return error_bundle(coordinate, "Geocoding request timed out")
        except GeopyError as exc:
            logger.warning("Geocoding failed for %s: %s", coordinate, exc)
            return error_bundle(coordinate, f"Geocoding failed: {exc}")

        if location is None:
            return error_bundle(coordinate, "No address data returned")

        bundle = bundle_from_raw(location.raw, coordinate)
        logger.debug(
            "Geocoded %s: province=%s city=%s barangay=%s",
            coordinate,
            bundle.province_candidates,
            bundle.city_candidates,
            bundle.barangay_candidates,
        )
        return bundle
