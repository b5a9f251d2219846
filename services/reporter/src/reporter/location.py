"""GPS acquisition with a fast fallback tier, followed by address matching."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from address_matcher import NEGROS_HINT, AddressMatcher, NormalizedAddress
from geocoder import Coordinate, GeocodingClient, RawAddressBundle

from reporter.devices import GeolocationError, GeolocationErrorCode, Position, PositionProvider
from reporter.draft import ReportDraft

logger = logging.getLogger(__name__)

MESSAGES: dict[str, str] = {
    GeolocationErrorCode.PERMISSION_DENIED.value: "Location access denied. Please enable location permissions.",
    GeolocationErrorCode.POSITION_UNAVAILABLE.value: "Location unavailable. Please ensure GPS is enabled.",
    GeolocationErrorCode.TIMEOUT.value: "Location detection timeout. You may select your location manually.",
    "unsupported": "Geolocation not supported on this device",
    "degraded": "GPS location obtained. Please manually select your address.",
}


def success_message(address: NormalizedAddress) -> str:
    filled = [
        name
        for name, code in (
            ("Province", address.province),
            ("City", address.city),
            ("Barangay", address.barangay),
        )
        if code
    ]
    return f"Location detected! Auto-filled: {', '.join(filled)}"


def unmatched_message(address: NormalizedAddress, region_keyword: str = "negros") -> str:
    detected = ", ".join(
        part for part in (address.province_label, address.city_label, address.barangay_label) if part
    )
    if region_keyword in detected.casefold():
        hint = "Please select the exact match from dropdowns."
    else:
        hint = "You are outside the covered region. Please manually select your address."
    return f"Location detected: {detected}. {hint}"


class LocationState(str, Enum):
    IDLE = "idle"
    ACQUIRING_PRECISE = "acquiring_precise"
    ACQUIRING_FAST = "acquiring_fast"
    GEOCODING = "geocoding"
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class LocationResult:
    """Outcome of one acquisition.

    Args:
        location: Device coordinate, None when no position was obtained.
        address: Matched codes; empty when degraded or failed.
        message: User-facing status line.
        reason: Failure code (``permission_denied``, ``timeout``, ...) or
            the geocoder error on a degraded result.
        full_address: Geocoder display string, or "lat, lon" when it failed.
    """

    state: LocationState
    location: Optional[Coordinate] = None
    address: NormalizedAddress = NormalizedAddress()
    message: str = ""
    reason: Optional[str] = None
    full_address: str = ""


Listener = Callable[[LocationState, Optional[LocationResult]], None]


class LocationAcquirer:
    """Runs one position request chain per `acquire()` call.

    A precise request is tried first. Only a timeout falls back to a single
    low-accuracy request; a permission or availability error fails at once.
    After `teardown()` nothing is delivered: no listener calls, no state
    changes, and `acquire()` returns None.
    """

    def __init__(
        self,
        provider: Optional[PositionProvider],
        geocoder: GeocodingClient,
        matcher: Optional[AddressMatcher] = None,
        *,
        precise_timeout_s: float = 30.0,
        fast_timeout_s: float = 10.0,
    ) -> None:
        self.provider = provider
        self.geocoder = geocoder
        self.matcher = matcher or AddressMatcher(fallback_hints=(NEGROS_HINT,))
        self.precise_timeout_s = precise_timeout_s
        self.fast_timeout_s = fast_timeout_s
        self.state = LocationState.IDLE
        self.last_result: Optional[LocationResult] = None
        self._listeners: list[Listener] = []
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register `callback` for every transition; returns an unsubscribe function."""

        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def teardown(self) -> None:
        self._alive = False
        self._listeners.clear()

    def _transition(self, state: LocationState, result: Optional[LocationResult] = None) -> None:
        if not self._alive:
            return
        logger.info("Location state %s -> %s", self.state.value, state.value)
        self.state = state
        if result is not None:
            self.last_result = result
        for listener in list(self._listeners):
            listener(state, result)

    def _finish(self, result: LocationResult) -> Optional[LocationResult]:
        if not self._alive:
            logger.debug("Dropping %s result after teardown", result.state.value)
            return None
        self._transition(result.state, result)
        return result

    async def _request(self, *, high_accuracy: bool, timeout_s: float) -> Position:
        if self.provider is None:
            raise RuntimeError("no position provider configured")
        return await self.provider.get_position(
            high_accuracy=high_accuracy, timeout_s=timeout_s, maximum_age_s=0
        )

    async def acquire(self) -> Optional[LocationResult]:
        if not self._alive:
            return None
        if self.provider is None:
            return self._finish(self._failure("unsupported"))

        self._transition(LocationState.ACQUIRING_PRECISE)
        try:
            position = await self._request(high_accuracy=True, timeout_s=self.precise_timeout_s)
        except GeolocationError as exc:
            if exc.code is not GeolocationErrorCode.TIMEOUT:
                return self._finish(self._failure(exc.code.value))
            if not self._alive:
                return None
            logger.warning("Precise position timed out after %.0fs, retrying fast", self.precise_timeout_s)
            self._transition(LocationState.ACQUIRING_FAST)
            try:
                position = await self._request(high_accuracy=False, timeout_s=self.fast_timeout_s)
            except GeolocationError as fast_exc:
                return self._finish(self._failure(fast_exc.code.value))

        if not self._alive:
            return None
        try:
            coordinate = Coordinate(
                latitude=position.latitude,
                longitude=position.longitude,
                accuracy_m=position.accuracy_m,
                source="gps",
            )
        except ValueError as exc:
            logger.warning("Discarding invalid position %s: %s", position, exc)
            return self._finish(self._failure(GeolocationErrorCode.POSITION_UNAVAILABLE.value))
        return await self.resolve(coordinate)

    async def resolve(self, coordinate: Coordinate) -> Optional[LocationResult]:
        """Geocode and match an already known coordinate (GPS or photo EXIF)."""

        if not self._alive:
            return None
        self._transition(LocationState.GEOCODING)
        bundle: RawAddressBundle = await asyncio.to_thread(self.geocoder.reverse_geocode, coordinate)
        if not self._alive:
            return None

        if not bundle.ok:
            logger.warning("Address lookup degraded: %s", bundle.error)
            return self._finish(self._degraded(coordinate, bundle, bundle.error))

        address = self.matcher.match(bundle)
        if address.is_empty:
            logger.warning("No address level matched for %s", coordinate)
            return self._finish(self._degraded(coordinate, bundle, "no_match", address))

        return self._finish(
            LocationResult(
                state=LocationState.SUCCEEDED,
                location=coordinate,
                address=address,
                message=success_message(address),
                full_address=bundle.full_address,
            )
        )

    @staticmethod
    def _failure(reason: str) -> LocationResult:
        return LocationResult(
            state=LocationState.FAILED,
            message=MESSAGES.get(reason, MESSAGES[GeolocationErrorCode.POSITION_UNAVAILABLE.value]),
            reason=reason,
        )

    @staticmethod
    def _degraded(
        coordinate: Coordinate,
        bundle: RawAddressBundle,
        reason: Optional[str],
        address: Optional[NormalizedAddress] = None,
    ) -> LocationResult:
        # Labels stay for display; codes are left empty.
        labels = address or NormalizedAddress(
            province_label=bundle.province_label,
            city_label=bundle.city_label,
            barangay_label=bundle.barangay_label,
        )
        return LocationResult(
            state=LocationState.DEGRADED,
            location=coordinate,
            address=NormalizedAddress(
                province_label=labels.province_label,
                city_label=labels.city_label,
                barangay_label=labels.barangay_label,
            ),
            message=MESSAGES["degraded"] if address is None else unmatched_message(labels),
            reason=reason,
            full_address=bundle.full_address,
        )


def apply_to(draft: ReportDraft, result: LocationResult) -> ReportDraft:
    """Copy a result's coordinate, codes and address string into `draft`.

    Codes are only written when non-empty, so a degraded result keeps any
    selection the user already made.
    """

    if result.location is None:
        return draft
    draft.location = result.location
    draft.location_address = result.full_address or str(result.location)
    address = result.address
    if address.province:
        draft.select_province(address.province)
    if address.city:
        draft.select_city(address.city)
    if address.barangay:
        draft.barangay = address.barangay
    return draft
