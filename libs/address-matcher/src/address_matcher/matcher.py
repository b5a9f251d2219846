from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from geocoder import RawAddressBundle

from address_matcher.normalize import normalize_barangay, normalize_city, slugify
from address_matcher.taxonomy import AddressTaxonomy, default_taxonomy

logger = logging.getLogger(__name__)

PROVINCE_ALIASES: dict[str, str] = {
    "negros occidental": "negros-occidental",
    "negros oriental": "negros-oriental",
}


def partial_match(slugs: Sequence[str], keys: Iterable[str]) -> str:
    """Return the key found as a whole hyphen-delimited run in a slug.

    "city-of-kabankalan" contains "kabankalan"; "bagonbon" does not contain
    "bago". Slugs are tried in order and the first one with a hit decides;
    within it the longest key wins. Returns "" when nothing matches.
    """
    keys = tuple(keys)
    for slug in slugs:
        if not slug:
            continue
        padded = f"-{slug}-"
        best = ""
        for key in keys:
            if f"-{key}-" in padded and len(key) > len(best):
                best = key
        if best:
            return best
    return ""


@dataclass(frozen=True)
class RegionHint:
    """Keeps a province pre-selected when the geocoder is vague about the city.

    When city matching fails and the raw province label contains `keyword`,
    the province code falls back to `province_code` so the form can ask the
    user for city and barangay instead of starting blank. Hints are tied to a
    deployment's geography and do not carry over to other regions.
    """

    name: str
    keyword: str
    province_code: str

    def applies_to(self, province_label: str) -> bool:
        return bool(self.keyword) and self.keyword.casefold() in province_label.casefold()


NEGROS_HINT = RegionHint(name="negros", keyword="negros", province_code="negros-occidental")


@dataclass(frozen=True)
class NormalizedAddress:
    province: str = ""
    city: str = ""
    barangay: str = ""
    province_label: str = ""
    city_label: str = ""
    barangay_label: str = ""
    fallback_hint: Optional[str] = None

    @property
    def matched_levels(self) -> int:
        return sum(1 for code in (self.province, self.city, self.barangay) if code)

    @property
    def is_empty(self) -> bool:
        return self.matched_levels == 0

    def display_label(self) -> str:
        return ", ".join(
            part for part in (self.barangay_label, self.city_label, self.province_label) if part
        )


class AddressMatcher:
    """Resolves geocoder candidates to taxonomy codes, one level at a time.

    A level that does not match leaves its code empty but keeps the raw label
    for display; it never raises. Deeper levels are only attempted under a
    resolved parent, so returned codes always form a valid chain.
    """

    def __init__(
        self,
        taxonomy: Optional[AddressTaxonomy] = None,
        *,
        province_aliases: Optional[Mapping[str, str]] = None,
        fallback_hints: Sequence[RegionHint] = (),
    ) -> None:
        self.taxonomy = taxonomy or default_taxonomy()
        aliases: dict[str, str] = {}
        for key, label in self.taxonomy.provinces.items():
            aliases[key] = key
            aliases[label.casefold()] = key
        aliases.update({k.casefold(): v for k, v in (province_aliases or PROVINCE_ALIASES).items()})
        self.province_aliases = aliases
        self.fallback_hints = tuple(fallback_hints)

    def resolve_province(self, candidates: Iterable[str]) -> str:
        raws = list(candidates)
        for raw in raws:
            value = self.province_aliases.get(raw.strip().casefold(), raw)
            if self.taxonomy.has_province(value):
                return value
        return partial_match([slugify(raw) for raw in raws], self.taxonomy.province_keys())

    def resolve_city(self, province: str, candidates: Iterable[str]) -> str:
        if not province:
            return ""
        slugs = [normalize_city(raw) for raw in candidates]
        for slug in slugs:
            if slug and self.taxonomy.has_city(province, slug):
                return slug
        return partial_match(slugs, self.taxonomy.city_keys(province))

    def resolve_barangay(self, city: str, candidates: Iterable[str]) -> str:
        if not city:
            return ""
        slugs = [normalize_barangay(raw) for raw in candidates]
        for slug in slugs:
            if slug and self.taxonomy.has_barangay(city, slug):
                return slug
        found = partial_match(slugs, self.taxonomy.barangay_keys(city))
        if not found:
            logger.debug("No barangay candidate %s under %s", slugs, city)
        return found

    def match(self, bundle: RawAddressBundle) -> NormalizedAddress:
        province = self.resolve_province(bundle.province_candidates)
        city = self.resolve_city(province, bundle.city_candidates)
        barangay = self.resolve_barangay(city, bundle.barangay_candidates)

        hint_name: Optional[str] = None
        if not city:
            for hint in self.fallback_hints:
                if hint.applies_to(bundle.province_label) and self.taxonomy.has_province(
                    province or hint.province_code
                ):
                    province = province or hint.province_code
                    hint_name = hint.name
                    break

        result = NormalizedAddress(
            province=province,
            city=city,
            barangay=barangay,
            province_label=bundle.province_label,
            city_label=bundle.city_label,
            barangay_label=bundle.barangay_label,
            fallback_hint=hint_name,
        )
        logger.debug(
            "Matched address province=%s city=%s barangay=%s hint=%s",
            province or "-",
            city or "-",
            barangay or "-",
            hint_name,
        )
        return result
