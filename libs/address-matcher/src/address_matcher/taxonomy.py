"""Static province → city → barangay lookup tables for the report form.

Keys are the slugs the form dropdowns submit; labels are what users see.
Every key equals the normalized form of its label, so geocoder output that
has been through `address_matcher.normalize` can be looked up directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping

Entry = tuple[str, str]

PROVINCES: tuple[Entry, ...] = (
    ("negros-occidental", "Negros Occidental"),
    ("negros-oriental", "Negros Oriental"),
)

CITIES: dict[str, tuple[Entry, ...]] = {
    "negros-occidental": (
        ("bacolod", "Bacolod City"),
        ("bago", "Bago City"),
        ("cadiz", "Cadiz City"),
        ("escalante", "Escalante City"),
        ("himamaylan", "Himamaylan City"),
        ("kabankalan", "Kabankalan City"),
        ("la-carlota", "La Carlota City"),
        ("sagay", "Sagay City"),
        ("san-carlos", "San Carlos City"),
        ("silay", "Silay City"),
        ("sipalay", "Sipalay City"),
        ("talisay", "Talisay City"),
        ("victorias", "Victorias City"),
        ("binalbagan", "Binalbagan"),
        ("calatrava", "Calatrava"),
        ("candoni", "Candoni"),
        ("cauayan", "Cauayan"),
        ("hinigaran", "Hinigaran"),
        ("hinoba-an", "Hinoba-an"),
        ("ilog", "Ilog"),
        ("isabela", "Isabela"),
        ("la-castellana", "La Castellana"),
        ("manapla", "Manapla"),
        ("moises-padilla", "Moises Padilla"),
        ("murcia", "Murcia"),
        ("pontevedra", "Pontevedra"),
        ("pulupandan", "Pulupandan"),
        ("salvador-benedicto", "Salvador Benedicto"),
        ("san-enrique", "San Enrique"),
        ("toboso", "Toboso"),
        ("valladolid", "Valladolid"),
    ),
    "negros-oriental": (
        ("bais", "Bais City"),
        ("bayawan", "Bayawan City"),
        ("canlaon", "Canlaon City"),
        ("dumaguete", "Dumaguete City"),
        ("guihulngan", "Guihulngan City"),
        ("tanjay", "Tanjay City"),
        ("amlan", "Amlan"),
        ("ayungon", "Ayungon"),
        ("bacong", "Bacong"),
        ("basay", "Basay"),
        ("bindoy", "Bindoy"),
        ("dauin", "Dauin"),
        ("jimalalud", "Jimalalud"),
        ("la-libertad", "La Libertad"),
        ("mabinay", "Mabinay"),
        ("manjuyod", "Manjuyod"),
        ("pamplona", "Pamplona"),
        ("san-jose", "San Jose"),
        ("santa-catalina", "Santa Catalina"),
        ("siaton", "Siaton"),
        ("sibulan", "Sibulan"),
        ("tayasan", "Tayasan"),
        ("valencia", "Valencia"),
        ("vallehermoso", "Vallehermoso"),
        ("zamboanguita", "Zamboanguita"),
    ),
}

BARANGAYS: dict[str, tuple[Entry, ...]] = {
    "kabankalan": (
        ("bantayan", "Bantayan"),
        ("binicuil", "Binicuil"),
        ("camansi", "Camansi"),
        ("camingawan", "Camingawan"),
        ("camugao", "Camugao"),
        ("carol-an", "Carol-an"),
        ("daan-banua", "Daan Banua"),
        ("hilamonan", "Hilamonan"),
        ("inapoy", "Inapoy"),
        ("linao", "Linao"),
        ("locotan", "Locotan"),
        ("magballo", "Magballo"),
        ("oringao", "Oringao"),
        ("orong", "Orong"),
        ("pinaguinpinan", "Pinaguinpinan"),
        ("salong", "Salong"),
        ("tabugon", "Tabugon"),
        ("tagoc", "Tagoc"),
        ("tagukon", "Tagukon"),
        ("talubangi", "Talubangi"),
        ("tampalon", "Tampalon"),
        ("tan-awan", "Tan-awan"),
        ("tapi", "Tapi"),
    ),
    "bacolod": (
        ("alangilan", "Alangilan"),
        ("alijis", "Alijis"),
        ("banago", "Banago"),
        ("bata", "Bata"),
        ("cabug", "Cabug"),
        ("estefania", "Estefania"),
        ("felisa", "Felisa"),
        ("granada", "Granada"),
        ("handumanan", "Handumanan"),
        ("mandalagan", "Mandalagan"),
        ("mansilingan", "Mansilingan"),
        ("montevista", "Montevista"),
        ("pahanocoy", "Pahanocoy"),
        ("punta-taytay", "Punta Taytay"),
        ("singcang-airport", "Singcang-Airport"),
        ("sum-ag", "Sum-ag"),
        ("taculing", "Taculing"),
        ("tangub", "Tangub"),
        ("villamonte", "Villamonte"),
        ("vista-alegre", "Vista Alegre"),
    ),
    "himamaylan": (
        ("aguisan", "Aguisan"),
        ("buenavista", "Buenavista"),
        ("cabadiangan", "Cabadiangan"),
        ("cabanbanan", "Cabanbanan"),
        ("carabalan", "Carabalan"),
        ("caradio-an", "Caradio-an"),
        ("libacao", "Libacao"),
        ("mahalang", "Mahalang"),
        ("mambagaton", "Mambagaton"),
        ("nabali-an", "Nabali-an"),
        ("san-antonio", "San Antonio"),
        ("sara-et", "Sara-et"),
        ("su-ay", "Su-ay"),
        ("talaban", "Talaban"),
        ("to-oy", "To-oy"),
    ),
    "dumaguete": (
        ("bagacay", "Bagacay"),
        ("bajumpandan", "Bajumpandan"),
        ("balugo", "Balugo"),
        ("banilad", "Banilad"),
        ("bantayan", "Bantayan"),
        ("batinguel", "Batinguel"),
        ("bunao", "Bunao"),
        ("cadawinonan", "Cadawinonan"),
        ("calindagan", "Calindagan"),
        ("camanjac", "Camanjac"),
        ("candau-ay", "Candau-ay"),
        ("cantil-e", "Cantil-e"),
        ("daro", "Daro"),
        ("junob", "Junob"),
        ("looc", "Looc"),
        ("mangnao-canal", "Mangnao-Canal"),
        ("motong", "Motong"),
        ("piapi", "Piapi"),
        ("pulantubig", "Pulantubig"),
        ("tabuctubig", "Tabuctubig"),
        ("taclobo", "Taclobo"),
        ("talay", "Talay"),
    ),
    "valencia": (
        ("apolong", "Apolong"),
        ("balabag-east", "Balabag East"),
        ("balabag-west", "Balabag West"),
        ("balayagmanok", "Balayagmanok"),
        ("balili", "Balili"),
        ("bongbong", "Bongbong"),
        ("cambucad", "Cambucad"),
        ("caidiocan", "Caidiocan"),
        ("calayugan", "Calayugan"),
        ("dobdob", "Dobdob"),
        ("jawa", "Jawa"),
        ("liptong", "Liptong"),
        ("lunga", "Lunga"),
        ("malabo", "Malabo"),
        ("malaunay", "Malaunay"),
        ("mampas", "Mampas"),
        ("palinpinon", "Palinpinon"),
        ("poblacion", "Poblacion"),
        ("puhagan", "Puhagan"),
        ("pulangbato", "Pulangbato"),
        ("sagbang", "Sagbang"),
    ),
}


@dataclass(frozen=True)
class AddressTaxonomy:
    """Read-only view over the nested code/label tables."""

    provinces: Mapping[str, str]
    cities: Mapping[str, Mapping[str, str]]
    barangays: Mapping[str, Mapping[str, str]]

    @classmethod
    def from_tables(
        cls,
        provinces: tuple[Entry, ...],
        cities: Mapping[str, tuple[Entry, ...]],
        barangays: Mapping[str, tuple[Entry, ...]],
    ) -> "AddressTaxonomy":
        return cls(
            provinces=dict(provinces),
            cities={p: dict(entries) for p, entries in cities.items()},
            barangays={c: dict(entries) for c, entries in barangays.items()},
        )

    def has_province(self, province: str) -> bool:
        return province in self.provinces

    def has_city(self, province: str, city: str) -> bool:
        return city in self.cities.get(province, {})

    def has_barangay(self, city: str, barangay: str) -> bool:
        return barangay in self.barangays.get(city, {})

    def province_keys(self) -> tuple[str, ...]:
        return tuple(self.provinces)

    def city_keys(self, province: str) -> tuple[str, ...]:
        return tuple(self.cities.get(province, {}))

    def barangay_keys(self, city: str) -> tuple[str, ...]:
        return tuple(self.barangays.get(city, {}))

    def province_label(self, province: str) -> str:
        return self.provinces.get(province, "")

    def city_label(self, province: str, city: str) -> str:
        return self.cities.get(province, {}).get(city, "")

    def barangay_label(self, city: str, barangay: str) -> str:
        return self.barangays.get(city, {}).get(barangay, "")

    def is_consistent(self, province: str = "", city: str = "", barangay: str = "") -> bool:
        """True when every non-empty code is a child of the level above it."""
        if province and not self.has_province(province):
            return False
        if city and not (province and self.has_city(province, city)):
            return False
        if barangay and not (city and self.has_barangay(city, barangay)):
            return False
        return True


@lru_cache(maxsize=1)
def default_taxonomy() -> AddressTaxonomy:
    return AddressTaxonomy.from_tables(PROVINCES, CITIES, BARANGAYS)
