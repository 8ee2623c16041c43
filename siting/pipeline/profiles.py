"""Per-dataset field mapping rules.

Each upstream CSV export gets one declarative ``DatasetProfile``. Column names
are fixed by the data providers and must not be changed here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from siting.common.errors import ConfigError

LNG_LAT = "lng_lat"
LAT_LNG = "lat_lng"

STORAGE_TYPES = frozenset({"Storage", "Self storage facility", "Storage facility"})


def _frozen(mapping: dict | None = None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class DatasetProfile:
    name: str
    point_type: str
    lng_column: str
    lat_column: str
    coordinate_order: str = LNG_LAT
    type_column: str | None = None
    allowed_types: frozenset[str] | None = None
    renames: Mapping[str, str] = field(default_factory=_frozen)
    # None keeps every column.
    keep_columns: tuple[str, ...] | None = None
    drop_coordinate_columns: bool = True
    # Integer columns and their fallback; a None fallback omits the property.
    int_columns: Mapping[str, int | None] = field(default_factory=_frozen)

    @property
    def coordinate_columns(self) -> tuple[str, str]:
        return self.lng_column, self.lat_column


COMPETITOR = DatasetProfile(
    name="competitor",
    point_type="competitor",
    lng_column="longitude",
    lat_column="latitude",
    type_column="type",
    allowed_types=STORAGE_TYPES,
    renames=_frozen({"full_address": "address"}),
)

# Listings are emitted as [latitude, longitude]. Rendered commercial positions
# depend on this order, so it is kept as-is.
COMMERCIAL = DatasetProfile(
    name="commercial",
    point_type="commercial",
    lng_column="longitude",
    lat_column="latitude",
    coordinate_order=LAT_LNG,
    drop_coordinate_columns=False,
)

TRAFFIC = DatasetProfile(
    name="traffic",
    point_type="traffic",
    lng_column="longitude",
    lat_column="latitude",
    keep_columns=("year", "all_motor_vehicles"),
    # year has no fallback while counts default to zero; preserved until the data owners confirm.
    int_columns=_frozen({"year": None, "all_motor_vehicles": 0}),
)

POPULATION = DatasetProfile(
    name="population",
    point_type="population",
    lng_column="Longitude",
    lat_column="Latitude",
    int_columns=_frozen({"BUA_Population": 0}),
)

PROFILES: Mapping[str, DatasetProfile] = _frozen(
    {profile.name: profile for profile in (COMPETITOR, COMMERCIAL, TRAFFIC, POPULATION)}
)


def get_profile(name: str) -> DatasetProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ConfigError(f"Unknown dataset profile: {name}") from None
