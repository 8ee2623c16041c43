"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Union

PropertyValue = Union[str, int, float]

POINT_TYPES = ("competitor", "commercial", "traffic", "population")


@dataclass(frozen=True)
class PointRecord:
    """One geocoded row; ``coordinate`` is the pair exactly as emitted to GeoJSON."""

    coordinate: tuple[float, float]
    point_type: str
    properties: dict[str, PropertyValue] = field(default_factory=dict)

    def to_feature(self) -> dict[str, Any]:
        properties = dict(self.properties)
        properties["pointType"] = self.point_type
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [self.coordinate[0], self.coordinate[1]]},
            "properties": properties,
        }


@dataclass(frozen=True)
class FeatureCollection:
    features: tuple[PointRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[PointRecord]:
        return iter(self.features)

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [record.to_feature() for record in self.features],
        }
