"""Axis-aligned bounding-box filtering of point records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from siting.common.models import PointRecord


@dataclass(frozen=True)
class BoundingBox:
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    def contains(self, record: PointRecord) -> bool:
        # Inclusive bounds, no antimeridian wrap: a box with min_lng > max_lng matches nothing.
        lng, lat = record.coordinate
        return self.min_lng <= lng <= self.max_lng and self.min_lat <= lat <= self.max_lat


def filter_records(records: Iterable[PointRecord], bbox: BoundingBox) -> list[PointRecord]:
    return [record for record in records if bbox.contains(record)]
