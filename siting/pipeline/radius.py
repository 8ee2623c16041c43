"""Radius selection around a centre point and CSV export of the selection."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from pyproj import Geod
from shapely.geometry import Point, Polygon
from shapely.prepared import prep

from siting.common.errors import ConfigError
from siting.common.fs import ensure_dir, write_csv
from siting.common.models import PointRecord

CIRCLE_STEPS = 64

_GEOD = Geod(ellps="WGS84")


def radius_polygon(center: tuple[float, float], radius_m: float, steps: int = CIRCLE_STEPS) -> Polygon:
    """Approximate a geodesic circle of ``radius_m`` metres as a ``steps``-sided polygon."""
    if radius_m <= 0:
        raise ConfigError(f"Radius must be positive, got {radius_m}")
    if steps < 3:
        raise ConfigError("A radius polygon needs at least 3 steps")
    lng, lat = center
    azimuths = [index * 360.0 / steps for index in range(steps)]
    lngs, lats, _back = _GEOD.fwd([lng] * steps, [lat] * steps, azimuths, [radius_m] * steps)
    return Polygon(list(zip(lngs, lats)))


def select_within_radius(
    records: Iterable[PointRecord],
    center: tuple[float, float],
    radius_m: float,
    steps: int = CIRCLE_STEPS,
) -> list[PointRecord]:
    area = prep(radius_polygon(center, radius_m, steps))
    return [record for record in records if area.covers(Point(record.coordinate))]


def selection_table(records: list[PointRecord]) -> tuple[list[str], list[dict]]:
    keys: set[str] = set()
    for record in records:
        keys.update(record.to_feature()["properties"])
        keys.update(("longitude", "latitude"))
    headers = sorted(keys)

    rows = []
    for record in records:
        row = {key: "" if value is None else value for key, value in record.to_feature()["properties"].items()}
        row["longitude"] = record.coordinate[0]
        row["latitude"] = record.coordinate[1]
        rows.append(row)
    return headers, rows


def export_selection_csv(records: list[PointRecord], path: Path) -> Path:
    """Write every selected record with all values quoted; no records gives an empty file."""
    if not records:
        ensure_dir(path.parent)
        path.write_text("", encoding="utf-8")
        return path
    headers, rows = selection_table(records)
    write_csv(path, headers, rows, quoting=csv.QUOTE_ALL)
    return path
