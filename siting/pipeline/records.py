"""Row parsing into typed point records."""

from __future__ import annotations

import math
import re
from typing import Any, Mapping

from siting.common.models import PointRecord, PropertyValue
from siting.pipeline.profiles import LAT_LNG, DatasetProfile

COORDINATE_MISSING = "COORDINATE_MISSING"
COORDINATE_INVALID = "COORDINATE_INVALID"
COORDINATE_OUT_OF_RANGE = "COORDINATE_OUT_OF_RANGE"
TYPE_FILTERED = "TYPE_FILTERED"

REJECT_CODES = (COORDINATE_MISSING, COORDINATE_INVALID, COORDINATE_OUT_OF_RANGE, TYPE_FILTERED)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _safe_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of a raw cell, so ``"12.7"`` gives 12."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT_RE.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _extract_coordinate(row: Mapping[str, Any], profile: DatasetProfile) -> tuple[tuple[float, float] | None, str | None]:
    raw_lng = row.get(profile.lng_column)
    raw_lat = row.get(profile.lat_column)
    if _is_blank(raw_lng) or _is_blank(raw_lat):
        return None, COORDINATE_MISSING

    lng = _safe_float(raw_lng)
    lat = _safe_float(raw_lat)
    if lng is None or lat is None:
        return None, COORDINATE_INVALID

    coordinate = (lat, lng) if profile.coordinate_order == LAT_LNG else (lng, lat)
    # range applies to the emitted [lng, lat] pair, whatever the source columns hold
    if not (-180 <= coordinate[0] <= 180 and -90 <= coordinate[1] <= 90):
        return None, COORDINATE_OUT_OF_RANGE
    return coordinate, None


def _map_properties(row: Mapping[str, Any], profile: DatasetProfile) -> dict[str, PropertyValue]:
    if profile.keep_columns is not None:
        columns = list(profile.keep_columns)
    else:
        columns = [key for key in row if isinstance(key, str)]

    skipped = set(profile.coordinate_columns) if profile.drop_coordinate_columns else set()
    properties: dict[str, PropertyValue] = {}
    for column in columns:
        if column in skipped:
            continue
        value = row.get(column)
        if value is None:
            continue
        properties[profile.renames.get(column, column)] = value

    for column, fallback in profile.int_columns.items():
        name = profile.renames.get(column, column)
        parsed = parse_int(row.get(column))
        if parsed is None:
            parsed = fallback
        if parsed is None:
            properties.pop(name, None)
        else:
            properties[name] = parsed

    return properties


def evaluate_row(row: Mapping[str, Any], profile: DatasetProfile) -> tuple[PointRecord | None, str | None]:
    """Return the parsed record, or ``None`` with the reject code explaining why."""
    coordinate, reason = _extract_coordinate(row, profile)
    if coordinate is None:
        return None, reason

    if profile.allowed_types is not None and row.get(profile.type_column or "") not in profile.allowed_types:
        return None, TYPE_FILTERED

    return (
        PointRecord(
            coordinate=coordinate,
            point_type=profile.point_type,
            properties=_map_properties(row, profile),
        ),
        None,
    )


def parse_row(row: Mapping[str, Any], profile: DatasetProfile) -> PointRecord | None:
    record, _reason = evaluate_row(row, profile)
    return record
