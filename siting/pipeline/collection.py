"""Fold parsed rows into ordered feature collections."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from siting.common.http import HttpClient
from siting.common.models import FeatureCollection, PointRecord
from siting.pipeline.profiles import DatasetProfile
from siting.pipeline.records import evaluate_row
from siting.pipeline.sources import Location, read_source_rows


@dataclass
class ParseStats:
    rows_in: int = 0
    rows_out: int = 0
    rejected: Counter = field(default_factory=Counter)

    @property
    def rows_rejected(self) -> int:
        return sum(self.rejected.values())

    def merge(self, other: "ParseStats") -> None:
        self.rows_in += other.rows_in
        self.rows_out += other.rows_out
        self.rejected.update(other.rejected)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "rejected": dict(sorted(self.rejected.items())),
        }


def collect_records(rows: Iterable[Mapping[str, Any]], profile: DatasetProfile) -> tuple[list[PointRecord], ParseStats]:
    records: list[PointRecord] = []
    stats = ParseStats()
    for row in rows:
        stats.rows_in += 1
        record, reason = evaluate_row(row, profile)
        if record is None:
            stats.rejected[reason] += 1
            continue
        records.append(record)
    stats.rows_out = len(records)
    return records, stats


def build_collection(rows: Iterable[Mapping[str, Any]], profile: DatasetProfile) -> tuple[FeatureCollection, ParseStats]:
    records, stats = collect_records(rows, profile)
    return FeatureCollection(features=tuple(records)), stats


def load_collection(
    location: Location,
    profile: DatasetProfile,
    http_client: HttpClient | None = None,
) -> tuple[FeatureCollection, ParseStats]:
    """Read one whole source; ``SourceUnreadable`` propagates with no partial result."""
    _header, rows = read_source_rows(location, http_client)
    return build_collection(rows, profile)
