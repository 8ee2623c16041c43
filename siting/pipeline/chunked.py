"""Windowed loading across a dataset split into numbered shards.

Shards are fetched through a small worker pool, filtered by bounding box, and
merged in ascending ordinal order regardless of completion order. A shard that
cannot be read is recorded as failed and the load carries on; the caller gets
the merged collection plus a per-shard result it can inspect.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from siting.common.constants import DEFAULT_MAX_WORKERS
from siting.common.errors import ConfigError, SourceUnreadable
from siting.common.http import HttpClient
from siting.common.logging import get_logger, log_event
from siting.common.models import FeatureCollection, PointRecord
from siting.common.time_utils import elapsed_ms
from siting.pipeline.bbox import BoundingBox, filter_records
from siting.pipeline.collection import ParseStats, collect_records
from siting.pipeline.profiles import DatasetProfile
from siting.pipeline.sources import Location, read_source_rows

SHARD_OK = "ok"
SHARD_FAILED = "failed"
SHARD_CANCELLED = "cancelled"


@dataclass(frozen=True)
class ShardResult:
    ordinal: int
    location: str
    status: str
    records: tuple[PointRecord, ...] = ()
    stats: ParseStats | None = None
    error_code: str | None = None
    error: str | None = None
    duration_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == SHARD_OK


@dataclass(frozen=True)
class ChunkedLoadResult:
    collection: FeatureCollection
    shards: tuple[ShardResult, ...]

    def _ordinals(self, status: str) -> list[int]:
        return [shard.ordinal for shard in self.shards if shard.status == status]

    @property
    def loaded_ordinals(self) -> list[int]:
        return self._ordinals(SHARD_OK)

    @property
    def failed_ordinals(self) -> list[int]:
        return self._ordinals(SHARD_FAILED)

    @property
    def cancelled_ordinals(self) -> list[int]:
        return self._ordinals(SHARD_CANCELLED)

    @property
    def stats(self) -> ParseStats:
        total = ParseStats()
        for shard in self.shards:
            if shard.stats is not None:
                total.merge(shard.stats)
        return total

    def summary(self) -> dict[str, Any]:
        return {
            "features": len(self.collection),
            "loaded_shards": self.loaded_ordinals,
            "failed_shards": {
                shard.ordinal: shard.error_code for shard in self.shards if shard.status == SHARD_FAILED
            },
            "cancelled_shards": self.cancelled_ordinals,
            "parse": self.stats.to_dict(),
        }


def shard_locations(shards_config: Mapping[str, Any], data_dir: Path) -> dict[int, Location]:
    """Map ordinals ``1..count`` to the file or URL holding each shard."""
    template = shards_config["template"]
    count = int(shards_config["count"])
    base_url = shards_config.get("base_url")

    locations: dict[int, Location] = {}
    for ordinal in range(1, count + 1):
        name = template.format(ordinal=ordinal)
        if base_url:
            locations[ordinal] = f"{base_url.rstrip('/')}/{name}"
        else:
            locations[ordinal] = data_dir / shards_config["directory"] / name
    return locations


def _load_shard(
    ordinal: int,
    location: Location,
    profile: DatasetProfile,
    bbox: BoundingBox | None,
    http_client: HttpClient | None,
) -> ShardResult:
    started = time.monotonic()
    try:
        _header, rows = read_source_rows(location, http_client)
    except SourceUnreadable as exc:
        return ShardResult(
            ordinal=ordinal,
            location=str(location),
            status=SHARD_FAILED,
            error_code=exc.error_code,
            error=str(exc),
            duration_ms=elapsed_ms(started),
        )
    except Exception as exc:
        return ShardResult(
            ordinal=ordinal,
            location=str(location),
            status=SHARD_FAILED,
            error_code="UNEXPECTED_ERROR",
            error=repr(exc),
            duration_ms=elapsed_ms(started),
        )

    records, stats = collect_records(rows, profile)
    if bbox is not None:
        records = filter_records(records, bbox)
    return ShardResult(
        ordinal=ordinal,
        location=str(location),
        status=SHARD_OK,
        records=tuple(records),
        stats=stats,
        duration_ms=elapsed_ms(started),
    )


def _log_shard(logger: logging.Logger, result: ShardResult, profile: DatasetProfile, run_id: str | None) -> None:
    if result.ok:
        log_event(
            logger,
            f"shard {result.ordinal} loaded",
            run_id=run_id,
            stage="load",
            dataset=profile.name,
            source=result.location,
            shard=result.ordinal,
            event="SHARD_OK",
            status="ok",
            duration_ms=result.duration_ms,
            rows_in=result.stats.rows_in if result.stats else None,
            rows_out=len(result.records),
        )
    else:
        log_event(
            logger,
            f"shard {result.ordinal} skipped: {result.error}",
            level=logging.WARNING,
            run_id=run_id,
            stage="load",
            dataset=profile.name,
            source=result.location,
            shard=result.ordinal,
            event="SHARD_FAIL",
            status="error",
            duration_ms=result.duration_ms,
            error_code=result.error_code,
        )


def load_chunks(
    profile: DatasetProfile,
    locations: Mapping[int, Location],
    bbox: BoundingBox | None = None,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    http_client: HttpClient | None = None,
    cancel_event: threading.Event | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> ChunkedLoadResult:
    if max_workers < 1:
        raise ConfigError("max_workers must be at least 1")
    logger = get_logger(logger)
    ordinals = sorted(locations)
    results: dict[int, ShardResult] = {}

    def _collect(future: Future, ordinal: int) -> None:
        result = future.result()
        results[ordinal] = result
        _log_shard(logger, result, profile, run_id)

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{profile.name}-shard") as pool:
        in_flight: dict[Future, int] = {}
        for ordinal in ordinals:
            while len(in_flight) >= max_workers:
                done, _pending = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    _collect(future, in_flight.pop(future))
            if cancel_event is not None and cancel_event.is_set():
                break
            future = pool.submit(_load_shard, ordinal, locations[ordinal], profile, bbox, http_client)
            in_flight[future] = ordinal

        while in_flight:
            done, _pending = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in done:
                _collect(future, in_flight.pop(future))

    for ordinal in ordinals:
        if ordinal not in results:
            results[ordinal] = ShardResult(ordinal=ordinal, location=str(locations[ordinal]), status=SHARD_CANCELLED)

    merged: list[PointRecord] = []
    shard_results = tuple(results[ordinal] for ordinal in ordinals)
    for shard in shard_results:
        merged.extend(shard.records)

    outcome = ChunkedLoadResult(collection=FeatureCollection(features=tuple(merged)), shards=shard_results)
    log_event(
        logger,
        f"windowed load finished for {profile.name}",
        run_id=run_id,
        stage="load",
        dataset=profile.name,
        event="LOAD_END",
        status="ok" if not outcome.failed_ordinals else "partial",
        rows_in=outcome.stats.rows_in,
        rows_out=len(outcome.collection),
    )
    return outcome
