"""Load entry points used by the map layers, one pair per dataset."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from siting.common.config_loader import Settings
from siting.common.http import HttpClient
from siting.common.logging import get_logger, log_event
from siting.common.models import FeatureCollection
from siting.pipeline.bbox import BoundingBox
from siting.pipeline.chunked import ChunkedLoadResult, load_chunks, shard_locations
from siting.pipeline.collection import load_collection
from siting.pipeline.profiles import get_profile
from siting.pipeline.sources import Location, is_remote


def source_location(value: str, data_dir: Path) -> Location:
    if is_remote(value):
        return value
    return data_dir / value


def load_all(
    dataset: str,
    settings: Settings,
    data_dir: Path,
    *,
    http_client: HttpClient | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> FeatureCollection:
    profile = get_profile(dataset)
    location = source_location(settings.dataset(dataset)["source"], data_dir)
    collection, stats = load_collection(location, profile, http_client)
    log_event(
        get_logger(logger),
        f"loaded {dataset} from {location}",
        run_id=run_id,
        stage="load",
        dataset=dataset,
        source=str(location),
        event="LOAD_END",
        status="ok",
        rows_in=stats.rows_in,
        rows_out=stats.rows_out,
    )
    return collection


def load_visible(
    dataset: str,
    settings: Settings,
    data_dir: Path,
    bbox: BoundingBox,
    *,
    http_client: HttpClient | None = None,
    cancel_event: threading.Event | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> ChunkedLoadResult:
    """Load the shards of ``dataset`` and keep the records inside ``bbox``.

    Never raises for unreadable shards; an all-empty result is for the caller
    to judge.
    """
    return load_chunks(
        get_profile(dataset),
        shard_locations(settings.shards(dataset), data_dir),
        bbox,
        max_workers=settings.max_workers,
        http_client=http_client,
        cancel_event=cancel_event,
        logger=logger,
        run_id=run_id,
    )
