"""Batch conversion of raw CSV exports into GeoJSON layer files."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from siting.common.config_loader import Settings
from siting.common.errors import StageError
from siting.common.fs import write_json
from siting.common.logging import get_logger, log_event
from siting.pipeline.collection import ParseStats, load_collection
from siting.pipeline.profiles import DatasetProfile, get_profile

_CHUNK_NAME_RE = re.compile(r"^chunk_(\d+)\.csv$")


def _chunk_files(chunk_dir: Path) -> list[Path]:
    matches = []
    for path in chunk_dir.iterdir():
        match = _CHUNK_NAME_RE.match(path.name)
        if match:
            matches.append((int(match.group(1)), path))
    return [path for _ordinal, path in sorted(matches)]


def convert_file(source: Path, output: Path, profile: DatasetProfile) -> ParseStats:
    collection, stats = load_collection(source, profile)
    write_json(output, collection.to_geojson(), compact=True)
    return stats


def _convert_chunks(
    profile: DatasetProfile,
    chunk_dir: Path,
    logger: logging.Logger,
    run_id: str | None,
) -> tuple[list[str], ParseStats]:
    outputs: list[str] = []
    totals = ParseStats()
    if not chunk_dir.is_dir():
        log_event(
            logger,
            f"chunk directory {chunk_dir} not found, skipping chunk conversion",
            run_id=run_id,
            stage="preprocess",
            dataset=profile.name,
            event="CHUNKS_MISSING",
            status="skipped",
        )
        return outputs, totals

    for csv_path in _chunk_files(chunk_dir):
        output = csv_path.with_suffix(".geojson")
        totals.merge(convert_file(csv_path, output, profile))
        outputs.append(str(output))
    return outputs, totals


def run_preprocess(
    dataset: str,
    settings: Settings,
    data_dir: Path,
    *,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> dict:
    """Convert the dataset's source file, and its chunk files when sharded."""
    logger = get_logger(logger)
    profile = get_profile(dataset)
    cfg = settings.dataset(dataset)

    outputs: list[str] = []
    stats = ParseStats()
    source = data_dir / cfg["source"]
    shards = cfg.get("shards")

    if source.exists() or not shards:
        output = data_dir / cfg["output"]
        stats.merge(convert_file(source, output, profile))
        outputs.append(str(output))

    if shards:
        chunk_outputs, chunk_stats = _convert_chunks(profile, data_dir / shards["directory"], logger, run_id)
        outputs.extend(chunk_outputs)
        stats.merge(chunk_stats)

    if not outputs:
        raise StageError(f"Nothing to preprocess for dataset {dataset}")

    log_event(
        logger,
        f"preprocessed {dataset}",
        run_id=run_id,
        stage="preprocess",
        dataset=dataset,
        event="PREPROCESS_END",
        status="ok",
        rows_in=stats.rows_in,
        rows_out=stats.rows_out,
    )
    return {"dataset": dataset, "outputs": outputs, **stats.to_dict()}
