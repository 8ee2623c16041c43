"""CLI entrypoint for the storage siting data pipeline."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from siting.common.config_loader import Settings, load_settings, resolve_datasets
from siting.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, SUPPORTED_DATASETS
from siting.common.errors import ConfigError, PipelineError
from siting.common.fs import write_json
from siting.common.http import HttpClient, RetryConfig, TimeoutConfig
from siting.common.time_utils import generate_run_id
from siting.common.logging import build_logger, log_event
from siting.common.models import FeatureCollection
from siting.pipeline.bbox import BoundingBox, filter_records
from siting.pipeline.datasets import load_all, load_visible
from siting.pipeline.images import ImageTarget, hydrate_images
from siting.pipeline.preprocess import run_preprocess
from siting.pipeline.radius import export_selection_csv, select_within_radius
from siting.pipeline.split_csv import split_csv

SELECTABLE_DATASETS = ("competitor", "commercial")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--dataset", default="all", choices=[*SUPPORTED_DATASETS, "all"])
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default=".")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    parser.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        default=None,
        metavar=("MIN_LNG", "MIN_LAT", "MAX_LNG", "MAX_LAT"),
    )
    parser.add_argument("--center", nargs=2, type=float, default=None, metavar=("LNG", "LAT"))
    parser.add_argument("--radius", type=float, default=1000.0, help="metres")
    parser.add_argument("--rows-per-file", type=int, default=None)
    parser.add_argument("--output", default=None)
    return parser.parse_args(argv)


def parse_center(value: list[float] | None) -> tuple[float, float]:
    if not value:
        raise ConfigError("--center LNG LAT is required for select")
    lng, lat = value
    return lng, lat


def build_http_client(settings: Settings) -> HttpClient:
    loading = settings.loading
    return HttpClient(
        timeout=TimeoutConfig(
            connect=float(loading.get("connect_timeout_seconds", 10)),
            read=float(loading.get("read_timeout_seconds", 60)),
        ),
        retry=RetryConfig(max_attempts=int(loading.get("max_attempts", 4))),
    )


def _datasets_for(command: str, target: str, settings: Settings) -> list[str]:
    datasets = resolve_datasets(target)
    if command == "select" and target == "all":
        return list(SELECTABLE_DATASETS)
    if command == "split" and target == "all":
        return [name for name in datasets if settings.dataset(name).get("shards")]
    if command == "hydrate-images" and target == "all":
        return [name for name in datasets if settings.dataset(name).get("images")]
    return datasets


def _output_path(args: argparse.Namespace, data_dir: Path, default_name: str) -> Path:
    return Path(args.output) if args.output else data_dir / "out" / default_name


def execute_dataset(args: argparse.Namespace, dataset: str, settings: Settings, data_dir: Path, logger, run_id: str) -> dict:
    if args.command == "preprocess":
        return run_preprocess(dataset, settings, data_dir, logger=logger, run_id=run_id)

    if args.command == "split":
        shards = settings.shards(dataset)
        rows_per_file = args.rows_per_file or int(shards.get("rows_per_chunk", 100000))
        written = split_csv(
            data_dir / settings.dataset(dataset)["source"],
            data_dir / shards["directory"],
            rows_per_file=rows_per_file,
            template=shards["template"],
        )
        return {"dataset": dataset, "chunks": [str(path) for path in written]}

    if args.command == "load":
        bbox = BoundingBox(*args.bbox) if args.bbox else None
        with build_http_client(settings) as client:
            if bbox is not None and settings.dataset(dataset).get("shards"):
                result = load_visible(
                    dataset,
                    settings,
                    data_dir,
                    bbox,
                    http_client=client,
                    logger=logger,
                    run_id=run_id,
                )
                collection = result.collection
                summary = result.summary()
            else:
                collection = load_all(dataset, settings, data_dir, http_client=client, logger=logger, run_id=run_id)
                if bbox is not None:
                    # unsharded files are small enough to read whole and clip afterwards
                    collection = FeatureCollection(features=tuple(filter_records(collection, bbox)))
                summary = {"features": len(collection)}
        out_path = _output_path(args, data_dir, f"{dataset}.geojson")
        write_json(out_path, collection.to_geojson(), compact=True)
        return {"dataset": dataset, "path": str(out_path), **summary}

    if args.command == "hydrate-images":
        images = settings.dataset(dataset).get("images")
        if not images:
            raise ConfigError(f"Dataset {dataset} has no image configuration")
        with build_http_client(settings) as client:
            return hydrate_images(
                data_dir / settings.dataset(dataset)["source"],
                ImageTarget.from_config(images),
                bucket=settings.storage.get("bucket"),
                region=settings.storage.get("region"),
                http_client=client,
                logger=logger,
                run_id=run_id,
            )

    raise ValueError(f"Unknown command: {args.command}")


def run_select(args: argparse.Namespace, datasets: list[str], settings: Settings, data_dir: Path, logger, run_id: str) -> dict:
    center = parse_center(args.center)
    records = []
    with build_http_client(settings) as client:
        for dataset in datasets:
            collection = load_all(dataset, settings, data_dir, http_client=client, logger=logger, run_id=run_id)
            records.extend(collection)
    selected = select_within_radius(records, center, args.radius)
    out_path = export_selection_csv(selected, _output_path(args, data_dir, "selected_points.csv"))
    return {"datasets": datasets, "selected": len(selected), "path": str(out_path)}


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    settings = load_settings(config_dir, overlay_config_dir=overlay_config_dir)
    datasets = _datasets_for(args.command, args.dataset, settings)

    log_event(logger, "command start", run_id=run_id, stage=args.command, event="STAGE_START", status="ok")

    if args.command == "select":
        summary = run_select(args, datasets, settings, data_dir, logger, run_id)
        log_event(logger, json.dumps(summary, sort_keys=True), run_id=run_id, stage="select", event="STAGE_END", status="ok")
        return EXIT_SUCCESS

    had_partial_failure = False
    for dataset in datasets:
        try:
            summary = execute_dataset(args, dataset, settings, data_dir, logger, run_id)
        except PipelineError as exc:
            had_partial_failure = True
            log_event(
                logger,
                f"{args.command} failed for dataset {dataset}: {exc}",
                run_id=run_id,
                stage=args.command,
                dataset=dataset,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            if exc.error_code == "CONFIG_ERROR" or args.strict:
                return EXIT_HARD_FAIL
            continue
        except Exception:
            had_partial_failure = True
            log_event(
                logger,
                f"unexpected failure for dataset {dataset}",
                run_id=run_id,
                stage=args.command,
                dataset=dataset,
                event="STAGE_FAIL",
                status="error",
                error_code="UNEXPECTED_ERROR",
            )
            if args.strict:
                return EXIT_HARD_FAIL
            continue

        if summary.get("failed_shards") and args.strict:
            return EXIT_HARD_FAIL
        if summary.get("failed_shards") or summary.get("failed"):
            had_partial_failure = True
        log_event(
            logger,
            json.dumps(summary, sort_keys=True, default=str),
            run_id=run_id,
            stage=args.command,
            dataset=dataset,
            event="STAGE_END",
            status="ok",
        )

    if had_partial_failure:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
