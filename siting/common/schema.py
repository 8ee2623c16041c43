"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from siting.common.constants import SUPPORTED_DATASETS
from siting.common.errors import ConfigError


def _assert_mapping(obj, ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _validate_shards(shards: dict, ctx: str, allow_unknown: bool) -> None:
    _assert_mapping(shards, ctx)
    _assert_required_keys(shards, {"directory", "template", "count"}, ctx)
    _assert_no_unknown_keys(shards, {"directory", "template", "count", "rows_per_chunk", "base_url"}, ctx, allow_unknown)
    if "{ordinal}" not in str(shards["template"]):
        raise ConfigError(f"{ctx}.template must contain an {{ordinal}} placeholder")
    count = shards["count"]
    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        raise ConfigError(f"{ctx}.count must be a positive integer")


def _validate_images(images: dict, ctx: str, allow_unknown: bool) -> None:
    _assert_mapping(images, ctx)
    _assert_required_keys(images, {"column", "key_prefix"}, ctx)
    _assert_no_unknown_keys(images, {"column", "key_prefix", "acl", "mirror_columns"}, ctx, allow_unknown)


def validate_dataset_config(name: str, cfg: dict, *, allow_unknown: bool = False) -> dict:
    ctx = f"datasets.{name}"
    _assert_mapping(cfg, ctx)
    _assert_required_keys(cfg, {"source", "output"}, ctx)
    _assert_no_unknown_keys(cfg, {"source", "output", "shards", "images"}, ctx, allow_unknown)
    if cfg.get("shards") is not None:
        _validate_shards(cfg["shards"], f"{ctx}.shards", allow_unknown)
    if cfg.get("images") is not None:
        _validate_images(cfg["images"], f"{ctx}.images", allow_unknown)
    return cfg


def validate_settings(cfg, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "datasets config")
    top_required = {"datasets", "loading", "storage"}
    _assert_required_keys(cfg, top_required, "datasets config")
    _assert_no_unknown_keys(cfg, top_required, "datasets config", allow_unknown)

    _assert_mapping(cfg["datasets"], "datasets")
    unknown_datasets = set(cfg["datasets"]) - set(SUPPORTED_DATASETS)
    if unknown_datasets:
        raise ConfigError(f"Unsupported datasets: {', '.join(sorted(unknown_datasets))}")
    for name, dataset_cfg in cfg["datasets"].items():
        validate_dataset_config(name, dataset_cfg, allow_unknown=allow_unknown)

    _assert_mapping(cfg["loading"], "loading")
    _assert_required_keys(cfg["loading"], {"max_workers"}, "loading")
    workers = cfg["loading"]["max_workers"]
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        raise ConfigError("loading.max_workers must be a positive integer")

    _assert_mapping(cfg["storage"], "storage")
    _assert_no_unknown_keys(cfg["storage"], {"bucket", "region"}, "storage", allow_unknown)
    return cfg
