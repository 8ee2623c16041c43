"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from siting.common.constants import DEFAULT_MAX_WORKERS, SUPPORTED_DATASETS
from siting.common.errors import ConfigError
from siting.common.fs import read_yaml
from siting.common.schema import validate_settings

CONFIG_FILENAME = "datasets.yml"


@dataclass(frozen=True)
class Settings:
    datasets: dict[str, dict]
    loading: dict
    storage: dict

    def dataset(self, name: str) -> dict:
        try:
            return self.datasets[name]
        except KeyError:
            raise ConfigError(f"Dataset not configured: {name}") from None

    def shards(self, name: str) -> dict:
        shards = self.dataset(name).get("shards")
        if not shards:
            raise ConfigError(f"Dataset {name} has no shard configuration")
        return shards

    @property
    def max_workers(self) -> int:
        return int(self.loading.get("max_workers", DEFAULT_MAX_WORKERS))


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def _apply_storage_env(storage: dict) -> dict:
    out = dict(storage)
    bucket = os.environ.get("S3_BUCKET_NAME")
    region = os.environ.get("AWS_REGION")
    if bucket:
        out["bucket"] = bucket
    if region:
        out["region"] = region
    return out


def load_settings(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> Settings:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / CONFIG_FILENAME
    cfg = validate_settings(
        _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path),
        allow_unknown=allow_unknown,
    )
    return Settings(
        datasets=cfg["datasets"],
        loading=cfg["loading"],
        storage=_apply_storage_env(cfg["storage"] or {}),
    )


def resolve_datasets(target: str) -> list[str]:
    if target == "all":
        return list(SUPPORTED_DATASETS)
    return [target]
