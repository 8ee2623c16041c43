from pathlib import Path

import pytest

from siting.common.config_loader import load_settings, resolve_datasets
from siting.common.errors import ConfigError

MINIMAL = """datasets:
  traffic:
    source: public/traffic_data.csv
    output: public/traffic_data.geojson
  population:
    source: public/population.csv
    output: public/population.geojson
    shards:
      directory: public/chunks
      template: chunk_{ordinal}.csv
      count: 18
loading:
  max_workers: 4
storage:
  bucket: null
  region: null
"""


def _write_base(tmp_path: Path, text: str = MINIMAL) -> Path:
    base = tmp_path / "base"
    base.mkdir()
    (base / "datasets.yml").write_text(text, encoding="utf-8")
    return base


def test_load_settings_from_repo_config_dir():
    settings = load_settings(Path("config"))
    assert set(settings.datasets) == {"competitor", "commercial", "traffic", "population"}
    assert settings.shards("population")["count"] == 18
    assert settings.max_workers == 4


def test_resolve_datasets():
    assert resolve_datasets("all") == ["competitor", "commercial", "traffic", "population"]
    assert resolve_datasets("traffic") == ["traffic"]


def test_load_settings_applies_overlay_values(tmp_path: Path):
    base = _write_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "datasets.yml").write_text(
        """datasets:
  population:
    shards:
      count: 2
loading:
  max_workers: 8
""",
        encoding="utf-8",
    )

    settings = load_settings(base, overlay_config_dir=overlay)

    assert settings.shards("population")["count"] == 2
    assert settings.shards("population")["template"] == "chunk_{ordinal}.csv"
    assert settings.max_workers == 8


def test_load_settings_ignores_empty_overlay_file(tmp_path: Path):
    base = _write_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "datasets.yml").write_text("", encoding="utf-8")

    settings = load_settings(base, overlay_config_dir=overlay)

    assert settings.max_workers == 4


def test_load_settings_rejects_non_mapping_overlay(tmp_path: Path):
    base = _write_base(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "datasets.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(base, overlay_config_dir=overlay)


def test_storage_settings_come_from_environment(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("S3_BUCKET_NAME", "siting-images")
    monkeypatch.setenv("AWS_REGION", "eu-west-2")

    settings = load_settings(_write_base(tmp_path))

    assert settings.storage == {"bucket": "siting-images", "region": "eu-west-2"}


def test_unconfigured_dataset_and_missing_shards_raise(tmp_path: Path):
    settings = load_settings(_write_base(tmp_path))

    with pytest.raises(ConfigError):
        settings.dataset("competitor")
    with pytest.raises(ConfigError):
        settings.shards("traffic")


def test_missing_config_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path)
