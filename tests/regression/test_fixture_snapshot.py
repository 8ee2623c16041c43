import shutil
from pathlib import Path

import pytest

from siting.common.config_loader import load_settings
from siting.pipeline.preprocess import run_preprocess

EXPECTED_TRAFFIC = (
    '{"type":"FeatureCollection","features":['
    '{"type":"Feature","geometry":{"type":"Point","coordinates":[-0.12,51.5]},'
    '"properties":{"year":2019,"all_motor_vehicles":15000,"pointType":"traffic"}},'
    '{"type":"Feature","geometry":{"type":"Point","coordinates":[-0.11,51.51]},'
    '"properties":{"all_motor_vehicles":0,"pointType":"traffic"}}]}'
)


def _preprocess_into(data_dir: Path, dataset: str) -> None:
    shutil.copytree(Path("tests/fixtures/public"), data_dir / "public")
    run_preprocess(dataset, load_settings(Path("config")), data_dir)


@pytest.mark.regression
def test_traffic_layer_matches_snapshot(tmp_path: Path):
    _preprocess_into(tmp_path, "traffic")

    assert (tmp_path / "public" / "traffic_data.geojson").read_text(encoding="utf-8") == EXPECTED_TRAFFIC


@pytest.mark.regression
@pytest.mark.parametrize("dataset,output", [("competitor", "competition_data.geojson"), ("commercial", "commercial_land.geojson")])
def test_layers_are_byte_stable_for_same_inputs(tmp_path: Path, dataset: str, output: str):
    first = tmp_path / "first"
    second = tmp_path / "second"

    _preprocess_into(first, dataset)
    _preprocess_into(second, dataset)

    assert (first / "public" / output).read_bytes() == (second / "public" / output).read_bytes()
