from pathlib import Path

import pytest

from siting.common.errors import SourceUnreadable
from siting.pipeline.collection import build_collection, load_collection
from siting.pipeline.profiles import COMPETITOR, TRAFFIC
from siting.pipeline.records import COORDINATE_INVALID, TYPE_FILTERED


def _rows():
    return [
        {"name": "a", "type": "Storage", "longitude": "1", "latitude": "1"},
        {"name": "b", "type": "Storage", "longitude": "2", "latitude": "2"},
        {"name": "c", "type": "Storage", "longitude": "3", "latitude": "3"},
    ]


def test_build_collection_preserves_source_order():
    rows = _rows()
    rows.insert(1, {"name": "x", "type": "Warehouse", "longitude": "9", "latitude": "9"})

    collection, stats = build_collection(rows, COMPETITOR)

    assert [record.properties["name"] for record in collection] == ["a", "b", "c"]
    assert stats.rows_in == 4
    assert stats.rows_out == 3
    assert stats.rejected == {TYPE_FILTERED: 1}


def test_invalid_coordinate_shrinks_output_by_exactly_one():
    baseline, _ = build_collection(_rows(), COMPETITOR)
    rows = _rows()
    rows[2]["latitude"] = "not-a-number"

    collection, stats = build_collection(rows, COMPETITOR)

    assert len(collection) == len(baseline) - 1
    assert stats.rejected[COORDINATE_INVALID] == 1
    assert stats.rows_rejected == 1


def test_duplicate_coordinates_are_kept():
    rows = [{"longitude": "1", "latitude": "1", "year": "2020"}] * 2

    collection, _ = build_collection(rows, TRAFFIC)

    assert len(collection) == 2


def test_to_geojson_serialises_point_features():
    collection, _ = build_collection(_rows()[:1], COMPETITOR)

    assert collection.to_geojson() == {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [1.0, 1.0]},
                "properties": {"name": "a", "type": "Storage", "pointType": "competitor"},
            }
        ],
    }


def test_load_collection_reads_csv_file(tmp_path: Path):
    path = tmp_path / "traffic.csv"
    path.write_text(
        "\ufeffyear,longitude,latitude,all_motor_vehicles\n2019,-0.1,51.5,10\n\n2020,,51.6,5\n",
        encoding="utf-8",
    )

    collection, stats = load_collection(path, TRAFFIC)

    assert len(collection) == 1
    assert collection.features[0].properties == {"year": 2019, "all_motor_vehicles": 10}
    assert stats.rows_in == 2


def test_load_collection_missing_file_raises_source_unreadable(tmp_path: Path):
    with pytest.raises(SourceUnreadable):
        load_collection(tmp_path / "missing.csv", TRAFFIC)


def test_load_collection_undecodable_file_raises_source_unreadable(tmp_path: Path):
    path = tmp_path / "broken.csv"
    path.write_bytes(b"year,longitude,latitude\n\xff\xfe\xfa,1,1\n")

    with pytest.raises(SourceUnreadable):
        load_collection(path, TRAFFIC)
