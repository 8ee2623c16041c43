from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from siting.common.errors import ConfigError
from siting.common.fs import read_csv_rows
from siting.common.http import HttpRequestError
from siting.pipeline.images import ImageTarget, hydrate_images, object_key


class FakeHttpClient:
    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()

    def get_bytes(self, url, **_kwargs):
        if url in self.failing:
            raise HttpRequestError("HTTP status: 404")
        return b"image-bytes", "image/png"

    def close(self):
        return None


class FakeS3:
    def __init__(self, fail_keys: set[str] | None = None):
        self.fail_keys = fail_keys or set()
        self.puts: list[dict] = []

    def put_object(self, **params):
        if params["Key"] in self.fail_keys:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.puts.append(params)
        return {}


COMPETITOR_TARGET = ImageTarget(column="photo", key_prefix="competition-photos/", acl="public-read")
COMMERCIAL_TARGET = ImageTarget(column="images/0", key_prefix="commercial-land-images/", mirror_columns=("photo",))


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    shutil.copytree(Path("tests/fixtures/public"), tmp_path / "public")
    return tmp_path / "public"


def test_object_key_uses_url_basename():
    assert object_key(COMPETITOR_TARGET, "https://img.example/a/1.png?w=200") == "competition-photos/1.png.jpg"


@pytest.mark.integration
def test_hydrate_competitor_photos_rewrites_urls(public_dir: Path):
    s3 = FakeS3()
    csv_path = public_dir / "competition_data.csv"

    summary = hydrate_images(
        csv_path,
        COMPETITOR_TARGET,
        bucket="siting-images",
        region="eu-west-2",
        http_client=FakeHttpClient(failing={"https://img.example/b/3.png"}),
        s3_client=s3,
    )

    assert summary == {"path": str(csv_path), "rows": 5, "uploaded": 1, "failed": 1}
    assert s3.puts[0]["Key"] == "competition-photos/1.png.jpg"
    assert s3.puts[0]["ACL"] == "public-read"
    assert s3.puts[0]["ContentType"] == "image/png"
    _header, rows = read_csv_rows(csv_path)
    assert rows[0]["photo"] == "https://siting-images.s3.eu-west-2.amazonaws.com/competition-photos/1.png.jpg"
    assert rows[2]["photo"] == "https://img.example/b/3.png"
    assert rows[0]["full_address"] == "1 High St, London"


@pytest.mark.integration
def test_hydrate_commercial_images_mirrors_photo_column(public_dir: Path):
    s3 = FakeS3()
    csv_path = public_dir / "commercial_land.csv"

    summary = hydrate_images(
        csv_path,
        COMMERCIAL_TARGET,
        bucket="siting-images",
        region="eu-west-2",
        http_client=FakeHttpClient(),
        s3_client=s3,
    )

    assert summary["uploaded"] == 1
    assert "ACL" not in s3.puts[0]
    header, rows = read_csv_rows(csv_path)
    assert header[-1] == "photo"
    hosted = "https://siting-images.s3.eu-west-2.amazonaws.com/commercial-land-images/101.jpg.jpg"
    assert rows[0]["images/0"] == hosted
    assert rows[0]["photo"] == hosted
    assert rows[1]["photo"] == ""


@pytest.mark.integration
def test_hydrate_upload_failure_leaves_row_untouched(public_dir: Path):
    csv_path = public_dir / "commercial_land.csv"
    s3 = FakeS3(fail_keys={"commercial-land-images/101.jpg.jpg"})

    summary = hydrate_images(
        csv_path,
        COMMERCIAL_TARGET,
        bucket="siting-images",
        region="eu-west-2",
        http_client=FakeHttpClient(),
        s3_client=s3,
    )

    assert summary["failed"] == 1
    _header, rows = read_csv_rows(csv_path)
    assert rows[0]["images/0"] == "https://img.example/c/101.jpg"


def test_hydrate_requires_bucket_and_region(public_dir: Path):
    with pytest.raises(ConfigError):
        hydrate_images(public_dir / "competition_data.csv", COMPETITOR_TARGET, bucket=None, region="eu-west-2")
