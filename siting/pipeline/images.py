"""Republish remote listing images to S3 and rewrite the CSV to point at them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import quote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from siting.common.errors import ConfigError
from siting.common.fs import read_csv_rows, write_csv
from siting.common.http import HttpClient, HttpRequestError, TimeoutConfig
from siting.common.logging import get_logger, log_event

DOWNLOAD_TIMEOUT = TimeoutConfig(connect=10, read=10)
DEFAULT_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class ImageTarget:
    column: str
    key_prefix: str
    acl: str | None = None
    mirror_columns: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, cfg: dict) -> "ImageTarget":
        return cls(
            column=cfg["column"],
            key_prefix=cfg["key_prefix"],
            acl=cfg.get("acl") or None,
            mirror_columns=tuple(cfg.get("mirror_columns") or ()),
        )


def object_key(target: ImageTarget, image_url: str) -> str:
    basename = PurePosixPath(urlparse(image_url).path).name
    return f"{target.key_prefix}{basename}.jpg"


def object_url(bucket: str, region: str, key: str) -> str:
    return f"https://{bucket}.s3.{region}.amazonaws.com/{quote(key)}"


def build_s3_client(region: str):
    return boto3.client("s3", region_name=region)


def _upload(s3_client, bucket: str, key: str, body: bytes, content_type: str | None, acl: str | None) -> None:
    params = {
        "Bucket": bucket,
        "Key": key,
        "Body": body,
        "ContentType": content_type or DEFAULT_CONTENT_TYPE,
    }
    if acl:
        params["ACL"] = acl
    s3_client.put_object(**params)


def hydrate_images(
    csv_path: Path,
    target: ImageTarget,
    *,
    bucket: str | None,
    region: str | None,
    http_client: HttpClient | None = None,
    s3_client=None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> dict:
    if not bucket or not region:
        raise ConfigError("S3 bucket and region must be configured (storage.bucket/region or S3_BUCKET_NAME/AWS_REGION)")
    logger = get_logger(logger)
    headers, rows = read_csv_rows(csv_path)

    uploaded = 0
    failed = 0
    owns_client = http_client is None
    client = http_client or HttpClient()
    s3 = s3_client or build_s3_client(region)
    try:
        for row in rows:
            image_url = row.get(target.column) or ""
            if not image_url.startswith("http"):
                continue

            try:
                body, content_type = client.get_bytes(image_url, timeout=DOWNLOAD_TIMEOUT)
            except HttpRequestError as exc:
                failed += 1
                log_event(
                    logger,
                    f"image download failed: {exc}",
                    level=logging.WARNING,
                    run_id=run_id,
                    stage="hydrate-images",
                    source=image_url,
                    event="IMAGE_DOWNLOAD_FAIL",
                    status="error",
                    error_code=exc.error_code,
                )
                continue

            key = object_key(target, image_url)
            try:
                _upload(s3, bucket, key, body, content_type, target.acl)
            except (BotoCoreError, ClientError) as exc:
                failed += 1
                log_event(
                    logger,
                    f"image upload failed: {exc}",
                    level=logging.WARNING,
                    run_id=run_id,
                    stage="hydrate-images",
                    source=image_url,
                    event="IMAGE_UPLOAD_FAIL",
                    status="error",
                    error_code="S3_ERROR",
                )
                continue

            hosted = object_url(bucket, region, key)
            row[target.column] = hosted
            for column in target.mirror_columns:
                row[column] = hosted
            uploaded += 1
    finally:
        if owns_client:
            client.close()

    out_headers = list(headers)
    for column in target.mirror_columns:
        if column not in out_headers:
            out_headers.append(column)
    write_csv(csv_path, out_headers, rows)

    log_event(
        logger,
        f"hydrated {uploaded} images in {csv_path.name}",
        run_id=run_id,
        stage="hydrate-images",
        source=str(csv_path),
        event="HYDRATE_END",
        status="ok" if failed == 0 else "partial",
        rows_in=len(rows),
        rows_out=uploaded,
    )
    return {"path": str(csv_path), "rows": len(rows), "uploaded": uploaded, "failed": failed}
