"""Filesystem helpers."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Iterable, Mapping


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload, *, compact: bool = False) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        if compact:
            # GeoJSON layers are served as-is; keep feature key order and size down.
            json.dump(payload, f, ensure_ascii=False, separators=(",", ":"))
        else:
            json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
            f.write("\n")


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def parse_csv_text(text: str) -> tuple[list[str], list[dict]]:
    reader = csv.DictReader(io.StringIO(text, newline=""))
    rows = [row for row in reader if any(value not in (None, "") for value in row.values())]
    return list(reader.fieldnames or []), rows


def read_csv_rows(path: Path) -> tuple[list[str], list[dict]]:
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        return parse_csv_text(f.read())


def write_csv(
    path: Path,
    headers: list[str],
    rows: Iterable[Mapping[str, object]],
    *,
    quoting: int = csv.QUOTE_MINIMAL,
) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore", quoting=quoting)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
