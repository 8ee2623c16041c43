"""Retrieval of raw CSV text from local files or HTTP locations."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Union

from siting.common.errors import SourceUnreadable
from siting.common.fs import parse_csv_text
from siting.common.http import HttpClient, HttpRequestError

Location = Union[str, Path]


def is_remote(location: Location) -> bool:
    return isinstance(location, str) and location.startswith(("http://", "https://"))


def read_source_text(location: Location, http_client: HttpClient | None = None) -> str:
    if is_remote(location):
        owns_client = http_client is None
        client = http_client or HttpClient()
        try:
            return client.get_text(str(location))
        except HttpRequestError as exc:
            raise SourceUnreadable(f"Could not fetch {location}: {exc}") from exc
        finally:
            if owns_client:
                client.close()

    path = Path(location)
    try:
        return path.read_text(encoding="utf-8-sig")
    except FileNotFoundError as exc:
        raise SourceUnreadable(f"Source not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise SourceUnreadable(f"Source is not valid UTF-8: {path}") from exc
    except OSError as exc:
        raise SourceUnreadable(f"Could not read {path}: {exc}") from exc


def read_source_rows(location: Location, http_client: HttpClient | None = None) -> tuple[list[str], list[dict]]:
    text = read_source_text(location, http_client)
    try:
        return parse_csv_text(text)
    except csv.Error as exc:
        raise SourceUnreadable(f"Malformed CSV in {location}: {exc}") from exc
