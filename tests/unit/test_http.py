from __future__ import annotations

import pytest
import requests

from siting.common.http import HttpClient, HttpRequestError, RetryConfig, RetryableHttpError


class FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"", content_type: str | None = None):
        self.status_code = status_code
        self.content = content
        self.headers = {"Content-Type": content_type} if content_type else {}


def test_http_get_text_success(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, b"\xef\xbb\xbfa,b\n1,2\n"))

    assert client.get_text("https://example.com/chunk_1.csv") == "a,b\n1,2\n"


def test_http_retryable_status_raises_retryable_error(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(503))

    with pytest.raises(RetryableHttpError):
        client.get_text("https://example.com")


def test_http_not_found_is_not_retried(monkeypatch):
    calls = []

    def request(**_kwargs):
        calls.append(1)
        return FakeResponse(404)

    client = HttpClient(retry=RetryConfig(max_attempts=3, multiplier=0.0, max_wait=0.0))
    monkeypatch.setattr(client.session, "request", request)

    with pytest.raises(HttpRequestError):
        client.get_text("https://example.com/missing.csv")
    assert len(calls) == 1


def test_http_retries_then_succeeds(monkeypatch):
    responses = [FakeResponse(502), FakeResponse(200, b"ok")]
    client = HttpClient(retry=RetryConfig(max_attempts=3, multiplier=0.0, max_wait=0.0))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: responses.pop(0))

    assert client.get_text("https://example.com") == "ok"


def test_http_connection_error_is_retryable(monkeypatch):
    def request(**_kwargs):
        raise requests.ConnectionError("refused")

    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", request)

    with pytest.raises(RetryableHttpError):
        client.get_bytes("https://example.com/a.png")


def test_http_invalid_utf8_raises(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, b"\xff\xfe\xfa"))

    with pytest.raises(HttpRequestError):
        client.get_text("https://example.com")


def test_http_get_bytes_returns_content_type(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, b"PNG", "image/png"))

    assert client.get_bytes("https://example.com/a.png") == (b"PNG", "image/png")
