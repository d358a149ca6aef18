from pathlib import Path
from typing import Any

import pytest
import requests
from fastapi.testclient import TestClient

from fhe_demo.app import app
from fhe_demo.client import ClientError, DemoClient, extract_features


class _Response:
    """Adapts an httpx response to the parts of requests.Response the client reads."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        self.status_code = inner.status_code
        self.ok = inner.is_success
        self.reason = inner.reason_phrase
        self.text = inner.text

    def json(self) -> Any:
        return self.inner.json()


def _wire(client: DemoClient, monkeypatch: pytest.MonkeyPatch) -> list[dict[str, str]]:
    test_client = TestClient(app)
    seen_headers: list[dict[str, str]] = []

    def fake_request(method: str, url: str, data: str | None, headers: dict[str, str], timeout: float) -> _Response:
        seen_headers.append(headers)
        path = url[len(client.base_url):]
        return _Response(test_client.request(method, path, content=data, headers=headers))

    monkeypatch.setattr(client.session, "request", fake_request)
    return seen_headers


def test_extract_features_histogram() -> None:
    feats = extract_features("hi there\nextraordinarily long")
    assert feats["characters"] == 29
    assert feats["words"] == 4
    assert feats["lines"] == 2
    assert feats["wordLenHist"] == {"2": 1, "5": 1, "10": 1, "4": 1}


def test_client_analyze_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "data.csv"
    path.write_text("name,age\nada,36\nalan,41\n", encoding="utf-8")
    client = DemoClient()
    _wire(client, monkeypatch)

    out = client.analyze_file(path)
    assert out["summary"]["csv"]["headers"] == ["name", "age"]
    assert out["summary"]["csv"]["rows"] == 3
    assert out["features"]["echo"]["lines"] == 4
    assert out["features"]["histogram"]


def test_client_arithmetic(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DemoClient()
    _wire(client, monkeypatch)
    assert client.add(3, 4) == "7"
    assert client.sum_array([1, 2, 3]) == "6"


def test_client_relayer_headers_and_fallback(monkeypatch: pytest.MonkeyPatch, dead_gateway: Any) -> None:
    client = DemoClient(relayer=True, public_key="pub", private_key="prv")
    seen = _wire(client, monkeypatch)

    assert client.add("1.5", "1.5") == "3"
    assert seen[-1]["x-relayer"] == "1"
    assert client.relayer_status()["relayerAvailable"] is False
    assert client.self_check() == {"ok": False, "error": "Relayer unavailable"}
    # Encrypted features are base64 on the client; the server falls back to the codec.
    assert client.analyze_features({"characters": 4, "words": 1, "lines": 1})["derived"]["avgWordLen"] == 4.0


def test_client_surfaces_http_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DemoClient()
    _wire(client, monkeypatch)
    with pytest.raises(ClientError, match="400"):
        client.add("x", "y")


def test_client_wraps_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    client = DemoClient(timeout=0.01)

    def slow(*args: Any, **kwargs: Any) -> None:
        raise requests.Timeout("too slow")

    monkeypatch.setattr(client.session, "request", slow)
    with pytest.raises(ClientError, match="timed out"):
        client.add(1, 2)
