from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import requests

from .analyzer import code_unit_length, split_lines, tokenize
from .codec import DecodeError, decode, encode, encode_bytes


DEFAULT_URL = "http://localhost:3001"
MAX_HIST_BIN = 10


class ClientError(RuntimeError):
    pass


def extract_features(text: str) -> dict[str, Any]:
    """Client-side features: counts plus a word-length histogram (bin 10 means 10+)."""
    tokens = tokenize(text)
    hist: dict[str, int] = {}
    for token in tokens:
        key = str(min(MAX_HIST_BIN, len(token)))
        hist[key] = hist.get(key, 0) + 1
    return {
        "characters": code_unit_length(text),
        "words": len(tokens),
        "lines": len(split_lines(text)),
        "wordLenHist": hist,
    }


class DemoClient:
    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        relayer: bool = False,
        public_key: str = "",
        private_key: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.relayer = relayer
        self.public_key = public_key
        self.private_key = private_key
        self.timeout = timeout
        self.session = requests.Session()

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.relayer:
            headers.update({"x-relayer": "1", "x-public-key": self.public_key, "x-private-key": self.private_key})
        return headers

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> requests.Response:
        try:
            return self.session.request(
                method,
                f"{self.base_url}{path}",
                data=json.dumps(body) if body is not None else None,
                headers=self.headers(),
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise ClientError("Request timed out. Please check the server and try again.") from exc
        except requests.RequestException as exc:
            raise ClientError(f"Network error: {exc}") from exc

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        response = self._request("POST", path, body)
        if not response.ok:
            raise ClientError(f"{path} failed ({response.status_code} {response.reason}) {response.text}".strip())
        return response.json()

    def _result(self, path: str, body: dict[str, Any]) -> str:
        payload = self._post(path, body)
        try:
            return decode(str(payload.get("result", "")))
        except DecodeError as exc:
            raise ClientError(f"{path} returned an undecodable result") from exc

    def upload(self, data: bytes) -> str:
        return str(self._post("/api/upload", {"data": encode_bytes(data)}).get("message", ""))

    def analyze(self, data: bytes) -> dict[str, Any]:
        return json.loads(self._result("/api/analyze", {"data": encode_bytes(data)}))

    def analyze_features(self, features: dict[str, Any], encrypted: bool | None = None) -> dict[str, Any]:
        if encrypted is None:
            encrypted = self.relayer
        body = {"encryptedFeatures": encode(json.dumps(features))} if encrypted else {"features": features}
        return json.loads(self._result("/api/analyze-features", body))

    def sum_array(self, numbers: list[Any]) -> str:
        return self._result("/api/sum-array", {"encItems": [encode(str(n)) for n in numbers]})

    def add(self, a: Any, b: Any) -> str:
        return self._result("/api/add", {"encA": encode(str(a)), "encB": encode(str(b))})

    def relayer_status(self) -> dict[str, Any]:
        response = self._request("GET", "/relayer-status")
        if not response.ok:
            raise ClientError(f"/relayer-status failed ({response.status_code} {response.reason})")
        return response.json()

    def self_check(self) -> dict[str, Any]:
        # Error statuses carry {"ok": false, "error": ...}; return them as-is.
        return self._request("POST", "/relayer-selfcheck").json()

    def analyze_file(self, path: Path) -> dict[str, Any]:
        data = Path(path).read_bytes()
        self.upload(data)
        summary = self.analyze(data)
        text = data.decode("utf-8", errors="replace")
        try:
            features = self.analyze_features(extract_features(text))
        except ClientError:
            features = None
        return {"summary": summary, "features": features}
