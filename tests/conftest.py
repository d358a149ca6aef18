from __future__ import annotations

import pytest

from fhe_demo.relayer import RelayerGateway


PREFIX = "relayer:"


class FakeTransport:
    """In-memory Relayer: tokens are the plaintext behind a marker prefix."""

    def __init__(self, fail_probe: bool = False, fail_calls: bool = False) -> None:
        self.fail_probe = fail_probe
        self.fail_calls = fail_calls
        self.calls: list[tuple[str, str, str]] = []

    def probe(self) -> None:
        if self.fail_probe:
            raise ConnectionError("relayer unreachable")

    def encrypt(self, data: str, public_key: str) -> str:
        self.calls.append(("encrypt", data, public_key))
        if self.fail_calls:
            raise ConnectionError("encrypt exploded")
        return PREFIX + data

    def decrypt(self, encrypted_data: str, private_key: str) -> str:
        self.calls.append(("decrypt", encrypted_data, private_key))
        if self.fail_calls:
            raise ConnectionError("decrypt exploded")
        if not encrypted_data.startswith(PREFIX):
            raise ValueError("not a relayer token")
        return encrypted_data[len(PREFIX):]


def make_gateway(transport: FakeTransport) -> RelayerGateway:
    return RelayerGateway(endpoint="http://relayer.test", transport_factory=lambda url: transport)


RELAYER_HEADERS = {"x-relayer": "1", "x-public-key": "pub", "x-private-key": "prv"}


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def live_gateway(monkeypatch: pytest.MonkeyPatch, transport: FakeTransport) -> RelayerGateway:
    gateway = make_gateway(transport)
    monkeypatch.setattr("fhe_demo.app.gateway", gateway)
    return gateway


@pytest.fixture
def dead_gateway(monkeypatch: pytest.MonkeyPatch) -> RelayerGateway:
    gateway = make_gateway(FakeTransport(fail_probe=True))
    monkeypatch.setattr("fhe_demo.app.gateway", gateway)
    return gateway
