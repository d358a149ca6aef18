from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

import requests
from fastapi.concurrency import run_in_threadpool


logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://relayer.sepolia.zama.ai"
SELF_CHECK_MESSAGE = "42"


class GatewayError(RuntimeError):
    """Raised when the Relayer is unavailable or a remote call fails."""


@dataclass
class RelayerStatus:
    available: bool
    endpoint: str
    init_error: str | None = None
    module_loaded: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "relayerAvailable": self.available,
            "relayerEndpoint": self.endpoint,
            "relayerInitError": self.init_error,
            "moduleLoaded": self.module_loaded,
        }


class RelayerTransport(Protocol):
    def probe(self) -> None: ...

    def encrypt(self, data: str, public_key: str) -> str: ...

    def decrypt(self, encrypted_data: str, private_key: str) -> str: ...


class HttpRelayerTransport:
    """Blocking HTTP client for the Relayer's encrypt/decrypt API."""

    def __init__(self, endpoint: str, timeout: float = 10.0) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def probe(self) -> None:
        response = self.session.get(f"{self.endpoint}/health", timeout=5)
        response.raise_for_status()

    def encrypt(self, data: str, public_key: str) -> str:
        payload = self._post("/v1/encrypt", {"data": data, "publicKey": public_key})
        return self._field(payload, "encryptedData")

    def decrypt(self, encrypted_data: str, private_key: str) -> str:
        payload = self._post("/v1/decrypt", {"encryptedData": encrypted_data, "privateKey": private_key})
        return self._field(payload, "data")

    def _post(self, path: str, body: dict[str, str]) -> dict[str, object]:
        response = self.session.post(f"{self.endpoint}{path}", json=body, timeout=self.timeout)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected Relayer response from {path}")
        return payload

    @staticmethod
    def _field(payload: dict[str, object], key: str) -> str:
        value = payload.get(key)
        if not isinstance(value, str):
            raise ValueError(f"Relayer response is missing '{key}'")
        return value


TransportFactory = Callable[[str], RelayerTransport]


class RelayerGateway:
    """Process-wide handle on the Relayer with a lazily filled availability cache.

    The first ``ensure()`` builds the transport and probes the endpoint; the
    outcome is cached until ``ensure(recheck=True)`` is called while the
    gateway is unavailable.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        transport_factory: TransportFactory | None = None,
        enabled: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.endpoint = endpoint
        self.enabled = enabled
        self.timeout = timeout
        self._factory = transport_factory or (lambda url: HttpRelayerTransport(url, timeout=self.timeout))
        self._transport: RelayerTransport | None = None
        self._initialized = False
        self._init_error: str | None = None
        self._module_loaded = False

    @property
    def available(self) -> bool:
        return self._transport is not None

    def status(self) -> RelayerStatus:
        return RelayerStatus(
            available=self.available,
            endpoint=self.endpoint,
            init_error=self._init_error,
            module_loaded=self._module_loaded,
        )

    async def ensure(self, recheck: bool = False) -> bool:
        if self._initialized and (self.available or not recheck):
            return self.available
        return await run_in_threadpool(self._initialize)

    def _initialize(self) -> bool:
        self._initialized = True
        if not self.enabled:
            self._init_error = "Relayer disabled by configuration"
            return False
        try:
            transport = self._factory(self.endpoint)
            self._module_loaded = True
            transport.probe()
        except Exception as exc:
            self._transport = None
            self._init_error = str(exc) or exc.__class__.__name__
            logger.warning("Relayer at %s unavailable: %s", self.endpoint, self._init_error)
            return False
        self._transport = transport
        self._init_error = None
        logger.info("Relayer ready at %s", self.endpoint)
        return True

    async def encrypt(self, plain: str, public_key: str) -> str:
        transport = self._require()
        try:
            return await run_in_threadpool(transport.encrypt, plain, public_key)
        except Exception as exc:
            raise GatewayError(f"Relayer encrypt failed: {exc}") from exc

    async def decrypt(self, token: str, private_key: str) -> str:
        transport = self._require()
        try:
            return await run_in_threadpool(transport.decrypt, token, private_key)
        except Exception as exc:
            raise GatewayError(f"Relayer decrypt failed: {exc}") from exc

    async def self_check(self, public_key: str, private_key: str) -> bool:
        if not self.available:
            raise GatewayError("Relayer unavailable")
        if not public_key or not private_key:
            raise ValueError("Missing keys")
        token = await self.encrypt(SELF_CHECK_MESSAGE, public_key)
        return await self.decrypt(token, private_key) == SELF_CHECK_MESSAGE

    def _require(self) -> RelayerTransport:
        if self._transport is None:
            raise GatewayError(self._init_error or "Relayer unavailable")
        return self._transport
