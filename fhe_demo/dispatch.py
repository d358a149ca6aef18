from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from .codec import Codec
from .relayer import RelayerGateway


logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Client-side input problem, rendered as ``{"error": message}``."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class Strategy(Protocol):
    name: str

    async def encode(self, plain: str) -> str: ...

    async def decode(self, token: str) -> str: ...


@dataclass
class Capabilities:
    relayer: bool = False
    public_key: str = ""
    private_key: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "Capabilities":
        return cls(
            relayer=str(headers.get("x-relayer", "")).strip() == "1",
            public_key=headers.get("x-public-key", "") or "",
            private_key=headers.get("x-private-key", "") or "",
        )

    @property
    def has_keys(self) -> bool:
        return bool(self.public_key) and bool(self.private_key)


class RelayerStrategy:
    name = "relayer"

    def __init__(self, gateway: RelayerGateway, caps: Capabilities) -> None:
        self.gateway = gateway
        self.caps = caps

    async def encode(self, plain: str) -> str:
        return await self.gateway.encrypt(plain, self.caps.public_key)

    async def decode(self, token: str) -> str:
        return await self.gateway.decrypt(token, self.caps.private_key)


class FallbackStrategy:
    """Try ``primary``; on any error log it and use ``fallback`` instead."""

    def __init__(self, primary: Strategy, fallback: Strategy) -> None:
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def encode(self, plain: str) -> str:
        try:
            return await self.primary.encode(plain)
        except Exception as exc:
            logger.warning("%s encode failed, using %s: %s", self.primary.name, self.fallback.name, exc)
        return await self.fallback.encode(plain)

    async def decode(self, token: str) -> str:
        try:
            return await self.primary.decode(token)
        except Exception as exc:
            logger.warning("%s decode failed, using %s: %s", self.primary.name, self.fallback.name, exc)
        return await self.fallback.decode(token)


def wants_relayer(caps: Capabilities, gateway: RelayerGateway) -> bool:
    return gateway.available and caps.relayer and caps.has_keys


def select_strategy(caps: Capabilities, gateway: RelayerGateway) -> Strategy:
    codec = Codec()
    if wants_relayer(caps, gateway):
        return FallbackStrategy(RelayerStrategy(gateway, caps), codec)
    return codec


def parse_number(value: Any) -> float:
    """Parse a client-supplied number; raises ValueError unless finite."""
    if isinstance(value, bool):
        raise ValueError("Booleans are not numbers")
    if isinstance(value, str):
        raw: Any = value.strip()
        if not raw or "_" in raw:
            raise ValueError(f"Not a number: {value!r}")
    elif isinstance(value, (int, float)):
        raw = value
    else:
        raise ValueError(f"Not a number: {value!r}")
    try:
        number = float(raw)
    except OverflowError as exc:
        raise ValueError(f"Number out of range: {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def format_number(value: float) -> str:
    """Render like JavaScript's ``String(number)``: ``7``, ``0.00001``, ``1.5e-7``."""
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    mantissa, exp_text = text.split("e")
    exponent = int(exp_text)
    if exponent > 0:
        return f"{mantissa}e+{exponent}"
    if exponent >= -6:
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.{'0' * (-exponent - 1)}{digits}"
    return f"{mantissa}e{exponent}"
