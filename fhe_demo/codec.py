from __future__ import annotations

import base64
import binascii


class DecodeError(ValueError):
    """Raised when a token is not base64-encoded UTF-8."""


def well_formed(text: str) -> str:
    """Replace lone surrogates with U+FFFD, as a browser does before UTF-8 encoding."""
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def encode(plain: str) -> str:
    return base64.b64encode(well_formed(plain).encode("utf-8")).decode("ascii")


def encode_bytes(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode(token: str) -> str:
    if not isinstance(token, str):
        raise DecodeError(f"Token must be a string, got {type(token).__name__}")
    try:
        raw = base64.b64decode(token.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 token: {exc}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError("Token does not contain UTF-8 text") from exc


class Codec:
    """Local demo strategy: base64 over UTF-8, no keys involved."""

    name = "codec"

    async def encode(self, plain: str) -> str:
        return encode(plain)

    async def decode(self, token: str) -> str:
        return decode(token)
