from __future__ import annotations

import json
import logging
import math
import os
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .analyzer import analyze_text
from .codec import DecodeError
from .dispatch import (
    Capabilities,
    RequestError,
    Strategy,
    format_number,
    parse_number,
    select_strategy,
    wants_relayer,
)
from .features import reduce_features
from .relayer import DEFAULT_ENDPOINT, GatewayError, RelayerGateway


logger = logging.getLogger(__name__)

RELAYER_ENDPOINT = os.getenv("FHE_RELAYER_ENDPOINT") or os.getenv("RELAYER_ENDPOINT") or DEFAULT_ENDPOINT
RELAYER_ENABLED = os.getenv("FHE_RELAYER_ENABLED", "1").lower() not in {"0", "false", "no"}
RELAYER_TIMEOUT = float(os.getenv("FHE_RELAYER_TIMEOUT", "10"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGIN", "http://localhost:3000").split(",") if o.strip()]
MAX_PAYLOAD_CHARS = int(os.getenv("FHE_MAX_PAYLOAD_CHARS", str(10_000_000)))

gateway = RelayerGateway(endpoint=RELAYER_ENDPOINT, enabled=RELAYER_ENABLED, timeout=RELAYER_TIMEOUT)

app = FastAPI(title="FHE Text Analytics Demo", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class DataRequest(BaseModel):
    data: Any = None


class FeaturesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    features: Any = None
    encrypted_features: Any = Field(default=None, alias="encryptedFeatures")


class SumArrayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    numbers: Any = None
    enc_items: Any = Field(default=None, alias="encItems")


class AddRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enc_a: Any = Field(default=None, alias="encA")
    enc_b: Any = Field(default=None, alias="encB")
    a: Any = None
    b: Any = None


@app.exception_handler(RequestError)
async def request_error_handler(request: Request, exc: RequestError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def _strategy_for(request: Request) -> Strategy:
    caps = Capabilities.from_headers(request.headers)
    if caps.relayer:
        await gateway.ensure()
    return select_strategy(caps, gateway)


def _check_size(token: str) -> None:
    if len(token) > MAX_PAYLOAD_CHARS:
        raise RequestError(f"Payload exceeds {MAX_PAYLOAD_CHARS} characters", status_code=413)


def _dump(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"))


async def _decode_or_empty(strategy: Strategy, token: Any) -> str:
    if not isinstance(token, str):
        return ""
    _check_size(token)
    try:
        return await strategy.decode(token)
    except DecodeError:
        return ""


@app.get("/health")
def health() -> dict[str, object]:
    return {"ok": True}


@app.get("/relayer-status")
async def relayer_status() -> dict[str, object]:
    await gateway.ensure(recheck=True)
    return gateway.status().as_dict()


@app.post("/relayer-selfcheck")
async def relayer_selfcheck(request: Request) -> JSONResponse:
    caps = Capabilities.from_headers(request.headers)
    await gateway.ensure()
    if not gateway.available:
        return JSONResponse(status_code=503, content={"ok": False, "error": "Relayer unavailable"})
    if not caps.has_keys:
        return JSONResponse(status_code=400, content={"ok": False, "error": "Missing keys"})
    try:
        ok = await gateway.self_check(caps.public_key, caps.private_key)
    except GatewayError as exc:
        logger.warning("Relayer self-check failed: %s", exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Relayer roundtrip failed"})
    return JSONResponse(content={"ok": ok})


@app.post("/api/upload")
async def upload(req: DataRequest, request: Request) -> dict[str, object]:
    if not isinstance(req.data, str):
        raise RequestError("Missing data")
    _check_size(req.data)
    caps = Capabilities.from_headers(request.headers)
    if caps.relayer:
        await gateway.ensure()
    if wants_relayer(caps, gateway):
        # Connectivity check only; the payload is not stored.
        try:
            await gateway.decrypt(req.data, caps.private_key)
        except GatewayError as exc:
            logger.info("Relayer decrypt on upload failed: %s", exc)
    return {"message": "Encrypted data received."}


@app.post("/api/analyze")
async def analyze(req: DataRequest, request: Request) -> dict[str, object]:
    strategy = await _strategy_for(request)
    plain = await _decode_or_empty(strategy, req.data)
    result = analyze_text(plain)
    logger.debug("Analyzed %d characters via %s", result["meta"]["characters"], strategy.name)
    return {"result": await strategy.encode(_dump(result))}


@app.post("/api/analyze-features")
async def analyze_features(req: FeaturesRequest, request: Request) -> dict[str, object]:
    strategy = await _strategy_for(request)

    feats = req.features
    if feats is None and req.encrypted_features is not None:
        if not isinstance(req.encrypted_features, str):
            raise RequestError("Invalid encryptedFeatures payload")
        _check_size(req.encrypted_features)
        try:
            feats = json.loads(await strategy.decode(req.encrypted_features))
        except ValueError as exc:
            raise RequestError("Invalid encryptedFeatures payload") from exc

    if not isinstance(feats, dict):
        raise RequestError("Missing features object")

    return {"result": await strategy.encode(_dump(reduce_features(feats)))}


@app.post("/api/sum-array")
async def sum_array(req: SumArrayRequest, request: Request) -> dict[str, object]:
    strategy = await _strategy_for(request)

    values = req.numbers
    if values is None and isinstance(req.enc_items, list):
        decoded: list[float] = []
        for item in req.enc_items:
            if not isinstance(item, str):
                raise RequestError("Invalid encItems entry")
            _check_size(item)
            try:
                decoded.append(parse_number(await strategy.decode(item)))
            except ValueError as exc:
                raise RequestError("Invalid encItems payload") from exc
        values = decoded

    if not isinstance(values, list):
        raise RequestError("Missing numbers array")
    try:
        total = sum(parse_number(v) for v in values)
    except ValueError as exc:
        raise RequestError("numbers must contain only finite numbers") from exc
    if not math.isfinite(total):
        raise RequestError("Sum is not a finite number")

    return {"result": await strategy.encode(format_number(float(total)))}


@app.post("/api/add")
async def add(req: AddRequest, request: Request) -> dict[str, object]:
    strategy = await _strategy_for(request)

    if isinstance(req.enc_a, str) and isinstance(req.enc_b, str):
        _check_size(req.enc_a)
        _check_size(req.enc_b)
        try:
            raw_a = await strategy.decode(req.enc_a)
            raw_b = await strategy.decode(req.enc_b)
        except DecodeError as exc:
            raise RequestError("Invalid input") from exc
    else:
        raw_a, raw_b = req.a, req.b

    try:
        total = parse_number(raw_a) + parse_number(raw_b)
    except ValueError as exc:
        raise RequestError("Inputs must be numbers") from exc
    if not math.isfinite(total):
        raise RequestError("Sum is not a finite number")

    return {"result": await strategy.encode(format_number(total))}
