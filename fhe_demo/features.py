from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


CENTS = Decimal("0.01")


def coerce_count(value: Any) -> int | float:
    """Best-effort numeric coercion; anything unusable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        raw: Any = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        return 0
    try:
        number = float(raw)
    except (ValueError, OverflowError):
        return 0
    if not math.isfinite(number):
        return 0
    if number.is_integer():
        return int(number)
    return number


def round_half_up(value: float, places: Decimal = CENTS) -> float:
    """Round the exact binary value half away from zero, as Number#toFixed does."""
    # toFixed leaves magnitudes of 1e21 and up untouched.
    if abs(value) >= 1e21:
        return value
    return float(Decimal(value).quantize(places, rounding=ROUND_HALF_UP))


def _ratio(numerator: float, denominator: float) -> float | None:
    if denominator <= 0:
        return None
    try:
        value = numerator / denominator
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return round_half_up(value)


def reduce_features(features: dict[str, Any]) -> dict[str, Any]:
    characters = coerce_count(features.get("characters"))
    words = coerce_count(features.get("words"))
    lines = coerce_count(features.get("lines"))
    hist = features.get("wordLenHist")

    return {
        "derived": {
            "wordsPerLine": _ratio(words, lines),
            "charsPerLine": _ratio(characters, lines),
            "avgWordLen": _ratio(characters, max(words, 1)) if words > 0 else None,
        },
        "echo": {"characters": characters, "words": words, "lines": lines},
        "histogram": hist if isinstance(hist, dict) else None,
    }
