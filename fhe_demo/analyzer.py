from __future__ import annotations

import json
import re
from collections import Counter
from typing import Any


LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")
# Letters and digits of any script; \w minus underscore.
TOKEN_RE = re.compile(r"[^\W_]+")

TOP_WORDS = 5
MIN_WORD_LEN = 2
JSON_ARRAY_SAMPLE = 3
JSON_KEY_SAMPLE = 10
CSV_MAX_HEADERS = 20

# English + Turkish function words.
STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "with", "as", "is", "are",
        "be", "this", "that", "it", "at", "by", "from", "was", "were", "will", "can", "could",
        "should", "than", "then", "there", "here", "have", "has", "had", "not", "no", "yes",
        "you", "your", "we", "our", "they", "their", "i", "me", "my",
        "ve", "veya", "bir", "bu", "şu", "o", "için", "ile", "da", "de", "mi", "mı", "mu", "mü",
        "ama", "fakat", "ki", "ya", "yada", "her", "çok", "az", "en", "sen", "ben", "biz", "siz",
        "onlar",
    }
)

# Order matters: earlier delimiters win ties.
CSV_DELIMITERS = ((",", ","), (";", ";"), ("\t", "tab"))
ARRAY_INDEX_RE = re.compile(r"0|[1-9][0-9]*")
MAX_ARRAY_INDEX = 2**32 - 2


def code_unit_length(text: str) -> int:
    """Length in UTF-16 code units, the way browser clients count characters."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def split_lines(text: str) -> list[str]:
    if not text:
        return []
    return LINE_SPLIT_RE.split(text)


def tokenize(text: str) -> list[str]:
    return TOKEN_RE.findall(text.lower())


def top_words(tokens: list[str], limit: int = TOP_WORDS) -> list[dict[str, Any]]:
    counts = Counter(t for t in tokens if len(t) >= MIN_WORD_LEN and t not in STOPWORDS)
    # most_common() is a stable sort over insertion order, so ties keep first occurrence.
    return [{"word": word, "count": count} for word, count in counts.most_common(limit)]


def js_key_order(obj: dict[str, Any]) -> list[str]:
    """Key order of JavaScript objects: array-index keys ascending, then insertion order."""
    indexes = sorted(
        (k for k in obj if ARRAY_INDEX_RE.fullmatch(k) and len(k) <= 10 and int(k) <= MAX_ARRAY_INDEX),
        key=int,
    )
    seen = set(indexes)
    return indexes + [k for k in obj if k not in seen]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def summarize_json(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return None
    if isinstance(parsed, list):
        return {"type": "array", "length": len(parsed), "sample": parsed[:JSON_ARRAY_SAMPLE]}
    if isinstance(parsed, dict):
        keys = js_key_order(parsed)
        return {"type": "object", "keysCount": len(keys), "sampleKeys": keys[:JSON_KEY_SAMPLE]}
    return None


def summarize_csv(lines: list[str]) -> dict[str, Any] | None:
    if not lines:
        return None
    first = lines[0]
    best: tuple[str, str] | None = None
    best_count = 0
    for char, label in CSV_DELIMITERS:
        count = first.count(char)
        if count > best_count:
            best, best_count = (char, label), count
    if best is None:
        return None
    char, label = best
    headers = [h.strip() for h in first.split(char)]
    return {
        "delimiter": label,
        "columns": len(headers),
        "headers": headers[:CSV_MAX_HEADERS],
        "rows": max(len(lines) - 1, 0),
    }


def analyze_text(text: str) -> dict[str, Any]:
    lines = split_lines(text)
    tokens = tokenize(text)

    json_summary = summarize_json(text)
    csv_summary = None if json_summary is not None else summarize_csv(lines)

    return {
        "meta": {
            "characters": code_unit_length(text),
            "words": len(tokens),
            "lines": len(lines),
        },
        "topWords": top_words(tokens),
        "json": json_summary,
        "csv": csv_summary,
    }
