"""
Raw user input -> typed values, and the rejections that happen before a
Fill is ever built. The engine itself never validates; this is the one
place where bad input is refused.
"""

from __future__ import annotations

import math
import re


class InputError(ValueError):
    """Raw input rejected at the boundary (e.g. amount <= 0)."""


_NUM_NOISE = re.compile(r"[ ,]")
_PAIR_SPLIT = re.compile(r"[/:-]")
_TAG_SPLIT = re.compile(r"[\s,]+")


def parse_num(text: str | float | int | None) -> float:
    """'1,250.5' -> 1250.5. Empty or unparsable input gives nan."""
    if text is None:
        return math.nan
    cleaned = _NUM_NOISE.sub("", str(text))
    if not cleaned:
        return math.nan
    try:
        n = float(cleaned)
    except ValueError:
        return math.nan
    return n if math.isfinite(n) else math.nan


def parse_pair(text: str | None) -> tuple[str, str]:
    """'hype/usdt' -> ('HYPE', 'USDT'); 'BTCUSDT' -> ('BTC', 'USDT'); 'ETH' -> ('ETH', 'USDT')."""
    raw = re.sub(r"\s+", "", (text or "").upper())
    if not raw:
        return "", ""
    parts = _PAIR_SPLIT.split(raw)
    if len(parts) >= 2:
        return parts[0], parts[1]
    if raw.endswith("USDT"):
        return raw[: -len("USDT")], "USDT"
    return raw, "USDT"


def parse_tags(text: str | None) -> list[str]:
    tags = (t.lstrip("#").strip() for t in _TAG_SPLIT.split(text or ""))
    return [t for t in tags if t]


def require_positive(value: float, label: str) -> float:
    if not math.isfinite(value) or value <= 0:
        raise InputError(f"{label} must be > 0")
    return value


def require_nonzero(value: float, label: str) -> float:
    if not math.isfinite(value) or value == 0:
        raise InputError(f"{label} must be non-zero")
    return value
