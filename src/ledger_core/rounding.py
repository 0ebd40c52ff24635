"""
Deterministic decimal rounding for every derived numeric field.

Ties round toward +infinity (2.5 -> 3, -2.5 -> -2), not half-away-from-zero
and not banker's rounding. Persisted ledgers were written with this rule, so
recomputed values must reproduce it exactly.
"""

from __future__ import annotations

import math
from typing import Any

DEFAULT_PLACES = 10


def round_to(x: Any, places: int = DEFAULT_PLACES) -> float | None:
    """Round *x* to *places* decimals; None for missing or non-finite input."""
    if x is None or isinstance(x, bool):
        return None
    try:
        value = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None

    p = 10.0**places
    scaled = value * p
    if not math.isfinite(scaled):
        return scaled / p

    whole = math.floor(scaled)
    if scaled - whole >= 0.5:
        whole += 1
    # + 0.0 turns -0.0 into 0.0
    return whole / p + 0.0
