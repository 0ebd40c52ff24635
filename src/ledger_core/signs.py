"""
Sign convention for quote-currency deltas.

Entering a long pays quote out (negative), exiting receives it (positive);
a short is the mirror image.
"""

from __future__ import annotations

from ledger_core.contracts import Action, Side, parse_action


def direction_for(action: Action | str | None) -> int:
    """+1 for long, -1 for short. Anything else is treated as long."""
    return -1 if parse_action(action) is Action.SHORT else 1


def expected_quote_sign(direction: int, side: Side) -> int:
    return -direction if side is Side.ENTER else direction


def normalize_quote(raw: float, direction: int, side: Side) -> tuple[float, bool]:
    """Force *raw* onto the expected sign, keeping its magnitude.

    Returns (quote, adjusted). ``adjusted`` is True when the caller's sign
    disagreed and should be reported back to the user.
    """
    expected = expected_quote_sign(direction, side)
    quote = abs(raw) * expected
    actual = (raw > 0) - (raw < 0)
    return quote, actual != expected
