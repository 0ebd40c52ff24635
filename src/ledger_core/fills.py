"""
Fill builder: amount + (price | quote) -> normalized, signed Fill.

Exactly one of price/quote is taken from the caller; the other is derived.
A positive price wins over a supplied quote. No validation happens here:
amount > 0 and quote != 0 are enforced by whoever collects the raw input,
and degenerate input simply produces zero-valued derived fields.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from ledger_core.contracts import Fill, Side
from ledger_core.rounding import round_to
from ledger_core.timestamps import to_iso_utc


def build_fill(
    direction: int,
    side: Side,
    amount: float,
    *,
    price: float | None = None,
    quote: float | None = None,
    when: datetime | None = None,
    note: str | None = None,
    txs: Sequence[str] | None = None,
) -> Fill:
    """Build a Fill for a trade with *direction* (+1 long, -1 short).

    base  = direction x (+1 ENTER / -1 EXIT) x |amount|
    quote = -base x price                      when price > 0
    price = |quote| / |base| (|base| 0 -> 1)   otherwise, when quote != 0
    """
    when = when or datetime.now(timezone.utc)
    base_sign = direction * (1 if side is Side.ENTER else -1)
    base = round_to(base_sign * abs(amount or 0)) or 0.0

    if price is not None and price > 0:
        quote = round_to(-base * price)
    elif quote is not None and quote != 0:
        price = round_to(abs(quote) / abs(base or 1))

    return Fill(
        side=side,
        t=to_iso_utc(when),
        base=base,
        quote=round_to(quote) or 0.0,
        price=round_to(price) or 0.0,
        note=note or None,
        txs=tuple(txs or ()),
    )
