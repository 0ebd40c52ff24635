"""
Metrics engine: full fill ledger -> Metrics snapshot.

Always a reduction over the entire ledger; there is no incremental state,
so the result depends only on the record passed in (plus the wall clock
for ``computed_at``). Total over its input: malformed data degrades to
None/0, never to an exception.

Realized PnL:
    diff = |out_quote| - avg_entry x exited_units
    pnl  = direction x diff
where direction comes from the trade's explicit action when present and
is otherwise inferred from the sign of the accumulated entry base (a
lower-confidence guess). Dropping the direction factor gives wrong-signed
PnL for shorts; test_metrics pins the short-trade sign.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from ledger_core.contracts import Action, Metrics, Side, TradeRecord, TradeStatus
from ledger_core.rounding import round_to
from ledger_core.timestamps import parse_instant, to_iso_instant


@dataclass(frozen=True)
class LedgerTotals:
    """Signed sums of base/quote per fill side."""

    in_base: float = 0.0
    in_quote: float = 0.0
    out_base: float = 0.0
    out_quote: float = 0.0


def accumulate(record: TradeRecord) -> LedgerTotals:
    in_base = in_quote = out_base = out_quote = 0.0
    for fill in record.fills:
        if fill.side is Side.ENTER:
            in_base += fill.base
            in_quote += fill.quote
        else:
            out_base += fill.base
            out_quote += fill.quote
    return LedgerTotals(in_base, in_quote, out_base, out_quote)


def trade_direction(record: TradeRecord, in_base: float) -> tuple[int, bool]:
    """Return (direction, inferred).

    ``inferred`` is True when no explicit action was set and the direction
    was read off the sign of the entry base.
    """
    if record.action is Action.SHORT:
        return -1, False
    if record.action is Action.LONG:
        return 1, False
    return (-1 if in_base < 0 else 1), True


def last_fill_at(record: TradeRecord) -> str | None:
    """Latest parseable fill timestamp; unparsable ones are skipped."""
    latest: datetime | None = None
    for fill in record.fills:
        ts = parse_instant(fill.t)
        if ts is not None and (latest is None or ts > latest):
            latest = ts
    return to_iso_instant(latest) if latest is not None else None


def compute_metrics(
    record: TradeRecord | Mapping[str, Any] | None,
    *,
    now: datetime | None = None,
) -> Metrics:
    """Reduce a trade's fills into a fresh Metrics snapshot.

    *record* may be a TradeRecord or raw frontmatter; the latter is
    converted with ``TradeRecord.from_frontmatter``. *now* overrides the
    ``computed_at`` clock.
    """
    if not isinstance(record, TradeRecord):
        record = TradeRecord.from_frontmatter(record)

    if not record.fills:
        return Metrics(status=TradeStatus.OPEN)

    totals = accumulate(record)
    avg_entry = abs(totals.in_quote) / abs(totals.in_base) if totals.in_base else None
    avg_exit = abs(totals.out_quote) / abs(totals.out_base) if totals.out_base else None
    position = round_to(totals.in_base + totals.out_base)
    exited_units = abs(totals.out_base)

    realized: float | None = None
    if exited_units and avg_entry is not None:
        diff = abs(totals.out_quote) - avg_entry * exited_units
        direction, _ = trade_direction(record, totals.in_base)
        realized = round_to(direction * diff)

    closed = position == 0 or bool(record.closed_at)
    status = TradeStatus.CLOSED if closed else TradeStatus.OPEN

    r_multiple: float | None = None
    if record.initial_stop is not None and avg_entry is not None and exited_units:
        risk_per_unit = abs(avg_entry - record.initial_stop)
        if risk_per_unit > 0:
            r_multiple = round_to((realized or 0.0) / (risk_per_unit * exited_units))

    return Metrics(
        status=status,
        position=position,
        avg_entry=round_to(avg_entry),
        avg_exit=round_to(avg_exit),
        realized_pnl=realized,
        r_multiple=r_multiple,
        win=realized > 0 if realized is not None else None,
        last_fill_at=last_fill_at(record),
        computed_at=now or datetime.now(timezone.utc),
    )
