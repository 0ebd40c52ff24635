"""
Data contracts for ledger-core: Fill, TradeRecord, Metrics.

ledger-core consumes a TradeRecord (the trade note's frontmatter) and
produces Fill and Metrics values. No I/O; these are plain dataclasses.
Shape checks happen in the ``from_*`` constructors so the engine itself
never has to second-guess its input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from ledger_core.timestamps import to_iso_instant


class Side(str, Enum):
    """Whether a fill adds to (ENTER) or reduces (EXIT) the position."""

    ENTER = "in"
    EXIT = "out"


class Action(str, Enum):
    """Trade-level directional intent."""

    LONG = "long"
    SHORT = "short"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


def coerce_number(value: Any) -> float:
    """Malformed or non-finite numeric fields count as 0."""
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) else 0.0


def optional_number(value: Any) -> float | None:
    """Like coerce_number, but anything unusable means 'absent'."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def parse_action(value: Any) -> Action | None:
    if isinstance(value, Action):
        return value
    try:
        return Action(str(value).strip().lower())
    except ValueError:
        return None


def parse_side(value: Any) -> Side:
    """Missing side means ENTER; anything other than 'in' is an EXIT."""
    if isinstance(value, Side):
        return value
    if value is None or value == "" or value == Side.ENTER.value:
        return Side.ENTER
    return Side.EXIT


def _coerce_timestamp(value: Any) -> str:
    # YAML loaders turn unquoted timestamps into datetimes
    if isinstance(value, datetime):
        return to_iso_instant(value)
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class Fill:
    """One atomic execution event. Immutable once built.

    base:  signed asset quantity (direction x +1 ENTER / -1 EXIT)
    quote: signed settlement-currency delta, opposite sign to base
    price: abs(quote) / abs(base)
    t:     canonical UTC string, e.g. 2023-02-01T10:00:00.000Z
    """

    side: Side
    t: str
    base: float
    quote: float
    price: float
    note: str | None = None
    txs: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Fill:
        txs = raw.get("txs")
        return cls(
            side=parse_side(raw.get("side")),
            t=_coerce_timestamp(raw.get("t")),
            base=coerce_number(raw.get("base")),
            quote=coerce_number(raw.get("quote")),
            price=coerce_number(raw.get("price")),
            note=str(raw["note"]) if raw.get("note") else None,
            txs=tuple(str(x) for x in txs) if isinstance(txs, (list, tuple)) else (),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "side": self.side.value,
            "t": self.t,
            "base": self.base,
            "quote": self.quote,
            "price": self.price,
        }
        if self.note:
            out["note"] = self.note
        if self.txs:
            out["txs"] = list(self.txs)
        return out


@dataclass(frozen=True)
class TradeRecord:
    """The aggregate the metrics engine consumes. Fill order is insertion order."""

    action: Action | None = None
    initial_stop: float | None = None
    closed_at: str | None = None
    fills: tuple[Fill, ...] = ()

    @classmethod
    def from_frontmatter(cls, fm: Mapping[str, Any] | None) -> TradeRecord:
        """Build from a note's frontmatter. Never raises on shape problems."""
        if not isinstance(fm, Mapping):
            return cls()
        raw_fills = fm.get("fills")
        fills: tuple[Fill, ...] = ()
        if isinstance(raw_fills, (list, tuple)):
            fills = tuple(Fill.from_dict(f) for f in raw_fills if isinstance(f, Mapping))
        closed_at = fm.get("closed_at")
        return cls(
            action=parse_action(fm.get("action")),
            initial_stop=optional_number(fm.get("initial_stop")),
            closed_at=str(closed_at) if closed_at else None,
            fills=fills,
        )


@dataclass(frozen=True)
class Metrics:
    """Derived snapshot; replaced wholesale on every recompute, never patched.

    ``computed_at`` is a freshness marker and is excluded from equality, so
    two computations over the same record compare equal. The empty-ledger
    snapshot carries neither ``last_fill_at`` nor ``computed_at``.
    """

    status: TradeStatus
    position: float | None = None
    avg_entry: float | None = None
    avg_exit: float | None = None
    realized_pnl: float | None = None
    r_multiple: float | None = None
    win: bool | None = None
    last_fill_at: str | None = None
    computed_at: datetime | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "status": self.status.value,
            "position": self.position,
            "avg_entry": self.avg_entry,
            "avg_exit": self.avg_exit,
            "realized_pnl": self.realized_pnl,
            "r_multiple": self.r_multiple,
            "win": self.win,
        }
        if self.computed_at is not None:
            out["last_fill_at"] = self.last_fill_at
            out["computed_at"] = to_iso_instant(self.computed_at)
        return out
