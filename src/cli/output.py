"""
Human-readable trade output for the terminal.
"""

from __future__ import annotations

from typing import Any

from ledger_core.contracts import Fill, Metrics, TradeRecord


def _fmt(value: float | None, places: int = 4) -> str:
    if value is None:
        return "-"
    return f"{value:,.{places}f}".rstrip("0").rstrip(".")


def format_metrics(metrics: Metrics) -> str:
    win = "-" if metrics.win is None else ("yes" if metrics.win else "no")
    lines = [
        f"Status       : {metrics.status.value}",
        f"Position     : {_fmt(metrics.position, 8)}",
        f"Avg entry    : {_fmt(metrics.avg_entry)}",
        f"Avg exit     : {_fmt(metrics.avg_exit)}",
        f"Realized PnL : {_fmt(metrics.realized_pnl)}",
        f"R multiple   : {_fmt(metrics.r_multiple, 2)}",
        f"Win          : {win}",
    ]
    if metrics.last_fill_at:
        lines.append(f"Last fill    : {metrics.last_fill_at}")
    return "\n".join(lines)


def format_fill(fill: Fill) -> str:
    line = f"  {fill.side.value:<3} {fill.t}  base {_fmt(fill.base, 8):>14}  quote {_fmt(fill.quote):>14}  @ {_fmt(fill.price)}"
    if fill.note:
        line += f"  ({fill.note})"
    return line


def format_trade(frontmatter: dict[str, Any], metrics: Metrics) -> str:
    record = TradeRecord.from_frontmatter(frontmatter)
    header = f"--- {frontmatter.get('id', '?')}: {frontmatter.get('pair', '?')} {frontmatter.get('action', '?')} ---"
    parts = [header]
    if record.initial_stop is not None:
        parts.append(f"Initial stop : {_fmt(record.initial_stop)}")
    if record.closed_at:
        parts.append(f"Closed at    : {record.closed_at}")
    parts.append(format_metrics(metrics))
    if record.fills:
        parts.append(f"\nFills ({len(record.fills)}):")
        parts.extend(format_fill(f) for f in record.fills)
    else:
        parts.append("\nNo fills yet.")
    parts.append("---")
    return "\n".join(parts)
