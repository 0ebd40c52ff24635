"""
Trade-note store: one markdown file per trade, ledger in YAML frontmatter.

Layout::

    <trades_root>/<YYYY>/T-20230201-1000-BTCUSDT-long.md

    ---
    id: T-20230201-1000-BTCUSDT-long
    schema_version: 2
    fills: [...]
    metrics: {...}
    ---
    <body from template>

Every mutation is read-modify-write of the frontmatter followed by a full
metrics recompute; the stored ``metrics`` block is replaced, never merged.
This is the boundary where raw input gets rejected, so it raises
InputError / NoteError where ledger-core would silently degrade.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable

import yaml

from config.loader import DEFAULT_FILENAME_PATTERN
from journal.writer import JournalWriter
from ledger_core.contracts import Fill, Metrics, Side, TradeRecord, parse_action
from ledger_core.fills import build_fill
from ledger_core.inputs import parse_pair, require_nonzero, require_positive
from ledger_core.metrics import compute_metrics
from ledger_core.signs import direction_for, normalize_quote
from ledger_core.timestamps import to_iso_utc

logger = logging.getLogger("ledger.notes")

SCHEMA_VERSION = 2
FENCE = "---"
FLAT_EPSILON = 1e-12


class NoteError(Exception):
    """A trade note is unreadable or cannot accept the requested change."""


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a note into (frontmatter, body). A note without a fence has no frontmatter."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != FENCE:
        return {}, text
    for i in range(1, len(lines)):
        if lines[i].rstrip("\r\n") == FENCE:
            try:
                data = yaml.safe_load("".join(lines[1:i]))
            except yaml.YAMLError as exc:
                raise NoteError(f"Frontmatter is not valid YAML: {exc}") from exc
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise NoteError(f"Frontmatter must be a YAML mapping, got {type(data).__name__}")
            return data, "".join(lines[i + 1 :])
    raise NoteError("Frontmatter fence is not closed")


def render_note(frontmatter: dict[str, Any], body: str) -> str:
    dumped = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"{FENCE}\n{dumped}{FENCE}\n{body}"


def render_filename(pattern: str, when: datetime, pair_flat: str, action: str) -> str:
    """Expand ${YYYY} ${MM} ${DD} ${HH} ${mm} ${PAIR} ${ACTION} (UTC)."""
    stamp = to_iso_utc(when)
    tokens = {
        "${YYYY}": stamp[0:4],
        "${MM}": stamp[5:7],
        "${DD}": stamp[8:10],
        "${HH}": stamp[11:13],
        "${mm}": stamp[14:16],
        "${PAIR}": pair_flat,
        "${ACTION}": action,
    }
    out = pattern
    for token, value in tokens.items():
        out = out.replace(token, value)
    return out


def is_trade_file(path: str | Path, root: str | Path | None = None) -> bool:
    p = Path(path)
    if p.suffix != ".md" or not p.name.startswith("T-"):
        return False
    if root is None:
        return True
    return Path(root).resolve() in p.resolve().parents


def open_position(frontmatter: dict[str, Any]) -> float:
    """Signed sum of every fill's base."""
    return sum(f.base for f in TradeRecord.from_frontmatter(frontmatter).fills)


class TradeNoteStore:
    """File-backed trade notes under a single trades root."""

    def __init__(
        self,
        trades_root: str | Path,
        *,
        filename_pattern: str = DEFAULT_FILENAME_PATTERN,
        body_template_path: str | Path | None = None,
        journal: JournalWriter | None = None,
    ) -> None:
        self._root = Path(trades_root)
        self._pattern = filename_pattern
        self._template = Path(body_template_path) if body_template_path else None
        self._journal = journal

    @property
    def root(self) -> Path:
        return self._root

    # ---------- raw access ----------

    def read(self, path: str | Path) -> tuple[dict[str, Any], str]:
        p = Path(path)
        if not p.exists():
            raise NoteError(f"Trade note not found: {p}")
        return split_frontmatter(p.read_text(encoding="utf-8"))

    def write(self, path: str | Path, frontmatter: dict[str, Any], body: str) -> None:
        Path(path).write_text(render_note(frontmatter, body), encoding="utf-8")

    def update(self, path: str | Path, mutate: Callable[[dict[str, Any]], None]) -> Metrics:
        """Apply *mutate* to the frontmatter in place, recompute metrics, write back."""
        fm, body = self.read(path)
        mutate(fm)
        metrics = compute_metrics(fm)
        fm["metrics"] = metrics.to_dict()
        self.write(path, fm, body)
        return metrics

    def persist_metrics(self, path: str | Path) -> Metrics:
        """Recompute the stored snapshot from the full ledger."""
        fm, _ = self.read(path)
        metrics = self.update(path, lambda _: None)
        if self._journal:
            self._journal.metrics_recomputed(_trade_id(fm, path), metrics)
        return metrics

    # ---------- trade lifecycle ----------

    def create_trade(
        self,
        pair: str,
        action: str,
        amount: float,
        allocation: float,
        *,
        when: datetime,
        tags: Iterable[str] = (),
        account: str = "",
        initial_stop: float | None = None,
    ) -> Path:
        """Create a new trade note with its opening ENTER fill."""
        base_sym, quote_sym = parse_pair(pair)
        if not base_sym:
            raise NoteError("Pair is required")
        parsed_action = parse_action(action)
        if parsed_action is None:
            raise NoteError(f"Action must be long or short, got {action!r}")
        require_positive(amount, "Amount")
        require_positive(allocation, "Allocation")

        trade_id = render_filename(self._pattern, when, f"{base_sym}{quote_sym}", parsed_action.value)
        folder = self._root / to_iso_utc(when)[0:4]
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"{trade_id}.md"
        suffix = 1
        while path.exists():
            path = folder / f"{trade_id}-{suffix}.md"
            suffix += 1

        first = build_fill(
            direction_for(parsed_action),
            Side.ENTER,
            amount,
            price=allocation / amount,
            when=when,
        )
        fm: dict[str, Any] = {
            "id": trade_id,
            "schema_version": SCHEMA_VERSION,
            "timestamp": to_iso_utc(when),
            "pair": f"{base_sym}/{quote_sym}",
            "action": parsed_action.value,
            "lesson": "",
            "tags": list(tags),
            "quote": quote_sym,
            "fills": [first.to_dict()],
        }
        if account:
            fm["account"] = account
        if initial_stop is not None:
            fm["initial_stop"] = initial_stop
        fm["metrics"] = compute_metrics(fm).to_dict()

        self.write(path, fm, "\n" + self._read_template())
        logger.info("Trade created: %s", path)
        if self._journal:
            self._journal.trade_created(trade_id, path, fm["pair"], parsed_action.value, fill=first)
        return path

    def add_fill(
        self,
        path: str | Path,
        side: Side,
        amount: float,
        quote: float,
        *,
        when: datetime,
        note: str = "",
    ) -> tuple[Fill, bool]:
        """Append a fill given amount + signed quote delta.

        Returns (fill, quote_adjusted); the quote sign is forced to match the
        trade direction and side.
        """
        fm, _ = self.read(path)
        if fm.get("closed_at"):
            raise NoteError("Trade is already closed.")
        require_positive(amount, "Amount")
        require_nonzero(quote, "Quote")

        direction = direction_for(fm.get("action"))
        signed, adjusted = normalize_quote(quote, direction, side)
        if adjusted:
            logger.info("Adjusted quote: %s -> %s", quote, signed)
        fill = build_fill(direction, side, amount, quote=signed, when=when, note=note)
        self.update(path, lambda f: _append_fill(f, fill))
        if self._journal:
            self._journal.fill_added(_trade_id(fm, path), fill, quote_adjusted=adjusted)
        return fill, adjusted

    def close_trade(
        self,
        path: str | Path,
        *,
        when: datetime,
        price: float | None = None,
        quote: float | None = None,
        note: str = "",
    ) -> tuple[Fill, bool]:
        """Exit the whole open position at *price* or for a *quote* delta and mark closed.

        Returns (fill, quote_adjusted).
        """
        fm, _ = self.read(path)
        position = open_position(fm)
        if abs(position) < FLAT_EPSILON:
            raise NoteError("Already flat.")

        direction = direction_for(fm.get("action"))
        adjusted = False
        if price is not None:
            require_positive(price, "Price")
            fill = build_fill(direction, Side.EXIT, abs(position), price=price, when=when, note=note)
        elif quote is not None:
            require_nonzero(quote, "Quote")
            signed, adjusted = normalize_quote(quote, direction, Side.EXIT)
            if adjusted:
                logger.info("Adjusted exit quote: %s -> %s", quote, signed)
            fill = build_fill(direction, Side.EXIT, abs(position), quote=signed, when=when, note=note)
        else:
            raise NoteError("Closing a trade needs an exit price or quote.")

        closed_at = to_iso_utc(when)

        def _close(f: dict[str, Any]) -> None:
            _append_fill(f, fill)
            f["closed_at"] = closed_at

        self.update(path, _close)
        if self._journal:
            self._journal.trade_closed(_trade_id(fm, path), fill, closed_at)
        return fill, adjusted

    # ---------- bulk ----------

    def list_trade_files(self, folder: str | Path | None = None) -> list[Path]:
        base = Path(folder) if folder else self._root
        if not base.exists():
            return []
        return sorted(p for p in base.rglob("T-*.md") if is_trade_file(p))

    def recompute_folder(self, folder: str | Path | None = None) -> tuple[int, int]:
        """Recompute metrics for every v2 trade with fills. Returns (updated, total)."""
        updated = total = 0
        for path in self.list_trade_files(folder):
            total += 1
            try:
                fm, _ = self.read(path)
            except NoteError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            fills = fm.get("fills")
            if fm.get("schema_version") != SCHEMA_VERSION or not isinstance(fills, list) or not fills:
                continue
            self.persist_metrics(path)
            updated += 1
        logger.info("Recomputed metrics: %d/%d", updated, total)
        return updated, total

    def _read_template(self) -> str:
        if self._template is None:
            return ""
        try:
            return self._template.read_text(encoding="utf-8")
        except OSError:
            logger.warning("Couldn't find trade template at %s", self._template)
            return ""


def _append_fill(fm: dict[str, Any], fill: Fill) -> None:
    if not isinstance(fm.get("fills"), list):
        fm["fills"] = []
    fm["fills"].append(fill.to_dict())


def _trade_id(fm: dict[str, Any], path: str | Path) -> str:
    return str(fm.get("id") or Path(path).stem)
