"""
Event journal: append-only JSON lines. One line per ledger change.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    if hasattr(obj, "to_dict"):
        return _serialize(obj.to_dict())
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def trade_created(self, trade_id: str, path: str | Path, pair: str, action: str, **extra: Any) -> None:
        self._write("trade_created", {"trade_id": trade_id, "path": path, "pair": pair, "action": action, **extra})

    def fill_added(self, trade_id: str, fill: Any, quote_adjusted: bool = False, **extra: Any) -> None:
        self._write("fill_added", {"trade_id": trade_id, "fill": fill, "quote_adjusted": quote_adjusted, **extra})

    def trade_closed(self, trade_id: str, fill: Any, closed_at: str, **extra: Any) -> None:
        self._write("trade_closed", {"trade_id": trade_id, "fill": fill, "closed_at": closed_at, **extra})

    def metrics_recomputed(self, trade_id: str, metrics: Any, **extra: Any) -> None:
        self._write("metrics_recomputed", {"trade_id": trade_id, "metrics": metrics, **extra})
