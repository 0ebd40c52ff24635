"""
ledger-core: pure fill-ledger and metrics derivation.

No I/O, no network, no side effects. Builds normalized fills from user
quantities and reduces a whole fill ledger into a Metrics snapshot.
Fully deterministic (apart from ``computed_at``) and unit-testable.
"""

from ledger_core.contracts import (
    Action,
    Fill,
    Metrics,
    Side,
    TradeRecord,
    TradeStatus,
)
from ledger_core.fills import build_fill
from ledger_core.metrics import compute_metrics
from ledger_core.rounding import round_to
from ledger_core.signs import direction_for, expected_quote_sign, normalize_quote

__all__ = [
    "Action",
    "build_fill",
    "compute_metrics",
    "direction_for",
    "expected_quote_sign",
    "Fill",
    "Metrics",
    "normalize_quote",
    "round_to",
    "Side",
    "TradeRecord",
    "TradeStatus",
]
