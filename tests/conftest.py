"""Pytest fixtures: fill ledgers and a temp config for deterministic tests."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from ledger_core.contracts import Fill, Side
from ledger_core.fills import build_fill


def ts(year: int, month: int, day: int, hour: int = 10, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, 0, tzinfo=timezone.utc)


def enter(direction: int, amount: float, price: float, when: datetime) -> Fill:
    return build_fill(direction, Side.ENTER, amount, price=price, when=when)


def exit_(direction: int, amount: float, price: float, when: datetime) -> Fill:
    return build_fill(direction, Side.EXIT, amount, price=price, when=when)


@pytest.fixture
def long_round_trip() -> list[Fill]:
    """Long: enter 2 @ 100, exit 2 @ 120."""
    return [
        enter(1, 2, 100, ts(2023, 2, 1)),
        exit_(1, 2, 120, ts(2023, 2, 2)),
    ]


@pytest.fixture
def short_round_trip() -> list[Fill]:
    """Short: enter 1 @ 100, exit 1 @ 80."""
    return [
        enter(-1, 1, 100, ts(2023, 4, 1)),
        exit_(-1, 1, 80, ts(2023, 4, 1, 20)),
    ]


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Config file pointing notes and journal into tmp_path, with a body template."""
    template = tmp_path / "templates" / "trade-body.md"
    template.parent.mkdir(parents=True)
    template.write_text("## Thesis\n")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
timezone: UTC
notes:
  trades_root: trades
  body_template_path: templates/trade-body.md
journal:
  path: data/journal.jsonl
"""
    )
    return config_path
