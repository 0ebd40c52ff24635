"""Tests for the metrics engine: aggregation, direction, status, R-multiple, totality."""

import dataclasses
from datetime import datetime, timezone

import pytest

from conftest import enter, exit_, ts
from ledger_core.contracts import Action, Fill, Metrics, TradeRecord, TradeStatus
from ledger_core.metrics import compute_metrics, trade_direction


def _record(fills: list[Fill], **kwargs: object) -> TradeRecord:
    return TradeRecord(fills=tuple(fills), **kwargs)  # type: ignore[arg-type]


class TestEmptyLedger:
    def test_no_fills(self) -> None:
        m = compute_metrics({})
        assert m.status is TradeStatus.OPEN
        assert m.position is None
        assert m.avg_entry is None
        assert m.avg_exit is None
        assert m.realized_pnl is None
        assert m.r_multiple is None
        assert m.win is None

    def test_empty_snapshot_omits_timestamps(self) -> None:
        d = compute_metrics({}).to_dict()
        assert "last_fill_at" not in d
        assert "computed_at" not in d
        assert d["status"] == "open"

    @pytest.mark.parametrize("fm", [None, {"fills": "garbage"}, {"fills": [1, "x"]}, "not a mapping"])
    def test_malformed_shapes_are_empty(self, fm: object) -> None:
        assert compute_metrics(fm) == Metrics(status=TradeStatus.OPEN)  # type: ignore[arg-type]


class TestLongTrades:
    def test_single_entry_stays_open(self) -> None:
        entry = enter(1, 2, 100, ts(2023, 1, 1, 0))
        m = compute_metrics(_record([entry]))
        assert m.status is TradeStatus.OPEN
        assert m.position == 2
        assert m.avg_entry == 100
        assert m.avg_exit is None
        assert m.realized_pnl is None
        assert m.win is None
        assert m.last_fill_at == entry.t
        assert m.computed_at is not None

    def test_closed_with_profit(self, long_round_trip: list[Fill]) -> None:
        m = compute_metrics(_record(long_round_trip))
        assert m.status is TradeStatus.CLOSED
        assert m.position == 0
        assert m.avg_entry == 100
        assert m.avg_exit == 120
        assert m.realized_pnl == 40
        assert m.win is True
        assert m.last_fill_at == long_round_trip[1].t

    def test_closed_with_loss(self) -> None:
        fills = [enter(1, 1, 200, ts(2023, 3, 1)), exit_(1, 1, 180, ts(2023, 3, 2))]
        m = compute_metrics(_record(fills))
        assert m.realized_pnl == -20
        assert m.win is False

    def test_partial_exit_stays_open(self) -> None:
        fills = [enter(1, 3, 100, ts(2023, 7, 1)), exit_(1, 1, 120, ts(2023, 7, 2))]
        m = compute_metrics(_record(fills))
        assert m.status is TradeStatus.OPEN
        assert m.position == 2
        assert m.realized_pnl == 20
        assert m.win is True

    def test_scaled_entries_average(self) -> None:
        fills = [
            enter(1, 1, 100, ts(2023, 7, 1)),
            enter(1, 1, 110, ts(2023, 7, 2)),
            exit_(1, 2, 120, ts(2023, 7, 3)),
        ]
        m = compute_metrics(_record(fills))
        assert m.avg_entry == 105
        assert m.realized_pnl == 30

    def test_float_drift_still_closes(self) -> None:
        fills = [enter(1, 0.1, 10, ts(2023, 7, 1, h)) for h in (1, 2, 3)]
        fills.append(exit_(1, 0.3, 11, ts(2023, 7, 1, 4)))
        m = compute_metrics(_record(fills))
        assert m.position == 0
        assert m.status is TradeStatus.CLOSED


class TestShortTrades:
    def test_closed_with_profit(self, short_round_trip: list[Fill]) -> None:
        m = compute_metrics(_record(short_round_trip, action=Action.SHORT))
        assert m.avg_entry == 100
        assert m.avg_exit == 80
        assert m.realized_pnl == 20
        assert m.win is True

    def test_closed_with_loss(self) -> None:
        fills = [enter(-1, 1, 400, ts(2023, 5, 1)), exit_(-1, 1, 420, ts(2023, 5, 1, 20))]
        m = compute_metrics(_record(fills, action=Action.SHORT))
        assert m.realized_pnl == -20
        assert m.win is False

    def test_profitable_short_pnl_is_positive(self, short_round_trip: list[Fill]) -> None:
        # Without the direction factor this would come out as -20.
        m = compute_metrics(_record(short_round_trip, action=Action.SHORT))
        assert m.realized_pnl is not None and m.realized_pnl > 0

    def test_direction_inferred_without_action(self) -> None:
        fills = [enter(-1, 1, 300, ts(2023, 6, 1)), exit_(-1, 1, 250, ts(2023, 6, 1, 20))]
        m = compute_metrics(_record(fills))
        assert m.realized_pnl == 50
        assert m.win is True

    def test_explicit_action_beats_inference(self) -> None:
        fills = [enter(-1, 1, 300, ts(2023, 6, 1)), exit_(-1, 1, 250, ts(2023, 6, 1, 20))]
        m = compute_metrics(_record(fills, action=Action.LONG))
        assert m.realized_pnl == -50

    def test_trade_direction_flags_inference(self) -> None:
        assert trade_direction(TradeRecord(action=Action.SHORT), 5.0) == (-1, False)
        assert trade_direction(TradeRecord(), -1.0) == (-1, True)
        assert trade_direction(TradeRecord(), 1.0) == (1, True)


class TestStatus:
    def test_closed_at_overrides_open_position(self) -> None:
        fills = [enter(1, 3, 100, ts(2023, 8, 1)), exit_(1, 1, 110, ts(2023, 8, 2))]
        m = compute_metrics(_record(fills, closed_at="2023-08-02T10:00:00.000Z"))
        assert m.position == 2
        assert m.status is TradeStatus.CLOSED

    def test_removing_closed_at_reopens(self) -> None:
        fills = [enter(1, 3, 100, ts(2023, 8, 1)), exit_(1, 1, 110, ts(2023, 8, 2))]
        closed = _record(fills, closed_at="2023-08-02T10:00:00.000Z")
        reopened = dataclasses.replace(closed, closed_at=None)
        assert compute_metrics(reopened).status is TradeStatus.OPEN

    def test_new_entry_reopens_flat_trade(self, long_round_trip: list[Fill]) -> None:
        fills = long_round_trip + [enter(1, 1, 130, ts(2023, 2, 3))]
        m = compute_metrics(_record(fills))
        assert m.status is TradeStatus.OPEN
        assert m.position == 1


class TestRMultiple:
    def test_long_r_multiple(self, long_round_trip: list[Fill]) -> None:
        m = compute_metrics(_record(long_round_trip, initial_stop=90.0))
        assert m.realized_pnl == 40
        assert m.r_multiple == 2

    def test_short_loss_beyond_stop_is_negative(self) -> None:
        fills = [enter(-1, 1, 300, ts(2023, 10, 1)), exit_(-1, 1, 340, ts(2023, 10, 2))]
        m = compute_metrics(_record(fills, action=Action.SHORT, initial_stop=320.0))
        assert m.realized_pnl == -40
        assert m.r_multiple == -2

    def test_none_without_stop(self, long_round_trip: list[Fill]) -> None:
        assert compute_metrics(_record(long_round_trip)).r_multiple is None

    def test_none_when_stop_equals_entry(self, long_round_trip: list[Fill]) -> None:
        assert compute_metrics(_record(long_round_trip, initial_stop=100.0)).r_multiple is None

    def test_none_without_exits(self) -> None:
        m = compute_metrics(_record([enter(1, 1, 100, ts(2023, 1, 1))], initial_stop=90.0))
        assert m.r_multiple is None

    def test_non_numeric_stop_is_ignored(self, long_round_trip: list[Fill]) -> None:
        fm = {"initial_stop": "n/a", "fills": [f.to_dict() for f in long_round_trip]}
        assert compute_metrics(fm).r_multiple is None


class TestLastFillAt:
    def test_ignores_invalid_timestamps(self) -> None:
        entry = dataclasses.replace(enter(1, 1, 100, ts(2023, 11, 1)), t="not-a-date")
        exit_fill = exit_(1, 1, 120, ts(2023, 11, 2))
        m = compute_metrics(_record([entry, exit_fill]))
        assert m.last_fill_at == exit_fill.t

    def test_is_max_not_last(self) -> None:
        late = enter(1, 1, 100, ts(2023, 11, 5))
        early = exit_(1, 1, 120, ts(2023, 11, 2))
        assert compute_metrics(_record([late, early])).last_fill_at == late.t

    def test_all_invalid_gives_null(self) -> None:
        entry = dataclasses.replace(enter(1, 1, 100, ts(2023, 11, 1)), t="garbage")
        m = compute_metrics(_record([entry]))
        assert m.last_fill_at is None
        d = m.to_dict()
        assert "last_fill_at" in d and d["last_fill_at"] is None


class TestTotality:
    def test_malformed_numerics_count_as_zero(self) -> None:
        fm = {"fills": [{"side": "in", "t": "2023-01-01T00:00:00.000Z", "base": "oops", "quote": None}]}
        m = compute_metrics(fm)
        assert m.avg_entry is None
        assert m.realized_pnl is None
        assert m.position == 0

    def test_missing_side_counts_as_entry(self) -> None:
        fm = {"fills": [{"t": "2023-01-01T00:00:00.000Z", "base": 2, "quote": -200, "price": 100}]}
        assert compute_metrics(fm).avg_entry == 100

    def test_only_exit_fills(self) -> None:
        m = compute_metrics(_record([exit_(1, 1, 120, ts(2023, 1, 1))]))
        assert m.avg_entry is None
        assert m.avg_exit == 120
        assert m.realized_pnl is None
        assert m.win is None


class TestIdempotence:
    def test_same_record_same_metrics(self, long_round_trip: list[Fill]) -> None:
        record = _record(long_round_trip, initial_stop=90.0)
        a = compute_metrics(record, now=datetime(2024, 1, 1, tzinfo=timezone.utc))
        b = compute_metrics(record, now=datetime(2025, 1, 1, tzinfo=timezone.utc))
        assert a == b
        da, db = a.to_dict(), b.to_dict()
        assert da.pop("computed_at") != db.pop("computed_at")
        assert da == db

    def test_frontmatter_and_record_agree(self, long_round_trip: list[Fill]) -> None:
        fm = {"action": "long", "initial_stop": 90, "fills": [f.to_dict() for f in long_round_trip]}
        record = _record(long_round_trip, action=Action.LONG, initial_stop=90.0)
        assert compute_metrics(fm) == compute_metrics(record)

    def test_to_dict_shape(self, long_round_trip: list[Fill]) -> None:
        d = compute_metrics(_record(long_round_trip), now=ts(2024, 1, 1)).to_dict()
        assert list(d) == [
            "status",
            "position",
            "avg_entry",
            "avg_exit",
            "realized_pnl",
            "r_multiple",
            "win",
            "last_fill_at",
            "computed_at",
        ]
        assert d["status"] == "closed"
        assert d["computed_at"] == "2024-01-01T10:00:00.000Z"
