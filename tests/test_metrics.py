"""Unit tests for window metrics, the daily calendar frames and the verdict rules."""

from __future__ import annotations

from dataclasses import replace

import pytest

from memesense.analysis import metrics
from memesense.analysis.models import DailyStat, Position, PositionStatus, WindowSummary
from memesense.analysis.pnl_calendar import CALENDAR_COLUMNS, calendar_frame, monthly_breakdown
from memesense.analysis.verdict import profitability_verdict

HOUR = 60 * 60 * 1000


def _position(**overrides) -> Position:
    """Create a synthetic closed position."""
    base = dict(
        mint="A", status=PositionStatus.CLOSED, remaining_tokens=0.0,
        realized_pnl=0.5, realized_pnl_usd=75.0, unrealized_pnl=0.0, unrealized_pnl_usd=0.0,
        cashflow_pnl=0.5, cashflow_pnl_usd=75.0, pnl=0.5, pnl_usd=75.0, roi=50.0,
        duration=HOUR, buy_sol=1.0, sell_sol=1.5, buy_usd=150.0, sell_usd=225.0,
        buy_count=1, sell_count=1, tx_count=2, avg_buy_size=1.0,
    )
    base.update(overrides)
    return Position(**base)


# ---------------------------------------------------------------------------
# Position outcomes
# ---------------------------------------------------------------------------

class TestPositionOutcomes:
    def test_counts_each_mint_once(self):
        outcomes = metrics.position_outcomes({"W": (1.5, 150.0), "L": (-0.5, -40.0), "N": (0.0, 0.0)})

        assert (outcomes.wins, outcomes.losses, outcomes.neutrals) == (1, 1, 1)
        assert outcomes.decided == 3
        assert outcomes.gross_profit == 1.5
        assert outcomes.gross_loss == 0.5
        assert outcomes.gross_loss_usd == 40.0

    def test_empty(self):
        outcomes = metrics.position_outcomes({})
        assert outcomes.decided == 0
        assert outcomes.gross_profit == 0

    def test_capped_ratio(self):
        assert metrics.capped_ratio(3.0, 1.5, 999.0) == 2.0
        assert metrics.capped_ratio(3.0, 0.0, 999.0) == 999.0
        assert metrics.capped_ratio(0.0, 0.0, 999.0) == 0.0


# ---------------------------------------------------------------------------
# Hold times and ROI statistics
# ---------------------------------------------------------------------------

class TestHoldAndRoi:
    def test_hold_times_only_use_closed_positions(self):
        details = [
            _position(duration=HOUR),
            _position(mint="B", duration=3 * HOUR),
            _position(mint="C", status=PositionStatus.OPEN, duration=10 * HOUR),
            _position(mint="D", duration=0),
        ]
        assert metrics.hold_time_stats(details) == (2 * HOUR, HOUR, 3 * HOUR)

    def test_hold_times_empty(self):
        assert metrics.hold_time_stats([]) == (0.0, 0.0, 0.0)

    def test_roi_stats(self):
        details = [
            _position(roi=40.0, pnl=0.4),
            _position(mint="B", roi=100.0, pnl=1.0),
            _position(mint="C", roi=250.0, pnl=2.5),
            _position(mint="D", roi=-30.0, pnl=-0.3),
            _position(mint="E", status=PositionStatus.ORPHAN, roi=None, pnl=0.0),
        ]
        stats = metrics.roi_stats(details)

        assert stats["avg_win_percent"] == pytest.approx(130.0)
        assert stats["avg_loss_percent"] == pytest.approx(-30.0)
        assert stats["best_trade_roi"] == 250.0
        assert stats["smallest_win_roi"] == 40.0
        assert stats["safe_copy_margin"] == pytest.approx(100.0)

    def test_safe_copy_margin_even_count(self):
        details = [_position(roi=10.0), _position(mint="B", roi=30.0)]
        assert metrics.roi_stats(details)["safe_copy_margin"] == pytest.approx(20.0)

    def test_roi_stats_without_wins(self):
        stats = metrics.roi_stats([_position(roi=-10.0, pnl=-0.1)])
        assert stats["best_trade_roi"] == 0.0
        assert stats["safe_copy_margin"] == 0.0


# ---------------------------------------------------------------------------
# Ratings and histograms
# ---------------------------------------------------------------------------

class TestRatings:
    def test_consistency_rating(self):
        assert metrics.consistency_rating(60.0, 20) == 60.0
        assert metrics.consistency_rating(60.0, 4) == 30.0
        assert metrics.consistency_rating(60.0, 0) == 0.0

    def test_diamond_hand_rating(self):
        assert metrics.diamond_hand_rating(0) == 0.0
        assert metrics.diamond_hand_rating(HOUR / 2) == pytest.approx(37.5)
        assert metrics.diamond_hand_rating(2 * HOUR) == pytest.approx(75 + 60 / 1380 * 25)
        assert metrics.diamond_hand_rating(25 * HOUR) == 100.0

    def test_sniper_efficiency(self):
        assert metrics.sniper_efficiency([]) is None
        details = [_position(is_sniper=True), _position(mint="B"), _position(mint="C")]
        assert metrics.sniper_efficiency(details) == 33.0

    @pytest.mark.parametrize("cap,bucket", [
        (None, "unknown"),
        (99_999, "0-100k"),
        (100_000, "100k-500k"),
        (500_000, ">500k"),
    ])
    def test_mc_bucket(self, cap, bucket):
        assert metrics.mc_bucket(cap) == bucket

    @pytest.mark.parametrize("roi,bucket", [
        (501, ">500%"),
        (500, "200% - 500%"),
        (0, "0% - 200%"),
        (-50, "-50% - 0%"),
        (-50.1, "<-50%"),
    ])
    def test_roi_bucket(self, roi, bucket):
        assert metrics.roi_bucket(roi) == bucket

    def test_roi_distribution_skips_orphans(self):
        details = [_position(roi=600.0), _position(mint="B", status=PositionStatus.ORPHAN, roi=None)]
        dist = metrics.roi_distribution(details)

        assert dist[">500%"] == 1
        assert sum(dist.values()) == 1

    def test_status_counts(self):
        details = [_position(), _position(mint="B", status=PositionStatus.OPEN)]
        counts = metrics.status_counts(details)

        assert counts[PositionStatus.CLOSED] == 1
        assert counts[PositionStatus.OPEN] == 1
        assert counts[PositionStatus.ORPHAN] == 0


# ---------------------------------------------------------------------------
# Calendar frames
# ---------------------------------------------------------------------------

def _day(pnl, wins=0, losses=0, trades=1, volume=1.0) -> DailyStat:
    return DailyStat(pnl=pnl, pnl_usd=pnl * 100, wins=wins, losses=losses, trades=trades, volume=volume)


class TestCalendarFrames:
    def test_daily_stat_record(self):
        stat = DailyStat()
        stat.record(0.5, 50.0, 1.5)
        stat.record(-0.2, -20.0, 0.8)
        stat.record(0.0, 0.0, 0.1)

        assert (stat.wins, stat.losses, stat.trades) == (1, 1, 3)
        assert stat.pnl == pytest.approx(0.3)
        assert stat.volume == pytest.approx(2.4)

    def test_calendar_frame_sorted_by_day(self):
        calendar = {"2025-05-02": _day(1.0, wins=1), "2025-04-30": _day(-0.5, losses=1)}
        df = calendar_frame(calendar)

        assert list(df.columns) == CALENDAR_COLUMNS
        assert [d.strftime("%Y-%m-%d") for d in df.index] == ["2025-04-30", "2025-05-02"]

    def test_calendar_frame_empty(self):
        df = calendar_frame({})
        assert df.empty
        assert list(df.columns) == CALENDAR_COLUMNS

    def test_monthly_breakdown(self):
        calendar = {
            "2025-04-10": _day(1.0, wins=1),
            "2025-04-20": _day(-0.4, wins=1, losses=2, trades=3, volume=2.0),
            "2025-05-01": _day(0.2, trades=1),
        }
        monthly = monthly_breakdown(calendar)

        assert list(monthly["month"]) == ["2025-05", "2025-04"]
        april = monthly.iloc[1]
        assert april["pnl"] == pytest.approx(0.6)
        assert april["trades"] == 4
        assert april["win_rate"] == pytest.approx(50.0)
        assert monthly.iloc[0]["win_rate"] == 0.0

    def test_monthly_breakdown_empty(self):
        assert monthly_breakdown({}).empty


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------

class TestProfitabilityVerdict:
    def test_strong_wallet(self):
        verdict = profitability_verdict(WindowSummary(profit_factor=2.0, win_rate=55.0))
        assert verdict.status == "PROFITABLE"
        assert verdict.score == 87

    def test_score_bonus_is_capped(self):
        verdict = profitability_verdict(WindowSummary(profit_factor=999.0, win_rate=100.0))
        assert verdict.score == 90

    def test_break_even_wallet(self):
        verdict = profitability_verdict(WindowSummary(profit_factor=1.2, win_rate=20.0))
        assert (verdict.status, verdict.score) == ("PROFITABLE", 65)

    def test_losing_wallet(self):
        summary = WindowSummary(profit_factor=0.4, win_rate=20.0, total_trades=10)
        assert profitability_verdict(summary).status == "UNPROFITABLE"
        assert profitability_verdict(replace(summary, total_trades=80)).status == "HIGH RISK"
        assert profitability_verdict(summary).score == 30
