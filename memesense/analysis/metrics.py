"""
Copy-trading metrics layered on top of a window's positions.

Everything here works off already-built Position snapshots and the
per-mint realized PnL of the window, so none of it touches raw trades.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from memesense.analysis.models import MC_BUCKETS, ROI_BUCKETS, Position, PositionStatus
from memesense.utils.numbers import safe_div


@dataclass(frozen=True)
class PositionOutcomes:
    wins: int = 0
    losses: int = 0
    neutrals: int = 0
    gross_profit: float = 0.0
    gross_profit_usd: float = 0.0
    gross_loss: float = 0.0 # Absolute value
    gross_loss_usd: float = 0.0

    @property
    def decided(self) -> int:
        return self.wins + self.losses + self.neutrals


def position_outcomes(realized_by_mint: Mapping[str, Tuple[float, float]]) -> PositionOutcomes:
    """
    Count each mint once by its summed realized PnL for the window.

    A wallet that scaled out of one winner over ten sells is one win, not ten.
    The SOL figure decides the sign; USD follows along.
    """
    wins = losses = neutrals = 0
    gross_profit = gross_profit_usd = gross_loss = gross_loss_usd = 0.0

    for pnl, pnl_usd in realized_by_mint.values():
        if pnl > 0:
            wins += 1
            gross_profit += pnl
            gross_profit_usd += pnl_usd
        elif pnl < 0:
            losses += 1
            gross_loss += abs(pnl)
            gross_loss_usd += abs(pnl_usd)
        else:
            neutrals += 1

    return PositionOutcomes(wins, losses, neutrals, gross_profit, gross_profit_usd,
                            gross_loss, gross_loss_usd)


def capped_ratio(numerator: float, denominator: float, cap: float) -> float:
    if denominator > 0:
        return numerator / denominator
    return cap if numerator > 0 else 0.0


def hold_time_stats(details: Iterable[Position]) -> Tuple[float, float, float]:
    """(average, fastest, longest) hold in ms over closed positions."""
    durations = [p.duration for p in details if p.status == PositionStatus.CLOSED and p.duration > 0]
    if not durations:
        return 0.0, 0.0, 0.0
    return sum(durations) / len(durations), min(durations), max(durations)


def roi_stats(details: Sequence[Position]) -> Dict[str, float]:
    scored = [p for p in details if p.roi is not None]
    win_rois = [p.roi for p in scored if p.pnl > 0]
    loss_rois = [p.roi for p in scored if p.pnl <= 0]

    return {
        "avg_win_percent": safe_div(sum(win_rois), len(win_rois)),
        "avg_loss_percent": safe_div(sum(loss_rois), len(loss_rois)),
        "best_trade_roi": max(win_rois) if win_rois else 0.0,
        "smallest_win_roi": min(win_rois) if win_rois else 0.0,
        # Median winning ROI, how much edge a copier can give up and still profit
        "safe_copy_margin": float(np.median(win_rois)) if win_rois else 0.0,
    }


def consistency_rating(win_rate: float, total_trades: int) -> float:
    if total_trades > 10:
        return win_rate
    if total_trades > 0:
        return win_rate * 0.5
    return 0.0


def diamond_hand_rating(avg_hold_ms: float) -> float:
    hold_mins = avg_hold_ms / 60000
    if hold_mins > 1440:
        return 100.0
    if hold_mins > 60:
        return 75 + ((hold_mins - 60) / 1380) * 25
    return (hold_mins / 60) * 75


def sniper_efficiency(details: Sequence[Position]) -> Optional[float]:
    if not details:
        return None
    snipes = sum(1 for p in details if p.is_sniper)
    return float(round(snipes / len(details) * 100))


def mc_bucket(market_cap_usd: Optional[float]) -> str:
    if market_cap_usd is None:
        return "unknown"
    if market_cap_usd < 100_000:
        return "0-100k"
    if market_cap_usd < 500_000:
        return "100k-500k"
    return ">500k"


def mc_distribution(details: Iterable[Position]) -> Dict[str, int]:
    counts = {label: 0 for label in MC_BUCKETS}
    for p in details:
        counts[mc_bucket(p.market_cap_usd)] += 1
    return counts


def roi_bucket(roi: float) -> str:
    if roi > 500:
        return ">500%"
    if roi > 200:
        return "200% - 500%"
    if roi >= 0:
        return "0% - 200%"
    if roi >= -50:
        return "-50% - 0%"
    return "<-50%"


def roi_distribution(details: Iterable[Position]) -> Dict[str, int]:
    counts = {label: 0 for label in ROI_BUCKETS}
    for p in details:
        if p.roi is None:
            continue
        counts[roi_bucket(p.roi)] += 1
    return counts


def status_counts(details: Iterable[Position]) -> Dict[PositionStatus, int]:
    counts = {status: 0 for status in PositionStatus}
    for p in details:
        counts[p.status] += 1
    return counts


def sum_unrealized(details: List[Position]) -> Tuple[float, float]:
    return (sum(p.unrealized_pnl for p in details),
            sum(p.unrealized_pnl_usd for p in details))
