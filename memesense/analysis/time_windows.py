import time
from typing import Any, Dict, Iterable, Mapping, Optional

from memesense.analysis.models import WindowSummary
from memesense.analysis.price_history import SolPriceHistory
from memesense.analysis.trade_analysis import AnalysisPolicy, aggregate

DAY_MS = 24 * 60 * 60 * 1000

# Label -> lookback in days, None means full history
WINDOWS = {
    "1d": 1,
    "7d": 7,
    "14d": 14,
    "30d": 30,
    "all": None,
}


def window_cutoffs(now_ms: float) -> Dict[str, float]:
    return {
        label: 0 if days is None else now_ms - days * DAY_MS
        for label, days in WINDOWS.items()
    }


def analyze_time_windows(trades: Iterable[Any],
                         price_lookup: Optional[Mapping[str, Any]] = None,
                         current_sol_price: Optional[float] = None,
                         now: Optional[float] = None,
                         price_history: Optional[SolPriceHistory] = None,
                         policy: Optional[AnalysisPolicy] = None) -> Dict[str, WindowSummary]:
    """
    Run the aggregator once per window. Every window reads the same full trade
    list, so cost basis is identical across them; only the cutoff differs.
    """
    trades = list(trades or [])
    now_ms = time.time() * 1000 if now is None else now
    price_history = price_history if price_history is not None else SolPriceHistory()
    policy = policy or AnalysisPolicy.from_settings()

    return {
        label: aggregate(
            trades,
            price_lookup=price_lookup,
            current_sol_price=current_sol_price,
            window_cutoff=cutoff,
            price_history=price_history,
            policy=policy,
        )
        for label, cutoff in window_cutoffs(now_ms).items()
    }


def summaries_to_dict(summaries: Mapping[str, WindowSummary]) -> Dict[str, Dict[str, Any]]:
    return {label: summary.to_dict() for label, summary in summaries.items()}
