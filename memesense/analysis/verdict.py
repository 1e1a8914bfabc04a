from dataclasses import dataclass

from memesense.analysis.models import WindowSummary


@dataclass(frozen=True)
class Verdict:
    status: str # PROFITABLE, UNPROFITABLE, HIGH RISK
    score: int


def profitability_verdict(summary: WindowSummary) -> Verdict:
    """Rule-based headline shown next to a wallet summary (usually the `all` window)."""
    if summary.profit_factor >= 1.5 and summary.win_rate > 40:
        status = "PROFITABLE"
        score = 85 + min(summary.profit_factor, 5)
    elif summary.profit_factor >= 1.0:
        status = "PROFITABLE"
        score = 65
    else:
        status = "HIGH RISK" if summary.total_trades > 50 else "UNPROFITABLE"
        score = 30

    return Verdict(status=status, score=min(round(score), 100))
