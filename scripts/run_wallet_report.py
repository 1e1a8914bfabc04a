import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from memesense.utils.logging_config import configure_logging, logger
from memesense.analysis.time_windows import analyze_time_windows
from memesense.analysis.pnl_calendar import monthly_breakdown
from memesense.analysis.verdict import profitability_verdict
from simulation.wallet_simulator import WalletSimulator, _ms

def main():
    configure_logging()
    logger.info("--- Wallet PnL Report (simulated wallet) ---")

    # 1. Generate Data
    sim = WalletSimulator(start_date="2025-11-01", days=45, seed=7)
    trades, price_lookup = sim.generate(num_tokens=40)
    logger.info("Simulated wallet", records=len(trades), priced_mints=len(price_lookup))

    # 2. Run Engine
    summaries = analyze_time_windows(
        trades,
        price_lookup=price_lookup,
        current_sol_price=sim.sol_price_usd,
        now=_ms(sim.end_date),
    )

    # 3. Output
    for label, summary in summaries.items():
        logger.info(
            f"Window {label}",
            realized_sol=round(summary.total_realized_pnl, 4),
            realized_usd=round(summary.total_realized_pnl_usd, 2),
            unrealized_usd=round(summary.total_unrealized_pnl_usd, 2),
            win_rate=round(summary.win_rate, 1),
            trades=summary.total_trades,
            positions=len(summary.details),
            skipped=summary.skipped_records,
        )

    verdict = profitability_verdict(summaries["all"])
    logger.info("Verdict", status=verdict.status, score=verdict.score)

    monthly = monthly_breakdown(summaries["all"].calendar)
    for row in monthly.itertuples(index=False):
        logger.info(f"Month {row.month}", pnl_sol=round(row.pnl, 4), trades=row.trades,
                    win_rate=round(row.win_rate, 1))

    # Top positions
    for p in summaries["all"].details[:5]:
        logger.info("Position", mint=p.mint, status=p.status.value, pnl=round(p.pnl, 4),
                    roi=None if p.roi is None else round(p.roi, 1), sniper=p.is_sniper)

if __name__ == "__main__":
    main()
