"""
Wallet PnL reconstruction.

Takes the normalized BUY/SELL list for one wallet, rebuilds an average-cost
position per mint from the *full* history, and reports one time window of
it. Cost basis never gets truncated to the window: a bag bought three weeks
ago and sold yesterday is valued at what it actually cost.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from memesense.config import settings
from memesense.analysis import metrics
from memesense.analysis.models import (
    DailyStat,
    Position,
    PositionStatus,
    PriceQuote,
    SkippedTrade,
    TokenAccumulator,
    TradeRecord,
    TradeType,
    WindowSummary,
)
from memesense.analysis.price_history import SolPriceHistory, month_key
from memesense.analysis.price_lookup import resolve_price_lookup
from memesense.utils.logging_config import logger
from memesense.utils.numbers import as_float, safe_div

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

QUOTE_MINTS = frozenset({SOL_MINT, USDC_MINT, USDT_MINT})

# Majors and stables that show up in swap history but aren't memecoin positions
ALTCOIN_BLOCKLIST = frozenset({
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",  # JUP
    "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL",  # JTO
    "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3", # PYTH
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", # BONK
    "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm", # WIF
    "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr", # POPCAT
    "MEW1gQWJ3nEXg2qgERiKu7FAFj79PHvQVREQUzScPP5",  # MEW
    "Grass7B4RdKfBCjTKgSqnXkqjwiGvQyFbuSCUJr3XXjs", # GRASS
    "3NZ9JMVBmGAqocybic2c7LQCJScmgsAZ6vQqTDzcqmJh", # WBTC
    "7vfCXTUXx5WJV5JADk17DUJ4ksgau7utNKj4b963voxs", # WETH
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R", # RAY
    "2wMe8KCqVN326qQ1thSqHvVCE3j8TrbtGt1nKnC6mpdb", # USD1
})

IGNORED_MINTS = QUOTE_MINTS | ALTCOIN_BLOCKLIST


@dataclass(frozen=True)
class AnalysisPolicy:
    """Heuristic thresholds. Defaults match the values the dashboard shipped with."""
    dust_absolute_tokens: float = 1e-6
    dust_max_value_usd: float = 1.0
    dust_max_remaining_ratio: float = 0.05
    sniper_window_ms: float = 15 * 60 * 1000
    ratio_cap: float = 999.0

    @classmethod
    def from_settings(cls, config=None) -> "AnalysisPolicy":
        config = config or settings
        return cls(
            dust_absolute_tokens=config.DUST_ABSOLUTE_TOKENS,
            dust_max_value_usd=config.DUST_MAX_VALUE_USD,
            dust_max_remaining_ratio=config.DUST_MAX_REMAINING_RATIO,
            sniper_window_ms=config.SNIPER_WINDOW_MINUTES * 60 * 1000,
            ratio_cap=config.RATIO_CAP,
        )


def default_ignored_mints() -> frozenset:
    return IGNORED_MINTS | frozenset(settings.EXTRA_IGNORED_MINTS)


# --- Input boundary ---

_ALIASES = {
    "sol_amount": ("sol_amount", "solAmount"),
    "token_amount": ("token_amount", "tokenAmount"),
}


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        for key in _ALIASES.get(name, (name,)):
            if key in raw:
                return raw[key]
        return None
    return getattr(raw, name, None)


def _magnitude(value: Any) -> Optional[float]:
    number = as_float(value)
    if number is None or number < 0:
        return None
    return number


def _coerce_one(raw: Any, ignored: frozenset) -> Tuple[Optional[TradeRecord], Optional[str]]:
    raw_type = _field(raw, "type")
    try:
        trade_type = raw_type if isinstance(raw_type, TradeType) else TradeType(str(raw_type).upper())
    except ValueError:
        return None, "unknown trade type"

    mint = _field(raw, "mint")
    if not isinstance(mint, str) or not mint.strip():
        return None, "missing mint"
    mint = mint.strip()
    if mint in ignored:
        return None, "ignored mint"

    sol_amount = _magnitude(_field(raw, "sol_amount"))
    token_amount = _magnitude(_field(raw, "token_amount"))
    if sol_amount is None or token_amount is None:
        return None, "invalid amount"

    timestamp = _magnitude(_field(raw, "timestamp"))
    if timestamp is None or month_key(timestamp) is None:
        return None, "invalid timestamp"

    signature = _field(raw, "signature")
    return TradeRecord(
        type=trade_type,
        mint=mint,
        sol_amount=sol_amount,
        token_amount=token_amount,
        timestamp=timestamp,
        signature=str(signature) if signature else "",
    ), None


def coerce_trades(raw_trades: Iterable[Any],
                  ignored_mints: Optional[Iterable[str]] = None) -> Tuple[List[TradeRecord], List[SkippedTrade]]:
    """
    Split noisy upstream records into a clean working set and the skipped rest.

    Never raises on bad data. Exact duplicates (pagination overlap returns the
    same event twice) are dropped after the first occurrence.
    """
    ignored = default_ignored_mints() if ignored_mints is None else frozenset(ignored_mints)
    valid: List[TradeRecord] = []
    skipped: List[SkippedTrade] = []
    seen: Set[Tuple] = set()

    for raw in raw_trades:
        trade, reason = _coerce_one(raw, ignored)
        if trade is None:
            skipped.append(SkippedTrade(record=raw, reason=reason))
            continue
        key = trade.dedupe_key()
        if key in seen:
            skipped.append(SkippedTrade(record=raw, reason="duplicate"))
            continue
        seen.add(key)
        valid.append(trade)

    if skipped:
        reasons: Dict[str, int] = defaultdict(int)
        for s in skipped:
            reasons[s.reason] += 1
        logger.debug("Skipped trade records", skipped=len(skipped), kept=len(valid), reasons=dict(reasons))

    return valid, skipped


# --- Positions ---

def build_accumulators(trades: Iterable[TradeRecord], price_history: SolPriceHistory,
                       current_sol_price: float) -> Dict[str, TokenAccumulator]:
    accumulators: Dict[str, TokenAccumulator] = {}
    for trade in trades:
        acc = accumulators.get(trade.mint)
        if acc is None:
            acc = accumulators[trade.mint] = TokenAccumulator(mint=trade.mint)
        acc.add(trade, price_history.price_at(trade.timestamp, current_sol_price))
    return accumulators


def is_dust(remaining: float, bought: float, price_sol: float, sol_price_usd: float,
            policy: AnalysisPolicy) -> bool:
    if remaining <= policy.dust_absolute_tokens:
        return True
    value_usd = remaining * price_sol * sol_price_usd
    return (value_usd < policy.dust_max_value_usd
            and bought > 0
            and remaining / bought < policy.dust_max_remaining_ratio)


def classify_status(acc: TokenAccumulator, price_sol: float, sol_price_usd: float,
                    policy: AnalysisPolicy) -> PositionStatus:
    if acc.sell_count > 0 and not acc.has_cost_basis:
        return PositionStatus.ORPHAN
    if is_dust(acc.remaining_tokens, acc.total_buy_tokens, price_sol, sol_price_usd, policy):
        return PositionStatus.CLOSED
    return PositionStatus.OPEN


def build_position(acc: TokenAccumulator, quote: Optional[PriceQuote], sol_price_usd: float,
                   policy: AnalysisPolicy) -> Position:
    price_sol = quote.native_price(sol_price_usd) if quote else 0.0
    if price_sol <= 0:
        price_sol = 0.0

    status = classify_status(acc, price_sol, sol_price_usd, policy)
    remaining = acc.remaining_tokens

    # Realized against full-history average cost; unknown cost basis reports zero
    if status == PositionStatus.ORPHAN:
        realized = realized_usd = 0.0
    else:
        realized = acc.total_sell_sol - acc.avg_cost_sol * acc.total_sell_tokens
        realized_usd = acc.total_sell_usd - acc.avg_cost_usd * acc.total_sell_tokens

    # Dust remainders are noise, not exposure
    unrealized = unrealized_usd = 0.0
    if status == PositionStatus.OPEN and price_sol > 0 and remaining > 0:
        unrealized = remaining * price_sol - acc.avg_cost_sol * remaining
        unrealized_usd = remaining * price_sol * sol_price_usd - acc.avg_cost_usd * remaining

    cashflow = acc.total_sell_sol - acc.total_buy_sol
    cashflow_usd = acc.total_sell_usd - acc.total_buy_usd

    if status == PositionStatus.ORPHAN:
        pnl = pnl_usd = 0.0
        roi = None
    elif status == PositionStatus.CLOSED:
        pnl, pnl_usd = cashflow, cashflow_usd
        roi = safe_div(cashflow, acc.total_buy_sol) * 100
    else:
        # No live price: show the cash delta rather than a misleading zero
        if unrealized != 0:
            pnl, pnl_usd = unrealized, unrealized_usd
        else:
            pnl, pnl_usd = cashflow, cashflow_usd
        roi = safe_div(realized + unrealized, acc.total_buy_sol) * 100

    duration = 0.0
    if acc.first_buy_timestamp is not None and acc.last_sell_timestamp is not None:
        duration = max(acc.last_sell_timestamp - acc.first_buy_timestamp, 0.0)

    # A buy before pair creation (presale, clock skew) also counts
    is_sniper = False
    if quote is not None and quote.pair_created_at and acc.first_buy_timestamp is not None:
        is_sniper = acc.first_buy_timestamp - quote.pair_created_at < policy.sniper_window_ms

    return Position(
        mint=acc.mint,
        status=status,
        remaining_tokens=max(remaining, 0.0),
        realized_pnl=realized,
        realized_pnl_usd=realized_usd,
        unrealized_pnl=unrealized,
        unrealized_pnl_usd=unrealized_usd,
        cashflow_pnl=cashflow,
        cashflow_pnl_usd=cashflow_usd,
        pnl=pnl,
        pnl_usd=pnl_usd,
        roi=roi,
        duration=duration,
        buy_sol=acc.total_buy_sol,
        sell_sol=acc.total_sell_sol,
        buy_usd=acc.total_buy_usd,
        sell_usd=acc.total_sell_usd,
        buy_count=acc.buy_count,
        sell_count=acc.sell_count,
        tx_count=len(acc.trades),
        avg_buy_size=safe_div(acc.total_buy_sol, acc.buy_count),
        is_sniper=is_sniper,
        market_cap_usd=quote.market_cap_usd if quote else None,
        first_buy_timestamp=acc.first_buy_timestamp,
        last_active_timestamp=acc.last_active_timestamp,
    )


# --- Window rollup ---

def day_key(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d")


@dataclass
class _WindowRollup:
    total_trades: int = 0
    buy_count: int = 0
    sell_count: int = 0
    buy_volume: float = 0.0
    buy_volume_usd: float = 0.0
    sell_volume: float = 0.0
    sell_volume_usd: float = 0.0
    realized: float = 0.0
    realized_usd: float = 0.0
    mints: Set[str] = field(default_factory=set)
    calendar: Dict[str, DailyStat] = field(default_factory=dict)
    realized_by_mint: Dict[str, Tuple[float, float]] = field(default_factory=dict)


def roll_up_window(trades: Iterable[TradeRecord], accumulators: Mapping[str, TokenAccumulator],
                   price_history: SolPriceHistory, current_sol_price: float,
                   window_cutoff: float) -> _WindowRollup:
    rollup = _WindowRollup()

    for trade in trades:
        if trade.timestamp < window_cutoff:
            continue

        usd = trade.sol_amount * price_history.price_at(trade.timestamp, current_sol_price)
        rollup.total_trades += 1
        rollup.mints.add(trade.mint)

        if trade.is_buy:
            rollup.buy_count += 1
            rollup.buy_volume += trade.sol_amount
            rollup.buy_volume_usd += usd
            continue

        rollup.sell_count += 1
        rollup.sell_volume += trade.sol_amount
        rollup.sell_volume_usd += usd

        # Orphan sells count as volume only, a $0 cost basis would be phantom profit
        acc = accumulators[trade.mint]
        if not acc.has_cost_basis:
            continue

        pnl = trade.sol_amount - acc.avg_cost_sol * trade.token_amount
        pnl_usd = usd - acc.avg_cost_usd * trade.token_amount
        rollup.realized += pnl
        rollup.realized_usd += pnl_usd

        day = day_key(trade.timestamp)
        if day not in rollup.calendar:
            rollup.calendar[day] = DailyStat()
        rollup.calendar[day].record(pnl, pnl_usd, trade.sol_amount)

        prev_sol, prev_usd = rollup.realized_by_mint.get(trade.mint, (0.0, 0.0))
        rollup.realized_by_mint[trade.mint] = (prev_sol + pnl, prev_usd + pnl_usd)

    rollup.calendar = dict(sorted(rollup.calendar.items()))
    return rollup


# --- Entry point ---

def aggregate(trades: Iterable[Any],
              price_lookup: Optional[Mapping[str, Any]] = None,
              current_sol_price: Optional[float] = None,
              window_cutoff: float = 0,
              price_history: Optional[SolPriceHistory] = None,
              policy: Optional[AnalysisPolicy] = None,
              ignored_mints: Optional[Iterable[str]] = None) -> WindowSummary:
    """
    Summarize one wallet over trades with `timestamp >= window_cutoff`.

    Positions are always rebuilt from the whole trade list; the cutoff only
    decides which positions are listed and which trades feed the totals,
    calendar and win rate. Pure: same inputs, same summary.
    """
    policy = policy or AnalysisPolicy.from_settings()
    price_history = price_history if price_history is not None else SolPriceHistory()
    sol_price = settings.DEFAULT_SOL_PRICE_USD if current_sol_price is None else current_sol_price

    valid, skipped = coerce_trades(trades or [], ignored_mints)
    if not valid:
        return WindowSummary.empty(window_cutoff=window_cutoff, skipped_records=len(skipped))

    quotes = resolve_price_lookup(price_lookup)
    accumulators = build_accumulators(valid, price_history, sol_price)
    positions = [build_position(acc, quotes.get(mint), sol_price, policy)
                 for mint, acc in accumulators.items()]

    details = sorted(
        (p for p in positions if p.last_active_timestamp >= window_cutoff),
        key=lambda p: (-p.pnl, p.mint),
    )
    rollup = roll_up_window(valid, accumulators, price_history, sol_price, window_cutoff)

    outcomes = metrics.position_outcomes(rollup.realized_by_mint)
    win_rate = safe_div(outcomes.wins, outcomes.decided) * 100
    unrealized, unrealized_usd = metrics.sum_unrealized(details)
    avg_hold, fastest, longest = metrics.hold_time_stats(details)
    statuses = metrics.status_counts(details)

    summary = WindowSummary(
        window_cutoff=window_cutoff,
        total_realized_pnl=rollup.realized,
        total_realized_pnl_usd=rollup.realized_usd,
        total_unrealized_pnl=unrealized,
        total_unrealized_pnl_usd=unrealized_usd,
        win_rate=win_rate,
        loss_rate=safe_div(outcomes.losses, outcomes.decided) * 100,
        win_count=outcomes.wins,
        loss_count=outcomes.losses,
        neutral_count=outcomes.neutrals,
        total_trades=rollup.total_trades,
        buy_count=rollup.buy_count,
        sell_count=rollup.sell_count,
        tokens_traded=len(rollup.mints),
        total_volume=rollup.buy_volume + rollup.sell_volume,
        total_volume_usd=rollup.buy_volume_usd + rollup.sell_volume_usd,
        avg_buy_size=safe_div(rollup.buy_volume, rollup.buy_count),
        avg_buy_size_usd=safe_div(rollup.buy_volume_usd, rollup.buy_count),
        avg_sell_size=safe_div(rollup.sell_volume, rollup.sell_count),
        avg_sell_size_usd=safe_div(rollup.sell_volume_usd, rollup.sell_count),
        avg_win_size=safe_div(outcomes.gross_profit, outcomes.wins),
        avg_win_size_usd=safe_div(outcomes.gross_profit_usd, outcomes.wins),
        gross_profit=outcomes.gross_profit,
        gross_profit_usd=outcomes.gross_profit_usd,
        gross_loss=outcomes.gross_loss,
        gross_loss_usd=outcomes.gross_loss_usd,
        profit_factor=metrics.capped_ratio(outcomes.gross_profit, outcomes.gross_loss, policy.ratio_cap),
        win_loss_ratio=metrics.capped_ratio(outcomes.wins, outcomes.losses, policy.ratio_cap),
        avg_pnl=safe_div(rollup.realized + unrealized, len(details)),
        avg_pnl_usd=safe_div(rollup.realized_usd + unrealized_usd, len(details)),
        roi=safe_div(rollup.realized + unrealized, rollup.buy_volume) * 100,
        open_positions_count=statuses[PositionStatus.OPEN],
        closed_positions_count=statuses[PositionStatus.CLOSED],
        orphan_positions_count=statuses[PositionStatus.ORPHAN],
        avg_hold_time=avg_hold,
        fastest_flip=fastest,
        longest_hold=longest,
        consistency_rating=metrics.consistency_rating(win_rate, rollup.total_trades),
        diamond_hand_rating=metrics.diamond_hand_rating(avg_hold),
        sniper_efficiency=metrics.sniper_efficiency(details),
        details=details,
        calendar=rollup.calendar,
        mc_distribution=metrics.mc_distribution(details),
        roi_distribution=metrics.roi_distribution(details),
        skipped_records=len(skipped),
        **metrics.roi_stats(details),
    )

    logger.debug(
        "Aggregated wallet window",
        cutoff=window_cutoff,
        trades=rollup.total_trades,
        positions=len(details),
        skipped=len(skipped),
        realized_pnl=round(rollup.realized, 6),
    )
    return summary
