from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Histogram bucket labels, in display order
MC_BUCKETS = ("0-100k", "100k-500k", ">500k", "unknown")
ROI_BUCKETS = (">500%", "200% - 500%", "0% - 200%", "-50% - 0%", "<-50%")


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class PositionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    ORPHAN = "ORPHAN" # Sold without any recorded buy, cost basis unknown


@dataclass(frozen=True)
class TradeRecord:
    type: TradeType
    mint: str
    sol_amount: float # Always a magnitude, direction lives in `type`
    token_amount: float
    timestamp: float # Epoch milliseconds
    signature: str = ""

    @property
    def is_buy(self) -> bool:
        return self.type == TradeType.BUY

    def dedupe_key(self) -> Tuple:
        return (self.signature, self.type.value, self.mint,
                self.sol_amount, self.token_amount, self.timestamp)


@dataclass(frozen=True)
class SkippedTrade:
    record: Any
    reason: str


@dataclass(frozen=True)
class PriceQuote:
    """
    Live price for one mint, resolved once at the boundary.

    `native` quotes are already in SOL per token. `quoted` quotes carry
    another currency (USD from DexScreener's priceUsd) and are converted
    with the caller's SOL price.
    """
    kind: str # "native" or "quoted"
    value: float
    quote_currency: Optional[str] = None
    pair_created_at: Optional[float] = None # Epoch milliseconds
    market_cap_usd: Optional[float] = None

    def native_price(self, sol_price_usd: float) -> float:
        if self.kind == "quoted":
            return self.value / sol_price_usd if sol_price_usd > 0 else 0.0
        return self.value


@dataclass
class TokenAccumulator:
    mint: str
    total_buy_sol: float = 0.0
    total_sell_sol: float = 0.0
    total_buy_usd: float = 0.0
    total_sell_usd: float = 0.0
    total_buy_tokens: float = 0.0
    total_sell_tokens: float = 0.0

    first_buy_timestamp: Optional[float] = None
    last_sell_timestamp: Optional[float] = None
    last_active_timestamp: Optional[float] = None

    buy_count: int = 0
    sell_count: int = 0
    trades: List[TradeRecord] = field(default_factory=list)

    def add(self, trade: TradeRecord, sol_price_usd: float):
        """Fold one trade in; `sol_price_usd` is the SOL price at the trade's own time."""
        self.trades.append(trade)
        usd = trade.sol_amount * sol_price_usd

        if trade.is_buy:
            self.total_buy_sol += trade.sol_amount
            self.total_buy_usd += usd
            self.total_buy_tokens += trade.token_amount
            self.buy_count += 1
            if self.first_buy_timestamp is None or trade.timestamp < self.first_buy_timestamp:
                self.first_buy_timestamp = trade.timestamp
        else:
            self.total_sell_sol += trade.sol_amount
            self.total_sell_usd += usd
            self.total_sell_tokens += trade.token_amount
            self.sell_count += 1
            if self.last_sell_timestamp is None or trade.timestamp > self.last_sell_timestamp:
                self.last_sell_timestamp = trade.timestamp

        if self.last_active_timestamp is None or trade.timestamp > self.last_active_timestamp:
            self.last_active_timestamp = trade.timestamp

    @property
    def has_cost_basis(self) -> bool:
        return self.total_buy_tokens > 0

    @property
    def remaining_tokens(self) -> float:
        return self.total_buy_tokens - self.total_sell_tokens

    @property
    def avg_cost_sol(self) -> float:
        return self.total_buy_sol / self.total_buy_tokens if self.has_cost_basis else 0.0

    @property
    def avg_cost_usd(self) -> float:
        return self.total_buy_usd / self.total_buy_tokens if self.has_cost_basis else 0.0


@dataclass(frozen=True)
class Position:
    mint: str
    status: PositionStatus
    remaining_tokens: float

    realized_pnl: float
    realized_pnl_usd: float
    unrealized_pnl: float
    unrealized_pnl_usd: float
    cashflow_pnl: float
    cashflow_pnl_usd: float
    pnl: float # Single number shown per position
    pnl_usd: float
    roi: Optional[float] # Percent, None when the cost basis is unknown

    duration: float # ms between first buy and last sell
    buy_sol: float
    sell_sol: float
    buy_usd: float
    sell_usd: float
    buy_count: int
    sell_count: int
    tx_count: int
    avg_buy_size: float

    is_sniper: bool = False
    market_cap_usd: Optional[float] = None
    first_buy_timestamp: Optional[float] = None
    last_active_timestamp: Optional[float] = None

    @property
    def is_orphan(self) -> bool:
        return self.status == PositionStatus.ORPHAN

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["status"] = self.status.value
        data["is_orphan"] = self.is_orphan
        return data


@dataclass
class DailyStat:
    pnl: float = 0.0
    pnl_usd: float = 0.0
    wins: int = 0
    losses: int = 0
    trades: int = 0
    volume: float = 0.0

    def record(self, pnl: float, pnl_usd: float, volume: float):
        self.pnl += pnl
        self.pnl_usd += pnl_usd
        self.trades += 1
        self.volume += volume
        if pnl > 0:
            self.wins += 1
        elif pnl < 0:
            self.losses += 1

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _zero_buckets(labels):
    return lambda: {label: 0 for label in labels}


@dataclass(frozen=True)
class WindowSummary:
    window_cutoff: float = 0

    # Headline PnL
    total_realized_pnl: float = 0.0
    total_realized_pnl_usd: float = 0.0
    total_unrealized_pnl: float = 0.0
    total_unrealized_pnl_usd: float = 0.0

    # Position-based win/loss
    win_rate: float = 0.0
    loss_rate: float = 0.0
    win_count: int = 0
    loss_count: int = 0
    neutral_count: int = 0

    # Activity
    total_trades: int = 0
    buy_count: int = 0
    sell_count: int = 0
    tokens_traded: int = 0
    total_volume: float = 0.0
    total_volume_usd: float = 0.0

    # Sizing
    avg_buy_size: float = 0.0
    avg_buy_size_usd: float = 0.0
    avg_sell_size: float = 0.0
    avg_sell_size_usd: float = 0.0
    avg_win_size: float = 0.0
    avg_win_size_usd: float = 0.0

    # Profitability
    gross_profit: float = 0.0
    gross_profit_usd: float = 0.0
    gross_loss: float = 0.0
    gross_loss_usd: float = 0.0
    profit_factor: float = 0.0
    win_loss_ratio: float = 0.0
    avg_pnl: float = 0.0
    avg_pnl_usd: float = 0.0
    roi: float = 0.0

    open_positions_count: int = 0
    closed_positions_count: int = 0
    orphan_positions_count: int = 0

    # Hold times (ms)
    avg_hold_time: float = 0.0
    fastest_flip: float = 0.0
    longest_hold: float = 0.0

    # ROI statistics (percent)
    avg_win_percent: float = 0.0
    avg_loss_percent: float = 0.0
    best_trade_roi: float = 0.0
    smallest_win_roi: float = 0.0
    safe_copy_margin: float = 0.0

    # Copy trading ratings
    consistency_rating: float = 0.0
    diamond_hand_rating: float = 0.0
    sniper_efficiency: Optional[float] = None

    details: List[Position] = field(default_factory=list)
    calendar: Dict[str, DailyStat] = field(default_factory=dict)
    mc_distribution: Dict[str, int] = field(default_factory=_zero_buckets(MC_BUCKETS))
    roi_distribution: Dict[str, int] = field(default_factory=_zero_buckets(ROI_BUCKETS))

    skipped_records: int = 0

    @classmethod
    def empty(cls, window_cutoff: float = 0, skipped_records: int = 0) -> "WindowSummary":
        return cls(window_cutoff=window_cutoff, skipped_records=skipped_records)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "details":
                value = [p.to_dict() for p in value]
            elif f.name == "calendar":
                value = {day: stat.to_dict() for day, stat in sorted(value.items())}
            elif isinstance(value, dict):
                value = dict(value)
            data[f.name] = value
        return data
