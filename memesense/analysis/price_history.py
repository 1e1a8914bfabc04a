"""
Estimated monthly average SOL/USD price.

Historical USD PnL is valued at the month a trade happened in rather than at
today's price. The table is coarse on purpose: it was calibrated against a
handful of known wallet data points, and any month outside it falls back to
whatever current price the caller supplies.
"""
import math
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional

DEFAULT_SOL_PRICE_HISTORY: Mapping[str, float] = MappingProxyType({
    # 2024
    "2024-01": 100,
    "2024-02": 110,
    "2024-03": 130,
    "2024-04": 150,
    "2024-05": 160,
    "2024-06": 150,
    "2024-07": 140,
    "2024-08": 140,
    "2024-09": 130,
    "2024-10": 140,
    "2024-11": 160,
    "2024-12": 150,

    # 2025
    "2025-01": 130,
    "2025-02": 110,
    "2025-03": 90,
    "2025-04": 75,
    "2025-05": 70,
    "2025-06": 65,
    "2025-07": 60,
    "2025-08": 60,
    "2025-09": 66,
    "2025-10": 85,
    "2025-11": 120,
    "2025-12": 180,

    # 2026
    "2026-01": 250,
})


def month_key(timestamp_ms: float) -> Optional[str]:
    """UTC "YYYY-MM" for an epoch-millis timestamp, None if it can't be parsed."""
    try:
        if timestamp_ms is None or not math.isfinite(timestamp_ms):
            return None
        dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    return f"{dt.year}-{dt.month:02d}"


class SolPriceHistory:
    """Read-only month -> SOL price lookup injected into the aggregator."""

    def __init__(self, prices: Optional[Mapping[str, float]] = None):
        source = DEFAULT_SOL_PRICE_HISTORY if prices is None else prices
        self._prices = MappingProxyType(dict(source))

    def __contains__(self, key: str) -> bool:
        return key in self._prices

    def __len__(self) -> int:
        return len(self._prices)

    def price_at(self, timestamp_ms: float, fallback: float) -> float:
        key = month_key(timestamp_ms)
        if key is None:
            return fallback
        return self._prices.get(key, fallback)
