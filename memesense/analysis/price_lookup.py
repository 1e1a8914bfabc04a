from typing import Any, Dict, Mapping, Optional

from memesense.analysis.models import PriceQuote
from memesense.utils.logging_config import logger
from memesense.utils.numbers import as_float

# Anything below this is an epoch in seconds (1e11 ms is March 1973)
_SECONDS_EPOCH_LIMIT = 1e11


def _pair_created_ms(value: Any) -> Optional[float]:
    created = as_float(value)
    if created is None or created <= 0:
        return None
    if created < _SECONDS_EPOCH_LIMIT:
        created *= 1000
    return created


def _market_cap(entry: Mapping) -> Optional[float]:
    for key in ("marketCap", "market_cap", "market_cap_usd", "fdv"):
        cap = as_float(entry.get(key))
        if cap is not None and cap > 0:
            return cap
    return None


def resolve_quote(entry: Any) -> Optional[PriceQuote]:
    """
    Turn one raw price map value into a PriceQuote.

    Accepts a bare number (SOL per token), a mapping shaped like the batch
    price fetch output ({price, currency, pairCreatedAt, marketCap}), or a
    PriceQuote. Returns None when the entry carries nothing usable.
    """
    if isinstance(entry, PriceQuote):
        return entry

    if isinstance(entry, Mapping):
        price = as_float(entry.get("price"))
        if price is None or price <= 0:
            price = 0.0
        pair_created_at = _pair_created_ms(entry.get("pairCreatedAt", entry.get("pair_created_at")))
        market_cap = _market_cap(entry)
        if price == 0.0 and pair_created_at is None and market_cap is None:
            return None

        currency = str(entry.get("currency") or "SOL").upper()
        if currency == "SOL":
            return PriceQuote(kind="native", value=price,
                              pair_created_at=pair_created_at, market_cap_usd=market_cap)
        return PriceQuote(kind="quoted", value=price, quote_currency=currency,
                          pair_created_at=pair_created_at, market_cap_usd=market_cap)

    # Legacy shape: bare number, assumed SOL-denominated
    price = as_float(entry)
    if price is None or price <= 0:
        return None
    return PriceQuote(kind="native", value=price)


def resolve_price_lookup(raw: Optional[Mapping[str, Any]]) -> Dict[str, PriceQuote]:
    """Resolve a whole mint -> price map once, before any arithmetic runs."""
    if not raw:
        return {}

    quotes = {}
    dropped = 0
    for mint, entry in raw.items():
        quote = resolve_quote(entry)
        if quote is None:
            dropped += 1
            continue
        # Keys are matched against stripped trade mints
        quotes[str(mint).strip()] = quote

    if dropped:
        logger.debug("Dropped unusable price entries", dropped=dropped, kept=len(quotes))
    return quotes


def native_prices(quotes: Mapping[str, PriceQuote], sol_price_usd: float) -> Dict[str, float]:
    """SOL-denominated live price per mint; mints without a usable price map to 0."""
    return {mint: quote.native_price(sol_price_usd) for mint, quote in quotes.items()}
