"""Unit tests for price lookup normalisation and the SOL price history."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from memesense.analysis.models import PriceQuote
from memesense.analysis.price_history import DEFAULT_SOL_PRICE_HISTORY, SolPriceHistory, month_key
from memesense.analysis.price_lookup import native_prices, resolve_price_lookup, resolve_quote


def _ms(year, month, day=1) -> int:
    return int(datetime(year, month, day, tzinfo=timezone.utc).timestamp() * 1000)


# ---------------------------------------------------------------------------
# resolve_quote / resolve_price_lookup
# ---------------------------------------------------------------------------

class TestResolveQuote:
    def test_bare_number_is_native(self):
        quote = resolve_quote(0.0004)
        assert quote == PriceQuote(kind="native", value=0.0004)

    def test_usd_mapping_is_quoted(self):
        quote = resolve_quote({"price": "0.25", "currency": "usd"})
        assert quote.kind == "quoted"
        assert quote.quote_currency == "USD"
        assert quote.native_price(125.0) == pytest.approx(0.002)

    def test_sol_or_missing_currency_is_native(self):
        assert resolve_quote({"price": 0.1}).kind == "native"
        assert resolve_quote({"price": 0.1, "currency": "SOL"}).native_price(150.0) == 0.1

    def test_pair_created_seconds_are_scaled_to_ms(self):
        quote = resolve_quote({"price": 1.0, "pairCreatedAt": 1_700_000_000})
        assert quote.pair_created_at == 1_700_000_000_000

    def test_pair_created_ms_kept(self):
        quote = resolve_quote({"price": 1.0, "pair_created_at": 1_700_000_000_123})
        assert quote.pair_created_at == 1_700_000_000_123

    def test_unusable_entries_dropped(self):
        assert resolve_quote(None) is None
        assert resolve_quote("n/a") is None
        assert resolve_quote(float("nan")) is None
        assert resolve_quote(-1) is None
        assert resolve_quote(True) is None
        assert resolve_quote({"price": None}) is None
        assert resolve_quote(10 ** 400) is None

    def test_priceless_entry_keeps_pair_metadata(self):
        quote = resolve_quote({"price": 0, "pairCreatedAt": 1_700_000_000, "marketCap": 42_000})
        assert quote.value == 0.0
        assert quote.market_cap_usd == 42_000
        assert quote.native_price(150.0) == 0.0

    def test_quoted_price_with_zero_sol_price(self):
        quote = PriceQuote(kind="quoted", value=1.0, quote_currency="USD")
        assert quote.native_price(0.0) == 0.0

    def test_resolve_whole_map(self):
        quotes = resolve_price_lookup({"A": 0.5, "B": {"price": 3.0, "currency": "USD"}, "C": "?"})

        assert set(quotes) == {"A", "B"}
        assert native_prices(quotes, 150.0) == {"A": 0.5, "B": pytest.approx(0.02)}

    def test_keys_are_stripped(self):
        assert set(resolve_price_lookup({" A\t": 0.5})) == {"A"}

    def test_empty_map(self):
        assert resolve_price_lookup(None) == {}
        assert resolve_price_lookup({}) == {}


# ---------------------------------------------------------------------------
# SolPriceHistory
# ---------------------------------------------------------------------------

class TestSolPriceHistory:
    def test_month_key_is_utc(self):
        # 2025-03-31 23:30 UTC is still March even where local time is April
        ts = _ms(2025, 3, 31) + (23 * 60 + 30) * 60 * 1000
        assert month_key(ts) == "2025-03"

    def test_month_key_rejects_garbage(self):
        assert month_key(None) is None
        assert month_key(float("nan")) is None
        assert month_key(1e30) is None

    def test_known_month(self):
        history = SolPriceHistory()
        assert history.price_at(_ms(2025, 4, 10), fallback=999.0) == 75
        assert history.price_at(_ms(2024, 4, 10), fallback=999.0) == 150

    def test_unknown_month_uses_fallback(self):
        history = SolPriceHistory()
        assert history.price_at(_ms(2031, 6, 1), fallback=212.0) == 212.0
        assert history.price_at(None, fallback=212.0) == 212.0

    def test_default_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_SOL_PRICE_HISTORY["2024-01"] = 1

    def test_injected_table_is_copied(self):
        table = {"2025-01": 100.0}
        history = SolPriceHistory(table)
        table["2025-01"] = 1.0

        assert history.price_at(_ms(2025, 1, 5), fallback=0.0) == 100.0
        assert "2025-01" in history
        assert len(history) == 1
