from datetime import timedelta
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

from memesense.analysis.trade_analysis import USDC_MINT

PROFILES = ("moon", "dump", "chop", "rug")

# Exit price multiple range per profile
EXIT_MULTIPLES = {
    "moon": (2.0, 8.0),
    "dump": (0.2, 0.8),
    "chop": (0.8, 1.3),
    "rug": (0.01, 0.1),
}

TOKEN_SUPPLY = 1_000_000_000


def _ms(ts: pd.Timestamp) -> int:
    return int(ts.value // 1_000_000)


class WalletSimulator:
    """
    Generates a noisy wallet history shaped like the normalizer's output.

    Raw camelCase dicts, the way upstream hands them over: scaled exits,
    rebuys, dust left behind, airdropped tokens sold with no buy, duplicate
    rows from pagination overlap, quote-currency legs and the odd broken row.
    """

    def __init__(self, start_date, days=30, seed=None, sol_price_usd=150.0):
        self.start_date = pd.to_datetime(start_date, utc=True)
        self.end_date = self.start_date + timedelta(days=days)
        self.rng = np.random.default_rng(seed)
        self.sol_price_usd = sol_price_usd
        self.trades: List[Dict] = []
        self.price_lookup: Dict[str, Dict] = {}
        self.profiles: Dict[str, str] = {}
        self._sig_counter = 0

    def generate(self, num_tokens=20) -> Tuple[List[Dict], Dict[str, Dict]]:
        entry_slots = pd.date_range(self.start_date, self.end_date, periods=num_tokens * 2)
        picks = sorted(self.rng.choice(len(entry_slots), size=num_tokens, replace=False))

        for i, slot in enumerate(picks):
            mint = f"Sim{i:03d}" + "pump" * 9
            self._simulate_position(mint, entry_slots[slot])

        self._add_noise()
        self.trades.sort(key=lambda t: t["timestamp"] if isinstance(t["timestamp"], (int, float)) else 0)
        return self.trades, self.price_lookup

    def _record(self, trade_type, mint, sol_amount, token_amount, ts) -> Dict:
        self._sig_counter += 1
        trade = {
            "type": trade_type,
            "mint": mint,
            "solAmount": float(sol_amount),
            "tokenAmount": float(token_amount),
            "timestamp": min(_ms(ts), _ms(self.end_date)),
            "signature": f"sim{self._sig_counter:06d}",
        }
        self.trades.append(trade)
        return trade

    def _simulate_position(self, mint, entry_time):
        profile = str(self.rng.choice(PROFILES))
        self.profiles[mint] = profile
        entry_price = self.rng.uniform(1e-7, 1e-5) # SOL per token

        # Entries
        bought = 0.0
        t = entry_time
        for _ in range(int(self.rng.integers(1, 4))):
            sol = self.rng.uniform(0.1, 2.0)
            fill = entry_price * (1 + self.rng.normal(0, 0.05))
            tokens = sol / max(fill, 1e-9)
            self._record("BUY", mint, sol, tokens, t)
            bought += tokens
            t += pd.Timedelta(minutes=float(self.rng.uniform(1, 30)))

        low, high = EXIT_MULTIPLES[profile]
        exit_multiple = self.rng.uniform(low, high)

        # Rugs are often never sold, chop sometimes stays open
        if profile == "rug" and self.rng.random() < 0.5:
            sell_fraction = 0.0
        elif profile == "chop" and self.rng.random() < 0.4:
            sell_fraction = self.rng.uniform(0.3, 0.7)
        elif self.rng.random() < 0.3:
            sell_fraction = 0.995 # Leaves dust behind
        else:
            sell_fraction = 1.0

        if sell_fraction > 0:
            to_sell = bought * sell_fraction
            n_sells = int(self.rng.integers(1, 5))
            chunks = self.rng.dirichlet(np.ones(n_sells)) * to_sell
            for chunk in chunks:
                t += pd.Timedelta(minutes=float(self.rng.uniform(5, 60 * 24)))
                price = entry_price * exit_multiple * (1 + self.rng.normal(0, 0.1))
                self._record("SELL", mint, chunk * max(price, 0.0), chunk, t)

        if profile == "rug" and self.rng.random() < 0.5:
            return # Pair gone, no live price

        current_price = entry_price * exit_multiple * self.rng.uniform(0.5, 1.5)
        pair_created = entry_time - pd.Timedelta(minutes=float(self.rng.uniform(0, 120)))
        self.price_lookup[mint] = {
            "price": current_price,
            "currency": "SOL",
            "pairCreatedAt": _ms(pair_created),
            "marketCap": current_price * self.sol_price_usd * TOKEN_SUPPLY,
        }

    def _add_noise(self):
        mid = self.start_date + (self.end_date - self.start_date) / 2

        # Airdropped tokens dumped without a recorded buy
        for i in range(int(self.rng.integers(1, 3))):
            self._record("SELL", f"Drop{i:02d}" + "air" * 12, self.rng.uniform(0.01, 0.5),
                         self.rng.uniform(1e3, 1e6), mid)

        # Pagination overlap
        if self.trades:
            dup = self.trades[int(self.rng.integers(0, len(self.trades)))]
            self.trades.append(dict(dup))

        # Quote-currency leg the normalizer let through
        self._record("BUY", USDC_MINT, 1.0, 150.0, mid)

        # Broken row
        self.trades.append({"type": "SELL", "mint": "", "solAmount": float("nan"),
                            "tokenAmount": 10.0, "timestamp": _ms(mid), "signature": "broken"})
