"""Daily PnL calendar as DataFrames, for the month-by-month grid and exports."""
from typing import Mapping

import pandas as pd

from memesense.analysis.models import DailyStat

CALENDAR_COLUMNS = ["pnl", "pnl_usd", "wins", "losses", "trades", "volume"]


def calendar_frame(calendar: Mapping[str, DailyStat]) -> pd.DataFrame:
    """One row per day, indexed by date, oldest first."""
    if not calendar:
        return pd.DataFrame(columns=CALENDAR_COLUMNS, index=pd.DatetimeIndex([], name="date"))

    df = pd.DataFrame([stat.to_dict() for stat in calendar.values()],
                      index=pd.to_datetime(list(calendar.keys())))
    df.index.name = "date"
    return df[CALENDAR_COLUMNS].sort_index()


def monthly_breakdown(calendar: Mapping[str, DailyStat]) -> pd.DataFrame:
    """Sum the calendar per month, newest month first."""
    if not calendar:
        return pd.DataFrame(columns=["month"] + CALENDAR_COLUMNS + ["win_rate"])

    df = calendar_frame(calendar)
    df["month"] = df.index.to_period("M")
    monthly = df.groupby("month").agg(
        pnl=("pnl", "sum"),
        pnl_usd=("pnl_usd", "sum"),
        wins=("wins", "sum"),
        losses=("losses", "sum"),
        trades=("trades", "sum"),
        volume=("volume", "sum"),
    ).reset_index()

    decided = monthly["wins"] + monthly["losses"]
    monthly["win_rate"] = (monthly["wins"] / decided.where(decided > 0) * 100).fillna(0.0)
    monthly["month"] = monthly["month"].astype(str)
    return monthly.sort_values("month", ascending=False).reset_index(drop=True)
