import numpy as np
from datetime import date, timedelta
from typing import Optional, Sequence
from cryptotax import config as cfg

# Sentinel used when an asset has no generated history
FALLBACK_PRICE = 1.0


def round_to(value: float, digits: int) -> float:
    """Round to a fixed number of decimals and return a plain float."""
    return float(round(float(value), digits))


def round_money(value: float) -> float:
    return round_to(value, 2)


def day_index(when: date, epoch: date = cfg.EPOCH) -> int:
    """Whole days elapsed between the simulation epoch and `when`."""
    return (when - epoch).days


def date_for_day(day: int, epoch: date = cfg.EPOCH) -> date:
    return epoch + timedelta(days=int(day))


def price_at(history: Optional[Sequence], day: int) -> float:
    """
    Price of a generated series at a day index.

    Lookups outside the series clamp to its ends:
      - missing or empty series -> FALLBACK_PRICE
      - day < 0                 -> first price
      - day >= len(series)      -> last price
    """
    if not history:
        return FALLBACK_PRICE
    if day < 0:
        return history[0].price
    if day >= len(history):
        return history[-1].price
    return history[day].price


def series_last_day(price_history: dict) -> int:
    """Index of the last day covered by the longest series (-1 if none)."""
    lengths = [len(h) for h in price_history.values() if h]
    return max(lengths) - 1 if lengths else -1


def get_max_drawdown(values: Sequence[float]) -> float:
    """Largest peak-to-trough decline of a value series, as a positive fraction."""
    ec = np.asarray(values, dtype=float)
    if len(ec) < 2:
        return 0.0
    running_max = np.maximum.accumulate(ec)
    drawdowns = (ec - running_max) / np.where(running_max > 0, running_max, 1.0)
    return float(abs(drawdowns.min()))
