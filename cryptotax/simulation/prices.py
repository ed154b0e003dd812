import numpy as np
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional
from cryptotax import config as cfg
from cryptotax.config import AssetId
from cryptotax.utils import round_to, date_for_day


@dataclass(frozen=True)
class AssetDescriptor:
    id: AssetId
    name: str
    base_price: float
    volatility: float
    trend: float

    def to_dict(self) -> dict:
        return {
            'id': self.id.value,
            'name': self.name,
            'base_price': self.base_price,
            'volatility': self.volatility,
            'trend': self.trend,
        }


@dataclass(frozen=True)
class PricePoint:
    date: date
    price: float


def generate_price_history(base_price: float, volatility: float, trend: float,
                           days: int, rng: np.random.Generator = None,
                           seed: int = None, start: date = cfg.EPOCH) -> List[PricePoint]:
    """
    Bounded random walk with drift, one point per calendar day.

    Each day:
        noise = (u - 0.5) * volatility * price,    u ~ U[0, 1)
        drift = (trend / days) * price
        price = max(price + noise + drift, floor * base_price)

    The walk carries the unrounded price forward; the emitted points are
    rounded to cents and all later computations use the rounded series.

    Args:
        base_price: Starting price, also the anchor for the price floor
        volatility: Daily noise amplitude as a fraction of price
        trend: Drift over the whole horizon (annual trend spread over `days`)
        days: Number of points to produce (<= 0 gives an empty series)
        rng: Random number generator (for reproducibility)
        seed: Seed used when no generator is passed
        start: Date of day 0

    Returns:
        List of PricePoint, chronologically ordered, len == max(days, 0)
    """
    if days <= 0:
        return []

    if rng is None:
        rng = np.random.default_rng(seed)

    floor = base_price * cfg.PRICE_FLOOR_FRACTION
    daily_trend = trend / days

    prices = []
    current = float(base_price)
    for i in range(days):
        random_change = (rng.random() - 0.5) * volatility * current
        trend_change = daily_trend * current
        current = max(current + random_change + trend_change, floor)
        prices.append(PricePoint(date=date_for_day(i, start), price=round_to(current, cfg.PRICE_DECIMALS)))

    return prices


def build_asset_descriptors() -> Dict[AssetId, AssetDescriptor]:
    return {
        asset: AssetDescriptor(
            id=asset,
            name=params['name'],
            base_price=params['base_price'],
            volatility=params['volatility'],
            trend=params['trend'],
        )
        for asset, params in cfg.ASSETS.items()
    }


def initialize_assets(days: int = cfg.MAX_DAYS, rng: np.random.Generator = None,
                      seed: Optional[int] = None):
    """
    Build the asset descriptors and one price path per asset.

    Paths are generated in AssetId order from the same generator, so a seeded
    generator reproduces all three paths.

    Returns:
        Tuple of (assets, price_history), both keyed by AssetId
    """
    if rng is None:
        rng = np.random.default_rng(seed)

    assets = build_asset_descriptors()
    price_history = {
        asset_id: generate_price_history(
            asset.base_price,
            asset.volatility,
            asset.trend,
            days,
            rng=rng
        )
        for asset_id, asset in assets.items()
    }
    return assets, price_history
