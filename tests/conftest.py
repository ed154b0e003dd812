"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cryptotax import config as cfg
from cryptotax.config import AssetId, SimulationConfig
from cryptotax.simulation.prices import PricePoint
from cryptotax.trade import Trade, TradeKind
from cryptotax.utils import date_for_day


@pytest.fixture(autouse=True)
def reset_config():
    """Reset module-level switches after each test."""
    original_debug = cfg.DEBUG
    yield
    cfg.DEBUG = original_debug


@pytest.fixture
def make_trade():
    """Factory: make_trade('buy', 'BTC', 1.0, 45000, day=0, trade_id='tx-1')."""
    counter = {'n': 0}

    def _make(kind, asset, quantity, price, day=0, trade_id=None):
        counter['n'] += 1
        return Trade(
            id=trade_id or f"tx-{counter['n']}",
            kind=TradeKind(kind),
            asset=AssetId(asset),
            quantity=quantity,
            price=price,
            timestamp=date_for_day(day),
        )

    return _make


@pytest.fixture
def make_history():
    """Factory: {AssetId: [PricePoint, ...]} from plain price lists keyed by ticker."""

    def _make(prices_by_asset):
        return {
            AssetId(asset): [PricePoint(date=date_for_day(i), price=p) for i, p in enumerate(prices)]
            for asset, prices in prices_by_asset.items()
        }

    return _make


@pytest.fixture
def flat_history(make_history):
    """Ten days of constant prices for all three assets."""
    return make_history({
        'BTC': [45000.0] * 10,
        'ETH': [2500.0] * 10,
        'DOGE': [0.08] * 10,
    })


@pytest.fixture
def small_config():
    return SimulationConfig(initial_value=100000, days=90, tax_rate=0.20)
