from dataclasses import dataclass, asdict
from datetime import date
from enum import Enum
from typing import List, Dict
from cryptotax import config as cfg
from cryptotax.config import AssetId
from cryptotax.utils import round_to, date_for_day


class TradeKind(Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class Trade:
    id: str
    kind: TradeKind
    asset: AssetId
    quantity: float
    price: float
    timestamp: date
    scenario: str = ''

    @property
    def amount(self) -> float:
        return self.quantity * self.price

    def to_dict(self) -> dict:
        d = asdict(self)
        d['kind'] = self.kind.value
        d['asset'] = self.asset.value
        return d


class TradeJournal:
    """
    Records a strategy's trades while tracking the cash and positions it
    actually holds.

    Positions and cash are kept at full precision; only the emitted Trade
    records are rounded (quantity to 6 decimals, price to 2). Sizing the next
    trade from the unrounded state keeps the journal from drifting away from
    what the strategy believes it owns.
    """

    def __init__(self, initial_cash: float, scenario: str = ''):
        self.scenario = scenario
        self.cash = float(initial_cash)
        self.positions: Dict[AssetId, float] = {asset: 0.0 for asset in AssetId}
        self.trades: List[Trade] = []

    def _record(self, trade_id: str, kind: TradeKind, asset: AssetId,
                quantity: float, price: float, day: int) -> Trade:
        trade = Trade(
            id=trade_id,
            kind=kind,
            asset=asset,
            quantity=round_to(quantity, cfg.QUANTITY_DECIMALS),
            price=round_to(price, cfg.PRICE_DECIMALS),
            timestamp=date_for_day(day),
            scenario=self.scenario
        )
        self.trades.append(trade)
        return trade

    def buy(self, trade_id: str, asset: AssetId, quantity: float, price: float, day: int) -> Trade:
        self.cash -= quantity * price
        self.positions[asset] += quantity
        return self._record(trade_id, TradeKind.BUY, asset, quantity, price, day)

    def sell(self, trade_id: str, asset: AssetId, quantity: float, price: float, day: int) -> Trade:
        self.cash += quantity * price
        self.positions[asset] -= quantity
        return self._record(trade_id, TradeKind.SELL, asset, quantity, price, day)

    def get_summary(self) -> dict:
        if not self.trades:
            return {'count': 0, 'volume': 0}
        return {
            'count': len(self.trades),
            'buys': sum(1 for t in self.trades if t.kind is TradeKind.BUY),
            'sells': sum(1 for t in self.trades if t.kind is TradeKind.SELL),
            'volume': sum(t.amount for t in self.trades)
        }

    def get_sorted_trades(self) -> List[Trade]:
        """Trades ordered by timestamp; same-day trades keep generation order."""
        return sorted(self.trades, key=lambda t: t.timestamp)
