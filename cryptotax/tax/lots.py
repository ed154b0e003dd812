from collections import deque
from dataclasses import dataclass, field
from datetime import date
from typing import Deque, Dict, List, Optional, Sequence
from cryptotax.config import AssetId
from cryptotax.trade import TradeKind
from cryptotax.utils import day_index, price_at


@dataclass
class Lot:
    """An open purchase: remaining quantity at a per-unit cost basis."""
    quantity: float
    cost_basis: float
    acquired: Optional[date] = None


@dataclass(frozen=True)
class ConsumedLots:
    """What a FIFO sale drained from the ledger."""
    quantity: float = 0.0
    cost_basis: float = 0.0               # weighted per-unit cost of the consumed quantity
    slices: List[Lot] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.slices

    def realized_gain(self, sale_price: float) -> float:
        """Sum of (sale_price - lot_cost) * qty over the consumed slices, in FIFO order."""
        return sum((sale_price - s.cost_basis) * s.quantity for s in self.slices)


class FifoLedger:
    """
    Per-asset queue of open lots, consumed oldest-first.

    Usage:
        ledger = FifoLedger()
        ledger.open(AssetId.BTC, 1.0, 45000)
        ledger.open(AssetId.BTC, 1.0, 46000)
        consumed = ledger.consume(AssetId.BTC, 1.5)
        consumed.realized_gain(47000)    # 2000 + 500

    Each tax model and each timeline sample builds its own ledger; ledgers
    are never shared.
    """

    def __init__(self):
        self.lots: Dict[AssetId, Deque[Lot]] = {asset: deque() for asset in AssetId}

    def open(self, asset: AssetId, quantity: float, cost_basis: float,
             acquired: Optional[date] = None) -> Lot:
        lot = Lot(quantity=quantity, cost_basis=cost_basis, acquired=acquired)
        self.lots[asset].append(lot)
        return lot

    def consume(self, asset: AssetId, quantity: float) -> ConsumedLots:
        """
        Remove `quantity` from the front of the asset's queue.

        The head lot is split when it only partially covers the request and
        dropped once drained. Selling with no open lots consumes nothing and
        returns an empty result; a request larger than the open quantity
        consumes what is there and ignores the rest.
        """
        queue = self.lots[asset]
        remaining = quantity
        slices = []

        while remaining > 0 and queue:
            head = queue[0]
            take = min(remaining, head.quantity)
            slices.append(Lot(quantity=take, cost_basis=head.cost_basis, acquired=head.acquired))
            remaining -= take
            head.quantity -= take
            if head.quantity <= 0:
                queue.popleft()

        consumed_qty = sum(s.quantity for s in slices)
        if consumed_qty <= 0:
            return ConsumedLots()

        weighted_cost = sum(s.quantity * s.cost_basis for s in slices) / consumed_qty
        return ConsumedLots(quantity=consumed_qty, cost_basis=weighted_cost, slices=slices)

    def has_open_lots(self, asset: AssetId) -> bool:
        return len(self.lots[asset]) > 0

    def open_quantity(self, asset: AssetId) -> float:
        return sum(lot.quantity for lot in self.lots[asset])

    def open_cost(self, asset: AssetId) -> float:
        """Total cost basis (quantity x unit cost) of the asset's open lots."""
        return sum(lot.quantity * lot.cost_basis for lot in self.lots[asset])

    def snapshot(self) -> Dict[AssetId, List[Lot]]:
        """Copy of the open lots, safe to hand out."""
        return {
            asset: [Lot(lot.quantity, lot.cost_basis, lot.acquired) for lot in queue]
            for asset, queue in self.lots.items()
        }


# ============================================================================
# TRADE REPLAY
# ============================================================================

@dataclass
class ReplayState:
    """
    Portfolio state after replaying a trade list from the start.

    `quantities` is the flat running total per asset (buys minus sells);
    `ledger` holds the same history as FIFO lots. They agree unless a sale
    exceeded the open lots.
    """
    cash: float
    quantities: Dict[AssetId, float]
    ledger: FifoLedger

    def holdings(self) -> Dict[str, float]:
        """Flat holdings snapshot: {'USD': cash, 'BTC': qty, ...}."""
        snapshot = {'USD': self.cash}
        snapshot.update({asset.value: qty for asset, qty in self.quantities.items()})
        return snapshot

    def market_value(self, price_history: Dict, day: int) -> float:
        """Cash plus flat quantities valued at `day`'s prices."""
        return self.cash + sum(
            qty * price_at(price_history.get(asset), day)
            for asset, qty in self.quantities.items()
        )

    def liquidation_value(self, price_history: Dict, day: int) -> float:
        """Cash plus open FIFO lots valued at `day`'s prices."""
        return self.cash + sum(
            self.ledger.open_quantity(asset) * price_at(price_history.get(asset), day)
            for asset in AssetId
        )

    def cost_basis(self) -> float:
        """Cash plus the cost basis of every open lot."""
        return self.cash + sum(self.ledger.open_cost(asset) for asset in AssetId)


def replay_trades(trades: Sequence, initial_value: float, upto_day: Optional[int] = None) -> ReplayState:
    """
    Rebuild cash, flat positions and FIFO lots from scratch.

    Buys spend cash and open a lot; sells add their proceeds to cash and
    consume lots oldest-first. Only trades dated on or before `upto_day` are
    applied (all trades when it is None). Nothing is carried between calls,
    so the same inputs always produce the same state.
    """
    state = ReplayState(
        cash=float(initial_value),
        quantities={asset: 0.0 for asset in AssetId},
        ledger=FifoLedger()
    )

    for trade in trades:
        if upto_day is not None and day_index(trade.timestamp) > upto_day:
            continue
        if trade.kind is TradeKind.BUY:
            state.cash -= trade.quantity * trade.price
            state.quantities[trade.asset] += trade.quantity
            state.ledger.open(trade.asset, trade.quantity, trade.price, trade.timestamp)
        elif trade.kind is TradeKind.SELL:
            state.cash += trade.quantity * trade.price
            state.quantities[trade.asset] -= trade.quantity
            state.ledger.consume(trade.asset, trade.quantity)

    return state
