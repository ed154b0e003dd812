from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence
from cryptotax import config as cfg
from cryptotax.tax.engine import TransactionTaxResult, calculate_transaction_tax
from cryptotax.tax.lots import replay_trades
from cryptotax.tax.regimes import TaxRegime
from cryptotax.trade import Trade, TradeKind
from cryptotax.utils import round_money, day_index, date_for_day


@dataclass(frozen=True)
class TimelinePoint:
    date: date
    value: float
    holdings: Dict[str, float] = field(default_factory=dict)
    tax_paid: float = 0.0

    def to_dict(self) -> dict:
        return {
            'date': self.date,
            'value': self.value,
            'holdings': dict(self.holdings),
            'tax_paid': self.tax_paid,
        }


@dataclass(frozen=True)
class TaxPoint:
    date: date
    tax: float

    def to_dict(self) -> dict:
        return {'date': self.date, 'tax': self.tax}


def sample_days(transactions: Sequence[Trade], days: int,
                interval: int = cfg.SAMPLE_INTERVAL_DAYS) -> List[int]:
    """
    Day indices at which the timeline is evaluated.

    Day 0, every trade day, every `interval`-th day and the last day, sorted
    and deduplicated. A horizon of zero days has no samples.
    """
    if days <= 0:
        return []

    sample = {0, days - 1}
    sample.update(day_index(tx.timestamp) for tx in transactions)
    sample.update(range(0, days, interval))
    return sorted(sample)


def cumulative_realized_tax(transactions: Sequence[Trade], transaction_tax: TransactionTaxResult,
                            day: int, positive_only: bool = False) -> float:
    """
    Sum of realized-sale tax for sales dated on or before `day`, in trade order.

    With positive_only, negative increments (loss credits) are left out: the
    result is the cash actually paid, which never shrinks.
    """
    events = transaction_tax.events_by_transaction()
    running = 0.0
    for tx in transactions:
        if tx.kind is not TradeKind.SELL or day_index(tx.timestamp) > day:
            continue
        event = events.get(tx.id)
        if event is None:
            continue
        if positive_only and event.tax < 0:
            continue
        running += event.tax
    return running


def calculate_portfolio_value_over_time(transactions: Sequence[Trade], initial_value: float,
                                        price_history: Dict, days: int,
                                        tax_rate: float = cfg.DEFAULT_TAX_RATE,
                                        regime: TaxRegime = TaxRegime.PORTFOLIO,
                                        transaction_tax: Optional[TransactionTaxResult] = None
                                        ) -> List[TimelinePoint]:
    """
    Portfolio value at each sample day.

    Every sample replays the trades dated on or before it from scratch and
    values the resulting flat holdings at that day's prices, so the output
    depends only on the inputs.

    Under TaxRegime.TRANSACTION the tax realized so far is paid out of cash:
    the sum of the positive per-sale tax through the sample day. Loss
    credits never add cash back, not even against tax already paid.
    TaxRegime.PORTFOLIO deducts nothing; its liability only arises on
    liquidation.
    """
    if regime is TaxRegime.TRANSACTION and transaction_tax is None:
        transaction_tax = calculate_transaction_tax(transactions, tax_rate)

    timeline = []
    for day in sample_days(transactions, days):
        state = replay_trades(transactions, initial_value, upto_day=day)

        tax_paid = 0.0
        if regime is TaxRegime.TRANSACTION:
            tax_paid = cumulative_realized_tax(transactions, transaction_tax, day, positive_only=True)

        holdings = state.holdings()
        holdings['USD'] -= tax_paid
        value = state.market_value(price_history, day) - tax_paid

        timeline.append(TimelinePoint(
            date=date_for_day(day),
            value=round_money(value),
            holdings=holdings,
            tax_paid=round_money(tax_paid)
        ))

    return timeline


def build_cumulative_tax_timeline(transactions: Sequence[Trade], transaction_tax: TransactionTaxResult,
                                  timeline: Sequence[TimelinePoint]) -> List[TaxPoint]:
    """Running realized tax (transaction-based regime) at each timeline date."""
    return [
        TaxPoint(
            date=point.date,
            tax=round_money(cumulative_realized_tax(transactions, transaction_tax, day_index(point.date)))
        )
        for point in timeline
    ]


def build_portfolio_tax_timeline(timeline: Sequence[TimelinePoint],
                                 portfolio_level_timeline: Sequence[TimelinePoint],
                                 initial_value: float,
                                 tax_rate: float = cfg.DEFAULT_TAX_RATE) -> List[TaxPoint]:
    """
    Tax owed under the portfolio-level regime at each timeline date.

    Uses the undeducted (portfolio-level) value for the same date; when no
    point shares the date, the timeline's own value stands in. Negative
    figures are kept.
    """
    by_date = {p.date: p.value for p in portfolio_level_timeline}
    points = []
    for point in timeline:
        value = by_date.get(point.date, point.value)
        points.append(TaxPoint(date=point.date, tax=round_money((value - initial_value) * tax_rate)))
    return points
