from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence
from cryptotax import config as cfg
from cryptotax.tax.engine import TaxEvent
from cryptotax.tax.lots import replay_trades
from cryptotax.trade import Trade
from cryptotax.utils import round_money, date_for_day, series_last_day


@dataclass(frozen=True)
class PortfolioTaxResult:
    total_tax: float
    tax_events: List[TaxEvent]
    current_portfolio_value: float
    initial_value: float
    cost_basis: float
    as_of: Optional[date]

    def to_dict(self) -> dict:
        return {
            'total_tax': self.total_tax,
            'tax_events': [e.to_dict() for e in self.tax_events],
            'current_portfolio_value': self.current_portfolio_value,
            'initial_value': self.initial_value,
            'cost_basis': self.cost_basis,
            'as_of': self.as_of,
        }


def calculate_portfolio_tax(transactions: Sequence[Trade], initial_value: float,
                            price_history: Dict, tax_rate: float = cfg.DEFAULT_TAX_RATE,
                            as_of_day: Optional[int] = None) -> PortfolioTaxResult:
    """
    Portfolio-level regime: tax the whole portfolio as if liquidated.

        current = cash + sum(open lot qty x price on the valuation day)
        tax     = (current - initial_value) x rate

    Individual sales trigger nothing. A portfolio below its starting capital
    yields a negative figure. `cost_basis` (cash plus the cost of the open
    lots) is reported for display and plays no part in the tax.

    Args:
        as_of_day: Valuation day; trades after it are ignored. None values the
            full trade list at the last day covered by the price history.
    """
    if as_of_day is None:
        state = replay_trades(transactions, initial_value)
        valuation_day = series_last_day(price_history)
    else:
        state = replay_trades(transactions, initial_value, upto_day=as_of_day)
        valuation_day = as_of_day

    current_value = state.liquidation_value(price_history, valuation_day)
    profit = current_value - initial_value
    tax = profit * tax_rate
    as_of = date_for_day(valuation_day) if valuation_day >= 0 else None

    owed = TaxEvent(
        transaction_id=None,
        gain=round_money(profit),
        tax=round_money(tax),
        net_gains=round_money(profit),
        timestamp=as_of,
        kind='owed'
    )

    return PortfolioTaxResult(
        total_tax=round_money(tax),
        tax_events=[owed],
        current_portfolio_value=round_money(current_value),
        initial_value=float(initial_value),
        cost_basis=round_money(state.cost_basis()),
        as_of=as_of
    )
