from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaxRegime(Enum):
    TRANSACTION = "transaction"    # tax on each realized sale
    PORTFOLIO = "portfolio"        # tax on liquidation value vs initial capital


def _higher(transaction_figure: float, portfolio_figure: float) -> Optional[TaxRegime]:
    if transaction_figure > portfolio_figure:
        return TaxRegime.TRANSACTION
    if portfolio_figure > transaction_figure:
        return TaxRegime.PORTFOLIO
    return None


def get_higher_portfolio_value_strategy(transaction_value: float, portfolio_value: float) -> Optional[TaxRegime]:
    """Regime that leaves the larger portfolio, None on a tie."""
    return _higher(transaction_value, portfolio_value)


def get_higher_tax_strategy(transaction_tax: float, portfolio_tax: float) -> Optional[TaxRegime]:
    """Regime that charges more tax, None on a tie."""
    return _higher(transaction_tax, portfolio_tax)


@dataclass(frozen=True)
class RegimeComparison:
    scenario: str
    transaction_final_value: float
    portfolio_final_value: float
    transaction_tax: float
    portfolio_tax: float
    higher_value: Optional[TaxRegime]
    higher_tax: Optional[TaxRegime]

    @property
    def tax_difference(self) -> float:
        """Transaction-based tax minus portfolio-level tax."""
        return self.transaction_tax - self.portfolio_tax

    def to_dict(self) -> dict:
        return {
            'scenario': self.scenario,
            'transaction_final_value': self.transaction_final_value,
            'portfolio_final_value': self.portfolio_final_value,
            'transaction_tax': self.transaction_tax,
            'portfolio_tax': self.portfolio_tax,
            'higher_value': self.higher_value.value if self.higher_value else None,
            'higher_tax': self.higher_tax.value if self.higher_tax else None,
            'tax_difference': self.tax_difference,
        }


def compare_regimes(scenario) -> RegimeComparison:
    """
    Side-by-side verdict for one simulated scenario.

    Final values are the last points of the two portfolio timelines (0 when a
    timeline is empty).
    """
    transaction_value = scenario.portfolio_timeline[-1].value if scenario.portfolio_timeline else 0.0
    portfolio_value = (scenario.portfolio_timeline_portfolio_level[-1].value
                       if scenario.portfolio_timeline_portfolio_level else 0.0)
    transaction_tax = scenario.transaction_tax.total_tax
    portfolio_tax = scenario.portfolio_tax.total_tax

    return RegimeComparison(
        scenario=scenario.name,
        transaction_final_value=transaction_value,
        portfolio_final_value=portfolio_value,
        transaction_tax=transaction_tax,
        portfolio_tax=portfolio_tax,
        higher_value=get_higher_portfolio_value_strategy(transaction_value, portfolio_value),
        higher_tax=get_higher_tax_strategy(transaction_tax, portfolio_tax)
    )
