import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Union
from cryptotax import config as cfg
from cryptotax.config import AssetId, SimulationConfig
from cryptotax.simulation.prices import AssetDescriptor, PricePoint, initialize_assets
from cryptotax.strategy import generate_transactions
from cryptotax.tax.engine import TransactionTaxResult, calculate_transaction_tax
from cryptotax.tax.portfolio import PortfolioTaxResult, calculate_portfolio_tax
from cryptotax.tax.regimes import TaxRegime
from cryptotax.timeline import (
    TimelinePoint, TaxPoint, calculate_portfolio_value_over_time,
    build_cumulative_tax_timeline, build_portfolio_tax_timeline
)
from cryptotax.trade import Trade


def _history_to_dict(price_history: Dict[AssetId, List[PricePoint]]) -> dict:
    return {
        asset.value: [{'date': p.date, 'price': p.price} for p in points]
        for asset, points in price_history.items()
    }


@dataclass(frozen=True)
class ScenarioResult:
    """Everything computed for one trading pattern."""
    id: str
    name: str
    transactions: List[Trade]
    transaction_tax: TransactionTaxResult
    portfolio_tax: PortfolioTaxResult
    portfolio_timeline: List[TimelinePoint]                   # transaction-based, tax deducted
    portfolio_timeline_portfolio_level: List[TimelinePoint]   # no deduction
    cumulative_tax_timeline: List[TaxPoint]
    portfolio_tax_timeline: List[TaxPoint]
    price_history: Dict[AssetId, List[PricePoint]]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'transactions': [t.to_dict() for t in self.transactions],
            'transaction_tax': self.transaction_tax.to_dict(),
            'portfolio_tax': self.portfolio_tax.to_dict(),
            'portfolio_timeline': [p.to_dict() for p in self.portfolio_timeline],
            'portfolio_timeline_portfolio_level': [p.to_dict() for p in self.portfolio_timeline_portfolio_level],
            'cumulative_tax_timeline': [p.to_dict() for p in self.cumulative_tax_timeline],
            'portfolio_tax_timeline': [p.to_dict() for p in self.portfolio_tax_timeline],
            'price_history': _history_to_dict(self.price_history),
        }


@dataclass(frozen=True)
class SimulationResult:
    assets: Dict[AssetId, AssetDescriptor]
    price_history: Dict[AssetId, List[PricePoint]]
    scenarios: List[ScenarioResult]
    config: SimulationConfig

    def get_scenario(self, scenario_id: str) -> ScenarioResult:
        for scenario in self.scenarios:
            if scenario.id == scenario_id:
                return scenario
        raise KeyError(scenario_id)

    def to_dict(self) -> dict:
        return {
            'assets': {asset.value: desc.to_dict() for asset, desc in self.assets.items()},
            'price_history': _history_to_dict(self.price_history),
            'scenarios': [s.to_dict() for s in self.scenarios],
            'config': self.config.to_dict(),
        }


def simulate_scenario(scenario_id: str, config: SimulationConfig,
                      price_history: Dict[AssetId, List[PricePoint]],
                      rng: np.random.Generator) -> ScenarioResult:
    """
    Run one trading pattern against a fixed set of price paths.

    Order: trades -> transaction tax -> portfolio tax -> both value
    timelines -> both tax series. Each step rebuilds its own lot state from
    the trade list.
    """
    transactions = generate_transactions(
        scenario_id, config.initial_value, config.days, price_history, rng=rng
    )

    transaction_tax = calculate_transaction_tax(transactions, config.tax_rate)
    portfolio_tax = calculate_portfolio_tax(
        transactions, config.initial_value, price_history, config.tax_rate
    )

    timeline_transaction = calculate_portfolio_value_over_time(
        transactions, config.initial_value, price_history, config.days,
        config.tax_rate, TaxRegime.TRANSACTION, transaction_tax=transaction_tax
    )
    timeline_portfolio = calculate_portfolio_value_over_time(
        transactions, config.initial_value, price_history, config.days,
        config.tax_rate, TaxRegime.PORTFOLIO
    )

    cumulative_tax = build_cumulative_tax_timeline(transactions, transaction_tax, timeline_transaction)
    portfolio_tax_timeline = build_portfolio_tax_timeline(
        timeline_transaction, timeline_portfolio, config.initial_value, config.tax_rate
    )

    return ScenarioResult(
        id=scenario_id,
        name=cfg.STRATEGIES[scenario_id]['name'],
        transactions=transactions,
        transaction_tax=transaction_tax,
        portfolio_tax=portfolio_tax,
        portfolio_timeline=timeline_transaction,
        portfolio_timeline_portfolio_level=timeline_portfolio,
        cumulative_tax_timeline=cumulative_tax,
        portfolio_tax_timeline=portfolio_tax_timeline,
        price_history=price_history
    )


def simulate_portfolio(config: Union[SimulationConfig, dict, None] = None, seed: int = None,
                       rng: np.random.Generator = None) -> SimulationResult:
    """
    Generate price paths once, then simulate every scenario on them.

    Args:
        config: SimulationConfig, a host mapping (see SimulationConfig.from_dict)
            or None for the defaults
        seed: Seed used when no generator is passed
        rng: Random source shared, in order, by the price paths and the
            three strategy runs

    Returns:
        SimulationResult with scenarios in the order Bad Trader, Good Trader,
        Buy and Hold

    Raises:
        ConfigError: the configuration is malformed
    """
    if not isinstance(config, SimulationConfig):
        config = SimulationConfig.from_dict(config)

    if rng is None:
        rng = np.random.default_rng(seed)

    assets, price_history = initialize_assets(config.days, rng=rng)

    scenarios = [
        simulate_scenario(scenario_id, config, price_history, rng)
        for scenario_id in cfg.SCENARIO_ORDER
    ]

    return SimulationResult(
        assets=assets,
        price_history=price_history,
        scenarios=scenarios,
        config=config
    )
