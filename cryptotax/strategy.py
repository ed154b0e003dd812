import numpy as np
from typing import Dict, List
from cryptotax import config as cfg
from cryptotax.config import AssetId, ASSET_IDS
from cryptotax.trade import Trade, TradeJournal
from cryptotax.utils import price_at


def get_price_trend(history, day: int, days: int, lookahead: int = cfg.TREND_LOOKAHEAD_DAYS) -> str:
    """'up' if the price `lookahead` days later (capped at the last day) is higher, else 'down'."""
    current_price = price_at(history, day)
    future_price = price_at(history, min(day + lookahead, days - 1))
    return 'up' if future_price > current_price else 'down'


def allocate_initial_portfolio(journal: TradeJournal, initial_value: float, price_history: Dict) -> None:
    """Day-0 buy of every asset, sized by its allocation weight."""
    for i, asset in enumerate(ASSET_IDS):
        price = price_at(price_history.get(asset), 0)
        quantity = (initial_value * cfg.ALLOCATIONS[asset]) / price
        journal.buy(f'tx-0-{i}', asset, quantity, price, day=0)


def run_active_strategy(journal: TradeJournal, config: Dict, days: int,
                        price_history: Dict, rng: np.random.Generator) -> None:
    """
    Walk forward from day 7 in random steps, trading one random asset per step
    on a look-ahead trend signal.

    A strategy whose buy_signal is 'down' buys right before drops and sells
    right before rises (poor timing); 'up' does the opposite.
    """
    buy_signal = config['buy_signal']
    sell_signal = 'up' if buy_signal == 'down' else 'down'
    step_lo, step_hi = config['step_range']
    buy_lo, buy_hi = config['buy_fraction']
    sell_lo, sell_hi = config['sell_fraction']

    day = cfg.ACTIVE_TRADING_START_DAY
    while day < days:
        asset = ASSET_IDS[int(rng.integers(len(ASSET_IDS)))]
        history = price_history.get(asset)
        price = price_at(history, day)
        trend = get_price_trend(history, day, days)

        if trend == buy_signal and journal.cash > price * cfg.MIN_CASH_PRICE_MULTIPLE:
            quantity = (journal.cash / price) * rng.uniform(buy_lo, buy_hi)
            journal.buy(f'tx-{day}-buy', asset, quantity, price, day)
        elif trend == sell_signal and journal.positions[asset] > 0:
            quantity = journal.positions[asset] * rng.uniform(sell_lo, sell_hi)
            journal.sell(f'tx-{day}-sell', asset, quantity, price, day)

        day += int(rng.integers(step_lo, step_hi + 1))


def generate_transactions(strategy_id: str, initial_value: float, days: int,
                          price_history: Dict[AssetId, List],
                          rng: np.random.Generator = None, seed: int = None) -> List[Trade]:
    """
    Produce the full trade list for one strategy.

    Every strategy opens with the same day-0 allocation (50/30/20 across
    BTC/ETH/DOGE). Benchmark strategies stop there; active strategies keep
    trading until the horizon ends.

    Returns:
        Trades sorted ascending by timestamp (ties keep generation order)
    """
    if strategy_id not in cfg.STRATEGIES:
        raise ValueError(f"Unknown strategy '{strategy_id}'. Expected one of {list(cfg.STRATEGIES)}")

    if rng is None:
        rng = np.random.default_rng(seed)

    config = cfg.STRATEGIES[strategy_id]
    journal = TradeJournal(initial_value, scenario=strategy_id)

    allocate_initial_portfolio(journal, initial_value, price_history)

    if config['type'] == 'active':
        run_active_strategy(journal, config, days, price_history, rng)

    return journal.get_sorted_trades()
