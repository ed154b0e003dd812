"""Reporting and tabular view tests."""

from dataclasses import replace

import numpy as np
import pandas as pd
import pytest

from cryptotax.config import SimulationConfig
from cryptotax.reporting import (
    build_transaction_breakdown, create_summary_statistics, mean_confidence_interval,
    prices_frame, scenario_summary_frame, timeline_frame
)
from cryptotax.simulation.engine import simulate_portfolio
from cryptotax.tax.engine import calculate_transaction_tax


@pytest.fixture(scope="module")
def result():
    return simulate_portfolio(SimulationConfig(days=90), seed=77)


class TestFrames:
    def test_prices_frame(self, result):
        df = prices_frame(result.price_history)
        assert list(df.columns) == ['BTC', 'ETH', 'DOGE']
        assert len(df) == 90
        assert df.index[0] == pd.Timestamp('2024-01-01')

    def test_timeline_frame(self, result):
        scenario = result.get_scenario('bad')
        df = timeline_frame(scenario)
        assert len(df) == len(scenario.portfolio_timeline)
        assert {'value_transaction', 'value_portfolio', 'tax_paid', 'cumulative_tax', 'portfolio_tax'} <= set(df.columns)
        assert (df['value_transaction'] <= df['value_portfolio']).all()

    def test_scenario_summary_frame(self, result):
        df = scenario_summary_frame(result)
        assert list(df.index) == ['bad', 'good', 'hold']
        assert df.loc['hold', 'trades'] == 3
        assert df.loc['hold', 'sells'] == 0


class TestTransactionBreakdown:
    def test_running_totals(self, make_trade, make_history):
        history = make_history({
            'BTC': [45000.0, 46000.0, 50000.0],
            'ETH': [2500.0] * 3,
            'DOGE': [0.08] * 3,
        })
        trades = [
            make_trade('buy', 'BTC', 1.0, 45000, day=0, trade_id='tx-0-0'),
            make_trade('sell', 'BTC', 0.5, 50000, day=2, trade_id='tx-2-sell'),
        ]
        scenario = replace(
            simulate_portfolio({'days': 3}, seed=1).get_scenario('hold'),
            transactions=trades,
            transaction_tax=calculate_transaction_tax(trades, 0.20),
            price_history=history
        )
        df = build_transaction_breakdown(scenario, SimulationConfig(initial_value=100000, tax_rate=0.20))

        assert list(df['id']) == ['tx-0-0', 'tx-2-sell']
        assert list(df['running_value']) == pytest.approx([100000, 105000])
        assert list(df['tax_for_trade']) == pytest.approx([0, 500])
        assert list(df['running_tax']) == pytest.approx([0, 500])
        # after the sale: value 105000, cost basis 80000 + 0.5 x 45000
        assert list(df['portfolio_tax_owed']) == pytest.approx([0, 500])

    def test_one_row_per_trade(self, result):
        scenario = result.get_scenario('good')
        df = build_transaction_breakdown(scenario, result.config)
        assert len(df) == len(scenario.transactions)
        assert (df['portfolio_tax_owed'] >= 0).all()


class TestSummaryStatistics:
    def test_confidence_interval(self):
        mean, lo, hi = mean_confidence_interval([1.0, 2.0, 3.0, 4.0])
        assert mean == pytest.approx(2.5)
        assert lo < mean < hi
        assert mean_confidence_interval([5.0, 5.0]) == (5.0, 5.0, 5.0)
        assert mean_confidence_interval([7.0]) == (7.0, 7.0, 7.0)
        assert all(np.isnan(v) for v in mean_confidence_interval([]))

    def test_summary_table(self, capsys):
        rows = [
            {'Final_Value': 100000 + 1000 * i, 'Final_Value_After_Tax': 99000 + 1000 * i,
             'Transaction_Tax': 200.0 * i, 'Portfolio_Tax': 150.0 * i, 'Tax_Difference': 50.0 * i,
             'Num_Trades': 10, 'Max_DD': 0.1}
            for i in range(5)
        ]
        failed = dict(rows[0], Error='boom')
        df = create_summary_statistics({'bad': rows + [failed], 'hold': []}, SimulationConfig(days=30))

        assert list(df.index) == ['bad']
        assert df.loc['bad', 'sims'] == 5
        assert df.loc['bad', 'errors'] == 1
        assert df.loc['bad', 'median'] == pytest.approx(102000)
        assert df.loc['bad', 'mean_tax_difference'] == pytest.approx(100)
        assert df.loc['bad', 'pct_transaction_higher'] == pytest.approx(80)
        assert 'TAX REGIME COMPARISON' in capsys.readouterr().out

    def test_empty_results(self):
        assert create_summary_statistics({}).empty
