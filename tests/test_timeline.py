"""Timeline reconciler tests."""

import pytest

from cryptotax.tax.engine import calculate_transaction_tax
from cryptotax.tax.regimes import TaxRegime
from cryptotax.timeline import (
    build_cumulative_tax_timeline, build_portfolio_tax_timeline,
    calculate_portfolio_value_over_time, cumulative_realized_tax, sample_days
)
from cryptotax.utils import date_for_day, day_index


@pytest.fixture
def history(make_history):
    return make_history({
        'BTC': [45000.0, 46000.0, 47000.0, 50000.0, 50000.0, 48000.0],
        'ETH': [2500.0] * 6,
        'DOGE': [0.08] * 6,
    })


@pytest.fixture
def trades(make_trade):
    return [
        make_trade('buy', 'BTC', 1.0, 45000, day=0, trade_id='tx-0-0'),
        make_trade('sell', 'BTC', 0.5, 50000, day=3, trade_id='tx-3-sell'),
    ]


class TestSampleDays:
    def test_includes_trade_days_monthly_and_last(self, make_trade):
        trades = [make_trade('buy', 'BTC', 1.0, 1.0, day=d) for d in (0, 12, 45)]
        assert sample_days(trades, 100) == [0, 12, 30, 45, 60, 90, 99]

    def test_sorted_and_deduplicated(self, make_trade):
        trades = [make_trade('buy', 'BTC', 1.0, 1.0, day=30), make_trade('buy', 'ETH', 1.0, 1.0, day=30)]
        assert sample_days(trades, 31) == [0, 30]

    def test_empty_horizon(self, make_trade):
        assert sample_days([make_trade('buy', 'BTC', 1.0, 1.0)], 0) == []


class TestPortfolioValueOverTime:
    def test_portfolio_regime_values(self, trades, history):
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.PORTFOLIO
        )
        assert [day_index(p.date) for p in timeline] == [0, 3, 5]
        assert [p.value for p in timeline] == pytest.approx([100000, 105000, 104000])
        assert all(p.tax_paid == 0 for p in timeline)
        assert timeline[1].holdings == {'USD': 80000.0, 'BTC': 0.5, 'ETH': 0.0, 'DOGE': 0.0}

    def test_transaction_regime_deducts_realized_tax(self, trades, history):
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.TRANSACTION
        )
        # sale realizes 0.5 x 5000 = 2500 gain -> 500 tax from day 3 on
        assert [p.tax_paid for p in timeline] == pytest.approx([0, 500, 500])
        assert [p.value for p in timeline] == pytest.approx([100000, 104500, 103500])
        assert timeline[1].holdings['USD'] == pytest.approx(79500)

    def test_realized_write_off_is_not_refunded(self, make_trade, history):
        trades = [
            make_trade('buy', 'BTC', 1.0, 50000, day=0, trade_id='tx-0-0'),
            make_trade('sell', 'BTC', 1.0, 47000, day=2, trade_id='tx-2-sell'),
        ]
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.TRANSACTION
        )
        assert all(p.tax_paid == 0 for p in timeline)

    def test_loss_after_taxed_gain_keeps_tax_paid(self, make_trade, history):
        trades = [
            make_trade('buy', 'BTC', 1.0, 45000, day=0, trade_id='tx-0-0'),
            make_trade('sell', 'BTC', 1.0, 50000, day=1, trade_id='tx-1-sell'),
            make_trade('buy', 'ETH', 10.0, 2500, day=2, trade_id='tx-2-buy'),
            make_trade('sell', 'ETH', 10.0, 2000, day=3, trade_id='tx-3-sell'),
        ]
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.TRANSACTION
        )
        by_day = {day_index(p.date): p for p in timeline}

        # +1000 on the BTC gain; the -1000 ETH credit is not refunded
        assert by_day[1].tax_paid == pytest.approx(1000)
        assert by_day[3].tax_paid == pytest.approx(1000)
        assert by_day[5].tax_paid == pytest.approx(1000)
        assert by_day[3].holdings['USD'] == pytest.approx(100000 + 5000 - 5000 - 1000)
        assert by_day[3].value == pytest.approx(99000)

        paid = [p.tax_paid for p in timeline]
        assert paid == sorted(paid)

    def test_cumulative_series_still_nets_credits(self, make_trade, history):
        trades = [
            make_trade('buy', 'BTC', 1.0, 45000, day=0, trade_id='tx-0-0'),
            make_trade('sell', 'BTC', 1.0, 50000, day=1, trade_id='tx-1-sell'),
            make_trade('buy', 'ETH', 10.0, 2500, day=2, trade_id='tx-2-buy'),
            make_trade('sell', 'ETH', 10.0, 2000, day=3, trade_id='tx-3-sell'),
        ]
        tax = calculate_transaction_tax(trades, 0.20)
        assert cumulative_realized_tax(trades, tax, 3) == pytest.approx(0)
        assert cumulative_realized_tax(trades, tax, 3, positive_only=True) == pytest.approx(1000)

    def test_idempotent(self, trades, history):
        args = (trades, 100000, history, 6, 0.20, TaxRegime.TRANSACTION)
        assert calculate_portfolio_value_over_time(*args) == calculate_portfolio_value_over_time(*args)

    def test_zero_days(self, trades, history):
        assert calculate_portfolio_value_over_time(trades, 100000, history, 0, 0.20) == []

    def test_day_beyond_history_uses_last_price(self, trades, history):
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 40, 0.20, TaxRegime.PORTFOLIO
        )
        assert day_index(timeline[-1].date) == 39
        assert timeline[-1].value == pytest.approx(80000 + 0.5 * 48000)


class TestTaxTimelines:
    def test_cumulative_tax(self, trades, history):
        tax = calculate_transaction_tax(trades, 0.20)
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.TRANSACTION, transaction_tax=tax
        )
        points = build_cumulative_tax_timeline(trades, tax, timeline)
        assert [p.date for p in points] == [p.date for p in timeline]
        assert [p.tax for p in points] == pytest.approx([0, 500, 500])
        assert cumulative_realized_tax(trades, tax, 2) == 0

    def test_portfolio_tax_uses_undeducted_values(self, trades, history):
        tax = calculate_transaction_tax(trades, 0.20)
        deducted = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.TRANSACTION, transaction_tax=tax
        )
        undeducted = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.PORTFOLIO
        )
        points = build_portfolio_tax_timeline(deducted, undeducted, 100000, 0.20)
        assert [p.tax for p in points] == pytest.approx([0, 1000, 800])

    def test_portfolio_tax_falls_back_to_own_value(self, trades, history):
        timeline = calculate_portfolio_value_over_time(
            trades, 100000, history, 6, 0.20, TaxRegime.PORTFOLIO
        )
        points = build_portfolio_tax_timeline(timeline, [], 100000, 0.20)
        assert points[0].date == date_for_day(0)
        assert [p.tax for p in points] == pytest.approx([0, 1000, 800])
