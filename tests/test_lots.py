"""FIFO ledger and trade replay tests."""

import pytest

from cryptotax.config import AssetId
from cryptotax.tax.lots import FifoLedger, replay_trades


class TestFifoLedger:
    def test_open_appends_lots_in_order(self):
        ledger = FifoLedger()
        ledger.open(AssetId.BTC, 1.0, 45000)
        ledger.open(AssetId.BTC, 2.0, 46000)
        lots = ledger.snapshot()[AssetId.BTC]
        assert [lot.cost_basis for lot in lots] == [45000, 46000]
        assert ledger.open_quantity(AssetId.BTC) == pytest.approx(3.0)

    def test_consume_splits_head_lot(self):
        ledger = FifoLedger()
        ledger.open(AssetId.BTC, 1.0, 45000)
        ledger.open(AssetId.BTC, 1.0, 46000)

        consumed = ledger.consume(AssetId.BTC, 1.5)

        assert consumed.quantity == pytest.approx(1.5)
        assert consumed.realized_gain(47000) == pytest.approx(2500)
        assert consumed.cost_basis == pytest.approx((45000 + 0.5 * 46000) / 1.5)
        remaining = ledger.snapshot()[AssetId.BTC]
        assert len(remaining) == 1
        assert remaining[0].quantity == pytest.approx(0.5)
        assert remaining[0].cost_basis == 46000

    def test_exact_consume_removes_lot(self):
        ledger = FifoLedger()
        ledger.open(AssetId.ETH, 10.0, 2500)
        ledger.consume(AssetId.ETH, 10.0)
        assert not ledger.has_open_lots(AssetId.ETH)

    def test_consume_empty_queue_is_noop(self):
        ledger = FifoLedger()
        consumed = ledger.consume(AssetId.DOGE, 5.0)
        assert consumed.is_empty
        assert consumed.quantity == 0.0
        assert consumed.cost_basis == 0.0

    def test_oversell_consumes_what_is_open(self):
        ledger = FifoLedger()
        ledger.open(AssetId.ETH, 2.0, 2000)
        consumed = ledger.consume(AssetId.ETH, 5.0)
        assert consumed.quantity == pytest.approx(2.0)
        assert not ledger.has_open_lots(AssetId.ETH)

    def test_assets_are_independent(self):
        ledger = FifoLedger()
        ledger.open(AssetId.BTC, 1.0, 45000)
        ledger.consume(AssetId.ETH, 1.0)
        assert ledger.open_quantity(AssetId.BTC) == pytest.approx(1.0)

    def test_snapshot_is_a_copy(self):
        ledger = FifoLedger()
        ledger.open(AssetId.BTC, 1.0, 45000)
        snap = ledger.snapshot()
        snap[AssetId.BTC][0].quantity = 99.0
        assert ledger.open_quantity(AssetId.BTC) == pytest.approx(1.0)


class TestReplayTrades:
    def test_cash_and_quantities(self, make_trade):
        trades = [
            make_trade('buy', 'BTC', 1.0, 45000, day=0),
            make_trade('sell', 'BTC', 0.5, 50000, day=3),
        ]
        state = replay_trades(trades, 100000)
        assert state.cash == pytest.approx(100000 - 45000 + 25000)
        assert state.quantities[AssetId.BTC] == pytest.approx(0.5)
        assert state.ledger.open_quantity(AssetId.BTC) == pytest.approx(0.5)

    def test_upto_day_ignores_later_trades(self, make_trade):
        trades = [
            make_trade('buy', 'BTC', 1.0, 45000, day=0),
            make_trade('sell', 'BTC', 1.0, 50000, day=5),
        ]
        state = replay_trades(trades, 100000, upto_day=4)
        assert state.quantities[AssetId.BTC] == pytest.approx(1.0)
        state = replay_trades(trades, 100000, upto_day=5)
        assert state.quantities[AssetId.BTC] == pytest.approx(0.0)

    def test_holdings_snapshot_keys(self, make_trade):
        state = replay_trades([make_trade('buy', 'ETH', 2.0, 2500)], 10000)
        assert state.holdings() == {'USD': 5000.0, 'BTC': 0.0, 'ETH': 2.0, 'DOGE': 0.0}

    def test_sell_without_lots_still_credits_cash(self, make_trade):
        state = replay_trades([make_trade('sell', 'ETH', 1.0, 2000)], 10000)
        assert state.cash == pytest.approx(12000)
        assert not state.ledger.has_open_lots(AssetId.ETH)

    def test_market_and_liquidation_value_agree(self, make_trade, flat_history):
        trades = [
            make_trade('buy', 'BTC', 1.0, 45000, day=0),
            make_trade('buy', 'ETH', 4.0, 2500, day=1),
            make_trade('sell', 'ETH', 1.0, 2500, day=2),
        ]
        state = replay_trades(trades, 100000)
        assert state.market_value(flat_history, 5) == pytest.approx(state.liquidation_value(flat_history, 5))
        assert state.liquidation_value(flat_history, 5) == pytest.approx(100000)

    def test_cost_basis(self, make_trade):
        trades = [make_trade('buy', 'BTC', 1.0, 40000, day=0)]
        state = replay_trades(trades, 100000)
        assert state.cost_basis() == pytest.approx(100000)
