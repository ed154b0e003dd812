from cryptotax.tax.lots import (
    Lot, ConsumedLots, FifoLedger, ReplayState, replay_trades
)
from cryptotax.tax.engine import (
    TaxEvent, TransactionTaxResult, calculate_transaction_tax,
    GoldenTestCase, GOLDEN_TESTS, run_golden_tests
)
from cryptotax.tax.portfolio import PortfolioTaxResult, calculate_portfolio_tax
from cryptotax.tax.regimes import (
    TaxRegime, RegimeComparison, get_higher_portfolio_value_strategy,
    get_higher_tax_strategy, compare_regimes
)
