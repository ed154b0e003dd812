"""
Reporting module for the crypto tax simulator.

Contains the Monte Carlo summary table, tabular views of a single
simulation (scenario summary, timelines, prices) and the per-trade
breakdown used by the presentation layer.
"""

import numpy as np
import pandas as pd
from scipy import stats
from typing import Dict, List, Optional
from cryptotax import config as cfg
from cryptotax.config import AssetId, SimulationConfig
from cryptotax.tax.lots import replay_trades
from cryptotax.tax.regimes import compare_regimes
from cryptotax.trade import TradeKind
from cryptotax.utils import round_money, day_index


# ============================================================================
# SINGLE SIMULATION VIEWS
# ============================================================================

def prices_frame(price_history: Dict[AssetId, List]) -> pd.DataFrame:
    """One column per asset, indexed by date."""
    columns = {
        asset.value: pd.Series(
            [p.price for p in points],
            index=pd.to_datetime([p.date for p in points]),
            dtype=float
        )
        for asset, points in price_history.items()
    }
    df = pd.DataFrame(columns)
    df.index.name = 'date'
    return df


def timeline_frame(scenario) -> pd.DataFrame:
    """
    Value and tax series of one scenario merged on date.

    Columns: value_transaction (tax deducted), value_portfolio (no
    deduction), tax_paid, cumulative_tax, portfolio_tax.
    """
    transaction = pd.DataFrame(
        [{'date': p.date, 'value_transaction': p.value, 'tax_paid': p.tax_paid}
         for p in scenario.portfolio_timeline],
        columns=['date', 'value_transaction', 'tax_paid']
    )
    portfolio = pd.DataFrame(
        [{'date': p.date, 'value_portfolio': p.value} for p in scenario.portfolio_timeline_portfolio_level],
        columns=['date', 'value_portfolio']
    )
    cumulative = pd.DataFrame(
        [{'date': p.date, 'cumulative_tax': p.tax} for p in scenario.cumulative_tax_timeline],
        columns=['date', 'cumulative_tax']
    )
    owed = pd.DataFrame(
        [{'date': p.date, 'portfolio_tax': p.tax} for p in scenario.portfolio_tax_timeline],
        columns=['date', 'portfolio_tax']
    )

    df = transaction.merge(portfolio, on='date', how='outer')
    df = df.merge(cumulative, on='date', how='left').merge(owed, on='date', how='left')
    df['date'] = pd.to_datetime(df['date'])
    return df.sort_values('date').set_index('date')


def scenario_summary_frame(result) -> pd.DataFrame:
    """One row per scenario of a SimulationResult."""
    rows = []
    for scenario in result.scenarios:
        comparison = compare_regimes(scenario)
        rows.append({
            'scenario': scenario.id,
            'name': scenario.name,
            'trades': len(scenario.transactions),
            'sells': sum(1 for t in scenario.transactions if t.kind is TradeKind.SELL),
            'net_gains': scenario.transaction_tax.net_gains,
            'transaction_tax': comparison.transaction_tax,
            'portfolio_tax': comparison.portfolio_tax,
            'tax_difference': round_money(comparison.tax_difference),
            'final_value_transaction': comparison.transaction_final_value,
            'final_value_portfolio': comparison.portfolio_final_value,
            'higher_value': comparison.higher_value.value if comparison.higher_value else None,
            'higher_tax': comparison.higher_tax.value if comparison.higher_tax else None,
        })
    return pd.DataFrame(rows).set_index('scenario')


def print_simulation_overview(result, seed: Optional[int] = None) -> None:
    """Price moves per asset followed by the per-scenario regime table."""
    label = f" (seed {seed})" if seed is not None else ""
    print(f"\n{'='*80}")
    print(f"SINGLE SIMULATION{label}: {result.config.days} days")
    print(f"{'='*80}")
    for asset, points in result.price_history.items():
        if points:
            change = (points[-1].price / points[0].price - 1) * 100
            print(f"  {asset.value:<5} {points[0].price:>12,.2f} -> {points[-1].price:>12,.2f} ({change:+.1f}%)")
    print("-"*80)
    print(scenario_summary_frame(result).to_string())
    print("="*80)


def build_transaction_breakdown(scenario, config: SimulationConfig) -> pd.DataFrame:
    """
    Per-trade table with running totals.

    For each trade, in order:
      running_value    cash + flat holdings at the trade day's prices
      tax_for_trade    realized tax of this sale (0 for buys)
      running_tax      realized tax so far
      portfolio_tax_owed  max(0, (running_value - cost basis) x rate), the
                          liability if everything were sold right now
    """
    events = scenario.transaction_tax.events_by_transaction()
    rows = []
    running_tax = 0.0

    for i, tx in enumerate(scenario.transactions):
        state = replay_trades(scenario.transactions[:i + 1], config.initial_value)
        day = day_index(tx.timestamp)
        running_value = state.market_value(scenario.price_history, day)

        tax_for_trade = 0.0
        if tx.kind is TradeKind.SELL and tx.id in events:
            tax_for_trade = events[tx.id].tax
            running_tax += tax_for_trade

        owed = max(0.0, (running_value - state.cost_basis()) * config.tax_rate)

        row = tx.to_dict()
        row.update({
            'running_value': round_money(running_value),
            'tax_for_trade': round_money(tax_for_trade),
            'running_tax': round_money(running_tax),
            'portfolio_tax_owed': round_money(owed),
        })
        rows.append(row)

    columns = ['id', 'kind', 'asset', 'quantity', 'price', 'timestamp', 'scenario',
               'running_value', 'tax_for_trade', 'running_tax', 'portfolio_tax_owed']
    return pd.DataFrame(rows, columns=columns)


# ============================================================================
# MONTE CARLO SUMMARY
# ============================================================================

def mean_confidence_interval(values, confidence: float = 0.95):
    """Student-t confidence interval of the mean; degenerate samples collapse to the mean."""
    arr = np.asarray(values, dtype=float)
    if len(arr) == 0:
        return np.nan, np.nan, np.nan
    mean = float(np.mean(arr))
    if len(arr) < 2:
        return mean, mean, mean
    sem = stats.sem(arr)
    if not np.isfinite(sem) or sem == 0:
        return mean, mean, mean
    lo, hi = stats.t.interval(confidence, len(arr) - 1, loc=mean, scale=sem)
    return mean, float(lo), float(hi)


def create_summary_statistics(mc_results: Dict[str, List[Dict]],
                              sim_config: Optional[SimulationConfig] = None) -> pd.DataFrame:
    """
    Percentile table per scenario across Monte Carlo draws.

    Failed runs (rows carrying 'Error') are excluded from the statistics
    and counted separately.
    """
    if sim_config is None:
        sim_config = cfg.get_simulation_config()

    print("\n" + "="*120)
    print(f"TAX REGIME COMPARISON - {sim_config.days} DAYS, "
          f"${sim_config.initial_value:,.0f} START, {sim_config.tax_rate*100:.1f}% RATE")
    print("="*120)
    print(f"{'ID':<5} {'Scenario':<14} {'Sims':>5} {'p10':>10} {'p25':>10} {'Median$':>10} {'p75':>10} {'p90':>10} "
          f"| {'TxTax':>9} {'PfTax':>9} {'Diff':>9} {'95% CI':>21} {'Tx>Pf':>7} | {'MaxDD':>7} {'Trd':>5}")
    print("-"*120)

    rows = []
    for sid in cfg.SCENARIO_ORDER:
        if sid not in mc_results or not mc_results[sid]:
            continue

        results = [r for r in mc_results[sid] if 'Error' not in r]
        errors = len(mc_results[sid]) - len(results)
        if not results:
            print(f"{sid:<5} {cfg.STRATEGIES[sid]['name']:<14} all {errors} runs failed")
            continue

        final = np.array([r['Final_Value'] for r in results])
        after_tax = np.array([r['Final_Value_After_Tax'] for r in results])
        tx_tax = np.array([r['Transaction_Tax'] for r in results])
        pf_tax = np.array([r['Portfolio_Tax'] for r in results])
        diff = np.array([r['Tax_Difference'] for r in results])

        mean_diff, ci_lo, ci_hi = mean_confidence_interval(diff)

        d = {
            'scenario': sid,
            'name': cfg.STRATEGIES[sid]['name'],
            'sims': len(results),
            'errors': errors,
            'p10': np.percentile(final, 10),
            'p25': np.percentile(final, 25),
            'median': np.median(final),
            'p75': np.percentile(final, 75),
            'p90': np.percentile(final, 90),
            'median_after_tax': np.median(after_tax),
            'mean_transaction_tax': float(np.mean(tx_tax)),
            'mean_portfolio_tax': float(np.mean(pf_tax)),
            'mean_tax_difference': mean_diff,
            'ci_low': ci_lo,
            'ci_high': ci_hi,
            'pct_transaction_higher': float(np.mean(tx_tax > pf_tax) * 100),
            'median_max_dd': float(np.median([r.get('Max_DD', 0) for r in results])),
            'mean_trades': float(np.mean([r.get('Num_Trades', 0) for r in results])),
        }
        rows.append(d)

        print(f"{sid:<5} {d['name']:<14} {d['sims']:>5} {d['p10']:>10,.0f} {d['p25']:>10,.0f} {d['median']:>10,.0f} "
              f"{d['p75']:>10,.0f} {d['p90']:>10,.0f} | {d['mean_transaction_tax']:>9,.0f} "
              f"{d['mean_portfolio_tax']:>9,.0f} {d['mean_tax_difference']:>9,.0f} "
              f"[{d['ci_low']:>9,.0f},{d['ci_high']:>9,.0f}] {d['pct_transaction_higher']:>6.1f}% | "
              f"{d['median_max_dd']*100:>6.1f}% {d['mean_trades']:>5.1f}")
        if errors:
            print(f"      ({errors} failed runs excluded)")

    print("="*120)
    print("  Diff = transaction-based tax - portfolio-level tax (mean, with 95% CI)")
    print("  Tx>Pf = share of draws where the transaction-based regime charged more")
    print("="*120 + "\n")

    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).set_index('scenario')
