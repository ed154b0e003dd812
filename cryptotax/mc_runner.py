import numpy as np
import traceback
from joblib import Parallel, delayed
from tqdm import tqdm
from typing import Dict, List, Optional
from cryptotax import config as cfg
from cryptotax.config import SimulationConfig
from cryptotax.simulation.engine import simulate_scenario
from cryptotax.simulation.prices import initialize_assets
from cryptotax.trade import TradeKind
from cryptotax.utils import get_max_drawdown


def _scenario_row(scenario) -> Dict:
    """Flatten one ScenarioResult into a Monte Carlo result row."""
    final_value = scenario.portfolio_tax.current_portfolio_value
    if scenario.portfolio_timeline:
        final_after_tax = scenario.portfolio_timeline[-1].value
    else:
        final_after_tax = final_value - sum(max(0.0, e.tax) for e in scenario.transaction_tax.tax_events)

    values = [p.value for p in scenario.portfolio_timeline_portfolio_level]

    return {
        'Final_Value': final_value,
        'Final_Value_After_Tax': final_after_tax,
        'Transaction_Tax': scenario.transaction_tax.total_tax,
        'Portfolio_Tax': scenario.portfolio_tax.total_tax,
        'Tax_Difference': scenario.transaction_tax.total_tax - scenario.portfolio_tax.total_tax,
        'Net_Gains': scenario.transaction_tax.net_gains,
        'Num_Trades': len(scenario.transactions),
        'Num_Sells': sum(1 for t in scenario.transactions if t.kind is TradeKind.SELL),
        'Max_DD': get_max_drawdown(values),
    }


def simulate_single_run(args):
    """
    One Monte Carlo draw: fresh price paths plus every scenario on them.

    args = (sim_id, sim_config[, scenario_ids]). The generator is seeded with
    sim_id + SEED_OFFSET so any run can be reproduced on its own.
    """
    if len(args) == 3:
        sim_id, sim_config, scenario_ids = args
    else:
        sim_id, sim_config = args
        scenario_ids = cfg.SCENARIO_ORDER

    rng = np.random.default_rng(sim_id + cfg.SEED_OFFSET)
    _, price_history = initialize_assets(sim_config.days, rng=rng)

    run_results = {}
    for sid in scenario_ids:
        try:
            scenario = simulate_scenario(sid, sim_config, price_history, rng)
            row = _scenario_row(scenario)
            row['Sim_Id'] = sim_id
            run_results[sid] = row
        except Exception as e:
            print(f"  [ERR] Sim {sim_id} scenario {sid}: {e}")
            traceback.print_exc()
            run_results[sid] = {
                'Sim_Id': sim_id,
                'Final_Value': 0.0,
                'Final_Value_After_Tax': 0.0,
                'Transaction_Tax': 0.0,
                'Portfolio_Tax': 0.0,
                'Tax_Difference': 0.0,
                'Net_Gains': 0.0,
                'Num_Trades': 0,
                'Num_Sells': 0,
                'Max_DD': 0.0,
                'Error': str(e),
            }

    return run_results


def parallel_monte_carlo(sim_config: Optional[SimulationConfig] = None,
                         num_simulations: int = None, n_workers: int = None,
                         scenario_ids: List[str] = None) -> Dict[str, List[Dict]]:
    """
    Repeat the full simulation over independent seeds.

    Args:
        sim_config: Simulation parameters (defaults when None)
        num_simulations: Number of draws (cfg.NUM_SIMULATIONS when None)
        n_workers: joblib worker count (cfg.N_WORKERS when None); 1 runs in-process
        scenario_ids: Scenarios to run (all when None)

    Returns:
        {scenario_id: [row, ...]} with one row per draw, in sim_id order
    """
    if sim_config is None:
        sim_config = cfg.get_simulation_config()
    if num_simulations is None:
        num_simulations = cfg.NUM_SIMULATIONS
    if n_workers is None:
        n_workers = cfg.N_WORKERS
    if scenario_ids is None:
        scenario_ids = list(cfg.SCENARIO_ORDER)

    print(f"\n{'='*80}")
    print(f"MONTE CARLO: {num_simulations:,} sims x {sim_config.days} days")
    print(f"{'='*80}")
    print(f"  Initial value: ${sim_config.initial_value:,.0f} | Tax rate: {sim_config.tax_rate*100:.1f}%")
    print(f"  Using joblib with {n_workers} workers\n")

    all_results = {sid: [] for sid in scenario_ids}

    results_list = Parallel(n_jobs=n_workers, backend='loky', verbose=0)(
        delayed(simulate_single_run)((sim_id, sim_config, scenario_ids))
        for sim_id in tqdm(range(num_simulations), desc=f"{sim_config.days}D MC", unit="sim")
    )

    for run_results in results_list:
        for sid in scenario_ids:
            if sid in run_results:
                all_results[sid].append(run_results[sid])

    failed = sum(1 for rows in all_results.values() for r in rows if 'Error' in r)
    if failed:
        print(f"\n  [!] {failed} scenario runs failed (see 'Error' in results)")

    return all_results
