"""
Crypto Tax Package - Portfolio Tax Regime Simulator

Entry point: cryptotax.run()
"""

import time
from cryptotax import config as cfg


def run(seed: int = cfg.SEED_OFFSET, num_simulations: int = None, n_workers: int = None):
    """
    Validate the tax model, simulate one seeded portfolio, then sweep seeds.

    Returns the Monte Carlo summary DataFrame, or None when the golden cases
    fail (nothing is simulated on a broken tax model).
    """
    # Lazy imports to keep `import cryptotax` light
    from cryptotax.tax.engine import run_golden_tests
    from cryptotax.ui import get_simulation_config_interactive
    from cryptotax.simulation.engine import simulate_portfolio
    from cryptotax.mc_runner import parallel_monte_carlo
    from cryptotax.reporting import create_summary_statistics, print_simulation_overview

    started = time.perf_counter()
    cfg.print_banner()

    golden = run_golden_tests(trace_failures=True)
    if golden['failed'] > 0:
        print("\nSTOPPING - transaction tax model failed its golden cases")
        return None

    sim_config = get_simulation_config_interactive()

    print_simulation_overview(simulate_portfolio(sim_config, seed=seed), seed)

    mc_results = parallel_monte_carlo(sim_config, num_simulations=num_simulations, n_workers=n_workers)
    summary = create_summary_statistics(mc_results, sim_config)

    print(f"Done: {golden['passed']}/{golden['total']} golden cases, "
          f"{sum(len(rows) for rows in mc_results.values())} scenario runs "
          f"in {time.perf_counter() - started:.1f}s")
    return summary
