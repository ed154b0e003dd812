import os
import sys
from cryptotax import config as cfg
from cryptotax.config import ConfigError, SimulationConfig


def _is_non_interactive() -> bool:
    return not sys.stdin.isatty() or bool(os.getenv('CRYPTOTAX_NON_INTERACTIVE'))


def _prompt_number(label: str, default, cast):
    """Ask until the answer parses; blank keeps the default."""
    while True:
        raw = input(f"  {label} [default {default}]: ").strip()
        if raw == "":
            return default
        try:
            return cast(raw.replace(',', '').replace('$', '').replace('%', ''))
        except ValueError:
            print(f"  Invalid input '{raw}'. Please enter a number.")


def get_simulation_config_interactive() -> SimulationConfig:
    """
    Interactive simulation setup: starting capital, horizon and tax rate.
    Uses defaults if stdin is not a terminal or CRYPTOTAX_NON_INTERACTIVE is set.
    """
    if _is_non_interactive():
        config = cfg.get_simulation_config()
        print(f"\n  [Non-interactive mode] Using defaults: ${config.initial_value:,.0f}, "
              f"{config.days} days, {config.tax_rate*100:.0f}% tax")
        return config

    print(f"\n{'='*80}")
    print("SIMULATION CONFIGURATION")
    print(f"{'='*80}")

    while True:
        initial_value = _prompt_number("Initial portfolio value ($)", cfg.INITIAL_CAPITAL, float)
        days = _prompt_number(f"Days to simulate (max {cfg.MAX_DAYS})", cfg.DEFAULT_DAYS, int)
        tax_pct = _prompt_number("Capital gains tax rate (%)", int(cfg.DEFAULT_TAX_RATE * 100), float)

        try:
            config = SimulationConfig(
                initial_value=initial_value,
                days=min(days, cfg.MAX_DAYS),
                tax_rate=tax_pct / 100.0
            )
            break
        except ConfigError as e:
            print(f"\n  {e}\n  Please try again.\n")

    print(f"\n{'='*80}")
    print("YOUR SIMULATION CONFIG")
    print(f"{'='*80}")
    print(f"  Initial value: ${config.initial_value:,.2f}")
    print(f"  Horizon: {config.days} days")
    print(f"  Tax rate: {config.tax_rate*100:.1f}%")
    print(f"{'='*80}\n")

    return config
