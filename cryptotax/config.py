from dataclasses import dataclass
from datetime import date
from enum import Enum
import math
import multiprocessing

# ============================================================================
# CONFIGURATION
# ============================================================================

# Day 0 of every simulated price path and trade timestamp
EPOCH = date(2024, 1, 1)

INITIAL_CAPITAL = 100000
DEFAULT_DAYS = 365
MAX_DAYS = 1095                 # 3 years, the longest horizon the engine is sized for
DEFAULT_TAX_RATE = 0.20


class AssetId(Enum):
    """Closed set of simulated assets. Iteration order is generation order."""
    BTC = "BTC"
    ETH = "ETH"
    DOGE = "DOGE"


ASSET_IDS = list(AssetId)

# trend = annual drift fraction, volatility = daily noise amplitude (fraction of price)
ASSETS = {
    AssetId.BTC: {
        'name': 'Bitcoin',
        'base_price': 45000,
        'volatility': 0.03,
        'trend': 0.30,
    },
    AssetId.ETH: {
        'name': 'Ethereum',
        'base_price': 2500,
        'volatility': 0.05,
        'trend': 0.40,
    },
    AssetId.DOGE: {
        'name': 'Dogecoin',
        'base_price': 0.08,
        'volatility': 0.08,
        'trend': 0.50,
    },
}

# Day-0 allocation of the initial capital
ALLOCATIONS = {
    AssetId.BTC: 0.5,
    AssetId.ETH: 0.3,
    AssetId.DOGE: 0.2,
}

# Prices never fall below this fraction of the asset's base price
PRICE_FLOOR_FRACTION = 0.5

# Rounding applied when prices and trades are created
PRICE_DECIMALS = 2
QUANTITY_DECIMALS = 6

# Trade generation
ACTIVE_TRADING_START_DAY = 7
TREND_LOOKAHEAD_DAYS = 5
MIN_CASH_PRICE_MULTIPLE = 100   # a buy needs cash > 100 x unit price

# Timeline sampling
SAMPLE_INTERVAL_DAYS = 30

# Strategy definitions
#   step_range:     inclusive range of days between decision points
#   buy_signal:     look-ahead trend ('up'/'down') that triggers a buy;
#                   the opposite trend triggers a sell
#   buy_fraction:   share of available cash spent on a buy
#   sell_fraction:  share of the current position sold
STRATEGIES = {
    'bad': {
        'name': 'Bad Trader',
        'type': 'active',
        'step_range': (3, 7),
        'buy_signal': 'down',       # buys right before drops
        'buy_fraction': (0.30, 0.50),
        'sell_fraction': (0.40, 0.60),
    },
    'good': {
        'name': 'Good Trader',
        'type': 'active',
        'step_range': (5, 11),
        'buy_signal': 'up',
        'buy_fraction': (0.25, 0.40),
        'sell_fraction': (0.35, 0.50),
    },
    'hold': {
        'name': 'Buy and Hold',
        'type': 'benchmark',
    },
}

SCENARIO_ORDER = ['bad', 'good', 'hold']

# Monte Carlo parameters
N_WORKERS = max(1, multiprocessing.cpu_count() - 2)
NUM_SIMULATIONS = 200
SEED_OFFSET = 50000

# Debugging and logging
DEBUG = False                     # Set to True for per-trade tax traces


class ConfigError(ValueError):
    """Raised when a simulation configuration cannot be used."""


@dataclass(frozen=True)
class SimulationConfig:
    """Engine input: starting capital, simulated day count and flat tax rate."""
    initial_value: float = INITIAL_CAPITAL
    days: int = DEFAULT_DAYS
    tax_rate: float = DEFAULT_TAX_RATE

    def __post_init__(self):
        try:
            initial_value = float(self.initial_value)
            days = int(self.days)
            tax_rate = float(self.tax_rate)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Malformed simulation config: {e}") from e

        if not math.isfinite(initial_value) or initial_value <= 0:
            raise ConfigError(f"initial_value must be a positive number, got {self.initial_value!r}")
        if not math.isfinite(tax_rate) or not 0.0 <= tax_rate <= 1.0:
            raise ConfigError(f"tax_rate must be within [0, 1], got {self.tax_rate!r}")

        # Degenerate horizons are resolved downstream (empty series), not rejected
        days = max(days, 0)

        object.__setattr__(self, 'initial_value', initial_value)
        object.__setattr__(self, 'days', days)
        object.__setattr__(self, 'tax_rate', tax_rate)

    @classmethod
    def from_dict(cls, values: dict) -> 'SimulationConfig':
        """
        Build a config from a host mapping.

        Accepts both the camelCase keys used by the dashboard
        (initialValue, days, taxRate) and snake_case keys. Missing keys
        fall back to the module defaults.
        """
        if values is None:
            return cls()
        if not isinstance(values, dict):
            raise ConfigError(f"Simulation config must be a mapping, got {type(values).__name__}")

        def pick(*keys, default):
            for key in keys:
                if key in values and values[key] is not None:
                    return values[key]
            return default

        return cls(
            initial_value=pick('initial_value', 'initialValue', default=INITIAL_CAPITAL),
            days=pick('days', default=DEFAULT_DAYS),
            tax_rate=pick('tax_rate', 'taxRate', default=DEFAULT_TAX_RATE),
        )

    def to_dict(self) -> dict:
        return {
            'initial_value': self.initial_value,
            'days': self.days,
            'tax_rate': self.tax_rate,
        }


def get_simulation_config() -> SimulationConfig:
    """Return the default simulation configuration in one canonical object."""
    return SimulationConfig(
        initial_value=float(INITIAL_CAPITAL),
        days=DEFAULT_DAYS,
        tax_rate=float(DEFAULT_TAX_RATE)
    )


def print_banner():
    """Print the startup banner."""
    print(f"\n{'='*80}")
    print(f"CRYPTO PORTFOLIO TAX REGIME SIMULATOR")
    print(f"{'='*80}")
    print(f"TAX REGIMES COMPARED:")
    print(f"  1. Transaction-based: tax on every realized sale (FIFO lots, losses net gains)")
    print(f"  2. Portfolio-level: tax as if the whole portfolio were liquidated")
    print(f"SCENARIOS: {', '.join(STRATEGIES[s]['name'] for s in SCENARIO_ORDER)}")
    print(f"ASSETS: {', '.join(a.value for a in ASSET_IDS)}")
    print(f"{'='*80}")
    print(f"System: {N_WORKERS} workers, {NUM_SIMULATIONS} sims/run")
    print(f"{'='*80}\n")
