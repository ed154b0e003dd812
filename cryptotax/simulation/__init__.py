from cryptotax.simulation.prices import (
    AssetDescriptor, PricePoint, generate_price_history,
    build_asset_descriptors, initialize_assets
)
from cryptotax.simulation.engine import (
    ScenarioResult, SimulationResult, simulate_scenario, simulate_portfolio
)
