"""
Averaged gas cost estimates in USD.

Costs come from a per-chain base gas unit count, a per-venue multiplier, a
default gas price and a native-token USD price constant. There is no live
simulation; values are meant to be in the right order of magnitude.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from .types import SOLANA_CHAIN_ID


@dataclass(frozen=True)
class ChainGasProfile:
    """
    Gas assumptions for one chain.

    Attributes:
        swap_gas_units: Gas units of a single swap
        gas_price_gwei: Base fee plus priority fee in gwei
        native_token_usd: Approximate USD price of the gas token
    """

    swap_gas_units: int
    gas_price_gwei: float
    native_token_usd: float


CHAIN_GAS_PROFILES: Dict[int, ChainGasProfile] = {
    1: ChainGasProfile(150_000, 22.0, 3500.0),
    10: ChainGasProfile(200_000, 0.0015, 3500.0),
    56: ChainGasProfile(200_000, 6.0, 550.0),
    137: ChainGasProfile(250_000, 130.0, 1.5),
    8453: ChainGasProfile(150_000, 0.006, 3500.0),
    42161: ChainGasProfile(700_000, 0.15, 3500.0),
}

DEFAULT_GAS_PROFILE = CHAIN_GAS_PROFILES[1]

# Solana charges per signature in lamports instead of gas units
SOLANA_BASE_FEE_LAMPORTS = 5_000
SOLANA_PRIORITY_FEE_LAMPORTS = 1_000
SOLANA_USD = 150.0
LAMPORTS_PER_SOL = 1_000_000_000

VENUE_GAS_MULTIPLIERS: Dict[str, float] = {
    "uniswap": 1.0,
    "sushiswap": 1.2,
    "pancakeswap": 1.0,
    "balancer": 1.3,
    "curve": 1.4,
    "jupiter": 1.0,
    "orca": 1.0,
    "raydium": 1.0,
}


def venue_multiplier(slug: str) -> float:
    return VENUE_GAS_MULTIPLIERS.get(slug.lower(), 1.0)


def estimate_gas_usd(
    chain_id: int, slug: str, gas_units: Optional[int] = None
) -> float:
    """
    Estimate the USD cost of one swap on ``slug`` on ``chain_id``.

    Args:
        chain_id: Chain the swap executes on
        slug: Venue slug, selects the venue multiplier
        gas_units: Gas units reported by the venue; when given it replaces
            the chain's base units and the venue multiplier

    Returns:
        Estimated gas cost in USD
    """
    if chain_id == SOLANA_CHAIN_ID:
        lamports = (
            SOLANA_BASE_FEE_LAMPORTS + SOLANA_PRIORITY_FEE_LAMPORTS
        ) * venue_multiplier(slug)
        return lamports / LAMPORTS_PER_SOL * SOLANA_USD

    profile = CHAIN_GAS_PROFILES.get(chain_id, DEFAULT_GAS_PROFILE)
    if gas_units is not None and gas_units > 0:
        units = float(gas_units)
    else:
        units = profile.swap_gas_units * venue_multiplier(slug)
    return units * profile.gas_price_gwei * 1e-9 * profile.native_token_usd
