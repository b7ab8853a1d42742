"""
Core data types for DEX price aggregation and arbitrage detection.
"""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

# Quotes older than this are stale and never compared as real-time data
QUOTE_FRESHNESS_SECONDS = 300.0

SOLANA_CHAIN_ID = 101

NETWORK_NAMES: Dict[int, str] = {
    1: "ethereum",
    10: "optimism",
    56: "bnb",
    137: "polygon",
    8453: "base",
    42161: "arbitrum",
    SOLANA_CHAIN_ID: "solana",
}


def network_name(chain_id: int) -> str:
    """Human-readable network name for a chain id."""
    return NETWORK_NAMES.get(chain_id, "unknown")


def is_solana_chain(chain_id: int) -> bool:
    return chain_id == SOLANA_CHAIN_ID


@dataclass(frozen=True)
class TokenDescriptor:
    """
    A fungible asset on one chain.

    Identity is (chain_id, address); the symbol is a display hint only and
    does not take part in equality or hashing.

    Attributes:
        chain_id: Numeric chain id (101 for Solana)
        address: Contract address or mint
        symbol: Display symbol (e.g., "WETH")
        decimals: Token decimals used to normalize raw amounts
    """

    chain_id: int
    address: str
    symbol: str = field(compare=False)
    decimals: int = field(compare=False, default=18)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenDescriptor):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def key(self):
        # EVM addresses are case-insensitive, Solana mints are not
        if is_solana_chain(self.chain_id):
            return (self.chain_id, self.address)
        return (self.chain_id, self.address.lower())


def pair_key(base: TokenDescriptor, quote: TokenDescriptor) -> str:
    """Display key for a token pair, e.g. "WETH/USDC"."""
    return f"{base.symbol}/{quote.symbol}"


@dataclass(frozen=True)
class PriceQuote:
    """
    A single source's exchange rate for a token pair at a point in time.

    Attributes:
        source_name: Name of the source that produced the quote
        price: Quote-token units per base-token unit
        fee_rate: Venue trading fee as a fraction (0.003 for 0.3%)
        liquidity_usd: Available liquidity in USD, None when unknown
        gas_estimate_usd: Estimated gas cost of one swap in USD
        timestamp: Unix timestamp of the observation
        is_fallback: True when synthesized from cache or static estimates
        error: Error message of the live call a fallback replaced
    """

    source_name: str
    price: float
    fee_rate: float
    liquidity_usd: Optional[float]
    gas_estimate_usd: float
    timestamp: float = field(default_factory=time.time)
    is_fallback: bool = False
    error: Optional[str] = None

    def age(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.timestamp

    def is_stale(
        self, now: Optional[float] = None, max_age: float = QUOTE_FRESHNESS_SECONDS
    ) -> bool:
        return self.age(now) > max_age

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SourceConfig:
    """
    Static configuration of one price source.

    Attributes:
        name: Display name (e.g., "Uniswap")
        slug: Unique identifier (e.g., "uniswap")
        supported_chain_ids: Chains served; fixed at construction
        fee_rate_percent: Trading fee in percent (0.3 for 0.3%)
        enabled: Whether the source takes part in scans
    """

    name: str
    slug: str
    supported_chain_ids: FrozenSet[int]
    fee_rate_percent: float
    enabled: bool = True

    def __post_init__(self):
        self.supported_chain_ids = frozenset(self.supported_chain_ids)

    @property
    def fee_rate(self) -> float:
        """Fee as a fraction."""
        return self.fee_rate_percent / 100.0

    def snapshot(self) -> "SourceConfig":
        return SourceConfig(
            name=self.name,
            slug=self.slug,
            supported_chain_ids=self.supported_chain_ids,
            fee_rate_percent=self.fee_rate_percent,
            enabled=self.enabled,
        )


@dataclass(frozen=True)
class LiquidityAssessment:
    """
    Liquidity and slippage estimate for one trade size on one venue.

    Attributes:
        available_liquidity_usd: Liquidity the estimate is based on
        price_impact_percent: Expected price impact in percent
        max_safe_trade_size_usd: Largest single trade considered safe
        is_valid: True when the impact is within the acceptable limit
    """

    available_liquidity_usd: float
    price_impact_percent: float
    max_safe_trade_size_usd: float
    is_valid: bool


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """
    A profitability-validated pair of venues for one scan cycle.

    All money amounts are in quote-token units of the investment (USD for
    stablecoin quotes). Percentages are percent values (1.5 for 1.5%).
    """

    id: str
    token_pair: str
    network: str
    buy_source: str
    sell_source: str
    buy_price: float
    sell_price: float
    price_difference_percent: float
    liquidity_usd: float
    gross_profit: float
    gross_profit_percent: float
    trading_fees: float
    gas_fee: float
    platform_fee: float
    net_profit: float
    net_profit_percent: float
    investment_amount: float
    timestamp: float
    buy_gas_fee: float = 0.0
    sell_gas_fee: float = 0.0
    buy_price_impact_percent: float = 0.0
    sell_price_impact_percent: float = 0.0
    uses_fallback_quote: bool = False

    @property
    def risk_level(self) -> str:
        if self.net_profit_percent >= 2:
            return "low"
        if self.net_profit_percent >= 1:
            return "medium"
        return "high"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["risk_level"] = self.risk_level
        return data


class TransactionStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    NEEDS_APPROVAL = "needs_approval"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of handing an opportunity to the execution layer."""

    status: TransactionStatus
    transaction_ref: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ScanResult:
    """
    Result of one scan cycle.

    Iterating over a ScanResult yields its opportunities, so callers that
    only need the list can treat it as one.
    """

    opportunities: List[ArbitrageOpportunity]
    quotes: Dict[str, PriceQuote]
    chain_id: int
    message: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    duration_seconds: float = 0.0

    def __iter__(self):
        return iter(self.opportunities)

    def __len__(self) -> int:
        return len(self.opportunities)

    def __getitem__(self, index):
        return self.opportunities[index]

    def sorted_by_net_profit(self) -> List[ArbitrageOpportunity]:
        return sorted(
            self.opportunities, key=lambda o: o.net_profit_percent, reverse=True
        )
