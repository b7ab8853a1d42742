"""
Configuration loading and normalization for the DEX arbitrage scanner.

Loads a YAML file, validates it against the pydantic schema and normalizes
it into frozen dataclasses with defaults filled in. Secrets come from the
environment (optionally a ``.env`` file), never from the YAML.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from .config_schema import validate_scanner_config
from .exceptions import ConfigurationError
from .rate_limiter import RateLimit
from .registry import Endpoints
from .types import TokenDescriptor

ONEINCH_API_KEY_ENV = "ONEINCH_API_KEY"


@dataclass(frozen=True)
class ScanConfig:
    """Normalized detector thresholds."""

    investment_amount: float = 1000.0
    min_profit_percent: float = 0.5
    max_price_impact_percent: float = 5.0
    liquidity_coverage_multiplier: float = 3.0
    platform_fee_rate: float = 0.005
    include_fallback_quotes: bool = True
    impact_exponent: float = 0.5


@dataclass(frozen=True)
class AggregationConfig:
    """Normalized fan-out settings."""

    cache_ttl_seconds: float = 30.0
    fetch_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 5.0
    scan_timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class StoreConfig:
    backend: str = "memory"
    path: str = "dex_arbitrage.db"


@dataclass(frozen=True)
class MetricsConfig:
    enabled: bool = False
    port: int = 8000


@dataclass(frozen=True)
class ScannerConfig:
    """Immutable runtime configuration object."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    rate_limits: Mapping[str, RateLimit] = field(default_factory=dict)
    source_flags: Mapping[str, bool] = field(default_factory=dict)
    endpoints: Endpoints = field(default_factory=Endpoints)
    store: StoreConfig = field(default_factory=StoreConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    tokens: Mapping[Tuple[str, int], TokenDescriptor] = field(default_factory=dict)
    log_level: str = "INFO"

    def resolve_token(self, symbol: str, chain_id: int) -> TokenDescriptor:
        """
        Look up a configured token by symbol and chain.

        Raises:
            ConfigurationError: If the token is not configured for the chain
        """
        token = self.tokens.get((symbol.upper(), chain_id))
        if token is None:
            raise ConfigurationError(
                f"Token {symbol} is not configured for chain {chain_id}",
                details={"symbol": symbol, "chain_id": chain_id},
            )
        return token


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")
    return config_dict


def _normalize_endpoints(schema, api_key: Optional[str]) -> Endpoints:
    defaults = Endpoints()
    ep = schema.endpoints
    return Endpoints(
        oneinch_url=ep.oneinch_url or defaults.oneinch_url,
        oneinch_api_key=api_key,
        jupiter_url=ep.jupiter_url or defaults.jupiter_url,
        uniswap_subgraphs=dict(ep.uniswap_subgraphs or defaults.uniswap_subgraphs),
        pancakeswap_subgraphs=dict(
            ep.pancakeswap_subgraphs or defaults.pancakeswap_subgraphs
        ),
    )


def _normalize_tokens(schema) -> Dict[Tuple[str, int], TokenDescriptor]:
    tokens = {}
    for symbol, per_chain in schema.tokens.items():
        for chain_id, token in per_chain.items():
            tokens[(symbol, chain_id)] = TokenDescriptor(
                chain_id=chain_id,
                address=token.address,
                symbol=symbol,
                decimals=token.decimals,
            )
    return tokens


def config_from_dict(
    config_dict: Mapping[str, Any], api_key: Optional[str] = None
) -> ScannerConfig:
    """
    Validate and normalize a configuration mapping.

    Raises:
        ConfigurationError: If the configuration fails schema validation
    """
    try:
        schema = validate_scanner_config(dict(config_dict))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e

    return ScannerConfig(
        scan=ScanConfig(**schema.scan.model_dump()),
        aggregation=AggregationConfig(**schema.aggregation.model_dump()),
        rate_limits={
            slug: RateLimit(limit.max_requests, limit.window_seconds)
            for slug, limit in schema.rate_limits.items()
        },
        source_flags={slug: s.enabled for slug, s in schema.sources.items()},
        endpoints=_normalize_endpoints(schema, api_key),
        store=StoreConfig(**schema.store.model_dump()),
        metrics=MetricsConfig(**schema.metrics.model_dump()),
        tokens=_normalize_tokens(schema),
        log_level=schema.log_level,
    )


def load_config(
    config_path: Union[str, Path], env_file: Optional[Union[str, Path]] = None
) -> ScannerConfig:
    """
    Load and normalize a scanner configuration file.

    Args:
        config_path: Path to the YAML configuration file
        env_file: Optional .env file; the default lookup applies when omitted

    Returns:
        Normalized and frozen scanner configuration

    Raises:
        ConfigurationError: If the configuration cannot be loaded or is invalid
    """
    load_dotenv(env_file) if env_file else load_dotenv()
    config_dict = load_yaml_config(config_path)
    return config_from_dict(config_dict, api_key=os.getenv(ONEINCH_API_KEY_ENV))


def get_default_config() -> ScannerConfig:
    """Get a default configuration for testing or fallback purposes."""
    return ScannerConfig()
