"""
Configuration schema validation using Pydantic
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ScanSettings(BaseModel):
    """Detector thresholds and scan defaults"""

    investment_amount: float = Field(
        gt=0, default=1000.0, description="Investment per opportunity in quote units"
    )
    min_profit_percent: float = Field(
        ge=0, le=100, default=0.5, description="Pre-filter on price difference"
    )
    max_price_impact_percent: float = Field(ge=0, le=100, default=5.0)
    liquidity_coverage_multiplier: float = Field(ge=1, le=100, default=3.0)
    platform_fee_rate: float = Field(ge=0, lt=1, default=0.005)
    include_fallback_quotes: bool = True
    impact_exponent: float = Field(gt=0, le=1, default=0.5)

    model_config = {"extra": "forbid"}


class AggregationSettings(BaseModel):
    """Fan-out timeouts and cache lifetime"""

    cache_ttl_seconds: float = Field(ge=0, le=3600, default=30.0)
    fetch_timeout_seconds: float = Field(gt=0, le=120, default=10.0)
    request_timeout_seconds: float = Field(gt=0, le=120, default=5.0)
    scan_timeout_seconds: Optional[float] = Field(gt=0, le=600, default=None)

    @model_validator(mode="after")
    def validate_timeouts(self):
        if self.request_timeout_seconds > self.fetch_timeout_seconds:
            raise ValueError(
                "request_timeout_seconds must not exceed fetch_timeout_seconds"
            )
        return self

    model_config = {"extra": "forbid"}


class RateLimitSettings(BaseModel):
    """Per-source request quota"""

    max_requests: int = Field(ge=1, le=100000)
    window_seconds: float = Field(gt=0, le=86400, default=60.0)

    model_config = {"extra": "forbid"}


class SourceSettings(BaseModel):
    """Per-source switches"""

    enabled: bool = True

    model_config = {"extra": "forbid"}


class EndpointSettings(BaseModel):
    """Upstream API locations"""

    oneinch_url: Optional[str] = None
    jupiter_url: Optional[str] = None
    uniswap_subgraphs: Optional[Dict[int, str]] = None
    pancakeswap_subgraphs: Optional[Dict[int, str]] = None

    model_config = {"extra": "forbid"}


class StoreSettings(BaseModel):
    """Durable quote store"""

    backend: Literal["memory", "sqlite"] = "memory"
    path: str = "dex_arbitrage.db"

    model_config = {"extra": "forbid"}


class MetricsSettings(BaseModel):
    """Metrics server configuration"""

    enabled: bool = False
    port: int = Field(ge=1024, le=65535, default=8000)

    model_config = {"extra": "forbid"}


class TokenSettings(BaseModel):
    """A token the CLI can resolve by symbol"""

    address: str = Field(min_length=1)
    decimals: int = Field(ge=0, le=36, default=18)

    model_config = {"extra": "forbid"}


class ScannerConfigSchema(BaseModel):
    """Complete scanner configuration schema"""

    scan: ScanSettings = Field(default_factory=ScanSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    rate_limits: Dict[str, RateLimitSettings] = Field(default_factory=dict)
    sources: Dict[str, SourceSettings] = Field(default_factory=dict)
    endpoints: EndpointSettings = Field(default_factory=EndpointSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)
    tokens: Dict[str, Dict[int, TokenSettings]] = Field(default_factory=dict)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("tokens")
    @classmethod
    def validate_tokens(cls, v):
        for symbol, per_chain in v.items():
            if not symbol.strip():
                raise ValueError("Token symbol cannot be empty")
            if not per_chain:
                raise ValueError(f"Token {symbol} has no chain entries")
        return {symbol.upper(): per_chain for symbol, per_chain in v.items()}

    model_config = {
        "extra": "forbid",  # Disallow extra fields
    }


def validate_scanner_config(config_dict: Dict) -> ScannerConfigSchema:
    """
    Validate a scanner configuration dictionary

    Args:
        config_dict: Dictionary representation of the scanner config

    Returns:
        Validated ScannerConfigSchema object

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    return ScannerConfigSchema(**config_dict)
