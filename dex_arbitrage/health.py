"""
Source health derived from registry and rate limiter state.

No network I/O happens here; the report reflects what the last requests
taught the limiter.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .rate_limiter import RateLimiter
from .registry import AdapterRegistry
from .types import network_name

ONLINE = "online"
DEGRADED = "degraded"
OFFLINE = "offline"


@dataclass(frozen=True)
class SourceHealth:
    """
    Health of one source on one chain.

    Attributes:
        source: Display name
        slug: Source identifier
        chain_id: Chain the entry refers to
        network: Human-readable chain name
        status: online, degraded (backing off after errors) or offline (disabled)
        consecutive_errors: Current consecutive error count
        backoff_seconds: Extra delay the next request will wait
    """

    source: str
    slug: str
    chain_id: int
    network: str
    status: str
    consecutive_errors: int
    backoff_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SourceHealthChecker:
    """Reports per (source, chain) health."""

    def __init__(self, registry: AdapterRegistry, rate_limiter: RateLimiter):
        self.registry = registry
        self.rate_limiter = rate_limiter

    def check(self, chain_id: Optional[int] = None) -> List[SourceHealth]:
        """Health entries, restricted to ``chain_id`` when given."""
        report = []
        for config in self.registry.all_configs():
            chains = sorted(config.supported_chain_ids)
            if chain_id is not None:
                if chain_id not in config.supported_chain_ids:
                    continue
                chains = [chain_id]

            errors = self.rate_limiter.consecutive_errors(config.slug)
            if not config.enabled:
                status = OFFLINE
            elif errors > 0:
                status = DEGRADED
            else:
                status = ONLINE

            backoff = self.rate_limiter.backoff_delay(config.slug)
            for chain in chains:
                report.append(
                    SourceHealth(
                        source=config.name,
                        slug=config.slug,
                        chain_id=chain,
                        network=network_name(chain),
                        status=status,
                        consecutive_errors=errors,
                        backoff_seconds=backoff,
                    )
                )
        return report

    def summary(self, chain_id: Optional[int] = None) -> Dict[str, int]:
        """Count of entries per status."""
        counts = {ONLINE: 0, DEGRADED: 0, OFFLINE: 0}
        for entry in self.check(chain_id):
            counts[entry.status] += 1
        return counts
