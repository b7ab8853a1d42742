"""
Uniswap-v3-style subgraph quote client (Uniswap, PancakeSwap v3).

Looks up the deepest pool containing both tokens and reads its spot price,
fee tier and total value locked.
"""

from typing import Dict, Mapping

import aiohttp

from ..exceptions import ChainUnsupportedError, QuoteFetchError
from ..types import TokenDescriptor
from .base import RawQuote, request_json

UNISWAP_SUBGRAPH_URLS: Dict[int, str] = {
    1: "https://api.thegraph.com/subgraphs/name/uniswap/uniswap-v3",
    42161: "https://api.thegraph.com/subgraphs/name/ianlapham/arbitrum-minimal",
    10: "https://api.thegraph.com/subgraphs/name/ianlapham/optimism-post-regenesis",
    8453: "https://api.studio.thegraph.com/query/48211/uniswap-v3-base/version/latest",
}

PANCAKESWAP_SUBGRAPH_URLS: Dict[int, str] = {
    56: "https://api.thegraph.com/subgraphs/name/pancakeswap/exchange-v3-bsc",
}

POOL_QUERY = """
query DeepestPool($tokens: [String!]!) {
  pools(
    where: { token0_in: $tokens, token1_in: $tokens }
    orderBy: totalValueLockedUSD
    orderDirection: desc
    first: 1
  ) {
    token0 { id }
    token1 { id }
    token0Price
    token1Price
    totalValueLockedUSD
    feeTier
  }
}
"""

# feeTier is expressed in hundredths of a basis point
FEE_TIER_DENOMINATOR = 1_000_000


class UniswapSubgraphClient:
    """
    Quote client for Uniswap v3 compatible subgraphs.

    Args:
        session: Shared aiohttp session
        urls: Subgraph endpoint per chain id
        label: Name used in error messages
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        urls: Mapping[int, str],
        label: str = "subgraph",
    ):
        self._session = session
        self.urls = dict(urls)
        self.label = label

    async def fetch(
        self, base: TokenDescriptor, quote: TokenDescriptor, amount_raw: int
    ) -> RawQuote:
        url = self.urls.get(base.chain_id)
        if not url:
            raise ChainUnsupportedError(
                f"No {self.label} subgraph for chain {base.chain_id}",
                source=self.label,
                chain_id=base.chain_id,
            )

        base_address = base.address.lower()
        payload = {
            "query": POOL_QUERY,
            "variables": {"tokens": [base_address, quote.address.lower()]},
        }
        data = await request_json(self._session, self.label, "POST", url, json=payload)

        if not isinstance(data, dict):
            raise QuoteFetchError(f"{self.label} returned an unexpected payload", source=self.label)
        if data.get("errors"):
            raise QuoteFetchError(
                f"{self.label} query failed: {data['errors']}", source=self.label
            )
        pools = (data.get("data") or {}).get("pools") or []
        if not pools:
            raise QuoteFetchError("No liquidity pool found", source=self.label)
        pool = pools[0]

        # token1Price is token1 per token0, so it prices token0 in token1 units
        if pool["token0"]["id"].lower() == base_address:
            price = float(pool["token1Price"])
        else:
            price = float(pool["token0Price"])

        fee_tier = pool.get("feeTier")
        return RawQuote(
            price=price,
            liquidity_usd=float(pool["totalValueLockedUSD"]),
            fee_rate=int(fee_tier) / FEE_TIER_DENOMINATOR if fee_tier else None,
        )
