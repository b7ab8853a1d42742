"""
Jupiter quote client for Solana venues.

Jupiter itself routes across all Solana AMMs; Orca and Raydium are priced
through the same API restricted to their own pools via the ``dexes`` filter,
and the returned route plan is checked to actually use that venue.
"""

from typing import Optional

import aiohttp

from ..exceptions import QuoteFetchError
from ..types import TokenDescriptor
from .base import RawQuote, request_json

DEFAULT_JUPITER_URL = "https://quote-api.jup.ag/v6/quote"


class JupiterQuoteClient:
    """
    Quote client for the Jupiter v6 quote API.

    Args:
        session: Shared aiohttp session
        route_label: Restrict routes to this AMM label (e.g. "Orca")
        url: Quote endpoint
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        route_label: Optional[str] = None,
        url: str = DEFAULT_JUPITER_URL,
    ):
        self._session = session
        self.route_label = route_label
        self.url = url

    async def fetch(
        self, base: TokenDescriptor, quote: TokenDescriptor, amount_raw: int
    ) -> RawQuote:
        params = {
            "inputMint": base.address,
            "outputMint": quote.address,
            "amount": str(amount_raw),
            "slippageBps": "50",
        }
        if self.route_label:
            params["dexes"] = self.route_label
            params["onlyDirectRoutes"] = "true"

        data = await request_json(self._session, "jupiter", "GET", self.url, params=params)
        if not isinstance(data, dict) or "outAmount" not in data:
            raise QuoteFetchError("Jupiter response has no output amount", source="jupiter")

        if self.route_label:
            labels = {
                (step.get("swapInfo") or {}).get("label")
                for step in data.get("routePlan") or []
            }
            if self.route_label not in labels:
                raise QuoteFetchError(
                    f"No {self.route_label} liquidity found for this pair",
                    source="jupiter",
                )

        return RawQuote(
            input_amount=int(data.get("inAmount", amount_raw)),
            output_amount=int(data["outAmount"]),
        )
