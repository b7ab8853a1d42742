"""
1inch aggregator quote client.

Venues without a public quoting API of their own (SushiSwap, Balancer,
Curve) are priced through 1inch with a ``protocols`` filter restricting the
route to that venue's pools.
"""

from typing import Dict, Optional

import aiohttp

from ..exceptions import QuoteFetchError
from ..types import TokenDescriptor
from .base import RawQuote, request_json

DEFAULT_ONEINCH_URL = "https://api.1inch.io/v5.0"


class OneInchQuoteClient:
    """
    Quote client for the 1inch ``/{chain}/quote`` endpoint.

    Args:
        session: Shared aiohttp session
        protocols: Optional 1inch protocol filter (e.g. "SUSHI", "CURVE")
        base_url: API root without trailing slash
        api_key: Optional bearer token
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        protocols: Optional[str] = None,
        base_url: str = DEFAULT_ONEINCH_URL,
        api_key: Optional[str] = None,
    ):
        self._session = session
        self.protocols = protocols
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def fetch(
        self, base: TokenDescriptor, quote: TokenDescriptor, amount_raw: int
    ) -> RawQuote:
        params = {
            "fromTokenAddress": base.address,
            "toTokenAddress": quote.address,
            "amount": str(amount_raw),
        }
        if self.protocols:
            params["protocols"] = self.protocols

        data = await request_json(
            self._session,
            "1inch",
            "GET",
            f"{self.base_url}/{base.chain_id}/quote",
            params=params,
            headers=self._headers(),
        )
        if not isinstance(data, dict):
            raise QuoteFetchError("1inch returned an unexpected payload", source="1inch")

        # v5.0 answers toTokenAmount/estimatedGas, newer versions toAmount/gas
        to_amount = data.get("toTokenAmount", data.get("toAmount"))
        if to_amount is None:
            raise QuoteFetchError("1inch response has no output amount", source="1inch")
        gas = data.get("estimatedGas", data.get("gas"))

        return RawQuote(
            input_amount=int(data.get("fromTokenAmount", amount_raw)),
            output_amount=int(to_amount),
            gas_units=int(gas) if gas else None,
        )
