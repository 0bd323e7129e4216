"""Across bridge quotes over its public HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .constants import ZERO_ADDRESS
from .types import BridgeQuote

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def parse_suggested_fees(
    payload: dict[str, Any],
    input_token: str,
    output_token: str,
    amount: int,
) -> BridgeQuote:
    """Build a :class:`BridgeQuote` from a ``/suggested-fees`` response."""
    total_relay_fee = int(payload["totalRelayFee"]["total"])
    output_amount = payload.get("outputAmount")
    if output_amount is None:
        output_amount = amount - total_relay_fee
    return BridgeQuote(
        input_token=input_token,
        output_token=output_token,
        input_amount=amount,
        output_amount=int(output_amount),
        total_relay_fee=total_relay_fee,
        relayer_gas_fee=int(payload["relayerGasFee"]["total"]),
        quote_timestamp=int(payload["timestamp"]),
        exclusive_relayer=payload.get("exclusiveRelayer") or ZERO_ADDRESS,
        exclusivity_deadline=int(payload.get("exclusivityDeadline") or 0),
        spoke_pool=payload.get("spokePoolAddress") or ZERO_ADDRESS,
    )


class AcrossQuoter:
    """Bridge quoter backed by the Across ``suggested-fees`` endpoint.

    HTTP errors propagate as :class:`httpx.HTTPStatusError`; the quoter
    does not retry.

    Parameters
    ----------
    base_url : str
        API root, e.g. ``https://app.across.to/api``.
    client : httpx.AsyncClient, optional
        Shared client; one is created (and owned) when omitted.
    timeout : float
        Request timeout in seconds for an owned client.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> AcrossQuoter:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def quote(
        self,
        origin_chain_id: int,
        destination_chain_id: int,
        input_token: str,
        output_token: str,
        amount: int,
        recipient: str,
        message: bytes,
    ) -> BridgeQuote:
        params = {
            "inputToken": input_token,
            "outputToken": output_token,
            "originChainId": origin_chain_id,
            "destinationChainId": destination_chain_id,
            "amount": str(amount),
            "recipient": recipient,
            "message": "0x" + message.hex(),
        }
        logger.debug(
            "across quote %s -> %s amount=%d (%d -> %d)",
            input_token, output_token, amount, origin_chain_id, destination_chain_id,
        )
        response = await self._client.get(f"{self.base_url}/suggested-fees", params=params)
        response.raise_for_status()
        return parse_suggested_fees(response.json(), input_token, output_token, amount)
