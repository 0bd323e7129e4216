"""Unit tests for the Across quote client, served by an in-process transport."""

import asyncio
import json

import httpx
import pytest

from lpmigrate.bridge import AcrossQuoter, parse_suggested_fees
from lpmigrate.constants import ZERO_ADDRESS

from fakes import DEST_WETH, RECIPIENT, SOURCE_WETH

RELAYER = "0x394311A6Aaa0D8E3411D8b62DE4578D41322d1bD"

PAYLOAD = {
    "totalRelayFee": {"pct": "1000000000000000", "total": "1000000000000000"},
    "relayerGasFee": {"pct": "100000000000000", "total": "100000000000000"},
    "timestamp": "1700000000",
    "outputAmount": "999000000000000000",
    "exclusiveRelayer": RELAYER,
    "exclusivityDeadline": 5,
    "spokePoolAddress": "0x5c7BCd6E7De5423a257D81B442095A1a6ced35C5",
}


def quote_with(handler, amount=10**18):
    async def run():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with AcrossQuoter("https://across.test/api/", client=client) as quoter:
            result = await quoter.quote(1, 8453, SOURCE_WETH, DEST_WETH, amount, RECIPIENT, b"\x01\x02")
        await client.aclose()
        return result

    return asyncio.run(run())


class TestParse:
    def test_full_payload(self):
        quote = parse_suggested_fees(PAYLOAD, SOURCE_WETH, DEST_WETH, 10**18)
        assert quote.output_amount == 999 * 10**15
        assert quote.total_relay_fee == 10**15
        assert quote.relayer_gas_fee == 10**14
        assert quote.quote_timestamp == 1_700_000_000
        assert quote.exclusive_relayer == RELAYER
        assert quote.exclusivity_deadline == 5

    def test_missing_output_amount_is_amount_less_fee(self):
        payload = {k: v for k, v in PAYLOAD.items() if k != "outputAmount"}
        quote = parse_suggested_fees(payload, SOURCE_WETH, DEST_WETH, 10**18)
        assert quote.output_amount == 10**18 - 10**15

    def test_missing_relayer_defaults_to_zero_address(self):
        payload = dict(PAYLOAD, exclusiveRelayer=None, exclusivityDeadline=None)
        quote = parse_suggested_fees(payload, SOURCE_WETH, DEST_WETH, 10**18)
        assert quote.exclusive_relayer == ZERO_ADDRESS
        assert quote.exclusivity_deadline == 0


class TestQuote:
    def test_request_parameters(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=json.dumps(PAYLOAD))

        quote = quote_with(handler)
        assert quote.output_amount == 999 * 10**15

        (request,) = seen
        assert request.url.path == "/api/suggested-fees"
        params = request.url.params
        assert params["originChainId"] == "1"
        assert params["destinationChainId"] == "8453"
        assert params["amount"] == str(10**18)
        assert params["message"] == "0x0102"
        assert params["recipient"] == RECIPIENT

    def test_http_errors_propagate(self):
        def handler(request):
            return httpx.Response(400, json={"message": "amount too low"})

        with pytest.raises(httpx.HTTPStatusError):
            quote_with(handler)
