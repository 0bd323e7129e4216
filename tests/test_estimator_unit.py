"""Unit tests for source-side consolidation into WETH."""

import asyncio

import pytest

from lpmigrate.config import ETHEREUM
from lpmigrate.errors import ErrorKind, MigrationError
from lpmigrate.estimator import SourceSwapEstimator, find_bridgeable_side
from lpmigrate.types import SourcePosition

from fakes import OWNER, SOURCE_USDC, SOURCE_USDT, SOURCE_WETH, FakeSwapQuoter, make_pool


def source(token0, token1, amount0, amount1, fee0=0, fee1=0):
    return SourcePosition(
        owner=OWNER,
        token_id=7,
        pool=make_pool(1, token0, token1),
        tick_lower=-600,
        tick_upper=600,
        liquidity=10**18,
        amount0=amount0,
        amount1=amount1,
        fee_amount0=fee0,
        fee_amount1=fee1,
    )


def test_weth_as_token1():
    assert find_bridgeable_side(source(SOURCE_USDC, SOURCE_WETH, 1, 1), ETHEREUM) is False


def test_no_weth_rejected():
    with pytest.raises(MigrationError) as excinfo:
        find_bridgeable_side(source(SOURCE_USDC, SOURCE_USDT, 1, 1), ETHEREUM)
    assert excinfo.value.kind == ErrorKind.NO_BRIDGEABLE_ASSET


def test_sells_other_side_including_fees():
    quoter = FakeSwapQuoter()
    position = source(SOURCE_USDC, SOURCE_WETH, 10**18, 2 * 10**18, fee0=10**16, fee1=10**15)
    estimate = asyncio.run(SourceSwapEstimator(quoter).estimate(position, ETHEREUM))

    assert quoter.calls == [(1, 10**18 + 10**16, True)]
    assert estimate.base_token == SOURCE_WETH
    assert estimate.base_is_token0 is False
    assert estimate.amount_in == 10**18 + 10**16
    assert 0 < estimate.amount_out < estimate.amount_in
    assert estimate.total_base == 2 * 10**18 + 10**15 + estimate.amount_out


def test_nothing_to_sell_skips_quote():
    quoter = FakeSwapQuoter()
    position = source(SOURCE_USDC, SOURCE_WETH, 0, 10**18)
    estimate = asyncio.run(SourceSwapEstimator(quoter).estimate(position, ETHEREUM))

    assert quoter.calls == []
    assert estimate.quote is None
    assert estimate.total_base == 10**18


def test_quoter_errors_propagate():
    quoter = FakeSwapQuoter(error=RuntimeError("execution reverted"))
    position = source(SOURCE_USDC, SOURCE_WETH, 10**18, 0)
    with pytest.raises(RuntimeError, match="execution reverted"):
        asyncio.run(SourceSwapEstimator(quoter).estimate(position, ETHEREUM))
