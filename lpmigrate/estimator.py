"""Source-chain consolidation into the bridgeable asset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .config import ChainConfig
from .errors import ErrorKind, MigrationError
from .interfaces import SwapQuoter
from .types import SourcePosition, SwapQuote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSwapEstimate:
    """How a single-token migration consolidates the source position.

    Attributes
    ----------
    base_is_token0 : bool
        Whether the bridgeable asset is token0 of the source pool.
    base_token : str
        Bridgeable asset address (WETH, or the native placeholder).
    amount_in : int
        Amount of the other token sold into the base token.
    amount_out : int
        Base token received from that sale.
    total_base : int
        Base token available for bridging.
    quote : SwapQuote or None
        Swap quote, None when there was nothing to sell.
    """

    base_is_token0: bool
    base_token: str
    amount_in: int
    amount_out: int
    total_base: int
    quote: Optional[SwapQuote] = None


def find_bridgeable_side(source: SourcePosition, chain: ChainConfig) -> bool:
    """True when token0 is the bridgeable asset, False for token1.

    Raises
    ------
    MigrationError
        ``NO_BRIDGEABLE_ASSET`` when neither token is WETH or native.
    """
    if chain.is_bridgeable(source.pool.token0.address):
        return True
    if chain.is_bridgeable(source.pool.token1.address):
        return False
    raise MigrationError(
        ErrorKind.NO_BRIDGEABLE_ASSET,
        "WETH not found in position",
        token0=source.pool.token0.address,
        token1=source.pool.token1.address,
    )


class SourceSwapEstimator:
    """Quotes the sale of a position's non-bridgeable side into WETH.

    Parameters
    ----------
    quoter : SwapQuoter
        Source-chain swap quoter.
    """

    def __init__(self, quoter: SwapQuoter):
        self.quoter = quoter

    async def estimate(self, source: SourcePosition, chain: ChainConfig) -> SourceSwapEstimate:
        base_is_token0 = find_bridgeable_side(source, chain)
        pool = source.pool
        if base_is_token0:
            base_token, base_total, other_total = pool.token0.address, source.total0, source.total1
        else:
            base_token, base_total, other_total = pool.token1.address, source.total1, source.total0

        quote = None
        amount_out = 0
        if other_total > 0:
            # Selling the other side: token1 -> token0 when the base is token0.
            quote = await self.quoter.quote_exact_input(
                pool, other_total, zero_for_one=not base_is_token0
            )
            amount_out = quote.amount_out

        total = base_total + amount_out
        logger.debug(
            "source consolidation: sell %d for %d, %d base available",
            other_total, amount_out, total,
        )
        return SourceSwapEstimate(
            base_is_token0=base_is_token0,
            base_token=base_token,
            amount_in=other_total,
            amount_out=amount_out,
            total_base=total,
            quote=quote,
        )
