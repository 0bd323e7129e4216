"""Narrow interfaces of the engine's external collaborators.

The orchestrator only ever talks to these. :mod:`lpmigrate.chain` and
:mod:`lpmigrate.bridge` provide web3 and httpx implementations; tests
substitute in-memory fakes.
"""

from __future__ import annotations

from typing import Optional, Protocol

from .types import BridgeQuote, Destination, Pool, SettlerFees, SwapQuote


class PoolReader(Protocol):
    async def read_pool(self, destination: Destination) -> Optional[Pool]:
        """Current state of the pool *destination* targets, or None if absent."""


class SwapQuoter(Protocol):
    async def quote_exact_input(
        self, pool: Pool, amount_in: int, zero_for_one: bool
    ) -> SwapQuote:
        """Quote selling *amount_in* of token0 (or token1) into *pool*."""


class BridgeQuoter(Protocol):
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
        """Quote bridging *amount* of *input_token* with *message* attached."""


class SettlerFeeReader(Protocol):
    async def read_settler_fees(self, chain_id: int, settler: str) -> SettlerFees:
        """Protocol fee parameters of *settler*."""


class StorageReader(Protocol):
    async def get_storage_at(self, chain_id: int, address: str, slot: int) -> bytes:
        """Raw 32-byte storage word."""
