"""On-chain collaborators backed by web3.py.

:class:`Web3ChainClient` implements the pool reader, swap quoter, settler
fee reader and raw storage reader interfaces over one ``AsyncWeb3``
instance per chain. The module also builds the two contract calls a
caller signs (handing the position to the migrator, withdrawing parked
funds from a settler) and reads the settler's settlement cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Mapping, Optional

from eth_abi import encode
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from .config import ChainConfig, EngineConfig, get_chain_config
from .constants import (
    AERODROME_FACTORY_ABI,
    AERODROME_POOL_ABI,
    AERODROME_POSITION_MANAGER_ABI,
    AERODROME_QUOTER_ABI,
    AERODROME_TICK_SPACING_FEES,
    NFT_POSITION_MANAGER_ABI,
    POOL_ABI,
    POSITION_MANAGER_ABI,
    PROTOCOL_FEES_ABI,
    QUOTER_V2_ABI,
    SETTLEMENT_CACHE_SLOT,
    SETTLER_ABI,
    V3_FACTORY_ABI,
    V4_QUOTER_ABI,
    V3_FEE_TICK_SPACINGS,
    V4_POSITION_MANAGER_ABI,
    V4_STATE_VIEW_ABI,
    ZERO_ADDRESS,
    Protocol,
)
from .errors import ErrorKind, MigrationError
from .interfaces import StorageReader
from .liquidity_math import (
    amounts_for_liquidity,
    get_sqrt_ratio_at_tick,
    next_sqrt_price_from_input,
)
from .types import (
    AerodromeDestination,
    Destination,
    ExecutionParams,
    Pool,
    SettlementCacheEntry,
    SettlerFees,
    SourcePosition,
    SwapQuote,
    Token,
    V3Destination,
    V4Destination,
)
from .validation import to_bytes32, validate_address

logger = logging.getLogger(__name__)

MAX_UINT128 = 2**128 - 1


# ---------------------------------------------------------------------------
# Calldata helpers
# ---------------------------------------------------------------------------

def encode_call(signature: str, arg_types: list[str], args: list) -> bytes:
    """Selector of *signature* followed by the ABI-encoded arguments."""
    return Web3.keccak(text=signature)[:4] + encode(arg_types, args)


def v4_pool_id(token0: str, token1: str, fee: int, tick_spacing: int, hooks: str) -> bytes:
    """keccak256 of the ABI-encoded v4 pool key."""
    return Web3.keccak(
        encode(
            ["address", "address", "uint24", "int24", "address"],
            [token0, token1, fee, tick_spacing, hooks],
        )
    )


def withdrawal_execution_params(chain_id: int, settler: str, migration_id: bytes | str) -> ExecutionParams:
    """Call that releases funds a settler parked for *migration_id*."""
    validate_address(settler, "settler")
    migration_id = to_bytes32(migration_id)
    return ExecutionParams(
        chain_id=chain_id,
        address=settler,
        abi=SETTLER_ABI,
        function_name="withdraw",
        args=(migration_id,),
        data=encode_call("withdraw(bytes32)", ["bytes32"], [migration_id]),
    )


def migration_execution_params(
    chain_id: int,
    position_manager: str,
    owner: str,
    migrator: str,
    token_id: int,
    migrator_message: bytes,
) -> ExecutionParams:
    """Call that hands the source position NFT to the migrator.

    The migrator's ``onERC721Received`` hook receives *migrator_message*
    and starts the bridge deposit.
    """
    for value, name in ((position_manager, "position_manager"), (owner, "owner"), (migrator, "migrator")):
        validate_address(value, name)
    args = (owner, migrator, token_id, migrator_message)
    return ExecutionParams(
        chain_id=chain_id,
        address=position_manager,
        abi=POSITION_MANAGER_ABI,
        function_name="safeTransferFrom",
        args=args,
        data=encode_call(
            "safeTransferFrom(address,address,uint256,bytes)",
            ["address", "address", "uint256", "bytes"],
            list(args),
        ),
    )


# ---------------------------------------------------------------------------
# Settlement cache lookup
# ---------------------------------------------------------------------------

def settlement_cache_slot(migration_id: bytes | str) -> int:
    """Base storage slot of ``settlementCache[migrationId]``."""
    key = to_bytes32(migration_id)
    return int.from_bytes(
        Web3.keccak(key + SETTLEMENT_CACHE_SLOT.to_bytes(32, "big")), "big"
    )


async def get_settlement_cache_entry(
    reader: StorageReader,
    chain_id: int,
    settler: str,
    migration_id: bytes | str,
) -> Optional[SettlementCacheEntry]:
    """Read ``{recipient, token, amount}`` parked for *migration_id*.

    Returns
    -------
    SettlementCacheEntry or None
        None when the recipient slot is empty (never parked, or already
        withdrawn).
    """
    validate_address(settler, "settler")
    base = settlement_cache_slot(migration_id)
    recipient_raw, token_raw, amount_raw = await asyncio.gather(
        reader.get_storage_at(chain_id, settler, base),
        reader.get_storage_at(chain_id, settler, base + 1),
        reader.get_storage_at(chain_id, settler, base + 2),
    )
    recipient = Web3.to_checksum_address(bytes(recipient_raw)[-20:])
    if recipient == ZERO_ADDRESS:
        return None
    return SettlementCacheEntry(
        recipient=recipient,
        token=Web3.to_checksum_address(bytes(token_raw)[-20:]),
        amount=int.from_bytes(bytes(amount_raw), "big"),
    )


# ---------------------------------------------------------------------------
# v4 position helpers
# ---------------------------------------------------------------------------

def _signed24(value: int) -> int:
    value &= 0xFFFFFF
    return value - (1 << 24) if value & 0x800000 else value


def decode_v4_position_info(info: int) -> tuple[int, int]:
    """``(tick_lower, tick_upper)`` packed in a v4 ``PositionInfo`` word.

    Layout (low to high bits): 8 bits subscriber flag, int24 tickLower,
    int24 tickUpper, 200 bits of the pool id.
    """
    return _signed24(info >> 8), _signed24(info >> 32)


def v4_position_id(position_manager: str, tick_lower: int, tick_upper: int, token_id: int) -> bytes:
    """Pool-manager position key of a position-manager NFT (its salt is the token id)."""
    return Web3.solidity_keccak(
        ["address", "int24", "int24", "bytes32"],
        [position_manager, tick_lower, tick_upper, token_id.to_bytes(32, "big")],
    )


def uncollected_fees(liquidity: int, fee_growth_inside_x128: int, fee_growth_last_x128: int) -> int:
    """Fees owed since the last checkpoint; growth counters wrap at 2**256."""
    delta = (fee_growth_inside_x128 - fee_growth_last_x128) % 2**256
    return liquidity * delta // 2**128


# ---------------------------------------------------------------------------
# Web3 client
# ---------------------------------------------------------------------------

class Web3ChainClient:
    """web3-backed pool reader, swap quoter, fee reader and storage reader.

    Parameters
    ----------
    clients : Mapping[int, AsyncWeb3]
        One connected client per chain id.
    chains : Mapping[int, ChainConfig]
        Contract addresses per chain.
    """

    def __init__(self, clients: Mapping[int, AsyncWeb3], chains: Mapping[int, ChainConfig]):
        self.clients = dict(clients)
        self.chains = chains

    @classmethod
    def from_rpc_urls(cls, rpc_urls: Mapping[int, str], config: EngineConfig) -> Web3ChainClient:
        clients = {
            chain_id: AsyncWeb3(AsyncHTTPProvider(url)) for chain_id, url in rpc_urls.items()
        }
        return cls(clients, config.chains)

    def _w3(self, chain_id: int) -> AsyncWeb3:
        try:
            return self.clients[chain_id]
        except KeyError:
            raise MigrationError(
                ErrorKind.UNSUPPORTED_CHAIN,
                f"no RPC client for chain {chain_id}",
                chain_id=chain_id,
            ) from None

    def _chain(self, chain_id: int) -> ChainConfig:
        return get_chain_config(chain_id, self.chains)

    # -- StorageReader ------------------------------------------------------

    async def get_storage_at(self, chain_id: int, address: str, slot: int) -> bytes:
        return bytes(await self._w3(chain_id).eth.get_storage_at(address, slot))

    # -- SettlerFeeReader ---------------------------------------------------

    async def read_settler_fees(self, chain_id: int, settler: str) -> SettlerFees:
        contract = self._w3(chain_id).eth.contract(address=settler, abi=PROTOCOL_FEES_ABI)
        share_bps, sender_pct = await asyncio.gather(
            contract.functions.protocolShareBps().call(),
            contract.functions.protocolShareOfSenderFeePct().call(),
        )
        return SettlerFees(protocol_share_bps=share_bps, protocol_share_of_sender_fee_pct=sender_pct)

    # -- PoolReader ---------------------------------------------------------

    async def read_pool(self, destination: Destination) -> Optional[Pool]:
        chain = self._chain(destination.chain_id)
        w3 = self._w3(destination.chain_id)
        token0 = Token(destination.chain_id, destination.token0)
        token1 = Token(destination.chain_id, destination.token1)

        if isinstance(destination, V4Destination):
            pool_id = v4_pool_id(
                destination.token0, destination.token1, destination.fee,
                destination.tick_spacing, destination.hooks,
            )
            state_view = w3.eth.contract(address=chain.v4_state_view, abi=V4_STATE_VIEW_ABI)
            slot0, liquidity = await asyncio.gather(
                state_view.functions.getSlot0(pool_id).call(),
                state_view.functions.getLiquidity(pool_id).call(),
            )
            if slot0[0] == 0:
                return None
            return Pool(
                chain.chain_id, Protocol.UNISWAP_V4, token0, token1,
                destination.fee, destination.tick_spacing,
                slot0[0], liquidity, slot0[1], hooks=destination.hooks,
            )

        if isinstance(destination, AerodromeDestination):
            if chain.aerodrome_factory is None:
                raise MigrationError(
                    ErrorKind.UNSUPPORTED_PROTOCOL,
                    f"Aerodrome is not deployed on chain {chain.chain_id}",
                )
            factory = w3.eth.contract(address=chain.aerodrome_factory, abi=AERODROME_FACTORY_ABI)
            address = await factory.functions.getPool(
                destination.token0, destination.token1, destination.tick_spacing
            ).call()
            fee = AERODROME_TICK_SPACING_FEES.get(destination.tick_spacing, 0)
            spacing, pool_abi = destination.tick_spacing, AERODROME_POOL_ABI
            protocol = Protocol.AERODROME
        elif isinstance(destination, V3Destination):
            factory = w3.eth.contract(address=chain.v3_factory, abi=V3_FACTORY_ABI)
            address = await factory.functions.getPool(
                destination.token0, destination.token1, destination.fee
            ).call()
            fee, pool_abi = destination.fee, POOL_ABI
            spacing = self._v3_tick_spacing(destination.fee)
            protocol = Protocol.UNISWAP_V3
        else:
            raise MigrationError(
                ErrorKind.UNSUPPORTED_PROTOCOL,
                f"unsupported destination {type(destination).__name__}",
            )

        if address == ZERO_ADDRESS:
            return None
        pool = w3.eth.contract(address=address, abi=pool_abi)
        slot0, liquidity = await asyncio.gather(
            pool.functions.slot0().call(),
            pool.functions.liquidity().call(),
        )
        logger.debug("pool %s on chain %d at tick %d", address, chain.chain_id, slot0[1])
        return Pool(chain.chain_id, protocol, token0, token1, fee, spacing, slot0[0], liquidity, slot0[1])

    @staticmethod
    def _v3_tick_spacing(fee: int) -> int:
        try:
            return V3_FEE_TICK_SPACINGS[fee]
        except KeyError:
            raise MigrationError(
                ErrorKind.INVALID_INPUT, f"unknown Uniswap v3 fee tier {fee}", fee=fee
            ) from None

    # -- SwapQuoter ---------------------------------------------------------

    async def quote_exact_input(self, pool: Pool, amount_in: int, zero_for_one: bool) -> SwapQuote:
        chain = self._chain(pool.chain_id)
        w3 = self._w3(pool.chain_id)
        token_in, token_out = (
            (pool.token0.address, pool.token1.address)
            if zero_for_one
            else (pool.token1.address, pool.token0.address)
        )

        if pool.protocol == Protocol.UNISWAP_V4:
            quoter = w3.eth.contract(address=chain.v4_quoter, abi=V4_QUOTER_ABI)
            key = (pool.token0.address, pool.token1.address, pool.fee, pool.tick_spacing, pool.hooks)
            amount_out, _ = await quoter.functions.quoteExactInputSingle(
                (key, zero_for_one, amount_in, b"")
            ).call()
            # The v4 quoter does not report a post-swap price.
            amount_less_fee = amount_in * (1_000_000 - pool.fee) // 1_000_000
            sqrt_after = next_sqrt_price_from_input(
                pool.sqrt_price_x96, pool.liquidity, amount_less_fee, zero_for_one
            )
            return SwapQuote(amount_in, amount_out, sqrt_after)

        if pool.protocol == Protocol.AERODROME:
            quoter = w3.eth.contract(address=chain.aerodrome_quoter, abi=AERODROME_QUOTER_ABI)
            params = (token_in, token_out, amount_in, pool.tick_spacing, 0)
        else:
            quoter = w3.eth.contract(address=chain.quoter_v2, abi=QUOTER_V2_ABI)
            params = (token_in, token_out, amount_in, pool.fee, 0)
        amount_out, sqrt_after, _, _ = await quoter.functions.quoteExactInputSingle(params).call()
        return SwapQuote(amount_in, amount_out, sqrt_after)

    # -- Source positions -----------------------------------------------------

    async def read_position(self, protocol: Protocol, chain_id: int, token_id: int) -> SourcePosition:
        """Read a source position NFT of *protocol* with its uncollected fees."""
        if protocol == Protocol.UNISWAP_V4:
            return await self.read_v4_position(chain_id, token_id)
        if protocol == Protocol.AERODROME:
            return await self.read_aerodrome_position(chain_id, token_id)
        return await self.read_v3_position(chain_id, token_id)

    async def read_v3_position(self, chain_id: int, token_id: int) -> SourcePosition:
        """Read a Uniswap v3 position NFT with its uncollected fees.

        Fees are obtained by simulating ``collect`` as the owner, which
        accounts for fee growth since the last poke.
        """
        chain = self._chain(chain_id)
        return await self._read_nft_position(
            chain_id, token_id, chain.v3_position_manager, NFT_POSITION_MANAGER_ABI,
            lambda t0, t1, fee, lower, upper: V3Destination(chain_id, t0, t1, fee, lower, upper),
        )

    async def read_aerodrome_position(self, chain_id: int, token_id: int) -> SourcePosition:
        """Read an Aerodrome Slipstream position NFT with its uncollected fees."""
        chain = self._chain(chain_id)
        if chain.aerodrome_position_manager is None:
            raise MigrationError(
                ErrorKind.UNSUPPORTED_PROTOCOL,
                f"Aerodrome is not deployed on chain {chain_id}",
            )
        return await self._read_nft_position(
            chain_id, token_id, chain.aerodrome_position_manager, AERODROME_POSITION_MANAGER_ABI,
            lambda t0, t1, spacing, lower, upper: AerodromeDestination(
                chain_id, t0, t1, spacing, lower, upper
            ),
        )

    async def _read_nft_position(
        self,
        chain_id: int,
        token_id: int,
        manager_address: str,
        abi: list,
        to_destination: Callable[[str, str, int, int, int], Destination],
    ) -> SourcePosition:
        w3 = self._w3(chain_id)
        manager = w3.eth.contract(address=manager_address, abi=abi)
        owner, details = await asyncio.gather(
            manager.functions.ownerOf(token_id).call(),
            manager.functions.positions(token_id).call(),
        )
        token0, token1, fee_or_spacing, tick_lower, tick_upper, liquidity = details[2:8]
        fee0, fee1 = await manager.functions.collect(
            (token_id, owner, MAX_UINT128, MAX_UINT128)
        ).call({"from": owner})

        pool = await self.read_pool(to_destination(token0, token1, fee_or_spacing, tick_lower, tick_upper))
        if pool is None:
            raise MigrationError(
                ErrorKind.POOL_NOT_FOUND, f"source pool for position {token_id} not found"
            )
        return self._source_position(owner, token_id, pool, tick_lower, tick_upper, liquidity, fee0, fee1)

    async def read_v4_position(self, chain_id: int, token_id: int) -> SourcePosition:
        """Read a Uniswap v4 position NFT with its uncollected fees.

        v4 has no ``collect``; fees are computed from the fee growth inside
        the range against the position's last checkpoint in the pool manager.
        """
        chain = self._chain(chain_id)
        if chain.v4_position_manager is None or chain.v4_state_view is None:
            raise MigrationError(
                ErrorKind.UNSUPPORTED_PROTOCOL,
                f"Uniswap v4 is not deployed on chain {chain_id}",
            )
        w3 = self._w3(chain_id)
        manager = w3.eth.contract(address=chain.v4_position_manager, abi=V4_POSITION_MANAGER_ABI)
        (pool_key, info), liquidity, owner = await asyncio.gather(
            manager.functions.getPoolAndPositionInfo(token_id).call(),
            manager.functions.getPositionLiquidity(token_id).call(),
            manager.functions.ownerOf(token_id).call(),
        )
        currency0, currency1, fee, tick_spacing, hooks = pool_key
        tick_lower, tick_upper = decode_v4_position_info(info)

        destination = V4Destination(
            chain_id, currency0, currency1, fee, tick_spacing, hooks, tick_lower, tick_upper
        )
        pool = await self.read_pool(destination)
        if pool is None:
            raise MigrationError(
                ErrorKind.POOL_NOT_FOUND, f"source pool for position {token_id} not found"
            )

        pool_id = v4_pool_id(currency0, currency1, fee, tick_spacing, hooks)
        position_id = v4_position_id(chain.v4_position_manager, tick_lower, tick_upper, token_id)
        state_view = w3.eth.contract(address=chain.v4_state_view, abi=V4_STATE_VIEW_ABI)
        (inside0, inside1), (_, last0, last1) = await asyncio.gather(
            state_view.functions.getFeeGrowthInside(pool_id, tick_lower, tick_upper).call(),
            state_view.functions.getPositionInfo(pool_id, position_id).call(),
        )
        return self._source_position(
            owner, token_id, pool, tick_lower, tick_upper, liquidity,
            uncollected_fees(liquidity, inside0, last0),
            uncollected_fees(liquidity, inside1, last1),
        )

    @staticmethod
    def _source_position(owner, token_id, pool, tick_lower, tick_upper, liquidity, fee0, fee1):
        amount0, amount1 = amounts_for_liquidity(
            pool.sqrt_price_x96,
            get_sqrt_ratio_at_tick(tick_lower),
            get_sqrt_ratio_at_tick(tick_upper),
            liquidity,
        )
        return SourcePosition(
            owner=owner,
            token_id=token_id,
            pool=pool,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
            fee_amount0=fee0,
            fee_amount1=fee1,
        )
