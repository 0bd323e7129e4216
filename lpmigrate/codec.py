"""ABI encoding of migrator and settler payloads.

Every payload is a single ABI tuple parameter, encoded with
:func:`eth_abi.encode` so that dynamic ``bytes`` members follow the
head/tail layout the contracts decode. Nested payloads (mint params inside
settlement params, route inside token routes) are encoded first and
embedded as ``bytes``.
"""

from __future__ import annotations

from eth_abi import decode, encode
from web3 import Web3

from .constants import Protocol
from .errors import ErrorKind, MigrationError
from .types import (
    AcrossRoute,
    AerodromeMintParams,
    EncodedMigration,
    MigratorParams,
    MintParams,
    SettlementParams,
    TokenRoute,
    V3MintParams,
    V4MintParams,
)
from .validation import to_bytes32

V3_MINT_PARAMS_TYPE = (
    "(address,address,uint24,uint160,int24,int24,uint24,uint256,uint256)"
)
V4_MINT_PARAMS_TYPE = (
    "(address,address,uint24,int24,address,uint160,int24,int24,uint256,uint256,uint256)"
)
AERODROME_MINT_PARAMS_TYPE = (
    "(address,address,int24,uint160,int24,int24,uint24,uint256,uint256)"
)
SETTLEMENT_PARAMS_TYPE = "(address,uint16,address,bytes)"
ACROSS_ROUTE_TYPE = "(address,uint256,uint32,uint32,address,uint32)"
MIGRATOR_PARAMS_TYPE = "(uint32,address,(address,uint256,bytes)[],bytes)"
SETTLER_MESSAGE_TYPES = ["bytes32", "bytes"]


def _checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


# ---------------------------------------------------------------------------
# Mint params
# ---------------------------------------------------------------------------

def encode_mint_params(params: MintParams) -> bytes:
    """Encode one of the three mint-parameter variants.

    Raises
    ------
    MigrationError
        ``INVALID_INPUT`` when *params* is not a known variant or a V4
        variant lacks a well-formed hooks address.
    """
    if isinstance(params, V3MintParams):
        return encode(
            [V3_MINT_PARAMS_TYPE],
            [(
                params.token0,
                params.token1,
                params.fee,
                params.sqrt_price_x96,
                params.tick_lower,
                params.tick_upper,
                params.swap_amount_in_milli_bps,
                params.amount0_min,
                params.amount1_min,
            )],
        )
    if isinstance(params, V4MintParams):
        if not isinstance(params.hooks, str) or not Web3.is_address(params.hooks):
            raise MigrationError(
                ErrorKind.INVALID_INPUT,
                "Uniswap v4 mint params require a hooks address",
                hooks=params.hooks,
            )
        return encode(
            [V4_MINT_PARAMS_TYPE],
            [(
                params.token0,
                params.token1,
                params.fee,
                params.tick_spacing,
                params.hooks,
                params.sqrt_price_x96,
                params.tick_lower,
                params.tick_upper,
                params.swap_amount_in_milli_bps,
                params.amount0_min,
                params.amount1_min,
            )],
        )
    if isinstance(params, AerodromeMintParams):
        return encode(
            [AERODROME_MINT_PARAMS_TYPE],
            [(
                params.token0,
                params.token1,
                params.tick_spacing,
                params.sqrt_price_x96,
                params.tick_lower,
                params.tick_upper,
                params.swap_amount_in_milli_bps,
                params.amount0_min,
                params.amount1_min,
            )],
        )
    raise MigrationError(
        ErrorKind.INVALID_INPUT,
        f"unknown mint params variant {type(params).__name__}",
    )


def decode_mint_params(protocol: Protocol, data: bytes) -> MintParams:
    if protocol == Protocol.UNISWAP_V3:
        (t0, t1, fee, sqrt_p, tl, tu, swap, a0, a1), = decode([V3_MINT_PARAMS_TYPE], data)
        return V3MintParams(_checksum(t0), _checksum(t1), fee, sqrt_p, tl, tu, swap, a0, a1)
    if protocol == Protocol.UNISWAP_V4:
        (t0, t1, fee, spacing, hooks, sqrt_p, tl, tu, swap, a0, a1), = decode(
            [V4_MINT_PARAMS_TYPE], data
        )
        return V4MintParams(
            _checksum(t0), _checksum(t1), fee, spacing, _checksum(hooks),
            sqrt_p, tl, tu, swap, a0, a1,
        )
    if protocol == Protocol.AERODROME:
        (t0, t1, spacing, sqrt_p, tl, tu, swap, a0, a1), = decode(
            [AERODROME_MINT_PARAMS_TYPE], data
        )
        return AerodromeMintParams(
            _checksum(t0), _checksum(t1), spacing, sqrt_p, tl, tu, swap, a0, a1
        )
    raise MigrationError(
        ErrorKind.UNSUPPORTED_PROTOCOL, f"unsupported protocol {protocol!r}"
    )


# ---------------------------------------------------------------------------
# Settlement params
# ---------------------------------------------------------------------------

def encode_settlement_params(params: SettlementParams) -> bytes:
    return encode(
        [SETTLEMENT_PARAMS_TYPE],
        [(
            params.recipient,
            params.sender_share_bps,
            params.sender_fee_recipient,
            params.mint_params,
        )],
    )


def decode_settlement_params(data: bytes) -> SettlementParams:
    (recipient, share, fee_recipient, mint_params), = decode([SETTLEMENT_PARAMS_TYPE], data)
    return SettlementParams(
        _checksum(recipient), share, _checksum(fee_recipient), bytes(mint_params)
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def encode_route(route: AcrossRoute) -> bytes:
    return encode(
        [ACROSS_ROUTE_TYPE],
        [(
            route.output_token,
            route.max_fees,
            route.quote_timestamp,
            route.fill_deadline_offset,
            route.exclusive_relayer,
            route.exclusivity_deadline,
        )],
    )


def decode_route(data: bytes) -> AcrossRoute:
    (output_token, max_fees, ts, offset, relayer, excl), = decode([ACROSS_ROUTE_TYPE], data)
    return AcrossRoute(_checksum(output_token), max_fees, ts, offset, _checksum(relayer), excl)


# ---------------------------------------------------------------------------
# Migrator / settler messages
# ---------------------------------------------------------------------------

def encode_migrator_params(params: MigratorParams) -> bytes:
    return encode(
        [MIGRATOR_PARAMS_TYPE],
        [(
            params.chain_id,
            params.settler,
            [(r.input_token, r.min_amount_out, r.route) for r in params.token_routes],
            params.settlement_params,
        )],
    )


def decode_migrator_params(data: bytes) -> MigratorParams:
    (chain_id, settler, routes, settlement), = decode([MIGRATOR_PARAMS_TYPE], data)
    return MigratorParams(
        chain_id=chain_id,
        settler=_checksum(settler),
        token_routes=tuple(
            TokenRoute(_checksum(token), min_out, bytes(route))
            for token, min_out, route in routes
        ),
        settlement_params=bytes(settlement),
    )


def encode_settler_message(migration_id: bytes | str, settlement_params: bytes) -> bytes:
    """The envelope carried in the bridge message field: ``(bytes32, bytes)``."""
    return encode(SETTLER_MESSAGE_TYPES, [to_bytes32(migration_id), settlement_params])


def decode_settler_message(data: bytes) -> tuple[bytes, bytes]:
    migration_id, settlement = decode(SETTLER_MESSAGE_TYPES, data)
    return bytes(migration_id), bytes(settlement)


def encode_migration(params: MigratorParams, migration_id: bytes | str) -> EncodedMigration:
    """Encode both messages of a migration from the same settlement params."""
    return EncodedMigration(
        migrator_message=encode_migrator_params(params),
        settler_message=encode_settler_message(migration_id, params.settlement_params),
    )
