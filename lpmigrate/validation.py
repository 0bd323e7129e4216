"""Input validators shared by Start and Settle.

Each validator raises :class:`MigrationError` with a validation-category
kind. They never touch the network.
"""

from __future__ import annotations

from web3 import Web3

from .constants import MAX_TICK, MIN_TICK
from .errors import ErrorKind, MigrationError


def validate_address(address: str, field: str = "address") -> str:
    """Require a 0x-prefixed, EIP-55 checksummed address. Returns it unchanged."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise MigrationError(
            ErrorKind.INVALID_ADDRESS,
            f"{field} {address!r} is not a valid address",
            field=field,
        )
    if not Web3.is_checksum_address(address):
        raise MigrationError(
            ErrorKind.INVALID_ADDRESS,
            f"{field} {address} is not a checksummed address",
            field=field,
        )
    return address


def is_bytes32(value: object) -> bool:
    if isinstance(value, (bytes, bytearray)):
        return len(value) == 32
    if isinstance(value, str):
        if not value.startswith("0x") or len(value) != 66:
            return False
        try:
            bytes.fromhex(value[2:])
        except ValueError:
            return False
        return True
    return False


def to_bytes32(value: bytes | str, field: str = "migration_id") -> bytes:
    """Normalise a bytes32 given as raw bytes or a 0x-prefixed hex string."""
    if not is_bytes32(value):
        raise MigrationError(
            ErrorKind.INVALID_MIGRATION_ID,
            f"{field} must be a 0x-prefixed 32-byte hex string (bytes32)",
            field=field,
        )
    if isinstance(value, str):
        return bytes.fromhex(value[2:])
    return bytes(value)


def validate_tick_range(tick_lower: int, tick_upper: int) -> None:
    if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
        raise MigrationError(
            ErrorKind.INVALID_TICK_RANGE,
            f"ticks must lie within [{MIN_TICK}, {MAX_TICK}]",
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )
    if tick_lower >= tick_upper:
        raise MigrationError(
            ErrorKind.INVALID_TICK_RANGE,
            f"tickLower {tick_lower} must be less than tickUpper {tick_upper}",
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )


def sorts_before(token_a: str, token_b: str) -> bool:
    return int(token_a, 16) < int(token_b, 16)


def validate_token_order(token0: str, token1: str) -> None:
    """token0 and token1 must be distinct and sorted ascending."""
    if not sorts_before(token0, token1):
        raise MigrationError(
            ErrorKind.INVALID_TOKEN_ORDER,
            "token0 and token1 must be distinct addresses in ascending order",
            token0=token0,
            token1=token1,
        )


def validate_bps(value: int, field: str) -> int:
    if not isinstance(value, int) or value < 0 or value > 10_000:
        raise MigrationError(
            ErrorKind.INVALID_INPUT,
            f"{field} must be an integer in [0, 10000], got {value!r}",
            field=field,
        )
    return value
