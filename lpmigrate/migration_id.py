"""Deterministic migration ids.

Layout (big-endian, 256 bits)::

    | chain id (32) | migrator (160) | mode (8) | nonce (56) |

The migrator contract packs the same fields with assembly masks, so
out-of-range inputs are truncated rather than rejected.
"""

from __future__ import annotations

from web3 import Web3

from .constants import MigrationMethod, MigrationMode
from .types import MigrationIdFields
from .validation import to_bytes32

CHAIN_ID_MASK = 0xFFFFFFFF
ADDRESS_MASK = (1 << 160) - 1
MODE_MASK = 0xFF
NONCE_MASK = 0x00FFFFFFFFFFFFFF


def migration_mode(method: MigrationMethod) -> MigrationMode:
    if method == MigrationMethod.SINGLE_TOKEN:
        return MigrationMode.SINGLE_TOKEN
    return MigrationMode.DUAL_TOKEN


def derive_migration_id(
    source_chain_id: int,
    migrator: str | int,
    mode: int,
    nonce: int,
) -> bytes:
    """Pack the four fields into a 32-byte migration id.

    Parameters
    ----------
    source_chain_id : int
        Chain the migration starts on.
    migrator : str or int
        Migrator contract address (hex string or integer).
    mode : int
        :class:`MigrationMode` value.
    nonce : int
        Caller-chosen nonce; only the low 56 bits are kept.

    Returns
    -------
    bytes
        32-byte id.
    """
    migrator_int = int(migrator, 16) if isinstance(migrator, str) else migrator
    value = (
        (source_chain_id & CHAIN_ID_MASK) << 224
        | (migrator_int & ADDRESS_MASK) << 64
        | (int(mode) & MODE_MASK) << 56
        | (nonce & NONCE_MASK)
    )
    return value.to_bytes(32, "big")


def split_migration_id(migration_id: bytes | str) -> MigrationIdFields:
    """Recover the packed fields of a migration id."""
    value = int.from_bytes(to_bytes32(migration_id), "big")
    migrator = (value >> 64) & ADDRESS_MASK
    return MigrationIdFields(
        chain_id=(value >> 224) & CHAIN_ID_MASK,
        migrator=Web3.to_checksum_address(migrator.to_bytes(20, "big")),
        mode=(value >> 56) & MODE_MASK,
        nonce=value & NONCE_MASK,
    )
