"""Unit tests for migration id derivation (pure function tests)."""

import pytest

from lpmigrate.constants import MigrationMethod, MigrationMode
from lpmigrate.errors import ErrorKind, MigrationError
from lpmigrate.migration_id import (
    derive_migration_id,
    migration_mode,
    split_migration_id,
)

from fakes import MIGRATOR


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def test_id_is_32_bytes():
    mid = derive_migration_id(1, MIGRATOR, MigrationMode.SINGLE_TOKEN, 7)
    assert isinstance(mid, bytes)
    assert len(mid) == 32


def test_fields_are_packed_big_endian():
    mid = derive_migration_id(8453, MIGRATOR, MigrationMode.DUAL_TOKEN, 0x0102)
    assert mid[:4] == (8453).to_bytes(4, "big")
    assert mid[4:24] == bytes.fromhex(MIGRATOR[2:])
    assert mid[24] == 2
    assert mid[25:] == (0x0102).to_bytes(7, "big")


def test_migrator_given_as_int_matches_address():
    as_int = int(MIGRATOR, 16)
    assert derive_migration_id(1, as_int, 1, 5) == derive_migration_id(1, MIGRATOR, 1, 5)


def test_deterministic():
    a = derive_migration_id(10, MIGRATOR, 1, 99)
    b = derive_migration_id(10, MIGRATOR, 1, 99)
    assert a == b


def test_distinct_nonces_give_distinct_ids():
    ids = {derive_migration_id(1, MIGRATOR, 1, n) for n in range(50)}
    assert len(ids) == 50


# ---------------------------------------------------------------------------
# Masking
# ---------------------------------------------------------------------------

def test_out_of_range_fields_are_masked():
    """Oversized inputs are truncated to their field width, not rejected."""
    wide = derive_migration_id(2**32 + 5, MIGRATOR, 0x1FF, 2**56 + 3)
    narrow = derive_migration_id(5, MIGRATOR, 0xFF, 3)
    assert wide == narrow


def test_split_recovers_fields():
    mid = derive_migration_id(42161, MIGRATOR, MigrationMode.SINGLE_TOKEN, 123456)
    fields = split_migration_id(mid)
    assert fields.chain_id == 42161
    assert fields.migrator == MIGRATOR
    assert fields.mode == 1
    assert fields.nonce == 123456


def test_split_accepts_hex_string():
    mid = derive_migration_id(1, MIGRATOR, 2, 1)
    assert split_migration_id("0x" + mid.hex()) == split_migration_id(mid)


def test_split_rejects_short_id():
    with pytest.raises(MigrationError) as excinfo:
        split_migration_id(b"\x01" * 31)
    assert excinfo.value.kind == ErrorKind.INVALID_MIGRATION_ID


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

def test_mode_per_method():
    assert migration_mode(MigrationMethod.SINGLE_TOKEN) == 1
    assert migration_mode(MigrationMethod.DUAL_TOKEN) == 2
