"""Closed set of migration failure kinds.

Every rejection raised by the engine is a :class:`MigrationError` whose
``kind`` names exactly what went wrong. Callers (and tests) branch on
``kind``; the message text is for humans only.

Collaborator failures (RPC errors, bridge API errors, quoter reverts) are
never wrapped: they propagate as raised.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    PRECONDITION = "precondition"
    BOUND = "bound"


class ErrorKind(str, Enum):
    # validation: rejected before any external call
    INVALID_INPUT = "invalid_input"
    INVALID_ADDRESS = "invalid_address"
    INVALID_MIGRATION_ID = "invalid_migration_id"
    INVALID_TICK_RANGE = "invalid_tick_range"
    INVALID_TOKEN_ORDER = "invalid_token_order"
    INVALID_ROUTES = "invalid_routes"
    UNSUPPORTED_CHAIN = "unsupported_chain"
    UNSUPPORTED_PROTOCOL = "unsupported_protocol"
    UNSUPPORTED_BRIDGE = "unsupported_bridge"
    UNSUPPORTED_METHOD = "unsupported_method"
    # precondition: rejected after the minimum reads needed to detect them
    NO_BRIDGEABLE_ASSET = "no_bridgeable_asset"
    NO_LIQUIDITY_OR_FEES = "no_liquidity_or_fees"
    POOL_NOT_FOUND = "pool_not_found"
    NO_LIQUIDITY = "no_liquidity"
    TOKEN_MISMATCH = "token_mismatch"
    MISSING_SETTLER = "missing_settler"
    # bound: rejected after planning, before encoding
    PRICE_IMPACT_EXCEEDED = "price_impact_exceeded"
    FEE_CAP_EXCEEDED = "fee_cap_exceeded"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]


_CATEGORIES = {
    ErrorKind.INVALID_INPUT: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_ADDRESS: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_MIGRATION_ID: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_TICK_RANGE: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_TOKEN_ORDER: ErrorCategory.VALIDATION,
    ErrorKind.INVALID_ROUTES: ErrorCategory.VALIDATION,
    ErrorKind.UNSUPPORTED_CHAIN: ErrorCategory.VALIDATION,
    ErrorKind.UNSUPPORTED_PROTOCOL: ErrorCategory.VALIDATION,
    ErrorKind.UNSUPPORTED_BRIDGE: ErrorCategory.VALIDATION,
    ErrorKind.UNSUPPORTED_METHOD: ErrorCategory.VALIDATION,
    ErrorKind.NO_BRIDGEABLE_ASSET: ErrorCategory.PRECONDITION,
    ErrorKind.NO_LIQUIDITY_OR_FEES: ErrorCategory.PRECONDITION,
    ErrorKind.POOL_NOT_FOUND: ErrorCategory.PRECONDITION,
    ErrorKind.NO_LIQUIDITY: ErrorCategory.PRECONDITION,
    ErrorKind.TOKEN_MISMATCH: ErrorCategory.PRECONDITION,
    ErrorKind.MISSING_SETTLER: ErrorCategory.PRECONDITION,
    ErrorKind.PRICE_IMPACT_EXCEEDED: ErrorCategory.BOUND,
    ErrorKind.FEE_CAP_EXCEEDED: ErrorCategory.BOUND,
}


class MigrationError(Exception):
    """Raised when a Start or Settle request is rejected.

    Attributes
    ----------
    kind : ErrorKind
        Which rule was violated.
    reason : str
        Human-readable explanation.
    details : dict
        Structured context (offending values, limits).
    """

    def __init__(self, kind: ErrorKind, reason: str, **details: Any):
        self.kind = kind
        self.reason = reason
        self.details = details
        super().__init__(f"{kind.value}: {reason}")

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category
