"""Settler fee arithmetic.

Both fee shares are basis points of the *bridged output*, never of the
net amount. The protocol additionally takes a percentage cut of the
sender's share.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import BPS_DENOMINATOR
from .errors import ErrorKind, MigrationError
from .types import Fees, MigrationFees, SettlerFees


@dataclass(frozen=True)
class FeeSplit:
    """Result of :func:`split_fees`.

    Attributes
    ----------
    net_available : int
        Amount left for the mint.
    protocol_fee : int
        Protocol share plus its cut of the sender share.
    sender_fee : int
        Sender share after the protocol cut.
    """

    net_available: int
    protocol_fee: int
    sender_fee: int


def _require(condition: bool, reason: str, **details) -> None:
    if not condition:
        raise MigrationError(ErrorKind.INVALID_INPUT, reason, **details)


def split_fees(
    bridged_output: int,
    sender_share_bps: int,
    protocol_share_bps: int,
    protocol_share_of_sender_fee_pct: int,
) -> FeeSplit:
    """Split *bridged_output* into net amount, protocol fee and sender fee.

    ``net_available + protocol_fee + sender_fee == bridged_output`` holds
    exactly; rounding dust stays in ``net_available``.

    Raises
    ------
    MigrationError
        ``INVALID_INPUT`` for negative amounts, bps above 10000 or a
        percentage above 100.
    """
    _require(bridged_output >= 0, "bridged output must be non-negative")
    _require(0 <= sender_share_bps <= BPS_DENOMINATOR, "sender share out of range",
             sender_share_bps=sender_share_bps)
    _require(0 <= protocol_share_bps <= BPS_DENOMINATOR, "protocol share out of range",
             protocol_share_bps=protocol_share_bps)
    _require(0 <= protocol_share_of_sender_fee_pct <= 100,
             "protocol share of sender fee out of range",
             protocol_share_of_sender_fee_pct=protocol_share_of_sender_fee_pct)

    protocol = bridged_output * protocol_share_bps // BPS_DENOMINATOR
    sender_gross = bridged_output * sender_share_bps // BPS_DENOMINATOR
    cut = sender_gross * protocol_share_of_sender_fee_pct // 100
    protocol_fee = protocol + cut
    sender_fee = sender_gross - cut
    net = bridged_output - protocol_fee - sender_fee
    return FeeSplit(net_available=net, protocol_fee=protocol_fee, sender_fee=sender_fee)


def check_fee_caps(
    sender_share_bps: int,
    protocol_share_bps: int,
    max_total_bps: int,
) -> None:
    """Reject fee shares whose sum exceeds *max_total_bps*."""
    total = sender_share_bps + protocol_share_bps
    if total > max_total_bps:
        raise MigrationError(
            ErrorKind.FEE_CAP_EXCEEDED,
            f"settler fees {total} bps exceed cap of {max_total_bps} bps",
            sender_share_bps=sender_share_bps,
            protocol_share_bps=protocol_share_bps,
            max_total_bps=max_total_bps,
        )


def route_fees(
    outputs: tuple[int, int],
    sender_share_bps: int,
    settler_fees: SettlerFees,
) -> tuple[tuple[int, int], MigrationFees]:
    """Apply :func:`split_fees` to per-token bridged outputs.

    Parameters
    ----------
    outputs : tuple[int, int]
        Bridged output of destination token0 and token1.
    sender_share_bps : int
        Integrator share.
    settler_fees : SettlerFees
        Protocol parameters read from the settler.

    Returns
    -------
    tuple
        ``((net0, net1), MigrationFees)``.
    """
    splits = [
        split_fees(
            amount,
            sender_share_bps,
            settler_fees.protocol_share_bps,
            settler_fees.protocol_share_of_sender_fee_pct,
        )
        for amount in outputs
    ]
    fees = MigrationFees(
        sender=Fees(sender_share_bps, splits[0].sender_fee, splits[1].sender_fee),
        protocol=Fees(
            settler_fees.protocol_share_bps,
            splits[0].protocol_fee,
            splits[1].protocol_fee,
        ),
    )
    return (splits[0].net_available, splits[1].net_available), fees
