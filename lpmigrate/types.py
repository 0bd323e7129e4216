"""Data model for migration planning and settlement.

All records are frozen dataclasses: a re-plan produces a new record
(``dataclasses.replace``), nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .constants import (
    ZERO_ADDRESS,
    BridgeType,
    MigrationMethod,
    Protocol,
)
from .errors import ErrorKind, MigrationError
from .validation import sorts_before


# ---------------------------------------------------------------------------
# Tokens, pools, positions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Token:
    """An ERC-20 token (or the native gas asset) on one chain.

    Attributes
    ----------
    chain_id : int
        Chain the token lives on.
    address : str
        Checksummed address; the zero address stands for native ETH.
    decimals : int
        Token decimals.
    symbol : str
        Human-readable ticker.
    """

    chain_id: int
    address: str
    decimals: int = 18
    symbol: str = ""

    @property
    def is_native(self) -> bool:
        return self.address == ZERO_ADDRESS


@dataclass(frozen=True)
class Pool:
    """A concentrated-liquidity pool snapshot.

    Attributes
    ----------
    chain_id : int
        Chain the pool lives on.
    protocol : Protocol
        AMM family (Uniswap v3, Uniswap v4, Aerodrome Slipstream).
    token0, token1 : Token
        Pool tokens; ``token0`` sorts strictly before ``token1``.
    fee : int
        Fee tier in hundredths of a bip.
    tick_spacing : int
        Spacing between usable ticks.
    sqrt_price_x96 : int
        Current sqrt price, Q64.96.
    liquidity : int
        In-range liquidity.
    tick : int
        Current tick.
    hooks : str or None
        Hooks contract (Uniswap v4 only).
    """

    chain_id: int
    protocol: Protocol
    token0: Token
    token1: Token
    fee: int
    tick_spacing: int
    sqrt_price_x96: int
    liquidity: int
    tick: int
    hooks: Optional[str] = None

    def __post_init__(self):
        if not sorts_before(self.token0.address, self.token1.address):
            raise MigrationError(
                ErrorKind.INVALID_TOKEN_ORDER,
                "pool token0 must sort before token1",
                token0=self.token0.address,
                token1=self.token1.address,
            )

    def involves(self, address: str) -> bool:
        return address in (self.token0.address, self.token1.address)


@dataclass(frozen=True)
class Position:
    """A planned (or existing) liquidity position.

    Attributes
    ----------
    pool : Pool
        Pool the position sits in, at the price it was planned against.
    tick_lower, tick_upper : int
        Range bounds, ``tick_lower <= tick_upper``.
    liquidity : int
        Liquidity units, never negative.
    amount0, amount1 : int
        Token amounts the mint consumes.
    amount0_min, amount1_min : int or None
        Slippage floor enforced by the settler.
    amount0_refund, amount1_refund : int or None
        Budget left over after the mint.
    """

    pool: Pool
    tick_lower: int
    tick_upper: int
    liquidity: int
    amount0: int
    amount1: int
    amount0_min: Optional[int] = None
    amount1_min: Optional[int] = None
    amount0_refund: Optional[int] = None
    amount1_refund: Optional[int] = None

    def __post_init__(self):
        if self.tick_lower > self.tick_upper:
            raise ValueError(
                f"tick_lower {self.tick_lower} above tick_upper {self.tick_upper}"
            )
        if self.liquidity < 0:
            raise ValueError("liquidity must be non-negative")


@dataclass(frozen=True)
class SourcePosition:
    """An existing source-chain position, as read from the position manager.

    ``amount0``/``amount1`` are the principal at the current price and
    ``fee_amount0``/``fee_amount1`` the uncollected fees.
    """

    owner: str
    token_id: int
    pool: Pool
    tick_lower: int
    tick_upper: int
    liquidity: int
    amount0: int
    amount1: int
    fee_amount0: int = 0
    fee_amount1: int = 0

    @property
    def protocol(self) -> Protocol:
        return self.pool.protocol

    @property
    def total0(self) -> int:
        return self.amount0 + self.fee_amount0

    @property
    def total1(self) -> int:
        return self.amount1 + self.fee_amount1


# ---------------------------------------------------------------------------
# Bridge routes and fees
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Route:
    """One bridged asset of a migration.

    Attributes
    ----------
    input_token : str
        Token deposited on the source chain.
    output_token : str
        Token delivered on the destination chain.
    input_amount : int
        Amount deposited.
    output_amount : int
        Quoted (optimistic) amount delivered.
    min_output_amount : int
        Guaranteed floor; never above ``output_amount``.
    max_fees : int
        Relay fee ceiling, in input-token units.
    quote_timestamp : int
        Timestamp the bridge quote was issued at.
    fill_deadline_offset : int
        Seconds after ``quote_timestamp`` a relayer may fill.
    exclusive_relayer : str
        Relayer holding exclusivity, or the zero address.
    exclusivity_deadline : int
        Seconds of exclusivity.
    """

    input_token: str
    output_token: str
    input_amount: int
    output_amount: int
    min_output_amount: int
    max_fees: int = 0
    quote_timestamp: int = 0
    fill_deadline_offset: int = 0
    exclusive_relayer: str = ZERO_ADDRESS
    exclusivity_deadline: int = 0

    def __post_init__(self):
        if self.min_output_amount > self.output_amount:
            raise MigrationError(
                ErrorKind.INVALID_ROUTES,
                "min_output_amount exceeds output_amount",
                output_amount=self.output_amount,
                min_output_amount=self.min_output_amount,
            )
        if self.min_output_amount < 0:
            raise MigrationError(
                ErrorKind.INVALID_ROUTES, "route amounts must be non-negative"
            )

    def to_across_route(self) -> AcrossRoute:
        return AcrossRoute(
            output_token=self.output_token,
            max_fees=self.max_fees,
            quote_timestamp=self.quote_timestamp,
            fill_deadline_offset=self.fill_deadline_offset,
            exclusive_relayer=self.exclusive_relayer,
            exclusivity_deadline=self.exclusivity_deadline,
        )


@dataclass(frozen=True)
class Fees:
    """A fee share: ``bps`` of the bridged output, per destination token."""

    bps: int
    amount0: int
    amount1: int

    def __add__(self, other: Fees) -> Fees:
        return Fees(
            self.bps + other.bps,
            self.amount0 + other.amount0,
            self.amount1 + other.amount1,
        )


@dataclass(frozen=True)
class MigrationFees:
    sender: Fees
    protocol: Fees

    @property
    def total(self) -> Fees:
        return self.sender + self.protocol


@dataclass(frozen=True)
class SettlerFees:
    """Fee parameters read from a settler contract."""

    protocol_share_bps: int
    protocol_share_of_sender_fee_pct: int


# ---------------------------------------------------------------------------
# Mint parameter variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class V3MintParams:
    token0: str
    token1: str
    fee: int
    sqrt_price_x96: int
    tick_lower: int
    tick_upper: int
    swap_amount_in_milli_bps: int
    amount0_min: int
    amount1_min: int


@dataclass(frozen=True)
class V4MintParams:
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    hooks: str
    sqrt_price_x96: int
    tick_lower: int
    tick_upper: int
    swap_amount_in_milli_bps: int
    amount0_min: int
    amount1_min: int


@dataclass(frozen=True)
class AerodromeMintParams:
    token0: str
    token1: str
    tick_spacing: int
    sqrt_price_x96: int
    tick_lower: int
    tick_upper: int
    swap_amount_in_milli_bps: int
    amount0_min: int
    amount1_min: int


MintParams = Union[V3MintParams, V4MintParams, AerodromeMintParams]


# ---------------------------------------------------------------------------
# Encoded message structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SettlementParams:
    """Instructions for the destination settler; ``mint_params`` is ABI-encoded."""

    recipient: str
    sender_share_bps: int
    sender_fee_recipient: str
    mint_params: bytes


@dataclass(frozen=True)
class AcrossRoute:
    output_token: str
    max_fees: int
    quote_timestamp: int
    fill_deadline_offset: int
    exclusive_relayer: str
    exclusivity_deadline: int


@dataclass(frozen=True)
class TokenRoute:
    """One entry of the migrator's token routes; ``route`` is ABI-encoded."""

    input_token: str
    min_amount_out: int
    route: bytes


@dataclass(frozen=True)
class MigratorParams:
    chain_id: int
    settler: str
    token_routes: tuple[TokenRoute, ...]
    settlement_params: bytes


@dataclass(frozen=True)
class EncodedMigration:
    migrator_message: bytes
    settler_message: bytes


# ---------------------------------------------------------------------------
# Destination variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class V3Destination:
    """A Uniswap v3 destination pool and target range.

    ``sqrt_price_x96`` is only needed when the pool does not exist yet.
    """

    chain_id: int
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    sqrt_price_x96: Optional[int] = None

    protocol = Protocol.UNISWAP_V3


@dataclass(frozen=True)
class V4Destination:
    chain_id: int
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    hooks: str
    tick_lower: int
    tick_upper: int
    sqrt_price_x96: Optional[int] = None

    protocol = Protocol.UNISWAP_V4


@dataclass(frozen=True)
class AerodromeDestination:
    chain_id: int
    token0: str
    token1: str
    tick_spacing: int
    tick_lower: int
    tick_upper: int
    sqrt_price_x96: Optional[int] = None

    protocol = Protocol.AERODROME


Destination = Union[V3Destination, V4Destination, AerodromeDestination]


# ---------------------------------------------------------------------------
# Collaborator results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapQuote:
    """Exact-input swap quote.

    Attributes
    ----------
    amount_in : int
        Input amount quoted.
    amount_out : int
        Output amount the swap would deliver.
    sqrt_price_x96_after : int
        Pool sqrt price after the swap.
    """

    amount_in: int
    amount_out: int
    sqrt_price_x96_after: int


@dataclass(frozen=True)
class BridgeQuote:
    """A bridge deposit quote (Across ``suggested-fees`` shape).

    Attributes
    ----------
    input_token, output_token : str
        Source and destination token addresses.
    input_amount, output_amount : int
        Deposited amount and quoted delivered amount.
    total_relay_fee : int
        Total relay fee in input-token units.
    relayer_gas_fee : int
        Gas component of the relay fee.
    quote_timestamp : int
        Quote issuance time.
    exclusive_relayer : str
        Relayer with exclusivity, or the zero address.
    exclusivity_deadline : int
        Exclusivity window in seconds.
    spoke_pool : str
        Source-chain deposit contract.
    """

    input_token: str
    output_token: str
    input_amount: int
    output_amount: int
    total_relay_fee: int
    relayer_gas_fee: int
    quote_timestamp: int
    exclusive_relayer: str = ZERO_ADDRESS
    exclusivity_deadline: int = 0
    spoke_pool: str = ZERO_ADDRESS


@dataclass(frozen=True)
class SettlementCacheEntry:
    """Funds parked in a settler awaiting withdrawal."""

    recipient: str
    token: str
    amount: int


@dataclass(frozen=True)
class MigrationIdFields:
    chain_id: int
    migrator: str
    mode: int
    nonce: int


# ---------------------------------------------------------------------------
# Requests and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StartRequest:
    """Everything the Start phase needs.

    Attributes
    ----------
    source : SourcePosition
        Position being migrated, with uncollected fees.
    destination : Destination
        Destination pool and target range.
    method : MigrationMethod
        Consolidate into one bridgeable asset or bridge both.
    bridge : BridgeType
        Bridge used for the value transfer.
    recipient : str
        Owner of the destination position.
    nonce : int
        Caller-chosen 56-bit nonce folded into the migration id.
    sender_share_bps : int
        Integrator fee share.
    sender_fee_recipient : str
        Integrator fee recipient.
    slippage_bps : int or None
        Slippage tolerance; engine default when None.
    """

    source: SourcePosition
    destination: Destination
    method: MigrationMethod
    recipient: str
    bridge: BridgeType = BridgeType.ACROSS
    nonce: int = 0
    sender_share_bps: int = 0
    sender_fee_recipient: str = ZERO_ADDRESS
    slippage_bps: Optional[int] = None


@dataclass(frozen=True)
class StartResult:
    migration_id: bytes
    routes: tuple[Route, ...]
    bridge_quotes: tuple[BridgeQuote, ...]
    swap_quote: Optional[SwapQuote] = None


@dataclass(frozen=True)
class SettleRequest:
    """Everything the Settle phase needs.

    ``migration_id`` may be given as bytes or a 0x-prefixed hex string.
    ``max_price_impact_bps`` defaults to the slippage tolerance.
    """

    migration_id: Union[bytes, str]
    routes: tuple[Route, ...]
    destination: Destination
    recipient: str
    sender_share_bps: int = 0
    sender_fee_recipient: str = ZERO_ADDRESS
    slippage_bps: Optional[int] = None
    max_price_impact_bps: Optional[int] = None


@dataclass(frozen=True)
class SlippageCalcs:
    route_min_amount_outs: tuple[int, ...]
    swap_amount_in_milli_bps: int
    mint_amount0_min: int
    mint_amount1_min: int
    worst_case_position: Optional[Position] = None
    price_impact_bps: int = 0


@dataclass(frozen=True)
class SettleResult:
    dest_position: Position
    migrator_message: bytes
    settler_message: bytes
    slippage_calcs: SlippageCalcs
    migration_fees: MigrationFees
    swap_amount_in_milli_bps: int = 0
    mint_params: Optional[MintParams] = field(default=None, repr=False)


# ---------------------------------------------------------------------------
# Multi-destination planning
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MigrationOption:
    destination: Destination
    method: MigrationMethod = MigrationMethod.SINGLE_TOKEN


@dataclass(frozen=True)
class MigrationsRequest:
    """One source position planned against several destinations.

    The shared fields mean the same as on :class:`StartRequest`.
    """

    source: SourcePosition
    options: tuple[MigrationOption, ...]
    recipient: str
    bridge: BridgeType = BridgeType.ACROSS
    nonce: int = 0
    sender_share_bps: int = 0
    sender_fee_recipient: str = ZERO_ADDRESS
    slippage_bps: Optional[int] = None

    def start_request(self, option: MigrationOption) -> StartRequest:
        return StartRequest(
            source=self.source,
            destination=option.destination,
            method=option.method,
            recipient=self.recipient,
            bridge=self.bridge,
            nonce=self.nonce,
            sender_share_bps=self.sender_share_bps,
            sender_fee_recipient=self.sender_fee_recipient,
            slippage_bps=self.slippage_bps,
        )


@dataclass(frozen=True)
class MigrationPlan:
    """Start and Settle results of one destination."""

    destination: Destination
    method: MigrationMethod
    start: StartResult
    settle: SettleResult


@dataclass(frozen=True)
class UnavailableMigration:
    destination: Destination
    method: MigrationMethod
    kind: ErrorKind
    reason: str


@dataclass(frozen=True)
class MigrationsResult:
    """Plans ranked best first by destination position value, plus rejections."""

    source: SourcePosition
    migrations: tuple[MigrationPlan, ...]
    unavailable: tuple[UnavailableMigration, ...]


@dataclass(frozen=True)
class ExecutionParams:
    """A contract call for the caller's wallet to sign and send.

    Attributes
    ----------
    chain_id : int
        Chain to send the transaction on.
    address : str
        Target contract.
    abi : list
        Minimal ABI covering ``function_name``.
    function_name : str
        Function to call.
    args : tuple
        Positional call arguments.
    data : bytes
        Encoded calldata (selector + arguments).
    """

    chain_id: int
    address: str
    abi: list = field(repr=False, compare=False, hash=False)
    function_name: str
    args: tuple
    data: bytes = b""
