"""Start and Settle: the two public phases of a migration.

Start runs against the source chain: it checks the position can be
bridged, consolidates it when the single-token method is used, quotes the
bridge and derives the migration id. Settle runs against the destination
chain: it re-reads the pool, sizes the position for the quoted and the
guaranteed bridge output, and encodes the migrator and settler messages.

A call either returns a complete result or raises; there are no partial
results. :meth:`MigrationOrchestrator.plan_migrations` runs both phases
against several destinations and reports the rejected ones instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from .cache import QuoteCache
from .codec import (
    encode_migration,
    encode_mint_params,
    encode_route,
    encode_settlement_params,
    encode_settler_message,
)
from .chain import get_settlement_cache_entry
from .config import ChainConfig, EngineConfig
from .constants import (
    AERODROME_TICK_SPACING_FEES,
    BPS_DENOMINATOR,
    DUAL_ROUTE_EXTRA_EXCLUSIVITY,
    DUAL_ROUTE_EXTRA_GAS_MULTIPLIER,
    INTERIM_AMOUNT_MIN,
    MILLI_BPS_DENOMINATOR,
    NATIVE_ETH_ADDRESS,
    V3_FEE_TICK_SPACINGS,
    ZERO_ADDRESS,
    BridgeType,
    MigrationMethod,
)
from .errors import ErrorKind, MigrationError
from .estimator import SourceSwapEstimator, find_bridgeable_side
from .fees import check_fee_caps, route_fees, split_fees
from .interfaces import BridgeQuoter, PoolReader, SettlerFeeReader, StorageReader, SwapQuoter
from .liquidity_math import get_tick_at_sqrt_ratio
from .migration_id import derive_migration_id, migration_mode
from .planner import (
    burn_amounts_with_slippage,
    plan_dual_budget,
    plan_max_position_with_swap,
    position_value,
    price_impact_bps,
    snap_ticks,
)
from .types import (
    AerodromeDestination,
    AerodromeMintParams,
    BridgeQuote,
    Destination,
    Fees,
    MigrationFees,
    MigrationPlan,
    MigrationsRequest,
    MigrationsResult,
    MigratorParams,
    MintParams,
    Pool,
    Position,
    Route,
    SettleRequest,
    SettleResult,
    SettlementCacheEntry,
    SettlementParams,
    SettlerFees,
    SlippageCalcs,
    StartRequest,
    StartResult,
    SwapQuote,
    Token,
    TokenRoute,
    UnavailableMigration,
    V3Destination,
    V3MintParams,
    V4Destination,
    V4MintParams,
)
from .validation import (
    to_bytes32,
    validate_address,
    validate_bps,
    validate_tick_range,
    validate_token_order,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Cached collaborators
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapQuoteKey:
    pool: Pool
    amount_in: int
    zero_for_one: bool


@dataclass(frozen=True)
class BridgeQuoteKey:
    origin_chain_id: int
    destination_chain_id: int
    input_token: str
    output_token: str
    amount: int
    recipient: str
    message: bytes


class CachedSwapQuoter:
    """Swap quoter whose identical in-flight requests are coalesced."""

    def __init__(self, quoter: SwapQuoter, cache: QuoteCache):
        self.quoter = quoter
        self.cache = cache

    async def quote_exact_input(self, pool: Pool, amount_in: int, zero_for_one: bool) -> SwapQuote:
        return await self.cache.get_or_fetch(
            SwapQuoteKey(pool, amount_in, zero_for_one),
            lambda: self.quoter.quote_exact_input(pool, amount_in, zero_for_one),
        )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def build_route(
    quote: BridgeQuote,
    input_amount: int,
    slippage_bps: int,
    fill_deadline_offset: int,
    extra_gas_fee: int = 0,
    extra_exclusivity: int = 0,
) -> Route:
    """Route for one bridge quote; the guaranteed floor is half the slippage below output."""
    output = quote.output_amount - extra_gas_fee
    return Route(
        input_token=quote.input_token,
        output_token=quote.output_token,
        input_amount=input_amount,
        output_amount=output,
        min_output_amount=output * (BPS_DENOMINATOR - slippage_bps // 2) // BPS_DENOMINATOR,
        max_fees=quote.total_relay_fee + extra_gas_fee,
        quote_timestamp=quote.quote_timestamp,
        fill_deadline_offset=fill_deadline_offset,
        exclusive_relayer=quote.exclusive_relayer,
        exclusivity_deadline=quote.exclusivity_deadline + extra_exclusivity,
    )


def build_mint_params(
    destination: Destination,
    tick_lower: int,
    tick_upper: int,
    swap_amount_in_milli_bps: int,
    amount0_min: int,
    amount1_min: int,
) -> MintParams:
    """Mint params variant matching *destination*."""
    sqrt_price_x96 = destination.sqrt_price_x96 or 0
    if isinstance(destination, V4Destination):
        return V4MintParams(
            destination.token0, destination.token1, destination.fee,
            destination.tick_spacing, destination.hooks, sqrt_price_x96,
            tick_lower, tick_upper, swap_amount_in_milli_bps, amount0_min, amount1_min,
        )
    if isinstance(destination, AerodromeDestination):
        return AerodromeMintParams(
            destination.token0, destination.token1, destination.tick_spacing,
            sqrt_price_x96, tick_lower, tick_upper, swap_amount_in_milli_bps,
            amount0_min, amount1_min,
        )
    if isinstance(destination, V3Destination):
        return V3MintParams(
            destination.token0, destination.token1, destination.fee, sqrt_price_x96,
            tick_lower, tick_upper, swap_amount_in_milli_bps, amount0_min, amount1_min,
        )
    raise MigrationError(
        ErrorKind.UNSUPPORTED_PROTOCOL,
        f"unsupported destination {type(destination).__name__}",
    )


def uninitialized_pool(destination: Destination, sqrt_price_x96: int) -> Pool:
    """Zero-liquidity pool at the caller-supplied initial price."""
    if isinstance(destination, AerodromeDestination):
        fee = AERODROME_TICK_SPACING_FEES.get(destination.tick_spacing, 0)
        spacing = destination.tick_spacing
    elif isinstance(destination, V4Destination):
        fee, spacing = destination.fee, destination.tick_spacing
    else:
        fee, spacing = destination.fee, V3_FEE_TICK_SPACINGS.get(destination.fee, 1)
    return Pool(
        chain_id=destination.chain_id,
        protocol=destination.protocol,
        token0=Token(destination.chain_id, destination.token0),
        token1=Token(destination.chain_id, destination.token1),
        fee=fee,
        tick_spacing=spacing,
        sqrt_price_x96=sqrt_price_x96,
        liquidity=0,
        tick=get_tick_at_sqrt_ratio(sqrt_price_x96),
        hooks=getattr(destination, "hooks", None),
    )


def funding_tokens(pool: Pool, chain: ChainConfig) -> tuple[str, str]:
    """Bridged tokens that fund token0 and token1; native ETH arrives as WETH."""
    return tuple(
        chain.weth if address == NATIVE_ETH_ADDRESS else address
        for address in (pool.token0.address, pool.token1.address)
    )


def _validate_destination(destination: Destination) -> None:
    if not isinstance(destination, (V3Destination, V4Destination, AerodromeDestination)):
        raise MigrationError(
            ErrorKind.UNSUPPORTED_PROTOCOL,
            f"unsupported destination {type(destination).__name__}",
        )
    validate_address(destination.token0, "token0")
    validate_address(destination.token1, "token1")
    validate_token_order(destination.token0, destination.token1)
    validate_tick_range(destination.tick_lower, destination.tick_upper)
    if isinstance(destination, V4Destination):
        validate_address(destination.hooks, "hooks")


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class MigrationOrchestrator:
    """Plans and encodes cross-chain liquidity migrations.

    Parameters
    ----------
    config : EngineConfig
        Chains and engine tunables.
    pool_reader : PoolReader
        Destination pool state.
    swap_quoter : SwapQuoter
        Swap quotes on either chain.
    bridge_quoter : BridgeQuoter
        Bridge deposit quotes.
    fee_reader : SettlerFeeReader
        Settler fee parameters.
    storage_reader : StorageReader, optional
        Raw storage reads, needed only by :meth:`check_migration_id`.
    cache : QuoteCache, optional
        Coalescing cache for quotes; one is created per orchestrator
        when omitted.
    """

    def __init__(
        self,
        config: EngineConfig,
        pool_reader: PoolReader,
        swap_quoter: SwapQuoter,
        bridge_quoter: BridgeQuoter,
        fee_reader: SettlerFeeReader,
        storage_reader: Optional[StorageReader] = None,
        cache: Optional[QuoteCache] = None,
    ):
        self.config = config
        self.cache = cache if cache is not None else QuoteCache(ttl=config.quote_cache_ttl)
        self.pool_reader = pool_reader
        self.swap_quoter = CachedSwapQuoter(swap_quoter, self.cache)
        self.bridge_quoter = bridge_quoter
        self.fee_reader = fee_reader
        self.storage_reader = storage_reader
        self.estimator = SourceSwapEstimator(self.swap_quoter)

    # -- shared helpers -----------------------------------------------------

    def _slippage(self, slippage_bps: Optional[int]) -> int:
        if slippage_bps is None:
            return self.config.default_slippage_bps
        return validate_bps(slippage_bps, "slippage_bps")

    async def _bridge_quote(
        self,
        origin: ChainConfig,
        destination: ChainConfig,
        input_token: str,
        output_token: str,
        amount: int,
        recipient: str,
        message: bytes,
    ) -> BridgeQuote:
        key = BridgeQuoteKey(
            origin.chain_id, destination.chain_id, input_token, output_token,
            amount, recipient, message,
        )
        return await self.cache.get_or_fetch(
            key,
            lambda: self.bridge_quoter.quote(
                origin.chain_id, destination.chain_id, input_token, output_token,
                amount, recipient, message,
            ),
        )

    def _interim_settler_message(
        self, request: StartRequest, migration_id: bytes
    ) -> bytes:
        """Settler message attached to the bridge quote before the real plan exists."""
        destination = request.destination
        mint_params = build_mint_params(
            destination,
            destination.tick_lower,
            destination.tick_upper,
            0,
            INTERIM_AMOUNT_MIN,
            INTERIM_AMOUNT_MIN,
        )
        settlement = SettlementParams(
            recipient=request.recipient,
            sender_share_bps=0,
            sender_fee_recipient=ZERO_ADDRESS,
            mint_params=encode_mint_params(mint_params),
        )
        return encode_settler_message(migration_id, encode_settlement_params(settlement))

    # -- Start --------------------------------------------------------------

    async def start(self, request: StartRequest) -> StartResult:
        """Quote the bridge leg(s) of a migration and derive its id.

        Raises
        ------
        MigrationError
            Validation errors before any I/O; ``NO_BRIDGEABLE_ASSET`` or
            ``NO_LIQUIDITY_OR_FEES`` before quoting. Collaborator errors
            propagate unchanged.
        """
        source = request.source
        destination = request.destination

        if not isinstance(request.method, MigrationMethod):
            raise MigrationError(
                ErrorKind.UNSUPPORTED_METHOD, f"unsupported method {request.method!r}"
            )
        if request.bridge != BridgeType.ACROSS:
            raise MigrationError(
                ErrorKind.UNSUPPORTED_BRIDGE, f"unsupported bridge {request.bridge!r}"
            )
        _validate_destination(destination)
        validate_address(request.recipient, "recipient")
        validate_address(request.sender_fee_recipient, "sender_fee_recipient")
        validate_address(source.owner, "owner")
        validate_bps(request.sender_share_bps, "sender_share_bps")
        validate_tick_range(source.tick_lower, source.tick_upper)
        slippage = self._slippage(request.slippage_bps)

        source_chain = self.config.chain(source.pool.chain_id)
        destination_chain = self.config.chain(destination.chain_id)
        migrator = source_chain.migrator_for(source.protocol)
        if migrator is None:
            raise MigrationError(
                ErrorKind.UNSUPPORTED_PROTOCOL,
                f"no {source.protocol.value} migrator on chain {source_chain.chain_id}",
            )
        settler = destination_chain.settler_for(destination.protocol)

        base_is_token0 = find_bridgeable_side(source, source_chain)
        if source.liquidity == 0 and source.fee_amount0 == 0 and source.fee_amount1 == 0:
            raise MigrationError(
                ErrorKind.NO_LIQUIDITY_OR_FEES,
                f"position {source.token_id} has no liquidity or fees to migrate",
            )

        migration_id = derive_migration_id(
            source_chain.chain_id, migrator, migration_mode(request.method), request.nonce
        )
        message = self._interim_settler_message(request, migration_id)
        offset = self.config.fill_deadline_offset

        swap_quote = None
        if request.method == MigrationMethod.SINGLE_TOKEN:
            estimate = await self.estimator.estimate(source, source_chain)
            swap_quote = estimate.quote
            quote = await self._bridge_quote(
                source_chain, destination_chain, source_chain.weth,
                destination_chain.weth, estimate.total_base, settler, message,
            )
            quotes = (quote,)
            routes = (build_route(quote, estimate.total_base, slippage, offset),)
        else:
            if base_is_token0:
                flip = destination.token0 not in (NATIVE_ETH_ADDRESS, destination_chain.weth)
            else:
                flip = destination.token1 != destination_chain.weth
            weth_out = destination_chain.weth
            output0 = weth_out if base_is_token0 else (destination.token1 if flip else destination.token0)
            output1 = weth_out if not base_is_token0 else (destination.token0 if flip else destination.token1)

            def input_for(token: str) -> str:
                return source_chain.weth if token == NATIVE_ETH_ADDRESS else token

            quote0, quote1 = await asyncio.gather(
                self._bridge_quote(
                    source_chain, destination_chain, input_for(source.pool.token0.address),
                    output0, source.total0, settler, message,
                ),
                self._bridge_quote(
                    source_chain, destination_chain, input_for(source.pool.token1.address),
                    output1, source.total1, settler, message,
                ),
            )
            # The second route's relayer also pays for the mint.
            extra_gas = quote1.relayer_gas_fee * DUAL_ROUTE_EXTRA_GAS_MULTIPLIER
            quotes = (quote0, quote1)
            routes = (
                build_route(quote0, source.total0, slippage, offset),
                build_route(
                    quote1, source.total1, slippage, offset,
                    extra_gas_fee=extra_gas,
                    extra_exclusivity=DUAL_ROUTE_EXTRA_EXCLUSIVITY,
                ),
            )

        logger.info(
            "start %s migration 0x%s: %d route(s) from chain %d to chain %d",
            request.method.value, migration_id.hex(), len(routes),
            source_chain.chain_id, destination_chain.chain_id,
        )
        return StartResult(
            migration_id=migration_id,
            routes=routes,
            bridge_quotes=quotes,
            swap_quote=swap_quote,
        )

    # -- Settle -------------------------------------------------------------

    async def settle(self, request: SettleRequest) -> SettleResult:
        """Plan the destination position and encode both messages.

        Raises
        ------
        MigrationError
            Validation errors before any I/O; ``POOL_NOT_FOUND``,
            ``NO_LIQUIDITY``, ``TOKEN_MISMATCH`` or ``MISSING_SETTLER``
            after the pool read; ``FEE_CAP_EXCEEDED`` or
            ``PRICE_IMPACT_EXCEEDED`` after planning. Collaborator errors
            propagate unchanged.
        """
        migration_id = to_bytes32(request.migration_id)
        routes = tuple(request.routes)
        if not 1 <= len(routes) <= 2:
            raise MigrationError(
                ErrorKind.INVALID_ROUTES,
                f"expected 1 or 2 routes, got {len(routes)}",
                count=len(routes),
            )
        destination = request.destination
        _validate_destination(destination)
        validate_address(request.recipient, "recipient")
        validate_address(request.sender_fee_recipient, "sender_fee_recipient")
        validate_bps(request.sender_share_bps, "sender_share_bps")
        slippage = self._slippage(request.slippage_bps)
        max_impact = (
            slippage if request.max_price_impact_bps is None
            else validate_bps(request.max_price_impact_bps, "max_price_impact_bps")
        )

        chain = self.config.chain(destination.chain_id)
        settler = chain.settler_for(destination.protocol)

        pool, settler_fees = await asyncio.gather(
            self.pool_reader.read_pool(destination),
            self.fee_reader.read_settler_fees(chain.chain_id, settler),
        )
        if pool is None:
            if destination.sqrt_price_x96 is None:
                raise MigrationError(
                    ErrorKind.POOL_NOT_FOUND,
                    "destination pool does not exist and no initial sqrtPriceX96 was given",
                    chain_id=chain.chain_id,
                )
            pool = uninitialized_pool(destination, destination.sqrt_price_x96)

        check_fee_caps(
            request.sender_share_bps,
            settler_fees.protocol_share_bps,
            self.config.max_settler_fee_bps,
        )
        tick_lower, tick_upper = snap_ticks(pool, destination.tick_lower, destination.tick_upper)

        if len(routes) == 1:
            best, worst, swap_milli_bps, impact, fees = await self._plan_single_route(
                pool, chain, routes[0], tick_lower, tick_upper, request, settler_fees, max_impact
            )
        else:
            best, worst, fees = self._plan_dual_route(
                pool, chain, routes, tick_lower, tick_upper, request, settler_fees
            )
            swap_milli_bps, impact = 0, 0

        amount0_min, amount1_min = burn_amounts_with_slippage(worst, slippage)
        best = replace(best, amount0_min=amount0_min, amount1_min=amount1_min)

        mint_params = build_mint_params(
            destination, best.tick_lower, best.tick_upper,
            swap_milli_bps, amount0_min, amount1_min,
        )
        settlement = SettlementParams(
            recipient=request.recipient,
            sender_share_bps=request.sender_share_bps,
            sender_fee_recipient=request.sender_fee_recipient,
            mint_params=encode_mint_params(mint_params),
        )
        migrator_params = MigratorParams(
            chain_id=chain.chain_id,
            settler=settler,
            token_routes=tuple(
                TokenRoute(r.input_token, r.min_output_amount, encode_route(r.to_across_route()))
                for r in routes
            ),
            settlement_params=encode_settlement_params(settlement),
        )
        encoded = encode_migration(migrator_params, migration_id)

        logger.info(
            "settle 0x%s on chain %d: liquidity=%d amounts=(%d, %d) mins=(%d, %d)",
            migration_id.hex(), chain.chain_id, best.liquidity,
            best.amount0, best.amount1, amount0_min, amount1_min,
        )
        return SettleResult(
            dest_position=best,
            migrator_message=encoded.migrator_message,
            settler_message=encoded.settler_message,
            slippage_calcs=SlippageCalcs(
                route_min_amount_outs=tuple(r.min_output_amount for r in routes),
                swap_amount_in_milli_bps=swap_milli_bps,
                mint_amount0_min=amount0_min,
                mint_amount1_min=amount1_min,
                worst_case_position=worst,
                price_impact_bps=impact,
            ),
            migration_fees=fees,
            swap_amount_in_milli_bps=swap_milli_bps,
            mint_params=mint_params,
        )

    async def _plan_single_route(
        self,
        pool: Pool,
        chain: ChainConfig,
        route: Route,
        tick_lower: int,
        tick_upper: int,
        request: SettleRequest,
        settler_fees: SettlerFees,
        max_impact: int,
    ) -> tuple[Position, Position, int, int, MigrationFees]:
        token0, token1 = funding_tokens(pool, chain)
        if route.output_token not in (token0, token1):
            raise MigrationError(
                ErrorKind.TOKEN_MISMATCH,
                f"route output {route.output_token} is not a token of the destination pool",
            )
        if pool.liquidity == 0 and tick_lower <= pool.tick < tick_upper:
            raise MigrationError(
                ErrorKind.NO_LIQUIDITY,
                "destination pool has no liquidity to swap against inside the requested range",
                tick=pool.tick,
            )
        base_is_token0 = route.output_token == token0

        def split(amount: int):
            return split_fees(
                amount,
                request.sender_share_bps,
                settler_fees.protocol_share_bps,
                settler_fees.protocol_share_of_sender_fee_pct,
            )

        best_split, worst_split = split(route.output_amount), split(route.min_output_amount)

        def budgets(net: int) -> tuple[int, int]:
            return (net, 0) if base_is_token0 else (0, net)

        iterations = self.config.swap_iterations
        best_plan, worst_plan = await asyncio.gather(
            plan_max_position_with_swap(
                pool, *budgets(best_split.net_available), tick_lower, tick_upper,
                self.swap_quoter, iterations,
            ),
            plan_max_position_with_swap(
                pool, *budgets(worst_split.net_available), tick_lower, tick_upper,
                self.swap_quoter, iterations,
            ),
        )

        impact = price_impact_bps(pool.sqrt_price_x96, best_plan.sqrt_price_x96_after)
        if impact > max_impact:
            logger.warning(
                "rejecting settle: price impact %d bps exceeds %d bps", impact, max_impact
            )
            raise MigrationError(
                ErrorKind.PRICE_IMPACT_EXCEEDED,
                f"swap moves the pool price by {impact} bps, above {max_impact} bps",
                price_impact_bps=impact,
                max_price_impact_bps=max_impact,
            )

        base_budget = best_split.net_available
        swap_milli_bps = (
            best_plan.swap_amount * MILLI_BPS_DENOMINATOR // base_budget if base_budget else 0
        )

        def on_base(amount: int) -> tuple[int, int]:
            return (amount, 0) if base_is_token0 else (0, amount)

        fees = MigrationFees(
            sender=Fees(request.sender_share_bps, *on_base(best_split.sender_fee)),
            protocol=Fees(settler_fees.protocol_share_bps, *on_base(best_split.protocol_fee)),
        )
        return best_plan.position, worst_plan.position, swap_milli_bps, impact, fees

    def _plan_dual_route(
        self,
        pool: Pool,
        chain: ChainConfig,
        routes: tuple[Route, ...],
        tick_lower: int,
        tick_upper: int,
        request: SettleRequest,
        settler_fees: SettlerFees,
    ) -> tuple[Position, Position, MigrationFees]:
        token0, token1 = funding_tokens(pool, chain)
        outputs = {route.output_token for route in routes}
        for token in (token0, token1):
            if token not in outputs:
                raise MigrationError(
                    ErrorKind.TOKEN_MISMATCH,
                    f"requested token {token} not found in routes",
                    token=token,
                )
        # Destination tokens may sort in the opposite order to the source ones.
        flipped = routes[0].output_token != token0
        route0, route1 = (routes[1], routes[0]) if flipped else (routes[0], routes[1])
        if flipped:
            logger.debug("destination token order is flipped relative to routes")

        (net0, net1), fees = route_fees(
            (route0.output_amount, route1.output_amount), request.sender_share_bps, settler_fees
        )
        (min0, min1), _ = route_fees(
            (route0.min_output_amount, route1.min_output_amount),
            request.sender_share_bps,
            settler_fees,
        )
        best = plan_dual_budget(pool, net0, net1, tick_lower, tick_upper)
        worst = plan_dual_budget(pool, min0, min1, tick_lower, tick_upper)
        return best, worst, fees

    # -- Multi-destination planning -----------------------------------------

    async def plan_migration(self, request: StartRequest) -> MigrationPlan:
        """Start then Settle one destination on the quoted routes."""
        started = await self.start(request)
        settled = await self.settle(
            SettleRequest(
                migration_id=started.migration_id,
                routes=started.routes,
                destination=request.destination,
                recipient=request.recipient,
                sender_share_bps=request.sender_share_bps,
                sender_fee_recipient=request.sender_fee_recipient,
                slippage_bps=request.slippage_bps,
            )
        )
        return MigrationPlan(request.destination, request.method, started, settled)

    async def plan_migrations(self, request: MigrationsRequest) -> MigrationsResult:
        """Plan every option concurrently and rank the ones that succeed.

        Plans are ordered best first by the spot value of the destination
        position in its pool's token1. Options rejected with a
        :class:`MigrationError` are listed under ``unavailable`` with the
        error kind; any other error propagates.
        """
        if not request.options:
            raise MigrationError(ErrorKind.INVALID_INPUT, "no migration options given")
        outcomes = await asyncio.gather(
            *(self.plan_migration(request.start_request(o)) for o in request.options),
            return_exceptions=True,
        )
        plans, unavailable = [], []
        for option, outcome in zip(request.options, outcomes):
            if isinstance(outcome, MigrationError):
                logger.info(
                    "migration to chain %d unavailable: %s",
                    option.destination.chain_id, outcome,
                )
                unavailable.append(
                    UnavailableMigration(option.destination, option.method, outcome.kind, outcome.reason)
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                plans.append(outcome)

        def value(plan: MigrationPlan):
            position = plan.settle.dest_position
            return position_value(position.pool, position.amount0, position.amount1)

        plans.sort(key=value, reverse=True)
        return MigrationsResult(request.source, tuple(plans), tuple(unavailable))

    # -- Withdrawal lookup --------------------------------------------------

    async def check_migration_id(
        self, chain_id: int, settler: str, migration_id: bytes | str
    ) -> Optional[SettlementCacheEntry]:
        """Funds a settler parked for *migration_id*, or None."""
        if self.storage_reader is None:
            raise RuntimeError("check_migration_id needs a storage reader")
        self.config.chain(chain_id)
        return await get_settlement_cache_entry(
            self.storage_reader, chain_id, settler, migration_id
        )
