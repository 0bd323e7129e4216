"""Destination position sizing.

Three planners share one primitive, :func:`from_amounts`, which mints the
largest liquidity two budgets allow and reports the (rounded-up) amounts
the mint consumes. Those amounts never exceed the budgets.

* :func:`plan_max_position` - single-shot plan, optionally capped to a
  value budget by a linear reduction factor.
* :func:`plan_max_position_with_swap` - lets the settler swap part of one
  budget into the other, refined over a fixed number of quote rounds.
* :func:`plan_dual_budget` - two independently bridged budgets, no swap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Optional

from .constants import BPS_DENOMINATOR, DEFAULT_SWAP_ITERATIONS
from .errors import ErrorKind, MigrationError
from .interfaces import SwapQuoter
from .liquidity_math import (
    Q192,
    amounts_for_liquidity,
    get_amount0_delta,
    get_amount1_delta,
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    max_liquidity_for_amounts,
    nearest_usable_tick,
    scale_sqrt_price,
    usable_tick_above,
    usable_tick_at_or_below,
)
from .types import Pool, Position

logger = logging.getLogger(__name__)

_RATIO_PRECISION = 10**18


@dataclass(frozen=True)
class SwapPlan:
    """Result of :func:`plan_max_position_with_swap`.

    Attributes
    ----------
    position : Position
        Position minted after the swap, priced on the post-swap pool.
    swap_amount : int
        Input amount the settler swaps before minting.
    zero_for_one : bool
        Swap direction (token0 in when True).
    amount_out : int
        Quoted output of the swap.
    sqrt_price_x96_after : int
        Pool price after the swap.
    iterations : int
        Quote rounds actually performed.
    """

    position: Position
    swap_amount: int
    zero_for_one: bool
    amount_out: int
    sqrt_price_x96_after: int
    iterations: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def snap_ticks(pool: Pool, tick_lower: int, tick_upper: int) -> tuple[int, int]:
    """Round a range to usable ticks of *pool*."""
    lower = nearest_usable_tick(tick_lower, pool.tick_spacing)
    upper = nearest_usable_tick(tick_upper, pool.tick_spacing)
    if lower >= upper:
        raise MigrationError(
            ErrorKind.INVALID_TICK_RANGE,
            f"range [{tick_lower}, {tick_upper}] collapses at tick spacing {pool.tick_spacing}",
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            tick_spacing=pool.tick_spacing,
        )
    return lower, upper


def with_sqrt_price(pool: Pool, sqrt_price_x96: int) -> Pool:
    """The same pool moved to another price."""
    if sqrt_price_x96 == pool.sqrt_price_x96:
        return pool
    return replace(
        pool,
        sqrt_price_x96=sqrt_price_x96,
        tick=get_tick_at_sqrt_ratio(sqrt_price_x96),
    )


def spot_price(pool: Pool) -> Fraction:
    """token1 per token0 at the current price."""
    return Fraction(pool.sqrt_price_x96 * pool.sqrt_price_x96, Q192)


def position_value(pool: Pool, amount0: int, amount1: int) -> Fraction:
    """Value of two amounts in token1 units at spot."""
    return amount0 * spot_price(pool) + amount1


def price_impact_bps(sqrt_price_before: int, sqrt_price_after: int) -> int:
    """Absolute relative price move, in basis points (rounded down)."""
    before = sqrt_price_before * sqrt_price_before
    after = sqrt_price_after * sqrt_price_after
    return abs(after - before) * BPS_DENOMINATOR // before


def _empty(pool: Pool, tick_lower: int, tick_upper: int) -> Position:
    return Position(pool, tick_lower, tick_upper, 0, 0, 0)


# ---------------------------------------------------------------------------
# Single-shot planning
# ---------------------------------------------------------------------------

def from_amounts(
    pool: Pool,
    tick_lower: int,
    tick_upper: int,
    amount0: int,
    amount1: int,
) -> Position:
    """Maximal position for two budgets at the pool's current price."""
    sqrt_a = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_b = get_sqrt_ratio_at_tick(tick_upper)
    liquidity = max_liquidity_for_amounts(
        pool.sqrt_price_x96, sqrt_a, sqrt_b, amount0, amount1
    )
    mint0, mint1 = amounts_for_liquidity(
        pool.sqrt_price_x96, sqrt_a, sqrt_b, liquidity, round_up=True
    )
    return Position(pool, tick_lower, tick_upper, liquidity, mint0, mint1)


def plan_max_position(
    pool: Pool,
    budget0: int,
    budget1: int,
    tick_lower: int,
    tick_upper: int,
    *,
    value_budget: Optional[int] = None,
) -> Position:
    """Largest position the budgets allow, without swapping.

    Parameters
    ----------
    pool : Pool
        Destination pool snapshot.
    budget0, budget1 : int
        Available token0 and token1.
    tick_lower, tick_upper : int
        Requested range; snapped to the nearest usable ticks.
    value_budget : int, optional
        Cap on the position's value in token1 units at spot. When a
        two-sided plan is worth more, both amounts are scaled down by
        ``value_budget / value`` and the position re-planned. This is a
        linear correction, not an exact optimum. Start and Settle never
        pass it, since their budgets are the bridged amounts themselves; it
        is for callers sizing a position against a notional cap.

    Returns
    -------
    Position
        A position whose amounts never exceed either budget. With one
        budget empty and the price inside the range, the range shrinks to
        the usable tick nearest the price on the funded side. With both
        budgets empty, a zero-liquidity position.
    """
    tick_lower, tick_upper = snap_ticks(pool, tick_lower, tick_upper)
    if budget0 <= 0 and budget1 <= 0:
        return _empty(pool, tick_lower, tick_upper)

    sqrt_a = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_b = get_sqrt_ratio_at_tick(tick_upper)
    in_range = sqrt_a < pool.sqrt_price_x96 < sqrt_b
    if in_range and (budget0 <= 0 or budget1 <= 0):
        current = get_tick_at_sqrt_ratio(pool.sqrt_price_x96)
        if budget0 <= 0:
            tick_upper = usable_tick_at_or_below(current, pool.tick_spacing)
        else:
            tick_lower = usable_tick_above(current, pool.tick_spacing)
        if tick_lower >= tick_upper:
            return _empty(pool, tick_lower, max(tick_lower, tick_upper))
        logger.debug("single-sided plan on [%d, %d]", tick_lower, tick_upper)

    position = from_amounts(pool, tick_lower, tick_upper, max(budget0, 0), max(budget1, 0))

    if value_budget is not None and position.amount0 > 0 and position.amount1 > 0:
        value = position_value(pool, position.amount0, position.amount1)
        if value > value_budget:
            factor = Fraction(value_budget) / value
            logger.debug("scaling plan by %.6f to fit value budget", float(factor))
            position = from_amounts(
                pool,
                tick_lower,
                tick_upper,
                int(position.amount0 * factor),
                int(position.amount1 * factor),
            )
    return position


def plan_dual_budget(
    pool: Pool,
    budget0: int,
    budget1: int,
    tick_lower: int,
    tick_upper: int,
) -> Position:
    """Plan with two real budgets and record what is left over as refunds."""
    position = plan_max_position(pool, budget0, budget1, tick_lower, tick_upper)
    return replace(
        position,
        amount0_refund=budget0 - position.amount0,
        amount1_refund=budget1 - position.amount1,
    )


# ---------------------------------------------------------------------------
# Swap-enabled planning
# ---------------------------------------------------------------------------

def optimal_ratio(sqrt_price_x96: int, sqrt_a: int, sqrt_b: int, zero_for_one: bool) -> Fraction:
    """Input/output token ratio a position in range needs at this price.

    Zero when the price is outside the range (the position is one-sided).
    """
    if sqrt_price_x96 <= sqrt_a or sqrt_price_x96 >= sqrt_b:
        return Fraction(0)
    needed0 = get_amount0_delta(sqrt_price_x96, sqrt_b, _RATIO_PRECISION, True)
    needed1 = get_amount1_delta(sqrt_price_x96, sqrt_a, _RATIO_PRECISION, True)
    if needed0 == 0 or needed1 == 0:
        return Fraction(0)
    return Fraction(needed0, needed1) if zero_for_one else Fraction(needed1, needed0)


def ratio_amount_in(
    ratio: Fraction,
    price: Fraction,
    input_balance: int,
    output_balance: int,
) -> int:
    """Input to swap so the remaining balances match *ratio*.

    Solves ``(in - x) / (out + x * price) == ratio`` for ``x``.
    """
    amount = (input_balance - ratio * output_balance) / (ratio * price + 1)
    return max(0, int(amount))


async def plan_max_position_with_swap(
    pool: Pool,
    budget0: int,
    budget1: int,
    tick_lower: int,
    tick_upper: int,
    quoter: SwapQuoter,
    iterations: int = DEFAULT_SWAP_ITERATIONS,
) -> SwapPlan:
    """Largest position reachable when the settler may swap before minting.

    Each round computes the swap that would bring the balances to the
    range's optimal ratio, quotes it, then re-derives the ratio at the
    quoted post-swap price and the exchange rate the quote realised. The
    round count is fixed; the loop only ends early when the implied swap
    is zero. The final position is planned on the post-swap pool against
    the post-swap balances.

    Parameters
    ----------
    pool : Pool
        Destination pool snapshot.
    budget0, budget1 : int
        Available token0 and token1 (typically one is zero).
    tick_lower, tick_upper : int
        Requested range; snapped to usable ticks.
    quoter : SwapQuoter
        Quotes swaps against *pool*.
    iterations : int
        Number of quote rounds.

    Returns
    -------
    SwapPlan
    """
    tick_lower, tick_upper = snap_ticks(pool, tick_lower, tick_upper)
    if budget0 <= 0 and budget1 <= 0:
        return SwapPlan(_empty(pool, tick_lower, tick_upper), 0, True, 0, pool.sqrt_price_x96, 0)

    sqrt_a = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_b = get_sqrt_ratio_at_tick(tick_upper)
    sqrt_p = pool.sqrt_price_x96

    if sqrt_p >= sqrt_b:
        zero_for_one = True
    elif sqrt_p <= sqrt_a:
        zero_for_one = False
    else:
        ratio0 = optimal_ratio(sqrt_p, sqrt_a, sqrt_b, True)
        zero_for_one = budget0 * ratio0.denominator > ratio0.numerator * budget1

    input_balance, output_balance = (budget0, budget1) if zero_for_one else (budget1, budget0)
    ratio = optimal_ratio(sqrt_p, sqrt_a, sqrt_b, zero_for_one)
    price = spot_price(pool) if zero_for_one else 1 / spot_price(pool)

    swap_amount = amount_out = 0
    sqrt_after = sqrt_p
    rounds = 0
    for rounds in range(1, iterations + 1):
        amount_in = ratio_amount_in(ratio, price, input_balance, output_balance)
        if amount_in == 0:
            swap_amount = amount_out = 0
            sqrt_after = sqrt_p
            break
        quote = await quoter.quote_exact_input(pool, amount_in, zero_for_one)
        swap_amount, amount_out = amount_in, quote.amount_out
        sqrt_after = quote.sqrt_price_x96_after
        ratio = optimal_ratio(sqrt_after, sqrt_a, sqrt_b, zero_for_one)
        if amount_out > 0:
            price = Fraction(amount_out, amount_in)
        logger.debug(
            "swap round %d: in=%d out=%d sqrtPriceAfter=%d",
            rounds, amount_in, amount_out, sqrt_after,
        )

    post_pool = with_sqrt_price(pool, sqrt_after)
    remaining_in = input_balance - swap_amount
    received_out = output_balance + amount_out
    final0, final1 = (remaining_in, received_out) if zero_for_one else (received_out, remaining_in)

    position = from_amounts(post_pool, tick_lower, tick_upper, final0, final1)
    position = replace(
        position,
        amount0_refund=final0 - position.amount0,
        amount1_refund=final1 - position.amount1,
    )
    return SwapPlan(position, swap_amount, zero_for_one, amount_out, sqrt_after, rounds)


# ---------------------------------------------------------------------------
# Slippage floors
# ---------------------------------------------------------------------------

def burn_amounts_with_slippage(position: Position, slippage_bps: int) -> tuple[int, int]:
    """Minimum amounts *position* is worth anywhere in the price band.

    token0 is valued at the top of the band ``price * (1 + s)`` and token1
    at the bottom ``price * (1 - s)``, both rounded down.
    """
    if position.liquidity == 0:
        return 0, 0
    sqrt_a = get_sqrt_ratio_at_tick(position.tick_lower)
    sqrt_b = get_sqrt_ratio_at_tick(position.tick_upper)
    sqrt_p = position.pool.sqrt_price_x96
    sqrt_low = scale_sqrt_price(sqrt_p, BPS_DENOMINATOR - slippage_bps, BPS_DENOMINATOR)
    sqrt_high = scale_sqrt_price(sqrt_p, BPS_DENOMINATOR + slippage_bps, BPS_DENOMINATOR)
    amount0, _ = amounts_for_liquidity(sqrt_high, sqrt_a, sqrt_b, position.liquidity)
    _, amount1 = amounts_for_liquidity(sqrt_low, sqrt_a, sqrt_b, position.liquidity)
    return amount0, amount1
