"""Concentrated-liquidity math in exact integer arithmetic.

Q64.96 fixed point, matching the on-chain TickMath / SqrtPriceMath /
LiquidityAmounts libraries. Python integers are unbounded, so the
``mulDiv`` overflow guards of the Solidity versions are unnecessary; the
rounding direction of every division is preserved.
"""

from __future__ import annotations

from math import isqrt

from .constants import MAX_TICK, MIN_TICK

Q96 = 2**96
Q192 = 2**192
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342
MAX_UINT256 = 2**256 - 1

_TICK_RATIO_FACTORS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


# ---------------------------------------------------------------------------
# Tick <-> sqrt price
# ---------------------------------------------------------------------------

def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Return sqrt(1.0001^tick) * 2^96, rounded up as on-chain."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")
    abs_tick = abs(tick)
    if abs_tick & 0x1:
        ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001
    else:
        ratio = 0x100000000000000000000000000000000
    for bit, factor in _TICK_RATIO_FACTORS:
        if abs_tick & bit:
            ratio = (ratio * factor) >> 128
    if tick > 0:
        ratio = MAX_UINT256 // ratio
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Greatest tick whose sqrt ratio is <= *sqrt_price_x96*."""
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise ValueError(f"sqrt_price_x96 {sqrt_price_x96} out of bounds")
    low, high = MIN_TICK, MAX_TICK
    while high - low > 1:
        mid = (low + high) // 2
        if get_sqrt_ratio_at_tick(mid) <= sqrt_price_x96:
            low = mid
        else:
            high = mid
    if get_sqrt_ratio_at_tick(high) <= sqrt_price_x96:
        return high
    return low


def nearest_usable_tick(tick: int, tick_spacing: int) -> int:
    """Round *tick* to the nearest multiple of *tick_spacing* (halves round up)."""
    if tick_spacing <= 0:
        raise ValueError("tick_spacing must be positive")
    rounded = (2 * tick + tick_spacing) // (2 * tick_spacing) * tick_spacing
    if rounded < MIN_TICK:
        return rounded + tick_spacing
    if rounded > MAX_TICK:
        return rounded - tick_spacing
    return rounded


def usable_tick_above(tick: int, tick_spacing: int) -> int:
    """Smallest usable tick strictly greater than *tick*."""
    return (tick // tick_spacing + 1) * tick_spacing


def usable_tick_at_or_below(tick: int, tick_spacing: int) -> int:
    return (tick // tick_spacing) * tick_spacing


# ---------------------------------------------------------------------------
# Amount deltas
# ---------------------------------------------------------------------------

def _div_round_up(a: int, b: int) -> int:
    return -(-a // b)


def get_amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """Token0 owed for *liquidity* between two sqrt prices."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    numerator1 = liquidity << 96
    numerator2 = sqrt_b - sqrt_a
    if round_up:
        return _div_round_up(_div_round_up(numerator1 * numerator2, sqrt_b), sqrt_a)
    return numerator1 * numerator2 // sqrt_b // sqrt_a


def get_amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """Token1 owed for *liquidity* between two sqrt prices."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if round_up:
        return _div_round_up(liquidity * (sqrt_b - sqrt_a), Q96)
    return liquidity * (sqrt_b - sqrt_a) // Q96


def amounts_for_liquidity(
    sqrt_price_x96: int,
    sqrt_a: int,
    sqrt_b: int,
    liquidity: int,
    round_up: bool = False,
) -> tuple[int, int]:
    """Return (amount0, amount1) represented by *liquidity* at the given price."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_price_x96 <= sqrt_a:
        return get_amount0_delta(sqrt_a, sqrt_b, liquidity, round_up), 0
    if sqrt_price_x96 < sqrt_b:
        return (
            get_amount0_delta(sqrt_price_x96, sqrt_b, liquidity, round_up),
            get_amount1_delta(sqrt_a, sqrt_price_x96, liquidity, round_up),
        )
    return 0, get_amount1_delta(sqrt_a, sqrt_b, liquidity, round_up)


# ---------------------------------------------------------------------------
# Liquidity from amounts (full precision)
# ---------------------------------------------------------------------------

def max_liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return amount0 * sqrt_a * sqrt_b // (Q96 * (sqrt_b - sqrt_a))


def max_liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return amount1 * Q96 // (sqrt_b - sqrt_a)


def max_liquidity_for_amounts(
    sqrt_price_x96: int,
    sqrt_a: int,
    sqrt_b: int,
    amount0: int,
    amount1: int,
) -> int:
    """Largest liquidity mintable from *amount0* and *amount1* in the range."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if sqrt_price_x96 <= sqrt_a:
        return max_liquidity_for_amount0(sqrt_a, sqrt_b, amount0)
    if sqrt_price_x96 < sqrt_b:
        return min(
            max_liquidity_for_amount0(sqrt_price_x96, sqrt_b, amount0),
            max_liquidity_for_amount1(sqrt_a, sqrt_price_x96, amount1),
        )
    return max_liquidity_for_amount1(sqrt_a, sqrt_b, amount1)


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------

def encode_sqrt_ratio_x96(amount1: int, amount0: int) -> int:
    """sqrt(amount1 / amount0) * 2^96, rounded down."""
    return isqrt((amount1 << 192) // amount0)


def scale_sqrt_price(sqrt_price_x96: int, numerator: int, denominator: int) -> int:
    """Sqrt price of the spot price multiplied by numerator/denominator."""
    scaled = isqrt(sqrt_price_x96 * sqrt_price_x96 * numerator // denominator)
    return max(MIN_SQRT_RATIO, min(MAX_SQRT_RATIO - 1, scaled))


def next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool,
) -> int:
    """Price after swapping *amount_in* within a single liquidity range."""
    if liquidity == 0 or amount_in == 0:
        return sqrt_price_x96
    if zero_for_one:
        numerator = (liquidity << 96) * sqrt_price_x96
        denominator = (liquidity << 96) + amount_in * sqrt_price_x96
        return max(MIN_SQRT_RATIO, _div_round_up(numerator, denominator))
    return min(MAX_SQRT_RATIO - 1, sqrt_price_x96 + (amount_in << 96) // liquidity)
