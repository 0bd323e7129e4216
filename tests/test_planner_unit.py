"""Unit tests for destination position sizing.

The invariants checked here hold for any pool and range: a plan never
spends more than its budgets, more budget never yields less liquidity,
and the guaranteed-output plan never exceeds the quoted-output plan.
"""

import asyncio
from fractions import Fraction

import pytest

from lpmigrate.errors import ErrorKind, MigrationError
from lpmigrate.liquidity_math import Q96, get_sqrt_ratio_at_tick
from lpmigrate.planner import (
    burn_amounts_with_slippage,
    from_amounts,
    optimal_ratio,
    plan_dual_budget,
    plan_max_position,
    plan_max_position_with_swap,
    price_impact_bps,
    ratio_amount_in,
    snap_ticks,
)

from fakes import DEST_USDC, DEST_WETH, FakeSwapQuoter, make_pool


POOL = make_pool(8453, DEST_WETH, DEST_USDC)


# ---------------------------------------------------------------------------
# Ticks
# ---------------------------------------------------------------------------

class TestSnapTicks:
    def test_snaps_to_spacing(self):
        assert snap_ticks(POOL, -203, 198) == (-200, 200)

    def test_collapsed_range_rejected(self):
        with pytest.raises(MigrationError) as excinfo:
            snap_ticks(POOL, 1, 4)
        assert excinfo.value.kind == ErrorKind.INVALID_TICK_RANGE


# ---------------------------------------------------------------------------
# Single-shot planner
# ---------------------------------------------------------------------------

BUDGETS = [
    (10**18, 10**18),
    (10**18, 3 * 10**17),
    (7, 10**18),
    (12345678901234567, 98765432109876543),
    (10**24, 10**6),
]


class TestPlanMaxPosition:
    @pytest.mark.parametrize("budgets", BUDGETS)
    @pytest.mark.parametrize("ticks", [(-200, 200), (-6000, 100), (500, 900), (-900, -500)])
    def test_never_exceeds_budgets(self, budgets, ticks):
        position = plan_max_position(POOL, *budgets, *ticks)
        assert position.amount0 <= budgets[0]
        assert position.amount1 <= budgets[1]
        assert position.liquidity >= 0

    @pytest.mark.parametrize("ticks", [(-200, 200), (-6000, 100), (500, 900)])
    def test_monotonic_in_each_budget(self, ticks):
        base = plan_max_position(POOL, 10**18, 10**18, *ticks).liquidity
        more0 = plan_max_position(POOL, 2 * 10**18, 10**18, *ticks).liquidity
        more1 = plan_max_position(POOL, 10**18, 2 * 10**18, *ticks).liquidity
        assert more0 >= base
        assert more1 >= base

    def test_both_budgets_empty_gives_zero_liquidity(self):
        position = plan_max_position(POOL, 0, 0, -200, 200)
        assert position.liquidity == 0
        assert (position.amount0, position.amount1) == (0, 0)

    def test_single_sided_token0_moves_lower_tick_above_price(self):
        pool = make_pool(8453, DEST_WETH, DEST_USDC, tick=55)
        position = plan_max_position(pool, 10**18, 0, -200, 200)
        assert position.tick_lower == 60
        assert position.tick_upper == 200
        assert position.liquidity > 0
        assert position.amount1 == 0

    def test_single_sided_token1_moves_upper_tick_below_price(self):
        pool = make_pool(8453, DEST_WETH, DEST_USDC, tick=55)
        position = plan_max_position(pool, 0, 10**18, -200, 200)
        assert position.tick_lower == -200
        assert position.tick_upper == 50
        assert position.amount0 == 0

    def test_out_of_range_uses_only_the_needed_token(self):
        position = plan_max_position(POOL, 10**18, 10**18, 500, 900)
        assert position.amount1 == 0
        assert 0 < position.amount0 <= 10**18

    def test_value_budget_scales_down(self):
        full = plan_max_position(POOL, 10**18, 10**18, -200, 200)
        capped = plan_max_position(POOL, 10**18, 10**18, -200, 200, value_budget=10**18)
        assert capped.liquidity < full.liquidity
        assert capped.amount0 + capped.amount1 <= 10**18 + 2

    def test_value_budget_above_value_is_noop(self):
        full = plan_max_position(POOL, 10**18, 10**18, -200, 200)
        same = plan_max_position(POOL, 10**18, 10**18, -200, 200, value_budget=10**19)
        assert same == full

    def test_dual_budget_records_refunds(self):
        position = plan_dual_budget(POOL, 10**18, 3 * 10**17, -200, 200)
        assert position.amount0 + position.amount0_refund == 10**18
        assert position.amount1 + position.amount1_refund == 3 * 10**17
        # token1 binds, so token0 is left over.
        assert position.amount0_refund > position.amount1_refund


# ---------------------------------------------------------------------------
# Swap-enabled planner
# ---------------------------------------------------------------------------

class TestOptimalRatio:
    def test_symmetric_range_at_center_is_one(self):
        sqrt_a, sqrt_b = get_sqrt_ratio_at_tick(-200), get_sqrt_ratio_at_tick(200)
        ratio = optimal_ratio(Q96, sqrt_a, sqrt_b, True)
        assert float(ratio) == pytest.approx(1.0, rel=1e-9)

    def test_out_of_range_is_zero(self):
        sqrt_a, sqrt_b = get_sqrt_ratio_at_tick(100), get_sqrt_ratio_at_tick(200)
        assert optimal_ratio(Q96, sqrt_a, sqrt_b, True) == 0

    def test_amount_in_halves_balance_at_unit_ratio_and_price(self):
        assert ratio_amount_in(Fraction(1), Fraction(1), 10**18, 0) == 5 * 10**17

    def test_amount_in_never_negative(self):
        assert ratio_amount_in(Fraction(1), Fraction(1), 0, 10**18) == 0


class TestPlanWithSwap:
    def _plan(self, pool, budget0, budget1, ticks=(-200, 200), iterations=5):
        quoter = FakeSwapQuoter()
        plan = asyncio.run(
            plan_max_position_with_swap(pool, budget0, budget1, *ticks, quoter, iterations)
        )
        return plan, quoter

    def test_one_sided_budget_swaps_about_half(self):
        plan, quoter = self._plan(POOL, 10**18, 0)
        assert plan.zero_for_one is True
        assert 0.45 * 10**18 < plan.swap_amount < 0.55 * 10**18
        assert len(quoter.calls) == plan.iterations == 5
        assert plan.position.amount0 > 0
        assert plan.position.amount1 > 0

    def test_token1_budget_swaps_one_for_zero(self):
        plan, _ = self._plan(POOL, 0, 10**18)
        assert plan.zero_for_one is False
        assert plan.position.amount0 > 0

    def test_post_swap_balances_cover_position(self):
        plan, _ = self._plan(POOL, 10**18, 0)
        position = plan.position
        assert position.amount0 + plan.swap_amount <= 10**18
        assert position.amount1 <= plan.amount_out
        assert position.amount0_refund >= 0
        assert position.amount1_refund >= 0

    def test_monotonic_in_budget(self):
        small, _ = self._plan(POOL, 10**18, 0)
        large, _ = self._plan(POOL, 2 * 10**18, 0)
        assert large.position.liquidity >= small.position.liquidity

    def test_balanced_budget_swaps_only_dust(self):
        # At the center of a symmetric range the balances already match.
        plan, _ = self._plan(POOL, 10**18, 10**18)
        assert plan.swap_amount < 10**6
        assert plan.position.liquidity > 0

    def test_empty_budget(self):
        plan, quoter = self._plan(POOL, 0, 0)
        assert plan.position.liquidity == 0
        assert quoter.calls == []

    def test_range_above_price_swaps_everything_into_token0(self):
        plan, _ = self._plan(POOL, 0, 10**18, ticks=(500, 900))
        assert plan.zero_for_one is False
        assert plan.swap_amount == 10**18
        assert plan.position.amount1 == 0

    def test_quoter_errors_propagate(self):
        quoter = FakeSwapQuoter(error=RuntimeError("quoter reverted"))
        with pytest.raises(RuntimeError, match="quoter reverted"):
            asyncio.run(plan_max_position_with_swap(POOL, 10**18, 0, -200, 200, quoter))


# ---------------------------------------------------------------------------
# Slippage floors and price impact
# ---------------------------------------------------------------------------

class TestSlippage:
    def test_worst_case_never_exceeds_best_case(self):
        best = plan_max_position(POOL, 10**18, 10**18, -200, 200)
        worst = plan_max_position(POOL, 99 * 10**16, 99 * 10**16, -200, 200)
        assert worst.liquidity <= best.liquidity

    def test_burn_amounts_are_below_position_amounts(self):
        position = from_amounts(POOL, -200, 200, 10**18, 10**18)
        amount0, amount1 = burn_amounts_with_slippage(position, 100)
        assert 0 < amount0 < position.amount0
        assert 0 < amount1 < position.amount1

    def test_burn_amounts_shrink_as_slippage_grows(self):
        position = from_amounts(POOL, -200, 200, 10**18, 10**18)
        tight = burn_amounts_with_slippage(position, 10)
        loose = burn_amounts_with_slippage(position, 100)
        assert loose[0] < tight[0]
        assert loose[1] < tight[1]

    def test_burn_amounts_of_empty_position(self):
        position = plan_max_position(POOL, 0, 0, -200, 200)
        assert burn_amounts_with_slippage(position, 100) == (0, 0)

    def test_price_impact(self):
        assert price_impact_bps(Q96, Q96) == 0
        after = get_sqrt_ratio_at_tick(100)  # ~1.01x the price
        assert price_impact_bps(Q96, after) == 100
        assert price_impact_bps(after, Q96) == 99
