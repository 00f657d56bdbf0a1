# /test/test_amm.py
# Constant-product arithmetic: exact integer results and checked overflow.
import pytest

from tradebot.core import amm
from tradebot.core.errors import Overflow


def test_swap_output_without_fee():
    """
    GIVEN a 1000/1000 pool
    WHEN 100 units are swapped in with no fee
    THEN the output truncates to 90.
    """
    assert amm.swap_output(100, 1000, 1000) == 90


def test_swap_output_with_fee():
    # net input floor(100 * 9970 / 10000) = 99, then floor(99 * 1000 / 1099) = 90
    assert amm.apply_bps_haircut(100, 30) == 99
    assert amm.swap_output(100, 1000, 1000, fee_bps=30) == 90


def test_zero_input_yields_zero_output():
    assert amm.swap_output(0, 1000, 1000) == 0
    assert amm.swap_output(0, 5_000_000, 7, fee_bps=30) == 0


def test_swap_output_is_monotonic_in_input():
    outputs = [amm.swap_output(amount, 1_000_000, 2_000_000, fee_bps=30) for amount in range(0, 50_000, 997)]
    assert outputs == sorted(outputs)


@pytest.mark.parametrize("amount_in,reserve_in,reserve_out,fee", [
    (100, 1000, 1000, 0),
    (1, 3, 7, 30),
    (123_456, 9_999_999, 77_777_777, 30),
    (10**12, 10**15, 10**9, 100),
])
def test_constant_product_invariant_holds(amount_in, reserve_in, reserve_out, fee):
    out = amm.swap_output(amount_in, reserve_in, reserve_out, fee)
    assert (reserve_in + amount_in) * (reserve_out - out) >= reserve_in * reserve_out


def test_swap_input_covers_requested_output():
    needed = amm.swap_input(90, 1000, 1000, fee_bps=30)
    assert amm.swap_output(needed, 1000, 1000, fee_bps=30) >= 90


def test_swap_input_cannot_drain_pool():
    with pytest.raises(Overflow):
        amm.swap_input(1000, 1000, 1000)


def test_empty_pool_raises_overflow():
    with pytest.raises(Overflow):
        amm.swap_output(0, 0, 0)


def test_operands_beyond_u64_raise_overflow():
    with pytest.raises(Overflow):
        amm.swap_output(amm.U64_MAX + 1, 1000, 1000)
    with pytest.raises(Overflow):
        amm.swap_output(-1, 1000, 1000)


def test_checked_helpers():
    with pytest.raises(Overflow):
        amm.checked_mul(amm.U128_MAX, 2)
    with pytest.raises(Overflow):
        amm.checked_sub(1, 2)
    with pytest.raises(Overflow):
        amm.checked_div(1, 0)
    with pytest.raises(Overflow):
        amm.to_u64(amm.U64_MAX + 1)
    assert amm.checked_div(7, 2) == 3


def test_price_impact_and_profit_bps():
    out = amm.swap_output(100, 1000, 1000)
    # expected 100, received 90 -> 10% shortfall
    assert amm.price_impact_bps(100, out, 1000, 1000) == 1000
    assert amm.profit_bps(100_000_000, 101_000_000) == 100


def test_lp_mint_and_burn_are_proportional():
    minted = amm.lp_mint_amount(100, 200, 1000, 2000, 1000)
    assert minted == 100
    assert amm.lp_burn_amounts(100, 1100, 2200, 1100) == (100, 200)
    with pytest.raises(Overflow):
        amm.lp_burn_amounts(2000, 1000, 1000, 1000)
