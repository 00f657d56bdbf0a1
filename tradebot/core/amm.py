# /tradebot/core/amm.py
"""
Constant-product pool arithmetic.

All math uses integers only, no floats anywhere. Operands are unsigned
64-bit amounts, intermediate products are allowed to grow to 128 bits, and
every step is checked: a result outside its range, a subtraction that would
go negative or a division by zero raises ``Overflow`` instead of wrapping.

Division always truncates, so a quote can under-credit the caller but never
over-credit.
"""

from tradebot.core.errors import Overflow

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
I128_MIN = -(2**127)
I128_MAX = 2**127 - 1

BPS_DENOMINATOR = 10_000


def _require_u64(name: str, value: int) -> int:
    if not isinstance(value, int) or value < 0 or value > U64_MAX:
        raise Overflow(f"{name} is not a u64 value", operand=name, value=value)
    return value


def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a * b
    if result > limit:
        raise Overflow("multiplication overflow", a=a, b=b)
    return result


def checked_add(a: int, b: int, limit: int = U128_MAX) -> int:
    result = a + b
    if result > limit:
        raise Overflow("addition overflow", a=a, b=b)
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise Overflow("subtraction underflow", a=a, b=b)
    return a - b


def checked_div(a: int, b: int) -> int:
    if b == 0:
        raise Overflow("division by zero", numerator=a)
    return a // b


def to_u64(value: int) -> int:
    if value > U64_MAX:
        raise Overflow("result does not fit in u64", value=value)
    return value


def apply_bps_haircut(amount: int, bps: int) -> int:
    """floor(amount * (10000 - bps) / 10000); used for fees and minimum-out."""
    _require_u64("amount", amount)
    if bps < 0 or bps > BPS_DENOMINATOR:
        raise Overflow("basis points outside [0, 10000]", bps=bps)
    return to_u64(checked_div(checked_mul(amount, BPS_DENOMINATOR - bps), BPS_DENOMINATOR))


def swap_output(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int = 0) -> int:
    """
    Output of a constant-product swap.

    amount_in_net = amount_in * (10000 - fee_bps) // 10000
    amount_out    = amount_in_net * reserve_out // (reserve_in + amount_in_net)
    """
    _require_u64("amount_in", amount_in)
    _require_u64("reserve_in", reserve_in)
    _require_u64("reserve_out", reserve_out)
    amount_in_net = apply_bps_haircut(amount_in, fee_bps)
    numerator = checked_mul(amount_in_net, reserve_out)
    denominator = checked_add(reserve_in, amount_in_net)
    return to_u64(checked_div(numerator, denominator))


def swap_input(amount_out: int, reserve_in: int, reserve_out: int, fee_bps: int = 0) -> int:
    """
    Input required to receive ``amount_out`` (inverse of swap_output).
    Rounded up by one unit so the returned input always suffices.
    """
    _require_u64("amount_out", amount_out)
    _require_u64("reserve_in", reserve_in)
    _require_u64("reserve_out", reserve_out)
    if amount_out >= reserve_out:
        raise Overflow("amount_out drains the pool", amount_out=amount_out, reserve_out=reserve_out)
    numerator = checked_mul(checked_mul(reserve_in, amount_out), BPS_DENOMINATOR)
    denominator = checked_mul(checked_sub(reserve_out, amount_out), BPS_DENOMINATOR - fee_bps)
    return to_u64(checked_add(checked_div(numerator, denominator), 1))


def price_impact_bps(amount_in: int, amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """
    Shortfall of ``amount_out`` against the no-slippage quote, in bps.

    expected_out = amount_in * reserve_out // reserve_in
    impact       = (expected_out - amount_out) * 10000 // expected_out
    """
    _require_u64("amount_in", amount_in)
    _require_u64("amount_out", amount_out)
    expected_out = to_u64(checked_div(checked_mul(amount_in, reserve_out), reserve_in))
    shortfall = checked_sub(expected_out, amount_out)
    return checked_div(checked_mul(shortfall, BPS_DENOMINATOR), expected_out)


def lp_mint_amount(amount_a: int, amount_b: int, reserve_a: int, reserve_b: int, lp_supply: int) -> int:
    """LP tokens minted for a deposit; the scarcer side caps an asymmetric deposit."""
    _require_u64("lp_supply", lp_supply)
    share_a = checked_div(checked_mul(_require_u64("amount_a", amount_a), lp_supply), reserve_a)
    share_b = checked_div(checked_mul(_require_u64("amount_b", amount_b), lp_supply), reserve_b)
    return to_u64(min(share_a, share_b))


def lp_burn_amounts(lp_amount: int, reserve_a: int, reserve_b: int, lp_supply: int) -> tuple[int, int]:
    """Reserves returned for burning ``lp_amount`` pool tokens."""
    _require_u64("lp_amount", lp_amount)
    if lp_amount > lp_supply:
        raise Overflow("burn exceeds LP supply", lp_amount=lp_amount, lp_supply=lp_supply)
    out_a = checked_div(checked_mul(lp_amount, reserve_a), lp_supply)
    out_b = checked_div(checked_mul(lp_amount, reserve_b), lp_supply)
    return to_u64(out_a), to_u64(out_b)


def profit_bps(price_low: int, price_high: int) -> int:
    """(price_high - price_low) * 10000 // price_low."""
    spread = checked_sub(price_high, price_low)
    return checked_div(checked_mul(spread, BPS_DENOMINATOR), price_low)
