# /tradebot/core/guards.py
# Pre-trade parameter guards shared by route execution and strategy actions.
import time

from tradebot.core.amm import BPS_DENOMINATOR
from tradebot.core.config import settings
from tradebot.core.errors import (
    DeadlineExceeded,
    InvalidConfiguration,
    InvalidTickRange,
    SlippageExceeded,
)

MIN_TICK = -443636
MAX_TICK = 443636


def validate_bps(name: str, value: int) -> int:
    if not isinstance(value, int) or value < 0 or value > BPS_DENOMINATOR:
        raise InvalidConfiguration(f"{name} must be an integer in [0, 10000]", field=name, value=value)
    return value


def validate_slippage(slippage_bps: int) -> int:
    validate_bps("slippage_bps", slippage_bps)
    if slippage_bps > settings.MAX_SLIPPAGE_BPS:
        raise SlippageExceeded(f"slippage {slippage_bps} bps above cap {settings.MAX_SLIPPAGE_BPS} bps",
                               slippage_bps=slippage_bps, cap=settings.MAX_SLIPPAGE_BPS)
    return slippage_bps


def validate_deadline(deadline: int, now: int | None = None) -> int:
    now = int(time.time()) if now is None else now
    if now > deadline:
        raise DeadlineExceeded(f"deadline passed {now - deadline}s ago", deadline=deadline, now=now)
    if deadline > now + settings.MAX_DEADLINE_SECONDS:
        raise InvalidConfiguration("deadline too far in the future", deadline=deadline, now=now)
    return deadline


def validate_tick_range(lower: int, upper: int, tick_spacing: int | None = None) -> tuple[int, int]:
    spacing = settings.TICK_SPACING if tick_spacing is None else tick_spacing
    if not (MIN_TICK <= lower < upper <= MAX_TICK):
        raise InvalidTickRange(f"tick range [{lower}, {upper}] out of bounds", lower=lower, upper=upper)
    if lower % spacing != 0 or upper % spacing != 0:
        raise InvalidTickRange(f"ticks must be multiples of {spacing}", lower=lower, upper=upper)
    return lower, upper


def check_min_out(amount_out: int, minimum_out: int) -> int:
    if amount_out < minimum_out:
        raise SlippageExceeded(f"filled {amount_out}, required at least {minimum_out}",
                               amount_out=amount_out, minimum_out=minimum_out)
    return amount_out
