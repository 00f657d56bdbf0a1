# /tradebot/adapters/mock.py
# Test double for the Venue capability. Quotes are preset per (pool, token_in)
# so strategy tests control fills exactly.

from typing import Dict, List, Tuple

from tradebot.adapters.venue import Venue
from tradebot.core import amm
from tradebot.core.errors import InvalidConfiguration, KillSwitchActiveError
from tradebot.core.guards import check_min_out
from tradebot.core.kill import check
from tradebot.core.logger import get_logger
from tradebot.core.state import SwapFill, VenueKind

log = get_logger(__name__)


class MockVenue(Venue):
    """
    A mock implementation of Venue for testing strategies.
    Every executed call is appended to ``calls``.
    """
    def __init__(self, kind: VenueKind = VenueKind.RAYDIUM):
        self.kind = VenueKind(kind)
        # "POOL:TOKEN_IN" -> output per unit of input, as (numerator, denominator)
        self.rates: Dict[str, Tuple[int, int]] = {}
        # Optional shortfall applied at execution, simulating the market moving.
        self.fill_haircut_bps = 0
        self.calls: List[dict] = []
        self._must_fail = False
        log.info("MOCK_VENUE_INITIALIZED", venue=self.kind.value)

    def set_rate(self, pool: str, token_in: str, numerator: int, denominator: int = 1):
        """Quote ``amount_in * numerator // denominator`` for swaps selling ``token_in``."""
        self.rates[f"{pool}:{token_in}"] = (numerator, denominator)
        log.info("MOCK_VENUE_RATE_SET", pool=pool, token_in=token_in, rate=f"{numerator}/{denominator}")

    def set_next_call_to_fail(self, fail: bool = True):
        """Configure the mock to raise an exception on the next call."""
        self._must_fail = fail

    def _guard(self):
        try:
            check()
        except KillSwitchActiveError:
            log.warning("MOCK_VENUE_BLOCKED_BY_KILL_SWITCH", venue=self.kind.value)
            raise
        if self._must_fail:
            self._must_fail = False
            log.error("MOCK_VENUE_FORCED_FAILURE", venue=self.kind.value)
            raise RuntimeError("Forced failure for testing.")

    def quote(self, pool: str, token_in: str, amount_in: int) -> int:
        key = f"{pool}:{token_in}"
        if key not in self.rates:
            raise InvalidConfiguration(f"No mock rate set for {key}")
        numerator, denominator = self.rates[key]
        return amount_in * numerator // denominator

    def swap(self, pool: str, token_in: str, amount_in: int, minimum_out: int | None, slippage_bps: int) -> SwapFill:
        self._guard()
        quoted = self.quote(pool, token_in, amount_in)
        amount_out = quoted * (10_000 - self.fill_haircut_bps) // 10_000
        if minimum_out is None:
            minimum_out = amm.apply_bps_haircut(quoted, slippage_bps)
        check_min_out(amount_out, minimum_out)
        self.calls.append({"op": "swap", "pool": pool, "token_in": token_in, "amount_in": amount_in,
                           "minimum_out": minimum_out, "slippage_bps": slippage_bps,
                           "amount_out": amount_out})
        return SwapFill(amount_in=amount_in, amount_out=amount_out)

    def add_liquidity(self, pool: str, amount_a: int, amount_b: int | None = None) -> int:
        self._guard()
        self.calls.append({"op": "add_liquidity", "pool": pool, "amount_a": amount_a, "amount_b": amount_b})
        return amount_a

    def remove_liquidity(self, pool: str, amount_a: int) -> Tuple[int, int]:
        self._guard()
        self.calls.append({"op": "remove_liquidity", "pool": pool, "amount_a": amount_a})
        return amount_a, 0
