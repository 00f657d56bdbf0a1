# /tradebot/adapters/pool.py
# Paper venue: executes against in-memory constant-product reserves so a
# strategy can be dry-run end to end without touching a real exchange.
from typing import Dict, Tuple

from pydantic import BaseModel, Field

from tradebot.adapters.venue import Venue
from tradebot.core import amm
from tradebot.core.errors import InvalidConfiguration, Overflow
from tradebot.core.guards import check_min_out, validate_slippage
from tradebot.core.kill import check
from tradebot.core.logger import get_logger
from tradebot.core.state import SwapFill, VenueKind

log = get_logger(__name__)


class PoolReserves(BaseModel):
    token_a: str
    token_b: str
    reserve_a: int = Field(ge=0)
    reserve_b: int = Field(ge=0)
    fee_bps: int = Field(default=30, ge=0, le=10_000)
    lp_supply: int = Field(default=0, ge=0)

    def sides(self, token_in: str) -> Tuple[int, int]:
        """(reserve_in, reserve_out) for a swap selling ``token_in``."""
        if token_in == self.token_a:
            return self.reserve_a, self.reserve_b
        if token_in == self.token_b:
            return self.reserve_b, self.reserve_a
        raise InvalidConfiguration(f"token {token_in} is not in pool {self.token_a}/{self.token_b}",
                                   token=token_in)

    def quote(self, token_in: str, amount_in: int) -> int:
        reserve_in, reserve_out = self.sides(token_in)
        return amm.swap_output(amount_in, reserve_in, reserve_out, self.fee_bps)


class ConstantProductVenue(Venue):
    def __init__(self, kind: VenueKind, pools: Dict[str, PoolReserves]):
        self.kind = VenueKind(kind)
        self.pools = pools
        log.info("POOL_VENUE_INITIALIZED", venue=self.kind.value, pools=list(pools))

    def _pool(self, pool: str) -> PoolReserves:
        try:
            return self.pools[pool]
        except KeyError:
            raise InvalidConfiguration(f"unknown pool {pool} on {self.kind.value}", pool=pool)

    def quote(self, pool: str, token_in: str, amount_in: int) -> int:
        return self._pool(pool).quote(token_in, amount_in)

    def swap(self, pool: str, token_in: str, amount_in: int, minimum_out: int | None, slippage_bps: int) -> SwapFill:
        check()
        validate_slippage(slippage_bps)
        reserves = self._pool(pool)
        amount_out = reserves.quote(token_in, amount_in)
        if minimum_out is None:
            minimum_out = amm.apply_bps_haircut(amount_out, slippage_bps)
        check_min_out(amount_out, minimum_out)

        if token_in == reserves.token_a:
            reserves.reserve_a = amm.to_u64(reserves.reserve_a + amount_in)
            reserves.reserve_b -= amount_out
        else:
            reserves.reserve_b = amm.to_u64(reserves.reserve_b + amount_in)
            reserves.reserve_a -= amount_out

        log.info("POOL_SWAP_FILLED", venue=self.kind.value, pool=pool, token_in=token_in,
                 amount_in=amount_in, amount_out=amount_out)
        return SwapFill(amount_in=amount_in, amount_out=amount_out)

    def add_liquidity(self, pool: str, amount_a: int, amount_b: int | None = None) -> int:
        check()
        reserves = self._pool(pool)
        if reserves.lp_supply == 0 and (reserves.reserve_a or reserves.reserve_b):
            # Reserves with no share holders: a first deposit would claim them all.
            raise InvalidConfiguration(f"pool {pool} has reserves but no LP supply", pool=pool,
                                       reserve_a=reserves.reserve_a, reserve_b=reserves.reserve_b)
        if amount_b is None:
            amount_b = amm.checked_div(amm.checked_mul(amount_a, reserves.reserve_b), reserves.reserve_a)

        if reserves.lp_supply == 0:
            # First deposit sets the share unit.
            minted = amount_a
        else:
            minted = amm.lp_mint_amount(amount_a, amount_b, reserves.reserve_a,
                                        reserves.reserve_b, reserves.lp_supply)
        if minted == 0:
            raise Overflow("deposit too small to mint LP tokens", amount_a=amount_a, amount_b=amount_b)

        reserves.reserve_a = amm.to_u64(reserves.reserve_a + amount_a)
        reserves.reserve_b = amm.to_u64(reserves.reserve_b + amount_b)
        reserves.lp_supply = amm.to_u64(reserves.lp_supply + minted)
        log.info("POOL_LIQUIDITY_ADDED", venue=self.kind.value, pool=pool,
                 amount_a=amount_a, amount_b=amount_b, minted=minted)
        return minted

    def remove_liquidity(self, pool: str, amount_a: int) -> Tuple[int, int]:
        check()
        reserves = self._pool(pool)
        lp_amount = amm.checked_div(amm.checked_mul(amount_a, reserves.lp_supply), reserves.reserve_a)
        out_a, out_b = amm.lp_burn_amounts(lp_amount, reserves.reserve_a, reserves.reserve_b,
                                           reserves.lp_supply)
        reserves.reserve_a -= out_a
        reserves.reserve_b -= out_b
        reserves.lp_supply -= lp_amount
        log.info("POOL_LIQUIDITY_REMOVED", venue=self.kind.value, pool=pool,
                 burned=lp_amount, amount_a=out_a, amount_b=out_b)
        return out_a, out_b
