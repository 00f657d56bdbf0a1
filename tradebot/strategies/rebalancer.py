# /tradebot/strategies/rebalancer.py
# Moves pool liquidity between venues toward a target percentage split.
from typing import List, Mapping, Sequence, Tuple, Union

from tradebot.adapters.venue import VenueRegistry
from tradebot.core.errors import InvalidRatios
from tradebot.core.kill import check
from tradebot.core.logger import get_logger
from tradebot.core.state import LiquidityMove, LiquidityRatio, MoveDirection, VenueKind
from tradebot.strategies.base import AbstractStrategy, ExecutionContext

log = get_logger(__name__)


class LiquidityRebalancer:
    """Diff current liquidity against target ratios; execution is a separate step."""

    def compute_moves(self, current: Mapping[Union[VenueKind, Tuple[VenueKind, str]], int],
                      target_ratios: Sequence[LiquidityRatio]) -> List[LiquidityMove]:
        """
        ``current`` is keyed by venue, or by ``(venue, pool)`` when one venue
        holds several target pools. A pool-level entry wins over a venue-level one.
        """
        total_ratio = sum(r.target_ratio for r in target_ratios)
        if total_ratio != 100:
            raise InvalidRatios(f"target ratios sum to {total_ratio}, expected 100", total=total_ratio)

        held_by = {}
        for key, amount in current.items():
            key = (VenueKind(key[0]), key[1]) if isinstance(key, tuple) else VenueKind(key)
            held_by[key] = held_by.get(key, 0) + amount
        total = sum(held_by.values())
        moves = []
        for ratio in target_ratios:
            target = total * ratio.target_ratio // 100
            held = held_by.get((ratio.venue, ratio.pool), held_by.get(ratio.venue, 0))
            if held < target:
                moves.append(LiquidityMove(venue=ratio.venue, pool=ratio.pool,
                                           amount=target - held, direction=MoveDirection.ADD))
            elif held > target:
                moves.append(LiquidityMove(venue=ratio.venue, pool=ratio.pool,
                                           amount=held - target, direction=MoveDirection.REMOVE))

        log.info("REBALANCE_PLANNED", total=total, moves=len(moves))
        return moves

    def apply_moves(self, moves: Sequence[LiquidityMove], venues: VenueRegistry) -> List[Tuple[LiquidityMove, int]]:
        """Execute each move in order. Returns (move, filled amount) pairs."""
        filled = []
        for move in moves:
            check()
            venue = venues.get(move.venue)
            if move.direction is MoveDirection.ADD:
                venue.add_liquidity(move.pool, move.amount)
                amount = move.amount
            else:
                amount, _ = venue.remove_liquidity(move.pool, move.amount)
            log.info("REBALANCE_MOVE_APPLIED", venue=move.venue.value, pool=move.pool,
                     direction=move.direction.value, requested=move.amount, filled=amount)
            filled.append((move, amount))
        return filled


class RebalancerStrategy(AbstractStrategy):
    """A meta-strategy to rebalance liquidity between venues."""

    def __init__(self, targets: Sequence[LiquidityRatio], execute: bool = True):
        self.targets = list(targets)
        self.execute = execute
        self.rebalancer = LiquidityRebalancer()
        self.strategy_name = "Rebalancer"

    def run(self, ctx: ExecutionContext) -> List[LiquidityMove]:
        check()
        # Liquidity held per pool comes from the caller's balance snapshot.
        current = {(r.venue, r.pool): ctx.balances.get(f"{r.venue.value}:{r.pool}", 0) for r in self.targets}
        moves = self.rebalancer.compute_moves(current, self.targets)
        if self.execute and moves:
            self.rebalancer.apply_moves(moves, ctx.venues)
        return moves
