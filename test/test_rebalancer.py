# /test/test_rebalancer.py
import pytest

from tradebot.core.errors import InvalidRatios
from tradebot.core.state import LiquidityRatio, MoveDirection, VenueKind
from tradebot.strategies.rebalancer import LiquidityRebalancer, RebalancerStrategy

POOL = "SOL/USDC"


def ratios(raydium, jupiter, serum):
    return [LiquidityRatio(venue=VenueKind.RAYDIUM, pool=POOL, target_ratio=raydium),
            LiquidityRatio(venue=VenueKind.JUPITER, pool=POOL, target_ratio=jupiter),
            LiquidityRatio(venue=VenueKind.SERUM, pool=POOL, target_ratio=serum)]


class ExplodingBalances(dict):
    def items(self):
        raise AssertionError("balances must not be read")


def test_ratios_not_summing_to_100_fail_first():
    """
    GIVEN target ratios summing to 90
    WHEN moves are computed
    THEN InvalidRatios is raised before any balance is examined.
    """
    with pytest.raises(InvalidRatios):
        LiquidityRebalancer().compute_moves(ExplodingBalances(), ratios(30, 30, 30))


def test_moves_follow_target_order():
    current = {VenueKind.RAYDIUM: 700, VenueKind.JUPITER: 200, VenueKind.SERUM: 100}
    moves = LiquidityRebalancer().compute_moves(current, ratios(50, 30, 20))

    assert [(m.venue, m.direction, m.amount) for m in moves] == [
        (VenueKind.RAYDIUM, MoveDirection.REMOVE, 200),
        (VenueKind.JUPITER, MoveDirection.ADD, 100),
        (VenueKind.SERUM, MoveDirection.ADD, 100),
    ]


def test_balanced_distribution_needs_no_moves():
    current = {VenueKind.RAYDIUM: 500, VenueKind.JUPITER: 300, VenueKind.SERUM: 200}
    assert LiquidityRebalancer().compute_moves(current, ratios(50, 30, 20)) == []


def test_targets_truncate():
    # total 101: targets 33, 33, 34 after flooring
    current = {VenueKind.RAYDIUM: 101, VenueKind.JUPITER: 0, VenueKind.SERUM: 0}
    moves = LiquidityRebalancer().compute_moves(current, ratios(33, 33, 34))
    assert [m.amount for m in moves] == [68, 33, 34]


def test_apply_moves_calls_venues(venues):
    rebalancer = LiquidityRebalancer()
    current = {VenueKind.RAYDIUM: 700, VenueKind.JUPITER: 200, VenueKind.SERUM: 100}
    filled = rebalancer.apply_moves(rebalancer.compute_moves(current, ratios(50, 30, 20)), venues)

    assert [amount for _, amount in filled] == [200, 100, 100]
    assert venues.get(VenueKind.RAYDIUM).calls[0] == {"op": "remove_liquidity", "pool": POOL, "amount_a": 200}
    assert venues.get(VenueKind.JUPITER).calls[0]["op"] == "add_liquidity"


def test_strategy_reads_balances_from_context(make_ctx, venues):
    balances = {"raydium:SOL/USDC": 0, "jupiter:SOL/USDC": 600, "serum:SOL/USDC": 400}
    strategy = RebalancerStrategy(ratios(50, 30, 20))
    moves = strategy.run(make_ctx(balances=balances))

    assert [(m.venue, m.amount) for m in moves] == [
        (VenueKind.RAYDIUM, 500), (VenueKind.JUPITER, 300), (VenueKind.SERUM, 200)]
    assert len(venues.get(VenueKind.RAYDIUM).calls) == 1


def test_two_pools_on_one_venue_on_target_needs_no_moves(make_ctx, venues):
    """
    GIVEN targets raydium:A 50, raydium:B 20, jupiter:A 30
    AND balances already at 500 / 200 / 300
    WHEN the strategy runs
    THEN no move is planned and no venue is touched.
    """
    targets = [LiquidityRatio(venue=VenueKind.RAYDIUM, pool="A", target_ratio=50),
               LiquidityRatio(venue=VenueKind.RAYDIUM, pool="B", target_ratio=20),
               LiquidityRatio(venue=VenueKind.JUPITER, pool="A", target_ratio=30)]
    balances = {"raydium:A": 500, "raydium:B": 200, "jupiter:A": 300}

    assert RebalancerStrategy(targets).run(make_ctx(balances=balances)) == []
    assert venues.get(VenueKind.RAYDIUM).calls == []


def test_pool_level_balances_move_only_the_off_target_pool():
    targets = [LiquidityRatio(venue=VenueKind.RAYDIUM, pool="A", target_ratio=50),
               LiquidityRatio(venue=VenueKind.RAYDIUM, pool="B", target_ratio=20),
               LiquidityRatio(venue=VenueKind.JUPITER, pool="A", target_ratio=30)]
    current = {(VenueKind.RAYDIUM, "A"): 600, ("raydium", "B"): 100, (VenueKind.JUPITER, "A"): 300}
    moves = LiquidityRebalancer().compute_moves(current, targets)

    assert [(m.venue, m.pool, m.direction, m.amount) for m in moves] == [
        (VenueKind.RAYDIUM, "A", MoveDirection.REMOVE, 100),
        (VenueKind.RAYDIUM, "B", MoveDirection.ADD, 100),
    ]
