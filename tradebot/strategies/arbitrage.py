# /tradebot/strategies/arbitrage.py
# Cross-venue arbitrage: score ordered venue pairs from validated quotes and
# execute the best route as a buy on the entry venue and a sell on the exit.
import time
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from tradebot.core import amm
from tradebot.core.config import settings
from tradebot.core.errors import (
    DeadlineExceeded,
    EconomicGuardError,
    EngineError,
    InsufficientProfit,
    MarketDataError,
)
from tradebot.core.guards import validate_slippage
from tradebot.core.kill import check
from tradebot.core.logger import get_logger, ROUTES_FOUND, TRADES_EXECUTED
from tradebot.core.pricing import PriceValidator
from tradebot.core.risk import RiskGate
from tradebot.core.state import SwapFill, TokenPair, TradeResult, ValidatedPrice, VenueKind
from tradebot.strategies.base import AbstractStrategy, ExecutionContext

log = get_logger(__name__)


class RouteKind(str, Enum):
    """Ordered venue pair: buy on the first venue, sell on the second."""
    RAYDIUM_JUPITER = "raydium_jupiter"
    JUPITER_SERUM = "jupiter_serum"
    SERUM_RAYDIUM = "serum_raydium"
    JUPITER_RAYDIUM = "jupiter_raydium"
    SERUM_JUPITER = "serum_jupiter"
    RAYDIUM_SERUM = "raydium_serum"

    @property
    def entry_venue(self) -> VenueKind:
        return VenueKind(self.value.split("_")[0])

    @property
    def exit_venue(self) -> VenueKind:
        return VenueKind(self.value.split("_")[1])


# The minimal cycle; not every ordered pair.
DEFAULT_CYCLE = (RouteKind.RAYDIUM_JUPITER, RouteKind.JUPITER_SERUM, RouteKind.SERUM_RAYDIUM)


def full_mesh() -> tuple:
    """Every ordered venue pair, for callers that deliberately widen the search."""
    return tuple(RouteKind)


class ArbitrageRoute(BaseModel):
    model_config = ConfigDict(frozen=True)

    route_kind: RouteKind
    token_pair: TokenPair
    entry_venue: VenueKind
    exit_venue: VenueKind
    expected_profit_bps: int
    min_profit_bps: int
    max_slippage_bps: int
    deadline: int


class ArbitrageOutcome(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    routes: List[ArbitrageRoute] = []
    executed: Optional[TradeResult] = None
    error: Optional[EngineError] = None
    # Entry leg filled but the exit leg failed; the base amount is still held.
    partial: Optional[SwapFill] = None


def _price_of(quote) -> int:
    return quote.price if isinstance(quote, ValidatedPrice) else int(quote)


def filter_profitable(routes: Sequence[ArbitrageRoute], min_profit_bps: int) -> List[ArbitrageRoute]:
    """Keep routes meeting ``min_profit_bps``. Applying it twice changes nothing."""
    return [route for route in routes if route.expected_profit_bps >= min_profit_bps]


class ArbitrageFinder:
    """Read-only route discovery; no venue is touched."""

    def __init__(self, route_kinds: Sequence[RouteKind] = DEFAULT_CYCLE,
                 max_slippage_bps: int | None = None, deadline_seconds: int | None = None):
        self.route_kinds = tuple(route_kinds)
        self.max_slippage_bps = settings.ROUTE_MAX_SLIPPAGE_BPS if max_slippage_bps is None else max_slippage_bps
        self.deadline_seconds = settings.ROUTE_DEADLINE_SECONDS if deadline_seconds is None else deadline_seconds

    def find_routes(self, quotes_by_venue: Mapping[VenueKind, ValidatedPrice], min_profit_bps: int,
                    pair: TokenPair, now: int | None = None) -> List[ArbitrageRoute]:
        now = int(time.time()) if now is None else now
        routes = []
        for kind in self.route_kinds:
            entry, exit_ = kind.entry_venue, kind.exit_venue
            if entry not in quotes_by_venue or exit_ not in quotes_by_venue:
                log.debug("ROUTE_SKIPPED_NO_QUOTE", route_kind=kind.value)
                continue

            price_a = _price_of(quotes_by_venue[entry])
            price_b = _price_of(quotes_by_venue[exit_])
            if price_b <= price_a:
                continue

            expected = amm.profit_bps(price_a, price_b)
            if expected >= min_profit_bps:
                routes.append(ArbitrageRoute(
                    route_kind=kind,
                    token_pair=pair,
                    entry_venue=entry,
                    exit_venue=exit_,
                    expected_profit_bps=expected,
                    min_profit_bps=min_profit_bps,
                    max_slippage_bps=self.max_slippage_bps,
                    deadline=now + self.deadline_seconds,
                ))
                ROUTES_FOUND.labels(kind.value).inc()
                log.info("ARB_ROUTE_FOUND", route_kind=kind.value, pair=pair.symbol,
                         price_a=price_a, price_b=price_b, expected_profit_bps=expected)
        return routes


def execute_route(route: ArbitrageRoute, amount_in: int, ctx: ExecutionContext,
                  risk_gate: RiskGate | None = None) -> Optional[TradeResult]:
    """
    Buy ``pair.base`` with ``amount_in`` of ``pair.quote`` on the entry venue,
    sell it back on the exit venue. Returns None when the risk gate refuses.
    """
    check()
    # Time has passed since discovery: re-check both route invariants.
    if ctx.now > route.deadline:
        raise DeadlineExceeded(f"route {route.route_kind.value} expired", deadline=route.deadline, now=ctx.now)
    if route.expected_profit_bps < route.min_profit_bps:
        raise InsufficientProfit(f"route {route.route_kind.value} below minimum profit",
                                 expected_profit_bps=route.expected_profit_bps,
                                 min_profit_bps=route.min_profit_bps)
    slippage = validate_slippage(route.max_slippage_bps)

    risk_gate = risk_gate or RiskGate()
    if not risk_gate.allow(ctx.risk, ctx.metrics, amount_in):
        return None

    pair = route.token_pair
    pool = pair.symbol
    entry = ctx.venues.get(route.entry_venue)
    exit_ = ctx.venues.get(route.exit_venue)

    expected_base = entry.quote(pool, pair.quote, amount_in)
    bought = entry.swap(pool, pair.quote, amount_in, amm.apply_bps_haircut(expected_base, slippage), slippage)

    try:
        expected_quote = exit_.quote(pool, pair.base, bought.amount_out)
        sold = exit_.swap(pool, pair.base, bought.amount_out,
                          amm.apply_bps_haircut(expected_quote, slippage), slippage)
    except EngineError as e:
        # The entry leg already filled: the caller now holds base it did not plan to keep.
        e.context["entry_fill"] = bought
        log.error("ARB_OPEN_POSITION", route_kind=route.route_kind.value, venue=route.entry_venue.value,
                  pool=pool, token=pair.base, amount=bought.amount_out, quote_spent=amount_in,
                  code=e.code, error=str(e))
        raise

    result = TradeResult(
        source=route.route_kind.value,
        venue=route.exit_venue,
        pool=pool,
        token_in=pair.quote,
        amount_in=amount_in,
        amount_out=sold.amount_out,
        profit_loss=sold.amount_out - amount_in,
        executed_at=ctx.now,
    )
    TRADES_EXECUTED.labels("arbitrage").inc()
    log.info("ARB_ROUTE_EXECUTED", route_kind=route.route_kind.value, amount_in=amount_in,
             base_bought=bought.amount_out, amount_out=sold.amount_out, profit_loss=result.profit_loss)
    return result


class ArbitrageStrategy(AbstractStrategy):
    """
    Polls one oracle feed per venue, validates every quote, finds routes and
    optionally executes the most profitable one.
    """

    def __init__(self, pair: TokenPair, feeds: Dict[VenueKind, str], trade_amount: int,
                 min_profit_bps: int, route_kinds: Sequence[RouteKind] = DEFAULT_CYCLE,
                 execute: bool = True, max_staleness: int | None = None,
                 max_confidence: int | None = None):
        self.pair = pair
        self.feeds = {VenueKind(k): v for k, v in feeds.items()}
        self.trade_amount = trade_amount
        self.min_profit_bps = min_profit_bps
        self.execute = execute
        self.max_staleness = max_staleness
        self.max_confidence = max_confidence
        self.finder = ArbitrageFinder(route_kinds)
        self.validator = PriceValidator()
        self.risk_gate = RiskGate()
        self.strategy_name = f"Arbitrage_{pair.base}_{pair.quote}"
        log.info("STRATEGY_INITIALIZED_Arbitrage", strategy_name=self.strategy_name,
                 venues=[v.value for v in self.feeds], min_profit_bps=min_profit_bps)

    def collect_quotes(self, ctx: ExecutionContext) -> Dict[VenueKind, ValidatedPrice]:
        validated = {}
        for venue, feed_id in self.feeds.items():
            quote = ctx.oracle.get_quote(feed_id)
            validated[venue] = self.validator.validate(quote, self.max_staleness, self.max_confidence, ctx.now)
        return validated

    def run(self, ctx: ExecutionContext) -> ArbitrageOutcome:
        check()
        try:
            quotes = self.collect_quotes(ctx)
        except MarketDataError as e:
            # Every venue price must be usable; the search is abandoned.
            log.error("ARB_SEARCH_ABORTED", strategy_name=self.strategy_name, code=e.code, error=str(e))
            raise

        routes = self.finder.find_routes(quotes, self.min_profit_bps, self.pair, ctx.now)
        routes = filter_profitable(routes, self.min_profit_bps)
        if not routes or not self.execute:
            return ArbitrageOutcome(routes=routes)

        best = max(routes, key=lambda r: r.expected_profit_bps)
        try:
            result = execute_route(best, self.trade_amount, ctx, self.risk_gate)
        except EconomicGuardError as e:
            log.error("ARB_ROUTE_FAILED", route_kind=best.route_kind.value, code=e.code, error=str(e))
            return ArbitrageOutcome(routes=routes, error=e, partial=e.context.get("entry_fill"))
        return ArbitrageOutcome(routes=routes, executed=result)
