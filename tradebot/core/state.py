# /tradebot/core/state.py
import time
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from tradebot.core.logger import get_logger

log = get_logger(__name__)


class VenueKind(str, Enum):
    RAYDIUM = "raydium"
    JUPITER = "jupiter"
    SERUM = "serum"


class PriceQuote(BaseModel):
    """A single oracle observation. Prices are unsigned 6-decimal fixed point."""
    model_config = ConfigDict(frozen=True)

    venue: VenueKind
    feed_id: str = ""
    price: int = Field(ge=0)
    confidence: int = Field(ge=0)
    publish_time: int


class ValidatedPrice(BaseModel):
    model_config = ConfigDict(frozen=True)

    quote: PriceQuote
    validated_at: int

    @property
    def price(self) -> int:
        return self.quote.price

    @property
    def venue(self) -> VenueKind:
        return self.quote.venue


class TokenPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    base: str
    quote: str

    @property
    def symbol(self) -> str:
        # Doubles as the pool id on every venue.
        return f"{self.base}/{self.quote}"


class SwapFill(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_in: int
    amount_out: int


class TradeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str  # block id or route kind
    venue: VenueKind
    pool: str
    token_in: str
    amount_in: int
    amount_out: int
    profit_loss: int = 0
    executed_at: int = Field(default_factory=lambda: int(time.time()))


class RiskParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_trade_size: int = Field(ge=0)
    daily_loss_limit: int = Field(ge=0)
    max_slippage_bps: int = Field(default=100, ge=0, le=10_000)
    min_profit_bps: int = Field(default=0, ge=0, le=10_000)


class PerformanceMetrics(BaseModel):
    """Caller-owned running totals. Updates return a new copy."""
    model_config = ConfigDict(frozen=True)

    total_profit_loss: int = 0
    win_count: int = 0
    loss_count: int = 0
    largest_profit: int = 0
    largest_loss: int = 0

    @property
    def total_trades(self) -> int:
        return self.win_count + self.loss_count

    @property
    def win_rate(self) -> int:
        """Winning trades as a whole percentage of all trades; 0 before any trade."""
        if self.total_trades == 0:
            return 0
        return self.win_count * 100 // self.total_trades


class ExecutionState(BaseModel):
    """Scratch state of one interpreter run; only the interpreter mutates it."""

    executed_block_ids: List[str] = Field(default_factory=list)
    loop_counters: Dict[str, int] = Field(default_factory=dict)
    last_prices: Dict[str, int] = Field(default_factory=dict)
    trade_results: List[TradeResult] = Field(default_factory=list)

    def record_action(self, block_id: str, result: TradeResult) -> None:
        self.trade_results.append(result)
        self.executed_block_ids.append(block_id)
        log.info("ACTION_RECORDED", block_id=block_id, venue=result.venue.value,
                 amount_in=result.amount_in, amount_out=result.amount_out)

    def record_price(self, key: str, price: int) -> None:
        self.last_prices[key] = price

    def bump_loop(self, block_id: str) -> int:
        self.loop_counters[block_id] = self.loop_counters.get(block_id, 0) + 1
        return self.loop_counters[block_id]

    @property
    def cumulative_profit_loss(self) -> int:
        return sum(r.profit_loss for r in self.trade_results)


class MoveDirection(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class LiquidityRatio(BaseModel):
    model_config = ConfigDict(frozen=True)

    venue: VenueKind
    pool: str
    target_ratio: int = Field(ge=0, le=100)


class LiquidityMove(BaseModel):
    model_config = ConfigDict(frozen=True)

    venue: VenueKind
    pool: str
    amount: int
    direction: MoveDirection
