# /tradebot/strategies/interpreter.py
# Executes an ordered list of StrategyBlocks against one ExecutionContext.
# A run moves RUNNING -> COMPLETED | EXITED | ABORTED and never mutates the
# context; the caller folds the returned TradeResults into its metrics.
import uuid
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from tradebot.core import amm
from tradebot.core.config import settings
from tradebot.core.errors import (
    ConditionNotMet,
    EngineError,
    InsufficientPriceData,
    InvalidConfiguration,
    StrategyInactive,
)
from tradebot.core.guards import validate_slippage
from tradebot.core.kill import check
from tradebot.core.logger import bind_run_context, get_logger, BLOCKS_EXECUTED, RUNS_FINISHED, TRADES_EXECUTED
from tradebot.core.pricing import PriceValidator, twap
from tradebot.core.risk import RiskGate, apply_trade_results
from tradebot.core.state import ExecutionState, PerformanceMetrics, TradeResult
from tradebot.strategies.base import AbstractStrategy, ExecutionContext
from tradebot.strategies.blocks import (
    ActionType,
    BlockType,
    ConditionType,
    ExitType,
    PriceCondition,
    StrategyBlock,
    TriggerType,
    validate_blocks,
)

log = get_logger(__name__)


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    EXITED = "exited"
    ABORTED = "aborted"


class RunOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: RunStatus
    state: ExecutionState
    error: Optional[EngineError] = None
    reason: Optional[str] = None

    def raise_for_error(self) -> "RunOutcome":
        if self.error is not None:
            raise self.error
        return self


class _Halt(Exception):
    """Unwinds nested loop ranges once the run leaves RUNNING."""


class StrategyInterpreter:
    """
    Single forward cursor over the block list. Triggers and Conditions gate
    progress: an unsatisfied one aborts the rest of the run with ConditionNotMet.
    """

    def __init__(self, validator: PriceValidator | None = None, risk_gate: RiskGate | None = None,
                 price_equal_tolerance: int | None = None):
        self.validator = validator or PriceValidator()
        self.risk_gate = risk_gate or RiskGate()
        self.price_equal_tolerance = (settings.PRICE_EQUAL_TOLERANCE
                                      if price_equal_tolerance is None else price_equal_tolerance)

    def run(self, blocks: Sequence[StrategyBlock], ctx: ExecutionContext) -> RunOutcome:
        state = ExecutionState()
        self._status = RunStatus.RUNNING
        self._reason: Optional[str] = None
        blocks = list(blocks)
        bind_run_context(run_id=uuid.uuid4().hex[:12])

        try:
            self._index = validate_blocks(blocks)
            self._execute_range(blocks, 0, len(blocks) - 1, ctx, state)
            outcome = RunOutcome(status=RunStatus.COMPLETED, state=state)
        except _Halt:
            outcome = RunOutcome(status=self._status, state=state, reason=self._reason)
        except EngineError as e:
            log.error("STRATEGY_RUN_ABORTED", code=e.code, error=str(e),
                      executed_blocks=len(state.executed_block_ids))
            outcome = RunOutcome(status=RunStatus.ABORTED, state=state, error=e, reason=e.code)

        RUNS_FINISHED.labels(outcome.status.value).inc()
        log.info("STRATEGY_RUN_FINISHED", status=outcome.status.value, reason=outcome.reason,
                 executed_blocks=len(state.executed_block_ids), trades=len(state.trade_results))
        return outcome

    def _finish(self, status: RunStatus, reason: str):
        self._status = status
        self._reason = reason
        raise _Halt()

    def _execute_range(self, blocks: List[StrategyBlock], start: int, end: int,
                       ctx: ExecutionContext, state: ExecutionState) -> None:
        cursor = start
        while cursor <= end:
            block = blocks[cursor]
            BLOCKS_EXECUTED.labels(block.block_type.value).inc()
            log.debug("BLOCK_DISPATCH", block_id=block.id, block_type=block.block_type.value)

            if block.block_type is BlockType.TRIGGER:
                self._trigger(block, ctx, state)
            elif block.block_type is BlockType.CONDITION:
                self._condition(block, ctx, state)
            elif block.block_type is BlockType.ACTION:
                self._action(block, ctx, state)
            elif block.block_type is BlockType.LOOP:
                self._loop(block, blocks, ctx, state)
            elif block.block_type is BlockType.EXIT:
                if self._exit_requested(block, ctx, state):
                    log.info("STRATEGY_EXIT", block_id=block.id, exit_type=block.exit_type.value)
                    self._finish(RunStatus.EXITED, f"exit:{block.id}")
            cursor += 1

    # --- Triggers ---

    def _trigger(self, block: StrategyBlock, ctx: ExecutionContext, state: ExecutionState) -> None:
        cfg = block.config
        if block.trigger_type is TriggerType.PRICE:
            quote = ctx.oracle.get_quote(cfg.feed_id)
            price = self.validator.validate(quote, now=ctx.now).price
            if cfg.twap_period:
                price = twap(ctx.oracle.get_history(cfg.feed_id, cfg.twap_period, ctx.now),
                             cfg.twap_period, ctx.now)
            state.record_price(cfg.feed_id, price)
            satisfied = self._compare(cfg.price_condition, price, cfg.price_threshold)
            detail = {"price": price, "threshold": cfg.price_threshold,
                      "condition": cfg.price_condition.value}
        elif block.trigger_type is TriggerType.VOLUME:
            if cfg.feed_id not in ctx.volumes:
                raise InsufficientPriceData(f"no volume for {cfg.feed_id}", feed_id=cfg.feed_id)
            volume = ctx.volumes[cfg.feed_id]
            satisfied = volume >= cfg.volume_threshold
            detail = {"volume": volume, "threshold": cfg.volume_threshold}
        else:
            satisfied = ((cfg.not_before is None or ctx.now >= cfg.not_before)
                         and (cfg.not_after is None or ctx.now <= cfg.not_after))
            detail = {"now": ctx.now, "not_before": cfg.not_before, "not_after": cfg.not_after}

        if not satisfied:
            raise ConditionNotMet(f"trigger {block.id} not satisfied", block_id=block.id, **detail)
        log.info("TRIGGER_SATISFIED", block_id=block.id, trigger_type=block.trigger_type.value, **detail)

    def _compare(self, condition: PriceCondition, price: int, threshold: int) -> bool:
        if condition is PriceCondition.ABOVE:
            return price > threshold
        if condition is PriceCondition.BELOW:
            return price < threshold
        return abs(price - threshold) < self.price_equal_tolerance

    # --- Conditions ---

    def _condition(self, block: StrategyBlock, ctx: ExecutionContext, state: ExecutionState) -> None:
        cfg = block.config
        if block.condition_type is ConditionType.BALANCE:
            balance = ctx.balances.get(cfg.token, 0)
            satisfied = balance >= cfg.minimum_balance
            detail = {"balance": balance, "minimum_balance": cfg.minimum_balance}
        elif block.condition_type is ConditionType.PRICE_IMPACT:
            if cfg.pool not in ctx.pools:
                raise InvalidConfiguration(f"no pool snapshot for {cfg.pool}", pool=cfg.pool)
            reserves = ctx.pools[cfg.pool]
            reserve_in, reserve_out = reserves.sides(cfg.token)
            amount_out = amm.swap_output(cfg.amount, reserve_in, reserve_out, reserves.fee_bps)
            impact = amm.price_impact_bps(cfg.amount, amount_out, reserve_in, reserve_out)
            satisfied = impact <= cfg.max_price_impact_bps
            detail = {"impact_bps": impact, "max_price_impact_bps": cfg.max_price_impact_bps}
        else:
            satisfied = bool(self._predicate(cfg.predicate, ctx)(ctx, state))
            detail = {"predicate": cfg.predicate}

        if not satisfied:
            raise ConditionNotMet(f"condition {block.id} not met", block_id=block.id, **detail)
        log.info("CONDITION_MET", block_id=block.id, condition_type=block.condition_type.value, **detail)

    @staticmethod
    def _predicate(name: str, ctx: ExecutionContext):
        try:
            return ctx.predicates[name]
        except KeyError:
            raise InvalidConfiguration(f"unknown predicate {name}", predicate=name)

    # --- Actions ---

    def _action(self, block: StrategyBlock, ctx: ExecutionContext, state: ExecutionState) -> None:
        check()
        cfg = block.config
        # Limits apply to the caller's totals plus what this run has already realised.
        projected = ctx.metrics.model_copy(update={
            "total_profit_loss": ctx.metrics.total_profit_loss + state.cumulative_profit_loss,
        })
        if not self.risk_gate.allow(ctx.risk, projected, cfg.amount):
            log.warning("ACTION_REJECTED_BY_RISK", block_id=block.id, amount=cfg.amount)
            self._finish(RunStatus.ABORTED, "risk_rejected")

        venue = ctx.venues.get(cfg.venue)
        if block.action_type is ActionType.SWAP:
            slippage = validate_slippage(cfg.slippage_bps)
            quoted = venue.quote(cfg.pool, cfg.token, cfg.amount)
            minimum_out = cfg.minimum_out if cfg.minimum_out is not None else amm.apply_bps_haircut(quoted, slippage)
            fill = venue.swap(cfg.pool, cfg.token, cfg.amount, minimum_out, slippage)
            result = TradeResult(source=block.id, venue=cfg.venue, pool=cfg.pool, token_in=cfg.token,
                                 amount_in=cfg.amount, amount_out=fill.amount_out,
                                 profit_loss=fill.amount_out - quoted, executed_at=ctx.now)
        elif block.action_type is ActionType.ADD_LIQUIDITY:
            minted = venue.add_liquidity(cfg.pool, cfg.amount, cfg.amount_b)
            result = TradeResult(source=block.id, venue=cfg.venue, pool=cfg.pool, token_in=cfg.pool,
                                 amount_in=cfg.amount, amount_out=minted, executed_at=ctx.now)
        else:
            out_a, out_b = venue.remove_liquidity(cfg.pool, cfg.amount)
            result = TradeResult(source=block.id, venue=cfg.venue, pool=cfg.pool, token_in=cfg.pool,
                                 amount_in=cfg.amount, amount_out=out_a, executed_at=ctx.now)

        state.record_action(block.id, result)
        TRADES_EXECUTED.labels("blocks").inc()

    # --- Control flow ---

    def _loop(self, block: StrategyBlock, blocks: List[StrategyBlock],
              ctx: ExecutionContext, state: ExecutionState) -> None:
        cfg = block.config
        start, end = self._index[cfg.loop_start], self._index[cfg.loop_end]
        while state.loop_counters.get(block.id, 0) < cfg.max_iterations:
            iteration = state.bump_loop(block.id)
            log.debug("LOOP_ITERATION", block_id=block.id, iteration=iteration)
            self._execute_range(blocks, start, end, ctx, state)

    def _exit_requested(self, block: StrategyBlock, ctx: ExecutionContext, state: ExecutionState) -> bool:
        cfg = block.config
        if block.exit_type is ExitType.BLOCKS_EXECUTED:
            return len(state.executed_block_ids) >= cfg.exit_after_blocks
        if block.exit_type is ExitType.CUMULATIVE_LOSS:
            return -state.cumulative_profit_loss > cfg.max_loss
        return bool(self._predicate(cfg.predicate, ctx)(ctx, state))


class BlockStrategy(AbstractStrategy):
    """A named, toggleable block program run through the StrategyInterpreter."""

    def __init__(self, name: str, blocks: Sequence[StrategyBlock], is_active: bool = True,
                 interpreter: StrategyInterpreter | None = None):
        self.strategy_name = name
        self.blocks = tuple(blocks)
        self.is_active = is_active
        self.interpreter = interpreter or StrategyInterpreter()
        log.info("STRATEGY_INITIALIZED_Blocks", strategy_name=name, blocks=len(self.blocks))

    def toggle(self, is_active: bool) -> None:
        self.is_active = is_active
        log.warning("STRATEGY_TOGGLED", strategy_name=self.strategy_name, is_active=is_active)

    def run(self, ctx: ExecutionContext) -> RunOutcome:
        if not self.is_active:
            raise StrategyInactive(f"strategy {self.strategy_name} is inactive", strategy=self.strategy_name)
        check()
        bind_run_context(strategy=self.strategy_name)
        outcome = self.interpreter.run(self.blocks, ctx)
        if outcome.status is RunStatus.ABORTED and outcome.error is not None:
            self.abort(outcome.error.code)
        return outcome


def settle(metrics: PerformanceMetrics, outcome: RunOutcome) -> PerformanceMetrics:
    """Caller-side post-trade step: fold a run's results into updated metrics."""
    return apply_trade_results(metrics, outcome.state.trade_results)
