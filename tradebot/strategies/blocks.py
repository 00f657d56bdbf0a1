# /tradebot/strategies/blocks.py
# Externally authored strategy blocks and their structural validation.
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from tradebot.core.config import settings
from tradebot.core.errors import InvalidConfiguration
from tradebot.core.state import VenueKind


class BlockType(str, Enum):
    TRIGGER = "trigger"
    CONDITION = "condition"
    ACTION = "action"
    LOOP = "loop"
    EXIT = "exit"


class TriggerType(str, Enum):
    PRICE = "price"
    VOLUME = "volume"
    TIME = "time"


class PriceCondition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    EQUAL = "equal"


class ConditionType(str, Enum):
    BALANCE = "balance"
    PRICE_IMPACT = "price_impact"
    CUSTOM = "custom"


class ActionType(str, Enum):
    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


class ExitType(str, Enum):
    BLOCKS_EXECUTED = "blocks_executed"
    CUMULATIVE_LOSS = "cumulative_loss"
    CUSTOM = "custom"


class BlockConfig(BaseModel):
    """Flat parameter bag; which fields matter depends on the block's sub-type."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    # market data
    feed_id: Optional[str] = None
    price_condition: Optional[PriceCondition] = None
    price_threshold: Optional[int] = Field(default=None, ge=0)
    twap_period: Optional[int] = Field(default=None, gt=0)
    volume_threshold: Optional[int] = Field(default=None, ge=0)
    not_before: Optional[int] = None
    not_after: Optional[int] = None

    # account / pool
    token: Optional[str] = None
    minimum_balance: Optional[int] = Field(default=None, ge=0)
    max_price_impact_bps: Optional[int] = Field(default=None, ge=0, le=10_000)
    predicate: Optional[str] = None

    # execution
    venue: Optional[VenueKind] = None
    pool: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=0)
    amount_b: Optional[int] = Field(default=None, ge=0)
    slippage_bps: Optional[int] = Field(default=None, ge=0, le=10_000)
    minimum_out: Optional[int] = Field(default=None, ge=0)

    # control flow
    loop_start: Optional[str] = None
    loop_end: Optional[str] = None
    max_iterations: Optional[int] = Field(default=None, ge=0)
    exit_after_blocks: Optional[int] = Field(default=None, ge=0)
    max_loss: Optional[int] = Field(default=None, ge=0)


class StrategyBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    block_type: BlockType
    trigger_type: Optional[TriggerType] = None
    condition_type: Optional[ConditionType] = None
    action_type: Optional[ActionType] = None
    exit_type: Optional[ExitType] = None
    config: BlockConfig = Field(default_factory=BlockConfig)

    @property
    def sub_type(self) -> Optional[Enum]:
        return {
            BlockType.TRIGGER: self.trigger_type,
            BlockType.CONDITION: self.condition_type,
            BlockType.ACTION: self.action_type,
            BlockType.EXIT: self.exit_type,
        }.get(self.block_type)


REQUIRED_FIELDS: Dict[Tuple[BlockType, Optional[Enum]], Tuple[str, ...]] = {
    (BlockType.TRIGGER, TriggerType.PRICE): ("feed_id", "price_condition", "price_threshold"),
    (BlockType.TRIGGER, TriggerType.VOLUME): ("feed_id", "volume_threshold"),
    (BlockType.TRIGGER, TriggerType.TIME): (),
    (BlockType.CONDITION, ConditionType.BALANCE): ("token", "minimum_balance"),
    (BlockType.CONDITION, ConditionType.PRICE_IMPACT): ("pool", "token", "amount", "max_price_impact_bps"),
    (BlockType.CONDITION, ConditionType.CUSTOM): ("predicate",),
    (BlockType.ACTION, ActionType.SWAP): ("venue", "pool", "token", "amount", "slippage_bps"),
    (BlockType.ACTION, ActionType.ADD_LIQUIDITY): ("venue", "pool", "amount"),
    (BlockType.ACTION, ActionType.REMOVE_LIQUIDITY): ("venue", "pool", "amount"),
    (BlockType.LOOP, None): ("loop_start", "loop_end", "max_iterations"),
    (BlockType.EXIT, ExitType.BLOCKS_EXECUTED): ("exit_after_blocks",),
    (BlockType.EXIT, ExitType.CUMULATIVE_LOSS): ("max_loss",),
    (BlockType.EXIT, ExitType.CUSTOM): ("predicate",),
}


def validate_blocks(blocks: Sequence[StrategyBlock]) -> Dict[str, int]:
    """
    Structural checks run before the first block executes.
    Returns the id -> position index used by loop dispatch.
    """
    index: Dict[str, int] = {}
    problems: List[str] = []

    for position, block in enumerate(blocks):
        if block.id in index:
            problems.append(f"duplicate block id {block.id}")
        index[block.id] = position

        sub_type = block.sub_type
        if block.block_type is not BlockType.LOOP and sub_type is None:
            problems.append(f"block {block.id} has no {block.block_type.value} type")
            continue

        for field in REQUIRED_FIELDS[(block.block_type, sub_type)]:
            if getattr(block.config, field) is None:
                problems.append(f"block {block.id} missing {field}")

        cfg = block.config
        if sub_type is TriggerType.TIME and cfg.not_before is None and cfg.not_after is None:
            problems.append(f"block {block.id} needs not_before or not_after")

    for position, block in enumerate(blocks):
        if block.block_type is not BlockType.LOOP:
            continue
        cfg = block.config
        start, end = index.get(cfg.loop_start), index.get(cfg.loop_end)
        if cfg.loop_start is not None and start is None:
            problems.append(f"loop {block.id} references unknown block {cfg.loop_start}")
        if cfg.loop_end is not None and end is None:
            problems.append(f"loop {block.id} references unknown block {cfg.loop_end}")
        if start is not None and end is not None and not start <= end < position:
            problems.append(f"loop {block.id} range must be earlier blocks in order")
        if cfg.max_iterations is not None and cfg.max_iterations > settings.MAX_LOOP_ITERATIONS:
            problems.append(f"loop {block.id} max_iterations above {settings.MAX_LOOP_ITERATIONS}")

    if problems:
        raise InvalidConfiguration("; ".join(problems), problems=problems)
    return index
