# /tradebot/strategies/base.py
# Defines the AbstractStrategy interface and the snapshot every run reads.
import time
from typing import Any, Callable, Dict

from pydantic import BaseModel, ConfigDict, Field

from tradebot.adapters.oracle import Oracle
from tradebot.adapters.pool import PoolReserves
from tradebot.adapters.venue import VenueRegistry
from tradebot.core.logger import get_logger
from tradebot.core.state import PerformanceMetrics, RiskParameters

log = get_logger(__name__)


class ExecutionContext(BaseModel):
    """
    Immutable snapshot handed to a strategy run: market data sources, venues,
    the caller-owned risk records and account state. Nothing in here is
    written by the engine; updated metrics are returned to the caller.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    oracle: Oracle
    venues: VenueRegistry = Field(default_factory=VenueRegistry)
    risk: RiskParameters
    metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    now: int = Field(default_factory=lambda: int(time.time()))
    balances: Dict[str, int] = Field(default_factory=dict)
    volumes: Dict[str, int] = Field(default_factory=dict)
    pools: Dict[str, PoolReserves] = Field(default_factory=dict)
    predicates: Dict[str, Callable[..., bool]] = Field(default_factory=dict)


class AbstractStrategy:
    """
    This is the interface every strategy must implement.
    A run is a single unit of work over one ExecutionContext; the caller
    serializes runs against the same account.
    """
    strategy_name: str = "strategy"

    def run(self, ctx: ExecutionContext) -> Any:
        """
        Main entrypoint. Must check the kill switch before any venue call
        and return its outcome without mutating ``ctx``.
        """
        raise NotImplementedError

    def abort(self, reason: str):
        log.critical("STRATEGY_ABORTED", strategy_name=self.strategy_name, reason=reason)
