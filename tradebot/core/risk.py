# /tradebot/core/risk.py
from typing import Iterable

from tradebot.core.logger import get_logger, RISK_REJECTIONS
from tradebot.core.state import PerformanceMetrics, RiskParameters, TradeResult

log = get_logger(__name__)


class RiskGate:
    """
    Pre-trade limits. A rejection is an ordinary outcome, so ``allow`` returns
    a bool rather than raising. The gate only reads the caller's records.
    """

    def allow(self, risk: RiskParameters, metrics: PerformanceMetrics, trade_size: int) -> bool:
        if trade_size > risk.max_trade_size:
            RISK_REJECTIONS.labels("max_trade_size").inc()
            log.warning("TRADE_REJECTED_SIZE", trade_size=trade_size, max_trade_size=risk.max_trade_size)
            return False

        if metrics.total_profit_loss < -risk.daily_loss_limit:
            RISK_REJECTIONS.labels("daily_loss_limit").inc()
            log.warning("TRADE_REJECTED_DAILY_LOSS", total_profit_loss=metrics.total_profit_loss,
                        daily_loss_limit=risk.daily_loss_limit)
            return False

        return True


def record_trade_outcome(metrics: PerformanceMetrics, profit_or_loss: int) -> PerformanceMetrics:
    """Fold one trade's P&L into the running metrics. Extremes never decrease."""
    if profit_or_loss > 0:
        updated = metrics.model_copy(update={
            "total_profit_loss": metrics.total_profit_loss + profit_or_loss,
            "win_count": metrics.win_count + 1,
            "largest_profit": max(metrics.largest_profit, profit_or_loss),
        })
    else:
        updated = metrics.model_copy(update={
            "total_profit_loss": metrics.total_profit_loss + profit_or_loss,
            "loss_count": metrics.loss_count + 1,
            "largest_loss": max(metrics.largest_loss, -profit_or_loss),
        })
    log.info("METRICS_UPDATED", profit_or_loss=profit_or_loss,
             total_profit_loss=updated.total_profit_loss, trades=updated.total_trades)
    return updated


def apply_trade_results(metrics: PerformanceMetrics, results: Iterable[TradeResult]) -> PerformanceMetrics:
    for result in results:
        metrics = record_trade_outcome(metrics, result.profit_loss)
    return metrics
