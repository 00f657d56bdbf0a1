# /test/test_risk.py
import pytest

from tradebot.core.errors import DeadlineExceeded, InvalidConfiguration, InvalidTickRange, SlippageExceeded
from tradebot.core.guards import check_min_out, validate_bps, validate_deadline, validate_slippage, validate_tick_range
from tradebot.core.logger import RISK_REJECTIONS
from tradebot.core.risk import RiskGate, apply_trade_results, record_trade_outcome
from tradebot.core.state import PerformanceMetrics, RiskParameters, TradeResult, VenueKind

RISK = RiskParameters(max_trade_size=1_000, daily_loss_limit=500)


def test_trade_within_limits_is_allowed():
    assert RiskGate().allow(RISK, PerformanceMetrics(), 1_000) is True


def test_oversized_trade_is_rejected():
    counter = RISK_REJECTIONS.labels("max_trade_size")
    before = counter._value.get()
    assert RiskGate().allow(RISK, PerformanceMetrics(), 1_001) is False
    assert counter._value.get() == before + 1


def test_loss_limit_rejects_only_once_exceeded():
    gate = RiskGate()
    assert gate.allow(RISK, PerformanceMetrics(total_profit_loss=-500), 1) is True
    assert gate.allow(RISK, PerformanceMetrics(total_profit_loss=-501), 1) is False


def test_gate_does_not_modify_caller_records():
    metrics = PerformanceMetrics(total_profit_loss=-10)
    RiskGate().allow(RISK, metrics, 10_000)
    assert metrics == PerformanceMetrics(total_profit_loss=-10)


def test_record_trade_outcome_returns_new_metrics():
    """
    GIVEN empty metrics
    WHEN a win of 30 and a loss of 50 are recorded
    THEN totals, counts and extremes follow and the original is untouched.
    """
    start = PerformanceMetrics()
    after_win = record_trade_outcome(start, 30)
    after_loss = record_trade_outcome(after_win, -50)

    assert start.total_trades == 0
    assert after_loss.total_profit_loss == -20
    assert (after_loss.win_count, after_loss.loss_count) == (1, 1)
    assert after_loss.largest_profit == 30
    assert after_loss.largest_loss == 50


def test_zero_pnl_counts_as_loss_without_moving_extremes():
    metrics = record_trade_outcome(PerformanceMetrics(largest_loss=7), 0)
    assert metrics.loss_count == 1
    assert metrics.largest_loss == 7


def test_apply_trade_results_folds_in_order():
    results = [TradeResult(source="b", venue=VenueKind.SERUM, pool="SOL/USDC", token_in="USDC",
                           amount_in=1, amount_out=1, profit_loss=pnl) for pnl in (5, -3, 10)]
    metrics = apply_trade_results(PerformanceMetrics(), results)
    assert metrics.total_profit_loss == 12
    assert metrics.largest_profit == 10
    assert metrics.total_trades == 3


def test_win_rate_is_whole_percent_of_trades():
    """
    GIVEN no trades, then two wins and one loss
    WHEN win_rate is read
    THEN it is 0 before any trade and the truncated percentage afterwards.
    """
    assert PerformanceMetrics().win_rate == 0

    metrics = PerformanceMetrics()
    for pnl in (10, 5, -1):
        metrics = record_trade_outcome(metrics, pnl)
    assert metrics.win_rate == 66
    assert PerformanceMetrics(win_count=4).win_rate == 100


# --- guards ---

def test_bps_must_be_in_range():
    with pytest.raises(InvalidConfiguration):
        validate_bps("fee_bps", 10_001)
    with pytest.raises(InvalidConfiguration):
        validate_bps("fee_bps", -1)
    assert validate_bps("fee_bps", 10_000) == 10_000


def test_slippage_above_cap():
    assert validate_slippage(1_000) == 1_000
    with pytest.raises(SlippageExceeded):
        validate_slippage(1_001)


def test_deadline_guard():
    assert validate_deadline(1_060, now=1_000) == 1_060
    with pytest.raises(DeadlineExceeded):
        validate_deadline(999, now=1_000)
    with pytest.raises(InvalidConfiguration):
        validate_deadline(1_000 + 3_601, now=1_000)


def test_tick_range_guard():
    assert validate_tick_range(-60, 60, tick_spacing=60) == (-60, 60)
    with pytest.raises(InvalidTickRange):
        validate_tick_range(60, 60)
    with pytest.raises(InvalidTickRange):
        validate_tick_range(-50, 60, tick_spacing=60)
    with pytest.raises(InvalidTickRange):
        validate_tick_range(-443637, 0)


def test_min_out_guard():
    assert check_min_out(100, 100) == 100
    with pytest.raises(SlippageExceeded):
        check_min_out(99, 100)
