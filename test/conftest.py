# /test/conftest.py
# Shared fixtures: every test gets its own session directory so the halt
# switch and the audit log never leak between tests.
import pytest

from tradebot.adapters.mock import MockVenue
from tradebot.adapters.oracle import SnapshotOracle
from tradebot.adapters.venue import VenueRegistry
from tradebot.core.state import PriceQuote, RiskParameters, TokenPair, VenueKind
from tradebot.strategies.base import ExecutionContext

NOW = 1_700_000_000
PAIR = TokenPair(base="SOL", quote="USDC")


@pytest.fixture(autouse=True)
def isolated_session(tmp_path, monkeypatch):
    monkeypatch.setattr("tradebot.core.kill.KILL_SWITCH_FILE", str(tmp_path / "SYSTEM_KILL_SWITCH"))
    monkeypatch.setattr("tradebot.core.logger.AUDIT_FILE", str(tmp_path / "audit.log"))
    yield tmp_path


def make_quote(venue=VenueKind.RAYDIUM, price=1_000_000, confidence=1_000, age=0, feed_id=""):
    return PriceQuote(venue=venue, feed_id=feed_id, price=price, confidence=confidence,
                      publish_time=NOW - age)


@pytest.fixture
def risk():
    return RiskParameters(max_trade_size=10_000_000, daily_loss_limit=1_000_000)


@pytest.fixture
def venues():
    """One mock venue per VenueKind, registered in a fresh registry."""
    registry = VenueRegistry()
    for kind in VenueKind:
        registry.register(kind, MockVenue(kind))
    return registry


@pytest.fixture
def make_ctx(risk, venues):
    def _make(quotes=(), history=(), **overrides):
        fields = dict(oracle=SnapshotOracle(quotes, history, now=NOW), venues=venues, risk=risk, now=NOW)
        fields.update(overrides)
        return ExecutionContext(**fields)
    return _make
