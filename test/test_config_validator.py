import pytest

from tradebot.core import config_validator
from tradebot.core.config import Settings, settings


def test_defaults_pass():
    config_validator.validate()


def test_env_prefix_is_honoured(monkeypatch):
    monkeypatch.setenv("TRADEBOT_MAX_STALENESS_SECONDS", "30")
    assert Settings().MAX_STALENESS_SECONDS == 30


@pytest.mark.parametrize("field,value", [
    ("MAX_SLIPPAGE_BPS", 10_001),
    ("ROUTE_MAX_SLIPPAGE_BPS", 2_000),
    ("MIN_CONFIDENCE", 2_000_000),
    ("MAX_LOOP_ITERATIONS", 0),
    ("ROUTE_DEADLINE_SECONDS", 7_200),
])
def test_inconsistent_thresholds_halt(monkeypatch, field, value):
    monkeypatch.setattr(settings, field, value)
    with pytest.raises(ValueError):
        config_validator.validate()
