# /tradebot/core/errors.py
# Engine exception taxonomy. Every failure carries a stable ``code`` so the
# invoking layer can decide whether to resubmit with a fresh snapshot.


class EngineError(Exception):
    code = "ENGINE_ERROR"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.code)
        self.context = context

    def to_dict(self) -> dict:
        return {"code": self.code, "message": str(self), **self.context}


# --- Input / configuration errors: never retried ---

class ConfigError(EngineError):
    code = "CONFIG_ERROR"

class InvalidConfiguration(ConfigError):
    code = "INVALID_CONFIGURATION"

class InvalidRatios(ConfigError):
    code = "INVALID_RATIOS"

class InvalidTickRange(ConfigError):
    code = "INVALID_TICK_RANGE"


# --- Market-data errors: caller may re-poll the oracle ---

class MarketDataError(EngineError):
    code = "MARKET_DATA_ERROR"

class StalePrice(MarketDataError):
    code = "STALE_PRICE"

class LowConfidence(MarketDataError):
    code = "LOW_CONFIDENCE"

class InsufficientConfidence(MarketDataError):
    code = "INSUFFICIENT_CONFIDENCE"

class ExcessiveRelativeConfidence(MarketDataError):
    code = "EXCESSIVE_RELATIVE_CONFIDENCE"

class InsufficientPriceData(MarketDataError):
    code = "INSUFFICIENT_PRICE_DATA"


# --- Economic guards: abort the specific route or trade ---

class EconomicGuardError(EngineError):
    code = "ECONOMIC_GUARD"

class SlippageExceeded(EconomicGuardError):
    code = "SLIPPAGE_EXCEEDED"

class DeadlineExceeded(EconomicGuardError):
    code = "DEADLINE_EXCEEDED"

class InsufficientProfit(EconomicGuardError):
    code = "INSUFFICIENT_PROFIT"


# --- Arithmetic ---

class Overflow(EngineError):
    code = "OVERFLOW"


# --- Interpreter / lifecycle ---

class ConditionNotMet(EngineError):
    code = "CONDITION_NOT_MET"

class StrategyInactive(EngineError):
    code = "STRATEGY_INACTIVE"

class KillSwitchActiveError(EngineError):
    code = "KILL_SWITCH_ACTIVE"
