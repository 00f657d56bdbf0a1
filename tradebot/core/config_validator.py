# /tradebot/core/config_validator.py
# Run at startup to validate engine thresholds before any decision is made.
from tradebot.core.config import settings
from tradebot.core.logger import log

BPS_FIELDS = ["MAX_RELATIVE_CONFIDENCE_BPS", "ROUTE_MAX_SLIPPAGE_BPS", "MAX_SLIPPAGE_BPS"]
POSITIVE_FIELDS = ["MAX_STALENESS_SECONDS", "ROUTE_DEADLINE_SECONDS", "MAX_DEADLINE_SECONDS",
                   "TICK_SPACING", "MAX_LOOP_ITERATIONS"]

def validate():
    log.info("--- CONFIG VALIDATION START ---")
    errors = []

    for var in BPS_FIELDS:
        value = getattr(settings, var)
        if not 0 <= value <= 10_000:
            errors.append(f"{var} must be within [0, 10000], got {value}")

    for var in POSITIVE_FIELDS:
        if getattr(settings, var) <= 0:
            errors.append(f"{var} must be positive")

    if settings.MIN_CONFIDENCE > settings.MAX_CONFIDENCE:
        errors.append("MIN_CONFIDENCE exceeds MAX_CONFIDENCE")
    if settings.ROUTE_MAX_SLIPPAGE_BPS > settings.MAX_SLIPPAGE_BPS:
        errors.append("ROUTE_MAX_SLIPPAGE_BPS exceeds MAX_SLIPPAGE_BPS")
    if settings.ROUTE_DEADLINE_SECONDS > settings.MAX_DEADLINE_SECONDS:
        errors.append("ROUTE_DEADLINE_SECONDS exceeds MAX_DEADLINE_SECONDS")

    if errors:
        for error in errors:
            log.critical(error)
        raise ValueError("Engine configuration is invalid. Halting.")

    log.info("--- CONFIG VALIDATION PASSED ---")

if __name__ == "__main__":
    validate()
