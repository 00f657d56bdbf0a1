# /tradebot/core/logger.py
import logging
import structlog
from structlog.contextvars import bind_contextvars
import sentry_sdk
from prometheus_client import Counter
from tradebot.core.config import settings
import json
import hmac
import hashlib
import os

# --- Prometheus Metrics ---
ROUTES_FOUND = Counter("tradebot_routes_found_total", "Profitable arbitrage routes emitted", ["route_kind"])
TRADES_EXECUTED = Counter("tradebot_trades_executed_total", "Total number of trades executed", ["strategy"])
RISK_REJECTIONS = Counter("tradebot_risk_rejections_total", "Trades refused by the risk gate", ["reason"])
QUOTES_REJECTED = Counter("tradebot_quotes_rejected_total", "Price quotes failing validation", ["code"])
BLOCKS_EXECUTED = Counter("tradebot_blocks_executed_total", "Strategy blocks dispatched", ["block_type"])
RUNS_FINISHED = Counter("tradebot_runs_finished_total", "Strategy block runs by terminal status", ["status"])
KILL_TRIGGERED = Counter("tradebot_kill_triggered_total", "Times the halt switch has blocked execution")

SIGNING_KEY = (
    settings.LOG_SIGNING_KEY.get_secret_value().encode()
    if settings.LOG_SIGNING_KEY
    else b"insecure"
)

AUDIT_FILE = os.path.join(settings.SESSION_DIR, "audit.log")

def sign_and_append(logger, method_name: str, event_dict: dict) -> dict:
    """Structlog processor that signs each event and appends it to the audit log.

    Every engine decision (route found, quote rejected, block aborted) ends up
    in the audit trail as ``<json payload>|<hmac-sha256 hex>``.
    """
    payload = json.dumps(event_dict, sort_keys=True, default=str)
    sig = hmac.new(SIGNING_KEY, payload.encode(), hashlib.sha256).hexdigest()

    audit_file = str(AUDIT_FILE)
    try:
        with open(audit_file, "a", encoding="utf-8") as f:
            f.write(payload + "|" + sig + "\n")
    except FileNotFoundError:
        # If the session directory isn't present yet, create it lazily.
        os.makedirs(os.path.dirname(audit_file), exist_ok=True)
        with open(audit_file, "a", encoding="utf-8") as f:
            f.write(payload + "|" + sig + "\n")

    event_dict["signature"] = sig
    return event_dict

def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN.get_secret_value(), traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            sign_and_append,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

def get_logger(name: str):
    return structlog.get_logger(name)

def bind_run_context(**context):
    """Bind strategy/run identifiers to every log line emitted by this run."""
    bind_contextvars(**context)

configure_logging()
log = get_logger("tradebot.system")
