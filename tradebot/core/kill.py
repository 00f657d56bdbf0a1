# /tradebot/core/kill.py
# File-backed halt switch. While the file exists no strategy run and no venue
# call may proceed.
import os
from datetime import datetime, timezone

from tradebot.core.config import settings
from tradebot.core.errors import KillSwitchActiveError
from tradebot.core.logger import get_logger, KILL_TRIGGERED

log = get_logger(__name__)

KILL_SWITCH_FILE = os.path.join(settings.SESSION_DIR, "SYSTEM_KILL_SWITCH")


def is_kill_switch_active() -> bool:
    return os.path.exists(KILL_SWITCH_FILE)


def activate_kill_switch(reason: str):
    timestamp = datetime.now(timezone.utc).isoformat()
    content = f"ACTIVATED at {timestamp}\nREASON: {reason}\n"
    directory = os.path.dirname(KILL_SWITCH_FILE)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(KILL_SWITCH_FILE, "w") as f:
        f.write(content)
    log.critical("KILL_SWITCH_ACTIVATED", reason=reason, path=KILL_SWITCH_FILE)


def deactivate_kill_switch():
    if os.path.exists(KILL_SWITCH_FILE):
        os.remove(KILL_SWITCH_FILE)
        log.warning("KILL_SWITCH_DEACTIVATED", path=KILL_SWITCH_FILE)


def check():
    """Raise KillSwitchActiveError if execution is halted."""
    if is_kill_switch_active():
        KILL_TRIGGERED.inc()
        raise KillSwitchActiveError("Kill switch is active. Halting execution.")
