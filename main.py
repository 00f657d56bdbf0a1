# /main.py
# Starts the operator surface: config validation, logging, then the control API.
# Strategy runs are invoked by the caller per snapshot; nothing loops here.
import uvicorn

from tradebot.core.config import settings
from tradebot.core.config_validator import validate as validate_config
from tradebot.core.control_api import app
from tradebot.core.kill import is_kill_switch_active
from tradebot.core.logger import configure_logging, get_logger


def main():
    configure_logging()
    log = get_logger("tradebot.system")
    validate_config()
    log.info("TRADEBOT_ENGINE_STARTING", port=settings.HEALTH_PORT,
             kill_switch_active=is_kill_switch_active())

    uvicorn.run(app, host="0.0.0.0", port=settings.HEALTH_PORT)
    log.warning("SYSTEM_SHUTDOWN_COMPLETE")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
