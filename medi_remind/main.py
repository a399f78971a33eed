"""Entry point for the medicine reminder.

Starts the scheduler and serves the web API. Pass --no-server to run the
scheduler alone (for example on a machine that only sends SMS).
"""

import logging
import sys
import time
import traceback

from medi_remind.config import ServerConfig
from medi_remind.core.controller import ReminderController


def _configure_logging():
    logger = logging.getLogger("medi_remind")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)


def main():
    _configure_logging()
    controller = ReminderController()
    try:
        controller.start()
        if "--no-server" in sys.argv:
            while True:
                time.sleep(1.0)
        else:
            from medi_remind.website.server import create_app

            server_config = ServerConfig()
            app = create_app(controller)
            app.run(host=server_config.host, port=server_config.port, threaded=True)
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Fatal error: {e}")
        traceback.print_exc()
    finally:
        controller.stop()


if __name__ == "__main__":
    main()
