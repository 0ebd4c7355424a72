from __future__ import annotations

import logging

from classplan.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
HANDLER_NAME = "classplan"


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    if not any(handler.get_name() == HANDLER_NAME for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.set_name(HANDLER_NAME)
        root.addHandler(handler)
    logging.getLogger("classplan").setLevel(settings.log_level)
