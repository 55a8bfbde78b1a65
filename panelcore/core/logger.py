from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler


LOGGER_NAME = "panelcore"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(log_dir: str = "logs", *, level: int = logging.INFO, console: bool = True) -> logging.Logger:
    """
    Configure the "panelcore" logger tree. Module loggers (panelcore.core.*) propagate here.
    Safe to call twice: handlers are only attached once.
    """
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    attached = {getattr(h, "name", None) for h in logger.handlers}

    if "panel-file" not in attached:
        fh = RotatingFileHandler(os.path.join(log_dir, "panelcore.log"), maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.set_name("panel-file")
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(fh)

    if console and "panel-console" not in attached:
        sh = logging.StreamHandler()
        sh.set_name("panel-console")
        sh.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(sh)

    return logger
