# Centralized logging configuration
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

_configured = False


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """
    Configure the root logger once: console output always, plus a rotating
    file under ``log_dir`` when one is given.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s - %(levelname)s - %(message)s")
    )
    root.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "clubdues.log"),
            maxBytes=1024 * 1024,
            backupCount=10,
        )
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]"
            )
        )
        root.addHandler(file_handler)

    _configured = True
