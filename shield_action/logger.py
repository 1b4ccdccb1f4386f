import logging
import os
from pathlib import Path

__all__ = ["get_logger", "logger"]

LOG_PATH = os.getenv("SHIELD_LOG_PATH", "./log/shield_action.log")

logger = logging.getLogger("shield_action")
if not logger.handlers:
    logger.setLevel(logging.INFO)
    Path(LOG_PATH).parent.mkdir(parents=True, exist_ok=True)
    _fh = logging.FileHandler(LOG_PATH, encoding="utf-8")
    _fh.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(_fh)


def get_logger(name: str) -> logging.Logger:
    """パッケージロガーの子ロガーを返す."""
    return logger.getChild(name)
