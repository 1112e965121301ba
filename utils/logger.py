import logging
import sys
import os

ROOT_LOGGER = "scriptboard"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        from config import load_settings

        handler = logging.StreamHandler(sys.stdout)
        fmt = "%(asctime)s [%(name)s] %(levelname)s %(message)s"
        handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        level = (os.getenv("LOG_LEVEL") or load_settings().get("log_level", "INFO")).upper()
        root.setLevel(getattr(logging, level, logging.INFO))
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Child of the "scriptboard" logger (stdout, one handler for the whole app).

    LOG_LEVEL overrides the ``log_level`` setting.
    """
    _configure_root()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
