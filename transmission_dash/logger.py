"""Logging helpers for transmission_dash

The terminal belongs to the dashboard, so records go to a file instead of
stderr.
"""
import logging
import os
import tempfile


def default_log_file() -> str:
    return os.path.join(tempfile.gettempdir(), "transmission-dash.log")


def setup_logging(level_name: str | None = None, log_file: str | None = None) -> None:
    level_name = (level_name or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.FileHandler(log_file or default_log_file(), encoding="utf-8")
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    # Suppress per-request connection logs from requests/urllib3
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


__all__ = ["setup_logging", "default_log_file"]
