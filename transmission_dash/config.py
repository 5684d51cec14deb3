"""Central configuration for transmission_dash."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml

from .models.settings import Settings

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

DEFAULT_TIMEOUT_S = 10.0
DEFAULT_POLL_INTERVAL_S = 3.0


def _parse_bool(value: object) -> bool | None:
    """Parse a boolean from env/TOML input.

    Returns None when the value is missing or not recognised so callers can
    fall through to the next configuration source.

    Example:
        >>> _parse_bool("Yes"), _parse_bool("off"), _parse_bool("maybe")
        (True, False, None)
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return None


def _config_file_candidates() -> list[Path]:
    explicit = os.environ.get("TRANSMISSION_TUI_CONFIG")
    if explicit:
        return [Path(explicit).expanduser()]
    base = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return [base / "transmission-tui" / "config.toml", base / "transmission-tui.toml"]


def _load_file_config(paths: list[Path] | None = None) -> dict[str, Any]:
    """Return the first readable TOML config as a dict (empty when none).

    A malformed file is logged and ignored rather than aborting startup.
    """
    for path in paths if paths is not None else _config_file_candidates():
        if not path.is_file():
            continue
        try:
            with path.open(encoding="utf-8") as fh:
                data = toml.load(fh)
        except (OSError, UnicodeDecodeError, toml.TomlDecodeError) as exc:
            logger.warning("Ignoring config file %s: %s", path, exc)
            return {}
        logger.debug("Loaded config file %s", path)
        return data
    return {}


def _pick(env_name: str, file_value: object, default: object) -> object:
    raw = os.environ.get(env_name)
    if raw is not None and raw.strip() != "":
        return raw.strip()
    if file_value is not None:
        return file_value
    return default


def _read_settings(file_config: dict[str, Any] | None = None) -> Settings:
    """Read all configuration from the environment and the optional file.

    Note:
        Invalid numeric values fall back to defaults. A non-positive timeout
        or a negative poll interval is rejected the same way.
    """
    data = _load_file_config() if file_config is None else file_config
    rpc = data.get("rpc") or {}
    if not isinstance(rpc, dict):
        rpc = {}

    url = _pick("TRANSMISSION_URL", rpc.get("url"), None)
    host = str(_pick("TRANSMISSION_HOST", rpc.get("host"), "localhost"))
    try:
        port = int(_pick("TRANSMISSION_PORT", rpc.get("port"), 9091))
    except (TypeError, ValueError):
        port = 9091
    rpc_path = str(_pick("TRANSMISSION_RPC_PATH", rpc.get("path"), "/transmission/rpc"))
    username = _pick("TRANSMISSION_USERNAME", rpc.get("username"), None)
    password = _pick("TRANSMISSION_PASSWORD", rpc.get("password"), None)

    try:
        timeout = float(_pick("TRANSMISSION_TIMEOUT", rpc.get("timeout"), DEFAULT_TIMEOUT_S))
    except (TypeError, ValueError):
        timeout = DEFAULT_TIMEOUT_S
    if timeout <= 0:
        logger.warning("Timeout must be positive; using %ss", DEFAULT_TIMEOUT_S)
        timeout = DEFAULT_TIMEOUT_S

    try:
        poll = float(
            _pick("TRANSMISSION_POLL_INTERVAL", data.get("poll_interval"), DEFAULT_POLL_INTERVAL_S)
        )
    except (TypeError, ValueError):
        poll = DEFAULT_POLL_INTERVAL_S
    if poll < 0:
        logger.warning("Poll interval cannot be negative; using %ss", DEFAULT_POLL_INTERVAL_S)
        poll = DEFAULT_POLL_INTERVAL_S

    tls = _parse_bool(os.environ.get("TRANSMISSION_TLS"))
    if tls is None:
        tls = _parse_bool(rpc.get("tls"))
    verify = _parse_bool(os.environ.get("TRANSMISSION_VERIFY_SSL"))
    if verify is None:
        verify = _parse_bool(rpc.get("verify_ssl"))

    user_agent = str(_pick("TRANSMISSION_USER_AGENT", rpc.get("user_agent"), "transmission-tui"))
    log_level = str(_pick("LOG_LEVEL", data.get("log_level"), "INFO")).upper()
    log_file = _pick("LOG_FILE", data.get("log_file"), None)

    return Settings(
        URL=str(url) if url else None,
        HOST=host,
        PORT=port,
        RPC_PATH=rpc_path,
        USERNAME=str(username) if username else None,
        PASSWORD=str(password) if password is not None else None,
        TIMEOUT_S=timeout,
        POLL_INTERVAL_S=poll,
        TLS=bool(tls),
        VERIFY_SSL=True if verify is None else verify,
        USER_AGENT=user_agent,
        LOG_LEVEL=log_level,
        LOG_FILE=str(log_file) if log_file else None,
    )


settings = _read_settings()


def validate_settings() -> None:
    """Log warnings for configuration that is legal but probably unintended."""
    if settings.PASSWORD and not settings.USERNAME:
        logger.warning("TRANSMISSION_PASSWORD is set without TRANSMISSION_USERNAME; ignoring it")
    if settings.TLS and not settings.VERIFY_SSL:
        logger.warning("TLS certificate verification is disabled")
    if settings.POLL_INTERVAL_S == 0:
        logger.info("Polling disabled; refresh manually with R")


# Exported constants
ENDPOINT: str = settings.endpoint
POLL_INTERVAL_S: float = settings.POLL_INTERVAL_S
TIMEOUT_S: float = settings.TIMEOUT_S
