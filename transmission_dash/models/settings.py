"""Configuration dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Settings:
    """Resolved configuration for transmission_dash."""

    URL: str | None
    HOST: str
    PORT: int
    RPC_PATH: str
    USERNAME: str | None
    PASSWORD: str | None
    TIMEOUT_S: float
    POLL_INTERVAL_S: float
    TLS: bool
    VERIFY_SSL: bool
    USER_AGENT: str
    LOG_LEVEL: str
    LOG_FILE: str | None

    @property
    def scheme(self) -> str:
        return "https" if self.TLS else "http"

    @property
    def endpoint(self) -> str:
        """Full RPC URL; an explicit URL wins over host/port/path."""
        if self.URL:
            return self.URL
        path = self.RPC_PATH if self.RPC_PATH.startswith("/") else f"/{self.RPC_PATH}"
        return f"{self.scheme}://{self.HOST}:{self.PORT}{path}"
