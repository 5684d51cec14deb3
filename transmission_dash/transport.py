"""HTTP transport for the daemon's RPC endpoint.

One call to :meth:`HttpTransport.send` is exactly one HTTP exchange. Retry
policy (session tokens, dialect fallback) belongs to the layers above.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

import requests

from .errors import ConnectionFailed, RequestTimeout, TransportError, VerificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class HttpTransport:
    """Thin wrapper around a `requests.Session` bound to one endpoint."""

    def __init__(
        self,
        url: str,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 10.0,
        verify_ssl: bool = True,
        user_agent: str = "transmission-tui",
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._http = requests.Session()
        self._http.verify = verify_ssl
        self._http.headers.update(
            {"User-Agent": user_agent, "Content-Type": "application/json"}
        )
        if username:
            self._http.auth = (username, password or "")

    def send(
        self,
        body: bytes,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> RawResponse:
        """POST `body` and return the raw response.

        Raises:
            RequestTimeout: no answer within `timeout` seconds.
            VerificationError: TLS verification failed.
            ConnectionFailed: DNS, connect or other socket level failure.
            TransportError: any other `requests` failure.
        """
        try:
            resp = self._http.post(
                self.url,
                data=body,
                headers=dict(headers or {}),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.exceptions.SSLError as exc:
            raise VerificationError(str(exc)) from exc
        except requests.Timeout as exc:
            raise RequestTimeout(f"no response from {self.url} within {timeout or self.timeout}s") from exc
        except requests.ConnectionError as exc:
            raise ConnectionFailed(f"cannot reach {self.url}: {exc}") from exc
        except requests.RequestException as exc:
            raise TransportError(str(exc)) from exc

        return RawResponse(
            status=resp.status_code,
            headers=dict(resp.headers),
            body=resp.content or b"",
        )

    def close(self) -> None:
        self._http.close()
