"""Anti-CSRF session token handling.

The daemon answers HTTP 409 with a fresh `X-Transmission-Session-Id` header
whenever the token it receives is missing or stale. The first request of a
connection is always rejected that way, so that case is routine.
"""

from __future__ import annotations

import logging

from .errors import AuthenticationError, HttpStatusError, SessionError
from .transport import HttpTransport, RawResponse

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Transmission-Session-Id"
_CONFLICT = 409
_UNAUTHORIZED = 401


class SessionNegotiator:
    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport
        self.token = ""

    def reset(self) -> None:
        self.token = ""

    def send(self, body: bytes, timeout: float | None = None) -> RawResponse:
        """Send `body`, retrying once if the daemon issues a new token."""
        resp = self._send_with_token(body, timeout)
        if resp.status == _CONFLICT:
            self._adopt_token(resp)
            resp = self._send_with_token(body, timeout)
            if resp.status == _CONFLICT:
                logger.warning("Daemon rejected a freshly issued session token")
                raise SessionError("session token rejected twice in a row")
        return self._check_status(resp)

    def _send_with_token(self, body: bytes, timeout: float | None) -> RawResponse:
        headers = {SESSION_HEADER: self.token} if self.token else {}
        return self.transport.send(body, headers=headers, timeout=timeout)

    def _adopt_token(self, resp: RawResponse) -> None:
        new_token = resp.header(SESSION_HEADER)
        if not new_token:
            raise SessionError("daemon demanded a session token but did not provide one")
        if self.token:
            logger.info("Session token rotated by daemon")
        else:
            logger.debug("Acquired session token")
        self.token = new_token

    @staticmethod
    def _check_status(resp: RawResponse) -> RawResponse:
        if resp.status == _UNAUTHORIZED:
            raise AuthenticationError()
        if not resp.ok:
            raise HttpStatusError(resp.status)
        return resp
