"""Error taxonomy for the RPC stack.

Everything below the worker raises one of these; the worker converts them
into an :class:`ErrorKind` plus a message so the UI never handles raw
transport or protocol exceptions.
"""

from __future__ import annotations

from enum import Enum


class RpcError(Exception):
    """Base class for every failure raised by the RPC stack."""


class TransportError(RpcError):
    """The HTTP exchange itself failed."""


class RequestTimeout(TransportError):
    pass


class ConnectionFailed(TransportError):
    pass


class VerificationError(TransportError):
    """TLS verification was requested and failed."""


class AuthenticationError(TransportError):
    def __init__(self) -> None:
        super().__init__("authentication failed")


class HttpStatusError(TransportError):
    def __init__(self, status: int) -> None:
        super().__init__(f"unexpected http status {status}")
        self.status = status


class SessionError(RpcError):
    """The daemon rejected the session token twice in a row."""


class DialectError(RpcError):
    """The daemon speaks neither wire dialect."""


class DecodeError(RpcError):
    """A response was malformed or lacked a required field."""


class CommandError(RpcError):
    """The daemon answered with a result other than ``success``."""

    def __init__(self, operation: str, result: str) -> None:
        super().__init__(f"{operation}: {result}")
        self.operation = operation
        self.result = result


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    SESSION = "session"
    DIALECT = "dialect"
    DECODE = "decode"
    COMMAND = "command"


_KINDS: tuple[tuple[type[RpcError], ErrorKind], ...] = (
    (TransportError, ErrorKind.TRANSPORT),
    (SessionError, ErrorKind.SESSION),
    (DialectError, ErrorKind.DIALECT),
    (DecodeError, ErrorKind.DECODE),
    (CommandError, ErrorKind.COMMAND),
)


def classify(exc: BaseException) -> ErrorKind:
    """Map an exception onto the normalized taxonomy.

    Anything that is not an :class:`RpcError` is reported as a transport
    problem: it is transient from the UI's point of view.
    """
    for cls, kind in _KINDS:
        if isinstance(exc, cls):
            return kind
    return ErrorKind.TRANSPORT
