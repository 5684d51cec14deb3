"""Transmission RPC client.

`RpcClient.call` speaks whichever wire dialect the daemon understands. It
starts with the modern dialect and, the first time a response shows the
daemon does not understand it, switches this connection to the legacy
dialect for good and re-issues the same operation. The typed helpers on top
(`fetch_snapshot`, `remove_torrents`, ...) only ever see normalized values.

The client is not thread-safe; the worker is its only caller.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Iterable, Mapping

from .dialects import (
    TORRENT_FIELDS,
    Dialect,
    DialectMismatch,
    Operation,
    codec_for,
    is_unrecognized,
)
from .errors import CommandError, DecodeError, DialectError
from .models.preferences import PREFERENCE_FIELDS, DaemonPreferences
from .models.snapshot import Snapshot
from .models.torrent import AddTorrentOutcome
from .session import SessionNegotiator

logger = logging.getLogger(__name__)


class _Unrecognized(DialectMismatch):
    pass


class RpcClient:
    def __init__(self, negotiator: SessionNegotiator) -> None:
        self.negotiator = negotiator
        self.dialect = Dialect.MODERN
        self._confirmed = False
        self._fell_back = False
        self._tags = itertools.count(1)

    @property
    def confirmed(self) -> bool:
        """True once the daemon has answered in the current dialect."""
        return self._confirmed

    def reset(self) -> None:
        """Forget the token and the dialect decision (reconnect)."""
        self.negotiator.reset()
        self.dialect = Dialect.MODERN
        self._confirmed = False
        self._fell_back = False

    def call(self, operation: Operation, arguments: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Perform one logical operation and return normalized arguments.

        Raises:
            TransportError, SessionError: from the layers below.
            DialectError: neither dialect is understood by the daemon.
            CommandError: the daemon refused the operation.
            DecodeError: the response is malformed.
        """
        try:
            return self._exchange(operation, arguments)
        except DialectMismatch as exc:
            if self._confirmed:
                if isinstance(exc, _Unrecognized):
                    raise CommandError(operation.value, str(exc)) from exc
                raise DecodeError(str(exc)) from exc
            if self._fell_back or self.dialect is Dialect.LEGACY:
                raise DialectError(f"daemon speaks neither dialect: {exc}") from exc
            self._downgrade(exc)

        try:
            return self._exchange(operation, arguments)
        except DialectMismatch as exc:
            if self._confirmed:
                raise DecodeError(str(exc)) from exc
            raise DialectError(f"daemon speaks neither dialect: {exc}") from exc

    def _downgrade(self, reason: Exception) -> None:
        logger.info("Daemon does not speak the modern dialect (%s); using legacy", reason)
        self.dialect = Dialect.LEGACY
        self._fell_back = True

    def _exchange(self, operation: Operation, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
        codec = codec_for(self.dialect)
        body = codec.encode_request(operation, arguments, next(self._tags))
        resp = self.negotiator.send(body)
        result, wire_args = codec.decode_envelope(resp.body)

        if result != "success":
            if is_unrecognized(result):
                raise _Unrecognized(result)
            # A well-formed refusal still proves the dialect is understood.
            self._confirmed = True
            raise CommandError(operation.value, result)

        try:
            decoded = codec.decode_arguments(operation, wire_args)
        except DecodeError as exc:
            if not self._confirmed and self.dialect is Dialect.MODERN:
                raise DialectMismatch(str(exc)) from exc
            raise
        self._confirmed = True
        return decoded

    # -- typed helpers -----------------------------------------------------

    def fetch_snapshot(self) -> Snapshot:
        session = self.call(Operation.SESSION_GET, {"fields": ["version", "rpc_version"]})
        torrents = self.call(Operation.TORRENT_GET, {"fields": list(TORRENT_FIELDS)})
        return Snapshot.build(
            torrents["torrents"],
            version=session["version"],
            rpc_version=session["rpc_version"],
        )

    def start_torrents(self, ids: Iterable[int]) -> None:
        id_list = list(ids)
        if not id_list:
            return
        self.call(Operation.TORRENT_START, {"ids": id_list})

    def stop_torrents(self, ids: Iterable[int]) -> None:
        id_list = list(ids)
        if not id_list:
            return
        self.call(Operation.TORRENT_STOP, {"ids": id_list})

    def remove_torrents(self, ids: Iterable[int], delete_local_data: bool) -> None:
        id_list = list(ids)
        if not id_list:
            return
        self.call(
            Operation.TORRENT_REMOVE,
            {"ids": id_list, "delete_local_data": bool(delete_local_data)},
        )

    def add_magnet(self, magnet: str) -> AddTorrentOutcome:
        result = self.call(Operation.TORRENT_ADD, {"filename": magnet})
        return result["added"]

    def fetch_preferences(self) -> DaemonPreferences:
        result = self.call(Operation.SESSION_GET, {"fields": list(PREFERENCE_FIELDS)})
        return result["preferences"]

    def update_preferences(self, prefs: DaemonPreferences) -> None:
        self.call(Operation.SESSION_SET, {"preferences": prefs})
