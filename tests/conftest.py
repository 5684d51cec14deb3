"""Shared test fixtures and fake daemons."""

from __future__ import annotations

import json
from typing import Any

import pytest

from transmission_dash.dialects import Dialect, Operation, codec_for
from transmission_dash.models.preferences import DaemonPreferences
from transmission_dash.models.torrent import Status, Torrent
from transmission_dash.rpc import RpcClient
from transmission_dash.session import SESSION_HEADER, SessionNegotiator
from transmission_dash.transport import RawResponse


def make_torrent(torrent_id: int, name: str, status: Status = Status.DOWNLOADING, **kw: Any) -> Torrent:
    kw.setdefault("progress", 0.5)
    return Torrent(id=torrent_id, name=name, status=status, **kw)


class ScriptedTransport:
    """Transport returning canned responses in order and recording headers."""

    def __init__(self, responses: list[RawResponse]) -> None:
        self.responses = list(responses)
        self.sent: list[dict[str, str]] = []

    def send(self, body: bytes, headers=None, timeout=None) -> RawResponse:
        self.sent.append(dict(headers or {}))
        return self.responses.pop(0)


class FakeDaemon:
    """In-memory daemon that speaks exactly one wire dialect.

    Acts as a transport: the session negotiator calls `send` directly.
    Requests for methods of the other dialect are answered with the
    daemon's unknown-method result.
    """

    def __init__(
        self,
        dialect: Dialect = Dialect.MODERN,
        torrents: list[Torrent] | None = None,
        token: str = "tok-1",
        version: str = "4.0.6",
        rpc_version: int = 17,
    ) -> None:
        self.codec = codec_for(dialect)
        self.torrents = list(torrents or [])
        self.token = token
        self.version = version
        self.rpc_version = rpc_version
        self.preferences = DaemonPreferences(download_dir="/downloads")
        self.methods: list[str] = []
        self.requests: list[dict[str, Any]] = []
        self.removed: list[tuple[list[int], bool]] = []
        self.started: list[int] = []
        self.stopped: list[int] = []
        self.scripted: list[RawResponse] = []
        self._magnets: dict[str, int] = {}
        self._next_id = 100

    def send(self, body: bytes, headers=None, timeout=None) -> RawResponse:
        if self.scripted:
            return self.scripted.pop(0)
        headers = headers or {}
        if headers.get(SESSION_HEADER) != self.token:
            return RawResponse(409, {SESSION_HEADER: self.token}, b"")
        doc = json.loads(body)
        self.requests.append(doc)
        self.methods.append(doc["method"])
        ops = {name: op for op, name in self.codec.methods.items()}
        op = ops.get(doc["method"])
        if op is None:
            return self._reply("method name not recognized")
        return self._handle(op, doc.get("arguments", {}))

    def _reply(self, result: str, arguments: dict[str, Any] | None = None) -> RawResponse:
        payload = {"result": result, "arguments": arguments or {}}
        return RawResponse(200, {}, json.dumps(payload).encode("utf-8"))

    def _handle(self, op: Operation, args: dict[str, Any]) -> RawResponse:
        codec = self.codec
        keys = codec.argument_keys
        if op is Operation.SESSION_GET:
            out = {
                codec.session_keys["version"]: self.version,
                codec.session_keys["rpc_version"]: self.rpc_version,
            }
            out.update(codec.encode_preferences(self.preferences))
            return self._reply("success", out)
        if op is Operation.SESSION_SET:
            self.preferences = codec.decode_preferences(args)
            return self._reply("success")
        if op is Operation.TORRENT_GET:
            return self._reply("success", {"torrents": [codec.encode_torrent(t) for t in self.torrents]})
        if op is Operation.TORRENT_START:
            self.started.extend(args[keys["ids"]])
            return self._reply("success")
        if op is Operation.TORRENT_STOP:
            self.stopped.extend(args[keys["ids"]])
            return self._reply("success")
        if op is Operation.TORRENT_REMOVE:
            ids = list(args[keys["ids"]])
            self.removed.append((ids, bool(args.get(keys["delete_local_data"], False))))
            self.torrents = [t for t in self.torrents if t.id not in ids]
            return self._reply("success")
        if op is Operation.TORRENT_ADD:
            return self._add(args[keys["filename"]])
        return self._reply("success")

    def _add(self, magnet: str) -> RawResponse:
        if not magnet.startswith("magnet:"):
            return self._reply("invalid or corrupt torrent file")
        name = magnet.split("dn=", 1)[1] if "dn=" in magnet else "magnet"
        keys = self.codec.add_result_keys
        if magnet in self._magnets:
            ref = {"id": self._magnets[magnet], "name": name}
            return self._reply("success", {keys["torrent_duplicate"]: ref})
        torrent_id = self._next_id
        self._next_id += 1
        self._magnets[magnet] = torrent_id
        self.torrents.append(Torrent(id=torrent_id, name=name, status=Status.QUEUED, progress=0.0))
        return self._reply("success", {keys["torrent_added"]: {"id": torrent_id, "name": name}})


class UnknownMethodDaemon(FakeDaemon):
    """Daemon that understands neither dialect."""

    def _handle(self, op: Operation, args: dict[str, Any]) -> RawResponse:
        return self._reply("method name not recognized")


def client_for(daemon: FakeDaemon) -> RpcClient:
    return RpcClient(SessionNegotiator(daemon))


@pytest.fixture
def sample_torrents() -> list[Torrent]:
    return [
        make_torrent(1, "ubuntu.iso", Status.DOWNLOADING, rate_download=2048, eta=120),
        make_torrent(2, "debian.iso", Status.SEEDING, progress=1.0, rate_upload=1024),
        make_torrent(3, "arch.iso", Status.STOPPED, progress=0.1),
        make_torrent(7, "fedora.iso", Status.QUEUED, progress=0.0),
    ]
