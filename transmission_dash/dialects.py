"""Wire dialects spoken by Transmission-family daemons.

Both dialects share the JSON envelope ``{"method", "arguments", "tag"}`` and
answer with ``{"result", "arguments", "tag"}``. They differ in method names,
in argument/result key naming, and in how enumerated values (torrent status,
encryption mode) are spelled:

- Modern: snake_case keys and method names, status as a state string,
  encryption ``preferred``/``allowed``/``required``.
- Legacy: the historical mix of camelCase and kebab-case keys, status as an
  integer code, encryption ``preferred``/``tolerated``/``required``.

Each dialect is a :class:`DialectCodec` built from explicit mapping tables
(normalized name -> wire name). The tables are used in both directions so the
client gets identical normalized values whichever dialect served a request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields as dc_fields
from enum import Enum
from typing import Any, Mapping

from .errors import DecodeError
from .models.preferences import DaemonPreferences, EncryptionMode
from .models.torrent import AddTorrentOutcome, Peer, Status, Torrent


class Dialect(str, Enum):
    MODERN = "modern"
    LEGACY = "legacy"


class Operation(str, Enum):
    SESSION_GET = "session-get"
    SESSION_SET = "session-set"
    TORRENT_GET = "torrent-get"
    TORRENT_START = "torrent-start"
    TORRENT_STOP = "torrent-stop"
    TORRENT_REMOVE = "torrent-remove"
    TORRENT_ADD = "torrent-add"


class DialectMismatch(DecodeError):
    """The response does not have the shape this dialect expects."""


# Result strings a daemon returns when it does not understand the method or
# the argument names it was sent.
UNRECOGNIZED_RESULTS = (
    "method name not recognized",
    "no method name",
    "unrecognized argument",
    "unrecognized method",
)

# Daemon run states, independent of how a dialect spells them.
_STATE_TO_STATUS = {
    "stopped": Status.STOPPED,
    "check-wait": Status.VERIFYING,
    "checking": Status.VERIFYING,
    "download-wait": Status.QUEUED,
    "downloading": Status.DOWNLOADING,
    "seed-wait": Status.QUEUED,
    "seeding": Status.SEEDING,
}
_STATUS_TO_STATE = {
    Status.STOPPED: "stopped",
    Status.VERIFYING: "checking",
    Status.QUEUED: "download-wait",
    Status.DOWNLOADING: "downloading",
    Status.SEEDING: "seeding",
    Status.ERROR: "stopped",
}
# Transmission's TR_STAT_LOCAL_ERROR, used when encoding an errored torrent.
_LOCAL_ERROR = 3

# Fields requested by torrent-get, in normalized names.
TORRENT_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "status",
    "progress",
    "rate_download",
    "rate_upload",
    "size_when_done",
    "left_until_done",
    "ratio",
    "eta",
    "download_dir",
    "error_code",
    "error",
    "peers_connected",
    "peers_sending_to_us",
    "peers_getting_from_us",
    "peers",
)

_REQUIRED_TORRENT_FIELDS = ("id", "name", "status", "progress")


@dataclass(frozen=True)
class DialectCodec:
    """Encode/decode strategy for one dialect."""

    dialect: Dialect
    methods: Mapping[Operation, str]
    argument_keys: Mapping[str, str]
    torrent_keys: Mapping[str, str]
    peer_keys: Mapping[str, str]
    session_keys: Mapping[str, str]
    preference_keys: Mapping[str, str]
    add_result_keys: Mapping[str, str]
    states: Mapping[Any, str]
    encryption: Mapping[EncryptionMode, str]

    # -- requests ----------------------------------------------------------

    def encode_request(
        self, operation: Operation, arguments: Mapping[str, Any] | None, tag: int
    ) -> bytes:
        payload: dict[str, Any] = {"method": self.methods[operation], "tag": tag}
        wire_args = self.encode_arguments(operation, arguments or {})
        if wire_args:
            payload["arguments"] = wire_args
        return json.dumps(payload).encode("utf-8")

    def encode_arguments(self, operation: Operation, arguments: Mapping[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in arguments.items():
            if key == "preferences":
                out.update(self.encode_preferences(value))
            elif key == "fields":
                table = (
                    self.torrent_keys
                    if operation is Operation.TORRENT_GET
                    else {**self.session_keys, **self.preference_keys}
                )
                out[self.argument_keys["fields"]] = [table[f] for f in value]
            else:
                out[self.argument_keys[key]] = value
        return out

    # -- responses ---------------------------------------------------------

    @staticmethod
    def decode_envelope(body: bytes) -> tuple[str, dict[str, Any]]:
        """Return ``(result, arguments)`` or raise :class:`DialectMismatch`."""
        try:
            doc = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise DialectMismatch(f"response is not JSON: {exc}") from exc
        if not isinstance(doc, dict):
            raise DialectMismatch("response is not a JSON object")
        result = doc.get("result")
        if not isinstance(result, str):
            raise DialectMismatch("response has no result string")
        arguments = doc.get("arguments", {})
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise DialectMismatch("response arguments are not an object")
        return result, arguments

    def decode_arguments(self, operation: Operation, wire: Mapping[str, Any]) -> dict[str, Any]:
        """Translate a successful response into normalized values.

        Raises:
            DecodeError: a required field is missing or any value has the
                wrong shape.
        """
        try:
            return self._decode_arguments(operation, wire)
        except (TypeError, ValueError, OverflowError) as exc:
            raise DecodeError(f"malformed {operation.value} response: {exc}") from exc

    def _decode_arguments(self, operation: Operation, wire: Mapping[str, Any]) -> dict[str, Any]:
        if operation is Operation.TORRENT_GET:
            raw = wire.get("torrents")
            if not isinstance(raw, list):
                raise DecodeError("torrent-get response has no torrents list")
            return {"torrents": [self.decode_torrent(t) for t in raw]}
        if operation is Operation.SESSION_GET:
            return {
                "version": str(wire.get(self.session_keys["version"]) or "unknown"),
                "rpc_version": _opt_int(wire.get(self.session_keys["rpc_version"])),
                "preferences": self.decode_preferences(wire),
            }
        if operation is Operation.TORRENT_ADD:
            return {"added": self.decode_add_result(wire)}
        return {}

    # -- torrents ----------------------------------------------------------

    def decode_torrent(self, raw: object) -> Torrent:
        if not isinstance(raw, dict):
            raise DecodeError("torrent entry is not an object")
        keys = self.torrent_keys
        for name in _REQUIRED_TORRENT_FIELDS:
            if keys[name] not in raw:
                raise DecodeError(f"torrent is missing required field {keys[name]!r}")

        torrent_id = raw[keys["id"]]
        if not _is_int(torrent_id):
            raise DecodeError(f"torrent id is not an integer: {torrent_id!r}")
        name = raw[keys["name"]]
        if not isinstance(name, str):
            raise DecodeError(f"torrent {torrent_id} name is not a string")
        progress = raw[keys["progress"]]
        if not _is_number(progress):
            raise DecodeError(f"torrent {torrent_id} progress is not a number: {progress!r}")

        status = self.decode_status(raw[keys["status"]])
        error_code = _opt_int(raw.get(keys["error_code"])) or 0
        error_text = raw.get(keys["error"]) or ""
        if error_code != 0:
            status = Status.ERROR
        eta = _opt_int(raw.get(keys["eta"]))
        peers = raw.get(keys["peers"])
        if not isinstance(peers, list):
            peers = []

        return Torrent(
            id=int(torrent_id),
            name=name,
            status=status,
            progress=min(1.0, max(0.0, float(progress))),
            rate_download=_int(raw.get(keys["rate_download"])),
            rate_upload=_int(raw.get(keys["rate_upload"])),
            size_when_done=_int(raw.get(keys["size_when_done"])),
            left_until_done=_int(raw.get(keys["left_until_done"])),
            ratio=_float(raw.get(keys["ratio"])),
            eta=eta if eta is not None and eta >= 0 else None,
            download_dir=str(raw.get(keys["download_dir"]) or ""),
            error=str(error_text) if error_text else None,
            peers_connected=_int(raw.get(keys["peers_connected"])),
            peers_sending_to_us=_int(raw.get(keys["peers_sending_to_us"])),
            peers_getting_from_us=_int(raw.get(keys["peers_getting_from_us"])),
            peers=tuple(self.decode_peer(p) for p in peers),
        )

    def encode_torrent(self, torrent: Torrent) -> dict[str, Any]:
        """Wire representation of a torrent as this dialect's daemon sends it."""
        keys = self.torrent_keys
        return {
            keys["id"]: torrent.id,
            keys["name"]: torrent.name,
            keys["status"]: self.encode_status(torrent.status),
            keys["progress"]: torrent.progress,
            keys["rate_download"]: torrent.rate_download,
            keys["rate_upload"]: torrent.rate_upload,
            keys["size_when_done"]: torrent.size_when_done,
            keys["left_until_done"]: torrent.left_until_done,
            keys["ratio"]: torrent.ratio,
            keys["eta"]: -1 if torrent.eta is None else torrent.eta,
            keys["download_dir"]: torrent.download_dir,
            keys["error_code"]: _LOCAL_ERROR if torrent.status is Status.ERROR else 0,
            keys["error"]: torrent.error or "",
            keys["peers_connected"]: torrent.peers_connected,
            keys["peers_sending_to_us"]: torrent.peers_sending_to_us,
            keys["peers_getting_from_us"]: torrent.peers_getting_from_us,
            keys["peers"]: [self.encode_peer(p) for p in torrent.peers],
        }

    def decode_status(self, value: object) -> Status:
        # bool is an int subclass; never accept it as a status code
        if isinstance(value, bool) or not isinstance(value, (int, str)) or value not in self.states:
            raise DecodeError(f"unknown {self.dialect.value} torrent status {value!r}")
        return _STATE_TO_STATUS[self.states[value]]

    def encode_status(self, status: Status) -> Any:
        state = _STATUS_TO_STATE[status]
        for wire, name in self.states.items():
            if name == state:
                return wire
        raise KeyError(status)

    def decode_peer(self, raw: object) -> Peer:
        if not isinstance(raw, dict):
            raise DecodeError("peer entry is not an object")
        keys = self.peer_keys
        return Peer(
            address=str(raw.get(keys["address"]) or ""),
            client=str(raw.get(keys["client"]) or ""),
            rate_to_client=_int(raw.get(keys["rate_to_client"])),
            rate_to_peer=_int(raw.get(keys["rate_to_peer"])),
            progress=_float(raw.get(keys["progress"])),
            is_encrypted=bool(raw.get(keys["is_encrypted"])),
        )

    def encode_peer(self, peer: Peer) -> dict[str, Any]:
        return {self.peer_keys[f.name]: getattr(peer, f.name) for f in dc_fields(Peer)}

    # -- preferences -------------------------------------------------------

    def decode_preferences(self, wire: Mapping[str, Any]) -> DaemonPreferences:
        defaults = DaemonPreferences()
        values: dict[str, Any] = {}
        for f in dc_fields(DaemonPreferences):
            raw = wire.get(self.preference_keys[f.name])
            if raw is None:
                continue
            if f.name == "encryption":
                values[f.name] = self.decode_encryption(raw)
                continue
            default = getattr(defaults, f.name)
            try:
                if isinstance(default, bool):
                    values[f.name] = bool(raw)
                elif isinstance(default, int):
                    values[f.name] = max(0, int(raw))
                elif isinstance(default, float):
                    values[f.name] = float(raw)
                else:
                    values[f.name] = str(raw)
            except (TypeError, ValueError, OverflowError):
                continue
        return DaemonPreferences(**values)

    def encode_preferences(self, prefs: DaemonPreferences) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in dc_fields(DaemonPreferences):
            value = getattr(prefs, f.name)
            if f.name == "encryption":
                value = self.encryption[value]
            out[self.preference_keys[f.name]] = value
        return out

    def decode_encryption(self, value: object) -> EncryptionMode:
        for mode, wire in self.encryption.items():
            if wire == value:
                return mode
        return EncryptionMode.PREFER

    # -- torrent-add -------------------------------------------------------

    def decode_add_result(self, wire: Mapping[str, Any]) -> AddTorrentOutcome:
        for key, added in (("torrent_added", True), ("torrent_duplicate", False)):
            ref = wire.get(self.add_result_keys[key])
            if isinstance(ref, dict):
                return AddTorrentOutcome(
                    torrent_id=_opt_int(ref.get("id")),
                    name=ref.get("name"),
                    added=added,
                    duplicate=not added,
                )
        return AddTorrentOutcome(torrent_id=None, name=None, added=False, duplicate=False)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _int(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 0


def _opt_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None


def _float(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return 0.0


_TORRENT_WIRE = {
    # normalized: (modern, legacy)
    "id": ("id", "id"),
    "name": ("name", "name"),
    "status": ("status", "status"),
    "progress": ("percent_done", "percentDone"),
    "rate_download": ("rate_download", "rateDownload"),
    "rate_upload": ("rate_upload", "rateUpload"),
    "size_when_done": ("size_when_done", "sizeWhenDone"),
    "left_until_done": ("left_until_done", "leftUntilDone"),
    "ratio": ("upload_ratio", "uploadRatio"),
    "eta": ("eta", "eta"),
    "download_dir": ("download_dir", "downloadDir"),
    "error_code": ("error", "error"),
    "error": ("error_string", "errorString"),
    "peers_connected": ("peers_connected", "peersConnected"),
    "peers_sending_to_us": ("peers_sending_to_us", "peersSendingToUs"),
    "peers_getting_from_us": ("peers_getting_from_us", "peersGettingFromUs"),
    "peers": ("peers", "peers"),
}

_PEER_WIRE = {
    "address": ("address", "address"),
    "client": ("client_name", "clientName"),
    "rate_to_client": ("rate_to_client", "rateToClient"),
    "rate_to_peer": ("rate_to_peer", "rateToPeer"),
    "progress": ("progress", "progress"),
    "is_encrypted": ("is_encrypted", "isEncrypted"),
}

_SESSION_WIRE = {
    "version": ("version", "version"),
    "rpc_version": ("rpc_version", "rpc-version"),
}

# The legacy session keys are kebab-case except for the seed ratio pair.
_PREFERENCE_WIRE = {
    "download_dir": ("download_dir", "download-dir"),
    "start_added_torrents": ("start_added_torrents", "start-added-torrents"),
    "speed_limit_up_enabled": ("speed_limit_up_enabled", "speed-limit-up-enabled"),
    "speed_limit_up": ("speed_limit_up", "speed-limit-up"),
    "speed_limit_down_enabled": ("speed_limit_down_enabled", "speed-limit-down-enabled"),
    "speed_limit_down": ("speed_limit_down", "speed-limit-down"),
    "seed_ratio_limited": ("seed_ratio_limited", "seedRatioLimited"),
    "seed_ratio_limit": ("seed_ratio_limit", "seedRatioLimit"),
    "idle_seeding_limit_enabled": ("idle_seeding_limit_enabled", "idle-seeding-limit-enabled"),
    "idle_seeding_limit": ("idle_seeding_limit", "idle-seeding-limit"),
    "peer_limit_per_torrent": ("peer_limit_per_torrent", "peer-limit-per-torrent"),
    "peer_limit_global": ("peer_limit_global", "peer-limit-global"),
    "encryption": ("encryption", "encryption"),
    "pex_enabled": ("pex_enabled", "pex-enabled"),
    "dht_enabled": ("dht_enabled", "dht-enabled"),
    "lpd_enabled": ("lpd_enabled", "lpd-enabled"),
    "blocklist_enabled": ("blocklist_enabled", "blocklist-enabled"),
    "blocklist_url": ("blocklist_url", "blocklist-url"),
}

_ARGUMENT_WIRE = {
    "ids": ("ids", "ids"),
    "fields": ("fields", "fields"),
    "delete_local_data": ("delete_local_data", "delete-local-data"),
    "filename": ("filename", "filename"),
    "paused": ("paused", "paused"),
}

_ADD_RESULT_WIRE = {
    "torrent_added": ("torrent_added", "torrent-added"),
    "torrent_duplicate": ("torrent_duplicate", "torrent-duplicate"),
}


def _column(table: Mapping[str, tuple[str, str]], index: int) -> dict[str, str]:
    return {name: pair[index] for name, pair in table.items()}


def _build(dialect: Dialect) -> DialectCodec:
    idx = 0 if dialect is Dialect.MODERN else 1
    if dialect is Dialect.MODERN:
        methods = {op: op.value.replace("-", "_") for op in Operation}
        states: dict[Any, str] = {
            "stopped": "stopped",
            "check_wait": "check-wait",
            "checking": "checking",
            "download_wait": "download-wait",
            "downloading": "downloading",
            "seed_wait": "seed-wait",
            "seeding": "seeding",
        }
        encryption = {
            EncryptionMode.PREFER: "preferred",
            EncryptionMode.ALLOW: "allowed",
            EncryptionMode.REQUIRE: "required",
        }
    else:
        methods = {op: op.value for op in Operation}
        states = {
            0: "stopped",
            1: "check-wait",
            2: "checking",
            3: "download-wait",
            4: "downloading",
            5: "seed-wait",
            6: "seeding",
        }
        encryption = {
            EncryptionMode.PREFER: "preferred",
            EncryptionMode.ALLOW: "tolerated",
            EncryptionMode.REQUIRE: "required",
        }
    return DialectCodec(
        dialect=dialect,
        methods=methods,
        argument_keys=_column(_ARGUMENT_WIRE, idx),
        torrent_keys=_column(_TORRENT_WIRE, idx),
        peer_keys=_column(_PEER_WIRE, idx),
        session_keys=_column(_SESSION_WIRE, idx),
        preference_keys=_column(_PREFERENCE_WIRE, idx),
        add_result_keys=_column(_ADD_RESULT_WIRE, idx),
        states=states,
        encryption=encryption,
    )


MODERN = _build(Dialect.MODERN)
LEGACY = _build(Dialect.LEGACY)


def codec_for(dialect: Dialect) -> DialectCodec:
    return MODERN if dialect is Dialect.MODERN else LEGACY


def is_unrecognized(result: str) -> bool:
    """True when a result string means the daemon did not understand the call."""
    lowered = result.strip().lower()
    return any(sig in lowered for sig in UNRECOGNIZED_RESULTS)
