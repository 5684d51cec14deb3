"""Messages exchanged between the UI coordinator and the RPC worker.

Commands travel UI -> worker, outcomes travel worker -> UI. Both are plain
frozen dataclasses so nothing mutable crosses the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..errors import ErrorKind
from .preferences import DaemonPreferences
from .snapshot import Snapshot


@dataclass(frozen=True)
class Refresh:
    pass


@dataclass(frozen=True)
class Resume:
    torrent_id: int
    name: str = ""


@dataclass(frozen=True)
class Pause:
    torrent_id: int
    name: str = ""


@dataclass(frozen=True)
class Remove:
    torrent_id: int
    name: str = ""
    delete_data: bool = False


@dataclass(frozen=True)
class AddMagnet:
    uri: str


@dataclass(frozen=True)
class FetchPreferences:
    pass


@dataclass(frozen=True)
class UpdatePreferences:
    preferences: DaemonPreferences


@dataclass(frozen=True)
class Reconnect:
    pass


@dataclass(frozen=True)
class Poll:
    """Internal marker for a scheduled poll; never submitted by the UI."""


Command = Union[
    Refresh,
    Resume,
    Pause,
    Remove,
    AddMagnet,
    FetchPreferences,
    UpdatePreferences,
    Reconnect,
]


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    text: str
    level: Level = Level.INFO


@dataclass(frozen=True)
class SnapshotReady:
    snapshot: Snapshot
    notice: Notice | None = None
    focus_id: int | None = None
    source: Command | Poll | None = None


@dataclass(frozen=True)
class PreferencesReady:
    preferences: DaemonPreferences
    notice: Notice | None = None


@dataclass(frozen=True)
class NoticeOnly:
    """A command that finished without touching the daemon."""

    notice: Notice
    source: Command | None = None


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    source: Command | Poll | None = None
    fatal: bool = False


Outcome = Union[SnapshotReady, PreferencesReady, NoticeOnly, Failure]
