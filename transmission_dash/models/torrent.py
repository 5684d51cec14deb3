"""Normalized torrent and peer dataclasses shared by both wire dialects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Status(str, Enum):
    STOPPED = "stopped"
    VERIFYING = "verifying"
    DOWNLOADING = "downloading"
    SEEDING = "seeding"
    QUEUED = "queued"
    ERROR = "error"


@dataclass(frozen=True)
class Peer:
    address: str
    client: str
    rate_to_client: int
    rate_to_peer: int
    progress: float
    is_encrypted: bool


@dataclass(frozen=True)
class Torrent:
    """One download item as the UI sees it.

    `id` is stable across polls and is what selection is keyed on. `eta` is
    None when the daemon reports it as unknown or infinite.
    """

    id: int
    name: str
    status: Status
    progress: float
    rate_download: int = 0
    rate_upload: int = 0
    size_when_done: int = 0
    left_until_done: int = 0
    ratio: float = 0.0
    eta: int | None = None
    download_dir: str = ""
    error: str | None = None
    peers_connected: int = 0
    peers_sending_to_us: int = 0
    peers_getting_from_us: int = 0
    peers: tuple[Peer, ...] = ()


@dataclass(frozen=True)
class AddTorrentOutcome:
    torrent_id: int | None
    name: str | None
    added: bool
    duplicate: bool
