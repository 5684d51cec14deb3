"""Daemon-wide preferences editable from the dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EncryptionMode(str, Enum):
    PREFER = "prefer"
    ALLOW = "allow"
    REQUIRE = "require"

    @property
    def label(self) -> str:
        return f"{self.value.capitalize()} encryption"


@dataclass(frozen=True)
class DaemonPreferences:
    download_dir: str = ""
    start_added_torrents: bool = True
    speed_limit_up_enabled: bool = False
    speed_limit_up: int = 0
    speed_limit_down_enabled: bool = False
    speed_limit_down: int = 0
    seed_ratio_limited: bool = False
    seed_ratio_limit: float = 2.0
    idle_seeding_limit_enabled: bool = False
    idle_seeding_limit: int = 30
    peer_limit_per_torrent: int = 50
    peer_limit_global: int = 200
    encryption: EncryptionMode = EncryptionMode.PREFER
    pex_enabled: bool = True
    dht_enabled: bool = True
    lpd_enabled: bool = True
    blocklist_enabled: bool = False
    blocklist_url: str = ""


# Order of the rows in the preferences pane.
PREFERENCE_FIELDS: tuple[str, ...] = (
    "download_dir",
    "start_added_torrents",
    "speed_limit_down_enabled",
    "speed_limit_down",
    "speed_limit_up_enabled",
    "speed_limit_up",
    "seed_ratio_limited",
    "seed_ratio_limit",
    "idle_seeding_limit_enabled",
    "idle_seeding_limit",
    "peer_limit_per_torrent",
    "peer_limit_global",
    "encryption",
    "pex_enabled",
    "dht_enabled",
    "lpd_enabled",
    "blocklist_enabled",
    "blocklist_url",
)
