"""Session summary and the immutable snapshot produced by each poll."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from .torrent import Status, Torrent

_ACTIVE = (Status.DOWNLOADING, Status.SEEDING, Status.VERIFYING)


@dataclass(frozen=True)
class SessionInfo:
    name: str = "Transmission"
    version: str = "unknown"
    rpc_version: int | None = None
    download_rate: int = 0
    upload_rate: int = 0
    counts: dict[Status, int] = field(default_factory=dict)

    @property
    def active(self) -> int:
        return sum(self.counts.get(s, 0) for s in _ACTIVE)

    @property
    def paused(self) -> int:
        return self.counts.get(Status.STOPPED, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @classmethod
    def from_torrents(
        cls,
        torrents: Iterable[Torrent],
        version: str = "unknown",
        rpc_version: int | None = None,
    ) -> "SessionInfo":
        """Build the aggregates from the same torrents the snapshot holds."""
        items = list(torrents)
        counts = Counter(t.status for t in items)
        return cls(
            version=version,
            rpc_version=rpc_version,
            download_rate=sum(t.rate_download for t in items),
            upload_rate=sum(t.rate_upload for t in items),
            counts={s: counts.get(s, 0) for s in Status},
        )


@dataclass(frozen=True)
class Snapshot:
    session: SessionInfo
    torrents: tuple[Torrent, ...] = ()

    @classmethod
    def build(
        cls,
        torrents: Iterable[Torrent],
        version: str = "unknown",
        rpc_version: int | None = None,
    ) -> "Snapshot":
        items = tuple(torrents)
        return cls(
            session=SessionInfo.from_torrents(items, version, rpc_version),
            torrents=items,
        )

    def find(self, torrent_id: int) -> Torrent | None:
        for t in self.torrents:
            if t.id == torrent_id:
                return t
        return None
