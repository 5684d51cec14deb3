"""UI state owned by the coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .messages import Level
from .preferences import DaemonPreferences
from .snapshot import Snapshot

STATUS_TTL_S = {
    Level.INFO: 4.0,
    Level.SUCCESS: 5.0,
    Level.WARNING: 6.0,
    Level.ERROR: 8.0,
}
DELETE_ARM_WINDOW_S = 2.0


class Mode(str, Enum):
    NORMAL = "normal"
    FILTER = "filter"
    PROMPT = "prompt"
    CONFIRM = "confirm"
    HELP = "help"
    PREFERENCES = "preferences"


@dataclass(frozen=True)
class ConfirmTarget:
    torrent_id: int
    name: str
    delete_data: bool = False


@dataclass(frozen=True)
class StatusMessage:
    text: str
    level: Level
    expires_at: float | None = None


@dataclass
class PreferencesPane:
    draft: DaemonPreferences | None = None
    row: int = 0
    editing: bool = False
    loading: bool = True
    saving: bool = False
    message: str | None = None


@dataclass
class UIState:
    mode: Mode = Mode.NORMAL
    snapshot: Snapshot | None = None
    filter_text: str = ""
    # Indices into snapshot.torrents that pass the filter, in display order.
    visible: list[int] = field(default_factory=list)
    selected: int | None = None
    selected_id: int | None = None
    pending_focus: int | None = None
    buffer: str = ""
    confirm: ConfirmTarget | None = None
    status: StatusMessage | None = None
    banner: str | None = None
    delete_armed_until: float | None = None
    delete_armed_with_data: bool = False
    pending_manual_refresh: bool = False
    preferences: PreferencesPane = field(default_factory=PreferencesPane)
    should_quit: bool = False
