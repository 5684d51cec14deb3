"""Modal UI state machine.

The coordinator consumes key presses, pasted text, timer ticks and worker
outcomes, mutates :class:`UIState`, and returns the commands the worker
should run. It performs no I/O of its own, which keeps every transition
testable without a terminal or a daemon.

Keys arrive as single printable characters (``"j"``, ``"G"``, ``"/"``) or
as named keys (``"enter"``, ``"escape"``, ``"backspace"``, ``"space"``,
``"up"``, ``"down"``, ``"left"``, ``"right"``, ``"home"``, ``"end"``,
``"ctrl+c"``, ``"ctrl+d"``, ``"ctrl+u"``).
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable

from .models.messages import (
    AddMagnet,
    Command,
    Failure,
    FetchPreferences,
    Level,
    Notice,
    NoticeOnly,
    Outcome,
    Pause,
    PreferencesReady,
    Reconnect,
    Refresh,
    Remove,
    Resume,
    SnapshotReady,
    UpdatePreferences,
)
from .models.preferences import PREFERENCE_FIELDS, DaemonPreferences, EncryptionMode
from .models.torrent import Torrent
from .models.ui_state import (
    DELETE_ARM_WINDOW_S,
    STATUS_TTL_S,
    ConfirmTarget,
    Mode,
    PreferencesPane,
    StatusMessage,
    UIState,
)

logger = logging.getLogger(__name__)

PAGE_STEP = 5
_ENCRYPTION_ORDER = list(EncryptionMode)

KeyHandler = Callable[[str, float], list[Command]]


def _text_char(key: str) -> str | None:
    """Character a key contributes to a text buffer, if any."""
    if key == "space":
        return " "
    if len(key) == 1 and key.isprintable():
        return key
    return None


class Coordinator:
    def __init__(self, state: UIState | None = None) -> None:
        self.state = state or UIState()
        self._handlers: dict[Mode, KeyHandler] = {
            Mode.NORMAL: self._normal_key,
            Mode.FILTER: self._filter_key,
            Mode.PROMPT: self._prompt_key,
            Mode.CONFIRM: self._confirm_key,
            Mode.HELP: self._help_key,
            Mode.PREFERENCES: self._preferences_key,
        }

    # -- inputs ------------------------------------------------------------

    def handle_key(self, key: str, now: float | None = None) -> list[Command]:
        now = time.monotonic() if now is None else now
        if key == "ctrl+c":
            self.state.should_quit = True
            return []
        return self._handlers[self.state.mode](key, now)

    def handle_paste(self, text: str, now: float | None = None) -> list[Command]:
        st = self.state
        if st.mode in (Mode.FILTER, Mode.PROMPT):
            st.buffer += text
        elif st.mode is Mode.NORMAL:
            self._disarm_delete()
            st.buffer = text
            st.mode = Mode.PROMPT
        elif st.mode is Mode.PREFERENCES and st.preferences.editing:
            st.buffer += text
        return []

    def tick(self, now: float | None = None) -> None:
        now = time.monotonic() if now is None else now
        st = self.state
        if st.status and st.status.expires_at is not None and now >= st.status.expires_at:
            st.status = None
        if st.delete_armed_until is not None and now >= st.delete_armed_until:
            self._disarm_delete()

    def apply(self, outcome: Outcome, now: float | None = None) -> None:
        """Fold a worker outcome into the state; valid in every mode."""
        now = time.monotonic() if now is None else now
        st = self.state
        if isinstance(outcome, SnapshotReady):
            first = st.snapshot is None
            if outcome.focus_id is not None:
                st.pending_focus = outcome.focus_id
            st.snapshot = outcome.snapshot
            st.banner = None
            self._rebuild_visible()
            if outcome.notice is not None:
                self._set_status(outcome.notice, now)
            elif st.pending_manual_refresh or first:
                count = len(outcome.snapshot.torrents)
                self._set_status(Notice(f"Refreshed {count} torrents", Level.SUCCESS), now)
            st.pending_manual_refresh = False
        elif isinstance(outcome, PreferencesReady):
            pane = st.preferences
            pane.draft = outcome.preferences
            pane.loading = False
            pane.saving = False
            if pane.editing:
                pane.editing = False
                st.buffer = ""
            pane.message = None
            if outcome.notice is not None:
                self._set_status(outcome.notice, now)
        elif isinstance(outcome, NoticeOnly):
            self._set_status(outcome.notice, now)
        elif isinstance(outcome, Failure):
            st.pending_manual_refresh = False
            st.preferences.saving = False
            st.preferences.loading = False
            if outcome.fatal:
                st.banner = outcome.message
            if st.mode is Mode.PREFERENCES and isinstance(
                outcome.source, (FetchPreferences, UpdatePreferences)
            ):
                st.preferences.message = outcome.message
            self._set_status(Notice(outcome.message, Level.ERROR), now)
        else:
            logger.warning("Ignoring unknown outcome %r", outcome)

    # -- selection ---------------------------------------------------------

    def current_torrent(self) -> Torrent | None:
        st = self.state
        if st.snapshot is None or st.selected is None:
            return None
        if not 0 <= st.selected < len(st.visible):
            return None
        return st.snapshot.torrents[st.visible[st.selected]]

    def visible_torrents(self) -> list[Torrent]:
        st = self.state
        if st.snapshot is None:
            return []
        return [st.snapshot.torrents[i] for i in st.visible]

    def _rebuild_visible(self) -> None:
        """Re-filter and keep focus on the same torrent id when it survives."""
        st = self.state
        snapshot = st.snapshot
        needle = st.filter_text.lower()
        if snapshot is None:
            st.visible = []
        else:
            st.visible = [
                i for i, t in enumerate(snapshot.torrents) if needle in t.name.lower()
            ]
        if not st.visible or snapshot is None:
            st.selected = None
            st.selected_id = None
            return

        target = st.pending_focus if st.pending_focus is not None else st.selected_id
        st.pending_focus = None
        if target is not None:
            for pos, idx in enumerate(st.visible):
                if snapshot.torrents[idx].id == target:
                    st.selected = pos
                    st.selected_id = target
                    return

        pos = min(st.selected or 0, len(st.visible) - 1)
        st.selected = pos
        st.selected_id = snapshot.torrents[st.visible[pos]].id

    def _move(self, delta: int) -> None:
        st = self.state
        if not st.visible:
            return
        current = st.selected or 0
        self._select(max(0, min(len(st.visible) - 1, current + delta)))

    def _select(self, pos: int) -> None:
        st = self.state
        if not st.visible or st.snapshot is None:
            return
        st.selected = pos
        st.selected_id = st.snapshot.torrents[st.visible[pos]].id

    # -- status ------------------------------------------------------------

    def _set_status(self, notice: Notice, now: float) -> None:
        self.state.status = StatusMessage(
            text=notice.text,
            level=notice.level,
            expires_at=now + STATUS_TTL_S[notice.level],
        )

    def _disarm_delete(self) -> None:
        self.state.delete_armed_until = None
        self.state.delete_armed_with_data = False

    # -- per-mode key handlers --------------------------------------------

    def _normal_key(self, key: str, now: float) -> list[Command]:
        st = self.state
        if key not in ("d", "D"):
            self._disarm_delete()

        if key == "q":
            st.should_quit = True
        elif key in ("j", "down"):
            self._move(1)
        elif key in ("k", "up"):
            self._move(-1)
        elif key == "ctrl+d":
            self._move(PAGE_STEP)
        elif key == "ctrl+u":
            self._move(-PAGE_STEP)
        elif key in ("g", "home"):
            self._select(0)
        elif key in ("G", "end"):
            self._select(len(st.visible) - 1)
        elif key == "/":
            st.buffer = st.filter_text
            st.mode = Mode.FILTER
        elif key == "a":
            st.buffer = ""
            st.mode = Mode.PROMPT
        elif key == "?":
            st.mode = Mode.HELP
        elif key == "escape":
            if st.filter_text:
                st.filter_text = ""
                self._rebuild_visible()
        elif key == "R":
            st.pending_manual_refresh = True
            self._set_status(Notice("Refreshing…"), now)
            return [Refresh()]
        elif key == "C":
            self._set_status(Notice("Reconnecting…"), now)
            return [Reconnect()]
        elif key == "r":
            return self._on_selected(Resume, "Resuming", "resume", now)
        elif key == "p":
            return self._on_selected(Pause, "Pausing", "pause", now)
        elif key in ("d", "D"):
            self._arm_or_confirm(with_data=key == "D", now=now)
        elif key == "o":
            return self._open_preferences()
        return []

    def _on_selected(
        self, factory: Callable[[int, str], Command], verb: str, noun: str, now: float
    ) -> list[Command]:
        torrent = self.current_torrent()
        if torrent is None:
            self._set_status(Notice(f"No torrent selected; cannot {noun}", Level.WARNING), now)
            return []
        self._set_status(Notice(f"{verb} {torrent.name}…"), now)
        return [factory(torrent.id, torrent.name)]

    def _arm_or_confirm(self, with_data: bool, now: float) -> None:
        st = self.state
        armed = (
            st.delete_armed_until is not None
            and now < st.delete_armed_until
            and st.delete_armed_with_data == with_data
        )
        if not armed:
            st.delete_armed_until = now + DELETE_ARM_WINDOW_S
            st.delete_armed_with_data = with_data
            key = "D" if with_data else "d"
            self._set_status(Notice(f"Press {key} again to delete the selected torrent"), now)
            return
        self._disarm_delete()
        torrent = self.current_torrent()
        if torrent is None:
            self._set_status(Notice("No torrent selected to delete", Level.ERROR), now)
            return
        st.confirm = ConfirmTarget(torrent.id, torrent.name, with_data)
        st.mode = Mode.CONFIRM

    def _filter_key(self, key: str, now: float) -> list[Command]:
        st = self.state
        if key == "enter":
            st.filter_text = st.buffer.strip()
            st.buffer = ""
            st.mode = Mode.NORMAL
            self._rebuild_visible()
        elif key == "escape":
            st.buffer = ""
            st.mode = Mode.NORMAL
        elif key == "backspace":
            st.buffer = st.buffer[:-1]
        else:
            ch = _text_char(key)
            if ch is not None:
                st.buffer += ch
        return []

    def _prompt_key(self, key: str, now: float) -> list[Command]:
        st = self.state
        if key == "enter":
            value = st.buffer.strip()
            st.buffer = ""
            st.mode = Mode.NORMAL
            if value:
                self._set_status(Notice("Submitting magnet…"), now)
                return [AddMagnet(value)]
        elif key == "escape":
            st.buffer = ""
            st.mode = Mode.NORMAL
        elif key == "backspace":
            st.buffer = st.buffer[:-1]
        else:
            ch = _text_char(key)
            if ch is not None:
                st.buffer += ch
        return []

    def _confirm_key(self, key: str, now: float) -> list[Command]:
        st = self.state
        target = st.confirm
        if target is None:
            st.mode = Mode.NORMAL
            return []
        if key in ("y", "enter"):
            st.confirm = None
            st.mode = Mode.NORMAL
            self._set_status(Notice(f"Removing {target.name}…"), now)
            return [Remove(target.torrent_id, target.name, target.delete_data)]
        if key in ("n", "escape"):
            st.confirm = None
            st.mode = Mode.NORMAL
            self._set_status(Notice("Deletion cancelled"), now)
        elif key == "t":
            st.confirm = replace(target, delete_data=not target.delete_data)
        return []

    def _help_key(self, key: str, now: float) -> list[Command]:
        if key in ("?", "escape", "enter", "q"):
            self.state.mode = Mode.NORMAL
        return []

    # -- preferences -------------------------------------------------------

    def _open_preferences(self) -> list[Command]:
        st = self.state
        pane = st.preferences
        st.preferences = PreferencesPane(
            draft=pane.draft, row=pane.row, loading=pane.draft is None
        )
        st.mode = Mode.PREFERENCES
        return [FetchPreferences()]

    def _preferences_key(self, key: str, now: float) -> list[Command]:
        st = self.state
        pane = st.preferences
        if pane.editing:
            return self._preferences_edit_key(key, now)
        if key in ("escape", "q"):
            st.mode = Mode.NORMAL
            return []
        if key in ("r", "R"):
            pane.loading = True
            pane.message = None
            return [FetchPreferences()]
        if pane.draft is None:
            return []

        field = PREFERENCE_FIELDS[pane.row]
        value = getattr(pane.draft, field)
        if key in ("j", "down"):
            pane.row = min(len(PREFERENCE_FIELDS) - 1, pane.row + 1)
        elif key in ("k", "up"):
            pane.row = max(0, pane.row - 1)
        elif key in ("space", "enter") and isinstance(value, bool):
            pane.draft = replace(pane.draft, **{field: not value})
        elif key in ("left", "right", "enter", "space") and isinstance(value, EncryptionMode):
            step = -1 if key == "left" else 1
            idx = (_ENCRYPTION_ORDER.index(value) + step) % len(_ENCRYPTION_ORDER)
            pane.draft = replace(pane.draft, encryption=_ENCRYPTION_ORDER[idx])
        elif key == "enter":
            pane.editing = True
            st.buffer = str(value)
        elif key == "s":
            if pane.saving:
                return []
            pane.saving = True
            pane.message = None
            self._set_status(Notice("Saving preferences…"), now)
            return [UpdatePreferences(pane.draft)]
        return []

    def _preferences_edit_key(self, key: str, now: float) -> list[Command]:
        st = self.state
        pane = st.preferences
        if key == "enter":
            field = PREFERENCE_FIELDS[pane.row]
            try:
                pane.draft = _apply_input(pane.draft, field, st.buffer)
            except ValueError as exc:
                pane.message = str(exc)
                return []
            pane.editing = False
            pane.message = None
            st.buffer = ""
        elif key == "escape":
            pane.editing = False
            st.buffer = ""
        elif key == "backspace":
            st.buffer = st.buffer[:-1]
        else:
            ch = _text_char(key)
            if ch is not None:
                st.buffer += ch
        return []


def _apply_input(prefs: DaemonPreferences | None, field: str, text: str) -> DaemonPreferences:
    """Parse an edited value for `field`; raises ValueError with a user message."""
    if prefs is None:
        raise ValueError("Preferences not loaded")
    current = getattr(prefs, field)
    text = text.strip()
    label = field.replace("_", " ")
    if isinstance(current, int):
        try:
            value: object = int(text)
        except ValueError:
            raise ValueError(f"{label} must be a whole number") from None
        if value < 0:
            raise ValueError(f"{label} cannot be negative")
    elif isinstance(current, float):
        try:
            value = float(text)
        except ValueError:
            raise ValueError(f"{label} must be a number") from None
        if value < 0:
            raise ValueError(f"{label} cannot be negative")
    else:
        if field == "download_dir" and not text:
            raise ValueError("download dir cannot be empty")
        value = text
    return replace(prefs, **{field: value})
