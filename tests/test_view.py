import io

import pytest
from rich.console import Console
from textual import events

from conftest import make_torrent
from transmission_dash import view
from transmission_dash.app import translate_key
from transmission_dash.coordinator import Coordinator
from transmission_dash.models.messages import PreferencesReady, SnapshotReady
from transmission_dash.models.preferences import DaemonPreferences, EncryptionMode
from transmission_dash.models.snapshot import SessionInfo, Snapshot
from transmission_dash.models.torrent import Peer, Status


def _render(renderable) -> str:
    console = Console(file=io.StringIO(), width=120, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


def test_format_bytes():
    assert view.format_bytes(0) == "0 B"
    assert view.format_bytes(512) == "512 B"
    assert view.format_bytes(1536) == "1.5 KiB"
    assert view.format_bytes(1073741824) == "1.0 GiB"


def test_format_speed():
    assert view.format_speed(2048) == "2.0 KiB/s"


@pytest.mark.parametrize(
    "seconds, expected",
    [(None, "∞"), (-1, "∞"), (0, "0s"), (59, "59s"), (61, "1m 01s"), (3600, "1h 00m"), (90061, "1d 1h")],
)
def test_format_eta(seconds, expected):
    assert view.format_eta(seconds) == expected


def test_format_progress():
    assert view.format_progress(0.5) == "50.0%"
    assert view.format_progress(1.2) == "100.0%"


def test_summary_line():
    session = SessionInfo(
        version="4.0.6",
        rpc_version=17,
        download_rate=1024,
        upload_rate=0,
        counts={Status.DOWNLOADING: 2, Status.STOPPED: 1},
    )
    line = view.summary_line(session)
    assert line.startswith("Transmission 4.0.6 (rpc 17)")
    assert "↓ 1.0 KiB/s" in line
    assert "2 active, 1 paused, 3 total" in line


def test_format_preference():
    prefs = DaemonPreferences(encryption=EncryptionMode.REQUIRE, speed_limit_up=50)
    assert view.format_preference(prefs, "encryption") == "Require encryption"
    assert view.format_preference(prefs, "speed_limit_up") == "50 KiB/s"
    assert view.format_preference(prefs, "pex_enabled") == "on"
    assert view.format_preference(prefs, "blocklist_url") == "-"


def test_render_screen_normal_mode():
    coord = Coordinator()
    torrent = make_torrent(
        4,
        "ubuntu.iso",
        Status.DOWNLOADING,
        peers=(Peer("10.0.0.9", "Transmission", 100, 0, 0.25, False),),
    )
    coord.apply(SnapshotReady(Snapshot.build([torrent])), now=0.0)

    out = _render(view.render_screen(coord.state, coord.current_torrent()))

    assert "ubuntu.iso" in out
    assert "10.0.0.9" in out
    assert "NORMAL" in out
    assert "Refreshed 1 torrents" in out


def test_render_screen_help_and_banner():
    coord = Coordinator()
    coord.state.banner = "Unsupported daemon"
    coord.handle_key("?", now=0.0)
    out = _render(view.render_screen(coord.state, None))
    assert "Unsupported daemon" in out
    assert "Remove selected and its data" in out


def test_render_confirm_and_preferences():
    coord = Coordinator()
    coord.apply(SnapshotReady(Snapshot.build([make_torrent(1, "a.iso")])), now=0.0)
    coord.handle_key("D", now=0.0)
    coord.handle_key("D", now=0.0)
    out = _render(view.render_screen(coord.state, coord.current_torrent()))
    assert "and delete its data?" in out

    coord.handle_key("escape", now=0.0)
    coord.handle_key("o", now=0.0)
    coord.apply(PreferencesReady(DaemonPreferences(download_dir="/srv/dl")), now=0.0)
    out = _render(view.render_screen(coord.state, None))
    assert "/srv/dl" in out
    assert "peer limit global" in out


@pytest.mark.parametrize(
    "key, character, expected",
    [
        ("j", "j", "j"),
        ("G", "G", "G"),
        ("slash", "/", "/"),
        ("space", " ", "space"),
        ("enter", "\r", "enter"),
        ("escape", "\x1b", "escape"),
        ("ctrl+d", "\x04", "ctrl+d"),
        ("down", None, "down"),
    ],
)
def test_translate_key(key, character, expected):
    assert translate_key(events.Key(key, character)) == expected
