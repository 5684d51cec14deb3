"""View layer: plain formatting helpers and rich renderables for the TUI."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models.messages import Level
from .models.preferences import PREFERENCE_FIELDS, DaemonPreferences, EncryptionMode
from .models.snapshot import SessionInfo
from .models.torrent import Status, Torrent
from .models.ui_state import Mode, UIState

_UNITS = ["B", "KiB", "MiB", "GiB", "TiB"]

STATUS_STYLES = {
    Status.STOPPED: "dim",
    Status.VERIFYING: "yellow",
    Status.DOWNLOADING: "cyan",
    Status.SEEDING: "green",
    Status.QUEUED: "magenta",
    Status.ERROR: "bold red",
}

LEVEL_STYLES = {
    Level.INFO: "white",
    Level.SUCCESS: "green",
    Level.WARNING: "yellow",
    Level.ERROR: "bold red",
}

MODE_LABELS = {
    Mode.NORMAL: "NORMAL",
    Mode.FILTER: "FILTER",
    Mode.PROMPT: "ADD",
    Mode.CONFIRM: "CONFIRM",
    Mode.HELP: "HELP",
    Mode.PREFERENCES: "PREFS",
}

HELP_ROWS = [
    ("j / k, ↓ / ↑", "Move selection"),
    ("g / G, home / end", "First / last torrent"),
    ("ctrl+d / ctrl+u", "Move by five rows"),
    ("/", "Filter by name (esc clears)"),
    ("a", "Add magnet link (paste also works)"),
    ("r / p", "Resume / pause selected"),
    ("dd", "Remove selected, keep data"),
    ("DD", "Remove selected and its data"),
    ("R", "Refresh now"),
    ("o", "Daemon preferences"),
    ("C", "Reconnect"),
    ("?", "Toggle this help"),
    ("q / ctrl+c", "Quit"),
]


def format_bytes(n: int) -> str:
    """Format a byte count with binary units, e.g. ``1.5 KiB``."""
    f = float(max(0, n))
    i = 0
    while f >= 1024 and i < len(_UNITS) - 1:
        f /= 1024
        i += 1
    if i == 0:
        return f"{int(f)} B"
    return f"{f:.1f} {_UNITS[i]}"


def format_speed(bytes_per_s: int) -> str:
    return f"{format_bytes(bytes_per_s)}/s"


def format_eta(seconds: int | None) -> str:
    if seconds is None or seconds < 0:
        return "∞"
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes:02d}m"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h"


def format_progress(progress: float) -> str:
    return f"{min(1.0, max(0.0, progress)) * 100:.1f}%"


def format_ratio(ratio: float) -> str:
    return "-" if ratio < 0 else f"{ratio:.2f}"


def summary_line(session: SessionInfo) -> str:
    rpc = f" (rpc {session.rpc_version})" if session.rpc_version is not None else ""
    return (
        f"{session.name} {session.version}{rpc} | "
        f"↓ {format_speed(session.download_rate)} ↑ {format_speed(session.upload_rate)} | "
        f"{session.active} active, {session.paused} paused, {session.total} total"
    )


def format_preference(prefs: DaemonPreferences, field: str) -> str:
    value = getattr(prefs, field)
    if isinstance(value, EncryptionMode):
        return value.label
    if isinstance(value, bool):
        return "on" if value else "off"
    if field in ("speed_limit_up", "speed_limit_down"):
        return f"{value} KiB/s"
    if field == "idle_seeding_limit":
        return f"{value} min"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value) if value != "" else "-"


# -- renderables ---------------------------------------------------------


def render_header(state: UIState) -> RenderableType:
    if state.snapshot is None:
        header = Text("Connecting to daemon…", style="bold")
    else:
        header = Text(summary_line(state.snapshot.session), style="bold")
    if state.banner:
        return Group(header, Text(f"✖ {state.banner}", style="bold white on red"))
    return header


def render_table(state: UIState) -> RenderableType:
    table = Table(expand=True, show_edge=False, pad_edge=False)
    table.add_column("ID", justify="right", width=5)
    table.add_column("Name", ratio=1, no_wrap=True, overflow="ellipsis")
    table.add_column("Status", width=11)
    table.add_column("Done", justify="right", width=7)
    table.add_column("↓", justify="right", width=11)
    table.add_column("↑", justify="right", width=11)
    table.add_column("ETA", justify="right", width=8)
    table.add_column("Ratio", justify="right", width=6)

    snapshot = state.snapshot
    if snapshot is None:
        return table
    for pos, idx in enumerate(state.visible):
        t = snapshot.torrents[idx]
        row_style = "reverse" if pos == state.selected else None
        table.add_row(
            str(t.id),
            t.name,
            Text(t.status.value, style=STATUS_STYLES[t.status]),
            format_progress(t.progress),
            format_speed(t.rate_download),
            format_speed(t.rate_upload),
            format_eta(t.eta),
            format_ratio(t.ratio),
            style=row_style,
        )
    return table


def render_detail(torrent: Torrent | None) -> RenderableType:
    if torrent is None:
        return Panel(Text("No torrent selected", style="dim"), title="Details")
    lines = [
        Text.assemble(("Name: ", "bold"), torrent.name),
        Text.assemble(("Location: ", "bold"), torrent.download_dir or "-"),
        Text.assemble(
            ("Size: ", "bold"),
            f"{format_bytes(torrent.size_when_done)} "
            f"({format_bytes(torrent.left_until_done)} left)",
        ),
        Text.assemble(
            ("Peers: ", "bold"),
            f"{torrent.peers_connected} connected, "
            f"{torrent.peers_sending_to_us} sending, "
            f"{torrent.peers_getting_from_us} receiving",
        ),
    ]
    if torrent.error:
        lines.append(Text(f"Error: {torrent.error}", style="bold red"))

    body: list[RenderableType] = list(lines)
    if torrent.peers:
        peers = Table(expand=True, show_edge=False, box=None)
        peers.add_column("Address")
        peers.add_column("Client")
        peers.add_column("↓", justify="right")
        peers.add_column("↑", justify="right")
        peers.add_column("Have", justify="right")
        peers.add_column("Enc")
        for p in torrent.peers:
            peers.add_row(
                p.address,
                p.client,
                format_speed(p.rate_to_client),
                format_speed(p.rate_to_peer),
                format_progress(p.progress),
                "✓" if p.is_encrypted else "",
            )
        body.append(peers)
    return Panel(Group(*body), title=f"#{torrent.id}")


def render_footer(state: UIState) -> RenderableType:
    footer = Text()
    footer.append(f" {MODE_LABELS[state.mode]} ", style="bold black on cyan")
    footer.append(" ")
    if state.mode is Mode.FILTER:
        footer.append(f"/{state.buffer}▏")
    elif state.mode is Mode.PROMPT:
        footer.append(f"magnet: {state.buffer}▏")
    elif state.filter_text:
        footer.append(f"filter: {state.filter_text}  ", style="italic")
    if state.status is not None and state.mode not in (Mode.FILTER, Mode.PROMPT):
        footer.append(state.status.text, style=LEVEL_STYLES[state.status.level])
    return footer


def render_help() -> RenderableType:
    table = Table(show_header=False, box=None)
    table.add_column(style="bold cyan")
    table.add_column()
    for keys, action in HELP_ROWS:
        table.add_row(keys, action)
    return Panel(table, title="Keys", subtitle="? / esc to close")


def render_confirm(state: UIState) -> RenderableType:
    target = state.confirm
    if target is None:
        return Text("")
    what = "and delete its data" if target.delete_data else "and keep its data"
    body = Text.assemble(
        "Remove ",
        (target.name or f"#{target.torrent_id}", "bold"),
        f" {what}?\n\n",
        ("y", "bold green"),
        "/enter confirm  ",
        ("n", "bold red"),
        "/esc cancel  ",
        ("t", "bold"),
        " toggle delete data",
    )
    return Panel(body, title="Confirm removal", border_style="red")


def render_preferences(state: UIState) -> RenderableType:
    pane = state.preferences
    if pane.draft is None:
        text = "Loading preferences…" if pane.loading else "Preferences unavailable (r to retry)"
        return Panel(Text(text, style="dim"), title="Preferences")

    table = Table(show_header=False, box=None, expand=True)
    table.add_column(style="bold")
    table.add_column(ratio=1)
    for row, field in enumerate(PREFERENCE_FIELDS):
        value = format_preference(pane.draft, field)
        if row == pane.row and pane.editing:
            value = f"{state.buffer}▏"
        table.add_row(
            field.replace("_", " "),
            value,
            style="reverse" if row == pane.row else None,
        )
    parts: list[RenderableType] = [table]
    if pane.saving:
        parts.append(Text("Saving…", style="yellow"))
    if pane.message:
        parts.append(Text(pane.message, style="bold red"))
    return Panel(
        Group(*parts),
        title="Preferences",
        subtitle="space toggle · ←/→ cycle · enter edit · s save · r reload · esc close",
    )


def render_screen(state: UIState, current: Torrent | None) -> RenderableType:
    """Whole-screen renderable for the current mode."""
    if state.mode is Mode.HELP:
        middle: RenderableType = render_help()
    elif state.mode is Mode.PREFERENCES:
        middle = render_preferences(state)
    elif state.mode is Mode.CONFIRM:
        middle = Group(render_table(state), render_confirm(state))
    else:
        middle = Group(render_table(state), render_detail(current))
    return Group(render_header(state), middle, render_footer(state))
