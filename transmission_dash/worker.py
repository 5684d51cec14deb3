"""RPC worker: the only place that talks to the daemon.

The worker runs as an asyncio task next to the UI. Each unit of work (a
command from the UI or a scheduled poll) is executed in a thread via
`asyncio.to_thread`, one at a time, so the event loop never blocks on the
network and the client never sees concurrent calls. Every unit produces
exactly one outcome on the outcome queue.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .errors import DialectError, ErrorKind, RpcError, classify
from .models.messages import (
    AddMagnet,
    Command,
    FetchPreferences,
    Failure,
    Level,
    Notice,
    NoticeOnly,
    Outcome,
    Pause,
    Poll,
    PreferencesReady,
    Reconnect,
    Refresh,
    Remove,
    Resume,
    SnapshotReady,
    UpdatePreferences,
)
from .rpc import RpcClient

logger = logging.getLogger(__name__)

_TASK_WORKER = "rpc_worker"
_TASK_TICKER = "poll_ticker"

_LABELS = {
    Poll: "Poll",
    Refresh: "Refresh",
    Resume: "Resume",
    Pause: "Pause",
    Remove: "Remove",
    AddMagnet: "Add",
    FetchPreferences: "Preferences",
    UpdatePreferences: "Preferences update",
    Reconnect: "Reconnect",
}


class RpcWorker:
    def __init__(
        self,
        client: RpcClient,
        outcomes: asyncio.Queue | None = None,
        poll_interval: float = 3.0,
    ) -> None:
        self.client = client
        self.commands: asyncio.Queue[Command] = asyncio.Queue()
        self.outcomes: asyncio.Queue[Outcome] = outcomes if outcomes is not None else asyncio.Queue()
        self.poll_interval = poll_interval
        self.tasks: dict[str, asyncio.Task] = {}
        self._wakeup = asyncio.Event()
        self._poll_pending = False
        self._busy = False
        self._halted: Failure | None = None
        self._handlers: dict[type, Callable[..., Outcome]] = {
            Poll: self._do_refresh,
            Refresh: self._do_refresh,
            Resume: self._do_resume,
            Pause: self._do_pause,
            Remove: self._do_remove,
            AddMagnet: self._do_add,
            FetchPreferences: self._do_fetch_preferences,
            UpdatePreferences: self._do_update_preferences,
            Reconnect: self._do_reconnect,
        }

    # -- channels ----------------------------------------------------------

    def submit(self, command: Command) -> None:
        self.commands.put_nowait(command)
        self._wakeup.set()

    def request_poll(self) -> bool:
        """Schedule a poll unless one is pending or work is in flight.

        Returns False when the tick was dropped.
        """
        if self._halted is not None or self._busy or self._poll_pending:
            return False
        self._poll_pending = True
        self._wakeup.set()
        return True

    @property
    def halted(self) -> bool:
        return self._halted is not None

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        task = self.tasks.get(_TASK_WORKER)
        if isinstance(task, asyncio.Task) and not task.done():
            return
        self.tasks[_TASK_WORKER] = asyncio.create_task(self.run())
        if self.poll_interval > 0:
            self.tasks[_TASK_TICKER] = asyncio.create_task(self._ticker())

    async def stop(self) -> None:
        """Cancel the loops; an RPC already running in its thread is abandoned."""
        tasks = [t for t in self.tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.tasks.clear()

    async def _ticker(self) -> None:
        logger.info("Starting poll ticker (interval=%ss)", self.poll_interval)
        while True:
            await asyncio.sleep(self.poll_interval)
            if not self.request_poll():
                logger.debug("Poll tick coalesced")

    async def run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            while True:
                unit = self._next_unit()
                if unit is None:
                    break
                await self._process(unit)

    def _next_unit(self) -> Command | Poll | None:
        # Commands go first; a pending poll waits behind them.
        try:
            return self.commands.get_nowait()
        except asyncio.QueueEmpty:
            pass
        if self._poll_pending:
            self._poll_pending = False
            return Poll()
        return None

    async def _process(self, unit: Command | Poll) -> None:
        if self._halted is not None and not isinstance(unit, Reconnect):
            outcome: Outcome = Failure(self._halted.kind, self._halted.message, unit, fatal=True)
        else:
            self._busy = True
            try:
                outcome = await asyncio.to_thread(self.execute, unit)
            finally:
                self._busy = False
            self._track_halt(unit, outcome)
        await self.outcomes.put(outcome)

    def _track_halt(self, unit: Command | Poll, outcome: Outcome) -> None:
        # Runs on the loop, between units; the worker thread never touches it.
        if isinstance(outcome, Failure) and outcome.kind is ErrorKind.DIALECT:
            self._halted = outcome
        elif isinstance(unit, Reconnect):
            self._halted = None

    # -- execution (worker thread) ----------------------------------------

    def execute(self, unit: Command | Poll) -> Outcome:
        """Run one unit of work synchronously and convert errors to a Failure."""
        label = _LABELS.get(type(unit), type(unit).__name__)
        handler = self._handlers.get(type(unit))
        if handler is None:
            logger.error("Unknown command: %r", unit)
            return Failure(ErrorKind.COMMAND, f"Unknown command {label}", unit)
        try:
            return handler(unit)
        except DialectError as exc:
            logger.error("Giving up on connection: %s", exc)
            return Failure(ErrorKind.DIALECT, f"Unsupported daemon: {exc}", unit, fatal=True)
        except RpcError as exc:
            kind = classify(exc)
            logger.warning("%s failed (%s): %s", label, kind.value, exc)
            return Failure(kind, f"{label} failed: {exc}", unit)
        except Exception as exc:
            logger.exception("%s failed unexpectedly", label)
            return Failure(ErrorKind.TRANSPORT, f"{label} failed: {exc}", unit)

    def _do_refresh(self, unit: Refresh | Poll) -> Outcome:
        return SnapshotReady(self.client.fetch_snapshot(), source=unit)

    def _do_resume(self, unit: Resume) -> Outcome:
        self.client.start_torrents([unit.torrent_id])
        return self._snapshot_after(Notice(f"Resumed {unit.name or unit.torrent_id}", Level.SUCCESS), unit)

    def _do_pause(self, unit: Pause) -> Outcome:
        self.client.stop_torrents([unit.torrent_id])
        return self._snapshot_after(Notice(f"Paused {unit.name or unit.torrent_id}", Level.SUCCESS), unit)

    def _do_remove(self, unit: Remove) -> Outcome:
        self.client.remove_torrents([unit.torrent_id], delete_local_data=unit.delete_data)
        suffix = " and its data" if unit.delete_data else ""
        notice = Notice(f"Removed {unit.name or unit.torrent_id}{suffix}", Level.SUCCESS)
        return self._snapshot_after(notice, unit)

    def _do_add(self, unit: AddMagnet) -> Outcome:
        magnet = unit.uri.strip()
        if not magnet:
            return NoticeOnly(Notice("Ignoring empty magnet input"), unit)
        outcome = self.client.add_magnet(magnet)
        label = outcome.name or "torrent"
        if outcome.duplicate:
            notice = Notice(f"Magnet already present ({label})", Level.WARNING)
        elif outcome.added:
            notice = Notice(f"Magnet queued ({label})", Level.SUCCESS)
        else:
            notice = Notice(f"Magnet processed ({label})", Level.SUCCESS)
        return self._snapshot_after(notice, unit, focus_id=outcome.torrent_id)

    def _do_fetch_preferences(self, unit: FetchPreferences) -> Outcome:
        return PreferencesReady(self.client.fetch_preferences())

    def _do_update_preferences(self, unit: UpdatePreferences) -> Outcome:
        self.client.update_preferences(unit.preferences)
        return PreferencesReady(
            self.client.fetch_preferences(), Notice("Preferences updated", Level.SUCCESS)
        )

    def _do_reconnect(self, unit: Reconnect) -> Outcome:
        logger.info("Reconnecting to daemon")
        self.client.reset()
        return SnapshotReady(
            self.client.fetch_snapshot(), Notice("Reconnected", Level.SUCCESS), source=unit
        )

    def _snapshot_after(
        self, notice: Notice, unit: Command, focus_id: int | None = None
    ) -> Outcome:
        """Fetch the post-command snapshot; the command itself already succeeded."""
        try:
            snapshot = self.client.fetch_snapshot()
        except DialectError:
            raise
        except RpcError as exc:
            logger.warning("Refresh after %s failed: %s", type(unit).__name__, exc)
            return Failure(classify(exc), f"{notice.text}, but refresh failed: {exc}", unit)
        return SnapshotReady(snapshot, notice, focus_id, unit)
