"""Textual shell: turns terminal events into coordinator input and renders state."""

from __future__ import annotations

import asyncio
import logging

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from .coordinator import Coordinator
from .models.messages import Command
from .view import render_screen
from .worker import RpcWorker

logger = logging.getLogger(__name__)

TICK_INTERVAL_S = 0.25


def translate_key(event: events.Key) -> str:
    """Map a Textual key event onto the coordinator's key names."""
    char = event.character
    if event.is_printable and char:
        return "space" if char == " " else char
    return event.key


class DashboardApp(App):
    """Single-screen dashboard; all state lives in the coordinator."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #body {
        height: 1fr;
    }
    """

    def __init__(self, worker: RpcWorker, coordinator: Coordinator | None = None):
        super().__init__()
        self.worker = worker
        self.coordinator = coordinator or Coordinator()
        self._consumer: asyncio.Task | None = None
        self._stopping = False

    def compose(self) -> ComposeResult:
        yield Static(id="body")

    def on_mount(self) -> None:
        self.title = "transmission-dash"
        self.worker.start()
        self._consumer = asyncio.create_task(self._consume_outcomes())
        self.set_interval(TICK_INTERVAL_S, self._on_tick)
        self.refresh_body()

    async def on_unmount(self) -> None:
        if self._consumer and not self._consumer.done():
            self._consumer.cancel()
        await self.worker.stop()

    async def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        key = translate_key(event)
        self._dispatch(self.coordinator.handle_key(key))
        await self._after_input()

    async def on_paste(self, event: events.Paste) -> None:
        event.stop()
        self._dispatch(self.coordinator.handle_paste(event.text))
        await self._after_input()

    def _dispatch(self, commands: list[Command]) -> None:
        for command in commands:
            logger.debug("Submitting %r", command)
            self.worker.submit(command)

    async def _after_input(self) -> None:
        if self.coordinator.state.should_quit:
            await self._shutdown()
            return
        self.refresh_body()

    def _on_tick(self) -> None:
        self.coordinator.tick()
        self.refresh_body()

    async def _consume_outcomes(self) -> None:
        while True:
            outcome = await self.worker.outcomes.get()
            self.coordinator.apply(outcome)
            self.refresh_body()

    async def _shutdown(self) -> None:
        if self._stopping:
            return
        self._stopping = True
        logger.info("Quitting")
        await self.worker.stop()
        self.exit()

    def refresh_body(self) -> None:
        body = self.query_one("#body", Static)
        body.update(render_screen(self.coordinator.state, self.coordinator.current_torrent()))
