"""
WaveLens Capture Session Manager
=================================

State machine for one packet-capture session against a radio backend::

    Idle --start(interface)--> Capturing --stop--> Idle
    Capturing --interface changed--> Idle (forced)

While capturing, a single polling task fetches newly captured packets
every ``poll_interval`` seconds, appends them to the packet buffer, and
re-sorts the buffer newest first. A failed poll is recorded and logged
but the session keeps ticking.

The packet buffer belongs to one interface's capture session: switching
interfaces mid-capture discards it, and a capture started on a different
interface than the buffered packets came from starts with an empty one.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from shared.logger import WaveLensLogger

from wavelens.collectors.base import RadioBackend
from wavelens.core.errors import CaptureStartError, CaptureStopError, PollFailure
from wavelens.core.models import CaptureStatus, PacketRecord
from wavelens.session.pagination import PacketPage

logger = WaveLensLogger("session.capture")

TickListener = Callable[[list[PacketRecord]], None]


@dataclass
class CaptureSession:
    """Target interface, lifecycle state and polling task of a capture."""

    interface_name: str
    status: CaptureStatus = CaptureStatus.IDLE
    poll_task: Optional[asyncio.Task] = None


class CaptureSessionManager:
    """Owns the capture session, its polling task and the packet buffer.

    Usage::

        manager = CaptureSessionManager(backend, "eth0", poll_interval=3.0)
        await manager.start()
        ...
        for packet in manager.page.items:
            print(packet.protocol, packet.length)
        await manager.stop()
    """

    def __init__(
        self,
        backend: RadioBackend,
        interface: str = "eth0",
        *,
        poll_interval: float = 3.0,
        page_size: int = 10,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._backend = backend
        self._poll_interval = poll_interval
        self._session = CaptureSession(interface_name=interface)

        # Mutated in place only; the page view holds a reference to it
        self._buffer: list[PacketRecord] = []
        self._buffer_interface: Optional[str] = None
        self._page: PacketPage[PacketRecord] = PacketPage(self._buffer, page_size)

        self._listeners: list[TickListener] = []
        self._pending_stop: Optional[asyncio.Task] = None
        # Serializes start, stop, set_interface and aclose
        self._lifecycle = asyncio.Lock()
        self.last_poll_error: Optional[PollFailure] = None
        self.poll_failures = 0

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def status(self) -> CaptureStatus:
        return self._session.status

    @property
    def is_capturing(self) -> bool:
        return self._session.status is CaptureStatus.CAPTURING

    @property
    def interface(self) -> str:
        """Interface the next (or current) capture is bound to."""
        return self._session.interface_name

    @property
    def page(self) -> PacketPage[PacketRecord]:
        return self._page

    @property
    def packets(self) -> list[PacketRecord]:
        """Copy of the packet buffer, newest first."""
        return list(self._buffer)

    @property
    def has_active_timer(self) -> bool:
        task = self._session.poll_task
        return task is not None and not task.done()

    def add_listener(self, listener: TickListener) -> None:
        """Call *listener* with the displayed page after every poll tick."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TickListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self, interface: Optional[str] = None) -> None:
        """Start capturing on *interface* (default: the current target).

        A call made while already capturing is ignored. Lifecycle calls
        are serialized, so a second start issued while the first is still
        waiting on the backend is ignored as well.

        Raises:
            CaptureStartError: If the backend rejects the request. The
                session stays ``Idle``.
        """
        async with self._lifecycle:
            await self._start(interface)

    async def _start(self, interface: Optional[str]) -> None:
        if self.is_capturing:
            logger.warning(
                f"Capture already running on {self._session.interface_name}; "
                f"start request ignored"
            )
            return

        target = interface or self._session.interface_name
        self._session.interface_name = target

        try:
            await self._backend.start_capture(target)
        except Exception as exc:
            logger.error(f"Failed to start capture on {target}: {exc}")
            raise CaptureStartError(
                f"Failed to start capture on {target}: {exc}", interface=target
            ) from exc

        if self._buffer_interface != target:
            self._clear_buffer()
        self._buffer_interface = target

        self._session.status = CaptureStatus.CAPTURING
        self._session.poll_task = asyncio.create_task(
            self._poll_loop(), name=f"wavelens-poll-{target}"
        )
        logger.info(
            f"Capturing on {target}; polling every {self._poll_interval}s"
        )

    async def stop(self) -> None:
        """Stop the capture and halt polling.

        Local state is ``Idle`` afterwards whatever the backend answers.
        Calling this while idle does nothing.

        Raises:
            CaptureStopError: If the backend reports no active capture.
        """
        async with self._lifecycle:
            if not self.is_capturing:
                logger.debug("Stop requested while idle")
                return

            await self._cancel_polling()
            self._session.status = CaptureStatus.IDLE

            try:
                await self._backend.stop_capture()
            except Exception as exc:
                logger.error(f"Failed to stop capture: {exc}")
                raise CaptureStopError(f"Failed to stop capture: {exc}") from exc

        logger.info(
            f"Capture stopped on {self._session.interface_name}; "
            f"{len(self._buffer)} packet(s) buffered"
        )

    async def set_interface(self, interface: str) -> None:
        """Change the capture target.

        While idle only the pending target changes. While capturing the
        session is forced to ``Idle``: polling stops, the buffer and the
        displayed page are discarded, and the backend capture is stopped
        on a best-effort basis. A change requested while a start is in
        flight waits for it and then resets the new session.
        """
        async with self._lifecycle:
            if interface == self._session.interface_name:
                return

            previous = self._session.interface_name
            self._session.interface_name = interface

            if not self.is_capturing:
                logger.debug(f"Capture target changed {previous} -> {interface}")
                return

            logger.info(
                f"Interface changed {previous} -> {interface} during capture; "
                f"session reset"
            )
            await self._cancel_polling()
            self._session.status = CaptureStatus.IDLE
            self._clear_buffer()
            self._buffer_interface = None

            try:
                await self._backend.stop_capture()
            except Exception as exc:
                logger.warning(f"Backend stop after interface change failed: {exc}")

    async def aclose(self) -> None:
        """Dispose of the manager.

        The polling task is cancelled before this returns. A running
        capture gets a best-effort backend stop that is not awaited.
        """
        async with self._lifecycle:
            await self._cancel_polling()
            if not self.is_capturing:
                return

            self._session.status = CaptureStatus.IDLE
            self._pending_stop = asyncio.ensure_future(self._backend.stop_capture())
            self._pending_stop.add_done_callback(_log_stop_outcome)

    # ------------------------------------------------------------------ #
    #  Polling
    # ------------------------------------------------------------------ #

    async def poll_once(self) -> int:
        """Run one poll cycle now and return the number of new packets.

        Failures are recorded on :attr:`last_poll_error` and counted in
        :attr:`poll_failures`; they never propagate.
        """
        if not self.is_capturing:
            return 0

        try:
            packets = await self._backend.poll_latest_packets()
        except Exception as exc:
            failure = PollFailure(f"Packet poll failed: {exc}")
            failure.__cause__ = exc
            self.last_poll_error = failure
            self.poll_failures += 1
            logger.error(str(failure))
            return 0

        # A reset may have happened while the poll was in flight
        if not self.is_capturing:
            return 0

        if packets:
            self._buffer.extend(packets)
            self._buffer.sort(key=lambda p: p.timestamp, reverse=True)
            logger.debug(f"Polled {len(packets)} packet(s); {len(self._buffer)} buffered")

        items = self._page.items
        for listener in list(self._listeners):
            try:
                listener(items)
            except Exception as exc:
                logger.error(f"Capture tick listener failed: {exc}")
        return len(packets)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self.poll_once()

    async def _cancel_polling(self) -> None:
        task, self._session.poll_task = self._session.poll_task, None
        if task is None or task.done():
            return
        task.cancel()
        if task is asyncio.current_task():
            return
        await asyncio.gather(task, return_exceptions=True)

    def _clear_buffer(self) -> None:
        self._buffer.clear()
        self._page.reset()


def _log_stop_outcome(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Best-effort capture stop failed: {exc}")
