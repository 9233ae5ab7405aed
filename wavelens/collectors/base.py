"""
WaveLens Radio Backend Interface
=================================

Boundary between the WaveLens session logic and whatever performs the
actual radio work (beacon scanning, frame capture). Session components
depend only on :class:`RadioBackend`; concrete backends live beside it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from shared.logger import WaveLensLogger

from wavelens.analyzers.channel import compute_occupancy
from wavelens.core.models import ChannelMetric, NetworkRecord, PacketRecord

logger = WaveLensLogger("collectors.base")

ProgressListener = Callable[[list[NetworkRecord]], None]


class RadioBackend(ABC):
    """Abstract radio/capture engine.

    Progress events are delivered on the event loop thread by calling
    every subscribed listener with a batch of network observations.
    Listeners must not block.
    """

    def __init__(self) -> None:
        self._progress_listeners: list[ProgressListener] = []

    # ------------------------------------------------------------------ #
    #  Progress subscription
    # ------------------------------------------------------------------ #

    def subscribe_progress(self, listener: ProgressListener) -> None:
        """Register *listener* for progress batches during scans."""
        self._progress_listeners.append(listener)

    def unsubscribe_progress(self, listener: ProgressListener) -> None:
        """Remove *listener*; unknown listeners are ignored."""
        try:
            self._progress_listeners.remove(listener)
        except ValueError:
            logger.debug("Progress listener was not subscribed")

    @property
    def progress_listener_count(self) -> int:
        return len(self._progress_listeners)

    def _emit_progress(self, networks: list[NetworkRecord]) -> None:
        """Push one batch to every subscriber (must run on the event loop)."""
        for listener in list(self._progress_listeners):
            listener(list(networks))

    # ------------------------------------------------------------------ #
    #  Engine operations
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def scan(self) -> list[NetworkRecord]:
        """Run one scan and return the final network list."""

    @abstractmethod
    async def list_interfaces(self) -> list[str]:
        """Names of the capture-capable network interfaces."""

    @abstractmethod
    async def start_capture(self, interface_name: str) -> None:
        """Begin capturing packets on *interface_name*."""

    @abstractmethod
    async def stop_capture(self) -> None:
        """Stop the running capture; raises if none is active."""

    @abstractmethod
    async def poll_latest_packets(self) -> list[PacketRecord]:
        """Packets captured since the previous poll (each returned once)."""

    async def channel_occupancy(
        self, networks: list[NetworkRecord]
    ) -> list[ChannelMetric]:
        """Raw per-channel occupancy for *networks*."""
        return compute_occupancy(networks)
