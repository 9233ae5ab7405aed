"""
WaveLens Engine
================

Consumer facade for the WaveLens WiFi-analysis console. Composes the
session components around one radio backend:

    - NetworkRecordStore / ScanSessionCoordinator: scans and the network set
    - ChannelOccupancyAggregator: per-channel metrics (all or one network)
    - CaptureSessionManager / PacketPage: packet capture and its paged view

A presentation layer (the CLI, or anything else) reads the current
snapshot, metrics, capture status and packet page from the engine and
drives it with the command methods.

References:
    - Evans, E. (2003). Domain-Driven Design. Addison-Wesley.
"""

from __future__ import annotations

from typing import Any, Optional

from shared.config import WaveLensConfig
from shared.logger import WaveLensLogger

from wavelens.analyzers.channel import ChannelOccupancyAggregator
from wavelens.collectors.base import RadioBackend
from wavelens.collectors.scapy_backend import ScapyBackend
from wavelens.collectors.simulated import SimulatedBackend
from wavelens.core.errors import InterfaceListError
from wavelens.core.models import (
    CaptureStatus,
    ChannelMetric,
    NetworkRecord,
    PacketRecord,
    ScanStatus,
)
from wavelens.core.store import NetworkRecordStore
from wavelens.session.capture import CaptureSessionManager, TickListener
from wavelens.session.pagination import PacketPage
from wavelens.session.scan import ScanSessionCoordinator, SnapshotListener

logger = WaveLensLogger("core.engine")


def build_backend(config: WaveLensConfig, simulate: bool = False) -> RadioBackend:
    """Create the radio backend described by *config*."""
    if simulate:
        return SimulatedBackend(
            seed=config.simulation.seed,
            network_count=config.simulation.network_count,
            packets_per_poll=config.simulation.packets_per_poll,
            scan_duration=config.scan.duration,
            progress_interval=config.scan.progress_interval,
        )
    return ScapyBackend(
        config.scan.interface,
        scan_duration=config.scan.duration,
        progress_interval=config.scan.progress_interval,
        freshness_window=config.scan.freshness_window,
        bpf_filter=config.capture.bpf_filter,
    )


def _channel_order(network: NetworkRecord) -> tuple[bool, int]:
    return (network.channel is None, network.channel or 0)


class WaveLensEngine:
    """One process-wide WaveLens session set over a radio backend.

    Usage::

        async with WaveLensEngine(config=config, simulate=True) as engine:
            await engine.begin_scan()
            for metric in engine.channel_metrics:
                print(metric.channel, metric.quality.value)

            await engine.start_capture("eth0")
            ...
            await engine.stop_capture()
    """

    def __init__(
        self,
        backend: Optional[RadioBackend] = None,
        config: Optional[WaveLensConfig] = None,
        *,
        simulate: bool = False,
    ) -> None:
        """Initialise the engine.

        Args:
            backend: Radio backend to drive. Built from *config* if None.
            config: WaveLens configuration. Uses defaults if None.
            simulate: Build a :class:`SimulatedBackend` instead of the
                live one when *backend* is not given.
        """
        self._config = config or WaveLensConfig()
        self._backend = backend or build_backend(self._config, simulate)

        self._store = NetworkRecordStore()
        self._aggregator = ChannelOccupancyAggregator(self._backend.channel_occupancy)
        self._scan = ScanSessionCoordinator(self._backend, self._aggregator, self._store)
        self._capture = CaptureSessionManager(
            self._backend,
            self._config.capture.interface,
            poll_interval=self._config.capture.poll_interval,
            page_size=self._config.capture.page_size,
        )
        logger.debug(f"Engine ready with {type(self._backend).__name__}")

    # ------------------------------------------------------------------ #
    #  State
    # ------------------------------------------------------------------ #

    @property
    def backend(self) -> RadioBackend:
        return self._backend

    @property
    def config(self) -> WaveLensConfig:
        return self._config

    @property
    def networks(self) -> list[NetworkRecord]:
        """Current network snapshot by ascending channel (unknown channel last)."""
        return sorted(self._store.snapshot(), key=_channel_order)

    @property
    def channel_metrics(self) -> list[ChannelMetric]:
        return self._aggregator.metrics

    @property
    def recommended_channels(self) -> list[int]:
        return self._aggregator.recommended_channels()

    @property
    def selected_network(self) -> Optional[NetworkRecord]:
        selected = self._aggregator.selected
        return self._store.get(selected) if selected else None

    @property
    def scan_status(self) -> ScanStatus:
        return self._scan.status

    @property
    def capture_status(self) -> CaptureStatus:
        return self._capture.status

    @property
    def capture_interface(self) -> str:
        return self._capture.interface

    @property
    def packet_page(self) -> PacketPage[PacketRecord]:
        return self._capture.page

    @property
    def capture(self) -> CaptureSessionManager:
        return self._capture

    # ------------------------------------------------------------------ #
    #  Commands
    # ------------------------------------------------------------------ #

    async def begin_scan(self) -> list[NetworkRecord]:
        """Run a scan; raises :class:`ScanFailure` when the backend fails."""
        await self._scan.begin_scan()
        return self.networks

    async def select_network(self, identity: Optional[str]) -> bool:
        return await self._scan.select_network(identity)

    async def list_interfaces(self) -> list[str]:
        """Capture-capable interface names.

        Raises:
            InterfaceListError: If the backend cannot enumerate interfaces.
        """
        try:
            return await self._backend.list_interfaces()
        except Exception as exc:
            logger.error(f"Failed to list interfaces: {exc}")
            raise InterfaceListError(f"Failed to list interfaces: {exc}") from exc

    async def start_capture(self, interface: Optional[str] = None) -> None:
        await self._capture.start(interface)

    async def stop_capture(self) -> None:
        await self._capture.stop()

    async def set_interface(self, interface: str) -> None:
        await self._capture.set_interface(interface)

    def next_page(self) -> int:
        return self._capture.page.next_page()

    def prev_page(self) -> int:
        return self._capture.page.prev_page()

    # ------------------------------------------------------------------ #
    #  Listeners
    # ------------------------------------------------------------------ #

    def add_scan_listener(self, listener: SnapshotListener) -> None:
        self._scan.add_listener(listener)

    def remove_scan_listener(self, listener: SnapshotListener) -> None:
        self._scan.remove_listener(listener)

    def add_capture_listener(self, listener: TickListener) -> None:
        self._capture.add_listener(listener)

    def remove_capture_listener(self, listener: TickListener) -> None:
        self._capture.remove_listener(listener)

    # ------------------------------------------------------------------ #
    #  Disposal
    # ------------------------------------------------------------------ #

    async def aclose(self) -> None:
        """Cancel capture polling and stop any running capture (best effort)."""
        await self._capture.aclose()

    async def __aenter__(self) -> WaveLensEngine:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
