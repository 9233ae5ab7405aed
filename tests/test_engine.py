"""Tests for the WaveLens engine facade and the simulated backend."""

import asyncio

import pytest

from shared.config import WaveLensConfig
from wavelens.collectors.simulated import SimulatedBackend
from wavelens.core.engine import WaveLensEngine
from wavelens.core.errors import InterfaceListError
from wavelens.core.models import CaptureStatus, ScanStatus

from conftest import make_network, make_packet


@pytest.fixture
def config():
    cfg = WaveLensConfig()
    cfg.scan.duration = 0.05
    cfg.scan.progress_interval = 0.01
    cfg.capture.poll_interval = 10
    cfg.capture.page_size = 10
    cfg.simulation.seed = 1234
    return cfg


class TestEngine:

    def test_networks_sorted_by_channel(self, backend, config):
        backend.final = [
            make_network("AA:01", channel=11),
            make_network("AA:02", channel=None),
            make_network("AA:03", channel=1),
        ]
        engine = WaveLensEngine(backend, config)

        networks = asyncio.run(engine.begin_scan())

        assert [n.channel for n in networks] == [1, 11, None]
        assert engine.scan_status is ScanStatus.IDLE
        assert len(engine.channel_metrics) == 13

    def test_select_network_exposes_selection(self, backend, config):
        backend.final = [make_network("AA:01", channel=1), make_network("AA:02", channel=6)]
        engine = WaveLensEngine(backend, config)

        async def scenario():
            await engine.begin_scan()
            await engine.select_network("AA:02")

        asyncio.run(scenario())
        assert engine.selected_network.identity == "AA:02"

    def test_list_interfaces_error_is_wrapped(self, backend, config):
        backend.interfaces_error = PermissionError("denied")
        engine = WaveLensEngine(backend, config)

        with pytest.raises(InterfaceListError) as excinfo:
            asyncio.run(engine.list_interfaces())
        assert isinstance(excinfo.value.__cause__, PermissionError)

    def test_capture_and_paging(self, backend, config):
        backend.poll_results = [[make_packet(i) for i in range(25)]]
        engine = WaveLensEngine(backend, config)

        async def scenario():
            await engine.start_capture()
            await engine.capture.poll_once()
            await engine.stop_capture()

        asyncio.run(scenario())

        assert engine.capture_status is CaptureStatus.IDLE
        assert engine.packet_page.total_pages == 3
        assert engine.next_page() == 2
        assert engine.next_page() == 3
        assert engine.next_page() == 3
        assert len(engine.packet_page.items) == 5
        assert engine.prev_page() == 2

    def test_set_interface_routes_to_capture(self, backend, config):
        engine = WaveLensEngine(backend, config)
        asyncio.run(engine.set_interface("wlan0"))
        assert engine.capture_interface == "wlan0"

    def test_context_manager_stops_capture(self, backend, config):
        async def scenario():
            async with WaveLensEngine(backend, config) as engine:
                await engine.start_capture("eth0")
            await asyncio.sleep(0)
            return engine

        engine = asyncio.run(scenario())
        assert engine.capture_status is CaptureStatus.IDLE
        assert backend.stop_calls == 1


class TestSimulatedBackend:

    def test_engine_builds_simulated_backend(self, config):
        engine = WaveLensEngine(config=config, simulate=True)
        assert isinstance(engine.backend, SimulatedBackend)

    def test_seeded_scan_is_reproducible(self, config):
        def scan_once():
            engine = WaveLensEngine(config=config, simulate=True)
            return [n.bssid for n in asyncio.run(engine.begin_scan())]

        first = scan_once()
        assert first
        assert first == scan_once()

    def test_scan_pushes_progress(self):
        backend = SimulatedBackend(seed=3, scan_duration=0.05, progress_interval=0.01)
        batches = []
        backend.subscribe_progress(batches.append)

        asyncio.run(backend.scan())

        assert len(batches) == 5

    def test_capture_lifecycle(self):
        backend = SimulatedBackend(seed=3, packets_per_poll=4)

        async def scenario():
            with pytest.raises(OSError):
                await backend.start_capture("nope0")
            await backend.start_capture("eth0")
            packets = await backend.poll_latest_packets()
            await backend.stop_capture()
            with pytest.raises(RuntimeError):
                await backend.stop_capture()
            return packets

        packets = asyncio.run(scenario())
        assert len(packets) == 4
        assert all(p.length > 0 for p in packets)
