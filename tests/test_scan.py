"""Tests for the scan session coordinator."""

import asyncio

import pytest

from wavelens.analyzers.channel import ChannelOccupancyAggregator
from wavelens.core.errors import ScanFailure
from wavelens.core.models import ScanStatus
from wavelens.session.scan import ScanSessionCoordinator

from conftest import make_network


def _channels(snapshot):
    return {n.identity: n.channel for n in snapshot}


class TestBeginScan:

    def test_later_progress_observation_wins(self, backend):
        backend.progress_batches = [
            [make_network("AA:0A", channel=6)],
            [make_network("AA:0B", channel=6)],
            [make_network("AA:0A", channel=11)],
        ]
        coordinator = ScanSessionCoordinator(backend)

        snapshot = asyncio.run(coordinator.begin_scan())

        assert _channels(snapshot) == {"AA:0A": 11, "AA:0B": 6}
        assert coordinator.status is ScanStatus.IDLE

    def test_final_batch_merged_after_progress(self, backend):
        backend.progress_batches = [[make_network("AA:0A", channel=6)]]
        backend.final = [make_network("AA:0A", channel=1), make_network("AA:0C", channel=3)]
        coordinator = ScanSessionCoordinator(backend)

        snapshot = asyncio.run(coordinator.begin_scan())

        assert _channels(snapshot) == {"AA:0A": 1, "AA:0C": 3}

    def test_subscription_scoped_to_scan(self, backend):
        coordinator = ScanSessionCoordinator(backend)

        async def scenario():
            await coordinator.begin_scan()
            await coordinator.begin_scan()

        asyncio.run(scenario())

        assert backend.scan_calls == 2
        assert backend.listeners_during_scan == 1
        assert backend.progress_listener_count == 0

    def test_new_scan_clears_previous_networks(self, backend):
        coordinator = ScanSessionCoordinator(backend)

        async def scenario():
            backend.final = [make_network("AA:01")]
            await coordinator.begin_scan()
            backend.final = [make_network("AA:02")]
            return await coordinator.begin_scan()

        snapshot = asyncio.run(scenario())
        assert [n.identity for n in snapshot] == ["AA:02"]

    def test_listeners_receive_each_merge(self, backend):
        backend.progress_batches = [[make_network("AA:01")], [make_network("AA:02")]]
        backend.final = [make_network("AA:03")]
        coordinator = ScanSessionCoordinator(backend)
        sizes = []
        coordinator.add_listener(lambda snapshot: sizes.append(len(snapshot)))

        asyncio.run(coordinator.begin_scan())

        assert sizes == [1, 2, 3]

    def test_failing_listener_does_not_abort_scan(self, backend):
        backend.progress_batches = [[make_network("AA:01")]]
        coordinator = ScanSessionCoordinator(backend)

        def broken(snapshot):
            raise RuntimeError("display went away")

        coordinator.add_listener(broken)
        snapshot = asyncio.run(coordinator.begin_scan())

        assert len(snapshot) == 1

    def test_metrics_recomputed_after_merge(self, backend):
        backend.final = [make_network("AA:01", channel=6, quality=100)]
        coordinator = ScanSessionCoordinator(backend)

        asyncio.run(coordinator.begin_scan())

        occupancy = {m.channel: m.occupancy for m in coordinator.aggregator.metrics}
        assert occupancy[6] == pytest.approx(1.0)


class TestScanFailure:

    def test_progress_records_survive_failure(self, backend):
        backend.progress_batches = [[make_network("AA:01"), make_network("AA:02")]]
        backend.scan_error = OSError("monitor mode unavailable")
        coordinator = ScanSessionCoordinator(backend)

        with pytest.raises(ScanFailure) as excinfo:
            asyncio.run(coordinator.begin_scan())

        assert isinstance(excinfo.value.__cause__, OSError)
        assert len(coordinator.snapshot) == 2
        assert coordinator.status is ScanStatus.IDLE
        assert backend.progress_listener_count == 0


class TestConcurrentScan:

    def test_second_request_is_noop(self, backend):
        backend.scan_gate = asyncio.Event()
        backend.progress_batches = [[make_network("AA:01")]]
        coordinator = ScanSessionCoordinator(backend)

        async def scenario():
            first = asyncio.create_task(coordinator.begin_scan())
            await asyncio.sleep(0.01)
            assert coordinator.status is ScanStatus.SCANNING

            second = await coordinator.begin_scan()
            backend.scan_gate.set()
            await first
            return second

        second = asyncio.run(scenario())

        assert backend.scan_calls == 1
        assert [n.identity for n in second] == ["AA:01"]


class TestSelectNetwork:

    def test_select_known_network(self, backend):
        backend.final = [
            make_network("AA:01", channel=1, quality=100),
            make_network("AA:02", channel=6, quality=100),
        ]
        coordinator = ScanSessionCoordinator(backend)

        async def scenario():
            await coordinator.begin_scan()
            return await coordinator.select_network("aa:02")

        assert asyncio.run(scenario()) is True
        occupancy = {m.channel: m.occupancy for m in coordinator.aggregator.metrics}
        assert occupancy[6] == pytest.approx(1.0)
        assert occupancy[1] == 0.0

    def test_select_unknown_is_noop(self, backend):
        backend.final = [make_network("AA:01")]
        aggregator = ChannelOccupancyAggregator()
        coordinator = ScanSessionCoordinator(backend, aggregator)

        async def scenario():
            await coordinator.begin_scan()
            return await coordinator.select_network("FF:FF")

        assert asyncio.run(scenario()) is False
        assert aggregator.selected is None

    def test_clear_selection_and_rescan(self, backend):
        backend.final = [
            make_network("AA:01", channel=1, quality=100),
            make_network("AA:02", channel=6, quality=100),
        ]
        coordinator = ScanSessionCoordinator(backend)

        async def scenario():
            await coordinator.begin_scan()
            await coordinator.select_network("AA:01")
            await coordinator.select_network(None)
            cleared = coordinator.aggregator.selected
            await coordinator.select_network("AA:01")
            await coordinator.begin_scan()
            return cleared

        assert asyncio.run(scenario()) is None
        assert coordinator.aggregator.selected is None
        occupancy = {m.channel: m.occupancy for m in coordinator.aggregator.metrics}
        assert occupancy[1] == pytest.approx(0.5)
