"""
Shared fixtures for the WaveLens test-suite.

``FakeBackend`` is an in-memory radio backend: scans replay scripted
progress batches, capture calls are recorded, and polls pop scripted
results (a list of packets or an exception) in order.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from wavelens.collectors.base import RadioBackend
from wavelens.core.models import NetworkRecord, PacketRecord

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_network(
    bssid: str,
    channel: Optional[int] = 6,
    quality: int = 50,
    ssid: Optional[str] = None,
) -> NetworkRecord:
    return NetworkRecord(
        bssid=bssid,
        ssid=ssid if ssid is not None else f"net-{bssid[-2:]}",
        signal_quality=quality,
        channel=channel,
        security="WPA2/PSK",
        beacon_count=1,
    )


def make_packet(offset_s: float, protocol: str = "TCP") -> PacketRecord:
    return PacketRecord(
        src_mac="AA:AA:AA:AA:AA:01",
        dst_mac="BB:BB:BB:BB:BB:02",
        src_ip="192.168.1.10",
        dst_ip="10.0.0.1",
        src_port=40000,
        dst_port=443,
        protocol=protocol,
        length=60,
        timestamp=BASE_TIME + timedelta(seconds=offset_s),
    )


class FakeBackend(RadioBackend):
    """Scriptable backend for driving the session components."""

    def __init__(self) -> None:
        super().__init__()
        self.progress_batches: list[list[NetworkRecord]] = []
        self.final: list[NetworkRecord] = []
        self.scan_error: Optional[Exception] = None
        self.scan_gate: Optional[asyncio.Event] = None
        self.scan_calls = 0
        self.listeners_during_scan: Optional[int] = None

        self.interfaces = ["eth0", "wlan0"]
        self.interfaces_error: Optional[Exception] = None

        self.start_error: Optional[Exception] = None
        self.start_delay = 0.0
        self.start_calls: list[str] = []
        self.stop_calls = 0
        self.capturing_on: Optional[str] = None
        self.poll_results: list = []
        self.poll_calls = 0

    async def scan(self) -> list[NetworkRecord]:
        self.scan_calls += 1
        self.listeners_during_scan = self.progress_listener_count
        for batch in self.progress_batches:
            self._emit_progress(batch)
            await asyncio.sleep(0)
        if self.scan_gate is not None:
            await self.scan_gate.wait()
        if self.scan_error is not None:
            raise self.scan_error
        return list(self.final)

    async def list_interfaces(self) -> list[str]:
        if self.interfaces_error is not None:
            raise self.interfaces_error
        return list(self.interfaces)

    async def start_capture(self, interface_name: str) -> None:
        self.start_calls.append(interface_name)
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.start_error is not None:
            raise self.start_error
        self.capturing_on = interface_name

    async def stop_capture(self) -> None:
        self.stop_calls += 1
        if self.capturing_on is None:
            raise RuntimeError("No packet capture is active")
        self.capturing_on = None

    async def poll_latest_packets(self) -> list[PacketRecord]:
        self.poll_calls += 1
        if not self.poll_results:
            return []
        item = self.poll_results.pop(0)
        if isinstance(item, Exception):
            raise item
        return list(item)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
