"""
WaveLens Simulated Backend
===========================

Radio backend that fabricates plausible beacon observations and packet
traffic instead of touching hardware. Used for ``--simulate`` runs,
demonstrations without root privileges, and tests.

Output is deterministic for a given ``seed``.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from shared.logger import WaveLensLogger

from wavelens.collectors.base import RadioBackend
from wavelens.collectors.scapy_backend import signal_quality_from_dbm
from wavelens.core.models import CHANNEL_FREQ_MAP_24GHZ, NetworkRecord, PacketRecord

logger = WaveLensLogger("collectors.simulated")

_SSIDS = (
    "HomeNet", "CoffeeShop-Guest", "Office-Corp", "IoT-Devices", "Printer-4F",
    "Neighbour_2G", "FreeWiFi", "Lab-Secure", "Library", "TP-LINK_5A21",
    "Airport_Free", "Hotel-Lobby", "eduroam", "Studio-AP", "Garage-Cam",
)

_SECURITY = ("WPA2/PSK", "WPA2/PSK", "WPA3/SAE", "WPA2/802.1X", "Open", "WEP")

# Non-overlapping channels are the common picks
_CHANNEL_WEIGHTS = {1: 5, 6: 5, 11: 5, 2: 1, 3: 1, 4: 1, 5: 1,
                    7: 1, 8: 1, 9: 1, 10: 1, 12: 1, 13: 1}

_DEFAULT_INTERFACES = ("eth0", "lo", "wlan0", "wlan0mon")


class SimulatedBackend(RadioBackend):
    """Synthetic backend with the same contract as the live one.

    Usage::

        backend = SimulatedBackend(seed=7, scan_duration=1.0)
        networks = await backend.scan()
    """

    def __init__(
        self,
        *,
        seed: Optional[int] = None,
        network_count: int = 12,
        packets_per_poll: int = 8,
        scan_duration: float = 2.0,
        progress_interval: float = 0.5,
        interfaces: tuple[str, ...] = _DEFAULT_INTERFACES,
    ) -> None:
        super().__init__()
        self._rng = random.Random(seed)
        self._packets_per_poll = packets_per_poll
        self._scan_duration = scan_duration
        self._progress_interval = progress_interval
        self._interfaces = list(interfaces)
        self._access_points = self._build_access_points(network_count)
        self._capture_interface: Optional[str] = None
        self._packet_clock = datetime.now(timezone.utc)

    def _build_access_points(self, count: int) -> list[dict]:
        channels = list(_CHANNEL_WEIGHTS)
        weights = list(_CHANNEL_WEIGHTS.values())
        aps = []
        for index in range(count):
            octets = [0xA4, 0xCF, 0x12] + [self._rng.randint(0, 255) for _ in range(3)]
            aps.append({
                "bssid": ":".join(f"{o:02X}" for o in octets),
                "ssid": _SSIDS[index] if index < len(_SSIDS)
                else f"{_SSIDS[index % len(_SSIDS)]}-{index}",
                "channel": self._rng.choices(channels, weights)[0],
                "base_dbm": self._rng.randint(-88, -38),
                "security": self._rng.choice(_SECURITY),
            })
        return aps

    # ------------------------------------------------------------------ #
    #  Scanning
    # ------------------------------------------------------------------ #

    async def scan(self) -> list[NetworkRecord]:
        heard: dict[str, NetworkRecord] = {}
        steps = max(1, round(self._scan_duration / self._progress_interval))
        step_delay = self._scan_duration / steps

        logger.info(f"Simulated scan: {len(self._access_points)} AP(s), {steps} step(s)")

        with logger.timed("simulated scan"):
            for _ in range(steps):
                await asyncio.sleep(step_delay)
                for ap in self._access_points:
                    # Weak networks are heard less often
                    if self._rng.random() > 0.4 + (ap["base_dbm"] + 100) / 100:
                        continue
                    heard[ap["bssid"]] = self._observe(ap, heard.get(ap["bssid"]))
                self._emit_progress(list(heard.values()))

        return list(heard.values())

    def _observe(self, ap: dict, previous: Optional[NetworkRecord]) -> NetworkRecord:
        signal_dbm = ap["base_dbm"] + self._rng.randint(-4, 4)
        count = (previous.beacon_count if previous else 0) + 1
        avg = signal_dbm if previous is None else round(
            (previous.avg_signal * (count - 1) + signal_dbm) / count
        )
        return NetworkRecord(
            bssid=ap["bssid"],
            ssid=ap["ssid"],
            signal_quality=signal_quality_from_dbm(signal_dbm),
            frequency=CHANNEL_FREQ_MAP_24GHZ[ap["channel"]],
            channel=ap["channel"],
            security=ap["security"],
            avg_signal=avg,
            beacon_count=count,
        )

    # ------------------------------------------------------------------ #
    #  Interfaces and capture
    # ------------------------------------------------------------------ #

    async def list_interfaces(self) -> list[str]:
        return list(self._interfaces)

    async def start_capture(self, interface_name: str) -> None:
        if self._capture_interface is not None:
            raise RuntimeError(
                f"A capture is already running on {self._capture_interface}"
            )
        if interface_name not in self._interfaces:
            raise OSError(f"No such device: {interface_name}")
        self._capture_interface = interface_name
        logger.info(f"Simulated capture started on {interface_name}")

    async def stop_capture(self) -> None:
        if self._capture_interface is None:
            raise RuntimeError("No packet capture is active")
        logger.info(f"Simulated capture stopped on {self._capture_interface}")
        self._capture_interface = None

    async def poll_latest_packets(self) -> list[PacketRecord]:
        if self._capture_interface is None:
            return []
        return [self._fake_packet() for _ in range(self._packets_per_poll)]

    def _fake_packet(self) -> PacketRecord:
        self._packet_clock += timedelta(milliseconds=self._rng.randint(1, 250))
        src_mac = ":".join(f"{self._rng.randint(0, 255):02X}" for _ in range(6))
        dst_mac = ":".join(f"{self._rng.randint(0, 255):02X}" for _ in range(6))
        src_ip = f"192.168.1.{self._rng.randint(2, 254)}"
        dst_ip = f"10.0.{self._rng.randint(0, 255)}.{self._rng.randint(1, 254)}"
        kind = self._rng.choice(("https", "dns", "http", "arp", "icmp"))

        if kind == "arp":
            return PacketRecord(
                src_mac=src_mac, dst_mac="FF:FF:FF:FF:FF:FF",
                protocol="ARP", length=42, timestamp=self._packet_clock,
            )
        if kind == "icmp":
            return PacketRecord(
                src_mac=src_mac, dst_mac=dst_mac, src_ip=src_ip, dst_ip=dst_ip,
                protocol="ICMP", length=98, timestamp=self._packet_clock,
            )

        sport = self._rng.randint(1024, 65535)
        if kind == "dns":
            return PacketRecord(
                src_mac=src_mac, dst_mac=dst_mac, src_ip=src_ip, dst_ip=dst_ip,
                src_port=sport, dst_port=53, protocol="UDP",
                length=self._rng.randint(60, 120), timestamp=self._packet_clock,
            )
        if kind == "http":
            payload = f"GET /index.html HTTP/1.1\r\nHost: {dst_ip}\r\n\r\n"
            return PacketRecord(
                src_mac=src_mac, dst_mac=dst_mac, src_ip=src_ip, dst_ip=dst_ip,
                src_port=sport, dst_port=80, protocol="TCP",
                length=54 + len(payload), payload=payload,
                timestamp=self._packet_clock,
            )
        return PacketRecord(
            src_mac=src_mac, dst_mac=dst_mac, src_ip=src_ip, dst_ip=dst_ip,
            src_port=sport, dst_port=443, protocol="TCP",
            length=self._rng.randint(66, 1514), timestamp=self._packet_clock,
        )
