"""
WaveLens Scapy Backend
=======================

Live radio backend built on Scapy's :class:`AsyncSniffer`.

Scanning sniffs 802.11 beacon frames on a monitor-mode interface and
keeps one record per BSSID, refreshing signal quality, the running mean
of the received signal, the beacon count, and the last-seen time. A
progress batch with every recently-heard network is pushed at a fixed
interval while the scan runs.

Packet capture sniffs Ethernet frames on any interface and summarises
each one into a :class:`PacketRecord` (MACs, IP addresses, ports,
protocol label, length, and HTTP payload text). Captured records wait in
a pending queue until the next poll collects them.

Sniffer callbacks run on Scapy's capture thread; state they share with
the event loop is guarded by a lock.

References:
    - IEEE. (2020). IEEE Std 802.11-2020. Section 9.3.3.3: Beacon frame
      format.
    - Biondi, P. (2024). Scapy: Packet Manipulation Library.
      https://scapy.net/
    - IETF RFC 791 / RFC 8200 / RFC 793 / RFC 768.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional

from shared.logger import WaveLensLogger

from wavelens.collectors.base import RadioBackend
from wavelens.core.models import CHANNEL_FREQ_MAP_24GHZ, NetworkRecord, PacketRecord

# Scapy imports -- suppress Scapy's startup warning
import logging
logging.getLogger("scapy.runtime").setLevel(logging.ERROR)

from scapy.all import (  # noqa: E402
    ARP,
    AsyncSniffer,
    Dot11,
    Dot11Beacon,
    Ether,
    IP,
    IPv6,
    RadioTap,
    Raw,
    TCP,
    UDP,
    get_if_list,
)

logger = WaveLensLogger("collectors.scapy")

_BEACON_FILTER = "type mgt subtype beacon"

# IP protocol numbers with a dedicated label
_IP_PROTOCOL_NAMES: dict[int, str] = {
    1: "ICMP",
    6: "TCP",
    17: "UDP",
    58: "ICMPv6",
}

_HTTP_PORT = 80


# ---------------------------------------------------------------------------
# Frame helpers
# ---------------------------------------------------------------------------


def signal_quality_from_dbm(dbm: int) -> int:
    """Map dBm onto 0-100: -100 dBm or weaker is 0, -50 dBm or stronger is 100."""
    return min(100, max(0, dbm + 100) * 2)


def channel_from_frequency(frequency: int) -> Optional[int]:
    """2.4/5 GHz centre frequency in MHz to channel number."""
    for ch, freq in CHANNEL_FREQ_MAP_24GHZ.items():
        if freq == frequency:
            return ch
    if 5000 <= frequency <= 5900:
        return (frequency - 5000) // 5
    return None


def _security_label(crypto: Any) -> str:
    labels = sorted(str(c) for c in (crypto or ()))
    if not labels:
        return "Unknown"
    return ", ".join("Open" if label == "OPN" else label for label in labels)


def observe_beacon(
    packet: Any,
    previous: Optional[NetworkRecord],
    seen_at: Optional[datetime] = None,
) -> Optional[NetworkRecord]:
    """Fold one beacon frame into the record for its BSSID.

    Args:
        packet: Scapy packet carrying ``Dot11Beacon``.
        previous: The record built from earlier beacons, if any.
        seen_at: Observation time (defaults to now).

    Returns:
        The updated record, or ``None`` for frames that are not usable
        beacons or advertise a hidden (empty) SSID.
    """
    if not packet.haslayer(Dot11Beacon):
        return None

    bssid = packet[Dot11].addr3
    if not bssid:
        return None

    stats = packet[Dot11Beacon].network_stats()
    ssid = (stats.get("ssid") or "").strip("\x00")
    if not ssid:
        return None

    signal_dbm: Optional[int] = None
    frequency = 0
    if packet.haslayer(RadioTap):
        radiotap = packet[RadioTap]
        raw_signal = getattr(radiotap, "dBm_AntSignal", None)
        if raw_signal is not None:
            signal_dbm = int(raw_signal)
        frequency = int(getattr(radiotap, "ChannelFrequency", None) or 0)

    channel = stats.get("channel") or (
        channel_from_frequency(frequency) if frequency else None
    )
    if not frequency and channel in CHANNEL_FREQ_MAP_24GHZ:
        frequency = CHANNEL_FREQ_MAP_24GHZ[channel]

    beacon_count = (previous.beacon_count if previous else 0) + 1
    signal_quality = previous.signal_quality if previous else 0
    avg_signal = previous.avg_signal if previous else -100

    if signal_dbm is not None:
        signal_quality = signal_quality_from_dbm(signal_dbm)
        if beacon_count > 1 and previous is not None:
            avg_signal = round(
                (previous.avg_signal * (beacon_count - 1) + signal_dbm)
                / beacon_count
            )
        else:
            avg_signal = signal_dbm

    return NetworkRecord(
        bssid=bssid,
        ssid=ssid,
        signal_quality=signal_quality,
        frequency=frequency,
        channel=channel,
        security=_security_label(stats.get("crypto")),
        avg_signal=avg_signal,
        beacon_count=beacon_count,
        last_seen=seen_at or datetime.now(timezone.utc),
    )


def _decode_payload(data: bytes) -> Optional[str]:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def dissect_packet(packet: Any) -> Optional[PacketRecord]:
    """Summarise an Ethernet frame into a :class:`PacketRecord`.

    Returns ``None`` for frames without an Ethernet header.
    """
    if not packet.haslayer(Ether):
        return None

    eth = packet[Ether]
    src_ip: Optional[str] = None
    dst_ip: Optional[str] = None
    src_port: Optional[int] = None
    dst_port: Optional[int] = None
    payload: Optional[str] = None

    if packet.haslayer(IP):
        ip_layer = packet[IP]
        src_ip, dst_ip = ip_layer.src, ip_layer.dst
        protocol = _IP_PROTOCOL_NAMES.get(ip_layer.proto, f"IPv4 ({ip_layer.proto})")
    elif packet.haslayer(IPv6):
        ip6_layer = packet[IPv6]
        src_ip, dst_ip = ip6_layer.src, ip6_layer.dst
        protocol = _IP_PROTOCOL_NAMES.get(ip6_layer.nh, f"IPv6 ({ip6_layer.nh})")
    elif packet.haslayer(ARP):
        protocol = "ARP"
    else:
        protocol = f"Unknown (0x{eth.type:04X})"

    if packet.haslayer(TCP):
        tcp = packet[TCP]
        src_port, dst_port = int(tcp.sport), int(tcp.dport)
        protocol = "TCP"
        if dst_port == _HTTP_PORT and packet.haslayer(Raw):
            payload = _decode_payload(bytes(packet[Raw].load))
    elif packet.haslayer(UDP):
        udp = packet[UDP]
        src_port, dst_port = int(udp.sport), int(udp.dport)
        protocol = "UDP"

    captured_at = float(getattr(packet, "time", 0.0) or time.time())

    return PacketRecord(
        src_mac=str(eth.src).upper(),
        dst_mac=str(eth.dst).upper(),
        src_ip=src_ip,
        dst_ip=dst_ip,
        src_port=src_port,
        dst_port=dst_port,
        protocol=protocol,
        length=len(packet),
        payload=payload,
        timestamp=datetime.fromtimestamp(captured_at, tz=timezone.utc),
    )


def _sniffer_failure(sniffer: AsyncSniffer) -> Optional[BaseException]:
    """Exception that ended a sniffer thread early, if it has ended."""
    thread = getattr(sniffer, "thread", None)
    if thread is None or thread.is_alive():
        return None
    exc = getattr(sniffer, "exception", None)
    if exc is not None:
        return exc
    return OSError("Sniffer thread exited unexpectedly")


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class ScapyBackend(RadioBackend):
    """Live backend: beacon scanning and packet capture through Scapy.

    Requires root privileges; scanning additionally needs a wireless
    interface that supports monitor mode.

    Usage::

        backend = ScapyBackend(scan_interface="wlan0mon", scan_duration=10)
        networks = await backend.scan()
        await backend.start_capture("eth0")
        packets = await backend.poll_latest_packets()
    """

    def __init__(
        self,
        scan_interface: str = "wlan0mon",
        *,
        scan_duration: float = 10.0,
        progress_interval: float = 0.5,
        freshness_window: float = 10.0,
        bpf_filter: str = "",
        max_pending: int = 10_000,
        startup_grace: float = 0.2,
    ) -> None:
        super().__init__()
        self._scan_interface = scan_interface
        self._scan_duration = scan_duration
        self._progress_interval = progress_interval
        self._freshness_window = freshness_window
        self._bpf_filter = bpf_filter
        self._startup_grace = startup_grace

        self._lock = threading.Lock()
        self._networks: dict[str, NetworkRecord] = {}
        self._pending: deque[PacketRecord] = deque(maxlen=max_pending)
        self._dropped = 0

        self._capture: Optional[AsyncSniffer] = None
        self._capture_interface: Optional[str] = None

    # ------------------------------------------------------------------ #
    #  Scanning
    # ------------------------------------------------------------------ #

    async def scan(self) -> list[NetworkRecord]:
        """Sniff beacons for the configured duration.

        Raises:
            PermissionError: Without privileges for raw capture.
            OSError: If the interface is missing or the sniffer dies.
        """
        with self._lock:
            self._networks.clear()

        logger.info(
            f"Starting beacon scan on {self._scan_interface} "
            f"for {self._scan_duration}s"
        )

        sniffer = AsyncSniffer(
            iface=self._scan_interface,
            prn=self._on_beacon,
            store=False,
            monitor=True,
            filter=_BEACON_FILTER,
        )
        sniffer.start()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._scan_duration
        with logger.timed(f"beacon scan on {self._scan_interface}"):
            try:
                while True:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    await asyncio.sleep(min(self._progress_interval, remaining))

                    failure = _sniffer_failure(sniffer)
                    if failure is not None:
                        raise failure

                    self._emit_progress(self._fresh_networks())
            finally:
                await self._halt(sniffer)

        networks = self._fresh_networks()
        logger.info(f"Beacon scan complete: {len(networks)} network(s)")
        return networks

    def _on_beacon(self, packet: Any) -> None:
        try:
            if not packet.haslayer(Dot11Beacon):
                return
            bssid = (packet[Dot11].addr3 or "").upper()
            with self._lock:
                record = observe_beacon(packet, self._networks.get(bssid))
                if record is not None:
                    if bssid not in self._networks:
                        logger.debug(f"Found new network: {record.ssid} ({bssid})")
                    self._networks[bssid] = record
        except Exception as exc:
            # Malformed frames must not kill the sniffer thread
            logger.warning(f"Failed to parse beacon: {exc}")

    def _fresh_networks(self) -> list[NetworkRecord]:
        cutoff = time.time() - self._freshness_window
        with self._lock:
            return [
                n for n in self._networks.values()
                if n.last_seen.timestamp() >= cutoff
            ]

    # ------------------------------------------------------------------ #
    #  Interfaces
    # ------------------------------------------------------------------ #

    async def list_interfaces(self) -> list[str]:
        loop = asyncio.get_running_loop()
        names = await loop.run_in_executor(None, get_if_list)
        logger.debug(f"Found {len(names)} interface(s)")
        return sorted(names)

    # ------------------------------------------------------------------ #
    #  Packet capture
    # ------------------------------------------------------------------ #

    async def start_capture(self, interface_name: str) -> None:
        """Start sniffing Ethernet frames on *interface_name*.

        Raises:
            RuntimeError: If a capture is already running.
            PermissionError / OSError: If the sniffer cannot open the interface.
        """
        if self._capture is not None:
            raise RuntimeError(
                f"A capture is already running on {self._capture_interface}"
            )

        with self._lock:
            self._pending.clear()
            self._dropped = 0

        kwargs: dict[str, Any] = {
            "iface": interface_name,
            "prn": self._on_packet,
            "store": False,
        }
        if self._bpf_filter:
            kwargs["filter"] = self._bpf_filter

        sniffer = AsyncSniffer(**kwargs)
        sniffer.start()

        # Interface and permission errors surface once the thread opens its socket
        try:
            await asyncio.sleep(self._startup_grace)
        except BaseException:
            await self._halt(sniffer)
            raise
        failure = _sniffer_failure(sniffer)
        if failure is not None:
            raise failure

        self._capture = sniffer
        self._capture_interface = interface_name
        logger.info(f"Packet capture started on {interface_name}")

    async def stop_capture(self) -> None:
        """Stop the running capture.

        Raises:
            RuntimeError: If no capture is active.
        """
        sniffer, self._capture = self._capture, None
        interface, self._capture_interface = self._capture_interface, None
        if sniffer is None:
            raise RuntimeError("No packet capture is active")

        await self._halt(sniffer)
        logger.info(f"Packet capture stopped on {interface}")

    async def poll_latest_packets(self) -> list[PacketRecord]:
        if self._capture is not None:
            failure = _sniffer_failure(self._capture)
            if failure is not None:
                raise failure

        with self._lock:
            packets = list(self._pending)
            self._pending.clear()
            dropped, self._dropped = self._dropped, 0

        if dropped:
            logger.warning(f"{dropped} packet(s) dropped between polls")
        return packets

    def _on_packet(self, packet: Any) -> None:
        try:
            record = dissect_packet(packet)
        except Exception as exc:
            logger.warning(f"Failed to dissect packet: {exc}")
            return
        if record is None:
            return
        with self._lock:
            if len(self._pending) == self._pending.maxlen:
                self._dropped += 1
            self._pending.append(record)

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    async def _halt(sniffer: AsyncSniffer) -> None:
        """Stop *sniffer* off the event loop if it is still running."""
        if not sniffer.running:
            return
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, sniffer.stop)
        except Exception as exc:
            logger.warning(f"Failed to stop sniffer cleanly: {exc}")
