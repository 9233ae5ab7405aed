"""Tests for beacon parsing and packet dissection on Scapy-built frames."""

import asyncio
from datetime import datetime, timezone

import pytest
from scapy.all import (
    ARP,
    ICMP,
    IP,
    TCP,
    UDP,
    Dot11,
    Dot11Beacon,
    Dot11Elt,
    Dot11EltDSSSet,
    Ether,
    ICMPv6EchoRequest,
    IPv6,
    RadioTap,
    Raw,
)

from wavelens.collectors import scapy_backend
from wavelens.collectors.scapy_backend import (
    ScapyBackend,
    channel_from_frequency,
    dissect_packet,
    observe_beacon,
    signal_quality_from_dbm,
)

SRC_MAC = "02:00:00:00:00:01"
DST_MAC = "02:00:00:00:00:02"
BSSID = "a4:cf:12:00:00:01"


def _ether():
    return Ether(src=SRC_MAC, dst=DST_MAC)


def _wire(packet):
    """Rebuild a packet from its bytes, as a sniffer would deliver it."""
    return Ether(bytes(packet))


def _beacon(ssid="HomeNet", dbm=-40, privacy=True, channel=6):
    cap = "ESS+privacy" if privacy else "ESS"
    frame = (
        RadioTap(present="dBm_AntSignal", dBm_AntSignal=dbm)
        / Dot11(type=0, subtype=8, addr1="ff:ff:ff:ff:ff:ff", addr2=BSSID, addr3=BSSID)
        / Dot11Beacon(cap=cap)
        / Dot11Elt(ID="SSID", info=ssid)
        / Dot11EltDSSSet(channel=channel)
    )
    return RadioTap(bytes(frame))


class TestHelpers:

    @pytest.mark.parametrize(
        "dbm, quality", [(-110, 0), (-100, 0), (-75, 50), (-50, 100), (-20, 100)]
    )
    def test_signal_quality(self, dbm, quality):
        assert signal_quality_from_dbm(dbm) == quality

    def test_channel_from_frequency(self):
        assert channel_from_frequency(2437) == 6
        assert channel_from_frequency(5180) == 36
        assert channel_from_frequency(900) is None


class TestObserveBeacon:

    def test_first_beacon(self):
        seen_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
        record = observe_beacon(_beacon(), None, seen_at)

        assert record.bssid == BSSID.upper()
        assert record.ssid == "HomeNet"
        assert record.channel == 6
        assert record.frequency == 2437
        assert record.signal_quality == 100
        assert record.avg_signal == -40
        assert record.beacon_count == 1
        assert record.last_seen == seen_at
        assert record.security != "Open"

    def test_running_average(self):
        first = observe_beacon(_beacon(dbm=-40), None)
        second = observe_beacon(_beacon(dbm=-60), first)

        assert second.beacon_count == 2
        assert second.avg_signal == -50
        assert second.signal_quality == 80

    def test_open_network(self):
        record = observe_beacon(_beacon(privacy=False), None)
        assert record.security == "Open"

    def test_hidden_ssid_skipped(self):
        assert observe_beacon(_beacon(ssid=""), None) is None

    def test_non_beacon_ignored(self):
        assert observe_beacon(_wire(_ether() / IP(src="10.0.0.1", dst="10.0.0.2")), None) is None


class TestDissectPacket:

    def test_http_request(self):
        request = b"GET /index.html HTTP/1.1\r\nHost: example\r\n\r\n"
        packet = _wire(
            _ether()
            / IP(src="192.168.1.10", dst="93.184.216.34")
            / TCP(sport=40000, dport=80)
            / Raw(load=request)
        )
        record = dissect_packet(packet)

        assert record.src_mac == SRC_MAC.upper()
        assert record.dst_mac == DST_MAC.upper()
        assert record.src_ip == "192.168.1.10"
        assert record.dst_ip == "93.184.216.34"
        assert (record.src_port, record.dst_port) == (40000, 80)
        assert record.protocol == "TCP"
        assert record.length == len(packet)
        assert record.payload == request.decode()

    def test_http_payload_requires_utf8(self):
        packet = _wire(
            _ether() / IP(src="10.0.0.1", dst="10.0.0.2")
            / TCP(sport=40000, dport=80) / Raw(load=b"\xff\xfe\x00")
        )
        assert dissect_packet(packet).payload is None

    def test_payload_only_for_port_80(self):
        packet = _wire(
            _ether() / IP(src="10.0.0.1", dst="10.0.0.2")
            / TCP(sport=40000, dport=443) / Raw(load=b"hello")
        )
        assert dissect_packet(packet).payload is None

    def test_udp_over_ipv6(self):
        packet = _wire(_ether() / IPv6(src="fe80::1", dst="fe80::2") / UDP(sport=5353, dport=5353))
        record = dissect_packet(packet)

        assert record.protocol == "UDP"
        assert record.src_ip == "fe80::1"
        assert record.dst_port == 5353

    @pytest.mark.parametrize(
        "packet, protocol",
        [
            (lambda: _ether() / IP(src="10.0.0.1", dst="10.0.0.2") / ICMP(), "ICMP"),
            (lambda: _ether() / IPv6(src="fe80::1", dst="fe80::2") / ICMPv6EchoRequest(), "ICMPv6"),
            (lambda: _ether() / IP(src="10.0.0.1", dst="10.0.0.2", proto=47), "IPv4 (47)"),
            (lambda: _ether() / IPv6(src="fe80::1", dst="fe80::2", nh=59), "IPv6 (59)"),
            (lambda: _ether() / ARP(psrc="10.0.0.1", pdst="10.0.0.2"), "ARP"),
            (lambda: Ether(src=SRC_MAC, dst=DST_MAC, type=0x88B5) / Raw(b"x"), "Unknown (0x88B5)"),
        ],
    )
    def test_protocol_labels(self, packet, protocol):
        record = dissect_packet(_wire(packet()))
        assert record.protocol == protocol

    def test_ports_absent_without_transport(self):
        record = dissect_packet(_wire(_ether() / ARP(psrc="10.0.0.1", pdst="10.0.0.2")))
        assert record.src_ip is None
        assert record.src_port is None

    def test_non_ethernet_frame(self):
        assert dissect_packet(IP(src="10.0.0.1", dst="10.0.0.2")) is None


class _IdleSniffer:
    """Stands in for AsyncSniffer so capture startup runs without a socket."""

    instances: list = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.running = False
        _IdleSniffer.instances.append(self)

    def start(self):
        self.running = True

    def stop(self):
        self.running = False


class TestCaptureStartup:

    def test_cancelled_startup_halts_sniffer(self, monkeypatch):
        _IdleSniffer.instances.clear()
        monkeypatch.setattr(scapy_backend, "AsyncSniffer", _IdleSniffer)
        backend = ScapyBackend(startup_grace=10.0)

        async def scenario():
            task = asyncio.create_task(backend.start_capture("eth0"))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        (sniffer,) = _IdleSniffer.instances
        assert sniffer.kwargs["iface"] == "eth0"
        assert sniffer.running is False
        with pytest.raises(RuntimeError):
            asyncio.run(backend.stop_capture())
