"""
WaveLens Console Output
========================

Rich-based console output for the WaveLens WiFi-analysis console.
Provides formatted tables for discovered networks, channel occupancy
(with bars, quality and recommendation), capture status, and packet
pages.

References:
    - Rich library: https://github.com/Textualize/rich
    - WaveLens Console: shared.console.WaveLensConsole
"""

from __future__ import annotations

from typing import Optional, Sequence

from rich.markup import escape

from shared.console import WaveLensConsole

from wavelens.core.models import (
    CaptureStatus,
    ChannelMetric,
    ChannelQuality,
    ChannelRecommendation,
    NetworkRecord,
    PacketRecord,
)
from wavelens.session.pagination import PacketPage


# ---------------------------------------------------------------------------
# Colour mappings
# ---------------------------------------------------------------------------

_QUALITY_COLORS: dict[ChannelQuality, str] = {
    ChannelQuality.EXCELLENT: "bold bright_green",
    ChannelQuality.GOOD: "bold green",
    ChannelQuality.FAIR: "bold yellow",
    ChannelQuality.POOR: "bold red",
}

_RECOMMENDATION_COLORS: dict[ChannelRecommendation, str] = {
    ChannelRecommendation.RECOMMENDED: "green",
    ChannelRecommendation.CAUTION: "yellow",
    ChannelRecommendation.AVOID: "red",
}

_SECURITY_COLORS: dict[str, str] = {
    "WPA3": "bold bright_green",
    "WPA2": "bold yellow",
    "WPA": "bold bright_red",
    "WEP": "bold red",
    "Open": "bold white on red",
    "Unknown": "dim",
}

_PAYLOAD_PREVIEW = 40


def _security_color(security: str) -> str:
    for prefix, color in _SECURITY_COLORS.items():
        if security.startswith(prefix):
            return color
    return ""


def _signal_color(quality: int) -> str:
    if quality >= 70:
        return "green"
    if quality >= 40:
        return "yellow"
    return "red"


# ---------------------------------------------------------------------------
# Console Output
# ---------------------------------------------------------------------------


class WaveLensConsoleOutput:
    """Rich-based console output for WaveLens sessions.

    Usage::

        output = WaveLensConsoleOutput()
        output.display_networks(engine.networks)
        output.display_channels(engine.channel_metrics)
        output.display_packet_page(engine.packet_page)
    """

    def __init__(self, console: Optional[WaveLensConsole] = None) -> None:
        self._console = console or WaveLensConsole()

    def display_banner(self, version: str = "1.0.0") -> None:
        self._console.banner(version)

    def display_networks(
        self,
        networks: Sequence[NetworkRecord],
        selected: Optional[str] = None,
    ) -> None:
        """Display discovered networks, one row per BSSID.

        Args:
            networks: Network snapshot, already in display order.
            selected: BSSID of the selected network, highlighted if given.
        """
        self._console.section("Discovered Networks")

        if not networks:
            self._console.warning("No networks discovered")
            return

        table = self._console.make_table(f"{len(networks)} Network(s)")
        table.add_column("SSID", style="bold", max_width=32)
        table.add_column("BSSID", style="dim")
        table.add_column("Ch", justify="center", width=4)
        table.add_column("Freq", justify="right", width=6)
        table.add_column("Signal", justify="right", width=14)
        table.add_column("Avg dBm", justify="right", width=8)
        table.add_column("Beacons", justify="right", width=8)
        table.add_column("Security")

        for network in networks:
            sig_color = _signal_color(network.signal_quality)
            sec_color = _security_color(network.security)
            name = escape(network.display_name)
            if selected and network.identity == selected:
                name = f"[reverse]{name}[/reverse]"
            table.add_row(
                name,
                network.bssid,
                str(network.channel) if network.channel is not None else "?",
                str(network.frequency) if network.frequency else "-",
                f"[{sig_color}]{self._make_bar(network.signal_quality / 100, 8)} "
                f"{network.signal_quality}[/{sig_color}]",
                str(network.avg_signal),
                str(network.beacon_count),
                f"[{sec_color}]{network.security}[/{sec_color}]"
                if sec_color else network.security,
            )

        self._console.rich.print(table)
        self._console.blank()

    def display_channels(
        self,
        metrics: Sequence[ChannelMetric],
        title: str = "2.4 GHz Channel Occupancy",
    ) -> None:
        """Display per-channel occupancy with quality and recommendation."""
        self._console.section("Channel Analysis")

        table = self._console.make_table(title)
        table.add_column("Channel", justify="center", width=8)
        table.add_column("Freq (MHz)", justify="center", width=10)
        table.add_column("Occupancy", justify="left", width=20)
        table.add_column("Quality", justify="center", width=10)
        table.add_column("Recommendation")

        for metric in metrics:
            quality = metric.quality
            recommendation = metric.recommendation
            q_color = _QUALITY_COLORS[quality]
            r_color = _RECOMMENDATION_COLORS[recommendation]
            table.add_row(
                str(metric.channel),
                str(metric.frequency),
                f"[{q_color}]{self._make_bar(metric.occupancy, 12)}[/{q_color}] "
                f"{metric.occupancy:.0%}",
                f"[{q_color}]{quality.value}[/{q_color}]",
                f"[{r_color}]{recommendation.value}[/{r_color}]",
            )

        self._console.rich.print(table)

        best = [m.channel for m in metrics
                if m.recommendation is ChannelRecommendation.RECOMMENDED]
        if best:
            self._console.info(
                "Recommended channels: " + ", ".join(str(c) for c in best)
            )
        else:
            self._console.warning("No channel is in the recommended range")
        self._console.blank()

    def display_capture_status(
        self,
        status: CaptureStatus,
        interface: str,
        buffered: int,
        poll_failures: int = 0,
    ) -> None:
        color = "green" if status is CaptureStatus.CAPTURING else "dim"
        pairs = [
            ("Interface", interface),
            ("Status", f"[{color}]{status.value}[/{color}]"),
            ("Buffered", f"{buffered} packet(s)"),
        ]
        if poll_failures:
            pairs.append(("Failed polls", f"[red]{poll_failures}[/red]"))
        self._console.key_values("Capture Session", pairs)

    def display_packet_page(self, page: PacketPage[PacketRecord]) -> None:
        """Display the packets on the current page, newest first."""
        table = self._console.make_table(f"Packets - page {page.page}/{page.total_pages}")
        table.add_column("Time", style="dim", width=12)
        table.add_column("Source")
        table.add_column("Destination")
        table.add_column("Protocol", style="bold")
        table.add_column("Length", justify="right", width=7)
        table.add_column("Payload", max_width=_PAYLOAD_PREVIEW)

        for packet in page.items:
            table.add_row(
                packet.timestamp.strftime("%H:%M:%S.%f")[:-3],
                self._endpoint(packet.src_ip, packet.src_port, packet.src_mac),
                self._endpoint(packet.dst_ip, packet.dst_port, packet.dst_mac),
                packet.protocol,
                str(packet.length),
                escape(self._preview(packet.payload)),
            )

        self._console.rich.print(table)
        if not page.items:
            self._console.info("No packets captured yet")

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _endpoint(ip: Optional[str], port: Optional[int], mac: str) -> str:
        if ip is None:
            return mac
        return f"{ip}:{port}" if port is not None else ip

    @staticmethod
    def _preview(payload: Optional[str]) -> str:
        if not payload:
            return ""
        first_line = payload.splitlines()[0] if payload.splitlines() else payload
        if len(first_line) > _PAYLOAD_PREVIEW:
            return first_line[:_PAYLOAD_PREVIEW - 3] + "..."
        return first_line

    @staticmethod
    def _make_bar(value: float, width: int = 10) -> str:
        """Create a simple text-based progress bar.

        Args:
            value: Value in [0.0, 1.0].
            width: Bar width in characters.

        Returns:
            String bar like "#####.....".
        """
        filled = int(round(max(0.0, min(1.0, value)) * width))
        return "#" * filled + "." * (width - filled)
