"""
WaveLens Core Data Models
==========================

Pydantic-based domain models for the WaveLens WiFi-analysis console.
These models represent discovered wireless networks, per-channel
occupancy metrics, and captured packets.

All three record types are frozen: a newer observation of a network
replaces the stored record wholesale, and captured packets never change
after capture.

References:
    - IEEE. (2020). IEEE Std 802.11-2020: Wireless LAN Medium Access Control
      (MAC) and Physical Layer (PHY) Specifications. Annex E.
    - Pydantic v2 Documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import enum
import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Band constants
# ---------------------------------------------------------------------------

# 2.4 GHz channels covered by occupancy analysis (ETSI domain, 1-13)
CHANNEL_DOMAIN: tuple[int, ...] = tuple(range(1, 14))

CHANNEL_FREQ_MAP_24GHZ: dict[int, int] = {
    1: 2412, 2: 2417, 3: 2422, 4: 2427, 5: 2432,
    6: 2437, 7: 2442, 8: 2447, 9: 2452, 10: 2457,
    11: 2462, 12: 2467, 13: 2472, 14: 2484,
}

# Occupancy classification thresholds (upper bounds, exclusive)
EXCELLENT_THRESHOLD = 0.3
GOOD_THRESHOLD = 0.5
FAIR_THRESHOLD = 0.7


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ScanStatus(str, enum.Enum):
    """Lifecycle state of the scan coordinator."""

    IDLE = "Idle"
    SCANNING = "Scanning"


class CaptureStatus(str, enum.Enum):
    """Lifecycle state of a packet-capture session."""

    IDLE = "Idle"
    CAPTURING = "Capturing"


class ChannelQuality(str, enum.Enum):
    """Occupancy-based channel quality classification."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"

    @classmethod
    def from_occupancy(cls, occupancy: float) -> ChannelQuality:
        """Classify an occupancy ratio.

        - ``< 0.3``  : EXCELLENT
        - ``< 0.5``  : GOOD
        - ``< 0.7``  : FAIR
        - otherwise  : POOR
        """
        if occupancy < EXCELLENT_THRESHOLD:
            return cls.EXCELLENT
        if occupancy < GOOD_THRESHOLD:
            return cls.GOOD
        if occupancy < FAIR_THRESHOLD:
            return cls.FAIR
        return cls.POOR


class ChannelRecommendation(str, enum.Enum):
    """Deployment recommendation derived from channel occupancy."""

    RECOMMENDED = "Recommended - low congestion"
    CAUTION = "Use with caution - moderate congestion"
    AVOID = "Avoid - high congestion"

    @classmethod
    def from_occupancy(cls, occupancy: float) -> ChannelRecommendation:
        if occupancy < EXCELLENT_THRESHOLD:
            return cls.RECOMMENDED
        if occupancy >= FAIR_THRESHOLD:
            return cls.AVOID
        return cls.CAUTION


# ---------------------------------------------------------------------------
# Network Record
# ---------------------------------------------------------------------------


class NetworkRecord(BaseModel):
    """One observation of a wireless network (access point).

    The BSSID is the identity of the record; every other field may be
    overwritten by a newer observation of the same BSSID.

    Attributes:
        bssid: Basic Service Set Identifier (AP MAC address), upper case.
        ssid: Service Set Identifier (network name), empty when hidden.
        signal_quality: Signal quality on a 0-100 scale.
        frequency: Operating frequency in MHz.
        channel: Operating channel, ``None`` when unknown.
        security: Security label (e.g. ``"WPA2/PSK"``, ``"Open"``).
        avg_signal: Running mean of the received signal in dBm.
        beacon_count: Number of beacons observed.
        last_seen: Timestamp of the most recent beacon.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    bssid: str = Field(..., min_length=1)
    ssid: str = ""
    signal_quality: int = Field(default=0, ge=0, le=100)
    frequency: int = 0
    channel: Optional[int] = None
    security: str = "Unknown"
    avg_signal: int = -100
    beacon_count: int = Field(default=0, ge=0)
    last_seen: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("bssid", mode="before")
    @classmethod
    def _normalise_bssid(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("channel", mode="before")
    @classmethod
    def _absent_channel(cls, v: Any) -> Any:
        # Radios report 0 for "no channel information"
        if v is None or (isinstance(v, int) and v <= 0):
            return None
        return v

    @property
    def identity(self) -> str:
        """Unique station identifier used as the deduplication key."""
        return self.bssid

    @property
    def display_name(self) -> str:
        return self.ssid if self.ssid else f"<hidden> ({self.bssid})"


# ---------------------------------------------------------------------------
# Channel Metric
# ---------------------------------------------------------------------------


class ChannelMetric(BaseModel):
    """Occupancy of a single 2.4 GHz channel.

    Attributes:
        channel: Channel number.
        occupancy: Congestion ratio clamped to [0.0, 1.0].
    """

    model_config = ConfigDict(frozen=True)

    channel: int = Field(..., ge=1)
    occupancy: float = 0.0

    @field_validator("occupancy", mode="before")
    @classmethod
    def _clamp_occupancy(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            value = float(v)
            if math.isnan(value):
                return 0.0
            return min(1.0, max(0.0, value))
        return v

    @property
    def frequency(self) -> int:
        """Centre frequency in MHz, 0 outside the 2.4 GHz map."""
        return CHANNEL_FREQ_MAP_24GHZ.get(self.channel, 0)

    @property
    def quality(self) -> ChannelQuality:
        return ChannelQuality.from_occupancy(self.occupancy)

    @property
    def recommendation(self) -> ChannelRecommendation:
        return ChannelRecommendation.from_occupancy(self.occupancy)


# ---------------------------------------------------------------------------
# Packet Record
# ---------------------------------------------------------------------------


class PacketRecord(BaseModel):
    """A single captured link-layer frame, summarised.

    Attributes:
        src_mac: Source MAC address.
        dst_mac: Destination MAC address.
        src_ip: Source IP address, if the frame carries IP.
        dst_ip: Destination IP address, if the frame carries IP.
        src_port: Source TCP/UDP port, if present.
        dst_port: Destination TCP/UDP port, if present.
        protocol: Protocol label (e.g. ``"TCP"``, ``"IPv4 (47)"``).
        length: Frame length in bytes.
        payload: Decoded application payload (HTTP text), if any.
        timestamp: Capture timestamp; buffers are ordered newest first.
    """

    model_config = ConfigDict(frozen=True)

    src_mac: str
    dst_mac: str
    src_ip: Optional[str] = None
    dst_ip: Optional[str] = None
    src_port: Optional[int] = Field(default=None, ge=0, le=65535)
    dst_port: Optional[int] = Field(default=None, ge=0, le=65535)
    protocol: str = "Unknown"
    length: int = Field(default=0, ge=0)
    payload: Optional[str] = None
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
