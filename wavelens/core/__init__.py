"""
WaveLens Core
==============

Domain models, errors and the network record store for the WaveLens
WiFi-analysis console. The consumer facade lives in
:mod:`wavelens.core.engine`.
"""

from wavelens.core.errors import (
    CaptureStartError,
    CaptureStopError,
    InterfaceListError,
    PollFailure,
    ScanFailure,
    WaveLensError,
)
from wavelens.core.models import (
    CaptureStatus,
    ChannelMetric,
    ChannelQuality,
    ChannelRecommendation,
    NetworkRecord,
    PacketRecord,
    ScanStatus,
)
from wavelens.core.store import NetworkRecordStore

__all__ = [
    "CaptureStartError",
    "CaptureStopError",
    "InterfaceListError",
    "PollFailure",
    "ScanFailure",
    "WaveLensError",
    "CaptureStatus",
    "ChannelMetric",
    "ChannelQuality",
    "ChannelRecommendation",
    "NetworkRecord",
    "PacketRecord",
    "ScanStatus",
    "NetworkRecordStore",
]
