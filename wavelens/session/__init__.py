"""
WaveLens Sessions
==================

Scan coordination, packet-capture session management and packet
pagination.
"""

from wavelens.session.capture import CaptureSession, CaptureSessionManager
from wavelens.session.pagination import PacketPage
from wavelens.session.scan import ScanSessionCoordinator

__all__ = [
    "CaptureSession",
    "CaptureSessionManager",
    "PacketPage",
    "ScanSessionCoordinator",
]
