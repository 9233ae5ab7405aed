"""
WaveLens Errors
================

Exception hierarchy for failures surfaced by the WaveLens session
components. Backend exceptions are chained as ``__cause__``.
"""

from __future__ import annotations

from typing import Optional


class WaveLensError(Exception):
    """Base class for every error surfaced to WaveLens consumers."""

    pass


class ScanFailure(WaveLensError):
    """The final scan request was rejected by the radio backend.

    Records merged from progress events before the failure remain
    visible in the network store.
    """

    pass


class InterfaceListError(WaveLensError):
    """Network interfaces could not be enumerated."""

    pass


class CaptureStartError(WaveLensError):
    """The backend refused to start a capture (permissions, busy interface)."""

    def __init__(self, message: str, interface: Optional[str] = None) -> None:
        super().__init__(message)
        self.interface = interface


class CaptureStopError(WaveLensError):
    """The backend reported that no capture session was active."""

    pass


class PollFailure(WaveLensError):
    """A single capture poll failed. Non-fatal; the session keeps ticking."""

    pass
