"""WaveLens radio backends."""

from wavelens.collectors.base import RadioBackend
from wavelens.collectors.scapy_backend import ScapyBackend, dissect_packet
from wavelens.collectors.simulated import SimulatedBackend

__all__ = ["RadioBackend", "ScapyBackend", "SimulatedBackend", "dissect_packet"]
