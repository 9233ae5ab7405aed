"""
WaveLens -- WiFi Analysis Console
==================================

WaveLens discovers nearby wireless networks, scores 2.4 GHz channel
congestion, and inspects captured packets. Its core is the session
logic between a radio backend and the display layer: merging
progressive scan results into a deduplicated network set, deriving
per-channel occupancy, and running a start/stop/poll capture session
with a paged packet view.

Modules:
    core.engine     -- Consumer facade
    core.models     -- Pydantic domain models
    core.store      -- Deduplicated network record store
    session         -- Scan coordinator, capture manager, pagination
    analyzers       -- Channel occupancy aggregation
    collectors      -- Live (Scapy) and simulated radio backends
    output          -- Rich console output
    cli             -- Click-based command-line interface

References:
    - IEEE. (2020). IEEE Std 802.11-2020: Wireless LAN MAC and PHY
      Specifications.
"""

__version__ = "1.0.0"
__tool__ = "WaveLens"
__description__ = "WiFi Analysis Console"
