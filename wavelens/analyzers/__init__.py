"""WaveLens analyzers."""

from wavelens.analyzers.channel import ChannelOccupancyAggregator, compute_occupancy

__all__ = ["ChannelOccupancyAggregator", "compute_occupancy"]
