"""
WaveLens Channel Occupancy Aggregator
======================================

Derives per-channel occupancy metrics for the 2.4 GHz channels 1-13
from the current network set, or from a single selected network.

The raw occupancy figures come from an occupancy source (normally the
radio backend). The aggregator only normalises them into the fixed
channel domain: one entry per channel, ascending, channels without
data at 0.0. Classification of a metric (Excellent/Good/Fair/Poor and
the matching recommendation) lives on :class:`ChannelMetric`.

The default occupancy model weights each channel's share of the
discovered networks by their mean signal quality::

    occupancy(c) = (networks_on(c) / all_networks) * (mean_quality(c) / 100)

References:
    - IEEE. (2020). IEEE Std 802.11-2020. Annex E: Country Information
      and Operating Classes.
    - Cisco. (2023). 2.4 GHz Band Channel Assignment. Wireless LAN
      Design Guide.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable, Optional, Sequence

from shared.logger import WaveLensLogger

from wavelens.core.models import (
    CHANNEL_DOMAIN,
    ChannelMetric,
    ChannelRecommendation,
    NetworkRecord,
)

logger = WaveLensLogger("analyzers.channel")

OccupancySource = Callable[[list[NetworkRecord]], Awaitable[list[ChannelMetric]]]


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def compute_occupancy(networks: Sequence[NetworkRecord]) -> list[ChannelMetric]:
    """Signal-weighted share of networks per channel, for channels 1-13.

    Networks without a channel, or outside the domain, still count
    towards the total.
    """
    counts: dict[int, int] = {ch: 0 for ch in CHANNEL_DOMAIN}
    quality_sum: dict[int, int] = {ch: 0 for ch in CHANNEL_DOMAIN}

    for network in networks:
        if network.channel in counts:
            counts[network.channel] += 1
            quality_sum[network.channel] += network.signal_quality

    total = len(networks)
    metrics: list[ChannelMetric] = []
    for ch in CHANNEL_DOMAIN:
        count = counts[ch]
        avg_quality = quality_sum[ch] / count if count else 0.0
        occupancy = (count / total) * (avg_quality / 100.0) if total else 0.0
        metrics.append(ChannelMetric(channel=ch, occupancy=occupancy))
    return metrics


def normalize_metrics(raw: Iterable[ChannelMetric]) -> list[ChannelMetric]:
    """Project raw metrics onto the fixed channel domain.

    Returns exactly one metric per channel 1-13 in ascending order.
    Entries outside the domain are dropped; a channel reported more
    than once keeps its last entry.
    """
    by_channel: dict[int, ChannelMetric] = {}
    for metric in raw:
        if metric.channel in CHANNEL_DOMAIN:
            by_channel[metric.channel] = metric
    return [
        by_channel.get(ch) or ChannelMetric(channel=ch, occupancy=0.0)
        for ch in CHANNEL_DOMAIN
    ]


def empty_metrics() -> list[ChannelMetric]:
    """All-zero metrics for the whole domain."""
    return [ChannelMetric(channel=ch, occupancy=0.0) for ch in CHANNEL_DOMAIN]


async def _default_source(networks: list[NetworkRecord]) -> list[ChannelMetric]:
    return compute_occupancy(networks)


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class ChannelOccupancyAggregator:
    """Keeps the current channel metrics for the network set.

    :meth:`aggregate` is a pure transformation of its input. :meth:`recompute`
    additionally honours the selected-network view and stores the result
    as :attr:`metrics`; the scan coordinator calls it after every merge.

    Usage::

        aggregator = ChannelOccupancyAggregator(backend.channel_occupancy)
        metrics = await aggregator.recompute(store.snapshot())
        for metric in metrics:
            print(metric.channel, metric.quality.value)
    """

    def __init__(self, source: Optional[OccupancySource] = None) -> None:
        self._source: OccupancySource = source or _default_source
        self._metrics: list[ChannelMetric] = empty_metrics()
        self._selected: Optional[str] = None

    async def aggregate(
        self, networks: Sequence[NetworkRecord]
    ) -> list[ChannelMetric]:
        """Normalised metrics for *networks* (no state is touched)."""
        raw = await self._source(list(networks))
        return normalize_metrics(raw)

    async def recompute(
        self, networks: Sequence[NetworkRecord]
    ) -> list[ChannelMetric]:
        """Recompute and store metrics for the current view of *networks*."""
        view = list(networks)
        if self._selected is not None:
            view = [n for n in view if n.identity == self._selected]
        self._metrics = await self.aggregate(view)

        busiest = max(self._metrics, key=lambda m: m.occupancy)
        logger.debug(
            f"Channel metrics recomputed from {len(view)} network(s); "
            f"busiest channel {busiest.channel} at {busiest.occupancy:.0%}"
        )
        return list(self._metrics)

    def select(self, identity: Optional[str]) -> None:
        """Restrict the view to one network; ``None`` shows all networks."""
        self._selected = identity.strip().upper() if identity else None

    def invalidate(self) -> None:
        """Forget derived metrics and the selection (new scan session)."""
        self._metrics = empty_metrics()
        self._selected = None

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    @property
    def metrics(self) -> list[ChannelMetric]:
        """Current metrics, always 13 entries in ascending channel order."""
        return list(self._metrics)

    def recommended_channels(self) -> list[int]:
        """Channels whose current occupancy is in the recommended band."""
        return [
            m.channel
            for m in self._metrics
            if m.recommendation is ChannelRecommendation.RECOMMENDED
        ]
