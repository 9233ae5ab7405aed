"""Tests for channel occupancy computation and aggregation."""

import asyncio

import pytest

from wavelens.analyzers.channel import (
    ChannelOccupancyAggregator,
    compute_occupancy,
    empty_metrics,
    normalize_metrics,
)
from wavelens.core.models import (
    ChannelMetric,
    ChannelQuality,
    ChannelRecommendation,
)

from conftest import make_network


def _by_channel(metrics):
    return {m.channel: m.occupancy for m in metrics}


class TestComputeOccupancy:

    def test_signal_weighted_share(self):
        networks = [
            make_network("01", channel=6, quality=80),
            make_network("02", channel=6, quality=40),
            make_network("03", channel=11, quality=100),
            make_network("04", channel=None, quality=50),
        ]
        occupancy = _by_channel(compute_occupancy(networks))
        assert occupancy[6] == pytest.approx(0.3)
        assert occupancy[11] == pytest.approx(0.25)
        assert occupancy[1] == 0.0

    def test_out_of_domain_counts_towards_total(self):
        networks = [
            make_network("01", channel=1, quality=100),
            make_network("02", channel=36, quality=100),
        ]
        occupancy = _by_channel(compute_occupancy(networks))
        assert occupancy[1] == pytest.approx(0.5)
        assert 36 not in occupancy

    @pytest.mark.parametrize("count", [0, 1, 5, 40])
    def test_domain_totality(self, count):
        networks = [make_network(f"{i:02X}", channel=(i % 13) + 1) for i in range(count)]
        metrics = compute_occupancy(networks)
        assert [m.channel for m in metrics] == list(range(1, 14))


class TestNormalizeMetrics:

    def test_single_busy_channel(self):
        metrics = normalize_metrics([ChannelMetric(channel=6, occupancy=0.8)])
        assert len(metrics) == 13
        busy = metrics[5]
        assert busy.channel == 6
        assert busy.quality is ChannelQuality.POOR
        assert busy.recommendation.value == "Avoid - high congestion"
        for metric in metrics:
            if metric.channel != 6:
                assert metric.occupancy == 0.0
                assert metric.quality is ChannelQuality.EXCELLENT

    def test_drops_out_of_domain_and_keeps_last_duplicate(self):
        metrics = normalize_metrics([
            ChannelMetric(channel=14, occupancy=0.9),
            ChannelMetric(channel=3, occupancy=0.2),
            ChannelMetric(channel=3, occupancy=0.6),
        ])
        assert len(metrics) == 13
        assert _by_channel(metrics)[3] == 0.6
        assert 14 not in _by_channel(metrics)

    def test_empty_input(self):
        assert normalize_metrics([]) == empty_metrics()


class TestChannelOccupancyAggregator:

    def test_uses_source_and_normalises(self):
        seen = []

        async def source(networks):
            seen.append(networks)
            return [ChannelMetric(channel=11, occupancy=0.75)]

        aggregator = ChannelOccupancyAggregator(source)
        metrics = asyncio.run(aggregator.recompute([make_network("01", channel=11)]))

        assert len(seen) == 1
        assert len(metrics) == 13
        assert _by_channel(metrics)[11] == 0.75
        assert aggregator.metrics == metrics

    def test_selection_restricts_input(self):
        seen = []

        async def source(networks):
            seen.append([n.identity for n in networks])
            return []

        aggregator = ChannelOccupancyAggregator(source)
        aggregator.select("aa:01")
        networks = [make_network("AA:01"), make_network("AA:02")]
        asyncio.run(aggregator.recompute(networks))

        assert aggregator.selected == "AA:01"
        assert seen == [["AA:01"]]

    def test_aggregate_ignores_selection(self):
        aggregator = ChannelOccupancyAggregator()
        aggregator.select("AA:01")
        networks = [make_network("AA:01", channel=1, quality=100),
                    make_network("AA:02", channel=6, quality=100)]
        metrics = asyncio.run(aggregator.aggregate(networks))
        assert _by_channel(metrics)[6] == pytest.approx(0.5)
        assert aggregator.metrics == empty_metrics()

    def test_invalidate_resets(self):
        aggregator = ChannelOccupancyAggregator()
        aggregator.select("AA:01")
        asyncio.run(aggregator.recompute([make_network("AA:01", channel=1, quality=100)]))
        assert _by_channel(aggregator.metrics)[1] == 1.0

        aggregator.invalidate()
        assert aggregator.selected is None
        assert aggregator.metrics == empty_metrics()

    def test_recommended_channels(self):
        aggregator = ChannelOccupancyAggregator()
        networks = [make_network("01", channel=6, quality=100)]
        asyncio.run(aggregator.recompute(networks))
        recommended = aggregator.recommended_channels()
        assert 6 not in recommended
        assert len(recommended) == 12
        assert all(
            m.recommendation is ChannelRecommendation.RECOMMENDED
            for m in aggregator.metrics if m.channel in recommended
        )
