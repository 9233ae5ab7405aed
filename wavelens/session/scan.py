"""
WaveLens Scan Session Coordinator
==================================

Drives one scan at a time against a radio backend:

    1. Clear the record store and the derived channel metrics
    2. Subscribe to the backend's progress stream for the scan's lifetime
    3. Await the final scan result
    4. Merge every batch (progress and final) into the store in arrival
       order, publish the new snapshot, and recompute channel metrics

Progress batches are queued as they arrive and merged by a single pump
task, so each merge (upsert, publish, recompute) completes before the
next one starts and consumers never observe a partially merged batch.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable, Optional

from shared.logger import WaveLensLogger

from wavelens.analyzers.channel import ChannelOccupancyAggregator
from wavelens.collectors.base import RadioBackend
from wavelens.core.errors import ScanFailure
from wavelens.core.models import NetworkRecord, ScanStatus
from wavelens.core.store import NetworkRecordStore

logger = WaveLensLogger("session.scan")

SnapshotListener = Callable[[list[NetworkRecord]], None]


class ScanSessionCoordinator:
    """State machine ``Idle -> Scanning -> Idle`` over a radio backend.

    Usage::

        coordinator = ScanSessionCoordinator(backend, aggregator)
        coordinator.add_listener(lambda snapshot: print(len(snapshot)))
        networks = await coordinator.begin_scan()
    """

    def __init__(
        self,
        backend: RadioBackend,
        aggregator: Optional[ChannelOccupancyAggregator] = None,
        store: Optional[NetworkRecordStore] = None,
    ) -> None:
        self._backend = backend
        self._aggregator = aggregator or ChannelOccupancyAggregator(
            backend.channel_occupancy
        )
        self._store = store or NetworkRecordStore()
        self._status = ScanStatus.IDLE
        self._listeners: list[SnapshotListener] = []

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def status(self) -> ScanStatus:
        return self._status

    @property
    def store(self) -> NetworkRecordStore:
        return self._store

    @property
    def aggregator(self) -> ChannelOccupancyAggregator:
        return self._aggregator

    @property
    def snapshot(self) -> list[NetworkRecord]:
        return self._store.snapshot()

    # ------------------------------------------------------------------ #
    #  Consumers
    # ------------------------------------------------------------------ #

    def add_listener(self, listener: SnapshotListener) -> None:
        """Call *listener* with the new snapshot after every merge."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------ #
    #  Scanning
    # ------------------------------------------------------------------ #

    async def begin_scan(self) -> list[NetworkRecord]:
        """Run one scan session and return the resulting snapshot.

        A call made while a scan is already running returns the current
        snapshot immediately without starting another scan.

        Raises:
            ScanFailure: If the backend's final scan call fails. Records
                merged from progress batches stay in the store.
        """
        if self._status is ScanStatus.SCANNING:
            logger.warning("Scan already in progress; request ignored")
            return self._store.snapshot()

        self._status = ScanStatus.SCANNING
        self._store.clear()
        self._aggregator.invalidate()

        queue: asyncio.Queue[list[NetworkRecord]] = asyncio.Queue()
        listener = queue.put_nowait
        pump = asyncio.create_task(self._pump(queue))
        failure: Optional[Exception] = None

        try:
            with logger.operation("begin_scan"):
                self._backend.subscribe_progress(listener)
                try:
                    final = await self._backend.scan()
                except Exception as exc:
                    failure = exc
                    final = []
                finally:
                    self._backend.unsubscribe_progress(listener)

                # Progress batches queued before the final result merge first
                await queue.join()
                if final:
                    await self._merge(final)
        finally:
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)
            self._status = ScanStatus.IDLE

        if failure is not None:
            logger.error(
                f"Scan failed: {failure}; keeping {len(self._store)} "
                f"network(s) merged from progress events"
            )
            raise ScanFailure(f"Scan failed: {failure}") from failure

        logger.info(f"Scan complete: {len(self._store)} unique network(s)")
        return self._store.snapshot()

    async def _pump(self, queue: asyncio.Queue[list[NetworkRecord]]) -> None:
        while True:
            batch = await queue.get()
            try:
                await self._merge(batch)
            except Exception as exc:
                logger.error(f"Failed to merge progress batch: {exc}")
            finally:
                queue.task_done()

    async def _merge(self, records: Iterable[NetworkRecord]) -> None:
        count = self._store.upsert_many(records)
        snapshot = self._store.snapshot()
        logger.debug(f"Merged {count} observation(s); {len(snapshot)} unique")

        for listener in list(self._listeners):
            try:
                listener(list(snapshot))
            except Exception as exc:
                logger.error(f"Snapshot listener failed: {exc}")

        try:
            await self._aggregator.recompute(snapshot)
        except Exception as exc:
            logger.error(f"Channel occupancy recompute failed: {exc}")

    # ------------------------------------------------------------------ #
    #  Selection
    # ------------------------------------------------------------------ #

    async def select_network(self, identity: Optional[str]) -> bool:
        """Restrict channel metrics to one network, or clear with ``None``.

        Returns ``False`` (and changes nothing) for identities not in the
        current store.
        """
        if identity is not None and identity not in self._store:
            logger.warning(f"Cannot select unknown network {identity}")
            return False

        self._aggregator.select(identity)
        try:
            await self._aggregator.recompute(self._store.snapshot())
        except Exception as exc:
            logger.error(f"Channel occupancy recompute failed: {exc}")
        return True
