"""
Price Tracker - periodic refresh loop
Polls the price server on a fixed period, keeps the store current and
exposes a Loading / Loaded / Error state to the presentation layer
"""

import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from .config import TrackerConfig
from .data_sources import SnapshotClient, SnapshotMap, SnapshotStore
from .errors import TransportFailure
from .logger import get_logger

logger = get_logger(__name__)


class Status(enum.Enum):
    LOADING = 'loading'
    LOADED = 'loaded'
    ERROR = 'error'


@dataclass(frozen=True)
class TrackerState:
    """Immutable tracker state, replaced on every transition"""
    status: Status = Status.LOADING
    error: Optional[str] = None
    updated_at: Optional[datetime] = None
    sequence: int = 0  # fetch that produced this state, 0 before any

    @property
    def is_loading(self) -> bool:
        return self.status is Status.LOADING

    @property
    def is_loaded(self) -> bool:
        return self.status is Status.LOADED

    @property
    def is_error(self) -> bool:
        return self.status is Status.ERROR

    def succeeded(self, sequence: int) -> 'TrackerState':
        return TrackerState(Status.LOADED, None, datetime.now(timezone.utc), sequence)

    def failed(self, message: str, sequence: int) -> 'TrackerState':
        return TrackerState(Status.ERROR, message, datetime.now(timezone.utc), sequence)


class PriceTracker:
    """
    Fetch snapshots on a fixed period and apply them to a SnapshotStore

    Every tick starts a fetch without waiting for the previous one. Each
    fetch carries a sequence number; an outcome older than the last applied
    one is dropped, so a slow response can't overwrite a newer snapshot.
    Failures never stop the loop.
    """

    def __init__(self, config: Optional[TrackerConfig] = None,
                 client: Optional[SnapshotClient] = None,
                 store: Optional[SnapshotStore] = None,
                 on_update: Optional[Callable[[TrackerState], None]] = None):
        self.config = config or TrackerConfig()
        self.client = client if client is not None else SnapshotClient.from_config(self.config)
        self._owns_client = client is None
        self.store = store if store is not None else SnapshotStore(self.config.max_samples)
        self.on_update = on_update

        self._state = TrackerState()
        self._last_sequence = 0
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._stopped = False

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def snapshot(self) -> SnapshotMap:
        return self.store.snapshot()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def refresh(self) -> TrackerState:
        """Run one fetch and apply its outcome"""
        self._last_sequence += 1
        seq = self._last_sequence

        try:
            snapshot = await self.client.fetch_snapshot()
        except TransportFailure as e:
            logger.warning(f'[FETCH] #{seq} failed: {e}')
            self._apply(seq, self._state.failed(self.config.error_message, seq))
        else:
            self._apply(seq, self._state.succeeded(seq), snapshot)

        return self._state

    def _apply(self, seq: int, new_state: TrackerState, snapshot: Optional[SnapshotMap] = None):
        if seq <= self._state.sequence:
            logger.info(f'[LOOP] Dropping stale result #{seq}, already applied #{self._state.sequence}')
            return

        previous = self._state.status
        if snapshot is not None:
            self.store.replace(snapshot)
        self._state = new_state

        if new_state.status is not previous:
            logger.info(f'[LOOP] {previous.value} -> {new_state.status.value}')

        if self.on_update:
            try:
                self.on_update(new_state)
            except Exception:
                logger.exception('[LOOP] on_update callback failed')

    def _on_fetch_done(self, task: asyncio.Task):
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f'[LOOP] Refresh crashed: {task.exception()!r}')

    def _spawn_refresh(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._inflight.add(task)
        task.add_done_callback(self._on_fetch_done)
        return task

    def retry(self) -> Optional[asyncio.Task]:
        """Immediate out-of-band fetch (the UI's retry button); None once stopped"""
        if self._stopped:
            logger.info('[LOOP] Retry ignored, tracker is stopped')
            return None
        logger.info('[LOOP] Manual retry requested')
        return self._spawn_refresh()

    async def _run(self):
        loop = asyncio.get_running_loop()
        interval = self.config.refresh_interval
        next_tick = loop.time()
        while True:
            self._spawn_refresh()
            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                # loop stalled past one or more ticks: skip them, no burst
                next_tick = now + interval
            await asyncio.sleep(next_tick - now)

    def start(self) -> asyncio.Task:
        """Start polling; the returned task is the cancellation handle"""
        if self.running:
            return self._timer
        url = getattr(self.client, 'url', self.config.data_url)
        logger.info(f'[LOOP] Polling {url} every {self.config.refresh_interval}s')
        self._stopped = False
        self._timer = asyncio.get_running_loop().create_task(self._run())
        return self._timer

    async def stop(self):
        """Cancel the timer and any in-flight fetches, then close the client"""
        self._stopped = True
        tasks = [t for t in [self._timer, *self._inflight] if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

        if self._owns_client:
            await self.client.close()
        logger.info('[LOOP] Stopped')

    async def __aenter__(self) -> 'PriceTracker':
        self.start()
        return self

    async def __aexit__(self, *exc):
        await self.stop()
