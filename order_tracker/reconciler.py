"""
Snapshot-diff poller.

Each tick fetches every order, diffs it against the snapshot cache and
announces what changed: orders first seen with createdAt after the previous
boundary are new, cached orders whose status moved are status changes.
Ticks never overlap: the loop sleeps after each tick finishes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from .errors import StoreUnavailable
from .notifier import Notifier
from .progression import ProgressionEngine
from .schemas import OrderRecord, utcnow
from .state import SnapshotCache
from .store import OrderStore

logger = logging.getLogger(__name__)


def floor_ms(value: datetime) -> datetime:
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


@dataclass
class TickResult:
    ok: bool
    created: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    evicted: int = 0


class Reconciler:

    def __init__(
        self,
        store: OrderStore,
        notifier: Notifier,
        engine: ProgressionEngine,
        poll_interval_s: float = 1.0,
        cache_evict_grace_s: float = 0.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._notifier = notifier
        self._engine = engine
        self.poll_interval_s = poll_interval_s
        self.cache_evict_grace_s = cache_evict_grace_s
        self._clock = clock
        self.cache = SnapshotCache()
        # Orders created before the watch began are never announced as new
        self.boundary: datetime = floor_ms(clock())
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def tick(self) -> TickResult:
        async with self._lock:
            return await self._tick()

    async def _tick(self) -> TickResult:
        fetched_at = self._clock()
        try:
            orders = await asyncio.to_thread(self._store.list_orders)
        except StoreUnavailable as e:
            # Cache and boundary stay as they were, next tick retries from the same point
            logger.error("Polling error: %s", e)
            return TickResult(ok=False)

        new_orders: List[OrderRecord] = []
        changed_orders: List[OrderRecord] = []
        for order in orders:
            cached = self.cache.get(order.id)
            if cached is None:
                # Boundary is kept at millisecond precision (BSON dates); a tie counts
                # as new since orders seen by an earlier fetch are already cached
                if order.created_at >= self.boundary:
                    new_orders.append(order)
            elif cached.status != order.status:
                changed_orders.append(order)

        for order in changed_orders:
            previous = self.cache.get(order.id)
            logger.info("Status changed: %s %s -> %s", order.id, previous.status.value, order.status.value)
            await self._notifier.status_updated(order)
            self._engine.schedule(order)

        for order in new_orders:
            logger.info("New order: %s (%s)", order.customer_name, order.id)
            await self._notifier.order_created(order)
            self._engine.schedule_initial(order)

        for order in orders:
            self.cache.put(order)

        self.boundary = floor_ms(fetched_at)

        evicted = 0
        if self.cache_evict_grace_s > 0:
            evicted = self.cache.evict_terminal(fetched_at, self.cache_evict_grace_s)
            if evicted:
                logger.debug("Evicted %d delivered orders from snapshot cache", evicted)

        return TickResult(
            ok=True,
            created=[o.id for o in new_orders],
            changed=[o.id for o in changed_orders],
            evicted=evicted,
        )

    async def run(self) -> None:
        logger.info("Polling every %.2fs", self.poll_interval_s)
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception("Polling error")
            await asyncio.sleep(self.poll_interval_s)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if task.done():
            if not task.cancelled() and task.exception() is not None:
                logger.error("Polling loop had already stopped: %r", task.exception())
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
