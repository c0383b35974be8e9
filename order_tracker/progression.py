"""
Timed auto-progression: pending -> processing -> shipped -> delivered.

One cancelable asyncio task per order id. Advances are compare-and-set
writes against the status the task was scheduled from, so an order that was
altered in the meantime is left alone.
"""

import asyncio
import logging
from typing import Dict, List, NamedTuple, Optional

from .errors import StoreUnavailable
from .models import OrderStatus
from .schemas import OrderRecord
from .store import OrderStore

logger = logging.getLogger(__name__)


class _Scheduled(NamedTuple):
    source: OrderStatus
    task: asyncio.Task


class ProgressionEngine:

    def __init__(self, store: OrderStore, pending_delay_s: float = 2.0, stage_delay_s: float = 3.0):
        self._store = store
        self.pending_delay_s = pending_delay_s
        self.stage_delay_s = stage_delay_s
        self._scheduled: Dict[str, _Scheduled] = {}

    def schedule_initial(self, order: OrderRecord) -> bool:
        """First advance for a newly detected order. Must run inside the event loop."""
        if order.status != OrderStatus.PENDING:
            return self.schedule(order)
        return self._schedule(order.id, OrderStatus.PENDING, self.pending_delay_s)

    def schedule(self, order: OrderRecord) -> bool:
        """Advance after a detected status change. Returns True if a new task was queued."""
        if order.status in (OrderStatus.PROCESSING, OrderStatus.SHIPPED):
            return self._schedule(order.id, order.status, self.stage_delay_s)
        if order.status.is_terminal:
            self.cancel(order.id)
        # pending only advances from schedule_initial
        return False

    def _schedule(self, order_id: str, source: OrderStatus, delay_s: float) -> bool:
        current = self._scheduled.get(order_id)
        if current is not None and not current.task.done():
            if current.source == source:
                logger.debug("Advance for %s from %s already pending", order_id, source.value)
                return False
            # Status moved under us, the old advance is stale
            current.task.cancel()

        task = asyncio.create_task(self._advance_later(order_id, source, delay_s))
        self._scheduled[order_id] = _Scheduled(source, task)
        task.add_done_callback(lambda t, oid=order_id: self._forget(oid, t))
        return True

    def _forget(self, order_id: str, task: asyncio.Task) -> None:
        current = self._scheduled.get(order_id)
        if current is not None and current.task is task:
            del self._scheduled[order_id]

    async def _advance_later(self, order_id: str, source: OrderStatus, delay_s: float) -> None:
        await asyncio.sleep(delay_s)
        target = source.next_status()
        try:
            changed = await asyncio.to_thread(self._store.update_status, order_id, target, source)
        except StoreUnavailable as e:
            # No retry: the order stalls until something else moves it
            logger.error("Error advancing order %s to %s: %s", order_id, target.value, e)
            return
        if changed:
            logger.info("Advanced order %s: %s -> %s", order_id, source.value, target.value)
        else:
            logger.info("Order %s no longer %s, advance skipped", order_id, source.value)

    def pending_source(self, order_id: str) -> Optional[OrderStatus]:
        current = self._scheduled.get(order_id)
        if current is None or current.task.done():
            return None
        return current.source

    def pending_ids(self) -> List[str]:
        return [oid for oid, s in self._scheduled.items() if not s.task.done()]

    def cancel(self, order_id: str) -> bool:
        current = self._scheduled.pop(order_id, None)
        if current is None or current.task.done():
            return False
        current.task.cancel()
        return True

    async def wait_idle(self) -> None:
        """Wait until every scheduled advance has fired (or been cancelled)."""
        while self._scheduled:
            tasks = [s.task for s in self._scheduled.values()]
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        tasks = [s.task for s in self._scheduled.values()]
        self._scheduled.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
