import asyncio
import logging
from typing import Any, List, Optional

from .config import Settings
from .database import build_store
from .notifier import Notifier
from .progression import ProgressionEngine
from .reconciler import Reconciler
from .schemas import OrderRecord
from .store import OrderStore

logger = logging.getLogger(__name__)


class OrderService:
    """
    Entry points for the CRUD layer plus lifecycle of the polling core.

    Newly created orders are not announced here: the reconciler discovers
    them on its next tick and schedules their progression.
    """

    def __init__(self, store: OrderStore, notifier: Notifier, engine: ProgressionEngine, reconciler: Reconciler):
        self.store = store
        self.notifier = notifier
        self.engine = engine
        self.reconciler = reconciler

    async def list_orders(self) -> List[OrderRecord]:
        return await asyncio.to_thread(self.store.list_orders)

    async def get_order(self, order_id: str) -> OrderRecord:
        return await asyncio.to_thread(self.store.get_order, order_id)

    async def create_order(self, draft: Any) -> OrderRecord:
        order = await asyncio.to_thread(self.store.insert_order, draft)
        logger.info("Created order %s for %s", order.id, order.customer_name)
        return order

    def start(self) -> None:
        self.reconciler.start()

    async def stop(self) -> None:
        await self.reconciler.stop()
        await self.engine.shutdown()


def build_service(settings: Settings, store: Optional[OrderStore] = None) -> OrderService:
    store = store or build_store(settings)
    notifier = Notifier()
    engine = ProgressionEngine(
        store,
        pending_delay_s=settings.pending_delay_s,
        stage_delay_s=settings.stage_delay_s,
    )
    reconciler = Reconciler(
        store,
        notifier,
        engine,
        poll_interval_s=settings.poll_interval_s,
        cache_evict_grace_s=settings.cache_evict_grace_s,
    )
    return OrderService(store, notifier, engine, reconciler)
